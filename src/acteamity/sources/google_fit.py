"""Lectura de pasos desde Google Fit (API REST y exportaciones Takeout)."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any, cast

import httpx
import pandas as pd

from acteamity.errors import DataUnavailable, Unauthorized
from acteamity.model import ActivityDistances, StepReading
from acteamity.sources.base import SourcePaths, StepSource, TimeWindow

logger = logging.getLogger("acteamity.sources.google_fit")

AGGREGATE_URL = "https://www.googleapis.com/fitness/v1/users/me/dataset:aggregate"
STEP_DATA_TYPE = "com.google.step_count.delta"
DISTANCE_DATA_TYPE = "com.google.distance.delta"
# Google Fit activity type ids (biking variants, swimming variants).
CYCLING_ACTIVITY_TYPES = frozenset({1, 14, 15, 16, 17, 18, 19})
SWIMMING_ACTIVITY_TYPES = frozenset({82, 83, 84})
DAILY_METRICS_DIR = "Métricas de actividad diaria"


class GoogleFitApiSource(StepSource):
    """Google Fit REST reader for step deltas and activity distances."""

    name = "google_fit"

    def __init__(
        self,
        client: httpx.AsyncClient,
        access_token: str,
        *,
        url: str = AGGREGATE_URL,
    ) -> None:
        """Create the source.

        Args:
            client: Shared async HTTP client, owned by the caller.
            access_token: OAuth token with the fitness activity read scope.
            url: Aggregate endpoint, overridable for tests.
        """
        self._client = client
        self._access_token = access_token
        self._url = url

    async def read_steps(self, window: TimeWindow) -> StepReading:
        """Sum every step delta reported in ``window``."""
        start_ms, end_ms = window.millis()
        if end_ms <= start_ms:
            return StepReading(0, window.start, window.end, self.name)

        payload = await self._aggregate(
            {
                "aggregateBy": [{"dataTypeName": STEP_DATA_TYPE}],
                "bucketByTime": {"durationMillis": end_ms - start_ms},
                "startTimeMillis": start_ms,
                "endTimeMillis": end_ms,
            }
        )
        steps = _sum_aggregate_steps(payload)
        logger.debug("Google Fit steps %s..%s: %d", window.start, window.end, steps)
        return StepReading(steps, window.start, window.end, self.name)

    async def read_activity_distances(self, window: TimeWindow) -> ActivityDistances:
        """Sum cycling and swimming meters in ``window``, bucketed by activity."""
        start_ms, end_ms = window.millis()
        if end_ms <= start_ms:
            return ActivityDistances(0.0, 0.0, window.start, window.end, self.name)

        payload = await self._aggregate(
            {
                "aggregateBy": [{"dataTypeName": DISTANCE_DATA_TYPE}],
                "bucketByActivityType": {"minDurationMillis": 0},
                "startTimeMillis": start_ms,
                "endTimeMillis": end_ms,
            }
        )
        cycling = _sum_activity_meters(payload, CYCLING_ACTIVITY_TYPES)
        swimming = _sum_activity_meters(payload, SWIMMING_ACTIVITY_TYPES)
        logger.debug(
            "Google Fit distances %s..%s: cycling=%.1fm swimming=%.1fm",
            window.start,
            window.end,
            cycling,
            swimming,
        )
        return ActivityDistances(cycling, swimming, window.start, window.end, self.name)

    async def _aggregate(self, body: dict[str, Any]) -> dict[str, Any]:
        headers = {"Authorization": f"Bearer {self._access_token}"}
        try:
            resp = await self._client.post(self._url, json=body, headers=headers)
        except httpx.HTTPError as exc:
            raise DataUnavailable(f"Google Fit request failed: {exc}") from exc

        if resp.status_code in (401, 403):
            raise Unauthorized(f"Google Fit rejected credentials ({resp.status_code})")
        if resp.status_code != 200:
            raise DataUnavailable(f"Google Fit answered {resp.status_code}")

        try:
            return cast(dict[str, Any], resp.json())
        except ValueError as exc:
            raise DataUnavailable("Google Fit returned invalid JSON") from exc


@dataclass(frozen=True)
class GoogleFitPaths(SourcePaths):
    """Paths for Google Fit Takeout/Fit directory."""

    # root: .../Takeout/Fit


class TakeoutStepSource(StepSource):
    """Google Fit Takeout reader (per-day activity CSVs).

    Takeout files hold whole-day totals, so every day the window touches is
    counted in full.
    """

    name = "google_fit_takeout"

    def __init__(self, paths: GoogleFitPaths) -> None:
        """Create the source.

        Args:
            paths: Takeout ``Fit`` directory.
        """
        self._paths = paths

    def validate(self) -> None:
        """Validate the path of the files."""
        if not self._paths.root.exists():
            raise FileNotFoundError(str(self._paths.root))

    def daily_metrics_files(self) -> list[Path]:
        """Return per-day CSV files for daily activity metrics."""
        metrics_dir = self._paths.root / DAILY_METRICS_DIR
        if not metrics_dir.exists():
            raise FileNotFoundError(str(metrics_dir))

        files = sorted(
            p
            for p in metrics_dir.glob("*.csv")
            if p.name.lower() != f"{DAILY_METRICS_DIR}.csv".lower()
        )
        if files:
            return files
        raise FileNotFoundError(str(metrics_dir))

    def load_daily(self, csv_paths: list[Path]) -> pd.DataFrame:
        """Load daily step totals from per-day CSVs.

        Returns DataFrame columns:
            date, steps
        """
        rows: list[dict[str, object]] = []
        for csv_path in csv_paths:
            file_date = _date_from_filename(csv_path)
            if not file_date:
                continue
            df = pd.read_csv(csv_path)
            row = _summarize_daily_file(df, file_date)
            if row:
                rows.append(row)

        if not rows:
            return pd.DataFrame(columns=["date", "steps"])

        return pd.DataFrame(rows).sort_values("date").reset_index(drop=True)

    async def read_steps(self, window: TimeWindow) -> StepReading:
        """Sum the daily totals of every day in ``window``."""
        wanted = set(window.days())
        try:
            files = self.daily_metrics_files()
        except FileNotFoundError as exc:
            raise DataUnavailable(f"No Takeout metrics: {exc}") from exc

        selected = [p for p in files if _date_from_filename(p) in wanted]
        if not selected:
            raise DataUnavailable(
                f"No Takeout file covers {window.start.date()}..{window.end.date()}"
            )

        daily = self.load_daily(selected)
        values = pd.to_numeric(daily["steps"], errors="coerce")
        if values.isna().all():
            raise DataUnavailable(
                f"No step column in Takeout files for "
                f"{window.start.date()}..{window.end.date()}"
            )
        steps = values.fillna(0).sum()
        logger.info("Takeout steps from %d file(s): %d", len(selected), int(steps))
        return StepReading(int(steps), window.start, window.end, self.name)


def _sum_aggregate_steps(payload: dict[str, Any]) -> int:
    """Suma los intVal de todos los puntos de todos los buckets."""
    total = 0
    for bucket in payload.get("bucket", []):
        for dataset in bucket.get("dataset", []):
            for point in dataset.get("point", []):
                for value in point.get("value", []):
                    total += int(value.get("intVal", 0))
    return total


def _sum_activity_meters(payload: dict[str, Any], activities: frozenset[int]) -> float:
    """Suma los fpVal (metros) de los buckets cuya actividad está en ``activities``."""
    total = 0.0
    for bucket in payload.get("bucket", []):
        if bucket.get("activity") not in activities:
            continue
        for dataset in bucket.get("dataset", []):
            for point in dataset.get("point", []):
                for value in point.get("value", []):
                    total += float(value.get("fpVal", 0.0))
    return total


def _find_col(columns: list[str], patterns: list[str]) -> str | None:
    for pat in patterns:
        rx = re.compile(pat, re.IGNORECASE)
        for c in columns:
            if rx.search(c):
                return c
    return None


def _summarize_daily_file(
    df: pd.DataFrame, file_date: date
) -> dict[str, object] | None:
    if df.empty:
        return None

    df = df.rename(columns={c: c.strip() for c in df.columns})
    steps_col = _find_col(list(df.columns), [r"\bpasos\b", r"\bstep"])
    if not steps_col:
        return {"date": file_date, "steps": None}

    result = pd.to_numeric(df[steps_col], errors="coerce").sum(min_count=1)
    if pd.isna(result):
        return {"date": file_date, "steps": None}
    return {"date": file_date, "steps": int(result)}


def _date_from_filename(path: Path) -> date | None:
    match = re.match(r"(\d{4}-\d{2}-\d{2})", path.stem)
    if not match:
        return None
    parsed = pd.to_datetime(match.group(1), errors="coerce")
    if pd.isna(parsed):
        return None
    return cast(date, parsed.date())
