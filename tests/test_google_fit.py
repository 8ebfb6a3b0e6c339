"""Tests for Google Fit step sources (REST API and Takeout CSVs)."""

from __future__ import annotations

import json
from datetime import date, datetime, timezone
from pathlib import Path

import httpx
import pandas as pd
import pytest

from acteamity.errors import DataUnavailable, Unauthorized
from acteamity.sources.base import TimeWindow
from acteamity.sources.google_fit import (
    DAILY_METRICS_DIR,
    GoogleFitApiSource,
    GoogleFitPaths,
    TakeoutStepSource,
    _date_from_filename,
    _find_col,
    _summarize_daily_file,
)

WINDOW = TimeWindow(
    start=datetime(2025, 12, 15, tzinfo=timezone.utc),
    end=datetime(2025, 12, 15, 18, 30, tzinfo=timezone.utc),
)


def _write_csv(path: Path, data: dict[str, list[object]]) -> None:
    pd.DataFrame(data).to_csv(path, index=False)


def _api_source(handler: object) -> GoogleFitApiSource:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))  # type: ignore[arg-type]
    return GoogleFitApiSource(client, "token-123")


# --- REST API ---------------------------------------------------------------


@pytest.mark.asyncio
async def test_api_sums_all_buckets_and_sends_window() -> None:
    seen: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "bucket": [
                    {"dataset": [{"point": [{"value": [{"intVal": 1200}]}]}]},
                    {
                        "dataset": [
                            {
                                "point": [
                                    {"value": [{"intVal": 300}]},
                                    {"value": [{"intVal": 45}]},
                                ]
                            }
                        ]
                    },
                ]
            },
        )

    reading = await _api_source(handler).read_steps(WINDOW)
    assert reading.steps == 1545
    assert reading.source == "google_fit"
    assert seen["auth"] == "Bearer token-123"
    body = seen["body"]
    assert isinstance(body, dict)
    start_ms, end_ms = WINDOW.millis()
    assert body["startTimeMillis"] == start_ms
    assert body["endTimeMillis"] == end_ms
    assert body["aggregateBy"] == [{"dataTypeName": "com.google.step_count.delta"}]


@pytest.mark.asyncio
async def test_api_empty_dataset_is_zero() -> None:
    reading = await _api_source(
        lambda _: httpx.Response(200, json={"bucket": [{"dataset": [{"point": []}]}]})
    ).read_steps(WINDOW)
    assert reading.steps == 0


@pytest.mark.asyncio
async def test_api_empty_window_skips_request() -> None:
    def handler(_: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    moment = datetime(2025, 12, 15, tzinfo=timezone.utc)
    reading = await _api_source(handler).read_steps(TimeWindow(moment, moment))
    assert reading.steps == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [401, 403])
async def test_api_rejected_credentials(status: int) -> None:
    with pytest.raises(Unauthorized):
        await _api_source(lambda _: httpx.Response(status)).read_steps(WINDOW)


@pytest.mark.asyncio
async def test_api_server_error_is_data_unavailable() -> None:
    with pytest.raises(DataUnavailable):
        await _api_source(lambda _: httpx.Response(503)).read_steps(WINDOW)


@pytest.mark.asyncio
async def test_api_transport_error_is_data_unavailable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("offline", request=request)

    with pytest.raises(DataUnavailable):
        await _api_source(handler).read_steps(WINDOW)


@pytest.mark.asyncio
async def test_api_activity_distances_by_activity_type() -> None:
    seen: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "bucket": [
                    {
                        "activity": 1,
                        "dataset": [{"point": [{"value": [{"fpVal": 8000.5}]}]}],
                    },
                    {
                        "activity": 16,
                        "dataset": [{"point": [{"value": [{"fpVal": 4000.0}]}]}],
                    },
                    {
                        "activity": 83,
                        "dataset": [{"point": [{"value": [{"fpVal": 1250.0}]}]}],
                    },
                    {
                        "activity": 7,
                        "dataset": [{"point": [{"value": [{"fpVal": 3000.0}]}]}],
                    },
                ]
            },
        )

    distances = await _api_source(handler).read_activity_distances(WINDOW)
    assert distances.cycling_m == pytest.approx(12000.5)
    assert distances.swimming_m == pytest.approx(1250.0)
    assert distances.source == "google_fit"
    body = seen["body"]
    assert isinstance(body, dict)
    assert body["aggregateBy"] == [{"dataTypeName": "com.google.distance.delta"}]
    assert "bucketByActivityType" in body


@pytest.mark.asyncio
async def test_api_activity_distances_empty_window_and_errors() -> None:
    moment = datetime(2025, 12, 15, tzinfo=timezone.utc)
    empty = await _api_source(lambda _: httpx.Response(500)).read_activity_distances(
        TimeWindow(moment, moment)
    )
    assert (empty.cycling_m, empty.swimming_m) == (0.0, 0.0)

    with pytest.raises(Unauthorized):
        await _api_source(lambda _: httpx.Response(401)).read_activity_distances(WINDOW)
    with pytest.raises(DataUnavailable):
        await _api_source(lambda _: httpx.Response(502)).read_activity_distances(WINDOW)


# --- Takeout CSVs -----------------------------------------------------------


def test_find_col_matches_spanish_and_english() -> None:
    cols = ["Fecha", "Pasos", "Step count", "Minutos activos"]
    assert _find_col(cols, [r"\bpasos\b", r"\bstep"]) == "Pasos"
    assert _find_col(cols, [r"\bstep"]) == "Step count"
    assert _find_col(cols, [r"\bunknown\b"]) is None


def test_date_from_filename_valid_and_invalid() -> None:
    assert _date_from_filename(Path("2025-12-15.csv")) == date(2025, 12, 15)
    assert _date_from_filename(Path("2025-13-99.csv")) is None
    assert _date_from_filename(Path("no-date.csv")) is None


def test_summarize_daily_file_coercion_and_missing() -> None:
    assert _summarize_daily_file(pd.DataFrame(), date(2025, 12, 15)) is None

    df = pd.DataFrame({" Pasos ": ["1000", "2000", "bad"]})
    out = _summarize_daily_file(df, date(2025, 12, 15))
    assert out == {"date": date(2025, 12, 15), "steps": 3000}

    out = _summarize_daily_file(pd.DataFrame({"Other": [1]}), date(2025, 12, 15))
    assert out == {"date": date(2025, 12, 15), "steps": None}


def test_validate_and_daily_metrics_files_errors(tmp_path: Path) -> None:
    source = TakeoutStepSource(GoogleFitPaths(root=tmp_path / "missing"))
    with pytest.raises(FileNotFoundError):
        source.validate()

    root = tmp_path / "Fit"
    root.mkdir()
    source = TakeoutStepSource(GoogleFitPaths(root=root))
    with pytest.raises(FileNotFoundError):
        source.daily_metrics_files()

    (root / DAILY_METRICS_DIR).mkdir()
    with pytest.raises(FileNotFoundError):
        source.daily_metrics_files()


def test_daily_metrics_files_excludes_summary(tmp_path: Path) -> None:
    metrics = tmp_path / "Fit" / DAILY_METRICS_DIR
    metrics.mkdir(parents=True)
    day_a = metrics / "2025-12-15.csv"
    day_b = metrics / "2025-12-16.csv"
    for p in (day_b, day_a, metrics / f"{DAILY_METRICS_DIR}.csv"):
        _write_csv(p, {"Pasos": [1]})

    source = TakeoutStepSource(GoogleFitPaths(root=tmp_path / "Fit"))
    assert source.daily_metrics_files() == [day_a, day_b]


def test_load_daily_skips_bad_filenames() -> None:
    source = TakeoutStepSource(GoogleFitPaths(root=Path(".")))
    out = source.load_daily([Path("no-date.csv")])
    assert list(out.columns) == ["date", "steps"]
    assert out.empty


@pytest.mark.asyncio
async def test_takeout_read_steps_sums_days_in_window(tmp_path: Path) -> None:
    metrics = tmp_path / "Fit" / DAILY_METRICS_DIR
    metrics.mkdir(parents=True)
    _write_csv(metrics / "2025-12-14.csv", {"Pasos": [9999]})
    _write_csv(metrics / "2025-12-15.csv", {"Pasos": [1000, 2500]})
    _write_csv(metrics / "2025-12-16.csv", {"Step count": [4000]})

    source = TakeoutStepSource(GoogleFitPaths(root=tmp_path / "Fit"))
    window = TimeWindow(
        start=datetime(2025, 12, 15, tzinfo=timezone.utc),
        end=datetime(2025, 12, 17, tzinfo=timezone.utc),
    )
    reading = await source.read_steps(window)
    assert reading.steps == 7500
    assert reading.source == "google_fit_takeout"


@pytest.mark.asyncio
async def test_takeout_read_steps_without_matching_day(tmp_path: Path) -> None:
    metrics = tmp_path / "Fit" / DAILY_METRICS_DIR
    metrics.mkdir(parents=True)
    _write_csv(metrics / "2025-12-01.csv", {"Pasos": [10]})

    source = TakeoutStepSource(GoogleFitPaths(root=tmp_path / "Fit"))
    with pytest.raises(DataUnavailable):
        await source.read_steps(WINDOW)

    missing = TakeoutStepSource(GoogleFitPaths(root=tmp_path / "nothing"))
    with pytest.raises(DataUnavailable):
        await missing.read_steps(WINDOW)


@pytest.mark.asyncio
async def test_takeout_read_steps_without_step_column(tmp_path: Path) -> None:
    metrics = tmp_path / "Fit" / DAILY_METRICS_DIR
    metrics.mkdir(parents=True)
    _write_csv(metrics / "2025-12-15.csv", {"Other": [1]})

    source = TakeoutStepSource(GoogleFitPaths(root=tmp_path / "Fit"))
    with pytest.raises(DataUnavailable, match="No step column"):
        await source.read_steps(WINDOW)


@pytest.mark.asyncio
async def test_takeout_read_steps_skips_day_without_steps(tmp_path: Path) -> None:
    metrics = tmp_path / "Fit" / DAILY_METRICS_DIR
    metrics.mkdir(parents=True)
    _write_csv(metrics / "2025-12-15.csv", {"Other": [1]})
    _write_csv(metrics / "2025-12-16.csv", {"Pasos": [4200]})

    source = TakeoutStepSource(GoogleFitPaths(root=tmp_path / "Fit"))
    window = TimeWindow(
        start=datetime(2025, 12, 15, tzinfo=timezone.utc),
        end=datetime(2025, 12, 17, tzinfo=timezone.utc),
    )
    reading = await source.read_steps(window)
    assert reading.steps == 4200
