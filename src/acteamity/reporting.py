"""Envío del total diario de pasos a la API de registro."""

from __future__ import annotations

import asyncio
import logging

import httpx

from acteamity.model import StepReport

logger = logging.getLogger("acteamity.reporting")

RECORD_STEPS_PATH = "/api/record_steps"


class StepReporter:
    """Posts daily step reports, retrying until one is accepted."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str,
        *,
        max_attempts: int = 10,
        retry_delay: float = 1.0,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self._client = client
        self._url = base_url.rstrip("/") + RECORD_STEPS_PATH
        self._max_attempts = max_attempts
        self._retry_delay = retry_delay

    async def report(self, report: StepReport) -> bool:
        """Send ``report``; return True once the API accepts it."""
        body = report.to_json()
        for attempt in range(1, self._max_attempts + 1):
            try:
                resp = await self._client.post(self._url, json=body)
            except httpx.HTTPError as exc:
                logger.warning("Step report attempt %d failed: %s", attempt, exc)
            else:
                if resp.is_success:
                    logger.info(
                        "Recorded %d steps for %s on %s",
                        report.steps_per_day,
                        report.email,
                        body["date"],
                    )
                    return True
                logger.warning(
                    "Step report attempt %d rejected (%d): %s",
                    attempt,
                    resp.status_code,
                    _error_message(resp),
                )
            if attempt < self._max_attempts:
                await asyncio.sleep(self._retry_delay)

        logger.error("Giving up on step report after %d attempts", self._max_attempts)
        return False


def _error_message(resp: httpx.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        return resp.text or "Step record failed"
    if isinstance(data, dict) and data.get("error"):
        return str(data["error"])
    return "Step record failed"
