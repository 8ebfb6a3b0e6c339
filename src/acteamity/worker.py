"""Orquestación: leer pasos (async) y convertirlos (sync)."""

from __future__ import annotations

import logging
from datetime import datetime, tzinfo

from acteamity.model import DEFAULT_RULES, StepReading, StepReport, TokenBalance, TokenRules
from acteamity.reporting import StepReporter
from acteamity.sources.base import StepSource, TimeWindow
from acteamity.sources.google_fit import GoogleFitApiSource
from acteamity.tokens import convert_activity_reading, convert_steps

logger = logging.getLogger("acteamity.worker")


async def refresh_balance(
    source: StepSource,
    window: TimeWindow,
    rules: TokenRules = DEFAULT_RULES,
) -> TokenBalance:
    """Read steps for ``window`` and convert them.

    Provider errors propagate unchanged; nothing is defaulted to zero.
    """
    reading = await source.read_steps(window)
    balance = convert_steps(reading.steps, rules)
    logger.info(
        "Balance from %s: steps=%d remainder=%d exchangeable=%d non_exchangeable=%d",
        reading.source,
        reading.steps,
        balance.steps_remainder,
        balance.exchangeable_tokens,
        balance.non_exchangeable_tokens,
    )
    return balance


async def refresh_activity_balance(
    source: GoogleFitApiSource,
    window: TimeWindow,
    rules: TokenRules = DEFAULT_RULES,
) -> TokenBalance:
    """Read steps and cycling/swimming distances for ``window`` and convert them."""
    reading = await source.read_steps(window)
    distances = await source.read_activity_distances(window)
    balance = convert_activity_reading(reading, distances, rules)
    logger.info(
        "Activity balance from %s: steps=%d cycling=%.0fm swimming=%.0fm "
        "exchangeable=%d non_exchangeable=%d",
        reading.source,
        reading.steps,
        distances.cycling_m,
        distances.swimming_m,
        balance.exchangeable_tokens,
        balance.non_exchangeable_tokens,
    )
    return balance


class StepCountWorker:
    """Periodic task that reports yesterday's step total."""

    def __init__(
        self,
        source: StepSource,
        reporter: StepReporter,
        email: str,
        tz: tzinfo | None = None,
    ) -> None:
        self._source = source
        self._reporter = reporter
        self._email = email
        self._tz = tz

    async def run(self, now: datetime | None = None) -> StepReading:
        """Read yesterday's steps and post them to the report API."""
        window = TimeWindow.yesterday(now, self._tz)
        reading = await self._source.read_steps(window)
        logger.info("Total steps for %s: %d", window.start.date(), reading.steps)

        report = StepReport(
            email=self._email,
            steps_per_day=reading.steps,
            date=window.start.date(),
        )
        if not await self._reporter.report(report):
            logger.error("Step report for %s was not recorded", report.date)
        return reading
