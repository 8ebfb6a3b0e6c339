"""Contador de pasos a partir de eventos de sensores del dispositivo."""

from __future__ import annotations

import logging
from datetime import date

from acteamity.model import StepReading
from acteamity.sources.base import StepSource, TimeWindow

logger = logging.getLogger("acteamity.sources.sensor")


class SensorStepCounter(StepSource):
    """Daily step count built from step counter and step detector events.

    The hardware step counter is cumulative since boot. The first value seen
    on a day becomes the baseline, and the day's count is the distance from
    it. Step detector events add one step each. State lives in memory only.
    """

    name = "device_sensor"

    def __init__(self, today: date) -> None:
        self._day = today
        self._baseline: int | None = None
        self._last_raw: int | None = None
        self._counter_steps = 0
        self._detected_steps = 0

    @property
    def day(self) -> date:
        return self._day

    @property
    def steps(self) -> int:
        """Steps counted for the current day."""
        return self._counter_steps + self._detected_steps

    def reset(self, today: date) -> None:
        """Forget the baseline and start counting ``today`` from zero."""
        logger.info("Resetting step counter for %s", today.isoformat())
        self._day = today
        self._baseline = None
        self._last_raw = None
        self._counter_steps = 0
        self._detected_steps = 0

    def on_counter(self, value: float, today: date) -> int:
        """Handle a cumulative step counter event.

        Returns:
            The day's step count after the event.
        """
        if today != self._day:
            self.reset(today)

        total = int(value)
        restarted = self._last_raw is not None and total < self._last_raw
        if self._baseline is None or restarted:
            # First event of the day, or the counter restarted after a reboot.
            self._baseline = total - self._counter_steps
            logger.debug("Step counter baseline set to %d", self._baseline)

        self._counter_steps = total - self._baseline
        self._last_raw = total
        return self.steps

    def on_step_detected(self, value: float = 1.0, today: date | None = None) -> int:
        """Handle a step detector event; only ``1.0`` counts as a step."""
        if today is not None and today != self._day:
            self.reset(today)
        if value == 1.0:
            self._detected_steps += 1
        else:
            logger.debug("Ignoring step detector value %s", value)
        return self.steps

    async def read_steps(self, window: TimeWindow) -> StepReading:
        """Return the current day's count stamped with ``window``."""
        return StepReading(self.steps, window.start, window.end, self.name)
