"""Clases base para fuentes de pasos y ventanas de tiempo."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime, timedelta, tzinfo
from pathlib import Path

from dateutil import tz as dateutil_tz

from acteamity.model import StepReading


@dataclass(frozen=True)
class SourcePaths:
    """Container for source directories."""

    root: Path


@dataclass(frozen=True)
class TimeWindow:
    """Half-open interval ``[start, end)`` that a step count covers."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValueError("window end precedes start")

    @classmethod
    def today(cls, now: datetime | None = None, tz: tzinfo | None = None) -> TimeWindow:
        """Local midnight up to ``now``."""
        now = _localize(now, tz)
        return cls(start=_midnight(now), end=now)

    @classmethod
    def yesterday(
        cls, now: datetime | None = None, tz: tzinfo | None = None
    ) -> TimeWindow:
        """The whole previous local day."""
        now = _localize(now, tz)
        end = _midnight(now)
        return cls(start=_midnight(end - timedelta(days=1)), end=end)

    @classmethod
    def month_to_date(
        cls, now: datetime | None = None, tz: tzinfo | None = None
    ) -> TimeWindow:
        """First day of the month at midnight up to ``now``."""
        now = _localize(now, tz)
        return cls(start=_midnight(now).replace(day=1), end=now)

    def days(self) -> list[date]:
        """Calendar days touched by the window, in order."""
        if self.end == self.start:
            return []
        first = self.start.date()
        last = (self.end - timedelta(microseconds=1)).date()
        return [first + timedelta(days=i) for i in range((last - first).days + 1)]

    def millis(self) -> tuple[int, int]:
        """Window bounds as epoch milliseconds."""
        return (
            int(self.start.timestamp() * 1000),
            int(self.end.timestamp() * 1000),
        )


class StepSource(ABC):
    """Abstract provider of step counts."""

    name = "unknown"

    def validate(self) -> None:
        """Check that the source can be read.

        Raises:
            FileNotFoundError: If required files are missing.
        """

    @abstractmethod
    async def read_steps(self, window: TimeWindow) -> StepReading:
        """Return the total steps inside ``window``.

        Raises:
            DataUnavailable: If the provider cannot answer.
            Unauthorized: If the provider rejects the credentials.
        """


def _localize(now: datetime | None, tz: tzinfo | None) -> datetime:
    zone = tz or dateutil_tz.tzlocal()
    if now is None:
        return datetime.now(tz=zone)
    if now.tzinfo is None:
        return now.replace(tzinfo=zone)
    return now


def _midnight(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)
