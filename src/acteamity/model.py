"""Modelos tipados para lecturas de pasos, saldos de tokens y usuarios."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any


@dataclass(frozen=True)
class StepReading:
    """Steps accumulated over the half-open window ``[start, end)``."""

    steps: int
    start: datetime
    end: datetime
    source: str = "unknown"


@dataclass(frozen=True)
class ActivityDistances:
    """Cycling and swimming meters covered over ``[start, end)``."""

    cycling_m: float
    swimming_m: float
    start: datetime
    end: datetime
    source: str = "unknown"


@dataclass(frozen=True)
class TokenRules:
    """Conversion constants for the step token economy."""

    daily_exchange_limit: int = 30
    total_token_ceiling: int = 60
    steps_per_token: int = 1000
    cycling_m_per_token: int = 10_000
    swimming_m_per_token: int = 1_000

    def __post_init__(self) -> None:
        if self.steps_per_token <= 0:
            raise ValueError("steps_per_token must be positive")
        if self.cycling_m_per_token <= 0 or self.swimming_m_per_token <= 0:
            raise ValueError("activity meters per token must be positive")
        if self.daily_exchange_limit < 0:
            raise ValueError("daily_exchange_limit must be >= 0")

    @property
    def daily_non_exchange_limit(self) -> int:
        """Cap for non-exchangeable tokens (ceiling minus exchange limit)."""
        return max(0, self.total_token_ceiling - self.daily_exchange_limit)


DEFAULT_RULES = TokenRules()


@dataclass(frozen=True)
class TokenBalance:
    """Displayable balance derived from one step count.

    ``discarded_tokens`` counts whole tokens above the combined cap; they are
    reported for logging only and never carried forward.
    """

    steps_remainder: int
    exchangeable_tokens: int
    non_exchangeable_tokens: int
    discarded_tokens: int = 0

    def as_tuple(self) -> tuple[int, int, int]:
        """Return ``(steps_remainder, exchangeable, non_exchangeable)``."""
        return (
            self.steps_remainder,
            self.exchangeable_tokens,
            self.non_exchangeable_tokens,
        )


@dataclass(frozen=True)
class UserRecord:
    """One row of the ``users_registry`` table."""

    email: str
    connection_code: int
    registration_date: str
    uid: str | None = None
    uid_legacy: int | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> UserRecord:
        """Build a record from a PostgREST row dict."""
        legacy = row.get("UID_legacy")
        return cls(
            email=str(row["email"]),
            connection_code=int(row["connection_code"]),
            registration_date=str(row.get("registration_date") or ""),
            uid=row.get("uid"),
            uid_legacy=int(legacy) if legacy is not None else None,
        )


@dataclass(frozen=True)
class NewUser:
    """Insert payload for ``users_registry`` (``uid`` is set server-side)."""

    email: str
    connection_code: int
    registration_date: str
    uid_legacy: int | None = None

    def to_row(self) -> dict[str, Any]:
        """Return the column mapping used by the table."""
        return {
            "UID_legacy": self.uid_legacy,
            "email": self.email,
            "connection_code": self.connection_code,
            "registration_date": self.registration_date,
        }


@dataclass(frozen=True)
class AuthUser:
    """Identity of the signed-in Supabase Auth user."""

    id: str
    email: str | None = None


@dataclass(frozen=True)
class UserExistsResponse:
    """Result of a duplicate check before registration."""

    exists: bool
    user: UserRecord | None = None


@dataclass(frozen=True)
class StepReport:
    """Daily step total posted to the step report API."""

    email: str
    steps_per_day: int
    date: date

    def to_json(self) -> dict[str, object]:
        """Return the JSON body expected by ``/api/record_steps``."""
        return {
            "email": self.email,
            "steps_per_day": self.steps_per_day,
            "date": self.date.isoformat(),
        }
