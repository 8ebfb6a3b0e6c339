"""Excepciones del dominio de pasos y tokens."""

from __future__ import annotations


class ActeamityError(Exception):
    """Base class for all errors raised by this package."""


class InvalidStepCount(ActeamityError, ValueError):
    """A step count violates the non-negative integer precondition."""


class ConfigError(ActeamityError):
    """Configuration is missing or malformed."""


class DataUnavailable(ActeamityError):
    """The fitness data provider could not supply a step count."""


class Unauthorized(ActeamityError):
    """Credentials were rejected by a remote service."""


class BadRequest(ActeamityError):
    """A request was rejected as malformed."""


class InvalidDistance(ActeamityError, ValueError):
    """An activity distance is negative or not a finite number."""


class EdgeFunctionError(ActeamityError):
    """An edge function answered with an unexpected status."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        """Create the error.

        Args:
            message: Error text, usually the server's ``error`` field.
            status_code: HTTP status returned by the function, if any.
        """
        super().__init__(message)
        self.status_code = status_code


class AccountError(ActeamityError):
    """The account registry refused or could not complete an operation."""
