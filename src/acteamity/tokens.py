"""Conversión de pasos (y distancias de ciclismo y natación) a tokens."""

from __future__ import annotations

import logging
import math

from acteamity.errors import InvalidDistance, InvalidStepCount
from acteamity.model import (
    DEFAULT_RULES,
    ActivityDistances,
    StepReading,
    TokenBalance,
    TokenRules,
)

logger = logging.getLogger("acteamity.tokens")


def convert_steps(total_steps: int, rules: TokenRules = DEFAULT_RULES) -> TokenBalance:
    """Split a step count into a step remainder and two token buckets.

    One whole token is earned per ``rules.steps_per_token`` steps. Whole
    tokens fill the exchangeable bucket first, then the non-exchangeable one;
    anything above both caps is dropped.

    Args:
        total_steps: Non-negative step count.
        rules: Conversion constants.

    Returns:
        The derived balance.

    Raises:
        TypeError: If ``total_steps`` is not an int.
        InvalidStepCount: If ``total_steps`` is negative.
    """
    _check_steps(total_steps)
    return _fill_buckets(
        total_steps % rules.steps_per_token,
        total_steps // rules.steps_per_token,
        rules,
    )


def convert_activity(
    total_steps: int,
    cycling_m: float = 0.0,
    swimming_m: float = 0.0,
    rules: TokenRules = DEFAULT_RULES,
) -> TokenBalance:
    """Convert steps plus cycling and swimming distances into a balance.

    Cycling earns one token per ``rules.cycling_m_per_token`` meters and
    swimming one per ``rules.swimming_m_per_token`` meters. Those tokens are
    added to the step tokens before the buckets are filled, so the caps apply
    to the combined total. The remainder only tracks steps.

    Args:
        total_steps: Non-negative step count.
        cycling_m: Non-negative cycling distance in meters.
        swimming_m: Non-negative swimming distance in meters.
        rules: Conversion constants.

    Raises:
        TypeError: If a value is not a number (``bool`` included).
        InvalidStepCount: If ``total_steps`` is negative.
        InvalidDistance: If a distance is negative or not finite.
    """
    _check_steps(total_steps)
    _check_distance("cycling_m", cycling_m)
    _check_distance("swimming_m", swimming_m)

    step_tokens = total_steps // rules.steps_per_token
    cycling_tokens = int(cycling_m // rules.cycling_m_per_token)
    swimming_tokens = int(swimming_m // rules.swimming_m_per_token)
    logger.debug(
        "Activity tokens: steps=%d cycling=%d swimming=%d",
        step_tokens,
        cycling_tokens,
        swimming_tokens,
    )
    return _fill_buckets(
        total_steps % rules.steps_per_token,
        step_tokens + cycling_tokens + swimming_tokens,
        rules,
    )


def convert_reading(
    reading: StepReading, rules: TokenRules = DEFAULT_RULES
) -> TokenBalance:
    """Convert an already-resolved reading."""
    return convert_steps(reading.steps, rules)


def convert_activity_reading(
    reading: StepReading,
    distances: ActivityDistances,
    rules: TokenRules = DEFAULT_RULES,
) -> TokenBalance:
    """Convert a step reading together with the distances of the same window."""
    return convert_activity(
        reading.steps, distances.cycling_m, distances.swimming_m, rules
    )


def _check_steps(total_steps: int) -> None:
    if isinstance(total_steps, bool) or not isinstance(total_steps, int):
        raise TypeError(f"total_steps must be int, got {type(total_steps).__name__}")
    if total_steps < 0:
        raise InvalidStepCount(f"total_steps must be >= 0, got {total_steps}")


def _check_distance(name: str, meters: float) -> None:
    if isinstance(meters, bool) or not isinstance(meters, (int, float)):
        raise TypeError(f"{name} must be a number, got {type(meters).__name__}")
    if not math.isfinite(meters) or meters < 0:
        raise InvalidDistance(f"{name} must be a finite value >= 0, got {meters}")


def _fill_buckets(
    steps_remainder: int, whole_tokens: int, rules: TokenRules
) -> TokenBalance:
    exchangeable = min(whole_tokens, rules.daily_exchange_limit)
    remaining = max(0, whole_tokens - exchangeable)
    non_exchangeable = min(remaining, rules.daily_non_exchange_limit)
    discarded = remaining - non_exchangeable

    if discarded:
        logger.debug(
            "Discarding %d whole tokens above combined cap (whole=%d)",
            discarded,
            whole_tokens,
        )

    return TokenBalance(
        steps_remainder=steps_remainder,
        exchangeable_tokens=exchangeable,
        non_exchangeable_tokens=non_exchangeable,
        discarded_tokens=discarded,
    )
