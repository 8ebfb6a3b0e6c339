"""Configuración por variables de entorno (con soporte de archivo .env)."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import tzinfo

from dateutil import tz
from dotenv import load_dotenv

from acteamity.errors import ConfigError
from acteamity.model import TokenRules

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


@dataclass(frozen=True)
class Settings:
    """Runtime settings for clients and token rules."""

    supabase_url: str | None = None
    supabase_anon_key: str | None = None
    step_report_url: str | None = None
    timezone: str | None = None
    daily_exchange_limit: int = 30
    token_ceiling: int = 60
    steps_per_token: int = 1000
    cycling_m_per_token: int = 10_000
    swimming_m_per_token: int = 1_000
    log_level: str = "INFO"

    def token_rules(self) -> TokenRules:
        """Build conversion rules from the configured limits."""
        try:
            return TokenRules(
                daily_exchange_limit=self.daily_exchange_limit,
                total_token_ceiling=self.token_ceiling,
                steps_per_token=self.steps_per_token,
                cycling_m_per_token=self.cycling_m_per_token,
                swimming_m_per_token=self.swimming_m_per_token,
            )
        except ValueError as exc:
            raise ConfigError(str(exc)) from exc

    def local_tz(self) -> tzinfo:
        """Resolve the configured zone, falling back to the system zone."""
        if not self.timezone:
            return tz.tzlocal()
        zone = tz.gettz(self.timezone)
        if zone is None:
            raise ConfigError(f"Unknown time zone: {self.timezone}")
        return zone

    def require_supabase(self) -> tuple[str, str]:
        """Return ``(url, anon_key)`` or fail if either is missing."""
        if not self.supabase_url or not self.supabase_anon_key:
            raise ConfigError(
                "Missing Supabase credentials. Set SUPABASE_URL and "
                "SUPABASE_ANON_KEY (or add them to a .env file)."
            )
        return self.supabase_url.rstrip("/"), self.supabase_anon_key


def load_settings(
    environ: Mapping[str, str] | None = None, *, use_dotenv: bool = True
) -> Settings:
    """Read settings from the environment.

    Args:
        environ: Mapping to read instead of ``os.environ``.
        use_dotenv: Load a ``.env`` file into ``os.environ`` first.

    Raises:
        ConfigError: If a numeric variable is not an integer.
    """
    if use_dotenv and environ is None:
        load_dotenv()
    env = os.environ if environ is None else environ

    return Settings(
        supabase_url=env.get("SUPABASE_URL") or None,
        supabase_anon_key=env.get("SUPABASE_ANON_KEY") or None,
        step_report_url=env.get("STEP_REPORT_URL") or None,
        timezone=env.get("ACTEAMITY_TZ") or None,
        daily_exchange_limit=_int_var(env, "DAILY_EXCHANGE_LIMIT", 30),
        token_ceiling=_int_var(env, "TOKEN_CEILING", 60),
        steps_per_token=_int_var(env, "STEPS_PER_TOKEN", 1000),
        cycling_m_per_token=_int_var(env, "CYCLING_M_PER_TOKEN", 10_000),
        swimming_m_per_token=_int_var(env, "SWIMMING_M_PER_TOKEN", 1_000),
        log_level=env.get("LOG_LEVEL", "INFO").upper(),
    )


def configure_logging(level: str | int = "INFO") -> None:
    """Install a root stream handler for command-line use."""
    logging.basicConfig(level=level, format=LOG_FORMAT)


def _int_var(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from exc
