"""CLI para convertir pasos en tokens (manual o desde Google Fit Takeout)."""

from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Sequence
from datetime import date, datetime, time, timedelta, tzinfo
from pathlib import Path

from acteamity.config import configure_logging, load_settings
from acteamity.errors import ActeamityError
from acteamity.model import TokenBalance, TokenRules
from acteamity.sources.base import TimeWindow
from acteamity.sources.google_fit import GoogleFitPaths, TakeoutStepSource
from acteamity.tokens import convert_activity
from acteamity.worker import refresh_balance


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Returns:
        Parsed argparse namespace.
    """
    parser = argparse.ArgumentParser(
        prog="acteamity",
        description="Conversión de pasos a tokens canjeables y no canjeables.",
    )
    rules_parent = argparse.ArgumentParser(add_help=False)
    rules_parent.add_argument(
        "--exchange-limit", type=int, default=None, help="Límite diario de tokens canjeables."
    )
    rules_parent.add_argument(
        "--ceiling", type=int, default=None, help="Tope diario total de tokens."
    )
    rules_parent.add_argument(
        "--steps-per-token", type=int, default=None, help="Pasos por token."
    )
    sub = parser.add_subparsers(dest="command", required=True)

    convert = sub.add_parser(
        "convert", parents=[rules_parent], help="Convertir un total de pasos."
    )
    convert.add_argument("steps", type=int)
    convert.add_argument(
        "--cycling-m", type=float, default=0.0, help="Metros de ciclismo (default: 0)."
    )
    convert.add_argument(
        "--swimming-m", type=float, default=0.0, help="Metros de natación (default: 0)."
    )

    takeout = sub.add_parser(
        "takeout", parents=[rules_parent], help="Leer pasos de Google Fit Takeout."
    )
    takeout.add_argument(
        "--root",
        default=str(Path.home() / "Takeout" / "Fit"),
        help="Directorio Takeout/Fit (default: ~/Takeout/Fit).",
    )
    takeout.add_argument(
        "--date",
        type=date.fromisoformat,
        default=None,
        help="Día a leer, YYYY-MM-DD (default: hoy).",
    )
    takeout.add_argument(
        "--month",
        action="store_true",
        help="Sumar desde el primer día del mes hasta --date.",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    """Run the conversion CLI.

    Returns:
        Exit code (0 on success, 2 on invalid input or unavailable data).
    """
    ns = parse_args(argv)
    try:
        settings = load_settings()
        configure_logging(settings.log_level)
        base = settings.token_rules()
        rules = TokenRules(
            daily_exchange_limit=_pick(ns.exchange_limit, base.daily_exchange_limit),
            total_token_ceiling=_pick(ns.ceiling, base.total_token_ceiling),
            steps_per_token=_pick(ns.steps_per_token, base.steps_per_token),
            cycling_m_per_token=base.cycling_m_per_token,
            swimming_m_per_token=base.swimming_m_per_token,
        )

        if ns.command == "convert":
            balance = convert_activity(ns.steps, ns.cycling_m, ns.swimming_m, rules)
        else:
            source = TakeoutStepSource(GoogleFitPaths(root=Path(ns.root).expanduser()))
            source.validate()
            window = _takeout_window(ns.date or date.today(), ns.month, settings.local_tz())
            balance = asyncio.run(refresh_balance(source, window, rules))
    except (ActeamityError, ValueError, FileNotFoundError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 2

    print(_format_balance(balance, rules))
    return 0


def _pick(value: int | None, default: int) -> int:
    return default if value is None else value


def _takeout_window(day: date, month: bool, zone: tzinfo) -> TimeWindow:
    """Ventana de días completos: [inicio, día + 1) en la zona local."""
    first = day.replace(day=1) if month else day
    start = datetime.combine(first, time.min, tzinfo=zone)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=zone)
    return TimeWindow(start=start, end=end)


def _format_balance(balance: TokenBalance, rules: TokenRules) -> str:
    lines = [
        f"Pasos: {balance.steps_remainder}/{rules.steps_per_token}",
        f"Tokens canjeables: {balance.exchangeable_tokens}/{rules.daily_exchange_limit}",
        "Tokens no canjeables: "
        f"{balance.non_exchangeable_tokens}/{rules.daily_non_exchange_limit}",
    ]
    if balance.discarded_tokens:
        lines.append(f"Tokens descartados: {balance.discarded_tokens}")
    return "\n".join(lines)
