"""Registro de usuarios sobre la tabla users_registry de Supabase."""

from __future__ import annotations

import logging
import random
from datetime import date
from typing import Any

from supabase import Client, create_client

from acteamity.config import Settings
from acteamity.errors import AccountError
from acteamity.model import NewUser, UserExistsResponse, UserRecord

logger = logging.getLogger("acteamity.accounts")

USERS_TABLE = "users_registry"

_INT8_MAX = 2**63 - 1


class UserRegistry:
    """Repository for ``users_registry`` rows."""

    def __init__(self, client: Client, table: str = USERS_TABLE) -> None:
        """Create the registry.

        Args:
            client: Supabase client, constructed by the caller.
            table: Registry table name.
        """
        self._client = client
        self._table = table

    def _rows(self, **filters: Any) -> list[dict[str, Any]]:
        query = self._client.table(self._table).select("*")
        for column, value in filters.items():
            query = query.eq(column, value)
        return list(query.execute().data or [])

    def check_user_exists(
        self, email: str, connection_code: int
    ) -> UserExistsResponse:
        """Report whether a user with ``email`` is already registered.

        A failed lookup is reported as "does not exist" so that registration
        can proceed; the failure is logged.
        """
        logger.debug("Checking user %s (connection_code=%s)", email, connection_code)
        try:
            rows = self._rows(email=email)
        except Exception as exc:  # noqa: BLE001
            logger.warning("User existence check failed for %s: %s", email, exc)
            return UserExistsResponse(exists=False)

        if not rows:
            return UserExistsResponse(exists=False)
        return UserExistsResponse(exists=True, user=UserRecord.from_row(rows[0]))

    def get_user_by_email_and_code(
        self, email: str, connection_code: int
    ) -> UserRecord | None:
        """Return the user matching both fields, or None."""
        rows = self._rows(email=email, connection_code=connection_code)
        return UserRecord.from_row(rows[0]) if rows else None

    def get_all_users(self) -> list[UserRecord]:
        """Return every registry row."""
        return [UserRecord.from_row(row) for row in self._rows()]

    def register_user(
        self,
        email: str,
        connection_code: int,
        auth_user_id: str,
        *,
        today: date | None = None,
    ) -> UserRecord:
        """Link ``auth_user_id`` to a registry row, inserting it if needed.

        A row that is already linked to an auth user is returned as is.

        Raises:
            AccountError: If the row cannot be read back after writing.
        """
        existing = self._rows(email=email)
        if existing:
            current = UserRecord.from_row(existing[0])
            if current.uid:
                logger.info("User %s already linked to an auth user", email)
                return current
            logger.info("Linking existing registry row %s to auth user", email)
            self._client.table(self._table).update({"uid": auth_user_id}).eq(
                "email", email
            ).execute()
        else:
            new_user = NewUser(
                email=email,
                connection_code=connection_code,
                registration_date=(today or date.today()).isoformat(),
                uid_legacy=legacy_uid(auth_user_id),
            )
            logger.info("Inserting registry row for %s", email)
            self._client.table(self._table).insert(new_user.to_row()).execute()

        stored = self._rows(email=email)
        if not stored:
            raise AccountError(f"User {email} was written but could not be read back")
        return UserRecord.from_row(stored[0])


def create_registry(settings: Settings) -> UserRegistry:
    """Build a registry with a fresh Supabase client."""
    url, key = settings.require_supabase()
    return UserRegistry(create_client(url, key))


def generate_connection_code(rng: random.Random | None = None) -> int:
    """Return a random 8-digit connection code."""
    rng = rng or random.Random()
    return rng.randint(10_000_000, 99_999_999)


def legacy_uid(auth_uid: str) -> int:
    """Derive a stable non-negative int8 from an auth UUID."""
    clean = auth_uid.replace("-", "")
    h32 = 0
    h64 = 0
    for ch in clean:
        h32 = (h32 * 31 + ord(ch)) & 0xFFFFFFFF
        h64 = (h64 * 31 + ord(ch)) & 0xFFFFFFFFFFFFFFFF
    combined = _signed(h32, 32) ^ _signed(h64, 64)
    return abs(combined) % _INT8_MAX


def _signed(value: int, bits: int) -> int:
    if value >= 1 << (bits - 1):
        return value - (1 << bits)
    return value
