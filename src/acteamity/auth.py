"""Sesión de Supabase Auth y registro transaccional de usuarios."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any

from supabase import AuthError, Client, create_client

from acteamity.accounts import UserRegistry
from acteamity.config import Settings
from acteamity.edge import EdgeFunctions
from acteamity.errors import AccountError, ActeamityError, Unauthorized
from acteamity.model import AuthUser, UserRecord

logger = logging.getLogger("acteamity.auth")


class AuthSession:
    """Email/password session over the ``auth`` namespace of a Supabase client."""

    def __init__(self, client: Client) -> None:
        """Create the session wrapper.

        Args:
            client: Supabase client, constructed by the caller. Its session
                state is the one this wrapper reads and changes.
        """
        self._auth = client.auth

    def register(self, email: str, password: str) -> AuthUser | None:
        """Sign up a new auth user.

        Returns:
            The signed-in user, or None when the project requires the email
            to be confirmed before a session is issued.

        Raises:
            AccountError: If Supabase Auth rejects the sign-up.
        """
        logger.info("Registering auth user %s", email)
        try:
            resp = self._auth.sign_up({"email": email, "password": password})
        except AuthError as exc:
            raise AccountError(f"Registration failed: {exc}") from exc

        if resp.user is None or resp.session is None:
            logger.info("Registration for %s needs email confirmation", email)
            return None
        return _auth_user(resp.user)

    def sign_in(self, email: str, password: str) -> AuthUser:
        """Sign in with email and password.

        Raises:
            Unauthorized: If the credentials are rejected.
        """
        try:
            resp = self._auth.sign_in_with_password({"email": email, "password": password})
        except AuthError as exc:
            raise Unauthorized(f"Sign in failed: {exc}") from exc
        if resp.user is None:
            raise Unauthorized("Sign in failed: no user returned")
        logger.info("Signed in %s", email)
        return _auth_user(resp.user)

    def sign_out(self) -> None:
        """End the current session."""
        try:
            self._auth.sign_out()
        except AuthError as exc:
            raise AccountError(f"Sign out failed: {exc}") from exc
        logger.info("Signed out")

    def refresh(self) -> AuthUser:
        """Refresh the current session.

        Raises:
            Unauthorized: If there is no session or it can no longer be
                refreshed.
        """
        if self.current_user() is None:
            raise Unauthorized("No active session to refresh")
        try:
            resp = self._auth.refresh_session()
        except AuthError as exc:
            raise Unauthorized(f"Session expired: {exc}") from exc
        if resp.user is None:
            raise Unauthorized("Session refresh failed")
        logger.debug("Session refreshed")
        return _auth_user(resp.user)

    def reset_password(self, email: str) -> None:
        """Send a password reset email to ``email``."""
        try:
            self._auth.reset_password_email(email)
        except AuthError as exc:
            raise AccountError(f"Password reset failed: {exc}") from exc
        logger.info("Password reset email sent to %s", email)

    def current_user(self) -> AuthUser | None:
        """Return the signed-in user, or None.

        A token the server no longer accepts is reported as no user.
        """
        try:
            resp = self._auth.get_user()
        except AuthError as exc:
            logger.warning("Could not load current user: %s", exc)
            return None
        if resp is None or resp.user is None:
            return None
        return _auth_user(resp.user)

    def current_user_id(self) -> str | None:
        user = self.current_user()
        return user.id if user else None

    def current_user_email(self) -> str | None:
        user = self.current_user()
        return user.email if user else None

    def is_logged_in(self) -> bool:
        return self.current_user() is not None

    def access_token(self) -> str | None:
        """Return the JWT of the current session, if any."""
        session = self._auth.get_session()
        return session.access_token if session else None

    async def delete_current_user(self, edge: EdgeFunctions) -> bool:
        """Delete the signed-in account through the ``delete-account`` function.

        The local session is cleared even when the deletion fails.

        Returns:
            False when there is no session to delete, True otherwise.
        """
        token = self.access_token()
        if token is None:
            logger.info("No current user to delete")
            return False
        try:
            await edge.delete_account(token)
        finally:
            self._auth.sign_out()
        logger.info("Account deletion requested")
        return True


def create_auth_session(settings: Settings) -> AuthSession:
    """Build an auth session with a fresh Supabase client."""
    url, key = settings.require_supabase()
    return AuthSession(create_client(url, key))


async def register_transactionally(
    auth: AuthSession,
    registry: UserRegistry,
    edge: EdgeFunctions,
    email: str,
    password: str,
    connection_code: int,
    *,
    today: date | None = None,
) -> UserRecord:
    """Create the auth user and its registry row, or neither.

    A registry row that is already linked to an auth user is returned without
    signing up again. When the registry write fails after the auth user was
    created, the auth user is deleted and the original error is re-raised.

    Raises:
        AccountError: If sign-up fails or yields no session.
    """
    existing = registry.check_user_exists(email, connection_code)
    if existing.user is not None and existing.user.uid:
        logger.info("User %s already linked to an auth user", email)
        return existing.user

    user = auth.register(email, password)
    if user is None:
        raise AccountError("Authentication registration failed")

    try:
        return registry.register_user(email, connection_code, user.id, today=today)
    except Exception:
        logger.error("Registry write failed for %s, removing auth user %s", email, user.id)
        await _remove_auth_user(auth, edge, user.id)
        raise


async def _remove_auth_user(auth: AuthSession, edge: EdgeFunctions, user_id: str) -> None:
    try:
        await auth.delete_current_user(edge)
    except ActeamityError as exc:
        logger.error("Failed to clean up auth user %s: %s", user_id, exc)
    else:
        logger.info("Auth user %s cleaned up", user_id)


def _auth_user(user: Any) -> AuthUser:
    return AuthUser(id=str(user.id), email=user.email)
