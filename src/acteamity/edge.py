"""Cliente de las funciones edge de Supabase (borrado de cuenta y correo)."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from acteamity.config import Settings
from acteamity.errors import BadRequest, DataUnavailable, EdgeFunctionError, Unauthorized

logger = logging.getLogger("acteamity.edge")

DELETE_ACCOUNT = "delete-account"
SEND_CONFIRMATION_EMAIL = "send-confirmation-email"


class EdgeFunctions:
    """Bearer-authenticated JSON POSTs to ``/functions/v1/<name>``."""

    def __init__(self, client: httpx.AsyncClient, base_url: str, anon_key: str) -> None:
        """Create the client.

        Args:
            client: Shared async HTTP client, owned by the caller.
            base_url: Supabase project URL.
            anon_key: Project anon key, sent as the ``apikey`` header.
        """
        self._client = client
        self._base_url = base_url.rstrip("/")
        self._anon_key = anon_key

    @classmethod
    def from_settings(cls, client: httpx.AsyncClient, settings: Settings) -> EdgeFunctions:
        url, key = settings.require_supabase()
        return cls(client, url, key)

    async def delete_account(self, jwt: str) -> dict[str, Any]:
        """Delete the account that owns ``jwt`` together with its app data."""
        return await self._invoke(DELETE_ACCOUNT, jwt, {})

    async def send_confirmation_email(
        self, jwt: str, email: str, user_id: str
    ) -> dict[str, Any]:
        """Ask the backend to send a signup confirmation to ``email``."""
        if not email or not user_id:
            raise BadRequest("Missing email or user_id")
        return await self._invoke(
            SEND_CONFIRMATION_EMAIL, jwt, {"email": email, "user_id": user_id}
        )

    async def _invoke(
        self, name: str, jwt: str, body: dict[str, Any]
    ) -> dict[str, Any]:
        url = f"{self._base_url}/functions/v1/{name}"
        headers = {"Authorization": f"Bearer {jwt}", "apikey": self._anon_key}
        try:
            resp = await self._client.post(url, json=body, headers=headers)
        except httpx.HTTPError as exc:
            raise DataUnavailable(f"{name} request failed: {exc}") from exc

        payload = _json_or_empty(resp)
        message = str(payload.get("error") or f"{name} answered {resp.status_code}")

        if resp.status_code == 401:
            raise Unauthorized(message)
        if resp.status_code == 400:
            raise BadRequest(message)
        if not resp.is_success or not payload.get("success"):
            logger.error("%s failed (%d): %s", name, resp.status_code, message)
            raise EdgeFunctionError(message, status_code=resp.status_code)

        logger.info("%s succeeded", name)
        return payload


def _json_or_empty(resp: httpx.Response) -> dict[str, Any]:
    """Devuelve el cuerpo JSON como dict, o {} si no es JSON válido."""
    try:
        data = resp.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}
