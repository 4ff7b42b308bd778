"""Green API (WhatsApp gateway) client using aiohttp."""

from __future__ import annotations

import logging
from typing import Any

import aiohttp

logger = logging.getLogger(__name__)

AUTHORIZED_STATE = "authorized"

_REQUEST_TIMEOUT_SECONDS = 20


class GreenApiClient:
    """Thin async wrapper over the Green API instance endpoints.

    Args:
        api_url: Base URL, e.g. ``https://api.green-api.com``.
        instance_id: The ``idInstance`` of the linked WhatsApp account.
        token: The per-instance ``apiTokenInstance``.
    """

    def __init__(self, api_url: str, instance_id: str, token: str) -> None:
        self._api_url = api_url.rstrip("/")
        self._instance_id = instance_id
        self._token = token
        self._session: aiohttp.ClientSession | None = None

    def _url(self, method: str) -> str:
        return f"{self._api_url}/waInstance{self._instance_id}/{method}/{self._token}"

    def _get_session(self) -> aiohttp.ClientSession:
        """Return (and lazily create) the shared aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=_REQUEST_TIMEOUT_SECONDS),
            )
        return self._session

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def send_message(self, chat_id: str, message: str) -> bool:
        """Send a text message. Returns True when Green API accepted it."""
        payload = {"chatId": chat_id, "message": message}
        session = self._get_session()
        try:
            async with session.post(self._url("sendMessage"), json=payload) as resp:
                if resp.status != 200:
                    text = await resp.text()
                    logger.error(
                        "WhatsApp send failed: to=%s status=%d body=%s",
                        chat_id,
                        resp.status,
                        text[:200],
                    )
                    return False
                data: dict[str, Any] = await resp.json(content_type=None) or {}
        except (aiohttp.ClientError, TimeoutError, ValueError):
            logger.exception("WhatsApp send failed (network error): to=%s", chat_id)
            return False

        message_id = data.get("idMessage")
        if not message_id:
            logger.error("WhatsApp send to %s returned no idMessage: %s", chat_id, data)
            return False
        logger.info("WhatsApp message %s sent to %s (%d chars)", message_id, chat_id, len(message))
        return True

    async def get_state(self) -> str | None:
        """Return the instance state (``"authorized"``, ``"notAuthorized"``, ...)."""
        session = self._get_session()
        try:
            async with session.get(self._url("getStateInstance")) as resp:
                if resp.status != 200:
                    logger.warning("getStateInstance returned status=%d", resp.status)
                    return None
                data: dict[str, Any] = await resp.json(content_type=None) or {}
        except (aiohttp.ClientError, TimeoutError, ValueError):
            logger.warning("getStateInstance failed (network error)", exc_info=True)
            return None
        return data.get("stateInstance")
