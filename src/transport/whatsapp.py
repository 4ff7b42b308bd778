"""WhatsApp implementation of the MessageTransport protocol."""

from __future__ import annotations

import asyncio
import logging

from src.transport.green_api import AUTHORIZED_STATE, GreenApiClient

logger = logging.getLogger(__name__)


class WhatsAppChannel:
    """Sends messages through a linked WhatsApp account (Green API).

    Readiness follows the instance state: the channel is ready only while
    Green API reports the account as ``authorized``.  ``watch_state()`` keeps
    that flag current and must run as a background task.
    """

    def __init__(self, client: GreenApiClient, poll_interval: float = 15) -> None:
        self._client = client
        self._poll_interval = poll_interval
        self._ready = False
        self._ready_event = asyncio.Event()
        self._last_state: str | None = None

    @property
    def name(self) -> str:
        return "whatsapp"

    @property
    def ready(self) -> bool:
        return self._ready

    async def send(self, address: str, body: str) -> bool:
        """Send a plain text message to a ``<number>@c.us`` chat ID."""
        return await self._client.send_message(address, body)

    async def refresh_state(self) -> bool:
        """Poll the instance state once and update ``ready``."""
        state = await self._client.get_state()
        if state != self._last_state:
            if state == AUTHORIZED_STATE:
                logger.info("WhatsApp client is ready (state=%s)", state)
            else:
                logger.warning(
                    "WhatsApp not connected (state=%s); link the device by scanning"
                    " the QR code in the Green API console",
                    state,
                )
            self._last_state = state

        self._ready = state == AUTHORIZED_STATE
        if self._ready:
            self._ready_event.set()
        return self._ready

    async def watch_state(self) -> None:
        """Poll the instance state forever. Cancel the task to stop."""
        while True:
            await self.refresh_state()
            await asyncio.sleep(self._poll_interval)

    async def wait_until_ready(self) -> None:
        """Block until the account has been authorized at least once."""
        await self._ready_event.wait()

    async def close(self) -> None:
        await self._client.close()
