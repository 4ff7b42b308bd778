"""Dispatcher entry point."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal

from src.admin.server import AdminServer
from src.config import settings
from src.scheduler.engine import SchedulerEngine
from src.scheduler.service import ScheduleService
from src.scheduler.store import ScheduleStore
from src.transport.green_api import GreenApiClient
from src.transport.whatsapp import WhatsAppChannel

logger = logging.getLogger(__name__)

_STOP_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def _build_channel() -> WhatsAppChannel:
    client = GreenApiClient(
        settings.green_api_url,
        settings.green_api_instance_id,
        settings.green_api_token,
    )
    return WhatsAppChannel(client, poll_interval=settings.transport_state_poll_seconds)


async def _start_when_ready(channel: WhatsAppChannel, engine: SchedulerEngine) -> None:
    """Start the scheduler once WhatsApp reports the account as linked."""
    await channel.wait_until_ready()
    await engine.start()


async def run(stop_event: asyncio.Event | None = None) -> None:
    """Wire the service together and run until *stop_event* is set.

    Shutdown order: the state watcher and the pending scheduler start are
    cancelled first, so nothing can start the scheduler once it is stopping.
    Then the scheduler (waiting out an in-flight pass), the admin API and the
    HTTP session.
    """
    stop_event = stop_event or asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in _STOP_SIGNALS:
        with contextlib.suppress(NotImplementedError, RuntimeError):
            loop.add_signal_handler(sig, stop_event.set)

    if not settings.green_api_configured():
        logger.warning(
            "GREEN_API_INSTANCE_ID/GREEN_API_TOKEN not set; messages will not be sent"
        )

    channel = _build_channel()
    service = ScheduleService(ScheduleStore(), channel)
    await service.load()

    engine = SchedulerEngine(service)
    admin = AdminServer(service)
    await admin.start()

    logger.info("Initializing WhatsApp client...")
    background = [
        asyncio.create_task(channel.watch_state(), name="whatsapp-state"),
        asyncio.create_task(_start_when_ready(channel, engine), name="scheduler-start"),
    ]
    try:
        await stop_event.wait()
    finally:
        logger.info("Shutting down")
        for task in background:
            task.cancel()
        await asyncio.gather(*background, return_exceptions=True)
        await engine.stop()
        await admin.stop()
        await channel.close()
        for sig in _STOP_SIGNALS:
            with contextlib.suppress(NotImplementedError, RuntimeError):
                loop.remove_signal_handler(sig)


def main() -> None:
    """Run the dispatcher until interrupted."""
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=getattr(logging, settings.log_level.upper()),
    )
    asyncio.run(run())


if __name__ == "__main__":
    main()
