"""Admin HTTP API for creating, listing and deleting scheduled messages.

Runs in the same asyncio event loop as the scheduler.  Uses aiohttp's
AppRunner/TCPSite for non-blocking start/stop.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from aiohttp import web

from src.config import settings
from src.scheduler.errors import InvalidInputError, ScheduleNotFoundError, StoreError

if TYPE_CHECKING:
    from src.scheduler.service import ScheduleService

logger = logging.getLogger(__name__)

SERVICE_KEY: web.AppKey[ScheduleService] = web.AppKey("service")

_PUBLIC_PATHS = frozenset({"/health"})


@web.middleware
async def _require_token(request: web.Request, handler) -> web.StreamResponse:
    """Reject requests without the admin token, when one is configured."""
    if settings.admin_token and request.path not in _PUBLIC_PATHS:
        token = request.headers.get("X-Admin-Token", "")
        if token != settings.admin_token:
            logger.warning("Admin request rejected: invalid token (%s %s)", request.method, request.path)
            return web.json_response({"error": "unauthorized"}, status=401)
    return await handler(request)


async def _read_payload(request: web.Request) -> dict[str, Any]:
    """Accept a JSON body or a urlencoded/multipart form."""
    if request.content_type == "application/json":
        data = await request.json()
        if not isinstance(data, dict):
            msg = "Request body must be a JSON object"
            raise InvalidInputError(msg)
        return data
    form = await request.post()
    return {k: v for k, v in form.items() if isinstance(v, str)}


async def _health(request: web.Request) -> web.Response:
    """GET /health — basic liveness check."""
    return web.json_response({"status": "ok"})


async def _list_schedules(request: web.Request) -> web.Response:
    """GET /schedules — every record, sent ones included."""
    records = await request.app[SERVICE_KEY].list_records()
    return web.json_response([r.to_dict() for r in records])


async def _create_schedule(request: web.Request) -> web.Response:
    """POST /schedule — register a new delayed message."""
    try:
        payload = await _read_payload(request)
        record = await request.app[SERVICE_KEY].create(payload)
    except json.JSONDecodeError:
        logger.warning("Admin bad request: invalid JSON")
        return web.json_response({"error": "invalid JSON"}, status=400)
    except InvalidInputError as exc:
        return web.json_response({"error": str(exc)}, status=400)
    except StoreError:
        logger.exception("Failed to save new schedule")
        return web.json_response({"error": "Failed to save schedule"}, status=500)
    return web.json_response({"success": True, "schedule": record.to_dict()})


async def _delete_schedule(request: web.Request) -> web.Response:
    """DELETE /schedule/{id}."""
    record_id = request.match_info["id"]
    try:
        await request.app[SERVICE_KEY].delete(record_id)
    except ScheduleNotFoundError:
        return web.json_response({"error": "Schedule not found"}, status=404)
    except StoreError:
        logger.exception("Failed to save after deleting %s", record_id)
        return web.json_response({"error": "Failed to save schedule"}, status=500)
    return web.json_response({"success": True})


async def _status(request: web.Request) -> web.Response:
    """GET /status — transport readiness and record counts."""
    return web.json_response(await request.app[SERVICE_KEY].status())


def _create_web_app(service: ScheduleService) -> web.Application:
    """Build the aiohttp Application with routes."""
    app = web.Application(middlewares=[_require_token])
    app[SERVICE_KEY] = service
    app.router.add_get("/health", _health)
    app.router.add_get("/schedules", _list_schedules)
    app.router.add_post("/schedule", _create_schedule)
    app.router.add_delete("/schedule/{id}", _delete_schedule)
    app.router.add_get("/status", _status)
    return app


class AdminServer:
    """Manages the aiohttp server lifecycle."""

    def __init__(
        self,
        service: ScheduleService,
        host: str | None = None,
        port: int | None = None,
    ) -> None:
        self._service = service
        self.host = host or settings.admin_host
        self.port = port if port is not None else settings.admin_port
        self._runner: web.AppRunner | None = None

    async def start(self) -> None:
        """Start listening for admin requests."""
        if not settings.admin_token:
            logger.warning("ADMIN_TOKEN empty; admin API is unauthenticated")

        app = _create_web_app(self._service)
        self._runner = web.AppRunner(app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.host, self.port)
        await site.start()
        logger.info("Admin panel running at http://%s:%d", self.host, self.port)

    async def stop(self) -> None:
        """Shut down the server gracefully."""
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
            logger.info("Admin server stopped")
