# app/realtime/routes.py
import asyncio
import json
import logging
import re
from typing import AsyncIterator, Awaitable, Callable

from fastapi import APIRouter, Depends, Request
from sse_starlette.sse import EventSourceResponse

from app.core.config import Settings, get_settings
from app.core.exceptions import NotFoundError
from app.realtime.broker import broker

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/realtime", tags=["Realtime"])

CHANNEL_PATTERN = re.compile(r"^(tickets|comments:\d+|presence:\d+)$")


async def change_events(
    channel: str,
    is_disconnected: Callable[[], Awaitable[bool]],
    poll_seconds: float = 1.0,
) -> AsyncIterator[dict]:
    """Yield SSE messages for ``channel`` until the client goes away."""
    async with broker.subscription(channel) as queue:
        while True:
            if await is_disconnected():
                logger.info("Realtime client disconnected", extra={"channel": channel})
                break
            try:
                change = await asyncio.wait_for(queue.get(), timeout=poll_seconds)
            except asyncio.TimeoutError:
                continue
            yield {"event": change.table, "data": json.dumps(change.to_dict(), default=str)}


@router.get("/{channel}")
async def stream(channel: str, request: Request, settings: Settings = Depends(get_settings)):
    """Stream change events for ``tickets``, ``comments:<ticket_id>`` or ``presence:<ticket_id>``."""
    if not CHANNEL_PATTERN.match(channel):
        raise NotFoundError("Unknown channel")

    logger.info("Starting realtime stream", extra={"channel": channel})
    return EventSourceResponse(
        change_events(channel, request.is_disconnected),
        ping=settings.REALTIME_KEEPALIVE_SECONDS,
    )
