# app/realtime/broker.py
"""
In-process change feed.

Services publish a ``ChangeEvent`` after every committed write; SSE
subscribers each own an ``asyncio.Queue`` bound to the event loop they
were created on. Publishing is thread-safe so synchronous route handlers
running in the threadpool can fan out to async subscribers.
"""
import asyncio
import logging
import threading
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator

from app.core.database import utcnow

logger = logging.getLogger(__name__)

INSERT = "INSERT"
UPDATE = "UPDATE"
DELETE = "DELETE"


@dataclass
class ChangeEvent:
    table: str
    event: str
    record: dict[str, Any]
    at: str = field(default_factory=lambda: utcnow().isoformat())

    def to_dict(self) -> dict[str, Any]:
        return {"table": self.table, "event": self.event, "record": self.record, "at": self.at}


def tickets_channel() -> str:
    return "tickets"


def comments_channel(ticket_id: int) -> str:
    return f"comments:{ticket_id}"


def presence_channel(ticket_id: int) -> str:
    return f"presence:{ticket_id}"


@dataclass
class _Subscriber:
    loop: asyncio.AbstractEventLoop
    queue: asyncio.Queue


class ChangeBroker:
    def __init__(self, max_queue: int = 256):
        self._max_queue = max_queue
        self._subscribers: dict[str, list[_Subscriber]] = {}
        self._lock = threading.Lock()

    def subscribe(self, channel: str) -> asyncio.Queue:
        """Must be called from inside a running event loop."""
        sub = _Subscriber(loop=asyncio.get_running_loop(), queue=asyncio.Queue(maxsize=self._max_queue))
        with self._lock:
            self._subscribers.setdefault(channel, []).append(sub)
        logger.debug("Subscribed to %s", channel)
        return sub.queue

    def unsubscribe(self, channel: str, queue: asyncio.Queue) -> None:
        with self._lock:
            subs = self._subscribers.get(channel, [])
            self._subscribers[channel] = [s for s in subs if s.queue is not queue]
            if not self._subscribers[channel]:
                del self._subscribers[channel]

    @asynccontextmanager
    async def subscription(self, channel: str) -> AsyncIterator[asyncio.Queue]:
        queue = self.subscribe(channel)
        try:
            yield queue
        finally:
            self.unsubscribe(channel, queue)

    def subscriber_count(self, channel: str) -> int:
        with self._lock:
            return len(self._subscribers.get(channel, []))

    def publish(self, channel: str, event: ChangeEvent) -> int:
        """Fan an event out to every subscriber of ``channel``. Returns how many were reached."""
        with self._lock:
            subs = list(self._subscribers.get(channel, []))

        delivered = 0
        for sub in subs:
            try:
                sub.loop.call_soon_threadsafe(_offer, sub.queue, event)
            except RuntimeError:
                # loop already closed; the stream is gone
                self.unsubscribe(channel, sub.queue)
                continue
            delivered += 1
        return delivered


def _offer(queue: asyncio.Queue, event: ChangeEvent) -> None:
    if queue.full():
        logger.warning("Dropping realtime event for slow subscriber", extra={"table": event.table})
        return
    queue.put_nowait(event)


broker = ChangeBroker()


def notify(channels: list[str], table: str, event: str, record: dict[str, Any]) -> None:
    change = ChangeEvent(table=table, event=event, record=record)
    for channel in channels:
        broker.publish(channel, change)
