# app/comment/presence.py
import asyncio
import logging
import threading
import time
from typing import Callable

from app.core.config import get_settings
from app.realtime.broker import UPDATE, notify, presence_channel

logger = logging.getLogger(__name__)

# (ticket_id, user_id, username, still_typing)
ExpiryCallback = Callable[[int, int, str, list[str]], None]


class PresenceRegistry:
    """
    Ephemeral per-ticket typing state. Entries expire ``ttl`` seconds after
    the last ``set_typing(..., True)`` so a client that vanishes mid-sentence
    stops showing as typing. ``on_expire`` is called once for every entry
    that times out, outside the lock.
    """

    def __init__(
        self,
        ttl: float,
        clock: Callable[[], float] = time.monotonic,
        on_expire: ExpiryCallback | None = None,
    ):
        self.ttl = ttl
        self._clock = clock
        self._on_expire = on_expire
        self._lock = threading.Lock()
        # ticket_id -> user_id -> (username, expires_at)
        self._state: dict[int, dict[int, tuple[str, float]]] = {}

    def set_typing(self, ticket_id: int, user_id: int, username: str, is_typing: bool = True) -> None:
        with self._lock:
            if is_typing:
                self._state.setdefault(ticket_id, {})[user_id] = (username, self._clock() + self.ttl)
            else:
                self._drop(ticket_id, user_id)

    def clear(self, ticket_id: int, user_id: int) -> None:
        with self._lock:
            self._drop(ticket_id, user_id)

    def sweep(self) -> int:
        """Drop expired entries and report each one. Returns how many expired."""
        now = self._clock()
        expired = []
        with self._lock:
            for ticket_id, entries in list(self._state.items()):
                for user_id, (username, expires) in list(entries.items()):
                    if expires <= now:
                        del entries[user_id]
                        expired.append((ticket_id, user_id, username))
                if not entries:
                    del self._state[ticket_id]
            remaining = {
                ticket_id: sorted(name for name, _ in self._state.get(ticket_id, {}).values())
                for ticket_id, _, _ in expired
            }

        if self._on_expire is not None:
            for ticket_id, user_id, username in expired:
                self._on_expire(ticket_id, user_id, username, remaining[ticket_id])
        return len(expired)

    def typing_users(self, ticket_id: int, exclude_user_id: int | None = None) -> list[str]:
        self.sweep()
        with self._lock:
            entries = self._state.get(ticket_id, {})
            return sorted(name for user_id, (name, _) in entries.items() if user_id != exclude_user_id)

    def reset(self) -> None:
        with self._lock:
            self._state.clear()

    def _drop(self, ticket_id: int, user_id: int) -> None:
        entries = self._state.get(ticket_id)
        if entries is None:
            return
        entries.pop(user_id, None)
        if not entries:
            del self._state[ticket_id]


def announce_expiry(ticket_id: int, user_id: int, username: str, still_typing: list[str]) -> None:
    notify(
        [presence_channel(ticket_id)],
        "presence",
        UPDATE,
        {"ticket_id": ticket_id, "user_id": user_id, "username": username, "is_typing": False, "typing": still_typing},
    )


async def sweep_forever(registry: PresenceRegistry, interval: float) -> None:
    """Expire stale typing state on a timer so subscribers hear about it without new activity."""
    while True:
        await asyncio.sleep(interval)
        try:
            registry.sweep()
        except Exception:
            logger.exception("Presence sweep failed")


presence = PresenceRegistry(ttl=get_settings().PRESENCE_TTL_SECONDS, on_expire=announce_expiry)
