"""Server-held Blackjack / Poker hands between request steps.

A HandStore owns every live hand of one game type. Actions on a hand go
through ``checkout`` which serializes them per handle; hands left idle past
the timeout stop resolving and are removed by ``reap``.
"""
import secrets
import threading
import time
from contextlib import contextmanager
from typing import Any, Callable, Dict, List, Optional

from casino.errors import HandNotFound


class _Entry:
    __slots__ = ('hand', 'lock', 'touched')

    def __init__(self, hand, now):
        self.hand = hand
        self.lock = threading.Lock()
        self.touched = now


class HandStore:
    def __init__(self, prefix: str, idle_timeout: float = 600, clock: Callable[[], float] = time.monotonic):
        self.prefix = prefix
        self.idle_timeout = idle_timeout
        self._clock = clock
        self._entries: Dict[str, _Entry] = {}
        self._lock = threading.Lock()

    def init_app(self, app) -> None:
        self.idle_timeout = int(app.config.get('HAND_IDLE_TIMEOUT_SEC', self.idle_timeout))
        app.extensions[f'hands.{self.prefix}'] = self

    def new_handle(self, owner) -> str:
        return f"{self.prefix}_{owner}_{secrets.token_hex(8)}"

    def add(self, hand) -> Any:
        """Register ``hand`` (must expose ``handle`` and ``owner``)."""
        with self._lock:
            if hand.handle in self._entries:
                raise ValueError(f"handle already in use: {hand.handle}")
            self._entries[hand.handle] = _Entry(hand, self._clock())
        return hand

    def discard(self, handle: str) -> None:
        with self._lock:
            self._entries.pop(handle, None)

    def _expired(self, entry: _Entry, now: float) -> bool:
        return now - entry.touched > self.idle_timeout

    def peek(self, handle: str, owner=None) -> Any:
        """Unserialized read; callers that mutate must use ``checkout``."""
        with self._lock:
            entry = self._entries.get(handle)
        if entry is None or self._expired(entry, self._clock()):
            raise HandNotFound()
        if owner is not None and entry.hand.owner != owner:
            raise HandNotFound()
        return entry.hand

    @contextmanager
    def checkout(self, handle: str, owner=None):
        """Hold the per-handle lock while the caller mutates the hand."""
        with self._lock:
            entry = self._entries.get(handle)
        if entry is None:
            raise HandNotFound()
        if owner is not None and entry.hand.owner != owner:
            raise HandNotFound()
        with entry.lock:
            with self._lock:
                current = self._entries.get(handle)
            # Removed or replaced while we waited for the lock
            if current is not entry or self._expired(entry, self._clock()):
                raise HandNotFound()
            yield entry.hand
            entry.touched = self._clock()

    def reap(self, now: Optional[float] = None) -> List[Any]:
        """Drop idle hands and return them; hands busy in an action are skipped."""
        now = self._clock() if now is None else now
        reaped = []
        with self._lock:
            for handle, entry in list(self._entries.items()):
                if not self._expired(entry, now):
                    continue
                if not entry.lock.acquire(blocking=False):
                    continue
                try:
                    del self._entries[handle]
                    reaped.append(entry.hand)
                finally:
                    entry.lock.release()
        return reaped

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, handle) -> bool:
        with self._lock:
            return handle in self._entries
