"""
Connection registry: bounded, expiring map of session id to live adapter
"""

import logging
import threading
import time
import uuid
from collections import OrderedDict
from typing import Any, Callable, Dict, List, Optional, Tuple

from .adapters import DatabaseAdapter

logger = logging.getLogger(__name__)

DEFAULT_MAX_SIZE = 100
DEFAULT_TTL_SECONDS = 5 * 60

DisposeCallback = Callable[[str, DatabaseAdapter], None]


def new_session_id() -> str:
    """Fresh 128-bit random session id"""
    return str(uuid.uuid4())


def disconnect_adapter(session_id: str, adapter: DatabaseAdapter) -> None:
    """Default disposal hook"""
    adapter.disconnect()


class ConnectionRegistry:
    """
    Least-recently-used cache of connected adapters with a fixed time-to-live.

    Entries expire `ttl` seconds after they were stored; reading an entry
    refreshes its LRU position but never extends its lifetime. Every removal
    (capacity eviction, expiry, replacement, `delete()`, `clear()`) runs the
    disposal hook once for the removed adapter. Hooks run
    outside the registry lock and their errors are logged, never raised.
    """

    def __init__(self, max_size: int = DEFAULT_MAX_SIZE, ttl: float = DEFAULT_TTL_SECONDS,
                 dispose: Optional[DisposeCallback] = disconnect_adapter,
                 clock: Callable[[], float] = time.monotonic):
        if max_size < 1:
            raise ValueError("max_size must be positive")
        if ttl <= 0:
            raise ValueError("ttl must be positive")

        self.max_size = max_size
        self.ttl = ttl
        self._dispose = dispose
        self._clock = clock
        self._entries: "OrderedDict[str, Tuple[DatabaseAdapter, float]]" = OrderedDict()
        self._lock = threading.Lock()

    def put(self, session_id: str, adapter: DatabaseAdapter) -> None:
        """Store an adapter, evicting the least recently used entry when full"""
        removed: List[Tuple[str, DatabaseAdapter, str]] = []
        with self._lock:
            now = self._clock()
            removed.extend(self._collect_expired(now))

            previous = self._entries.pop(session_id, None)
            if previous is not None and previous[0] is not adapter:
                removed.append((session_id, previous[0], 'replaced'))

            while len(self._entries) >= self.max_size:
                evicted_id, (evicted, _) = self._entries.popitem(last=False)
                removed.append((evicted_id, evicted, 'evicted'))

            self._entries[session_id] = (adapter, now + self.ttl)

        self._run_disposals(removed)

    def get(self, session_id: str) -> Optional[DatabaseAdapter]:
        """Return the live adapter, or None when unknown or expired"""
        removed: List[Tuple[str, DatabaseAdapter, str]] = []
        adapter = None
        with self._lock:
            entry = self._entries.get(session_id)
            if entry is not None:
                if entry[1] <= self._clock():
                    del self._entries[session_id]
                    removed.append((session_id, entry[0], 'expired'))
                else:
                    self._entries.move_to_end(session_id)
                    adapter = entry[0]

        self._run_disposals(removed)
        return adapter

    def delete(self, session_id: str) -> bool:
        """Remove an entry and dispose it"""
        with self._lock:
            entry = self._entries.pop(session_id, None)
        if entry is None:
            return False
        self._run_disposals([(session_id, entry[0], 'deleted')])
        return True

    def purge_expired(self) -> int:
        with self._lock:
            removed = self._collect_expired(self._clock())
        self._run_disposals(removed)
        return len(removed)

    def clear(self) -> int:
        with self._lock:
            removed = [(sid, adapter, 'cleared') for sid, (adapter, _) in self._entries.items()]
            self._entries.clear()
        self._run_disposals(removed)
        return len(removed)

    def keys(self) -> List[str]:
        with self._lock:
            now = self._clock()
            return [sid for sid, (_, expires_at) in self._entries.items() if expires_at > now]

    def info(self) -> Dict[str, Any]:
        return {
            'active_connections': len(self),
            'max_connections': self.max_size,
            'ttl_seconds': self.ttl,
        }

    def __len__(self) -> int:
        return len(self.keys())

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            entry = self._entries.get(session_id)
            return entry is not None and entry[1] > self._clock()

    def _collect_expired(self, now: float) -> List[Tuple[str, DatabaseAdapter, str]]:
        # caller holds the lock
        expired = [sid for sid, (_, expires_at) in self._entries.items() if expires_at <= now]
        removed = []
        for sid in expired:
            adapter, _ = self._entries.pop(sid)
            removed.append((sid, adapter, 'expired'))
        return removed

    def _run_disposals(self, removed: List[Tuple[str, DatabaseAdapter, str]]) -> None:
        for session_id, adapter, reason in removed:
            logger.debug(f"Connection {session_id} removed from registry ({reason})")
            if self._dispose is None:
                continue
            try:
                self._dispose(session_id, adapter)
            except Exception as e:
                logger.warning(f"Error disposing connection {session_id}: {e}")
