"""In-memory session history store.

Each session keeps its own lock and append-only list of events. The registry
lock is only held to look up, create or evict a session entry, so sessions
never wait on one another while appending or reading.
"""

from __future__ import annotations

import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict, List, Optional, Tuple

from fraud_proxy.events import Event


@dataclass(frozen=True)
class RetentionPolicy:
    """Bounds on how much history the store keeps.

    ``max_events_per_session`` drops the oldest events of a session once
    exceeded. ``idle_ttl_seconds`` lets ``evict_idle`` remove whole sessions
    that have not seen an append for that long. Both default to unbounded.
    """

    max_events_per_session: Optional[int] = None
    idle_ttl_seconds: Optional[float] = None


UNBOUNDED = RetentionPolicy()


class _SessionHistory:
    __slots__ = ("lock", "events", "last_append", "evicted")

    def __init__(self, max_events: Optional[int], now: float) -> None:
        self.lock = threading.Lock()
        self.events: Deque[Event] = deque(maxlen=max_events)
        self.last_append = now
        self.evicted = False


class SessionHistoryStore:
    def __init__(
        self,
        policy: RetentionPolicy = UNBOUNDED,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.policy = policy
        self._clock = clock
        self._registry_lock = threading.Lock()
        self._sessions: Dict[str, _SessionHistory] = {}

    def _history_for(self, session_id: str) -> _SessionHistory:
        with self._registry_lock:
            history = self._sessions.get(session_id)
            if history is None:
                history = _SessionHistory(self.policy.max_events_per_session, self._clock())
                self._sessions[session_id] = history
            return history

    def append(self, session_id: str, event: Event) -> None:
        self.append_and_snapshot(session_id, event)

    def append_and_snapshot(self, session_id: str, event: Event) -> Tuple[Event, ...]:
        """Append ``event`` and return the history as of that append.

        The snapshot is taken under the same session lock as the append, so it
        holds this event and every append that completed before it.
        """
        while True:
            history = self._history_for(session_id)
            with history.lock:
                # Lost a race with evict_idle; the entry is gone from the registry.
                if history.evicted:
                    continue
                history.events.append(event)
                history.last_append = self._clock()
                return tuple(history.events)

    def snapshot(self, session_id: str) -> Tuple[Event, ...]:
        with self._registry_lock:
            history = self._sessions.get(session_id)
        if history is None:
            return ()
        with history.lock:
            return tuple(history.events)

    def evict_idle(self) -> List[str]:
        """Drop sessions idle for longer than the policy TTL. Returns their ids."""
        ttl = self.policy.idle_ttl_seconds
        if ttl is None:
            return []
        cutoff = self._clock() - ttl
        evicted: List[str] = []
        with self._registry_lock:
            for session_id, history in list(self._sessions.items()):
                with history.lock:
                    if history.last_append > cutoff:
                        continue
                    history.evicted = True
                del self._sessions[session_id]
                evicted.append(session_id)
        return evicted

    def session_ids(self) -> List[str]:
        with self._registry_lock:
            return list(self._sessions)

    def session_count(self) -> int:
        with self._registry_lock:
            return len(self._sessions)

    def event_count(self) -> int:
        with self._registry_lock:
            histories = list(self._sessions.values())
        total = 0
        for history in histories:
            with history.lock:
                total += len(history.events)
        return total
