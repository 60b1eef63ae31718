"""Registry of live booking sessions keyed by an opaque handle."""

from __future__ import annotations

import logging
import threading
import time
import uuid
from typing import Any, Callable

from ...config import settings
from ...errors import SessionNotFound
from .state_machine import BookingStateMachine

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Owns one BookingStateMachine per session id.

    Finalized sessions are released by the caller; sessions left idle for
    longer than ``ttl_seconds`` are abandoned on the next start or lookup.
    """

    def __init__(
        self,
        machine_factory: Callable[..., BookingStateMachine] = BookingStateMachine,
        *,
        ttl_seconds: float | None = None,
        idle_clock: Callable[[], float] = time.monotonic,
        **machine_kwargs: Any,
    ) -> None:
        self._machine_factory = machine_factory
        self._machine_kwargs = machine_kwargs
        self._ttl = ttl_seconds if ttl_seconds is not None else settings.session_ttl_seconds
        self._idle_clock = idle_clock
        self._sessions: dict[str, BookingStateMachine] = {}
        self._last_seen: dict[str, float] = {}
        self._lock = threading.Lock()

    def _sweep(self) -> None:
        now = self._idle_clock()
        expired: list[tuple[str, BookingStateMachine]] = []
        with self._lock:
            for session_id, machine in list(self._sessions.items()):
                idle = now - self._last_seen.get(session_id, now)
                if machine.abandoned or (idle > self._ttl and not machine.submitting):
                    expired.append((session_id, self._sessions.pop(session_id)))
                    self._last_seen.pop(session_id, None)
        for session_id, machine in expired:
            machine.abandon()
            logger.info(f"Evicted idle booking session {session_id}")

    def start(self, user_id: str, user_name: str | None = None) -> tuple[str, BookingStateMachine]:
        self._sweep()
        session_id = uuid.uuid4().hex
        machine = self._machine_factory(user_id, user_name, session_id=session_id, **self._machine_kwargs)
        with self._lock:
            self._sessions[session_id] = machine
            self._last_seen[session_id] = self._idle_clock()
        logger.info(f"Started booking session {session_id} for user {user_id}")
        return session_id, machine

    def get(self, session_id: str) -> BookingStateMachine:
        self._sweep()
        with self._lock:
            machine = self._sessions.get(session_id)
            if machine is not None:
                self._last_seen[session_id] = self._idle_clock()
        if machine is None or machine.abandoned:
            raise SessionNotFound(f"No booking session {session_id!r}.")
        return machine

    def release(self, session_id: str) -> None:
        """Forget a finalized session without touching its machine."""
        with self._lock:
            self._sessions.pop(session_id, None)
            self._last_seen.pop(session_id, None)

    def discard(self, session_id: str) -> None:
        with self._lock:
            machine = self._sessions.pop(session_id, None)
            self._last_seen.pop(session_id, None)
        if machine is None:
            raise SessionNotFound(f"No booking session {session_id!r}.")
        machine.abandon()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


_registry: SessionRegistry | None = None
_registry_lock = threading.Lock()


def get_session_registry() -> SessionRegistry:
    global _registry
    with _registry_lock:
        if _registry is None:
            _registry = SessionRegistry()
        return _registry
