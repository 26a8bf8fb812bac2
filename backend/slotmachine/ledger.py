"""In-memory session ledger with per-session locking.

The ledger is process-memory only: every session is lost on restart and
is invisible to other worker processes. Run the service with a single
worker.
"""
import asyncio
import logging
import time
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass

from slotmachine.config import settings
from slotmachine.errors import ErrorCode, GameError
from slotmachine.logic.models import Session


logger = logging.getLogger(__name__)


@dataclass
class LockMetrics:
    """Metrics from lock acquisition for telemetry."""

    acquire_ms: float


@dataclass
class _LockEntry:
    lock: asyncio.Lock
    refs: int = 0


class SessionManager:
    """
    Sole owner of the session id -> Session mapping.

    Lookups and updates never raise for unknown ids; absence is returned
    as None. Sessions are immutable snapshots, every update stores a new
    one.
    """

    def __init__(
        self,
        initial_credits: int | None = None,
        lock_timeout_seconds: float | None = None,
    ):
        self.initial_credits = (
            settings.initial_credits if initial_credits is None else initial_credits
        )
        self.lock_timeout_seconds = (
            settings.lock_timeout_seconds
            if lock_timeout_seconds is None
            else lock_timeout_seconds
        )
        self._sessions: dict[str, Session] = {}
        # Lock arena keyed by session id; entries live only while held or awaited.
        self._locks: dict[str, _LockEntry] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def create_session(self) -> Session:
        """Insert a new session with a fresh id and the initial credit grant."""
        session_id = str(uuid.uuid4())
        while session_id in self._sessions:
            session_id = str(uuid.uuid4())
        session = Session(id=session_id, credits=self.initial_credits)
        self._sessions[session_id] = session
        logger.info("Session created: id=%s credits=%d", session_id, session.credits)
        return session

    def get_session(self, session_id: str) -> Session | None:
        return self._sessions.get(session_id)

    def update_credits(self, session_id: str, credits: int) -> Session | None:
        """
        Replace a session's balance, clamped at 0.

        Returns the updated session, or None (no mutation) for unknown ids.
        """
        session = self._sessions.get(session_id)
        if session is None:
            return None
        updated = session.model_copy(update={"credits": max(0, credits)})
        self._sessions[session_id] = updated
        return updated

    def destroy_session(self, session_id: str) -> None:
        """Remove a session. No-op for unknown ids."""
        if self._sessions.pop(session_id, None) is not None:
            logger.info("Session destroyed: id=%s", session_id)

    def reset(self) -> None:
        """Drop all sessions (tests and admin use only)."""
        self._sessions.clear()

    def is_locked(self, session_id: str) -> bool:
        entry = self._locks.get(session_id)
        return entry is not None and entry.lock.locked()

    @property
    def lock_count(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def session_lock(self, session_id: str):
        """
        Serialize operations on one session id.

        Waits up to lock_timeout_seconds, then raises ROUND_IN_PROGRESS.
        Yields LockMetrics for telemetry.
        """
        entry = self._locks.get(session_id)
        if entry is None:
            entry = _LockEntry(lock=asyncio.Lock())
            self._locks[session_id] = entry
        entry.refs += 1

        t0 = time.monotonic()
        try:
            try:
                await asyncio.wait_for(
                    entry.lock.acquire(), timeout=self.lock_timeout_seconds
                )
            except asyncio.TimeoutError:
                raise GameError(
                    ErrorCode.ROUND_IN_PROGRESS,
                    "Another operation is in progress for this session.",
                ) from None
            metrics = LockMetrics(acquire_ms=(time.monotonic() - t0) * 1000)
            try:
                yield metrics
            finally:
                entry.lock.release()
        finally:
            entry.refs -= 1
            if entry.refs == 0:
                del self._locks[session_id]
