"""Per-connection session state.

A :class:`Session` lives for one client connection. It caches parsed
configuration per working directory, Jira field metadata per instance and
remembers which projects were already used, so guidance is shown only once.

:class:`SessionStore` owns the sessions. It is created by the server lifespan
and passed around explicitly; tests build their own stores.
"""

import asyncio
import logging
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from .jira.config import MultiInstanceConfig

logger = logging.getLogger("mcp-jira.sessions")

SESSION_TIMEOUT = 30 * 60  # seconds of inactivity before eviction
CLEANUP_INTERVAL = 5 * 60  # seconds between sweeps
ACTIVE_WINDOW = 5 * 60  # "active" in metrics


@dataclass
class Session:
    """State scoped to a single client connection."""

    session_id: str
    created_at: float
    last_activity: float
    config_cache: dict[str, MultiInstanceConfig] = field(default_factory=dict)
    field_cache: dict[str, list[dict[str, Any]]] = field(default_factory=dict)
    accessed_projects: dict[str, set[str]] = field(default_factory=dict)


@dataclass(frozen=True)
class SessionMetrics:
    total_sessions: int
    active_sessions: int
    oldest_session: float | None
    average_age: float


class SessionStore:
    """Creates, tracks and evicts sessions.

    Idle sessions are removed by a background sweep. The sweep task is started
    with the first session (when an event loop is running) and cancelled once
    the store is empty or closed.
    """

    def __init__(
        self,
        timeout: float = SESSION_TIMEOUT,
        cleanup_interval: float = CLEANUP_INTERVAL,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.timeout = timeout
        self.cleanup_interval = cleanup_interval
        self._clock = clock
        self._sessions: dict[str, Session] = {}
        self._sweep_task: asyncio.Task | None = None

    @property
    def session_ids(self) -> list[str]:
        return list(self._sessions)

    @property
    def session_count(self) -> int:
        return len(self._sessions)

    @property
    def sweep_running(self) -> bool:
        return self._sweep_task is not None and not self._sweep_task.done()

    def create_session(self, session_id: str | None = None) -> Session:
        """Create a session.

        Raises:
            ValueError: If a session with ``session_id`` already exists.
        """
        session_id = session_id or str(uuid.uuid4())
        if session_id in self._sessions:
            raise ValueError(f"Session {session_id} already exists")

        now = self._clock()
        session = Session(session_id=session_id, created_at=now, last_activity=now)
        self._sessions[session_id] = session
        logger.info(f"Created session {session_id}")
        self._ensure_sweep()
        return session

    def get_session(self, session_id: str) -> Session | None:
        """Return the session and refresh its activity, or None if unknown."""
        session = self._sessions.get(session_id)
        if session is not None:
            session.last_activity = self._clock()
        return session

    def get_or_create(self, session_id: str | None = None) -> Session:
        if session_id:
            session = self.get_session(session_id)
            if session is not None:
                return session
            logger.debug(f"Session {session_id} not found, creating it")
        return self.create_session(session_id)

    def touch(self, session_id: str) -> bool:
        return self.get_session(session_id) is not None

    def remove_session(self, session_id: str) -> bool:
        """Remove a session. Removing an unknown id returns False."""
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        logger.info(f"Removed session {session_id}")
        if not self._sessions:
            self._stop_sweep()
        return True

    def cleanup_inactive(self) -> list[str]:
        """Remove sessions idle for longer than the timeout.

        Returns:
            Ids of the removed sessions.
        """
        cutoff = self._clock() - self.timeout
        expired = [
            session_id
            for session_id, session in self._sessions.items()
            if session.last_activity < cutoff
        ]
        for session_id in expired:
            del self._sessions[session_id]
            logger.info(f"Cleaned up inactive session {session_id}")
        if expired:
            logger.debug(f"Session sweep removed {len(expired)} session(s)")
        return expired

    def track_project_access(
        self, session_id: str, instance_name: str, project_key: str
    ) -> bool:
        """Record access to a project.

        Returns:
            True the first time the project is accessed on the instance within
            the session, False afterwards or for unknown sessions.
        """
        session = self._sessions.get(session_id)
        if session is None or self.has_accessed_project(
            session_id, instance_name, project_key
        ):
            return False
        session.accessed_projects.setdefault(instance_name, set()).add(project_key)
        return True

    def has_accessed_project(
        self, session_id: str, instance_name: str, project_key: str
    ) -> bool:
        session = self._sessions.get(session_id)
        if session is None:
            return False
        return project_key in session.accessed_projects.get(instance_name, set())

    def metrics(self) -> SessionMetrics:
        now = self._clock()
        sessions = list(self._sessions.values())
        if not sessions:
            return SessionMetrics(0, 0, None, 0.0)
        active = sum(1 for s in sessions if now - s.last_activity < ACTIVE_WINDOW)
        return SessionMetrics(
            total_sessions=len(sessions),
            active_sessions=active,
            oldest_session=min(s.created_at for s in sessions),
            average_age=sum(now - s.created_at for s in sessions) / len(sessions),
        )

    async def aclose(self) -> None:
        """Drop every session, then cancel and await the sweep."""
        task, self._sweep_task = self._sweep_task, None
        for session_id in list(self._sessions):
            self.remove_session(session_id)
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    def _ensure_sweep(self) -> None:
        if self.sweep_running:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop (sync callers, plain unit tests): sweeps run on demand
            return
        self._sweep_task = loop.create_task(self._sweep_loop())
        logger.debug(f"Session sweep started (every {self.cleanup_interval}s)")

    def _stop_sweep(self) -> None:
        task, self._sweep_task = self._sweep_task, None
        if task is not None and not task.done() and task is not _current_task():
            task.cancel()
            logger.debug("Session sweep stopped")

    async def _sweep_loop(self) -> None:
        while self._sessions:
            await asyncio.sleep(self.cleanup_interval)
            try:
                self.cleanup_inactive()
                metrics = self.metrics()
                logger.debug(
                    f"Session sweep: {metrics.total_sessions} sessions, "
                    f"{metrics.active_sessions} active"
                )
            except Exception:
                logger.exception("Session sweep failed")
        logger.debug("No sessions left, session sweep exiting")
        if self._sweep_task is _current_task():
            self._sweep_task = None


def _current_task() -> asyncio.Task | None:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None
