"""In-process store for estimate sessions.

Each browser gets a random token in its Flask cookie session; the estimate
inputs for that token live here as plain snapshots (``EstimateSession.to_dict``)
so an uploaded signature image does not have to fit in a cookie. Nothing is
written to disk: restarting the process starts every user from the defaults.
"""

from __future__ import annotations

import threading
from typing import Any, Dict

from levy_calc.session import EstimateSession


class SessionStore:
    """Token-keyed estimate snapshots held in memory."""

    def __init__(self, *, max_sessions: int = 500) -> None:
        self._snapshots: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()
        self._max_sessions = max_sessions

    def load(self, user_token: str) -> EstimateSession:
        if not user_token:
            return EstimateSession()
        with self._lock:
            snapshot = self._snapshots.get(user_token)
        return EstimateSession.from_dict(snapshot)

    def save(self, user_token: str, session: EstimateSession) -> None:
        if not user_token:
            return
        snapshot = session.to_dict()
        with self._lock:
            self._snapshots.pop(user_token, None)
            self._snapshots[user_token] = snapshot
            self._trim()

    def clear(self, user_token: str) -> None:
        with self._lock:
            self._snapshots.pop(user_token, None)

    def _trim(self) -> None:
        # dicts keep insertion order, and save() re-inserts, so the oldest
        # untouched sessions come first
        while self._max_sessions and len(self._snapshots) > self._max_sessions:
            oldest = next(iter(self._snapshots))
            del self._snapshots[oldest]


def create_store_from_env(max_sessions: str | None) -> SessionStore:
    return SessionStore(max_sessions=int(max_sessions) if max_sessions else 500)
