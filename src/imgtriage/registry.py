from __future__ import annotations
"""
Registry of the live slideshow sessions of the process.

Used to route an image opened from elsewhere back to the session whose index
holds it. Sessions are appended when they begin and dropped lazily once
inactive.
"""

import logging
import threading
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .session import Slideshow

logger = logging.getLogger(__name__)


class ActiveSessionRegistry:
    """
    Lock-guarded list of sessions.

    Several sessions over the same folder may be registered; lookups return
    the first match.
    """

    def __init__(self):
        self._sessions: list['Slideshow'] = []
        self._lock = threading.Lock()

    def register(self, session: 'Slideshow') -> None:
        with self._lock:
            self._sessions.append(session)
        logger.debug(f"Registered session for '{session.index.source}'.")

    def sessions(self) -> list['Slideshow']:
        with self._lock:
            return list(self._sessions)

    def sweep(self) -> int:
        """Drop inactive sessions and return how many were removed."""
        # Sessions are queried outside the registry lock; they take their own.
        inactive = [s for s in self.sessions() if not s.is_active()]
        with self._lock:
            before = len(self._sessions)
            self._sessions = [s for s in self._sessions if not any(s is i for i in inactive)]
            removed = before - len(self._sessions)
        if removed:
            logger.debug(f"Removed {removed} inactive sessions from the registry.")
        return removed

    def find_session(self, path: Path | str) -> 'Slideshow | None':
        """Return the first active session whose index contains `path`."""
        self.sweep()
        path = Path(path).expanduser().resolve()
        for session in self.sessions():
            if session.index.contains(path):
                return session
        return None

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
