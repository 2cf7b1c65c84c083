"""
codegolden/features/sessions/store.py

Process-wide map from session id to authenticated identity.

The client only ever holds the opaque session id (inside the signed session
cookie); profiles stay server-side.
"""

import secrets
import threading
from typing import Dict, Optional

from codegolden.models.identity import Identity


class SessionStore:
    def __init__(self):
        self._lock = threading.Lock()
        self._sessions: Dict[str, Identity] = {}

    def create(self, identity: Identity) -> str:
        session_id = secrets.token_urlsafe(32)
        with self._lock:
            self._sessions[session_id] = identity
        return session_id

    def get(self, session_id: Optional[str]) -> Optional[Identity]:
        if not session_id:
            return None
        with self._lock:
            return self._sessions.get(session_id)

    def delete(self, session_id: Optional[str]) -> bool:
        if not session_id:
            return False
        with self._lock:
            return self._sessions.pop(session_id, None) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
