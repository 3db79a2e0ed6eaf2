from __future__ import annotations

import threading
from typing import Dict, List, Optional, Sequence

from ..schemas import Attempt, Session, User
from .store import UserExistsError


class InMemoryQuestStore:
    """
    Process-local store backing the quest API.

    A single lock serializes every operation, which gives the counter the
    same increment-and-fetch atomicity the DynamoDB backend gets from a
    single ``UpdateItem``. Records are copied on the way in and out.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._users: Dict[str, User] = {}
        self._sessions: Dict[int, Session] = {}
        self._attempts: List[Attempt] = []
        self._counters: Dict[str, int] = {}
        self.connected = False

    def connect(self) -> None:
        self.connected = True

    def close(self) -> None:
        self.connected = False

    def get_user(self, user_name: str) -> Optional[User]:
        with self._lock:
            user = self._users.get(user_name)
            return user.model_copy() if user else None

    def find_user_by_key_hash(self, key_hash: str, is_admin: bool) -> Optional[User]:
        with self._lock:
            for user in self._users.values():
                if user.key_hash == key_hash and user.is_admin == is_admin:
                    return user.model_copy()
            return None

    def insert_user(self, user: User) -> None:
        with self._lock:
            if user.user_name in self._users:
                raise UserExistsError(user.user_name)
            self._users[user.user_name] = user.model_copy()

    def next_sequence(self, key: str) -> int:
        with self._lock:
            value = self._counters.get(key, 0) + 1
            self._counters[key] = value
            return value

    def has_sessions(self) -> bool:
        with self._lock:
            return bool(self._sessions)

    def insert_session(self, session: Session) -> None:
        with self._lock:
            self._sessions[session.id] = session.model_copy()

    def list_sessions(self) -> List[Session]:
        with self._lock:
            sessions = [s.model_copy() for s in self._sessions.values()]
        return sorted(sessions, key=lambda s: s.start_at, reverse=True)

    def delete_session(self, session_id: int) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)

    def delete_attempts_for_session(self, session_id: int) -> int:
        with self._lock:
            kept = [a for a in self._attempts if a.session_id != session_id]
            removed = len(self._attempts) - len(kept)
            self._attempts = kept
            return removed

    def insert_attempts(self, attempts: Sequence[Attempt]) -> None:
        with self._lock:
            self._attempts.extend(a.model_copy() for a in attempts)

    def list_attempts(self, session_id: int, user_name: Optional[str] = None) -> List[Attempt]:
        with self._lock:
            found = [
                a.model_copy()
                for a in self._attempts
                if a.session_id == session_id and (user_name is None or a.user_name == user_name)
            ]
        return sorted(found, key=lambda a: a.created_at, reverse=True)
