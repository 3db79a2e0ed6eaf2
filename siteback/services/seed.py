"""
Baseline data for a fresh store.

Every step checks before writing, so running ``ensure_seed`` on each start is
harmless. Two processes seeding an empty store at the same moment could both
see zero sessions and create four; startup is single-process, so that window
is accepted.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from ..schemas import Attempt, Session, User
from ..utils.admin_password import get_admin_password
from .credentials import hash_key
from .store import SESSION_SEQUENCE, QuestStore

logger = logging.getLogger(__name__)

ADMIN_USER_NAME = "admin"

SEED_PLAYERS = (
    ("Artur_1", "artur"),
    ("Antuan", "a"),
    ("Maria", "m"),
    ("Ivan", "i"),
)

# (userName, rate, minutes after the first session starts)
SEED_ATTEMPTS = (
    ("Antuan", 98, 5),
    ("Maria", 81, 10),
    ("Ivan", 69, 15),
    ("Artur_1", 78, 20),
)


def _ensure_user(store: QuestStore, user_name: str, password: str, is_admin: bool, now: datetime) -> bool:
    if store.get_user(user_name) is not None:
        return False
    store.insert_user(
        User(user_name=user_name, is_admin=is_admin, key_hash=hash_key(password), created_at=now)
    )
    logger.info(f"Seeded {'admin' if is_admin else 'player'} user {user_name}")
    return True


def ensure_seed(
    store: QuestStore,
    now: Optional[datetime] = None,
    admin_password: Optional[str] = None,
) -> None:
    now = now or datetime.now(timezone.utc)

    _ensure_user(store, ADMIN_USER_NAME, admin_password or get_admin_password(), True, now)
    for user_name, password in SEED_PLAYERS:
        _ensure_user(store, user_name, password, False, now)

    if store.has_sessions():
        return

    first_start = now + timedelta(days=1)
    second_start = now + timedelta(days=2)
    first_id = store.next_sequence(SESSION_SEQUENCE)
    second_id = store.next_sequence(SESSION_SEQUENCE)

    store.insert_session(
        Session(id=first_id, start_at=first_start, description="Session 1 description", created_at=now)
    )
    store.insert_session(
        Session(id=second_id, start_at=second_start, description="Session 2 description", created_at=now)
    )
    store.insert_attempts(
        [
            Attempt(
                attempt_id=uuid.uuid4().hex,
                session_id=first_id,
                user_name=user_name,
                rate=rate,
                created_at=first_start + timedelta(minutes=minutes),
            )
            for user_name, rate, minutes in SEED_ATTEMPTS
        ]
    )
    logger.info(f"Seeded sessions {first_id} and {second_id} with {len(SEED_ATTEMPTS)} attempts")
