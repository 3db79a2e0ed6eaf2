"""
Storage abstraction for the quest collections.

Two backends implement :class:`QuestStore`: DynamoDB (``dynamo_store``) for
deployments and an in-process store (``memory_store``) for local runs and
tests. ``STORE_URI`` picks one at startup; the chosen handle is connected in
the application lifespan and closed on shutdown.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Protocol, Sequence
from urllib.parse import urlparse

from ..config import ConfigError, Settings
from ..schemas import Attempt, Session, User

logger = logging.getLogger(__name__)

SESSION_SEQUENCE = "sessionId"


class UserExistsError(Exception):
    """Raised when inserting a user whose userName is already taken."""


class QuestStore(Protocol):
    """Operations the handlers, seeding and auth flows need from storage."""

    def connect(self) -> None:
        ...

    def close(self) -> None:
        ...

    def get_user(self, user_name: str) -> Optional[User]:
        ...

    def find_user_by_key_hash(self, key_hash: str, is_admin: bool) -> Optional[User]:
        ...

    def insert_user(self, user: User) -> None:
        """Insert a user. Raises :class:`UserExistsError` on a taken userName."""
        ...

    def next_sequence(self, key: str) -> int:
        """Atomically increment the named counter and return the new value (first call: 1)."""
        ...

    def has_sessions(self) -> bool:
        ...

    def insert_session(self, session: Session) -> None:
        ...

    def list_sessions(self) -> List[Session]:
        """All sessions, newest ``start_at`` first."""
        ...

    def delete_session(self, session_id: int) -> None:
        """Delete by logical id. Missing ids are not an error."""
        ...

    def delete_attempts_for_session(self, session_id: int) -> int:
        """Delete every attempt referencing ``session_id``; return how many were removed."""
        ...

    def insert_attempts(self, attempts: Sequence[Attempt]) -> None:
        ...

    def list_attempts(self, session_id: int, user_name: Optional[str] = None) -> List[Attempt]:
        """Attempts for a session (optionally one user), newest ``created_at`` first."""
        ...


def create_store(settings: Settings) -> QuestStore:
    """
    Build an unconnected store from ``STORE_URI``.

    ``memory://`` selects the in-process backend. ``dynamodb://`` uses the
    AWS endpoint, with an optional region as the host part
    (``dynamodb://eu-west-1``). An ``http(s)://`` URI is treated as a
    DynamoDB-compatible endpoint such as LocalStack.
    """
    parsed = urlparse(settings.store_uri)
    scheme = parsed.scheme.lower()

    if scheme == "memory":
        from .memory_store import InMemoryQuestStore

        logger.info("Using in-memory quest store")
        return InMemoryQuestStore()

    if scheme in ("dynamodb", "http", "https"):
        from .dynamo_store import DynamoQuestStore

        if scheme == "dynamodb":
            region = parsed.netloc or settings.aws_region
            endpoint_url = None
        else:
            region = settings.aws_region
            endpoint_url = settings.store_uri
        logger.info(
            f"Using DynamoDB quest store (prefix={settings.store_db_name}, "
            f"region={region}, endpoint={endpoint_url or 'aws'})"
        )
        return DynamoQuestStore(
            table_prefix=settings.store_db_name,
            region=region,
            endpoint_url=endpoint_url,
            create_tables=settings.store_create_tables,
        )

    raise ConfigError(f"Unsupported STORE_URI scheme: {parsed.scheme or settings.store_uri!r}")
