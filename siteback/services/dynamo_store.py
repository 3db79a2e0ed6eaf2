"""
DynamoDB backend for the quest collections.

Tables (``<prefix>`` is ``STORE_DB_NAME``):

  * ``<prefix>_quest_users``    hash ``userName`` (S)
  * ``<prefix>_quest_sessions`` hash ``id`` (N)
  * ``<prefix>_quest_attempts`` hash ``sessionId`` (N), range ``attemptId`` (S)
  * ``<prefix>_quest_counters`` hash ``name`` (S), attribute ``seq`` (N)

Timestamps are stored as ISO-8601 strings. Numbers come back from boto3 as
``Decimal`` and are converted to ``int`` when items are mapped to records.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional, Sequence

from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import ClientError

from ..aws_clients import dynamodb_resource
from ..schemas import Attempt, Session, User
from .store import UserExistsError

logger = logging.getLogger(__name__)

USERS = "quest_users"
SESSIONS = "quest_sessions"
ATTEMPTS = "quest_attempts"
COUNTERS = "quest_counters"

# table suffix -> [(attribute, type, key type)]
TABLE_KEYS = {
    USERS: [("userName", "S", "HASH")],
    SESSIONS: [("id", "N", "HASH")],
    ATTEMPTS: [("sessionId", "N", "HASH"), ("attemptId", "S", "RANGE")],
    COUNTERS: [("name", "S", "HASH")],
}


def _user_to_item(user: User) -> Dict[str, Any]:
    return {
        "userName": user.user_name,
        "isAdmin": user.is_admin,
        "keyHash": user.key_hash,
        "createdAt": user.created_at.isoformat(),
    }


def _item_to_user(item: Dict[str, Any]) -> User:
    return User(
        user_name=item["userName"],
        is_admin=bool(item.get("isAdmin", False)),
        key_hash=item["keyHash"],
        created_at=datetime.fromisoformat(item["createdAt"]),
    )


def _session_to_item(session: Session) -> Dict[str, Any]:
    return {
        "id": session.id,
        "startAt": session.start_at.isoformat(),
        "description": session.description,
        "createdAt": session.created_at.isoformat(),
    }


def _item_to_session(item: Dict[str, Any]) -> Session:
    return Session(
        id=int(item["id"]),
        start_at=datetime.fromisoformat(item["startAt"]),
        description=item.get("description") or "",
        created_at=datetime.fromisoformat(item["createdAt"]),
    )


def _attempt_to_item(attempt: Attempt) -> Dict[str, Any]:
    return {
        "sessionId": attempt.session_id,
        "attemptId": attempt.attempt_id,
        "userName": attempt.user_name,
        "rate": attempt.rate,
        "createdAt": attempt.created_at.isoformat(),
    }


def _item_to_attempt(item: Dict[str, Any]) -> Attempt:
    return Attempt(
        attempt_id=item["attemptId"],
        session_id=int(item["sessionId"]),
        user_name=item["userName"],
        rate=int(item["rate"]),
        created_at=datetime.fromisoformat(item["createdAt"]),
    )


def _paginate(operation, **kwargs) -> Iterator[Dict[str, Any]]:
    """Yield items from a scan/query call, following LastEvaluatedKey."""
    while True:
        response = operation(**kwargs)
        yield from response.get("Items", [])
        last_key = response.get("LastEvaluatedKey")
        if not last_key:
            return
        kwargs["ExclusiveStartKey"] = last_key


class DynamoQuestStore:
    def __init__(
        self,
        table_prefix: str,
        region: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        create_tables: bool = False,
    ) -> None:
        self.table_prefix = table_prefix
        self.region = region
        self.endpoint_url = endpoint_url
        self.create_tables_on_connect = create_tables
        self._resource = None
        self._tables: Dict[str, Any] = {}

    def table_name(self, suffix: str) -> str:
        return f"{self.table_prefix}_{suffix}"

    def connect(self) -> None:
        if self._resource is not None:
            return
        self._resource = dynamodb_resource(self.region, self.endpoint_url)
        if self.create_tables_on_connect:
            self.create_tables()
        self._tables = {suffix: self._resource.Table(self.table_name(suffix)) for suffix in TABLE_KEYS}

    def close(self) -> None:
        if self._resource is None:
            return
        self._resource.meta.client.close()
        self._resource = None
        self._tables = {}

    def create_tables(self) -> None:
        """Create any missing tables (on-demand billing) and wait until they exist."""
        client = self._resource.meta.client
        existing = set(client.list_tables().get("TableNames", []))
        for suffix, keys in TABLE_KEYS.items():
            name = self.table_name(suffix)
            if name in existing:
                continue
            logger.info(f"Creating DynamoDB table {name}")
            client.create_table(
                TableName=name,
                AttributeDefinitions=[{"AttributeName": a, "AttributeType": t} for a, t, _ in keys],
                KeySchema=[{"AttributeName": a, "KeyType": k} for a, _, k in keys],
                BillingMode="PAY_PER_REQUEST",
            )
            client.get_waiter("table_exists").wait(TableName=name)

    def _table(self, suffix: str):
        if self._resource is None:
            raise RuntimeError("Store not connected. Call connect() first.")
        return self._tables[suffix]

    # users

    def get_user(self, user_name: str) -> Optional[User]:
        item = self._table(USERS).get_item(Key={"userName": user_name}).get("Item")
        return _item_to_user(item) if item else None

    def find_user_by_key_hash(self, key_hash: str, is_admin: bool) -> Optional[User]:
        items = _paginate(
            self._table(USERS).scan,
            FilterExpression=Attr("keyHash").eq(key_hash) & Attr("isAdmin").eq(is_admin),
        )
        for item in items:
            return _item_to_user(item)
        return None

    def insert_user(self, user: User) -> None:
        try:
            self._table(USERS).put_item(
                Item=_user_to_item(user),
                ConditionExpression="attribute_not_exists(userName)",
            )
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException":
                raise UserExistsError(user.user_name) from e
            raise

    # counters

    def next_sequence(self, key: str) -> int:
        response = self._table(COUNTERS).update_item(
            Key={"name": key},
            UpdateExpression="ADD seq :one",
            ExpressionAttributeValues={":one": 1},
            ReturnValues="UPDATED_NEW",
        )
        return int(response["Attributes"]["seq"])

    # sessions

    def has_sessions(self) -> bool:
        response = self._table(SESSIONS).scan(
            Limit=1,
            ProjectionExpression="#id",
            ExpressionAttributeNames={"#id": "id"},
        )
        return bool(response.get("Items"))

    def insert_session(self, session: Session) -> None:
        self._table(SESSIONS).put_item(Item=_session_to_item(session))

    def list_sessions(self) -> List[Session]:
        sessions = [_item_to_session(item) for item in _paginate(self._table(SESSIONS).scan)]
        return sorted(sessions, key=lambda s: s.start_at, reverse=True)

    def delete_session(self, session_id: int) -> None:
        self._table(SESSIONS).delete_item(Key={"id": session_id})

    # attempts

    def delete_attempts_for_session(self, session_id: int) -> int:
        table = self._table(ATTEMPTS)
        keys = [
            {"sessionId": item["sessionId"], "attemptId": item["attemptId"]}
            for item in _paginate(
                table.query,
                KeyConditionExpression=Key("sessionId").eq(session_id),
                ProjectionExpression="sessionId, attemptId",
            )
        ]
        with table.batch_writer() as batch:
            for key in keys:
                batch.delete_item(Key=key)
        return len(keys)

    def insert_attempts(self, attempts: Sequence[Attempt]) -> None:
        table = self._table(ATTEMPTS)
        if len(attempts) == 1:
            table.put_item(Item=_attempt_to_item(attempts[0]))
            return
        with table.batch_writer() as batch:
            for attempt in attempts:
                batch.put_item(Item=_attempt_to_item(attempt))

    def list_attempts(self, session_id: int, user_name: Optional[str] = None) -> List[Attempt]:
        kwargs: Dict[str, Any] = {"KeyConditionExpression": Key("sessionId").eq(session_id)}
        if user_name is not None:
            kwargs["FilterExpression"] = Attr("userName").eq(user_name)
        attempts = [_item_to_attempt(item) for item in _paginate(self._table(ATTEMPTS).query, **kwargs)]
        return sorted(attempts, key=lambda a: a.created_at, reverse=True)
