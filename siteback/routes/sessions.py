from __future__ import annotations

import logging
import math
import re
import uuid
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Response

from ..dependencies import get_store
from ..middleware.error_handler import ApiError
from ..middleware.rbac import admin_only, any_role, log_admin_operation, player_only
from ..schemas import (
    Attempt,
    AttemptListResponse,
    AttemptOut,
    CreateSessionRequest,
    LeaderboardResponse,
    OkResponse,
    Session,
    SessionCreatedResponse,
    SessionListResponse,
    SessionOut,
    SubmitAttemptRequest,
)
from ..services.auth_service import Principal, Role
from ..services.leaderboard import build_leaderboard
from ..services.store import SESSION_SEQUENCE, QuestStore
from ..utils.timefmt import iso_utc, parse_start, split_start

router = APIRouter(prefix="/api/sessions", tags=["Sessions"])
logger = logging.getLogger(__name__)

MIN_RATE = 1
MAX_RATE = 100

# Ids are kept within the exactly representable integer range of the web
# client and well inside DynamoDB's number precision.
MAX_SESSION_ID = 2**53 - 1

_NUMERIC_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")


def _parse_session_id(raw: str) -> int:
    """
    Parse a path id written in decimal or exponent notation (``7``, ``7.0``, ``1e3``).

    Raises:
        ApiError: 400 ``invalid_id`` unless the value is a whole number
            within ``MAX_SESSION_ID``.
    """
    text = raw.strip()
    if not _NUMERIC_RE.match(text):
        raise ApiError(400, "invalid_id")
    try:
        value = Decimal(text)
    except InvalidOperation:
        raise ApiError(400, "invalid_id")
    if abs(value) > MAX_SESSION_ID or value != value.to_integral_value():
        raise ApiError(400, "invalid_id")
    return int(value)


def _coerce_rate(raw: Any) -> Optional[int]:
    """Numeric coercion of a submitted rate; ``None`` unless it is a whole number in range."""
    if isinstance(raw, bool) or raw is None:
        return None
    if isinstance(raw, str):
        try:
            raw = float(raw.strip())
        except ValueError:
            return None
    if not isinstance(raw, (int, float)):
        return None
    if isinstance(raw, float) and (not math.isfinite(raw) or not raw.is_integer()):
        return None
    rate = int(raw)
    if rate < MIN_RATE or rate > MAX_RATE:
        return None
    return rate


def _session_out(session: Session) -> SessionOut:
    start_date, start_time = split_start(session.start_at)
    return SessionOut(
        id=session.id,
        startDate=start_date,
        startTime=start_time,
        description=session.description or "",
    )


@router.get("", response_model=SessionListResponse)
def list_sessions(
    principal: Principal = Depends(any_role),
    store: QuestStore = Depends(get_store),
) -> SessionListResponse:
    return SessionListResponse(sessions=[_session_out(s) for s in store.list_sessions()])


@router.post("", status_code=201, response_model=SessionCreatedResponse)
def create_session(
    payload: Optional[CreateSessionRequest] = None,
    principal: Principal = Depends(admin_only),
    store: QuestStore = Depends(get_store),
) -> SessionCreatedResponse:
    start_date = payload.startDate if payload else None
    start_time = payload.startTime if payload else None
    # Only strings can spell a date; numbers and other JSON values are rejected.
    if not (isinstance(start_date, str) and start_date and isinstance(start_time, str) and start_time):
        raise ApiError(400, "invalid_datetime")
    try:
        start_at = parse_start(start_date, start_time)
    except ValueError:
        raise ApiError(400, "invalid_datetime")

    session = Session(
        id=store.next_sequence(SESSION_SEQUENCE),
        start_at=start_at,
        description=str(payload.description) if payload.description is not None else "",
        created_at=datetime.now(timezone.utc),
    )
    store.insert_session(session)
    log_admin_operation("create_session", principal, {"session_id": session.id})
    return SessionCreatedResponse(session=_session_out(session))


@router.delete("/{session_id}", status_code=204)
def delete_session(
    session_id: str,
    principal: Principal = Depends(admin_only),
    store: QuestStore = Depends(get_store),
) -> Response:
    sid = _parse_session_id(session_id)
    # Two independent deletes; repeating the call clears attempts left behind by a failure in between.
    store.delete_session(sid)
    removed = store.delete_attempts_for_session(sid)
    log_admin_operation("delete_session", principal, {"session_id": sid, "attempts_removed": removed})
    return Response(status_code=204)


@router.get("/{session_id}/leaderboard", response_model=LeaderboardResponse)
def get_leaderboard(
    session_id: str,
    principal: Principal = Depends(any_role),
    store: QuestStore = Depends(get_store),
) -> LeaderboardResponse:
    sid = _parse_session_id(session_id)
    return LeaderboardResponse(leaderboard=build_leaderboard(store.list_attempts(sid)))


@router.get("/{session_id}/attempts", response_model=AttemptListResponse)
def list_attempts(
    session_id: str,
    userName: Optional[str] = Query(None),
    principal: Principal = Depends(any_role),
    store: QuestStore = Depends(get_store),
) -> AttemptListResponse:
    sid = _parse_session_id(session_id)
    if not userName:
        raise ApiError(400, "missing_userName")
    if principal.role is not Role.ADMIN and principal.user_name != userName:
        raise ApiError(403, "forbidden")

    attempts = store.list_attempts(sid, user_name=userName)
    return AttemptListResponse(
        attempts=[
            AttemptOut(
                id=a.attempt_id,
                sessionId=a.session_id,
                userName=a.user_name,
                rate=a.rate,
                dateTime=iso_utc(a.created_at),
            )
            for a in attempts
        ]
    )


@router.post("/{session_id}/attempts", status_code=201, response_model=OkResponse)
def submit_attempt(
    session_id: str,
    payload: Optional[SubmitAttemptRequest] = None,
    principal: Principal = Depends(player_only),
    store: QuestStore = Depends(get_store),
) -> OkResponse:
    sid = _parse_session_id(session_id)
    rate = _coerce_rate(payload.rate if payload else None)
    if rate is None:
        raise ApiError(400, "invalid_rate")

    # The session is not looked up; attempts for unknown ids are stored as-is.
    store.insert_attempts(
        [
            Attempt(
                attempt_id=uuid.uuid4().hex,
                session_id=sid,
                user_name=principal.user_name,
                rate=rate,
                created_at=datetime.now(timezone.utc),
            )
        ]
    )
    return OkResponse(ok=True)
