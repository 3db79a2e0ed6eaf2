from __future__ import annotations

from datetime import datetime
from typing import Any, List

from pydantic import BaseModel, Field


# Stored records

class User(BaseModel):
    user_name: str
    is_admin: bool = False
    key_hash: str
    created_at: datetime


class Session(BaseModel):
    id: int
    start_at: datetime
    description: str = ""
    created_at: datetime


class Attempt(BaseModel):
    attempt_id: str
    session_id: int
    user_name: str
    rate: int = Field(..., ge=1, le=100)
    created_at: datetime


# Request bodies. Fields accept any JSON value so that route code can coerce
# them and answer with the documented error codes instead of a generic
# validation failure.

class PasswordLoginRequest(BaseModel):
    password: Any = None


class RegisterRequest(BaseModel):
    userName: Any = None
    password: Any = None


class CreateSessionRequest(BaseModel):
    startDate: Any = None
    startTime: Any = None
    description: Any = None


class SubmitAttemptRequest(BaseModel):
    rate: Any = None


# Responses

class TokenResponse(BaseModel):
    token: str
    userName: str
    role: str


class SessionOut(BaseModel):
    id: int
    startDate: str
    startTime: str
    description: str


class SessionListResponse(BaseModel):
    sessions: List[SessionOut]


class SessionCreatedResponse(BaseModel):
    session: SessionOut


class LeaderboardEntry(BaseModel):
    rank: int
    userName: str
    rate: int


class LeaderboardResponse(BaseModel):
    leaderboard: List[LeaderboardEntry]


class AttemptOut(BaseModel):
    id: str
    sessionId: int
    userName: str
    rate: int
    dateTime: str


class AttemptListResponse(BaseModel):
    attempts: List[AttemptOut]


class OkResponse(BaseModel):
    ok: bool = True
