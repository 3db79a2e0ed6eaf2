"""
Public authentication routes.

Both password logins select the account by key hash alone: the request has
no userName, so two players who chose the same password cannot be told apart
and the first match wins. Registration is the only flow that names the user.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import APIRouter, Depends

from ..config import Settings
from ..dependencies import get_settings, get_store
from ..middleware.error_handler import ApiError
from ..schemas import PasswordLoginRequest, RegisterRequest, TokenResponse, User
from .auth_service import Role, create_jwt_token
from .credentials import hash_key
from .store import QuestStore, UserExistsError

public_auth = APIRouter(prefix="/api/auth", tags=["Auth"])
logger = logging.getLogger(__name__)


def _as_text(value: Any) -> str:
    """String form of a JSON scalar, with numbers and booleans printed as a browser client would."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _password_login(
    payload: Optional[PasswordLoginRequest],
    store: QuestStore,
    settings: Settings,
    role: Role,
) -> TokenResponse:
    password = payload.password if payload else None
    if not password:
        raise ApiError(400, "missing_password")

    user = store.find_user_by_key_hash(hash_key(_as_text(password)), is_admin=role is Role.ADMIN)
    if user is None:
        logger.info(f"Failed {role.value} login")
        raise ApiError(401, "invalid_password")

    token = create_jwt_token(user.user_name, role, expires_in=settings.jwt_expires_in)
    logger.info(f"{role.value} login: {user.user_name}")
    return TokenResponse(token=token, userName=user.user_name, role=role.value)


@public_auth.post("/player-login-old", response_model=TokenResponse)
def player_login(
    payload: Optional[PasswordLoginRequest] = None,
    store: QuestStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> TokenResponse:
    """Returning player: password only, resolves to a non-admin user."""
    return _password_login(payload, store, settings, Role.PLAYER)


@public_auth.post("/admin-login", response_model=TokenResponse)
def admin_login(
    payload: Optional[PasswordLoginRequest] = None,
    store: QuestStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> TokenResponse:
    return _password_login(payload, store, settings, Role.ADMIN)


@public_auth.post("/player-register", status_code=201, response_model=TokenResponse)
def player_register(
    payload: Optional[RegisterRequest] = None,
    store: QuestStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> TokenResponse:
    user_name = payload.userName if payload else None
    password = payload.password if payload else None
    if not user_name or not password:
        raise ApiError(400, "missing_fields")
    user_name = _as_text(user_name)

    if store.get_user(user_name) is not None:
        raise ApiError(409, "username_taken")

    try:
        store.insert_user(
            User(
                user_name=user_name,
                is_admin=False,
                key_hash=hash_key(_as_text(password)),
                created_at=datetime.now(timezone.utc),
            )
        )
    except UserExistsError:
        raise ApiError(409, "username_taken")

    token = create_jwt_token(user_name, Role.PLAYER, expires_in=settings.jwt_expires_in)
    logger.info(f"Registered player {user_name}")
    return TokenResponse(token=token, userName=user_name, role=Role.PLAYER.value)
