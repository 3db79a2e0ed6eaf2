from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

import jwt

from ..config import DEFAULT_TOKEN_LIFETIME
from ..utils.jwt_secret import get_jwt_secret

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"


class Role(str, Enum):
    PLAYER = "player"
    ADMIN = "admin"


@dataclass(frozen=True)
class Principal:
    """Identity attached to an authenticated request."""

    user_name: str
    role: Role


def create_jwt_token(
    user_name: str,
    role: Role,
    expires_in: Optional[timedelta] = None,
) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_name,
        "role": role.value,
        "iat": now,
        "exp": now + (expires_in or DEFAULT_TOKEN_LIFETIME),
        "jti": uuid.uuid4().hex,
    }
    return jwt.encode(payload, get_jwt_secret(), algorithm=JWT_ALGORITHM)


def verify_jwt_token(token: str) -> Optional[Principal]:
    """Return the principal for a valid token, or ``None`` if it is forged, expired or incomplete."""
    try:
        payload = jwt.decode(
            token,
            get_jwt_secret(),
            algorithms=[JWT_ALGORITHM],
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        logger.debug("Rejected expired token")
        return None
    except jwt.PyJWTError as e:
        logger.debug(f"Rejected invalid token: {e}")
        return None

    try:
        role = Role(payload.get("role"))
    except ValueError:
        logger.debug(f"Rejected token with unknown role: {payload.get('role')!r}")
        return None

    return Principal(user_name=payload["sub"], role=role)
