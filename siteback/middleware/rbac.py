"""
Role-based access control.

:class:`RoleGuard` is a FastAPI dependency parameterized by an optional
required :class:`Role`. It reads the principal that ``JWTAuthMiddleware``
attached to the request and rejects wrong roles with 403. Guards compose with
any route through ``Depends`` and return the principal for the handler.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import Request

from ..services.auth_service import Principal, Role
from .error_handler import ApiError

logger = logging.getLogger(__name__)


class RoleGuard:
    def __init__(self, role: Optional[Role] = None) -> None:
        self.role = role

    def __call__(self, request: Request) -> Principal:
        principal = getattr(request.state, "auth", None)
        if not isinstance(principal, Principal):
            raise ApiError(401, "unauthorized")
        if self.role is not None and principal.role != self.role:
            logger.warning(
                f"Access denied: {principal.user_name} ({principal.role.value}) "
                f"on {request.method} {request.url.path} requires {self.role.value}"
            )
            raise ApiError(403, "forbidden")
        return principal


any_role = RoleGuard()
admin_only = RoleGuard(Role.ADMIN)
player_only = RoleGuard(Role.PLAYER)


def log_admin_operation(
    operation: str,
    user: Principal,
    details: Optional[Dict[str, Any]] = None,
) -> None:
    """Write an audit line for an admin mutation."""
    log_entry: Dict[str, Any] = {
        "event_type": "admin_operation",
        "operation": operation,
        "username": user.user_name,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if details:
        log_entry["details"] = details
    logger.info(f"ADMIN_OPERATION: {log_entry}")
