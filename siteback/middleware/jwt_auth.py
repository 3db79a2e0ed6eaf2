from __future__ import annotations

"""
Bearer-token enforcement for the API.

Every request to a routed path outside the public ones must carry
``Authorization: Bearer <token>``. Missing, malformed, forged or expired
tokens are answered with ``401 {"error": "unauthorized"}`` before any route
runs. Paths no route matches pass through to the 404 handler. A valid token's
:class:`Principal` is attached to ``request.state.auth``; role checks happen
per route in :mod:`siteback.middleware.rbac`.
"""

import logging
from typing import Iterable
from urllib.parse import unquote

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Match

from ..services.auth_service import verify_jwt_token
from ..utils.auth import get_authorization_header, parse_authorization_token

logger = logging.getLogger(__name__)

# Exact paths, or prefixes when ending with a slash.
DEFAULT_EXEMPT: tuple[str, ...] = (
    "/health",
    "/api/auth/",
    "/docs",
    "/redoc",
    "/openapi.json",
)


def _is_exempt(path: str, exempt: Iterable[str]) -> bool:
    for p in exempt:
        if p.endswith("/") and path.startswith(p):
            return True
        if path == p:
            return True
    return False


def _matches_route(request: Request) -> bool:
    # Unrouted paths fall through to the 404 handler without a token.
    app = request.scope.get("app")
    if app is None:
        return True
    for route in app.router.routes:
        match, _ = route.matches(request.scope)
        if match is not Match.NONE:
            return True
    return False


def _unauthorized() -> JSONResponse:
    return JSONResponse(
        {"error": "unauthorized"},
        status_code=401,
        headers={"WWW-Authenticate": "Bearer"},
    )


class JWTAuthMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, exempt_paths: Iterable[str] = DEFAULT_EXEMPT) -> None:
        super().__init__(app)
        self.exempt_paths = tuple(exempt_paths)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint):
        path = unquote(request.scope.get("path", "") or request.url.path)

        # CORS preflight carries no credentials
        if (
            request.method == "OPTIONS"
            or _is_exempt(path, self.exempt_paths)
            or not _matches_route(request)
        ):
            return await call_next(request)

        try:
            token = parse_authorization_token(get_authorization_header(request.headers))
        except ValueError as e:
            logger.debug(f"Unauthorized {request.method} {path}: {e}")
            return _unauthorized()

        principal = verify_jwt_token(token)
        if principal is None:
            return _unauthorized()

        request.state.auth = principal
        return await call_next(request)
