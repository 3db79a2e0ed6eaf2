from __future__ import annotations

import re
from typing import Mapping

_BEARER_RE = re.compile(r"^Bearer\s+(.+)$", re.IGNORECASE)


def get_authorization_header(headers: Mapping[str, str]) -> str | None:
    """Return the ``Authorization`` header value, or ``None`` when absent."""
    if headers is None:
        return None
    return headers.get("authorization") or headers.get("Authorization")


def parse_authorization_token(header_value: str | None) -> str:
    """
    Extract the token from a ``Bearer <token>`` header value.

    Raises:
        ValueError: When the header is missing, uses another scheme, or the
            token component is empty.
    """
    if not header_value:
        raise ValueError("Authorization header missing")

    match = _BEARER_RE.match(header_value.strip())
    if not match:
        raise ValueError("Authorization header is not a bearer token")

    token = match.group(1).strip()
    if not token:
        raise ValueError("Authorization token missing")

    return token
