from __future__ import annotations

import hashlib
import hmac

from ..utils.jwt_secret import get_jwt_secret


def hash_key(password: str) -> str:
    """
    Derive the stored verification value for a password.

    HMAC-SHA256 of the trimmed password keyed with the server secret, as a
    64-character hex digest. The output is deterministic so users can be
    looked up by equality on ``keyHash``.
    """
    secret = get_jwt_secret()
    return hmac.new(
        secret.encode("utf-8"),
        str(password).strip().encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()
