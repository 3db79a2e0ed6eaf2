"""
Resolution of the server signing secret.

The same secret signs access tokens and keys the credential HMAC, so it must
stay stable across restarts. Lookup order:

  1. ``JWT_SECRET`` environment variable.
  2. AWS Secrets Manager, when ``JWT_SECRET_NAME`` names a secret whose JSON
     payload carries a ``jwt_secret`` field. A configured but unreadable
     secret is a startup error.
  3. The well-known insecure default ``change-me``. This keeps local
     development working but lets anyone forge tokens and recompute key
     hashes, so a warning is logged the first time it is used.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Optional

from botocore.exceptions import BotoCoreError, ClientError

from ..aws_clients import secretsmanager_client

logger = logging.getLogger(__name__)

INSECURE_DEFAULT_SECRET = "change-me"

_JWT_SECRET_CACHE: Optional[str] = None


def read_secret_field(secret_name: str, field: str) -> str:
    """
    Read one field from a JSON secret in AWS Secrets Manager.

    Raises:
        RuntimeError: If the secret cannot be fetched or lacks the field.
    """
    try:
        response = secretsmanager_client().get_secret_value(SecretId=secret_name)
        secret_string = response.get("SecretString")
        if not secret_string:
            raise ValueError("SecretString is empty")
        value = json.loads(secret_string).get(field)
        if not value:
            raise ValueError(f"{field} field not found in secret")
    except (ClientError, BotoCoreError, ValueError) as e:
        error_msg = f"Error retrieving '{field}' from Secrets Manager secret '{secret_name}': {e}"
        logger.error(error_msg)
        raise RuntimeError(error_msg) from e
    logger.info(f"Retrieved '{field}' from Secrets Manager: {secret_name}")
    return value


def get_jwt_secret() -> str:
    global _JWT_SECRET_CACHE

    if _JWT_SECRET_CACHE is not None:
        return _JWT_SECRET_CACHE

    env_secret = os.getenv("JWT_SECRET")
    secret_name = os.getenv("JWT_SECRET_NAME")
    if env_secret:
        _JWT_SECRET_CACHE = env_secret
    elif secret_name:
        _JWT_SECRET_CACHE = read_secret_field(secret_name, "jwt_secret")
    else:
        logger.warning(
            "JWT_SECRET is not set. Falling back to the insecure default secret; "
            "tokens and key hashes are forgeable. Set JWT_SECRET or JWT_SECRET_NAME."
        )
        _JWT_SECRET_CACHE = INSECURE_DEFAULT_SECRET
    return _JWT_SECRET_CACHE


def clear_jwt_secret_cache() -> None:
    """Clear the cached secret. Used by tests and after secret rotation."""
    global _JWT_SECRET_CACHE
    _JWT_SECRET_CACHE = None
