from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from datetime import timedelta
from typing import Mapping, Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_DB_NAME = "flightkoy_siteback"
DEFAULT_REGION = "us-east-1"
DEFAULT_TOKEN_LIFETIME = timedelta(days=7)
DEFAULT_PORT = 4000

_DURATION_RE = re.compile(r"^\s*(\d+)\s*([smhd]?)\s*$", re.IGNORECASE)
_DURATION_UNITS = {
    "": "seconds",
    "s": "seconds",
    "m": "minutes",
    "h": "hours",
    "d": "days",
}


class ConfigError(RuntimeError):
    """Raised when the process cannot start with the given environment."""


@dataclass(frozen=True)
class Settings:
    store_uri: str
    store_db_name: str = DEFAULT_DB_NAME
    store_create_tables: bool = False
    aws_region: str = DEFAULT_REGION
    jwt_expires_in: timedelta = DEFAULT_TOKEN_LIFETIME
    seed_on_startup: bool = True
    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT


def parse_duration(raw: str) -> timedelta:
    """
    Parse a token lifetime such as ``7d``, ``12h``, ``30m``, ``45s`` or a
    bare number of seconds.

    Raises:
        ValueError: When the value is not a positive duration.
    """
    match = _DURATION_RE.match(raw or "")
    if not match:
        raise ValueError(f"Unrecognised duration: {raw!r}")
    amount = int(match.group(1))
    if amount <= 0:
        raise ValueError(f"Duration must be positive: {raw!r}")
    unit = _DURATION_UNITS[match.group(2).lower()]
    return timedelta(**{unit: amount})


def _env_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_port(env: Mapping[str, str]) -> int:
    raw = env.get("PORT")
    if not raw:
        return DEFAULT_PORT
    try:
        port = int(raw)
    except ValueError:
        logger.warning(f"Invalid PORT value: {raw}. Using default: {DEFAULT_PORT}")
        return DEFAULT_PORT
    if not 0 < port < 65536:
        logger.warning(f"PORT value {port} is out of range. Using default: {DEFAULT_PORT}")
        return DEFAULT_PORT
    return port


def _env_lifetime(env: Mapping[str, str]) -> timedelta:
    raw = env.get("JWT_EXPIRES_IN")
    if not raw:
        return DEFAULT_TOKEN_LIFETIME
    try:
        return parse_duration(raw)
    except ValueError as e:
        logger.warning(f"Invalid JWT_EXPIRES_IN value: {raw}. Error: {e}. Using default: 7d")
        return DEFAULT_TOKEN_LIFETIME


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build settings from the process environment (after loading ``.env``) or
    from an explicit mapping.

    Raises:
        ConfigError: If ``STORE_URI`` is not set.
    """
    if env is None:
        load_dotenv()
        env = os.environ

    store_uri = (env.get("STORE_URI") or "").strip()
    if not store_uri:
        raise ConfigError("STORE_URI is not set")

    return Settings(
        store_uri=store_uri,
        store_db_name=env.get("STORE_DB_NAME") or DEFAULT_DB_NAME,
        store_create_tables=_env_bool(env, "STORE_CREATE_TABLES", False),
        aws_region=env.get("AWS_REGION") or env.get("AWS_DEFAULT_REGION") or DEFAULT_REGION,
        jwt_expires_in=_env_lifetime(env),
        seed_on_startup=_env_bool(env, "SEED_ON_STARTUP", True),
        host=env.get("HOST") or "0.0.0.0",
        port=_env_port(env),
    )
