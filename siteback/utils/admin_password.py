"""
Password for the seeded ``admin`` account.

``ADMIN_PASSWORD`` wins, then the ``password`` field of the Secrets Manager
secret named by ``ADMIN_SECRET_NAME``, then the development default.
"""

from __future__ import annotations

import logging
import os

from .jwt_secret import read_secret_field

logger = logging.getLogger(__name__)

DEFAULT_ADMIN_PASSWORD = "admin"


def get_admin_password() -> str:
    env_password = os.getenv("ADMIN_PASSWORD")
    if env_password:
        return env_password

    secret_name = os.getenv("ADMIN_SECRET_NAME")
    if secret_name:
        return read_secret_field(secret_name, "password")

    logger.warning("ADMIN_PASSWORD is not set; seeding the admin account with the default password")
    return DEFAULT_ADMIN_PASSWORD
