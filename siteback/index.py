from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .config import Settings, load_settings
from .middleware.error_handler import register_error_handlers
from .middleware.jwt_auth import DEFAULT_EXEMPT, JWTAuthMiddleware
from .routes import sessions, system
from .services.auth_public import public_auth
from .services.seed import ensure_seed
from .services.store import QuestStore, create_store

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, store: Optional[QuestStore] = None) -> FastAPI:
    """
    Build the API application.

    The store handle is created (unless one is injected), connected and
    seeded when the application starts, and closed when it shuts down.

    Raises:
        ConfigError: If no settings are given and ``STORE_URI`` is missing.
    """
    settings = settings or load_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        quest_store = store if store is not None else create_store(settings)
        quest_store.connect()
        app.state.store = quest_store
        try:
            if settings.seed_on_startup:
                ensure_seed(quest_store)
            logger.info("siteback API ready")
            yield
        finally:
            quest_store.close()
            logger.info("Store connection closed")

    app = FastAPI(title="siteback quest API", version=__version__, lifespan=lifespan)
    app.state.settings = settings

    register_error_handlers(app)

    app.include_router(system.router)
    app.include_router(public_auth)
    app.include_router(sessions.router)

    app.add_middleware(JWTAuthMiddleware, exempt_paths=DEFAULT_EXEMPT)
    # Added last so it runs first and answers preflight requests
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    return app
