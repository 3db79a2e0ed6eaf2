from __future__ import annotations

from fastapi import Request

from .config import Settings
from .services.store import QuestStore


def get_store(request: Request) -> QuestStore:
    return request.app.state.store


def get_settings(request: Request) -> Settings:
    return request.app.state.settings
