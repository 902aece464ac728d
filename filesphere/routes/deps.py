from __future__ import annotations
from fastapi import HTTPException, Request, WebSocket

from filesphere.config import Settings, settings
from filesphere.feature_modules.thumbnails.service import ThumbnailGenerator
from filesphere.services.index_service import IndexService


def get_index(request: Request) -> IndexService:
    index = getattr(request.app.state, "index", None)
    if index is None:
        raise HTTPException(status_code=503, detail="Index is not running")
    return index


def get_index_ws(websocket: WebSocket) -> IndexService:
    return websocket.app.state.index


def get_thumbnails(request: Request) -> ThumbnailGenerator:
    gen = getattr(request.app.state, "thumbnails", None)
    if gen is None:
        gen = request.app.state.thumbnails = ThumbnailGenerator()
    return gen


def get_settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", None) or settings
