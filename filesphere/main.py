import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import Settings, settings as default_settings
from .feature_modules.thumbnails.service import ThumbnailGenerator
from .routes.events_ws import router as events_ws_router
from .routes.files import router as files_router
from .services.broadcast import BroadcastGateway
from .services.index_service import IndexService
from .services.spatial import SpatialAssigner
from .services.visibility import LodThresholds

logger = logging.getLogger("uvicorn.error")


def build_index(cfg: Settings) -> IndexService:
    return IndexService(
        cfg.scan_dir,
        assigner=SpatialAssigner(
            cfg.inner_radius,
            cfg.outer_radius,
            size_range=(cfg.spatial_min_size, cfg.spatial_max_size),
        ),
        gateway=BroadcastGateway(cfg.broadcast_queue_size),
        thresholds=LodThresholds(mid=cfg.lod_mid_threshold, far=cfg.lod_far_threshold),
    )


def create_app(cfg: Optional[Settings] = None, *, start_indexer: bool = True) -> FastAPI:
    cfg = cfg or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        index = build_index(cfg)
        app.state.index = index
        app.state.settings = cfg
        app.state.thumbnails = ThumbnailGenerator(cfg.thumb_size, cfg.thumb_quality)
        if start_indexer:
            await index.start()
            logger.info("filesphere: indexing %s", index.root)
        try:
            yield
        finally:
            await index.stop()

    app = FastAPI(title="filesphere", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.allowed_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(files_router)
    app.include_router(events_ws_router)

    @app.get("/healthz")
    async def healthz():
        return {"ok": True}

    return app


app = create_app()


def run() -> None:
    import uvicorn

    uvicorn.run(
        "filesphere.main:app",
        host=default_settings.app_host,
        port=default_settings.app_port,
        log_level=default_settings.log_level,
    )


if __name__ == "__main__":
    run()
