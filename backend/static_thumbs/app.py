"""
Static Thumbs App

FastAPI application serving a static image directory through the resize
middleware, configured from STATIC_THUMBS_* environment variables.

Run:
    uvicorn static_thumbs.app:app --app-dir backend
"""

import logging
from typing import Optional

from fastapi import FastAPI

from .config import MountConfig
from .middleware import ThumbnailDispatcher
from .orchestrator import CacheOrchestrator
from .routes_fastapi import create_router
from .transform import TransformEngine

logger = logging.getLogger(__name__)


def create_app(
    config: Optional[MountConfig] = None,
    engine: Optional[TransformEngine] = None,
) -> FastAPI:
    """Build the app; config defaults to MountConfig.from_env()."""
    config = config or MountConfig.from_env()

    app = FastAPI(title="Static Thumbs", description="On-demand image resizing for static files")

    orchestrator = CacheOrchestrator(engine=engine, stale_policy=config.stale_policy)
    app.middleware("http")(ThumbnailDispatcher(config, orchestrator=orchestrator))
    app.include_router(create_router(config))

    logger.info(
        f"[StaticThumbs] Serving {config.static_dir} under {config.mount_path or '/'} "
        f"(cache: {config.cache_dir})"
    )
    return app


app = create_app()
