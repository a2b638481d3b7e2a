"""
Static Thumbs Middleware

HTTP middleware that serves images from a static directory, resizing them
on demand and caching each resized variant on disk.

Per request exactly one of these happens:
- a file response (cached variant, fresh render, or the original image)
- the request is handed to the next handler untouched

Usage:
    app = FastAPI()
    app.add_middleware(StaticThumbsMiddleware, static_dir="./static", serve_static=True)

    # or as a plain dispatch function
    app.middleware("http")(static_middleware("./static"))

    GET /static/photos/cat.jpg?width=200&height=200&crop=north
"""

import logging
from typing import Awaitable, Callable, Mapping, Optional

from fastapi import Request
from fastapi.responses import FileResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from starlette.types import ASGIApp

from .config import MountConfig
from .filesystem import Filesystem, LocalFilesystem
from .orchestrator import CacheOrchestrator
from .params import parse_transform_params
from .paths import resolve_request
from .transform import TransformEngine

logger = logging.getLogger(__name__)

CallNext = Callable[[Request], Awaitable[Response]]

CACHE_HEADER = "X-Thumb-Cache"
STATIC_STATUS = "STATIC"

# Vector formats are served as-is, never rasterized
RESIZE_EXEMPT_SUFFIXES = (".svg",)

SERVED_METHODS = {"GET", "HEAD"}


def should_resize(request_path: str, params: Mapping[str, str]) -> bool:
    """True when width or height is given and the file type can be resized."""
    if request_path.lower().endswith(RESIZE_EXEMPT_SUFFIXES):
        return False
    return bool(params.get("width") or params.get("height"))


class ThumbnailDispatcher:
    """
    Per-request entry point.

    Callable with the `(request, call_next)` signature Starlette uses for
    http middleware functions.
    """

    def __init__(
        self,
        config: MountConfig,
        orchestrator: Optional[CacheOrchestrator] = None,
        filesystem: Optional[Filesystem] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.config = config
        self.logger = logger or logging.getLogger(__name__)
        self.filesystem = filesystem or LocalFilesystem()
        self.orchestrator = orchestrator or CacheOrchestrator(
            filesystem=self.filesystem,
            stale_policy=config.stale_policy,
            logger=self.logger,
        )

    async def __call__(self, request: Request, call_next: CallNext) -> Response:
        return await self.handle(request, call_next)

    async def handle(self, request: Request, call_next: CallNext) -> Response:
        # scope["path"] is already percent-decoded; request.url re-parses it and
        # would cut a filename at a decoded "#" or "?"
        request_path = request.scope["path"]
        self.logger.debug(f"[StaticThumbs] Attempting to handle {request_path}")

        if request.method not in SERVED_METHODS or not self.config.handles(request_path):
            return await call_next(request)

        params = parse_transform_params(request.query_params)
        resolved = resolve_request(self.config, request_path, params)

        try:
            source_stat = await self.filesystem.stat(resolved.source_path)
        except (OSError, ValueError) as e:
            self.logger.debug(f"[StaticThumbs] {request_path} next(): {e}")
            return await call_next(request)

        if not source_stat.is_file:
            self.logger.debug(f"[StaticThumbs] {request_path} next(): not a file")
            return await call_next(request)

        resize = should_resize(request_path, params)
        outcome = None

        if resize:
            try:
                outcome = await self.orchestrator.resolve(
                    source_stat,
                    resolved.source_path,
                    resolved.cache_path,
                    params,
                )
            except Exception as e:
                self.logger.error(f"[StaticThumbs] Failed to resolve {request_path}: {e}")

        if outcome is not None:
            self.logger.debug(f"[StaticThumbs] {request_path} -> {outcome.path} ({outcome.status.value})")
            return FileResponse(outcome.path, headers={CACHE_HEADER: outcome.status.value})

        if not resize and self.config.serve_static:
            self.logger.debug(f"[StaticThumbs] {request_path} -> {resolved.source_path} (static)")
            return FileResponse(resolved.source_path, headers={CACHE_HEADER: STATIC_STATUS})

        self.logger.debug(f"[StaticThumbs] {request_path} next(): nothing to serve")
        return await call_next(request)


def static_middleware(
    static_dir,
    cache_dir=None,
    serve_static: bool = False,
    engine: Optional[TransformEngine] = None,
    filesystem: Optional[Filesystem] = None,
    logger: Optional[logging.Logger] = None,
    **options,
) -> ThumbnailDispatcher:
    """
    Build a dispatch function for a static image directory.

    Args:
        static_dir: Root directory of the source images
        cache_dir: Where resized variants go (default <static_dir>/.cache)
        serve_static: Serve untransformed files when no resize is requested
        engine: Transform engine (default Pillow)
        filesystem: Filesystem access (default local disk)
        logger: Where diagnostics go (default this module's logger)
        **options: mount_prefix_segments, stale_policy, key_strategy, mount_path

    Returns:
        A `(request, call_next)` callable
    """
    config = MountConfig.build(static_dir, cache_dir=cache_dir, serve_static=serve_static, **options)
    fs = filesystem or LocalFilesystem()
    log = logger or logging.getLogger(__name__)
    orchestrator = CacheOrchestrator(
        engine=engine,
        filesystem=fs,
        stale_policy=config.stale_policy,
        logger=log,
    )
    return ThumbnailDispatcher(config, orchestrator=orchestrator, filesystem=fs, logger=log)


class StaticThumbsMiddleware(BaseHTTPMiddleware):
    """Class form of static_middleware() for app.add_middleware()."""

    def __init__(self, app: ASGIApp, static_dir, **options):
        self.dispatcher = static_middleware(static_dir, **options)
        super().__init__(app, dispatch=self.dispatcher)
