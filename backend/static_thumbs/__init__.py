"""
Static Thumbs Module

Serves static images over HTTP, resizing them on request and caching each
resized variant on disk.

Features:
- Cache path per (parameter set, relative path), independent of key order
- Modification-time staleness check against the source
- Falls back to the original image when a resize fails
- Defers to the next handler for anything it can't serve
"""

from .config import KeyStrategy, MountConfig, StalePolicy
from .errors import SourceMissingError, StaleCacheError, StaticThumbsError, TransformError
from .middleware import StaticThumbsMiddleware, ThumbnailDispatcher, static_middleware
from .orchestrator import CacheOrchestrator
from .transform import PillowTransformEngine

__all__ = [
    "CacheOrchestrator",
    "KeyStrategy",
    "MountConfig",
    "PillowTransformEngine",
    "SourceMissingError",
    "StaleCacheError",
    "StalePolicy",
    "StaticThumbsError",
    "StaticThumbsMiddleware",
    "ThumbnailDispatcher",
    "TransformError",
    "static_middleware",
]
