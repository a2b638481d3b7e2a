"""
Static Thumbs API Routes

Provides endpoints for:
- GET    /api/static-thumbs/health  - Cache statistics / health
- DELETE /api/static-thumbs/cache   - Drop every cached variant of one source
"""

import logging

from fastapi import APIRouter, Query
from pydantic import BaseModel, Field

from .cache_admin import CacheAdmin
from .config import MountConfig

logger = logging.getLogger(__name__)


# ============================================
# Response Models
# ============================================

class CacheStats(BaseModel):
    """Snapshot of the variant cache on disk"""
    variant_sets: int = Field(..., description="Distinct parameter directories")
    total_files: int
    total_size_bytes: int
    total_size_mb: float
    cache_dir: str
    stale_policy: str
    key_strategy: str

class HealthResponse(BaseModel):
    status: str
    service: str
    static_dir: str
    serve_static: bool
    cache_stats: CacheStats

class InvalidateResponse(BaseModel):
    """Response model for invalidation"""
    success: bool
    path: str
    removed_entries: int


# ============================================
# Router
# ============================================

def create_router(config: MountConfig) -> APIRouter:
    """Build the admin router for one mount configuration."""
    admin = CacheAdmin(config)
    router = APIRouter(prefix="/api/static-thumbs", tags=["Static Thumbs"])

    @router.get("/health", response_model=HealthResponse)
    async def health_check():
        """Health check endpoint."""
        return HealthResponse(
            status="healthy",
            service="static-thumbs",
            static_dir=str(config.static_dir),
            serve_static=config.serve_static,
            cache_stats=CacheStats(**await admin.get_stats()),
        )

    @router.delete("/cache", response_model=InvalidateResponse)
    async def invalidate_cache(
        path: str = Query(..., description="Source path relative to the static root"),
    ):
        """
        Remove all cached variants of one source image.

        The next resize request for it renders a fresh variant.

        Example:
            DELETE /api/static-thumbs/cache?path=photos/cat.jpg
        """
        removed = await admin.invalidate(path)
        return InvalidateResponse(success=True, path=path, removed_entries=removed)

    return router
