"""
Cache Orchestrator

Decides, per request, whether a resized variant can be served from the
cache, has to be rendered, or can't be produced at all.

States:
- NO_CACHE_ENTRY  nothing cached yet -> render into the cache
- CACHE_FRESH     cached variant at least as new as the source -> reuse
- CACHE_STALE     source modified after caching -> StalePolicy decides
- SOURCE_MISSING  source gone or not a regular file -> error

Render failures never propagate: the source path is returned instead so the
caller can still serve the original image.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Mapping, Optional

from .config import StalePolicy
from .errors import SourceMissingError, StaleCacheError
from .filesystem import FileStat, Filesystem, LocalFilesystem
from .transform import PillowTransformEngine, TransformEngine

logger = logging.getLogger(__name__)


class CacheState(str, Enum):
    NO_CACHE_ENTRY = "no_cache_entry"
    CACHE_FRESH = "cache_fresh"
    CACHE_STALE = "cache_stale"
    SOURCE_MISSING = "source_missing"


class CacheStatus(str, Enum):
    """How a served variant was obtained."""
    HIT = "HIT"        # fresh entry reused
    MISS = "MISS"      # rendered on this request
    BYPASS = "BYPASS"  # render failed, source returned instead


@dataclass(frozen=True)
class CacheOutcome:
    path: Path
    status: CacheStatus


def classify(source_stat: FileStat, cache_stat: Optional[FileStat]) -> CacheState:
    """Pure staleness decision from two metadata snapshots."""
    if not source_stat.exists or not source_stat.is_file:
        return CacheState.SOURCE_MISSING
    if cache_stat is None or not cache_stat.exists:
        return CacheState.NO_CACHE_ENTRY
    if source_stat.mtime_ns > cache_stat.mtime_ns:
        return CacheState.CACHE_STALE
    return CacheState.CACHE_FRESH


class CacheOrchestrator:
    """
    Staleness decider and cache filler.

    Holds no per-request state; one instance serves every request of a
    middleware. Concurrent fills for the same variant are not deduplicated:
    each renders and the last write wins.
    """

    def __init__(
        self,
        engine: Optional[TransformEngine] = None,
        filesystem: Optional[Filesystem] = None,
        stale_policy: StalePolicy = StalePolicy.FAIL,
        logger: Optional[logging.Logger] = None,
    ):
        self.engine = engine or PillowTransformEngine()
        self.filesystem = filesystem or LocalFilesystem()
        self.stale_policy = StalePolicy(stale_policy)
        self.logger = logger or logging.getLogger(__name__)

    async def inspect(self, source_stat: FileStat, cache_path: Path) -> CacheState:
        """Stat the cached variant and classify it against the source."""
        try:
            cache_stat = await self.filesystem.stat(cache_path)
        except OSError as e:
            self.logger.debug(f"[StaticThumbs] No cache entry at {cache_path}: {e}")
            cache_stat = None
        return classify(source_stat, cache_stat)

    async def resolve(
        self,
        source_stat: FileStat,
        source_path: Path,
        cache_path: Path,
        params: Mapping[str, str],
    ) -> CacheOutcome:
        """
        Return the path that should be served for this variant.

        Args:
            source_stat: Metadata of the source, already read by the caller
            source_path: Original image
            cache_path: Where the variant lives (or will live)
            params: Transform parameters

        Returns:
            CacheOutcome whose path is cache_path when fresh or freshly
            rendered, source_path when rendering failed

        Raises:
            StaleCacheError: Source is newer than the cache and the policy is FAIL
            SourceMissingError: Source metadata says there is no regular file
        """
        state = await self.inspect(source_stat, cache_path)

        if state == CacheState.SOURCE_MISSING:
            raise SourceMissingError(f"Source is not a regular file: {source_path}")

        if state == CacheState.CACHE_FRESH:
            self.logger.debug(f"[StaticThumbs] Cache hit: {cache_path}")
            return CacheOutcome(cache_path, CacheStatus.HIT)

        if state == CacheState.CACHE_STALE:
            if self.stale_policy == StalePolicy.FAIL:
                self.logger.warning(f"[StaticThumbs] Stale cache entry: {cache_path}")
                raise StaleCacheError(source_path, cache_path)
            self.logger.info(f"[StaticThumbs] Regenerating stale entry: {cache_path}")

        return await self.fill(source_path, cache_path, params)

    async def fill(
        self,
        source_path: Path,
        cache_path: Path,
        params: Mapping[str, str],
    ) -> CacheOutcome:
        """Render the variant into the cache; fall back to the source on any failure."""
        try:
            await self.filesystem.ensure_dir(cache_path.parent)
        except Exception as e:
            self.logger.error(f"[StaticThumbs] Failed to create cache dir {cache_path.parent}: {e}")
            return CacheOutcome(source_path, CacheStatus.BYPASS)

        try:
            await self.engine.transform(source_path, cache_path, params)
        except Exception as e:
            self.logger.error(f"[StaticThumbs] Error caching {source_path}: {e}")
            return CacheOutcome(source_path, CacheStatus.BYPASS)

        self.logger.info(f"[StaticThumbs] Cached {source_path} -> {cache_path}")
        return CacheOutcome(cache_path, CacheStatus.MISS)
