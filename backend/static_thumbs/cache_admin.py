"""
Cache Administration

Manual invalidation and statistics for the on-disk variant cache.

Cache structure:
cache_dir/
├── height:50,width:100/
│   └── photos/cat.jpg
├── width:200/
│   └── photos/cat.jpg
└── ...

Stale variants are never replaced automatically under the default policy,
so invalidating a source's variants is how an edited image gets re-rendered.
"""

import asyncio
import logging
import os
from pathlib import Path
from typing import Dict, List

from .config import MountConfig
from .paths import normalize_relative

logger = logging.getLogger(__name__)


class CacheAdmin:
    """Maintenance operations over one mount's cache directory."""

    def __init__(self, config: MountConfig):
        self.config = config

    def _variant_paths(self, relative_path: str) -> List[Path]:
        cache_root = self.config.cache_dir
        if not relative_path or not cache_root.is_dir():
            return []
        parts = relative_path.split("/")
        found = []
        for segment_dir in cache_root.iterdir():
            if not segment_dir.is_dir():
                continue
            candidate = segment_dir.joinpath(*parts)
            if candidate.is_file():
                found.append(candidate)
        return found

    def _invalidate_sync(self, relative_path: str) -> int:
        removed = 0
        for path in self._variant_paths(relative_path):
            try:
                path.unlink()
                removed += 1
                logger.debug(f"[StaticThumbs] Removed variant: {path}")
            except FileNotFoundError:
                # Another request removed it first
                continue
        return removed

    async def invalidate(self, path: str) -> int:
        """
        Remove every cached variant of a source file.

        Args:
            path: Path of the source relative to the static root; "." and ".."
                are collapsed the same way request paths are

        Returns:
            Number of variant files removed.
        """
        relative = normalize_relative(path)
        removed = await asyncio.to_thread(self._invalidate_sync, relative)
        logger.info(f"[StaticThumbs] Invalidated {removed} variants of {relative or '/'}")
        return removed

    def _scan(self) -> Dict[str, int]:
        files = 0
        total = 0
        segments = 0
        cache_root = self.config.cache_dir
        if cache_root.is_dir():
            for segment_dir in cache_root.iterdir():
                if not segment_dir.is_dir():
                    continue
                segments += 1
                for dirpath, _, filenames in os.walk(segment_dir):
                    for name in filenames:
                        try:
                            total += os.path.getsize(os.path.join(dirpath, name))
                            files += 1
                        except OSError:
                            continue
        return {"variant_sets": segments, "total_files": files, "total_size_bytes": total}

    async def get_stats(self) -> dict:
        """Get cache statistics."""
        scanned = await asyncio.to_thread(self._scan)
        return {
            **scanned,
            "total_size_mb": round(scanned["total_size_bytes"] / (1024 * 1024), 2),
            "cache_dir": str(self.config.cache_dir),
            "stale_policy": self.config.stale_policy.value,
            "key_strategy": self.config.key_strategy.value,
        }
