"""
Mount Configuration

Immutable per-middleware settings: where source images live, where resized
variants are cached, and how requests map onto those directories.

Environment variables override defaults for the app factory:
- STATIC_THUMBS_DIR             static root (default ./static)
- STATIC_THUMBS_CACHE_DIR       cache root (default <static root>/.cache)
- STATIC_THUMBS_SERVE_STATIC    serve untransformed files (1/true/yes)
- STATIC_THUMBS_PREFIX_SEGMENTS leading path components to strip
- STATIC_THUMBS_STALE_POLICY    fail | regenerate
- STATIC_THUMBS_KEY_STRATEGY    literal | hash
- STATIC_THUMBS_MOUNT           URL prefix the middleware answers under
"""

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Union

# The empty component before the leading "/" counts as one segment, so the
# default strips "" plus the mount name: /static/a/b.jpg -> a/b.jpg
MOUNT_PREFIX_SEGMENTS = 2

DEFAULT_CACHE_DIRNAME = ".cache"

_TRUTHY = {"1", "true", "yes", "on"}


class StalePolicy(str, Enum):
    """What to do when a source is newer than its cached variant."""
    FAIL = "fail"              # raise StaleCacheError, leave the old variant alone
    REGENERATE = "regenerate"  # overwrite the stale variant


class KeyStrategy(str, Enum):
    """How transform parameters become a cache subdirectory name."""
    LITERAL = "literal"  # stripped canonical text, human readable
    HASH = "hash"        # sha256 of the canonical text


@dataclass(frozen=True)
class MountConfig:
    """Settings shared read-only by every request of one middleware."""
    static_dir: Path
    cache_dir: Path
    serve_static: bool = False
    mount_prefix_segments: int = MOUNT_PREFIX_SEGMENTS
    stale_policy: StalePolicy = StalePolicy.FAIL
    key_strategy: KeyStrategy = KeyStrategy.LITERAL
    mount_path: Optional[str] = None

    def handles(self, request_path: str) -> bool:
        """Whether a request path falls under mount_path (always true when unset)."""
        if not self.mount_path:
            return True
        prefix = self.mount_path.rstrip("/")
        return request_path == prefix or request_path.startswith(prefix + "/")

    @classmethod
    def build(
        cls,
        static_dir: Union[str, Path],
        cache_dir: Optional[Union[str, Path]] = None,
        serve_static: bool = False,
        mount_prefix_segments: int = MOUNT_PREFIX_SEGMENTS,
        stale_policy: Union[str, StalePolicy] = StalePolicy.FAIL,
        key_strategy: Union[str, KeyStrategy] = KeyStrategy.LITERAL,
        mount_path: Optional[str] = None,
    ) -> "MountConfig":
        """
        Normalize user options into a MountConfig.

        Args:
            static_dir: Root directory of the source images
            cache_dir: Root of the resized variants (default <static_dir>/.cache)
            serve_static: Serve the untransformed file when no resize is requested
            mount_prefix_segments: Leading URL path components to strip
            stale_policy: "fail" or "regenerate"
            key_strategy: "literal" or "hash"
            mount_path: Only handle requests under this URL prefix

        Raises:
            ValueError: On an unknown policy/strategy or a negative segment count
        """
        static_root = Path(os.path.abspath(os.path.normpath(str(static_dir))))
        if cache_dir is None:
            cache_root = static_root / DEFAULT_CACHE_DIRNAME
        else:
            cache_root = Path(os.path.abspath(os.path.normpath(str(cache_dir))))

        if mount_prefix_segments < 0:
            raise ValueError(
                f"mount_prefix_segments must be >= 0, got {mount_prefix_segments}"
            )

        return cls(
            static_dir=static_root,
            cache_dir=cache_root,
            serve_static=bool(serve_static),
            mount_prefix_segments=int(mount_prefix_segments),
            stale_policy=StalePolicy(stale_policy),
            key_strategy=KeyStrategy(key_strategy),
            mount_path=mount_path or None,
        )

    @classmethod
    def from_env(cls) -> "MountConfig":
        """Build a config from STATIC_THUMBS_* environment variables."""
        return cls.build(
            static_dir=os.getenv("STATIC_THUMBS_DIR", "./static"),
            cache_dir=os.getenv("STATIC_THUMBS_CACHE_DIR") or None,
            serve_static=os.getenv("STATIC_THUMBS_SERVE_STATIC", "").lower() in _TRUTHY,
            mount_prefix_segments=int(
                os.getenv("STATIC_THUMBS_PREFIX_SEGMENTS", str(MOUNT_PREFIX_SEGMENTS))
            ),
            stale_policy=os.getenv("STATIC_THUMBS_STALE_POLICY", StalePolicy.FAIL.value).lower(),
            key_strategy=os.getenv("STATIC_THUMBS_KEY_STRATEGY", KeyStrategy.LITERAL.value).lower(),
            mount_path=os.getenv("STATIC_THUMBS_MOUNT", "/static"),
        )
