"""
Request Path Resolution

Maps an incoming request path onto the source file under the static root
and onto the cached variant under the cache root.

Layout:
    static_dir/<relative path>
    cache_dir/<encoded params>/<relative path>
"""

import posixpath
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from .config import MountConfig
from .params import encode_params


@dataclass(frozen=True)
class ResolvedRequest:
    """Where a request's source and cached variant live on disk."""
    request_path: str
    relative_path: str
    source_path: Path
    cache_key: str
    cache_path: Path


def strip_prefix(request_path: str, segments: int) -> str:
    """Drop the first `segments` "/"-separated components of the path."""
    parts = request_path.split("/")
    return "/".join(parts[segments:])


def normalize_relative(path: str) -> str:
    """
    Collapse "." and ".." components without ever climbing above the root.

    Anchoring at "/" before normpath means excess ".." segments stop at the
    root instead of escaping it.
    """
    normalized = posixpath.normpath("/" + path.replace("\\", "/"))
    return normalized.lstrip("/")


def relative_child_path(request_path: str, strip_segments: int) -> str:
    """Relative path of the requested file inside the static root ("" for the root)."""
    return normalize_relative(strip_prefix(request_path, strip_segments))


def _join(root: Path, relative_path: str) -> Path:
    if not relative_path:
        return root
    return root.joinpath(*relative_path.split("/"))


def source_path_for(config: MountConfig, relative_path: str) -> Path:
    return _join(config.static_dir, relative_path)


def cache_path_for(config: MountConfig, cache_key: str, relative_path: str) -> Path:
    return _join(config.cache_dir / cache_key, relative_path)


def resolve_request(
    config: MountConfig,
    request_path: str,
    params: Mapping[str, str],
) -> ResolvedRequest:
    """
    Resolve both paths for a request.

    Args:
        config: Mount configuration
        request_path: Percent-decoded URL path, query string already removed
        params: Recognized transform parameters

    Returns:
        ResolvedRequest with source and cache locations
    """
    relative = relative_child_path(request_path, config.mount_prefix_segments)
    cache_key = encode_params(params, config.key_strategy)
    return ResolvedRequest(
        request_path=request_path,
        relative_path=relative,
        source_path=source_path_for(config, relative),
        cache_key=cache_key,
        cache_path=cache_path_for(config, cache_key, relative),
    )
