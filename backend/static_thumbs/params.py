"""
Transform Parameter Encoding

Turns a request's query string into the transform parameters the engine
understands, and turns those parameters into a filesystem-safe directory
name so each distinct parameter set gets its own cache subtree.
"""

import hashlib
import json
import re
from typing import Dict, Mapping

from .config import KeyStrategy

# Query keys the transform engine understands; anything else is dropped
RECOGNIZED_PARAMS = (
    "width",
    "height",
    "withoutEnlargement",
    "background",
    "crop",
    "flatten",
    "max",
    "min",
)

_UNSAFE_CHARS = re.compile(r"[^\w,=:]", re.ASCII)

_FALSY_FLAGS = {"", "0", "false", "no", "off"}

HASH_SEGMENT_LENGTH = 16


def parse_transform_params(query: Mapping[str, str]) -> Dict[str, str]:
    """
    Keep only recognized transform keys from a parsed query string.

    For repeated keys the mapping's own lookup decides which value wins
    (Starlette's QueryParams returns the last one).
    """
    return {key: str(query[key]) for key in RECOGNIZED_PARAMS if key in query}


def canonical_params(params: Mapping[str, str]) -> str:
    """Serialize params to JSON with sorted keys so key order never matters."""
    return json.dumps(dict(params), sort_keys=True, separators=(",", ":"))


def safe_segment(params: Mapping[str, str]) -> str:
    """
    Strip the canonical form down to word characters, commas, equals and colons.

    Example:
        {"width": "100", "height": "50"} -> "height:50,width:100"
    """
    return _UNSAFE_CHARS.sub("", canonical_params(params))


def hashed_segment(params: Mapping[str, str]) -> str:
    digest = hashlib.sha256(canonical_params(params).encode("utf-8")).hexdigest()
    return digest[:HASH_SEGMENT_LENGTH]


def encode_params(
    params: Mapping[str, str],
    strategy: KeyStrategy = KeyStrategy.LITERAL,
) -> str:
    """Cache subdirectory name for a parameter set."""
    if strategy == KeyStrategy.HASH:
        return hashed_segment(params)
    return safe_segment(params)


def is_flag_set(value) -> bool:
    """Flags count as on unless missing or spelled like "false"."""
    if value is None:
        return False
    return str(value).strip().lower() not in _FALSY_FLAGS
