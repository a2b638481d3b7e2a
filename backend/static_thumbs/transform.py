"""
Transform Engine

Resize-family image transforms backed by Pillow.

Supported parameters (all values arrive as query-string text):
- width / height       target size in pixels; one alone keeps aspect ratio
- crop                 gravity for the cover-and-crop resize (default centre)
- max                  fit inside width x height, no crop
- min                  cover width x height, no crop
- withoutEnlargement   never upscale past the source size
- flatten              composite transparency over `background`
- background           color used by flatten and by alpha-less output formats
"""

import asyncio
import logging
import os
import re
import uuid
from pathlib import Path
from typing import Mapping, Optional, Protocol, Tuple, Union

from PIL import Image, ImageColor, ImageOps

from .errors import TransformError
from .params import is_flag_set

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

# Pillow centering for ImageOps.fit, keyed by compass gravity
GRAVITY_CENTERING = {
    "center": (0.5, 0.5),
    "centre": (0.5, 0.5),
    "north": (0.5, 0.0),
    "northeast": (1.0, 0.0),
    "east": (1.0, 0.5),
    "southeast": (1.0, 1.0),
    "south": (0.5, 1.0),
    "southwest": (0.0, 1.0),
    "west": (0.0, 0.5),
    "northwest": (0.0, 0.0),
}

DEFAULT_FLATTEN_BACKGROUND = (0, 0, 0)
DEFAULT_MATTE_BACKGROUND = (255, 255, 255)

# Formats that can't store an alpha channel
_OPAQUE_FORMATS = {"JPEG", "BMP", "PPM"}

_DIGITS = re.compile(r"[0-9]+")


class TransformEngine(Protocol):
    """Anything that can write a transformed copy of an image to a path."""

    async def transform(
        self,
        source_path: PathLike,
        destination_path: PathLike,
        params: Mapping[str, str],
    ) -> None:
        """Write the variant to destination_path; raise TransformError on failure."""
        ...


def parse_dimension(value: Optional[str], name: str) -> Optional[int]:
    """Decimal pixel count, or None when the parameter is absent/empty."""
    if value is None or str(value).strip() == "":
        return None
    text = str(value).strip()
    if not _DIGITS.fullmatch(text):
        raise TransformError(f"Invalid {name}: {value!r}")
    number = int(text, 10)
    if number <= 0:
        raise TransformError(f"Invalid {name}: {value!r}")
    return number


def parse_color(value: Optional[str], default: Tuple[int, int, int]) -> Tuple[int, ...]:
    if value is None or str(value).strip() == "":
        return default
    try:
        return ImageColor.getrgb(str(value).strip())
    except ValueError as e:
        raise TransformError(f"Invalid background: {value!r}") from e


def parse_gravity(value: Optional[str]) -> Tuple[float, float]:
    if value is None or str(value).strip() == "":
        return GRAVITY_CENTERING["center"]
    key = str(value).strip().lower()
    if key not in GRAVITY_CENTERING:
        raise TransformError(f"Invalid crop gravity: {value!r}")
    return GRAVITY_CENTERING[key]


def plan_resize(
    source_size: Tuple[int, int],
    width: Optional[int],
    height: Optional[int],
    params: Mapping[str, str],
) -> Tuple[str, Tuple[int, int]]:
    """
    Decide how to resize.

    Returns:
        ("none", size), ("scale", size) or ("crop", size)
    """
    src_w, src_h = source_size

    if width is None and height is None:
        return "none", (src_w, src_h)

    if width is not None and height is not None:
        if is_flag_set(params.get("max")):
            scale = min(width / src_w, height / src_h)
            mode = "scale"
        elif is_flag_set(params.get("min")):
            scale = max(width / src_w, height / src_h)
            mode = "scale"
        else:
            scale = max(width / src_w, height / src_h)
            mode = "crop"
    elif width is not None:
        scale = width / src_w
        mode = "scale"
    else:
        scale = height / src_h
        mode = "scale"

    if scale > 1 and is_flag_set(params.get("withoutEnlargement")):
        return "none", (src_w, src_h)

    if mode == "crop":
        return "crop", (width, height)

    target = (max(1, round(src_w * scale)), max(1, round(src_h * scale)))
    return "scale", target


def _has_alpha(img: Image.Image) -> bool:
    return img.mode in ("RGBA", "LA", "PA") or (
        img.mode == "P" and "transparency" in img.info
    )


def _composite(img: Image.Image, color: Tuple[int, ...]) -> Image.Image:
    """Paint the image over a solid background, dropping its alpha channel."""
    rgba = img.convert("RGBA")
    background = Image.new("RGBA", rgba.size, tuple(color[:3]) + (255,))
    background.alpha_composite(rgba)
    return background.convert("RGB")


def _output_format(destination: Path, fallback: Optional[str]) -> str:
    ext = destination.suffix.lower()
    fmt = Image.registered_extensions().get(ext) or fallback
    if not fmt:
        raise TransformError(f"Cannot determine output format for {destination}")
    return fmt


def render(source_path: PathLike, destination_path: PathLike, params: Mapping[str, str]) -> None:
    """
    Blocking transform: read the source, resize, write the destination.

    The result is written to a temporary file beside the destination and
    moved into place, so a concurrent reader never sees a partial file.
    """
    destination = Path(destination_path)
    width = parse_dimension(params.get("width"), "width")
    height = parse_dimension(params.get("height"), "height")
    centering = parse_gravity(params.get("crop"))

    tmp_path = destination.with_name(f".{destination.name}.{uuid.uuid4().hex[:8]}.tmp")
    replaced = False
    try:
        with Image.open(source_path) as src:
            src.load()
            fmt = _output_format(destination, src.format)
            img = src

            mode, size = plan_resize(img.size, width, height, params)
            if mode == "crop":
                img = ImageOps.fit(img, size, method=Image.Resampling.LANCZOS, centering=centering)
            elif mode == "scale" and size != img.size:
                img = img.resize(size, Image.Resampling.LANCZOS)

            if is_flag_set(params.get("flatten")) and _has_alpha(img):
                img = _composite(img, parse_color(params.get("background"), DEFAULT_FLATTEN_BACKGROUND))

            if fmt in _OPAQUE_FORMATS and img.mode not in ("RGB", "L"):
                if _has_alpha(img):
                    img = _composite(img, parse_color(params.get("background"), DEFAULT_MATTE_BACKGROUND))
                else:
                    img = img.convert("RGB")

            img.save(tmp_path, format=fmt)
        os.replace(tmp_path, destination)
        replaced = True
    except TransformError:
        raise
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        raise TransformError(f"Failed to transform {source_path}: {e}") from e
    finally:
        if not replaced:
            _discard(tmp_path)


def _discard(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"[StaticThumbs] Failed to remove temp file {path}: {e}")


class PillowTransformEngine:
    """Default engine: runs the Pillow pipeline in a worker thread."""

    async def transform(
        self,
        source_path: PathLike,
        destination_path: PathLike,
        params: Mapping[str, str],
    ) -> None:
        await asyncio.to_thread(render, source_path, destination_path, params)
        logger.debug(f"[StaticThumbs] Rendered {source_path} -> {destination_path}")
