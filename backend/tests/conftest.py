"""
Static Thumbs test configuration

Fixtures build a throwaway static directory with real images (written with
Pillow) and a FastAPI app that runs the resize middleware in front of a
catch-all route, so tests can tell "served by the middleware" apart from
"deferred to the next handler".
"""

import os
import sys
from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.responses import JSONResponse
from PIL import Image

# Add the backend directory to the import path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

from static_thumbs.config import MountConfig
from static_thumbs.errors import TransformError
from static_thumbs.middleware import static_middleware
from static_thumbs.transform import PillowTransformEngine

NEXT_HANDLER = "next-handler"


# ============================================
# Test doubles
# ============================================

class CountingEngine:
    """Transform engine wrapper that records every call."""

    def __init__(self, inner=None, fail: bool = False):
        self.inner = inner or PillowTransformEngine()
        self.fail = fail
        self.calls = []

    @property
    def call_count(self) -> int:
        return len(self.calls)

    async def transform(self, source_path, destination_path, params):
        self.calls.append((Path(source_path), Path(destination_path), dict(params)))
        if self.fail:
            raise TransformError("engine failure requested by test")
        await self.inner.transform(source_path, destination_path, params)


# ============================================
# Helpers
# ============================================

def make_image(path: Path, size=(400, 200), color=(200, 30, 30), mode="RGB", fmt=None) -> Path:
    """Write a solid-color image, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new(mode, size, color).save(path, format=fmt)
    return path


def set_mtime(path: Path, seconds: float) -> None:
    os.utime(path, (seconds, seconds))


def image_size(path: Path):
    with Image.open(path) as im:
        return im.size


def build_app(static_dir: Path, **options) -> FastAPI:
    """App with the middleware in front of a catch-all 'next' route."""
    app = FastAPI()

    @app.api_route("/{path:path}", methods=["GET", "HEAD", "POST"])
    async def next_handler(path: str):
        return JSONResponse(content={"handled_by": NEXT_HANDLER, "path": path}, status_code=404)

    app.middleware("http")(static_middleware(static_dir, **options))
    return app


# ============================================
# Fixtures
# ============================================

@pytest.fixture
def static_dir(tmp_path):
    """
    Static root with a few images:
    - photos/cat.jpg   400x200 JPEG
    - logo.png         100x100 RGBA PNG
    - icon.svg         vector, never resized
    - docs/            directory, never served
    """
    root = tmp_path / "static"
    make_image(root / "photos" / "cat.jpg", size=(400, 200))
    make_image(root / "logo.png", size=(100, 100), color=(0, 0, 255, 128), mode="RGBA")
    (root / "icon.svg").write_text(
        '<svg xmlns="http://www.w3.org/2000/svg" width="10" height="10"></svg>'
    )
    (root / "docs").mkdir()
    return root


@pytest.fixture
def config(static_dir):
    return MountConfig.build(static_dir)


@pytest.fixture
def engine():
    return CountingEngine()
