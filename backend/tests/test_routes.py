"""
Admin route tests: health and manual invalidation.
"""

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from static_thumbs.app import create_app
from static_thumbs.cache_admin import CacheAdmin
from static_thumbs.config import MountConfig
from static_thumbs.middleware import CACHE_HEADER
from static_thumbs.routes_fastapi import create_router
from conftest import CountingEngine, make_image


def client_for(app):
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


@pytest.fixture
def variants(static_dir):
    cache = static_dir / ".cache"
    return [
        make_image(cache / "width:100" / "photos" / "cat.jpg", size=(100, 50)),
        make_image(cache / "height:20,width:40" / "photos" / "cat.jpg", size=(40, 20)),
        make_image(cache / "width:100" / "logo.png", size=(100, 100)),
    ]


class TestCacheAdmin:

    @pytest.mark.asyncio
    async def test_invalidate_removes_all_variants_of_one_source(self, config, variants):
        removed = await CacheAdmin(config).invalidate("photos/cat.jpg")

        assert removed == 2
        assert not variants[0].exists()
        assert not variants[1].exists()
        assert variants[2].exists()

    @pytest.mark.asyncio
    async def test_invalidate_normalizes_traversal(self, config, variants, tmp_path):
        outside = make_image(tmp_path / "width:100" / "keep.jpg", size=(5, 5))

        removed = await CacheAdmin(config).invalidate("../../keep.jpg")

        assert removed == 0
        assert outside.exists()

    @pytest.mark.asyncio
    async def test_invalidate_without_cache_dir(self, config):
        assert await CacheAdmin(config).invalidate("photos/cat.jpg") == 0

    @pytest.mark.asyncio
    async def test_stats(self, config, variants):
        stats = await CacheAdmin(config).get_stats()

        assert stats["variant_sets"] == 2
        assert stats["total_files"] == 3
        assert stats["total_size_bytes"] > 0
        assert stats["stale_policy"] == "fail"
        assert stats["key_strategy"] == "literal"


class TestRoutes:

    @pytest.mark.asyncio
    async def test_health(self, config, variants):
        app = FastAPI()
        app.include_router(create_router(config))
        async with client_for(app) as client:
            response = await client.get("/api/static-thumbs/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["cache_stats"]["total_files"] == 3

    @pytest.mark.asyncio
    async def test_invalidate_endpoint(self, config, variants):
        app = FastAPI()
        app.include_router(create_router(config))
        async with client_for(app) as client:
            response = await client.delete("/api/static-thumbs/cache", params={"path": "photos/cat.jpg"})

        assert response.status_code == 200
        assert response.json()["removed_entries"] == 2

    @pytest.mark.asyncio
    async def test_invalidate_requires_path(self, config):
        app = FastAPI()
        app.include_router(create_router(config))
        async with client_for(app) as client:
            response = await client.delete("/api/static-thumbs/cache")

        assert response.status_code == 422


@pytest.mark.asyncio
async def test_edit_invalidate_rerender(static_dir):
    """Stale variants stay unserved until invalidated, then render again."""
    import os

    engine = CountingEngine()
    config = MountConfig.build(static_dir, mount_path="/static")
    app = create_app(config, engine=engine)
    source = static_dir / "photos" / "cat.jpg"

    async with client_for(app) as client:
        first = await client.get("/static/photos/cat.jpg?width=100")
        assert first.headers[CACHE_HEADER] == "MISS"

        cached = static_dir / ".cache" / "width:100" / "photos" / "cat.jpg"
        os.utime(cached, (1_000_000, 1_000_000))
        os.utime(source, (2_000_000, 2_000_000))

        stale = await client.get("/static/photos/cat.jpg?width=100")
        assert stale.status_code == 404

        cleared = await client.delete("/api/static-thumbs/cache", params={"path": "photos/cat.jpg"})
        assert cleared.json()["removed_entries"] == 1

        again = await client.get("/static/photos/cat.jpg?width=100")
        assert again.headers[CACHE_HEADER] == "MISS"

    assert engine.call_count == 2
