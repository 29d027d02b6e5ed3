"""Shared test constants, fixtures, and factory functions."""

import itertools
from collections.abc import AsyncIterator
from typing import Any

import fakeredis
import fakeredis.aioredis
import pytest
from httpx import ASGITransport, AsyncClient

from blog_post_api.config import Settings
from blog_post_api.main import app
from blog_post_api.models import BlogPost, PostCreate
from blog_post_api.store import MemoryPostStore, PostStore, RedisPostStore

# -- Constants --

SEED_COUNT = 10
WIRE_KEYS = {"id", "author", "content", "title", "created"}
MISSING_ID = "0" * 32

_FIRST_NAMES = ("Ada", "Grace", "Alan", "Edsger", "Barbara", "Donald")
_LAST_NAMES = ("Lovelace", "Hopper", "Turing", "Dijkstra", "Liskov", "Knuth")
_seq = itertools.count(1)


# -- Factories --


def make_settings(**overrides: Any) -> Settings:
    """Create a Settings instance with test defaults. Override any field."""
    defaults: dict[str, Any] = {"database_url": "memory://"}
    return Settings(**(defaults | overrides))


def make_post_data(**overrides: Any) -> dict[str, Any]:
    """Create a unique POST /posts body. Override any top-level field."""
    n = next(_seq)
    payload: dict[str, Any] = {
        "author": {
            "firstName": _FIRST_NAMES[n % len(_FIRST_NAMES)],
            "lastName": _LAST_NAMES[n % len(_LAST_NAMES)],
        },
        "title": f"Post number {n}",
        "content": f"Body of post {n}. Lorem ipsum dolor sit amet.",
    }
    return payload | overrides


def make_post_create(**overrides: Any) -> PostCreate:
    return PostCreate.model_validate(make_post_data(**overrides))


# -- Fixtures --


@pytest.fixture(params=["memory", "redis"])
async def store(request: pytest.FixtureRequest) -> AsyncIterator[PostStore]:
    """A fresh, empty store per test, for each backend."""
    backend: PostStore
    if request.param == "redis":
        backend = RedisPostStore(fakeredis.aioredis.FakeRedis(server=fakeredis.FakeServer()))
    else:
        backend = MemoryPostStore()
    yield backend
    await backend.drop()
    await backend.aclose()


@pytest.fixture
async def seeded_posts(store: PostStore) -> list[BlogPost]:
    """Seed the store with SEED_COUNT posts."""
    return await store.insert_many(make_post_create() for _ in range(SEED_COUNT))


@pytest.fixture
async def client(store: PostStore) -> AsyncIterator[AsyncClient]:
    """AsyncClient wired to the FastAPI app with a per-test store."""
    app.state.settings = make_settings()
    app.state.store = store
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
