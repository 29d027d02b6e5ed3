"""Tests for the health endpoint, app lifespan and error mapping."""

from unittest.mock import AsyncMock, MagicMock, patch

import fakeredis
import fakeredis.aioredis
import pytest
from fastapi import FastAPI
from httpx import AsyncClient
from redis.exceptions import ConnectionError as RedisConnectionError
from structlog.testing import capture_logs

from blog_post_api.main import app, lifespan, run
from blog_post_api.store import MemoryPostStore, RedisPostStore
from tests.conftest import make_post_create, make_post_data


async def test_health_returns_ok(client: AsyncClient) -> None:
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "store": "memory"}


async def test_lifespan_uses_memory_store_by_default(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("DATABASE_URL", raising=False)
    test_app = FastAPI()
    async with lifespan(test_app):
        assert test_app.state.settings.store_backend == "memory"
        assert isinstance(test_app.state.store, MemoryPostStore)


async def test_lifespan_uses_redis_store_for_redis_url(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URL", "redis://localhost:6379/0")
    test_app = FastAPI()
    async with lifespan(test_app):
        assert isinstance(test_app.state.store, RedisPostStore)


async def test_lifespan_closes_store_and_telemetry() -> None:
    call_order: list[str] = []
    mock_store = AsyncMock()
    mock_store.aclose = AsyncMock(side_effect=lambda: call_order.append("store.aclose"))

    test_app = FastAPI()
    with (
        patch("blog_post_api.main.create_post_store", return_value=mock_store),
        patch(
            "blog_post_api.main.shutdown_telemetry",
            side_effect=lambda: call_order.append("shutdown_telemetry"),
        ),
    ):
        async with lifespan(test_app):
            pass

    assert call_order == ["store.aclose", "shutdown_telemetry"]


async def test_lifespan_shuts_down_telemetry_when_store_close_fails() -> None:
    mock_store = AsyncMock()
    mock_store.aclose = AsyncMock(side_effect=RuntimeError("redis gone"))
    shutdown = MagicMock()

    test_app = FastAPI()
    with (
        patch("blog_post_api.main.create_post_store", return_value=mock_store),
        patch("blog_post_api.main.shutdown_telemetry", shutdown),
        pytest.raises(RuntimeError, match="redis gone"),
    ):
        async with lifespan(test_app):
            pass

    shutdown.assert_called_once()


async def test_store_failure_returns_500(client: AsyncClient) -> None:
    failing = AsyncMock()
    failing.zrange.side_effect = RedisConnectionError("connection refused")
    failing.get.side_effect = RedisConnectionError("connection refused")
    app.state.store = RedisPostStore(failing)

    resp = await client.get("/posts")
    assert resp.status_code == 500
    assert resp.json() == {"detail": "Storage unavailable"}

    resp = await client.get("/posts/abc")
    assert resp.status_code == 500


@pytest.mark.parametrize(
    ("method", "failing_call", "operation"),
    [
        ("post", "pipeline", "insert"),
        ("put", "set", "update"),
        ("delete", "pipeline", "delete"),
    ],
)
async def test_write_store_failure_returns_500(
    client: AsyncClient, method: str, failing_call: str, operation: str
) -> None:
    redis_client = fakeredis.aioredis.FakeRedis(server=fakeredis.FakeServer())
    store = RedisPostStore(redis_client)
    post = await store.insert_one(make_post_create())
    app.state.store = store
    requests = {
        "post": lambda: client.post("/posts", json=make_post_data()),
        "put": lambda: client.put(f"/posts/{post.id}", json={"id": post.id, "title": "New"}),
        "delete": lambda: client.delete(f"/posts/{post.id}"),
    }

    with (
        patch.object(redis_client, failing_call, side_effect=RedisConnectionError("down")),
        patch("blog_post_api.errors.store_errors_total") as counter,
    ):
        resp = await requests[method]()

    assert resp.status_code == 500
    assert resp.json() == {"detail": "Storage unavailable"}
    counter.add.assert_called_once_with(1, {"operation": operation})
    assert await store.find_by_id(post.id) == post


async def test_store_failure_is_logged_once_as_error(client: AsyncClient) -> None:
    failing = AsyncMock()
    failing.get.side_effect = RedisConnectionError("connection refused")
    app.state.store = RedisPostStore(failing)

    with capture_logs() as logs:
        resp = await client.get("/posts/abc")

    assert resp.status_code == 500
    store_events = [e for e in logs if "store" in e["event"]]
    assert len(store_events) == 1
    assert store_events[0]["event"] == "store_error"
    assert store_events[0]["log_level"] == "error"
    assert store_events[0]["operation"] == "find_by_id"


def test_run_serves_app_with_configured_bind(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("HOST", "127.0.0.1")
    monkeypatch.setenv("PORT", "8123")
    with patch("blog_post_api.main.uvicorn.run") as mock_run:
        run()
    mock_run.assert_called_once_with(app, host="127.0.0.1", port=8123, log_level="info")
