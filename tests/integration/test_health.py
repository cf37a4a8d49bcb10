"""GET /health reports MongoDB and Redis reachability for the auth server."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from routes.health_routes import router as health_router


def _mongo(reachable: bool) -> MagicMock:
    db = MagicMock()
    if reachable:
        db.client.admin.command = AsyncMock(return_value={"ok": 1})
    else:
        db.client.admin.command = AsyncMock(side_effect=ConnectionError("no primary"))
    return db


def _redis(state: str):
    if state == "absent":
        return None
    redis = MagicMock()
    if state == "up":
        redis.ping = AsyncMock(return_value=True)
    else:
        redis.ping = AsyncMock(side_effect=ConnectionError("refused"))
    return redis


@pytest.fixture
def health_app():
    def _make(mongo_up=True, redis="up") -> FastAPI:
        app = FastAPI()
        app.include_router(health_router)
        app.state.db = _mongo(mongo_up)
        app.state.redis = _redis(redis)
        return app

    return _make


@pytest.mark.parametrize(
    "mongo_up, redis, status_code, overall, checks",
    [
        (True, "up", 200, "healthy", {"mongodb": "ok", "redis": "ok"}),
        (True, "absent", 200, "healthy", {"mongodb": "ok", "redis": "not_configured"}),
        (True, "down", 200, "degraded", {"mongodb": "ok", "redis": "error"}),
        (False, "up", 503, "unhealthy", {"mongodb": "error", "redis": "ok"}),
        (False, "down", 503, "unhealthy", {"mongodb": "error", "redis": "error"}),
        (False, "absent", 503, "unhealthy", {"mongodb": "error", "redis": "not_configured"}),
    ],
)
def test_health_matrix(health_app, mongo_up, redis, status_code, overall, checks):
    resp = TestClient(health_app(mongo_up=mongo_up, redis=redis)).get("/health")

    assert resp.status_code == status_code
    assert resp.json() == {"status": overall, "checks": checks}


def test_mongo_is_pinged_through_the_admin_database(health_app):
    app = health_app()

    TestClient(app).get("/health")

    app.state.db.client.admin.command.assert_awaited_once_with("ping")
    app.state.redis.ping.assert_awaited_once()


def test_redis_is_still_checked_when_mongo_is_down(health_app):
    app = health_app(mongo_up=False)

    TestClient(app).get("/health")

    app.state.redis.ping.assert_awaited_once()


def test_missing_database_handle_counts_as_unhealthy():
    app = FastAPI()
    app.include_router(health_router)

    resp = TestClient(app).get("/health")

    assert resp.status_code == 503
    assert resp.json()["checks"] == {"mongodb": "error", "redis": "not_configured"}
