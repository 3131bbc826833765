import pytest
from fastapi.testclient import TestClient
from fastapi_limiter import FastAPILimiter

from storefront.app_setup.factory import create_app


@pytest.fixture
def limiter_env(monkeypatch):
    monkeypatch.delenv("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", raising=False)
    monkeypatch.delenv("USE_FAKE_REDIS_FOR_TESTS", raising=False)
    monkeypatch.delenv("LOCAL_RATE_LIMIT_FALLBACK", raising=False)
    monkeypatch.setattr(FastAPILimiter, "redis", None)
    return monkeypatch


def test_unreachable_redis_with_local_fallback_limits_checkout(limiter_env, store):
    limiter_env.setenv("RATE_LIMIT_REDIS_URL", "redis://127.0.0.1:1/0")
    limiter_env.setenv("LOCAL_RATE_LIMIT_FALLBACK", "1")
    app = create_app()
    with TestClient(app) as client:
        assert app.state.rate_limit_enabled is True
        assert client.get("/health/rate-limit").json()["backend"] == "memory"
        codes = [client.post("/api/v1/payments/checkout", json={"type": "nope"}).status_code for _ in range(11)]
    assert codes[:10] == [422] * 10
    assert codes[10] == 429


def test_unreachable_redis_without_fallback_disables_limiting(limiter_env, store):
    limiter_env.setenv("RATE_LIMIT_REDIS_URL", "redis://127.0.0.1:1/0")
    app = create_app()
    with TestClient(app) as client:
        assert app.state.rate_limit_enabled is False
        assert client.get("/health").json() == {"ok": True}


def test_fake_redis_startup(limiter_env):
    limiter_env.setenv("USE_FAKE_REDIS_FOR_TESTS", "1")
    app = create_app()
    with TestClient(app) as client:
        # fakeredis sans moteur Lua: fastapi-limiter refuse l'init et le rate limiting est coupé
        assert isinstance(app.state.rate_limit_enabled, bool)
        assert client.get("/health").status_code == 200
