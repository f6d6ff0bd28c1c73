from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from app.core.middleware import RateLimitMiddleware


def _app(limit, login_limit):
    app = FastAPI()
    app.add_middleware(RateLimitMiddleware, limit_per_minute=limit, login_limit_per_minute=login_limit)

    @app.get("/ping")
    async def ping():
        return {"ok": True}

    @app.post("/api/v1/auth/login")
    async def login():
        return {"ok": True}

    return app


async def test_rate_limit_returns_429_after_limit():
    async with AsyncClient(transport=ASGITransport(app=_app(3, 3)), base_url="http://test") as client:
        statuses = [(await client.get("/ping")).status_code for _ in range(4)]
    assert statuses == [200, 200, 200, 429]


async def test_login_has_a_stricter_limit():
    async with AsyncClient(transport=ASGITransport(app=_app(10, 2)), base_url="http://test") as client:
        statuses = [(await client.post("/api/v1/auth/login")).status_code for _ in range(3)]
        assert statuses == [200, 200, 429]
        response = await client.post("/api/v1/auth/login")
    assert response.json() == {"error": "Too many requests. Please try again later."}


async def test_zero_disables_limiting():
    async with AsyncClient(transport=ASGITransport(app=_app(0, 0)), base_url="http://test") as client:
        statuses = {(await client.get("/ping")).status_code for _ in range(20)}
    assert statuses == {200}
