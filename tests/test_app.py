from __future__ import annotations

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_healthz(client: AsyncClient) -> None:
    response = await client.get("/healthz")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_request_id_is_echoed(client: AsyncClient) -> None:
    response = await client.get("/healthz", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"


@pytest.mark.asyncio
async def test_request_id_is_generated(client: AsyncClient) -> None:
    response = await client.get("/healthz")
    assert response.headers["X-Request-ID"]


@pytest.mark.asyncio
async def test_login_page_without_providers(client: AsyncClient) -> None:
    response = await client.get("/login")
    assert response.status_code == 200
    assert "No sign-in providers are configured." in response.text


@pytest.mark.asyncio
async def test_profile_requires_login(client: AsyncClient) -> None:
    response = await client.get("/profile")
    assert response.status_code == 401
