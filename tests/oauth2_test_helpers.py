from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import pytest
from fastapi.responses import RedirectResponse
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from oauth2_accounts.db.models import OAuth2Identity, User
from oauth2_accounts.web.routes import common

IDP_AUTHORIZE_URL = "https://idp.example.test/authorize"


@dataclass
class FakeOAuth2Client:
    """Stands in for an Authlib client; returns ``claims`` from the exchange.

    Claims carrying ``sub`` come back as parsed ID token claims, everything
    else is served from ``userinfo``.
    """

    claims: dict[str, object]
    exchange_error: Exception | None = None
    redirects: list[tuple[str, dict[str, Any]]] = field(default_factory=list)
    exchanges: int = 0

    async def authorize_redirect(
        self,
        request: object,
        redirect_uri: str,
        **kwargs: Any,
    ) -> RedirectResponse:
        self.redirects.append((redirect_uri, dict(kwargs)))
        return RedirectResponse(url=IDP_AUTHORIZE_URL, status_code=302)

    async def authorize_access_token(self, request: object) -> dict[str, object]:
        self.exchanges += 1
        if self.exchange_error is not None:
            raise self.exchange_error
        token: dict[str, object] = {"access_token": "test-token"}
        if "sub" in self.claims:
            token["id_token"] = "id-token"
            token["userinfo"] = dict(self.claims)
        return token

    async def parse_id_token(
        self, token: Mapping[str, object], nonce: object = None, **kwargs: Any
    ) -> Mapping[str, object]:
        return self.claims

    async def userinfo(self, *, token: Mapping[str, object]) -> Mapping[str, object]:
        return self.claims


def enable_google_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OAUTH2_ACCOUNTS_GOOGLE_CLIENT_ID", "test-client")
    monkeypatch.setenv("OAUTH2_ACCOUNTS_GOOGLE_CLIENT_SECRET", "test-secret")


def install_fake_client(monkeypatch: pytest.MonkeyPatch, fake: FakeOAuth2Client) -> None:
    enable_google_env(monkeypatch)
    monkeypatch.setattr(common, "oauth2_client", lambda key: fake)


async def count_rows(session: AsyncSession, model: type[User] | type[OAuth2Identity]) -> int:
    result = await session.execute(select(func.count()).select_from(model))
    return int(result.scalar_one())


async def get_identity(session: AsyncSession, provider: str, uid: str) -> OAuth2Identity | None:
    result = await session.execute(
        select(OAuth2Identity)
        .where(OAuth2Identity.provider == provider, OAuth2Identity.uid == uid)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()
