from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.responses import Response

from oauth2_accounts.auth import get_current_user_id, log_in, log_out, require_user
from oauth2_accounts.db import get_session
from oauth2_accounts.db.models import User
from oauth2_accounts.errors import OAuth2AccountError, UserAuthenticationError
from oauth2_accounts.logging_config import log_with_fields
from oauth2_accounts.oauth2.flow import OAuth2UserDetails, authenticate
from oauth2_accounts.security.audit import audit_oauth2_denied, audit_oauth2_success
from oauth2_accounts.security.audit_constants import (
    OAUTH2_EVENT_IDENTITY_LINK,
    OAUTH2_EVENT_LOGIN,
    OAUTH2_EVENT_LOGOUT,
    OAUTH2_EVENT_SIGNUP,
)
from oauth2_accounts.services import add_identity, try_login, try_signup
from oauth2_accounts.services.accounts import format_identity
from oauth2_accounts.settings import get_settings
from oauth2_accounts.web.routes import common

router = APIRouter()
logger = logging.getLogger("uvicorn.error")


async def _authenticate(
    request: Request,
    *,
    provider: str,
    route_name: str,
    event: str,
) -> Response | OAuth2UserDetails:
    client = common.provider_client_or_404(provider, event=event)
    redirect_uri = str(request.url_for(route_name, provider=provider))
    if get_settings().oauth2_debug_logging:
        log_with_fields(
            logger,
            logging.INFO,
            "oauth2 authenticate",
            provider=provider,
            redirect_uri=redirect_uri,
            has_code="code" in request.query_params,
        )
    return await authenticate(
        request,
        provider_key=provider,
        client=client,
        redirect_uri=redirect_uri,
        policy=common.login_policy(),
        authorize_params=common.provider_authorize_params(provider),
    )


@router.get("/login")
async def login_page(request: Request) -> Response:
    return common.render_login_template(request, error=None)


@router.get("/auth/{provider}/login", name="oauth2_login")
async def oauth2_login(
    request: Request,
    provider: str,
    session: AsyncSession = Depends(get_session),
) -> Response:
    settings = get_settings()
    try:
        outcome = await _authenticate(
            request, provider=provider, route_name="oauth2_login", event=OAUTH2_EVENT_LOGIN
        )
        if isinstance(outcome, Response):
            return outcome
        authenticated = await try_login(
            session,
            provider,
            outcome,
            legacy_migration=settings.legacy_openid_migration_enabled,
        )
    except UserAuthenticationError as exc:
        audit_oauth2_denied(event=OAUTH2_EVENT_LOGIN, reason=exc.reason, provider=provider)
        return common.render_login_template(
            request, error=exc.message, status_code=common.status_code_for(exc)
        )

    log_in(request, authenticated.user, authenticated.identity)
    audit_oauth2_success(
        event=OAUTH2_EVENT_LOGIN,
        actor=authenticated.user,
        identity=authenticated.identity,
    )
    return RedirectResponse(url="/profile", status_code=303)


@router.get("/auth/{provider}/signup", name="oauth2_signup")
async def oauth2_signup(
    request: Request,
    provider: str,
    session: AsyncSession = Depends(get_session),
) -> Response:
    settings = get_settings()
    try:
        outcome = await _authenticate(
            request, provider=provider, route_name="oauth2_signup", event=OAUTH2_EVENT_SIGNUP
        )
        if isinstance(outcome, Response):
            return outcome
        user = await try_signup(
            session,
            provider,
            outcome,
            require_email=settings.users_require_email,
        )
    except OAuth2AccountError as exc:
        audit_oauth2_denied(event=OAUTH2_EVENT_SIGNUP, reason=exc.reason, provider=provider)
        return common.render_login_template(
            request, error=exc.message, status_code=common.status_code_for(exc)
        )

    identity = format_identity(provider, outcome.uid)
    log_in(request, user, identity)
    audit_oauth2_success(event=OAUTH2_EVENT_SIGNUP, actor=user, identity=identity)
    return RedirectResponse(url="/profile", status_code=303)


@router.get("/auth/{provider}/link", name="oauth2_link")
async def oauth2_link(
    request: Request,
    provider: str,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_user),
) -> Response:
    try:
        outcome = await _authenticate(
            request,
            provider=provider,
            route_name="oauth2_link",
            event=OAUTH2_EVENT_IDENTITY_LINK,
        )
        if isinstance(outcome, Response):
            return outcome
        identity = await add_identity(session, current_user, provider, outcome)
    except OAuth2AccountError as exc:
        audit_oauth2_denied(
            event=OAUTH2_EVENT_IDENTITY_LINK,
            reason=exc.reason,
            actor=current_user,
            provider=provider,
        )
        return await common.render_profile_template(
            request,
            session=session,
            user=current_user,
            identity_error=exc.message,
            status_code=common.status_code_for(exc),
        )

    audit_oauth2_success(
        event=OAUTH2_EVENT_IDENTITY_LINK,
        actor=current_user,
        identity=identity.identity,
    )
    return RedirectResponse(url="/profile", status_code=303)


@router.post("/logout")
async def logout(request: Request) -> Response:
    user_id = get_current_user_id(request)
    log_out(request)
    if user_id is not None:
        audit_oauth2_success(event=OAUTH2_EVENT_LOGOUT, actor_user_id=user_id)
    return RedirectResponse(url="/login", status_code=303)
