from __future__ import annotations

from pathlib import Path

from fastapi import HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.responses import Response
from starlette.templating import Jinja2Templates

from oauth2_accounts.auth import SESSION_IDENTITY_KEY
from oauth2_accounts.db.models import User
from oauth2_accounts.errors import (
    MissingUserError,
    OAuth2AccountError,
    UserAlreadyExistsError,
    UserAuthenticationCancelledError,
    UserAuthenticationError,
    UserAuthenticationMissingAccountError,
)
from oauth2_accounts.oauth2.client import OAuth2Client
from oauth2_accounts.oauth2.providers import (
    enabled_provider_keys,
    get_provider_config,
    get_provider_configs,
    oauth_client,
    provider_enabled,
)
from oauth2_accounts.policy import build_login_policy
from oauth2_accounts.security.audit import audit_oauth2_denied
from oauth2_accounts.security.audit_constants import OAUTH2_REASON_PROVIDER_DISABLED
from oauth2_accounts.services import list_identities

templates_dir = Path(__file__).resolve().parent.parent / "templates"
templates = Jinja2Templates(directory=str(templates_dir))

# Module-level indirection so tests can swap in fake clients and policies.
oauth2_client = oauth_client
login_policy = build_login_policy
is_provider_enabled = provider_enabled


def provider_client_or_404(provider: str, *, event: str) -> OAuth2Client:
    if not is_provider_enabled(provider):
        audit_oauth2_denied(
            event=event,
            reason=OAUTH2_REASON_PROVIDER_DISABLED,
            provider=provider,
        )
        raise HTTPException(status_code=404)
    return oauth2_client(provider)


def provider_authorize_params(provider: str) -> dict[str, str]:
    config = get_provider_config(provider)
    if config is None:
        return {}
    return dict(config.authorize_params)


def status_code_for(exc: OAuth2AccountError | MissingUserError) -> int:
    if isinstance(exc, UserAuthenticationCancelledError):
        return 403
    if isinstance(exc, UserAuthenticationMissingAccountError):
        return 404
    if isinstance(exc, UserAuthenticationError):
        return 401
    if isinstance(exc, UserAlreadyExistsError):
        return 409
    return 400


def _provider_choices() -> list[dict[str, str]]:
    return [
        {"key": config.key, "display_name": config.display_name}
        for config in get_provider_configs().values()
    ]


def render_login_template(
    request: Request,
    *,
    error: str | None,
    status_code: int = 200,
) -> Response:
    return templates.TemplateResponse(
        request,
        "login.html",
        {
            "error": error,
            "providers": _provider_choices(),
        },
        status_code=status_code,
    )


async def render_profile_template(
    request: Request,
    *,
    session: AsyncSession,
    user: User,
    identity_error: str | None = None,
    status_code: int = 200,
) -> Response:
    identities = await list_identities(session, user)
    return templates.TemplateResponse(
        request,
        "profile.html",
        {
            "user": user,
            "current_identity": request.session.get(SESSION_IDENTITY_KEY),
            "identities": identities,
            "linkable_providers": enabled_provider_keys(),
            "identity_error": identity_error,
        },
        status_code=status_code,
    )
