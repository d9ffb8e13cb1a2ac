"""Two-phase OAuth2 authorization.

Phase 1 runs when the inbound request has no authorization code: the caller
gets a redirect to the provider and the request ends there. Phase 2 runs on
the provider's callback, which carries the code: the login policy is
checked, the code is exchanged for a token and the user's details are
resolved. Authlib keeps the anti-forgery ``state`` in the session cookie; no
other server-side state survives between the phases.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field

from authlib.integrations.starlette_client import OAuthError
from authlib.jose.errors import JoseError
from fastapi import Request
from starlette.responses import Response

from oauth2_accounts.errors import (
    UserAuthenticationCancelledError,
    UserAuthenticationError,
)
from oauth2_accounts.logging_config import log_with_fields
from oauth2_accounts.oauth2.client import OAuth2Client
from oauth2_accounts.policy import LoginPolicy

logger = logging.getLogger(__name__)

AUTHORIZATION_CODE_PARAM = "code"


@dataclass(frozen=True)
class OAuth2UserDetails:
    uid: str
    email: str | None = None
    name: str | None = None
    # Claims of the ID token, when the provider issued one.
    id_token: Mapping[str, object] = field(default_factory=dict)


def has_authorization_code(request: Request) -> bool:
    return bool(request.query_params.get(AUTHORIZATION_CODE_PARAM, "").strip())


def provider_error(request: Request) -> str | None:
    error = request.query_params.get("error", "").strip()
    return error or None


async def begin_authorization(
    request: Request,
    client: OAuth2Client,
    redirect_uri: str,
    extra_params: Mapping[str, str] | None = None,
) -> Response:
    params = dict(extra_params or {})
    return await client.authorize_redirect(request, redirect_uri, **params)


def _optional_str(value: object) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def user_details_from_claims(
    claims: Mapping[str, object],
    *,
    id_token: Mapping[str, object] | None = None,
) -> OAuth2UserDetails:
    # OpenID Connect providers use `sub`; GitHub and Facebook return `id`.
    uid = _optional_str(claims.get("sub")) or _optional_str(claims.get("id")) or ""
    email = _optional_str(claims.get("email"))
    return OAuth2UserDetails(
        uid=uid,
        email=email.lower() if email is not None else None,
        name=_optional_str(claims.get("name")),
        id_token=dict(id_token or {}),
    )


async def _parse_id_token_claims(
    client: OAuth2Client, token: Mapping[str, object]
) -> Mapping[str, object] | None:
    parsed = token.get("userinfo")
    if isinstance(parsed, Mapping):
        return parsed

    if "id_token" not in token:
        return None

    try:
        return await client.parse_id_token(token, nonce=None)
    except (JoseError, KeyError, ValueError) as exc:
        log_with_fields(
            logger,
            logging.INFO,
            "id_token could not be parsed; falling back to userinfo",
            error=type(exc).__name__,
        )
        return None


async def resolve_user_details(
    client: OAuth2Client, token: Mapping[str, object]
) -> OAuth2UserDetails:
    id_token_claims = await _parse_id_token_claims(client, token)
    if id_token_claims is not None and _optional_str(id_token_claims.get("sub")):
        return user_details_from_claims(id_token_claims, id_token=id_token_claims)

    userinfo = await client.userinfo(token=token)
    return user_details_from_claims(userinfo, id_token=id_token_claims)


async def complete_authorization(
    request: Request,
    *,
    provider_key: str,
    client: OAuth2Client,
    policy: LoginPolicy,
) -> OAuth2UserDetails:
    error = provider_error(request)
    if error is not None:
        raise UserAuthenticationError(
            "Login with OAuth2 was cancelled or refused by the provider.",
            reason=f"provider_error:{error}",
        )

    decision = policy.check(request, provider_key)
    if not decision.allowed:
        raise UserAuthenticationCancelledError(
            "Login was cancelled by the system.",
            reason=decision.reason or "cancelled",
        )

    try:
        token = await client.authorize_access_token(request)
    except OAuthError as exc:
        log_with_fields(
            logger,
            logging.INFO,
            "oauth2 token exchange failed",
            provider=provider_key,
            error=exc.error,
        )
        raise UserAuthenticationError(
            "Could not login user with OAuth2.", reason="oauth_error"
        ) from exc

    return await resolve_user_details(client, token)


async def authenticate(
    request: Request,
    *,
    provider_key: str,
    client: OAuth2Client,
    redirect_uri: str,
    policy: LoginPolicy,
    authorize_params: Mapping[str, str] | None = None,
) -> Response | OAuth2UserDetails:
    """Run whichever phase the request is in.

    Returns the provider redirect when there is no code yet, and the resolved
    user details once the provider has called back.
    """
    if not has_authorization_code(request) and provider_error(request) is None:
        return await begin_authorization(request, client, redirect_uri, authorize_params)

    return await complete_authorization(
        request,
        provider_key=provider_key,
        client=client,
        policy=policy,
    )
