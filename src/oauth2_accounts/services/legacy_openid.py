"""One-off migration from pre-OAuth2 OpenID accounts.

Users who signed up with the old OpenID scheme have a row in
``user_openid_identities`` but no OAuth2 identity. When Google is asked for
the matching ``openid.realm`` it adds an ``openid_id`` claim to the ID token,
which lets a first OAuth2 login be attached to the old account.

Remove this module (and the ``user_openid_identities`` table) once every
legacy account has logged in through OAuth2 at least once.
"""

from __future__ import annotations

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from oauth2_accounts.db.models import OAuth2Identity, User
from oauth2_accounts.db.repos import (
    OAuth2IdentityRepository,
    OpenIdIdentityRepository,
    UserRepository,
)
from oauth2_accounts.oauth2.flow import OAuth2UserDetails
from oauth2_accounts.security.audit import audit_oauth2_success
from oauth2_accounts.security.audit_constants import OAUTH2_EVENT_LEGACY_OPENID_MIGRATION


def openid_id_from_details(details: OAuth2UserDetails) -> str | None:
    raw = details.id_token.get("openid_id")
    if raw is None:
        return None
    openid_id = str(raw).strip()
    return openid_id or None


async def migrate_legacy_openid_identity(
    session: AsyncSession,
    provider_key: str,
    details: OAuth2UserDetails,
) -> User | None:
    openid_id = openid_id_from_details(details)
    if openid_id is None:
        return None

    legacy = await OpenIdIdentityRepository(session).get_by_identity(openid_id)
    if legacy is None:
        return None

    users = UserRepository(session)
    user = await users.get_by_id(legacy.user_id)
    if user is None:
        return None

    identities = OAuth2IdentityRepository(session)
    try:
        await identities.add(
            OAuth2Identity(user_id=legacy.user_id, provider=provider_key, uid=details.uid)
        )
        await session.commit()
    except IntegrityError:
        # A concurrent login already attached this identity.
        await session.rollback()
        return await users.get_by_oauth2_identity(provider_key, details.uid)

    audit_oauth2_success(
        event=OAUTH2_EVENT_LEGACY_OPENID_MIGRATION,
        actor=user,
        provider=provider_key,
        openid_identity=openid_id,
    )
    return user
