from __future__ import annotations

import logging
from dataclasses import dataclass

from pydantic import EmailStr, TypeAdapter, ValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from oauth2_accounts.db.models import OAuth2Identity, User
from oauth2_accounts.db.repos import OAuth2IdentityRepository, UserRepository
from oauth2_accounts.db.repos.users import normalize_email
from oauth2_accounts.errors import (
    IdentityAlreadyExistsError,
    MissingUserError,
    UserAlreadyExistsError,
    UserAuthenticationError,
    UserAuthenticationMissingAccountError,
    UserSignupError,
)
from oauth2_accounts.logging_config import log_with_fields
from oauth2_accounts.oauth2.flow import OAuth2UserDetails
from oauth2_accounts.services.legacy_openid import migrate_legacy_openid_identity

logger = logging.getLogger(__name__)

_email_adapter: TypeAdapter[str] = TypeAdapter(EmailStr)


@dataclass(frozen=True)
class AuthenticatedUser:
    user: User
    # "<provider>:<uid>" of the identity used to log in
    identity: str


def format_identity(provider_key: str, uid: str) -> str:
    return f"{provider_key}:{uid}"


def is_valid_email(email: str) -> bool:
    try:
        _email_adapter.validate_python(email)
    except ValidationError:
        return False
    return True


def _identity_in_use() -> IdentityAlreadyExistsError:
    return IdentityAlreadyExistsError("That OAuth2 identity is already in use.")


async def try_login(
    session: AsyncSession,
    provider_key: str,
    details: OAuth2UserDetails,
    *,
    legacy_migration: bool = True,
) -> AuthenticatedUser:
    if not details.uid:
        raise UserAuthenticationError("No UID found.", reason="missing_uid")

    user = await UserRepository(session).get_by_oauth2_identity(provider_key, details.uid)
    if user is not None:
        return AuthenticatedUser(user=user, identity=format_identity(provider_key, details.uid))

    if legacy_migration:
        migrated = await migrate_legacy_openid_identity(session, provider_key, details)
        if migrated is not None:
            return AuthenticatedUser(
                user=migrated, identity=format_identity(provider_key, details.uid)
            )

    raise UserAuthenticationMissingAccountError(f"No such '{provider_key}' user found.")


async def try_signup(
    session: AsyncSession,
    provider_key: str,
    details: OAuth2UserDetails,
    *,
    require_email: bool = False,
) -> User:
    users = UserRepository(session)
    identities = OAuth2IdentityRepository(session)

    email = normalize_email(details.email) if details.email else None
    if email or require_email:
        if not email:
            raise UserSignupError("No email address found.", reason="missing_email")
        if not is_valid_email(email):
            raise UserSignupError("That is not a valid email.", reason="invalid_email")
        if await users.get_by_email(email) is not None:
            raise UserAlreadyExistsError(f"That email '{email}' is already in use.")

    if not details.uid:
        raise UserSignupError("No UID found.", reason="missing_uid")

    if await identities.get_by_provider_uid(provider_key, details.uid) is not None:
        raise _identity_in_use()

    # The unique constraints on users.email and (provider, uid) catch a
    # concurrent signup that passed the checks above; nothing is committed
    # until both rows are flushed.
    user = User(email=email)
    try:
        await users.add(user)
    except IntegrityError as exc:
        await session.rollback()
        raise UserAlreadyExistsError(f"That email '{email}' is already in use.") from exc

    try:
        await identities.add(
            OAuth2Identity(user_id=user.id, provider=provider_key, uid=details.uid)
        )
    except IntegrityError as exc:
        await session.rollback()
        raise _identity_in_use() from exc

    await session.commit()
    log_with_fields(
        logger,
        logging.INFO,
        "oauth2 signup created user",
        user_id=user.id,
        provider=provider_key,
    )
    return user


async def add_identity(
    session: AsyncSession,
    user: User | None,
    provider_key: str,
    details: OAuth2UserDetails,
) -> OAuth2Identity:
    if user is None:
        raise MissingUserError()

    if not details.uid:
        raise UserSignupError("No UID found.", reason="missing_uid")

    identities = OAuth2IdentityRepository(session)
    if await identities.get_by_provider_uid(provider_key, details.uid) is not None:
        raise _identity_in_use()

    identity = OAuth2Identity(user_id=user.id, provider=provider_key, uid=details.uid)
    try:
        await identities.add(identity)
    except IntegrityError as exc:
        await session.rollback()
        raise _identity_in_use() from exc

    await session.commit()
    return identity


async def remove_identity(
    session: AsyncSession,
    user: User | None,
    provider_key: str,
    uid: str,
) -> bool:
    """Unlink one OAuth2 identity from ``user``.

    Returns False when the user holds no such identity.
    """
    if user is None:
        raise MissingUserError()

    identities = OAuth2IdentityRepository(session)
    identity = await identities.get_for_user(user.id, provider_key, uid)
    if identity is None:
        return False

    await identities.delete(identity, flush=False)
    await session.commit()
    return True


async def list_identities(session: AsyncSession, user: User) -> list[OAuth2Identity]:
    return await OAuth2IdentityRepository(session).list_by_user_id(user.id)
