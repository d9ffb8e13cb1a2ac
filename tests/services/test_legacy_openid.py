from __future__ import annotations

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from oauth2_accounts.db.models import OAuth2Identity, OpenIdIdentity, User
from oauth2_accounts.db.repos import UserRepository
from oauth2_accounts.errors import UserAuthenticationMissingAccountError
from oauth2_accounts.oauth2.flow import OAuth2UserDetails
from oauth2_accounts.services import migrate_legacy_openid_identity, try_login
from oauth2_accounts.services.legacy_openid import openid_id_from_details
from tests.oauth2_test_helpers import count_rows, get_identity

LEGACY_OPENID = "https://openid.example/u1"


async def _create_legacy_user(session: AsyncSession) -> User:
    user = User(email="legacy@example.com")
    session.add(user)
    await session.flush()
    session.add(OpenIdIdentity(user_id=user.id, identity=LEGACY_OPENID))
    await session.commit()
    return user


def test_openid_id_from_details() -> None:
    assert openid_id_from_details(OAuth2UserDetails(uid="x")) is None
    assert openid_id_from_details(OAuth2UserDetails(uid="x", id_token={"openid_id": " "})) is None
    assert (
        openid_id_from_details(OAuth2UserDetails(uid="x", id_token={"openid_id": LEGACY_OPENID}))
        == LEGACY_OPENID
    )


@pytest.mark.asyncio
async def test_login_migrates_legacy_openid_account(db_session: AsyncSession) -> None:
    legacy_user = await _create_legacy_user(db_session)

    authenticated = await try_login(
        db_session,
        "google",
        OAuth2UserDetails(uid="xyz", id_token={"sub": "xyz", "openid_id": LEGACY_OPENID}),
    )

    assert authenticated.user.id == legacy_user.id
    assert authenticated.identity == "google:xyz"
    identity = await get_identity(db_session, "google", "xyz")
    assert identity is not None
    assert identity.user_id == legacy_user.id


@pytest.mark.asyncio
async def test_second_login_after_migration_uses_new_identity(db_session: AsyncSession) -> None:
    legacy_user = await _create_legacy_user(db_session)
    details = OAuth2UserDetails(uid="xyz", id_token={"openid_id": LEGACY_OPENID})

    await try_login(db_session, "google", details)
    again = await try_login(db_session, "google", details)

    assert again.user.id == legacy_user.id
    assert await count_rows(db_session, OAuth2Identity) == 1


@pytest.mark.asyncio
async def test_no_migration_without_openid_claim(db_session: AsyncSession) -> None:
    await _create_legacy_user(db_session)

    with pytest.raises(UserAuthenticationMissingAccountError):
        await try_login(db_session, "google", OAuth2UserDetails(uid="xyz", id_token={"sub": "xyz"}))

    assert await count_rows(db_session, OAuth2Identity) == 0


@pytest.mark.asyncio
async def test_no_migration_without_matching_legacy_row(db_session: AsyncSession) -> None:
    await _create_legacy_user(db_session)

    with pytest.raises(UserAuthenticationMissingAccountError):
        await try_login(
            db_session,
            "google",
            OAuth2UserDetails(uid="xyz", id_token={"openid_id": "https://openid.example/other"}),
        )

    assert await count_rows(db_session, OAuth2Identity) == 0


@pytest.mark.asyncio
async def test_migration_can_be_disabled(db_session: AsyncSession) -> None:
    await _create_legacy_user(db_session)

    with pytest.raises(UserAuthenticationMissingAccountError):
        await try_login(
            db_session,
            "google",
            OAuth2UserDetails(uid="xyz", id_token={"openid_id": LEGACY_OPENID}),
            legacy_migration=False,
        )


@pytest.mark.asyncio
async def test_migrate_returns_none_when_nothing_to_migrate(db_session: AsyncSession) -> None:
    assert (
        await migrate_legacy_openid_identity(db_session, "google", OAuth2UserDetails(uid="xyz"))
        is None
    )


@pytest.mark.asyncio
async def test_legacy_row_without_user_writes_nothing(db_session: AsyncSession) -> None:
    db_session.add(OpenIdIdentity(user_id=999, identity="https://openid.example/gone"))
    await db_session.commit()

    with pytest.raises(UserAuthenticationMissingAccountError):
        await try_login(
            db_session,
            "google",
            OAuth2UserDetails(uid="xyz", id_token={"openid_id": "https://openid.example/gone"}),
        )

    assert await count_rows(db_session, OAuth2Identity) == 0


@pytest.mark.asyncio
async def test_concurrent_migration_returns_identity_owner(
    db_session: AsyncSession,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    legacy_user = await _create_legacy_user(db_session)
    legacy_user_id = legacy_user.id
    db_session.add(OAuth2Identity(user_id=legacy_user_id, provider="google", uid="xyz"))
    await db_session.commit()

    original_lookup = UserRepository.get_by_oauth2_identity
    calls = 0

    async def _first_lookup_misses(self: UserRepository, provider: str, uid: str) -> User | None:
        nonlocal calls
        calls += 1
        if calls == 1:
            return None
        return await original_lookup(self, provider, uid)

    # Another login attached the identity between the lookup and the migration.
    monkeypatch.setattr(UserRepository, "get_by_oauth2_identity", _first_lookup_misses)

    authenticated = await try_login(
        db_session,
        "google",
        OAuth2UserDetails(uid="xyz", id_token={"openid_id": LEGACY_OPENID}),
    )

    assert authenticated.user.id == legacy_user_id
    assert authenticated.identity == "google:xyz"
    assert calls == 2
    assert await count_rows(db_session, OAuth2Identity) == 1


@pytest.mark.asyncio
async def test_migration_conflict_returns_owner_directly(db_session: AsyncSession) -> None:
    legacy_user = await _create_legacy_user(db_session)
    legacy_user_id = legacy_user.id
    db_session.add(OAuth2Identity(user_id=legacy_user_id, provider="google", uid="xyz"))
    await db_session.commit()

    migrated = await migrate_legacy_openid_identity(
        db_session,
        "google",
        OAuth2UserDetails(uid="xyz", id_token={"openid_id": LEGACY_OPENID}),
    )

    assert migrated is not None
    assert migrated.id == legacy_user_id
    assert await count_rows(db_session, OAuth2Identity) == 1
