from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from oauth2_accounts.db.models import OAuth2Identity
from oauth2_accounts.db.repos.base import BaseRepository


class OAuth2IdentityRepository(BaseRepository[OAuth2Identity]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, OAuth2Identity)

    async def get_by_provider_uid(self, provider: str, uid: str) -> OAuth2Identity | None:
        return await self.first_where(
            OAuth2Identity.provider == provider,
            OAuth2Identity.uid == uid,
        )

    async def get_for_user(self, user_id: int, provider: str, uid: str) -> OAuth2Identity | None:
        return await self.first_where(
            OAuth2Identity.user_id == user_id,
            OAuth2Identity.provider == provider,
            OAuth2Identity.uid == uid,
        )

    async def list_by_user_id(self, user_id: int) -> list[OAuth2Identity]:
        result = await self.session.execute(
            select(OAuth2Identity)
            .where(OAuth2Identity.user_id == user_id)
            .order_by(OAuth2Identity.provider.asc(), OAuth2Identity.created_at.asc())
        )
        return list(result.scalars().all())
