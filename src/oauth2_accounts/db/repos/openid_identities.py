from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from oauth2_accounts.db.models import OpenIdIdentity
from oauth2_accounts.db.repos.base import BaseRepository


class OpenIdIdentityRepository(BaseRepository[OpenIdIdentity]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, OpenIdIdentity)

    async def get_by_identity(self, identity: str) -> OpenIdIdentity | None:
        return await self.first_where(OpenIdIdentity.identity == identity)
