from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from oauth2_accounts.db.models import OAuth2Identity, User
from oauth2_accounts.db.repos.base import BaseRepository


def normalize_email(email: str) -> str:
    return email.strip().lower()


class UserRepository(BaseRepository[User]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, User)

    async def get_by_email(self, email: str) -> User | None:
        return await self.first_where(User.email == normalize_email(email))

    async def get_by_id(self, user_id: int) -> User | None:
        return await self.get(user_id)

    async def get_by_oauth2_identity(self, provider: str, uid: str) -> User | None:
        result = await self.session.execute(
            select(User)
            .join(OAuth2Identity, OAuth2Identity.user_id == User.id)
            .where(OAuth2Identity.uid == uid, OAuth2Identity.provider == provider)
            .limit(1)
        )
        return result.scalars().first()
