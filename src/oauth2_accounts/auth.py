from __future__ import annotations

from fastapi import Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from oauth2_accounts.db import get_session
from oauth2_accounts.db.models import User
from oauth2_accounts.db.repos import UserRepository

SESSION_USER_ID_KEY = "user_id"
SESSION_IDENTITY_KEY = "identity"


def get_current_user_id(request: Request) -> int | None:
    raw = request.session.get(SESSION_USER_ID_KEY)
    if raw is None:
        return None

    try:
        return int(str(raw))
    except ValueError:
        return None


def log_in(request: Request, user: User, identity: str) -> None:
    request.session[SESSION_USER_ID_KEY] = user.id
    request.session[SESSION_IDENTITY_KEY] = identity


def log_out(request: Request) -> None:
    request.session.pop(SESSION_USER_ID_KEY, None)
    request.session.pop(SESSION_IDENTITY_KEY, None)


async def require_user(
    request: Request,
    session: AsyncSession = Depends(get_session),
) -> User:
    user_id = get_current_user_id(request)
    if user_id is None:
        raise HTTPException(status_code=401, detail="Not authenticated")

    user = await UserRepository(session).get_by_id(user_id)
    if user is None:
        raise HTTPException(status_code=401, detail="Not authenticated")

    return user
