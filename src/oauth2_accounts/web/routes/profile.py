from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.responses import Response

from oauth2_accounts.auth import require_user
from oauth2_accounts.db import get_session
from oauth2_accounts.db.models import User
from oauth2_accounts.security.audit import audit_oauth2_denied, audit_oauth2_success
from oauth2_accounts.security.audit_constants import (
    OAUTH2_EVENT_IDENTITY_UNLINK,
    OAUTH2_REASON_IDENTITY_NOT_FOUND,
)
from oauth2_accounts.services import remove_identity
from oauth2_accounts.services.accounts import format_identity
from oauth2_accounts.web.routes import common

router = APIRouter()


@router.get("/profile")
async def profile(
    request: Request,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_user),
) -> Response:
    return await common.render_profile_template(request, session=session, user=current_user)


@router.post(
    "/profile/identities/{provider}/{uid}/unlink",
    response_class=RedirectResponse,
)
async def unlink_identity(
    provider: str,
    uid: str,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_user),
) -> Response:
    identity = format_identity(provider, uid)
    removed = await remove_identity(session, current_user, provider, uid)
    if removed:
        audit_oauth2_success(
            event=OAUTH2_EVENT_IDENTITY_UNLINK,
            actor=current_user,
            identity=identity,
        )
    else:
        audit_oauth2_denied(
            event=OAUTH2_EVENT_IDENTITY_UNLINK,
            reason=OAUTH2_REASON_IDENTITY_NOT_FOUND,
            actor=current_user,
            identity=identity,
        )
    return RedirectResponse(url="/profile", status_code=303)
