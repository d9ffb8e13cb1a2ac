from __future__ import annotations

from fastapi import APIRouter

from oauth2_accounts.web.routes.auth import router as auth_router
from oauth2_accounts.web.routes.health import router as health_router
from oauth2_accounts.web.routes.profile import router as profile_router

router = APIRouter()
router.include_router(auth_router)
router.include_router(profile_router)
router.include_router(health_router)
