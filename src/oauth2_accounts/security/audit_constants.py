from __future__ import annotations

from typing import Final

# Event names used in `auth.oauth2.<event>` security-audit records.
OAUTH2_EVENT_LOGIN: Final = "login"
OAUTH2_EVENT_SIGNUP: Final = "signup"
OAUTH2_EVENT_IDENTITY_LINK: Final = "identity_link"
OAUTH2_EVENT_IDENTITY_UNLINK: Final = "identity_unlink"
OAUTH2_EVENT_LEGACY_OPENID_MIGRATION: Final = "legacy_openid_migration"
OAUTH2_EVENT_LOGOUT: Final = "logout"

OAUTH2_REASON_PROVIDER_DISABLED: Final = "provider_disabled"
OAUTH2_REASON_IDENTITY_NOT_FOUND: Final = "identity_not_found"
