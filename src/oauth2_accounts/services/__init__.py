from oauth2_accounts.services.accounts import (
    AuthenticatedUser,
    add_identity,
    list_identities,
    remove_identity,
    try_login,
    try_signup,
)
from oauth2_accounts.services.legacy_openid import migrate_legacy_openid_identity

__all__ = [
    "AuthenticatedUser",
    "add_identity",
    "list_identities",
    "migrate_legacy_openid_identity",
    "remove_identity",
    "try_login",
    "try_signup",
]
