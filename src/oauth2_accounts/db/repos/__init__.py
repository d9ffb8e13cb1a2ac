"""Repository layer.

These repositories encapsulate common query patterns for the app's entities.
Keep them focused on persistence/query shaping; business logic lives in services.
"""

from oauth2_accounts.db.repos.oauth2_identities import OAuth2IdentityRepository
from oauth2_accounts.db.repos.openid_identities import OpenIdIdentityRepository
from oauth2_accounts.db.repos.users import UserRepository

__all__ = [
    "OAuth2IdentityRepository",
    "OpenIdIdentityRepository",
    "UserRepository",
]
