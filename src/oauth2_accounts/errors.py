"""Failures raised by the OAuth2 account flows.

Every guarded condition has its own exception type. ``message`` is safe to
show to the end user; ``reason`` is a stable code for audit logging.
"""

from __future__ import annotations


class OAuth2AccountError(Exception):
    reason: str = "error"

    def __init__(self, message: str, *, reason: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if reason is not None:
            self.reason = reason


class UserAuthenticationError(OAuth2AccountError):
    """No identity could be resolved from the provider."""

    reason = "authentication_failed"


class UserAuthenticationCancelledError(UserAuthenticationError):
    """The login policy vetoed the attempt before the token exchange."""

    reason = "cancelled"


class UserAuthenticationMissingAccountError(UserAuthenticationError):
    """The provider resolved an identity but no local account owns it."""

    reason = "account_not_found"


class UserSignupError(OAuth2AccountError):
    reason = "signup_rejected"


class UserAlreadyExistsError(OAuth2AccountError):
    reason = "account_exists"


class IdentityAlreadyExistsError(UserAlreadyExistsError):
    reason = "identity_exists"


class MissingUserError(ValueError):
    def __init__(self, message: str = "No user provided.") -> None:
        super().__init__(message)
        self.message = message
        self.reason = "missing_user"
