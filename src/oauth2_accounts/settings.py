from __future__ import annotations

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="OAUTH2_ACCOUNTS_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    database_url: str = "sqlite+aiosqlite:///./oauth2_accounts.db"

    # For local development
    auto_create_db: bool = False

    # Session cookie auth. In production, override via env.
    session_secret: SecretStr = SecretStr("dev-insecure-change-me")
    session_cookie_name: str = "oauth2_accounts_session"

    log_level: str = "INFO"
    log_json: bool = False
    log_http_requests: bool = True

    # Signup refuses identities without an email address when set.
    users_require_email: bool = False

    # Link Google logins to pre-OAuth2 OpenID accounts via the id_token's openid_id.
    legacy_openid_migration_enabled: bool = True
    # Realm the legacy OpenID identities were issued for; Google only returns
    # openid_id when this matches.
    openid_realm: str | None = None

    oauth2_debug_logging: bool = False

    google_client_id: str | None = None
    google_client_secret: SecretStr | None = None
    github_client_id: str | None = None
    github_client_secret: SecretStr | None = None
    facebook_client_id: str | None = None
    facebook_client_secret: SecretStr | None = None

    login_rate_limit_enabled: bool = True
    login_rate_limit_attempts: int = 20
    login_rate_limit_window_seconds: int = 60
    trust_proxy_headers: bool = False


def get_settings() -> Settings:
    return Settings()
