from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any

from authlib.integrations.starlette_client import OAuth
from pydantic import SecretStr

from oauth2_accounts.oauth2.client import OAuth2Client
from oauth2_accounts.settings import Settings, get_settings

GOOGLE_METADATA_URL = "https://accounts.google.com/.well-known/openid-configuration"
_FACEBOOK_GRAPH_URL = "https://graph.facebook.com/v19.0/"


@dataclass(frozen=True)
class ProviderConfig:
    key: str
    display_name: str
    client_id: str
    client_secret: str
    scope: str
    server_metadata_url: str | None = None
    authorize_url: str | None = None
    access_token_url: str | None = None
    api_base_url: str | None = None
    userinfo_endpoint: str | None = None
    # Sent per authorize request, not part of the registration.
    authorize_params: dict[str, str] = field(default_factory=dict, hash=False, compare=False)

    def register_kwargs(self) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "client_kwargs": {"scope": self.scope},
        }
        for name in (
            "server_metadata_url",
            "authorize_url",
            "access_token_url",
            "api_base_url",
            "userinfo_endpoint",
        ):
            value = getattr(self, name)
            if value is not None:
                kwargs[name] = value
        return kwargs


def _credentials(
    client_id: str | None, client_secret: SecretStr | None
) -> tuple[str, str] | None:
    if client_id is None or client_secret is None:
        return None
    cid = client_id.strip()
    secret = client_secret.get_secret_value().strip()
    if not cid or not secret:
        return None
    return cid, secret


def _google_authorize_params(settings: Settings) -> dict[str, str]:
    realm = (settings.openid_realm or "").strip()
    if not realm or not settings.legacy_openid_migration_enabled:
        return {}
    # Makes Google include `openid_id` in the id_token for legacy accounts.
    return {"openid.realm": realm}


def get_provider_configs(settings: Settings | None = None) -> dict[str, ProviderConfig]:
    selected = settings if settings is not None else get_settings()
    configs: dict[str, ProviderConfig] = {}

    google = _credentials(selected.google_client_id, selected.google_client_secret)
    if google is not None:
        configs["google"] = ProviderConfig(
            key="google",
            display_name="Google",
            client_id=google[0],
            client_secret=google[1],
            scope="openid email profile",
            server_metadata_url=GOOGLE_METADATA_URL,
            authorize_params=_google_authorize_params(selected),
        )

    github = _credentials(selected.github_client_id, selected.github_client_secret)
    if github is not None:
        configs["github"] = ProviderConfig(
            key="github",
            display_name="GitHub",
            client_id=github[0],
            client_secret=github[1],
            scope="read:user user:email",
            authorize_url="https://github.com/login/oauth/authorize",
            access_token_url="https://github.com/login/oauth/access_token",
            api_base_url="https://api.github.com/",
            userinfo_endpoint="https://api.github.com/user",
        )

    facebook = _credentials(selected.facebook_client_id, selected.facebook_client_secret)
    if facebook is not None:
        configs["facebook"] = ProviderConfig(
            key="facebook",
            display_name="Facebook",
            client_id=facebook[0],
            client_secret=facebook[1],
            scope="email public_profile",
            authorize_url="https://www.facebook.com/v19.0/dialog/oauth",
            access_token_url=f"{_FACEBOOK_GRAPH_URL}oauth/access_token",
            api_base_url=_FACEBOOK_GRAPH_URL,
            userinfo_endpoint=f"{_FACEBOOK_GRAPH_URL}me?fields=id,name,email",
        )

    return configs


def get_provider_config(key: str) -> ProviderConfig | None:
    return get_provider_configs().get(key)


def enabled_provider_keys() -> list[str]:
    return list(get_provider_configs())


def provider_enabled(key: str) -> bool:
    return get_provider_config(key) is not None


@lru_cache(maxsize=4)
def _registry_for(configs: tuple[ProviderConfig, ...]) -> OAuth:
    oauth = OAuth()
    for config in configs:
        oauth.register(name=config.key, **config.register_kwargs())
    return oauth


def build_oauth(settings: Settings | None = None) -> OAuth:
    """Return the Authlib registry for the enabled providers.

    Registries are shared per set of credentials so clients keep their
    loaded OpenID metadata between the redirect and the callback.
    """
    return _registry_for(tuple(get_provider_configs(settings).values()))


def clear_oauth_cache() -> None:
    _registry_for.cache_clear()


def oauth_client(key: str) -> OAuth2Client:
    client = build_oauth().create_client(key)
    if client is None:
        raise LookupError(f"OAuth2 provider '{key}' is not configured")
    return client
