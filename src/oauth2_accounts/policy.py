"""Login policy checks run before a provider token exchange.

A policy can veto an OAuth2 login (abuse prevention, maintenance mode, ...).
Policies are invoked synchronously from the callback phase of the flow and
must not perform the exchange themselves.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

from fastapi import Request

from oauth2_accounts.rate_limit import RateLimitRule, consume_rate_limit
from oauth2_accounts.settings import Settings, get_settings


@dataclass(frozen=True)
class PolicyDecision:
    allowed: bool
    reason: str | None = None

    @classmethod
    def allow(cls) -> PolicyDecision:
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: str) -> PolicyDecision:
        return cls(allowed=False, reason=reason)


class LoginPolicy(Protocol):
    def check(self, request: Request, provider_key: str) -> PolicyDecision: ...


class AllowAllPolicy:
    def check(self, request: Request, provider_key: str) -> PolicyDecision:
        return PolicyDecision.allow()


def client_ip(request: Request, *, trust_proxy_headers: bool) -> str:
    if trust_proxy_headers:
        real_ip = request.headers.get("x-real-ip", "").strip()
        if real_ip:
            return real_ip

        forwarded = request.headers.get("x-forwarded-for", "")
        if forwarded:
            forwarded_ip = forwarded.split(",", 1)[0].strip()
            if forwarded_ip:
                return forwarded_ip

    if request.client is not None and request.client.host:
        return request.client.host
    return "unknown"


class RateLimitLoginPolicy:
    def __init__(
        self,
        *,
        max_attempts: int,
        window_seconds: int,
        trust_proxy_headers: bool = False,
    ) -> None:
        self.rule = RateLimitRule(
            bucket="oauth2-callback",
            max_attempts=max_attempts,
            window_seconds=window_seconds,
        )
        self.trust_proxy_headers = trust_proxy_headers

    def check(self, request: Request, provider_key: str) -> PolicyDecision:
        ip = client_ip(request, trust_proxy_headers=self.trust_proxy_headers)
        if consume_rate_limit(self.rule, f"{provider_key}:{ip}"):
            return PolicyDecision.deny("rate_limited")
        return PolicyDecision.allow()


class ChainedLoginPolicy:
    """Runs policies in order; the first denial wins."""

    def __init__(self, policies: Sequence[LoginPolicy]) -> None:
        self.policies = list(policies)

    def check(self, request: Request, provider_key: str) -> PolicyDecision:
        for policy in self.policies:
            decision = policy.check(request, provider_key)
            if not decision.allowed:
                return decision
        return PolicyDecision.allow()


def build_login_policy(settings: Settings | None = None) -> LoginPolicy:
    selected = settings if settings is not None else get_settings()
    policies: list[LoginPolicy] = []
    if selected.login_rate_limit_enabled:
        policies.append(
            RateLimitLoginPolicy(
                max_attempts=selected.login_rate_limit_attempts,
                window_seconds=selected.login_rate_limit_window_seconds,
                trust_proxy_headers=selected.trust_proxy_headers,
            )
        )
    if not policies:
        return AllowAllPolicy()
    return ChainedLoginPolicy(policies)
