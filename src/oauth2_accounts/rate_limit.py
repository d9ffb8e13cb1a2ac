from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from threading import Lock
from time import monotonic


@dataclass(frozen=True)
class RateLimitRule:
    bucket: str
    max_attempts: int
    window_seconds: int


_attempts: dict[str, deque[float]] = {}
_key_windows: dict[str, int] = {}
_key_last_seen: dict[str, float] = {}
_lock = Lock()
_ops_since_sweep = 0

# A key is dropped once it has been idle for this many windows.
_STALE_MULTIPLIER = 3
_MIN_STALE_SECONDS = 60
_SWEEP_EVERY_OPS = 256


def _full_key(rule: RateLimitRule, key: str) -> str:
    return f"{rule.bucket}:{key}"


def _prune_history(history: deque[float], cutoff: float) -> None:
    while history and history[0] <= cutoff:
        history.popleft()


def _touch(rule: RateLimitRule, full_key: str, now: float) -> deque[float]:
    history = _attempts.setdefault(full_key, deque())
    _key_windows[full_key] = rule.window_seconds
    _key_last_seen[full_key] = now
    _prune_history(history, now - rule.window_seconds)
    return history


def _sweep_stale_keys(now: float) -> None:
    stale: list[str] = []
    for full_key, history in _attempts.items():
        window_seconds = _key_windows.get(full_key, _MIN_STALE_SECONDS)
        _prune_history(history, now - window_seconds)
        idle_limit = max(window_seconds * _STALE_MULTIPLIER, _MIN_STALE_SECONDS)
        if not history and _key_last_seen.get(full_key, 0.0) <= now - idle_limit:
            stale.append(full_key)

    for full_key in stale:
        _attempts.pop(full_key, None)
        _key_windows.pop(full_key, None)
        _key_last_seen.pop(full_key, None)


def _maybe_sweep(now: float) -> None:
    global _ops_since_sweep
    _ops_since_sweep += 1
    if _ops_since_sweep >= _SWEEP_EVERY_OPS:
        _sweep_stale_keys(now)
        _ops_since_sweep = 0


def consume_rate_limit(rule: RateLimitRule, key: str) -> bool:
    """Record one attempt for ``key`` and report whether it exceeds the rule.

    Attempts refused by the limiter are not recorded, so a blocked caller
    regains access once its earlier attempts leave the window. Keys idle
    for several windows are swept periodically.
    """
    if rule.max_attempts < 1 or rule.window_seconds < 1:
        return False

    now = monotonic()

    with _lock:
        history = _touch(rule, _full_key(rule, key), now)
        limited = len(history) >= rule.max_attempts
        if not limited:
            history.append(now)
        _maybe_sweep(now)
        return limited


def reset_rate_limit_state() -> None:
    global _ops_since_sweep
    with _lock:
        _attempts.clear()
        _key_windows.clear()
        _key_last_seen.clear()
        _ops_since_sweep = 0
