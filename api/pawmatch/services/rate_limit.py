import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable

from fastapi import Depends, HTTPException, Request

from ..config import RL_MATCH_ACTION_LIMIT, RL_SWIPE_LIMIT, RL_UNDO_LIMIT, RL_WINDOW_SECONDS


@dataclass(frozen=True)
class RateRule:
    name: str
    limit: int
    window_seconds: int


SWIPE_RULE = RateRule("swipe", RL_SWIPE_LIMIT, RL_WINDOW_SECONDS)
UNDO_RULE = RateRule("swipe_undo", RL_UNDO_LIMIT, RL_WINDOW_SECONDS)
MATCH_ACTION_RULE = RateRule("match_action", RL_MATCH_ACTION_LIMIT, RL_WINDOW_SECONDS)


@dataclass
class RateDecision:
    allowed: bool
    retry_after_seconds: int
    remaining: int


class SlidingWindowLimiter:
    """Per-swiper sliding window. Keys whose window drains are forgotten."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._events: dict[tuple[str, str], deque[float]] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def check(self, rule: RateRule, swiper_key: str) -> RateDecision:
        now = self._clock()
        cutoff = now - rule.window_seconds
        key = (rule.name, swiper_key)
        with self._lock:
            self._prune(cutoff, rule.name)
            dq = self._events.setdefault(key, deque())
            if len(dq) >= rule.limit:
                retry_after = max(1, int(dq[0] + rule.window_seconds - now))
                return RateDecision(allowed=False, retry_after_seconds=retry_after, remaining=0)
            dq.append(now)
            return RateDecision(allowed=True, retry_after_seconds=0, remaining=rule.limit - len(dq))

    def _prune(self, cutoff: float, rule_name: str) -> None:
        for key in [k for k in self._events if k[0] == rule_name]:
            dq = self._events[key]
            while dq and dq[0] <= cutoff:
                dq.popleft()
            if not dq:
                del self._events[key]

    def reset(self) -> None:
        with self._lock:
            self._events.clear()


limiter = SlidingWindowLimiter()


def swiper_key(request: Request) -> str:
    profile_id = request.headers.get("x-actor-profile-id", "").strip()
    if profile_id:
        return f"profile:{profile_id}"
    if request.client and request.client.host:
        return f"host:{request.client.host}"
    return "unknown"


def rate_limit_dependency(rule: RateRule):
    def _dep(request: Request) -> None:
        decision = limiter.check(rule, swiper_key(request))
        if not decision.allowed:
            raise HTTPException(
                status_code=429,
                detail=f"Slow down. Retry in {decision.retry_after_seconds}s",
                headers={"Retry-After": str(decision.retry_after_seconds)},
            )

    return Depends(_dep)
