from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum

from .config import (
    DEFAULT_MAX_AGE,
    DEFAULT_MAX_DISTANCE_KM,
    DEFAULT_MIN_AGE,
    MATCH_EXPIRY_DAYS,
)

WILDCARD = "ANY"
MATCH_LIFETIME = timedelta(days=MATCH_EXPIRY_DAYS)


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Coordinates:
    latitude: float
    longitude: float


@dataclass(frozen=True)
class Profile:
    id: str
    owner_id: str
    age: int
    size: str
    energy_level: str
    breed: str
    latitude: float | None = None
    longitude: float | None = None
    name: str | None = None

    @property
    def coordinates(self) -> Coordinates | None:
        if self.latitude is None or self.longitude is None:
            return None
        return Coordinates(self.latitude, self.longitude)


@dataclass(frozen=True)
class FilterState:
    """User-configured constraints applied to every candidate before it is queued.

    Each category set may hold the wildcard ``"ANY"``; an empty set lets nothing through.
    """

    max_distance: float = DEFAULT_MAX_DISTANCE_KM
    min_age: int = DEFAULT_MIN_AGE
    max_age: int = DEFAULT_MAX_AGE
    energy_levels: frozenset[str] = frozenset({WILDCARD})
    breeds: frozenset[str] = frozenset({WILDCARD})
    sizes: frozenset[str] = frozenset({WILDCARD})

    def __post_init__(self) -> None:
        if self.min_age > self.max_age:
            raise ValueError(f"min_age {self.min_age} is greater than max_age {self.max_age}")
        for name in ("energy_levels", "breeds", "sizes"):
            value = getattr(self, name)
            if not isinstance(value, frozenset):
                object.__setattr__(self, name, frozenset(value))

    @property
    def active_filter_count(self) -> int:
        defaults = FilterState()
        count = 0
        if self.max_distance != defaults.max_distance:
            count += 1
        if self.min_age != defaults.min_age or self.max_age != defaults.max_age:
            count += 1
        for name in ("energy_levels", "breeds", "sizes"):
            if getattr(self, name) != getattr(defaults, name):
                count += 1
        return count


class SwipeDirection(str, Enum):
    LIKE = "like"
    DISLIKE = "dislike"
    SUPER_LIKE = "super_like"


@dataclass(frozen=True)
class SwipeTelemetry:
    view_duration_ms: int = 0
    photos_viewed: int = 0
    scroll_depth: int = 0


@dataclass(frozen=True)
class SwipeDecision:
    swiper_id: str
    swiped_id: str
    is_like: bool
    super_like: bool
    compatibility_score: float
    telemetry: SwipeTelemetry = field(default_factory=SwipeTelemetry)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = field(default_factory=_now_utc)

    @property
    def direction(self) -> SwipeDirection:
        if self.super_like:
            return SwipeDirection.SUPER_LIKE
        return SwipeDirection.LIKE if self.is_like else SwipeDirection.DISLIKE


class MatchReason(str, Enum):
    ENERGY_LEVEL_MATCH = "Matching energy levels"
    SIZE_COMPATIBILITY = "Similar size"
    AGE_COMPATIBILITY = "Close in age"
    LOCATION_PROXIMITY = "Nearby location"

    @property
    def description(self) -> str:
        return self.value


class MismatchReason(str, Enum):
    DIFFERENT_ENERGY = "Different energy levels"
    AGE_GAP = "Age gap too large"
    SIZE_MISMATCH = "Size mismatch"


class MatchStatus(str, Enum):
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    DECLINED = "DECLINED"
    EXPIRED = "EXPIRED"


class MatchTier(str, Enum):
    NORMAL = "NORMAL"
    HIGH_COMPATIBILITY = "HIGH_COMPATIBILITY"
    PERFECT_MATCH = "PERFECT_MATCH"


@dataclass(frozen=True)
class MatchResult:
    is_match: bool
    compatibility_score: float
    reasons: tuple[MatchReason, ...] = ()
    distance: float | None = None
    warnings: tuple[str, ...] = ()
    negative_reasons: tuple[MismatchReason, ...] = ()
    tier: MatchTier | None = None


def generate_match_id(now: datetime | None = None) -> str:
    now = now or _now_utc()
    return f"match_{int(now.timestamp() * 1000)}_{uuid.uuid4()}"


@dataclass(frozen=True)
class Match:
    id: str
    user1_id: str
    user2_id: str
    profile1_id: str
    profile2_id: str
    compatibility_score: float
    reasons: tuple[MatchReason, ...]
    tier: MatchTier
    initiator_profile_id: str
    status: MatchStatus = MatchStatus.PENDING
    timestamp: datetime = field(default_factory=_now_utc)
    location_distance: float | None = None

    @property
    def expires_at(self) -> datetime:
        return self.timestamp + MATCH_LIFETIME

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or _now_utc()) > self.expires_at

    def is_active(self, now: datetime | None = None) -> bool:
        return self.status is MatchStatus.ACTIVE and not self.is_expired(now)

    def other_user_id(self, user_id: str) -> str:
        return self.user2_id if self.user1_id == user_id else self.user1_id

    def other_profile_id(self, profile_id: str) -> str:
        return self.profile2_id if self.profile1_id == profile_id else self.profile1_id
