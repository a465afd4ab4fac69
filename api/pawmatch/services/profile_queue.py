from __future__ import annotations

import logging
from collections import deque
from typing import Iterable

from ..domain import Coordinates, FilterState, Profile
from .filters import DistanceFn, passes_filter
from .geo import haversine_km

logger = logging.getLogger(__name__)


class ProfileQueue:
    """Ordered buffer of undecided candidates plus the session dedup cache.

    Every profile id that was ever appended stays in the dedup cache until ``clear()``,
    so a candidate is offered at most once per session.
    """

    def __init__(self, distance_fn: DistanceFn = haversine_km) -> None:
        self._items: deque[Profile] = deque()
        self._seen: set[str] = set()
        self._distance_fn = distance_fn

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, profile_id: object) -> bool:
        return any(p.id == profile_id for p in self._items)

    @property
    def seen_ids(self) -> frozenset[str]:
        return frozenset(self._seen)

    def has_seen(self, profile_id: str) -> bool:
        return profile_id in self._seen

    def snapshot(self) -> list[Profile]:
        return list(self._items)

    def enqueue(
        self,
        candidates: Iterable[Profile],
        filter_state: FilterState,
        current_location: Coordinates | None = None,
    ) -> int:
        appended = 0
        for profile in candidates:
            if profile.id in self._seen:
                continue
            if not passes_filter(profile, filter_state, current_location, self._distance_fn):
                continue
            self._items.append(profile)
            self._seen.add(profile.id)
            appended += 1
        logger.debug("[QUEUE] appended=%s size=%s seen=%s", appended, len(self._items), len(self._seen))
        return appended

    def dequeue_next(self) -> Profile | None:
        if not self._items:
            return None
        return self._items.popleft()

    def push_front(self, profile: Profile) -> None:
        # Already vetted when first enqueued; skips filtering and dedup.
        self._items = deque(p for p in self._items if p.id != profile.id)
        self._items.appendleft(profile)
        self._seen.add(profile.id)

    def clear(self) -> None:
        self._items.clear()
        self._seen.clear()
