from __future__ import annotations

import logging
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Protocol

from ..config import UNDO_BUFFER_SIZE
from ..domain import MatchResult, Profile, SwipeDecision, SwipeDirection, SwipeTelemetry

logger = logging.getLogger(__name__)


class SwipeLedger(Protocol):
    async def append(self, decision: SwipeDecision) -> None: ...

    async def retract(self, swiper_id: str, swiped_id: str) -> None: ...


class TelemetryTracker:
    """Per-candidate view metrics; reset whenever a new candidate is displayed."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._view_started = clock()
        self.photos_viewed = 0
        self.scroll_depth = 0

    def reset(self) -> None:
        self._view_started = self._clock()
        self.photos_viewed = 0
        self.scroll_depth = 0

    def record_photo_viewed(self) -> None:
        self.photos_viewed += 1

    def record_scroll(self, depth: int) -> None:
        self.scroll_depth = max(self.scroll_depth, int(depth))

    def snapshot(self) -> SwipeTelemetry:
        elapsed_ms = int(max(0.0, self._clock() - self._view_started) * 1000)
        return SwipeTelemetry(
            view_duration_ms=elapsed_ms,
            photos_viewed=self.photos_viewed,
            scroll_depth=self.scroll_depth,
        )


@dataclass(frozen=True)
class RecentSwipe:
    profile: Profile
    direction: SwipeDirection
    decision_id: str


@dataclass
class UndoBuffer:
    capacity: int = UNDO_BUFFER_SIZE
    _entries: deque[RecentSwipe] = field(init=False)

    def __post_init__(self) -> None:
        self._entries = deque(maxlen=self.capacity)

    def __len__(self) -> int:
        return len(self._entries)

    def push(self, entry: RecentSwipe) -> None:
        self._entries.append(entry)

    def peek(self) -> RecentSwipe | None:
        return self._entries[-1] if self._entries else None

    def pop(self) -> RecentSwipe | None:
        return self._entries.pop() if self._entries else None

    def clear(self) -> None:
        self._entries.clear()


def build_decision(
    swiper: Profile,
    swiped: Profile,
    direction: SwipeDirection,
    match_result: MatchResult | None,
    telemetry: SwipeTelemetry,
) -> SwipeDecision:
    is_like = direction in (SwipeDirection.LIKE, SwipeDirection.SUPER_LIKE)
    score = match_result.compatibility_score if (is_like and match_result) else 0.0
    return SwipeDecision(
        swiper_id=swiper.id,
        swiped_id=swiped.id,
        is_like=is_like,
        super_like=direction is SwipeDirection.SUPER_LIKE,
        compatibility_score=score,
        telemetry=telemetry,
    )


class SwipeRecorder:
    def __init__(self, ledger: SwipeLedger) -> None:
        self._ledger = ledger

    async def record(self, decision: SwipeDecision) -> None:
        logger.info(
            "[SWIPE] append swiper=%s swiped=%s direction=%s score=%.3f",
            decision.swiper_id,
            decision.swiped_id,
            decision.direction.value,
            decision.compatibility_score,
        )
        await self._ledger.append(decision)

    async def retract(self, swiper_id: str, swiped_id: str) -> None:
        logger.info("[SWIPE] retract swiper=%s swiped=%s", swiper_id, swiped_id)
        await self._ledger.retract(swiper_id, swiped_id)
