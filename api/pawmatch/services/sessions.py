from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable

from ..config import SESSION_IDLE_SECONDS
from ..domain import Profile
from .engine import SwipeEngine
from .geo import StaticLocationProvider
from .sql_collaborators import SqlMatchRepository, SqlProfileSource, SqlSwipeLedger

logger = logging.getLogger(__name__)

EngineFactory = Callable[[Profile], SwipeEngine]


def default_engine_factory(swiper: Profile) -> SwipeEngine:
    return SwipeEngine(
        swiper=swiper,
        source=SqlProfileSource(swiper),
        ledger=SqlSwipeLedger(),
        matches=SqlMatchRepository(),
        location=StaticLocationProvider(swiper.coordinates),
    )


class EngineRegistry:
    """One live engine per swiping profile.

    Engines untouched for ``idle_timeout`` seconds are closed and dropped on the
    next ``get_or_start``.
    """

    def __init__(
        self,
        factory: EngineFactory = default_engine_factory,
        idle_timeout: float = SESSION_IDLE_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._factory = factory
        self._idle_timeout = idle_timeout
        self._clock = clock
        self._engines: dict[str, SwipeEngine] = {}
        self._last_used: dict[str, float] = {}
        self._lock = asyncio.Lock()

    def set_factory(self, factory: EngineFactory) -> None:
        self._factory = factory

    def __len__(self) -> int:
        return len(self._engines)

    def get(self, profile_id: str) -> SwipeEngine | None:
        engine = self._engines.get(profile_id)
        if engine is not None:
            self._last_used[profile_id] = self._clock()
        return engine

    async def get_or_start(self, swiper: Profile) -> SwipeEngine:
        await self.evict_idle()
        async with self._lock:
            engine = self._engines.get(swiper.id)
            if engine is None:
                engine = self._factory(swiper)
                self._engines[swiper.id] = engine
                logger.info("[ENGINE] session opened swiper=%s", swiper.id)
            self._last_used[swiper.id] = self._clock()
        await engine.start()
        return engine

    async def evict_idle(self) -> list[str]:
        now = self._clock()
        async with self._lock:
            stale = [pid for pid, seen in self._last_used.items() if now - seen > self._idle_timeout]
            engines = [self._engines.pop(pid) for pid in stale if pid in self._engines]
            for pid in stale:
                self._last_used.pop(pid, None)
        for engine in engines:
            await engine.close()
        if stale:
            logger.info("[ENGINE] evicted idle sessions count=%s", len(stale))
        return stale

    async def discard(self, profile_id: str) -> bool:
        async with self._lock:
            engine = self._engines.pop(profile_id, None)
            self._last_used.pop(profile_id, None)
        if engine is None:
            return False
        await engine.close()
        return True

    async def close_all(self) -> None:
        async with self._lock:
            engines = list(self._engines.values())
            self._engines.clear()
            self._last_used.clear()
        for engine in engines:
            await engine.close()
