"""SQL-backed implementations of the swipe engine collaborators.

The repo layer is synchronous SQLAlchemy; each call runs on a worker thread so the
event loop driving the engine is never blocked. Database failures propagate to the
engine, which reports them as network errors.
"""
from __future__ import annotations

import asyncio
import logging

from .. import repo
from ..domain import Match, Profile, SwipeDecision

logger = logging.getLogger(__name__)


class SqlProfileSource:
    """Pages through candidate profiles by id, wrapping around at the end.

    Profiles owned by the swiper and profiles the swiper already decided on are excluded
    server-side; the engine's dedup cache drops anything offered twice.
    """

    def __init__(self, swiper: Profile) -> None:
        self._swiper = swiper
        self._cursor: str | None = None

    def _next_batch(self, size: int) -> list[Profile]:
        batch = repo.list_candidate_profiles(self._swiper.id, self._swiper.owner_id, self._cursor, size)
        if len(batch) < size and self._cursor is not None:
            # wrap around to the start of the id space
            head = repo.list_candidate_profiles(self._swiper.id, self._swiper.owner_id, None, size - len(batch))
            known = {p.id for p in batch}
            batch.extend(p for p in head if p.id not in known)
            self._cursor = head[-1].id if head else None
        elif batch:
            self._cursor = batch[-1].id
        logger.debug("[REPO] profile batch swiper=%s size=%s cursor=%s", self._swiper.id, len(batch), self._cursor)
        return batch

    async def get_batch(self, size: int) -> list[Profile]:
        return await asyncio.to_thread(self._next_batch, size)


class SqlSwipeLedger:
    async def append(self, decision: SwipeDecision) -> None:
        await asyncio.to_thread(repo.insert_swipe, decision)

    async def retract(self, swiper_id: str, swiped_id: str) -> None:
        await asyncio.to_thread(repo.delete_swipe, swiper_id, swiped_id)


class SqlMatchRepository:
    async def create(self, match: Match) -> None:
        await asyncio.to_thread(repo.insert_match, match)
