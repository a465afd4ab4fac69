from __future__ import annotations

import asyncio
import logging
import time
from typing import AsyncIterator, Callable, Protocol

from ..config import (
    MIN_PROFILES_THRESHOLD,
    PROFILE_BATCH_SIZE,
    REFRESH_COOLDOWN_SECONDS,
    UNDO_BUFFER_SIZE,
)
from ..domain import Coordinates, FilterState, MatchResult, Profile, SwipeDirection
from ..errors import classify_error
from .engine_state import (
    EngineState,
    Error,
    Initial,
    Loading,
    MatchDetail,
    MatchFound,
    NoMoreProfiles,
    Success,
)
from .match_creator import MatchCreator, MatchRepository
from .profile_queue import ProfileQueue
from .scoring import compute_compatibility
from .state_machine import CandidatePhase, advance_candidate
from .swipes import RecentSwipe, SwipeLedger, SwipeRecorder, TelemetryTracker, UndoBuffer, build_decision

logger = logging.getLogger(__name__)

Listener = Callable[[EngineState, "Profile | None"], None]


class ProfileSource(Protocol):
    async def get_batch(self, size: int) -> list[Profile]: ...


class LocationProvider(Protocol):
    async def last_known_location(self) -> Coordinates | None: ...

    def distance(self, a: Coordinates, b: Coordinates) -> float: ...


class FilterSettings(Protocol):
    def stream(self) -> AsyncIterator[FilterState]: ...


class SwipeEngine:
    """Single-owner swipe session for one swiping profile.

    All session state (queue, dedup cache, current candidate, undo buffer) is mutated
    only while holding ``_lock``. Prefetches run as separate tasks and tag their result
    with the session generation they started under; a reset bumps the generation so
    late results are dropped.
    """

    def __init__(
        self,
        swiper: Profile,
        source: ProfileSource,
        ledger: SwipeLedger,
        matches: MatchRepository,
        location: LocationProvider | None = None,
        filter_state: FilterState | None = None,
        *,
        batch_size: int = PROFILE_BATCH_SIZE,
        low_water_mark: int = MIN_PROFILES_THRESHOLD,
        refresh_cooldown: float = REFRESH_COOLDOWN_SECONDS,
        undo_capacity: int = UNDO_BUFFER_SIZE,
        clock: Callable[[], float] = time.monotonic,
        scorer: Callable[[Profile, Profile], MatchResult] = compute_compatibility,
    ) -> None:
        self._swiper = swiper
        self._source = source
        self._location = location
        self._filter_state = filter_state or FilterState()
        self._batch_size = batch_size
        self._low_water_mark = low_water_mark
        self._refresh_cooldown = refresh_cooldown
        self._clock = clock
        self._scorer = scorer

        self._queue = ProfileQueue(location.distance) if location is not None else ProfileQueue()
        self._undo = UndoBuffer(undo_capacity)
        self._telemetry = TelemetryTracker(clock)
        self._recorder = SwipeRecorder(ledger)
        self._match_creator = MatchCreator(matches)

        self._lock = asyncio.Lock()
        self._state: EngineState = Initial()
        self._current: Profile | None = None
        self._phase: CandidatePhase | None = None
        self._generation = 0
        self._inflight_generation: int | None = None
        self._fetch_task: asyncio.Task | None = None
        self._watch_task: asyncio.Task | None = None
        self._last_refresh: float | None = None
        self._listeners: list[Listener] = []
        self._started = False
        self._closed = False

    # -- observation -----------------------------------------------------

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def current_candidate(self) -> Profile | None:
        return self._current

    @property
    def candidate_phase(self) -> CandidatePhase | None:
        return self._phase

    @property
    def filter_state(self) -> FilterState:
        return self._filter_state

    @property
    def swiper(self) -> Profile:
        return self._swiper

    @property
    def location_provider(self) -> LocationProvider | None:
        return self._location

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def queue_size(self) -> int:
        return len(self._queue)

    @property
    def queued_profiles(self) -> list[Profile]:
        return self._queue.snapshot()

    @property
    def can_undo(self) -> bool:
        return len(self._undo) > 0

    @property
    def fetch_in_flight(self) -> bool:
        return self._inflight_generation == self._generation

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self._state, self._current)

    def _set_state(self, state: EngineState) -> None:
        self._state = state
        self._notify()

    def _emit_error(self, exc: BaseException) -> None:
        error = classify_error(exc)
        logger.warning("[ENGINE] swiper=%s error kind=%s message=%s", self._swiper.id, error.kind.value, error.message)
        self._set_state(Error(error.message, error.kind))

    # -- lifecycle -------------------------------------------------------

    async def start(self) -> None:
        async with self._lock:
            if self._started or self._closed:
                return
            self._started = True
            logger.info("[ENGINE] start swiper=%s", self._swiper.id)
            self._begin_load_locked()

    async def close(self) -> None:
        async with self._lock:
            self._closed = True
            self._generation += 1
            self._inflight_generation = None
            tasks = [t for t in (self._fetch_task, self._watch_task) if t is not None and not t.done()]
            for task in tasks:
                task.cancel()
        current = asyncio.current_task()
        pending = [t for t in tasks if t is not current]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._listeners.clear()
        logger.info("[ENGINE] closed swiper=%s", self._swiper.id)

    async def wait_idle(self) -> None:
        while self._fetch_task is not None and not self._fetch_task.done():
            await asyncio.wait({self._fetch_task})

    def _reset_locked(self) -> None:
        self._generation += 1
        self._inflight_generation = None
        if self._fetch_task is not None and not self._fetch_task.done():
            self._fetch_task.cancel()
        self._fetch_task = None
        self._queue.clear()
        self._current = None
        self._phase = None
        self._telemetry.reset()
        logger.info("[ENGINE] reset swiper=%s generation=%s", self._swiper.id, self._generation)

    def _begin_load_locked(self) -> None:
        self._set_state(Loading())
        self._schedule_fetch_locked()

    # -- prefetch --------------------------------------------------------

    def _schedule_fetch_locked(self) -> bool:
        if self._closed or self.fetch_in_flight:
            return False
        generation = self._generation
        self._inflight_generation = generation
        self._fetch_task = asyncio.get_running_loop().create_task(self._fetch(generation))
        logger.debug("[ENGINE] fetch scheduled generation=%s size=%s", generation, self._batch_size)
        return True

    def _maybe_prefetch_locked(self) -> None:
        if len(self._queue) < self._low_water_mark:
            self._schedule_fetch_locked()

    async def _fetch(self, generation: int) -> None:
        try:
            batch = await self._source.get_batch(self._batch_size)
            location = await self._location.last_known_location() if self._location is not None else None
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            async with self._lock:
                if generation != self._generation:
                    logger.warning("[ENGINE] ignoring failure of stale fetch generation=%s", generation)
                    return
                self._inflight_generation = None
                self._emit_error(exc)
            return

        async with self._lock:
            if generation != self._generation:
                logger.warning(
                    "[ENGINE] discarding stale batch generation=%s current=%s size=%s",
                    generation,
                    self._generation,
                    len(batch),
                )
                return
            self._inflight_generation = None
            candidates = [
                p for p in batch if p.id != self._swiper.id and p.owner_id != self._swiper.owner_id
            ]
            added = self._queue.enqueue(candidates, self._filter_state, location)
            logger.info(
                "[ENGINE] fetched=%s added=%s queue=%s generation=%s",
                len(batch),
                added,
                len(self._queue),
                generation,
            )
            if self._current is None:
                if len(self._queue) > 0:
                    self._advance_locked()
                if isinstance(self._state, MatchFound):
                    # stays up until dismissed
                    return
                self._set_state(Success() if self._current is not None else NoMoreProfiles())

    # -- decisions -------------------------------------------------------

    def _advance_locked(self) -> None:
        nxt = self._queue.dequeue_next()
        self._current = nxt
        self._telemetry.reset()
        if nxt is None:
            self._phase = None
            self._set_state(NoMoreProfiles())
            self._schedule_fetch_locked()
            return
        self._phase = CandidatePhase.DISPLAYED
        self._notify()
        self._maybe_prefetch_locked()

    async def like(self) -> None:
        await self._decide(SwipeDirection.LIKE)

    async def super_like(self) -> None:
        await self._decide(SwipeDirection.SUPER_LIKE)

    async def dislike(self) -> None:
        await self._decide(SwipeDirection.DISLIKE)

    async def _decide(self, direction: SwipeDirection) -> None:
        async with self._lock:
            if self._closed:
                return
            candidate = self._current
            if candidate is None:
                self._advance_locked()
                return

            self._phase = advance_candidate(self._phase or CandidatePhase.DISPLAYED, CandidatePhase.DECIDING)
            telemetry = self._telemetry.snapshot()
            result = self._scorer(self._swiper, candidate) if direction is not SwipeDirection.DISLIKE else None
            decision = build_decision(self._swiper, candidate, direction, result, telemetry)

            failure: BaseException | None = None
            try:
                await self._recorder.record(decision)
            except Exception as exc:
                failure = exc
            self._phase = advance_candidate(self._phase, CandidatePhase.RECORDED)

            next_state: EngineState = Success()
            if failure is None and result is not None and result.is_match:
                self._phase = advance_candidate(self._phase, CandidatePhase.MATCH_PENDING)
                try:
                    match = await self._match_creator.create_match(result, self._swiper, candidate)
                except Exception as exc:
                    failure = exc
                else:
                    next_state = MatchFound(
                        MatchDetail(profile=candidate, match=match, result=result),
                        is_super=direction is SwipeDirection.SUPER_LIKE,
                    )
            else:
                self._phase = advance_candidate(self._phase, CandidatePhase.NO_MATCH)

            self._undo.push(RecentSwipe(candidate, direction, decision.id))
            self._advance_locked()
            # a match or error outranks the exhaustion state set while advancing
            if failure is not None:
                self._emit_error(failure)
            elif isinstance(next_state, MatchFound) or self._current is not None:
                self._set_state(next_state)

    async def undo(self) -> None:
        async with self._lock:
            if self._closed:
                return
            entry = self._undo.peek()
            if entry is None:
                return
            try:
                await self._recorder.retract(self._swiper.id, entry.profile.id)
            except Exception as exc:
                self._emit_error(exc)
                return
            self._undo.pop()
            if self._current is not None:
                self._queue.push_front(self._current)
            self._queue.push_front(entry.profile)
            logger.info(
                "[ENGINE] undo swiper=%s profile=%s decision=%s",
                self._swiper.id,
                entry.profile.id,
                entry.decision_id,
            )
            self._advance_locked()
            self._set_state(Success())

    def dismiss_match(self) -> None:
        if isinstance(self._state, MatchFound):
            self._set_state(Success() if self._current is not None else NoMoreProfiles())

    def record_photo_viewed(self) -> None:
        if self._current is not None:
            self._telemetry.record_photo_viewed()

    def record_scroll(self, depth: int) -> None:
        if self._current is not None:
            self._telemetry.record_scroll(depth)

    # -- refresh and filters ---------------------------------------------

    async def refresh(self) -> bool:
        async with self._lock:
            if self._closed:
                return False
            now = self._clock()
            if self._last_refresh is not None and now - self._last_refresh < self._refresh_cooldown:
                logger.debug("[ENGINE] refresh ignored, cooldown active swiper=%s", self._swiper.id)
                return False
            self._last_refresh = now
            self._reset_locked()
            self._started = True
            self._begin_load_locked()
            return True

    async def update_filters(self, filter_state: FilterState) -> None:
        async with self._lock:
            if self._closed:
                return
            self._filter_state = filter_state
            logger.info(
                "[ENGINE] filters updated swiper=%s active_filters=%s",
                self._swiper.id,
                filter_state.active_filter_count,
            )
            self._reset_locked()
            self._undo.clear()
            self._started = True
            self._begin_load_locked()

    def watch_filters(self, settings: FilterSettings) -> asyncio.Task:
        if self._watch_task is not None and not self._watch_task.done():
            self._watch_task.cancel()
        self._watch_task = asyncio.get_running_loop().create_task(self._consume_filters(settings))
        return self._watch_task

    async def _consume_filters(self, settings: FilterSettings) -> None:
        try:
            async for filter_state in settings.stream():
                await self.update_filters(filter_state)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            async with self._lock:
                self._emit_error(exc)
