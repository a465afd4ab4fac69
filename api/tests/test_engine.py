import asyncio

from pawmatch.domain import Coordinates, FilterState, Profile
from pawmatch.errors import ErrorKind
from pawmatch.services.engine import SwipeEngine
from pawmatch.services.engine_state import Error, Initial, Loading, MatchFound, NoMoreProfiles, Success
from pawmatch.services.geo import StaticLocationProvider
from pawmatch.services.state_machine import CandidatePhase

SWIPER = Profile(
    id="dog-me",
    owner_id="user-me",
    age=4,
    size="MEDIUM",
    energy_level="HIGH",
    breed="Beagle",
    latitude=52.3676,
    longitude=4.9041,
)


def dog(idx: int, **overrides) -> Profile:
    fields = {
        "id": f"dog-{idx:03d}",
        "owner_id": f"user-{idx:03d}",
        "age": 5,
        "size": "LARGE",
        "energy_level": "LOW",
        "breed": "Poodle",
        "latitude": 52.3700,
        "longitude": 4.9000,
    }
    fields.update(overrides)
    return Profile(**fields)


def compatible(idx: int) -> Profile:
    return dog(idx, size="MEDIUM", energy_level="HIGH", age=5)


class FakeSource:
    def __init__(self, batches=None, error=None):
        self.batches = list(batches or [])
        self.error = error
        self.requests = []
        self.gate = None

    async def get_batch(self, size):
        self.requests.append(size)
        batch = self.batches.pop(0) if self.batches else []
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return batch


class FakeLedger:
    def __init__(self):
        self.decisions = []
        self.retracted = []
        self.fail_append = None
        self.fail_retract = None

    async def append(self, decision):
        if self.fail_append is not None:
            raise self.fail_append
        self.decisions.append(decision)

    async def retract(self, swiper_id, swiped_id):
        if self.fail_retract is not None:
            raise self.fail_retract
        self.retracted.append((swiper_id, swiped_id))


class FakeMatches:
    def __init__(self, error=None):
        self.created = []
        self.error = error

    async def create(self, match):
        if self.error is not None:
            raise self.error
        self.created.append(match)


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


def make_engine(source, ledger=None, matches=None, **kwargs):
    return SwipeEngine(
        swiper=SWIPER,
        source=source,
        ledger=ledger or FakeLedger(),
        matches=matches or FakeMatches(),
        location=StaticLocationProvider(SWIPER.coordinates),
        **kwargs,
    )


async def _started(engine):
    await engine.start()
    await engine.wait_idle()
    return engine


def test_start_loads_first_candidate_and_emits_success():
    async def scenario():
        source = FakeSource([[dog(i) for i in range(1, 8)]])
        engine = make_engine(source)
        seen = []
        engine.subscribe(lambda state, current: seen.append(state.kind))
        assert isinstance(engine.state, Initial)
        await _started(engine)
        assert seen[0] == Loading.kind
        assert isinstance(engine.state, Success)
        assert engine.current_candidate.id == "dog-001"
        assert engine.candidate_phase is CandidatePhase.DISPLAYED
        assert engine.queue_size == 6
        assert source.requests == [20]
        await engine.close()

    asyncio.run(scenario())


def test_own_profiles_are_never_offered():
    async def scenario():
        own = dog(1, owner_id=SWIPER.owner_id)
        source = FakeSource([[SWIPER, own, dog(2)]])
        engine = await _started(make_engine(source))
        assert engine.current_candidate.id == "dog-002"
        assert engine.queue_size == 0
        await engine.close()

    asyncio.run(scenario())


def test_like_without_match_records_decision_and_advances():
    async def scenario():
        ledger = FakeLedger()
        matches = FakeMatches()
        source = FakeSource([[dog(i) for i in range(1, 10)]])
        engine = await _started(make_engine(source, ledger, matches))
        await engine.like()
        assert [d.swiped_id for d in ledger.decisions] == ["dog-001"]
        decision = ledger.decisions[0]
        assert decision.is_like and not decision.super_like
        assert 0.0 <= decision.compatibility_score < 0.7
        assert matches.created == []
        assert isinstance(engine.state, Success)
        assert engine.current_candidate.id == "dog-002"
        assert engine.can_undo
        await engine.close()

    asyncio.run(scenario())


def test_like_on_compatible_profile_creates_pending_match():
    async def scenario():
        matches = FakeMatches()
        source = FakeSource([[compatible(1)] + [dog(i) for i in range(2, 10)]])
        engine = await _started(make_engine(source, matches=matches))
        await engine.like()
        assert len(matches.created) == 1
        match = matches.created[0]
        assert match.status.value == "PENDING"
        assert match.initiator_profile_id == SWIPER.id
        assert match.profile2_id == "dog-001"
        assert match.id.startswith("match_")
        assert isinstance(engine.state, MatchFound)
        assert engine.state.is_super is False
        assert engine.state.detail.profile.id == "dog-001"
        assert engine.current_candidate.id == "dog-002"
        engine.dismiss_match()
        assert isinstance(engine.state, Success)
        await engine.close()

    asyncio.run(scenario())


def test_super_like_flags_decision_and_match():
    async def scenario():
        ledger = FakeLedger()
        source = FakeSource([[compatible(1)] + [dog(i) for i in range(2, 10)]])
        engine = await _started(make_engine(source, ledger))
        await engine.super_like()
        assert ledger.decisions[0].super_like is True
        assert ledger.decisions[0].is_like is True
        assert isinstance(engine.state, MatchFound)
        assert engine.state.is_super is True
        await engine.close()

    asyncio.run(scenario())


def test_match_on_last_candidate_is_not_hidden_by_exhaustion():
    async def scenario():
        source = FakeSource([[compatible(1)]])
        engine = await _started(make_engine(source))
        await engine.like()
        assert isinstance(engine.state, MatchFound)
        assert engine.current_candidate is None
        await engine.wait_idle()
        assert isinstance(engine.state, MatchFound)
        engine.dismiss_match()
        assert isinstance(engine.state, NoMoreProfiles)
        await engine.close()

    asyncio.run(scenario())


def test_dislike_records_zero_score_and_never_matches():
    async def scenario():
        ledger = FakeLedger()
        matches = FakeMatches()
        source = FakeSource([[compatible(1)] + [dog(i) for i in range(2, 10)]])
        engine = await _started(make_engine(source, ledger, matches))
        await engine.dislike()
        assert ledger.decisions[0].is_like is False
        assert ledger.decisions[0].compatibility_score == 0.0
        assert matches.created == []
        assert isinstance(engine.state, Success)
        await engine.close()

    asyncio.run(scenario())


def test_like_with_empty_queue_emits_no_more_profiles_and_fetches_once():
    async def scenario():
        source = FakeSource()
        engine = make_engine(source)
        await engine.like()
        assert isinstance(engine.state, NoMoreProfiles)
        assert engine.fetch_in_flight
        await engine.like()
        await engine.wait_idle()
        assert source.requests == [20]
        assert isinstance(engine.state, NoMoreProfiles)
        await engine.close()

    asyncio.run(scenario())


def test_low_water_mark_triggers_single_prefetch():
    async def scenario():
        source = FakeSource([[dog(i) for i in range(1, 8)], [dog(i) for i in range(8, 20)]])
        engine = await _started(make_engine(source))
        assert source.requests == [20]
        # 6 queued; the next advance leaves 5, one more leaves 4 and crosses the mark
        await engine.dislike()
        assert engine.queue_size == 5
        assert source.requests == [20]
        await engine.dislike()
        await engine.dislike()
        await engine.wait_idle()
        assert source.requests == [20, 20]
        assert engine.queue_size == 3 + 12
        await engine.close()

    asyncio.run(scenario())


def test_profiles_seen_in_session_are_not_offered_again():
    async def scenario():
        first = [dog(i) for i in range(1, 4)]
        source = FakeSource([first, first + [dog(4)]])
        engine = await _started(make_engine(source))
        offered = [engine.current_candidate.id]
        for _ in range(3):
            await engine.dislike()
            await engine.wait_idle()
            if engine.current_candidate is not None:
                offered.append(engine.current_candidate.id)
        assert offered == ["dog-001", "dog-002", "dog-003", "dog-004"]
        await engine.close()

    asyncio.run(scenario())


def test_undo_with_empty_buffer_is_noop():
    async def scenario():
        ledger = FakeLedger()
        source = FakeSource([[dog(i) for i in range(1, 10)]])
        engine = await _started(make_engine(source, ledger))
        before_state, before_current = engine.state, engine.current_candidate
        await engine.undo()
        assert engine.state is before_state
        assert engine.current_candidate is before_current
        assert ledger.retracted == []
        await engine.close()

    asyncio.run(scenario())


def test_undo_restores_profile_as_head_and_retracts_decision():
    async def scenario():
        ledger = FakeLedger()
        source = FakeSource([[dog(i) for i in range(1, 10)]])
        engine = await _started(make_engine(source, ledger))
        await engine.dislike()
        assert engine.current_candidate.id == "dog-002"
        await engine.undo()
        assert ledger.retracted == [(SWIPER.id, "dog-001")]
        assert engine.current_candidate.id == "dog-001"
        assert engine.queued_profiles[0].id == "dog-002"
        assert not engine.can_undo
        assert isinstance(engine.state, Success)
        await engine.close()

    asyncio.run(scenario())


def test_undo_buffer_keeps_only_last_ten_decisions():
    async def scenario():
        ledger = FakeLedger()
        source = FakeSource([[dog(i) for i in range(1, 30)]])
        engine = await _started(make_engine(source, ledger))
        for _ in range(12):
            await engine.dislike()
        for _ in range(12):
            await engine.undo()
        assert len(ledger.retracted) == 10
        assert ledger.retracted[0] == (SWIPER.id, "dog-012")
        assert ledger.retracted[-1] == (SWIPER.id, "dog-003")
        assert engine.current_candidate.id == "dog-003"
        await engine.close()

    asyncio.run(scenario())


def test_undo_retract_failure_keeps_buffer_and_reports_error():
    async def scenario():
        ledger = FakeLedger()
        source = FakeSource([[dog(i) for i in range(1, 10)]])
        engine = await _started(make_engine(source, ledger))
        await engine.dislike()
        ledger.fail_retract = ConnectionError("ledger offline")
        await engine.undo()
        assert isinstance(engine.state, Error)
        assert engine.state.error_kind is ErrorKind.NETWORK
        assert engine.can_undo
        assert engine.current_candidate.id == "dog-002"
        await engine.close()

    asyncio.run(scenario())


def test_filter_update_forgets_decisions_made_under_old_filter():
    async def scenario():
        ledger = FakeLedger()
        small = [dog(i, size="SMALL") for i in range(40, 46)]
        source = FakeSource([[dog(i) for i in range(1, 10)], small])
        engine = await _started(make_engine(source, ledger))
        await engine.dislike()
        assert engine.can_undo

        await engine.update_filters(FilterState(sizes={"SMALL"}))
        await engine.wait_idle()
        assert not engine.can_undo

        await engine.undo()
        assert ledger.retracted == []
        assert engine.current_candidate.id == "dog-040"
        assert all(p.size == "SMALL" for p in engine.queued_profiles)
        await engine.close()

    asyncio.run(scenario())


def test_refresh_is_rate_limited_by_cooldown():
    async def scenario():
        clock = FakeClock()
        source = FakeSource([[dog(i) for i in range(1, 10)] for _ in range(3)])
        engine = await _started(make_engine(source, clock=clock))
        generation = engine.generation

        assert await engine.refresh() is True
        await engine.wait_idle()
        assert engine.generation == generation + 1

        clock.now += 30
        assert await engine.refresh() is False
        assert engine.generation == generation + 1

        clock.now += 31
        assert await engine.refresh() is True
        await engine.wait_idle()
        assert engine.generation == generation + 2
        assert source.requests == [20, 20, 20]
        await engine.close()

    asyncio.run(scenario())


def test_filter_update_discards_inflight_fetch():
    async def scenario():
        stale = [dog(i, size="SMALL") for i in range(1, 6)]
        fresh = [dog(i, size="LARGE") for i in range(10, 16)]
        source = FakeSource([stale, fresh])
        source.gate = asyncio.Event()
        engine = make_engine(source)
        await engine.start()
        await asyncio.sleep(0)
        assert engine.fetch_in_flight
        stale_task = engine._fetch_task

        await engine.update_filters(FilterState(sizes={"LARGE"}))
        assert isinstance(engine.state, Loading)
        source.gate.set()
        await asyncio.gather(stale_task, return_exceptions=True)
        await engine.wait_idle()

        ids = [engine.current_candidate.id] + [p.id for p in engine.queued_profiles]
        assert all(p.size == "LARGE" for p in [engine.current_candidate] + engine.queued_profiles)
        assert not {p.id for p in stale} & set(ids)
        assert engine.filter_state.active_filter_count == 1
        await engine.close()

    asyncio.run(scenario())


def test_stale_fetch_result_is_dropped_after_reset():
    async def scenario():
        source = FakeSource(
            [[dog(i) for i in range(1, 8)], [dog(i) for i in range(20, 27)], [dog(30)]]
        )
        engine = await _started(make_engine(source))
        old_generation = engine.generation
        await engine.update_filters(FilterState())
        await engine.wait_idle()
        assert engine.current_candidate.id == "dog-020"
        await engine._fetch(old_generation)
        assert engine.queue_size == 6
        assert "dog-030" not in {p.id for p in engine.queued_profiles}
        assert engine.current_candidate.id == "dog-020"
        await engine.close()

    asyncio.run(scenario())


def test_ledger_failure_reports_error_and_still_advances():
    async def scenario():
        ledger = FakeLedger()
        ledger.fail_append = ConnectionError("ledger offline")
        matches = FakeMatches()
        source = FakeSource([[compatible(1)] + [dog(i) for i in range(2, 10)]])
        engine = await _started(make_engine(source, ledger, matches))
        await engine.like()
        assert isinstance(engine.state, Error)
        assert engine.state.error_kind is ErrorKind.NETWORK
        assert matches.created == []
        assert engine.current_candidate.id == "dog-002"
        await engine.close()

    asyncio.run(scenario())


def test_match_repository_failure_reports_general_error():
    async def scenario():
        matches = FakeMatches(error=RuntimeError("boom"))
        source = FakeSource([[compatible(1)] + [dog(i) for i in range(2, 10)]])
        engine = await _started(make_engine(source, matches=matches))
        await engine.like()
        assert isinstance(engine.state, Error)
        assert engine.state.error_kind is ErrorKind.GENERAL
        assert engine.state.message == "Unexpected error: boom"
        assert engine.current_candidate.id == "dog-002"
        await engine.close()

    asyncio.run(scenario())


def test_prefetch_failure_keeps_queue_and_allows_retry():
    async def scenario():
        source = FakeSource([[dog(i) for i in range(1, 6)]])
        engine = await _started(make_engine(source))
        assert engine.queue_size == 4
        source.error = PermissionError("denied")
        await engine.dislike()
        await engine.wait_idle()
        assert isinstance(engine.state, Error)
        assert engine.state.error_kind is ErrorKind.PERMISSION
        assert engine.queue_size == 3
        assert not engine.fetch_in_flight

        source.error = None
        source.batches = [[dog(i) for i in range(6, 9)]]
        await engine.dislike()
        await engine.wait_idle()
        assert engine.queue_size == 2 + 3
        await engine.close()

    asyncio.run(scenario())


def test_filters_exclude_far_and_out_of_range_candidates():
    async def scenario():
        far = dog(1, latitude=48.8566, longitude=2.3522)
        old = dog(2, age=15)
        near = dog(3)
        unknown = dog(4, latitude=None, longitude=None)
        source = FakeSource([[far, old, near, unknown]])
        engine = make_engine(source, filter_state=FilterState(max_distance=25, max_age=10))
        await _started(engine)
        assert engine.current_candidate.id == "dog-003"
        assert [p.id for p in engine.queued_profiles] == ["dog-004"]
        await engine.close()

    asyncio.run(scenario())


def test_telemetry_is_captured_and_reset_per_candidate():
    async def scenario():
        ledger = FakeLedger()
        clock = FakeClock()
        source = FakeSource([[dog(i) for i in range(1, 10)]])
        engine = await _started(make_engine(source, ledger, clock=clock))
        engine.record_photo_viewed()
        engine.record_photo_viewed()
        engine.record_scroll(40)
        engine.record_scroll(10)
        clock.now += 2.5
        await engine.dislike()
        await engine.dislike()
        first, second = ledger.decisions
        assert first.telemetry.photos_viewed == 2
        assert first.telemetry.scroll_depth == 40
        assert first.telemetry.view_duration_ms == 2500
        assert second.telemetry.photos_viewed == 0
        assert second.telemetry.scroll_depth == 0
        await engine.close()

    asyncio.run(scenario())


def test_subscribe_returns_unsubscribe():
    async def scenario():
        source = FakeSource([[dog(i) for i in range(1, 10)]])
        engine = make_engine(source)
        seen = []
        unsubscribe = engine.subscribe(lambda state, current: seen.append((state.kind, current)))
        await _started(engine)
        assert seen[-1][0] == Success.kind
        assert seen[-1][1].id == "dog-001"
        unsubscribe()
        count = len(seen)
        await engine.dislike()
        assert len(seen) == count
        await engine.close()

    asyncio.run(scenario())


def test_watch_filters_applies_each_emission():
    class Settings:
        def __init__(self, states):
            self._states = states

        async def stream(self):
            for state in self._states:
                yield state

    async def scenario():
        source = FakeSource([[dog(i) for i in range(1, 9)] for _ in range(3)])
        engine = await _started(make_engine(source))
        generation = engine.generation
        task = engine.watch_filters(Settings([FilterState(min_age=1), FilterState(breeds={"Poodle"})]))
        await task
        await engine.wait_idle()
        assert engine.generation == generation + 2
        assert engine.filter_state.breeds == frozenset({"Poodle"})
        assert engine.current_candidate is not None
        assert engine.current_candidate.breed == "Poodle"
        await engine.close()

    asyncio.run(scenario())


def test_close_cancels_inflight_fetch_and_ignores_commands():
    async def scenario():
        source = FakeSource([[dog(1)]])
        source.gate = asyncio.Event()
        engine = make_engine(source)
        await engine.start()
        await asyncio.sleep(0)
        task = engine._fetch_task
        await engine.close()
        assert task.cancelled()
        await engine.like()
        assert source.requests == [20]
        assert await engine.refresh() is False

    asyncio.run(scenario())


def test_location_provider_distance_is_used_for_filtering():
    class FlatLocation:
        async def last_known_location(self):
            return Coordinates(0.0, 0.0)

        def distance(self, a, b):
            return 100.0

    async def scenario():
        source = FakeSource([[dog(1), dog(2, latitude=None, longitude=None)]])
        engine = SwipeEngine(
            swiper=SWIPER,
            source=source,
            ledger=FakeLedger(),
            matches=FakeMatches(),
            location=FlatLocation(),
        )
        await _started(engine)
        assert engine.current_candidate.id == "dog-002"
        assert engine.queue_size == 0
        await engine.close()

    asyncio.run(scenario())
