from fastapi import HTTPException

from .domain import FilterState, Match, Profile
from .schemas import (
    EngineStateOut,
    FilterStateIn,
    MatchDetailOut,
    MatchOut,
    ProfileOut,
    SwipeSessionResponse,
)
from .services.engine import SwipeEngine
from .services.engine_state import EngineState, Error, MatchFound
from .services.explanations import (
    build_welcome_message,
    format_distance,
    tier_description,
    tier_headline,
)


def normalize_category(values: list[str]) -> frozenset[str]:
    out: set[str] = set()
    for value in values:
        v = str(value or "").strip()
        if not v:
            continue
        out.add("ANY" if v.upper() == "ANY" else v)
    return frozenset(out)


def filter_state_from_input(payload: FilterStateIn) -> FilterState:
    try:
        return FilterState(
            max_distance=payload.max_distance,
            min_age=payload.min_age,
            max_age=payload.max_age,
            energy_levels=normalize_category(payload.energy_levels),
            breeds=normalize_category(payload.breeds),
            sizes=normalize_category(payload.sizes),
        )
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc))


def profile_out(profile: Profile) -> ProfileOut:
    return ProfileOut(
        id=profile.id,
        owner_id=profile.owner_id,
        name=profile.name,
        age=profile.age,
        size=profile.size,
        energy_level=profile.energy_level,
        breed=profile.breed,
        latitude=profile.latitude,
        longitude=profile.longitude,
    )


def match_out(match: Match, viewer_profile_id: str | None = None) -> MatchOut:
    other_user_id = other_profile_id = None
    if viewer_profile_id is not None:
        other_profile_id = match.other_profile_id(viewer_profile_id)
        viewer_user_id = match.user1_id if match.profile1_id == viewer_profile_id else match.user2_id
        other_user_id = match.other_user_id(viewer_user_id)
    return MatchOut(
        id=match.id,
        user1_id=match.user1_id,
        user2_id=match.user2_id,
        profile1_id=match.profile1_id,
        profile2_id=match.profile2_id,
        compatibility_score=match.compatibility_score,
        reasons=[r.description for r in match.reasons],
        status=match.status.value,
        tier=match.tier.value,
        initiator_profile_id=match.initiator_profile_id,
        created_at=match.timestamp,
        expires_at=match.expires_at,
        location_distance=match.location_distance,
        distance_label=format_distance(match.location_distance),
        is_active=match.is_active(),
        other_profile_id=other_profile_id,
        other_user_id=other_user_id,
    )


def state_out(state: EngineState) -> EngineStateOut:
    if isinstance(state, Error):
        return EngineStateOut(kind=state.kind, message=state.message, error_kind=state.error_kind.value)
    if isinstance(state, MatchFound):
        detail = state.detail
        return EngineStateOut(
            kind=state.kind,
            match=MatchDetailOut(
                profile=profile_out(detail.profile),
                match=match_out(detail.match, viewer_profile_id=detail.match.initiator_profile_id),
                is_super=state.is_super,
                headline=tier_headline(detail.match.tier, state.is_super),
                description=tier_description(detail.match.tier),
                welcome_message=build_welcome_message(detail.match),
                warnings=list(detail.result.warnings),
            ),
        )
    return EngineStateOut(kind=state.kind)


def session_response(engine: SwipeEngine, refreshed: bool | None = None) -> SwipeSessionResponse:
    current = engine.current_candidate
    return SwipeSessionResponse(
        state=state_out(engine.state),
        current_candidate=profile_out(current) if current is not None else None,
        queue_size=engine.queue_size,
        can_undo=engine.can_undo,
        active_filter_count=engine.filter_state.active_filter_count,
        refreshed=refreshed,
    )
