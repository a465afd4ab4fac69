from fastapi import APIRouter, Depends, HTTPException

from ..deps import get_registry, get_swiper_profile, require_engine
from ..domain import Coordinates, Profile
from ..http_helpers import filter_state_from_input, session_response
from ..schemas import FilterStateIn, LocationIn, ScrollIn, SwipeSessionResponse
from ..services.geo import StaticLocationProvider
from ..services.rate_limit import SWIPE_RULE, UNDO_RULE, rate_limit_dependency
from ..services.sessions import EngineRegistry

router = APIRouter(prefix="/swipe")

RL_SWIPE = rate_limit_dependency(SWIPE_RULE)
RL_UNDO = rate_limit_dependency(UNDO_RULE)


@router.post("/session", response_model=SwipeSessionResponse)
async def open_session(
    swiper: Profile = Depends(get_swiper_profile),
    registry: EngineRegistry = Depends(get_registry),
) -> SwipeSessionResponse:
    engine = await registry.get_or_start(swiper)
    await engine.wait_idle()
    return session_response(engine)


@router.delete("/session")
async def close_session(
    swiper: Profile = Depends(get_swiper_profile),
    registry: EngineRegistry = Depends(get_registry),
) -> dict[str, bool]:
    return {"closed": await registry.discard(swiper.id)}


@router.get("/state", response_model=SwipeSessionResponse)
async def get_state(
    swiper: Profile = Depends(get_swiper_profile),
    registry: EngineRegistry = Depends(get_registry),
) -> SwipeSessionResponse:
    return session_response(require_engine(registry, swiper))


@router.post("/like", response_model=SwipeSessionResponse, dependencies=[RL_SWIPE])
async def like(
    swiper: Profile = Depends(get_swiper_profile),
    registry: EngineRegistry = Depends(get_registry),
) -> SwipeSessionResponse:
    engine = require_engine(registry, swiper)
    await engine.like()
    await engine.wait_idle()
    return session_response(engine)


@router.post("/super-like", response_model=SwipeSessionResponse, dependencies=[RL_SWIPE])
async def super_like(
    swiper: Profile = Depends(get_swiper_profile),
    registry: EngineRegistry = Depends(get_registry),
) -> SwipeSessionResponse:
    engine = require_engine(registry, swiper)
    await engine.super_like()
    await engine.wait_idle()
    return session_response(engine)


@router.post("/dislike", response_model=SwipeSessionResponse, dependencies=[RL_SWIPE])
async def dislike(
    swiper: Profile = Depends(get_swiper_profile),
    registry: EngineRegistry = Depends(get_registry),
) -> SwipeSessionResponse:
    engine = require_engine(registry, swiper)
    await engine.dislike()
    await engine.wait_idle()
    return session_response(engine)


@router.post("/undo", response_model=SwipeSessionResponse, dependencies=[RL_UNDO])
async def undo(
    swiper: Profile = Depends(get_swiper_profile),
    registry: EngineRegistry = Depends(get_registry),
) -> SwipeSessionResponse:
    engine = require_engine(registry, swiper)
    await engine.undo()
    return session_response(engine)


@router.post("/refresh", response_model=SwipeSessionResponse)
async def refresh(
    swiper: Profile = Depends(get_swiper_profile),
    registry: EngineRegistry = Depends(get_registry),
) -> SwipeSessionResponse:
    engine = require_engine(registry, swiper)
    refreshed = await engine.refresh()
    await engine.wait_idle()
    return session_response(engine, refreshed=refreshed)


@router.put("/filters", response_model=SwipeSessionResponse)
async def update_filters(
    payload: FilterStateIn,
    swiper: Profile = Depends(get_swiper_profile),
    registry: EngineRegistry = Depends(get_registry),
) -> SwipeSessionResponse:
    engine = require_engine(registry, swiper)
    await engine.update_filters(filter_state_from_input(payload))
    await engine.wait_idle()
    return session_response(engine)


@router.put("/location", response_model=SwipeSessionResponse)
async def update_location(
    payload: LocationIn,
    swiper: Profile = Depends(get_swiper_profile),
    registry: EngineRegistry = Depends(get_registry),
) -> SwipeSessionResponse:
    engine = require_engine(registry, swiper)
    provider = engine.location_provider
    if not isinstance(provider, StaticLocationProvider):
        raise HTTPException(status_code=409, detail="Location is managed by the device")
    provider.set_location(Coordinates(payload.latitude, payload.longitude))
    return session_response(engine)


@router.post("/match/dismiss", response_model=SwipeSessionResponse)
async def dismiss_match(
    swiper: Profile = Depends(get_swiper_profile),
    registry: EngineRegistry = Depends(get_registry),
) -> SwipeSessionResponse:
    engine = require_engine(registry, swiper)
    engine.dismiss_match()
    return session_response(engine)


@router.post("/telemetry/photo")
async def record_photo_viewed(
    swiper: Profile = Depends(get_swiper_profile),
    registry: EngineRegistry = Depends(get_registry),
) -> dict[str, str]:
    require_engine(registry, swiper).record_photo_viewed()
    return {"status": "ok"}


@router.post("/telemetry/scroll")
async def record_scroll(
    payload: ScrollIn,
    swiper: Profile = Depends(get_swiper_profile),
    registry: EngineRegistry = Depends(get_registry),
) -> dict[str, str]:
    require_engine(registry, swiper).record_scroll(payload.depth)
    return {"status": "ok"}
