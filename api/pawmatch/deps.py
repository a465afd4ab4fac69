from fastapi import Header, HTTPException, Request

from . import repo
from .domain import Profile
from .services.engine import SwipeEngine
from .services.sessions import EngineRegistry


def parse_actor_id(raw_value: str | None, header_name: str) -> str:
    if not raw_value:
        raise HTTPException(status_code=401, detail=f"{header_name} header is required")
    value = raw_value.strip()
    if not value:
        raise HTTPException(status_code=401, detail=f"{header_name} header is required")
    if len(value) > 128:
        raise HTTPException(status_code=400, detail=f"{header_name} is too long")
    return value


def get_swiper_profile(
    x_actor_user_id: str | None = Header(default=None),
    x_actor_profile_id: str | None = Header(default=None),
) -> Profile:
    user_id = parse_actor_id(x_actor_user_id, "X-Actor-User-Id")
    profile_id = parse_actor_id(x_actor_profile_id, "X-Actor-Profile-Id")
    profile = repo.get_profile(profile_id)
    if profile is None:
        raise HTTPException(status_code=404, detail="Dog profile not found")
    if profile.owner_id != user_id:
        raise HTTPException(status_code=403, detail="Dog profile belongs to another user")
    return profile


def get_registry(request: Request) -> EngineRegistry:
    registry = getattr(request.app.state, "engines", None)
    if registry is None:
        raise HTTPException(status_code=503, detail="Swipe sessions are not available")
    return registry


def require_engine(registry: EngineRegistry, profile: Profile) -> SwipeEngine:
    engine = registry.get(profile.id)
    if engine is None:
        raise HTTPException(status_code=409, detail="No swipe session; POST /swipe/session first")
    return engine
