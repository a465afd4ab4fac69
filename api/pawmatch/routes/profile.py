from fastapi import APIRouter, Header, HTTPException

from .. import repo
from ..deps import parse_actor_id
from ..domain import Profile
from ..http_helpers import profile_out
from ..schemas import ProfileIn, ProfileOut

router = APIRouter()


@router.put("/profiles/{profile_id}", response_model=ProfileOut)
def upsert_profile(
    profile_id: str,
    payload: ProfileIn,
    x_actor_user_id: str | None = Header(default=None),
) -> ProfileOut:
    user_id = parse_actor_id(x_actor_user_id, "X-Actor-User-Id")
    if payload.id != profile_id:
        raise HTTPException(status_code=400, detail="Profile id in path and body must match")
    existing = repo.get_profile(profile_id)
    if existing is not None and existing.owner_id != user_id:
        raise HTTPException(status_code=403, detail="Dog profile belongs to another user")
    profile = Profile(
        id=payload.id,
        owner_id=user_id,
        name=payload.name,
        age=payload.age,
        size=payload.size,
        energy_level=payload.energy_level,
        breed=payload.breed,
        latitude=payload.latitude,
        longitude=payload.longitude,
    )
    return profile_out(repo.upsert_profile(profile))


@router.get("/profiles/{profile_id}", response_model=ProfileOut)
def get_profile(profile_id: str) -> ProfileOut:
    profile = repo.get_profile(profile_id)
    if profile is None:
        raise HTTPException(status_code=404, detail="Dog profile not found")
    return profile_out(profile)
