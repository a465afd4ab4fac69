from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException

from .. import repo
from ..deps import get_swiper_profile
from ..domain import Profile
from ..http_helpers import match_out
from ..schemas import MatchListResponse, MatchOut
from ..services.rate_limit import MATCH_ACTION_RULE, rate_limit_dependency

router = APIRouter()

RL_MATCH_ACTION = rate_limit_dependency(MATCH_ACTION_RULE)


@router.get("/matches", response_model=MatchListResponse)
def list_matches(profile: Profile = Depends(get_swiper_profile)) -> MatchListResponse:
    matches = repo.list_matches_for_profile(profile.id, now=datetime.now(timezone.utc))
    return MatchListResponse(matches=[match_out(m, viewer_profile_id=profile.id) for m in matches])


def _match_for_profile(match_id: str, profile: Profile):
    match = repo.view_match(match_id, now=datetime.now(timezone.utc))
    if match is None or profile.id not in {match.profile1_id, match.profile2_id}:
        raise HTTPException(status_code=404, detail="Match not found")
    return match


@router.get("/matches/{match_id}", response_model=MatchOut)
def get_match(match_id: str, profile: Profile = Depends(get_swiper_profile)) -> MatchOut:
    return match_out(_match_for_profile(match_id, profile), viewer_profile_id=profile.id)


@router.post("/matches/{match_id}/{action}", response_model=MatchOut, dependencies=[RL_MATCH_ACTION])
def act_on_match(match_id: str, action: str, profile: Profile = Depends(get_swiper_profile)) -> MatchOut:
    if action not in {"accept", "decline"}:
        raise HTTPException(status_code=400, detail="action must be accept or decline")
    match = _match_for_profile(match_id, profile)
    if action == "accept" and match.initiator_profile_id == profile.id:
        raise HTTPException(status_code=403, detail="The other dog's owner must accept this match")
    updated = repo.update_match_status(
        match_id,
        action=action,
        now=datetime.now(timezone.utc),
        user_id=profile.owner_id,
    )
    if updated is None:
        raise HTTPException(status_code=404, detail="Match not found")
    return match_out(updated, viewer_profile_id=profile.id)
