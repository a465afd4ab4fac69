from __future__ import annotations

import logging
from typing import Protocol

from ..domain import Match, MatchResult, MatchStatus, Profile, generate_match_id
from .scoring import determine_tier

logger = logging.getLogger(__name__)


class MatchRepository(Protocol):
    async def create(self, match: Match) -> None: ...


def build_match(match_result: MatchResult, swiper: Profile, swiped: Profile) -> Match:
    if not match_result.is_match:
        raise ValueError("cannot build a match from a non-matching result")
    return Match(
        id=generate_match_id(),
        user1_id=swiper.owner_id,
        user2_id=swiped.owner_id,
        profile1_id=swiper.id,
        profile2_id=swiped.id,
        compatibility_score=match_result.compatibility_score,
        reasons=match_result.reasons,
        tier=match_result.tier or determine_tier(match_result.compatibility_score),
        initiator_profile_id=swiper.id,
        status=MatchStatus.PENDING,
        location_distance=match_result.distance,
    )


class MatchCreator:
    def __init__(self, repository: MatchRepository) -> None:
        self._repository = repository

    async def create_match(self, match_result: MatchResult, swiper: Profile, swiped: Profile) -> Match:
        match = build_match(match_result, swiper, swiped)
        logger.info(
            "[MATCH] create id=%s profiles=%s/%s tier=%s score=%.3f",
            match.id,
            match.profile1_id,
            match.profile2_id,
            match.tier.value,
            match.compatibility_score,
        )
        await self._repository.create(match)
        return match
