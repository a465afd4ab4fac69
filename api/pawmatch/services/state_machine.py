from datetime import datetime
from enum import Enum

from ..domain import Match, MatchStatus


class CandidatePhase(str, Enum):
    DISPLAYED = "displayed"
    DECIDING = "deciding"
    RECORDED = "recorded"
    MATCH_PENDING = "match_pending"
    NO_MATCH = "no_match"


_CANDIDATE_TRANSITIONS = {
    CandidatePhase.DISPLAYED: {CandidatePhase.DECIDING},
    CandidatePhase.DECIDING: {CandidatePhase.RECORDED},
    CandidatePhase.RECORDED: {CandidatePhase.MATCH_PENDING, CandidatePhase.NO_MATCH},
    CandidatePhase.MATCH_PENDING: set(),
    CandidatePhase.NO_MATCH: set(),
}


def advance_candidate(current: CandidatePhase, target: CandidatePhase) -> CandidatePhase:
    if target not in _CANDIDATE_TRANSITIONS[current]:
        raise ValueError(f"illegal candidate transition {current.value} -> {target.value}")
    return target


def transition_status(match: Match, action: str, now: datetime) -> MatchStatus:
    current = match.status
    if current in {MatchStatus.DECLINED, MatchStatus.EXPIRED}:
        return current

    if match.is_expired(now):
        return MatchStatus.EXPIRED

    if action == "accept":
        if current is MatchStatus.PENDING:
            return MatchStatus.ACTIVE
        return current

    if action == "decline":
        if current in {MatchStatus.PENDING, MatchStatus.ACTIVE}:
            return MatchStatus.DECLINED
        return current

    if action == "expire":
        if current in {MatchStatus.PENDING, MatchStatus.ACTIVE}:
            return MatchStatus.EXPIRED
        return current

    return current
