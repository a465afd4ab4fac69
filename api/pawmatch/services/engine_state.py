from __future__ import annotations

from dataclasses import dataclass

from ..domain import Match, MatchResult, Profile
from ..errors import ErrorKind


@dataclass(frozen=True)
class MatchDetail:
    profile: Profile
    match: Match
    result: MatchResult

    @property
    def compatibility_score(self) -> float:
        return self.match.compatibility_score


@dataclass(frozen=True)
class Initial:
    kind = "initial"


@dataclass(frozen=True)
class Loading:
    kind = "loading"


@dataclass(frozen=True)
class Success:
    kind = "success"


@dataclass(frozen=True)
class NoMoreProfiles:
    kind = "no_more_profiles"


@dataclass(frozen=True)
class MatchFound:
    detail: MatchDetail
    is_super: bool = False
    kind = "match"


@dataclass(frozen=True)
class Error:
    message: str
    error_kind: ErrorKind = ErrorKind.GENERAL
    kind = "error"


EngineState = Initial | Loading | Success | NoMoreProfiles | MatchFound | Error
