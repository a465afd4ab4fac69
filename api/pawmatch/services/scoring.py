from __future__ import annotations

from typing import Any

from ..config import (
    CLOSE_AGE_YEARS,
    DEFAULT_SCORING_CONFIG,
    HIGH_COMPATIBILITY_THRESHOLD,
    MATCH_THRESHOLD,
    NEARBY_DISTANCE_KM,
    PERFECT_MATCH_THRESHOLD,
)
from ..domain import MatchReason, MatchResult, MatchTier, MismatchReason, Profile
from .geo import haversine_km

DISTANCE_UNKNOWN_WARNING = "Distance unknown"

_MISMATCH_FOR = {
    MatchReason.ENERGY_LEVEL_MATCH: MismatchReason.DIFFERENT_ENERGY,
    MatchReason.AGE_COMPATIBILITY: MismatchReason.AGE_GAP,
    MatchReason.SIZE_COMPATIBILITY: MismatchReason.SIZE_MISMATCH,
}


def _to_float(value: Any, default: float) -> float:
    try:
        if value is None:
            return float(default)
        return float(value)
    except (TypeError, ValueError):
        return float(default)


def _norm(value: str | None) -> str:
    return str(value or "").strip().lower()


def determine_tier(score: float) -> MatchTier:
    if score >= PERFECT_MATCH_THRESHOLD:
        return MatchTier.PERFECT_MATCH
    if score >= HIGH_COMPATIBILITY_THRESHOLD:
        return MatchTier.HIGH_COMPATIBILITY
    return MatchTier.NORMAL


def profile_distance(a: Profile, b: Profile) -> float | None:
    ca, cb = a.coordinates, b.coordinates
    if ca is None or cb is None:
        return None
    return haversine_km(ca, cb)


def compute_compatibility(a: Profile, b: Profile, cfg: dict[str, Any] | None = None) -> MatchResult:
    """Score two profiles on energy, size, age and proximity.

    The aggregate is the weighted fraction of satisfied criteria over the criteria that
    apply to the pair; proximity does not apply when either profile lacks coordinates.
    """
    cfg = {**DEFAULT_SCORING_CONFIG, **(cfg or {})}

    criteria: list[tuple[MatchReason, bool, float]] = [
        (
            MatchReason.ENERGY_LEVEL_MATCH,
            _norm(a.energy_level) == _norm(b.energy_level),
            _to_float(cfg.get("ENERGY_W"), 0.30),
        ),
        (
            MatchReason.SIZE_COMPATIBILITY,
            _norm(a.size) == _norm(b.size),
            _to_float(cfg.get("SIZE_W"), 0.20),
        ),
        (
            MatchReason.AGE_COMPATIBILITY,
            abs(a.age - b.age) <= CLOSE_AGE_YEARS,
            _to_float(cfg.get("AGE_W"), 0.20),
        ),
    ]

    warnings: list[str] = []
    distance = profile_distance(a, b)
    if distance is None:
        warnings.append(DISTANCE_UNKNOWN_WARNING)
    else:
        criteria.append(
            (
                MatchReason.LOCATION_PROXIMITY,
                distance <= NEARBY_DISTANCE_KM,
                _to_float(cfg.get("LOCATION_W"), 0.30),
            )
        )

    total_weight = sum(max(0.0, w) for _, _, w in criteria)
    earned = sum(max(0.0, w) for _, ok, w in criteria if ok)
    score = earned / total_weight if total_weight > 0 else 0.0
    score = round(max(0.0, min(1.0, score)), 6)

    reasons = tuple(reason for reason, ok, _ in criteria if ok)
    is_match = score >= MATCH_THRESHOLD

    negative: tuple[MismatchReason, ...] = ()
    if not is_match:
        negative = tuple(
            mismatch for reason, mismatch in _MISMATCH_FOR.items() if reason not in reasons
        )

    return MatchResult(
        is_match=is_match,
        compatibility_score=score,
        reasons=reasons,
        distance=round(distance, 3) if distance is not None else None,
        warnings=tuple(warnings),
        negative_reasons=negative,
        tier=determine_tier(score) if is_match else None,
    )
