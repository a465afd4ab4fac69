from __future__ import annotations

from ..domain import Match, MatchResult, MatchTier

_TIER_HEADLINES = {
    MatchTier.NORMAL: "It's a Match!",
    MatchTier.HIGH_COMPATIBILITY: "Great Match! You're highly compatible!",
    MatchTier.PERFECT_MATCH: "Perfect Match! An exceptional connection!",
}

_TIER_DESCRIPTIONS = {
    MatchTier.NORMAL: "You both liked each other",
    MatchTier.HIGH_COMPATIBILITY: "Your dogs share similar traits and preferences",
    MatchTier.PERFECT_MATCH: "Almost everything aligns perfectly",
}


def tier_headline(tier: MatchTier, is_super: bool = False) -> str:
    if is_super and tier is not MatchTier.PERFECT_MATCH:
        return "Super Like Match!"
    return _TIER_HEADLINES[tier]


def tier_description(tier: MatchTier) -> str:
    return _TIER_DESCRIPTIONS[tier]


def format_distance(distance_km: float | None) -> str:
    if distance_km is None:
        return "Unknown"
    return f"{round(distance_km)} km"


def build_welcome_message(match: Match) -> str:
    percent = round(match.compatibility_score * 100)
    lines = [
        f"It's a match! You have a {percent}% compatibility score.",
        "",
        "Why you might be great playmates:",
    ]
    lines.extend(f"• {reason.description}" for reason in match.reasons)
    lines.extend(["", "Complete the safety checklist and schedule your first playdate!"])
    return "\n".join(lines)


def build_mismatch_explanation(result: MatchResult) -> list[str]:
    if result.is_match:
        return []
    return [reason.value for reason in result.negative_reasons]
