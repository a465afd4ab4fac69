import logging
from typing import Callable

from ..domain import WILDCARD, Coordinates, FilterState, Profile

logger = logging.getLogger(__name__)

DistanceFn = Callable[[Coordinates, Coordinates], float]


def _norm(value: str | None) -> str:
    return str(value or "").strip().upper()


def category_allowed(allowed: frozenset[str], value: str) -> bool:
    wanted = {_norm(v) for v in allowed}
    if WILDCARD in wanted:
        return True
    return _norm(value) in wanted


def candidate_distance(
    profile: Profile,
    current_location: Coordinates | None,
    distance_fn: DistanceFn,
) -> float | None:
    coords = profile.coordinates
    if current_location is None or coords is None:
        return None
    return distance_fn(current_location, coords)


def passes_filter(
    profile: Profile,
    filter_state: FilterState,
    current_location: Coordinates | None,
    distance_fn: DistanceFn,
) -> bool:
    if not profile.owner_id.strip():
        logger.debug("[QUEUE] skipping profile %s: missing owner id", profile.id)
        return False

    age_ok = filter_state.min_age <= profile.age <= filter_state.max_age
    energy_ok = category_allowed(filter_state.energy_levels, profile.energy_level)
    breed_ok = category_allowed(filter_state.breeds, profile.breed)
    size_ok = category_allowed(filter_state.sizes, profile.size)

    distance = candidate_distance(profile, current_location, distance_fn)
    distance_ok = distance is None or distance <= filter_state.max_distance

    result = age_ok and energy_ok and breed_ok and size_ok and distance_ok
    logger.debug(
        "[QUEUE] filter profile=%s age=%s energy=%s breed=%s size=%s distance=%s -> %s",
        profile.id,
        age_ok,
        energy_ok,
        breed_ok,
        size_ok,
        distance_ok,
        result,
    )
    return result
