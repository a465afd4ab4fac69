import math
import random
import uuid
from collections import Counter
from itertools import combinations
from typing import Any

from sqlalchemy import text

from ..config import EARTH_RADIUS_KM
from ..domain import Coordinates, Profile
from .scoring import compute_compatibility

SIZES = ["SMALL", "MEDIUM", "LARGE"]
ENERGY_LEVELS = ["LOW", "MEDIUM", "HIGH"]
BREEDS = [
    "Beagle",
    "Border Collie",
    "Corgi",
    "Dachshund",
    "French Bulldog",
    "Golden Retriever",
    "Labrador",
    "Poodle",
    "Pug",
    "Mixed",
]
NAMES = ["Bella", "Max", "Luna", "Charlie", "Milo", "Daisy", "Rocky", "Nala", "Buddy", "Coco", "Teddy", "Lola"]

# breed tendencies keep seeded energy levels plausible
BREED_ENERGY = {
    "Border Collie": {"HIGH": 4.0, "MEDIUM": 1.0, "LOW": 0.2},
    "Labrador": {"HIGH": 2.0, "MEDIUM": 2.0, "LOW": 0.5},
    "Pug": {"HIGH": 0.3, "MEDIUM": 1.5, "LOW": 3.0},
    "French Bulldog": {"HIGH": 0.5, "MEDIUM": 1.5, "LOW": 2.5},
}

DEFAULT_CENTER = Coordinates(52.3676, 4.9041)


def _weighted_choice(rng: random.Random, options: list[str], weight_map: dict[str, float] | None = None) -> str:
    if not weight_map:
        return rng.choice(options)
    weights = [float(weight_map.get(o, 1.0)) for o in options]
    return rng.choices(options, weights=weights, k=1)[0]


def _jitter(rng: random.Random, center: Coordinates, spread_km: float) -> Coordinates:
    # uniform over a disc of radius spread_km
    r = spread_km * math.sqrt(rng.random())
    theta = rng.random() * 2 * math.pi
    dlat = math.degrees((r * math.cos(theta)) / EARTH_RADIUS_KM)
    dlng = math.degrees((r * math.sin(theta)) / (EARTH_RADIUS_KM * math.cos(math.radians(center.latitude))))
    return Coordinates(round(center.latitude + dlat, 6), round(center.longitude + dlng, 6))


def generate_profiles(
    n_profiles: int,
    seed: int = 42,
    center: Coordinates = DEFAULT_CENTER,
    spread_km: float = 25.0,
    missing_location_ratio: float = 0.05,
) -> list[Profile]:
    rng = random.Random(seed)
    out: list[Profile] = []
    for idx in range(n_profiles):
        breed = rng.choice(BREEDS)
        coords = None if rng.random() < missing_location_ratio else _jitter(rng, center, spread_km)
        out.append(
            Profile(
                id=str(uuid.UUID(int=rng.getrandbits(128))),
                owner_id=f"seed-owner-{idx:04d}",
                name=rng.choice(NAMES),
                age=rng.randint(0, 15),
                size=rng.choice(SIZES),
                energy_level=_weighted_choice(rng, ENERGY_LEVELS, BREED_ENERGY.get(breed)),
                breed=breed,
                latitude=coords.latitude if coords else None,
                longitude=coords.longitude if coords else None,
            )
        )
    return out


def seed_dummy_profiles(
    db,
    n_profiles: int = 100,
    reset: bool = False,
    seed: int = 42,
    center: Coordinates = DEFAULT_CENTER,
    spread_km: float = 25.0,
) -> dict[str, Any]:
    if reset:
        db.execute(text("DELETE FROM match_event"))
        db.execute(text("DELETE FROM dog_match"))
        db.execute(text("DELETE FROM swipe_decision"))
        db.execute(text("DELETE FROM dog_profile WHERE owner_id LIKE 'seed-owner-%'"))

    profiles = generate_profiles(n_profiles, seed=seed, center=center, spread_km=spread_km)
    for p in profiles:
        db.execute(
            text(
                """
                INSERT INTO dog_profile (id, owner_id, name, age, size, energy_level, breed, latitude, longitude)
                VALUES (:id, :owner_id, :name, :age, :size, :energy_level, :breed, :latitude, :longitude)
                """
            ),
            {
                "id": p.id,
                "owner_id": p.owner_id,
                "name": p.name,
                "age": p.age,
                "size": p.size,
                "energy_level": p.energy_level,
                "breed": p.breed,
                "latitude": p.latitude,
                "longitude": p.longitude,
            },
        )
    db.commit()

    tiers: Counter = Counter()
    for a, b in combinations(profiles, 2):
        result = compute_compatibility(a, b)
        if result.is_match:
            tiers[result.tier.value] += 1

    return {
        "profiles_created": len(profiles),
        "size_distribution": dict(Counter(p.size for p in profiles)),
        "energy_distribution": dict(Counter(p.energy_level for p in profiles)),
        "without_location": sum(1 for p in profiles if p.coordinates is None),
        "matching_pairs": sum(tiers.values()),
        "tier_distribution": dict(tiers),
    }
