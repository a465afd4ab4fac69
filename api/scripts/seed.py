import argparse
import json
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from pawmatch.database import SessionLocal
from pawmatch.domain import Coordinates
from pawmatch.main import init_db
from pawmatch.services.seeding import DEFAULT_CENTER, seed_dummy_profiles


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed dummy PawMatch dog profiles")
    parser.add_argument("--n-profiles", type=int, default=100)
    parser.add_argument("--reset", action="store_true")
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument("--lat", type=float, default=DEFAULT_CENTER.latitude)
    parser.add_argument("--lng", type=float, default=DEFAULT_CENTER.longitude)
    parser.add_argument("--spread-km", type=float, default=25.0)
    args = parser.parse_args()

    init_db()
    with SessionLocal() as db:
        summary = seed_dummy_profiles(
            db=db,
            n_profiles=args.n_profiles,
            reset=args.reset,
            seed=args.seed,
            center=Coordinates(args.lat, args.lng),
            spread_km=args.spread_km,
        )
    print(json.dumps(summary, indent=2))


if __name__ == "__main__":
    main()
