import math

from ..config import EARTH_RADIUS_KM
from ..domain import Coordinates


def haversine_km(a: Coordinates, b: Coordinates) -> float:
    """Great-circle distance in kilometres between two points."""
    dlat = math.radians(b.latitude - a.latitude)
    dlng = math.radians(b.longitude - a.longitude)
    h = (
        math.sin(dlat / 2) ** 2
        + math.cos(math.radians(a.latitude))
        * math.cos(math.radians(b.latitude))
        * math.sin(dlng / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


class StaticLocationProvider:
    """Location collaborator backed by a fixed, host-supplied position."""

    def __init__(self, location: Coordinates | None = None) -> None:
        self._location = location

    def set_location(self, location: Coordinates | None) -> None:
        self._location = location

    async def last_known_location(self) -> Coordinates | None:
        return self._location

    def distance(self, a: Coordinates, b: Coordinates) -> float:
        return haversine_km(a, b)
