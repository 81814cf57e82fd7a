"""Geographic coordinates with great-circle distance."""

from __future__ import annotations

import math
from dataclasses import dataclass

from .config import DEFAULT_CONFIG
from .errors import InvalidArgumentError


@dataclass(frozen=True)
class Coordinate:
    """Immutable point on the Earth's surface in decimal degrees."""

    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        if not -90.0 <= self.latitude <= 90.0:
            raise InvalidArgumentError(f"Latitude out of range: {self.latitude}")
        if not -180.0 <= self.longitude <= 180.0:
            raise InvalidArgumentError(f"Longitude out of range: {self.longitude}")

    @classmethod
    def from_dms(
        cls,
        lat_degrees: int,
        lat_minutes: int,
        lat_seconds: float,
        lat_hemisphere: str,
        lon_degrees: int,
        lon_minutes: int,
        lon_seconds: float,
        lon_hemisphere: str,
    ) -> "Coordinate":
        """Build a coordinate from degrees, minutes, seconds and hemisphere letters.

        Latitude hemispheres are ``'N'``/``'S'`` and longitude hemispheres are
        ``'E'``/``'W'``; southern and western values become negative.

        :raises InvalidArgumentError: If any component is out of range.
        """
        if (
            not 0 <= lat_degrees <= 90
            or not 0 <= lat_minutes <= 60
            or not 0 <= lat_seconds <= 60
            or lat_hemisphere not in ("N", "S")
            or not 0 <= lon_degrees <= 180
            or not 0 <= lon_minutes <= 60
            or not 0 <= lon_seconds <= 60
            or lon_hemisphere not in ("E", "W")
        ):
            raise InvalidArgumentError(
                "Invalid sexagesimal coordinate "
                f"{lat_degrees}:{lat_minutes}:{lat_seconds}{lat_hemisphere},"
                f"{lon_degrees}:{lon_minutes}:{lon_seconds}{lon_hemisphere}"
            )
        latitude = lat_degrees + lat_minutes / 60.0 + lat_seconds / 3600.0
        longitude = lon_degrees + lon_minutes / 60.0 + lon_seconds / 3600.0
        if lat_hemisphere == "S":
            latitude = -latitude
        if lon_hemisphere == "W":
            longitude = -longitude
        return cls(latitude, longitude)

    def distance_to(self, other: "Coordinate", radius_km: float = DEFAULT_CONFIG.earth_radius_km) -> float:
        """Great-circle distance to ``other`` in kilometres (Haversine formula)."""
        lat1 = math.radians(self.latitude)
        lon1 = math.radians(self.longitude)
        lat2 = math.radians(other.latitude)
        lon2 = math.radians(other.longitude)
        a = (
            math.sin((lat2 - lat1) / 2) ** 2
            + math.cos(lat1) * math.cos(lat2) * math.sin((lon2 - lon1) / 2) ** 2
        )
        a = min(1.0, a)
        c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
        return radius_km * c

    def __str__(self) -> str:
        return f"φ: {self.latitude:.2f} | λ: {self.longitude:.2f}"
