"""Fixed-coordinate provider: a user-configured latitude/longitude."""

from __future__ import annotations

from location_engine.config.constants import PROVIDER_FIXED
from location_engine.models.domain import (
    ErrorKind,
    LocationMethod,
    LocationResult,
    Place,
    coordinates_valid,
)


class FixedCoordinateProvider:
    method = LocationMethod.FIXED
    requires_user_consent = False

    def __init__(
        self,
        latitude: float | None,
        longitude: float | None,
        place: Place | None = None,
        name: str = PROVIDER_FIXED,
    ) -> None:
        self.name = name
        self._latitude = latitude
        self._longitude = longitude
        self._place = place or Place()

    async def is_available(self) -> bool:
        return self._latitude is not None and self._longitude is not None

    async def resolve(self, timeout: float) -> LocationResult:
        if self._latitude is None or self._longitude is None:
            return LocationResult.failure(
                self.method, "fixed coordinates not configured", ErrorKind.UNAVAILABLE
            )
        # Re-checked here as well as at load time; never clamp
        if not coordinates_valid(self._latitude, self._longitude):
            return LocationResult.failure(
                self.method,
                f"coordinates out of range: latitude {self._latitude} must be within "
                f"[-90, 90] and longitude {self._longitude} within [-180, 180]",
                ErrorKind.INVALID_COORDINATES,
                source="fixed",
            )
        return LocationResult.ok(
            self.method,
            self._latitude,
            self._longitude,
            place=self._place,
            source="fixed",
        )
