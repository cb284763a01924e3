"""Location catalog lookups."""

from dataclasses import dataclass
from typing import Protocol

from safe_meet.domain.errors import LocationUnavailable
from safe_meet.domain.locations import Location


class LocationRepository(Protocol):
    """Persistence interface for meetup locations."""

    def get_location(self, location_id: str) -> Location | None:
        """Return a location by id, if present."""

    def list_locations(self) -> list[Location]:
        """Return all locations."""


@dataclass
class LocationService:
    """Read access to meetup locations."""

    repository: LocationRepository

    def list_enabled(self) -> list[Location]:
        """Return locations buyers may choose."""
        return [loc for loc in self.repository.list_locations() if loc.enabled]

    def list_all(self) -> list[Location]:
        """Return every location, including disabled ones."""
        return self.repository.list_locations()

    def get(self, location_id: str) -> Location | None:
        """Return a location regardless of whether it is enabled."""
        return self.repository.get_location(location_id)

    def get_enabled(self, location_id: str, status: str | None = None) -> Location:
        """Return an enabled location or raise ``LocationUnavailable``."""
        location = self.repository.get_location(location_id)
        if location is None or not location.enabled:
            raise LocationUnavailable(
                f"Location {location_id} is not available", status=status
            )
        return location
