"""Supabase-backed location repository."""

from dataclasses import dataclass

from supabase import Client

from safe_meet.domain.locations import Location, OperatingWindow
from safe_meet.services.locations import LocationRepository

_TABLE = "meetup_locations"


@dataclass
class SupabaseLocationRepository(LocationRepository):
    """Supabase implementation for meetup locations."""

    client: Client

    def get_location(self, location_id: str) -> Location | None:
        """Return a location by id, if present."""
        response = (
            self.client.table(_TABLE)
            .select("*")
            .eq("id", location_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _row_to_location(response.data[0])

    def list_locations(self) -> list[Location]:
        """Return all locations ordered by name."""
        response = self.client.table(_TABLE).select("*").order("name").execute()
        return [_row_to_location(row) for row in response.data or []]


def _row_to_location(row: dict[str, object]) -> Location:
    hours = row.get("operating_hours") or {}
    return Location(
        id=str(row["id"]),
        name=str(row["name"]),
        address=str(row["address"]),
        safety_level=str(row.get("safety_level") or "medium"),
        operating_hours={
            weekday: [
                OperatingWindow(start=window["start"], end=window["end"])
                for window in windows
            ]
            for weekday, windows in hours.items()
        },
        capacity_per_slot=int(row.get("capacity_per_slot") or 1),
        city=row.get("city"),
        kind=str(row.get("kind") or "public_place"),
        features=list(row.get("features") or []),
        staff_contact=row.get("staff_contact"),
        notes=row.get("notes"),
        enabled=bool(row.get("enabled", True)),
        timezone=str(row.get("timezone") or "Europe/Berlin"),
    )
