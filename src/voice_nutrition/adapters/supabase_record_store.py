"""Supabase-backed record store."""

from dataclasses import dataclass
from datetime import UTC, date, datetime
from uuid import UUID
from zoneinfo import ZoneInfo

import httpx
from postgrest.exceptions import APIError as PostgrestAPIError
from supabase import Client

from voice_nutrition.domain.entries import DailyEntry, DailyGoals
from voice_nutrition.domain.nutrition import CustomFoodLookup, ParsedFoodItem
from voice_nutrition.errors import StorageError
from voice_nutrition.services.records import RecordStore

_ENTRY_COLUMNS = (
    "id, food_name, quantity, unit, calories, protein, fat, carbs, "
    "timestamp, day, source"
)


@dataclass
class SupabaseRecordStore(RecordStore):
    """Supabase implementation of the record store."""

    client: Client
    timezone_name: str = "UTC"

    def lookup_custom_foods(self) -> list[CustomFoodLookup]:
        """Return custom foods ordered by name."""
        try:
            response = (
                self.client.table("custom_foods")
                .select(
                    "name, calories_per_100g, protein_per_100g, fat_per_100g, "
                    "carbs_per_100g"
                )
                .order("name", desc=False)
                .execute()
            )
        except (PostgrestAPIError, httpx.HTTPError) as exc:
            raise StorageError(f"Cannot load custom foods: {exc}") from exc
        return [_parse_custom_food(row) for row in response.data or []]

    def commit_entry(self, item: ParsedFoodItem) -> DailyEntry:
        """Insert one daily entry row."""
        entry = DailyEntry.from_parsed_item(
            item, datetime.now(tz=ZoneInfo(self.timezone_name))
        )
        try:
            self.client.table("daily_entries").insert(
                {
                    "id": str(entry.id),
                    "food_name": entry.food_name,
                    "quantity": entry.quantity,
                    "unit": entry.unit,
                    "calories": entry.calories,
                    "protein": entry.protein,
                    "fat": entry.fat,
                    "carbs": entry.carbs,
                    "timestamp": entry.timestamp.isoformat(),
                    "day": entry.day.isoformat(),
                    "source": entry.source,
                }
            ).execute()
        except (PostgrestAPIError, httpx.HTTPError) as exc:
            raise StorageError(f"Cannot save {entry.food_name}: {exc}") from exc
        return entry

    def list_entries(self, day: date) -> list[DailyEntry]:
        """Return entries logged on the given day."""
        try:
            response = (
                self.client.table("daily_entries")
                .select(_ENTRY_COLUMNS)
                .eq("day", day.isoformat())
                .order("timestamp", desc=False)
                .execute()
            )
        except (PostgrestAPIError, httpx.HTTPError) as exc:
            raise StorageError(f"Cannot load entries: {exc}") from exc
        return [_parse_entry(row) for row in response.data or []]

    def get_goals(self) -> DailyGoals:
        """Return the latest goals row, or the defaults when none exists."""
        try:
            response = (
                self.client.table("daily_goals")
                .select("calorie_target, protein_target, fat_target, carbs_target")
                .order("last_updated", desc=True)
                .limit(1)
                .execute()
            )
        except (PostgrestAPIError, httpx.HTTPError) as exc:
            raise StorageError(f"Cannot load goals: {exc}") from exc
        if not response.data:
            return DailyGoals()
        row = response.data[0]
        return DailyGoals(
            calorie_target=int(row["calorie_target"]),
            protein_target=float(row["protein_target"]),
            fat_target=float(row["fat_target"]),
            carbs_target=float(row["carbs_target"]),
        )

    def save_goals(self, goals: DailyGoals) -> DailyGoals:
        """Insert a goals row; the newest ``last_updated`` row wins."""
        try:
            self.client.table("daily_goals").insert(
                {
                    "calorie_target": goals.calorie_target,
                    "protein_target": goals.protein_target,
                    "fat_target": goals.fat_target,
                    "carbs_target": goals.carbs_target,
                    "last_updated": datetime.now(tz=UTC).isoformat(),
                }
            ).execute()
        except (PostgrestAPIError, httpx.HTTPError) as exc:
            raise StorageError(f"Cannot save goals: {exc}") from exc
        return goals


def _parse_custom_food(row: dict[str, object]) -> CustomFoodLookup:
    return CustomFoodLookup(
        name=str(row.get("name", "")),
        calories_per_100g=int(row.get("calories_per_100g", 0)),
        protein_per_100g=float(row.get("protein_per_100g", 0.0)),
        fat_per_100g=float(row.get("fat_per_100g", 0.0)),
        carbs_per_100g=float(row.get("carbs_per_100g", 0.0)),
    )


def _parse_entry(row: dict[str, object]) -> DailyEntry:
    timestamp_raw = row.get("timestamp")
    timestamp = (
        datetime.fromisoformat(timestamp_raw)
        if isinstance(timestamp_raw, str) and timestamp_raw
        else datetime.min.replace(tzinfo=UTC)
    )
    day_raw = row.get("day")
    day = (
        date.fromisoformat(day_raw)
        if isinstance(day_raw, str) and day_raw
        else timestamp.date()
    )
    return DailyEntry(
        id=UUID(str(row["id"])),
        food_name=str(row.get("food_name", "")),
        quantity=float(row.get("quantity", 0.0)),
        unit=str(row.get("unit", "")),
        calories=int(row.get("calories", 0)),
        protein=float(row.get("protein", 0.0)),
        fat=float(row.get("fat", 0.0)),
        carbs=float(row.get("carbs", 0.0)),
        timestamp=timestamp,
        day=day,
        source=str(row.get("source", "estimated")),
    )
