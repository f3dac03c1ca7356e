"""Daily totals against goals for the display layer."""

from dataclasses import dataclass
from datetime import date, datetime
from zoneinfo import ZoneInfo

from voice_nutrition.domain.entries import (
    DailyEntry,
    DailyGoals,
    DailyProgress,
    DailyTotals,
)
from voice_nutrition.services.records import RecordStore


@dataclass
class DashboardService:
    """Service computing a day's progress in the configured timezone."""

    store: RecordStore
    timezone_name: str = "UTC"

    def today(self) -> DailyProgress:
        """Return today's progress."""
        return self.for_day(datetime.now(tz=ZoneInfo(self.timezone_name)).date())

    def for_day(self, day: date) -> DailyProgress:
        """Return progress for a specific day."""
        entries = self.store.list_entries(day)
        return DailyProgress(
            totals=sum_entries(day, entries),
            goals=self.store.get_goals(),
            entries=entries,
        )

    def update_goals(self, goals: DailyGoals) -> DailyGoals:
        """Replace the daily goals."""
        return self.store.save_goals(goals)


def sum_entries(day: date, entries: list[DailyEntry]) -> DailyTotals:
    """Sum calories and macros of entries."""
    return DailyTotals(
        day=day,
        calories=sum(entry.calories for entry in entries),
        protein=sum(entry.protein for entry in entries),
        fat=sum(entry.fat for entry in entries),
        carbs=sum(entry.carbs for entry in entries),
    )
