"""In-process record store used when no database is configured."""

import threading
from dataclasses import dataclass, field
from datetime import date, datetime
from zoneinfo import ZoneInfo

from voice_nutrition.domain.entries import DailyEntry, DailyGoals
from voice_nutrition.domain.nutrition import CustomFoodLookup, ParsedFoodItem
from voice_nutrition.services.records import RecordStore


@dataclass
class InMemoryRecordStore(RecordStore):
    """Record store keeping entries, goals and custom foods in memory."""

    timezone_name: str = "UTC"
    entries: list[DailyEntry] = field(default_factory=list)
    custom_foods: list[CustomFoodLookup] = field(default_factory=list)
    goals: DailyGoals = field(default_factory=DailyGoals)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def lookup_custom_foods(self) -> list[CustomFoodLookup]:
        with self._lock:
            return list(self.custom_foods)

    def add_custom_food(self, food: CustomFoodLookup) -> None:
        with self._lock:
            self.custom_foods.append(food)

    def commit_entry(self, item: ParsedFoodItem) -> DailyEntry:
        entry = DailyEntry.from_parsed_item(
            item, datetime.now(tz=ZoneInfo(self.timezone_name))
        )
        with self._lock:
            self.entries.append(entry)
        return entry

    def list_entries(self, day: date) -> list[DailyEntry]:
        with self._lock:
            return sorted(
                (entry for entry in self.entries if entry.day == day),
                key=lambda entry: entry.timestamp,
            )

    def get_goals(self) -> DailyGoals:
        return self.goals

    def save_goals(self, goals: DailyGoals) -> DailyGoals:
        self.goals = goals
        return goals
