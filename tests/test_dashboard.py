"""Tests for the daily dashboard."""

from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

from voice_nutrition.adapters.memory_record_store import InMemoryRecordStore
from voice_nutrition.domain.entries import DailyEntry, DailyGoals
from voice_nutrition.domain.nutrition import ParsedFoodItem
from voice_nutrition.services.dashboard import DashboardService


def _entry(name: str, calories: float, when: datetime) -> DailyEntry:
    item = ParsedFoodItem(
        name=name,
        quantity=1,
        unit="serving",
        calories=calories,
        protein=20.0,
        fat=10.0,
        carbs=30.0,
    )
    return DailyEntry.from_parsed_item(item, when)


def test_for_day_sums_entries_against_goals() -> None:
    store = InMemoryRecordStore()
    noon = datetime(2024, 5, 1, 12, 0, tzinfo=ZoneInfo("UTC"))
    store.entries.extend(
        [
            _entry("bowl", 650, noon),
            _entry("shake", 350, noon + timedelta(hours=3)),
            _entry("other day", 900, noon - timedelta(days=1)),
        ]
    )
    store.save_goals(DailyGoals(calorie_target=1600))

    progress = DashboardService(store).for_day(date(2024, 5, 1))

    assert progress.totals.calories == 1000
    assert progress.totals.protein == 40.0
    assert progress.remaining_calories == 600
    assert progress.calorie_percent == 62.5
    assert [entry.food_name for entry in progress.entries] == ["bowl", "shake"]


def test_remaining_calories_never_negative() -> None:
    store = InMemoryRecordStore()
    noon = datetime(2024, 5, 1, 12, 0, tzinfo=ZoneInfo("UTC"))
    store.entries.append(_entry("feast", 2500, noon))

    progress = DashboardService(store).for_day(date(2024, 5, 1))

    assert progress.remaining_calories == 0
    assert progress.calorie_percent == 125.0


def test_today_reads_entries_committed_now() -> None:
    store = InMemoryRecordStore(timezone_name="America/New_York")
    store.commit_entry(
        ParsedFoodItem(
            name="bagel",
            quantity=1,
            unit="piece",
            calories=277,
            protein=11,
            fat=1.4,
            carbs=55,
        )
    )

    progress = DashboardService(store, timezone_name="America/New_York").today()

    assert progress.totals.calories == 277
    assert progress.remaining_calories == 1723


def test_empty_day_has_zero_totals() -> None:
    progress = DashboardService(InMemoryRecordStore()).for_day(date(2024, 1, 1))

    assert progress.totals.calories == 0
    assert progress.entries == []
    assert progress.remaining_calories == 2000


def test_update_goals_changes_remaining_calories() -> None:
    store = InMemoryRecordStore()
    service = DashboardService(store)

    saved = service.update_goals(DailyGoals(calorie_target=1500))

    assert saved == store.get_goals()
    assert service.for_day(date(2024, 1, 1)).remaining_calories == 1500
