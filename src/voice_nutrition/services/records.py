"""Record store interface and batch commit policy."""

import logging
from datetime import date
from typing import Protocol

from voice_nutrition.domain.entries import DailyEntry, DailyGoals
from voice_nutrition.domain.nutrition import CustomFoodLookup, ParsedFoodItem
from voice_nutrition.errors import StorageError

_logger = logging.getLogger(__name__)


class RecordStore(Protocol):
    """Persistence interface for entries, goals and custom foods."""

    def lookup_custom_foods(self) -> list[CustomFoodLookup]:
        """Return user-defined foods with macros per 100 g."""

    def commit_entry(self, item: ParsedFoodItem) -> DailyEntry:
        """Persist one parsed item as an entry; raise StorageError on failure."""

    def list_entries(self, day: date) -> list[DailyEntry]:
        """Return the entries logged on ``day``."""

    def get_goals(self) -> DailyGoals:
        """Return the current daily goals."""

    def save_goals(self, goals: DailyGoals) -> DailyGoals:
        """Persist new daily goals; raise StorageError on failure."""


def commit_items(store: RecordStore, items: list[ParsedFoodItem]) -> list[DailyEntry]:
    """Commit items one entry at a time.

    Commits are best effort: entries written before a failure stay written,
    and the raised StorageError reports how many were saved.
    """
    committed: list[DailyEntry] = []
    for item in items:
        try:
            entry = store.commit_entry(item)
        except StorageError as exc:
            _logger.warning(
                "Commit failed after %s of %s items: %s",
                len(committed),
                len(items),
                exc,
            )
            raise StorageError(
                f"saved {len(committed)} of {len(items)} food items before "
                f"failing: {exc.detail}",
                committed=len(committed),
            ) from exc
        _logger.info("Committed entry: %s (%s cal)", entry.food_name, entry.calories)
        committed.append(entry)
    return committed
