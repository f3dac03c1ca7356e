"""Domain models held by the record store."""

from dataclasses import dataclass, field
from datetime import date, datetime
from uuid import UUID, uuid4

from voice_nutrition.domain.nutrition import ParsedFoodItem


@dataclass(frozen=True)
class DailyEntry:
    """A logged food entry for one day."""

    food_name: str
    quantity: float
    unit: str
    calories: int
    protein: float
    fat: float
    carbs: float
    timestamp: datetime
    day: date
    source: str = "estimated"
    id: UUID = field(default_factory=uuid4)

    @classmethod
    def from_parsed_item(
        cls, item: ParsedFoodItem, timestamp: datetime, source: str = "estimated"
    ) -> "DailyEntry":
        """Build an entry from an extracted item, rounding calories half-up."""
        return cls(
            food_name=item.name,
            quantity=item.quantity,
            unit=item.unit,
            calories=item.calories_int,
            protein=item.protein,
            fat=item.fat,
            carbs=item.carbs,
            timestamp=timestamp,
            day=timestamp.date(),
            source=source,
        )


@dataclass(frozen=True)
class DailyGoals:
    """Daily calorie and macro targets."""

    calorie_target: int = 2000
    protein_target: float = 150.0
    fat_target: float = 65.0
    carbs_target: float = 250.0


@dataclass(frozen=True)
class DailyTotals:
    """Summed macros for one day."""

    day: date
    calories: int
    protein: float
    fat: float
    carbs: float


@dataclass(frozen=True)
class DailyProgress:
    """Totals for a day measured against the goals."""

    totals: DailyTotals
    goals: DailyGoals
    entries: list[DailyEntry]

    @property
    def remaining_calories(self) -> int:
        return max(0, self.goals.calorie_target - self.totals.calories)

    @property
    def calorie_percent(self) -> float:
        if self.goals.calorie_target <= 0:
            return 0.0
        return self.totals.calories / self.goals.calorie_target * 100
