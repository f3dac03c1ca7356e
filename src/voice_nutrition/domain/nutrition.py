"""Nutrition models returned by the extraction step."""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from pydantic import BaseModel, ConfigDict, Field

_CONFIG = ConfigDict(frozen=True, allow_inf_nan=False)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero."""
    return int(Decimal(str(value)).quantize(Decimal(1), rounding=ROUND_HALF_UP))


class ParsedFoodItem(BaseModel):
    """One food line extracted from a transcript."""

    model_config = _CONFIG

    name: str
    quantity: float = Field(ge=0.0, strict=True)
    unit: str
    calories: float = Field(ge=0.0, strict=True)
    protein: float = Field(ge=0.0, strict=True)
    fat: float = Field(ge=0.0, strict=True)
    carbs: float = Field(ge=0.0, strict=True)

    @property
    def calories_int(self) -> int:
        return round_half_up(self.calories)


class NutritionTotals(BaseModel):
    """Aggregate macros of a batch of parsed items."""

    model_config = _CONFIG

    calories: float = Field(ge=0.0, strict=True)
    protein: float = Field(ge=0.0, strict=True)
    fat: float = Field(ge=0.0, strict=True)
    carbs: float = Field(ge=0.0, strict=True)

    @property
    def calories_int(self) -> int:
        return round_half_up(self.calories)


class NutritionAnalysis(BaseModel):
    """Structured result of the extraction step.

    Both ``foods`` and ``total`` are required: a payload without them is a
    contract violation, never an implicit zero.
    """

    model_config = _CONFIG

    foods: list[ParsedFoodItem]
    total: NutritionTotals


@dataclass(frozen=True)
class CustomFoodLookup:
    """User-defined food with macros per 100 g."""

    name: str
    calories_per_100g: int
    protein_per_100g: float
    fat_per_100g: float
    carbs_per_100g: float
