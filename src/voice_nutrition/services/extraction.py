"""Nutrition extraction from transcripts using a language model."""

import json
import logging
from dataclasses import dataclass
from typing import Protocol

from pydantic import ValidationError

from voice_nutrition.domain.nutrition import CustomFoodLookup, NutritionAnalysis
from voice_nutrition.errors import DecodingError

_logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """\
You are a nutritional analysis assistant. Your task is to parse food entries \
and extract structured nutritional data.

IMPORTANT: You MUST respond with ONLY valid JSON, no other text.

When analyzing food entries:
1. Extract all food items mentioned
2. Identify quantities and units (grams, cups, pieces, etc.)
3. Calculate nutritional values based on standard nutritional databases
4. Return structured JSON with the exact format specified below

JSON Response Format (REQUIRED):
{
    "foods": [
        {
            "name": "food name",
            "quantity": number,
            "unit": "grams/cups/pieces/etc",
            "calories": number,
            "protein": number,
            "fat": number,
            "carbs": number
        }
    ],
    "total": {
        "calories": number,
        "protein": number,
        "fat": number,
        "carbs": number
    }
}

Example Input: "200g chicken breast and 100g rice"
Example Output:
{
    "foods": [
        {
            "name": "chicken breast",
            "quantity": 200,
            "unit": "grams",
            "calories": 330,
            "protein": 62,
            "fat": 7.2,
            "carbs": 0
        },
        {
            "name": "rice",
            "quantity": 100,
            "unit": "grams",
            "calories": 130,
            "protein": 2.7,
            "fat": 0.3,
            "carbs": 28
        }
    ],
    "total": {
        "calories": 460,
        "protein": 64.7,
        "fat": 7.5,
        "carbs": 28
    }
}
"""

USER_PROMPT_PREFIX = "Parse this food input and return ONLY valid JSON: "


class ChatClient(Protocol):
    """Interface for JSON-mode chat completions."""

    async def complete_json(
        self,
        *,
        model: str,
        messages: list[dict[str, str]],
        temperature: float,
    ) -> str:
        """Return the raw message content of the first choice."""


@dataclass
class NutritionExtractionService:
    """Service that prepares extraction prompts and validates results."""

    client: ChatClient
    model: str
    temperature: float = 0.3

    async def analyze(
        self, transcript: str, custom_foods: list[CustomFoodLookup]
    ) -> NutritionAnalysis:
        """Extract food items and totals from a transcript."""
        content = await self.client.complete_json(
            model=self.model,
            messages=build_messages(transcript, custom_foods),
            temperature=self.temperature,
        )
        analysis = parse_analysis(content)
        _logger.info(
            "Nutrition analysis parsed: items=%s total_calories=%s",
            len(analysis.foods),
            analysis.total.calories_int,
        )
        return analysis


def build_messages(
    transcript: str, custom_foods: list[CustomFoodLookup]
) -> list[dict[str, str]]:
    """Build the system and user messages for one extraction request."""
    return [
        {"role": "system", "content": build_system_prompt(custom_foods)},
        {"role": "user", "content": f"{USER_PROMPT_PREFIX}{transcript}"},
    ]


def build_system_prompt(custom_foods: list[CustomFoodLookup]) -> str:
    """Return the instructions with the custom foods table appended."""
    if not custom_foods:
        return SYSTEM_PROMPT
    lines = [
        SYSTEM_PROMPT,
        "CUSTOM FOODS DATABASE (use these values when foods match):",
    ]
    lines.extend(
        f"- {food.name}: {food.calories_per_100g} cal, "
        f"{food.protein_per_100g}g protein, {food.fat_per_100g}g fat, "
        f"{food.carbs_per_100g}g carbs per 100g"
        for food in custom_foods
    )
    return "\n".join(lines) + "\n"


def parse_analysis(content: str) -> NutritionAnalysis:
    """Validate message content against the analysis schema."""
    try:
        raw = json.loads(content)
    except json.JSONDecodeError as exc:
        raise DecodingError(f"Analysis is not valid JSON: {exc.msg}") from exc
    try:
        return NutritionAnalysis.model_validate(raw)
    except ValidationError as exc:
        fields = ", ".join(
            ".".join(str(part) for part in error["loc"]) or "<root>"
            for error in exc.errors()
        )
        raise DecodingError(f"Analysis does not match the schema: {fields}") from exc
