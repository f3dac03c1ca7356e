"""Dashboard endpoints: today's progress and goal editing."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from voice_nutrition.domain.entries import DailyEntry, DailyGoals, DailyProgress
from voice_nutrition.errors import StorageError

if TYPE_CHECKING:
    from voice_nutrition.containers import AppContainer

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


class GoalsUpdate(BaseModel):
    """Request body for replacing the daily goals."""

    calorie_target: int = Field(ge=0)
    protein_target: float = Field(ge=0.0)
    fat_target: float = Field(ge=0.0)
    carbs_target: float = Field(ge=0.0)


@router.get("/today")
async def dashboard_today(request: Request) -> JSONResponse:
    """Return today's totals, goals and entries."""
    container: AppContainer = request.app.state.container
    try:
        progress = container.dashboard_service.today()
    except StorageError as exc:
        return _storage_unavailable(exc)
    return JSONResponse(content=_format_progress(progress))


@router.put("/goals")
async def update_goals(payload: GoalsUpdate, request: Request) -> JSONResponse:
    """Replace the daily calorie and macro goals."""
    container: AppContainer = request.app.state.container
    goals = DailyGoals(
        calorie_target=payload.calorie_target,
        protein_target=payload.protein_target,
        fat_target=payload.fat_target,
        carbs_target=payload.carbs_target,
    )
    try:
        saved = container.dashboard_service.update_goals(goals)
    except StorageError as exc:
        return _storage_unavailable(exc)
    return JSONResponse(content=_format_goals(saved))


def _storage_unavailable(exc: StorageError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"message": f"The record store is unavailable: {exc.detail}"},
    )


def _format_goals(goals: DailyGoals) -> dict[str, object]:
    return {
        "calories": goals.calorie_target,
        "protein": goals.protein_target,
        "fat": goals.fat_target,
        "carbs": goals.carbs_target,
    }


def _format_progress(progress: DailyProgress) -> dict[str, object]:
    totals = progress.totals
    return {
        "day": totals.day.isoformat(),
        "totals": {
            "calories": totals.calories,
            "protein": round(totals.protein, 1),
            "fat": round(totals.fat, 1),
            "carbs": round(totals.carbs, 1),
        },
        "goals": _format_goals(progress.goals),
        "remaining_calories": progress.remaining_calories,
        "calorie_percent": round(progress.calorie_percent, 1),
        "entries": [_format_entry(entry) for entry in progress.entries],
    }


def _format_entry(entry: DailyEntry) -> dict[str, object]:
    return {
        "id": str(entry.id),
        "food_name": entry.food_name,
        "quantity": entry.quantity,
        "unit": entry.unit,
        "calories": entry.calories,
        "protein": entry.protein,
        "fat": entry.fat,
        "carbs": entry.carbs,
        "timestamp": entry.timestamp.isoformat(),
        "source": entry.source,
    }
