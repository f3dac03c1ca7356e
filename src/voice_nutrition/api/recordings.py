"""Recording control endpoints driving the voice pipeline."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from voice_nutrition.errors import PermissionDeniedError
from voice_nutrition.services.pipeline import PipelineFailure

if TYPE_CHECKING:
    from voice_nutrition.containers import AppContainer

router = APIRouter(prefix="/recordings", tags=["recordings"])


@router.post("")
async def start_recording(request: Request) -> JSONResponse:
    """Start a recording session."""
    container: AppContainer = request.app.state.container
    result = await container.pipeline.start()
    if result is None:
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={
                "state": container.pipeline.state.value,
                "message": "A recording is already in progress.",
            },
        )
    if isinstance(result, PipelineFailure):
        status_code = (
            status.HTTP_403_FORBIDDEN
            if isinstance(result.error, PermissionDeniedError)
            else status.HTTP_503_SERVICE_UNAVAILABLE
        )
        return JSONResponse(
            status_code=status_code,
            content={"stage": result.stage.value, "message": result.message},
        )
    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content={
            "session_id": str(result.id),
            "started_at": result.started_at.isoformat(),
            "state": container.pipeline.state.value,
        },
    )


@router.get("/level")
async def recording_level(request: Request) -> dict[str, object]:
    """Return the pipeline state and the live input level."""
    container: AppContainer = request.app.state.container
    return {
        "state": container.pipeline.state.value,
        "level": container.pipeline.level,
    }


@router.post("/stop")
async def stop_recording(request: Request) -> JSONResponse:
    """Stop recording and process the audio into food entries."""
    container: AppContainer = request.app.state.container
    outcome = await container.pipeline.stop_and_process()
    if outcome is None:
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={
                "state": container.pipeline.state.value,
                "message": "No recording in progress.",
            },
        )
    if isinstance(outcome, PipelineFailure):
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"stage": outcome.stage.value, "message": outcome.message},
        )
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={
            "items_committed": outcome.items_committed,
            "total_calories": outcome.total_calories,
            "message": outcome.message,
        },
    )


@router.post("/cancel")
async def cancel_recording(request: Request) -> dict[str, object]:
    """Abort the active recording or processing run."""
    container: AppContainer = request.app.state.container
    cancelled = container.pipeline.cancel()
    return {"cancelled": cancelled}
