"""FastAPI application: study-plan generation and debug-artifact endpoints."""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, HTTPException, Response
from fastapi.responses import PlainTextResponse

from exam_planner.config import settings
from exam_planner.db.connection import close_pool
from exam_planner.db.repository_factory import get_plan_repository
from exam_planner.debug.artifacts import get_artifact_store
from exam_planner.errors import (
    ArtifactNameError,
    ArtifactNotFoundError,
    PlanNotFoundError,
    PlanStorageError,
    SurveyValidationError,
)
from exam_planner.generation.service import get_generation_service, shutdown_generation_service
from exam_planner.schemas.debug import DebugArtifactListing
from exam_planner.schemas.generation import GenerateAccepted, GenerateRequest, GenerationStatusView

logger = logging.getLogger("uvicorn.error")


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # Running generations finish in the background; only new work is refused.
    shutdown_generation_service(wait=False)
    close_pool()


app = FastAPI(title="Exam Study Planner", version="0.1.0", lifespan=lifespan)


@app.post("/study-plans/generate", response_model=GenerateAccepted, status_code=202)
def generate_study_plan(request: GenerateRequest):
    """Accept survey answers and start a background generation."""
    service = get_generation_service()
    try:
        accepted = service.submit(request.survey, learning_materials=request.learning_materials)
    except SurveyValidationError as exc:
        raise HTTPException(status_code=422, detail={"message": str(exc), "errors": exc.errors}) from exc
    return GenerateAccepted(
        request_id=accepted.id,
        status=accepted.status,
        progress=accepted.progress,
        estimated_time_ms=settings.estimated_generation_ms,
    )


@app.get(
    "/study-plans/generate/{request_id}",
    response_model=GenerationStatusView,
    response_model_exclude_none=True,
)
def generation_status(request_id: str):
    view = get_generation_service().status(request_id)
    if view is None:
        raise HTTPException(status_code=404, detail="Generation request not found")
    return view


@app.post(
    "/study-plans/generate/{request_id}/reset",
    response_model=GenerationStatusView,
    response_model_exclude_none=True,
)
def reset_generation(request_id: str):
    view = get_generation_service().reset(request_id)
    if view is None:
        raise HTTPException(status_code=404, detail="Generation request not found")
    return view


@app.get("/study-plans/{plan_id}")
def get_study_plan(plan_id: str):
    try:
        plan = get_plan_repository().load(plan_id)
    except PlanNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Study plan not found") from exc
    except PlanStorageError as exc:
        logger.error("Plan %s could not be loaded: %s", plan_id, exc)
        raise HTTPException(status_code=503, detail="Study plan storage unavailable") from exc
    return plan.to_payload()


# --------------- operator debug artifacts ---------------

@app.get("/admin/debug-artifacts", response_model=list[DebugArtifactListing])
def list_debug_artifacts():
    """Newest first: ``[{id, name, type, size, created}]``."""
    return [DebugArtifactListing.from_artifact(a) for a in get_artifact_store().list()]


@app.get("/admin/debug-artifacts/{filename}", response_class=PlainTextResponse)
def read_debug_artifact(filename: str):
    try:
        return get_artifact_store().read(filename)
    except ArtifactNameError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except ArtifactNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Debug artifact not found") from exc


@app.delete("/admin/debug-artifacts/{filename}", status_code=204)
def delete_debug_artifact(filename: str):
    try:
        get_artifact_store().delete(filename)
    except ArtifactNameError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except ArtifactNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Debug artifact not found") from exc
    return Response(status_code=204)
