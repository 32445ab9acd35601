"""HTTP route definitions for the service."""

from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse, PlainTextResponse

from app.schemas import ErrorResponse, FeatureRange, MessageResponse, ModelStatus
from datastore.predictions import PredictionStore, PredictionStoreError
from services.runtime import build_default_runtime
from services.state import ModelState

logger = logging.getLogger(__name__)

router = APIRouter()

GREETING = "Hello, welcome to the Rainwater Harvesting System API!"


def get_store() -> PredictionStore:
    return build_default_runtime().store


def get_state() -> ModelState:
    return build_default_runtime().state


@router.get(
    "/",
    summary="Plain-text greeting.",
    response_class=PlainTextResponse,
    status_code=status.HTTP_200_OK,
)
async def root() -> str:
    return GREETING


@router.get(
    "/predict",
    summary="Return the most recently persisted reading.",
    response_model=None,
    responses={
        status.HTTP_200_OK: {"model": MessageResponse},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
    },
)
def predict(store: PredictionStore = Depends(get_store)) -> Any:
    try:
        latest = store.latest()
    except PredictionStoreError:
        logger.exception("Failed to fetch predictions.")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ErrorResponse(error="Failed to fetch predictions").model_dump(),
        )
    if latest is None:
        return MessageResponse(message="No predictions available").model_dump()
    return latest.model_dump(mode="json", by_alias=True)


@router.get(
    "/model",
    response_model=ModelStatus,
    summary="Training status of the in-process regression.",
)
def model_status(
    state: ModelState = Depends(get_state),
    store: PredictionStore = Depends(get_store),
) -> ModelStatus:
    snapshot = state.snapshot()
    bounds: Dict[str, FeatureRange] | None = None
    if snapshot.bounds is not None:
        bounds = {
            name: FeatureRange(**limits) for name, limits in snapshot.bounds.as_dict().items()
        }
    return ModelStatus(
        trained=snapshot.trained,
        dataset_size=snapshot.dataset_size,
        battery_level=snapshot.battery_level,
        stored_predictions=store.count(),
        weights=None if snapshot.weights is None else snapshot.weights.tolist(),
        bounds=bounds,
    )


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}
