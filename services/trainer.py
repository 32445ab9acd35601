"""Closed-form ridge regression over the normalized rig readings."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from models.records import SensorReading
from services.features import build_design_matrices
from services.normalization import FeatureBounds

logger = logging.getLogger(__name__)

DEFAULT_LAMBDA = 0.01
MIN_TRAINING_ROWS = 4


def fit_ridge(X: np.ndarray, Y: np.ndarray, lam: float = DEFAULT_LAMBDA) -> np.ndarray:
    """Solve ``W = (XᵀX + λI)⁻¹ XᵀY``.

    Raises ``numpy.linalg.LinAlgError`` if the regularized system is singular.
    """
    identity = np.eye(X.shape[1]) * lam
    return np.linalg.inv(X.T @ X + identity) @ X.T @ Y


@dataclass(frozen=True)
class TrainingResult:
    weights: np.ndarray
    bounds: FeatureBounds
    row_count: int


class RidgeTrainer:
    """Fits the 4x2 weight matrix once from a snapshot of the dataset."""

    def __init__(self, lam: float = DEFAULT_LAMBDA, min_rows: int = MIN_TRAINING_ROWS) -> None:
        self.lam = lam
        self.min_rows = min_rows

    def train(self, readings: Sequence[SensorReading]) -> Optional[TrainingResult]:
        """Return the fitted model, or ``None`` when training is skipped or fails."""
        if len(readings) < self.min_rows:
            logger.warning(
                "Not enough data to train model.", extra={"row_count": len(readings)}
            )
            return None

        start_time = time.perf_counter()
        try:
            bounds = FeatureBounds.from_readings(readings)
            X, Y = build_design_matrices(readings, bounds)
            weights = fit_ridge(X, Y, self.lam)
        except (np.linalg.LinAlgError, ValueError):
            logger.exception("Model training failed.", extra={"row_count": len(readings)})
            return None

        logger.info(
            "Model trained successfully.",
            extra={
                "row_count": len(readings),
                "training_ms": (time.perf_counter() - start_time) * 1000,
            },
        )
        return TrainingResult(weights=weights, bounds=bounds, row_count=len(readings))
