"""Turn admitted readings into the regression's design and target matrices."""

from __future__ import annotations

from typing import Sequence, Tuple

import numpy as np

from models.records import SensorReading
from services.normalization import FeatureBounds

PREDICTORS: Tuple[str, ...] = ("water_level", "water_flow", "turbine_speed")
TARGETS: Tuple[str, ...] = ("electricity_generated", "battery_storage")


def design_row(reading: SensorReading, bounds: FeatureBounds) -> list[float]:
    return [1.0] + [bounds.normalize(name, getattr(reading, name)) for name in PREDICTORS]


def target_row(reading: SensorReading, bounds: FeatureBounds) -> list[float]:
    return [bounds.normalize(name, getattr(reading, name)) for name in TARGETS]


def build_design_matrices(
    readings: Sequence[SensorReading], bounds: FeatureBounds
) -> Tuple[np.ndarray, np.ndarray]:
    """Return ``(X, Y)`` with a leading bias column in ``X``."""
    if not readings:
        raise ValueError("Dataset is empty or not valid.")

    X = np.array([design_row(reading, bounds) for reading in readings], dtype=float)
    Y = np.array([target_row(reading, bounds) for reading in readings], dtype=float)
    return X, Y
