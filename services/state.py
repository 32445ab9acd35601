"""Process-wide model state shared by the trainer, simulator and API."""

from __future__ import annotations

from dataclasses import dataclass
from threading import Lock
from typing import Callable, Iterable, List, Optional, Tuple

import numpy as np

from models.records import SensorReading
from services.normalization import FeatureBounds
from services.trainer import TrainingResult

INITIAL_BATTERY_LEVEL = 3.0

StepFunction = Callable[[Optional[SensorReading], float], Tuple[SensorReading, float]]


@dataclass(frozen=True)
class StateSnapshot:
    dataset_size: int
    battery_level: float
    weights: Optional[np.ndarray]
    bounds: Optional[FeatureBounds]

    @property
    def trained(self) -> bool:
        return self.weights is not None


class ModelState:
    """Append-only dataset plus trained weights and battery level, under one lock."""

    def __init__(self, battery_level: float = INITIAL_BATTERY_LEVEL) -> None:
        self._lock = Lock()
        self._dataset: List[SensorReading] = []
        self._weights: Optional[np.ndarray] = None
        self._bounds: Optional[FeatureBounds] = None
        self._battery_level = battery_level

    def extend(self, readings: Iterable[SensorReading]) -> int:
        with self._lock:
            self._dataset.extend(readings)
            return len(self._dataset)

    def readings(self) -> List[SensorReading]:
        """Return a copy of the dataset."""
        with self._lock:
            return list(self._dataset)

    def apply_training(self, result: TrainingResult) -> None:
        with self._lock:
            self._weights = result.weights.copy()
            self._bounds = result.bounds

    def is_trained(self) -> bool:
        with self._lock:
            return self._weights is not None

    def advance(self, step: StepFunction) -> SensorReading:
        """Run ``step`` on the last reading and battery level, then record its output.

        The read, the step and the append happen under the lock so concurrent
        callers always see each other's readings.
        """
        with self._lock:
            last = self._dataset[-1] if self._dataset else None
            reading, battery_level = step(last, self._battery_level)
            self._dataset.append(reading)
            self._battery_level = battery_level
            return reading

    def snapshot(self) -> StateSnapshot:
        with self._lock:
            return StateSnapshot(
                dataset_size=len(self._dataset),
                battery_level=self._battery_level,
                weights=None if self._weights is None else self._weights.copy(),
                bounds=self._bounds,
            )
