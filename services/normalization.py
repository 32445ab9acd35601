"""Min-max scaling helpers and the per-feature bounds used for training."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Tuple

from models.records import SensorReading

MODELLED_FEATURES: Tuple[str, ...] = (
    "water_level",
    "water_flow",
    "turbine_speed",
    "electricity_generated",
    "battery_storage",
)


def normalize(value: float, minimum: float, maximum: float) -> float:
    """Scale ``value`` into the unit interval; degenerate ranges map to 0.

    The result is not clamped, so values outside ``[minimum, maximum]`` land
    outside ``[0, 1]``.
    """
    if maximum == minimum:
        return 0.0
    return (value - minimum) / (maximum - minimum)


def denormalize(scaled: float, minimum: float, maximum: float) -> float:
    """Inverse of :func:`normalize`; degenerate ranges map back to ``minimum``."""
    if maximum == minimum:
        return minimum
    return scaled * (maximum - minimum) + minimum


@dataclass(frozen=True)
class FeatureBounds:
    """Observed min/max for each modelled feature.

    Computed once from the training dataset and never widened afterwards.
    """

    minimums: Dict[str, float]
    maximums: Dict[str, float]

    @classmethod
    def from_readings(cls, readings: Iterable[SensorReading]) -> "FeatureBounds":
        minimums: Dict[str, float] = {}
        maximums: Dict[str, float] = {}
        for reading in readings:
            for name in MODELLED_FEATURES:
                value = getattr(reading, name)
                if name not in minimums or value < minimums[name]:
                    minimums[name] = value
                if name not in maximums or value > maximums[name]:
                    maximums[name] = value

        if not minimums:
            raise ValueError("Cannot compute feature bounds from an empty dataset.")
        return cls(minimums=minimums, maximums=maximums)

    def normalize(self, name: str, value: float) -> float:
        return normalize(value, self.minimums[name], self.maximums[name])

    def denormalize(self, name: str, scaled: float) -> float:
        return denormalize(scaled, self.minimums[name], self.maximums[name])

    def as_dict(self) -> Dict[str, Dict[str, float]]:
        return {
            name: {"min": self.minimums[name], "max": self.maximums[name]}
            for name in MODELLED_FEATURES
        }
