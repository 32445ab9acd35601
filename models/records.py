"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True, slots=True)
class SensorReading:
    """A single rig reading, either parsed from the CSV or synthesized."""

    water_level: float
    water_flow: float
    turbine_speed: float
    electricity_generated: float
    battery_storage: float
    water_pressure: float
    timestamp: Optional[datetime] = None
