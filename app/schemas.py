"""Pydantic schemas for the HTTP API layer and the predictions collection."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from models.records import SensorReading


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PredictionRecord(BaseModel):
    """A persisted reading, serialized with the rig's camelCase field names."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = Field(default_factory=_utcnow)
    water_level: float = Field(..., alias="waterLevel", description="Water level in cm.")
    water_flow: float = Field(..., alias="waterFlow", description="Flow speed in m/s.")
    turbine_speed: float = Field(..., alias="turbineSpeed", description="Turbine spin in RPM.")
    electricity_generated: float = Field(
        ..., alias="electricityGenerated", description="Electricity generated in W."
    )
    battery_storage: float = Field(..., alias="batteryStorage", description="Battery storage in W.")
    water_pressure: float = Field(..., alias="waterPressure", description="Water pressure in psi.")

    @field_validator("timestamp")
    @classmethod
    def _timestamp_in_utc(cls, value: datetime) -> datetime:
        # Naive timestamps are taken to be UTC.
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    @classmethod
    def from_reading(cls, reading: SensorReading) -> "PredictionRecord":
        payload = {
            "water_level": reading.water_level,
            "water_flow": reading.water_flow,
            "turbine_speed": reading.turbine_speed,
            "electricity_generated": reading.electricity_generated,
            "battery_storage": reading.battery_storage,
            "water_pressure": reading.water_pressure,
        }
        if reading.timestamp is not None:
            payload["timestamp"] = reading.timestamp
        return cls(**payload)


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    error: str


class FeatureRange(BaseModel):
    min: float
    max: float


class ModelStatus(BaseModel):
    """Training state of the in-process regression."""

    trained: bool
    dataset_size: int = Field(..., ge=0)
    battery_level: float
    stored_predictions: int = Field(..., ge=0, description="Records in the predictions collection.")
    weights: Optional[List[List[float]]] = Field(
        default=None,
        description="4x2 matrix: rows are bias, water level, water flow, turbine speed.",
    )
    bounds: Optional[Dict[str, FeatureRange]] = None
