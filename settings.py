from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache


_DATASET_PATH_ENV = "RAINWATER_DATASET_PATH"
_STORE_URI_ENV = "PREDICTIONS_STORE_URI"
_COLLECTION_ENV = "PREDICTIONS_COLLECTION"
_INTERVAL_ENV = "SIMULATION_INTERVAL_SECONDS"
_RIDGE_LAMBDA_ENV = "RIDGE_LAMBDA"
_PORT_ENV = "API_PORT"
_LOG_LEVEL_ENV = "LOG_LEVEL"


@dataclass(frozen=True)
class Settings:
    dataset_path: str
    store_uri: str
    collection_name: str
    simulation_interval: float
    ridge_lambda: float
    port: int
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_positive_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_port(default: int) -> int:
    value = os.getenv(_PORT_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if 0 < parsed < 65536 else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        dataset_path=_read_str_env(_DATASET_PATH_ENV, "rainwater_data.csv"),
        store_uri=_read_str_env(_STORE_URI_ENV, "file://./tmp/predictions.json"),
        collection_name=_read_str_env(_COLLECTION_ENV, "predictions"),
        simulation_interval=_read_positive_float(_INTERVAL_ENV, 5.0),
        ridge_lambda=_read_positive_float(_RIDGE_LAMBDA_ENV, 0.01),
        port=_read_port(5000),
        log_level=_read_log_level("INFO"),
    )
