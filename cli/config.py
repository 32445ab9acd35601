from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_BASE_URL = "http://localhost:5000"
DEFAULT_WATCH_INTERVAL = 5.0
DEFAULT_REQUEST_TIMEOUT = 10.0

_BASE_URL_ENV = "API_BASE_URL"
_WATCH_INTERVAL_ENV = "CLI_WATCH_INTERVAL"
_TIMEOUT_ENV = "CLI_REQUEST_TIMEOUT"


@dataclass(frozen=True)
class CLIConfig:
    base_url: str = DEFAULT_BASE_URL
    watch_interval: float = DEFAULT_WATCH_INTERVAL
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT


def _read_float(value: Optional[str], default: float) -> float:
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


def load_config(
    base_url: Optional[str] = None,
    watch_interval: Optional[float] = None,
    request_timeout: Optional[float] = None,
) -> CLIConfig:
    url = base_url or os.getenv(_BASE_URL_ENV) or DEFAULT_BASE_URL
    if watch_interval is None:
        watch_interval = _read_float(os.getenv(_WATCH_INTERVAL_ENV), DEFAULT_WATCH_INTERVAL)
    if request_timeout is None:
        request_timeout = _read_float(os.getenv(_TIMEOUT_ENV), DEFAULT_REQUEST_TIMEOUT)
    return CLIConfig(
        base_url=url.rstrip("/"),
        watch_interval=watch_interval,
        request_timeout=request_timeout,
    )
