"""Synthetic reading generation and the periodic loop that persists it."""

from __future__ import annotations

import logging
import random
import threading
import time
from datetime import datetime, timezone
from typing import Callable, Optional, Tuple

from app.schemas import PredictionRecord
from datastore.predictions import PredictionStore, PredictionStoreError
from models.records import SensorReading
from services.state import ModelState

logger = logging.getLogger(__name__)

MIN_WATER_LEVEL, MAX_WATER_LEVEL = 10.0, 28.0
MIN_WATER_FLOW, MAX_WATER_FLOW = 0.5, 5.0
MIN_TURBINE_SPEED, MAX_TURBINE_SPEED = 500.0, 1495.0
MIN_ELECTRICITY, MAX_ELECTRICITY = 1.0, 10.0
MAX_BATTERY = 10.0
BATTERY_STEP = 0.1
MAX_WATER_PRESSURE = 28.0

# Stand-in for the previous reading when the dataset is empty.
DEFAULT_PREVIOUS = SensorReading(
    water_level=50.0,
    water_flow=2.0,
    turbine_speed=1000.0,
    electricity_generated=0.0,
    battery_storage=3.0,
    water_pressure=20.0,
)


def _clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))


def electricity_for_speed(turbine_speed: float) -> float:
    """Map turbine speed linearly onto the 1-10 W generation range."""
    span = (turbine_speed - MIN_TURBINE_SPEED) / (MAX_TURBINE_SPEED - MIN_TURBINE_SPEED)
    generated = span * (MAX_ELECTRICITY - MIN_ELECTRICITY) + MIN_ELECTRICITY
    return _clamp(generated, MIN_ELECTRICITY, MAX_ELECTRICITY)


def charge_battery(level: float, electricity: float) -> float:
    if level >= MAX_BATTERY:
        return level
    return min(MAX_BATTERY, level + min(electricity * BATTERY_STEP, BATTERY_STEP))


def next_slot(scheduled: float, now: float, interval: float) -> float:
    """Return the first slot on the ``scheduled + k * interval`` grid later than ``now``.

    Slots that passed while a tick was running are dropped, not replayed.
    """
    candidate = scheduled + interval
    if candidate <= now:
        candidate += (int((now - candidate) // interval) + 1) * interval
    return candidate


class ReadingGenerator:
    """Random walk that produces a plausible next rig reading."""

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._rng = rng or random.Random()
        self._clock = clock

    def _jitter(self, low: float, high: float) -> float:
        return low + self._rng.random() * (high - low)

    def next_reading(
        self, last: Optional[SensorReading], battery_level: float
    ) -> Tuple[SensorReading, float]:
        """Return the next reading and the updated battery level."""
        previous = last or DEFAULT_PREVIOUS

        water_level = _clamp(
            previous.water_level + self._jitter(-4.0, 5.0), MIN_WATER_LEVEL, MAX_WATER_LEVEL
        )
        water_flow = _clamp(
            water_level * 0.2 + self._jitter(-0.25, 0.25), MIN_WATER_FLOW, MAX_WATER_FLOW
        )
        turbine_speed = _clamp(
            water_flow * 150 + self._jitter(-25.0, 25.0), MIN_TURBINE_SPEED, MAX_TURBINE_SPEED
        )
        electricity = electricity_for_speed(turbine_speed)
        battery = charge_battery(battery_level, electricity)
        water_pressure = min(MAX_WATER_PRESSURE, previous.water_pressure + self._jitter(-0.5, 0.5))

        reading = SensorReading(
            water_level=water_level,
            water_flow=water_flow,
            turbine_speed=turbine_speed,
            electricity_generated=electricity,
            battery_storage=battery,
            water_pressure=water_pressure,
            timestamp=self._clock(),
        )
        return reading, battery


class SimulationService:
    """Runs one generator tick per interval on a single background thread.

    Ticks never overlap: a tick that overruns the interval causes the missed
    slots to be skipped rather than queued.
    """

    def __init__(
        self,
        state: ModelState,
        store: PredictionStore,
        generator: Optional[ReadingGenerator] = None,
        interval: float = 5.0,
    ) -> None:
        self.state = state
        self.store = store
        self.generator = generator or ReadingGenerator()
        self.interval = interval
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def tick(self) -> Optional[PredictionRecord]:
        """Generate, record and persist one reading; ``None`` when skipped or unsaved."""
        if not self.state.is_trained():
            logger.warning("Model not trained yet; skipping simulation tick.")
            return None

        reading = self.state.advance(self.generator.next_reading)
        record = PredictionRecord.from_reading(reading)
        try:
            self.store.insert(record)
        except PredictionStoreError:
            logger.exception("Failed to persist simulated reading.", extra={"record_id": record.id})
            return None

        logger.info(
            "New prediction saved.",
            extra={"record_id": record.id, "battery_level": reading.battery_storage},
        )
        return record

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="simulation-loop", daemon=True)
        self._thread.start()

    def shutdown(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        thread = self._thread
        if thread is not None:
            thread.join(timeout=timeout if timeout is not None else self.interval + 1.0)
        self._thread = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run(self) -> None:
        next_run = time.monotonic() + self.interval
        while not self._stop.wait(max(0.0, next_run - time.monotonic())):
            try:
                self.tick()
            except Exception:  # pragma: no cover - keep the loop alive
                logger.exception("Simulation tick failed.")
            next_run = next_slot(next_run, time.monotonic(), self.interval)
