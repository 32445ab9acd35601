from __future__ import annotations

import random
import threading
import time
from datetime import datetime, timedelta, timezone

import numpy as np
import pytest

from app.schemas import PredictionRecord
from datastore.predictions import PredictionStore, PredictionStoreError
from models.records import SensorReading
from services.normalization import FeatureBounds
from services.simulator import (
    ReadingGenerator,
    SimulationService,
    charge_battery,
    electricity_for_speed,
    next_slot,
)
from services.state import ModelState
from services.trainer import TrainingResult


def _reading(water_level: float = 20.0, water_pressure: float = 20.0) -> SensorReading:
    return SensorReading(
        water_level=water_level,
        water_flow=4.0,
        turbine_speed=800.0,
        electricity_generated=4.0,
        battery_storage=3.0,
        water_pressure=water_pressure,
    )


def _trained_state() -> ModelState:
    state = ModelState()
    readings = [_reading(level) for level in (12.0, 18.0, 24.0, 28.0)]
    state.extend(readings)
    state.apply_training(
        TrainingResult(
            weights=np.zeros((4, 2)),
            bounds=FeatureBounds.from_readings(readings),
            row_count=len(readings),
        )
    )
    return state


class FailingStore(PredictionStore):
    def insert(self, record: PredictionRecord) -> None:
        raise PredictionStoreError("disk full")


@pytest.mark.parametrize("seed", range(5))
def test_generated_readings_stay_within_ranges(seed: int) -> None:
    generator = ReadingGenerator(rng=random.Random(seed))
    battery = 3.0

    for prior_level in np.linspace(10.0, 28.0, 10):
        last = _reading(float(prior_level))
        for _ in range(50):
            reading, new_battery = generator.next_reading(last, battery)
            assert 10.0 <= reading.water_level <= 28.0
            assert 0.5 <= reading.water_flow <= 5.0
            assert 500.0 <= reading.turbine_speed <= 1495.0
            assert 1.0 <= reading.electricity_generated <= 10.0
            assert battery <= new_battery <= 10.0
            assert reading.battery_storage == new_battery
            assert reading.water_pressure <= 28.0
            battery = new_battery
            last = reading


def test_empty_dataset_uses_default_previous_reading() -> None:
    generator = ReadingGenerator(rng=random.Random(1))

    reading, battery = generator.next_reading(None, 3.0)

    # The default level of 50 is always above the 28 cm ceiling after jitter.
    assert reading.water_level == 28.0
    assert 19.5 <= reading.water_pressure <= 20.5
    assert battery == pytest.approx(3.1)


def test_pressure_is_capped() -> None:
    generator = ReadingGenerator(rng=random.Random(3))

    reading, _ = generator.next_reading(_reading(water_pressure=30.0), 3.0)

    assert reading.water_pressure == 28.0


def test_generator_stamps_readings_with_clock() -> None:
    stamp = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    generator = ReadingGenerator(rng=random.Random(0), clock=lambda: stamp)

    reading, _ = generator.next_reading(_reading(), 3.0)

    assert reading.timestamp == stamp


def test_electricity_maps_turbine_range_onto_one_to_ten_watts() -> None:
    assert electricity_for_speed(500.0) == 1.0
    assert electricity_for_speed(1495.0) == 10.0
    assert electricity_for_speed(997.5) == pytest.approx(5.5)


def test_battery_charges_in_fixed_steps_and_caps() -> None:
    assert charge_battery(3.0, 5.0) == pytest.approx(3.1)
    assert charge_battery(9.95, 5.0) == 10.0
    assert charge_battery(10.0, 5.0) == 10.0


def test_tick_skipped_until_model_is_trained() -> None:
    state = ModelState()
    store = PredictionStore(name="predictions")
    service = SimulationService(state=state, store=store, interval=60)

    assert service.tick() is None
    assert store.count() == 0
    assert state.snapshot().dataset_size == 0


def test_tick_appends_and_persists_reading() -> None:
    state = _trained_state()
    store = PredictionStore(name="predictions")
    service = SimulationService(
        state=state, store=store, generator=ReadingGenerator(rng=random.Random(5)), interval=60
    )

    first = service.tick()
    second = service.tick()

    assert first is not None and second is not None
    assert store.count() == 2
    snapshot = state.snapshot()
    assert snapshot.dataset_size == 6
    assert snapshot.battery_level == pytest.approx(3.2)
    assert state.readings()[-1].battery_storage == pytest.approx(3.2)
    assert second.battery_storage >= first.battery_storage


def test_tick_survives_store_failure() -> None:
    state = _trained_state()
    service = SimulationService(state=state, store=FailingStore(name="predictions"), interval=60)

    assert service.tick() is None
    assert state.snapshot().dataset_size == 5


def test_background_loop_ticks_until_shutdown() -> None:
    state = _trained_state()
    store = PredictionStore(name="predictions")
    service = SimulationService(state=state, store=store, interval=0.01)

    service.start()
    try:
        deadline = time.monotonic() + 5.0
        while store.count() < 3 and time.monotonic() < deadline:
            time.sleep(0.01)
        assert store.count() >= 3
        assert service.running
    finally:
        service.shutdown()

    assert not service.running
    persisted = store.count()
    time.sleep(0.05)
    assert store.count() == persisted


def test_persisted_timestamps_increase() -> None:
    stamps = iter(
        datetime(2024, 1, 1, tzinfo=timezone.utc) + timedelta(seconds=5 * i) for i in range(10)
    )
    state = _trained_state()
    store = PredictionStore(name="predictions")
    service = SimulationService(
        state=state,
        store=store,
        generator=ReadingGenerator(rng=random.Random(2), clock=lambda: next(stamps)),
        interval=60,
    )

    service.tick()
    last = service.tick()

    latest = store.latest()
    assert latest is not None and last is not None
    assert latest.id == last.id


class SlowStore(PredictionStore):
    """Store whose writes take longer than the simulation interval."""

    def __init__(self, delay: float) -> None:
        super().__init__(name="predictions")
        self.delay = delay
        self.active = 0
        self.max_active = 0
        self.spans: list[tuple[float, float]] = []
        self._guard = threading.Lock()

    def insert(self, record: PredictionRecord) -> None:
        with self._guard:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        started = time.monotonic()
        time.sleep(self.delay)
        super().insert(record)
        with self._guard:
            self.active -= 1
            self.spans.append((started, time.monotonic()))


@pytest.mark.parametrize(
    ("scheduled", "now", "expected"),
    [
        (10.0, 10.2, 10.5),
        (10.0, 11.2, 11.5),
        (10.0, 11.0, 11.5),
        (10.0, 13.9, 14.0),
    ],
)
def test_next_slot_skips_missed_slots(scheduled: float, now: float, expected: float) -> None:
    assert next_slot(scheduled, now, 0.5) == pytest.approx(expected)
    assert next_slot(scheduled, now, 0.5) > now


def test_slow_ticks_never_overlap_or_burst() -> None:
    state = _trained_state()
    store = SlowStore(delay=0.06)
    service = SimulationService(state=state, store=store, interval=0.02)

    started = time.monotonic()
    service.start()
    time.sleep(0.5)
    service.shutdown()
    elapsed = time.monotonic() - started

    assert store.max_active == 1
    assert len(store.spans) >= 2
    for (_, previous_end), (next_start, _) in zip(store.spans, store.spans[1:]):
        assert next_start >= previous_end
    # Replaying every missed 20 ms slot would need elapsed / interval writes.
    assert len(store.spans) <= elapsed / store.delay + 1
