"""Wiring for startup ingestion, one-time training and the simulation loop."""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Optional

from datastore.predictions import PredictionStore, build_default_store
from services.ingest import load_readings
from services.simulator import ReadingGenerator, SimulationService
from services.state import ModelState
from services.trainer import RidgeTrainer, TrainingResult
from settings import get_settings

logger = logging.getLogger(__name__)


class HydroRuntime:
    """Owns the shared state and the services that read or mutate it."""

    def __init__(
        self,
        state: ModelState,
        store: PredictionStore,
        trainer: RidgeTrainer,
        simulator: SimulationService,
        dataset_path: Optional[Path] = None,
    ) -> None:
        self.state = state
        self.store = store
        self.trainer = trainer
        self.simulator = simulator
        self.dataset_path = dataset_path

    def load_dataset(self) -> int:
        """Append the CSV readings to the dataset; failures leave it unchanged."""
        if self.dataset_path is None:
            return 0
        try:
            report = load_readings(self.dataset_path)
        except (OSError, ValueError, UnicodeDecodeError):
            logger.exception(
                "Failed to load training CSV.", extra={"path": str(self.dataset_path)}
            )
            return 0
        return self.state.extend(report.readings)

    def train(self) -> Optional[TrainingResult]:
        result = self.trainer.train(self.state.readings())
        if result is not None:
            self.state.apply_training(result)
        return result

    def bootstrap(self) -> Optional[TrainingResult]:
        dataset_size = self.load_dataset()
        logger.info("Dataset loaded.", extra={"dataset_size": dataset_size})
        return self.train()

    def start(self) -> None:
        self.bootstrap()
        self.simulator.start()

    def shutdown(self) -> None:
        self.simulator.shutdown()


@lru_cache
def build_default_runtime() -> HydroRuntime:
    """Factory that wires the runtime from environment settings."""
    settings = get_settings()
    state = ModelState()
    store = build_default_store()
    simulator = SimulationService(
        state=state,
        store=store,
        generator=ReadingGenerator(),
        interval=settings.simulation_interval,
    )
    return HydroRuntime(
        state=state,
        store=store,
        trainer=RidgeTrainer(lam=settings.ridge_lambda),
        simulator=simulator,
        dataset_path=Path(settings.dataset_path),
    )
