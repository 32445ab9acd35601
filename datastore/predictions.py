from __future__ import annotations
import json
import logging
import os
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Dict, Optional

from app.schemas import PredictionRecord
from settings import get_settings

logger = logging.getLogger(__name__)


class PredictionStoreError(RuntimeError):
    """Raised when the predictions collection cannot be read or written."""


def parse_store_uri(uri: str) -> Optional[Path]:
    """Map a store connection string to a persistence path (``None`` = in memory)."""
    candidate = uri.strip()
    if candidate == "memory://":
        return None
    if candidate.startswith("file://"):
        location = candidate[len("file://"):]
        if not location:
            raise ValueError("File store URI must include a path.")
        return Path(location)
    if "://" in candidate:
        scheme = candidate.split("://", 1)[0]
        raise ValueError(f"Unsupported store URI scheme {scheme!r}.")
    return Path(candidate)


class PredictionStore:
    """Document collection of persisted readings, optionally mirrored to a JSON file.

    The file is replaced atomically on every write. A file that cannot be
    parsed is moved aside to ``<name>.corrupt-<stamp>`` and never overwritten.
    """

    def __init__(self, name: str, persistence_path: Optional[Path] = None) -> None:
        self.name = name
        self._items: Dict[str, PredictionRecord] = {}
        self.persistence_path = persistence_path
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def insert(self, record: PredictionRecord) -> None:
        with self._lock:
            self._items[record.id] = record.model_copy(deep=True)
            try:
                self._persist()
            except OSError as exc:
                self._items.pop(record.id, None)
                raise PredictionStoreError(
                    f"Failed to write record {record.id!r} to {self.name!r}."
                ) from exc

    def latest(self) -> Optional[PredictionRecord]:
        """Return the record with the newest timestamp, or ``None`` if empty."""
        with self._lock:
            if not self._items:
                return None
            try:
                newest = max(self._items.values(), key=lambda item: item.timestamp)
            except TypeError as exc:
                raise PredictionStoreError(
                    f"Records in {self.name!r} cannot be ordered by timestamp."
                ) from exc
            return newest.model_copy(deep=True)

    def count(self) -> int:
        with self._lock:
            return len(self._items)

    def _persist(self) -> None:
        if not self.persistence_path:
            return
        payload = {
            record_id: item.model_dump(mode="json", by_alias=True)
            for record_id, item in self._items.items()
        }
        staging = self.persistence_path.with_name(self.persistence_path.name + ".tmp")
        try:
            staging.write_text(json.dumps(payload, indent=2, sort_keys=True))
            os.replace(staging, self.persistence_path)
        except OSError:
            staging.unlink(missing_ok=True)
            raise

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            raw = self.persistence_path.read_text() or "{}"
        except OSError as exc:
            raise PredictionStoreError(
                f"Cannot read {self.name!r} from {self.persistence_path}."
            ) from exc

        try:
            data = json.loads(raw)
            if not isinstance(data, dict):
                raise ValueError("expected a JSON object keyed by record id")
            items = {
                record_id: PredictionRecord.model_validate(payload)
                for record_id, payload in data.items()
            }
        except ValueError:
            self._quarantine()
            return

        self._items.update(items)

    def _quarantine(self) -> None:
        assert self.persistence_path is not None
        stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%f")
        target = self.persistence_path.with_name(f"{self.persistence_path.name}.corrupt-{stamp}")
        try:
            os.replace(self.persistence_path, target)
        except OSError as exc:
            raise PredictionStoreError(
                f"Unreadable {self.name!r} file {self.persistence_path} could not be moved aside."
            ) from exc
        logger.error(
            "Predictions file is corrupt; moved aside and starting empty.",
            extra={"path": str(target)},
        )


@lru_cache
def build_default_store(
    name: Optional[str] = None,
    uri: Optional[str] = None,
) -> PredictionStore:
    settings = get_settings()
    collection = settings.collection_name if name is None else name
    store_uri = settings.store_uri if uri is None else uri
    return PredictionStore(name=collection, persistence_path=parse_store_uri(store_uri))
