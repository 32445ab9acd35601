"""CSV ingestion of historical rig readings."""

from __future__ import annotations

import csv
import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, TextIO

from models.records import SensorReading

logger = logging.getLogger(__name__)

# Column header -> (reading attribute, upper clamp)
COLUMNS: Dict[str, tuple[str, Optional[float]]] = {
    "Water Level (cm)": ("water_level", 99.0),
    "Water Flow Speed (m/s)": ("water_flow", None),
    "Turbine Spin (RPM)": ("turbine_speed", 1499.0),
    "Electricity Generated (W)": ("electricity_generated", 9.9),
    "Battery storage (W)": ("battery_storage", 9.9),
    "Water Pressure (psi)": ("water_pressure", 30.0),
}


@dataclass
class IngestReport:
    """Readings admitted from a CSV plus how many rows were dropped."""

    readings: List[SensorReading] = field(default_factory=list)
    row_count: int = 0
    skipped_count: int = 0


def parse_reading(row: Dict[str, Optional[str]], columns: Dict[str, str]) -> SensorReading:
    """Build a clamped reading from one CSV row.

    A row is admitted only if every required field parses as a finite number;
    otherwise ``ValueError`` is raised with the offending column.
    """
    values: Dict[str, float] = {}
    for header, (attribute, upper) in COLUMNS.items():
        raw = (row.get(columns[header]) or "").strip()
        if not raw:
            raise ValueError(f"missing {header}")
        try:
            value = float(raw)
        except ValueError as exc:
            raise ValueError(f"invalid numeric value for {header}") from exc
        if not math.isfinite(value):
            raise ValueError(f"non-finite value for {header}")
        values[attribute] = min(value, upper) if upper is not None else value
    return SensorReading(**values)


def read_readings(stream: TextIO) -> IngestReport:
    reader = csv.DictReader(stream, delimiter=",")
    if not reader.fieldnames:
        raise ValueError("CSV file is missing a header row.")

    normalized = {name.strip(): name for name in reader.fieldnames if name is not None}
    missing = [header for header in COLUMNS if header not in normalized]
    if missing:
        raise ValueError(f"CSV missing required columns: {', '.join(missing)}")

    report = IngestReport()
    for row_number, row in enumerate(reader, start=2):
        report.row_count += 1
        try:
            reading = parse_reading(row, normalized)
        except ValueError as exc:
            report.skipped_count += 1
            logger.debug(
                "Dropping CSV row.", extra={"row_number": row_number, "reason": str(exc)}
            )
            continue
        report.readings.append(reading)
    return report


def load_readings(path: Path) -> IngestReport:
    """Read and filter every row of the CSV at ``path``."""
    with path.open("r", encoding="utf-8-sig", newline="") as handle:
        report = read_readings(handle)

    logger.info(
        "CSV file processed.",
        extra={
            "path": str(path),
            "row_count": report.row_count,
            "admitted_count": len(report.readings),
            "skipped_count": report.skipped_count,
        },
    )
    return report
