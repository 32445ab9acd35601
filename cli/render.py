from __future__ import annotations

from typing import Any, Dict, Iterable, Optional, Sequence

import typer

READING_FIELDS = (
    ("timestamp", "timestamp"),
    ("waterLevel", "water level (cm)"),
    ("waterFlow", "water flow (m/s)"),
    ("turbineSpeed", "turbine speed (RPM)"),
    ("electricityGenerated", "electricity (W)"),
    ("batteryStorage", "battery (W)"),
    ("waterPressure", "water pressure (psi)"),
)

WEIGHT_ROWS = ("bias", "water_level", "water_flow", "turbine_speed")
WEIGHT_COLUMNS = ("electricity_generated", "battery_storage")


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_reading(payload: Dict[str, Any]) -> None:
    echo_heading("Latest Reading")
    if "message" in payload:
        typer.echo(payload["message"])
        return
    echo_key_values((label, payload.get(key)) for key, label in READING_FIELDS)


def render_weights(weights: Optional[Sequence[Sequence[float]]]) -> None:
    echo_heading("Weights")
    if not weights:
        typer.echo("Model not trained.")
        return
    typer.echo(f"{'':<14}" + "".join(f"{column:>24}" for column in WEIGHT_COLUMNS))
    for name, row in zip(WEIGHT_ROWS, weights):
        typer.echo(f"{name:<14}" + "".join(f"{value:>24.6f}" for value in row))


def render_model_status(payload: Dict[str, Any]) -> None:
    echo_heading("Model Status")
    echo_key_values(
        [
            ("trained", payload.get("trained")),
            ("dataset_size", payload.get("dataset_size")),
            ("battery_level", payload.get("battery_level")),
            ("stored_predictions", payload.get("stored_predictions")),
        ]
    )
    typer.echo()
    render_weights(payload.get("weights"))

    bounds = payload.get("bounds") or {}
    if bounds:
        typer.echo()
        echo_heading("Feature Bounds")
        for name, limits in bounds.items():
            typer.echo(f"  - {name}: {limits.get('min')} .. {limits.get('max')}")
