from __future__ import annotations

import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import echo_key_values, render_model_status, render_reading, render_weights
from services.ingest import load_readings
from services.trainer import DEFAULT_LAMBDA, RidgeTrainer


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for inspecting the rainwater hydro service and its model.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1)
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Service base URL (defaults to API_BASE_URL env or http://localhost:5000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds before an HTTP request is abandoned.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, request_timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("latest")
def latest_command(
    ctx: typer.Context,
    count: int = typer.Option(
        1,
        "--count",
        "-n",
        min=1,
        help="Number of times to fetch the latest reading.",
    ),
    interval: Optional[float] = typer.Option(
        None,
        "--interval",
        help="Seconds between fetches when --count is above one.",
    ),
) -> None:
    """Show the most recently persisted reading."""
    state = _get_state(ctx)
    wait = interval if interval is not None else state.config.watch_interval
    for attempt in range(count):
        if attempt:
            time.sleep(wait)
            typer.echo()
        render_reading(state.client.get_latest())


@app.command("model")
def model_command(ctx: typer.Context) -> None:
    """Show whether the service's model is trained, with its weights and bounds."""
    state = _get_state(ctx)
    render_model_status(state.client.get_model_status())


@app.command("train")
def train_command(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="Path to CSV file."),
    lam: float = typer.Option(DEFAULT_LAMBDA, "--lambda", min=0.0, help="Ridge regularization strength."),
) -> None:
    """Train the ridge model locally from a CSV without contacting the service."""
    try:
        report = load_readings(file)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="FILE") from exc

    echo_key_values(
        [
            ("rows", report.row_count),
            ("admitted", len(report.readings)),
            ("skipped", report.skipped_count),
        ]
    )
    result = RidgeTrainer(lam=lam).train(report.readings)
    if result is None:
        typer.secho("Model could not be trained.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    typer.echo()
    render_weights(result.weights.tolist())
