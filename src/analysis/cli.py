"""CLI for offline estimator health analysis.

Usage:
    vio-health simulate divergence -o divergence.jsonl --duration 30
    vio-health replay divergence.jsonl --config health.json --output ./report
    vio-health show-config --config health.json
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

import click
from pydantic import ValidationError

from analysis.cycle_log import CycleLogError, read_cycle_log, write_cycle_log
from analysis.simulate import SCENARIOS, generate
from monitor.config import GateConfig, load_config
from monitor.diagnostics import LoggingSink, RecordingSink
from monitor.telemetry import CycleCsvStream


def _load_gate_config(path: Path | None) -> GateConfig:
    if path is None:
        return GateConfig()
    try:
        config = load_config(path)
    except (ValidationError, json.JSONDecodeError) as e:
        raise click.UsageError(f"Invalid config {path}: {e}")

    # --verbose wins over the file's level
    ctx = click.get_current_context(silent=True)
    verbose = bool(ctx and ctx.find_root().params.get("verbose"))
    if not verbose:
        logging.getLogger().setLevel(config.log_level_value)
    return config


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool):
    """Estimator health gate tools: simulate cycles and replay them through the monitor."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )


@cli.command()
@click.argument("scenario", type=click.Choice(SCENARIOS))
@click.option("--output", "-o", type=click.Path(path_type=Path), required=True,
              help="Output JSON Lines cycle log")
@click.option("--duration", type=click.FloatRange(min=0), default=30.0, help="Duration in seconds")
@click.option("--rate", type=click.FloatRange(min=0, min_open=True), default=20.0,
              help="Estimator update rate in Hz")
@click.option("--speed", type=click.FloatRange(min=0), default=None,
              help="Forward speed in m/s (cruise, divergence, dropout)")
@click.option("--seed", type=int, default=0, help="RNG seed")
def simulate(scenario: str, output: Path, duration: float, rate: float,
             speed: float | None, seed: int):
    """Generate a synthetic estimator cycle log."""
    kwargs = {"duration": duration, "rate_hz": rate, "seed": seed}
    if speed is not None:
        if scenario == "hover":
            raise click.UsageError("--speed does not apply to the hover scenario")
        kwargs["speed_mps"] = speed
    cycles = generate(scenario, **kwargs)
    n = write_cycle_log(output, cycles)
    click.echo(f"Generated {n} cycles ({scenario}, {duration}s @ {rate}Hz) -> {output}")


@cli.command()
@click.argument("log_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--config", "config_path", type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help="JSON config (GateConfig or flat monitor parameters)")
@click.option("--output", "-o", type=click.Path(path_type=Path), help="Directory for reports")
@click.option("--log-events", is_flag=True, help="Log every fault counter and reset event")
def replay(log_path: Path, config_path: Path | None, output: Path | None, log_events: bool):
    """Replay a cycle log through the health monitor."""
    from analysis.replay import replay_cycles, save_analysis

    config = _load_gate_config(config_path)
    try:
        cycles = read_cycle_log(log_path)
    except CycleLogError as e:
        raise click.ClickException(str(e))

    telemetry = None
    if config.telemetry_dir is not None:
        telemetry = CycleCsvStream(config.telemetry_dir)
        telemetry.start()
    try:
        sink = LoggingSink() if log_events else RecordingSink()
        result = replay_cycles(cycles, config.health, sink=sink, telemetry=telemetry)
    finally:
        if telemetry is not None:
            telemetry.stop()

    click.echo(result.stats.summary())
    if result.reset_cycles:
        first = result.records[result.reset_cycles[0]]
        click.echo(f"First reset recommendation at cycle {first.cycle} (t={first.timestamp:.2f}s)")

    if output is not None:
        outputs = save_analysis(result, output)
        for name, path in outputs.items():
            click.echo(f"  {name}: {path}")


@cli.command("show-config")
@click.option("--config", "config_path", type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help="JSON config (GateConfig or flat monitor parameters)")
def show_config(config_path: Path | None):
    """Print effective monitor parameters and ordering warnings."""
    config = _load_gate_config(config_path)
    click.echo(json.dumps(config.health.to_params(), indent=2))
    for warning in config.health.ordering_warnings():
        click.echo(f"WARN: {warning}")


if __name__ == "__main__":
    cli()
