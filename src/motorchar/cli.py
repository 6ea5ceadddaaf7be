"""Command line interface for the motorchar package."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import typer

from .config import load_config
from .demo import run_demo
from .pipeline import run_identification
from .plotting import generate_plots
from .reporting import export_results, format_results

app = typer.Typer(context_settings={"help_option_names": ["-h", "--help"]})


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command()
def identify(
    input_path: Path = typer.Option(..., "--in", help="CSV dump with Timestamp,Voltage,Velocity,Acceleration."),
    report_dir: Path = typer.Option(..., "--report", help="Output directory for reports."),
    static_friction: bool = typer.Option(
        True, "--static-friction/--no-static-friction", help="Fit the kS*sign(v) term."
    ),
    acceleration: bool = typer.Option(
        True, "--acceleration/--no-acceleration", help="Fit the kA*a term."
    ),
) -> None:
    """Identify feedforward constants from recorded samples."""

    if not input_path.exists():
        raise typer.BadParameter(f"{input_path} does not exist", param_hint="--in")

    try:
        result = run_identification(
            str(input_path),
            include_static_friction=static_friction,
            include_acceleration=acceleration,
        )
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--in") from exc

    figure_path = None
    try:
        figure_path = generate_plots(result, report_dir)
    except RuntimeError as exc:
        typer.echo(f"[warning] plotting skipped: {exc}")

    export_results(result, report_dir, figure_path=figure_path, input_path=input_path)
    typer.echo(format_results(result.estimator))
    typer.echo(f"Report written to {report_dir}")
    if not result.success:
        raise typer.Exit(code=1)


@app.command()
def demo(
    out_dir: Path = typer.Option(Path("demo_output"), "--out", help="Target directory for demo report."),
    config_path: Optional[Path] = typer.Option(None, "--config", help="JSON characterization config."),
    preset: Optional[str] = typer.Option(None, "--preset", help="Named schedule preset (sweep, alternating)."),
    overrides: Optional[List[str]] = typer.Option(
        None, "--set", help="Config override as dotted key=value (repeatable)."
    ),
    verify_velocity: Optional[float] = typer.Option(
        None, "--verify", help="Afterwards, drive the fitted feedforward at this target velocity."
    ),
) -> None:
    """Characterize a simulated motor and write the report."""

    try:
        cfg = load_config(config_path, overrides, preset=preset)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc

    result = run_demo(out_dir, cfg, verify_velocity=verify_velocity)
    typer.echo(format_results(result.estimator))
    if result.verification:
        typer.echo(
            f"Feedforward at {verify_velocity:g}: final error {result.verification[-1]:.3f} "
            f"over {len(result.verification)} samples"
        )
    typer.echo(f"Demo dataset and report written to {out_dir}")


def run() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    run()
