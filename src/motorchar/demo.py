"""Demo characterization against a simulated motor."""
from __future__ import annotations

import dataclasses
import logging
from pathlib import Path

from .collection import SimulatedClock, SimulatedMotor, run_characterization, verify_feedforward
from .config import CharacterizationConfig
from .identification import SystemIdentification
from .pipeline import CharacterizationResult, run_identification
from .plotting import generate_plots
from .reporting import export_observations_csv, export_results

logger = logging.getLogger(__name__)


def simulated_rig(config: CharacterizationConfig) -> tuple[SimulatedMotor, SimulatedClock]:
    clock = SimulatedClock()
    motor = SimulatedMotor(
        config.motor.constants(),
        clock=clock,
        noise_std=config.motor.noise_std,
        seed=config.motor.seed,
    )
    return motor, clock


def simulate_characterization(
    config: CharacterizationConfig,
    rig: tuple[SimulatedMotor, SimulatedClock] | None = None,
) -> SystemIdentification:
    """Run the configured schedule on a simulated motor and return the estimator."""

    motor, clock = rig or simulated_rig(config)
    estimator = SystemIdentification()
    run_characterization(
        motor,
        estimator,
        config.schedule,
        clock=clock.now,
        sleep=clock.sleep,
        step_ms=config.step_ms,
        sample_rate_ms=config.sample_rate_ms,
        pause_ms=config.pause_ms,
        poll_ms=config.poll_ms,
        voltage_scale=config.voltage_scale,
        min_abs_voltage=config.min_abs_voltage,
        history_size=config.history_size,
        include_static_friction=config.include_static_friction,
        include_acceleration=config.include_acceleration,
    )
    return estimator


def run_demo(
    out_dir: Path,
    config: CharacterizationConfig | None = None,
    *,
    verify_velocity: float | None = None,
) -> CharacterizationResult:
    """Characterize a simulated motor, refit from the exported dump and report.

    With *verify_velocity* set, the refitted constants are then driven open
    loop on the same simulated motor and the velocity errors are reported.
    """

    config = config or CharacterizationConfig()
    out_dir.mkdir(parents=True, exist_ok=True)

    rig = simulated_rig(config)
    estimator = simulate_characterization(config, rig)
    if estimator.is_identified:
        c = estimator.constants
        logger.info(
            "In-memory fit kS=%.6g kV=%.6g kA=%.6g (R^2=%.4f); report uses the refit from the CSV dump",
            c.kS,
            c.kV,
            c.kA,
            estimator.r_squared,
        )
    csv_path = config.export_csv or out_dir / "demo_data.csv"
    if not export_observations_csv(estimator.observations, csv_path):
        raise OSError(f"Could not write demo samples to {csv_path}")

    result = run_identification(
        str(csv_path),
        include_static_friction=config.include_static_friction,
        include_acceleration=config.include_acceleration,
    )

    if verify_velocity is not None:
        motor, clock = rig
        errors = verify_feedforward(
            motor, result.estimator, verify_velocity, clock=clock.now, sleep=clock.sleep
        )
        result = dataclasses.replace(
            result, verification=tuple(errors), verification_target=verify_velocity
        )

    figure_path = None
    try:
        figure_path = generate_plots(result, out_dir)
    except RuntimeError as exc:
        logger.warning("plotting skipped: %s", exc)

    export_results(result, out_dir, figure_path=figure_path, input_path=csv_path)
    return result
