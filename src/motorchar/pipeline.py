"""High level orchestration for offline identification runs."""
from __future__ import annotations

from dataclasses import dataclass

import pandas as pd

from .data import estimator_from_frame, load_observations_csv
from .identification import SystemIdentification


@dataclass(frozen=True)
class CharacterizationResult:
    estimator: SystemIdentification
    success: bool
    residuals: pd.DataFrame
    verification: tuple[float, ...] = ()
    verification_target: float | None = None


def run_identification(
    path: str,
    *,
    include_static_friction: bool = True,
    include_acceleration: bool = True,
) -> CharacterizationResult:
    """Load a sample dump and identify feedforward constants from it."""

    df = load_observations_csv(path)
    estimator = estimator_from_frame(df)
    return summarize(
        estimator,
        include_static_friction=include_static_friction,
        include_acceleration=include_acceleration,
    )


def summarize(
    estimator: SystemIdentification,
    *,
    include_static_friction: bool = True,
    include_acceleration: bool = True,
) -> CharacterizationResult:
    """Run ``identify`` on *estimator* and tabulate its residuals."""

    success = estimator.identify(include_static_friction, include_acceleration)
    return CharacterizationResult(
        estimator=estimator,
        success=success,
        residuals=_build_residual_table(estimator, success),
    )


def _build_residual_table(estimator: SystemIdentification, success: bool) -> pd.DataFrame:
    obs = estimator.observations
    df = pd.DataFrame(
        {
            "timestamp": obs.column("timestamp"),
            "voltage": obs.column("voltage"),
            "velocity": obs.column("velocity"),
            "acceleration": obs.column("acceleration"),
        }
    )
    fit = estimator.last_fit
    if success and fit is not None:
        df["predicted"] = fit.predictions
        df["residual"] = fit.residuals
    return df
