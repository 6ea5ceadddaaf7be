"""Regression primitives for feedforward identification."""
from __future__ import annotations

from dataclasses import dataclass

import numpy as np

MIN_OBSERVATIONS = 3
TSS_EPSILON = 1e-10


@dataclass(frozen=True)
class FeatureConfig:
    """Which optional regressors enter the design matrix.

    Velocity is always a regressor; static friction and acceleration can be
    switched off, in which case their coefficients are fixed at 0.0.
    """

    include_static_friction: bool = True
    include_acceleration: bool = True

    @property
    def columns(self) -> list[str]:
        names = []
        if self.include_static_friction:
            names.append("kS")
        names.append("kV")
        if self.include_acceleration:
            names.append("kA")
        return names


@dataclass(frozen=True)
class FeedforwardConstants:
    """Coefficients of ``voltage = kS*sign(v) + kV*v + kA*a``."""

    kS: float = 0.0
    kV: float = 0.0
    kA: float = 0.0

    def calculate(self, velocity: float, acceleration: float) -> float:
        return self.kS * velocity_sign(velocity) + self.kV * velocity + self.kA * acceleration

    def max_velocity(self, max_voltage: float) -> float:
        """Steady-state velocity reached at *max_voltage* (nan when kV is 0)."""
        if self.kV == 0:
            return float("nan")
        return (max_voltage - self.kS) / self.kV

    def as_dict(self) -> dict[str, float]:
        return {"kS": self.kS, "kV": self.kV, "kA": self.kA}


@dataclass
class FitResult:
    """Outcome of one least-squares solve."""

    config: FeatureConfig
    constants: FeedforwardConstants
    beta: np.ndarray
    predictions: np.ndarray
    residuals: np.ndarray
    r_squared: float


def velocity_sign(velocity: float) -> float:
    """+1.0 for positive velocity, -1.0 otherwise (zero maps to -1.0)."""

    return 1.0 if velocity > 0 else -1.0


def build_design_matrix(
    velocity: np.ndarray,
    acceleration: np.ndarray,
    config: FeatureConfig,
) -> tuple[np.ndarray, list[str]]:
    """Return the design matrix and its column labels.

    Column order is ``[sign(v)] [v] [a]`` with the bracketed terms present
    according to *config*.
    """

    velocity = np.asarray(velocity, dtype=float)
    acceleration = np.asarray(acceleration, dtype=float)
    if velocity.ndim != 1 or acceleration.ndim != 1:
        raise ValueError("velocity and acceleration must be 1-D arrays")
    if velocity.shape != acceleration.shape:
        raise ValueError("velocity and acceleration must have the same length")

    columns = []
    if config.include_static_friction:
        columns.append(np.where(velocity > 0, 1.0, -1.0))
    columns.append(velocity)
    if config.include_acceleration:
        columns.append(acceleration)

    X = np.column_stack(columns)
    return X, config.columns


def build_response_vector(voltage: np.ndarray) -> np.ndarray:
    return np.asarray(voltage, dtype=float).copy()


def r_squared(predicted: np.ndarray, actual: np.ndarray) -> float:
    """Coefficient of determination, 0.0 for a (numerically) constant response.

    Not clamped: a fit worse than the mean predictor gives a negative value.
    """

    predicted = np.asarray(predicted, dtype=float)
    actual = np.asarray(actual, dtype=float)
    if predicted.shape != actual.shape or actual.size == 0:
        return 0.0

    mean = actual.mean()
    tss = float(np.sum((actual - mean) ** 2))
    rss = float(np.sum((actual - predicted) ** 2))
    if tss < TSS_EPSILON:
        return 0.0
    return 1.0 - rss / tss


def fit_feedforward(
    velocity: np.ndarray,
    acceleration: np.ndarray,
    voltage: np.ndarray,
    config: FeatureConfig,
) -> FitResult | None:
    """Least-squares fit of the feedforward model.

    Returns ``None`` when there are fewer than ``MIN_OBSERVATIONS`` samples or
    the solution is not finite.
    """

    X, names = build_design_matrix(velocity, acceleration, config)
    y = build_response_vector(voltage)
    if X.shape[0] < MIN_OBSERVATIONS:
        return None

    try:
        beta, *_ = np.linalg.lstsq(X, y, rcond=None)
    except np.linalg.LinAlgError:
        return None
    if not np.all(np.isfinite(beta)):
        return None

    values = dict(zip(names, (float(value) for value in beta)))
    constants = FeedforwardConstants(
        kS=values.get("kS", 0.0),
        kV=values["kV"],
        kA=values.get("kA", 0.0),
    )
    predictions = X @ beta
    return FitResult(
        config=config,
        constants=constants,
        beta=beta,
        predictions=predictions,
        residuals=y - predictions,
        r_squared=r_squared(predictions, y),
    )
