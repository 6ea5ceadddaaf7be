"""Feedforward system identification over a collected sample set."""
from __future__ import annotations

import logging
from typing import Optional

import numpy as np

from .models import (
    MIN_OBSERVATIONS,
    FeatureConfig,
    FeedforwardConstants,
    FitResult,
    build_design_matrix,
    build_response_vector,
    fit_feedforward,
)
from .observations import Observation, ObservationSet

logger = logging.getLogger(__name__)


class SystemIdentification:
    """
    Identify ``kS``, ``kV`` and ``kA`` of a motor from voltage, velocity and
    acceleration samples using least squares.

    The instance owns its observations. Appending or clearing them resets the
    identified flag; the last coefficients stay readable but should not be
    trusted until ``identify`` succeeds again. Queries made while the model is
    not identified return 0.0 instead of raising, so status displays can run
    before any fit exists.

    Not thread-safe: callers sharing an instance must synchronise externally.
    """

    def __init__(self) -> None:
        self._observations = ObservationSet(on_change=self._invalidate)
        self._constants = FeedforwardConstants()
        self._r_squared = 0.0
        self._identified = False
        self._last_fit: Optional[FitResult] = None

    # -- sample store -------------------------------------------------

    @property
    def observations(self) -> ObservationSet:
        return self._observations

    def add_observation(self, voltage: float, velocity: float, acceleration: float, timestamp: float) -> None:
        self._observations.add(voltage, velocity, acceleration, timestamp)

    def append(self, observation: Observation) -> None:
        self._observations.append(observation)

    def clear_data(self) -> None:
        self._observations.clear()

    def count(self) -> int:
        return self._observations.count()

    # -- estimation ---------------------------------------------------

    def identify(self, include_static_friction: bool = True, include_acceleration: bool = True) -> bool:
        """Fit the feedforward model; return False and keep prior state on failure."""

        config = FeatureConfig(include_static_friction, include_acceleration)
        n = self.count()
        if n < MIN_OBSERVATIONS:
            logger.debug("Identification needs at least %d samples, have %d", MIN_OBSERVATIONS, n)
            return False

        fit = fit_feedforward(
            self._observations.column("velocity"),
            self._observations.column("acceleration"),
            self._observations.column("voltage"),
            config,
        )
        if fit is None:
            logger.warning("Least-squares solve failed or produced non-finite coefficients (%d samples)", n)
            return False

        self._constants = fit.constants
        self._r_squared = fit.r_squared
        self._last_fit = fit
        self._identified = True
        logger.info(
            "Identified kS=%.4f kV=%.4f kA=%.4f (R^2=%.4f, %d samples)",
            fit.constants.kS,
            fit.constants.kV,
            fit.constants.kA,
            fit.r_squared,
            n,
        )
        return True

    @property
    def constants(self) -> FeedforwardConstants:
        return self._constants

    @property
    def r_squared(self) -> float:
        return self._r_squared if self._identified else 0.0

    @property
    def is_identified(self) -> bool:
        return self._identified

    @property
    def last_fit(self) -> Optional[FitResult]:
        """Details of the most recent successful solve, if any."""
        return self._last_fit

    # -- diagnostics --------------------------------------------------

    def design_matrix(self, include_static_friction: bool = True, include_acceleration: bool = True) -> np.ndarray:
        X, _ = build_design_matrix(
            self._observations.column("velocity"),
            self._observations.column("acceleration"),
            FeatureConfig(include_static_friction, include_acceleration),
        )
        return X

    def response_vector(self) -> np.ndarray:
        return build_response_vector(self._observations.column("voltage"))

    # -- prediction ---------------------------------------------------

    def predict(self, velocity: float, acceleration: float) -> float:
        if not self._identified:
            return 0.0
        return self._constants.calculate(velocity, acceleration)

    def error(self, actual_voltage: float, velocity: float, acceleration: float) -> float:
        return actual_voltage - self.predict(velocity, acceleration)

    def _invalidate(self) -> None:
        self._identified = False
