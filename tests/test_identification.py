from __future__ import annotations

import numpy as np
import pytest

from motorchar.identification import SystemIdentification
from motorchar.models import FeatureConfig, FeedforwardConstants, r_squared, velocity_sign

SCENARIO = [
    (20.0, 50.0, 5.0, 1.0),
    (40.0, 100.0, 10.0, 2.0),
    (60.0, 150.0, 15.0, 3.0),
    (80.0, 200.0, 20.0, 4.0),
    (100.0, 250.0, 25.0, 5.0),
    (-20.0, -50.0, -5.0, 6.0),
    (-40.0, -100.0, -10.0, 7.0),
    (-60.0, -150.0, -15.0, 8.0),
]


def _synthetic(kS: float, kV: float, kA: float, n: int = 40) -> SystemIdentification:
    rng = np.random.default_rng(7)
    velocity = np.concatenate([rng.uniform(5.0, 200.0, n // 2), rng.uniform(-200.0, -5.0, n // 2)])
    acceleration = rng.uniform(-50.0, 50.0, n)
    estimator = SystemIdentification()
    for idx, (v, a) in enumerate(zip(velocity, acceleration)):
        voltage = kS * velocity_sign(v) + kV * v + kA * a
        estimator.add_observation(voltage, v, a, idx * 0.01)
    return estimator


def _scenario() -> SystemIdentification:
    estimator = SystemIdentification()
    for voltage, velocity, acceleration, timestamp in SCENARIO:
        estimator.add_observation(voltage, velocity, acceleration, timestamp)
    return estimator


def test_exact_recovery_with_all_terms() -> None:
    estimator = _synthetic(0.8, 0.3, 0.05)

    assert estimator.identify(True, True)
    constants = estimator.constants
    assert np.isclose(constants.kS, 0.8, atol=1e-9)
    assert np.isclose(constants.kV, 0.3, atol=1e-9)
    assert np.isclose(constants.kA, 0.05, atol=1e-9)
    assert np.isclose(estimator.r_squared, 1.0, atol=1e-12)
    assert estimator.is_identified


def test_excluded_terms_are_exactly_zero() -> None:
    estimator = _synthetic(0.8, 0.3, 0.05)

    assert estimator.identify(include_static_friction=False, include_acceleration=True)
    assert estimator.constants.kS == 0.0

    assert estimator.identify(include_static_friction=True, include_acceleration=False)
    assert estimator.constants.kA == 0.0

    assert estimator.identify(include_static_friction=False, include_acceleration=False)
    assert estimator.constants.kS == 0.0
    assert estimator.constants.kA == 0.0
    assert estimator.constants.kV != 0.0


@pytest.mark.parametrize("count", [0, 1, 2])
def test_insufficient_data_fails_without_state_change(count: int) -> None:
    estimator = SystemIdentification()
    for idx in range(count):
        estimator.add_observation(10.0 * (idx + 1), 20.0 * (idx + 1), 1.0, float(idx))

    assert not estimator.identify()
    assert not estimator.is_identified
    assert estimator.constants == FeedforwardConstants()
    assert estimator.r_squared == 0.0


def test_failed_identify_keeps_previous_fit() -> None:
    estimator = _scenario()
    assert estimator.identify()
    before = estimator.constants

    estimator.clear_data()
    estimator.add_observation(1.0, 1.0, 0.0, 0.0)
    assert not estimator.identify()
    assert estimator.constants == before
    assert not estimator.is_identified


def test_non_finite_solution_is_rejected() -> None:
    estimator = _scenario()
    assert estimator.identify()
    before = estimator.constants

    estimator.add_observation(float("nan"), 10.0, 1.0, 9.0)
    assert not estimator.identify()
    assert not estimator.is_identified
    assert estimator.constants == before


def test_every_mutation_resets_identification() -> None:
    estimator = _scenario()
    assert estimator.identify()
    assert estimator.predict(100.0, 0.0) != 0.0

    estimator.add_observation(10.0, 25.0, 0.0, 9.0)
    assert not estimator.is_identified
    assert estimator.predict(100.0, 0.0) == 0.0
    assert estimator.r_squared == 0.0

    assert estimator.identify()
    estimator.clear_data()
    assert not estimator.is_identified
    assert estimator.predict(100.0, 0.0) == 0.0
    assert estimator.count() == 0


def test_constant_response_gives_zero_r_squared() -> None:
    estimator = SystemIdentification()
    for idx, velocity in enumerate([10.0, -20.0, 30.0, -40.0, 50.0]):
        estimator.add_observation(5.0, velocity, idx * 2.0, float(idx))

    assert estimator.identify()
    assert estimator.r_squared == 0.0


def test_r_squared_is_not_clamped() -> None:
    estimator = SystemIdentification()
    for idx, (voltage, velocity) in enumerate([(10.0, 1.0), (11.0, -1.0), (10.0, 1.0), (11.0, -1.0)]):
        estimator.add_observation(voltage, velocity, 0.0, float(idx))

    assert estimator.identify(include_static_friction=False, include_acceleration=False)
    assert estimator.constants.kV == pytest.approx(-0.5)
    assert estimator.r_squared == pytest.approx(-440.0)


def test_r_squared_helper_edge_cases() -> None:
    assert r_squared(np.array([]), np.array([])) == 0.0
    assert r_squared(np.array([1.0, 2.0]), np.array([1.0, 2.0, 3.0])) == 0.0
    assert r_squared(np.array([1.0, 2.0, 3.0]), np.array([1.0, 2.0, 3.0])) == 1.0


def test_zero_velocity_maps_to_negative_sign() -> None:
    assert velocity_sign(0.0) == -1.0
    assert velocity_sign(1e-12) == 1.0
    assert velocity_sign(-3.0) == -1.0

    estimator = SystemIdentification()
    estimator.add_observation(1.0, 0.0, 0.0, 0.0)
    estimator.add_observation(2.0, 5.0, 0.0, 1.0)
    X = estimator.design_matrix(True, False)
    assert X[0, 0] == -1.0
    assert X[1, 0] == 1.0

    constants = FeedforwardConstants(kS=2.0, kV=1.0, kA=0.0)
    assert constants.calculate(0.0, 0.0) == -2.0


def test_design_matrix_column_order_and_shape() -> None:
    estimator = _scenario()

    X = estimator.design_matrix(True, True)
    assert X.shape == (8, 3)
    assert list(X[0]) == [1.0, 50.0, 5.0]
    assert list(X[5]) == [-1.0, -50.0, -5.0]

    assert estimator.design_matrix(False, True).shape == (8, 2)
    assert list(estimator.design_matrix(True, False)[0]) == [1.0, 50.0]
    assert estimator.design_matrix(False, False).shape == (8, 1)

    y = estimator.response_vector()
    assert list(y) == [row[0] for row in SCENARIO]
    assert not estimator.is_identified


def test_feature_config_columns() -> None:
    assert FeatureConfig().columns == ["kS", "kV", "kA"]
    assert FeatureConfig(False, True).columns == ["kV", "kA"]
    assert FeatureConfig(True, False).columns == ["kS", "kV"]


def test_predict_and_error_default_to_zero_before_fit() -> None:
    estimator = SystemIdentification()
    assert estimator.predict(50.0, 5.0) == 0.0
    assert estimator.error(3.5, 50.0, 5.0) == 3.5


def test_end_to_end_scenario() -> None:
    estimator = _scenario()

    assert estimator.identify(True, True)
    constants = estimator.constants
    assert all(np.isfinite([constants.kS, constants.kV, constants.kA]))
    assert estimator.r_squared <= 1.0 + 1e-12

    expected = constants.kS * 1.0 + constants.kV * 125.0 + constants.kA * 12.5
    assert estimator.predict(125.0, 12.5) == pytest.approx(expected)
    assert estimator.error(50.0, 125.0, 12.5) == pytest.approx(50.0 - expected)
    assert estimator.last_fit is not None
    assert estimator.last_fit.residuals.shape == (8,)


def test_max_velocity() -> None:
    constants = FeedforwardConstants(kS=1.0, kV=0.1, kA=0.0)
    assert constants.max_velocity(12.0) == pytest.approx(110.0)
    assert np.isnan(FeedforwardConstants().max_velocity(12.0))
