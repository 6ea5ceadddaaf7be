"""Timed data collection feeding a :class:`SystemIdentification` instance.

The actuator, clock and sleep function are supplied by the caller so the same
loop drives real hardware or :class:`SimulatedMotor`.
"""
from __future__ import annotations

import logging
from collections import deque
from typing import Callable, Optional, Protocol, Sequence

import numpy as np

from .identification import SystemIdentification
from .models import FeedforwardConstants

logger = logging.getLogger(__name__)

HISTORY_SIZE = 10
MIN_DT = 1e-6

# Voltage sweep in motor command units (-127..127).
SWEEP_VOLTAGES: tuple[float, ...] = (-100, -80, -60, -40, -20, 0, 20, 40, 60, 80, 100)

# Alternating steps in millivolts; returning to zero between steps exercises
# deceleration as well as acceleration.
ALTERNATING_MILLIVOLTS: tuple[float, ...] = (
    0, 6000, 0, -6000, 0, 12000, 0, -12000, 0, 3000, 0, -3000,
)


class Actuator(Protocol):
    def move(self, voltage: float) -> None: ...

    def velocity(self) -> float: ...


def finite_difference(velocities: Sequence[float], times: Sequence[float]) -> float:
    """Backward difference of the last two samples, 0.0 if undefined."""

    if len(velocities) < 2 or len(times) < 2:
        return 0.0
    dt = times[-1] - times[-2]
    if dt < MIN_DT:
        return 0.0
    return (velocities[-1] - velocities[-2]) / dt


class VelocityHistory:
    """Rolling window of the most recent (time, velocity) samples."""

    def __init__(self, size: int = HISTORY_SIZE):
        if size < 2:
            raise ValueError("history size must be at least 2")
        self._times: deque[float] = deque(maxlen=size)
        self._velocities: deque[float] = deque(maxlen=size)

    def push(self, timestamp: float, velocity: float) -> None:
        self._times.append(timestamp)
        self._velocities.append(velocity)

    def clear(self) -> None:
        self._times.clear()
        self._velocities.clear()

    def acceleration(self) -> float:
        return finite_difference(self._velocities, self._times)

    def __len__(self) -> int:
        return len(self._velocities)


class SimulatedClock:
    """Millisecond clock that only advances when ``sleep`` is called."""

    def __init__(self, start_ms: float = 0.0):
        self._now = float(start_ms)
        self._listeners: list[Callable[[float], None]] = []

    def now(self) -> float:
        return self._now

    def sleep(self, ms: float) -> None:
        self._now += ms
        for listener in self._listeners:
            listener(ms / 1000.0)

    def subscribe(self, listener: Callable[[float], None]) -> None:
        self._listeners.append(listener)


class SimulatedMotor:
    """
    First-order motor obeying ``V = kS*sign(v) + kV*v + kA*dv/dt``.

    The motor holds still while |V| does not exceed the static friction and
    stops rather than reversing when friction would carry it through zero.
    Integration uses explicit Euler sub-steps of at most ``max_step_s``.
    """

    def __init__(
        self,
        constants: FeedforwardConstants,
        *,
        clock: Optional[SimulatedClock] = None,
        noise_std: float = 0.0,
        seed: Optional[int] = None,
        max_step_s: float = 0.001,
    ):
        if constants.kA <= 0 or constants.kV <= 0:
            raise ValueError("simulated motor requires positive kV and kA")
        self.constants = constants
        self.noise_std = float(noise_std)
        self.max_step_s = float(max_step_s)
        self._rng = np.random.default_rng(seed)
        self._voltage = 0.0
        self._velocity = 0.0
        if clock is not None:
            clock.subscribe(self.advance)

    def move(self, voltage: float) -> None:
        self._voltage = float(voltage)

    def velocity(self) -> float:
        if self.noise_std > 0:
            return self._velocity + float(self._rng.normal(scale=self.noise_std))
        return self._velocity

    def advance(self, dt: float) -> None:
        remaining = dt
        while remaining > 0:
            step = min(remaining, self.max_step_s)
            self._step(step)
            remaining -= step

    def _step(self, dt: float) -> None:
        c = self.constants
        v = self._velocity
        if v == 0.0:
            if abs(self._voltage) <= c.kS:
                return
            direction = 1.0 if self._voltage > 0 else -1.0
        else:
            direction = 1.0 if v > 0 else -1.0
        accel = (self._voltage - c.kS * direction - c.kV * v) / c.kA
        new_v = v + accel * dt
        if v != 0.0 and np.sign(new_v) != np.sign(v):
            new_v = 0.0
        self._velocity = new_v


def collect_step(
    actuator: Actuator,
    estimator: SystemIdentification,
    voltage: float,
    duration_ms: float,
    sample_rate_ms: float,
    *,
    clock: Callable[[], float],
    sleep: Callable[[float], None],
    poll_ms: float = 5.0,
    history_size: int = HISTORY_SIZE,
) -> int:
    """Drive *actuator* at *voltage* and record samples; return how many were added.

    Timestamps are seconds since the start of this step. The first sample of
    a step only seeds the velocity history and is not recorded.
    """

    logger.info("Collecting data at voltage %.2f for %d ms", voltage, duration_ms)
    history = VelocityHistory(history_size)
    added = 0

    actuator.move(voltage)
    start = clock()
    last_sample = start
    while clock() - start < duration_ms:
        now = clock()
        if now - last_sample >= sample_rate_ms:
            timestamp = (now - start) / 1000.0
            velocity = actuator.velocity()
            history.push(timestamp, velocity)
            last_sample = now
            if len(history) >= 2:
                acceleration = history.acceleration()
                estimator.add_observation(voltage, velocity, acceleration, timestamp)
                added += 1
                logger.debug(
                    "t=%.2fs velocity=%.2f acceleration=%.2f", timestamp, velocity, acceleration
                )
        sleep(poll_ms)
    actuator.move(0.0)

    logger.info("Step complete: %d samples added, %d total", added, estimator.count())
    return added


def verify_feedforward(
    actuator: Actuator,
    estimator: SystemIdentification,
    target_velocity: float,
    *,
    clock: Callable[[], float],
    sleep: Callable[[float], None],
    duration_ms: float = 5000.0,
    sample_rate_ms: float = 100.0,
) -> list[float]:
    """Drive *actuator* open loop at the feedforward voltage for *target_velocity*.

    Returns ``target - actual`` velocity sampled every *sample_rate_ms*. Nothing
    is commanded and an empty list is returned when *estimator* has no fit.
    """

    if not estimator.is_identified:
        logger.warning("System not identified yet; run characterization first")
        return []

    voltage = estimator.constants.calculate(target_velocity, 0.0)
    logger.info("Testing feedforward at target velocity %.2f (voltage %.2f)", target_velocity, voltage)

    errors: list[float] = []
    actuator.move(voltage)
    start = clock()
    while clock() - start < duration_ms:
        actual = actuator.velocity()
        errors.append(target_velocity - actual)
        logger.debug("target=%.2f actual=%.2f error=%.2f", target_velocity, actual, errors[-1])
        sleep(sample_rate_ms)
    actuator.move(0.0)

    logger.info("Feedforward test complete, final error %.3f", errors[-1] if errors else float("nan"))
    return errors


def run_characterization(
    actuator: Actuator,
    estimator: SystemIdentification,
    schedule: Sequence[float] = SWEEP_VOLTAGES,
    *,
    clock: Callable[[], float],
    sleep: Callable[[float], None],
    step_ms: float = 2000.0,
    sample_rate_ms: float = 50.0,
    pause_ms: float = 1000.0,
    poll_ms: float = 5.0,
    voltage_scale: float = 1.0,
    min_abs_voltage: float = 5.0,
    history_size: int = HISTORY_SIZE,
    include_static_friction: bool = True,
    include_acceleration: bool = True,
) -> bool:
    """Clear *estimator*, step through *schedule* and identify the constants.

    Schedule entries are multiplied by *voltage_scale* before use (e.g. 0.001
    for a millivolt schedule). Entries whose magnitude is below
    *min_abs_voltage* in schedule units are skipped.
    """

    logger.info("Starting motor characterization (%d schedule entries)", len(schedule))
    estimator.clear_data()

    for raw in schedule:
        if abs(raw) < min_abs_voltage:
            continue
        collect_step(
            actuator,
            estimator,
            raw * voltage_scale,
            step_ms,
            sample_rate_ms,
            clock=clock,
            sleep=sleep,
            poll_ms=poll_ms,
            history_size=history_size,
        )
        if pause_ms > 0:
            sleep(pause_ms)

    logger.info("Characterization complete, identifying from %d samples", estimator.count())
    success = estimator.identify(include_static_friction, include_acceleration)
    if not success:
        logger.warning("System identification failed; check data quality")
    return success
