"""In-memory store of characterization samples."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterator, Optional

import numpy as np


@dataclass(frozen=True)
class Observation:
    """One measured sample of an actuator.

    ``acceleration`` is expected to be computed by the caller (e.g. a finite
    difference of adjacent velocity samples); no cross-field validation is done.
    """

    voltage: float
    velocity: float
    acceleration: float
    timestamp: float


class ObservationSet:
    """
    Ordered, append-only sequence of observations. Every mutation fires the
    ``on_change`` callback so an owning estimator can drop its fit.
    """

    def __init__(self, on_change: Optional[Callable[[], None]] = None):
        self._items: list[Observation] = []
        self._on_change = on_change

    def append(self, observation: Observation) -> None:
        self._items.append(observation)
        self._changed()

    def add(self, voltage: float, velocity: float, acceleration: float, timestamp: float) -> None:
        self.append(Observation(float(voltage), float(velocity), float(acceleration), float(timestamp)))

    def clear(self) -> None:
        self._items.clear()
        self._changed()

    def count(self) -> int:
        return len(self._items)

    def all(self) -> tuple[Observation, ...]:
        return tuple(self._items)

    def column(self, name: str) -> np.ndarray:
        """Return one field of every observation as a float array."""

        if name not in Observation.__dataclass_fields__:
            raise ValueError(f"Unknown observation field '{name}'")
        return np.array([getattr(item, name) for item in self._items], dtype=float)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Observation]:
        return iter(tuple(self._items))

    def _changed(self) -> None:
        if self._on_change is not None:
            self._on_change()
