from __future__ import annotations

import numpy as np
import pytest

from motorchar.observations import Observation, ObservationSet


def test_append_preserves_insertion_order() -> None:
    store = ObservationSet()
    store.append(Observation(1.0, 2.0, 3.0, 0.5))
    store.add(-1.0, -2.0, -3.0, 0.25)

    assert store.count() == 2
    assert len(store) == 2
    assert store.all() == (
        Observation(1.0, 2.0, 3.0, 0.5),
        Observation(-1.0, -2.0, -3.0, 0.25),
    )
    assert [obs.timestamp for obs in store] == [0.5, 0.25]


def test_all_is_a_read_only_snapshot() -> None:
    store = ObservationSet()
    store.add(1.0, 2.0, 3.0, 0.0)
    snapshot = store.all()
    store.add(4.0, 5.0, 6.0, 1.0)

    assert isinstance(snapshot, tuple)
    assert len(snapshot) == 1
    assert store.count() == 2


def test_mutations_fire_change_callback() -> None:
    calls: list[str] = []
    store = ObservationSet(on_change=lambda: calls.append("changed"))

    store.add(1.0, 2.0, 3.0, 0.0)
    store.append(Observation(1.0, 2.0, 3.0, 0.1))
    store.clear()
    store.clear()

    assert calls == ["changed"] * 4
    assert store.count() == 0


def test_column_returns_float_array() -> None:
    store = ObservationSet()
    store.add(1, 2, 3, 4)
    store.add(5, 6, 7, 8)

    np.testing.assert_array_equal(store.column("velocity"), np.array([2.0, 6.0]))
    assert store.column("voltage").dtype == float
    assert store.column("timestamp").shape == (2,)

    with pytest.raises(ValueError):
        store.column("torque")
