"""Loading of exported characterization samples."""
from __future__ import annotations

from pathlib import Path

import pandas as pd

from .identification import SystemIdentification

EXPORT_COLUMNS = ["Timestamp", "Voltage", "Velocity", "Acceleration"]


def load_observations_csv(path: str | Path) -> pd.DataFrame:
    """Read a sample dump written by :func:`motorchar.reporting.export_observations_csv`.

    Parameters
    ----------
    path:
        CSV file with ``Timestamp``, ``Voltage``, ``Velocity`` and
        ``Acceleration`` columns.

    Returns
    -------
    pandas.DataFrame
        The four columns as floats, rows in file order.
    """

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(path)

    df = pd.read_csv(path)
    missing = set(EXPORT_COLUMNS) - set(df.columns)
    if missing:
        raise ValueError(f"Missing required columns: {sorted(missing)}")

    df = df[EXPORT_COLUMNS].astype(float)
    df.reset_index(drop=True, inplace=True)
    return df


def estimator_from_frame(df: pd.DataFrame) -> SystemIdentification:
    """Build an estimator holding every row of *df* as an observation."""

    estimator = SystemIdentification()
    for row in df.itertuples(index=False):
        estimator.add_observation(row.Voltage, row.Velocity, row.Acceleration, row.Timestamp)
    return estimator
