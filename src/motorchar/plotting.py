"""Plotting helpers for characterization outputs."""
from __future__ import annotations

from pathlib import Path
from typing import Any

import numpy as np

from .pipeline import CharacterizationResult


def generate_plots(result: CharacterizationResult, output_dir: Path) -> Path:
    plt = _require_matplotlib()
    output_dir.mkdir(parents=True, exist_ok=True)
    fig, axes = plt.subplots(1, 2, figsize=(12, 5))

    _plot_voltage_vs_velocity(result, axes[0])
    _plot_residuals(result, axes[1])

    fig.tight_layout()
    out_path = output_dir / "plots.png"
    fig.savefig(out_path, dpi=200)
    plt.close(fig)
    return out_path


def _plot_voltage_vs_velocity(result: CharacterizationResult, ax) -> None:
    df = result.residuals
    ax.scatter(df["velocity"], df["voltage"], label="samples", alpha=0.6, s=10)

    if result.success and not df.empty:
        constants = result.estimator.constants
        velocity_range = np.linspace(df["velocity"].min(), df["velocity"].max(), 250)
        values = [constants.calculate(v, 0.0) for v in velocity_range]
        ax.plot(velocity_range, values, color="black", label="steady-state model")

    ax.set_title("Voltage vs. velocity")
    ax.set_xlabel("Velocity")
    ax.set_ylabel("Voltage")
    ax.legend(loc="best")


def _plot_residuals(result: CharacterizationResult, ax) -> None:
    df = result.residuals
    if "residual" in df.columns:
        ax.plot(np.arange(len(df)), df["residual"], marker=".", linestyle="-", label="residual")
    ax.set_title("Residual per sample")
    ax.set_xlabel("Sample index")
    ax.set_ylabel("Voltage error")
    ax.axhline(0.0, color="black", linewidth=0.8, linestyle="--")
    if "residual" in df.columns:
        ax.legend(loc="best")


def _require_matplotlib() -> Any:
    home_cache = Path.home() / ".cache" / "fontconfig"
    try:
        home_cache.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise RuntimeError("matplotlib cannot write font cache in this environment") from exc

    try:
        import matplotlib
        matplotlib.use("Agg", force=True)
        import matplotlib.pyplot as plt  # type: ignore
    except ImportError as exc:  # pragma: no cover - optional dependency
        raise RuntimeError("matplotlib is required for plotting; install motorchar[plot]") from exc
    except Exception as exc:  # pragma: no cover - environment issues
        raise RuntimeError(f"matplotlib initialisation failed: {exc}") from exc
    return plt
