"""Text and file output for identification results."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

from .identification import SystemIdentification
from .observations import Observation
from .pipeline import CharacterizationResult

logger = logging.getLogger(__name__)

CSV_HEADER = "Timestamp,Voltage,Velocity,Acceleration"


def format_observations_csv(observations: Iterable[Observation]) -> str:
    """Return the flat tabular dump of *observations*, one row each, 6 decimals."""

    lines = [CSV_HEADER]
    for obs in observations:
        lines.append(
            f"{obs.timestamp:.6f},{obs.voltage:.6f},{obs.velocity:.6f},{obs.acceleration:.6f}"
        )
    return "\n".join(lines) + "\n"


def export_observations_csv(observations: Iterable[Observation], path: str | Path) -> bool:
    """Write the tabular dump to *path*; False when the file cannot be written."""

    text = format_observations_csv(observations)
    try:
        Path(path).write_text(text, encoding="utf-8")
    except OSError as exc:
        logger.warning("Could not export samples to %s: %s", path, exc)
        return False
    return True


def format_results(estimator: SystemIdentification) -> str:
    if not estimator.is_identified:
        return "System has not been identified yet."

    constants = estimator.constants
    lines = [
        "=== System Identification Results ===",
        f"Data points: {estimator.count()}",
        f"R-squared: {estimator.r_squared:.4f}",
        "",
        "Feedforward Constants:",
        f"kS (Static Friction): {constants.kS:.4f}",
        f"kV (Velocity): {constants.kV:.4f}",
        f"kA (Acceleration): {constants.kA:.4f}",
        "",
        "Model: V = kS*sign(v) + kV*v + kA*a",
        "=====================================",
    ]
    return "\n".join(lines)


def format_status(
    estimator: SystemIdentification,
    *,
    max_voltage: float = 12.0,
    reference_velocity: float = 100.0,
) -> list[str]:
    """Short status lines for a small text display."""

    if not estimator.is_identified:
        return ["No Characterization Data", f"Data Points: {estimator.count()}"]

    constants = estimator.constants
    return [
        "Motor Characteristics",
        f"kS: {constants.kS:.2f} kV: {constants.kV:.3f} kA: {constants.kA:.4f}",
        f"R^2: {estimator.r_squared:.3f}",
        f"Data Points: {estimator.count()}",
        f"Max Vel: {constants.max_velocity(max_voltage):.0f}",
        f"{reference_velocity:g} vel: {constants.calculate(reference_velocity, 0.0):.1f}V",
    ]


def export_results(
    result: CharacterizationResult,
    output_dir: Path,
    *,
    figure_path: Path | None = None,
    input_path: Path | None = None,
) -> None:
    """Persist samples, residuals and a markdown report to *output_dir*."""

    output_dir.mkdir(parents=True, exist_ok=True)
    export_observations_csv(result.estimator.observations, output_dir / "observations.csv")
    result.residuals.to_csv(output_dir / "residuals.csv", index=False)
    _write_report_md(result, output_dir, figure_path=figure_path, input_path=input_path)


def _write_report_md(
    result: CharacterizationResult,
    output_dir: Path,
    *,
    figure_path: Path | None,
    input_path: Path | None,
) -> None:
    estimator = result.estimator
    lines: list[str] = []
    lines.append("# Motor Characterization Report")
    if input_path is not None:
        lines.append(f"*Input file:* `{input_path}`  ")
    lines.append(f"*Samples:* {estimator.count()}  ")
    lines.append(f"*Identified:* {'yes' if result.success else 'no'}  ")
    lines.append("")

    if result.success:
        constants = estimator.constants
        fit = estimator.last_fit
        lines.append("## Feedforward constants")
        lines.append("| Term | Value | Fitted |")
        lines.append("| --- | ---: | :---: |")
        fitted = set(fit.config.columns) if fit is not None else set()
        for name, value in constants.as_dict().items():
            lines.append(f"| {name} | {value:.6g} | {'yes' if name in fitted else 'fixed'} |")
        lines.append("")
        lines.append(f"*R²:* {estimator.r_squared:.4f}  ")
        if "residual" in result.residuals.columns:
            max_abs = float(result.residuals["residual"].abs().max())
            lines.append(f"*Max |residual|:* {max_abs:.6g}  ")
        lines.append("")
    else:
        lines.append("Identification failed: at least 3 samples and a non-singular design matrix are required.")
        lines.append("")

    if result.verification:
        errors = result.verification
        lines.append("## Feedforward verification")
        lines.append(f"*Target velocity:* {result.verification_target:.6g}  ")
        lines.append(f"*Samples:* {len(errors)}  ")
        lines.append(f"*Final error:* {errors[-1]:.6g}  ")
        lines.append(f"*Max |error|:* {max(abs(e) for e in errors):.6g}  ")
        lines.append("")

    if figure_path is not None:
        lines.append(f"![Characterization plots]({figure_path.name})")
        lines.append("")

    lines.append("### Notes")
    lines.append("- Model: `V = kS*sign(v) + kV*v + kA*a`, with sign(0) = -1.")
    lines.append("- Terms marked *fixed* were excluded from the fit and held at 0.")
    if input_path is not None:
        lines.append("- Constants are fitted from the samples in the input file (values at 6 decimals).")

    (output_dir / "report.md").write_text("\n".join(lines), encoding="utf-8")
