from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from .collection import ALTERNATING_MILLIVOLTS, HISTORY_SIZE, SWEEP_VOLTAGES
from .models import FeedforwardConstants


@dataclass
class MotorModel:
    """Parameters of the simulated motor used by the demo."""

    kS: float = 5.0
    kV: float = 0.5
    kA: float = 0.05
    noise_std: float = 0.0
    seed: Optional[int] = None

    def constants(self) -> FeedforwardConstants:
        return FeedforwardConstants(kS=self.kS, kV=self.kV, kA=self.kA)


@dataclass
class CharacterizationConfig:
    schedule: List[float] = field(default_factory=lambda: list(SWEEP_VOLTAGES))
    voltage_scale: float = 1.0
    min_abs_voltage: float = 5.0
    step_ms: float = 2000.0
    sample_rate_ms: float = 50.0
    pause_ms: float = 1000.0
    poll_ms: float = 5.0
    history_size: int = HISTORY_SIZE
    include_static_friction: bool = True
    include_acceleration: bool = True
    export_csv: Path | None = None
    motor: MotorModel = field(default_factory=MotorModel)


PRESETS: Dict[str, Dict[str, Any]] = {
    "sweep": {
        "schedule": list(SWEEP_VOLTAGES),
        "voltage_scale": 1.0,
        "min_abs_voltage": 5.0,
        "step_ms": 2000.0,
        "sample_rate_ms": 50.0,
        "pause_ms": 1000.0,
    },
    # 20 s total, 100 Hz sampling, millivolt schedule recorded in volts.
    "alternating": {
        "schedule": list(ALTERNATING_MILLIVOLTS),
        "voltage_scale": 0.001,
        "min_abs_voltage": 0.0,
        "step_ms": float(20000 // len(ALTERNATING_MILLIVOLTS)),
        "sample_rate_ms": 10.0,
        "pause_ms": 0.0,
        "motor": {"kS": 0.5, "kV": 0.02, "kA": 0.002},
    },
}


def load_config(
    path: Path | str | None = None,
    overrides: Sequence[str] | None = None,
    *,
    preset: str | None = None,
) -> CharacterizationConfig:
    """
    Build a characterization configuration from an optional preset, an
    optional JSON file and CLI-style overrides, applied in that order.

    Overrides are dotted `key=value` pairs, e.g.:
        ["step_ms=1500", "motor.noise_std=0.2"]
    """
    layers: List[Dict[str, Any]] = []
    if preset is not None:
        if preset not in PRESETS:
            raise ValueError(f"Unknown preset '{preset}' (choose from {sorted(PRESETS)})")
        layers.append(PRESETS[preset])
    if path is not None:
        layers.append(_read_json(Path(path)))
    layers.append(_overrides_to_mapping(overrides or []))

    settings: Dict[str, Any] = {}
    for layer in layers:
        settings = _overlay(settings, layer)

    defaults = CharacterizationConfig()
    motor_data = settings.get("motor") or {}
    schedule = settings.get("schedule", defaults.schedule)
    if not isinstance(schedule, list) or not schedule:
        raise ValueError("schedule must be a non-empty list of voltages")
    history_size = int(settings.get("history_size", defaults.history_size))
    if history_size < 2:
        raise ValueError("history_size must be at least 2")
    sample_rate_ms = float(settings.get("sample_rate_ms", defaults.sample_rate_ms))
    if sample_rate_ms <= 0:
        raise ValueError("sample_rate_ms must be positive")

    return CharacterizationConfig(
        schedule=[float(value) for value in schedule],
        voltage_scale=float(settings.get("voltage_scale", defaults.voltage_scale)),
        min_abs_voltage=float(settings.get("min_abs_voltage", defaults.min_abs_voltage)),
        step_ms=float(settings.get("step_ms", defaults.step_ms)),
        sample_rate_ms=sample_rate_ms,
        pause_ms=float(settings.get("pause_ms", defaults.pause_ms)),
        poll_ms=float(settings.get("poll_ms", defaults.poll_ms)),
        history_size=history_size,
        include_static_friction=_as_bool(settings, "include_static_friction", True),
        include_acceleration=_as_bool(settings, "include_acceleration", True),
        export_csv=Path(settings["export_csv"]) if settings.get("export_csv") else None,
        motor=MotorModel(
            kS=float(motor_data.get("kS", defaults.motor.kS)),
            kV=float(motor_data.get("kV", defaults.motor.kV)),
            kA=float(motor_data.get("kA", defaults.motor.kA)),
            noise_std=float(motor_data.get("noise_std", defaults.motor.noise_std)),
            seed=int(motor_data["seed"]) if motor_data.get("seed") is not None else None,
        ),
    )


def _read_json(path: Path) -> Dict[str, Any]:
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a JSON object")
    return data


def _overlay(base: Dict[str, Any], layer: Dict[str, Any]) -> Dict[str, Any]:
    """Return *base* updated by *layer*, recursing into nested sections."""
    result = dict(base)
    for key, value in layer.items():
        current = result.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            result[key] = _overlay(current, value)
        else:
            result[key] = value
    return result


def _overrides_to_mapping(items: Sequence[str]) -> Dict[str, Any]:
    mapping: Dict[str, Any] = {}
    for item in items:
        key, sep, raw = item.partition("=")
        key = key.strip()
        if not sep:
            raise ValueError(f"Override '{item}' must use key=value syntax")
        if not key:
            raise ValueError("Override key may not be empty")
        *sections, leaf = key.split(".")
        target = mapping
        for section in sections:
            target = target.setdefault(section, {})
        target[leaf] = _parse_scalar(raw.strip())
    return mapping


def _parse_scalar(raw: str) -> Any:
    # JSON literals cover numbers, lists and objects; anything else stays text
    if raw.lower() in {"true", "false"}:
        return raw.lower() == "true"
    try:
        return json.loads(raw)
    except ValueError:
        return raw


def _as_bool(settings: Dict[str, Any], key: str, default: bool) -> bool:
    value = settings.get(key, default)
    if isinstance(value, str):
        value = _parse_scalar(value.strip())
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    raise ValueError(f"{key} must be true or false, got {settings.get(key)!r}")
