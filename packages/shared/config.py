"""
Detector thresholds and windows, with environment overrides.
"""
from __future__ import annotations

import os

from pydantic import BaseModel, Field

ENV_PREFIX = "CHARTCHECK_"


def _parse_float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return float(raw.strip())


def _parse_int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw.strip())


class DetectionConfig(BaseModel):
    """Configuration for a pattern-detection pass."""
    # Renal decline
    renal_decline_pct: float = Field(default=20.0, gt=0)
    renal_window_days: int = Field(default=365, gt=0)  # trailing 12 months

    # Cardio-renal-metabolic
    cardiorenal_egfr_lookback_days: int = Field(default=30, ge=0)
    cardiorenal_egfr_decline_pct: float = Field(default=20.0, gt=0)
    cardiorenal_a1c_lookback_days: int = Field(default=90, ge=0)
    cardiorenal_a1c_rise: float = Field(default=1.0, gt=0)
    cardiorenal_diuretic_start_days: int = Field(default=60, ge=0)

    # Occult malignancy
    weight_loss_kg: float = Field(default=3.0, gt=0)
    hemoglobin_max: float = 12.0
    mcv_max: float = 80.0
    ferritin_max: float = 15.0
    malignancy_min_signals: int = Field(default=2, ge=1, le=3)

    # Missed anticoagulation
    chads_threshold: int = Field(default=2, ge=0)

    @classmethod
    def from_env(cls) -> "DetectionConfig":
        defaults = cls()
        values: dict[str, float | int] = {}
        for name in cls.model_fields:
            env_name = f"{ENV_PREFIX}{name.upper()}"
            current = getattr(defaults, name)
            if isinstance(current, int):
                values[name] = _parse_int_env(env_name, current)
            else:
                values[name] = _parse_float_env(env_name, current)
        return cls(**values)
