from __future__ import annotations

import math
from datetime import datetime, timezone

from packages.shared.config import DetectionConfig
from packages.shared.models import ensure_utc


def resolve_now(now: datetime | None) -> datetime:
    """Evaluation anchor for trailing windows. Defaults to the current UTC time."""
    if now is None:
        return datetime.now(timezone.utc)
    return ensure_utc(now)


def resolve_config(config: DetectionConfig | None) -> DetectionConfig:
    return config if config is not None else DetectionConfig()


def iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def round_or_none(value: float | None, ndigits: int = 1) -> float | None:
    return round(value, ndigits) if value is not None else None


def pct_decline(baseline: float | None, latest: float | None) -> float | None:
    if baseline is None or latest is None:
        return None
    if not (math.isfinite(baseline) and math.isfinite(latest)) or baseline <= 0:
        return None
    return (baseline - latest) / baseline * 100


def fmt_value(value: float | None) -> str:
    if value is None:
        return "n/a"
    if float(value).is_integer():
        return str(int(value))
    return f"{value:g}"
