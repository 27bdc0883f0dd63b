from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Optional

from packages.shared.config import DetectionConfig
from packages.shared.models import Alert, StructuredSnapshot
from packages.shared.utils.snapshot_queries import require_snapshot

from .anticoagulation import anticoagulation_suppression, chads_components, chads_score, detect_missed_anticoagulation
from .cardiorenal import detect_cardiorenal_metabolic
from .common import resolve_config, resolve_now
from .malignancy import detect_occult_malignancy, glp1_suppression
from .renal import detect_renal_decline

logger = logging.getLogger(__name__)

Detector = Callable[..., Optional[Alert]]

# Order is fixed so results are deterministic.
DETECTORS: tuple[tuple[str, Detector], ...] = (
    ("renal_decline", detect_renal_decline),
    ("cardiorenal_metabolic", detect_cardiorenal_metabolic),
    ("occult_malignancy", detect_occult_malignancy),
    ("missed_anticoagulation", detect_missed_anticoagulation),
)


def detect_all_patterns(
    snapshot: StructuredSnapshot | dict[str, Any],
    *,
    now: datetime | None = None,
    config: DetectionConfig | None = None,
) -> list[Alert]:
    snap = require_snapshot(snapshot)
    cfg = resolve_config(config)
    anchor = resolve_now(now)
    alerts: list[Alert] = []
    for name, detector in DETECTORS:
        alert = detector(snap, now=anchor, config=cfg)
        logger.debug("Detector %s fired=%s", name, alert is not None)
        if alert is not None:
            alerts.append(alert)
    return alerts


__all__ = [
    "DETECTORS",
    "anticoagulation_suppression",
    "chads_components",
    "chads_score",
    "detect_all_patterns",
    "detect_cardiorenal_metabolic",
    "detect_missed_anticoagulation",
    "detect_occult_malignancy",
    "detect_renal_decline",
    "glp1_suppression",
]
