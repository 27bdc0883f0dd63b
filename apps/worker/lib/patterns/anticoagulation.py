from __future__ import annotations

import logging
from datetime import datetime

from packages.shared.config import DetectionConfig
from packages.shared.models import Alert, AlertPriority, AlertType, MedicationStatus, StructuredSnapshot, Suppression
from packages.shared.utils.snapshot_queries import has_condition, meds_in_family, require_snapshot

from .common import resolve_config

logger = logging.getLogger(__name__)

# Simplified CHA2DS2-VASc. Age and sex are not scored: birth dates are unreliable upstream.
CHADS_COMPONENTS: dict[str, tuple[str, int]] = {
    "chf": ("heart failure", 1),
    "htn": ("hypertension", 1),
    "dm": ("diabetes", 1),
    "stroke": ("stroke", 2),
    "vascular": ("vascular disease", 1),
}


def anticoagulation_suppression(snapshot: StructuredSnapshot) -> Suppression:
    """An active or deliberately held anticoagulant means the gap has already been reviewed."""
    snap = require_snapshot(snapshot)
    active = meds_in_family(snap, "anticoagulant", MedicationStatus.ACTIVE)
    held = meds_in_family(snap, "anticoagulant", MedicationStatus.ON_HOLD)
    hold_reason = next((m.notes for m in held if m.notes), None)
    details = {
        "on_anticoag": bool(active),
        "anticoag_held": bool(held),
        "hold_reason": hold_reason,
    }
    if active:
        return Suppression(
            suppressed=True,
            reason="Anticoagulant active.",
            matched=[m.drug for m in active],
            details=details,
        )
    if held:
        reason = "Anticoagulant on hold"
        reason += f": {hold_reason}" if hold_reason else "."
        return Suppression(suppressed=True, reason=reason, matched=[m.drug for m in held], details=details)
    return Suppression(suppressed=False, details=details)


def chads_components(snapshot: StructuredSnapshot) -> dict[str, bool]:
    snap = require_snapshot(snapshot)
    return {key: has_condition(snap, condition) for key, (condition, _) in CHADS_COMPONENTS.items()}


def chads_score(components: dict[str, bool]) -> int:
    return sum(weight for key, (_, weight) in CHADS_COMPONENTS.items() if components.get(key))


def detect_missed_anticoagulation(
    snapshot: StructuredSnapshot,
    *,
    now: datetime | None = None,
    config: DetectionConfig | None = None,
) -> Alert | None:
    snap = require_snapshot(snapshot)
    cfg = resolve_config(config)

    if not has_condition(snap, "atrial fibrillation"):
        return None

    suppression = anticoagulation_suppression(snap)
    if suppression.suppressed:
        logger.debug("Missed anticoagulation suppressed: %s", suppression.reason)
        return None

    components = chads_components(snap)
    score = chads_score(components)
    if score < cfg.chads_threshold:
        return None

    labels = {
        "chf": "CHF",
        "htn": "HTN",
        "dm": "DM",
        "stroke": "prior stroke/TIA",
        "vascular": "vascular disease",
    }
    present = ", ".join(labels[k] for k, v in components.items() if v)
    return Alert(
        alert_type=AlertType.MISSED_ANTICOAGULATION,
        priority=AlertPriority.P0,
        title="AFib Without Anticoagulation",
        description=(
            f"Patient has AFib with CHA2DS2-VASc score {score} (age/sex not scored) "
            f"but no anticoagulant found. Components: {present}."
        ),
        evidence={
            "has_afib": True,
            "chads_score": score,
            "on_anticoag": suppression.details.get("on_anticoag", False),
            "anticoag_held": suppression.details.get("anticoag_held", False),
            "components": components,
            "age_sex_omitted": True,
        },
    )
