from __future__ import annotations

import logging
from datetime import datetime

from packages.shared.config import DetectionConfig
from packages.shared.models import Alert, AlertPriority, AlertType, MedicationStatus, StructuredSnapshot, Suppression
from packages.shared.utils.lab_series import latest_value
from packages.shared.utils.snapshot_queries import meds_in_family, mentions, require_snapshot

from .common import resolve_config, round_or_none

logger = logging.getLogger(__name__)


def glp1_suppression(snapshot: StructuredSnapshot) -> Suppression:
    """An active GLP-1 agonist makes weight loss expected, so the triad is not evaluated."""
    snap = require_snapshot(snapshot)
    glp1 = meds_in_family(snap, "glp1_agonist", MedicationStatus.ACTIVE)
    if not glp1:
        return Suppression(suppressed=False)
    return Suppression(
        suppressed=True,
        reason="Active GLP-1 agonist; weight loss is expected.",
        matched=[m.drug for m in glp1],
    )


def _weight_change_kg(snap: StructuredSnapshot) -> float | None:
    points = snap.weight_series()
    if len(points) < 2:
        return None
    return points[0][1] - points[-1][1]


def detect_occult_malignancy(
    snapshot: StructuredSnapshot,
    *,
    now: datetime | None = None,
    config: DetectionConfig | None = None,
) -> Alert | None:
    snap = require_snapshot(snapshot)
    cfg = resolve_config(config)

    suppression = glp1_suppression(snap)
    if suppression.suppressed:
        logger.debug("Occult malignancy suppressed: %s", suppression.reason)
        return None

    weight_change = _weight_change_kg(snap)
    has_weight_loss = (weight_change is not None and weight_change >= cfg.weight_loss_kg) or mentions(
        snap, "weight loss"
    )

    hgb = latest_value(snap.labs, "hemoglobin")
    mcv = latest_value(snap.labs, "mcv")
    ferritin = latest_value(snap.labs, "ferritin")
    microcytic_anemia = hgb is not None and mcv is not None and hgb < cfg.hemoglobin_max and mcv < cfg.mcv_max
    low_ferritin = ferritin is not None and ferritin < cfg.ferritin_max
    has_ida = microcytic_anemia or low_ferritin

    has_gi_bleeding = mentions(snap, "gi bleeding")

    signals = [has_weight_loss, has_ida, has_gi_bleeding]
    if sum(signals) < cfg.malignancy_min_signals:
        logger.debug("Occult malignancy signals below threshold: %s", signals)
        return None

    labels = [
        label
        for label, present in zip(
            ("unintentional weight loss", "iron deficiency anemia", "GI bleeding"), signals
        )
        if present
    ]
    return Alert(
        alert_type=AlertType.OCCULT_MALIGNANCY,
        priority=AlertPriority.P0,
        title="Cancer Red Flag Pattern Detected",
        description=(
            f"Patient has {' + '.join(labels)} - concerning pattern for occult malignancy. "
            "Recommend expedited GI workup."
        ),
        evidence={
            "has_weight_loss": has_weight_loss,
            "weight_change_kg": round_or_none(weight_change),
            "has_ida": has_ida,
            "hemoglobin": hgb,
            "mcv": mcv,
            "ferritin": ferritin,
            "has_gi_bleeding": has_gi_bleeding,
            "signal_count": sum(signals),
        },
    )
