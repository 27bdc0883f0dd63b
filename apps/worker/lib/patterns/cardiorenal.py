from __future__ import annotations

import logging
from datetime import datetime, timedelta

from packages.shared.config import DetectionConfig
from packages.shared.models import Alert, AlertPriority, AlertType, StructuredSnapshot
from packages.shared.utils.lab_series import latest_value, value_before
from packages.shared.utils.snapshot_queries import has_condition, meds_in_family, require_snapshot

from .common import fmt_value, pct_decline, resolve_config, resolve_now

logger = logging.getLogger(__name__)


def _recent_diuretic_start(snap: StructuredSnapshot, cutoff: datetime) -> bool:
    return any(
        med.start_date is not None and med.start_date > cutoff
        for med in meds_in_family(snap, "furosemide")
    )


def detect_cardiorenal_metabolic(
    snapshot: StructuredSnapshot,
    *,
    now: datetime | None = None,
    config: DetectionConfig | None = None,
) -> Alert | None:
    snap = require_snapshot(snapshot)
    cfg = resolve_config(config)
    anchor = resolve_now(now)

    has_hf = has_condition(snap, "heart failure")
    has_dm = has_condition(snap, "diabetes")
    has_ckd = has_condition(snap, "chronic kidney disease")
    recent_diuretic = _recent_diuretic_start(snap, anchor - timedelta(days=cfg.cardiorenal_diuretic_start_days))

    egfr_baseline = value_before(snap.labs, "egfr", anchor - timedelta(days=cfg.cardiorenal_egfr_lookback_days))
    egfr_latest = latest_value(snap.labs, "egfr")
    decline = pct_decline(egfr_baseline, egfr_latest)
    egfr_decline = decline is not None and decline > cfg.cardiorenal_egfr_decline_pct

    a1c_baseline = value_before(snap.labs, "a1c", anchor - timedelta(days=cfg.cardiorenal_a1c_lookback_days))
    a1c_latest = latest_value(snap.labs, "a1c")
    a1c_worsening = (
        a1c_baseline is not None
        and a1c_latest is not None
        and (a1c_latest - a1c_baseline) >= cfg.cardiorenal_a1c_rise
    )

    renal_arm = egfr_decline or has_ckd
    trigger_arm = recent_diuretic or a1c_worsening
    if not (has_hf and has_dm and renal_arm and trigger_arm):
        logger.debug(
            "Cardio-renal not met: hf=%s dm=%s renal=%s trigger=%s", has_hf, has_dm, renal_arm, trigger_arm
        )
        return None

    parts = [f"Patient has HF + DM + {'CKD' if has_ckd else 'renal decline'}."]
    if egfr_decline:
        parts.append(f"eGFR dropped from {fmt_value(round(egfr_baseline))} to {fmt_value(round(egfr_latest))}.")
    if a1c_worsening:
        parts.append(f"A1c worsened from {fmt_value(a1c_baseline)}% to {fmt_value(a1c_latest)}%.")
    if recent_diuretic:
        parts.append("Furosemide started recently.")
    parts.append("Consider coordinated multi-specialty management.")

    return Alert(
        alert_type=AlertType.CARDIORENAL_METABOLIC,
        priority=AlertPriority.P0,
        title="Cardio-Renal-Metabolic Spiral Detected",
        description=" ".join(parts),
        evidence={
            "has_hf": has_hf,
            "has_dm": has_dm,
            "has_ckd": has_ckd,
            "egfr_decline": egfr_decline,
            "egfr_baseline": egfr_baseline,
            "egfr_latest": egfr_latest,
            "a1c_baseline": a1c_baseline,
            "a1c_latest": a1c_latest,
            "a1c_worsening": a1c_worsening,
            "recent_diuretic_change": recent_diuretic,
        },
    )
