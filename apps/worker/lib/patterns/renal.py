from __future__ import annotations

import logging
from datetime import datetime, timedelta

from packages.shared.config import DetectionConfig
from packages.shared.models import Alert, AlertPriority, AlertType, StructuredSnapshot
from packages.shared.utils.lab_series import earliest_since, latest
from packages.shared.utils.snapshot_queries import active_in_family, require_snapshot

from .common import fmt_value, iso, pct_decline, resolve_config, resolve_now

logger = logging.getLogger(__name__)

EGFR = "egfr"
DAYS_PER_MONTH = 30


def detect_renal_decline(
    snapshot: StructuredSnapshot,
    *,
    now: datetime | None = None,
    config: DetectionConfig | None = None,
) -> Alert | None:
    snap = require_snapshot(snapshot)
    cfg = resolve_config(config)
    anchor = resolve_now(now)

    baseline = earliest_since(snap.labs, EGFR, anchor - timedelta(days=cfg.renal_window_days))
    current = latest(snap.labs, EGFR)
    if baseline is None or current is None:
        return None
    if baseline.collected_at == current.collected_at:
        # a single reading has nothing to compare against
        return None

    decline = pct_decline(baseline.value, current.value)
    if decline is None or decline < cfg.renal_decline_pct:
        logger.debug("Renal decline below threshold: %s", decline)
        return None

    has_diuretic = active_in_family(snap, "diuretic")
    has_nsaid = active_in_family(snap, "nsaid")
    months = round((current.collected_at - baseline.collected_at).days / DAYS_PER_MONTH)

    description = (
        f"eGFR declined from {fmt_value(round(baseline.value))} to {fmt_value(round(current.value))} "
        f"({round(decline)}% drop) over {months} months."
    )
    if has_diuretic:
        description += " Diuretic use noted."
    if has_nsaid:
        description += " NSAID use noted - consider discontinuation."

    return Alert(
        alert_type=AlertType.RENAL_DECLINE,
        priority=AlertPriority.P0,
        title="Progressive Renal Decline Detected",
        description=description,
        evidence={
            "baseline_egfr": baseline.value,
            "latest_egfr": current.value,
            "baseline_date": iso(baseline.collected_at),
            "latest_date": iso(current.collected_at),
            "decline_pct": round(decline, 1),
            "months_between": months,
            "has_diuretic": has_diuretic,
            "has_nsaid": has_nsaid,
        },
    )
