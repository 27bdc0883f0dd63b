"""
Compact clinical summary for downstream generation: non-ruled-out diagnoses,
medications, latest reading per lab, latest vitals, symptoms and detected alerts.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any

from apps.worker.lib.patterns import detect_all_patterns
from packages.shared.config import DetectionConfig
from packages.shared.models import Alert, LabResult, StructuredSnapshot, VitalsReading
from packages.shared.utils.snapshot_queries import require_snapshot


def _latest_per_lab(labs: list[LabResult]) -> list[LabResult]:
    latest: dict[str, LabResult] = {}
    for lab in labs:
        key = lab.name.strip().lower()
        cur = latest.get(key)
        if cur is None or lab.collected_at >= cur.collected_at:
            latest[key] = lab
    return sorted(latest.values(), key=lambda lab: lab.collected_at, reverse=True)


def _vitals_row(vitals: VitalsReading | None) -> dict[str, Any] | None:
    if vitals is None:
        return None
    return {
        "bp": vitals.bp,
        "hr": vitals.heart_rate,
        "o2": vitals.o2_saturation,
        "weight_kg": vitals.weight_kg,
        "date": vitals.recorded_at.date().isoformat() if vitals.recorded_at else None,
    }


def build_clinical_summary(
    snapshot: StructuredSnapshot | dict[str, Any],
    *,
    alerts: list[Alert] | None = None,
    now: datetime | None = None,
    config: DetectionConfig | None = None,
) -> dict[str, Any]:
    snap = require_snapshot(snapshot)
    if alerts is None:
        alerts = detect_all_patterns(snap, now=now, config=config)
    return {
        "diagnoses": [
            {"name": d.name, "type": d.type.value, "icd": d.icd_code, "specialty": d.specialty}
            for d in snap.active_diagnoses()
        ],
        "medications": [
            {
                "drug": m.drug,
                "dose": m.dose,
                "frequency": m.frequency,
                "status": m.status.value,
                "indication": m.indication,
                "notes": m.notes,
            }
            for m in snap.medications
        ],
        "recent_labs": [
            {
                "name": lab.name,
                "value": lab.value,
                "unit": lab.unit,
                "abnormal": lab.abnormal,
                "date": lab.collected_at.date().isoformat(),
            }
            for lab in _latest_per_lab(snap.labs)
        ],
        "recent_vitals": _vitals_row(snap.vitals),
        "active_symptoms": [
            {
                "description": s.description,
                "severity": s.severity,
                "onset": s.onset_date.date().isoformat() if s.onset_date else None,
            }
            for s in snap.symptoms
        ],
        "alerts": [
            {
                "type": a.alert_type.value,
                "priority": a.priority.value,
                "title": a.title,
                "description": a.description,
            }
            for a in alerts
        ],
    }
