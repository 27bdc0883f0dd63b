from __future__ import annotations

import json

import pytest

from packages.shared.config import DetectionConfig
from packages.shared.models import Alert, AlertType, StructuredSnapshot
from apps.worker.lib.patterns import DETECTORS, detect_all_patterns
from tests.fixtures.clinical import NOW, days_ago, dx, lab, med, snapshot, symptom, vitals


def _everything_firing():
    return snapshot(
        diagnoses=[
            dx("Atrial fibrillation", "I48.91", "cardiology"),
            dx("Heart failure", "I50.9", "cardiology"),
            dx("Type 2 diabetes mellitus", "E11.9", "endocrinology"),
            dx("Chronic kidney disease stage 3", "N18.3", "nephrology"),
        ],
        medications=[med("furosemide", "40 mg", start_days_ago=20)],
        labs=[lab("eGFR", 60, days_ago(300)), lab("eGFR", 42, days_ago(5))],
        vitals_history=[vitals(70.0, days_ago(120)), vitals(66.0, days_ago(2))],
        symptoms=[symptom("rectal bleeding")],
    )


def test_empty_snapshot_yields_no_alerts():
    assert detect_all_patterns(StructuredSnapshot(), now=NOW) == []


def test_alerts_are_returned_in_detector_order():
    alerts = detect_all_patterns(_everything_firing(), now=NOW)
    assert [a.alert_type for a in alerts] == [
        AlertType.RENAL_DECLINE,
        AlertType.CARDIORENAL_METABOLIC,
        AlertType.OCCULT_MALIGNANCY,
        AlertType.MISSED_ANTICOAGULATION,
    ]
    assert [name for name, _ in DETECTORS] == [a.alert_type.value for a in alerts]


def test_results_are_deterministic():
    snap = _everything_firing()
    first = detect_all_patterns(snap, now=NOW)
    second = detect_all_patterns(snap, now=NOW)
    assert [a.model_dump() for a in first] == [a.model_dump() for a in second]


def test_evidence_is_json_serializable():
    alerts = detect_all_patterns(_everything_firing(), now=NOW)
    payload = json.dumps([a.model_dump(mode="json") for a in alerts])
    restored = [Alert.model_validate(row) for row in json.loads(payload)]
    assert [a.evidence for a in restored] == [a.evidence for a in alerts]


def test_none_snapshot_raises_type_error():
    with pytest.raises(TypeError):
        detect_all_patterns(None, now=NOW)


def test_summary_shaped_dict_is_accepted():
    payload = {
        "diagnoses": [
            {"name": "Atrial fibrillation", "icd": "I48.91"},
            {"name": "Hypertension"},
            {"name": "Diabetes mellitus"},
        ],
        "medications": [{"drug": "metoprolol", "dose": "25 mg", "status": "active"}],
        "recent_labs": [],
        "active_symptoms": [],
    }
    alerts = detect_all_patterns(payload, now=NOW)
    assert [a.alert_type for a in alerts] == [AlertType.MISSED_ANTICOAGULATION]


def test_config_override_applies_to_every_detector():
    cfg = DetectionConfig(renal_decline_pct=50.0, chads_threshold=5)
    alerts = detect_all_patterns(_everything_firing(), now=NOW, config=cfg)
    assert [a.alert_type for a in alerts] == [
        AlertType.CARDIORENAL_METABOLIC,
        AlertType.OCCULT_MALIGNANCY,
    ]
