from __future__ import annotations

from typing import Any

from packages.shared.models import Diagnosis, Medication, MedicationStatus, StructuredSnapshot
from packages.shared.utils.clinical_terms import CONDITION_TERMS, DRUG_FAMILIES, ICD_PREFIXES

_SUMMARY_PAYLOAD_KEYS = {"recent_labs", "recent_vitals", "active_symptoms"}


def require_snapshot(snapshot: StructuredSnapshot | dict[str, Any] | None) -> StructuredSnapshot:
    """Return a validated snapshot or fail fast on a missing one.

    ``None`` is a caller bug, not an empty record, so it raises ``TypeError``.
    """
    if snapshot is None:
        raise TypeError("snapshot is required; pass an empty StructuredSnapshot for a patient with no data")
    if isinstance(snapshot, StructuredSnapshot):
        return snapshot
    if isinstance(snapshot, dict):
        if _SUMMARY_PAYLOAD_KEYS.intersection(snapshot):
            return StructuredSnapshot.from_summary_payload(snapshot)
        return StructuredSnapshot.model_validate(snapshot)
    raise TypeError(f"snapshot must be a StructuredSnapshot or dict, got {type(snapshot).__name__}")


def meds_in_family(
    snapshot: StructuredSnapshot,
    family: str,
    status: MedicationStatus | None = None,
) -> list[Medication]:
    out: list[Medication] = []
    for med in snapshot.medications:
        if status is not None and med.status != status:
            continue
        if DRUG_FAMILIES.matches(med.drug, family):
            out.append(med)
    return out


def active_in_family(snapshot: StructuredSnapshot, family: str) -> bool:
    return bool(meds_in_family(snapshot, family, MedicationStatus.ACTIVE))


def held_in_family(snapshot: StructuredSnapshot, family: str) -> bool:
    return bool(meds_in_family(snapshot, family, MedicationStatus.ON_HOLD))


def _icd_matches(dx: Diagnosis, condition: str) -> bool:
    code = (dx.icd_code or "").strip().lower()
    if not code:
        return False
    return any(code.startswith(prefix) for prefix in ICD_PREFIXES.terms(condition))


def diagnoses_for(snapshot: StructuredSnapshot, condition: str) -> list[Diagnosis]:
    """Non-ruled-out diagnoses whose name or ICD code identifies ``condition``."""
    return [
        dx
        for dx in snapshot.active_diagnoses()
        if CONDITION_TERMS.matches(dx.name, condition) or _icd_matches(dx, condition)
    ]


def has_condition(snapshot: StructuredSnapshot, condition: str) -> bool:
    return bool(diagnoses_for(snapshot, condition))


def mentions(snapshot: StructuredSnapshot, condition: str) -> bool:
    """Condition named in a symptom description or a non-ruled-out diagnosis."""
    for symptom in snapshot.symptoms:
        if CONDITION_TERMS.matches(symptom.description, condition):
            return True
    return any(CONDITION_TERMS.matches(dx.name, condition) for dx in snapshot.active_diagnoses())
