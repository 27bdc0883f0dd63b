from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .common import ensure_utc
from .enums import DiagnosisType, MedicationStatus

_DIAGNOSIS_TYPE_ALIASES = {
    "working": DiagnosisType.SUSPECTED,
    "provisional": DiagnosisType.SUSPECTED,
    "differential": DiagnosisType.SUSPECTED,
    "rule_out": DiagnosisType.SUSPECTED,
    "ruled out": DiagnosisType.RULED_OUT,
    "ruled-out": DiagnosisType.RULED_OUT,
    "active": DiagnosisType.CONFIRMED,
}


class Diagnosis(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    type: DiagnosisType = DiagnosisType.CONFIRMED
    icd_code: Optional[str] = None
    specialty: str = ""

    @field_validator("type", mode="before")
    @classmethod
    def _normalize_type(cls, value: Any) -> Any:
        if isinstance(value, str):
            low = value.strip().lower()
            return _DIAGNOSIS_TYPE_ALIASES.get(low, low)
        return value

    @field_validator("specialty", mode="before")
    @classmethod
    def _none_specialty(cls, value: Any) -> Any:
        return "" if value is None else value


class Medication(BaseModel):
    model_config = ConfigDict(frozen=True)

    drug: str
    dose: str = ""
    frequency: str = ""
    status: MedicationStatus = MedicationStatus.ACTIVE
    indication: Optional[str] = None
    notes: Optional[str] = None
    start_date: Optional[datetime] = None

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower().replace("-", "_").replace(" ", "_")
        return value

    @field_validator("dose", "frequency", mode="before")
    @classmethod
    def _none_text(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("start_date", mode="before")
    @classmethod
    def _utc_start(cls, value: Any) -> Any:
        return ensure_utc(value)


class LabResult(BaseModel):
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    name: str
    value: float
    unit: str = ""
    abnormal: bool = False
    collected_at: datetime

    @field_validator("collected_at", mode="before")
    @classmethod
    def _utc_collected(cls, value: Any) -> Any:
        return ensure_utc(value)

    @field_validator("unit", mode="before")
    @classmethod
    def _none_unit(cls, value: Any) -> Any:
        return "" if value is None else value


class VitalsReading(BaseModel):
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    bp: Optional[str] = None  # "systolic/diastolic"
    heart_rate: Optional[float] = None
    o2_saturation: Optional[float] = None
    weight_kg: Optional[float] = None
    recorded_at: Optional[datetime] = None

    @field_validator("recorded_at", mode="before")
    @classmethod
    def _utc_recorded(cls, value: Any) -> Any:
        return ensure_utc(value)


class Symptom(BaseModel):
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    description: str
    severity: Optional[float] = None
    onset_date: Optional[datetime] = None

    @field_validator("onset_date", mode="before")
    @classmethod
    def _utc_onset(cls, value: Any) -> Any:
        return ensure_utc(value)


class SourceDocumentRef(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    page_count: Optional[int] = Field(default=None, ge=0)


class StructuredSnapshot(BaseModel):
    """Read-only clinical record for one patient at one point in time."""
    model_config = ConfigDict(frozen=True)

    diagnoses: list[Diagnosis] = Field(default_factory=list)
    medications: list[Medication] = Field(default_factory=list)
    labs: list[LabResult] = Field(default_factory=list)
    vitals: Optional[VitalsReading] = None
    vitals_history: list[VitalsReading] = Field(default_factory=list)
    symptoms: list[Symptom] = Field(default_factory=list)
    documents: list[SourceDocumentRef] = Field(default_factory=list)

    def active_diagnoses(self) -> list[Diagnosis]:
        return [d for d in self.diagnoses if d.type != DiagnosisType.RULED_OUT]

    def weight_series(self) -> list[tuple[datetime | None, float]]:
        """Weights ordered oldest first.

        Undated history rows have no place in the timeline and are skipped. ``vitals`` is
        the current reading, so it goes last when it carries no timestamp.
        """
        points = [
            (r.recorded_at, float(r.weight_kg))
            for r in self.vitals_history
            if r.weight_kg is not None and r.recorded_at is not None
        ]
        current = self.vitals if self.vitals is not None and self.vitals.weight_kg is not None else None
        if current is not None and current.recorded_at is not None and current not in self.vitals_history:
            points.append((current.recorded_at, float(current.weight_kg)))
        points.sort(key=lambda p: p[0])
        if current is not None and current.recorded_at is None:
            points.append((None, float(current.weight_kg)))
        return points

    @classmethod
    def from_summary_payload(cls, payload: dict[str, Any]) -> "StructuredSnapshot":
        """Build a snapshot from the clinical-summary JSON shape (``recent_labs``, ``recent_vitals`` ...)."""
        diagnoses = [
            {
                "name": d.get("name"),
                "type": d.get("type") or DiagnosisType.CONFIRMED.value,
                "icd_code": d.get("icd") or d.get("icd_code"),
                "specialty": d.get("specialty"),
            }
            for d in payload.get("diagnoses") or []
        ]
        medications = [
            {
                "drug": m.get("drug"),
                "dose": m.get("dose"),
                "frequency": m.get("frequency"),
                "status": m.get("status") or MedicationStatus.ACTIVE.value,
                "indication": m.get("indication"),
                "notes": m.get("notes"),
                "start_date": m.get("start_date"),
            }
            for m in payload.get("medications") or []
        ]
        labs = [
            {
                "name": lab.get("name"),
                "value": lab.get("value"),
                "unit": lab.get("unit"),
                "abnormal": bool(lab.get("abnormal")),
                "collected_at": lab.get("collected_at") or lab.get("date"),
            }
            for lab in (payload.get("labs") or payload.get("recent_labs") or [])
        ]
        vitals = _summary_vitals(payload.get("recent_vitals") or payload.get("vitals"))
        history = [v for v in (_summary_vitals(row) for row in payload.get("vitals_history") or []) if v]
        symptoms = [
            {
                "description": s.get("description") or "",
                "severity": s.get("severity"),
                "onset_date": s.get("onset_date") or s.get("onset"),
            }
            for s in (payload.get("symptoms") or payload.get("active_symptoms") or [])
        ]
        return cls.model_validate(
            {
                "diagnoses": diagnoses,
                "medications": medications,
                "labs": labs,
                "vitals": vitals,
                "vitals_history": history,
                "symptoms": symptoms,
                "documents": payload.get("documents") or [],
            }
        )


def _summary_vitals(row: dict[str, Any] | None) -> dict[str, Any] | None:
    if not row:
        return None
    return {
        "bp": row.get("bp"),
        "heart_rate": row.get("heart_rate", row.get("hr")),
        "o2_saturation": row.get("o2_saturation", row.get("o2")),
        "weight_kg": row.get("weight_kg", row.get("weight")),
        "recorded_at": row.get("recorded_at") or row.get("date"),
    }
