from .common import Citation, ensure_utc, parse_bracket_citation
from .domain import (
    Diagnosis,
    LabResult,
    Medication,
    SourceDocumentRef,
    StructuredSnapshot,
    Symptom,
    VitalsReading,
)
from .enums import (
    AlertPriority,
    AlertStatus,
    AlertType,
    DiagnosisType,
    MedicationStatus,
    ValidationMode,
)
from .results import Alert, CitationCheck, Suppression, ValidationResult, ValidationSummary

__all__ = [
    "Alert",
    "AlertPriority",
    "AlertStatus",
    "AlertType",
    "Citation",
    "CitationCheck",
    "Diagnosis",
    "DiagnosisType",
    "LabResult",
    "Medication",
    "MedicationStatus",
    "SourceDocumentRef",
    "StructuredSnapshot",
    "Suppression",
    "Symptom",
    "ValidationMode",
    "ValidationResult",
    "ValidationSummary",
    "VitalsReading",
    "ensure_utc",
    "parse_bracket_citation",
]
