from enum import Enum


class DiagnosisType(str, Enum):
    CONFIRMED = "confirmed"
    SUSPECTED = "suspected"
    RULED_OUT = "ruled_out"


class MedicationStatus(str, Enum):
    ACTIVE = "active"
    ON_HOLD = "on_hold"
    DISCONTINUED = "discontinued"


class AlertType(str, Enum):
    RENAL_DECLINE = "renal_decline"
    CARDIORENAL_METABOLIC = "cardiorenal_metabolic"
    OCCULT_MALIGNANCY = "occult_malignancy"
    MISSED_ANTICOAGULATION = "missed_anticoagulation"


class AlertPriority(str, Enum):
    P0 = "P0"  # most urgent
    P1 = "P1"
    P2 = "P2"


class AlertStatus(str, Enum):
    ACTIVE = "active"
    REVIEWED = "reviewed"
    DISMISSED = "dismissed"


class ValidationMode(str, Enum):
    FILTER = "filter"  # drop insights with any unverified citation
    MARK = "mark"  # keep everything, annotate unverified citations
