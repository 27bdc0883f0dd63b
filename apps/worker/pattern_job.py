"""
Batch evaluation of one patient snapshot: pattern detection, insight
citation validation and (optionally) alert persistence.
"""
from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from apps.worker.lib.citation_verifier import get_validation_summary, validate_clinical_insights
from apps.worker.lib.patterns import detect_all_patterns
from packages.shared.config import DetectionConfig
from packages.shared.models import Alert, StructuredSnapshot, ValidationMode, ValidationSummary
from packages.shared.utils.snapshot_queries import require_snapshot

logger = logging.getLogger(__name__)


class PatternJobResult(BaseModel):
    patient_id: Optional[str] = None
    alerts: list[Alert] = Field(default_factory=list)
    insights: list[str] = Field(default_factory=list)
    validation: Optional[ValidationSummary] = None
    persisted: int = 0
    processing_seconds: float = 0.0


def run_pattern_job(
    snapshot: StructuredSnapshot | dict[str, Any],
    *,
    insights: Optional[list[str]] = None,
    mode: ValidationMode | str = ValidationMode.MARK,
    now: Optional[datetime] = None,
    config: Optional[DetectionConfig] = None,
    patient_id: Optional[str] = None,
    persist: bool = False,
    session: Optional[Session] = None,
) -> PatternJobResult:
    if persist and not patient_id:
        raise ValueError("persist=True requires a patient_id")
    t0 = time.perf_counter()
    snap = require_snapshot(snapshot)

    alerts = detect_all_patterns(snap, now=now, config=config)
    logger.info(
        "Patient %s: %d alerts (%s)",
        patient_id or "-",
        len(alerts),
        ", ".join(a.alert_type.value for a in alerts) or "none",
    )

    result = PatternJobResult(patient_id=patient_id, alerts=alerts)
    if insights is not None:
        result.validation = get_validation_summary(insights, snap)
        result.insights = validate_clinical_insights(insights, snap, mode)

    if persist:
        from apps.worker.alert_persistence import persist_alerts

        result.persisted = persist_alerts(patient_id, alerts, session=session)

    result.processing_seconds = round(time.perf_counter() - t0, 4)
    return result
