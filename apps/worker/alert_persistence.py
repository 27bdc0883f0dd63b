"""
Persistence helpers for detected clinical alerts.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy.orm import Session

from packages.db.database import get_session
from packages.db.models import ClinicalAlert as ClinicalAlertORM
from packages.shared.models import Alert, AlertStatus

logger = logging.getLogger(__name__)


@contextmanager
def _session_scope(session: Optional[Session]) -> Generator[Session, None, None]:
    if session is not None:
        # caller owns the transaction
        yield session
        return
    with get_session() as owned:
        yield owned


def persist_alerts(patient_id: str, alerts: list[Alert], session: Optional[Session] = None) -> int:
    """Replace the patient's active alerts with ``alerts``. Reviewed and dismissed rows are kept."""
    if not patient_id:
        raise ValueError("patient_id is required")
    with _session_scope(session) as s:
        removed = (
            s.query(ClinicalAlertORM)
            .filter_by(patient_id=patient_id, status=AlertStatus.ACTIVE.value)
            .delete()
        )
        s.flush()
        for alert in alerts:
            s.add(ClinicalAlertORM(
                patient_id=patient_id,
                alert_type=alert.alert_type.value,
                priority=alert.priority.value,
                title=alert.title,
                description=alert.description,
                evidence_json=alert.model_dump(mode="json")["evidence"],
                status=AlertStatus.ACTIVE.value,
            ))
        s.flush()
    logger.info("Persisted %d alerts for patient %s (replaced %d)", len(alerts), patient_id, removed)
    return len(alerts)


def load_active_alerts(patient_id: str, session: Optional[Session] = None) -> list[Alert]:
    with _session_scope(session) as s:
        rows = (
            s.query(ClinicalAlertORM)
            .filter_by(patient_id=patient_id, status=AlertStatus.ACTIVE.value)
            .order_by(ClinicalAlertORM.created_at, ClinicalAlertORM.alert_type)
            .all()
        )
        return [
            Alert(
                alert_type=row.alert_type,
                priority=row.priority,
                title=row.title,
                description=row.description,
                evidence=row.evidence_json or {},
            )
            for row in rows
        ]
