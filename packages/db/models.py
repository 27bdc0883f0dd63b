"""
SQLAlchemy ORM models for chartcheck persistence.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone as dt_timezone

from sqlalchemy import JSON, Column, DateTime, Index, String, Text
from sqlalchemy.orm import DeclarativeBase


def _uuid():
    return uuid.uuid4().hex


def utcnow():
    return datetime.now(dt_timezone.utc)


class Base(DeclarativeBase):
    pass


class ClinicalAlert(Base):
    __tablename__ = "clinical_alerts"

    id = Column(String(120), primary_key=True, default=_uuid)
    patient_id = Column(String(120), nullable=False)
    alert_type = Column(String(64), nullable=False)
    priority = Column(String(8), nullable=False, default="P0")
    title = Column(String(300), nullable=False)
    description = Column(Text, nullable=False)
    evidence_json = Column(JSON, nullable=True)
    status = Column(String(20), default="active")  # active | reviewed | dismissed
    created_at = Column(DateTime, default=utcnow)
    reviewed_at = Column(DateTime, nullable=True)

    __table_args__ = (
        Index("idx_clinical_alerts_patient_status", "patient_id", "status", "priority"),
    )
