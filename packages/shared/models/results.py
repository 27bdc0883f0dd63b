from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from .enums import AlertPriority, AlertType


class CitationCheck(BaseModel):
    citation: str
    verified: bool
    matched_source: Optional[str] = None


class ValidationResult(BaseModel):
    original: str
    validated: str
    citations: list[CitationCheck] = Field(default_factory=list)
    all_verified: bool = True


class ValidationSummary(BaseModel):
    total: int = 0
    verified: int = 0
    unverified: int = 0
    details: list[ValidationResult] = Field(default_factory=list)


class Alert(BaseModel):
    """Detector output. ``evidence`` holds JSON-native values only."""
    model_config = ConfigDict(use_enum_values=False)

    alert_type: AlertType
    priority: AlertPriority = AlertPriority.P0
    title: str
    description: str
    evidence: dict[str, Any] = Field(default_factory=dict)


class Suppression(BaseModel):
    """Outcome of a detector precondition that can veto an alert."""
    model_config = ConfigDict(frozen=True)

    suppressed: bool
    reason: str = ""
    matched: list[str] = Field(default_factory=list)
    details: dict[str, Any] = Field(default_factory=dict)
