from __future__ import annotations

from datetime import datetime
from typing import Iterable

from packages.shared.models import LabResult
from packages.shared.utils.clinical_terms import LAB_ALIASES


def _same_name(lab: LabResult, name: str) -> bool:
    got = lab.name.strip().lower()
    want = name.strip().lower()
    return got == want or got in LAB_ALIASES.terms(want)


def series(labs: Iterable[LabResult], name: str) -> list[LabResult]:
    """All readings for ``name`` ordered oldest first (stable for equal timestamps)."""
    rows = [lab for lab in labs or [] if _same_name(lab, name)]
    return sorted(rows, key=lambda lab: lab.collected_at)


def latest(labs: Iterable[LabResult], name: str) -> LabResult | None:
    rows = series(labs, name)
    return rows[-1] if rows else None


def latest_value(labs: Iterable[LabResult], name: str) -> float | None:
    lab = latest(labs, name)
    return lab.value if lab else None


def earliest_since(labs: Iterable[LabResult], name: str, cutoff: datetime) -> LabResult | None:
    """Oldest reading collected strictly after ``cutoff``."""
    for lab in series(labs, name):
        if lab.collected_at > cutoff:
            return lab
    return None


def reading_before(labs: Iterable[LabResult], name: str, cutoff: datetime) -> LabResult | None:
    """Most recent reading collected strictly before ``cutoff``."""
    found = None
    for lab in series(labs, name):
        if lab.collected_at < cutoff:
            found = lab
    return found


def value_before(labs: Iterable[LabResult], name: str, cutoff: datetime) -> float | None:
    lab = reading_before(labs, name, cutoff)
    return lab.value if lab else None
