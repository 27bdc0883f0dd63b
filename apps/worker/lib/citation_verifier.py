from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Any, Iterable, Iterator

from packages.shared.models import (
    CitationCheck,
    LabResult,
    StructuredSnapshot,
    ValidationMode,
    ValidationResult,
    ValidationSummary,
    parse_bracket_citation,
)
from packages.shared.utils.clinical_terms import DIAGNOSIS_ABBREVIATIONS
from packages.shared.utils.snapshot_queries import require_snapshot

logger = logging.getLogger(__name__)

UNVERIFIED_SUFFIX = " [unverified]"
LAB_NAME_PREFIX_LEN = 4
DIAGNOSIS_NAME_PREFIX_LEN = 6

_MONTH_PATTERNS = [
    r"jan(?:uary)?",
    r"feb(?:ruary)?",
    r"mar(?:ch)?",
    r"apr(?:il)?",
    r"may",
    r"june?",
    r"july?",
    r"aug(?:ust)?",
    r"sep(?:t|tember)?",
    r"oct(?:ober)?",
    r"nov(?:ember)?",
    r"dec(?:ember)?",
]
_ANY_MONTH = "|".join(_MONTH_PATTERNS)

_CANDIDATE_RE = re.compile(r"\([^()]+\)|\[[^\[\]]+\]")
_CITATION_SIGNAL_RE = re.compile(
    rf"\b(?:{_ANY_MONTH})\.?\s*\d{{1,2}}(?:st|nd|rd|th)?\b"
    r"|\b(?:cardiology|pcp|gi|neuro\w*|pulm\w*|endo\w*|rheum\w*|oncology)\b"
    r"|dx:"
    r"|on_hold"
    r"|\bactive\b",
    re.IGNORECASE,
)


def _format_number(value: Any) -> str:
    """Render a number the way it appears in generated text: 45.0 -> "45", 9.2 -> "9.2"."""
    if value is None:
        return ""
    num = float(value)
    if num.is_integer():
        return str(int(num))
    return str(num)


def _date_token_re(when: datetime) -> re.Pattern[str]:
    month = _MONTH_PATTERNS[when.month - 1]
    return re.compile(rf"\b(?:{month})\.?\s*0?{when.day}(?:st|nd|rd|th)?\b", re.IGNORECASE)


def _iter_citation_matches(text: str) -> Iterator[re.Match[str]]:
    for m in _CANDIDATE_RE.finditer(text or ""):
        raw = m.group(0)
        if raw.startswith("("):
            if _CITATION_SIGNAL_RE.search(raw[1:-1]):
                yield m
        elif parse_bracket_citation(raw) is not None:
            yield m


def iter_citations(text: str) -> Iterator[str]:
    """Lazily yield citation markers in source order, duplicates included."""
    for m in _iter_citation_matches(text):
        yield m.group(0)


def extract_citations(text: str) -> list[str]:
    return list(iter_citations(text))


def _verify_lab(low: str, labs: Iterable[LabResult]) -> str | None:
    for lab in labs:
        prefix = lab.name.strip().lower()[:LAB_NAME_PREFIX_LEN]
        value_str = _format_number(lab.value)
        if prefix and prefix in low and _date_token_re(lab.collected_at).search(low):
            return f"{lab.name}: {value_str} {lab.unit}".rstrip() + f" ({lab.collected_at.date().isoformat()})"
        if value_str and value_str in low:
            # value-only match is partial verification
            return f"{lab.name}: {value_str} {lab.unit}".rstrip()
    return None


def _verify_medication(low: str, snapshot: StructuredSnapshot) -> str | None:
    for med in snapshot.medications:
        drug = med.drug.strip().lower()
        if not drug or drug not in low:
            continue
        label = f"{med.drug} {med.dose}".strip()
        if med.status.value in low:
            return f"{label} ({med.status.value})"
        return label
    return None


def _diagnosis_name_match(low: str, dx_name: str) -> bool:
    name = dx_name.strip().lower()
    if not name:
        return False
    if name[:DIAGNOSIS_NAME_PREFIX_LEN] in low:
        return True
    for canonical in DIAGNOSIS_ABBREVIATIONS.canonicals_within(name):
        if DIAGNOSIS_ABBREVIATIONS.matches(low, canonical):
            return True
    return False


def _verify_diagnosis(low: str, snapshot: StructuredSnapshot) -> str | None:
    for dx in snapshot.active_diagnoses():
        if not _diagnosis_name_match(low, dx.name):
            continue
        specialty = dx.specialty.strip().lower()
        if (specialty and specialty in low) or "dx:" in low:
            return f"{dx.name} ({dx.specialty})"
        return dx.name
    return None


def _verify_vitals(low: str, snapshot: StructuredSnapshot) -> str | None:
    vitals = snapshot.vitals
    if vitals is None:
        return None
    candidates = [
        (vitals.bp or "").strip().lower(),
        _format_number(vitals.heart_rate),
        _format_number(vitals.o2_saturation),
    ]
    if any(c and c in low for c in candidates):
        when = vitals.recorded_at.date().isoformat() if vitals.recorded_at else "latest"
        return when
    return None


def _doc_key(name: str) -> str:
    base = re.sub(r"\.(pdf|docx?|txt|png|jpe?g)$", "", name.strip().lower())
    return " ".join(re.split(r"[\s_]+", base)).strip()


def _verify_document(citation: str, snapshot: StructuredSnapshot) -> str | None:
    parsed = parse_bracket_citation(citation)
    if parsed is None:
        return None
    wanted = _doc_key(parsed.doc_name)
    for doc in snapshot.documents:
        if _doc_key(doc.name) != wanted:
            continue
        if doc.page_count is not None and parsed.page > doc.page_count:
            continue
        return f"{doc.name} p.{parsed.page}"
    return None


def _verify(citation: str, snapshot: StructuredSnapshot) -> CitationCheck:
    low = (citation or "").lower()
    # Labs are the least ambiguous source; vitals numbers collide easily, so they go last.
    match = _verify_lab(low, snapshot.labs)
    if match:
        return CitationCheck(citation=citation, verified=True, matched_source=f"Lab: {match}")
    match = _verify_medication(low, snapshot)
    if match:
        return CitationCheck(citation=citation, verified=True, matched_source=f"Med: {match}")
    match = _verify_diagnosis(low, snapshot)
    if match:
        return CitationCheck(citation=citation, verified=True, matched_source=f"Dx: {match}")
    match = _verify_vitals(low, snapshot)
    if match:
        return CitationCheck(citation=citation, verified=True, matched_source=f"Vitals: {match}")
    match = _verify_document(citation, snapshot)
    if match:
        return CitationCheck(citation=citation, verified=True, matched_source=f"Doc: {match}")
    return CitationCheck(citation=citation, verified=False)


def verify_citation(citation: str, snapshot: StructuredSnapshot | dict[str, Any]) -> CitationCheck:
    return _verify(citation, require_snapshot(snapshot))


def _validate(insight: str, snapshot: StructuredSnapshot) -> ValidationResult:
    text = insight or ""
    checks: list[CitationCheck] = []
    pieces: list[str] = []
    cursor = 0
    for m in _iter_citation_matches(text):
        check = _verify(m.group(0), snapshot)
        checks.append(check)
        if not check.verified:
            logger.debug("Unverified citation %r", check.citation)
            pieces.append(text[cursor:m.end()])
            pieces.append(UNVERIFIED_SUFFIX)
            cursor = m.end()
    pieces.append(text[cursor:])
    return ValidationResult(
        original=text,
        validated="".join(pieces),
        citations=checks,
        # no citations is not a failure
        all_verified=all(c.verified for c in checks),
    )


def validate_insight_citations(insight: str, snapshot: StructuredSnapshot | dict[str, Any]) -> ValidationResult:
    return _validate(insight, require_snapshot(snapshot))


def validate_clinical_insights(
    insights: list[str],
    snapshot: StructuredSnapshot | dict[str, Any],
    mode: ValidationMode | str = ValidationMode.MARK,
) -> list[str]:
    try:
        resolved = ValidationMode(mode)
    except ValueError:
        raise ValueError(f"mode must be 'filter' or 'mark', got {mode!r}") from None
    snap = require_snapshot(snapshot)
    results = [_validate(insight, snap) for insight in insights or []]
    if resolved == ValidationMode.FILTER:
        kept = [r.original for r in results if r.all_verified]
        if len(kept) < len(results):
            logger.info("Dropped %d of %d insights with unverified citations", len(results) - len(kept), len(results))
        return kept
    return [r.validated for r in results]


def get_validation_summary(
    insights: list[str],
    snapshot: StructuredSnapshot | dict[str, Any],
) -> ValidationSummary:
    snap = require_snapshot(snapshot)
    details = [_validate(insight, snap) for insight in insights or []]
    total = sum(len(r.citations) for r in details)
    verified = sum(1 for r in details for c in r.citations if c.verified)
    logger.info("Citation validation: %d total, %d verified, %d unverified", total, verified, total - verified)
    return ValidationSummary(total=total, verified=verified, unverified=total - verified, details=details)
