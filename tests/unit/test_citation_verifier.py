from __future__ import annotations

import inspect

import pytest

from apps.worker.lib.citation_verifier import (
    UNVERIFIED_SUFFIX,
    extract_citations,
    get_validation_summary,
    iter_citations,
    validate_clinical_insights,
    validate_insight_citations,
    verify_citation,
)
from packages.shared.models import SourceDocumentRef, StructuredSnapshot
from tests.fixtures.clinical import chart_snapshot


def _with_documents() -> StructuredSnapshot:
    return chart_snapshot().model_copy(
        update={"documents": [SourceDocumentRef(name="Cardiology Consult.pdf", page_count=4)]}
    )


def test_extract_citations_in_source_order() -> None:
    text = (
        "Anticoagulation gap (warfarin on_hold, cardiology) with anemia (Hgb 9.2, Dec 2). "
        "Rhythm (AFib, dx: cardiology). Plan (see above) and [Cardiology Consult p.3]."
    )
    assert extract_citations(text) == [
        "(warfarin on_hold, cardiology)",
        "(Hgb 9.2, Dec 2)",
        "(AFib, dx: cardiology)",
        "[Cardiology Consult p.3]",
    ]


def test_extract_citations_keeps_duplicates() -> None:
    text = "Low (Hgb 9.2, Dec 2) and still low (Hgb 9.2, Dec 2)."
    assert extract_citations(text) == ["(Hgb 9.2, Dec 2)", "(Hgb 9.2, Dec 2)"]


def test_extract_citations_ignores_non_citation_parentheticals() -> None:
    text = "Tablet (inactive ingredient) taken (twice daily) as noted (see chart)."
    assert extract_citations(text) == []
    assert extract_citations("") == []


def test_extract_citations_is_deterministic() -> None:
    text = "Anemia (Hgb 9.2, Dec 2) with GI workup (colonoscopy, gi) pending."
    first = extract_citations(text)
    assert first == extract_citations(text)
    assert first == ["(Hgb 9.2, Dec 2)", "(colonoscopy, gi)"]


def test_iter_citations_is_lazy_and_restartable() -> None:
    text = "Rhythm (AFib, dx: cardiology)."
    gen = iter_citations(text)
    assert inspect.isgenerator(gen)
    assert list(gen) == ["(AFib, dx: cardiology)"]
    assert list(iter_citations(text)) == ["(AFib, dx: cardiology)"]


def test_unverified_marker_is_not_extracted() -> None:
    result = validate_insight_citations("Troponin (troponin elevated, Dec 9).", chart_snapshot())
    assert extract_citations(result.validated) == ["(troponin elevated, Dec 9)"]


@pytest.mark.parametrize(
    "citation",
    ["(Hemoglobin 9.2)", "(Creatinine 1.4)", "(MCV 74)"],
)
def test_lab_literal_value_verifies(citation: str) -> None:
    check = verify_citation(citation, chart_snapshot())
    assert check.verified is True
    assert check.matched_source.startswith("Lab:")


def test_lab_value_only_match_is_partial() -> None:
    check = verify_citation("(Hgb 9.2, Dec 2)", chart_snapshot())
    assert check.verified is True
    assert check.matched_source == "Lab: Hemoglobin: 9.2 g/dL"


def test_lab_name_and_date_match_includes_date() -> None:
    check = verify_citation("(creatinine rising, Dec 2)", chart_snapshot())
    assert check.verified is True
    assert check.matched_source == "Lab: Creatinine: 1.4 mg/dL (2025-12-02)"


def test_lab_name_with_wrong_day_does_not_verify() -> None:
    check = verify_citation("(creatinine rising, Dec 20)", chart_snapshot())
    assert check.verified is False


def test_medication_match_with_status() -> None:
    check = verify_citation("(warfarin on_hold, cardiology)", chart_snapshot())
    assert check.verified is True
    assert check.matched_source == "Med: warfarin 5 mg (on_hold)"


def test_medication_name_only_still_verifies() -> None:
    check = verify_citation("(metoprolol, Dec 5)", chart_snapshot())
    assert check.verified is True
    assert check.matched_source == "Med: metoprolol 25 mg"


def test_diagnosis_abbreviation_with_specialty() -> None:
    check = verify_citation("(AFib, dx: cardiology)", chart_snapshot())
    assert check.verified is True
    assert check.matched_source == "Dx: Atrial fibrillation (cardiology)"


def test_diagnosis_abbreviation_name_only() -> None:
    check = verify_citation("(HTN, active)", chart_snapshot())
    assert check.verified is True
    assert check.matched_source == "Dx: Essential hypertension"


def test_ruled_out_diagnosis_does_not_verify() -> None:
    check = verify_citation("(pulmonary embolism, dx: pulm)", chart_snapshot())
    assert check.verified is False
    assert check.matched_source is None


def test_vitals_blood_pressure_match() -> None:
    check = verify_citation("(BP 142/88, Dec 3)", chart_snapshot())
    assert check.verified is True
    assert check.matched_source == "Vitals: 2025-12-03"


def test_unmatched_citation_is_unverified() -> None:
    check = verify_citation("(troponin elevated, Dec 9)", chart_snapshot())
    assert check.verified is False
    assert check.matched_source is None


def test_bracket_citation_matches_known_document_page() -> None:
    snap = _with_documents()
    ok = verify_citation("[Cardiology Consult p.3]", snap)
    assert ok.verified is True
    assert ok.matched_source == "Doc: Cardiology Consult.pdf p.3"
    out_of_range = verify_citation("[Cardiology Consult p.9]", snap)
    assert out_of_range.verified is False


def test_no_citations_is_all_verified() -> None:
    text = "Patient reports feeling better and is ambulating without assistance."
    result = validate_insight_citations(text, chart_snapshot())
    assert result.all_verified is True
    assert result.validated == result.original == text
    assert result.citations == []


def test_empty_insight() -> None:
    result = validate_insight_citations("", chart_snapshot())
    assert result.all_verified is True
    assert result.validated == ""


def test_unverified_citation_is_annotated_in_place() -> None:
    text = "Troponin rose (troponin elevated, Dec 9) while Hgb fell (Hgb 9.2, Dec 2)."
    result = validate_insight_citations(text, chart_snapshot())
    assert result.all_verified is False
    assert result.validated == (
        "Troponin rose (troponin elevated, Dec 9) [unverified] while Hgb fell (Hgb 9.2, Dec 2)."
    )
    assert [c.verified for c in result.citations] == [False, True]


def test_duplicate_unverified_citations_annotated_per_occurrence() -> None:
    text = "A (troponin elevated, Dec 9); B (troponin elevated, Dec 9)."
    result = validate_insight_citations(text, chart_snapshot())
    assert result.validated.count(UNVERIFIED_SUFFIX) == 2
    assert result.validated == (
        "A (troponin elevated, Dec 9) [unverified]; B (troponin elevated, Dec 9) [unverified]."
    )


def test_filter_mode_is_subset_of_verified_mark_entries() -> None:
    snap = chart_snapshot()
    insights = [
        "Anemia persists (Hgb 9.2, Dec 2).",
        "Troponin trend (troponin elevated, Dec 9) needs review.",
        "No citation here.",
        "Warfarin held (warfarin on_hold, cardiology).",
    ]
    filtered = validate_clinical_insights(insights, snap, "filter")
    marked = validate_clinical_insights(insights, snap, "mark")
    assert filtered == [insights[0], insights[2], insights[3]]
    assert len(marked) == len(insights)
    fully_verified_marked = [m for m in marked if UNVERIFIED_SUFFIX not in m]
    assert set(filtered) <= set(fully_verified_marked)
    assert marked[1].endswith("(troponin elevated, Dec 9) [unverified] needs review.")


def test_default_mode_is_mark() -> None:
    insights = ["Troponin (troponin elevated, Dec 9)."]
    assert validate_clinical_insights(insights, chart_snapshot()) == [
        "Troponin (troponin elevated, Dec 9) [unverified]."
    ]


def test_unknown_mode_raises() -> None:
    with pytest.raises(ValueError):
        validate_clinical_insights(["x"], chart_snapshot(), "drop")


def test_validation_summary_counts() -> None:
    insights = [
        "Anemia (Hgb 9.2, Dec 2) and rhythm (AFib, dx: cardiology).",
        "Troponin (troponin elevated, Dec 9).",
        "Plain sentence.",
    ]
    summary = get_validation_summary(insights, chart_snapshot())
    assert summary.total == 3
    assert summary.verified == 2
    assert summary.unverified == 1
    assert len(summary.details) == 3
    assert summary.details[2].all_verified is True


def test_missing_snapshot_fails_fast() -> None:
    with pytest.raises(TypeError):
        verify_citation("(Hgb 9.2, Dec 2)", None)
    with pytest.raises(TypeError):
        validate_insight_citations("text", None)


def test_empty_snapshot_never_verifies_and_never_raises() -> None:
    result = validate_insight_citations("Anemia (Hgb 9.2, Dec 2).", StructuredSnapshot())
    assert result.all_verified is False
    assert result.validated == "Anemia (Hgb 9.2, Dec 2) [unverified]."


def test_plain_dict_snapshot_is_accepted() -> None:
    payload = {
        "labs": [{"name": "eGFR", "value": 45, "unit": "mL/min", "collected_at": "2025-12-02T08:00:00Z"}],
    }
    check = verify_citation("(eGFR 45, Dec 2)", payload)
    assert check.verified is True
    assert check.matched_source == "Lab: eGFR: 45 mL/min (2025-12-02)"


def test_ordinal_day_citations_are_extracted_and_checked() -> None:
    text = "Anemia (troponin 4.1, Dec 2nd) noted."
    assert extract_citations(text) == ["(troponin 4.1, Dec 2nd)"]
    result = validate_insight_citations(text, chart_snapshot())
    assert result.all_verified is False
    assert result.validated == "Anemia (troponin 4.1, Dec 2nd) [unverified] noted."
    assert validate_clinical_insights([text], chart_snapshot(), "filter") == []


def test_lab_date_match_accepts_ordinal_day() -> None:
    check = verify_citation("(creatinine rising, Dec 2nd)", chart_snapshot())
    assert check.matched_source == "Lab: Creatinine: 1.4 mg/dL (2025-12-02)"
    assert verify_citation("(creatinine rising, Dec 20th)", chart_snapshot()).verified is False


def test_lab_date_uses_recorded_local_day() -> None:
    payload = {
        "labs": [
            {"name": "Creatinine", "value": 1.4, "unit": "mg/dL", "collected_at": "2025-12-02T23:30:00-08:00"},
        ],
    }
    check = verify_citation("(creatinine rising, Dec 2)", payload)
    assert check.matched_source == "Lab: Creatinine: 1.4 mg/dL (2025-12-02)"
