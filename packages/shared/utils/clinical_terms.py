from __future__ import annotations

import re
from typing import Iterable, Iterator

SHORT_TOKEN_MAX_LEN = 3


class TermTable:
    """Canonical term -> synonym set, matched case-insensitively against free text.

    Synonyms are substring matches. With ``short_token_boundary`` set, synonyms of
    three characters or fewer must stand as whole words ("tia" must not hit "dementia").
    """

    def __init__(
        self,
        entries: dict[str, Iterable[str]] | None = None,
        *,
        short_token_boundary: bool = False,
    ) -> None:
        self.short_token_boundary = short_token_boundary
        self._entries: dict[str, set[str]] = {}
        self._patterns: dict[str, re.Pattern[str]] = {}
        for canonical, synonyms in (entries or {}).items():
            self.register(canonical, *synonyms)

    def register(self, canonical: str, *synonyms: str) -> None:
        key = canonical.strip().lower()
        if not key:
            raise ValueError("canonical term must be non-empty")
        bucket = self._entries.setdefault(key, set())
        for syn in synonyms:
            s = (syn or "").strip().lower()
            if s:
                bucket.add(s)
        self._patterns.pop(key, None)

    def terms(self, canonical: str) -> frozenset[str]:
        return frozenset(self._entries.get(canonical.strip().lower(), ()))

    def matches(self, text: str | None, canonical: str) -> bool:
        return bool(self.matched_terms(text, canonical))

    def matched_terms(self, text: str | None, canonical: str) -> list[str]:
        low = (text or "").lower()
        if not low:
            return []
        key = canonical.strip().lower()
        if key not in self._entries:
            return []
        if not self.short_token_boundary:
            return sorted(t for t in self._entries[key] if t in low)
        pattern = self._pattern_for(key)
        return sorted({m.group(0) for m in pattern.finditer(low)})

    def canonicals_within(self, text: str | None) -> list[str]:
        """Canonical keys that occur verbatim in ``text``."""
        low = (text or "").lower()
        return [key for key in self._entries if key in low]

    def copy(self) -> "TermTable":
        return TermTable(self._entries, short_token_boundary=self.short_token_boundary)

    def __contains__(self, canonical: object) -> bool:
        return isinstance(canonical, str) and canonical.strip().lower() in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def _pattern_for(self, key: str) -> re.Pattern[str]:
        pattern = self._patterns.get(key)
        if pattern is None:
            alts = []
            for term in sorted(self._entries[key], key=len, reverse=True):
                esc = re.escape(term)
                alts.append(rf"\b{esc}\b" if len(term) <= SHORT_TOKEN_MAX_LEN else esc)
            pattern = re.compile("|".join(alts) or r"(?!x)x")
            self._patterns[key] = pattern
        return pattern


# Diagnosis name fragment -> abbreviations a citation may use for it.
DIAGNOSIS_ABBREVIATIONS = TermTable(
    {
        "atrial fibrillation": ["afib", "a-fib", "af"],
        "diabetes": ["dm", "dm2", "diabetes"],
        "hypertension": ["htn", "hypertension"],
        "coronary artery disease": ["cad", "coronary"],
    }
)

DRUG_FAMILIES = TermTable(
    {
        "diuretic": ["furosemide", "lasix", "hydrochlorothiazide", "hctz"],
        "furosemide": ["furosemide", "lasix"],
        "nsaid": ["ibuprofen", "naproxen", "meloxicam", "nsaid"],
        "glp1_agonist": ["semaglutide", "ozempic", "wegovy", "mounjaro", "tirzepatide"],
        "anticoagulant": [
            "warfarin",
            "coumadin",
            "apixaban",
            "eliquis",
            "rivaroxaban",
            "xarelto",
            "dabigatran",
            "pradaxa",
        ],
    }
)

CONDITION_TERMS = TermTable(
    {
        "heart failure": ["heart failure"],
        "diabetes": ["diabetes"],
        "chronic kidney disease": ["chronic kidney"],
        "atrial fibrillation": ["atrial fibrillation", "afib"],
        "hypertension": ["hypertension"],
        "stroke": ["stroke", "tia"],
        "vascular disease": ["coronary", "pad", "vascular"],
        "weight loss": ["weight loss"],
        "gi bleeding": ["bleeding", "hematochezia", "melena", "gi bleed", "rectal bleeding"],
    },
    short_token_boundary=True,
)

# Condition -> ICD-10 code prefixes.
ICD_PREFIXES = TermTable(
    {
        "heart failure": ["I50"],
        "diabetes": ["E11"],
        "chronic kidney disease": ["N18"],
        "atrial fibrillation": ["I48"],
    }
)

# Canonical lab name -> exact names the same test is reported under.
LAB_ALIASES = TermTable(
    {
        "egfr": ["egfr", "gfr, estimated", "estimated gfr"],
        "a1c": ["a1c", "hba1c", "hemoglobin a1c", "glycated hemoglobin"],
        "hemoglobin": ["hemoglobin", "hgb", "hb"],
        "mcv": ["mcv", "mean corpuscular volume"],
        "ferritin": ["ferritin", "serum ferritin"],
    }
)
