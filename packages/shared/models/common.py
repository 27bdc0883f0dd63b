import re
from datetime import date, datetime, time, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

_BRACKET_CITATION_RE = re.compile(r"^\[\s*(?P<doc>.+?)\s*,?\s+p(?:age|g)?\.?\s*(?P<page>\d+)\s*\]$", re.IGNORECASE)


def ensure_utc(value: Any) -> Any:
    """Coerce dates and ISO strings to timezone-aware datetimes. Naive values are taken as UTC."""
    if value is None:
        return None
    if isinstance(value, str):
        raw = value.strip()
        if not raw:
            return None
        value = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    if isinstance(value, date) and not isinstance(value, datetime):
        value = datetime.combine(value, time.min)
    if isinstance(value, datetime) and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class Citation(BaseModel):
    """A bracket-form document reference such as ``[Cardiology Consult p.3]``."""
    model_config = ConfigDict(frozen=True)

    doc_name: str
    page: int = Field(ge=1)


def parse_bracket_citation(raw: str) -> Optional[Citation]:
    m = _BRACKET_CITATION_RE.match((raw or "").strip())
    if not m:
        return None
    page = int(m.group("page"))
    if page < 1:
        return None
    return Citation(doc_name=m.group("doc"), page=page)
