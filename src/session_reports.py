"""
Session Reports - Summary, history and distribution tables for a session.

All values are derived on demand from the session snapshot passed in;
nothing is cached between calls.
"""
from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional, Sequence, Tuple

from bale_models import BaleRecord, Session
from frequency_analyzer import ID_FIELD, frequencies, duplicate_count, total_weight

REPORT_FIELD_ID = 'id'
REPORT_FIELD_VALUE1 = 'value1'
REPORT_FIELD_VALUE2 = 'value2'


@dataclass
class SessionSummary:
    """
    Progress figures for one session.

    Attributes:
        session_id: Session identifier
        name: Session display name
        mode: 'manual' or 'inventory'
        completed_count: Bales weighed so far
        total_count: Inventory size (inventory) or completed count (manual)
        progress_percent: Rounded completed/total percentage
        total_weight: Sum of recorded weights
        duplicate_count: Extra weighed entries for already weighed ids
        next_mill_bale: Number the next completed bale will receive
        last_scanned: Most recently completed bale, if any
    """
    session_id: str
    name: str
    mode: str
    completed_count: int
    total_count: int
    progress_percent: int
    total_weight: float
    duplicate_count: int
    next_mill_bale: int
    last_scanned: Optional[BaleRecord]

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['last_scanned'] = self.last_scanned.to_dict() if self.last_scanned else None
        return data


def summarize(session: Session) -> SessionSummary:
    completed = session.completed_bales
    total = len(completed) if session.is_manual else len(session.bales)
    progress = round(len(completed) / total * 100) if total > 0 else 0
    last = max(completed, key=lambda b: b.scanned_at or '', default=None)

    return SessionSummary(
        session_id=session.id,
        name=session.name,
        mode=session.mode,
        completed_count=len(completed),
        total_count=total,
        progress_percent=progress,
        total_weight=total_weight(session.bales),
        duplicate_count=duplicate_count(session.bales),
        next_mill_bale=session.config.current_mill_bale,
        last_scanned=last,
    )


def history(session: Session) -> List[BaleRecord]:
    """Completed bales, last processed (highest mill bale number) first."""
    return sorted(session.completed_bales, key=lambda b: b.mill_bale_number or 0, reverse=True)


def report_fields(session: Session) -> List[Tuple[str, str, str]]:
    """
    Fields available for the distribution report.

    Returns:
        (key, selector, label) triples; selector is passed to frequencies()
    """
    mapping = session.config.column_mapping
    fields = [(REPORT_FIELD_ID, ID_FIELD, mapping.search_column if mapping else 'Bale ID')]
    if mapping is not None:
        if mapping.value1:
            fields.append((REPORT_FIELD_VALUE1, mapping.value1, mapping.value1_name or mapping.value1))
        if mapping.value2:
            fields.append((REPORT_FIELD_VALUE2, mapping.value2, mapping.value2_name or mapping.value2))
    return fields


def frequency_report(session: Session, selected: Sequence[str] = (REPORT_FIELD_ID,)) -> Dict[str, Dict[str, Any]]:
    """
    Value distribution for each selected report field.

    Args:
        session: Session to analyze
        selected: Any of 'id', 'value1', 'value2'; unmapped fields are skipped

    Returns:
        {key: {"label": column label, "counts": [(value, count), ...]}}
        with counts ascending
    """
    report = {}
    for key, selector, label in report_fields(session):
        if key in selected:
            report[key] = {'label': label, 'counts': frequencies(session.bales, selector)}
    return report
