"""Summary table projection of a search snapshot.

Document export (PDF, spreadsheets) lives outside the engine; it consumes the
rows and headings produced here and never looks at search state directly.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from ..ingest import ExamDescriptor
from ..records import Record, RecordStatus, roman_to_semester
from ..state import Snapshot


MISSING = "N/A"
COLUMNS = ("Reg No", "Name", "SGPA", "CGPA", "Result")

Row = Tuple[str, str, str, str, str]


def _field(payload: Dict[str, Any], key: str) -> str:
    value = payload.get(key)
    if value is None or value == "":
        return MISSING
    return str(value)


def _current_sgpa(payload: Dict[str, Any]) -> str:
    """SGPA for the semester the payload itself reports."""

    semester = roman_to_semester(payload.get("semester"))
    sgpa = payload.get("sgpa")
    if semester <= 0 or not isinstance(sgpa, list) or len(sgpa) < semester:
        return MISSING
    value = sgpa[semester - 1]
    return MISSING if value is None else str(value)


@dataclass(frozen=True)
class RosterReport:
    """Export-ready view of the successful records of one search."""

    target: Optional[Record]
    records: Tuple[Record, ...]
    exam: Optional[ExamDescriptor] = None

    @classmethod
    def from_snapshot(cls, snapshot: Snapshot, exam: Optional[ExamDescriptor] = None) -> "RosterReport":
        successful = tuple(
            record for record in snapshot.roster if record.status is RecordStatus.SUCCESS
        )
        return cls(target=snapshot.target, records=successful, exam=exam)

    @property
    def has_rows(self) -> bool:
        return bool(self.records)

    @property
    def columns(self) -> Tuple[str, ...]:
        return COLUMNS

    @property
    def title(self) -> str:
        return f"Results - {self.exam.name if self.exam and self.exam.name else 'Exam'}"

    @property
    def subtitle(self) -> str:
        session = (self.exam.session if self.exam else None) or MISSING
        held = (self.exam.exam_session_label if self.exam else None) or MISSING
        return f"Session: {session} | Exam Held: {held}"

    @property
    def file_stem(self) -> str:
        semester = self.exam.semester_ordinal if self.exam else "Sem"
        year = self.exam.identifier_year if self.exam and self.exam.identifier_year else "Year"
        return f"Results_{semester}_{year}_Summary"

    def rows(self) -> List[Row]:
        rows: List[Row] = []
        for record in self.records:
            payload = record.payload or {}
            rows.append(
                (
                    record.identifier,
                    _field(payload, "name"),
                    _current_sgpa(payload),
                    _field(payload, "cgpa"),
                    _field(payload, "fail_any"),
                )
            )
        return rows

    def target_detail(self) -> Optional[Dict[str, Any]]:
        """Full payload of the searched-for examinee, when it resolved successfully."""

        if self.target is None or self.target.status is not RecordStatus.SUCCESS:
            return None
        return self.target.payload
