"""Record, status, and query types shared by every stage of the engine.

Shards speak JSON; this module is the only place that knows how a wire record
maps onto the engine's :class:`Record`. Both the documented field names
(``identifier``/``payload``) and the legacy names emitted by the deployed
workers (``regNo``/``data``) are accepted.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from .errors import ValidationError


IDENTIFIER_PATTERN = re.compile(r"^\d{11}$")
SUFFIX_LENGTH = 3

_ROMAN_BY_ORDINAL = {1: "I", 2: "II", 3: "III", 4: "IV", 5: "V", 6: "VI", 7: "VII", 8: "VIII"}
_ORDINAL_BY_ROMAN = {roman: ordinal for ordinal, roman in _ROMAN_BY_ORDINAL.items()}


class RecordStatus(str, Enum):
    """Outcome of one examinee lookup."""

    SUCCESS = "Success"
    NOT_FOUND = "NotFound"
    RECORD_NOT_FOUND = "RecordNotFound"
    ERROR = "Error"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, raw: Any) -> "RecordStatus":
        if not isinstance(raw, str):
            return cls.UNKNOWN
        key = re.sub(r"[\s_-]+", "", raw).lower()
        return _STATUS_ALIASES.get(key, cls.UNKNOWN)


_STATUS_ALIASES = {
    "success": RecordStatus.SUCCESS,
    "notfound": RecordStatus.NOT_FOUND,
    "notfoundinbatch": RecordStatus.NOT_FOUND,
    "recordnotfound": RecordStatus.RECORD_NOT_FOUND,
    "error": RecordStatus.ERROR,
}


def is_valid_identifier(identifier: Optional[str]) -> bool:
    """Return ``True`` for a fixed-length numeric registration number."""

    return bool(identifier) and IDENTIFIER_PATTERN.match(identifier) is not None


def identifier_suffix(identifier: str) -> Optional[int]:
    """Numeric value of the trailing roll-number digits, if there is one."""

    tail = identifier[-SUFFIX_LENGTH:]
    return int(tail) if tail.isdigit() else None


def semester_to_roman(ordinal: int) -> str:
    return _ROMAN_BY_ORDINAL.get(ordinal, "")


def roman_to_semester(roman: Optional[str]) -> int:
    if not roman:
        return 0
    return _ORDINAL_BY_ROMAN.get(roman.strip().upper(), 0)


@dataclass(frozen=True)
class Record:
    """One examinee's outcome for one query.

    ``payload`` is only carried for successful records and ``reason`` only for
    errors; the engine never looks inside the payload.
    """

    identifier: str
    status: RecordStatus
    payload: Optional[Dict[str, Any]] = field(default=None, hash=False)
    reason: Optional[str] = None

    def __post_init__(self) -> None:
        if self.status is not RecordStatus.SUCCESS and self.payload is not None:
            object.__setattr__(self, "payload", None)
        if self.status is not RecordStatus.ERROR and self.reason is not None:
            object.__setattr__(self, "reason", None)

    @property
    def is_error(self) -> bool:
        return self.status is RecordStatus.ERROR

    @classmethod
    def error(cls, identifier: str, reason: str) -> "Record":
        return cls(identifier=identifier, status=RecordStatus.ERROR, reason=reason)

    @classmethod
    def from_wire(cls, raw: Dict[str, Any]) -> "Record":
        """Map a shard JSON object onto a record.

        Objects without an identifier are kept under ``"Unknown"`` so that they
        sort with the malformed entries instead of being silently dropped.
        """

        identifier = raw.get("identifier") or raw.get("regNo") or "Unknown"
        status = RecordStatus.parse(raw.get("status"))
        payload = raw.get("payload", raw.get("data"))
        if not isinstance(payload, dict):
            payload = None
        reason = raw.get("reason")
        if status is RecordStatus.ERROR and not reason:
            reason = "Unspecified error"
        return cls(identifier=str(identifier), status=status, payload=payload, reason=reason)


@dataclass(frozen=True)
class Query:
    """Immutable search coordinates, reused verbatim for retries."""

    identifier: str
    year: str
    semester_label: str
    exam_session: str

    @classmethod
    def from_exam(cls, identifier: str, exam: Any) -> "Query":
        """Build a query from an :class:`~result_finder.ingest.ExamDescriptor`."""

        return cls(
            identifier=identifier.strip(),
            year=str(exam.identifier_year),
            semester_label=semester_to_roman(exam.semester_ordinal),
            exam_session=exam.exam_session_label,
        )

    def validate(self) -> None:
        if not is_valid_identifier(self.identifier):
            raise ValidationError(
                f"Invalid registration number {self.identifier!r}: expected 11 digits."
            )
        if not (self.year and self.semester_label and self.exam_session):
            raise ValidationError("Please select an exam before searching.")
        if roman_to_semester(self.semester_label) == 0:
            raise ValidationError(f"Unknown semester {self.semester_label!r}.")

    def to_params(self) -> Dict[str, str]:
        return {
            "identifier": self.identifier,
            "year": self.year,
            "semester": self.semester_label,
            "examSession": self.exam_session,
        }
