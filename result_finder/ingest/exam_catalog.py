"""Lookup of the published exams a search can be scoped to."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

import requests

from ..config import EngineConfig
from ..errors import CatalogUnavailable


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExamDescriptor:
    """One published exam of the configured course."""

    exam_id: str
    name: str
    identifier_year: str
    semester_ordinal: int
    exam_session_label: str
    session: Optional[str] = None
    publish_date: Optional[str] = None

    @classmethod
    def from_wire(cls, raw: dict) -> "ExamDescriptor":
        try:
            semester = int(raw.get("semId") or 0)
        except (TypeError, ValueError):
            semester = 0
        return cls(
            exam_id=str(raw.get("id", "")),
            name=raw.get("examName") or "",
            identifier_year=str(raw.get("batchYear") or ""),
            semester_ordinal=semester,
            exam_session_label=raw.get("examHeld") or "",
            session=raw.get("session"),
            publish_date=raw.get("publishDate"),
        )


@dataclass
class ExamCatalog:
    """Client for the university's exam list endpoint."""

    config: EngineConfig
    session: requests.Session = field(default_factory=requests.Session)

    def fetch_exams(self) -> List[ExamDescriptor]:
        """Return the configured course's exams, latest semester first.

        Raises:
            CatalogUnavailable: the list could not be fetched or does not
                contain the configured course.
        """

        url = self.config.exam_list_url
        logger.info("catalog.fetch.start", extra={"url": url, "course": self.config.course_name})
        try:
            response = self.session.get(url, timeout=self.config.request_timeout)
            response.raise_for_status()
            courses = response.json()
        except requests.RequestException as exc:
            logger.error("catalog.fetch.failed", extra={"url": url, "error": str(exc)})
            raise CatalogUnavailable(f"Could not load exam list: {exc}") from exc
        except ValueError as exc:
            raise CatalogUnavailable("Exam list response is not valid JSON.") from exc

        if not isinstance(courses, list):
            raise CatalogUnavailable("Exam list response has an unexpected format.")

        course = next(
            (
                entry
                for entry in courses
                if isinstance(entry, dict) and entry.get("courseName") == self.config.course_name
            ),
            None,
        )
        if not course or not course.get("exams"):
            raise CatalogUnavailable(f"{self.config.course_name} exams not found in exam list.")

        exams = [ExamDescriptor.from_wire(raw) for raw in course["exams"] if isinstance(raw, dict)]
        exams.sort(key=lambda exam: exam.name)
        exams.sort(key=lambda exam: exam.semester_ordinal, reverse=True)
        logger.info("catalog.fetch.complete", extra={"exams": len(exams)})
        return exams

    @staticmethod
    def find(exams: Iterable[ExamDescriptor], exam_id: str) -> Optional[ExamDescriptor]:
        return next((exam for exam in exams if exam.exam_id == str(exam_id)), None)
