"""Shared fakes for the shard endpoints and the shard client."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

import pytest
import requests

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from result_finder.config import EngineConfig
from result_finder.errors import UnexpectedFault
from result_finder.records import Query, Record, RecordStatus


TARGET_ID = "22104134070"


class FakeResponse:
    """Just enough of :class:`requests.Response` for the clients."""

    def __init__(self, status_code: int = 200, body: object = None, text: Optional[str] = None) -> None:
        self.status_code = status_code
        self._body = body
        self._text = text
        self.url = "https://fake.invalid"

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400

    def json(self) -> object:
        if self._text is not None:
            raise ValueError("not json")
        return self._body

    def raise_for_status(self) -> None:
        if not self.ok:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)


class FakeSession:
    """Stands in for ``requests.Session``; answers are keyed by URL."""

    def __init__(self, answers: Dict[str, Union[FakeResponse, Exception]]) -> None:
        self.answers = answers
        self.headers: Dict[str, str] = {}
        self.calls: List[dict] = []

    def get(self, url: str, params: Optional[dict] = None, timeout: Optional[int] = None, **_: object):
        self.calls.append({"url": url, "params": params, "timeout": timeout})
        answer = self.answers[url]
        if isinstance(answer, Exception):
            raise answer
        return answer


Batch = Union[List[Record], Callable[[Query], List[Record]], Exception]


class FakeShardClient:
    """Programmable shard client recording the order of fetches."""

    def __init__(self, batches: Dict[str, Batch]) -> None:
        self.batches = batches
        self.calls: List[str] = []

    def fetch(self, shard_key: str, query: Query) -> List[Record]:
        self.calls.append(shard_key)
        if shard_key not in self.batches:
            raise UnexpectedFault(f"No endpoint configured for shard {shard_key!r}")
        batch = self.batches[shard_key]
        if isinstance(batch, Exception):
            raise batch
        if callable(batch):
            return list(batch(query))
        return list(batch)


def success(identifier: str, name: str = "Student") -> Record:
    return Record(
        identifier=identifier,
        status=RecordStatus.SUCCESS,
        payload={"name": name, "semester": "III", "sgpa": [7.1, 7.4, 8.0], "cgpa": 7.5, "fail_any": "PASS"},
    )


def error(identifier: str, reason: str = "timeout") -> Record:
    return Record.error(identifier, reason)


def block(start: int, count: int, prefix: str = "22104134") -> List[str]:
    return [f"{prefix}{str(number).zfill(3)}" for number in range(start, start + count)]


@pytest.fixture
def config() -> EngineConfig:
    return EngineConfig(
        shard_endpoints={
            "user": "https://user.invalid/api/result",
            "reg1": "https://reg1.invalid/api/result",
            "reg2": "https://reg2.invalid/api/result",
            "le": "https://le.invalid/api/result",
        },
        reveal_cadence_ms=0,
    )


@pytest.fixture
def query() -> Query:
    return Query(identifier=TARGET_ID, year="2022", semester_label="III", exam_session="Nov/2023")
