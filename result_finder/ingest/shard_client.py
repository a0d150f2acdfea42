"""Client for the sharded result workers.

Each shard answers ``GET <endpoint>?identifier=..&year=..&semester=..&examSession=..``
with a JSON array of records. Anything else, including transport failures, is
converted into a placeholder batch of error records covering the block of
identifiers the shard was expected to return, so callers never have to
special-case an unreachable shard.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, List, Optional

import requests

from ..config import EngineConfig
from ..errors import ShardUnavailable, UnexpectedFault
from ..records import SUFFIX_LENGTH, Query, Record


logger = logging.getLogger(__name__)

ShardBatch = List[Record]


def placeholder_identifiers(base_identifier: str, count: int) -> List[str]:
    """Identifiers of the ``count`` roll numbers starting at ``base_identifier``.

    The trailing three digits are incremented and zero-padded; a non-numeric
    tail counts from zero.
    """

    prefix = base_identifier[:-SUFFIX_LENGTH]
    tail = base_identifier[-SUFFIX_LENGTH:]
    base_number = int(tail) if tail.isdigit() else 0
    return [f"{prefix}{str(base_number + offset).zfill(SUFFIX_LENGTH)}" for offset in range(count)]


def _error_reason(response: requests.Response, shard_key: str) -> str:
    fallback = f"Shard {shard_key} request failed: {response.status_code}"
    try:
        body = response.json()
    except ValueError:
        return fallback

    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    if isinstance(body, list) and body and isinstance(body[0], dict) and body[0].get("reason"):
        return str(body[0]["reason"])
    return fallback


@dataclass
class ShardClient:
    """Fetch one batch of records from one named shard.

    ``fetch`` only raises for faults inside the engine itself, such as a shard
    key with no configured endpoint. Network errors, non-2xx answers, and
    malformed bodies all come back as placeholder error records.
    """

    config: EngineConfig
    retry_attempts: int = 1
    backoff_seconds: float = 1.0
    session: requests.Session = field(default_factory=requests.Session)

    def __post_init__(self) -> None:
        self.session.headers.update(
            {
                "Accept": "application/json",
                "User-Agent": self.config.user_agent,
            }
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def fetch(self, shard_key: str, query: Query) -> ShardBatch:
        url = self._endpoint(shard_key)
        logger.info(
            "shard.fetch.start",
            extra={"shard": shard_key, "identifier": query.identifier},
        )

        try:
            payload = self._request_with_retry(shard_key, url, query)
        except ShardUnavailable as exc:
            logger.warning(
                "shard.fetch.failed",
                extra={"shard": shard_key, "identifier": query.identifier, "error": str(exc)},
            )
            return self.degraded_batch(query, str(exc))

        batch = [Record.from_wire(item) for item in payload]
        logger.info(
            "shard.fetch.complete",
            extra={"shard": shard_key, "records": len(batch)},
        )
        return batch

    def degraded_batch(self, query: Query, reason: str) -> ShardBatch:
        """Placeholder error records standing in for an unreachable shard."""

        return [
            Record.error(identifier, reason)
            for identifier in placeholder_identifiers(query.identifier, self.config.batch_size)
        ]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _endpoint(self, shard_key: str) -> str:
        try:
            return self.config.shard_endpoints[shard_key]
        except KeyError:
            logger.error("shard.misconfigured", extra={"shard": shard_key})
            raise UnexpectedFault(f"No endpoint configured for shard {shard_key!r}") from None

    def _request_with_retry(self, shard_key: str, url: str, query: Query) -> List[Any]:
        last_error: Optional[ShardUnavailable] = None
        for attempt in range(1, self.retry_attempts + 1):
            try:
                return self._request(shard_key, url, query, attempt)
            except ShardUnavailable as exc:
                last_error = exc
                if attempt >= self.retry_attempts:
                    break
                sleep_for = self.backoff_seconds * attempt
                logger.warning(
                    "shard.fetch.retry",
                    extra={"shard": shard_key, "attempt": attempt, "sleep_for": sleep_for},
                )
                time.sleep(sleep_for)

        if last_error is None:
            raise UnexpectedFault("ShardClient.retry_attempts must be at least 1")
        raise last_error

    def _request(self, shard_key: str, url: str, query: Query, attempt: int) -> List[Any]:
        try:
            response = self.session.get(url, params=query.to_params(), timeout=self.config.request_timeout)
        except requests.RequestException as exc:
            raise ShardUnavailable(f"Shard {shard_key} request failed: {exc}") from exc

        logger.info(
            "shard.request",
            extra={"shard": shard_key, "status_code": response.status_code, "attempt": attempt},
        )
        if not 200 <= response.status_code < 300:
            raise ShardUnavailable(_error_reason(response, shard_key))

        try:
            body = response.json()
        except ValueError as exc:
            raise ShardUnavailable(f"Shard {shard_key} returned invalid data format.") from exc

        if not isinstance(body, list) or not all(isinstance(item, dict) for item in body):
            raise ShardUnavailable(f"Shard {shard_key} returned invalid data format.")
        return body
