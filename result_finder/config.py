"""Explicit engine configuration.

Shard endpoints, batch size, and reveal cadence travel in one
:class:`EngineConfig` that is handed to every component at construction time.
``EngineConfig.from_env`` reads overrides from the process environment.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from .errors import ConfigurationError


DEFAULT_SHARD_ENDPOINTS: Dict[str, str] = {
    "user": "https://resulta-user.walla.workers.dev/api/result",
    "reg1": "https://resulta-reg1.walla.workers.dev/api/result",
    "reg2": "https://resulta-reg2.walla.workers.dev/api/result",
    "le": "https://resulta-le.walla.workers.dev/api/result",
}
DEFAULT_EXAM_LIST_URL = "https://beu-bih.ac.in/backend/v1/result/sem-get"
DEFAULT_USER_AGENT = "result-finder/0.1"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc


@dataclass
class EngineConfig:
    """Settings shared by the shard client, reveal queue, and orchestrator."""

    shard_endpoints: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_SHARD_ENDPOINTS))
    primary_shard: str = "user"
    mandatory_shards: Tuple[str, ...] = ("reg1", "reg2")
    optional_shard: Optional[str] = "le"
    # Roll-number suffixes served by the optional shard (inclusive).
    optional_shard_range: Tuple[int, int] = (900, 999)
    batch_size: int = 5
    reveal_cadence_ms: int = 150
    request_timeout: int = 30
    exam_list_url: str = DEFAULT_EXAM_LIST_URL
    course_name: str = "B.Tech"
    user_agent: str = DEFAULT_USER_AGENT

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """Build a configuration, letting ``RESULT_FINDER_*`` variables override defaults."""

        endpoints = dict(DEFAULT_SHARD_ENDPOINTS)
        for key in list(endpoints):
            override = os.getenv(f"RESULT_FINDER_SHARD_{key.upper()}")
            if override:
                endpoints[key] = override

        config = cls(
            shard_endpoints=endpoints,
            batch_size=_env_int("RESULT_FINDER_BATCH_SIZE", 5),
            reveal_cadence_ms=_env_int("RESULT_FINDER_REVEAL_CADENCE_MS", 150),
            request_timeout=_env_int("RESULT_FINDER_REQUEST_TIMEOUT", 30),
            exam_list_url=os.getenv("RESULT_FINDER_EXAM_LIST_URL", DEFAULT_EXAM_LIST_URL),
            user_agent=os.getenv("RESULT_FINDER_USER_AGENT", DEFAULT_USER_AGENT),
        )
        config.validate()
        return config

    @property
    def reveal_cadence_seconds(self) -> float:
        return self.reveal_cadence_ms / 1000.0

    def validate(self) -> None:
        if self.batch_size <= 0:
            raise ConfigurationError(f"batch_size must be positive, got {self.batch_size}")
        if self.reveal_cadence_ms < 0:
            raise ConfigurationError(
                f"reveal_cadence_ms must not be negative, got {self.reveal_cadence_ms}"
            )
        low, high = self.optional_shard_range
        if low > high:
            raise ConfigurationError(f"optional_shard_range is empty: {self.optional_shard_range}")

        required = [self.primary_shard, *self.mandatory_shards]
        if self.optional_shard:
            required.append(self.optional_shard)
        missing = [key for key in required if key not in self.shard_endpoints]
        if missing:
            raise ConfigurationError(f"No endpoint configured for shard(s): {', '.join(missing)}")
