"""Mutable per-search state and the immutable snapshots handed to observers."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Set, Tuple

from ..records import Query, Record


class Phase(str, Enum):
    IDLE = "Idle"
    RESOLVING_TARGET = "ResolvingTarget"
    TARGET_RESOLVED = "TargetResolved"
    WALKING_MANDATORY_SHARDS = "WalkingMandatoryShards"
    AWAITING_OPTIONAL_SHARD = "AwaitingOptionalShard"
    DRAINING = "Draining"
    DONE = "Done"
    FAILED = "Failed"


@dataclass(frozen=True)
class Progress:
    """Reveal progress; ``percent`` is an integer in ``0..100``."""

    revealed: int = 0
    total: int = 0

    @property
    def percent(self) -> int:
        if self.total <= 0:
            return 0
        return min(100, (self.revealed * 100) // self.total)


@dataclass(frozen=True)
class Snapshot:
    """Read-only view of a search published after every mutation."""

    target: Optional[Record]
    roster: Tuple[Record, ...]
    failed_identifiers: Tuple[str, ...]
    progress: Progress
    phase: Phase
    optional_shard_offered: bool = False
    message: Optional[str] = None

    @property
    def retry_available(self) -> bool:
        return bool(self.failed_identifiers) and self.phase in (
            Phase.AWAITING_OPTIONAL_SHARD,
            Phase.DONE,
        )


@dataclass
class AggregationState:
    """Everything one search knows.

    ``fetched`` holds every merged record as soon as its batch arrives, while
    ``roster`` only holds the records the reveal queue has surfaced so far.
    ``generation`` changes on every fresh submission so late answers from an
    abandoned search can be recognised.
    """

    query: Optional[Query] = None
    generation: int = 0
    phase: Phase = Phase.IDLE
    target: Optional[Record] = None
    fetched: List[Record] = field(default_factory=list)
    roster: List[Record] = field(default_factory=list)
    pending: Tuple[Record, ...] = ()
    failed_identifiers: Set[str] = field(default_factory=set)
    progress: Progress = field(default_factory=Progress)
    optional_shard_offered: bool = False
    message: Optional[str] = None

    def fetched_by_identifier(self) -> Dict[str, Record]:
        return {record.identifier: record for record in self.fetched}

    def snapshot(self) -> Snapshot:
        return Snapshot(
            target=self.target,
            roster=tuple(self.roster),
            failed_identifiers=tuple(sorted(self.failed_identifiers)),
            progress=self.progress,
            phase=self.phase,
            optional_shard_offered=self.optional_shard_offered,
            message=self.message,
        )
