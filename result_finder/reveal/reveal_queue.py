"""Paced, one-record-at-a-time disclosure of fetched records.

The queue owns only its backlog and counters. The visible roster is passed in
and a new roster is handed back on every reveal, so the orchestrator stays the
sole owner of search state. Pacing is cooperative: ``pump`` reveals whatever
has come due since the last call and never sleeps, while ``drain`` sleeps out
the cadence between reveals (or not at all when ``paced=False``).
"""

from __future__ import annotations

import logging
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Deque, Iterable, List, Optional, Sequence, Tuple

from ..config import EngineConfig
from ..merging import RecordMerger
from ..records import Record
from ..state import Progress


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RevealStep:
    record: Record
    roster: List[Record]


@dataclass
class RevealQueue:
    """Backlog of records waiting to be shown, revealed at a fixed cadence."""

    config: EngineConfig
    merger: RecordMerger = field(default_factory=RecordMerger)
    clock: Callable[[], float] = time.monotonic
    sleep: Callable[[float], None] = time.sleep
    _backlog: Deque[Record] = field(default_factory=deque, init=False, repr=False)
    _revealed: int = field(default=0, init=False)
    _total: int = field(default=0, init=False)
    _next_due: Optional[float] = field(default=None, init=False)

    @property
    def cadence(self) -> float:
        return self.config.reveal_cadence_seconds

    @property
    def pending(self) -> Tuple[Record, ...]:
        return tuple(self._backlog)

    @property
    def progress(self) -> Progress:
        return Progress(revealed=self._revealed, total=self._total)

    def __len__(self) -> int:
        return len(self._backlog)

    def enqueue(self, batch: Iterable[Record]) -> int:
        """Append a batch to the backlog and return how many records were added."""

        records = list(batch)
        if not records:
            return 0
        if not self._backlog:
            self._next_due = self.clock() + self.cadence
        self._backlog.extend(records)
        # Recomputed from what is actually outstanding so percent stays <= 100.
        self._total = self._revealed + len(self._backlog)
        logger.info(
            "reveal.enqueue",
            extra={"added": len(records), "pending": len(self._backlog), "total": self._total},
        )
        return len(records)

    def tick(
        self, roster: Sequence[Record], target_identifier: Optional[str] = None
    ) -> Optional[RevealStep]:
        """Reveal exactly one record, or return ``None`` when nothing is pending."""

        if not self._backlog:
            return None
        record = self._backlog.popleft()
        self._revealed += 1
        merged = self.merger.merge(roster, [record], target_identifier=target_identifier)
        logger.debug(
            "reveal.tick",
            extra={"identifier": record.identifier, "revealed": self._revealed, "total": self._total},
        )
        if not self._backlog:
            self._next_due = None
        return RevealStep(record=record, roster=merged)

    def pump(
        self,
        roster: Sequence[Record],
        target_identifier: Optional[str] = None,
        on_reveal: Optional[Callable[[RevealStep], None]] = None,
        should_continue: Optional[Callable[[], bool]] = None,
    ) -> List[Record]:
        """Reveal every record whose slot has come due, without waiting."""

        current = list(roster)
        now = self.clock()
        while self._backlog and self._next_due is not None and now >= self._next_due:
            if should_continue is not None and not should_continue():
                break
            due = self._next_due
            step = self.tick(current, target_identifier)
            current = step.roster
            if self._backlog:
                self._next_due = due + self.cadence
            if on_reveal is not None:
                on_reveal(step)
        return current

    def drain(
        self,
        roster: Sequence[Record],
        target_identifier: Optional[str] = None,
        paced: bool = True,
        on_reveal: Optional[Callable[[RevealStep], None]] = None,
        should_continue: Optional[Callable[[], bool]] = None,
    ) -> List[Record]:
        """Reveal the whole backlog, sleeping out the cadence when ``paced``.

        ``should_continue`` is consulted before each reveal; returning ``False``
        stops the drain and leaves the rest of the backlog in place.
        """

        current = list(roster)
        while self._backlog:
            if should_continue is not None and not should_continue():
                logger.info("reveal.drain.interrupted", extra={"pending": len(self._backlog)})
                return current
            if paced and self._next_due is not None:
                wait = self._next_due - self.clock()
                if wait > 0:
                    self.sleep(wait)
                self._next_due += self.cadence
            step = self.tick(current, target_identifier)
            current = step.roster
            if on_reveal is not None:
                on_reveal(step)

        logger.info("reveal.drain.complete", extra={"revealed": self._revealed})
        return current

    def reset(self) -> None:
        """Discard the backlog unrevealed and zero the counters."""

        if self._backlog:
            logger.info("reveal.reset", extra={"discarded": len(self._backlog)})
        self._backlog.clear()
        self._revealed = 0
        self._total = 0
        self._next_due = None
