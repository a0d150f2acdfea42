"""End-to-end search coordinator.

A search resolves the requested registration number from the primary shard
first and publishes it straight away, then walks the mandatory shards one at a
time. Every batch is merged, checked for per-record errors, and handed to the
reveal queue so the class roster fills in while later shards are still being
fetched. The optional shard is only fetched when the caller accepts it.

All state lives in one :class:`AggregationState` owned by the orchestrator.
Each fresh submission (and each retry) bumps ``generation``; a fetch that
returns after its generation has been superseded is dropped unmerged.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Callable, Iterable, Iterator, List, Optional

from ..config import EngineConfig
from ..errors import UnexpectedFault, ValidationError
from ..ingest import ShardClient
from ..merging import RecordMerger, should_replace
from ..records import Query, Record, RecordStatus, identifier_suffix
from ..reveal import RevealQueue, RevealStep
from ..state import AggregationState, Phase, Progress, Snapshot


logger = logging.getLogger(__name__)

Listener = Callable[[Snapshot], None]

RETRY_MESSAGE = "Some class results failed to load. You can use 'Retry Failed' if needed."

_FETCHING_PHASES = (
    Phase.RESOLVING_TARGET,
    Phase.TARGET_RESOLVED,
    Phase.WALKING_MANDATORY_SHARDS,
)


def _target_message(target: Record) -> Optional[str]:
    if target.status is RecordStatus.SUCCESS:
        return None
    message = f"Result status for {target.identifier}: {target.status.value}"
    if target.reason:
        message += f" - {target.reason}"
    return message


class SearchOrchestrator:
    """Drive one search at a time across the configured shards.

    Reveals only advance inside calls into the orchestrator. While a search
    sits in ``AwaitingOptionalShard`` nothing more is revealed until the
    caller invokes ``accept_optional_shard``, ``decline_optional_shard`` or
    ``drain``; presentation layers that want the roster to keep filling in
    during the offer should call ``drain``.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        client: Optional[ShardClient] = None,
        merger: Optional[RecordMerger] = None,
        queue: Optional[RevealQueue] = None,
        paced: bool = True,
    ) -> None:
        self.config = config or EngineConfig()
        self.merger = merger or RecordMerger()
        self.client = client or ShardClient(self.config)
        self.queue = queue or RevealQueue(self.config, merger=self.merger)
        self.paced = paced
        self.state = AggregationState()
        self._listeners: List[Listener] = []

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` with a fresh snapshot after every state change."""

        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def snapshot(self) -> Snapshot:
        return self.state.snapshot()

    def submit(self, query: Query) -> Snapshot:
        """Start a fresh search, abandoning whatever search was in progress.

        Raises:
            ValidationError: the query is malformed; current state is untouched.
            UnexpectedFault: an engine fault stopped the search (phase ``Failed``).
        """

        query.validate()
        self.queue.reset()
        self.state = AggregationState(query=query, generation=self.state.generation + 1)
        logger.info(
            "search.submit",
            extra={"identifier": query.identifier, "generation": self.state.generation},
        )
        self._publish()
        self._walk(self.state.generation)
        return self.snapshot()

    def retry_failed(self) -> Snapshot:
        """Re-run the shard walk for the last query, keeping the revealed roster."""

        query = self.state.query
        if query is None:
            raise ValidationError("There is no search to retry.")
        if self.state.phase in _FETCHING_PHASES:
            raise ValidationError("A search is already in progress.")

        self.queue.reset()
        state = self.state
        state.generation += 1
        state.failed_identifiers = set()
        # Re-base on what is visible; the discarded backlog was never shown.
        state.fetched = list(state.roster)
        state.pending = ()
        state.progress = Progress()
        state.optional_shard_offered = False
        state.message = None
        logger.info(
            "search.retry",
            extra={"identifier": query.identifier, "generation": state.generation},
        )
        self._publish()
        self._walk(state.generation)
        return self.snapshot()

    def accept_optional_shard(self) -> Snapshot:
        """Fetch the optional shard, then drain the reveal backlog to completion."""

        self._require_phase(Phase.AWAITING_OPTIONAL_SHARD)
        generation = self.state.generation
        shard_key = self.config.optional_shard
        self.state.optional_shard_offered = False
        with self._fault_guard(generation):
            batch = self.client.fetch(shard_key, self.state.query)
            if self._is_stale(generation, shard_key):
                return self.snapshot()
            self._absorb(batch)
            if self.state.generation != generation:
                return self.snapshot()
            self._finish(generation)
        return self.snapshot()

    def decline_optional_shard(self) -> Snapshot:
        self._require_phase(Phase.AWAITING_OPTIONAL_SHARD)
        self.state.optional_shard_offered = False
        self._finish(self.state.generation)
        return self.snapshot()

    def drain(self) -> Snapshot:
        """Reveal everything still pending without changing phase."""

        self._drain(self.state.generation)
        return self.snapshot()

    # ------------------------------------------------------------------
    # Shard walk
    # ------------------------------------------------------------------
    def _walk(self, generation: int) -> None:
        query = self.state.query
        with self._fault_guard(generation):
            if not self._resolve_target(generation):
                return

            self.state.phase = Phase.WALKING_MANDATORY_SHARDS
            self._publish()
            for shard_key in self.config.mandatory_shards:
                batch = self.client.fetch(shard_key, query)
                if self._is_stale(generation, shard_key):
                    return
                self._absorb(batch)
                if self.state.generation != generation:
                    return

            if self._should_offer_optional():
                self.state.phase = Phase.AWAITING_OPTIONAL_SHARD
                self.state.optional_shard_offered = True
                self.state.message = self._status_message()
                logger.info(
                    "search.optional_shard.offered",
                    extra={"shard": self.config.optional_shard, "identifier": query.identifier},
                )
                self._publish()
                return

            self._finish(generation)

    def _resolve_target(self, generation: int) -> bool:
        query = self.state.query
        self.state.phase = Phase.RESOLVING_TARGET
        self._publish()

        batch = self.client.fetch(self.config.primary_shard, query)
        if self._is_stale(generation, self.config.primary_shard):
            return False

        resolved = next((record for record in batch if record.identifier == query.identifier), None)
        if resolved is None:
            batch_error = next((record for record in batch if record.is_error), None)
            if batch_error is not None:
                resolved = Record.error(query.identifier, batch_error.reason)
            else:
                resolved = Record(identifier=query.identifier, status=RecordStatus.NOT_FOUND)

        if should_replace(self.state.target, resolved):
            self.state.target = resolved
        self.state.phase = Phase.TARGET_RESOLVED
        self.state.message = _target_message(self.state.target)
        logger.info(
            "search.target.resolved",
            extra={"identifier": query.identifier, "status": self.state.target.status.value},
        )
        self._publish()
        if self.state.generation != generation:
            return False

        self._absorb(batch)
        if self.state.generation != generation:
            return False
        return True

    def _absorb(self, batch: List[Record]) -> None:
        target_identifier = self.state.query.identifier
        self.state.fetched = self.merger.merge(
            self.state.fetched, batch, target_identifier=target_identifier
        )
        self._account_failures(batch)
        self._upgrade_target(batch)
        if self.state.target is not None and self.state.target.is_error:
            self.state.failed_identifiers.add(self.state.target.identifier)
        self.queue.enqueue(batch)
        self._sync_queue()
        self._publish()
        self.queue.pump(
            self.state.roster,
            target_identifier,
            on_reveal=self._on_reveal,
            should_continue=self._current(self.state.generation),
        )

    def _account_failures(self, batch: Iterable[Record]) -> None:
        known = self.state.fetched_by_identifier()
        failed = self.state.failed_identifiers
        for record in batch:
            current = known.get(record.identifier)
            if current is not None and current.is_error:
                failed.add(record.identifier)
            else:
                failed.discard(record.identifier)

    def _upgrade_target(self, batch: Iterable[Record]) -> None:
        """A later shard may still answer for the target after the primary failed."""

        target = self.state.target
        if target is None or target.status is RecordStatus.SUCCESS:
            return
        for record in batch:
            if record.identifier == target.identifier and record.status is RecordStatus.SUCCESS:
                self.state.target = record
                self.state.failed_identifiers.discard(record.identifier)
                self.state.message = _target_message(record)
                logger.info("search.target.upgraded", extra={"identifier": record.identifier})
                return

    def _should_offer_optional(self) -> bool:
        if not self.config.optional_shard:
            return False
        target = self.state.target
        if target is not None and target.status is RecordStatus.SUCCESS:
            return True
        suffix = identifier_suffix(self.state.query.identifier)
        low, high = self.config.optional_shard_range
        return suffix is not None and low <= suffix <= high

    def _finish(self, generation: int) -> None:
        self.state.phase = Phase.DRAINING
        self._publish()
        if not self._drain(generation):
            return
        self.state.phase = Phase.DONE
        self.state.message = self._status_message()
        logger.info(
            "search.complete",
            extra={
                "identifier": self.state.query.identifier,
                "roster": len(self.state.roster),
                "failed": len(self.state.failed_identifiers),
            },
        )
        self._publish()

    def _drain(self, generation: int) -> bool:
        self.queue.drain(
            self.state.roster,
            self.state.query.identifier if self.state.query else None,
            paced=self.paced,
            on_reveal=self._on_reveal,
            should_continue=self._current(generation),
        )
        return self.state.generation == generation

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _current(self, generation: int) -> Callable[[], bool]:
        return lambda: self.state.generation == generation

    def _on_reveal(self, step: RevealStep) -> None:
        self.state.roster = step.roster
        self._sync_queue()
        self._publish()

    def _sync_queue(self) -> None:
        self.state.pending = self.queue.pending
        self.state.progress = self.queue.progress

    def _status_message(self) -> Optional[str]:
        parts = []
        if self.state.target is not None:
            target_message = _target_message(self.state.target)
            if target_message:
                parts.append(target_message)
        if self.state.failed_identifiers:
            parts.append(RETRY_MESSAGE)
        return " | ".join(parts) or None

    def _is_stale(self, generation: int, shard_key: str) -> bool:
        if self.state.generation == generation:
            return False
        logger.warning(
            "search.stale_response",
            extra={"shard": shard_key, "generation": generation, "current": self.state.generation},
        )
        return True

    def _require_phase(self, phase: Phase) -> None:
        if self.state.phase is not phase:
            raise ValidationError(
                f"Operation requires phase {phase.value}, search is {self.state.phase.value}."
            )

    @contextmanager
    def _fault_guard(self, generation: int) -> Iterator[None]:
        try:
            yield
        except (UnexpectedFault, ValidationError) as exc:
            if isinstance(exc, UnexpectedFault):
                self._fail(exc, generation)
            raise
        except Exception as exc:
            fault = UnexpectedFault(str(exc))
            self._fail(fault, generation)
            raise fault from exc

    def _fail(self, fault: UnexpectedFault, generation: int) -> None:
        if self.state.generation != generation:
            return
        self.state.phase = Phase.FAILED
        self.state.message = str(fault)
        logger.error("search.failed", extra={"generation": generation, "error": str(fault)})
        self._publish()

    def _publish(self) -> None:
        if not self._listeners:
            return
        snapshot = self.state.snapshot()
        for listener in list(self._listeners):
            listener(snapshot)

