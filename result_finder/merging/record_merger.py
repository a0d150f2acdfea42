"""Deduplicating merge of shard batches into a roster.

Shards are fetched in declaration order but retries and the optional shard make
arrival order arbitrary, so every merge re-sorts by roll number.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from ..records import Record, RecordStatus, identifier_suffix, is_valid_identifier


logger = logging.getLogger(__name__)


def roster_sort_key(record: Record) -> Tuple[int, int, str]:
    """Valid identifiers by roll number, then everything else in arrival order."""

    if not is_valid_identifier(record.identifier):
        return (1, 0, "")
    suffix = identifier_suffix(record.identifier)
    if suffix is None:
        return (0, 0, record.identifier)
    return (0, suffix, record.identifier)


def should_replace(existing: Optional[Record], incoming: Record) -> bool:
    """An error never overwrites a better answer; anything else is last-writer-wins."""

    if existing is None:
        return True
    return not (incoming.is_error and not existing.is_error)


@dataclass
class RecordMerger:
    """Combine an existing roster with a newly arrived batch.

    ``merge`` never mutates its inputs. ``RecordNotFound`` entries evict any
    earlier entry for the same identifier, except for the search target, whose
    entry is kept as it was.
    """

    def merge(
        self,
        existing: Iterable[Record],
        incoming: Iterable[Record],
        target_identifier: Optional[str] = None,
    ) -> List[Record]:
        by_identifier: Dict[str, Record] = {record.identifier: record for record in existing}
        removed = 0

        for record in incoming:
            current = by_identifier.get(record.identifier)
            if record.status is RecordStatus.RECORD_NOT_FOUND:
                if record.identifier != target_identifier:
                    if by_identifier.pop(record.identifier, None) is not None:
                        removed += 1
                    continue
                if current is not None:
                    continue
            if should_replace(current, record):
                by_identifier[record.identifier] = record

        if removed:
            logger.debug("merge.removed_not_found", extra={"removed": removed})
        return sorted(by_identifier.values(), key=roster_sort_key)
