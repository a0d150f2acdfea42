"""Merge package combining shard batches into a deduplicated roster."""

from .record_merger import RecordMerger, roster_sort_key, should_replace

__all__ = ["RecordMerger", "roster_sort_key", "should_replace"]
