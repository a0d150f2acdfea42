"""Ingestion package providing access to the result shards and exam catalog."""

from .exam_catalog import ExamCatalog, ExamDescriptor
from .shard_client import ShardBatch, ShardClient, placeholder_identifiers

__all__ = ["ExamCatalog", "ExamDescriptor", "ShardBatch", "ShardClient", "placeholder_identifiers"]
