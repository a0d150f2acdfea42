"""Top-level package exposing the sharded exam-result aggregation engine."""

from .config import EngineConfig
from .errors import (
    CatalogUnavailable,
    ConfigurationError,
    ResultFinderError,
    ShardUnavailable,
    UnexpectedFault,
    ValidationError,
)
from .records import Query, Record, RecordStatus
from .ingest import ExamCatalog, ExamDescriptor, ShardClient
from .merging import RecordMerger
from .reveal import RevealQueue
from .state import AggregationState, Phase, Progress, Snapshot
from .orchestrator import SearchOrchestrator
from .reporting import RosterReport

__all__ = [
    "EngineConfig",
    "CatalogUnavailable",
    "ConfigurationError",
    "ResultFinderError",
    "ShardUnavailable",
    "UnexpectedFault",
    "ValidationError",
    "Query",
    "Record",
    "RecordStatus",
    "ExamCatalog",
    "ExamDescriptor",
    "ShardClient",
    "RecordMerger",
    "RevealQueue",
    "AggregationState",
    "Phase",
    "Progress",
    "Snapshot",
    "SearchOrchestrator",
    "RosterReport",
]
