"""Orchestrator package coordinating the shard walk and reveal drain."""

from .search import RETRY_MESSAGE, SearchOrchestrator

__all__ = ["RETRY_MESSAGE", "SearchOrchestrator"]
