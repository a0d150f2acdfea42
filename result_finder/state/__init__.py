"""State package holding the per-search aggregation model."""

from .aggregation_state import AggregationState, Phase, Progress, Snapshot

__all__ = ["AggregationState", "Phase", "Progress", "Snapshot"]
