"""Exception hierarchy for the result aggregation engine."""

from __future__ import annotations


class ResultFinderError(Exception):
    """Base class for every error raised by the package."""


class ValidationError(ResultFinderError):
    """Caller input was rejected; no search state was touched."""


class ConfigurationError(ResultFinderError):
    """The engine configuration is inconsistent."""


class ShardUnavailable(ResultFinderError):
    """A shard could not be reached or answered with an unusable body.

    Only raised inside :class:`~result_finder.ingest.ShardClient`, which turns
    it into a batch of placeholder error records.
    """


class UnexpectedFault(ResultFinderError):
    """Engine-internal fault; moves a search to the ``Failed`` phase."""


class CatalogUnavailable(ResultFinderError):
    """The exam catalog could not be loaded."""
