"""Core domain primitives for the Cadastre Enricher."""

from .models import (
    EnrichmentRecord,
    EnrichmentSummary,
    LookupMode,
    LookupTable,
    MergeStats,
    MergeSummary,
    MultipleProperties,
    QueryFailure,
    RemoteQueryResult,
    SingleProperty,
)
from .exceptions import ProcessingError
from .log_sink import LogSink

__all__ = [
    "EnrichmentRecord",
    "EnrichmentSummary",
    "LookupMode",
    "LookupTable",
    "MergeStats",
    "MergeSummary",
    "MultipleProperties",
    "QueryFailure",
    "RemoteQueryResult",
    "SingleProperty",
    "ProcessingError",
    "LogSink",
]
