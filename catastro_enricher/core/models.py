"""Domain models used throughout the Cadastre Enricher."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Mapping, Union

ERROR_PREFIX = "Error: "


@dataclass(frozen=True, slots=True)
class EnrichmentRecord:
    """Construction year and street resolved for a reference code.

    ``year`` is ``0`` when unknown and ``address`` is empty when unknown.
    """

    year: int = 0
    address: str = ""

    @property
    def resolved(self) -> bool:
        return self.year != 0

    @property
    def failed(self) -> bool:
        return self.address.startswith(ERROR_PREFIX)


# Reference code -> record. Keys are opaque strings, never numbers.
LookupTable = dict[str, EnrichmentRecord]


class LookupMode(str, Enum):
    """Which columns a lookup table is built from."""

    YEAR_ONLY = "year_only"
    YEAR_AND_ADDRESS = "year_and_address"


@dataclass(frozen=True, slots=True)
class SingleProperty:
    """The service returned one property node."""

    node: Mapping[str, Any]


@dataclass(frozen=True, slots=True)
class MultipleProperties:
    """The service returned a list of sub-property nodes."""

    nodes: tuple[Mapping[str, Any], ...]


@dataclass(frozen=True, slots=True)
class QueryFailure:
    """The lookup did not yield a usable document."""

    kind: str
    reason: str


RemoteQueryResult = Union[SingleProperty, MultipleProperties, QueryFailure]


@dataclass(slots=True)
class MergeStats:
    """Counters collected while merging a feature collection."""

    matched: int = 0
    unmatched: int = 0
    malformed: int = 0

    @property
    def total(self) -> int:
        return self.matched + self.unmatched + self.malformed

    def as_dict(self) -> dict:
        return {
            "matched": self.matched,
            "unmatched": self.unmatched,
            "malformed": self.malformed,
            "total": self.total,
        }


@dataclass(slots=True)
class EnrichmentSummary:
    """Result of enriching a tabular file through the remote service."""

    output_path: Path
    rows: int = 0
    resolved: int = 0
    failures: int = 0
    multiple: int = 0
    empty_codes: int = 0
    skipped: int = 0
    lookups: int = 0
    created_at: datetime = field(default_factory=datetime.now)
    completed_at: datetime | None = None

    def as_dict(self) -> dict:
        return {
            "output_path": str(self.output_path),
            "rows": self.rows,
            "resolved": self.resolved,
            "failures": self.failures,
            "multiple": self.multiple,
            "empty_codes": self.empty_codes,
            "skipped": self.skipped,
            "lookups": self.lookups,
            "created_at": self.created_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }


@dataclass(slots=True)
class MergeSummary:
    """Result of merging a lookup table into a GeoJSON file."""

    output_path: Path
    table_size: int
    stats: MergeStats
    decode_strategy: str

    def as_dict(self) -> dict:
        return {
            "output_path": str(self.output_path),
            "table_size": self.table_size,
            "decode_strategy": self.decode_strategy,
            "stats": self.stats.as_dict(),
        }
