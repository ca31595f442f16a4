"""Merge lookup tables into GeoJSON feature collections."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from ..core import LogSink, LookupTable, MergeStats
from ..core.exceptions import NotAFeatureCollection
from ..utils import normalize_code

UNMATCHED_YEAR = "0"


@dataclass(slots=True)
class MergeOutcome:
    collection: dict[str, Any]
    stats: MergeStats


class FeatureMerger:
    """Write construction year and street into matching GeoJSON features.

    Only the year and street properties are ever touched. The input document
    is left unchanged and each output feature shares its ``geometry`` object
    with the corresponding input feature.
    """

    def __init__(
        self,
        *,
        refcat_keys: Sequence[str] = ("REFCAT",),
        year_key: str = "FECHAALTA",
        street_key: str = "CALLE",
        write_address: bool = True,
        sink: LogSink | None = None,
    ):
        if isinstance(refcat_keys, str):
            refcat_keys = (refcat_keys,)
        if not refcat_keys:
            raise ValueError("At least one reference code property is required")
        self.refcat_keys = tuple(refcat_keys)
        self.year_key = year_key
        self.street_key = street_key
        self.write_address = write_address
        self.sink = sink or LogSink()

    def merge(self, collection: Mapping[str, Any], table: LookupTable) -> MergeOutcome:
        features = self._validate(collection)
        self.sink.info("Document contains %d features", len(features))

        stats = MergeStats()
        merged = [self._merge_feature(index, feature, table, stats) for index, feature in enumerate(features)]

        self.sink.info(
            "Summary: %d updated, %d reference codes not found, %d features without reference code",
            stats.matched,
            stats.unmatched,
            stats.malformed,
        )
        return MergeOutcome(collection={**collection, "features": merged}, stats=stats)

    def _validate(self, collection: Any) -> list:
        if not isinstance(collection, Mapping) or collection.get("type") != "FeatureCollection":
            self.sink.error("Document is not a GeoJSON FeatureCollection")
            raise NotAFeatureCollection("Document is not a GeoJSON FeatureCollection")
        features = collection.get("features")
        if not isinstance(features, list):
            self.sink.error("FeatureCollection has no features list")
            raise NotAFeatureCollection(
                "FeatureCollection has no features list",
                details={"features": type(features).__name__},
            )
        return features

    def _merge_feature(self, index: int, feature: Any, table: LookupTable, stats: MergeStats) -> Any:
        properties = feature.get("properties") if isinstance(feature, Mapping) else None
        code = self._reference_code(properties)
        if not code:
            stats.malformed += 1
            self.sink.warning("Feature %d has no reference code property", index)
            return feature

        updated = dict(properties)
        record = table.get(code)
        if record is None:
            updated[self.year_key] = UNMATCHED_YEAR
            stats.unmatched += 1
            self.sink.info("Reference code %s not in table, %s set to %s", code, self.year_key, UNMATCHED_YEAR)
        else:
            previous = properties.get(self.year_key, "missing")
            updated[self.year_key] = record.year
            if self.write_address:
                updated[self.street_key] = record.address
            stats.matched += 1
            self.sink.info(
                "Updated %s - %s: %s -> %s - %s: %s",
                code,
                self.year_key,
                previous,
                record.year,
                self.street_key,
                updated.get(self.street_key, ""),
            )
        return {**feature, "properties": updated}

    def _reference_code(self, properties: Any) -> str:
        if not isinstance(properties, Mapping):
            return ""
        for key in self.refcat_keys:
            code = normalize_code(properties.get(key))
            if code:
                return code
        return ""
