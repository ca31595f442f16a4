"""Processing pipeline orchestrator."""

from __future__ import annotations

import csv
import json
import re
import time
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Sequence

from ..config import CATASTRO_CONFIG, CatastroConfig
from ..core import (
    EnrichmentSummary,
    LogSink,
    LookupMode,
    LookupTable,
    MergeSummary,
    MultipleProperties,
)
from ..core.exceptions import EmptyLookupTable, EncodeFailure, InputFileNotFound, MissingColumn
from ..services import CatastroEnricher, EncodingRecovery, FeatureMerger, LookupBuilder
from ..services.lookup_builder import ADDRESS_COLUMN, REFCAT_COLUMN, YEAR_COLUMN
from ..utils import detect_encoding, normalize_code, sibling_path

ENRICHED_SUFFIX = "_resultado"
UPDATED_SUFFIX = "_actualizado"
SUBSTITUTE_CHARACTER = "\ufffd"

_LONE_SURROGATES = re.compile("[\ud800-\udfff]")


def _extend_row(
    row: list[str],
    width: int,
    values: dict[str, str],
    positions: dict[str, int],
    appended: Sequence[str],
) -> list[str]:
    """Return ``row`` with the enrichment values written in.

    Short rows are padded to the header width; cells past the header are kept
    and the appended columns follow them.
    """

    extended = row + [""] * (width - len(row))
    for column, index in positions.items():
        extended[index] = values[column]
    return extended + [values[column] for column in appended]


@dataclass(slots=True)
class EnrichmentPipeline:
    """Orchestrates both processing workflows.

    ``process_table`` enriches a CSV of reference codes through the remote
    service; ``merge_geojson`` propagates an enriched CSV into a GeoJSON
    feature collection.
    """

    enricher: CatastroEnricher
    encoding_recovery: EncodingRecovery
    sink: LogSink = field(default_factory=LogSink)
    request_delay: float = CATASTRO_CONFIG.request_delay
    csv_encoding: str = "utf-8-sig"
    sleep: Callable[[float], None] = time.sleep

    def process_table(
        self,
        input_path: Path | str,
        output_path: Path | str | None = None,
        *,
        year_only: bool = False,
    ) -> EnrichmentSummary:
        input_path = Path(input_path)
        self.sink.info("Starting cadastral reference processing")
        self.sink.info("CSV file: %s", input_path)
        if not input_path.exists():
            self.sink.error("Input file does not exist: %s", input_path)
            raise InputFileNotFound(f"CSV file not found: {input_path}", details={"path": str(input_path)})

        output_path = Path(output_path) if output_path else sibling_path(input_path, ENRICHED_SUFFIX)
        added_columns = [YEAR_COLUMN] if year_only else [YEAR_COLUMN, ADDRESS_COLUMN]
        summary = EnrichmentSummary(output_path=output_path)
        cache: LookupTable = {}

        with input_path.open(newline="", encoding=self._encoding_for(input_path), errors="replace") as source:
            reader = csv.reader(source)
            header = [column.strip() for column in next(reader, [])]
            if REFCAT_COLUMN not in header:
                self.sink.error("CSV file must contain a '%s' column", REFCAT_COLUMN)
                raise MissingColumn(
                    "CSV file is missing required columns",
                    details={"path": str(input_path), "missing": [REFCAT_COLUMN]},
                )
            refcat_index = header.index(REFCAT_COLUMN)
            width = len(header)
            # Added columns already present in the header are overwritten in place.
            positions = {column: header.index(column) for column in added_columns if column in header}
            appended = [column for column in added_columns if column not in positions]

            with output_path.open("w", newline="", encoding="utf-8") as target:
                writer = csv.writer(target)
                writer.writerow(header + appended)

                for row in reader:
                    if not row:
                        continue
                    summary.rows += 1
                    if len(row) <= refcat_index:
                        self.sink.warning("Row %d: no %s column, skipped", summary.rows, REFCAT_COLUMN)
                        summary.skipped += 1
                        continue

                    code = normalize_code(row[refcat_index])
                    if not code:
                        self.sink.warning("Row %d: empty %s, kept with defaults", summary.rows, REFCAT_COLUMN)
                        values = {YEAR_COLUMN: "0", ADDRESS_COLUMN: ""}
                        writer.writerow(_extend_row(row, width, values, positions, appended))
                        summary.empty_codes += 1
                        continue

                    record = cache.get(code)
                    if record is None:
                        if summary.lookups:
                            self.sleep(self.request_delay)
                        result = self.enricher.query(code)
                        record = self.enricher.reduce(result, code)
                        cache[code] = record
                        summary.lookups += 1
                        if isinstance(result, MultipleProperties):
                            summary.multiple += 1
                    else:
                        self.sink.info("Row %d: %s already resolved in this run", summary.rows, code)

                    values = {YEAR_COLUMN: str(record.year), ADDRESS_COLUMN: record.address}
                    writer.writerow(_extend_row(row, width, values, positions, appended))

                    if record.resolved:
                        summary.resolved += 1
                    if record.failed:
                        summary.failures += 1

        summary.completed_at = datetime.now()
        self.sink.info(
            "Processing finished. Rows: %d, resolved: %d, failures: %d, multiple references: %d",
            summary.rows,
            summary.resolved,
            summary.failures,
            summary.multiple,
        )
        self.sink.info("Results written to %s", output_path)
        return summary

    def merge_geojson(
        self,
        table_path: Path | str,
        geojson_path: Path | str,
        output_path: Path | str | None = None,
        *,
        mode: LookupMode = LookupMode.YEAR_AND_ADDRESS,
        refcat_keys: Sequence[str] = ("REFCAT",),
    ) -> MergeSummary:
        geojson_path = Path(geojson_path)
        self.sink.info("Starting GeoJSON update")
        self.sink.info("CSV file: %s", table_path)
        self.sink.info("GeoJSON file: %s", geojson_path)

        builder = LookupBuilder(mode=mode, encoding=self.csv_encoding, sink=self.sink)
        table = builder.build(table_path)
        if not table:
            self.sink.error("No valid rows in the CSV file to process")
            raise EmptyLookupTable("CSV file has no valid rows", details={"path": str(table_path)})

        if not geojson_path.exists():
            self.sink.error("GeoJSON file does not exist: %s", geojson_path)
            raise InputFileNotFound(
                f"GeoJSON file not found: {geojson_path}", details={"path": str(geojson_path)}
            )
        report = self.encoding_recovery.run(geojson_path.read_bytes())

        merger = FeatureMerger(
            refcat_keys=refcat_keys,
            write_address=LookupMode(mode) is LookupMode.YEAR_AND_ADDRESS,
            sink=self.sink,
        )
        outcome = merger.merge(report.document, table)

        output_path = Path(output_path) if output_path else sibling_path(geojson_path, UPDATED_SUFFIX)
        self._write_json(outcome.collection, output_path)
        self.sink.info("Process completed. File saved as %s", output_path)

        return MergeSummary(
            output_path=output_path,
            table_size=len(table),
            stats=outcome.stats,
            decode_strategy=report.strategy,
        )

    def _encoding_for(self, path: Path) -> str:
        if self.csv_encoding == "auto":
            return detect_encoding(path)
        return self.csv_encoding

    def _write_json(self, document: Any, path: Path) -> None:
        try:
            text = json.dumps(document, indent=4, ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            self.sink.error("Updated document could not be encoded: %s", exc)
            raise EncodeFailure("Updated document could not be encoded", details={"error": str(exc)}) from exc
        # Lone surrogates survive json.loads but cannot be written as UTF-8.
        path.write_bytes(_LONE_SURROGATES.sub(SUBSTITUTE_CHARACTER, text).encode("utf-8"))

    @classmethod
    def default(
        cls,
        *,
        config: CatastroConfig = CATASTRO_CONFIG,
        sink: LogSink | None = None,
        csv_encoding: str = "utf-8-sig",
    ) -> "EnrichmentPipeline":
        sink = sink or LogSink()
        return cls(
            enricher=CatastroEnricher(config=config, sink=sink),
            encoding_recovery=EncodingRecovery(sink=sink),
            sink=sink,
            request_delay=config.request_delay,
            csv_encoding=csv_encoding,
        )
