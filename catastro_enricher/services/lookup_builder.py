"""Build reference code lookup tables from CSV files."""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Mapping, Sequence

from ..core import EnrichmentRecord, LogSink, LookupMode, LookupTable
from ..core.exceptions import InputFileNotFound, MissingColumn
from ..utils import detect_encoding, normalize_code, parse_year

REFCAT_COLUMN = "RefCat"
YEAR_COLUMN = "AnnoConstruccion"
ADDRESS_COLUMN = "Direccion"


class LookupBuilder:
    """Load a CSV file into a :data:`LookupTable` keyed by ``RefCat``."""

    REQUIRED_COLUMNS: Mapping[LookupMode, Sequence[str]] = {
        LookupMode.YEAR_ONLY: (REFCAT_COLUMN, YEAR_COLUMN),
        LookupMode.YEAR_AND_ADDRESS: (REFCAT_COLUMN, YEAR_COLUMN, ADDRESS_COLUMN),
    }

    def __init__(
        self,
        *,
        mode: LookupMode = LookupMode.YEAR_AND_ADDRESS,
        encoding: str | None = None,
        sink: LogSink | None = None,
    ):
        self.mode = LookupMode(mode)
        self.encoding = encoding or "utf-8-sig"
        self.sink = sink or LogSink()

    @property
    def required_columns(self) -> Sequence[str]:
        return self.REQUIRED_COLUMNS[self.mode]

    def build(self, path: Path | str) -> LookupTable:
        path = Path(path)
        if not path.exists():
            self.sink.error("CSV file does not exist: %s", path)
            raise InputFileNotFound(f"CSV file not found: {path}", details={"path": str(path)})

        encoding = self.encoding
        if encoding == "auto":
            encoding = detect_encoding(path)

        table: LookupTable = {}
        valid_rows = 0
        with path.open("r", encoding=encoding, errors="replace", newline="") as handle:
            reader = csv.DictReader(handle)
            headers = [header.strip() for header in reader.fieldnames or []]
            reader.fieldnames = headers
            self.sink.info("CSV headers (%d): %s", len(headers), ", ".join(headers))
            self._validate_headers(headers, path)

            for row in reader:
                entry = self._parse_row(row, reader.line_num)
                if entry is None:
                    continue
                code, record = entry
                table[code] = record
                valid_rows += 1

        self.sink.info("Read %d valid rows (%d distinct codes) from %s", valid_rows, len(table), path.name)
        return table

    def _parse_row(self, row: Mapping[str, str | None], line: int) -> tuple[str, EnrichmentRecord] | None:
        if any(row.get(column) is None for column in self.required_columns):
            self.sink.warning("Line %d: row is shorter than the required columns, skipped", line)
            return None

        code = normalize_code(row[REFCAT_COLUMN])
        if not code:
            self.sink.warning("Line %d: empty %s, skipped", line, REFCAT_COLUMN)
            return None

        raw_year = (row[YEAR_COLUMN] or "").strip()
        year = parse_year(raw_year)

        if self.mode is LookupMode.YEAR_ONLY:
            if not year:
                self.sink.warning("Invalid year for %s: %r", code, raw_year)
                return None
            return code, EnrichmentRecord(year=year)

        address = (row[ADDRESS_COLUMN] or "").strip()
        return code, EnrichmentRecord(year=year, address=address)

    def _validate_headers(self, headers: Sequence[str], path: Path) -> None:
        missing = [column for column in self.required_columns if column not in headers]
        if missing:
            self.sink.error("CSV file %s is missing columns: %s", path.name, ", ".join(missing))
            raise MissingColumn(
                "CSV file is missing required columns",
                details={"path": str(path), "missing": missing},
            )
