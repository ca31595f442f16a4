from __future__ import annotations

from pathlib import Path

import pytest

from catastro_enricher.core import EnrichmentRecord, LogSink, LookupMode
from catastro_enricher.core.exceptions import InputFileNotFound, MissingColumn
from catastro_enricher.services import LookupBuilder


def write_csv(tmp_path: Path, content: str, name: str = "tabla.csv", encoding: str = "utf-8") -> Path:
    path = tmp_path / name
    path.write_text(content, encoding=encoding)
    return path


def test_build_year_and_address(tmp_path: Path):
    path = write_csv(
        tmp_path,
        "RefCat,AnnoConstruccion,Direccion\n"
        "1234567AB, 1988 ,Mayor\n"
        "0012345CD,,\"Gran Via, 1\"\n",
    )

    table = LookupBuilder().build(path)

    assert table == {
        "1234567AB": EnrichmentRecord(year=1988, address="Mayor"),
        "0012345CD": EnrichmentRecord(year=0, address="Gran Via, 1"),
    }


def test_reference_codes_keep_leading_zeros(tmp_path: Path):
    path = write_csv(tmp_path, "RefCat,AnnoConstruccion,Direccion\n000123,1950,Sol\n")

    assert list(LookupBuilder().build(path)) == ["000123"]


def test_year_only_omits_invalid_years(tmp_path: Path):
    path = write_csv(
        tmp_path,
        "RefCat,AnnoConstruccion\n"
        "A1,1975\n"
        "A2,0\n"
        "A3,abc\n"
        "A4,-1990\n"
        "A5,2001\n",
    )
    sink = LogSink()

    table = LookupBuilder(mode=LookupMode.YEAR_ONLY, sink=sink).build(path)

    assert table == {
        "A1": EnrichmentRecord(year=1975),
        "A5": EnrichmentRecord(year=2001),
    }
    assert "Invalid year for A3: 'abc'" in sink.lines


def test_short_and_empty_rows_are_skipped(tmp_path: Path):
    path = write_csv(
        tmp_path,
        "RefCat,AnnoConstruccion,Direccion\n"
        "B1,1999\n"
        " ,2000,Luna\n"
        "B2,2005,Sol\n",
    )
    sink = LogSink()

    table = LookupBuilder(sink=sink).build(path)

    assert list(table) == ["B2"]
    assert any("shorter than the required columns" in line for line in sink.lines)
    assert any("empty RefCat" in line for line in sink.lines)


def test_last_duplicate_wins(tmp_path: Path):
    path = write_csv(
        tmp_path,
        "RefCat,AnnoConstruccion,Direccion\nC1,1960,Antigua\nC1,1980,Nueva\n",
    )

    assert LookupBuilder().build(path) == {"C1": EnrichmentRecord(year=1980, address="Nueva")}


def test_missing_columns_raise(tmp_path: Path):
    path = write_csv(tmp_path, "RefCat,AnnoConstruccion\nD1,1990\n")

    with pytest.raises(MissingColumn) as excinfo:
        LookupBuilder(mode=LookupMode.YEAR_AND_ADDRESS).build(path)

    assert excinfo.value.details["missing"] == ["Direccion"]


def test_missing_file_raises(tmp_path: Path):
    with pytest.raises(InputFileNotFound):
        LookupBuilder().build(tmp_path / "absent.csv")


def test_bom_and_auto_encoding(tmp_path: Path):
    path = write_csv(
        tmp_path,
        "RefCat,AnnoConstruccion,Direccion\nE1,1971,Peñalver\n",
        encoding="utf-8-sig",
    )

    assert LookupBuilder().build(path)["E1"].address == "Peñalver"
    assert "E1" in LookupBuilder(encoding="auto").build(path)
