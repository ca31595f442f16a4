from __future__ import annotations

import json
from pathlib import Path

from catastro_enricher import cli
from catastro_enricher.core import LogSink
from catastro_enricher.pipelines import EnrichmentPipeline
from catastro_enricher.services import CatastroEnricher, EncodingRecovery


class StaticClient:
    def __init__(self, payload):
        self.payload = payload
        self.timeouts = []

    def get_json(self, url, params, timeout):
        self.timeouts.append(timeout)
        return self.payload


def make_pipeline(payload=None) -> EnrichmentPipeline:
    sink = LogSink()
    return EnrichmentPipeline(
        enricher=CatastroEnricher(http_client=StaticClient(payload or {}), sink=sink),
        encoding_recovery=EncodingRecovery(sink=sink),
        sink=sink,
        sleep=lambda seconds: None,
    )


def test_process_command_writes_output_and_log(tmp_path: Path, capsys):
    source = tmp_path / "referencias.csv"
    source.write_text("RefCat\n1234567AB\n", encoding="utf-8")
    log_file = tmp_path / "procesamiento.log"
    payload = {"consulta_dnprcResult": {"bico": {"bi": {"debi": {"ant": "1999"}, "ldt": "CL MAYOR 5"}}}}

    exit_code = cli.main(
        ["process", str(source), "--log-file", str(log_file)],
        pipeline=make_pipeline(payload),
    )

    output = tmp_path / "referencias_resultado.csv"
    assert exit_code == 0
    assert output.read_text(encoding="utf-8").splitlines() == [
        "RefCat,AnnoConstruccion,Direccion",
        "1234567AB,1999,MAYOR 5",
    ]
    assert f"Output: {output}" in capsys.readouterr().out
    log_text = log_file.read_text(encoding="utf-8")
    assert "Single reference 1234567AB - year: 1999 - address: MAYOR 5" in log_text
    assert log_text.startswith("[")


def test_merge_command_honours_refcat_key(tmp_path: Path):
    table = tmp_path / "tabla.csv"
    table.write_text("RefCat,AnnoConstruccion,Direccion\nX1,1970,Sol\n", encoding="utf-8")
    geojson = tmp_path / "parcelas.json"
    geojson.write_text(
        json.dumps(
            {
                "type": "FeatureCollection",
                "features": [{"type": "Feature", "geometry": None, "properties": {"RefCat": "X1"}}],
            }
        ),
        encoding="utf-8",
    )
    output = tmp_path / "salida.json"

    exit_code = cli.main(
        [
            "merge-geojson",
            str(table),
            str(geojson),
            "--output",
            str(output),
            "--refcat-key",
            "RefCat",
            "--log-file",
            str(tmp_path / "merge.log"),
        ],
        pipeline=make_pipeline(),
    )

    assert exit_code == 0
    properties = json.loads(output.read_text(encoding="utf-8"))["features"][0]["properties"]
    assert properties == {"RefCat": "X1", "FECHAALTA": 1970, "CALLE": "Sol"}


def test_processing_errors_return_non_zero(tmp_path: Path, capsys):
    log_file = tmp_path / "procesamiento.log"

    exit_code = cli.main(
        ["process", str(tmp_path / "absent.csv"), "--log-file", str(log_file)],
        pipeline=make_pipeline(),
    )

    assert exit_code == 1
    assert "completed successfully" not in capsys.readouterr().out
    assert "Error: CSV file not found" in log_file.read_text(encoding="utf-8")


def test_default_pipeline_uses_timeout_and_delay():
    args = cli._build_argument_parser().parse_args(
        ["process", "in.csv", "--timeout", "5", "--delay", "0", "--encoding", "auto"]
    )

    pipeline = cli._default_pipeline(args)

    assert pipeline.enricher.config.timeout == 5
    assert pipeline.request_delay == 0
    assert pipeline.csv_encoding == "auto"


def test_unwritable_log_file_returns_non_zero(tmp_path: Path, capsys):
    source = tmp_path / "referencias.csv"
    source.write_text("RefCat\n1234567AB\n", encoding="utf-8")
    log_file = tmp_path / "missing" / "procesamiento.log"

    exit_code = cli.main(["process", str(source), "--log-file", str(log_file)], pipeline=make_pipeline())

    assert exit_code == 1
    assert "cannot open log file" in capsys.readouterr().err
    assert not (tmp_path / "referencias_resultado.csv").exists()
