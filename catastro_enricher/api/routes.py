"""REST API blueprint."""

from __future__ import annotations

import io
import shutil
import uuid
from pathlib import Path

from flask import Blueprint, current_app, jsonify, request, send_file
from werkzeug.datastructures import FileStorage

from ..config import APP_CONFIG, StoragePaths
from ..core import LogSink, LookupMode
from ..core.exceptions import ProcessingError
from ..pipelines import EnrichmentPipeline
from ..utils.io import ensure_directory, safe_filename

api_bp = Blueprint("api", __name__)

_TRUTHY = {"1", "true", "yes", "on"}


@api_bp.post("/process")
def process_table():
    """Enrich an uploaded CSV of reference codes and return it."""

    csv_file = request.files.get("csv_file")
    if csv_file is None or not csv_file.filename:
        return jsonify({"error": "csv_file field is required"}), 400
    if not _allowed(csv_file.filename, APP_CONFIG.allowed_csv_extensions):
        return jsonify({"error": f"Invalid CSV file: {csv_file.filename}"}), 400

    job_id = str(uuid.uuid4())
    storage = _storage()
    job_dir = ensure_directory(storage.uploads / job_id)
    output_dir = ensure_directory(storage.outputs / job_id)
    try:
        input_path = _save(csv_file, job_dir, "referencias.csv")
        output_path = output_dir / f"{input_path.stem}_resultado.csv"
        try:
            _pipeline().process_table(input_path, output_path, year_only=_flag("year_only"))
        except ProcessingError as exc:
            return jsonify(exc.as_dict()), 400
        payload = output_path.read_bytes()
    finally:
        _cleanup(job_dir, output_dir)

    return send_file(
        io.BytesIO(payload),
        mimetype="text/csv",
        as_attachment=True,
        download_name=output_path.name,
    )


@api_bp.post("/merge-geojson")
def merge_geojson():
    """Merge an uploaded enriched CSV into an uploaded GeoJSON file."""

    csv_file = request.files.get("csv_file")
    geojson_file = request.files.get("geojson_file")
    if csv_file is None or not csv_file.filename:
        return jsonify({"error": "csv_file field is required"}), 400
    if geojson_file is None or not geojson_file.filename:
        return jsonify({"error": "geojson_file field is required"}), 400
    if not _allowed(csv_file.filename, APP_CONFIG.allowed_csv_extensions):
        return jsonify({"error": f"Invalid CSV file: {csv_file.filename}"}), 400
    if not _allowed(geojson_file.filename, APP_CONFIG.allowed_geojson_extensions):
        return jsonify({"error": f"Invalid GeoJSON file: {geojson_file.filename}"}), 400

    mode = LookupMode.YEAR_ONLY if _flag("year_only") else LookupMode.YEAR_AND_ADDRESS
    refcat_keys = [key for key in request.form.getlist("refcat_key") if key] or ["REFCAT"]

    job_id = str(uuid.uuid4())
    storage = _storage()
    job_dir = ensure_directory(storage.uploads / job_id)
    output_dir = ensure_directory(storage.outputs / job_id)
    try:
        table_path = _save(csv_file, job_dir, "tabla.csv")
        geojson_path = _save(geojson_file, job_dir, "parcelas.geojson")
        output_path = output_dir / f"{geojson_path.stem}_actualizado{geojson_path.suffix}"
        try:
            _pipeline().merge_geojson(
                table_path,
                geojson_path,
                output_path,
                mode=mode,
                refcat_keys=refcat_keys,
            )
        except ProcessingError as exc:
            return jsonify(exc.as_dict()), 400
        payload = output_path.read_bytes()
    finally:
        _cleanup(job_dir, output_dir)

    return send_file(
        io.BytesIO(payload),
        mimetype="application/json",
        as_attachment=True,
        download_name=output_path.name,
    )


def _allowed(filename: str, extensions: tuple[str, ...]) -> bool:
    return "." in filename and filename.rsplit(".", 1)[1].lower() in extensions


def _flag(name: str) -> bool:
    return request.form.get(name, "").strip().lower() in _TRUTHY


def _save(uploaded: FileStorage, directory: Path, fallback: str) -> Path:
    target = directory / (safe_filename(uploaded.filename or "") or fallback)
    uploaded.save(target)
    return target


def _cleanup(*directories: Path) -> None:
    for directory in directories:
        shutil.rmtree(directory, ignore_errors=True)


def _pipeline() -> EnrichmentPipeline:
    return current_app.extensions["catastro_enricher"]["pipeline_factory"](LogSink())


def _storage() -> StoragePaths:
    return current_app.extensions["catastro_enricher"]["storage"]
