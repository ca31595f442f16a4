"""Flask application factory."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional

from flask import Flask
from flask_cors import CORS

from ..config import APP_CONFIG, CATASTRO_CONFIG, STORAGE_PATHS, StoragePaths
from ..core import LogSink
from ..core.log_sink import DEFAULT_LOGGER_NAME
from ..pipelines import EnrichmentPipeline
from .routes import api_bp

logger = logging.getLogger(__name__)

PipelineFactory = Callable[[LogSink], EnrichmentPipeline]


def _default_pipeline(sink: LogSink) -> EnrichmentPipeline:
    return EnrichmentPipeline.default(config=CATASTRO_CONFIG, sink=sink)


def _attach_file_log(path: Path) -> None:
    """Keep a detailed processing log next to the uploads."""

    package_logger = logging.getLogger(DEFAULT_LOGGER_NAME)
    target = str(path.resolve())
    for handler in package_logger.handlers:
        if isinstance(handler, logging.FileHandler) and handler.baseFilename == target:
            return
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setFormatter(logging.Formatter("[%(asctime)s] %(levelname)s %(message)s", "%Y-%m-%d %H:%M:%S"))
    package_logger.addHandler(handler)
    package_logger.setLevel(logging.INFO)


def create_app(
    pipeline_factory: Optional[PipelineFactory] = None,
    *,
    storage: Optional[StoragePaths] = None,
) -> Flask:
    """Create and configure the Flask application."""

    storage = storage or STORAGE_PATHS
    storage.ensure()

    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = APP_CONFIG.max_upload_bytes

    CORS(app)
    app.register_blueprint(api_bp, url_prefix="/api")
    app.extensions["catastro_enricher"] = {
        "pipeline_factory": pipeline_factory or _default_pipeline,
        "storage": storage,
    }
    _attach_file_log(storage.logs / APP_CONFIG.log_filename)

    @app.get("/health")
    def health_check() -> dict[str, str]:
        return {"status": "healthy"}

    logger.info("Flask application initialised")
    return app
