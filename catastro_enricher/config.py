"""Runtime configuration for the Cadastre Enricher project."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path


@dataclass(frozen=True)
class StoragePaths:
    """Collection of filesystem paths used by the application."""

    uploads: Path
    outputs: Path
    logs: Path

    def ensure(self) -> None:
        """Ensure the backing directories exist."""
        self.uploads.mkdir(parents=True, exist_ok=True)
        self.outputs.mkdir(parents=True, exist_ok=True)
        self.logs.mkdir(parents=True, exist_ok=True)


@dataclass(frozen=True)
class AppConfig:
    """High level runtime configuration values."""

    max_upload_size_mb: int = 50
    allowed_csv_extensions: tuple[str, ...] = ("csv",)
    allowed_geojson_extensions: tuple[str, ...] = ("json", "geojson")
    log_filename: str = "procesamiento.log"

    @property
    def max_upload_bytes(self) -> int:
        """Maximum upload payload in bytes."""
        return self.max_upload_size_mb * 1024 * 1024


@dataclass(frozen=True)
class ResponseLayout:
    """Key paths inside a ``Consulta_DNPRC`` JSON response.

    The service is undocumented and has been seen to change key names, so the
    paths are kept here rather than in the parsing code.
    """

    result_key: str = "consulta_dnprcResult"
    multiple_path: tuple[str, ...] = ("lrcdnp", "rcdnp")
    single_path: tuple[str, ...] = ("bico", "bi")
    year_path: tuple[str, ...] = ("debi", "ant")
    address_paths: tuple[tuple[str, ...], ...] = (
        ("dt", "locs", "lors", "lourb", "dir", "nv"),
        ("dt", "locs", "lous", "lourb", "dir", "nv"),
    )
    text_line_key: str = "ldt"


@dataclass(frozen=True)
class CatastroConfig:
    """Settings for the remote cadastre lookup service."""

    endpoint: str = (
        "https://ovc.catastro.meh.es/OVCServWeb/OVCWcfCallejero/"
        "COVCCallejero.svc/json/Consulta_DNPRC"
    )
    query_param: str = "RefCat"
    timeout: int = 30  # seconds
    request_delay: float = 0.5  # seconds between successive lookups
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
    )
    layout: ResponseLayout = field(default_factory=ResponseLayout)


APP_CONFIG = AppConfig()
STORAGE_PATHS = StoragePaths(
    uploads=Path(os.environ.get("CATASTRO_ENRICHER_UPLOADS", "uploads")),
    outputs=Path(os.environ.get("CATASTRO_ENRICHER_OUTPUTS", "outputs")),
    logs=Path(os.environ.get("CATASTRO_ENRICHER_LOGS", "logs")),
)
CATASTRO_CONFIG = CatastroConfig(
    endpoint=os.environ.get("CATASTRO_ENRICHER_ENDPOINT", CatastroConfig.endpoint),
    timeout=int(os.environ.get("CATASTRO_ENRICHER_TIMEOUT", CatastroConfig.timeout)),
    request_delay=float(
        os.environ.get("CATASTRO_ENRICHER_DELAY", CatastroConfig.request_delay)
    ),
    user_agent=os.environ.get("CATASTRO_ENRICHER_USER_AGENT", CatastroConfig.user_agent),
)
