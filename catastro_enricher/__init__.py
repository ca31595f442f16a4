"""Top-level package for the Cadastre Enricher."""

from .api.app_factory import create_app
from .pipelines.job_pipeline import EnrichmentPipeline

__all__ = ["create_app", "EnrichmentPipeline"]
