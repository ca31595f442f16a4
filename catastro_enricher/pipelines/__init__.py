"""Pipeline orchestration."""

from .job_pipeline import EnrichmentPipeline

__all__ = ["EnrichmentPipeline"]
