"""Utility helpers for the Cadastre Enricher project."""

from .formatting import normalize_code, parse_year, street_from_text_line
from .io import detect_encoding, ensure_directory, safe_filename, sibling_path

__all__ = [
    "normalize_code",
    "parse_year",
    "street_from_text_line",
    "detect_encoding",
    "ensure_directory",
    "safe_filename",
    "sibling_path",
]
