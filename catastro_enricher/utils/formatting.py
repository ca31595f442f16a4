"""Formatting helpers."""

from __future__ import annotations

import math
import re

_WHITESPACE = re.compile(r"\s+")


def parse_year(value: object) -> int:
    """Return ``value`` as a four digit year, or ``0`` when it is not one."""

    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return 0
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0
    if math.isnan(number) or math.isinf(number):
        return 0
    year = int(number)
    if 1000 <= year <= 9999:
        return year
    return 0


def normalize_code(value: object) -> str:
    """Return a reference code as a trimmed string."""

    if value is None:
        return ""
    return str(value).strip()


def street_from_text_line(line: str) -> str:
    """Extract the street name from a free-text address line.

    ``"CL GRAN VIA 12 Es:1"`` yields ``"GRAN VIA"``: the leading street type
    is dropped and only the next two tokens are kept. Lines with fewer than
    three tokens yield an empty string.
    """

    parts = _WHITESPACE.split(line.strip())
    if len(parts) < 3:
        return ""
    return f"{parts[1]} {parts[2]}"
