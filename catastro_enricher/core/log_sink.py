"""Explicit log sink handed to each pipeline stage."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

DEFAULT_LOGGER_NAME = "catastro_enricher"


@dataclass(slots=True)
class LogSink:
    """Forward progress messages to a logger and keep an append-only copy.

    Stages never open log files themselves; the front ends decide where the
    underlying logger writes.
    """

    logger: logging.Logger = field(
        default_factory=lambda: logging.getLogger(DEFAULT_LOGGER_NAME)
    )
    lines: list[str] = field(default_factory=list)

    def info(self, message: str, *args: object) -> None:
        self._emit(logging.INFO, message, args)

    def warning(self, message: str, *args: object) -> None:
        self._emit(logging.WARNING, message, args)

    def error(self, message: str, *args: object) -> None:
        self._emit(logging.ERROR, message, args)

    def _emit(self, level: int, message: str, args: tuple[object, ...]) -> None:
        self.lines.append(message % args if args else message)
        self.logger.log(level, message, *args)
