"""Command line entry point for the enrichment workflows."""

from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from pathlib import Path
from typing import Iterable, Optional

from .config import APP_CONFIG, CATASTRO_CONFIG
from .core import LogSink, LookupMode
from .core.exceptions import ProcessingError
from .core.log_sink import DEFAULT_LOGGER_NAME
from .pipelines import EnrichmentPipeline

LOGGER = logging.getLogger(__name__)
LOG_FORMAT = "[%(asctime)s] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _build_argument_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--log-file",
        type=Path,
        default=Path(APP_CONFIG.log_filename),
        help=f"File that receives a copy of the progress log (default: {APP_CONFIG.log_filename})",
    )
    common.add_argument(
        "--encoding",
        default="utf-8-sig",
        help="Encoding of the input CSV, or 'auto' to detect it (default: utf-8-sig)",
    )
    common.add_argument(
        "--year-only",
        action="store_true",
        help="Only handle the construction year, leaving addresses out.",
    )

    parser = argparse.ArgumentParser(
        description="Enrich cadastral references with construction year and street, "
        "and propagate them into GeoJSON parcels.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    process = subparsers.add_parser(
        "process",
        parents=[common],
        help="Query the cadastre for every RefCat in a CSV and write an enriched CSV.",
    )
    process.add_argument("input", type=Path, help="CSV file with a RefCat column")
    process.add_argument(
        "output",
        nargs="?",
        type=Path,
        help="Optional output path; defaults to '<name>_resultado.csv'",
    )
    process.add_argument(
        "--timeout",
        type=int,
        default=CATASTRO_CONFIG.timeout,
        help=f"Timeout (seconds) for cadastre requests (default: {CATASTRO_CONFIG.timeout})",
    )
    process.add_argument(
        "--delay",
        type=float,
        default=CATASTRO_CONFIG.request_delay,
        help=f"Pause (seconds) between cadastre requests (default: {CATASTRO_CONFIG.request_delay})",
    )

    merge = subparsers.add_parser(
        "merge-geojson",
        parents=[common],
        help="Write the years and streets of an enriched CSV into a GeoJSON file.",
    )
    merge.add_argument("table", type=Path, help="Enriched CSV produced by 'process'")
    merge.add_argument("geojson", type=Path, help="GeoJSON FeatureCollection to update")
    merge.add_argument(
        "--output",
        type=Path,
        help="Optional output path; defaults to '<name>_actualizado.<ext>'",
    )
    merge.add_argument(
        "--refcat-key",
        action="append",
        dest="refcat_keys",
        help="Feature property holding the reference code (default: REFCAT). "
        "Repeat to accept several keys; the first non-empty one wins.",
    )

    return parser


def _attach_log_handlers(log_file: Optional[Path]) -> list[logging.Handler]:
    formatter = logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT)
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file is not None:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    logger = logging.getLogger(DEFAULT_LOGGER_NAME)
    logger.setLevel(logging.INFO)
    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    return handlers


def _detach_log_handlers(handlers: Iterable[logging.Handler]) -> None:
    logger = logging.getLogger(DEFAULT_LOGGER_NAME)
    for handler in handlers:
        logger.removeHandler(handler)
        handler.close()


def _default_pipeline(args: argparse.Namespace) -> EnrichmentPipeline:
    config = CATASTRO_CONFIG
    if args.command == "process":
        config = dataclasses.replace(config, timeout=args.timeout, request_delay=args.delay)
    return EnrichmentPipeline.default(config=config, sink=LogSink(), csv_encoding=args.encoding)


def main(argv: Optional[Iterable[str]] = None, *, pipeline: Optional[EnrichmentPipeline] = None) -> int:
    parser = _build_argument_parser()
    args = parser.parse_args(argv)

    try:
        handlers = _attach_log_handlers(args.log_file)
    except OSError as error:
        print(f"Error: cannot open log file {args.log_file}: {error}", file=sys.stderr)
        return 1

    try:
        pipeline = pipeline or _default_pipeline(args)

        if args.command == "process":
            summary = pipeline.process_table(args.input, args.output, year_only=args.year_only)
        else:
            mode = LookupMode.YEAR_ONLY if args.year_only else LookupMode.YEAR_AND_ADDRESS
            summary = pipeline.merge_geojson(
                args.table,
                args.geojson,
                args.output,
                mode=mode,
                refcat_keys=args.refcat_keys or ("REFCAT",),
            )
    except ProcessingError as error:
        LOGGER.error("Error: %s", error)
        LOGGER.error("Processing failed. Check the log file %s", args.log_file)
        return 1
    finally:
        _detach_log_handlers(handlers)

    print(f"Process completed successfully. Output: {summary.output_path}")
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())
