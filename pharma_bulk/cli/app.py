from __future__ import annotations

import argparse
import json
import math
import signal
import sys
import time
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from pharma_bulk.api.client import ApiClient
from pharma_bulk.api.session import SessionContext
from pharma_bulk.config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config
from pharma_bulk.excel.reader import SpreadsheetDecodeError, read_first_sheet
from pharma_bulk.logging.error_log import ErrorLogBuffer
from pharma_bulk.logging.init import log_summary, set_debug, setup_logging
from pharma_bulk.models.import_context import ImportContext
from pharma_bulk.services.batch_submitter import BatchMetrics
from pharma_bulk.services.entities import ENTITIES, get_policy
from pharma_bulk.services.import_run import ImportRun
from pharma_bulk.services.progress import BatchProgressTracker
from pharma_bulk.services.summary import render_summary_line
from pharma_bulk.services.template import write_template

"""CLI application.

    python -m pharma_bulk.cli template ENTITY [--output-dir DIR]
    python -m pharma_bulk.cli inspect ENTITY FILE [selection flags]
    python -m pharma_bulk.cli upload ENTITY FILE [selection flags]

Exit codes:
    0  every record created (or nothing to do for template / inspect)
    2  at least one row or batch failed, or the upload was interrupted
    1  fatal: bad config, missing selection, unreadable file
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env with python-dotenv; its values win over the process environment."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _add_context_flags(p: argparse.ArgumentParser) -> None:
    p.add_argument("--country-id", type=int)
    p.add_argument("--state-id", type=int)
    p.add_argument("--municipality-id", type=int)
    p.add_argument("--distributor-id", type=int)
    p.add_argument("--pharmacy-id", type=int)
    p.add_argument("--pharmacy-name")
    p.add_argument(
        "--specialty", type=int, action="append", dest="specialties", default=[],
        help="Specialty id for doctor imports (repeatable)",
    )


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="pharma-bulk", description="Spreadsheet -> REST bulk importer")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="YAML config file")
    p.add_argument("--env-file", type=Path, default=Path(".env"))
    sub = p.add_subparsers(dest="command", required=True)

    t = sub.add_parser("template", help="Write the example workbook for an entity")
    t.add_argument("entity", choices=sorted(ENTITIES))
    t.add_argument("--output-dir", type=Path, default=Path("."))
    t.add_argument("--pharmacy-name")

    i = sub.add_parser("inspect", help="Decode and map a workbook without uploading")
    i.add_argument("entity", choices=sorted(ENTITIES))
    i.add_argument("file", type=Path)
    i.add_argument("--rows", type=int, default=3, help="Number of mapped rows to print")
    _add_context_flags(i)

    u = sub.add_parser("upload", help="Upload a workbook in batches")
    u.add_argument("entity", choices=sorted(ENTITIES))
    u.add_argument("file", type=Path)
    _add_context_flags(u)
    return p.parse_args(argv)


def _context_from_args(args: argparse.Namespace) -> dict[str, Any]:
    return {
        "country_id": args.country_id,
        "state_id": args.state_id,
        "municipality_id": args.municipality_id,
        "distributor_id": args.distributor_id,
        "pharmacy_id": args.pharmacy_id,
        "pharmacy_name": args.pharmacy_name,
        "specialties": tuple(args.specialties),
    }


def _template(args: argparse.Namespace, logger) -> int:
    policy = get_policy(args.entity)
    target = write_template(policy, args.output_dir, ImportContext(pharmacy_name=args.pharmacy_name))
    logger.info(f"template written: {target}")
    return EXIT_SUCCESS_ALL


def _inspect(args: argparse.Namespace, logger) -> int:
    policy = get_policy(args.entity)
    try:
        sheet = read_first_sheet(args.file)
    except SpreadsheetDecodeError as e:
        logger.error(f"{args.file.name}: {e}")
        return EXIT_FATAL
    print(f"FILE: {args.file.name} SHEET: {sheet.sheet_name} rows={len(sheet.rows)}")
    print(f"  columns={sheet.columns}")
    ctx = ImportContext().with_changes(**_context_from_args(args))
    missing = ctx.missing(policy.required_context)
    if missing:
        print(f"  (selections missing for mapping: {missing})")
        sample: list[dict[str, Any]] = sheet.rows[: args.rows]
    else:
        sample = [policy.map(r, ctx).to_payload() for r in sheet.rows[: args.rows]]
    for row in sample:
        print("    " + json.dumps(row, ensure_ascii=False, default=str))
    return EXIT_SUCCESS_ALL


def _log_batch_metrics(logger, metrics: BatchMetrics) -> None:
    logger.debug(
        f"batch {metrics.batch_number}: {metrics.batch_size} record(s) in "
        f"{metrics.elapsed_seconds:.3f}s ({'ok' if metrics.succeeded else 'failed'})"
    )


def _upload(args: argparse.Namespace, logger) -> int:
    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    policy = get_policy(args.entity, cfg.entities.get(args.entity))
    session = SessionContext(token=cfg.api.token)
    if not session.is_authenticated:
        logger.warning("no API token configured; requests will be anonymous")

    with ApiClient(cfg.api.base_url, session, timeout=cfg.api.timeout_seconds) as client:
        run = ImportRun(policy, client, metrics_callback=lambda m: _log_batch_metrics(logger, m))
        run.open()
        run.set_context(**_context_from_args(args))
        run.select_file(args.file)
        if run.state.errors:
            for msg in run.state.errors:
                logger.error(msg)
            return EXIT_FATAL

        total_batches = math.ceil(len(run.state.candidates) / policy.batch_size)
        logger.info(f"{len(run.state.candidates)} {policy.label} ready from {args.file.name}")

        previous_handler = signal.getsignal(signal.SIGINT)
        # Ctrl-C stops the upload before the next batch instead of killing it mid-request
        signal.signal(signal.SIGINT, lambda signum, frame: run.close())
        start = time.perf_counter()
        try:
            with BatchProgressTracker(total_batches, description=f"Uploading {policy.name}") as tracker:
                run.listeners.append(tracker)
                result = run.upload()
        finally:
            signal.signal(signal.SIGINT, previous_handler)
        elapsed = time.perf_counter() - start

    if result is None:
        for msg in run.state.errors:
            logger.error(msg)
        return EXIT_FATAL

    banner = run.banner()
    if banner is not None:
        variant, message = banner
        (logger.info if variant == "success" else logger.warning)(message)
    for line in result.error_lines():
        logger.warning(line)
    if result.cancelled:
        logger.warning(
            f"upload interrupted after {result.attempted_batches}/{result.total_batches} batch(es)"
        )

    error_log = ErrorLogBuffer(Path(cfg.logs_directory))
    error_log.extend_from_result(args.file.name, policy.name, result)
    try:
        log_path = error_log.flush()
    except OSError as e:
        logger.warning(f"could not write error log: {e}")
    else:
        if log_path is not None:
            logger.info(f"error log: {log_path}")

    log_summary(render_summary_line(policy.name, result, elapsed)[len("SUMMARY "):])

    if result.has_failures or result.cancelled:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # Only read sys.argv when no list was given; [] means "no arguments"
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(args.env_file, override=True)

    if args.debug:
        set_debug(logger)
        logger.debug("debug mode enabled")

    if args.command == "template":
        return _template(args, logger)
    if args.command == "inspect":
        return _inspect(args, logger)
    return _upload(args, logger)

