from __future__ import annotations

import argparse
import logging
import sys
from datetime import date, datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List, Optional

from flight_capture.confidence_scorer import ConfidenceScorer
from flight_capture.config.settings import Settings
from flight_capture.export_assembler import to_json
from flight_capture.image_classifier import ImageClassifier
from flight_capture.image_processing import load_image
from flight_capture.models.flight_data import ConfidenceLevel, ManualOverrides
from flight_capture.ocr_engine_pool import OCREnginePool
from flight_capture.session import CaptureSession, SessionResult

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


def _iso_date(value: str) -> date:
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise argparse.ArgumentTypeError(f"'{value}' is not a date in YYYY-MM-DD format") from None


def build_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        description="Flight capture CLI. Extracts flight and crew data from screenshots "
        "and writes a logbook import payload.",
    )
    parser.add_argument("--file", type=str, help="Path to the dashboard screenshot.")
    parser.add_argument("--crew", type=str, help="Optional path to the crew list screenshot.")
    parser.add_argument(
        "--images",
        nargs="+",
        type=str,
        help="Screenshots in any order; each one is classified as dashboard or crew list.",
    )
    parser.add_argument(
        "--output",
        type=str,
        help="Optional path for the JSON payload. Printed to stdout when omitted.",
    )
    parser.add_argument(
        "--override",
        action="append",
        default=[],
        metavar="FIELD=VALUE",
        help="Reviewed value that replaces the recognized one, e.g. flight_number=CPA648. "
        "May be repeated.",
    )
    parser.add_argument("--date", type=str, help="Flight date override (YYYY-MM-DD or DD/MM/YYYY).")
    parser.add_argument(
        "--today",
        type=_iso_date,
        help="Reference day for weekday/day-of-month date inference (YYYY-MM-DD). Defaults to today.",
    )
    return parser


def setup_logging(settings: Settings) -> logging.Logger:
    """Configure logger with console and rotating file handlers."""
    logger = logging.getLogger("flight_capture")
    logger.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))
    logger.propagate = False

    log_dir: Path = settings.log_dir
    log_dir.mkdir(parents=True, exist_ok=True)
    log_filename = f"app_{datetime.now().strftime('%Y-%m-%d_%H-%M-%S')}.log"
    log_path = log_dir / log_filename

    formatter = logging.Formatter(LOG_FORMAT)

    file_handler = RotatingFileHandler(
        log_path,
        maxBytes=settings.log_max_size_mb * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setFormatter(formatter)
    file_handler.setLevel(logger.level)

    # stdout carries the payload, so log lines go to stderr
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(logger.level)

    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()
    logger.addHandler(file_handler)
    logger.addHandler(console_handler)

    logger.debug("Logging initialized. Log file: %s", log_path)
    return logger


def main(argv: Optional[list[str]] = None) -> int:
    """Entry point for CLI execution."""
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = Settings()
    logger = setup_logging(settings)

    if not args.file and not args.images:
        logger.info("No input file provided. Use --file or --images to specify input.")
        return 0

    if args.images and (args.file or args.crew):
        logger.error("--images cannot be combined with --file or --crew.")
        return 1

    try:
        overrides = ManualOverrides.from_pairs(args.override)
    except ValueError as exc:
        logger.error("Invalid override: %s", exc)
        return 1
    if args.date:
        overrides.date = args.date

    input_paths = [Path(p) for p in args.images] if args.images else [Path(args.file)]
    if args.crew:
        input_paths.append(Path(args.crew))
    for path in input_paths:
        if not path.exists():
            logger.error("Input file '%s' not found.", path)
            return 1

    try:
        with OCREnginePool(settings=settings, logger=logger) as pool:
            return _run_capture(args, overrides, pool, settings, logger)
    except Exception as exc:
        logger.error("Processing failed: %s", exc, exc_info=logger.level == logging.DEBUG)
        return 1


def _run_capture(
    args: argparse.Namespace,
    overrides: ManualOverrides,
    pool: OCREnginePool,
    settings: Settings,
    logger: logging.Logger,
) -> int:
    """Recognize the screenshots, print a summary and write the payload."""
    if args.images:
        images = [load_image(Path(p)) for p in args.images]
        assignment = ImageClassifier(pool, logger).assign(images)
        dashboard, crew_image = assignment.dashboard, assignment.crew_list
    else:
        dashboard = load_image(Path(args.file))
        crew_image = load_image(Path(args.crew)) if args.crew else None

    session = CaptureSession(settings=settings, logger=logger, recognizer=pool)
    result = session.process(dashboard, crew_image, today=args.today)
    _log_summary(result, settings, logger)

    payload_json = to_json(session.build_payload(overrides))
    if args.output:
        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(payload_json + "\n", encoding="utf-8")
        logger.info("Payload written to %s", output_path)
    else:
        sys.stdout.write(payload_json + "\n")
    return 0


def _log_summary(result: SessionResult, settings: Settings, logger: logging.Logger) -> None:
    logger.info("=== Capture Summary ===")
    for kind, field_result in result.field_results.items():
        logger.info(
            "%-13s %-12s %-6s (%.2f)",
            kind.value,
            field_result.value or "-",
            field_result.confidence.level.value,
            field_result.confidence.score,
        )

    record = result.record
    if record.inferred_date:
        logger.info("Flight date: %s (%s)", record.inferred_date.isoformat(), record.date_confidence.value)
    else:
        logger.warning("Flight date could not be inferred; fallback timestamps will be used")

    scorer = ConfidenceScorer(settings, logger)
    crew_lines: List[str] = []
    for member in result.cockpit + result.cabin:
        confidence = scorer.score_crew_name(member.name)
        crew_lines.append(f"{member.role}: {member.name} ({confidence.level.value})")
        if confidence.level is ConfidenceLevel.LOW:
            logger.warning("Crew name for %s looks unreliable: '%s'", member.role, member.name)
    logger.info("Crew: %s", "; ".join(crew_lines) if crew_lines else "none")
    for item in result.review_items:
        logger.warning(
            "Crew name for %s needs review: '%s' -> '%s'",
            item.role,
            item.original_text,
            item.corrected_text,
        )
    logger.info("Overall confidence: %s", result.overall_confidence.description)


if __name__ == "__main__":
    sys.exit(main())
