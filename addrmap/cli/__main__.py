from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from addrmap.config.loader import ConfigurationError, load_config, load_env_file
from addrmap.excel.reader import ParseError, read_table
from addrmap.logging.init import log_summary, set_debug, setup_logging
from addrmap.models.processing_result import FilterCriteria
from addrmap.services.export import write_export
from addrmap.services.field_detector import detect_fields
from addrmap.services.orchestrator import MapSession
from addrmap.services.summary import render_failure_summary, render_summary_line

"""CLI entrypoint.

Flow:
- Load .env, config and logging
- Read the input file, detect the address/category columns
- Geocode every row (paced, sequential) and print a SUMMARY line
- Write the requested exports and the map marker payload
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1

SAMPLE_ROWS = 3


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Geocode addresses from a spreadsheet and build map markers")
    p.add_argument("input", help="Input file (.xlsx, .xls or .csv)")
    p.add_argument("--config", type=Path, default=None, help="YAML config (default: config/addrmap.yml if present)")
    p.add_argument("--address-field", default=None, help="Address column (skip auto-detection)")
    p.add_argument("--category-field", default=None, help="Category column (skip auto-detection)")
    p.add_argument("--search", default="", help="Search term applied to the marker output")
    p.add_argument("--category", default="all", help="Category filter applied to the marker output")
    p.add_argument("--export-csv", type=Path, default=None, help="Write resolved addresses as CSV")
    p.add_argument("--export-json", type=Path, default=None, help="Write resolved addresses as JSON")
    p.add_argument("--markers", type=Path, default=None, help="Write map markers (filtered) as JSON")
    p.add_argument("--inspect-data", action="store_true", help="Print detected columns & first rows then exit")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    return p.parse_args(argv)


def _inspect_data(path: Path, cfg) -> int:
    try:
        rows = read_table(path)
    except ParseError as e:
        print(f"inspect: {e}")
        return EXIT_FATAL
    det = detect_fields(rows, cfg.detection.address_keywords, cfg.detection.category_keywords)
    print(f"FILE: {path.name} rows={len(rows)} cols={list(rows[0].keys())}")
    print(f"  address_field={det.address_field} category_field={det.category_field} low_confidence={det.low_confidence}")
    for r in rows[:SAMPLE_ROWS]:
        # datetime を含む行は isoformat で表示
        safe = {k: (v.isoformat() if hasattr(v, "isoformat") else v) for k, v in r.items()}
        print("    sample_row=", safe)
    return 0


def _write_markers(path: Path, dataset, criteria: FilterCriteria) -> None:
    visible = dataset.filter(criteria)
    payload = {
        "center": dataset.map_center(visible),
        "categories": dataset.categories(),
        "filter_fields": dataset.filter_fields(),
        "markers": dataset.to_markers(visible),
    }
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2, ensure_ascii=False, default=str), encoding="utf-8")


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # None のときのみシステム引数を読む (テストで main([...]) を呼ぶため)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    load_env_file(Path(".env"), override=True)

    if args.debug:
        set_debug(logger)
        logger.debug("debug mode enabled")

    try:
        cfg = load_config(args.config)
    except ConfigurationError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    input_path = Path(args.input)
    if args.inspect_data:
        return _inspect_data(input_path, cfg)

    logger.info(f"Processing file: {input_path}")
    session = MapSession(cfg)
    try:
        try:
            result = session.load_file(
                input_path,
                address_field=args.address_field,
                category_field=args.category_field,
            )
        except ParseError as e:
            logger.error(f"file: {e}")
            return EXIT_FATAL
        except ConfigurationError as e:
            logger.error(f"config: {e}")
            return EXIT_FATAL

        batch = result.batch
        dataset = result.dataset
        logger.info(
            f"address_field={result.detection.address_field} "
            f"category_field={result.detection.category_field}"
        )

        summary_line = render_summary_line(batch)
        log_summary(summary_line[len("SUMMARY "):])
        if batch.dropped_rows:
            logger.warning(
                f"{batch.dropped_rows} of {batch.total_rows} rows are not on the map "
                f"(skipped={batch.skipped_rows} failed={batch.failed_rows})"
            )
        for line in render_failure_summary(batch.failures, cfg.reporting.max_failure_messages):
            logger.warning(line)

        criteria = FilterCriteria(search_term=args.search, category=args.category)
        if not criteria.is_empty:
            logger.info(f"filter matches {len(dataset.filter(criteria))} of {len(dataset)} addresses")

        try:
            if args.export_csv is not None:
                logger.info(f"exported CSV: {write_export(dataset, args.export_csv)}")
            if args.export_json is not None:
                logger.info(f"exported JSON: {write_export(dataset, args.export_json)}")
            if args.markers is not None:
                _write_markers(args.markers, dataset, criteria)
                logger.info(f"wrote markers: {args.markers}")
        except OSError as e:
            logger.error(f"export: {e}")
            return EXIT_FATAL
    finally:
        session.close()

    if batch.failed_rows > 0:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
