"""Command line interface for annotating a call log with caller identities."""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .call_log import FrameCallLogStore
from .config import load_configuration, lookup_timeout_seconds
from .factory import build_service
from .ingestion import export_lookup_outcomes, load_call_log, write_call_log


def build_parser(prog: str | None = None) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=prog,
        description="Resolve who is behind each number in a call log and update its cached columns",
    )
    parser.add_argument("input", help="Path to the call log spreadsheet (CSV or XLSX)")
    parser.add_argument("output", help="Path where the updated call log should be written")
    parser.add_argument(
        "--config",
        required=True,
        help="Path to the lookup configuration file (YAML or JSON)",
    )
    parser.add_argument(
        "--country",
        default=None,
        help="Two-letter ISO country used for rows without one (overrides the configuration)",
    )
    parser.add_argument(
        "--report",
        default=None,
        help="Optional path for a per-row results sheet",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (e.g. DEBUG, INFO, WARNING)",
    )
    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO))

    config = load_configuration(args.config)
    store = FrameCallLogStore(load_call_log(args.input))
    service = build_service(config, country_iso=args.country, call_log_store=store)

    entries = list(store.entries())
    if not entries:
        logging.warning("The call log is empty - nothing to do")

    outcomes = service.annotate_entries(entries, timeout_seconds=lookup_timeout_seconds(config))
    write_call_log(store.frame, args.output)
    if args.report:
        export_lookup_outcomes(outcomes, args.report)
        logging.info("Lookup results written to %s", Path(args.report).resolve())

    failed = sum(1 for outcome in outcomes if outcome.status == "failed")
    logging.info("Processed %s call log rows (%s failed lookups)", len(outcomes), failed)
    logging.info("Updated call log written to %s", Path(args.output).resolve())
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())
