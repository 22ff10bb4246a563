"""Developer helper for running a single TruePeopleSearch reverse lookup."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Sequence

BASE_DIR = Path(__file__).resolve().parents[1]
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

from caller_lookup.models import ReverseLookupResult, ReversePhoneSearch  # noqa: E402  (import after path fix)
from caller_lookup.providers.true_people_search import (  # noqa: E402
    TruePeopleSearchConfig,
    TruePeopleSearchProvider,
)

LOGGER = logging.getLogger(__name__)


def parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run a TruePeopleSearch reverse phone lookup for debugging.")
    parser.add_argument("number", help="Phone number to look up")
    parser.add_argument("--headless", dest="headless", action="store_true", help="Run Chromium in headless mode")
    parser.add_argument(
        "--no-headless",
        dest="headless",
        action="store_false",
        help="Run Chromium with a visible window",
    )
    parser.set_defaults(headless=True)
    parser.add_argument(
        "--wait-for-captcha",
        action="store_true",
        help="Pause for manual CAPTCHA resolution instead of failing",
    )
    parser.add_argument("--throttle", type=float, default=0.0, help="Seconds to wait after loading the page")
    parser.add_argument(
        "--output-json",
        type=Path,
        help="Optional path to save the raw JSON result",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"],
        help="Console log level",
    )
    return parser.parse_args(argv)


def configure_logging(level: str) -> None:
    logging.basicConfig(level=getattr(logging, level))


def run_lookup(args: argparse.Namespace) -> None:
    configure_logging(args.log_level)

    config = TruePeopleSearchConfig(
        headless=args.headless,
        throttle_seconds=args.throttle,
        wait_for_captcha=args.wait_for_captcha,
    )
    provider = TruePeopleSearchProvider(config=config)
    result = provider.search(ReversePhoneSearch(number=args.number))

    pretty_print_result(result)

    if args.output_json:
        args.output_json.write_text(json.dumps(asdict(result), indent=2))
        LOGGER.info("Wrote result JSON to %s", args.output_json)


def pretty_print_result(result: ReverseLookupResult) -> None:
    print(f"Number: {result.query.number}")
    if not result.found:
        print("No owner found.")
    else:
        print(f"  Name: {result.name}")
        location = ", ".join(part for part in (result.city, result.region) if part)
        if location:
            print(f"  Location: {location}")
        if result.address:
            print(f"  Address: {result.address}")

    if result.notes.messages:
        print("Notes:")
        for note in result.notes.messages:
            print(f"  - {note}")


def main(argv: Sequence[str] | None = None) -> None:
    args = parse_args(argv or sys.argv[1:])
    try:
        run_lookup(args)
    except Exception as exc:  # pragma: no cover - CLI convenience
        LOGGER.exception("Lookup failed: %s", exc)
        sys.exit(1)


if __name__ == "__main__":
    main()
