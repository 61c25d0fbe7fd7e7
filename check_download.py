"""Command line availability check for one or more Steam game ids."""

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from constants import DEFAULT_TIMEOUT, SOURCES_FILE
from exceptions import ConfigError, InvalidGameIdError
from logging_setup import configure_logging
from models import ProbeResult
from resolver import resolve, to_csv_bytes
from sources import load_sources
from steam_client import validate_game_id

logger = logging.getLogger("check_download")


def format_result_line(result: ProbeResult) -> str:
    if result["available"]:
        return f"[OK] {result['source_name']}  (HTTP={result['status']})  {result['direct_url']}"
    reason = result["error"] or f"unavailable (HTTP={result['status']})"
    return f"[--] {result['source_name']}  {reason}"


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        description="Check which configured mirrors can serve the given Steam game ids."
    )
    p.add_argument("appids", nargs="+", help="Steam game id(s), e.g. 730")
    p.add_argument("--sources", "-s", default=str(SOURCES_FILE), help="JSON sources file.")
    p.add_argument("--output", "-o", help="CSV output file (optional).")
    p.add_argument(
        "--timeout",
        type=float,
        default=DEFAULT_TIMEOUT,
        help=f"Per-probe timeout in seconds (default: {DEFAULT_TIMEOUT}).",
    )
    p.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging verbosity",
    )
    return p.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(level=args.log_level)

    try:
        game_ids = [validate_game_id(raw) for raw in args.appids]
        sources = load_sources(Path(args.sources))
    except (ConfigError, InvalidGameIdError) as exc:
        logger.error("%s", exc)
        print(f"[ERROR] {exc}", file=sys.stderr)
        return 2

    batches: Dict[str, List[ProbeResult]] = {}
    try:
        for game_id in game_ids:
            results = resolve(game_id, sources, timeout=args.timeout)
            batches[game_id] = results
            print(f"== {game_id}: {sum(r['available'] for r in results)}/{len(results)} available")
            for result in results:
                print("  " + format_result_line(result))
    except KeyboardInterrupt:
        # the interrupted batch is discarded; its probe threads are daemons
        print("\n[ABORTED] interrupted, no CSV written", file=sys.stderr)
        return 130

    if args.output:
        output = Path(args.output)
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_bytes(to_csv_bytes(batches))
        print(f"\nCSV written -> {output}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
