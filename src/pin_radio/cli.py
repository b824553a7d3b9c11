"""
Pin Radio CLI - Entry point

Subcommands:
    daemon  Keep the MPD queue filled with songs similar to the one playing
    import  Load analysed tracks (JSON export) into the track store
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from pin_radio.core.config import Config, load_config
from pin_radio.core.database import import_tracks_from_json
from pin_radio.core.errors import ConfigurationError
from pin_radio.core.output import log, setup_loguru


def run_import(config: Config, analysis_file: str) -> int:
    """Import an analysis export into the configured database.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    try:
        count = import_tracks_from_json(config.library.database_path, analysis_file)
    except ConfigurationError as e:
        log(f"Import failed: {e}", level="error")
        return 1
    log(f"Imported {count} tracks into {config.library.database_path}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pin-radio",
        description="Queue songs in MPD that are similar to the one playing",
    )
    parser.add_argument("-c", "--config", type=Path, help="Path to config.toml")
    parser.add_argument("--log-level", help="Override the configured log level")
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Mirror log output to stderr"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    daemon = subparsers.add_parser("daemon", help="Run the queueing daemon")
    daemon.add_argument(
        "--keep-queue",
        action="store_true",
        default=None,
        help="Don't clear the queue around the pinned song",
    )
    daemon.add_argument("--prefill", type=int, help="Songs to queue for each new pin")
    daemon.add_argument("--metric", choices=["euclidean", "cosine"])
    daemon.add_argument("--ranking", choices=["features", "genres"])

    import_cmd = subparsers.add_parser("import", help="Import analysed tracks")
    import_cmd.add_argument("analysis_file", help="JSON array of analysed tracks")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    level = (args.log_level or config.logging.level).upper()
    log_file = Path(config.logging.log_file) if config.logging.log_file else None
    setup_loguru(log_file, level, console_output=args.verbose or config.logging.console_output)

    if args.command == "import":
        return run_import(config, args.analysis_file)

    if args.keep_queue is not None:
        config.queue.keep_queue = args.keep_queue
    if args.prefill is not None:
        config.queue.prefill = args.prefill
    if args.metric:
        config.queue.metric = args.metric
    if args.ranking:
        config.queue.ranking = args.ranking

    from pin_radio.daemon import run_daemon

    return run_daemon(config)


if __name__ == "__main__":
    sys.exit(main())
