"""
System Performance Diagnostics Collector

Collects a snapshot of CPU, memory, disk, network and service state together
with selected log files, and packages it into one archive that can be handed
to a support engineer.

Usage:
    python -m sysdiag
    sysdiag --yes --dest /var/tmp
"""

import argparse
import signal
from pathlib import Path
from typing import List, Optional

from . import __version__
from .diagnostics import DiagnosticRunner
from .errors import CollectionError, ConfigError
from .utils import Config, get_logger, parse_level, setup_logging
from .utils.config import ARCHIVE_FORMATS

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sysdiag",
        description="Collect system performance diagnostics into a single archive.",
    )
    parser.add_argument("-d", "--dest", type=Path,
                        help="Directory for the archive (default: system temp directory)")
    parser.add_argument("-y", "--yes", "--non-interactive", dest="non_interactive",
                        action="store_true",
                        help="Do not pause for Enter after each collection step")
    parser.add_argument("-c", "--config", type=Path,
                        help="JSON configuration with steps, log patterns and report sections")
    parser.add_argument("--format", dest="archive_format", choices=ARCHIVE_FORMATS,
                        help="Archive format")
    parser.add_argument("--log-level", help="Diagnostics log level (e.g. DEBUG, INFO)")
    parser.add_argument("--log-file", type=Path, help="Also write diagnostics log to this file")
    parser.add_argument("--dump-config", type=Path, metavar="FILE",
                        help="Write the effective configuration as JSON and exit")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def load_config(args: argparse.Namespace) -> Config:
    """Load the configuration and apply command-line overrides."""
    config = Config.load(args.config)
    if args.dest is not None:
        config.destination_dir = str(args.dest)
    if args.non_interactive:
        config.interactive = False
    if args.archive_format:
        config.archive_format = args.archive_format
    if args.log_level:
        config.log_level = args.log_level
    config.validate()
    return config


def _terminate(signum, frame):
    # Unwind through the workspace cleanup instead of dying in place
    raise SystemExit(128 + signum)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args)
        level = parse_level(config.log_level)
    except (ConfigError, ValueError) as e:
        setup_logging()
        logger.error(f"Error: {e}")
        return EXIT_FAILURE

    try:
        setup_logging(level, args.log_file)
    except OSError as e:
        setup_logging(level)
        logger.error(f"Error: cannot open log file {args.log_file}: {e}")
        return EXIT_FAILURE

    if args.dump_config:
        try:
            config.save(args.dump_config)
        except OSError as e:
            logger.error(f"Error: cannot write configuration {args.dump_config}: {e}")
            return EXIT_FAILURE
        print(f"Configuration written to {args.dump_config}")
        return EXIT_OK

    print("Starting System Performance Diagnostics Collection")
    runner = DiagnosticRunner(config)

    previous = signal.signal(signal.SIGTERM, _terminate)
    try:
        result = runner.run()
    except CollectionError as e:
        logger.error(f"Error: {e}")
        return EXIT_FAILURE
    except KeyboardInterrupt:
        logger.error("Interrupted, collection aborted")
        return EXIT_INTERRUPTED
    finally:
        signal.signal(signal.SIGTERM, previous)

    if result.missing.any_missing:
        print(f"{len(result.missing.missing)} log file(s) could not be collected")
    print("Please provide this file to the support engineer.")
    return EXIT_OK

