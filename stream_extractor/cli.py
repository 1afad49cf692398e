"""
Command-line interface for the stream extraction system.

Commands:
    stream_extractor dump <file> [--format text|json] [--encoding ENC]
        Print the canonical address of every element with its occurrence count,
        the starting point for choosing which addresses to register.
    stream_extractor config
        Print the resolved configuration summary as JSON.
"""

import argparse
import json
import logging
import sys

from pathlib import Path
from typing import Optional

from . import __version__
from .config.config_manager import get_config_manager
from .config.processing_defaults import ExtractionDefaults
from .exceptions import ExtractionError
from .processing.xml_extractor import XMLExtractor


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stream_extractor",
        description="Streaming, path-addressed record extraction from XML and CSV documents."
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--log-level", choices=["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"],
                        help="Logging level (defaults to STREAM_EXTRACTOR_LOG_LEVEL or WARNING)")
    parser.add_argument("--settings", help="JSON or YAML settings file")

    commands = parser.add_subparsers(dest="command", required=True)

    dump = commands.add_parser("dump", help="Count element addresses in an XML document")
    dump.add_argument("file", type=Path, help="XML document to inspect")
    dump.add_argument("--format", choices=["text", "json"], default="text", help="Output format")
    dump.add_argument("--encoding", help="Document encoding")

    commands.add_parser("config", help="Show the resolved configuration")
    return parser


def main(args: Optional[list] = None) -> int:
    """
    Main entry point for the CLI application.

    Args:
        args: Optional command line arguments (defaults to sys.argv)

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    if args is None:
        args = sys.argv[1:]

    options = build_parser().parse_args(args)
    config_manager = get_config_manager(options.settings)

    # Set up logging without reconfiguring root if already configured
    root_logger = logging.getLogger()
    if not root_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
        root_logger.addHandler(handler)
    logger = logging.getLogger(__name__)

    try:
        root_logger.setLevel(options.log_level or config_manager.get_log_level())

        if options.command == "config":
            ExtractionDefaults.log_summary(logger)
            print(json.dumps(config_manager.get_configuration_summary(), indent=2))
            return 0

        overrides = {"encoding": options.encoding} if options.encoding else None
        counts = XMLExtractor().dump(options.file, config_manager.get_xml_config(overrides))

        if options.format == "json":
            print(json.dumps(counts, indent=2))
        else:
            width = max((len(address) for address in counts), default=0)
            for address, count in counts.items():
                print(f"{address.ljust(width)}  {count}")

        logger.info(f"Found {len(counts)} distinct addresses in {options.file}")
        return 0

    except ExtractionError as e:
        logger.error(f"Command {options.command} failed: {e}")
        print(f"ERROR: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
