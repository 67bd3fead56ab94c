from __future__ import annotations

import sys
import logging
import argparse
from pathlib import Path

from text_finder.core.config_loader import load_config, FinderSettings
from text_finder.core.remote.bridge import BoundaryError, build_bridge
from text_finder.core.search.models import SearchRequest
from text_finder.core.search.service import SearchCoordinator

EXIT_MATCHED = 0
EXIT_NOT_MATCHED = 1
EXIT_BOUNDARY_FAILURE = 2
EXIT_CONFIG_ERROR = 3


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="text-finder",
        description="Exit 0 if the build output contains the regular expression, 1 otherwise.",
    )
    parser.add_argument("--regex", required=True, help="Regular expression searched line by line.")
    parser.add_argument("--include", default=None, help="Ant-style file pattern(s), e.g. '**/*.log'.")
    parser.add_argument("--workspace", default=".", help="Workspace root the pattern is resolved against.")
    parser.add_argument("--console", default=None,
                        help="Console transcript to scan first ('-' reads stdin).")
    parser.add_argument("--config", default=None, help="Config YAML (overrides TEXT_FINDER_CONFIG_FILE).")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    config = load_config(str(Path(args.config).resolve()) if args.config else None)
    if config["status"] == "ERROR":
        print(f"Configuration error: {config['error']}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    settings = FinderSettings.from_config(config["data"])
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    request = SearchRequest(
        regex=args.regex,
        include_pattern=args.include,
        also_scan_console=args.console is not None,
    )
    coordinator = SearchCoordinator(build_bridge(settings), settings)

    console = None
    if args.console == "-":
        console = sys.stdin
    elif args.console is not None:
        try:
            console = open(args.console, "r", encoding=settings.encoding, errors="replace")
        except OSError as e:
            print(f"Text Finder: cannot read console transcript: {e}", file=sys.stderr)
            return EXIT_CONFIG_ERROR

    try:
        found = coordinator.evaluate(request, args.workspace, console, sys.stdout)
    except BoundaryError as e:
        print(f"Text Finder: file phase failed: {e}", file=sys.stderr)
        return EXIT_BOUNDARY_FAILURE
    finally:
        if console is not None and console is not sys.stdin:
            console.close()

    return EXIT_MATCHED if found else EXIT_NOT_MATCHED


if __name__ == "__main__":
    raise SystemExit(main())
