"""Module entrypoint for running dflowtool CLI commands.

Usage: python -m dflowtool <command> [options]
"""

from __future__ import annotations

import sys
from typing import Optional

from tools.cli.discover_schemas import main as discover_schemas_main


def print_usage() -> None:
    """Print CLI usage information."""
    print("dflowtool - DFlow Prediction Markets live-data schema discovery")
    print("")
    print("Usage: dflowtool <command> [options]")
    print("       python -m dflowtool <command> [options]")
    print("")
    print("Commands:")
    print("  discover-schemas  Crawl live data and generate types, examples and templates")
    print("")
    print("Options:")
    print("  -h, --help        Show this help message")
    print("  --version         Show version information")
    print("")
    print("Examples:")
    print("  dflowtool discover-schemas                   # default Sports category")
    print("  dflowtool discover-schemas Basketball Golf   # specific tags only")
    print("  dflowtool discover-schemas --all             # crawl every category")


def print_version() -> None:
    """Print version information."""
    from dflowtool import __version__
    print(f"dflowtool {__version__}")


def main(argv: Optional[list[str]] = None) -> int:
    """Main CLI entrypoint."""
    if argv is None:
        argv = sys.argv[1:]

    if len(argv) < 1:
        print_usage()
        return 1

    command = argv[0]

    if command in ("-h", "--help"):
        print_usage()
        return 0

    if command in ("-v", "--version"):
        print_version()
        return 0

    if command == "discover-schemas":
        return discover_schemas_main(argv[1:])

    print(f"Unknown command: {command}")
    print_usage()
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
