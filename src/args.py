"""Argument parsing functionality for modsources."""

import argparse
from typing import List, Optional

from constants import Commands, Constants

# subcommand aliases -> canonical command
_ALIASES = {
    "license": Commands.LICENSES.value,
    "source": Commands.SOURCES.value,
}


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    """Flags shared by the licenses and sources subcommands."""
    parser.add_argument("TARGET",
                        help="Module name, source directory, binary or go.sum, depending on the selector")

    root_group = parser.add_mutually_exclusive_group(required=True)
    root_group.add_argument("-m", "--module",
                            dest="MODULE",
                            help="TARGET is the name of a module to find and check from the module proxy",
                            action="store_true")
    root_group.add_argument("-s", "--src",
                            dest="SRC",
                            help="TARGET is a Go module source directory. With --find, every directory "
                                 "in the tree holding a go.mod is scanned.",
                            action="store_true")
    root_group.add_argument("-b", "--binary",
                            dest="BINARY",
                            help="TARGET is a Go binary. With --find, every file in the tree is checked "
                                 "for Go build info.",
                            action="store_true")
    root_group.add_argument("-l", "--lockfile",
                            dest="LOCKFILE",
                            help="TARGET is a go.sum file; every module it lists is checked",
                            action="store_true")

    parser.add_argument("-v", "--version",
                        dest="VERSION",
                        help="Version of the module to check; only meaningful with --module. "
                             "Leave blank to get the latest.",
                        action="store", type=str, default="")
    parser.add_argument("-r", "--recursive",
                        dest="RECURSIVE",
                        help="Follow the requirements of every dependency, not just the root's",
                        action="store_true")
    parser.add_argument("-f", "--find",
                        dest="FIND",
                        help="Search TARGET recursively; only meaningful with --src and --binary",
                        action="store_true")
    parser.add_argument("--prefix",
                        dest="PREFIX",
                        help="Prefix prepended to each output filename",
                        action="store", type=str)
    parser.add_argument("--template",
                        dest="TEMPLATE",
                        help="Output line template. Available fields are: {module}, {version}, "
                             f"{{licenses}}, {{path}} (default: '{Constants.DEFAULT_TEMPLATE}')",
                        action="store", type=str)
    parser.add_argument("-p", "--proxy",
                        dest="PROXY",
                        help=f"Module proxy URL (default: GOPROXY, then {Constants.DEFAULT_PROXY_URL})",
                        action="store", type=str)
    parser.add_argument("--cache-dir",
                        dest="CACHE_DIR",
                        help="Local module cache directory (default: GOMODCACHE, then GOPATH/pkg/mod)",
                        action="store", type=str)
    parser.add_argument("--force-refresh",
                        dest="FORCE_REFRESH",
                        help="Ignore the local module cache and always download from the proxy",
                        action="store_true")
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to a YAML configuration file",
                        action="store", type=str)
    parser.add_argument("--report",
                        dest="REPORT",
                        help="Path to a JSON or CSV report of the resolved modules",
                        action="store", type=str)
    parser.add_argument("--format",
                        dest="REPORT_FORMAT",
                        help="Report format (json or csv). If not specified, inferred from --report "
                             "extension; defaults to json.",
                        action="store",
                        type=str.lower,
                        choices=["json", "csv"])
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str.upper,
                        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])
    parser.add_argument("--debug",
                        dest="DEBUG",
                        help="Enable debug logging (same as --loglevel DEBUG)",
                        action="store_true")
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level parser with its subcommands."""
    parser = argparse.ArgumentParser(
        prog="modsources",
        description=(
            "modsources - list licenses of Go modules and their dependencies, "
            "and download their sources"
        ),
        add_help=True,
    )
    subparsers = parser.add_subparsers(dest="COMMAND", metavar="{licenses,sources}")
    subparsers.required = True

    licenses = subparsers.add_parser(
        Commands.LICENSES.value,
        aliases=["license"],
        help="Check a module and its dependencies for licenses",
    )
    _add_common_arguments(licenses)

    sources = subparsers.add_parser(
        Commands.SOURCES.value,
        aliases=["source"],
        help="Check a module and its dependencies for licenses and write their sources as zip files",
    )
    _add_common_arguments(sources)
    sources.add_argument("-o", "--out",
                         dest="OUT",
                         help="Output directory for the zip files",
                         action="store", type=str)
    return parser


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parses the arguments passed to the program."""
    args = build_parser().parse_args(argv)
    args.COMMAND = _ALIASES.get(args.COMMAND, args.COMMAND)
    if not hasattr(args, "OUT"):
        args.OUT = None
    return args
