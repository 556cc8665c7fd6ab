"""modsources - licenses and sources of Go modules and their dependencies.

Entry point: parses arguments, resolves settings, seeds the dependency walker
from the selected root and prints one template line per resolved module.
"""

import logging
import os
import sys
from typing import List, Optional

from archive import OutputSink
from args import parse_args
from buildinfo import GoToolBuildInfoReader
from common.errors import ConfigError, ModSourcesError
from common.logging_utils import add_file_handler, configure_logging, extra_context, is_debug_enabled
from config import Settings, load_settings
from constants import Commands, Constants, ExitCodes
from gomod.models import ResolvedModule
from licenses.scanner import LicenseScanner
from registry.fetcher import ModuleFetcher
from report import export_report, render
from walker import DependencyWalker

logger = logging.getLogger(__name__)


def _setup_logging(args) -> None:
    """Apply --loglevel/--debug/--logfile on top of the environment defaults."""
    level = "DEBUG" if getattr(args, "DEBUG", False) else getattr(args, "LOG_LEVEL", None)
    if level:
        os.environ[Constants.LOG_LEVEL_ENV] = level
    configure_logging(level)
    if getattr(args, "LOG_FILE", None):
        add_file_handler(args.LOG_FILE)


def build_walker(args, settings: Settings) -> DependencyWalker:
    """Wire fetcher, scanner and sink for one run."""
    outpath = settings.out if args.COMMAND == Commands.SOURCES.value else None
    return DependencyWalker(
        fetcher=ModuleFetcher(settings),
        scanner=LicenseScanner(),
        sink=OutputSink(outpath, settings.prefix),
        recursive=args.RECURSIVE,
        build_info_reader=GoToolBuildInfoReader(),
    )


def run(args, settings: Settings) -> List[ResolvedModule]:
    """Walk from the root selected on the command line.

    Returns:
        Resolved modules in walk order.

    Raises:
        ModSourcesError: On the first fatal walker error.
    """
    if args.COMMAND == Commands.SOURCES.value and not settings.out:
        raise ConfigError("the sources command requires an output directory (--out)")
    if args.VERSION and not args.MODULE:
        logger.warning("--version is only meaningful with --module, ignoring it")
    if args.FIND and not (args.SRC or args.BINARY):
        logger.warning("--find is only meaningful with --src and --binary, ignoring it")

    walker = build_walker(args, settings)
    target = args.TARGET
    if args.MODULE:
        return walker.walk_module(target, args.VERSION)
    if args.LOCKFILE:
        return walker.walk_lockfile(target)
    if args.SRC:
        if args.FIND:
            return walker.find_sources(target)
        return walker.walk_source(target)
    if args.FIND:
        return walker.find_binaries(target)
    return walker.walk_binary(target)


def main(argv: Optional[List[str]] = None) -> None:
    """Main function of the program."""
    args = parse_args(argv)
    _setup_logging(args)

    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(event="function_entry", component="cli", action=args.COMMAND)
        )

    try:
        settings = load_settings(args)
        modules = run(args, settings)
        for line in render(modules, settings.template):
            print(line)
        if args.REPORT:
            export_report(modules, args.REPORT, args.REPORT_FORMAT)
    except ModSourcesError as exc:
        logger.error("%s", exc)
        sys.exit(exc.exit_code)

    logger.info("Resolved %d modules.", len(modules))
    sys.exit(ExitCodes.SUCCESS.value)


if __name__ == "__main__":
    main()
