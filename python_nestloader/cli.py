"""Command line interface for python-nestloader."""

import argparse
import logging
import pathlib
import sys

from python_nestloader.arena import TemporaryArena
from python_nestloader.config import ConfigError, LoaderConfig, resolve_loader_config
from python_nestloader.errors import LoaderError
from python_nestloader.invoker import launch
from python_nestloader.search_path import SearchPath, build_search_path


def _configure_logging(*, verbose: int, quiet: int) -> logging.Logger:
    """Configure the python-nestloader logger.

    :param verbose: Verbosity count (0+).
    :param quiet: Quietness count (0+).
    :returns: Configured logger.
    """

    level: int = logging.WARNING
    if quiet >= 1:
        level = logging.ERROR
    elif verbose >= 2:
        level = logging.DEBUG
    elif verbose >= 1:
        level = logging.INFO

    logger: logging.Logger = logging.getLogger("python_nestloader")
    logger.setLevel(level)
    logger.propagate = False

    handler: logging.Handler = logging.StreamHandler(stream=sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(message)s"))

    logger.handlers.clear()
    logger.addHandler(handler)
    return logger


def _add_common_options(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "archive",
        type=pathlib.Path,
        help="Root archive (or directory) holding the program and its nested archives.",
    )
    p.add_argument(
        "--suffix",
        action="append",
        default=None,
        help="Archive suffix to recognize (repeatable). Replaces the default set.",
    )
    p.add_argument(
        "--inner-root",
        action="append",
        default=None,
        help="Directory inside the root archive to add to the search path (repeatable).",
    )
    p.add_argument(
        "--strict",
        action="store_true",
        default=None,
        help="Fail on the first nested archive that cannot be extracted.",
    )
    p.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Enable verbose logging. Pass twice for debug output.",
    )
    p.add_argument(
        "-q",
        "--quiet",
        action="count",
        default=0,
        help="Only log errors.",
    )


def main(argv: list[str] | None = None) -> int:
    """Run the python-nestloader CLI.

    :param argv: Optional argv list (excluding program name).
    :returns: Exit code.
    """

    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="python-nestloader",
        description="Run a program packaged in an archive with nested archives, bundle-first.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    p_run = subparsers.add_parser(
        "run",
        help="Resolve a module from the archive and call its entry function.",
    )
    _add_common_options(p_run)
    p_run.add_argument(
        "--entry",
        type=str,
        default=None,
        help="Name of the entry function (default: main).",
    )
    p_run.add_argument(
        "unit",
        type=str,
        help="Dotted module name to run.",
    )
    p_run.add_argument(
        "args",
        nargs=argparse.REMAINDER,
        help="Arguments forwarded to the entry function.",
    )

    p_path = subparsers.add_parser(
        "path",
        help="Print the search path discovered for an archive.",
    )
    _add_common_options(p_path)

    ns = parser.parse_args(argv)
    logger: logging.Logger = _configure_logging(verbose=ns.verbose, quiet=ns.quiet)

    try:
        config: LoaderConfig = resolve_loader_config(
            suffixes_override=ns.suffix,
            inner_roots_override=ns.inner_root,
            strict_override=ns.strict,
            entry_point_override=getattr(ns, "entry", None),
        )
    except ConfigError as e:
        parser.error(str(e))

    try:
        if ns.command == "run":
            launch(ns.unit, ns.args, root=ns.archive, config=config, logger=logger)
            return 0
        if ns.command == "path":
            _print_search_path(archive=ns.archive, config=config, logger=logger)
            return 0
    except LoaderError as e:
        logger.error(f"python-nestloader: {e.kind}: {e}")
        return 1

    raise AssertionError(f"Unhandled command: {ns.command}")


def _print_search_path(*, archive: pathlib.Path, config: LoaderConfig, logger: logging.Logger) -> None:
    """Discover the search path for ``archive`` and print it to stdout.

    Extracted copies are deleted before returning, so entries are shown by
    their origin inside the parent archive.

    :param archive: Root archive.
    :param config: Loader config.
    :param logger: Logger for progress output.
    """

    with TemporaryArena(config.temp_dir, logger=logger) as arena:
        search_path: SearchPath = build_search_path(archive, config=config, arena=arena, logger=logger)
        for entry in search_path.entries:
            if entry.member is None:
                print(f"{entry.index}\t{entry.location}")
            else:
                print(f"{entry.index}\t{entry.parent}!{entry.member}")
        for failure in search_path.failures:
            print(f"skipped\t{failure.archive}!{failure.entry}\t{failure.error}")
