"""Entry point invocation.

A unit's entry point is a module-level callable (``main`` by default) that takes
the program's argument list, in the same shape as ``sys.argv[1:]``.
"""

from collections.abc import Callable, Sequence
import logging
import pathlib
from types import ModuleType

from python_nestloader.config import DEFAULT_ENTRY_POINT, LoaderConfig
from python_nestloader.errors import EntryPointMissingError, InvocationError
from python_nestloader.loader import DelegatingLoader


def invoke_main(
    loader: DelegatingLoader,
    unit_name: str,
    args: Sequence[str],
    *,
    entry_point: str = DEFAULT_ENTRY_POINT,
) -> None:
    """Resolve a unit and call its entry function once, synchronously.

    :param loader: Loader to resolve the unit with.
    :param unit_name: Dotted module name.
    :param args: Arguments passed to the entry function as a list of strings.
    :param entry_point: Name of the entry function.
    :raises UnitNotFoundError: If the unit cannot be resolved.
    :raises EntryPointMissingError: If the unit has no callable ``entry_point``.
    :raises InvocationError: If the unit raised, while loading or while running.
    """

    unit: ModuleType = loader.resolve(unit_name)

    func: Callable[[list[str]], object] | None = getattr(unit, entry_point, None)
    if func is None or callable(func) is False:
        raise EntryPointMissingError(unit_name, entry_point)

    try:
        func(list(args))
    except Exception as e:
        raise InvocationError(unit_name, e) from e


def packaging_location(path: pathlib.Path | None = None) -> pathlib.Path:
    """Return the archive or directory a package was imported from.

    When this package runs from inside an archive (a zipapp, a wheel), the
    import root points into the archive; the first existing ancestor is the
    archive itself.

    :param path: Path to start from (defaults to the directory holding this package).
    :returns: The closest existing ancestor of ``path``.
    """

    start: pathlib.Path
    if path is None:
        start = pathlib.Path(__file__).parent.parent
    else:
        start = pathlib.Path(path)
    current: pathlib.Path = start.absolute()
    while current.exists() is False:
        if current.parent == current:
            break
        current = current.parent
    return current


def launch(
    unit_name: str,
    args: Sequence[str],
    *,
    root: pathlib.Path | None = None,
    config: LoaderConfig | None = None,
    logger: logging.Logger | None = None,
) -> None:
    """Build a loader for ``root``, run ``unit_name``'s entry point, and clean up.

    Without ``root`` the archive this package was loaded from is used, so a
    bundle can launch its own embedded program.

    :param unit_name: Dotted module name.
    :param args: Arguments forwarded to the entry function.
    :param root: Root archive or directory.
    :param config: Optional loader config.
    :param logger: Optional logger.
    :raises LoaderError: If discovery, resolution or invocation fails.
    """

    if config is None:
        config = LoaderConfig()
    if logger is None:
        logger = logging.getLogger("python_nestloader")

    if root is None:
        root = packaging_location()

    logger.info(f"python-nestloader: launching {unit_name!r} from {root}")
    with DelegatingLoader.from_archive(root, config=config, logger=logger) as loader:
        loader.install()
        invoke_main(loader, unit_name, args, entry_point=config.entry_point)
