"""Bundle-first unit resolution.

:class:`DelegatingLoader` resolves dotted module names against its own search
path before asking the interpreter's default import system. Resolution is a
fixed, ordered tuple of resolvers; each returns a module or ``None`` and the
first module found wins. Resolved units are cached per loader.
"""

from collections.abc import Callable
import importlib
import importlib.machinery
import importlib.util
import logging
import os
import pathlib
import sys
import threading
from types import ModuleType, TracebackType

from python_nestloader.arena import TemporaryArena
from python_nestloader.config import LoaderConfig
from python_nestloader.errors import InvocationError, LoaderError, UnitNotFoundError
from python_nestloader.search_path import ExtractionFailure, SearchPath, build_search_path


Resolver = Callable[[str], ModuleType | None]


def import_default(name: str) -> ModuleType | None:
    """Resolve a unit with the interpreter's default import system.

    :param name: Dotted module name.
    :returns: The module, or ``None`` if it (or one of its parents) does not exist.
    :raises Exception: Whatever the module's own code raises while importing.
    """

    try:
        return importlib.import_module(name)
    except ModuleNotFoundError as e:
        missing: str | None = e.name
        if missing is not None and (missing == name or name.startswith(f"{missing}.") is True):
            return None
        raise


class DelegatingLoader:
    """Resolves units from a search path first, then from a fallback resolver.

    The loader owns the arena holding extracted nested archives; :meth:`close`
    releases it.
    """

    _search_path: SearchPath
    _locations: list[str]
    _arena: TemporaryArena | None
    _resolvers: tuple[Resolver, ...]
    _units: dict[str, ModuleType]
    _local_names: set[str]
    _lock: threading.RLock
    _installed: bool
    _logger: logging.Logger

    def __init__(
        self,
        search_path: SearchPath,
        *,
        arena: TemporaryArena | None = None,
        fallback: Resolver | None = import_default,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize the loader.

        :param search_path: Search path built by :func:`build_search_path`.
        :param arena: Arena owning the search path's temporary files, if any.
        :param fallback: Resolver consulted after the search path (``None`` for none).
        :param logger: Optional logger.
        """

        self._search_path = search_path
        self._locations = search_path.locations
        self._arena = arena
        resolvers: list[Resolver] = [self._resolve_local]
        if fallback is not None:
            resolvers.append(fallback)
        self._resolvers = tuple(resolvers)
        self._units = {}
        self._local_names = set()
        self._lock = threading.RLock()
        self._installed = False
        self._logger = logger if logger is not None else logging.getLogger("python_nestloader")

    @classmethod
    def from_archive(
        cls,
        root: pathlib.Path,
        *,
        config: LoaderConfig | None = None,
        fallback: Resolver | None = import_default,
        logger: logging.Logger | None = None,
    ) -> "DelegatingLoader":
        """Discover the nested archives under ``root`` and build a loader over them.

        :param root: Root archive or directory.
        :param config: Optional loader config.
        :param fallback: Resolver consulted after the search path.
        :param logger: Optional logger.
        :returns: A new loader owning its extracted archives.
        :raises ExtractionError: If the root cannot be read (or strict mode hits a bad nested archive).
        """

        if config is None:
            config = LoaderConfig()

        arena: TemporaryArena = TemporaryArena(config.temp_dir, logger=logger)
        try:
            search_path: SearchPath = build_search_path(root, config=config, arena=arena, logger=logger)
        except BaseException:
            arena.close()
            raise
        return cls(search_path, arena=arena, fallback=fallback, logger=logger)

    @property
    def search_path(self) -> SearchPath:
        return self._search_path

    @property
    def failures(self) -> tuple[ExtractionFailure, ...]:
        return self._search_path.failures

    @property
    def resolvers(self) -> tuple[Resolver, ...]:
        return self._resolvers

    def is_cached(self, name: str) -> bool:
        with self._lock:
            return name in self._units

    def cached_names(self) -> list[str]:
        with self._lock:
            return sorted(self._units)

    def resolve(self, name: str) -> ModuleType:
        """Resolve a unit by dotted name.

        Cached units are returned as-is. Otherwise each resolver is tried in
        order and the first result is cached. The whole sequence runs under the
        loader's lock, so concurrent callers asking for the same name resolve it
        once.

        The lock is held while a unit body executes. The body may call
        :meth:`resolve` again on the same thread, but it must not wait on another
        thread that resolves through this loader, or both threads block.

        :param name: Dotted module name.
        :returns: The resolved module.
        :raises UnitNotFoundError: If no resolver has the unit.
        :raises InvocationError: If the unit's own code raised while loading.
        """

        with self._lock:
            cached: ModuleType | None = self._units.get(name)
            if cached is not None:
                if self._logger.isEnabledFor(logging.DEBUG) is True:
                    self._logger.debug(f"python-nestloader: cache hit for {name!r}")
                return cached

            for resolver in self._resolvers:
                try:
                    unit: ModuleType | None = resolver(name)
                except LoaderError:
                    raise
                except Exception as e:
                    raise InvocationError(name, e) from e

                if unit is None:
                    continue
                self._units[name] = unit
                if self._logger.isEnabledFor(logging.DEBUG) is True:
                    source: str = getattr(resolver, "__name__", repr(resolver))
                    self._logger.debug(f"python-nestloader: resolved {name!r} via {source}")
                return unit

            raise UnitNotFoundError(name)

    def find_local(self, name: str) -> importlib.machinery.ModuleSpec | None:
        """Find a unit's spec on this loader's search path only.

        For dotted names the parent package is resolved locally first; a
        parent that is not on the search path means the child is not either.

        :param name: Dotted module name.
        :returns: A module spec, or ``None`` if the search path does not have it.
        """

        parent_name, _, _ = name.rpartition(".")
        if len(parent_name) == 0:
            return importlib.machinery.PathFinder.find_spec(name, self._locations)

        with self._lock:
            parent: ModuleType | None = self._resolve_local(parent_name)
        if parent is None:
            return None
        parent_path: list[str] | None = getattr(parent, "__path__", None)
        if parent_path is None:
            return None
        return importlib.machinery.PathFinder.find_spec(name, list(parent_path))

    def owns(self, module: ModuleType) -> bool:
        """Check whether a module was loaded from one of this loader's locations.

        :param module: Module to check.
        :returns: ``True`` if its origin lies on the search path.
        """

        spec: importlib.machinery.ModuleSpec | None = getattr(module, "__spec__", None)
        if spec is None:
            return False

        candidates: list[str] = []
        if spec.origin is not None:
            candidates.append(spec.origin)
        if spec.submodule_search_locations is not None:
            candidates.extend(spec.submodule_search_locations)

        for candidate in candidates:
            for loc in self._locations:
                if candidate == loc or candidate.startswith(loc + os.sep) is True:
                    return True
        return False

    def _resolve_local(self, name: str) -> ModuleType | None:
        """Resolve ``name`` from the search path, loading it if needed.

        :param name: Dotted module name.
        :returns: The module, or ``None`` if the search path does not have it.
        """

        cached: ModuleType | None = self._units.get(name)
        if cached is not None:
            return cached if name in self._local_names else None

        existing: ModuleType | None = sys.modules.get(name)
        if existing is not None and self.owns(existing) is True:
            self._remember_local(name, existing)
            return existing

        spec: importlib.machinery.ModuleSpec | None = self.find_local(name)
        if spec is None or spec.loader is None:
            return None

        module: ModuleType = importlib.util.module_from_spec(spec)
        previous: ModuleType | None = sys.modules.get(name)
        sys.modules[name] = module
        try:
            spec.loader.exec_module(module)
        except BaseException:
            if previous is not None:
                sys.modules[name] = previous
            else:
                sys.modules.pop(name, None)
            raise

        # A module may replace itself in sys.modules while executing.
        loaded: ModuleType = sys.modules.get(name, module)
        self._remember_local(name, loaded)
        return loaded

    def _remember_local(self, name: str, module: ModuleType) -> None:
        self._units[name] = module
        self._local_names.add(name)
        parent_name, _, child = name.rpartition(".")
        if len(parent_name) > 0 and parent_name in self._units:
            setattr(self._units[parent_name], child, module)

    def install(self) -> None:
        """Put the search path in front of ``sys.path``.

        Imports performed by resolved units then also find bundled modules
        before anything else the interpreter knows about.
        """

        with self._lock:
            if self._installed is True:
                return
            for loc in reversed(self._locations):
                if loc in sys.path:
                    sys.path.remove(loc)
                sys.path.insert(0, loc)
            self._installed = True
            self._logger.debug(f"python-nestloader: installed {len(self._locations)} entries on sys.path")

    def uninstall(self) -> None:
        """Remove the search path from ``sys.path``."""

        with self._lock:
            if self._installed is False:
                return
            for loc in self._locations:
                if loc in sys.path:
                    sys.path.remove(loc)
            self._installed = False

    def close(self) -> None:
        """Uninstall, forget locally loaded units and delete extracted archives."""

        with self._lock:
            self.uninstall()
            for name in self._local_names:
                if sys.modules.get(name) is self._units.get(name):
                    del sys.modules[name]
            self._units.clear()
            self._local_names.clear()
            for loc in self._locations:
                sys.path_importer_cache.pop(loc, None)
            importlib.invalidate_caches()
            if self._arena is not None:
                self._arena.close()

    def __enter__(self) -> "DelegatingLoader":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
