"""Registry of temporary files owned by one loader.

Nested archives have to exist as real files for ``zipimport`` to read them. The
arena hands out those files and deletes every one of them when it is closed.
"""

import logging
import os
import pathlib
import tempfile
import threading
from types import TracebackType
import weakref

from python_nestloader.errors import LoaderError


class TemporaryArena:
    """Owns temporary files until :meth:`close`.

    :ivar directory: Directory files are created in (``None`` for the system default).
    """

    directory: pathlib.Path | None
    _paths: list[pathlib.Path]
    _closed: bool
    _lock: threading.Lock
    _logger: logging.Logger
    _finalizer: weakref.finalize

    def __init__(
        self,
        directory: pathlib.Path | None = None,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self.directory = directory
        self._paths = []
        self._closed = False
        self._lock = threading.Lock()
        self._logger = logger if logger is not None else logging.getLogger("python_nestloader")
        # Fallback for arenas that are never closed: runs on garbage collection or at exit.
        self._finalizer = weakref.finalize(self, _unlink_all, self._paths, self._logger)

    @property
    def paths(self) -> tuple[pathlib.Path, ...]:
        """Files currently owned, in allocation order."""

        with self._lock:
            return tuple(self._paths)

    @property
    def closed(self) -> bool:
        return self._closed

    def allocate(self, prefix: str, suffix: str) -> pathlib.Path:
        """Create an empty temporary file and take ownership of it.

        :param prefix: File name prefix.
        :param suffix: File name suffix (kept verbatim, e.g. ``.zip``).
        :returns: Path of the new file.
        :raises LoaderError: If the arena is closed.
        :raises OSError: If the file cannot be created.
        """

        with self._lock:
            if self._closed is True:
                raise LoaderError("temporary arena is closed")
            fd, name = tempfile.mkstemp(prefix=prefix, suffix=suffix, dir=self.directory)
            os.close(fd)
            path: pathlib.Path = pathlib.Path(name)
            self._paths.append(path)
            return path

    def release(self, path: pathlib.Path) -> None:
        """Delete one owned file now.

        :param path: File previously returned by :meth:`allocate`.
        """

        with self._lock:
            if path not in self._paths:
                return
            self._paths.remove(path)
        self._unlink(path)

    def close(self) -> None:
        """Delete every owned file. Safe to call more than once."""

        with self._lock:
            self._closed = True
            paths: list[pathlib.Path] = list(self._paths)
            self._paths.clear()
            self._finalizer.detach()

        _unlink_all(paths, self._logger)
        if len(paths) > 0:
            self._logger.debug(f"python-nestloader: removed {len(paths)} temporary files")

    def _unlink(self, path: pathlib.Path) -> None:
        _unlink_all([path], self._logger)

    def __enter__(self) -> "TemporaryArena":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


def _unlink_all(paths: list[pathlib.Path], logger: logging.Logger) -> None:
    """Delete files, logging the ones that cannot be removed.

    :param paths: Files to delete (already-missing files are fine).
    :param logger: Logger for removal failures.
    """

    for path in list(paths):
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"python-nestloader: could not remove {path}: {e}")
