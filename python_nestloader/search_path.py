"""Search path discovery.

Walks a root archive and every archive nested inside it (at any depth),
extracting each nested archive to a temporary file. The resulting entries are
ordered root first, then nested archives depth-first in member order.

Nested archives that cannot be extracted or opened are skipped and reported in
:attr:`SearchPath.failures` unless the config asks for strict behavior.
Archives are assumed to be acyclic.
"""

from dataclasses import dataclass
import logging
import pathlib
import zipfile

from python_nestloader.arena import TemporaryArena
from python_nestloader.config import LoaderConfig
from python_nestloader.errors import ExtractionError
from python_nestloader.extractor import extract_entry, is_archive_name


@dataclass(frozen=True, slots=True)
class SearchPathEntry:
    """One location on the search path.

    :ivar location: Filesystem location (archive, extracted copy, or directory).
    :ivar index: Position on the search path (0 is the root).
    :ivar parent: Archive this entry was extracted from, if any.
    :ivar member: Member name within ``parent``, if any.
    """

    location: pathlib.Path
    index: int
    parent: pathlib.Path | None = None
    member: str | None = None


@dataclass(frozen=True, slots=True)
class ExtractionFailure:
    """A nested archive that was skipped.

    :ivar archive: Archive containing the bad member.
    :ivar entry: Member name.
    :ivar error: The extraction error.
    """

    archive: pathlib.Path
    entry: str
    error: ExtractionError


@dataclass(frozen=True, slots=True)
class SearchPath:
    """Ordered search path plus the nested archives that could not be used."""

    entries: tuple[SearchPathEntry, ...]
    failures: tuple[ExtractionFailure, ...] = ()

    @property
    def locations(self) -> list[str]:
        """Entry locations as strings, in lookup order."""

        return [str(e.location) for e in self.entries]

    def __len__(self) -> int:
        return len(self.entries)


def build_search_path(
    root: pathlib.Path,
    *,
    config: LoaderConfig,
    arena: TemporaryArena,
    logger: logging.Logger | None = None,
) -> SearchPath:
    """Build the search path for a root archive.

    :param root: Root archive (or directory).
    :param config: Loader config (suffixes, inner roots, strictness).
    :param arena: Arena that owns extracted copies.
    :param logger: Optional logger for progress output.
    :returns: The search path.
    :raises ExtractionError: If the root cannot be read, or a nested archive fails in strict mode.
    """

    if logger is None:
        logger = logging.getLogger("python_nestloader")

    root = pathlib.Path(root).absolute()
    if root.exists() is False:
        raise ExtractionError(root, None, "does not exist")

    walker: _Walker = _Walker(config=config, arena=arena, logger=logger)
    walker.add(location=root, parent=None, member=None)

    if root.is_file() is True and is_archive_name(root.name, config.archive_suffixes) is True:
        try:
            zf: zipfile.ZipFile = zipfile.ZipFile(root, mode="r")
        except (OSError, zipfile.BadZipFile) as e:
            raise ExtractionError(root, None, str(e)) from e
        with zf:
            walker.walk(archive=root, zf=zf)

    for inner in config.inner_roots:
        walker.add(location=root / inner, parent=root, member=f"{inner}/")

    logger.info(
        f"python-nestloader: search path has {len(walker.entries)} entries "
        f"({len(walker.failures)} nested archives skipped)"
    )
    return SearchPath(entries=tuple(walker.entries), failures=tuple(walker.failures))


class _Walker:
    """Accumulates entries and failures during one build."""

    entries: list[SearchPathEntry]
    failures: list[ExtractionFailure]

    def __init__(self, *, config: LoaderConfig, arena: TemporaryArena, logger: logging.Logger) -> None:
        self._config = config
        self._arena = arena
        self._logger = logger
        self.entries = []
        self.failures = []

    def add(self, *, location: pathlib.Path, parent: pathlib.Path | None, member: str | None) -> None:
        entry: SearchPathEntry = SearchPathEntry(
            location=location,
            index=len(self.entries),
            parent=parent,
            member=member,
        )
        self.entries.append(entry)
        if self._logger.isEnabledFor(logging.DEBUG) is True:
            origin: str = "" if member is None else f" (from {parent}!{member})"
            self._logger.debug(f"python-nestloader: search path [{entry.index}] {location}{origin}")

    def walk(self, *, archive: pathlib.Path, zf: zipfile.ZipFile) -> None:
        """Add every nested archive of ``zf``, depth-first, in member order."""

        for info in zf.infolist():
            if info.is_dir() is True:
                continue
            if is_archive_name(info.filename, self._config.archive_suffixes) is False:
                continue

            try:
                nested: pathlib.Path = extract_entry(archive=archive, zf=zf, info=info, arena=self._arena)
                nested_zf: zipfile.ZipFile = self._open_nested(archive=archive, entry=info.filename, path=nested)
            except ExtractionError as e:
                if self._config.strict is True:
                    raise
                self.failures.append(ExtractionFailure(archive=archive, entry=info.filename, error=e))
                self._logger.warning(f"python-nestloader: skipping nested archive: {e}")
                continue

            with nested_zf:
                self.add(location=nested, parent=archive, member=info.filename)
                self.walk(archive=nested, zf=nested_zf)

    def _open_nested(self, *, archive: pathlib.Path, entry: str, path: pathlib.Path) -> zipfile.ZipFile:
        try:
            return zipfile.ZipFile(path, mode="r")
        except (OSError, zipfile.BadZipFile) as e:
            self._arena.release(path)
            raise ExtractionError(archive, entry, str(e)) from e
