"""Error kinds raised by the loader.

Each error carries a ``kind`` string so callers (and the CLI) can report which
failure happened without matching on class names.
"""

import pathlib


class LoaderError(RuntimeError):
    """Base class for loader failures."""

    kind: str = "LoaderError"


class ExtractionError(LoaderError):
    """Raised when an archive, or a nested archive inside it, cannot be read or copied.

    :ivar archive: Archive that was being read.
    :ivar entry: Member name within ``archive`` (``None`` for the archive itself).
    """

    kind = "ExtractionFailed"

    archive: pathlib.Path
    entry: str | None

    def __init__(self, archive: pathlib.Path, entry: str | None, detail: str | None = None) -> None:
        self.archive = archive
        self.entry = entry
        where: str = str(archive) if entry is None else f"{archive}!{entry}"
        message: str = f"cannot extract {where}"
        if detail is not None:
            message = f"{message}: {detail}"
        super().__init__(message)


class UnitNotFoundError(LoaderError):
    """Raised when neither the search path nor the fallback resolver has a unit.

    :ivar unit: Dotted unit name that was requested.
    """

    kind = "UnitNotFound"

    unit: str

    def __init__(self, unit: str) -> None:
        self.unit = unit
        super().__init__(f"unit not found: {unit!r}")


class EntryPointMissingError(LoaderError):
    """Raised when a unit resolved but has no callable entry function.

    :ivar unit: Dotted unit name.
    :ivar entry_point: Attribute name that was looked up.
    """

    kind = "EntryPointMissing"

    unit: str
    entry_point: str

    def __init__(self, unit: str, entry_point: str) -> None:
        self.unit = unit
        self.entry_point = entry_point
        super().__init__(f"unit {unit!r} has no callable {entry_point!r}")


class InvocationError(LoaderError):
    """Raised when a unit's own code raised while running.

    :ivar unit: Dotted unit name.
    :ivar cause: The exception raised by the unit.
    """

    kind = "InvocationFailed"

    unit: str
    cause: BaseException

    def __init__(self, unit: str, cause: BaseException) -> None:
        self.unit = unit
        self.cause = cause
        super().__init__(f"unit {unit!r} raised {type(cause).__name__}: {cause}")
