"""Nested archive extraction.

A nested archive is copied out of its parent into a temporary file so it can be
opened (and imported from) like any other archive on disk.
"""

import pathlib
import shutil
import zipfile
import zlib

from python_nestloader.arena import TemporaryArena
from python_nestloader.errors import ExtractionError


def is_archive_name(name: str, suffixes: tuple[str, ...]) -> bool:
    """Check whether a file or member name carries an archive suffix.

    :param name: File name or zip member name.
    :param suffixes: Lowercase suffixes including the dot.
    :returns: ``True`` if the name ends with one of ``suffixes`` (case-insensitive).
    """

    lowered: str = name.lower()
    for suffix in suffixes:
        if lowered.endswith(suffix) is True:
            return True
    return False


def temp_name_parts(entry_name: str) -> tuple[str, str]:
    """Derive the temporary file prefix and suffix for a member.

    ``lib/core.zip`` becomes ``("lib_core.", ".zip")`` so that the extracted file
    is named ``lib_core.<random>.zip``.

    :param entry_name: Zip member name.
    :returns: ``(prefix, suffix)``.
    """

    name: str = entry_name.replace("/", "_")
    i: int = name.rfind(".")
    suffix: str = name[i:] if i > -1 else ""
    return (name[0 : len(name) - len(suffix)] + ".", suffix)


def check_member_name(archive: pathlib.Path, name: str) -> None:
    """Refuse member names that could not have come from a sane packaging tool.

    :param archive: Archive the member belongs to.
    :param name: Zip member name.
    :raises ExtractionError: If the name is absolute, drive-like or traverses upwards.
    """

    if "\\" in name:
        raise ExtractionError(archive, name, "backslash in member name")
    if ":" in name:
        raise ExtractionError(archive, name, "drive-like member name")
    p = pathlib.PurePosixPath(name)
    if p.is_absolute() is True:
        raise ExtractionError(archive, name, "absolute member name")
    if ".." in p.parts:
        raise ExtractionError(archive, name, "parent-traversal member name")


def extract_entry(
    *,
    archive: pathlib.Path,
    zf: zipfile.ZipFile,
    info: zipfile.ZipInfo,
    arena: TemporaryArena,
) -> pathlib.Path:
    """Copy one member of an open archive into a new temporary file.

    :param archive: Path of the archive ``zf`` was opened from (for errors).
    :param zf: Open archive.
    :param info: Member to copy.
    :param arena: Arena that owns the new file.
    :returns: Path of the extracted copy.
    :raises ExtractionError: If the member cannot be read or the copy cannot be written.
    """

    check_member_name(archive, info.filename)
    prefix, suffix = temp_name_parts(info.filename)

    try:
        out_path: pathlib.Path = arena.allocate(prefix, suffix)
    except OSError as e:
        raise ExtractionError(archive, info.filename, str(e)) from e

    try:
        with zf.open(info, mode="r") as src, open(out_path, "wb") as dst:
            shutil.copyfileobj(src, dst)
    except (OSError, zipfile.BadZipFile, zlib.error, EOFError, RuntimeError, NotImplementedError) as e:
        # RuntimeError: encrypted member. NotImplementedError: unsupported compression.
        arena.release(out_path)
        raise ExtractionError(archive, info.filename, str(e)) from e

    return out_path
