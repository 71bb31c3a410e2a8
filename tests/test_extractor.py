"""Tests for nested archive extraction."""

import io
import pathlib
import zipfile

import pytest

from python_nestloader.arena import TemporaryArena
from python_nestloader.errors import ExtractionError
from python_nestloader.extractor import (
    check_member_name,
    extract_entry,
    is_archive_name,
    temp_name_parts,
)


SUFFIXES = (".zip", ".jar")


@pytest.mark.parametrize(
    "name, expected",
    [
        ("lib/a.zip", True),
        ("LIB/A.ZIP", True),
        ("deps.Jar", True),
        ("module.py", False),
        ("zip", False),
    ],
)
def test_is_archive_name(name, expected):
    assert is_archive_name(name, SUFFIXES) is expected


def test_temp_name_parts():
    assert temp_name_parts("lib/core.zip") == ("lib_core.", ".zip")
    assert temp_name_parts("a.b.whl") == ("a.b.", ".whl")
    assert temp_name_parts("noext") == ("noext.", "")


@pytest.mark.parametrize("name", ["/abs.zip", "../up.zip", "a/../../b.zip", "c:evil.zip", "dir\\x.zip"])
def test_check_member_name_rejects_unsafe_names(tmp_path, name):
    with pytest.raises(ExtractionError) as exc_info:
        check_member_name(tmp_path / "app.zip", name)
    assert exc_info.value.entry == name
    assert exc_info.value.kind == "ExtractionFailed"


def test_extract_entry_copies_bytes_and_keeps_suffix(tmp_path, write_zip, zip_bytes):
    inner: bytes = zip_bytes({"nl_mod.py": "VALUE = 1\n"})
    archive: pathlib.Path = write_zip("app.zip", {"lib/inner.zip": inner})

    with TemporaryArena(tmp_path) as arena, zipfile.ZipFile(archive) as zf:
        out: pathlib.Path = extract_entry(archive=archive, zf=zf, info=zf.getinfo("lib/inner.zip"), arena=arena)

        assert out.parent == tmp_path
        assert out.name.startswith("lib_inner.")
        assert out.suffix == ".zip"
        assert out.read_bytes() == inner
        assert arena.paths == (out,)

    assert out.exists() is False


def test_extract_entry_releases_file_on_read_error(tmp_path, write_zip, monkeypatch):
    archive: pathlib.Path = write_zip("app.zip", {"inner.zip": b"payload"})

    def broken_copy(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr("python_nestloader.extractor.shutil.copyfileobj", broken_copy)

    with TemporaryArena(tmp_path) as arena, zipfile.ZipFile(archive) as zf:
        with pytest.raises(ExtractionError, match="disk full") as exc_info:
            extract_entry(archive=archive, zf=zf, info=zf.getinfo("inner.zip"), arena=arena)

        assert isinstance(exc_info.value.__cause__, OSError)
        assert exc_info.value.archive == archive
        assert exc_info.value.entry == "inner.zip"
        assert arena.paths == ()
        assert list(tmp_path.glob("inner.*.zip")) == []


def test_extract_entry_reports_crc_mismatch(tmp_path):
    buf: io.BytesIO = io.BytesIO()
    with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_STORED) as zf:
        zf.writestr("inner.zip", b"A" * 64)
    raw: bytearray = bytearray(buf.getvalue())
    # Flip a byte of the stored member data; the local header is 30 bytes + name.
    raw[30 + len("inner.zip") + 10] ^= 0xFF
    archive: pathlib.Path = tmp_path / "app.zip"
    archive.write_bytes(bytes(raw))

    with TemporaryArena(tmp_path) as arena, zipfile.ZipFile(archive) as zf:
        with pytest.raises(ExtractionError):
            extract_entry(archive=archive, zf=zf, info=zf.getinfo("inner.zip"), arena=arena)
        assert arena.paths == ()
