import io
import logging
import pathlib
import sys
import types
from collections.abc import Callable
import zipfile

import pytest


Members = dict[str, bytes | str]


def _zip_bytes(members: Members) -> bytes:
    buf: io.BytesIO = io.BytesIO()
    with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for name, data in members.items():
            if isinstance(data, str):
                data = data.encode("utf-8")
            zf.writestr(name, data)
    return buf.getvalue()


@pytest.fixture
def zip_bytes() -> Callable[[Members], bytes]:
    """Build zip archive bytes from a member-name-to-content mapping."""
    return _zip_bytes


@pytest.fixture
def write_zip(tmp_path: pathlib.Path) -> Callable[[str, Members], pathlib.Path]:
    """Write a zip archive under ``tmp_path`` and return its path."""

    def _write(name: str, members: Members) -> pathlib.Path:
        path: pathlib.Path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(_zip_bytes(members))
        return path

    return _write


@pytest.fixture
def counter(monkeypatch: pytest.MonkeyPatch) -> types.ModuleType:
    """An importable ``nl_counter`` module whose ``hits`` list bundled code can append to."""
    mod: types.ModuleType = types.ModuleType("nl_counter")
    mod.hits = []
    monkeypatch.setitem(sys.modules, "nl_counter", mod)
    return mod


@pytest.fixture(autouse=True)
def isolate_imports():
    """Drop test modules and restore sys.path after each test."""
    saved_path: list[str] = list(sys.path)
    yield
    for name in [n for n in sys.modules if n.startswith("nl_")]:
        del sys.modules[name]
    sys.path[:] = saved_path


@pytest.fixture(autouse=True)
def reset_logger():
    """Undo logger changes made by the CLI so caplog keeps working."""
    logger: logging.Logger = logging.getLogger("python_nestloader")
    yield
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
