"""Tests for entry point invocation."""

import pathlib
import sys

import pytest

import python_nestloader
from python_nestloader.config import LoaderConfig
from python_nestloader.errors import EntryPointMissingError, InvocationError, UnitNotFoundError
from python_nestloader.invoker import invoke_main, launch, packaging_location
from python_nestloader.loader import DelegatingLoader


RECORDING_MAIN = """
import nl_counter

def main(argv):
    nl_counter.hits.append(argv)
"""


def test_invoke_main_passes_arguments(tmp_path, write_zip, zip_bytes, counter):
    root = write_zip("app.zip", {"lib/app.zip": zip_bytes({"nl_app/cli.py": RECORDING_MAIN, "nl_app/__init__.py": ""})})

    with DelegatingLoader.from_archive(root, config=LoaderConfig(temp_dir=tmp_path)) as loader:
        invoke_main(loader, "nl_app.cli", ("a", "--flag"))

    assert counter.hits == [["a", "--flag"]]


def test_scenario_c_missing_unit(tmp_path, write_zip):
    root = write_zip("app.zip", {"nl_present.py": ""})

    with DelegatingLoader.from_archive(root, config=LoaderConfig(temp_dir=tmp_path)) as loader:
        with pytest.raises(UnitNotFoundError) as exc_info:
            invoke_main(loader, "Missing.Unit", [])

    assert exc_info.value.unit == "Missing.Unit"
    assert "Missing.Unit" in str(exc_info.value)


@pytest.mark.parametrize("source", ["VALUE = 1\n", "main = 'not callable'\n"])
def test_missing_entry_point(tmp_path, write_zip, source):
    root = write_zip("app.zip", {"nl_noentry.py": source})

    with DelegatingLoader.from_archive(root, config=LoaderConfig(temp_dir=tmp_path)) as loader:
        with pytest.raises(EntryPointMissingError) as exc_info:
            invoke_main(loader, "nl_noentry", [])

    assert exc_info.value.unit == "nl_noentry"
    assert exc_info.value.entry_point == "main"
    assert exc_info.value.kind == "EntryPointMissing"


def test_failure_inside_entry_point_is_wrapped(tmp_path, write_zip):
    root = write_zip("app.zip", {"nl_fails.py": "def main(argv):\n    raise KeyError(argv[0])\n"})

    with DelegatingLoader.from_archive(root, config=LoaderConfig(temp_dir=tmp_path)) as loader:
        with pytest.raises(InvocationError) as exc_info:
            invoke_main(loader, "nl_fails", ["boom"])

    err = exc_info.value
    assert err.kind == "InvocationFailed"
    assert err.unit == "nl_fails"
    assert isinstance(err.cause, KeyError)
    assert err.__cause__ is err.cause
    assert not isinstance(err, UnitNotFoundError)


def test_system_exit_is_not_wrapped(tmp_path, write_zip):
    root = write_zip("app.zip", {"nl_exits.py": "import sys\ndef main(argv):\n    sys.exit(3)\n"})

    with DelegatingLoader.from_archive(root, config=LoaderConfig(temp_dir=tmp_path)) as loader:
        with pytest.raises(SystemExit) as exc_info:
            invoke_main(loader, "nl_exits", [])

    assert exc_info.value.code == 3


def test_custom_entry_point(tmp_path, write_zip, counter):
    root = write_zip("app.zip", {"nl_custom.py": "import nl_counter\ndef run(argv):\n    nl_counter.hits.extend(argv)\n"})

    with DelegatingLoader.from_archive(root, config=LoaderConfig(temp_dir=tmp_path)) as loader:
        invoke_main(loader, "nl_custom", ["x"], entry_point="run")

    assert counter.hits == ["x"]


def test_launch_installs_bundle_and_cleans_up(tmp_path, write_zip, zip_bytes, counter):
    runner = (
        "import os\n"
        "import nl_counter\n"
        "import nl_dep\n"
        "def main(argv):\n"
        "    nl_counter.hits.append((nl_dep.VALUE, len(os.listdir(argv[0]))))\n"
    )
    root = write_zip(
        "app.zip",
        {"nl_runner.py": runner, "lib/dep.zip": zip_bytes({"nl_dep.py": "VALUE = 'bundled'\n"})},
    )
    extract_dir = tmp_path / "extract"
    extract_dir.mkdir()

    launch("nl_runner", [str(extract_dir)], root=root, config=LoaderConfig(temp_dir=extract_dir))

    assert counter.hits == [("bundled", 1)]
    assert list(extract_dir.iterdir()) == []
    assert str(root) not in sys.path


def test_packaging_location_finds_enclosing_archive(tmp_path):
    bundle = tmp_path / "app.pyz"
    bundle.write_bytes(b"")

    assert packaging_location(bundle / "lib" / "python_nestloader") == bundle
    assert packaging_location(tmp_path) == tmp_path


def test_packaging_location_defaults_to_import_root():
    here = pathlib.Path(python_nestloader.__file__).absolute()
    assert packaging_location() == here.parent.parent
