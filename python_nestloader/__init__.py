"""python-nestloader.

Runs a program packaged in an archive that embeds further archives (at any
depth), resolving the program's modules from the bundle before anything the
interpreter would otherwise provide.
"""

from python_nestloader.config import LoaderConfig, resolve_loader_config
from python_nestloader.errors import (
    EntryPointMissingError,
    ExtractionError,
    InvocationError,
    LoaderError,
    UnitNotFoundError,
)
from python_nestloader.invoker import invoke_main, launch
from python_nestloader.loader import DelegatingLoader, import_default
from python_nestloader.search_path import SearchPath, SearchPathEntry, build_search_path

__all__: list[str] = [
    "DelegatingLoader",
    "EntryPointMissingError",
    "ExtractionError",
    "InvocationError",
    "LoaderConfig",
    "LoaderError",
    "SearchPath",
    "SearchPathEntry",
    "UnitNotFoundError",
    "__version__",
    "build_search_path",
    "import_default",
    "invoke_main",
    "launch",
    "resolve_loader_config",
]

__version__: str = "0.1.0"
