"""Loader configuration.

Values come from explicit overrides first (CLI flags or keyword arguments),
then from environment variables, then from defaults:

- ``PYTHON_NESTLOADER_SUFFIXES``: comma separated archive suffixes.
- ``PYTHON_NESTLOADER_STRICT``: abort on the first nested archive failure.
- ``PYTHON_NESTLOADER_TMPDIR``: directory for extracted nested archives.
- ``PYTHON_NESTLOADER_ENTRY``: name of the entry function.
"""

from dataclasses import dataclass
import os
import pathlib


class ConfigError(ValueError):
    """Raised when a configuration value cannot be used."""


DEFAULT_ARCHIVE_SUFFIXES: tuple[str, ...] = (".zip", ".whl", ".egg", ".pyz", ".jar", ".war")
DEFAULT_ENTRY_POINT: str = "main"


@dataclass(frozen=True, slots=True)
class LoaderConfig:
    """Search path and invocation settings.

    :ivar archive_suffixes: Lowercase suffixes that mark a member as a nested archive.
    :ivar inner_roots: Directories inside the root archive appended to the search path.
    :ivar strict: Raise on the first nested archive failure instead of skipping it.
    :ivar temp_dir: Directory for extracted archives (``None`` for the system default).
    :ivar entry_point: Name of the function invoked on a resolved unit.
    """

    archive_suffixes: tuple[str, ...] = DEFAULT_ARCHIVE_SUFFIXES
    inner_roots: tuple[str, ...] = ()
    strict: bool = False
    temp_dir: pathlib.Path | None = None
    entry_point: str = DEFAULT_ENTRY_POINT


def resolve_loader_config(
    *,
    suffixes_override: list[str] | None = None,
    inner_roots_override: list[str] | None = None,
    strict_override: bool | None = None,
    temp_dir_override: pathlib.Path | None = None,
    entry_point_override: str | None = None,
) -> LoaderConfig:
    """Resolve overrides and environment variables into a :class:`~LoaderConfig`.

    :param suffixes_override: Optional explicit archive suffixes.
    :param inner_roots_override: Optional explicit inner roots.
    :param strict_override: Optional explicit strict flag.
    :param temp_dir_override: Optional explicit extraction directory.
    :param entry_point_override: Optional explicit entry function name.
    :returns: Resolved config.
    :raises ConfigError: If a value is invalid.
    """

    suffixes: tuple[str, ...]
    if suffixes_override is not None:
        suffixes = _normalize_suffixes(suffixes_override)
    else:
        env_suffixes: str | None = os.environ.get("PYTHON_NESTLOADER_SUFFIXES")
        if env_suffixes is not None and len(env_suffixes.strip()) > 0:
            suffixes = _normalize_suffixes(env_suffixes.split(","))
        else:
            suffixes = DEFAULT_ARCHIVE_SUFFIXES

    inner_roots: tuple[str, ...] = ()
    if inner_roots_override is not None:
        inner_roots = tuple(_normalize_inner_root(r) for r in inner_roots_override)

    strict: bool = False
    if strict_override is not None:
        strict = strict_override
    else:
        env_strict: str | None = os.environ.get("PYTHON_NESTLOADER_STRICT")
        if env_strict is not None and len(env_strict) > 0:
            parsed: bool | None = _parse_env_bool(env_strict)
            if parsed is None:
                raise ConfigError(f"Invalid PYTHON_NESTLOADER_STRICT={env_strict!r}; expected a boolean.")
            strict = parsed

    temp_dir: pathlib.Path | None = temp_dir_override
    if temp_dir is None:
        env_tmp: str | None = os.environ.get("PYTHON_NESTLOADER_TMPDIR")
        if env_tmp is not None and len(env_tmp) > 0:
            temp_dir = pathlib.Path(env_tmp)
    if temp_dir is not None and temp_dir.is_dir() is False:
        raise ConfigError(f"Extraction directory does not exist: {temp_dir}")

    entry_point: str = DEFAULT_ENTRY_POINT
    if entry_point_override is not None:
        entry_point = entry_point_override
    else:
        env_entry: str | None = os.environ.get("PYTHON_NESTLOADER_ENTRY")
        if env_entry is not None and len(env_entry) > 0:
            entry_point = env_entry
    if entry_point.isidentifier() is False:
        raise ConfigError(f"Invalid entry point name {entry_point!r}; expected an identifier.")

    return LoaderConfig(
        archive_suffixes=suffixes,
        inner_roots=inner_roots,
        strict=strict,
        temp_dir=temp_dir,
        entry_point=entry_point,
    )


def _normalize_suffixes(raw: list[str]) -> tuple[str, ...]:
    """Normalize suffixes to lowercase, dot-prefixed and de-duplicated form.

    :param raw: Suffixes as given (``"JAR"``, ``".zip"``, ...).
    :returns: Normalized suffixes in first-seen order.
    :raises ConfigError: If no usable suffix remains.
    """

    out: list[str] = []
    for item in raw:
        s: str = item.strip().lower()
        if len(s) == 0:
            continue
        if s.startswith(".") is False:
            s = f".{s}"
        if s == ".":
            raise ConfigError(f"Invalid archive suffix {item!r}.")
        if s not in out:
            out.append(s)

    if len(out) == 0:
        raise ConfigError("At least one archive suffix is required.")
    return tuple(out)


def _normalize_inner_root(raw: str) -> str:
    """Normalize an inner root into a relative POSIX path without slashes at the ends.

    :param raw: Inner root as given.
    :returns: Normalized path.
    :raises ConfigError: If the path escapes the archive.
    """

    v: str = raw.replace("\\", "/").strip("/")
    parts: list[str] = [p for p in v.split("/") if len(p) > 0 and p != "."]
    if len(parts) == 0 or ".." in parts:
        raise ConfigError(f"Invalid inner root {raw!r}; expected a directory inside the archive.")
    return "/".join(parts)


def _parse_env_bool(value: str) -> bool | None:
    """Parse a string into a boolean.

    :param value: Raw environment variable string.
    :returns: Parsed boolean, or ``None`` if unknown.
    """

    v: str = value.strip().lower()
    if v in {"1", "true", "yes", "on"}:
        return True
    if v in {"0", "false", "no", "off"}:
        return False
    return None
