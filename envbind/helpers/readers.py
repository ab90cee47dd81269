"""Environment readers: where unmarshalled values come from.

The marshaler only needs something satisfying :class:`EnvReader`. Three
readers ship with the package:

- ``OsEnvReader``: the process environment (optionally after loading a
  ``.env`` file into it).
- ``MappingEnvReader``: a plain dict, handy in tests and for values fetched
  from elsewhere (secret managers, CI variables, ...).
- ``DotenvReader``: a ``.env`` file read without touching ``os.environ``.

Env:
  Whatever keys the target classes declare in their ``env`` tags.
"""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import (
    Callable,
    Iterable,
    List,
    Mapping,
    Optional,
    Protocol,
    Tuple,
    Union,
    runtime_checkable,
)

from dotenv import dotenv_values, find_dotenv, load_dotenv
from loguru import logger

LookupFn = Callable[[str], Tuple[str, bool]]


@runtime_checkable
class EnvReader(Protocol):
    """Ability to look up single values and to check many keys at once."""

    def lookup_env(self, key: str) -> Tuple[str, bool]:
        """Return ``(value, True)`` if ``key`` is set, else ``("", False)``."""
        ...

    def has_keys(self, keys: Iterable[str]) -> Tuple[bool, List[str]]:
        """Return whether all keys are set, and the ones that are not."""
        ...


class BaseEnvReader(ABC):
    """Shared ``has_keys`` implementation on top of ``lookup_env``."""

    @abstractmethod
    def lookup_env(self, key: str) -> Tuple[str, bool]:
        """Return ``(value, True)`` if ``key`` is set, else ``("", False)``."""

    def has_keys(self, keys: Iterable[str]) -> Tuple[bool, List[str]]:
        """Return whether every key has a value, plus the missing ones in order."""
        missing = [key for key in keys if not self.lookup_env(key)[1]]
        return len(missing) == 0, missing


def _lookup_os_environ(key: str) -> Tuple[str, bool]:
    value = os.environ.get(key)
    if value is None:
        return "", False
    return value, True


class OsEnvReader(BaseEnvReader):
    """Reads from the process environment.

    Args:
        lookup: Optional replacement for the ``os.environ`` lookup.
    """

    def __init__(self, lookup: Optional[LookupFn] = None) -> None:
        self._lookup: LookupFn = lookup or _lookup_os_environ

    def lookup_env(self, key: str) -> Tuple[str, bool]:
        return self._lookup(key)

    @classmethod
    def from_dotenv(
        cls, path: Union[str, Path, None] = None, *, override: bool = False
    ) -> "OsEnvReader":
        """Load a ``.env`` file into ``os.environ`` and read from it.

        Without a path, python-dotenv searches upwards from the working
        directory. Existing variables win unless ``override`` is set.
        """
        dotenv_path = str(path) if path is not None else find_dotenv(usecwd=True)
        loaded = load_dotenv(dotenv_path, override=override)
        if loaded:
            logger.debug(f"Loaded dotenv file '{dotenv_path}' into the environment.")
        else:
            logger.warning(f"No variables loaded from dotenv file '{dotenv_path}'.")
        return cls()


class MappingEnvReader(BaseEnvReader):
    """Reads from an in-memory mapping of key to value."""

    def __init__(self, values: Optional[Mapping[str, str]] = None) -> None:
        self.values = dict(values or {})

    def lookup_env(self, key: str) -> Tuple[str, bool]:
        if key in self.values:
            return self.values[key], True
        return "", False


class DotenvReader(BaseEnvReader):
    """Reads a ``.env`` file without exporting it to the process.

    Keys declared without a value (a bare ``KEY`` line) count as unset.
    Keys missing from the file are looked up in ``fallback`` when given.
    """

    def __init__(
        self,
        path: Union[str, Path] = ".env",
        *,
        fallback: Optional[EnvReader] = None,
    ) -> None:
        self.path = Path(path)
        self.fallback = fallback
        if not self.path.exists():
            logger.warning(f"Dotenv file not found at {self.path}; it reads as empty.")
        self.values = dotenv_values(self.path)
        logger.debug(f"Read {len(self.values)} keys from dotenv file '{self.path}'.")

    def lookup_env(self, key: str) -> Tuple[str, bool]:
        value = self.values.get(key)
        if value is not None:
            return value, True
        if self.fallback is not None:
            return self.fallback.lookup_env(key)
        return "", False
