"""Error kinds raised while parsing and unmarshalling environment values.

Every error derives from :class:`EnvError` and from the closest builtin
exception, so callers may catch either. Errors collect context on their way
up the field walk with :meth:`EnvError.wrap`, which keeps the original kind.

Example:
    try:
        marshaler.unmarshal(cfg)
    except MissingKey as e:
        print(e.key, e.field_path)
"""

from __future__ import annotations

from typing import List, Optional


class EnvError(Exception):
    """Base class for all envbind errors."""

    def __init__(self, message: str, *, key: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.key = key
        self.field_path: List[str] = []
        self._context: List[str] = []

    def wrap(self, context: str) -> "EnvError":
        """Prepend a context message and return the same error."""
        self._context.insert(0, context)
        return self

    def add_field(self, name: str, key: Optional[str] = None) -> "EnvError":
        """Record the field (and key) the error surfaced through."""
        self.field_path.insert(0, name)
        if self.key is None:
            self.key = key
        return self

    def __str__(self) -> str:
        return ": ".join([*self._context, self.message])


class InvalidFormat(EnvError, ValueError):
    """The string cannot be read as the target kind."""


class Overflow(EnvError, OverflowError):
    """The parsed value does not fit the target width."""


class UnsupportedType(EnvError, TypeError):
    """The parser has no rule for the target type."""


class ElementError(EnvError, ValueError):
    """A sequence element failed to parse."""

    def __init__(self, index: int, cause: EnvError) -> None:
        super().__init__(f"could not parse element {index}: {cause}")
        self.index = index
        self.cause = cause


class MissingKey(EnvError, LookupError):
    """A tagged field has no value in the environment."""

    def __init__(self, key: str) -> None:
        super().__init__(
            f"cannot retrieve any value from environment var {key}", key=key
        )


class NotStruct(EnvError, TypeError):
    """The target is neither a struct nor a custom unmarshaler."""


class Unsettable(EnvError, TypeError):
    """The target cannot be written to."""


class CustomUnmarshalFailure(EnvError):
    """A type's own ``unmarshal_env`` hook raised."""

    def __init__(self, cause: BaseException) -> None:
        super().__init__(f"custom unmarshal failed: {cause}")
        self.cause = cause
