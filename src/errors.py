from __future__ import annotations

from typing import Any, Optional


class PainError(Exception):
    """Base class for every error raised while building or reading pain messages."""


class FormatError(PainError, ValueError):
    """An amount, date or timestamp string does not match the wire grammar."""

    def __init__(self, message: str, value: Any = None, field: Optional[str] = None):
        self.value = value
        self.field = field
        if field:
            message = f"{field}: {message}"
        super().__init__(f"{message} (got {value!r})")


class ConversionError(PainError, ValueError):
    """A Document could not be turned into an Order.

    `field` is the XML path of the offending element, `index` the zero based
    position of the transaction when the failure is inside one.
    """

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None, index: Optional[int] = None):
        self.field = field
        self.value = value
        self.index = index
        where = field or "document"
        if index is not None:
            where = f"transaction {index}: {where}"
        super().__init__(f"{where}: {message}")


class DocumentError(PainError, ValueError):
    """The XML payload is not a pain document this package can read."""


class RandomnessError(PainError, RuntimeError):
    """The operating system entropy source is unavailable."""


class GenerationError(PainError, RuntimeError):
    """A Document could not be built from an Order."""
