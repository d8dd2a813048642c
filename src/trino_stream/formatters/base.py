"""Formatter protocol, registry and value rendering shared by formatters."""

from __future__ import annotations

import base64
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from trino_stream.core.types import RowValue

if TYPE_CHECKING:
    from collections.abc import Iterator

    from trino_stream.core.models import QueryResult


@runtime_checkable
class Formatter(Protocol):
    """Protocol for output formatters.

    Each formatter turns a QueryResult into lines of text, yielded one at a
    time so callers can write them as they are produced.
    """

    def format(self, result: QueryResult) -> Iterator[str]: ...


class FormatterRegistry:
    """Registry for looking up formatters by name."""

    def __init__(self) -> None:
        self._formatters: dict[str, type[Formatter]] = {}

    def register(self, name: str, formatter_class: type[Formatter]) -> None:
        self._formatters[name] = formatter_class

    def get(self, name: str, **kwargs: object) -> Formatter:
        """Return a formatter instance by name.

        Raises KeyError if the format name is not registered.
        """
        if name not in self._formatters:
            available = ", ".join(sorted(self._formatters))
            msg = f"Unknown format {name!r}. Available: {available}"
            raise KeyError(msg)
        return self._formatters[name](**kwargs)

    @property
    def available(self) -> list[str]:
        return sorted(self._formatters)


registry = FormatterRegistry()


def to_text(value: Any) -> str:
    """Render one decoded value as display text. ``None`` renders empty."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, bytes):
        return value.hex()
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, (list, tuple, dict)):
        return _composite_text(value)
    return str(value)


def _composite_text(value: Any) -> str:
    if isinstance(value, RowValue):
        parts = [
            f"{name}={to_text(item)}" if name else to_text(item)
            for name, item in zip(value.names, value, strict=True)
        ]
        return "{" + ", ".join(parts) + "}"
    if isinstance(value, dict):
        return "{" + ", ".join(f"{to_text(k)}={to_text(v)}" for k, v in value.items()) + "}"
    return "[" + ", ".join("NULL" if v is None else to_text(v) for v in value) + "]"


def to_jsonable(value: Any) -> Any:
    """Convert a decoded value to something ``json.dumps`` accepts as-is."""
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, float):
        # NaN and infinities are not valid JSON numbers.
        return value if value == value and abs(value) != float("inf") else str(value)
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, bytes):
        return base64.b64encode(value).decode("ascii")
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, timedelta):
        return value.total_seconds()
    if isinstance(value, RowValue):
        if all(value.names):
            return {name: to_jsonable(item) for name, item in value.as_dict().items()}
        return [to_jsonable(item) for item in value]
    if isinstance(value, dict):
        return {to_text(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(item) for item in value]
    return str(value)
