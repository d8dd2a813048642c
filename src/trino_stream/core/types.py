"""Type decoding for Trino result values.

Parses the type signatures sent in a response's ``columns`` block into
ColumnType values and converts wire values into Python values. The inverse
mapping (``encode_value`` for the wire form, ``to_sql_literal`` for
positional parameters) lives here as well so both directions share the
same formatting rules.

Decoding is strict: out-of-range integers, malformed temporal strings and
decimals wider than their declared precision raise DecodingError rather
than being truncated. The one documented exception is sub-microsecond
precision, which Python's datetime cannot represent; extra fractional
digits are dropped.
"""

from __future__ import annotations

import base64
import binascii
import ipaddress
import math
import re
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any, cast
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from trino_stream.core.exceptions import DecodingError, InputError, ProtocolError

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from trino_stream.core.models import ColumnMeta

_INTEGER_BITS: dict[str, int] = {
    "tinyint": 8,
    "smallint": 16,
    "integer": 32,
    "int": 32,
    "bigint": 64,
}

_BIGINT_MIN = -(1 << 63)
_BIGINT_MAX = (1 << 63) - 1
# Doubles at or past the midpoint between FLT_MAX and the next float32 step
# round to infinity; everything below rounds to a finite float32.
_REAL_OVERFLOW = 3.4028235677973366e38

_SPECIAL_FLOATS: dict[str, float] = {
    "NaN": math.nan,
    "Infinity": math.inf,
    "-Infinity": -math.inf,
}

# Trino's default precision for TIME and TIMESTAMP without an explicit (p).
_DEFAULT_TEMPORAL_PRECISION = 3

_DATE_RE = re.compile(r"^(-?\d{4,})-(\d{2})-(\d{2})$")
_TIME_RE = re.compile(
    r"^(\d{2}):(\d{2}):(\d{2})(?:\.(\d{1,12}))?(?:\s*([+-]\d{2}:\d{2}))?$"
)
_TIMESTAMP_RE = re.compile(
    r"^(-?\d{4,})-(\d{2})-(\d{2}) (\d{2}):(\d{2}):(\d{2})(?:\.(\d{1,12}))?(?: (\S+))?$"
)
_OFFSET_RE = re.compile(r"^([+-])(\d{2}):(\d{2})$")
_DAY_TO_SECOND_RE = re.compile(r"^(-)?(\d+) (\d{2}):(\d{2}):(\d{2})(?:\.(\d{1,9}))?$")

_MULTIWORD_SUFFIXES = (
    " with time zone",
    " without time zone",
    " day to second",
    " year to month",
)


@dataclass(frozen=True)
class RowField:
    name: str | None
    type: ColumnType


@dataclass(frozen=True)
class ColumnType:
    """A parsed type signature.

    ``base`` is the lower-cased type name including multi-word suffixes
    (``timestamp with time zone``); ``arguments`` holds numeric parameters
    such as precision and scale; ``type_arguments`` holds nested types for
    array and map; ``fields`` holds the fields of a row.
    """

    base: str
    signature: str
    arguments: tuple[int, ...] = ()
    type_arguments: tuple[ColumnType, ...] = ()
    fields: tuple[RowField, ...] = field(default=())

    @property
    def precision(self) -> int | None:
        if self.base == "decimal":
            return self.arguments[0] if self.arguments else 38
        if self.base.startswith(("time", "timestamp")):
            return self.arguments[0] if self.arguments else _DEFAULT_TEMPORAL_PRECISION
        return None

    @property
    def scale(self) -> int | None:
        if self.base != "decimal":
            return None
        return self.arguments[1] if len(self.arguments) > 1 else 0

    @property
    def length(self) -> int | None:
        if self.base in ("varchar", "char") and self.arguments:
            return self.arguments[0]
        return None

    @property
    def with_time_zone(self) -> bool:
        return self.base.endswith("with time zone")

    @property
    def element(self) -> ColumnType | None:
        if self.base == "array":
            return self.type_arguments[0]
        return None

    @property
    def key(self) -> ColumnType | None:
        if self.base == "map":
            return self.type_arguments[0]
        return None

    @property
    def value(self) -> ColumnType | None:
        if self.base == "map":
            return self.type_arguments[1]
        return None

    @property
    def is_composite(self) -> bool:
        return self.base in ("array", "map", "row")

    def __str__(self) -> str:
        return self.signature


class RowValue(tuple):
    """Decoded ROW value: a tuple that also exposes its fields by name."""

    _names: tuple[str | None, ...]

    def __new__(cls, values: Sequence[Any], names: Sequence[str | None]) -> RowValue:
        row = super().__new__(cls, values)
        row._names = tuple(names)
        return row

    @property
    def names(self) -> tuple[str | None, ...]:
        return self._names

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            index = self._names.index(name)
        except ValueError:
            raise AttributeError(f"row has no field {name!r}") from None
        return self[index]

    def as_dict(self) -> dict[str, Any]:
        return {
            name: value
            for name, value in zip(self._names, self, strict=True)
            if name is not None
        }

    def __repr__(self) -> str:
        parts = [
            f"{name}={value!r}" if name is not None else repr(value)
            for name, value in zip(self._names, self, strict=True)
        ]
        return f"RowValue({', '.join(parts)})"


# ---------------------------------------------------------------------------
# Signature parsing
# ---------------------------------------------------------------------------


class _SignatureParser:
    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0

    def parse(self) -> ColumnType:
        result = self._parse_type()
        self._skip_ws()
        if self.pos != len(self.text):
            raise self._error("unexpected trailing text")
        return result

    def _error(self, reason: str) -> DecodingError:
        return DecodingError(
            f"Invalid type signature {self.text!r} at position {self.pos}: {reason}"
        )

    def _skip_ws(self) -> None:
        while self.pos < len(self.text) and self.text[self.pos].isspace():
            self.pos += 1

    def _peek(self) -> str:
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def _expect(self, char: str) -> None:
        self._skip_ws()
        if self._peek() != char:
            raise self._error(f"expected {char!r}")
        self.pos += 1

    def _read_word(self) -> str:
        self._skip_ws()
        start = self.pos
        while self.pos < len(self.text) and (
            self.text[self.pos].isalnum() or self.text[self.pos] == "_"
        ):
            self.pos += 1
        return self.text[start : self.pos]

    def _read_suffix(self) -> str:
        rest = self.text[self.pos :].lower()
        for suffix in _MULTIWORD_SUFFIXES:
            stripped = suffix.strip()
            candidate = rest.lstrip()
            if candidate.startswith(stripped) and (
                len(candidate) == len(stripped)
                or not (candidate[len(stripped)].isalnum())
            ):
                self.pos += (len(rest) - len(candidate)) + len(stripped)
                return suffix
        return ""

    def _parse_type(self) -> ColumnType:
        self._skip_ws()
        start = self.pos
        name = self._read_word().lower()
        if not name:
            raise self._error("expected a type name")

        if name == "interval":
            suffix = self._read_suffix()
            if not suffix:
                raise self._error("incomplete interval type")
            name += suffix

        arguments: tuple[int, ...] = ()
        type_arguments: tuple[ColumnType, ...] = ()
        fields: tuple[RowField, ...] = ()

        self._skip_ws()
        if self._peek() == "(":
            self.pos += 1
            if name == "row":
                fields = self._parse_fields()
            else:
                self._skip_ws()
                if self._peek().isdigit():
                    arguments = self._parse_int_arguments()
                else:
                    type_arguments = self._parse_type_arguments()
            self._expect(")")

        if name in ("time", "timestamp"):
            suffix = self._read_suffix()
            if suffix == " with time zone":
                name += suffix

        if name == "array" and len(type_arguments) != 1:
            raise self._error("array takes exactly one element type")
        if name == "map" and len(type_arguments) != 2:
            raise self._error("map takes a key and a value type")

        signature = self.text[start : self.pos].strip()
        return ColumnType(
            base=name,
            signature=signature,
            arguments=arguments,
            type_arguments=type_arguments,
            fields=fields,
        )

    def _parse_int_arguments(self) -> tuple[int, ...]:
        values: list[int] = []
        while True:
            self._skip_ws()
            start = self.pos
            while self._peek().isdigit():
                self.pos += 1
            if start == self.pos:
                raise self._error("expected an integer parameter")
            values.append(int(self.text[start : self.pos]))
            self._skip_ws()
            if self._peek() != ",":
                return tuple(values)
            self.pos += 1

    def _parse_type_arguments(self) -> tuple[ColumnType, ...]:
        values = [self._parse_type()]
        self._skip_ws()
        while self._peek() == ",":
            self.pos += 1
            values.append(self._parse_type())
            self._skip_ws()
        return tuple(values)

    def _parse_fields(self) -> tuple[RowField, ...]:
        fields = [self._parse_field()]
        self._skip_ws()
        while self._peek() == ",":
            self.pos += 1
            fields.append(self._parse_field())
            self._skip_ws()
        return tuple(fields)

    def _parse_field(self) -> RowField:
        self._skip_ws()
        if self._peek() == '"':
            name = self._read_quoted()
            return RowField(name=name, type=self._parse_type())

        start = self.pos
        word = self._read_word()
        self._skip_ws()
        nxt = self._peek()
        rest = self.text[self.pos :].lower()
        anonymous = (
            nxt in (",", ")", "(", "")
            or word.lower() == "interval"
            or (
                word.lower() in ("time", "timestamp")
                and rest.startswith(("with ", "without "))
            )
        )
        if anonymous:
            self.pos = start
            return RowField(name=None, type=self._parse_type())
        return RowField(name=word, type=self._parse_type())

    def _read_quoted(self) -> str:
        self.pos += 1
        chars: list[str] = []
        while self.pos < len(self.text):
            char = self.text[self.pos]
            if char == '"':
                if self.text[self.pos + 1 : self.pos + 2] == '"':
                    chars.append('"')
                    self.pos += 2
                    continue
                self.pos += 1
                return "".join(chars)
            chars.append(char)
            self.pos += 1
        raise self._error("unterminated quoted field name")


def parse_type_signature(signature: str) -> ColumnType:
    """Parse a type signature such as ``map(varchar, array(decimal(10,2)))``."""
    return _SignatureParser(signature).parse()


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------


def _fail(column_type: ColumnType, value: Any, reason: str = "") -> DecodingError:
    detail = f": {reason}" if reason else ""
    return DecodingError(
        f"Cannot decode {value!r} as {column_type.signature}{detail}",
        type_signature=column_type.signature,
    )


def _decode_integer(column_type: ColumnType, value: Any) -> int:
    if isinstance(value, bool):
        raise _fail(column_type, value, "boolean is not an integer")
    if isinstance(value, int):
        result = value
    elif isinstance(value, str):
        try:
            result = int(value.strip())
        except ValueError:
            raise _fail(column_type, value) from None
    elif isinstance(value, float) and value.is_integer():
        result = int(value)
    else:
        raise _fail(column_type, value)

    bits = _INTEGER_BITS[column_type.base]
    low, high = -(1 << (bits - 1)), (1 << (bits - 1)) - 1
    if not low <= result <= high:
        raise _fail(column_type, value, f"out of range [{low}, {high}]")
    return result


def _decode_float(column_type: ColumnType, value: Any) -> float:
    if isinstance(value, bool):
        raise _fail(column_type, value, "boolean is not a number")
    if isinstance(value, str):
        if value in _SPECIAL_FLOATS:
            return _SPECIAL_FLOATS[value]
        try:
            result = float(value)
        except ValueError:
            raise _fail(column_type, value) from None
    elif isinstance(value, (int, float)):
        result = float(value)
    else:
        raise _fail(column_type, value)

    if (
        column_type.base == "real"
        and math.isfinite(result)
        and abs(result) >= _REAL_OVERFLOW
    ):
        raise _fail(column_type, value, "out of range for 32-bit float")
    return result


def _decode_decimal(column_type: ColumnType, value: Any) -> Decimal:
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise _fail(column_type, value, "decimals are transmitted as strings")
    try:
        result = Decimal(str(value).strip())
    except InvalidOperation:
        raise _fail(column_type, value) from None
    if not result.is_finite():
        raise _fail(column_type, value, "not a finite number")

    precision = column_type.precision or 38
    scale = column_type.scale or 0
    _, digits, exponent = result.as_tuple()
    exponent = cast("int", exponent)  # finite, checked above
    fraction_digits = max(0, -exponent)
    integer_digits = max(0, len(digits) + exponent)
    if integer_digits == 1 and digits == (0,):
        integer_digits = 0
    if fraction_digits > scale:
        raise _fail(column_type, value, f"more than {scale} fractional digits")
    if integer_digits > precision - scale:
        raise _fail(column_type, value, f"exceeds precision {precision}")
    return result


def _decode_boolean(column_type: ColumnType, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    # Map keys arrive as JSON object keys, i.e. strings.
    if value in ("true", "false"):
        return value == "true"
    raise _fail(column_type, value)


def _decode_string(column_type: ColumnType, value: Any) -> str:
    if not isinstance(value, str):
        raise _fail(column_type, value, "expected a string")
    return value


def _decode_varbinary(column_type: ColumnType, value: Any) -> bytes:
    if not isinstance(value, str):
        raise _fail(column_type, value, "expected base64 text")
    try:
        return base64.b64decode(value, validate=True)
    except binascii.Error:
        raise _fail(column_type, value, "invalid base64") from None


def _decode_uuid(column_type: ColumnType, value: Any) -> uuid.UUID:
    try:
        return uuid.UUID(value)
    except (TypeError, ValueError, AttributeError):
        raise _fail(column_type, value) from None


def _decode_ipaddress(
    column_type: ColumnType, value: Any
) -> ipaddress.IPv4Address | ipaddress.IPv6Address:
    try:
        return ipaddress.ip_address(value)
    except ValueError:
        raise _fail(column_type, value) from None


def _fraction_to_micros(fraction: str | None) -> int:
    if not fraction:
        return 0
    return int(fraction[:6].ljust(6, "0"))


def _parse_offset(text: str) -> timezone | None:
    match = _OFFSET_RE.match(text)
    if match is None:
        return None
    sign, hours, minutes = match.groups()
    delta = timedelta(hours=int(hours), minutes=int(minutes))
    return timezone(-delta if sign == "-" else delta)


def _parse_zone(column_type: ColumnType, value: Any, zone: str) -> tzinfo:
    offset = _parse_offset(zone)
    if offset is not None:
        return offset
    try:
        return ZoneInfo(zone)
    except (ZoneInfoNotFoundError, ValueError):
        raise _fail(column_type, value, f"unknown time zone {zone!r}") from None


def _decode_date(column_type: ColumnType, value: Any) -> date:
    match = _DATE_RE.match(value) if isinstance(value, str) else None
    if match is None:
        raise _fail(column_type, value)
    year, month, day = (int(part) for part in match.groups())
    try:
        return date(year, month, day)
    except ValueError as e:
        raise _fail(column_type, value, str(e)) from None


def _decode_time(column_type: ColumnType, value: Any) -> time:
    match = _TIME_RE.match(value) if isinstance(value, str) else None
    if match is None:
        raise _fail(column_type, value)
    hour, minute, second, fraction, offset = match.groups()
    if column_type.with_time_zone and offset is None:
        raise _fail(column_type, value, "missing time zone offset")
    if not column_type.with_time_zone and offset is not None:
        raise _fail(column_type, value, "unexpected time zone offset")
    tz = _parse_offset(offset) if offset else None
    try:
        return time(
            int(hour),
            int(minute),
            int(second),
            _fraction_to_micros(fraction),
            tzinfo=tz,
        )
    except ValueError as e:
        raise _fail(column_type, value, str(e)) from None


def _decode_timestamp(column_type: ColumnType, value: Any) -> datetime:
    match = _TIMESTAMP_RE.match(value) if isinstance(value, str) else None
    if match is None:
        raise _fail(column_type, value)
    year, month, day, hour, minute, second, fraction, zone = match.groups()
    if column_type.with_time_zone and zone is None:
        raise _fail(column_type, value, "missing time zone")
    if not column_type.with_time_zone and zone is not None:
        raise _fail(column_type, value, "unexpected time zone")
    tz = _parse_zone(column_type, value, zone) if zone else None
    try:
        return datetime(
            int(year),
            int(month),
            int(day),
            int(hour),
            int(minute),
            int(second),
            _fraction_to_micros(fraction),
            tzinfo=tz,
        )
    except ValueError as e:
        raise _fail(column_type, value, str(e)) from None


def _decode_day_to_second(column_type: ColumnType, value: Any) -> timedelta:
    match = _DAY_TO_SECOND_RE.match(value) if isinstance(value, str) else None
    if match is None:
        raise _fail(column_type, value)
    sign, days, hours, minutes, seconds, fraction = match.groups()
    delta = timedelta(
        days=int(days),
        hours=int(hours),
        minutes=int(minutes),
        seconds=int(seconds),
        microseconds=_fraction_to_micros(fraction),
    )
    return -delta if sign else delta


def _hashable(value: Any) -> Any:
    if isinstance(value, list):
        return tuple(_hashable(item) for item in value)
    if isinstance(value, dict):
        return tuple(sorted(value.items()))
    return value


def _decode_array(column_type: ColumnType, value: Any) -> list[Any]:
    if not isinstance(value, list):
        raise _fail(column_type, value, "expected a JSON array")
    element = column_type.type_arguments[0]
    return [decode_value(element, item) for item in value]


def _decode_map(column_type: ColumnType, value: Any) -> dict[Any, Any]:
    if not isinstance(value, dict):
        raise _fail(column_type, value, "expected a JSON object")
    key_type, value_type = column_type.type_arguments
    return {
        _hashable(decode_value(key_type, key)): decode_value(value_type, item)
        for key, item in value.items()
    }


def _decode_row(column_type: ColumnType, value: Any) -> RowValue:
    names = [f.name for f in column_type.fields]
    if isinstance(value, dict):
        try:
            value = [value[name] for name in names]
        except KeyError as e:
            raise _fail(column_type, value, f"missing field {e}") from None
    if not isinstance(value, list) or len(value) != len(column_type.fields):
        raise _fail(
            column_type, value, f"expected {len(column_type.fields)} row fields"
        )
    return RowValue(
        [decode_value(f.type, item) for f, item in zip(column_type.fields, value, strict=True)],
        names,
    )


def _decode_passthrough(column_type: ColumnType, value: Any) -> Any:
    return value


_DECODERS: dict[str, Callable[[ColumnType, Any], Any]] = {
    "tinyint": _decode_integer,
    "smallint": _decode_integer,
    "integer": _decode_integer,
    "int": _decode_integer,
    "bigint": _decode_integer,
    "real": _decode_float,
    "double": _decode_float,
    "decimal": _decode_decimal,
    "boolean": _decode_boolean,
    "varchar": _decode_string,
    "char": _decode_string,
    "json": _decode_string,
    "varbinary": _decode_varbinary,
    "uuid": _decode_uuid,
    "ipaddress": _decode_ipaddress,
    "date": _decode_date,
    "time": _decode_time,
    "time with time zone": _decode_time,
    "timestamp": _decode_timestamp,
    "timestamp with time zone": _decode_timestamp,
    "interval day to second": _decode_day_to_second,
    "interval year to month": _decode_string,
    "array": _decode_array,
    "map": _decode_map,
    "row": _decode_row,
}


def decode_value(column_type: ColumnType, value: Any) -> Any:
    """Decode one wire value. ``None`` decodes to ``None`` for every type."""
    if value is None:
        return None
    decoder = _DECODERS.get(column_type.base, _decode_passthrough)
    return decoder(column_type, value)


class RowDecoder:
    """Decodes raw rows of one result set into tuples."""

    def __init__(self, columns: Sequence[ColumnMeta]) -> None:
        self.columns = list(columns)

    def decode(self, raw_row: Any) -> tuple[Any, ...]:
        if not isinstance(raw_row, list) or len(raw_row) != len(self.columns):
            msg = (
                f"Row shape does not match {len(self.columns)} columns: {raw_row!r}"
            )
            raise ProtocolError(msg)
        values: list[Any] = []
        for index, (column, value) in enumerate(zip(self.columns, raw_row, strict=True)):
            try:
                values.append(decode_value(column.column_type, value))
            except DecodingError as e:
                raise e.with_column(index, column.name, column.type_name) from e
        return tuple(values)


# ---------------------------------------------------------------------------
# Inverse mapping
# ---------------------------------------------------------------------------


def _format_fraction(microsecond: int, precision: int) -> str:
    if precision <= 0:
        return ""
    digits = f"{microsecond:06d}"
    if precision <= 6:
        return "." + digits[:precision]
    return "." + digits + "0" * (precision - 6)


def _format_offset(offset: timedelta) -> str:
    sign = "-" if offset < timedelta(0) else "+"
    minutes = abs(int(offset.total_seconds())) // 60
    return f"{sign}{minutes // 60:02d}:{minutes % 60:02d}"


def _utc_offset(value: datetime | time) -> timedelta:
    offset = value.utcoffset()
    if offset is None:
        msg = f"Cannot bind {value!r}: its tzinfo reports no UTC offset"
        raise InputError(msg)
    return offset


def _format_zone(value: datetime) -> str:
    if isinstance(value.tzinfo, ZoneInfo):
        return value.tzinfo.key
    return _format_offset(_utc_offset(value))


def _format_time(value: time, precision: int) -> str:
    text = f"{value.hour:02d}:{value.minute:02d}:{value.second:02d}"
    text += _format_fraction(value.microsecond, precision)
    if value.tzinfo is not None:
        text += _format_offset(_utc_offset(value))
    return text


def _format_timestamp(value: datetime, precision: int) -> str:
    text = (
        f"{value.year:04d}-{value.month:02d}-{value.day:02d} "
        f"{value.hour:02d}:{value.minute:02d}:{value.second:02d}"
    )
    text += _format_fraction(value.microsecond, precision)
    if value.tzinfo is not None:
        text += " " + _format_zone(value)
    return text


def _format_day_to_second(value: timedelta) -> str:
    sign = "-" if value < timedelta(0) else ""
    value = abs(value)
    hours, remainder = divmod(value.seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    millis = value.microseconds // 1000
    return f"{sign}{value.days} {hours:02d}:{minutes:02d}:{seconds:02d}.{millis:03d}"


def _encode_map_key(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def encode_value(column_type: ColumnType, value: Any) -> Any:
    """Render a Python value in the JSON wire form of ``column_type``."""
    if value is None:
        return None
    base = column_type.base
    if base in _INTEGER_BITS or base in ("boolean", "varchar", "char", "json"):
        return value
    if base in ("real", "double"):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        return float(value)
    if base == "decimal":
        return format(value, "f")
    if base == "varbinary":
        return base64.b64encode(value).decode("ascii")
    if base in ("uuid", "ipaddress", "interval year to month"):
        return str(value)
    if base == "date":
        return value.isoformat()
    if base in ("time", "time with time zone"):
        return _format_time(value, column_type.precision or 0)
    if base in ("timestamp", "timestamp with time zone"):
        return _format_timestamp(value, column_type.precision or 0)
    if base == "interval day to second":
        return _format_day_to_second(value)
    if base == "array":
        return [encode_value(column_type.type_arguments[0], item) for item in value]
    if base == "map":
        key_type, value_type = column_type.type_arguments
        return {
            _encode_map_key(encode_value(key_type, key)): encode_value(value_type, item)
            for key, item in value.items()
        }
    if base == "row":
        return [
            encode_value(f.type, item)
            for f, item in zip(column_type.fields, value, strict=True)
        ]
    return value


def _quote(text: str) -> str:
    return "'" + text.replace("'", "''") + "'"


def to_sql_literal(value: Any) -> str:
    """Render a positional parameter as a Trino SQL literal."""
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        if _BIGINT_MIN <= value <= _BIGINT_MAX:
            return str(value)
        return f"DECIMAL '{value}'"
    if isinstance(value, float):
        if math.isnan(value):
            return "nan()"
        if math.isinf(value):
            return "infinity()" if value > 0 else "-infinity()"
        return f"DOUBLE '{value!r}'"
    if isinstance(value, Decimal):
        return f"DECIMAL '{format(value, 'f')}'"
    if isinstance(value, str):
        return _quote(value)
    if isinstance(value, (bytes, bytearray)):
        return f"X'{bytes(value).hex()}'"
    if isinstance(value, datetime):
        return f"TIMESTAMP '{_format_timestamp(value, 6)}'"
    if isinstance(value, date):
        return f"DATE '{value.isoformat()}'"
    if isinstance(value, time):
        return f"TIME '{_format_time(value, 6)}'"
    if isinstance(value, uuid.UUID):
        return f"UUID '{value}'"
    if isinstance(value, (list, tuple)):
        return "ARRAY[" + ", ".join(to_sql_literal(item) for item in value) + "]"
    if isinstance(value, dict):
        keys = ", ".join(to_sql_literal(key) for key in value)
        values = ", ".join(to_sql_literal(item) for item in value.values())
        return f"MAP(ARRAY[{keys}], ARRAY[{values}])"
    msg = f"Unsupported parameter type: {type(value).__name__}"
    raise InputError(msg)
