"""
Conversion of raw CSV text into typed values, and placeholder value generation
"""

import re
import secrets
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Optional

from .models import ColumnDataType
from ..errors import ConversionError

INT64_MIN = -(1 << 63)
INT64_MAX = (1 << 63) - 1

TRUE_LITERALS = frozenset(['true', 't', '1', 'yes', 'y'])
FALSE_LITERALS = frozenset(['false', 'f', '0', 'no', 'n'])

DATE_FORMAT = '%Y-%m-%d'
TIMESTAMP_FALLBACK_FORMAT = '%Y-%m-%d %H:%M:%S'

ZERO_DATE = date(1, 1, 1)
ZERO_TIMESTAMP = datetime(1, 1, 1)

# ASCII digits only; matched with fullmatch so a trailing newline is rejected
_INTEGER_PATTERN = re.compile(r'[+-]?[0-9]+')
_FLOAT_PATTERN = re.compile(
    r'[+-]?([0-9]+(\.[0-9]*)?|\.[0-9]+)([eE][+-]?[0-9]+)?'
    r'|[+-]?(inf|infinity|nan)',
    re.IGNORECASE,
)
_DATE_PATTERN = re.compile(r'[0-9]{4}-[0-9]{2}-[0-9]{2}')
_PLAIN_TIMESTAMP_PATTERN = re.compile(r'[0-9]{4}-[0-9]{2}-[0-9]{2} [0-9]{2}:[0-9]{2}:[0-9]{2}')
_RFC3339_PATTERN = re.compile(
    r'(?P<base>[0-9]{4}-[0-9]{2}-[0-9]{2}[Tt][0-9]{2}:[0-9]{2}:[0-9]{2})'
    r'(?:\.(?P<fraction>[0-9]+))?'
    r'(?P<offset>[Zz]|[+-][0-9]{2}:[0-9]{2})'
)


def parse_bool(value: str) -> Optional[bool]:
    """Parse a boolean literal, returning None when the text is not one"""
    lowered = value.strip().lower()
    if lowered in TRUE_LITERALS:
        return True
    if lowered in FALSE_LITERALS:
        return False
    return None


def _zero_value(data_type: ColumnDataType, column_name: Optional[str]) -> Any:
    if data_type is ColumnDataType.STRING:
        return ''
    if data_type is ColumnDataType.INTEGER:
        return 0
    if data_type is ColumnDataType.FLOAT:
        return 0.0
    if data_type is ColumnDataType.BOOLEAN:
        return False
    if data_type is ColumnDataType.DATE:
        return ZERO_DATE
    if data_type is ColumnDataType.TIMESTAMP:
        return ZERO_TIMESTAMP
    raise ConversionError(
        '', data_type,
        f"non-nullable column with no default and empty CSV value for type {data_type}",
        column=column_name,
    )


def _parse_rfc3339(value: str) -> Optional[datetime]:
    match = _RFC3339_PATTERN.fullmatch(value)
    if not match:
        return None
    text = match.group('base').replace('t', 'T')
    fraction = match.group('fraction')
    if fraction:
        text += '.' + fraction[:6].ljust(6, '0')
    offset = match.group('offset')
    text += '+00:00' if offset in ('Z', 'z') else offset
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def convert_to_db_type(raw: str, data_type: ColumnDataType, is_nullable: bool,
                       default: Optional[str] = None,
                       column_name: Optional[str] = None) -> Any:
    """Convert a CSV field to the Python value bound for a column.

    Empty input becomes None for nullable columns, the converted default when
    one exists, and otherwise the type's zero value. Non-empty input is parsed
    strictly; any failure raises ConversionError.
    """
    if raw == '' and is_nullable:
        return None
    if raw == '' and default is not None:
        raw = default
    if raw == '':
        return _zero_value(data_type, column_name)

    if data_type is ColumnDataType.STRING:
        return raw

    if data_type is ColumnDataType.INTEGER:
        if not _INTEGER_PATTERN.fullmatch(raw):
            raise ConversionError(raw, data_type, "invalid syntax", column=column_name)
        value = int(raw)
        if value < INT64_MIN or value > INT64_MAX:
            raise ConversionError(raw, data_type, "value out of range", column=column_name)
        return value

    if data_type is ColumnDataType.FLOAT:
        if not _FLOAT_PATTERN.fullmatch(raw):
            raise ConversionError(raw, data_type, "invalid syntax", column=column_name)
        return float(raw)

    if data_type is ColumnDataType.BOOLEAN:
        value = parse_bool(raw)
        if value is None:
            raise ConversionError(raw, data_type, "invalid syntax", column=column_name)
        return value

    if data_type is ColumnDataType.DATE:
        if not _DATE_PATTERN.fullmatch(raw):
            raise ConversionError(raw, data_type, "expected YYYY-MM-DD", column=column_name)
        try:
            return datetime.strptime(raw, DATE_FORMAT).date()
        except ValueError as e:
            raise ConversionError(raw, data_type, str(e), column=column_name)

    if data_type is ColumnDataType.TIMESTAMP:
        value = _parse_rfc3339(raw)
        if value is not None:
            return value
        if not _PLAIN_TIMESTAMP_PATTERN.fullmatch(raw):
            raise ConversionError(raw, data_type, "expected RFC3339 or YYYY-MM-DD HH:MM:SS",
                                  column=column_name)
        try:
            return datetime.strptime(raw, TIMESTAMP_FALLBACK_FORMAT)
        except ValueError as e:
            raise ConversionError(raw, data_type, str(e), column=column_name)

    raise ConversionError(raw, data_type, f"unsupported data type '{data_type}'",
                          column=column_name)


def generate_random_value(data_type: ColumnDataType) -> Any:
    """Generate a placeholder value for a unique column on a synthesized row"""
    if data_type is ColumnDataType.STRING:
        return secrets.token_hex(16)
    if data_type is ColumnDataType.INTEGER:
        return secrets.randbelow(INT64_MAX)
    if data_type is ColumnDataType.FLOAT:
        scale = 1_000_000_000
        return secrets.randbelow(scale) / scale
    if data_type is ColumnDataType.BOOLEAN:
        return secrets.randbits(1) == 0
    if data_type in (ColumnDataType.DATE, ColumnDataType.TIMESTAMP):
        now = datetime.now(timezone.utc).replace(tzinfo=None, microsecond=0)
        try:
            ten_years_ago = now.replace(year=now.year - 10)
        except ValueError:
            # Feb 29 -> Feb 28
            ten_years_ago = now.replace(year=now.year - 10, day=28)
        span = int((now - ten_years_ago).total_seconds())
        moment = ten_years_ago + timedelta(seconds=secrets.randbelow(span) if span > 0 else 0)
        if data_type is ColumnDataType.DATE:
            return moment.date()
        return moment
    raise ValueError(f"unsupported data type for random value generation: {data_type}")


def format_value(value: Any) -> str:
    """Render a typed value back into the text form convert_to_db_type accepts"""
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return format(Decimal(repr(value)), 'f')
    if isinstance(value, datetime):
        text = (f"{value.year:04d}-{value.month:02d}-{value.day:02d}"
                f"T{value.hour:02d}:{value.minute:02d}:{value.second:02d}")
        offset = value.utcoffset()
        if offset is None or offset == timedelta(0):
            return text + 'Z'
        sign = '-' if offset < timedelta(0) else '+'
        minutes = abs(int(offset.total_seconds())) // 60
        return f"{text}{sign}{minutes // 60:02d}:{minutes % 60:02d}"
    if isinstance(value, date):
        return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"
    return str(value)
