"""SQLite literal encoding and local staging helpers."""

import math
import re
import sqlite3
import typing as t
from contextlib import closing
from datetime import date, datetime, time, timedelta
from decimal import Decimal

import simplejson as json
from dateutil.parser import ParserError
from dateutil.parser import parse as dateutil_parse

from .mysql_utils import is_temporal_column_type, translate_type_from_mysql_to_sqlite
from .types import TargetType, ValueKind


DATE_STRING_PATTERN: t.Pattern[str] = re.compile(r"^\d{4}-\d{1,2}-\d{1,2}$")
DATETIME_STRING_PATTERN: t.Pattern[str] = re.compile(
    r"^\d{4}-\d{1,2}-\d{1,2}[ T]\d{1,2}:\d{1,2}:\d{1,2}(?:\.\d+)?$"
)
TIME_STRING_PATTERN: t.Pattern[str] = re.compile(r"^(-?)(\d{1,3}):(\d{1,2}):(\d{1,2})(?:\.\d+)?$")

SQLITE_ESCAPE_PATTERN: t.Pattern[str] = re.compile(r"\r\n|[\x00-\x1f\x7f'\\]")

SQLITE_ESCAPES: t.Dict[str, str] = {
    "'": "''",
    "\\": "\\\\",
    "\r\n": "\\n",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\x00": "\\0",
    "\x0b": "\\v",
    "\x0c": "\\f",
}


def _escape_match(match: t.Match[str]) -> str:
    char: str = match.group(0)
    escaped: t.Optional[str] = SQLITE_ESCAPES.get(char)
    if escaped is not None:
        return escaped
    return "\\x{:02x}".format(ord(char))


def escape_sqlite_string(value: str) -> str:
    r"""Escape a string for use inside a single quoted SQLite literal.

    Every character is replaced in a single pass, so the backslashes introduced
    for line breaks or tabs are never escaped a second time: ``a\b<LF>`` becomes
    ``a\\b\n``.
    """
    return SQLITE_ESCAPE_PATTERN.sub(_escape_match, value)


def quote_sqlite_string(value: str) -> str:
    """Return a single quoted, escaped SQLite string literal."""
    return f"'{escape_sqlite_string(value)}'"


def quote_sqlite_identifier(name: str) -> str:
    """Return a double quoted SQLite identifier with internal quotes escaped."""
    return '"{}"'.format(str(name).replace('"', '""'))


def adapt_timedelta(value: timedelta) -> str:
    """Convert datetime.timedelta to %H:%M:%S string."""
    total_seconds: float = value.total_seconds()
    sign: str = "-" if total_seconds < 0 else ""
    hours, remainder = divmod(abs(total_seconds), 3600)
    minutes, seconds = divmod(remainder, 60)
    return "{}{:02}:{:02}:{:02}".format(sign, int(hours), int(minutes), int(seconds))


def format_temporal(value: t.Any) -> t.Optional[str]:
    """Render a date/time value in the canonical text form stored on D1.

    Returns None when the value cannot be read as a date or time, e.g. MySQL's
    ``0000-00-00`` zero dates.
    """
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%d %H:%M:%S")
    if isinstance(value, date):
        return value.strftime("%Y-%m-%d")
    if isinstance(value, time):
        return value.strftime("%H:%M:%S")
    if isinstance(value, timedelta):
        return adapt_timedelta(value)
    if not isinstance(value, str):
        return None

    stripped: str = value.strip()
    time_match: t.Optional[t.Match[str]] = TIME_STRING_PATTERN.match(stripped)
    if time_match:
        sign, hours, minutes, seconds = time_match.groups()
        return "{}{:02}:{:02}:{:02}".format(sign, int(hours), int(minutes), int(seconds))

    is_date: bool = DATE_STRING_PATTERN.match(stripped) is not None
    if not is_date and DATETIME_STRING_PATTERN.match(stripped) is None:
        return None
    try:
        parsed: datetime = dateutil_parse(stripped)
    except (ParserError, ValueError, OverflowError):
        return None
    return parsed.strftime("%Y-%m-%d" if is_date else "%Y-%m-%d %H:%M:%S")


def classify_value(value: t.Any, column_type: t.Optional[str] = None) -> ValueKind:
    """Combine the runtime value with the declared MySQL column type."""
    if value is None:
        return ValueKind.NULL
    if isinstance(value, bool):
        return ValueKind.BOOLEAN
    if isinstance(value, int):
        return ValueKind.NUMBER
    if isinstance(value, float):
        return ValueKind.NUMBER if math.isfinite(value) else ValueKind.TEXT
    if isinstance(value, Decimal):
        return ValueKind.NUMBER if value.is_finite() else ValueKind.TEXT
    if isinstance(value, (datetime, date, time, timedelta)):
        return ValueKind.TEMPORAL
    if isinstance(value, (bytes, bytearray, memoryview)):
        return ValueKind.BINARY
    if isinstance(value, str) and (column_type is None or is_temporal_column_type(column_type)):
        if format_temporal(value) is not None:
            return ValueKind.TEMPORAL
    return ValueKind.TEXT


def _stringify(value: t.Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (set, frozenset)):
        return ",".join(sorted(str(item) for item in value))
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, default=str, ensure_ascii=False)
    return str(value)


def encode_value_for_sqlite(value: t.Any, column_type: t.Optional[str] = None) -> str:
    """Turn any MySQL value into a SQLite literal.

    This never raises: values of unknown types are stringified and quoted.
    """
    kind: ValueKind = classify_value(value, column_type)

    if kind is ValueKind.NULL:
        return "NULL"
    if kind is ValueKind.BOOLEAN:
        return "1" if value else "0"
    if kind is ValueKind.NUMBER:
        return str(value)
    if kind is ValueKind.TEMPORAL:
        return quote_sqlite_string(format_temporal(value) or _stringify(value))
    if kind is ValueKind.BINARY:
        raw: bytes = bytes(value)
        if column_type is None or translate_type_from_mysql_to_sqlite(column_type) is not TargetType.BLOB:
            try:
                return quote_sqlite_string(raw.decode("utf-8"))
            except UnicodeDecodeError:
                pass
        return f"X'{raw.hex().upper()}'"
    return quote_sqlite_string(_stringify(value))


def get_sqlite_tables(connection: sqlite3.Connection) -> t.List[str]:
    """List user tables of a SQLite database."""
    with closing(connection.cursor()) as cursor:
        cursor.execute(
            """
            SELECT name
            FROM sqlite_master
            WHERE type = 'table'
            AND name NOT LIKE 'sqlite_%'
            ORDER BY name
            """
        )
        return [str(row[0]) for row in cursor.fetchall()]


def get_sqlite_table_counts(connection: sqlite3.Connection) -> t.Dict[str, t.Optional[int]]:
    """Count the rows of every user table, None where counting failed."""
    counts: t.Dict[str, t.Optional[int]] = {}
    for table in get_sqlite_tables(connection):
        try:
            with closing(connection.cursor()) as cursor:
                cursor.execute(f"SELECT COUNT(*) FROM {quote_sqlite_identifier(table)}")
                counts[table] = int(cursor.fetchone()[0])
        except sqlite3.Error:
            counts[table] = None
    return counts


def check_sqlite_foreign_keys(connection: sqlite3.Connection) -> t.List[t.Tuple[t.Any, ...]]:
    """Return the rows reported by PRAGMA foreign_key_check."""
    with closing(connection.cursor()) as cursor:
        cursor.execute("PRAGMA foreign_key_check")
        return [tuple(row) for row in cursor.fetchall()]
