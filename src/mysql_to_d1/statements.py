"""Splitting, classifying and batching the SQL statement stream."""

import re
import typing as t
from enum import Enum
from math import ceil

from .types import StatementKind


MULTI_LINE_KEYWORDS: t.Tuple[str, ...] = ("CREATE", "INSERT")

QUOTE_CHARACTERS: t.Tuple[str, ...] = ("'", '"', "`")

TABLE_NAME_PATTERN: t.Pattern[str] = re.compile(
    r"""(?:CREATE\s+TABLE\s+(?:IF\s+NOT\s+EXISTS\s+)?|INSERT\s+INTO\s+)(?:"((?:[^"]|"")+)"|`([^`]+)`|(\w+))""",
    re.IGNORECASE,
)

VALUES_WITH_LINE_BREAK_PATTERN: t.Pattern[str] = re.compile(r"VALUES\s*\([^)]*\n[^)]*\)", re.IGNORECASE)


class ParserState(str, Enum):
    """States of the character level statement tokenizer."""

    IDLE = "IDLE"
    IN_STATEMENT = "IN_STATEMENT"
    IN_QUOTED_STRING = "IN_QUOTED_STRING"
    IN_BLOCK_COMMENT = "IN_BLOCK_COMMENT"


class StatementGroups(t.NamedTuple):
    """Statements split by category, each list in stream order."""

    schemas: t.List[str]
    inserts: t.List[str]
    other: t.List[str]


def classify_statement(statement: str) -> StatementKind:
    """Classify a statement by its leading keywords."""
    normalized: str = " ".join(statement.strip().upper().split()[:2])
    if normalized.startswith("PRAGMA"):
        return StatementKind.PRAGMA
    if normalized.startswith("CREATE TABLE"):
        return StatementKind.SCHEMA
    if normalized.startswith("INSERT INTO"):
        return StatementKind.DATA
    return StatementKind.OTHER


def split_sql_statements(content: str) -> t.List[str]:
    """Split a statement stream line by line.

    Blank lines, ``--``/``#`` comments and PRAGMA lines are skipped. A statement
    ends on a line whose trimmed text ends with ``;``. CREATE and INSERT
    statements may span several lines; a missing terminator at the end of the
    input is tolerated.
    """
    statements: t.List[str] = []
    current: t.List[str] = []

    for line in content.split("\n"):
        line = line.rstrip("\r")
        stripped: str = line.strip()

        if not stripped or stripped.startswith(("--", "#")) or stripped.upper().startswith("PRAGMA"):
            continue

        current.append(line)

        if stripped.endswith(";"):
            statements.append("\n".join(current).strip())
            current = []
        elif len(current) == 1 and not stripped.upper().startswith(MULTI_LINE_KEYWORDS):
            statements.append(stripped)
            current = []

    if current:
        statements.append("\n".join(current).strip())

    return statements


def tokenize_sql_statements(content: str, skip_pragmas: bool = True) -> t.List[str]:
    """Split a statement stream character by character.

    Unlike :func:`split_sql_statements` this tracks quoted strings and comments,
    so a ``;`` or ``--`` inside a literal is never taken for a boundary. Quotes
    are escaped by doubling them. Comments are dropped from the output.
    """
    statements: t.List[str] = []
    buffer: t.List[str] = []
    state: ParserState = ParserState.IDLE
    resume_state: ParserState = ParserState.IDLE
    quote_char: str = ""
    length: int = len(content)
    index: int = 0

    def emit() -> None:
        statement: str = "".join(buffer).strip()
        buffer.clear()
        if not statement:
            return
        if skip_pragmas and classify_statement(statement) is StatementKind.PRAGMA:
            return
        statements.append(statement)

    while index < length:
        char: str = content[index]
        following: str = content[index + 1] if index + 1 < length else ""

        if state is ParserState.IN_BLOCK_COMMENT:
            if char == "*" and following == "/":
                state = resume_state
                index += 2
            else:
                index += 1
            continue

        if state is ParserState.IN_QUOTED_STRING:
            buffer.append(char)
            if char == quote_char:
                if following == quote_char:
                    buffer.append(following)
                    index += 2
                    continue
                state = ParserState.IN_STATEMENT
            index += 1
            continue

        if (char == "-" and following == "-") or (char == "#" and state is ParserState.IDLE):
            line_end: int = content.find("\n", index)
            index = length if line_end == -1 else line_end
            continue

        if char == "/" and following == "*":
            resume_state = state
            state = ParserState.IN_BLOCK_COMMENT
            index += 2
            continue

        if state is ParserState.IDLE:
            if char.isspace() or char == ";":
                index += 1
                continue
            state = ParserState.IN_STATEMENT

        buffer.append(char)
        if char in QUOTE_CHARACTERS:
            state = ParserState.IN_QUOTED_STRING
            quote_char = char
        elif char == ";":
            emit()
            state = ParserState.IDLE
        index += 1

    emit()
    return statements


def categorize_statements(statements: t.Iterable[str]) -> StatementGroups:
    """Separate CREATE TABLE and INSERT statements from the rest."""
    groups: StatementGroups = StatementGroups(schemas=[], inserts=[], other=[])
    for statement in statements:
        kind: StatementKind = classify_statement(statement)
        if kind is StatementKind.SCHEMA:
            groups.schemas.append(statement)
        elif kind is StatementKind.DATA:
            groups.inserts.append(statement)
        else:
            groups.other.append(statement)
    return groups


def extract_table_name(statement: str) -> t.Optional[str]:
    """Extract the table name from a CREATE TABLE or INSERT INTO statement."""
    match: t.Optional[t.Match[str]] = TABLE_NAME_PATTERN.search(statement)
    if not match:
        return None
    double_quoted, backtick_quoted, bare = match.groups()
    if double_quoted is not None:
        return double_quoted.replace('""', '"')
    return backtick_quoted or bare


def get_table_names(statements: t.Iterable[str]) -> t.List[str]:
    """Unique table names in order of first appearance."""
    table_names: t.Dict[str, None] = {}
    for statement in statements:
        table_name: t.Optional[str] = extract_table_name(statement)
        if table_name:
            table_names.setdefault(table_name, None)
    return list(table_names)


def create_batches(statements: t.Sequence[str], batch_size: int = 200) -> t.List[t.List[str]]:
    """Partition statements into ceil(len / batch_size) ordered, non-empty batches."""
    if batch_size < 1:
        raise ValueError("Batch size must be a positive integer")
    return [
        list(statements[index * batch_size : (index + 1) * batch_size])
        for index in range(int(ceil(len(statements) / batch_size)))
    ]


def validate_sql_stream(content: str) -> t.List[str]:
    """Look for obvious problems in a generated statement stream."""
    issues: t.List[str] = []

    if content.count("'") % 2 != 0:
        issues.append("Unmatched single quotes detected")

    bad_line_breaks: t.List[str] = VALUES_WITH_LINE_BREAK_PATTERN.findall(content)
    if bad_line_breaks:
        issues.append(f"{len(bad_line_breaks)} statements may have unescaped newlines")

    return issues
