"""Types for mysql-to-d1."""

import os
import typing as t
from enum import Enum
from logging import Logger

from mysql.connector.abstracts import MySQLConnectionAbstract, MySQLCursorAbstract


try:
    # Python 3.11+
    from typing import TypedDict  # type: ignore[attr-defined]
except ImportError:
    # Python < 3.11
    from typing_extensions import TypedDict  # type: ignore


class TargetType(str, Enum):
    """SQLite column type affinity used on D1."""

    INTEGER = "INTEGER"
    TEXT = "TEXT"
    REAL = "REAL"
    BLOB = "BLOB"


class ValueKind(str, Enum):
    """Shape of a row value once its runtime type and declared column type are combined."""

    NULL = "NULL"
    NUMBER = "NUMBER"
    BOOLEAN = "BOOLEAN"
    TEMPORAL = "TEMPORAL"
    TEXT = "TEXT"
    BINARY = "BINARY"


class StatementKind(str, Enum):
    """Category of a statement in the statement stream."""

    PRAGMA = "PRAGMA"
    SCHEMA = "SCHEMA"
    DATA = "DATA"
    OTHER = "OTHER"


class ColumnDescriptor(t.NamedTuple):
    """A MySQL column as reported by SHOW COLUMNS."""

    name: str
    source_type: str
    nullable: bool = True
    is_primary_key: bool = False
    is_auto_increment: bool = False
    default_raw: t.Optional[str] = None
    is_unique: bool = False
    extra: str = ""


class ForeignKeyDescriptor(t.NamedTuple):
    """One column of a MySQL foreign key constraint."""

    column: str
    referenced_table: str
    referenced_column: str
    on_update_rule: str = "NO ACTION"
    on_delete_rule: str = "NO ACTION"
    constraint_name: t.Optional[str] = None


class TableDescriptor(t.NamedTuple):
    """A MySQL table with its columns in catalog order."""

    name: str
    columns: t.Tuple[ColumnDescriptor, ...]
    foreign_keys: t.Tuple[ForeignKeyDescriptor, ...] = tuple()


class MySQLCredentials(t.NamedTuple):
    """MySQL connection parameters."""

    user: str
    password: t.Optional[str]
    host: str
    port: int
    database: str


class GenerationSummary(t.NamedTuple):
    """Outcome of a statement stream generation."""

    statements: int
    tables: int
    rows: int
    failed_tables: t.Tuple[str, ...] = tuple()


class MySQLtoD1Params(TypedDict, total=False):
    """MySQLtoD1 parameters."""

    mysql_url: t.Optional[str]
    mysql_user: t.Optional[str]
    mysql_password: t.Optional[str]
    mysql_host: t.Optional[str]
    mysql_port: t.Optional[int]
    mysql_database: t.Optional[str]
    mysql_tables: t.Optional[t.Sequence[str]]
    exclude_mysql_tables: t.Optional[t.Sequence[str]]
    cloudflare_account_id: t.Optional[str]
    cloudflare_api_token: t.Optional[str]
    d1_database_id: t.Optional[str]
    sql_file: t.Optional[t.Union[str, "os.PathLike[t.Any]"]]
    sqlite_file: t.Optional[t.Union[str, "os.PathLike[t.Any]"]]
    resume: t.Optional[bool]
    generate_only: t.Optional[bool]
    skip_sqlite_check: t.Optional[bool]
    skip_verify: t.Optional[bool]
    transfer_method: t.Optional[str]
    batch_size: t.Optional[int]
    chunk: t.Optional[int]
    statement_delay: t.Optional[float]
    batch_delay: t.Optional[float]
    request_delay: t.Optional[float]
    poll_interval: t.Optional[float]
    import_timeout: t.Optional[float]
    continue_on_error: t.Optional[bool]
    quiet: t.Optional[bool]
    log_file: t.Optional[t.Union[str, "os.PathLike[t.Any]"]]


class MySQLtoD1Attributes:
    """MySQLtoD1 attributes."""

    _mysql_user: str
    _mysql_password: t.Optional[str]
    _mysql_host: str
    _mysql_port: int
    _mysql_database: str
    _mysql_tables: t.Sequence[str]
    _exclude_mysql_tables: t.Sequence[str]
    _cloudflare_account_id: str
    _cloudflare_api_token: str
    _d1_database_id: str
    _sql_file: str
    _sqlite_file: str
    _resume: bool
    _generate_only: bool
    _skip_sqlite_check: bool
    _skip_verify: bool
    _transfer_method: str
    _batch_size: int
    _chunk_size: t.Optional[int]
    _statement_delay: float
    _batch_delay: float
    _request_delay: float
    _poll_interval: float
    _import_timeout: t.Optional[float]
    _continue_on_error: bool
    _quiet: bool
    _logger: Logger
    _mysql: MySQLConnectionAbstract
    _mysql_cur: MySQLCursorAbstract
    _failed_tables: t.List[str]
