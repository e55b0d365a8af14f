"""Use to transfer a MySQL database to Cloudflare D1."""

import logging
import os
import sqlite3
import typing as t
from contextlib import closing
from datetime import datetime, timezone
from os.path import basename, dirname, isfile, realpath
from sys import stdout

import mysql.connector
from mysql.connector.abstracts import MySQLConnectionAbstract
from tqdm import tqdm


try:
    # Python 3.11+
    from typing import Unpack  # type: ignore[attr-defined]
except ImportError:
    # Python < 3.11
    from typing_extensions import Unpack  # type: ignore

from .d1_api import CloudflareD1
from .loader import D1_RESERVED_TABLES, D1_TRANSFER_METHODS, D1Loader, LoadReport, PacingPolicy
from .mysql_utils import (
    decode_column_type,
    is_current_timestamp_default,
    is_numeric_literal,
    is_update_tracking_column,
    parse_mysql_url,
    quote_mysql_identifier,
    translate_type_from_mysql_to_sqlite,
)
from .sqlite_utils import (
    check_sqlite_foreign_keys,
    encode_value_for_sqlite,
    get_sqlite_table_counts,
    quote_sqlite_identifier,
)
from .statements import categorize_statements, get_table_names, tokenize_sql_statements, validate_sql_stream
from .types import (
    ColumnDescriptor,
    ForeignKeyDescriptor,
    GenerationSummary,
    MySQLCredentials,
    MySQLtoD1Attributes,
    MySQLtoD1Params,
    TableDescriptor,
    TargetType,
)
from .verification import RowCountReport, reconcile_row_counts


class MySQLtoD1(MySQLtoD1Attributes):
    """Use this class to transfer a MySQL database to Cloudflare D1.

    The database is first rendered into a SQLite flavoured statement file, which
    is executed against a local SQLite database as a dry run and then sent to D1.
    """

    SQLITE_NOW_DEFAULT: str = "DEFAULT (datetime('now'))"

    def __init__(self, **kwargs: Unpack[MySQLtoD1Params]):
        """Constructor."""
        credentials: t.Optional[MySQLCredentials] = None
        if kwargs.get("mysql_url"):
            credentials = parse_mysql_url(str(kwargs.get("mysql_url")))

        self._mysql_user = str(kwargs.get("mysql_user") or (credentials.user if credentials else "")) or ""
        if not self._mysql_user:
            raise ValueError("Please provide a MySQL user")

        self._mysql_database = str(kwargs.get("mysql_database") or (credentials.database if credentials else ""))
        if not self._mysql_database:
            raise ValueError("Please provide a MySQL database")

        password: t.Optional[str] = kwargs.get("mysql_password") or (credentials.password if credentials else None)
        self._mysql_password = str(password) if password else None

        self._mysql_host = str(kwargs.get("mysql_host") or (credentials.host if credentials else "localhost"))

        self._mysql_port = kwargs.get("mysql_port") or (credentials.port if credentials else 3306)

        self._mysql_tables = kwargs.get("mysql_tables") or tuple()

        self._exclude_mysql_tables = kwargs.get("exclude_mysql_tables") or tuple()

        if bool(self._mysql_tables) and bool(self._exclude_mysql_tables):
            raise ValueError("Please provide either mysql_tables or exclude_mysql_tables, not both")

        self._generate_only = bool(kwargs.get("generate_only", False))

        self._cloudflare_account_id = str(kwargs.get("cloudflare_account_id") or "")
        self._cloudflare_api_token = str(kwargs.get("cloudflare_api_token") or "")
        self._d1_database_id = str(kwargs.get("d1_database_id") or "")
        if not self._generate_only:
            if not self._cloudflare_account_id:
                raise ValueError("Please provide a Cloudflare account ID")
            if not self._cloudflare_api_token:
                raise ValueError("Please provide a Cloudflare API token")
            if not self._d1_database_id:
                raise ValueError("Please provide a D1 database ID")

        self._sql_file = realpath(str(kwargs.get("sql_file") or os.path.join("temp", "migration.sql")))

        self._sqlite_file = realpath(str(kwargs.get("sqlite_file") or os.path.join("temp", "localsqlite.db")))

        self._resume = bool(kwargs.get("resume", False))

        self._skip_sqlite_check = bool(kwargs.get("skip_sqlite_check", False))

        self._skip_verify = bool(kwargs.get("skip_verify", False))

        self._transfer_method = str(kwargs.get("transfer_method") or "batch").lower()
        if self._transfer_method not in D1_TRANSFER_METHODS:
            self._transfer_method = "batch"

        _batch_size = kwargs.get("batch_size")
        self._batch_size = _batch_size if isinstance(_batch_size, int) and _batch_size > 0 else 200

        # Expect an integer chunk size; normalize to None when unset/invalid or <= 0
        _chunk = kwargs.get("chunk")
        self._chunk_size = _chunk if isinstance(_chunk, int) and _chunk > 0 else None

        defaults: PacingPolicy = PacingPolicy()
        self._statement_delay = self._seconds(kwargs.get("statement_delay"), defaults.statement_interval)
        self._batch_delay = self._seconds(kwargs.get("batch_delay"), defaults.batch_interval)
        self._request_delay = self._seconds(kwargs.get("request_delay"), defaults.request_interval)
        self._poll_interval = self._seconds(kwargs.get("poll_interval"), defaults.poll_interval)

        _import_timeout = kwargs.get("import_timeout", 3600)
        self._import_timeout = float(_import_timeout) if _import_timeout else None

        self._continue_on_error = bool(kwargs.get("continue_on_error", False))

        self._quiet = bool(kwargs.get("quiet", False))

        self._logger = self._setup_logger(log_file=kwargs.get("log_file", None), quiet=self._quiet)

        self._failed_tables = []

        self._summary: t.Optional[GenerationSummary] = None

        self._d1: t.Optional[CloudflareD1] = None
        self._loader: t.Optional[D1Loader] = None

        self._connect_mysql()

        if not self._generate_only:
            self._d1 = CloudflareD1(
                account_id=self._cloudflare_account_id,
                api_token=self._cloudflare_api_token,
                database_id=self._d1_database_id,
                logger=self._logger,
            )
            self._loader = D1Loader(
                self._d1,
                logger=self._logger,
                batch_size=self._batch_size,
                pacing=PacingPolicy(
                    statement_interval=self._statement_delay,
                    batch_interval=self._batch_delay,
                    request_interval=self._request_delay,
                    poll_interval=self._poll_interval,
                ),
                stop_on_error=not self._continue_on_error,
                quiet=self._quiet,
            )

    @staticmethod
    def _seconds(value: t.Optional[t.Union[int, float]], default: float) -> float:
        if value is None:
            return default
        return max(float(value), 0.0)

    @classmethod
    def _setup_logger(
        cls, log_file: t.Optional[t.Union[str, "os.PathLike[t.Any]"]] = None, quiet: bool = False
    ) -> logging.Logger:
        formatter = logging.Formatter(fmt="%(asctime)s %(levelname)-8s %(message)s", datefmt="%Y-%m-%d %H:%M:%S")
        logger = logging.getLogger(cls.__name__)
        logger.setLevel(logging.DEBUG)

        if not quiet:
            screen_handler = logging.StreamHandler(stream=stdout)
            screen_handler.setFormatter(formatter)
            logger.addHandler(screen_handler)

        if log_file:
            file_handler = logging.FileHandler(realpath(log_file), mode="w")
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

        return logger

    def _connect_mysql(self) -> None:
        connection_args: t.Dict[str, t.Any] = {
            "user": self._mysql_user,
            "host": self._mysql_host,
            "port": self._mysql_port,
            "database": self._mysql_database,
            "use_pure": True,
            "charset": "utf8mb4",
        }
        if self._mysql_password is not None:
            connection_args["password"] = self._mysql_password

        try:
            _mysql_connection = mysql.connector.connect(**connection_args)
            if isinstance(_mysql_connection, MySQLConnectionAbstract):
                self._mysql = _mysql_connection
            else:
                raise ConnectionError("Unable to connect to MySQL")
            if not self._mysql.is_connected():
                raise ConnectionError("Unable to connect to MySQL")

            self._mysql_cur = self._mysql.cursor(dictionary=True, buffered=True)
            self._logger.info("Connected to MySQL database %s on %s", self._mysql_database, self._mysql_host)
        except mysql.connector.Error as err:
            self._logger.error("MySQL connection failed: %s", err)
            raise

    def close(self) -> None:
        """Release the MySQL connection and the D1 HTTP session."""
        mysql_connection: t.Optional[MySQLConnectionAbstract] = getattr(self, "_mysql", None)
        if mysql_connection is not None:
            try:
                if mysql_connection.is_connected():
                    mysql_connection.close()
                    self._logger.info("MySQL connection closed")
            except mysql.connector.Error as err:
                self._logger.warning("Failed closing MySQL connection: %s", err)
        if getattr(self, "_d1", None) is not None:
            self._d1.close()  # type: ignore[union-attr]

    def _get_table_names(self) -> t.List[str]:
        query: str = """
            SELECT TABLE_NAME AS `name`
            FROM information_schema.TABLES
            WHERE TABLE_SCHEMA = %s
            AND TABLE_TYPE = 'BASE TABLE'
        """
        params: t.List[t.Any] = [self._mysql_database]

        if self._mysql_tables:
            query += " AND TABLE_NAME IN ({names})".format(names=", ".join(["%s"] * len(self._mysql_tables)))
            params.extend(self._mysql_tables)
        elif self._exclude_mysql_tables:
            query += " AND TABLE_NAME NOT IN ({names})".format(
                names=", ".join(["%s"] * len(self._exclude_mysql_tables))
            )
            params.extend(self._exclude_mysql_tables)

        query += " ORDER BY TABLE_NAME"

        self._mysql_cur.execute(query, params)
        return [decode_column_type(row["name"]) for row in self._mysql_cur.fetchall()]

    def _describe_table(self, table_name: str) -> t.Tuple[ColumnDescriptor, ...]:
        self._mysql_cur.execute(f"SHOW COLUMNS FROM {quote_mysql_identifier(table_name)}")
        columns: t.List[ColumnDescriptor] = []
        for row in self._mysql_cur.fetchall():
            extra: str = decode_column_type(row.get("Extra") or "")
            default: t.Any = row.get("Default")
            columns.append(
                ColumnDescriptor(
                    name=decode_column_type(row["Field"]),
                    source_type=decode_column_type(row["Type"]),
                    nullable=decode_column_type(row.get("Null") or "") == "YES",
                    is_primary_key=decode_column_type(row.get("Key") or "") == "PRI",
                    is_auto_increment="auto_increment" in extra.lower(),
                    default_raw=decode_column_type(default) if default is not None else None,
                    is_unique=decode_column_type(row.get("Key") or "") == "UNI",
                    extra=extra,
                )
            )
        return tuple(columns)

    def _get_foreign_keys(self, table_name: str) -> t.Tuple[ForeignKeyDescriptor, ...]:
        self._mysql_cur.execute(
            """
            SELECT kcu.CONSTRAINT_NAME AS `constraint_name`,
                kcu.COLUMN_NAME AS `column`,
                kcu.REFERENCED_TABLE_NAME AS `referenced_table`,
                kcu.REFERENCED_COLUMN_NAME AS `referenced_column`,
                rc.UPDATE_RULE AS `on_update`,
                rc.DELETE_RULE AS `on_delete`
            FROM information_schema.KEY_COLUMN_USAGE AS kcu
            JOIN information_schema.REFERENTIAL_CONSTRAINTS AS rc
                ON kcu.CONSTRAINT_NAME = rc.CONSTRAINT_NAME
                AND kcu.CONSTRAINT_SCHEMA = rc.CONSTRAINT_SCHEMA
            WHERE kcu.TABLE_SCHEMA = %s
            AND kcu.TABLE_NAME = %s
            AND kcu.REFERENCED_TABLE_NAME IS NOT NULL
            ORDER BY kcu.CONSTRAINT_NAME, kcu.ORDINAL_POSITION
            """,
            (self._mysql_database, table_name),
        )
        return tuple(
            ForeignKeyDescriptor(
                column=decode_column_type(row["column"]),
                referenced_table=decode_column_type(row["referenced_table"]),
                referenced_column=decode_column_type(row["referenced_column"]),
                on_update_rule=decode_column_type(row.get("on_update") or "NO ACTION").upper(),
                on_delete_rule=decode_column_type(row.get("on_delete") or "NO ACTION").upper(),
                constraint_name=decode_column_type(row["constraint_name"]) if row.get("constraint_name") else None,
            )
            for row in self._mysql_cur.fetchall()
        )

    def _get_table(self, table_name: str) -> TableDescriptor:
        return TableDescriptor(
            name=table_name,
            columns=self._describe_table(table_name),
            foreign_keys=self._get_foreign_keys(table_name),
        )

    def _count_mysql_rows(self, table_name: str) -> int:
        self._mysql_cur.execute(f"SELECT COUNT(*) AS `total_records` FROM {quote_mysql_identifier(table_name)}")
        return int(self._mysql_cur.fetchone()["total_records"])

    def _fetch_rows(self, table_name: str) -> t.Iterator[t.Dict[str, t.Any]]:
        cursor = self._mysql.cursor(dictionary=True, buffered=self._chunk_size is None)
        try:
            cursor.execute(f"SELECT * FROM {quote_mysql_identifier(table_name)}")
            if self._chunk_size is not None:
                while True:
                    rows = cursor.fetchmany(self._chunk_size)
                    if not rows:
                        break
                    yield from rows
            else:
                yield from cursor.fetchall()
        finally:
            cursor.close()

    def _translate_default(self, column: ColumnDescriptor, target_type: TargetType) -> str:
        """Build the DEFAULT clause of a column, or an empty string for none."""
        if column.default_raw is None:
            return ""

        default: str = column.default_raw.strip()

        if is_current_timestamp_default(default):
            if is_update_tracking_column(column.name, column.extra):
                # D1 has no ON UPDATE equivalent, the auto refresh is lost.
                self._logger.info(
                    'Dropping default %s of update tracking column "%s"; D1 will not refresh it on UPDATE',
                    default,
                    column.name,
                )
                return ""
            return self.SQLITE_NOW_DEFAULT

        if target_type is TargetType.TEXT:
            return f"DEFAULT {encode_value_for_sqlite(column.default_raw, column.source_type)}"

        if default.upper() == "NULL" or is_numeric_literal(default):
            return f"DEFAULT {default}"

        return f"DEFAULT {encode_value_for_sqlite(default, column.source_type)}"

    def _build_column_definition(self, table_name: str, column: ColumnDescriptor, inline_primary_key: bool) -> str:
        target_type: TargetType = translate_type_from_mysql_to_sqlite(column.source_type)

        auto_increment: bool = column.is_auto_increment
        if auto_increment and not (inline_primary_key and target_type is TargetType.INTEGER):
            self._logger.warning(
                'Column "%s" in table %s is not a single INTEGER primary key, dropping AUTOINCREMENT',
                column.name,
                table_name,
            )
            auto_increment = False

        parts: t.List[str] = [quote_sqlite_identifier(column.name), target_type.value]
        if not column.nullable:
            parts.append("NOT NULL")
        if inline_primary_key:
            parts.append("PRIMARY KEY")
        if auto_increment:
            parts.append("AUTOINCREMENT")
        if column.is_unique and not inline_primary_key:
            parts.append("UNIQUE")

        default_clause: str = self._translate_default(column, target_type)
        if default_clause:
            parts.append(default_clause)

        return " ".join(parts)

    @staticmethod
    def _build_foreign_key_clauses(foreign_keys: t.Sequence[ForeignKeyDescriptor]) -> t.List[str]:
        constraints: t.Dict[t.Any, t.List[ForeignKeyDescriptor]] = {}
        for index, foreign_key in enumerate(foreign_keys):
            constraints.setdefault(foreign_key.constraint_name or index, []).append(foreign_key)

        clauses: t.List[str] = []
        for parts in constraints.values():
            clauses.append(
                "FOREIGN KEY({columns}) REFERENCES {ref_table}({ref_columns}) "
                "ON DELETE {on_delete} ON UPDATE {on_update}".format(
                    columns=", ".join(quote_sqlite_identifier(part.column) for part in parts),
                    ref_table=quote_sqlite_identifier(parts[0].referenced_table),
                    ref_columns=", ".join(quote_sqlite_identifier(part.referenced_column) for part in parts),
                    on_delete=parts[0].on_delete_rule or "NO ACTION",
                    on_update=parts[0].on_update_rule or "NO ACTION",
                )
            )
        return clauses

    def _build_create_table_sql(self, table: TableDescriptor) -> str:
        primary_keys: t.List[str] = [column.name for column in table.columns if column.is_primary_key]
        inline_primary_key: bool = len(primary_keys) == 1

        definitions: t.List[str] = [
            self._build_column_definition(table.name, column, inline_primary_key and column.is_primary_key)
            for column in table.columns
        ]

        if len(primary_keys) > 1:
            definitions.append(
                "PRIMARY KEY ({columns})".format(columns=", ".join(quote_sqlite_identifier(pk) for pk in primary_keys))
            )

        definitions.extend(self._build_foreign_key_clauses(table.foreign_keys))

        return "CREATE TABLE IF NOT EXISTS {table} (\n  {definitions}\n);".format(
            table=quote_sqlite_identifier(table.name),
            definitions=",\n  ".join(definitions),
        )

    @staticmethod
    def _build_insert_sql(table_name: str, row: t.Dict[str, t.Any], column_types: t.Dict[str, str]) -> str:
        columns: t.List[str] = list(row.keys())
        return "INSERT INTO {table} ({fields}) VALUES ({values});".format(
            table=quote_sqlite_identifier(table_name),
            fields=", ".join(quote_sqlite_identifier(column) for column in columns),
            values=", ".join(encode_value_for_sqlite(row[column], column_types.get(column)) for column in columns),
        )

    def generate_statements(self) -> t.List[str]:
        """Render every selected MySQL table into an ordered list of SQLite statements."""
        table_names: t.List[str] = self._get_table_names()
        self._failed_tables = []
        statements: t.List[str] = [
            "PRAGMA foreign_keys = OFF;",
            "-- Generated from MySQL to SQLite migration",
            f"-- Generated on: {datetime.now(timezone.utc).isoformat()}",
        ]

        self._logger.info("Found %s tables to migrate", len(table_names))

        tables: t.List[TableDescriptor] = []
        for table_name in table_names:
            self._logger.info("Generating schema for table %s", table_name)
            try:
                table: TableDescriptor = self._get_table(table_name)
            except mysql.connector.Error as err:
                self._logger.error("MySQL failed describing table %s: %s", table_name, err)
                self._failed_tables.append(table_name)
                continue
            tables.append(table)
            statements.append(self._build_create_table_sql(table))

        total_rows: int = 0
        for table in tables:
            self._logger.info("Generating data for table %s", table.name)
            column_types: t.Dict[str, str] = {column.name: column.source_type for column in table.columns}
            try:
                total_records: int = self._count_mysql_rows(table.name)
                if total_records == 0:
                    self._logger.info("No data found in table %s", table.name)
                    continue
                inserts: t.List[str] = [
                    self._build_insert_sql(table.name, row, column_types)
                    for row in tqdm(self._fetch_rows(table.name), total=total_records, disable=self._quiet)
                ]
            except mysql.connector.Error as err:
                self._logger.error("MySQL failed reading data from table %s: %s", table.name, err)
                self._failed_tables.append(table.name)
                continue

            statements.extend(inserts)
            total_rows += len(inserts)
            self._logger.info("Generated %s insert statements for table %s", len(inserts), table.name)

        statements.append(f"-- Migration completed: {len(tables)} tables, {total_rows} rows")
        if self._failed_tables:
            statements.append(f"-- Failed tables: {', '.join(self._failed_tables)}")

        self._summary = GenerationSummary(
            statements=len(statements),
            tables=len(tables),
            rows=total_rows,
            failed_tables=tuple(self._failed_tables),
        )
        return statements

    def generate_sql_file(self) -> int:
        """Write the statement stream to the SQL file and return the number of statements."""
        os.makedirs(dirname(self._sql_file), exist_ok=True)
        if isfile(self._sql_file):
            os.remove(self._sql_file)

        statements: t.List[str] = self.generate_statements()
        content: str = "\n".join(statements) + "\n"
        with open(self._sql_file, "w", encoding="utf-8", newline="\n") as fh:
            fh.write(content)

        self._logger.info("SQL file generated: %s", self._sql_file)
        self._logger.info("Total statements: %s", len(statements))
        if self._summary is not None:
            self._logger.info("Total data rows: %s", self._summary.rows)

        issues: t.List[str] = validate_sql_stream(content)
        for issue in issues:
            self._logger.warning("SQL validation issue: %s", issue)

        return len(statements)

    def _stage_sqlite(self, content: str) -> t.Dict[str, t.Optional[int]]:
        """Run the statement stream against a fresh local SQLite database and count its rows."""
        os.makedirs(dirname(self._sqlite_file), exist_ok=True)
        if isfile(self._sqlite_file):
            os.remove(self._sqlite_file)

        self._logger.info("Creating local SQLite database %s", self._sqlite_file)
        with closing(sqlite3.connect(self._sqlite_file)) as connection:
            connection.execute("PRAGMA foreign_keys = OFF")
            try:
                connection.executescript(content)
            except sqlite3.Error as err:
                self._logger.error("SQLite failed executing %s: %s", self._sql_file, err)
                raise
            connection.execute("PRAGMA foreign_keys = ON")

            violations: t.List[t.Tuple[t.Any, ...]] = check_sqlite_foreign_keys(connection)
            if violations:
                self._logger.warning("SQLite reports %s foreign key violations", len(violations))

            counts: t.Dict[str, t.Optional[int]] = get_sqlite_table_counts(connection)

        self._logger.info("Created %s tables in the local SQLite database", len(counts))
        for table_name, count in counts.items():
            if count is None:
                self._logger.warning("Could not count rows in table %s", table_name)
            else:
                self._logger.info("%s: %s rows", table_name, count)
        return counts

    def _load(self, content: str, statements: t.List[str]) -> LoadReport:
        if self._d1 is None or self._loader is None:
            raise RuntimeError("Cloudflare D1 is not configured, cannot load statements in generate-only mode")

        info: t.Dict[str, t.Any] = self._d1.database_info()
        self._logger.info("Connected to Cloudflare D1 database %s", info.get("name") or self._d1_database_id)

        groups = categorize_statements(statements)
        self._logger.info("Found %s CREATE TABLE statements", len(groups.schemas))
        self._logger.info("Found %s INSERT statements", len(groups.inserts))

        self._loader.clean()

        report: LoadReport
        if self._transfer_method == "import":
            report = self._loader.load_import(
                content.encode("utf-8"),
                basename(self._sql_file),
                timeout=self._import_timeout,
                statements=len(groups.schemas) + len(groups.inserts),
            )
        elif self._transfer_method == "statement":
            report = self._loader.load_statements(groups.schemas, groups.inserts)
        else:
            report = self._loader.load_batches(groups.schemas, groups.inserts)

        self._logger.info(
            "Loaded %s of %s statements into D1 (%s failed)", report.successful, report.total, report.failed
        )
        for error in report.errors:
            self._logger.warning("Batch %s: %s", error.batch, error.error)
        return report

    def verify(
        self,
        table_names: t.Sequence[str],
        intermediate_counts: t.Optional[t.Dict[str, t.Optional[int]]] = None,
    ) -> RowCountReport:
        """Compare row counts in MySQL, the local SQLite database and D1. Never raises on mismatches."""
        if self._loader is None:
            raise RuntimeError("Cloudflare D1 is not configured, cannot verify in generate-only mode")

        self._logger.info("Verifying migration results")
        d1_tables: t.List[str] = self._loader.list_tables()
        missing_tables: t.List[str] = [table for table in table_names if table not in d1_tables]
        extra_tables: t.List[str] = [
            table for table in d1_tables if table not in table_names and table not in D1_RESERVED_TABLES
        ]
        if missing_tables:
            self._logger.warning("Missing tables: %s", ", ".join(missing_tables))
        if extra_tables:
            self._logger.warning("Unexpected tables: %s", ", ".join(extra_tables))

        report: RowCountReport = reconcile_row_counts(
            table_names,
            source_counter=self._count_mysql_rows,
            destination_counter=self._loader.count_rows,
            intermediate_counter=intermediate_counts.get if intermediate_counts else None,
        )

        for line in report.render().splitlines():
            self._logger.info(line)
        for table in report.tables:
            for error in table.errors:
                self._logger.warning("Could not verify %s: %s", table.table, error)

        self._logger.info("Total MySQL rows: %s", report.total_source)
        self._logger.info("Total D1 rows: %s", report.total_destination)
        self._logger.info("Matching tables: %s", len(report.matches))
        if report.mismatches:
            self._logger.warning("%s tables have row count mismatches", len(report.mismatches))
        elif report.all_match:
            self._logger.info("All %s tables match", len(report.matches))
        return report

    def transfer(self) -> None:
        """The primary and only method with which we transfer all the data."""
        try:
            if self._resume and isfile(self._sql_file):
                self._logger.info("Resuming from existing SQL file %s", self._sql_file)
            else:
                if self._resume:
                    self._logger.info("SQL file %s not found, generating it", self._sql_file)
                statement_count: int = self.generate_sql_file()
                if statement_count == 0:
                    raise RuntimeError("No SQL statements were generated. Check if your MySQL database has tables.")

            with open(self._sql_file, "r", encoding="utf-8") as fh:
                content: str = fh.read()

            intermediate_counts: t.Dict[str, t.Optional[int]] = {}
            if not self._skip_sqlite_check:
                intermediate_counts = self._stage_sqlite(content)

            if self._generate_only:
                self._logger.info("Generated %s, skipping the D1 transfer", self._sql_file)
                return

            statements: t.List[str] = tokenize_sql_statements(content)
            groups = categorize_statements(statements)
            table_names: t.List[str] = get_table_names(groups.schemas + groups.inserts)
            self._logger.info("Tables to migrate: %s", ", ".join(table_names))

            self._load(content, statements)

            if not self._skip_verify:
                self.verify(table_names, intermediate_counts)

            if self._failed_tables:
                self._logger.warning(
                    "Data of %s tables could not be read from MySQL: %s",
                    len(self._failed_tables),
                    ", ".join(self._failed_tables),
                )
        finally:
            self.close()
        self._logger.info("Done!")
