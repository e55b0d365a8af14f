import re
import sqlite3
import typing as t
from contextlib import closing, contextmanager

import mysql.connector
import pytest
from click.testing import CliRunner
from mysql.connector.abstracts import MySQLConnectionAbstract
from pytest_mock import MockFixture

from mysql_to_d1.d1_api import D1APIError, ImportSession
from mysql_to_d1.statements import tokenize_sql_statements


class Helpers:
    @staticmethod
    @contextmanager
    def not_raises(exception: t.Type[Exception]) -> t.Generator:
        try:
            yield
        except exception:
            raise pytest.fail(f"DID RAISE {exception}")


@pytest.fixture
def helpers() -> t.Type[Helpers]:
    return Helpers


class FakeD1:
    """Stands in for CloudflareD1 and runs every request against an in-memory SQLite database."""

    def __init__(
        self,
        fail_on: t.Optional[t.Callable[[str], bool]] = None,
        import_statuses: t.Sequence[str] = ("complete",),
        upload_url: t.Optional[str] = "https://upload.example.invalid/migration.sql",
    ) -> None:
        self.connection = sqlite3.connect(":memory:", isolation_level=None)
        self.fail_on = fail_on
        self.import_statuses = list(import_statuses)
        self.upload_url = upload_url
        self.requests: t.List[t.Tuple[str, str]] = []
        self.uploaded: t.Optional[bytes] = None
        self.polls: int = 0
        self.closed: bool = False

    def _maybe_fail(self, sql: str) -> None:
        if self.fail_on is not None and self.fail_on(sql):
            raise D1APIError("HTTP Error 400: SQLITE_ERROR", status_code=400)

    def _execute(self, sql: str) -> t.List[t.List[t.Any]]:
        self._maybe_fail(sql)
        statements: t.List[str] = tokenize_sql_statements(sql, skip_pragmas=False)
        rows: t.List[t.List[t.Any]] = []
        try:
            for statement in statements:
                with closing(self.connection.execute(statement)) as cursor:
                    rows = [list(row) for row in cursor.fetchall()]
        except sqlite3.Error as err:
            raise D1APIError(f"HTTP Error 400: {err}", status_code=400) from err
        return rows

    def database_info(self) -> t.Dict[str, t.Any]:
        self.requests.append(("info", ""))
        return {"name": "fake-d1", "uuid": "00000000-0000-0000-0000-000000000000"}

    def raw(self, sql: str, params: t.Optional[t.Sequence[t.Any]] = None) -> t.List[t.Dict[str, t.Any]]:
        self.requests.append(("raw", sql))
        rows = self._execute(sql)
        return [{"results": {"columns": [], "rows": rows}, "success": True}]

    def raw_rows(self, sql: str) -> t.List[t.List[t.Any]]:
        return self.raw(sql)[0]["results"]["rows"]

    def query(self, sql: str, params: t.Optional[t.Sequence[t.Any]] = None) -> t.List[t.Dict[str, t.Any]]:
        self.requests.append(("query", sql))
        self._execute(sql)
        return [{"results": [], "success": True}]

    def import_init(self, etag: str) -> ImportSession:
        self.requests.append(("import_init", etag))
        return ImportSession(upload_url=self.upload_url, bookmark=None, filename="migration.sql", status=None)

    def import_upload(self, upload_url: str, content: bytes) -> None:
        self.requests.append(("import_upload", upload_url))
        self.uploaded = content

    def import_ingest(self, etag: str, filename: str) -> ImportSession:
        self.requests.append(("import_ingest", filename))
        if self.uploaded is not None:
            self.connection.executescript(self.uploaded.decode("utf-8"))
        return ImportSession(upload_url=None, bookmark="bookmark-1", filename=filename, status="active")

    def import_poll(self, bookmark: t.Optional[str]) -> t.Dict[str, t.Any]:
        self.requests.append(("import_poll", str(bookmark)))
        self.polls += 1
        status: str = self.import_statuses.pop(0) if len(self.import_statuses) > 1 else self.import_statuses[0]
        return {"status": status, "at_bookmark": bookmark}

    def close(self) -> None:
        self.closed = True

    def tables(self) -> t.List[str]:
        with closing(self.connection.execute("SELECT name FROM sqlite_master WHERE type='table' ORDER BY name")) as c:
            return [row[0] for row in c.fetchall()]

    def count(self, table: str) -> int:
        with closing(self.connection.execute(f'SELECT COUNT(*) FROM "{table}"')) as cursor:
            return int(cursor.fetchone()[0])


@pytest.fixture
def fake_d1() -> t.Iterator[FakeD1]:
    d1 = FakeD1()
    yield d1
    d1.connection.close()


class FakeMySQLTable(t.NamedTuple):
    """A table served by FakeMySQLCursor: SHOW COLUMNS rows, data rows and foreign key rows."""

    columns: t.List[t.Dict[str, t.Any]]
    rows: t.List[t.Dict[str, t.Any]]
    foreign_keys: t.List[t.Dict[str, t.Any]] = []


def mysql_column(
    field: str,
    column_type: str,
    null: str = "YES",
    key: str = "",
    default: t.Optional[str] = None,
    extra: str = "",
) -> t.Dict[str, t.Any]:
    return {"Field": field, "Type": column_type, "Null": null, "Key": key, "Default": default, "Extra": extra}


class FakeMySQLCursor:
    """Answers the handful of queries MySQLtoD1 sends to MySQL."""

    IDENTIFIER = re.compile(r"`((?:[^`]|``)+)`")

    def __init__(self, tables: t.Dict[str, FakeMySQLTable], broken_tables: t.Sequence[str] = ()) -> None:
        self._tables = tables
        self._broken_tables = broken_tables
        self._results: t.List[t.Dict[str, t.Any]] = []
        self.queries: t.List[str] = []

    def _table(self, query: str) -> str:
        match = self.IDENTIFIER.search(query.split("FROM", 1)[1])
        assert match is not None
        return match.group(1).replace("``", "`")

    def execute(self, query: str, params: t.Optional[t.Sequence[t.Any]] = None) -> None:
        flattened: str = " ".join(query.split())
        self.queries.append(flattened)
        if "information_schema.TABLES" in flattened:
            names: t.List[str] = sorted(self._tables)
            filters: t.List[t.Any] = list(params or [])[1:]
            if "NOT IN" in flattened:
                names = [name for name in names if name not in filters]
            elif " IN (" in flattened:
                names = [name for name in names if name in filters]
            self._results = [{"name": name} for name in names]
        elif flattened.startswith("SHOW COLUMNS"):
            self._results = list(self._tables[self._table(flattened)].columns)
        elif "REFERENTIAL_CONSTRAINTS" in flattened:
            self._results = list(self._tables[list(params or [])[1]].foreign_keys)
        elif flattened.startswith("SELECT COUNT(*)"):
            table: str = self._table(flattened)
            self._results = [{"total_records": len(self._tables[table].rows)}]
        elif flattened.startswith("SELECT *"):
            table = self._table(flattened)
            if table in self._broken_tables:
                raise mysql.connector.errors.ProgrammingError(msg=f"Table '{table}' is corrupted", errno=1194)
            self._results = list(self._tables[table].rows)
        else:
            raise AssertionError(f"Unexpected query {flattened}")

    def fetchall(self) -> t.List[t.Dict[str, t.Any]]:
        results, self._results = self._results, []
        return results

    def fetchone(self) -> t.Optional[t.Dict[str, t.Any]]:
        return self._results.pop(0) if self._results else None

    def fetchmany(self, size: int = 1) -> t.List[t.Dict[str, t.Any]]:
        results, self._results = self._results[:size], self._results[size:]
        return results

    def close(self) -> None:
        pass


@pytest.fixture
def fake_mysql(mocker: MockFixture) -> t.Callable[..., t.Any]:
    """Patch mysql.connector.connect so it serves the given tables."""

    def factory(tables: t.Dict[str, FakeMySQLTable], broken_tables: t.Sequence[str] = ()) -> t.Any:
        connection = mocker.MagicMock(spec=MySQLConnectionAbstract)
        connection.is_connected.return_value = True
        connection.cursor.side_effect = lambda *args, **kwargs: FakeMySQLCursor(tables, broken_tables)
        mocker.patch("mysql_to_d1.transporter.mysql.connector.connect", return_value=connection)
        return connection

    return factory


@pytest.fixture
def users_table() -> t.Dict[str, FakeMySQLTable]:
    return {
        "users": FakeMySQLTable(
            columns=[
                mysql_column("id", "int", null="NO", key="PRI", extra="auto_increment"),
                mysql_column("name", "varchar(255)", null="NO"),
            ],
            rows=[{"id": 1, "name": "Alice"}, {"id": 2, "name": "Bob"}],
        )
    }


@pytest.fixture()
def cli_runner() -> t.Iterator[CliRunner]:
    yield CliRunner()
