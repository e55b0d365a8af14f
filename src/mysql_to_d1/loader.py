"""Load a statement stream into Cloudflare D1."""

import hashlib
import logging
import time
import typing as t

from tqdm import tqdm

from .d1_api import CloudflareD1, D1APIError, D1ImportFailed, D1ImportTimeout, ImportSession
from .sqlite_utils import quote_sqlite_identifier
from .statements import create_batches, extract_table_name


D1_TRANSFER_METHODS: t.Tuple[str, ...] = (
    "batch",
    "statement",
    "import",
)

# D1 owns this table and refuses to drop it.
D1_RESERVED_TABLES: t.Tuple[str, ...] = ("_cf_KV",)

D1_IMPORT_COMPLETED_STATUSES: t.Tuple[str, ...] = ("complete", "completed")
D1_IMPORT_FAILED_STATUSES: t.Tuple[str, ...] = ("error", "failed")

FOREIGN_KEYS_OFF: str = "PRAGMA foreign_keys = OFF;"
FOREIGN_KEYS_ON: str = "PRAGMA foreign_keys = ON;"


class PacingPolicy(t.NamedTuple):
    """Minimum pauses, in seconds, between requests to D1."""

    statement_interval: float = 0.1
    batch_interval: float = 1.0
    request_interval: float = 0.0
    poll_interval: float = 5.0


class BatchError(t.NamedTuple):
    """A failed batch or statement."""

    batch: int
    error: str
    statement: t.Optional[str] = None


class LoadReport(t.NamedTuple):
    """Outcome of loading statements into D1."""

    successful: int
    failed: int
    total: int
    errors: t.Tuple[BatchError, ...] = tuple()


class D1Loader:
    """Clean a D1 database and push statements into it, batch by batch or as a bulk import.

    In strict mode (the default) the first failing request aborts the load; with
    ``stop_on_error=False`` failures are recorded in the :class:`LoadReport` and
    the remaining batches are still sent.

    D1 may keep enforcing foreign keys even after ``PRAGMA foreign_keys = OFF``,
    so child rows loaded before their parents can still be rejected.
    """

    def __init__(
        self,
        client: CloudflareD1,
        logger: t.Optional[logging.Logger] = None,
        batch_size: int = 200,
        pacing: t.Optional[PacingPolicy] = None,
        stop_on_error: bool = True,
        quiet: bool = False,
        sleep: t.Callable[[float], None] = time.sleep,
        clock: t.Callable[[], float] = time.monotonic,
    ) -> None:
        """Constructor."""
        if batch_size < 1:
            raise ValueError("Batch size must be a positive integer")
        self._client = client
        self._logger = logger or logging.getLogger(__name__)
        self._batch_size = batch_size
        self._pacing = pacing or PacingPolicy()
        self._stop_on_error = stop_on_error
        self._quiet = quiet
        self._sleep = sleep
        self._clock = clock

    def _pause(self, seconds: float) -> None:
        if seconds > 0:
            self._sleep(seconds)

    def list_tables(self) -> t.List[str]:
        """Tables currently present in D1, empty when they cannot be listed."""
        try:
            rows: t.List[t.List[t.Any]] = self._client.raw_rows(
                "SELECT name FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%' ORDER BY name;"
            )
        except D1APIError as err:
            self._logger.warning("Could not list D1 tables (the database might be empty): %s", err)
            return []
        return [str(row[0]) for row in rows if row]

    def count_rows(self, table_name: str) -> int:
        rows: t.List[t.List[t.Any]] = self._client.raw_rows(
            f"SELECT COUNT(*) FROM {quote_sqlite_identifier(table_name)};"
        )
        return int(rows[0][0])

    def clean(self) -> t.List[str]:
        """Drop every table except the reserved ones and return the dropped names."""
        self._logger.info("Cleaning D1 database")
        self._client.raw(FOREIGN_KEYS_OFF)

        existing_tables: t.List[str] = self.list_tables()
        tables_to_drop: t.List[str] = [table for table in existing_tables if table not in D1_RESERVED_TABLES]
        if not tables_to_drop:
            self._logger.info("D1 database is already clean")
            return []

        self._logger.info(
            "Dropping %s existing tables (skipping %s)", len(tables_to_drop), ", ".join(D1_RESERVED_TABLES)
        )
        dropped: t.List[str] = []
        for table in tables_to_drop:
            try:
                self._client.raw(f"DROP TABLE IF EXISTS {quote_sqlite_identifier(table)};")
                dropped.append(table)
                self._logger.info("Dropped table %s", table)
            except D1APIError as err:
                self._logger.warning("Could not drop table %s: %s", table, err)

        remaining: t.List[str] = [table for table in self.list_tables() if table not in D1_RESERVED_TABLES]
        if remaining:
            self._logger.warning("%s tables still exist: %s", len(remaining), ", ".join(remaining))
        else:
            self._logger.info("D1 database successfully cleaned")
        return dropped

    def _enable_foreign_keys(self) -> None:
        try:
            self._client.raw(FOREIGN_KEYS_ON)
            self._logger.info("Foreign keys re-enabled")
        except D1APIError as err:
            self._logger.warning("Could not re-enable foreign keys: %s", err)

    def _record_failure(self, errors: t.List[BatchError], failure: BatchError) -> None:
        errors.append(failure)
        if self._stop_on_error:
            self._logger.error("Load stopped at batch %s: %s", failure.batch, failure.error)
        else:
            self._logger.error("Batch %s failed: %s", failure.batch, failure.error)

    def _create_schemas(self, schemas: t.Sequence[str], errors: t.List[BatchError]) -> int:
        created: int = 0
        for index, schema in enumerate(schemas, start=1):
            self._logger.info("Creating table %s", extract_table_name(schema) or f"schema-{index}")
            try:
                self._client.raw(schema)
                created += 1
            except D1APIError as err:
                self._record_failure(errors, BatchError(batch=0, error=str(err), statement=schema))
                if self._stop_on_error:
                    raise
        return created

    def load_batches(self, schemas: t.Sequence[str], inserts: t.Sequence[str]) -> LoadReport:
        """Create all tables, then send the INSERTs joined into one /raw request per batch."""
        errors: t.List[BatchError] = []
        successful: int = 0
        failed: int = 0
        self._client.raw(FOREIGN_KEYS_OFF)
        try:
            successful += self._create_schemas(schemas, errors)
            failed += len(schemas) - successful

            batches: t.List[t.List[str]] = create_batches(inserts, self._batch_size)
            self._logger.info("Sending %s INSERT statements in %s batches", len(inserts), len(batches))
            for number, batch in enumerate(tqdm(batches, disable=self._quiet), start=1):
                if number > 1:
                    self._pause(self._pacing.request_interval)
                try:
                    self._client.raw("\n".join(batch))
                    successful += len(batch)
                except D1APIError as err:
                    failed += len(batch)
                    self._record_failure(errors, BatchError(batch=number, error=str(err)))
                    if self._stop_on_error:
                        raise
        finally:
            self._enable_foreign_keys()

        return LoadReport(successful=successful, failed=failed, total=len(schemas) + len(inserts), errors=tuple(errors))

    def load_statements(self, schemas: t.Sequence[str], inserts: t.Sequence[str]) -> LoadReport:
        """Create all tables, then send every INSERT as its own /query request."""
        errors: t.List[BatchError] = []
        successful: int = 0
        failed: int = 0
        self._client.raw(FOREIGN_KEYS_OFF)
        try:
            successful += self._create_schemas(schemas, errors)
            failed += len(schemas) - successful

            batches: t.List[t.List[str]] = create_batches(inserts, self._batch_size)
            for number, batch in enumerate(tqdm(batches, disable=self._quiet), start=1):
                if number > 1:
                    self._pause(self._pacing.batch_interval)
                for position, statement in enumerate(batch):
                    if position > 0:
                        self._pause(self._pacing.statement_interval)
                    try:
                        self._client.query(statement)
                        successful += 1
                    except D1APIError as err:
                        failed += 1
                        self._record_failure(errors, BatchError(batch=number, error=str(err), statement=statement))
                        if self._stop_on_error:
                            raise
                self._logger.info(
                    "Batch %s/%s completed: %s successful, %s failed", number, len(batches), successful, failed
                )
        finally:
            self._enable_foreign_keys()

        return LoadReport(successful=successful, failed=failed, total=len(schemas) + len(inserts), errors=tuple(errors))

    def load_import(
        self,
        content: bytes,
        filename: str,
        timeout: t.Optional[float] = None,
        statements: int = 0,
    ) -> LoadReport:
        """Upload the whole statement stream once and let D1 ingest it."""
        etag: str = hashlib.md5(content).hexdigest()  # nosec
        self._logger.info("Starting D1 import of %s (%s bytes, etag %s)", filename, len(content), etag)

        try:
            init: ImportSession = self._client.import_init(etag)
            if init.upload_url:
                self._logger.info("Uploading %s", filename)
                self._client.import_upload(init.upload_url, content)
            else:
                self._logger.info("D1 already holds a file with etag %s, skipping upload", etag)

            ingest: ImportSession = self._client.import_ingest(etag, init.filename or filename)
            self.poll_import(ingest.bookmark or init.bookmark, timeout=timeout)
        finally:
            self._enable_foreign_keys()
        return LoadReport(successful=statements, failed=0, total=statements)

    def poll_import(self, bookmark: t.Optional[str], timeout: t.Optional[float] = None) -> t.Dict[str, t.Any]:
        """Poll until the import completes, fails, or ``timeout`` seconds elapse."""
        deadline: t.Optional[float] = self._clock() + timeout if timeout is not None else None
        while True:
            result: t.Dict[str, t.Any] = self._client.import_poll(bookmark)
            status: str = str(result.get("status") or result.get("state") or "pending").lower()
            self._logger.info("D1 import status: %s", status)

            if status in D1_IMPORT_COMPLETED_STATUSES:
                self._logger.info("D1 import completed successfully")
                return result
            if status in D1_IMPORT_FAILED_STATUSES:
                error: t.Any = result.get("error") or result.get("messages") or "unknown error"
                self._logger.error("D1 import failed: %s", error)
                raise D1ImportFailed(f"D1 import failed: {error}")
            if deadline is not None and self._clock() + self._pacing.poll_interval > deadline:
                raise D1ImportTimeout(f"D1 import did not finish within {timeout} seconds (last status: {status})")

            self._pause(self._pacing.poll_interval)
