"""Row count reconciliation between MySQL, the local SQLite copy and D1."""

import typing as t

from tabulate import tabulate


RowCounter = t.Callable[[str], t.Optional[int]]


class TableRowCount(t.NamedTuple):
    """Row counts of one table in every system it passed through."""

    table: str
    source: t.Optional[int] = None
    intermediate: t.Optional[int] = None
    destination: t.Optional[int] = None
    errors: t.Tuple[str, ...] = tuple()

    @property
    def upstream(self) -> t.Optional[int]:
        """The best available count before D1: MySQL, else the local SQLite copy."""
        return self.source if self.source is not None else self.intermediate

    @property
    def matches(self) -> bool:
        return self.destination is not None and self.upstream is not None and self.destination == self.upstream


class RowCountReport(t.NamedTuple):
    """Per table row counts plus derived totals."""

    tables: t.Tuple[TableRowCount, ...]

    def get(self, table_name: str) -> t.Optional[TableRowCount]:
        for table in self.tables:
            if table.table == table_name:
                return table
        return None

    @property
    def matches(self) -> t.List[TableRowCount]:
        return [table for table in self.tables if table.matches]

    @property
    def mismatches(self) -> t.List[TableRowCount]:
        return [table for table in self.tables if not table.matches]

    @property
    def total_source(self) -> int:
        return sum(table.source or 0 for table in self.tables)

    @property
    def total_destination(self) -> int:
        return sum(table.destination or 0 for table in self.tables)

    @property
    def all_match(self) -> bool:
        return len(self.tables) > 0 and not self.mismatches

    def render(self, tablefmt: str = "github") -> str:
        rows: t.List[t.List[t.Any]] = [
            [
                table.table,
                "n/a" if table.source is None else table.source,
                "n/a" if table.intermediate is None else table.intermediate,
                "n/a" if table.destination is None else table.destination,
                "MATCH" if table.matches else "MISMATCH",
            ]
            for table in self.tables
        ]
        return tabulate(rows, headers=["table", "MySQL", "SQLite", "D1", "status"], tablefmt=tablefmt)


def _safe_count(counter: t.Optional[RowCounter], table: str, label: str, errors: t.List[str]) -> t.Optional[int]:
    if counter is None:
        return None
    try:
        count: t.Optional[int] = counter(table)
    except Exception as err:  # pylint: disable=W0703
        errors.append(f"{label}: {err}")
        return None
    return int(count) if count is not None else None


def reconcile_row_counts(
    table_names: t.Iterable[str],
    source_counter: t.Optional[RowCounter],
    destination_counter: t.Optional[RowCounter],
    intermediate_counter: t.Optional[RowCounter] = None,
) -> RowCountReport:
    """Count every table everywhere; failures are recorded on the table, never raised."""
    tables: t.List[TableRowCount] = []
    for table in table_names:
        errors: t.List[str] = []
        tables.append(
            TableRowCount(
                table=table,
                source=_safe_count(source_counter, table, "MySQL", errors),
                intermediate=_safe_count(intermediate_counter, table, "SQLite", errors),
                destination=_safe_count(destination_counter, table, "D1", errors),
                errors=tuple(errors),
            )
        )
    return RowCountReport(tables=tuple(tables))
