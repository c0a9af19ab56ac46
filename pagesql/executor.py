from dataclasses import dataclass
from typing import Iterator, TypeAlias

from .btree import TableRow, count_rows, full_scan, index_scan_equal, point_lookup_by_rowid
from .database import Database
from .errors import FormatError
from .log import get_logger
from .planner import ROWID, ExecutionPlan, FullTableScan, IndexAssistedLookup, RowidLookup
from .schema import TableSchema
from .values import NULL, Integer, Real, Value, values_equal

logger = get_logger(__name__)


@dataclass(frozen=True)
class CountResult:
    count: int


@dataclass(frozen=True)
class RowsResult:
    columns: list[str]
    # Lazy, single-pass: stop iterating to stop the scan
    rows: Iterator[list[Value]]


QueryResult: TypeAlias = CountResult | RowsResult


def column_value(table: TableSchema, row: TableRow, column: int) -> Value:
    # The INTEGER PRIMARY KEY column is stored as NULL; its value is the rowid
    if column == ROWID or column == table.rowid_alias:
        return Integer(row.rowid)
    values = row.record.values
    # Rows written before an ALTER TABLE ADD COLUMN have fewer values
    if column >= len(values):
        return NULL
    value = values[column]
    # Whole REAL values are stored as integers and turned back on read
    if isinstance(value, Integer) and table.has_real_affinity(column):
        return Real(float(value.value))
    return value


def matching_rows(database: Database, plan: ExecutionPlan) -> Iterator[TableRow]:
    """Rows of the plan's table that satisfy its predicate, in traversal order"""
    match plan.access:
        case FullTableScan(table_root=table_root, filter=row_filter):
            for row in full_scan(database, table_root):
                if not isinstance(row, TableRow):
                    raise FormatError(f"Table {plan.table.name} is not stored as a table b-tree")
                if row_filter is None or values_equal(
                    column_value(plan.table, row, row_filter.column), row_filter.value
                ):
                    yield row

        case IndexAssistedLookup(index_root=index_root, table_root=table_root, match_value=value):
            for rowid in index_scan_equal(database, index_root, value):
                row = point_lookup_by_rowid(database, table_root, rowid)
                if row is None:
                    raise FormatError(
                        f"Index entry points at rowid {rowid}, missing from {plan.table.name}"
                    )
                yield row

        case RowidLookup(table_root=table_root, rowid=rowid):
            row = point_lookup_by_rowid(database, table_root, rowid)
            if row is not None:
                yield row


def execute_count(database: Database, plan: ExecutionPlan) -> int:
    match plan.access:
        case FullTableScan(table_root=table_root, filter=None):
            # No predicate: leaf cell counts are enough
            count = count_rows(database, table_root)
        case _:
            count = sum(1 for _ in matching_rows(database, plan))
    logger.debug("count_finished", table=plan.table.name, count=count)
    return count


def execute_select(database: Database, plan: ExecutionPlan) -> Iterator[list[Value]]:
    emitted = 0
    for row in matching_rows(database, plan):
        emitted += 1
        yield [column_value(plan.table, row, column) for column in plan.projection]
    logger.debug("select_finished", table=plan.table.name, rows=emitted)


def execute(database: Database, plan: ExecutionPlan) -> QueryResult:
    if plan.count:
        return CountResult(execute_count(database, plan))
    return RowsResult(columns=plan.column_names, rows=execute_select(database, plan))
