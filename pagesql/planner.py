from dataclasses import dataclass
from typing import TypeAlias

from .errors import ColumnNotFound
from .log import get_logger
from .schema import SchemaCatalog, TableSchema
from .sql import CountStatement, Literal, Statement
from .values import Integer, Real, Text, Value

logger = get_logger(__name__)

# Names that reach the rowid of any table unless a real column shadows them
ROWID_NAMES = ("rowid", "oid", "_rowid_")

# Projection entry standing for the rowid itself rather than a stored column
ROWID = -1


@dataclass(frozen=True)
class Filter:
    # Position in the table's column list, or ROWID
    column: int
    value: Value


@dataclass(frozen=True)
class FullTableScan:
    table_root: int
    filter: Filter | None = None


@dataclass(frozen=True)
class IndexAssistedLookup:
    index_root: int
    table_root: int
    match_value: Value


@dataclass(frozen=True)
class RowidLookup:
    table_root: int
    rowid: int


Access: TypeAlias = FullTableScan | IndexAssistedLookup | RowidLookup


@dataclass(frozen=True)
class ExecutionPlan:
    table: TableSchema
    access: Access
    # Positions in the table's column list (or ROWID) to emit, in order
    projection: list[int]
    column_names: list[str]
    count: bool = False


def literal_to_value(literal: Literal, encoding: str = "utf-8") -> Value:
    """Convert a query literal into a value comparable with stored ones"""
    if isinstance(literal, str):
        return Text(literal.encode(encoding))
    if isinstance(literal, int):
        return Integer(literal)
    return Real(literal)


def _resolve_column(table: TableSchema, column: str) -> int:
    idx = table.column_index(column)
    if idx is not None:
        return idx
    if column.lower() in ROWID_NAMES:
        return ROWID
    raise ColumnNotFound(column, table.name)


def plan(statement: Statement, catalog: SchemaCatalog, encoding: str = "utf-8") -> ExecutionPlan:
    table = catalog.resolve_table(statement.table)

    if isinstance(statement, CountStatement):
        projection: list[int] = []
        column_names: list[str] = []
    elif statement.columns is None:
        projection = list(range(len(table.columns)))
        column_names = list(table.columns)
    else:
        projection = [_resolve_column(table, column) for column in statement.columns]
        column_names = list(statement.columns)

    access: Access = FullTableScan(table_root=table.root_page)
    where = statement.where
    if where is not None:
        column = _resolve_column(table, where.column)
        value = literal_to_value(where.value, encoding)
        is_rowid = column == ROWID or column == table.rowid_alias

        if is_rowid and isinstance(value, Integer):
            access = RowidLookup(table_root=table.root_page, rowid=value.value)
        elif (
            not is_rowid
            and (index := catalog.resolve_index_for(table.name, where.column)) is not None
        ):
            access = IndexAssistedLookup(
                index_root=index.root_page,
                table_root=table.root_page,
                match_value=value,
            )
        else:
            access = FullTableScan(
                table_root=table.root_page,
                filter=Filter(column=ROWID if is_rowid else column, value=value),
            )

    logger.debug(
        "query_planned",
        table=table.name,
        access=type(access).__name__,
        count=isinstance(statement, CountStatement),
    )
    return ExecutionPlan(
        table=table,
        access=access,
        projection=projection,
        column_names=column_names,
        count=isinstance(statement, CountStatement),
    )
