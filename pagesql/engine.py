import os
from dataclasses import dataclass
from typing import Self

from .database import Database
from .executor import QueryResult, execute
from .planner import plan
from .schema import SchemaCatalog
from .sql import parse_statement


@dataclass(frozen=True)
class DatabaseMetadata:
    page_size: int
    table_count: int


class Engine:
    """
    An opened database file together with its schema catalog.

    The catalog is read once, when the engine is created. Not safe to share
    between threads; open one engine per thread instead.
    """

    def __init__(self, database: Database, catalog: SchemaCatalog | None = None):
        self.database = database
        self.catalog = catalog if catalog is not None else SchemaCatalog.build(database)

    @classmethod
    def open(cls, path: str | os.PathLike[str]) -> Self:
        database = Database.open(path)
        try:
            return cls(database)
        except BaseException:
            database.close()
            raise

    def metadata(self) -> DatabaseMetadata:
        return DatabaseMetadata(
            page_size=self.database.page_size,
            table_count=len(self.catalog.user_tables()),
        )

    def table_names(self) -> list[str]:
        return [entry.name for entry in self.catalog.user_tables()]

    def query(self, sql: str) -> QueryResult:
        """
        Run a query. Parsing, name resolution and planning happen here;
        SELECT rows are only read from disk as the result is iterated.
        """
        statement = parse_statement(sql)
        execution_plan = plan(statement, self.catalog, self.database.header.encoding)
        return execute(self.database, execution_plan)

    def close(self) -> None:
        self.database.close()

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
