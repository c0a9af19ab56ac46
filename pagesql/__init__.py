from .engine import DatabaseMetadata, Engine
from .errors import (
    ColumnNotFound,
    FormatError,
    IoError,
    PageOutOfRange,
    PageSQLError,
    ParseError,
    SchemaError,
    UnsupportedOverflow,
)
from .executor import CountResult, QueryResult, RowsResult

__all__ = [
    "ColumnNotFound",
    "CountResult",
    "DatabaseMetadata",
    "Engine",
    "FormatError",
    "IoError",
    "PageOutOfRange",
    "PageSQLError",
    "ParseError",
    "QueryResult",
    "RowsResult",
    "SchemaError",
    "UnsupportedOverflow",
]
