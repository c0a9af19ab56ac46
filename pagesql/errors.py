class PageSQLError(Exception):
    """Base class for every failure raised by the engine."""


class IoError(PageSQLError):
    """The database file could not be opened or read."""


class FormatError(PageSQLError):
    """The file does not follow the on-disk format."""


class PageOutOfRange(FormatError):
    def __init__(self, page_number: int, page_count: int):
        super().__init__(
            f"Page {page_number} is outside the file ({page_count} pages)"
        )
        self.page_number = page_number
        self.page_count = page_count


class UnsupportedOverflow(PageSQLError):
    """A payload spills onto overflow pages, which are never followed."""


class SchemaError(PageSQLError):
    """A table (or a qualifying index) is missing from the schema catalog."""


class ParseError(PageSQLError):
    """SQL text outside the supported grammar."""


class ColumnNotFound(PageSQLError):
    def __init__(self, column: str, table: str):
        super().__init__(f"No such column: {column} (table {table})")
        self.column = column
        self.table = table
