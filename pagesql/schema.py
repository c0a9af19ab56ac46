"""
The schema catalog: the table b-tree rooted at page 1.

https://www.sqlite.org/fileformat.html#storage_of_the_sql_database_schema
"""

from dataclasses import dataclass, field
from typing import Iterator, Self

from sqlparse import tokens as T

from .btree import TableRow, full_scan
from .database import Database
from .errors import FormatError, SchemaError
from .lexing import Token, is_punctuation, significant_tokens, unquote_identifier, word
from .log import get_logger
from .values import Integer, Null, Text

logger = get_logger(__name__)

SCHEMA_ROOT_PAGE = 1
INTERNAL_PREFIX = "sqlite_"

# Index keys are only searched with byte-wise comparison
DEFAULT_COLLATION = "BINARY"

# Leading keywords of table-level constraints inside CREATE TABLE (...)
TABLE_CONSTRAINTS = {"PRIMARY KEY", "FOREIGN", "UNIQUE", "CHECK", "CONSTRAINT"}

# Keywords that end the declared type of a column definition
COLUMN_CONSTRAINTS = TABLE_CONSTRAINTS | {
    "NOT NULL",
    "NULL",
    "DEFAULT",
    "COLLATE",
    "REFERENCES",
    "GENERATED",
    "AS",
}


@dataclass(frozen=True)
class SchemaEntry:
    type: str
    name: str
    table_name: str
    root_page: int
    sql: str | None

    @property
    def is_internal(self) -> bool:
        return self.name.lower().startswith(INTERNAL_PREFIX)


@dataclass(frozen=True)
class TableSchema:
    name: str
    root_page: int
    columns: list[str]
    # Position of the INTEGER PRIMARY KEY column, whose value is the rowid
    rowid_alias: int | None = None
    declared_types: list[str] = field(default_factory=list)

    def column_index(self, column: str) -> int | None:
        wanted = column.lower()
        for idx, name in enumerate(self.columns):
            if name.lower() == wanted:
                return idx
        return None

    def has_real_affinity(self, column: int) -> bool:
        if column < 0 or column >= len(self.declared_types):
            return False
        return real_affinity(self.declared_types[column])


def _split_parenthesized(tokens: list[Token], start: int) -> tuple[list[list[Token]], int]:
    """
    Split the parenthesized list opening at ``tokens[start]`` on its top-level
    commas. Returns the fragments and the index just past the closing paren.
    """
    fragments: list[list[Token]] = [[]]
    depth = 0
    for idx in range(start, len(tokens)):
        token = tokens[idx]
        if is_punctuation(token, "("):
            depth += 1
            if depth == 1:
                continue
        elif is_punctuation(token, ")"):
            depth -= 1
            if depth == 0:
                return [f for f in fragments if f], idx + 1
        elif depth == 1 and is_punctuation(token, ","):
            fragments.append([])
            continue
        fragments[-1].append(token)
    raise FormatError("Unbalanced parentheses in schema SQL")


def _find(tokens: list[Token], predicate, start: int = 0) -> int | None:
    for idx in range(start, len(tokens)):
        if predicate(tokens[idx]):
            return idx
    return None


def _is_table_constraint(fragment: list[Token]) -> bool:
    # "UNIQUE(a)" lexes as a function name rather than a keyword, so compare
    # the word itself. Quoted column names keep their quotes and never match.
    return word(fragment[0]) in TABLE_CONSTRAINTS


def _declared_type(fragment: list[Token]) -> str:
    words = []
    for token in fragment[1:]:
        if token[0] in T.Punctuation or word(token) in COLUMN_CONSTRAINTS:
            break
        words.append(word(token))
    return " ".join(words)


def _collation(fragment: list[Token]) -> str:
    idx = _find(fragment, lambda t: word(t) == "COLLATE")
    if idx is None or idx + 1 >= len(fragment):
        return DEFAULT_COLLATION
    return unquote_identifier(fragment[idx + 1][1]).upper()


def _primary_key_columns(fragment: list[Token]) -> list[str]:
    """Column names named by a table-level PRIMARY KEY (...) constraint"""
    start = _find(fragment, lambda t: word(t) == "PRIMARY KEY")
    if start is None:
        return []
    paren = _find(fragment, lambda t: is_punctuation(t, "("), start)
    if paren is None:
        return []
    parts, _ = _split_parenthesized(fragment, paren)
    return [unquote_identifier(part[0][1]) for part in parts]


def real_affinity(declared_type: str) -> bool:
    # https://www.sqlite.org/datatype3.html#determination_of_column_affinity
    declared = declared_type.upper()
    if "INT" in declared:
        return False
    if any(name in declared for name in ("CHAR", "CLOB", "TEXT", "BLOB")):
        return False
    return any(name in declared for name in ("REAL", "FLOA", "DOUB"))


@dataclass(frozen=True)
class TableDefinition:
    columns: list[str]
    declared_types: list[str]
    rowid_alias: int | None
    without_rowid: bool
    collations: list[str] = field(default_factory=list)

    def collation_of(self, column: str) -> str:
        wanted = column.lower()
        for name, collation in zip(self.columns, self.collations):
            if name.lower() == wanted:
                return collation
        return DEFAULT_COLLATION


def parse_table_columns(sql: str) -> TableDefinition:
    """Pull the column names and declared types out of a CREATE TABLE statement"""
    tokens = significant_tokens(sql)
    paren = _find(tokens, lambda t: is_punctuation(t, "("))
    if paren is None:
        raise FormatError(f"No column list in table definition: {sql!r}")
    fragments, end = _split_parenthesized(tokens, paren)

    columns: list[str] = []
    declared_types: list[str] = []
    collations: list[str] = []
    rowid_alias = None
    table_primary_key: list[str] = []
    for fragment in fragments:
        if _is_table_constraint(fragment):
            if word(fragment[0]) in ("PRIMARY KEY", "CONSTRAINT"):
                table_primary_key = _primary_key_columns(fragment) or table_primary_key
            continue

        columns.append(unquote_identifier(fragment[0][1]))
        declared_types.append(_declared_type(fragment))
        collations.append(_collation(fragment))

        # https://www.sqlite.org/lang_createtable.html#rowid
        # "INTEGER PRIMARY KEY DESC" is the one spelling that is not an alias
        if declared_types[-1] == "INTEGER":
            pk = _find(fragment, lambda t: word(t) == "PRIMARY KEY")
            if pk is not None:
                following = word(fragment[pk + 1]) if pk + 1 < len(fragment) else ""
                if following != "DESC":
                    rowid_alias = len(columns) - 1

    if rowid_alias is None and len(table_primary_key) == 1:
        wanted = table_primary_key[0].lower()
        for idx, column in enumerate(columns):
            if column.lower() == wanted and declared_types[idx] == "INTEGER":
                rowid_alias = idx

    trailing = [word(t) for t in tokens[end:]]
    without_rowid = "WITHOUT" in trailing and "ROWID" in trailing
    return TableDefinition(
        columns=columns,
        declared_types=declared_types,
        rowid_alias=rowid_alias,
        without_rowid=without_rowid,
        collations=collations,
    )


@dataclass(frozen=True)
class IndexedColumn:
    name: str
    # COLLATE given on the index itself; None falls back to the table column's
    collation: str | None = None


def parse_index_column(sql: str) -> IndexedColumn | None:
    """
    The indexed column of a single-column ascending CREATE INDEX, or None
    when the index covers several columns, an expression, keys in descending
    order or only part of the table (partial index).
    """
    tokens = significant_tokens(sql)
    on = _find(tokens, lambda t: t[0] in T.Keyword and word(t) == "ON")
    if on is None:
        return None
    paren = _find(tokens, lambda t: is_punctuation(t, "("), on)
    if paren is None:
        return None
    fragments, end = _split_parenthesized(tokens, paren)

    if len(fragments) != 1:
        return None
    if any(word(t) == "WHERE" for t in tokens[end:]):
        return None

    fragment = fragments[0]
    rest = [word(t) for t in fragment[1:]]
    collation = None
    if rest[:1] == ["COLLATE"]:
        if len(rest) < 2:
            return None
        collation = unquote_identifier(fragment[2][1]).upper()
        rest = rest[2:]
    # DESC keys are stored largest first
    if rest not in ([], ["ASC"]):
        return None
    return IndexedColumn(name=unquote_identifier(fragment[0][1]), collation=collation)


class SchemaCatalog:
    """Every entry of the schema table, read once when a file is opened"""

    def __init__(self, entries: list[SchemaEntry]):
        self._entries = tuple(entries)

    @classmethod
    def build(cls, database: Database) -> Self:
        encoding = database.header.encoding
        entries = [
            cls._entry_from_row(row, encoding)
            for row in full_scan(database, SCHEMA_ROOT_PAGE)
        ]
        logger.debug("schema_catalog_built", entries=len(entries))
        return cls(entries)

    @staticmethod
    def _entry_from_row(row, encoding: str) -> SchemaEntry:
        if not isinstance(row, TableRow):
            raise FormatError("Schema table root is not a table b-tree")

        values = row.record.values
        if len(values) != 5:
            raise FormatError(f"Schema record has {len(values)} columns, expected 5")

        match values:
            case [Text() as type_, Text() as name, Text() as table_name, root, sql]:
                pass
            case _:
                raise FormatError(f"Malformed schema record for rowid {row.rowid}")

        match root:
            case Integer(root_page):
                pass
            case Null():
                root_page = 0
            case _:
                raise FormatError(f"Schema record {row.rowid} has a non-integer rootpage")

        match sql:
            case Text():
                sql_text = sql.decode(encoding)
            case Null():
                sql_text = None
            case _:
                raise FormatError(f"Schema record {row.rowid} has a non-text sql column")

        return SchemaEntry(
            type=type_.decode(encoding),
            name=name.decode(encoding),
            table_name=table_name.decode(encoding),
            root_page=root_page,
            sql=sql_text,
        )

    def __iter__(self) -> Iterator[SchemaEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def user_tables(self) -> list[SchemaEntry]:
        return [e for e in self._entries if e.type == "table" and not e.is_internal]

    def find(self, name: str, entry_type: str) -> SchemaEntry | None:
        wanted = name.lower()
        return next(
            (
                entry
                for entry in self._entries
                if entry.type == entry_type and entry.name.lower() == wanted
            ),
            None,
        )

    def resolve_table(self, name: str) -> TableSchema:
        entry = self.find(name, "table")
        if entry is None:
            raise SchemaError(f"No such table: {name}")
        if entry.sql is None:
            raise SchemaError(f"Table {entry.name} has no stored definition")

        definition = parse_table_columns(entry.sql)
        if definition.without_rowid:
            raise SchemaError(f"WITHOUT ROWID table {entry.name} is not supported")

        return TableSchema(
            name=entry.name,
            root_page=entry.root_page,
            columns=definition.columns,
            rowid_alias=definition.rowid_alias,
            declared_types=definition.declared_types,
        )

    def resolve_index_for(self, table_name: str, column_name: str) -> SchemaEntry | None:
        """
        An index whose keys can be searched for ``column_name = value``: a
        single ascending column compared with the BINARY collation.
        """
        table = table_name.lower()
        column = column_name.lower()
        for entry in self._entries:
            if entry.type != "index" or entry.table_name.lower() != table:
                continue
            if entry.sql is None:
                continue
            indexed = parse_index_column(entry.sql)
            if indexed is None or indexed.name.lower() != column:
                continue
            collation = indexed.collation or self._column_collation(table_name, column_name)
            if collation == DEFAULT_COLLATION:
                return entry
            logger.debug("index_skipped", index=entry.name, collation=collation)
        return None

    def _column_collation(self, table_name: str, column_name: str) -> str:
        entry = self.find(table_name, "table")
        if entry is None or entry.sql is None:
            return DEFAULT_COLLATION
        return parse_table_columns(entry.sql).collation_of(column_name)
