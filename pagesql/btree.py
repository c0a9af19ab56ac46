"""
Traversals over table and index b-trees.

Every traversal keeps its own explicit stack of pages still to visit, so the
depth of a (possibly corrupt) tree never turns into Python recursion. Pages
are re-read from disk on each visit.
"""

from typing import Iterator, NamedTuple

from .config import get_settings
from .database import Database
from .errors import FormatError
from .log import get_logger
from .page import IndexInteriorCell, IndexLeafCell, Page, PageType, TableInteriorCell
from .records import Record
from .values import Value, compare_values

logger = get_logger(__name__)


class TableRow(NamedTuple):
    rowid: int
    record: Record


class IndexEntry(NamedTuple):
    key: tuple[Value, ...]
    rowid: int

    @classmethod
    def from_cell(cls, cell: IndexLeafCell | IndexInteriorCell) -> "IndexEntry":
        record = cell.record()
        if len(record.values) < 2:
            raise FormatError("Index entry has no key columns")
        return cls(key=tuple(record.values[:-1]), rowid=record.rowid_from_index())


class _Visit(NamedTuple):
    page_number: int
    depth: int


def _resolve_max_depth(max_depth: int | None) -> int:
    return max_depth if max_depth is not None else get_settings().max_tree_depth


def _load(
    database: Database, visit: _Visit, max_depth: int, table: bool | None
) -> Page:
    if visit.depth > max_depth:
        raise FormatError(
            f"B-tree is deeper than {max_depth} levels at page {visit.page_number}"
        )
    page = Page.get_page(database, visit.page_number)
    if table is not None and page.type.is_table != table:
        kind = "table" if table else "index"
        raise FormatError(f"Page {visit.page_number} does not belong to a {kind} b-tree")
    return page


def full_scan(
    database: Database, root_page: int, max_depth: int | None = None
) -> Iterator[TableRow | IndexEntry]:
    """
    Walk a whole b-tree in key order.

    Table trees produce ``TableRow(rowid, record)``; index trees produce
    ``IndexEntry(key, rowid)``, including the entries that live on interior
    pages.
    """
    max_depth = _resolve_max_depth(max_depth)
    table: bool | None = None
    stack: list[_Visit | IndexEntry] = [_Visit(root_page, 1)]

    while stack:
        item = stack.pop()
        if isinstance(item, IndexEntry):
            yield item
            continue

        page = _load(database, item, max_depth, table)
        if table is None:
            table = page.type.is_table
        if page.type.is_leaf:
            for cell in page.cells():
                if isinstance(cell, IndexLeafCell):
                    yield IndexEntry.from_cell(cell)
                else:
                    yield TableRow(cell.rowid, cell.record())
            continue

        # Interior pages: each cell's left child, then (for indexes) the entry
        # stored in the cell itself, and the right-most child last
        pending: list[_Visit | IndexEntry] = []
        for cell in page.cells():
            pending.append(_Visit(cell.child_page, item.depth + 1))
            if isinstance(cell, IndexInteriorCell):
                pending.append(IndexEntry.from_cell(cell))
        pending.append(_Visit(page.rightmost_pointer, item.depth + 1))
        stack.extend(reversed(pending))


def count_rows(database: Database, root_page: int, max_depth: int | None = None) -> int:
    """Count the rows of a table tree from its leaf cell counts alone"""
    max_depth = _resolve_max_depth(max_depth)
    stack = [_Visit(root_page, 1)]
    count = 0

    while stack:
        visit = stack.pop()
        page = _load(database, visit, max_depth, table=True)
        if page.type.is_leaf:
            count += page.cell_count
            continue
        for cell in page.cells():
            stack.append(_Visit(cell.child_page, visit.depth + 1))
        stack.append(_Visit(page.rightmost_pointer, visit.depth + 1))

    return count


def point_lookup_by_rowid(
    database: Database, root_page: int, rowid: int, max_depth: int | None = None
) -> TableRow | None:
    """Find a single row by rowid, or None if the table has no such row"""
    max_depth = _resolve_max_depth(max_depth)
    visit = _Visit(root_page, 1)

    while True:
        page = _load(database, visit, max_depth, table=True)
        cell_pointers = page.cell_pointers

        if page.type == PageType.INTERIOR_TABLE_B_TREE:
            # Find the first cell whose key is >= the target. Interior keys
            # are separators: the left child holds every rowid <= the key.
            left, right = 0, len(cell_pointers)
            while left < right:
                mid = (left + right) // 2
                if page.get_row_id(cell_pointers[mid]) < rowid:
                    left = mid + 1
                else:
                    right = mid

            if left == len(cell_pointers):
                next_page = page.rightmost_pointer
            else:
                cell = page.cell(cell_pointers[left])
                if not isinstance(cell, TableInteriorCell):
                    raise FormatError(
                        f"Page {visit.page_number} holds a {type(cell).__name__} "
                        "among interior table cells"
                    )
                next_page = cell.child_page
            visit = _Visit(next_page, visit.depth + 1)
            continue

        # Leaf cells are stored in ascending rowid order
        left, right = 0, len(cell_pointers) - 1
        while left <= right:
            mid = (left + right) // 2
            row_id = page.get_row_id(cell_pointers[mid])

            if rowid == row_id:
                cell = page.cell(cell_pointers[mid])
                return TableRow(row_id, cell.record())
            elif rowid < row_id:
                right = mid - 1
            else:
                left = mid + 1

        return None


def index_scan_equal(
    database: Database, root_page: int, match_value: Value, max_depth: int | None = None
) -> Iterator[int]:
    """
    Yield the rowid of every index entry whose leading key equals
    ``match_value``, in index order.

    Subtrees whose separator key sorts below the value are skipped, and the
    scan stops at the first entry that sorts above it.
    """
    max_depth = _resolve_max_depth(max_depth)
    stack: list[_Visit | IndexEntry] = [_Visit(root_page, 1)]
    matched = 0

    while stack:
        item = stack.pop()
        if isinstance(item, IndexEntry):
            matched += 1
            yield item.rowid
            continue

        page = _load(database, item, max_depth, table=False)
        if page.type.is_leaf:
            for cell in page.cells():
                entry = IndexEntry.from_cell(cell)
                comparison = compare_values(entry.key[0], match_value)
                if comparison < 0:
                    continue
                if comparison > 0:
                    # Everything left on the stack sorts after this entry
                    logger.debug("index_scan_finished", root_page=root_page, matched=matched)
                    return
                matched += 1
                yield entry.rowid
            continue

        pending: list[_Visit | IndexEntry] = []
        for cell in page.cells():
            entry = IndexEntry.from_cell(cell)
            comparison = compare_values(entry.key[0], match_value)
            if comparison < 0:
                # The left child only holds keys <= this one
                continue
            pending.append(_Visit(cell.child_page, item.depth + 1))
            if comparison > 0:
                break
            pending.append(entry)
        else:
            pending.append(_Visit(page.rightmost_pointer, item.depth + 1))
        stack.extend(reversed(pending))

    logger.debug("index_scan_finished", root_page=root_page, matched=matched)
