from dataclasses import dataclass
from enum import Enum
from typing import Self, TypeAlias

from .database import HEADER_SIZE, Database
from .errors import FormatError, UnsupportedOverflow
from .records import Record
from .varint import Varint


class PageType(Enum):
    INTERIOR_INDEX_B_TREE = 0x02
    INTERIOR_TABLE_B_TREE = 0x05
    LEAF_INDEX_B_TREE = 0x0A
    LEAF_TABLE_B_TREE = 0x0D

    @property
    def is_leaf(self) -> bool:
        return self in (PageType.LEAF_TABLE_B_TREE, PageType.LEAF_INDEX_B_TREE)

    @property
    def is_table(self) -> bool:
        return self in (PageType.LEAF_TABLE_B_TREE, PageType.INTERIOR_TABLE_B_TREE)


@dataclass(frozen=True)
class TableLeafCell:
    payload_size: int
    rowid: int
    payload: bytes

    def record(self) -> Record:
        return Record.from_data(self.payload)


@dataclass(frozen=True)
class TableInteriorCell:
    child_page: int
    rowid: int


@dataclass(frozen=True)
class IndexLeafCell:
    payload_size: int
    payload: bytes

    def record(self) -> Record:
        return Record.from_data(self.payload)


@dataclass(frozen=True)
class IndexInteriorCell:
    child_page: int
    payload_size: int
    payload: bytes

    def record(self) -> Record:
        return Record.from_data(self.payload)


Cell: TypeAlias = TableLeafCell | TableInteriorCell | IndexLeafCell | IndexInteriorCell


class Page:
    """
    A single b-tree page.

    https://www.sqlite.org/fileformat.html#b_tree_pages
    """

    def __init__(self, data: bytes, page_number: int, usable_size: int | None = None):
        self.data = data
        self.page_number = page_number
        self.usable_size = usable_size if usable_size is not None else len(data)

        # Page 1 starts with the 100-byte database header; the b-tree page
        # header follows it. Cell pointers are still relative to the page start.
        self.header_offset = HEADER_SIZE if page_number == 1 else 0
        if len(data) < self.header_offset + 8:
            raise FormatError(f"Page {page_number} is too short for a b-tree header")

        # The one-byte flag at offset 0 indicating the b-tree page type.
        type_byte = data[self.header_offset]
        try:
            self.type = PageType(type_byte)
        except ValueError:
            raise FormatError(
                f"Invalid b-tree page type 0x{type_byte:02x} on page {page_number}"
            ) from None

        # The b-tree page header is 8 bytes in size for
        # leaf pages and 12 bytes for interior pages.
        self.header_size = 8 if self.type.is_leaf else 12

        # The four-byte page number at offset 8 is the right-most pointer.
        # This value appears in the header of interior b-tree pages only
        # and is omitted from all other pages.
        self.rightmost_pointer = (
            None if self.type.is_leaf else self._u32(self.header_offset + 8)
        )

        if self.header_offset + self.header_size + 2 * self.cell_count > len(data):
            raise FormatError(f"Cell pointer array overruns page {page_number}")

    @classmethod
    def get_page(cls, database: Database, page_number: int) -> Self:
        return cls(
            database.read_page(page_number),
            page_number,
            usable_size=database.header.usable_size,
        )

    def _u16(self, offset: int) -> int:
        return int.from_bytes(self.data[offset : offset + 2], byteorder="big")

    def _u32(self, offset: int) -> int:
        return int.from_bytes(self.data[offset : offset + 4], byteorder="big")

    @property
    def first_freeblock(self) -> int:
        return self._u16(self.header_offset + 1)

    @property
    def cell_count(self) -> int:
        # The two-byte integer at offset 3 gives the number of cells on the page.
        return self._u16(self.header_offset + 3)

    @property
    def cell_content_offset(self) -> int:
        # A zero value for this integer is interpreted as 65536.
        return self._u16(self.header_offset + 5) or 65536

    @property
    def fragmented_free_bytes(self) -> int:
        return self.data[self.header_offset + 7]

    @property
    def cell_pointers(self) -> list[int]:
        # The cell pointer array of a b-tree page immediately
        # follows the b-tree page header.
        #
        # It consists of K 2-byte integer offsets to the
        # cell contents, where K is the cell count.
        #
        # The cell pointers are arranged in key order with
        # the left-most cell (the cell with the smallest key) first
        # and the right-most cell (the cell with the largest key) last.
        start = self.header_offset + self.header_size
        return [self._u16(start + i * 2) for i in range(self.cell_count)]

    def max_local_payload(self) -> int:
        # https://www.sqlite.org/fileformat.html#cell_payload_overflow_pages
        if self.type == PageType.LEAF_TABLE_B_TREE:
            return self.usable_size - 35
        return ((self.usable_size - 12) * 64 // 255) - 23

    def _payload(self, offset: int, payload_size: int) -> bytes:
        if payload_size > self.max_local_payload():
            raise UnsupportedOverflow(
                f"Payload of {payload_size} bytes on page {self.page_number} "
                "spills onto overflow pages"
            )
        end = offset + payload_size
        if end > len(self.data):
            raise FormatError(f"Cell payload overruns page {self.page_number}")
        return self.data[offset:end]

    def cell(self, cell_pointer: int) -> Cell:
        """Decode the cell starting at the given offset within the page"""
        if cell_pointer >= len(self.data):
            raise FormatError(
                f"Cell pointer {cell_pointer} is outside page {self.page_number}"
            )

        match self.type:
            case PageType.LEAF_TABLE_B_TREE:
                # A varint which is the total number of bytes of payload,
                # then a varint which is the integer key, a.k.a. "rowid"
                payload_size = Varint.from_data(self.data, cell_pointer)
                offset = cell_pointer + payload_size.bytes_length
                rowid = Varint.from_data(self.data, offset)
                offset += rowid.bytes_length
                return TableLeafCell(
                    payload_size=payload_size.value,
                    rowid=rowid.to_signed(),
                    payload=self._payload(offset, payload_size.value),
                )
            case PageType.INTERIOR_TABLE_B_TREE:
                # A 4-byte big-endian page number which is the left child
                # pointer, then a varint which is the integer key
                rowid = Varint.from_data(self.data, cell_pointer + 4)
                return TableInteriorCell(
                    child_page=self._u32(cell_pointer),
                    rowid=rowid.to_signed(),
                )
            case PageType.LEAF_INDEX_B_TREE:
                payload_size = Varint.from_data(self.data, cell_pointer)
                offset = cell_pointer + payload_size.bytes_length
                return IndexLeafCell(
                    payload_size=payload_size.value,
                    payload=self._payload(offset, payload_size.value),
                )
            case PageType.INTERIOR_INDEX_B_TREE:
                payload_size = Varint.from_data(self.data, cell_pointer + 4)
                offset = cell_pointer + 4 + payload_size.bytes_length
                return IndexInteriorCell(
                    child_page=self._u32(cell_pointer),
                    payload_size=payload_size.value,
                    payload=self._payload(offset, payload_size.value),
                )

    def cells(self) -> list[Cell]:
        return [self.cell(cell_pointer) for cell_pointer in self.cell_pointers]

    def get_row_id(self, cell_pointer: int) -> int:
        """Read only the rowid of a table cell, without slicing its payload"""
        # On interior table pages, after the child pointer we have
        # a varint which is the integer key, aka "rowid"
        if self.type == PageType.INTERIOR_TABLE_B_TREE:
            return Varint.from_data(self.data, cell_pointer + 4).to_signed()
        # For table leaf pages, we need to grab it after the record size
        if self.type == PageType.LEAF_TABLE_B_TREE:
            record_size = Varint.from_data(self.data, cell_pointer)
            return Varint.from_data(
                self.data, cell_pointer + record_size.bytes_length
            ).to_signed()
        raise FormatError(f"Page {self.page_number} is not a table b-tree page")
