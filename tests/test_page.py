import pytest

from pagesql.errors import FormatError, UnsupportedOverflow
from pagesql.page import (
    IndexInteriorCell,
    IndexLeafCell,
    Page,
    PageType,
    TableInteriorCell,
    TableLeafCell,
)
from pagesql.values import Integer, Text

PAGE_SIZE = 512


def build_page(page_type: int, cells: list[bytes], rightmost: int | None = None) -> bytes:
    """Lay cells out from the end of a page, like SQLite does"""
    header_size = 8 if rightmost is None else 12
    data = bytearray(PAGE_SIZE)
    data[0] = page_type
    data[3:5] = len(cells).to_bytes(2, byteorder="big")

    offset = PAGE_SIZE
    for idx, cell in enumerate(cells):
        offset -= len(cell)
        data[offset : offset + len(cell)] = cell
        pointer = header_size + idx * 2
        data[pointer : pointer + 2] = offset.to_bytes(2, byteorder="big")
    data[5:7] = offset.to_bytes(2, byteorder="big")

    if rightmost is not None:
        data[8:12] = rightmost.to_bytes(4, byteorder="big")
    return bytes(data)


class TestPage:
    def test_table_leaf(self):
        # payload size 3, rowid 5, record [header 2, int8] = 42
        page = Page(build_page(0x0D, [bytes([3, 5, 2, 1, 42])]), page_number=2)
        assert page.type == PageType.LEAF_TABLE_B_TREE
        assert page.header_size == 8
        assert page.rightmost_pointer is None
        assert page.cell_count == 1

        [cell] = page.cells()
        assert cell == TableLeafCell(payload_size=3, rowid=5, payload=bytes([2, 1, 42]))
        assert cell.record().values == [Integer(42)]
        assert page.get_row_id(page.cell_pointers[0]) == 5

    def test_table_interior(self):
        cells = [b"\x00\x00\x00\x07" + bytes([10]), b"\x00\x00\x00\x08" + bytes([0x81, 0x00])]
        page = Page(build_page(0x05, cells, rightmost=9), page_number=3)
        assert page.header_size == 12
        assert page.rightmost_pointer == 9
        assert page.cells() == [
            TableInteriorCell(child_page=7, rowid=10),
            TableInteriorCell(child_page=8, rowid=128),
        ]

    def test_index_cells(self):
        payload = bytes([3, 23, 1]) + b"apple" + b"\x07"
        leaf = Page(build_page(0x0A, [bytes([len(payload)]) + payload]), page_number=4)
        [cell] = leaf.cells()
        assert isinstance(cell, IndexLeafCell)
        assert cell.record().values == [Text(b"apple"), Integer(7)]

        interior = Page(
            build_page(0x02, [b"\x00\x00\x00\x02" + bytes([len(payload)]) + payload], rightmost=6),
            page_number=5,
        )
        [cell] = interior.cells()
        assert isinstance(cell, IndexInteriorCell)
        assert cell.child_page == 2
        assert cell.record().rowid_from_index() == 7

    def test_negative_rowid(self):
        cell = bytes([2]) + b"\xff" * 9 + bytes([1, 0])
        page = Page(build_page(0x0D, [cell]), page_number=2)
        assert page.cells()[0].rowid == -1

    def test_invalid_page_type(self):
        with pytest.raises(FormatError):
            Page(build_page(0x07, []), page_number=2)

    def test_page_one_header_comes_after_file_header(self):
        data = bytearray(PAGE_SIZE)
        data[100] = 0x0D
        page = Page(bytes(data), page_number=1)
        assert page.header_offset == 100
        assert page.cell_count == 0

    def test_payload_spilling_to_overflow_pages(self):
        # A 600 byte payload cannot fit in a 512 byte page
        cell = bytes([0x84, 0x58, 1]) + bytes(40)
        page = Page(build_page(0x0D, [cell]), page_number=2)
        with pytest.raises(UnsupportedOverflow):
            page.cells()

    def test_max_local_payload(self):
        assert Page(build_page(0x0D, []), page_number=2).max_local_payload() == PAGE_SIZE - 35
        assert Page(build_page(0x0A, []), page_number=2).max_local_payload() == (
            (PAGE_SIZE - 12) * 64 // 255 - 23
        )

    def test_cell_pointer_outside_page(self):
        data = bytearray(build_page(0x0D, [bytes([3, 5, 2, 1, 42])]))
        data[8:10] = (PAGE_SIZE + 10).to_bytes(2, byteorder="big")
        with pytest.raises(FormatError):
            Page(bytes(data), page_number=2).cells()
