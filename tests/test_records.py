import pytest

from pagesql.errors import FormatError, UnsupportedOverflow
from pagesql.records import Record
from pagesql.schema import parse_table_columns
from pagesql.serial_type import SQLiteSerialType
from pagesql.values import Blob, Integer, Null, Real, Text, compare_values, values_equal

SCHEMA_RECORD = b"\x07\x17\x1b\x1b\x01\x81\x47\x74\x61\x62\x6c\x65\x6f\x72\x61\x6e\x67\x65\x73\x6f\x72\x61\x6e\x67\x65\x73\x04\x43\x52\x45\x41\x54\x45\x20\x54\x41\x42\x4c\x45\x20\x6f\x72\x61\x6e\x67\x65\x73\x0a\x28\x0a\x09\x69\x64\x20\x69\x6e\x74\x65\x67\x65\x72\x20\x70\x72\x69\x6d\x61\x72\x79\x20\x6b\x65\x79\x20\x61\x75\x74\x6f\x69\x6e\x63\x72\x65\x6d\x65\x6e\x74\x2c\x0a\x09\x6e\x61\x6d\x65\x20\x74\x65\x78\x74\x2c\x0a\x09\x64\x65\x73\x63\x72\x69\x70\x74\x69\x6f\x6e\x20\x74\x65\x78\x74\x0a\x29\x50"


class TestRecord:
    def test_should_parse_record_data(self):
        record = Record.from_data(SCHEMA_RECORD)
        assert record.serial_types == [23, 27, 27, 1, 199]

        record_type, name, table_name, rootpage, sql = record.values
        assert record_type == Text(b"table")
        assert name == Text(b"oranges")
        assert table_name == Text(b"oranges")
        assert rootpage == Integer(4)

        definition = parse_table_columns(sql.decode())
        assert definition.columns == ["id", "name", "description"]
        assert definition.rowid_alias == 0

    def test_should_decode_every_serial_type(self):
        header = bytes([13, 0, 1, 2, 3, 4, 5, 6, 7, 8, 9, 16, 19])
        body = (
            b"\xff"  # int8
            + b"\x01\x02"  # int16
            + b"\xff\xff\xfe"  # int24
            + b"\x7f\xff\xff\xff"  # int32
            + b"\x80\x00\x00\x00\x00\x00"  # int48
            + b"\x00" * 7 + b"\x01"  # int64
            + b"\x3f\xf8" + b"\x00" * 6  # float64
            + b"\x00\x01"  # blob
            + b"abc"  # text
        )
        record = Record.from_data(header + body)
        assert record.values == [
            Null(),
            Integer(-1),
            Integer(258),
            Integer(-2),
            Integer(2147483647),
            Integer(-(2**47)),
            Integer(1),
            Real(1.5),
            Integer(0),
            Integer(1),
            Blob(b"\x00\x01"),
            Text(b"abc"),
        ]

    def test_reserved_serial_types_are_rejected(self):
        with pytest.raises(FormatError):
            Record.from_data(bytes([2, 10]))
        with pytest.raises(FormatError):
            Record.from_data(bytes([2, 11]))

    def test_header_size_must_match_serial_types(self):
        # Declares a 2-byte header, but the serial type varint ends at byte 3
        with pytest.raises(FormatError):
            Record.from_data(bytes([2, 0x81, 0x00]))

    def test_column_past_payload_is_overflow(self):
        with pytest.raises(UnsupportedOverflow):
            Record.from_data(bytes([2, 19]) + b"ab")

    def test_header_past_payload_is_overflow(self):
        with pytest.raises(UnsupportedOverflow):
            Record.from_data(bytes([10, 1]))

    def test_rowid_from_index(self):
        record = Record.from_data(bytes([3, 23, 1]) + b"apple" + b"\x07")
        assert record.values == [Text(b"apple"), Integer(7)]
        assert record.rowid_from_index() == 7

        with pytest.raises(FormatError):
            Record.from_data(bytes([2, 23]) + b"apple").rowid_from_index()


class TestSerialType:
    def test_decode(self):
        assert SQLiteSerialType.decode(6) == ("64-bit integer", 8)
        assert SQLiteSerialType.decode(23) == ("TEXT value (5 bytes)", 5)
        assert SQLiteSerialType.decode(18) == ("BLOB value (3 bytes)", 3)
        with pytest.raises(FormatError):
            SQLiteSerialType.decode(10)

    def test_blob_and_text_parity(self):
        assert SQLiteSerialType.is_blob(12)
        assert not SQLiteSerialType.is_text(12)
        assert SQLiteSerialType.is_text(13)
        assert not SQLiteSerialType.is_blob(7)


class TestValues:
    def test_sort_order_across_types(self):
        ordered = [Null(), Integer(-3), Real(2.5), Integer(3), Text(b"A"), Text(b"a"), Blob(b"")]
        for left, right in zip(ordered, ordered[1:]):
            assert compare_values(left, right) < 0
            assert compare_values(right, left) > 0

    def test_numbers_compare_numerically(self):
        assert compare_values(Integer(2), Real(2.0)) == 0
        assert values_equal(Real(2.0), Integer(2))

    def test_text_is_compared_bytewise(self):
        assert not values_equal(Text(b"Red"), Text(b"red"))
        assert not values_equal(Text(b"abc"), Blob(b"abc"))

    def test_null_never_equals(self):
        assert not values_equal(Null(), Null())

    def test_text_decoding_is_lossy(self):
        assert Text(b"caf\xc3\xa9").decode() == "café"
        assert Text(b"\xff").decode() == "�"
        assert Text(b"\xff").data == b"\xff"
