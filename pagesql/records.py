from dataclasses import dataclass

from .errors import FormatError, UnsupportedOverflow
from .serial_type import SQLiteSerialType, decode_value
from .values import Integer, Value
from .varint import Varint


@dataclass(frozen=True)
class Record:
    serial_types: list[int]
    values: list[Value]

    @classmethod
    def parse_header(cls, data: bytes) -> tuple[int, list[int]]:
        """
        The header begins with a single varint which determines the total number of bytes in the header.
        The varint value is the size of the header in bytes including the size varint itself.
        Following the size varint are one or more additional varints, one per column.
        These additional varints are called "serial type" numbers and determine the datatype of each column.
        The values for each column in the record immediately follow the header.

        https://www.sqlite.org/fileformat.html#record_format
        """
        record_header = Varint.from_data(data)
        if record_header.value > len(data):
            raise UnsupportedOverflow(
                f"Record header of {record_header.value} bytes does not fit "
                f"in a {len(data)} byte payload"
            )

        offset = record_header.bytes_length
        serial_types = []
        while offset < record_header.value:
            serial_type = Varint.from_data(data, offset)
            offset += serial_type.bytes_length
            serial_types.append(serial_type.value)

        if offset != record_header.value:
            raise FormatError(
                f"Record header declares {record_header.value} bytes "
                f"but its serial types span {offset}"
            )

        return offset, serial_types

    @classmethod
    def from_data(cls, data: bytes):
        offset, serial_types = cls.parse_header(data)

        # With the serial types and associated sizes for each column
        # we can start picking out the data
        values = []
        for code in serial_types:
            _, bytes_length = SQLiteSerialType.decode(code)
            if offset + bytes_length > len(data):
                # The rest of the payload lives on overflow pages
                raise UnsupportedOverflow(
                    f"Column of {bytes_length} bytes at offset {offset} "
                    f"runs past the {len(data)} byte payload"
                )
            values.append(decode_value(code, data[offset : offset + bytes_length]))
            offset += bytes_length

        return cls(serial_types=serial_types, values=values)

    def rowid_from_index(self) -> int:
        # Index entries carry the rowid of the table row as their last column
        if not self.values:
            raise FormatError("Index record has no columns")
        match self.values[-1]:
            case Integer(rowid):
                return rowid
            case other:
                raise FormatError(f"Index record ends with {other!r}, not a rowid")
