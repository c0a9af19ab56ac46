import struct
from enum import Enum
from typing import Optional

from .errors import FormatError
from .values import Blob, Integer, NULL, Real, Text, Value


class SQLiteSerialType(Enum):
    # Predefined types
    NULL = (0, "NULL value", 0)
    INT8 = (1, "8-bit integer", 1)
    INT16 = (2, "16-bit integer", 2)
    INT24 = (3, "24-bit integer", 3)
    INT32 = (4, "32-bit integer", 4)
    INT48 = (5, "48-bit integer", 6)
    INT64 = (6, "64-bit integer", 8)
    FLOAT64 = (7, "64-bit float", 8)
    INT_0 = (8, "Integer value 0", 0)
    INT_1 = (9, "Integer value 1", 0)
    # Reserved for internal use, never found in a well-formed file
    RESERVED_10 = (10, "Reserved", None)
    RESERVED_11 = (11, "Reserved", None)

    def __init__(self, code: int, description: str, bytes_length: Optional[int] = None):
        self.code = code
        self.description = description
        self.bytes_length = bytes_length

    @staticmethod
    def decode(code: int) -> tuple[str, int]:
        """Returns (description, bytes_length) for a given type code"""
        # Handle predefined types
        if code < 12:
            member = _BY_CODE.get(code)
            if member is None or member.bytes_length is None:
                raise FormatError(f"Invalid serial type code: {code}")
            return member.description, member.bytes_length

        # Handle dynamic types
        length = (code - 12) // 2
        if code % 2 == 0:
            return f"BLOB value ({length} bytes)", length
        else:
            return f"TEXT value ({length} bytes)", length

    @staticmethod
    def is_blob(code: int) -> bool:
        return code >= 12 and code % 2 == 0

    @staticmethod
    def is_text(code: int) -> bool:
        return code >= 13 and code % 2 == 1


_BY_CODE = {member.code: member for member in SQLiteSerialType}


def decode_value(code: int, data: bytes) -> Value:
    """Turn the stored bytes of a single column into a value"""
    if code == 0:
        return NULL
    if 1 <= code <= 6:
        return Integer(int.from_bytes(data, byteorder="big", signed=True))
    if code == 7:
        return Real(struct.unpack(">d", data)[0])
    if code == 8:
        return Integer(0)
    if code == 9:
        return Integer(1)
    if SQLiteSerialType.is_blob(code):
        return Blob(bytes(data))
    if SQLiteSerialType.is_text(code):
        return Text(bytes(data))
    raise FormatError(f"Invalid serial type code: {code}")
