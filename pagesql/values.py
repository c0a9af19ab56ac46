"""
Column values as stored in a record.

A value is one of five closed cases, mirroring SQLite's storage classes:
https://www.sqlite.org/datatype3.html#storage_classes_and_datatypes

Text keeps the raw bytes as stored in the file. Decoding to ``str`` is only
done on demand (and lossily) so that invalid byte sequences survive intact.
"""

from dataclasses import dataclass
from typing import Any, TypeAlias


@dataclass(frozen=True)
class Null:
    def to_python(self) -> None:
        return None


@dataclass(frozen=True)
class Integer:
    value: int

    def to_python(self) -> int:
        return self.value


@dataclass(frozen=True)
class Real:
    value: float

    def to_python(self) -> float:
        return self.value


@dataclass(frozen=True)
class Text:
    data: bytes

    def decode(self, encoding: str = "utf-8") -> str:
        return self.data.decode(encoding, errors="replace")

    def to_python(self) -> str:
        return self.decode()


@dataclass(frozen=True)
class Blob:
    data: bytes

    def to_python(self) -> bytes:
        return self.data


Value: TypeAlias = Null | Integer | Real | Text | Blob

NULL = Null()


def _type_rank(value: Value) -> int:
    # https://www.sqlite.org/datatype3.html#sort_order
    match value:
        case Null():
            return 0
        case Integer() | Real():
            return 1
        case Text():
            return 2
        case Blob():
            return 3
    raise TypeError(f"Not a record value: {value!r}")


def compare_values(left: Value, right: Value) -> int:
    """
    Three-way comparison following SQLite's sort order: NULLs first, then
    numbers (integers and reals compared numerically), then text and blobs,
    both compared byte-wise.
    """
    left_rank, right_rank = _type_rank(left), _type_rank(right)
    if left_rank != right_rank:
        return -1 if left_rank < right_rank else 1

    a: Any
    b: Any
    match left, right:
        case (Integer(a) | Real(a)), (Integer(b) | Real(b)):
            pass
        case (Text(a) | Blob(a)), (Text(b) | Blob(b)):
            pass
        case _:
            return 0

    if a < b:
        return -1
    if a > b:
        return 1
    return 0


def values_equal(left: Value, right: Value) -> bool:
    # NULL never equals anything, including another NULL
    if isinstance(left, Null) or isinstance(right, Null):
        return False
    return compare_values(left, right) == 0
