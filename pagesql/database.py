import os
from dataclasses import dataclass
from io import BufferedReader
from typing import Self

from .errors import FormatError, IoError, PageOutOfRange
from .log import get_logger

logger = get_logger(__name__)

HEADER_SIZE = 100
HEADER_MAGIC = b"SQLite format 3\x00"

# https://www.sqlite.org/fileformat.html#text_encoding
TEXT_ENCODINGS = {0: "utf-8", 1: "utf-8", 2: "utf-16-le", 3: "utf-16-be"}


@dataclass(frozen=True)
class DatabaseHeader:
    """
    The first 100 bytes of the database file.

    https://www.sqlite.org/fileformat.html#the_database_header
    """

    page_size: int
    write_version: int
    read_version: int
    reserved_space: int
    page_count: int
    schema_format: int
    text_encoding: int
    user_version: int
    application_id: int
    sqlite_version_number: int

    @classmethod
    def from_data(cls, data: bytes) -> Self:
        if len(data) < HEADER_SIZE:
            raise FormatError(f"File is too short for a database header ({len(data)} bytes)")
        if data[:16] != HEADER_MAGIC:
            raise FormatError("File is not a database: bad magic string")

        def u32(offset: int) -> int:
            return int.from_bytes(data[offset : offset + 4], byteorder="big")

        # The two-byte value at offset 16 is the page size. A value of 1
        # stands for 65536, which does not fit in two bytes.
        page_size = int.from_bytes(data[16:18], byteorder="big")
        if page_size == 1:
            page_size = 65536
        if page_size < 512 or page_size > 65536 or page_size & (page_size - 1):
            raise FormatError(f"Invalid page size: {page_size}")

        text_encoding = u32(56)
        if text_encoding not in TEXT_ENCODINGS:
            raise FormatError(f"Invalid text encoding: {text_encoding}")

        return cls(
            page_size=page_size,
            write_version=data[18],
            read_version=data[19],
            reserved_space=data[20],
            page_count=u32(28),
            schema_format=u32(44),
            text_encoding=text_encoding,
            user_version=u32(60),
            application_id=u32(68),
            sqlite_version_number=u32(96),
        )

    @property
    def usable_size(self) -> int:
        return self.page_size - self.reserved_space

    @property
    def encoding(self) -> str:
        return TEXT_ENCODINGS[self.text_encoding]


class Database:
    """
    A read-only handle on a database file.

    Pages are read straight from disk on every call; nothing is cached.
    """

    def __init__(self, path: str, file: BufferedReader, header: DatabaseHeader, file_size: int):
        self.path = path
        self.file = file
        self.header = header
        self.file_size = file_size

    @classmethod
    def open(cls, path: str | os.PathLike[str]) -> Self:
        path = os.fspath(path)
        try:
            file = open(path, "rb")
        except OSError as e:
            raise IoError(f"Cannot open {path}: {e.strerror}") from e

        try:
            file_size = os.fstat(file.fileno()).st_size
            header = DatabaseHeader.from_data(file.read(HEADER_SIZE))
        except OSError as e:
            file.close()
            raise IoError(f"Cannot read {path}: {e.strerror}") from e
        except FormatError:
            file.close()
            raise

        logger.debug("database_opened", path=path, page_size=header.page_size, file_size=file_size)
        return cls(path, file, header, file_size)

    @property
    def page_size(self) -> int:
        return self.header.page_size

    @property
    def page_count(self) -> int:
        # The header's page count can be stale (legacy writers), so trust the file size
        return self.file_size // self.page_size

    def read_page(self, page_number: int) -> bytes:
        offset = (page_number - 1) * self.page_size
        if page_number < 1 or offset + self.page_size > self.file_size:
            raise PageOutOfRange(page_number, self.page_count)

        try:
            self.file.seek(offset)
            data = self.file.read(self.page_size)
        except OSError as e:
            raise IoError(f"Cannot read page {page_number} of {self.path}: {e.strerror}") from e

        if len(data) != self.page_size:
            raise IoError(f"Short read on page {page_number} of {self.path}")
        return data

    def close(self) -> None:
        self.file.close()

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
