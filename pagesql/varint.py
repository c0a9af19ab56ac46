from dataclasses import dataclass
from typing import Sequence

from .errors import FormatError


@dataclass(frozen=True)
class Varint:
    value: int
    bytes_length: int

    @classmethod
    def from_data(cls, source: Sequence[int], offset: int = 0):
        value = 0
        bytes_read = 0

        # SQLite varints have at most 9 bytes
        while bytes_read < 9:
            if offset + bytes_read >= len(source):
                raise FormatError(f"Truncated varint at offset {offset}")
            byte = source[offset + bytes_read]
            bytes_read += 1

            # The 9th byte contributes all of its 8 bits
            if bytes_read == 9:
                value = (value << 8) | byte
                break

            # & 0b01111111 will shave off the highest bit - that's the varint value
            # << 7 will create space for the new incoming bits
            # | will append the new bits to value
            value = (value << 7) | (byte & 0b01111111)

            # If highest bit is not set, we're done
            if not (byte & 0b10000000):
                break

        return cls(value=value, bytes_length=bytes_read)

    def to_signed(self) -> int:
        # Rowids are 64-bit two's complement integers stored as varints
        if self.value >= 1 << 63:
            return self.value - (1 << 64)
        return self.value
