"""Fixed-size byte containers used to hold hashes."""

from __future__ import annotations

import secrets
from enum import Enum
from functools import total_ordering
from typing import Iterable

from hashminer.commondata import (
    HexPrefix,
    from_big_endian,
    from_hex,
    to_big_endian,
    to_hex,
)

__all__ = ["Align", "FixedHash", "hashes_to_string", "ELLIPSIS"]

ELLIPSIS = "\u2026"


class Align(Enum):
    """How data of another length is placed into a hash."""

    LEFT = 0
    RIGHT = 1
    FAIL_IF_DIFFERENT = 2


@total_ordering
class FixedHash:
    """A hash of a fixed number of bytes, read as a big-endian number."""

    __slots__ = ("_data",)

    def __init__(
        self,
        data: bytes | Iterable[int] | FixedHash = b"",
        size: int = 32,
        align: Align | None = None,
    ) -> None:
        if size <= 0:
            raise ValueError("size must be positive")
        if align is None:
            align = Align.LEFT if isinstance(data, FixedHash) else Align.FAIL_IF_DIFFERENT
        source = bytes(data)
        self._data = bytearray(size)
        if len(source) == size:
            self._data[:] = source
        elif align is not Align.FAIL_IF_DIFFERENT:
            count = min(len(source), size)
            if count:
                if align is Align.RIGHT:
                    self._data[size - count:] = source[len(source) - count:]
                else:
                    self._data[:count] = source[:count]

    @classmethod
    def from_int(cls, value: int, size: int = 32) -> FixedHash:
        """Build a hash holding the low ``size`` bytes of ``value``."""
        return cls(to_big_endian(value, size), size)

    @classmethod
    def from_hex(cls, text: str, size: int = 32) -> FixedHash:
        """Build a hash from hex digits; a length other than ``size`` bytes gives zeros."""
        return cls(from_hex(text, throw=True), size, Align.FAIL_IF_DIFFERENT)

    @classmethod
    def random(cls, size: int = 32) -> FixedHash:
        """Return a hash filled with random bytes."""
        return cls(secrets.token_bytes(size), size)

    def __int__(self) -> int:
        return from_big_endian(self._data)

    def __bool__(self) -> bool:
        return any(self._data)

    def __bytes__(self) -> bytes:
        return bytes(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __iter__(self):
        return iter(bytes(self._data))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FixedHash):
            return NotImplemented
        return self._data == other._data

    def __lt__(self, other: FixedHash) -> bool:
        if not isinstance(other, FixedHash):
            return NotImplemented
        self._check_size(other)
        return bytes(self._data) < bytes(other._data)

    def __hash__(self) -> int:
        return hash((len(self._data), bytes(self._data)))

    def _check_size(self, other: FixedHash) -> None:
        if len(self._data) != len(other._data):
            raise ValueError("hashes differ in size")

    def _combine(self, other: object, op) -> FixedHash:
        if not isinstance(other, FixedHash):
            return NotImplemented
        self._check_size(other)
        return FixedHash(bytes(op(a, b) for a, b in zip(self._data, other._data)), len(self))

    def __xor__(self, other: FixedHash) -> FixedHash:
        return self._combine(other, lambda a, b: a ^ b)

    def __or__(self, other: FixedHash) -> FixedHash:
        return self._combine(other, lambda a, b: a | b)

    def __and__(self, other: FixedHash) -> FixedHash:
        return self._combine(other, lambda a, b: a & b)

    def __invert__(self) -> FixedHash:
        return FixedHash(bytes(~b & 0xFF for b in self._data), len(self))

    def __getitem__(self, index: int) -> int:
        return self._data[index]

    def __setitem__(self, index: int, value: int) -> None:
        self._data[index] = value

    def __str__(self) -> str:
        return self.hex()

    def __repr__(self) -> str:
        return f"FixedHash({self.hex(HexPrefix.ADD)!r}, size={len(self)})"

    def increment(self) -> FixedHash:
        """Add one to the hash as a big-endian number, wrapping at the top."""
        self._data[:] = to_big_endian(int(self) + 1, len(self))
        return self

    def abridged(self) -> str:
        """Return the first four bytes in hex followed by an ellipsis."""
        return to_hex(self._data[:4]) + ELLIPSIS

    def hex(self, prefix: HexPrefix = HexPrefix.DONT_ADD) -> str:
        """Return the whole hash in hex."""
        return to_hex(self._data, prefix)

    def clear(self) -> None:
        """Set every byte to zero."""
        self._data[:] = bytes(len(self._data))


def hashes_to_string(hashes: Iterable[FixedHash]) -> str:
    """Return a bracketed list of the abridged forms of ``hashes``."""
    return "[ " + "".join(f"{h.abridged()}, " for h in hashes) + "]"