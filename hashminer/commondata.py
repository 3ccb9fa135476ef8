"""Hex, byte and number formatting helpers shared across the miner."""

from __future__ import annotations

import os
from enum import Enum
from typing import Iterable, Sequence

__all__ = [
    "HexPrefix",
    "ScaleSuffix",
    "MinerError",
    "BadHexCharacter",
    "ExternalFunctionFailure",
    "to_hex",
    "int_to_hex",
    "to_compact_hex",
    "from_hex_char",
    "from_hex",
    "as_bytes",
    "as_string",
    "to_big_endian",
    "from_big_endian",
    "to_compact_big_endian",
    "bytes_required",
    "set_env",
    "get_target_from_diff",
    "get_hashes_to_target",
    "get_scaled_size",
    "get_formatted_hashes",
    "get_formatted_memory",
    "pad_left",
    "pad_right",
]


class HexPrefix(Enum):
    """Whether a hex string is given a leading ``0x``."""

    DONT_ADD = 0
    ADD = 1


class ScaleSuffix(Enum):
    """Whether a scaled value is followed by its unit."""

    DONT_ADD = 0
    ADD = 1


class MinerError(Exception):
    """Base class for all errors raised by the package."""

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message or type(self).__name__


class BadHexCharacter(MinerError):
    """A character that is not a hex digit was met."""

    def __init__(self, symbol: str | None = None) -> None:
        super().__init__()
        self.symbol = symbol

    def __str__(self) -> str:
        return "BadHexCharacter"


class ExternalFunctionFailure(MinerError):
    """A call into an outside facility failed."""

    def __init__(self, function: str) -> None:
        super().__init__(f"Function {function}() failed.")
        self.function = function


_HIGHEST_TARGET = int("f" * 64, 16)
_DIFF1_TARGET = 0x00000000FFFF0000000000000000000000000000000000000000000000000000
_HASHES_DIVIDEND = 0xFFFF000000000000000000000000000000000000000000000000000000000000


def _prefixed(text: str, prefix: HexPrefix) -> str:
    return "0x" + text if prefix is HexPrefix.ADD else text


def to_hex(data: bytes | Iterable[int], prefix: HexPrefix = HexPrefix.DONT_ADD) -> str:
    """Return the bytes of ``data`` as a string of hex pairs."""
    return _prefixed(bytes(data).hex(), prefix)


def int_to_hex(value: int, digits: int = 16, prefix: HexPrefix = HexPrefix.DONT_ADD) -> str:
    """Return ``value`` in lower-case hex, zero padded to at least ``digits`` digits."""
    if value < 0:
        raise ValueError("value must not be negative")
    return _prefixed(f"{value:0{digits}x}", prefix)


def to_compact_hex(value: int, prefix: HexPrefix = HexPrefix.DONT_ADD) -> str:
    """Return ``value`` in lower-case hex without padding."""
    if value < 0:
        raise ValueError("value must not be negative")
    return _prefixed(f"{value:x}", prefix)


def from_hex_char(ch: str, throw: bool = False) -> int:
    """Return the value of one hex digit, or -1 (or raise) if it is not one."""
    if len(ch) == 1:
        if "0" <= ch <= "9":
            return ord(ch) - ord("0")
        if "a" <= ch <= "f":
            return ord(ch) - ord("a") + 10
        if "A" <= ch <= "F":
            return ord(ch) - ord("A") + 10
    if throw:
        raise BadHexCharacter(ch)
    return -1


def from_hex(text: str, throw: bool = False) -> bytes:
    """Decode a hex string, with or without ``0x``, into bytes.

    An odd number of digits makes the first digit a byte of its own. On a bad
    digit an empty result is returned, or ``BadHexCharacter`` raised if
    ``throw`` is set.
    """
    digits = text[2:] if text.startswith("0x") else text
    out = bytearray()
    if len(digits) % 2:
        high = from_hex_char(digits[0])
        if high == -1:
            if throw:
                raise BadHexCharacter(digits[0])
            return b""
        out.append(high)
        digits = digits[1:]
    for high_ch, low_ch in zip(digits[::2], digits[1::2]):
        high = from_hex_char(high_ch)
        low = from_hex_char(low_ch)
        if high == -1 or low == -1:
            if throw:
                raise BadHexCharacter(high_ch if high == -1 else low_ch)
            return b""
        out.append(high * 16 + low)
    return bytes(out)


def as_bytes(text: str) -> bytes:
    """Return the characters of ``text`` as bytes, one byte per character."""
    return text.encode("latin-1")


def as_string(data: bytes) -> str:
    """Return ``data`` as a string, one character per byte."""
    return bytes(data).decode("latin-1")


def to_big_endian(value: int, size: int = 32) -> bytes:
    """Return the low ``size`` bytes of ``value`` in big-endian order."""
    if value < 0:
        raise ValueError("only non-negative values are supported")
    return (value & ((1 << (8 * size)) - 1)).to_bytes(size, "big")


def from_big_endian(data: bytes | Iterable[int]) -> int:
    """Return the integer that big-endian ``data`` holds."""
    return int.from_bytes(bytes(data), "big")


def bytes_required(value: int) -> int:
    """Return the number of bytes needed to hold ``value``; zero for zero."""
    if value < 0:
        raise ValueError("only non-negative values are supported")
    return (value.bit_length() + 7) // 8


def to_compact_big_endian(value: int, minimum: int = 0) -> bytes:
    """Return ``value`` big-endian in as few bytes as it needs, at least ``minimum``."""
    return to_big_endian(value, max(minimum, bytes_required(value)))


def set_env(name: str, value: str, override: bool = False) -> bool:
    """Set an environment variable, keeping an existing one unless ``override``."""
    if not override and name in os.environ:
        return True
    os.environ[name] = value
    return True


def get_target_from_diff(diff: float, prefix: HexPrefix = HexPrefix.ADD) -> str:
    """Return the 256-bit boundary hash for a pool difficulty as 64 hex digits."""
    if diff == 0:
        product = _HIGHEST_TARGET
    else:
        inverse = 1 / diff
        product = _DIFF1_TARGET * int(inverse)
        text = "%.17g" % inverse
        dot = text.find(".")
        if dot != -1:
            decimals = text[dot + 1:]
            if not decimals.isdigit():
                raise ValueError(f"difficulty {diff!r} cannot be expressed as a target")
            precision = len(decimals)
            multiplier = int(decimals.lstrip("0") or "0")
            product += _DIFF1_TARGET * multiplier // 10**precision
    return _prefixed(f"{product:064x}", prefix).lower()


def _parse_big_integer(text: str) -> int:
    if text.startswith(("0x", "0X")):
        return int(text[2:], 16)
    if len(text) > 1 and text.startswith("0"):
        return int(text[1:], 8)
    return int(text, 10)


def get_hashes_to_target(target: str) -> float:
    """Return how many hashes on average it takes to meet ``target``."""
    divisor = _parse_big_integer(target)
    if divisor == 0:
        raise ZeroDivisionError("target must not be zero")
    return float(_HASHES_DIVIDEND // divisor)


def get_scaled_size(
    value: float,
    divisor: float,
    precision: int,
    sizes: Sequence[str],
    suffix: ScaleSuffix = ScaleSuffix.ADD,
) -> str:
    """Divide ``value`` by ``divisor`` while it exceeds it and format it with its unit."""
    scaled = value
    index = 0
    while scaled > divisor and index < len(sizes) - 1:
        scaled /= divisor
        index += 1
    result = f"{scaled:.{precision}f}"
    if suffix is ScaleSuffix.ADD:
        result += " " + sizes[index]
    return result


def get_formatted_hashes(
    hashrate: float, suffix: ScaleSuffix = ScaleSuffix.ADD, precision: int = 2
) -> str:
    """Format a hash rate with h, Kh, Mh or Gh."""
    return get_scaled_size(hashrate, 1000.0, precision, ("h", "Kh", "Mh", "Gh"), suffix)


def get_formatted_memory(
    memory: float, suffix: ScaleSuffix = ScaleSuffix.ADD, precision: int = 2
) -> str:
    """Format an amount of memory with B, KB, MB or GB."""
    return get_scaled_size(memory, 1024.0, precision, ("B", "KB", "MB", "GB"), suffix)


def pad_left(value: str, length: int, fill_char: str) -> str:
    """Fill ``value`` on the left up to ``length`` characters."""
    return value.rjust(length, fill_char)


def pad_right(value: str, length: int, fill_char: str) -> str:
    """Fill ``value`` on the right up to ``length`` characters."""
    return value.ljust(length, fill_char)