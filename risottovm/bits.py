"""Packing of boolean sequences into integers, most significant bit first."""

from __future__ import annotations

from collections.abc import Sequence


def _pack(bits: Sequence[bool], width: int) -> int:
    if len(bits) != width:
        raise ValueError(f"expected {width} bits, got {len(bits)}")
    result = 0
    for bit in bits:
        result = (result << 1) | (1 if bit else 0)
    return result


def _unpack(value: int, width: int) -> list[bool]:
    value &= (1 << width) - 1
    return [bool((value >> shift) & 1) for shift in range(width - 1, -1, -1)]


def pack8(bits: Sequence[bool]) -> int:
    """Pack 8 booleans into a byte."""
    return _pack(bits, 8)


def pack16(bits: Sequence[bool]) -> int:
    """Pack 16 booleans into a 16-bit integer."""
    return _pack(bits, 16)


def pack32(bits: Sequence[bool]) -> int:
    """Pack 32 booleans into a 32-bit integer."""
    return _pack(bits, 32)


def pack64(bits: Sequence[bool]) -> int:
    """Pack 64 booleans into a 64-bit integer."""
    return _pack(bits, 64)


def unpack8(value: int) -> list[bool]:
    """Unpack the low 8 bits of a value."""
    return _unpack(value, 8)


def unpack16(value: int) -> list[bool]:
    """Unpack the low 16 bits of a value."""
    return _unpack(value, 16)


def unpack32(value: int) -> list[bool]:
    """Unpack the low 32 bits of a value."""
    return _unpack(value, 32)


def unpack64(value: int) -> list[bool]:
    """Unpack the low 64 bits of a value."""
    return _unpack(value, 64)