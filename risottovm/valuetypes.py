"""Value type tags, vtables and type containers."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .value import Value


class ValueType(IntEnum):
    """Runtime type tag of a value."""

    NIL = 0
    UINT = 1
    INT = 2
    DOUBLE = 3
    P = 4
    STR = 5
    OBJECT = 6
    BOOL = 7
    ARRAY = 8
    VALUE_P = 9


@dataclass
class VTableEntry:
    """Maps a virtual address to a callable value."""

    vaddr: int
    addr: Value


@dataclass(eq=False)
class VTable:
    """Method table attached to a type."""

    entries: list[VTableEntry] = field(default_factory=list)
    size: int = 0

    def lookup(self, vaddr: int) -> Value:
        """Return the value registered under a virtual address."""
        for entry in self.entries:
            if entry.vaddr == vaddr:
                return entry.addr
        raise LookupError(f"Unable to find addr {vaddr}")


@dataclass(frozen=True, eq=False)
class TypeContainer:
    """A type tag together with its vtable; compared by identity."""

    type: ValueType
    vtable: VTable | None = None


NIL_TYPE = TypeContainer(ValueType.NIL, VTable())
INT_TYPE = TypeContainer(ValueType.INT, VTable())
UINT_TYPE = TypeContainer(ValueType.UINT, VTable())
DOUBLE_TYPE = TypeContainer(ValueType.DOUBLE, VTable())
BOOL_TYPE = TypeContainer(ValueType.BOOL, VTable())
STRING_TYPE = TypeContainer(ValueType.STR, VTable())
VALUE_P_TYPE = TypeContainer(ValueType.VALUE_P)
POINTER_TYPE = TypeContainer(ValueType.P)