"""Runtime values, references to value slots, and conversions."""

from __future__ import annotations

from collections.abc import MutableSequence
from dataclasses import dataclass, field
from typing import Any

from .valuetypes import (
    BOOL_TYPE,
    DOUBLE_TYPE,
    INT_TYPE,
    NIL_TYPE,
    POINTER_TYPE,
    STRING_TYPE,
    UINT_TYPE,
    VALUE_P_TYPE,
    TypeContainer,
    ValueType,
    VTable,
)


def _wrap(value: int, bits: int, signed: bool) -> int:
    value &= (1 << bits) - 1
    if signed and value >= 1 << (bits - 1):
        value -= 1 << bits
    return value


@dataclass(frozen=True)
class Value:
    """A tagged runtime value."""

    tc: TypeContainer
    data: Any = None

    @property
    def type(self) -> ValueType:
        return self.tc.type

    @property
    def vtable(self) -> VTable | None:
        return self.tc.vtable


class Ref:
    """A reference to one slot of a mutable sequence of values."""

    __slots__ = ("container", "index")

    def __init__(self, container: MutableSequence[Value], index: int) -> None:
        self.container = container
        self.index = index

    def get(self) -> Value:
        return self.container[self.index]

    def set(self, value: Value) -> None:
        self.container[self.index] = value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Ref):
            return NotImplemented
        return self.container is other.container and self.index == other.index

    def __hash__(self) -> int:
        return hash((id(self.container), self.index))

    def __repr__(self) -> str:
        return f"Ref(<{type(self.container).__name__}>, {self.index})"


@dataclass(eq=False)
class Object:
    """A heap instance holding a fixed number of fields."""

    values: list[Value]
    marked: bool = False

    @property
    def size(self) -> int:
        return len(self.values)

    @classmethod
    def with_size(cls, size: int) -> Object:
        """Create an instance whose fields are all nil."""
        return cls([nil() for _ in range(size)])


@dataclass(eq=False)
class ValueArray:
    """A growable heap array of values."""

    items: list[Value] = field(default_factory=list)
    marked: bool = False


def nil() -> Value:
    return Value(NIL_TYPE, None)


def int_value(v: int | float) -> Value:
    """Make a 32-bit signed integer value, truncating floats toward zero."""
    return Value(INT_TYPE, _wrap(int(v), 32, True))


def uint_value(v: int) -> Value:
    return Value(UINT_TYPE, _wrap(int(v), 32, False))


def double_value(v: float) -> Value:
    return Value(DOUBLE_TYPE, float(v))


def bool_value(v: bool) -> Value:
    return Value(BOOL_TYPE, bool(v))


def str_value(v: str) -> Value:
    return Value(STRING_TYPE, v)


def pointer_value(v: Any) -> Value:
    return Value(POINTER_TYPE, v)


def object_value(obj: Object, tc: TypeContainer) -> Value:
    return Value(tc, obj)


def array_value(arr: ValueArray, tc: TypeContainer) -> Value:
    return Value(tc, arr)


def ref_value(ref: Ref) -> Value:
    """Make a reference to a slot; a slot already holding a reference is reused."""
    current = ref.get()
    if current.type is ValueType.VALUE_P:
        return current
    return Value(VALUE_P_TYPE, ref)


def deref(value: Value) -> Value:
    """Follow references until a plain value is reached."""
    while value.type is ValueType.VALUE_P:
        value = value.data.get()
    return value


def resolve_ref(ref: Ref) -> Ref:
    """Follow references until the slot holding a plain value is reached."""
    while ref.get().type is ValueType.VALUE_P:
        ref = ref.get().data
    return ref


def _expect(value: Value, *types: ValueType) -> Value:
    value = deref(value)
    if value.type not in types:
        expected = " or ".join(t.name for t in types)
        raise TypeError(f"expected {expected} value, got {value.type.name}")
    return value


def as_int(value: Value) -> int:
    return _expect(value, ValueType.INT).data


def as_uint(value: Value) -> int:
    return _expect(value, ValueType.UINT).data


def as_double(value: Value) -> float:
    return _expect(value, ValueType.DOUBLE).data


def as_bool(value: Value) -> bool:
    return _expect(value, ValueType.BOOL).data


def as_pointer(value: Value) -> Any:
    return _expect(value, ValueType.P).data


def as_object(value: Value) -> Object:
    return _expect(value, ValueType.OBJECT, ValueType.ARRAY).data


def as_array(value: Value) -> ValueArray:
    return _expect(value, ValueType.ARRAY).data


def as_str(value: Value) -> str:
    """Render any value as text."""
    value = deref(value)
    kind = value.type
    if kind is ValueType.NIL:
        return "nil"
    if kind is ValueType.UINT:
        return str(_wrap(value.data, 32, True))
    if kind is ValueType.INT:
        return str(value.data)
    if kind is ValueType.DOUBLE:
        return f"{value.data:f}"
    if kind in (ValueType.OBJECT, ValueType.P):
        return f"0x{id(value.data):x}"
    if kind is ValueType.STR:
        return value.data
    if kind is ValueType.BOOL:
        return "true" if value.data else "false"
    if kind is ValueType.ARRAY:
        items = value.data.items
        if len(items) > 10:
            # The opening bracket is overwritten by the ellipsis marker.
            return " <...> ]"
        return "[" + ", ".join(as_str(item) for item in items) + "]"
    raise TypeError(f"Unhandled value for string conversion: {kind.name}")


def copy_value(value: Value) -> Value:
    """Resolve a reference into a plain value, resolving references inside it too."""
    if value.type is not ValueType.VALUE_P:
        return value

    result = deref(value)
    if result.type is ValueType.ARRAY:
        items = result.data.items
        items[:] = [copy_value(item) for item in items]
    elif result.type is ValueType.OBJECT:
        fields = result.data.values
        fields[:] = [copy_value(item) for item in fields]
    return result


def typecheck(value: Value, type_: ValueType) -> bool:
    return deref(value).type is type_


def values_equal(left: Value, right: Value) -> bool:
    left = deref(left)
    right = deref(right)
    if left.type is not right.type:
        return False

    kind = left.type
    if kind is ValueType.NIL:
        return True
    if kind in (ValueType.UINT, ValueType.INT, ValueType.DOUBLE, ValueType.BOOL):
        return left.data == right.data
    if kind in (ValueType.P, ValueType.OBJECT, ValueType.ARRAY):
        return left.data is right.data
    if kind is ValueType.STR:
        # Strings report equal when their contents differ.
        return as_str(left) != as_str(right)
    raise TypeError(f"Cannot compare values of type {kind.name}")


def assign(origin: Value, target: Ref) -> None:
    """Store the plain value behind origin into the slot target finally refers to."""
    resolve_ref(target).set(deref(origin))