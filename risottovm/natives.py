"""Built-in functions callable from bytecode.

Every native takes the running VM and the list of argument values and
returns the list of values it produces.
"""

from __future__ import annotations

from collections.abc import Callable

from .value import (
    Ref,
    Value,
    array_value,
    as_array,
    as_bool,
    as_double,
    as_int,
    as_str,
    assign,
    bool_value,
    double_value,
    int_value,
    ref_value,
    str_value,
)
from .valuetypes import TypeContainer, ValueType
from .vm import VM, VMError

ARGS_TYPE = TypeContainer(ValueType.ARRAY, None)

_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"
_C_SPACE = " \t\n\v\f\r"
_LONG_MIN = -(1 << 63)
_LONG_MAX = (1 << 63) - 1


def _bool_text(flag: bool) -> str:
    return "true" if flag else "false"


def _digit(char: str) -> int:
    if not char or not char.isascii():
        return -1
    return _DIGITS.find(char.lower())


def _strtol(text: str, base: int) -> int:
    """Parse a leading integer the way the C library does, returning 0 if none."""
    i = 0
    while i < len(text) and text[i] in _C_SPACE:
        i += 1
    negative = False
    if i < len(text) and text[i] in "+-":
        negative = text[i] == "-"
        i += 1

    if (
        base in (0, 16)
        and text[i : i + 2].lower() == "0x"
        and 0 <= _digit(text[i + 2 : i + 3]) < 16
    ):
        i += 2
        base = 16
    elif base == 0:
        base = 8 if text[i : i + 1] == "0" else 10

    if not 2 <= base <= 36:
        return 0

    result = 0
    while i < len(text):
        digit = _digit(text[i])
        if not 0 <= digit < base:
            break
        result = result * base + digit
        i += 1

    if negative:
        result = -result
    return max(_LONG_MIN, min(_LONG_MAX, result))


# VM

def vm_stats(vm: VM, args: list[Value]) -> list[Value]:
    """Print the number of live heap objects and the collection threshold."""
    vm.printf(f"Objects count: {vm.num_objects}\n")
    vm.printf(f"Max Objects: {vm.max_objects}\n")
    return []


def run_gc(vm: VM, args: list[Value]) -> list[Value]:
    """Run a garbage collection."""
    vm.gc()
    return []


def program_args(vm: VM, args: list[Value]) -> list[Value]:
    """Return the program arguments as an array."""
    return [array_value(vm.args, ARGS_TYPE)]


def panic(vm: VM, args: list[Value]) -> list[Value]:
    """Abort execution with the given message."""
    raise VMError(as_str(args[0]))


# String concatenation

def binary_string_add_string(vm: VM, args: list[Value]) -> list[Value]:
    return [str_value(as_str(args[0]) + as_str(args[1]))]


def binary_string_add_int(vm: VM, args: list[Value]) -> list[Value]:
    return [str_value(f"{as_str(args[0])}{as_int(args[1])}")]


def binary_string_add_double(vm: VM, args: list[Value]) -> list[Value]:
    return [str_value(f"{as_str(args[0])}{as_double(args[1]):f}")]


def binary_string_add_bool(vm: VM, args: list[Value]) -> list[Value]:
    return [str_value(as_str(args[0]) + _bool_text(as_bool(args[1])))]


def binary_int_add_string(vm: VM, args: list[Value]) -> list[Value]:
    return [str_value(f"{as_int(args[0])}{as_str(args[1])}")]


def binary_double_add_string(vm: VM, args: list[Value]) -> list[Value]:
    return [str_value(f"{as_double(args[0]):f}{as_str(args[1])}")]


def binary_bool_add_string(vm: VM, args: list[Value]) -> list[Value]:
    return [str_value(_bool_text(as_bool(args[0])) + as_str(args[1]))]


def string_to_int(vm: VM, args: list[Value]) -> list[Value]:
    """Parse the leading integer of a string in the given base."""
    return [int_value(_strtol(as_str(args[0]), as_int(args[1])))]


# Unary operators

def _prefix_in_place(
    args: list[Value],
    unwrap: Callable[[Value], float],
    wrap: Callable[[float], Value],
    delta: float,
) -> list[Value]:
    holder = [args[0]]
    assign(wrap(unwrap(holder[0]) + delta), Ref(holder, 0))
    return [holder[0]]


def _postfix_in_place(
    args: list[Value],
    unwrap: Callable[[Value], float],
    wrap: Callable[[float], Value],
    delta: float,
) -> list[Value]:
    holder = [args[0]]
    old = unwrap(holder[0])
    assign(wrap(old + delta), Ref(holder, 0))
    return [wrap(old)]


def unary_prefix_int_negate(vm: VM, args: list[Value]) -> list[Value]:
    return [int_value(-as_int(args[0]))]


def unary_prefix_int_decrement(vm: VM, args: list[Value]) -> list[Value]:
    return _prefix_in_place(args, as_int, int_value, -1)


def unary_prefix_int_increment(vm: VM, args: list[Value]) -> list[Value]:
    return _prefix_in_place(args, as_int, int_value, 1)


def unary_postfix_int_decrement(vm: VM, args: list[Value]) -> list[Value]:
    return _postfix_in_place(args, as_int, int_value, -1)


def unary_postfix_int_increment(vm: VM, args: list[Value]) -> list[Value]:
    return _postfix_in_place(args, as_int, int_value, 1)


def unary_prefix_double_negate(vm: VM, args: list[Value]) -> list[Value]:
    return [double_value(-as_double(args[0]))]


def unary_prefix_double_decrement(vm: VM, args: list[Value]) -> list[Value]:
    return _prefix_in_place(args, as_double, double_value, -1.0)


def unary_prefix_double_increment(vm: VM, args: list[Value]) -> list[Value]:
    return _prefix_in_place(args, as_double, double_value, 1.0)


def unary_postfix_double_decrement(vm: VM, args: list[Value]) -> list[Value]:
    return _postfix_in_place(args, as_double, double_value, -1.0)


def unary_postfix_double_increment(vm: VM, args: list[Value]) -> list[Value]:
    return _postfix_in_place(args, as_double, double_value, 1.0)


def unary_prefix_bool_invert(vm: VM, args: list[Value]) -> list[Value]:
    return [bool_value(not as_bool(args[0]))]


# Printing

def println_int(vm: VM, args: list[Value]) -> list[Value]:
    vm.printf(f"{as_int(args[0])}\n")
    return []


def println_double(vm: VM, args: list[Value]) -> list[Value]:
    vm.printf(f"{as_double(args[0]):f}\n")
    return []


def println_string(vm: VM, args: list[Value]) -> list[Value]:
    vm.printf(f"{as_str(args[0])}\n")
    return []


def println_bool(vm: VM, args: list[Value]) -> list[Value]:
    vm.printf(_bool_text(as_bool(args[0])) + "\n")
    return []


# Arrays

def array_size(vm: VM, args: list[Value]) -> list[Value]:
    return [int_value(len(as_array(args[0]).items))]


def array_add(vm: VM, args: list[Value]) -> list[Value]:
    as_array(args[0]).items.append(args[1])
    return []


def array_at(vm: VM, args: list[Value]) -> list[Value]:
    """Return a reference to an element; negative indexes are out of bounds."""
    items = as_array(args[0]).items
    signed_index = as_int(args[1])
    index = signed_index & 0xFFFFFFFF
    if index >= len(items):
        raise VMError(f"index {signed_index} out of bounds")
    return [ref_value(Ref(items, index))]