"""Human-readable rendering of values, vtables and bytecode."""

from __future__ import annotations

from .chunk import Chunk, OpCode
from .position import Position
from .value import Value, as_object, as_str, typecheck
from .valuetypes import ValueType

_UNKNOWN_OPCODE = "Unknown opcode"

_SIMPLE = frozenset(
    {
        OpCode.IADD,
        OpCode.ISUB,
        OpCode.IMUL,
        OpCode.IDIV,
        OpCode.IMOD,
        OpCode.ILT,
        OpCode.ILTE,
        OpCode.IGT,
        OpCode.IGTE,
        OpCode.DADD,
        OpCode.DSUB,
        OpCode.DMUL,
        OpCode.DDIV,
        OpCode.DLT,
        OpCode.DLTE,
        OpCode.DGT,
        OpCode.DGTE,
        OpCode.EQ,
        OpCode.NEQ,
        OpCode.SET,
        OpCode.FRAME,
        OpCode.FRAME_END,
        OpCode.RETURN,
        OpCode.END,
        OpCode.COPY,
        OpCode.NIL,
        OpCode.TRUE,
        OpCode.FALSE,
        OpCode.EQ_NIL,
        OpCode.NEQ_NIL,
    }
)

_INT_OPERAND = frozenset(
    {
        OpCode.LOAD,
        OpCode.RESOLVE_ADDR,
        OpCode.LOAD_STACK,
        OpCode.LOAD_INSTANCE,
        OpCode.POP,
    }
)

_ADDR_OPERAND = frozenset({OpCode.JUMP, OpCode.JUMPT, OpCode.JUMPF})


def format_value(value: Value) -> str:
    """Render a value the way the tracer shows it."""
    kind = value.type
    if kind is ValueType.P:
        return "<P>"
    if kind is ValueType.STR:
        return f"`{as_str(value)}`"
    if kind is ValueType.OBJECT:
        obj = value.data
        parts = []
        for item in obj.values:
            if typecheck(item, ValueType.OBJECT) and as_object(item) is obj:
                parts.append("<self>")
            else:
                parts.append(format_value(item))
        return f"O: 0x{id(obj.values):x} {{" + ", ".join(parts) + "}"
    if kind is ValueType.VALUE_P:
        return "+" + format_value(value.data.get())
    return as_str(value)


def opcode_name(op: int) -> str:
    """Return the symbolic name of an opcode."""
    try:
        return "OP_" + OpCode(op).name
    except ValueError:
        return _UNKNOWN_OPCODE


def _position_column(chunk: Chunk, offset: int) -> str:
    position = chunk.positions[offset]
    previous = chunk.positions[offset - 1] if offset > 0 else Position()
    if position == Position() or position == previous:
        return "      | "
    return f"{str(position):>7} "


def _constant(chunk: Chunk, index: int) -> str:
    if index < len(chunk.constants):
        return format_value(chunk.constants[index])
    return f"# Constant '{index}' not found #"


def disassemble_instruction(chunk: Chunk, offset: int) -> tuple[str, int]:
    """Render the instruction at offset; return the text and the next offset."""
    text = f"{offset:04d} " + _position_column(chunk, offset)
    code = chunk.code
    instruction = code[offset]
    name = opcode_name(instruction)

    if instruction in _SIMPLE:
        return text + f"{name}\n", offset + 1
    if instruction == OpCode.CONST:
        index = code[offset + 1]
        return text + f"{name:<16} {index:4d} '" + _constant(chunk, index) + "'\n", offset + 2
    if instruction in _ADDR_OPERAND:
        return text + f"{name:<16} => {code[offset + 1]:4d}\n", offset + 2
    if instruction in _INT_OPERAND:
        return text + f"{name:<16} {code[offset + 1]:4d}\n", offset + 2
    if instruction == OpCode.LOAD_LOCAL:
        dist, addr = code[offset + 1], code[offset + 2]
        return text + f"{name:<11} D:{dist:<3d} A:{addr}\n", offset + 3
    if instruction == OpCode.CALL:
        argc, retc = code[offset + 1], code[offset + 2]
        return text + f"{name:<11} AC:{argc:<3d} RC:{retc}\n", offset + 4
    if instruction == OpCode.NEW:
        tc_index, count = code[offset + 1], code[offset + 2]
        line = f"{name:<11} VTC: " + _constant(chunk, tc_index) + f" C:{count:<3d}\n"
        return text + line, offset + 3 + count
    if instruction == OpCode.ARRAY:
        vtable_index, count = code[offset + 1], code[offset + 2]
        line = f"{name:<11} C: {count:<3d} VA: " + _constant(chunk, vtable_index) + "\n"
        return text + line, offset + 3 + count
    return text + f"{_UNKNOWN_OPCODE} {instruction}\n", offset + 1


def disassemble_chunk(chunk: Chunk, name: str) -> str:
    """Render every instruction of a chunk between header and footer lines."""
    lines = [f"== {name} ==\n"]
    offset = 0
    while offset < len(chunk.code):
        text, offset = disassemble_instruction(chunk, offset)
        lines.append(text)
    lines.append(f"== end {name} ==\n")
    return "".join(lines)


def format_vtable(value: Value) -> str:
    """Render the vtable attached to a value's type."""
    vtable = value.vtable
    if vtable is None:
        return "<vtable null>\n"
    lines = [f"==== vtable 0x{id(vtable):x} ====\n", f"{'i':<4} {'va':<4} a\n"]
    for i, entry in enumerate(vtable.entries):
        lines.append(f"{i:<4d} {entry.vaddr:<4d} " + format_value(entry.addr) + "\n")
    lines.append("================\n")
    return "".join(lines)