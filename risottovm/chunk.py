"""Bytecode chunks and the instruction set."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any

from .position import Position


class OpCode(IntEnum):
    """Instructions understood by the virtual machine, in encoding order."""

    CONST = 0
    POP = 1
    COPY = 2
    NIL = 3
    RETURN = 4
    JUMP = 5
    JUMPT = 6
    JUMPF = 7
    CALL = 8
    END = 9
    LOAD = 10
    LOAD_LOCAL = 11
    LOAD_STACK = 12
    LOAD_INSTANCE = 13
    NEW = 14
    SET = 15
    FRAME = 16
    FRAME_END = 17
    ARRAY = 18
    TRUE = 19
    FALSE = 20
    EQ = 21
    NEQ = 22
    EQ_NIL = 23
    NEQ_NIL = 24
    RESOLVE_ADDR = 25
    IADD = 26
    ISUB = 27
    IMUL = 28
    IDIV = 29
    ILT = 30
    ILTE = 31
    IGT = 32
    IGTE = 33
    IMOD = 34
    DADD = 35
    DSUB = 36
    DMUL = 37
    DDIV = 38
    DLT = 39
    DLTE = 40
    DGT = 41
    DGTE = 42
    B_AND = 43
    B_OR = 44
    B_XOR = 45
    B_SHIFTL = 46
    B_SHIFTR = 47
    B_NOT = 48
    I2D = 49
    D2I = 50


LAST_OPCODE = OpCode.D2I


@dataclass
class Chunk:
    """A sequence of instruction words, their positions and a constant pool."""

    code: list[int] = field(default_factory=list)
    positions: list[Position] = field(default_factory=list)
    constants: list[Any] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.code)

    def write(self, op: int, position: Position = Position()) -> None:
        """Append an opcode or operand word with its source position."""
        self.code.append(int(op))
        self.positions.append(position)

    def add_constant(self, value: Any) -> int:
        """Add a value to the constant pool and return its index."""
        self.constants.append(value)
        return len(self.constants) - 1

    def clear(self) -> None:
        """Drop all code, positions and constants."""
        self.code.clear()
        self.positions.clear()
        self.constants.clear()