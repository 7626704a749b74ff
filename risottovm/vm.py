"""The bytecode interpreter, its value stack and its garbage collector."""

from __future__ import annotations

import math
import operator
import sys
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum, IntFlag
from typing import Any

from .benchmark import Benchmark
from .bits import unpack64
from .chunk import LAST_OPCODE, Chunk, OpCode
from .debug import disassemble_instruction, format_value, format_vtable
from .value import (
    Object,
    Ref,
    Value,
    ValueArray,
    array_value,
    as_bool,
    as_double,
    as_int,
    as_object,
    as_pointer,
    assign,
    bool_value,
    copy_value,
    deref,
    double_value,
    int_value,
    nil,
    object_value,
    pointer_value,
    ref_value,
    typecheck,
    values_equal,
)
from .valuetypes import ValueType

STACK_MAX = 256
INITIAL_GC_THRESHOLD = 1000

Printf = Callable[[str], Any]
HeapObject = Object | ValueArray


class VMFlags(IntFlag):
    """Debugging switches of the virtual machine."""

    NONE = 0
    TRACE_EXECUTION = 1 << 0
    BENCHMARK_EXECUTION = 1 << 1


class InterpretResult(Enum):
    """Outcome of running a chunk."""

    OK = 0
    COMPILE_ERROR = 1
    RUNTIME_ERROR = 2


class VMError(RuntimeError):
    """A fatal error raised while executing bytecode."""


@dataclass
class FunctionCall:
    """Saved registers of a bytecode function call."""

    argc: int
    retc: int
    ip: int
    sp: int
    fp: int


def _to_int32(word: int) -> int:
    word &= 0xFFFFFFFF
    return word - (1 << 32) if word >= 1 << 31 else word


def _c_div(left: int, right: int) -> int:
    if right == 0:
        raise VMError("Division by zero")
    quotient = abs(left) // abs(right)
    return quotient if (left < 0) == (right < 0) else -quotient


def _c_mod(left: int, right: int) -> int:
    return left - right * _c_div(left, right)


def _float_div(left: float, right: float) -> float:
    if right != 0:
        return left / right
    if left == 0 or math.isnan(left):
        return math.nan
    return math.copysign(math.inf, left) * math.copysign(1.0, right)


_INT_BINARY: dict[OpCode, tuple[Callable[[int, int], Any], Callable[[Any], Value]]] = {
    OpCode.IADD: (operator.add, int_value),
    OpCode.ISUB: (operator.sub, int_value),
    OpCode.IMUL: (operator.mul, int_value),
    OpCode.IDIV: (_c_div, int_value),
    OpCode.IMOD: (_c_mod, int_value),
    OpCode.ILT: (operator.lt, bool_value),
    OpCode.ILTE: (operator.le, bool_value),
    OpCode.IGT: (operator.gt, bool_value),
    OpCode.IGTE: (operator.ge, bool_value),
    OpCode.B_AND: (operator.and_, int_value),
    OpCode.B_OR: (operator.or_, int_value),
    OpCode.B_XOR: (operator.xor, int_value),
    OpCode.B_SHIFTL: (lambda a, b: a << (b & 31), int_value),
    OpCode.B_SHIFTR: (lambda a, b: a >> (b & 31), int_value),
}

_DOUBLE_BINARY: dict[OpCode, tuple[Callable[[float, float], Any], Callable[[Any], Value]]] = {
    OpCode.DADD: (operator.add, double_value),
    OpCode.DSUB: (operator.sub, double_value),
    OpCode.DMUL: (operator.mul, double_value),
    OpCode.DDIV: (_float_div, double_value),
    OpCode.DLT: (operator.lt, bool_value),
    OpCode.DLTE: (operator.le, bool_value),
    OpCode.DGT: (operator.gt, bool_value),
    OpCode.DGTE: (operator.ge, bool_value),
}


def _stdout_printf(text: str) -> None:
    sys.stdout.write(text)


class VM:
    """A stack machine executing chunks of bytecode."""

    def __init__(
        self,
        flags: int = VMFlags.NONE,
        printf: Printf | None = None,
        args: ValueArray | None = None,
    ) -> None:
        self.flags = int(flags)
        self.printf: Printf = printf if printf is not None else _stdout_printf
        self.args = args if args is not None else ValueArray()
        self.stack: list[Value] = [nil()] * STACK_MAX
        self.sp = 0
        self.fp = 0
        self.ip = 0
        self.chunk: Chunk | None = None
        self.calls: list[FunctionCall] = []
        self.objects: list[HeapObject] = []
        self.max_objects = INITIAL_GC_THRESHOLD
        self._handlers: dict[int, Callable[[], None]] = self._build_handlers()

    def __enter__(self) -> VM:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def num_objects(self) -> int:
        """Number of heap objects currently registered."""
        return len(self.objects)

    def has_flag(self, flag: int) -> bool:
        return (self.flags & flag) == flag

    # Stack

    def push(self, value: Value) -> None:
        if self.sp >= STACK_MAX:
            raise VMError("Stack overflow")
        self.stack[self.sp] = value
        self.sp += 1

    def push_many(self, values: Iterable[Value]) -> None:
        values = list(values)
        if self.sp + len(values) > STACK_MAX:
            raise VMError("Stack overflow")
        self.stack[self.sp : self.sp + len(values)] = values
        self.sp += len(values)

    def pop(self) -> Value:
        if self.sp <= 0:
            raise VMError("Stack underflow")
        self.sp -= 1
        return self.stack[self.sp]

    def new_frame(self) -> None:
        """Save the frame pointer on the stack and start a frame above it."""
        self.push(pointer_value(self.fp))
        self.fp = self.sp

    def end_frame(self) -> None:
        """Discard the current frame and restore the saved frame pointer."""
        self.sp = self.fp
        self.fp = as_pointer(self.pop())

    def load_instance(self, index: int) -> None:
        """Replace the object on top of the stack with a reference to one of its fields."""
        obj = as_object(self.pop())
        offset = index + obj.size if index < 0 else index
        self.push(ref_value(Ref(obj.values, offset)))

    # Garbage collection

    def register_object(self, obj: HeapObject) -> None:
        """Track a heap object, collecting garbage first if the threshold is reached."""
        if self.num_objects >= self.max_objects:
            self.gc()
        obj.marked = False
        self.objects.append(obj)

    def mark_value(self, value: Value) -> None:
        """Mark every heap object reachable from a value."""
        pending = [value]
        while pending:
            current = deref(pending.pop())
            if current.type is ValueType.OBJECT:
                container = current.data
                children = container.values
            elif current.type is ValueType.ARRAY:
                container = current.data
                children = container.items
            else:
                continue
            if container.marked:
                continue
            container.marked = True
            pending.extend(children)

    def _mark_all(self) -> None:
        for value in self.stack[: self.sp]:
            self.mark_value(value)

    def sweep(self) -> None:
        """Drop unmarked objects and clear the marks of the survivors."""
        survivors = [obj for obj in self.objects if obj.marked]
        for obj in survivors:
            obj.marked = False
        self.objects = survivors

    def gc(self) -> None:
        self._mark_all()
        self.sweep()
        count = self.num_objects
        self.max_objects = INITIAL_GC_THRESHOLD if count < INITIAL_GC_THRESHOLD else count * 2

    def close(self) -> None:
        """Empty the stack, collect everything and forget pending calls."""
        self.sp = 0
        self.fp = 0
        self.gc()
        self.calls.clear()

    # Tracing

    def trace(self) -> None:
        """Print the stack, registers and the next instruction when tracing is on."""
        if not self.has_flag(VMFlags.TRACE_EXECUTION) or self.chunk is None:
            return
        parts = ["             "]
        for slot in range(self.sp):
            if slot == self.fp:
                parts.append("#")
            parts.append("[ " + format_value(self.stack[slot]) + " ]")
        parts.append(f" IP: {self.ip} SP: {self.sp} FP: {self.fp}\n")
        self.printf("".join(parts))
        text, _ = disassemble_instruction(self.chunk, self.ip)
        self.printf(text)

    # Execution

    def interpret(self, chunk: Chunk, addr: int = 0) -> InterpretResult:
        """Run a chunk starting at the given instruction address."""
        self.chunk = chunk
        self.ip = addr
        return self._run()

    def _run(self) -> InterpretResult:
        assert self.chunk is not None
        code = self.chunk.code
        benchmark = Benchmark()
        benchmarking = self.has_flag(VMFlags.BENCHMARK_EXECUTION)
        first = True
        while True:
            if not first:
                self.trace()
                if benchmarking and self.ip < len(code) and 0 <= code[self.ip] <= LAST_OPCODE:
                    benchmark.record(code[self.ip])
            first = False

            instruction = self._read()
            if instruction == OpCode.END:
                if benchmarking:
                    self.printf(benchmark.report())
                return InterpretResult.OK
            handler = self._handlers.get(instruction)
            if handler is None:
                self.printf(f"Unknown op code: {instruction} \n")
                return InterpretResult.RUNTIME_ERROR
            handler()

    def _read(self) -> int:
        assert self.chunk is not None
        code = self.chunk.code
        if not 0 <= self.ip < len(code):
            raise VMError(f"Instruction pointer out of bounds: {self.ip}")
        word = code[self.ip]
        self.ip += 1
        return word

    def _read_constant(self) -> Value:
        assert self.chunk is not None
        return self.chunk.constants[self._read()]

    def _build_handlers(self) -> dict[int, Callable[[], None]]:
        handlers: dict[int, Callable[[], None]] = {
            OpCode.CONST: lambda: self.push(self._read_constant()),
            OpCode.JUMP: self._op_jump,
            OpCode.JUMPT: lambda: self._op_conditional_jump(True),
            OpCode.JUMPF: lambda: self._op_conditional_jump(False),
            OpCode.RESOLVE_ADDR: self._op_resolve_addr,
            OpCode.CALL: self._op_call,
            OpCode.FRAME: self.new_frame,
            OpCode.FRAME_END: self.end_frame,
            OpCode.RETURN: self._op_return,
            OpCode.LOAD: self._op_load,
            OpCode.LOAD_STACK: self._op_load_stack,
            OpCode.LOAD_LOCAL: self._op_load_local,
            OpCode.LOAD_INSTANCE: lambda: self.load_instance(_to_int32(self._read())),
            OpCode.NEW: self._op_new,
            OpCode.SET: self._op_set,
            OpCode.POP: self._op_pop,
            OpCode.COPY: lambda: self.push(copy_value(self.pop())),
            OpCode.NIL: lambda: self.push(nil()),
            OpCode.ARRAY: self._op_array,
            OpCode.TRUE: lambda: self.push(bool_value(True)),
            OpCode.FALSE: lambda: self.push(bool_value(False)),
            OpCode.EQ_NIL: lambda: self.push(bool_value(typecheck(self.pop(), ValueType.NIL))),
            OpCode.NEQ_NIL: lambda: self.push(
                bool_value(not typecheck(self.pop(), ValueType.NIL))
            ),
            OpCode.EQ: lambda: self._op_equality(False),
            OpCode.NEQ: lambda: self._op_equality(True),
            OpCode.B_NOT: lambda: self.push(int_value(~as_int(self.pop()))),
            OpCode.I2D: lambda: self.push(double_value(as_int(self.pop()))),
            OpCode.D2I: self._op_d2i,
        }
        for op, (fn, wrap) in _INT_BINARY.items():
            handlers[op] = self._binary(fn, wrap, as_int)
        for op, (fn, wrap) in _DOUBLE_BINARY.items():
            handlers[op] = self._binary(fn, wrap, as_double)
        return handlers

    def _binary(
        self,
        fn: Callable[[Any, Any], Any],
        wrap: Callable[[Any], Value],
        unwrap: Callable[[Value], Any],
    ) -> Callable[[], None]:
        def handler() -> None:
            right = self.pop()
            left = self.pop()
            self.push(wrap(fn(unwrap(left), unwrap(right))))

        return handler

    def _op_jump(self) -> None:
        self.ip = self._read()

    def _op_conditional_jump(self, when: bool) -> None:
        addr = self._read()
        if as_bool(self.pop()) is when:
            self.ip = addr

    def _op_resolve_addr(self) -> None:
        vaddr = self._read()
        value = deref(self.pop())
        if value.vtable is None:
            raise VMError("vtable is null")
        if self.has_flag(VMFlags.TRACE_EXECUTION):
            self.printf(format_vtable(value))
        try:
            self.push(value.vtable.lookup(vaddr))
        except LookupError:
            raise VMError("Unable to find addr") from None

    def _op_call(self) -> None:
        argc = self._read()
        retc = self._read()
        refs = unpack64(self._read())
        function = deref(self.pop())

        if function.type is ValueType.INT:
            addr = as_int(function)
            self.calls.append(FunctionCall(argc=argc, retc=retc, ip=self.ip, sp=self.sp, fp=self.fp))
            self.new_frame()
            self.ip = addr
            last_arg = self.fp - 2
            for i in range(argc - 1, -1, -1):
                slot = last_arg - i
                if refs[i]:
                    self.push(ref_value(Ref(self.stack, slot)))
                else:
                    self.push(copy_value(self.stack[slot]))
        elif function.type is ValueType.P:
            args = [nil()] * argc
            for i in range(argc - 1, -1, -1):
                args[i] = self.pop()
            native = as_pointer(function)
            results = list(native(self, args) or ())
            if len(results) < retc:
                raise VMError(f"Native function returned {len(results)} values, expected {retc}")
            self.push_many(results[:retc])
        else:
            raise VMError("Unhandled function type")

    def _op_return(self) -> None:
        if not self.calls:
            raise VMError("Return outside of a function")
        call = self.calls.pop()
        rc = call.retc
        returned = [copy_value(v) for v in self.stack[self.sp - rc : self.sp]] if rc else []
        self.ip = call.ip
        self.sp = call.sp - call.argc
        self.fp = call.fp
        self.push_many(returned)

    def _op_load(self) -> None:
        addr = self._read()
        self.push(ref_value(Ref(self.stack, self.fp + addr)))

    def _op_load_stack(self) -> None:
        addr = self._read()
        self.push(ref_value(Ref(self.stack, self.sp - 1 - addr)))

    def _op_load_local(self) -> None:
        dist = self._read()
        addr = self._read()
        fp = self.fp
        for _ in range(dist):
            fp = as_pointer(self.stack[fp - 1])
        slot = fp + addr
        if not 0 <= slot < self.sp:
            raise VMError(f"Local slot {slot} outside of the stack")
        self.push(ref_value(Ref(self.stack, slot)))

    def _op_new(self) -> None:
        tc = as_pointer(self._read_constant())
        size = self._read()
        instance = Object.with_size(size)
        self.register_object(instance)
        self.push(object_value(instance, tc))

    def _op_set(self) -> None:
        origin = self.pop()
        assign(origin, Ref(self.stack, self.sp - 1))

    def _op_pop(self) -> None:
        self.sp -= self._read()

    def _op_array(self) -> None:
        tc = as_pointer(self._read_constant())
        count = self._read()
        array = ValueArray()
        self.register_object(array)
        for _ in range(count):
            array.items.append(copy_value(self.pop()))
        self.push(array_value(array, tc))

    def _op_equality(self, negate: bool) -> None:
        right = self.pop()
        left = self.pop()
        self.push(bool_value(values_equal(left, right) != negate))

    def _op_d2i(self) -> None:
        number = as_double(self.pop())
        if not math.isfinite(number):
            raise VMError(f"Cannot convert {number} to an integer")
        self.push(int_value(number))