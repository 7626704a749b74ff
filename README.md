# risottovm

A small stack-based bytecode virtual machine. You build a program as a
`Chunk` of instruction words and constants, and a `VM` runs it. The VM
provides call frames, references to stack slots and object fields,
virtual-table dispatch, native functions and a mark-and-sweep garbage
collector.

## Installing

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Building and running a chunk

The VM pops the function value first and then its arguments. So for a
call, push the arguments, then the function, then emit `CALL` with three
operand words: the argument count, the return count and a reference mask.
A native function is any callable `fn(vm, args)` that returns a list of
values. Wrap it with `pointer_value`.

```python
import sys

from risottovm.chunk import Chunk, OpCode
from risottovm.natives import println_int
from risottovm.position import Position
from risottovm.value import int_value, pointer_value
from risottovm.vm import VM, VMFlags, InterpretResult

chunk = Chunk()
pos = Position(1, 1)

a = chunk.add_constant(int_value(60))
b = chunk.add_constant(int_value(13))
fn = chunk.add_constant(pointer_value(println_int))

for word in (
    OpCode.CONST, a,
    OpCode.CONST, b,
    OpCode.B_AND,
    OpCode.CONST, fn,
    OpCode.CALL, 1, 0, 0,
    OpCode.END,
):
    chunk.write(word, pos)

vm = VM(VMFlags.NONE, sys.stdout.write, None)
assert vm.interpret(chunk, 0) is InterpretResult.OK   # prints "12"
```

- `VM.interpret` returns `InterpretResult.OK` when it reaches `END`.
- It returns `InterpretResult.RUNTIME_ERROR` on an unknown opcode.
- Fatal faults raise `VMError`. These include stack overflow or
  underflow, a null vtable, a failed vtable lookup, integer division by
  zero, and calling a value that is neither a function address nor a
  native.
- `VM` can be used as a context manager. On exit it calls `close()`,
  which empties the stack and collects garbage.

## Modules

- `risottovm.position`: `Position`, a line and column. `str()` gives
  `line:column`.
- `risottovm.chunk`: `OpCode` and `Chunk`, which has `write`,
  `add_constant` and `clear`.
- `risottovm.bits`: `pack8` through `pack64` and `unpack8` through
  `unpack64`. They convert between lists of booleans and integers, most
  significant bit first.
- `risottovm.valuetypes`: `ValueType`, `TypeContainer`, `VTable` (with
  `lookup`) and `VTableEntry`.
- `risottovm.value`: `Value`, `Ref`, `Object` and `ValueArray`. It also
  has:
  - constructors: `nil`, `int_value`, `uint_value`, `double_value`,
    `bool_value`, `str_value`, `pointer_value`, `object_value`,
    `array_value`, `ref_value`;
  - accessors: `as_int`, `as_str`, `as_array` and the rest;
  - `deref`, `resolve_ref`, `copy_value`, `typecheck`, `values_equal`
    and `assign`.
- `risottovm.debug`: `disassemble_chunk`, `disassemble_instruction`,
  `format_value`, `format_vtable` and `opcode_name`. They all return
  text.
- `risottovm.benchmark`: `Benchmark`, which records time per opcode and
  renders a report.
- `risottovm.vm`: `VM`, `VMFlags`, `InterpretResult`, `FunctionCall` and
  `VMError`.
- `risottovm.natives`: the built-in native functions. They cover:
  - printing: `println_int`, `println_double`, `println_string`,
    `println_bool`;
  - string concatenation: the `binary_*_add_*` functions;
  - `string_to_int`;
  - negation, increment, decrement and boolean inversion;
  - arrays: `array_size`, `array_add`, `array_at`;
  - `vm_stats`, `run_gc`, `program_args` and `panic`.

## Debugging

With `VMFlags.TRACE_EXECUTION`, the VM prints the stack, the registers and
the next disassembled instruction before each step after the first. With
`VMFlags.BENCHMARK_EXECUTION`, it prints a timing table per opcode when
the program reaches `END`. All output goes through the `printf` callable
passed to `VM`, which receives already formatted text. When no callable is
given, the output goes to standard output.

## What this package does not do

- There is no compiler or parser for a source language. Programs must be
  assembled by hand as `Chunk` objects.
- There is no command-line program.