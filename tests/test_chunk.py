from risottovm.chunk import LAST_OPCODE, Chunk, OpCode
from risottovm.position import Position


def test_opcodes_start_at_const_and_end_at_d2i():
    chunk = Chunk()
    for op in OpCode:
        chunk.write(op)
    assert chunk.code[0] == OpCode.CONST
    assert chunk.code[-1] == OpCode.D2I
    assert chunk.code[-1] == LAST_OPCODE
    assert chunk.code[-1] == len(chunk) - 1


def test_opcodes_are_dense():
    chunk = Chunk()
    for op in OpCode:
        chunk.write(op)
    assert [int(op) for op in chunk.code] == list(range(len(chunk)))


def test_write_appends_code_and_position():
    chunk = Chunk()
    chunk.write(OpCode.CONST, Position(1, 1))
    chunk.write(0, Position(1, 1))
    chunk.write(OpCode.END, Position(2, 3))
    assert chunk.code == [OpCode.CONST, 0, OpCode.END]
    assert chunk.positions == [Position(1, 1), Position(1, 1), Position(2, 3)]
    assert len(chunk) == 3


def test_write_uses_unknown_position_by_default():
    chunk = Chunk()
    chunk.write(OpCode.NIL)
    assert chunk.positions == [Position()]


def test_add_constant_returns_sequential_indices():
    chunk = Chunk()
    first = chunk.add_constant("a")
    second = chunk.add_constant("b")
    assert (first, second) == (0, 1)
    assert chunk.constants[second] == "b"


def test_clear_empties_everything():
    chunk = Chunk()
    chunk.write(OpCode.TRUE, Position(1, 1))
    chunk.add_constant(42)
    chunk.clear()
    assert len(chunk) == 0
    assert chunk.positions == []
    assert chunk.constants == []