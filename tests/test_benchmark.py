from risottovm.benchmark import Benchmark
from risottovm.chunk import OpCode


def _clock(*ticks):
    it = iter(ticks)
    return lambda: next(it)


def test_first_record_only_starts_clock():
    bench = Benchmark(clock=_clock(100))
    bench.record(OpCode.CONST)
    assert bench.ops == 1
    assert sum(bench.counts) == 0
    assert sum(bench.timings) == 0


def test_records_elapsed_time_per_opcode():
    bench = Benchmark(clock=_clock(100, 250, 250, 400, 400))
    bench.record(OpCode.CONST)
    bench.record(OpCode.POP)
    bench.record(OpCode.POP)
    assert bench.ops == 3
    assert bench.counts[OpCode.POP] == 2
    assert bench.timings[OpCode.POP] == 300
    assert bench.counts[OpCode.CONST] == 0


def test_report_lists_used_opcodes_only():
    bench = Benchmark(clock=_clock(0, 10, 10))
    bench.record(OpCode.NIL)
    bench.record(OpCode.END)
    text = bench.report()
    assert "OP_END" in text
    assert "OP_NIL" not in text
    assert "Total ops: 2\n" in text
    assert "100.00%" in text
    assert text.startswith("\n======================= TIMINGS =======================\n")
    assert text.endswith("=======================================================\n")


def test_empty_report_has_no_rows():
    text = Benchmark().report()
    assert "OP_" not in text
    assert "Total ops: 0\n" in text