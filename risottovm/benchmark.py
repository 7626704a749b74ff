"""Per-opcode execution timings."""

from __future__ import annotations

import math
import time
from collections.abc import Callable

from .chunk import LAST_OPCODE
from .debug import opcode_name


class Benchmark:
    """Accumulates the time spent between consecutive instructions."""

    def __init__(self, clock: Callable[[], int] = time.monotonic_ns) -> None:
        self._clock = clock
        self.timings = [0] * (LAST_OPCODE + 1)
        self.counts = [0] * (LAST_OPCODE + 1)
        self.ops = 0
        self._start = 0

    def record(self, opcode: int) -> None:
        """Charge the time since the previous call to opcode and restart the clock."""
        if self.ops > 0:
            self.timings[opcode] += self._clock() - self._start
            self.counts[opcode] += 1
        self.ops += 1
        self._start = self._clock()

    def report(self) -> str:
        """Render the timing table."""
        total = sum(self.timings)
        lines = ["\n======================= TIMINGS =======================\n"]
        for op, (spent, count) in enumerate(zip(self.timings, self.counts)):
            if count <= 0:
                continue
            share = spent / total * 100 if total else math.nan
            lines.append(
                f"{op:<3d} - {opcode_name(op):<14} C: {count:<13d} "
                f"AT: {spent // count:<5d} ({share:<5.2f}%) TT: {spent:<13d} \n"
            )
        lines.append("\n")
        lines.append(f"Total ops: {self.ops}\n")
        lines.append("C: Count - AT: Average Time - TT: Total Time\n")
        lines.append("=======================================================\n")
        return "".join(lines)