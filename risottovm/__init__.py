"""A stack-based bytecode virtual machine with natives, a disassembler and a garbage collector."""

__version__ = "0.1.0"