[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "risottovm"
version = "0.1.0"
description = "A stack-based bytecode virtual machine with a tracing disassembler and a mark-and-sweep collector"
requires-python = ">=3.10"
keywords = ["virtual machine", "bytecode", "interpreter", "disassembler", "garbage collection"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Software Development :: Interpreters",
]
dependencies = []

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["risottovm"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
