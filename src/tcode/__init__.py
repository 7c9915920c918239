"""
TCode - Compiler Toolchain for the 8051
=======================================

This package provides a compiler for TCode, a small line-oriented
language, producing assembly for the Intel 8051 microcontroller family.

Main Components
---------------
- **compiler**: TCode to 8051 assembly compiler (tcc)
    Classifies lines, builds the command tree with static RAM, bit and
    register allocation, and emits assembly with interrupt vector setup

- **cli**: Command-line interface
    The `tcc` tool, with unified error reporting

Quick Start
-----------
Compile source text:
    >>> from tcode import compile_tcode
    >>> asm = compile_tcode("bool led := true")

Compile a file, keeping structured errors:
    >>> from tcode import TCodeCompiler
    >>> result = TCodeCompiler().compile_file("blink.tc")
    >>> if not result.success:
    ...     print(result.line_index, result.message)

Or use the command-line tool:
    $ tcc blink.tc -o blink.asm
"""

__version__ = "1.0.0"

# =============================================================================
# Public API Exports
# =============================================================================

from tcode.errors import TCodeError, SourceLocation
from tcode.compiler import (
    TCodeCompiler,
    CompilerOptions,
    CompilerResult,
    compile_tcode,
    compile_file,
    TCompileError,
)

__all__ = [
    "__version__",
    "TCodeError",
    "SourceLocation",
    "TCodeCompiler",
    "CompilerOptions",
    "CompilerResult",
    "compile_tcode",
    "compile_file",
    "TCompileError",
]
