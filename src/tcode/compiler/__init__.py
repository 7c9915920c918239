"""
TCode Compiler
==============

This package compiles TCode, a small line-oriented language, into
assembly for the 8051 microcontroller family.

TCode maps every variable directly onto the 8051's internal memory:
bytes into general RAM, bools into the bit-addressable area, and each
counted loop into a work register. The compiler does this allocation
statically, scope by scope, so the generated program needs no heap and
no stack frames.

Pipeline
--------
    TCode Source → Include Expansion → Classifier → Parser → Generator → Assembly

- The classifier decides what each line is from keywords and operators.
- The parser runs in two phases (method signatures, then bodies) and
  allocates addresses, registers and labels as it goes.
- The generator emits the assembly, replaying the allocation to check it.

Usage
-----
>>> from tcode.compiler import compile_tcode
>>> asm = compile_tcode('''
... int x := 5
... int y := x + 3
... ''')
>>> print(asm)

Language Summary
----------------
- Types: bool (bit), int and char (unsigned byte), cint (signed byte)
- Blocks: block/{ }, if [c] ... else ... endif, while [c] ... endwhile,
  fortil n ... endfortil, break
- Methods: method name[int a, bool b] ... return x ... endmethod
- Operators: + - * / % & | ! > < = != << >> ++ -- and name.bit
- Assignment: := += -= *= /= %= &= |=
- Other: sleep n, interrupt <source> <method>, include <file>
"""

__version__ = "1.0.0"

# =============================================================================
# Public API Imports
# =============================================================================

from tcode.compiler.compiler import (
    TCodeCompiler,
    CompilerOptions,
    CompilerResult,
    compile_tcode,
    compile_file,
)
from tcode.compiler.errors import (
    TCompileError,
    TooManyValuesError,
    TooManyBoolsError,
    TooManyRegistersError,
    InvalidNameError,
    VariableExistsError,
    ElseWithoutIfError,
    ParameterError,
    InvalidCommandError,
    InvalidSyntaxError,
    InvalidValueError,
    IncludeError,
    CodeGenError,
)
from tcode.compiler.allocators import Label, ResourceAllocator
from tcode.compiler.classifier import CommandType, classify, normalize_line
from tcode.compiler.parser import TCodeParser
from tcode.compiler.codegen import CodeGenerator
from tcode.compiler.preprocessor import IncludePreprocessor
from tcode.compiler.commands import Program, CommandPrinter

__all__ = [
    # Version
    "__version__",
    # Main API
    "TCodeCompiler",
    "CompilerOptions",
    "CompilerResult",
    "compile_tcode",
    "compile_file",
    # Errors
    "TCompileError",
    "TooManyValuesError",
    "TooManyBoolsError",
    "TooManyRegistersError",
    "InvalidNameError",
    "VariableExistsError",
    "ElseWithoutIfError",
    "ParameterError",
    "InvalidCommandError",
    "InvalidSyntaxError",
    "InvalidValueError",
    "IncludeError",
    "CodeGenError",
    # Stages
    "Label",
    "ResourceAllocator",
    "CommandType",
    "classify",
    "normalize_line",
    "TCodeParser",
    "CodeGenerator",
    "IncludePreprocessor",
    "Program",
    "CommandPrinter",
]
