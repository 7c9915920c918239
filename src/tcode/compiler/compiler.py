"""
TCode Compiler Main Module
==========================

This module provides the main compiler interface for TCode. It runs the
complete pipeline:

    Source → (Include expansion) → Parse → Generate → Assembly

Usage
-----
Command line:
    $ tcc blink.tc -o blink.asm

Programmatic:
    >>> from tcode.compiler import compile_tcode
    >>> asm = compile_tcode("int x := 5")

Entry Points
------------
- `TCodeCompiler.compile_source` is a pure function of the source text:
  it does no file I/O and reports failures in the returned CompilerResult
  (line index, raw line, message) instead of raising.
- `TCodeCompiler.compile_file` reads a file and expands `include` lines
  first. Errors inside included files are reported against those files.
- `compile_tcode` and `compile_file` are convenience wrappers that
  return the assembly text and raise on failure.

Every compile uses a fresh parser, generator and set of resource
counters, so separate compiles never share state.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from tcode.errors import SourceLocation
from tcode.compiler.codegen import CodeGenerator
from tcode.compiler.commands import Program
from tcode.compiler.errors import TCompileError
from tcode.compiler.parser import TCodeParser
from tcode.compiler.preprocessor import IncludePreprocessor, read_source
from tcode.compiler.target import REGISTER_FILE

logger = logging.getLogger(__name__)


@dataclass
class CompilerOptions:
    """
    Compiler configuration options.

    Attributes:
        include_paths: Directories searched for `include` files (file entry
                       points only)
        output_comments: Echo each TCode line as a `;` comment in the assembly
        guard_interrupts: When interrupt handlers exist, disable interrupts
                          around every straight-line command of the main
                          program and of non-handler methods
        register_file: Register definition file named in the first line
    """
    include_paths: list[str] = field(default_factory=list)
    output_comments: bool = False
    guard_interrupts: bool = True
    register_file: str = REGISTER_FILE


@dataclass
class CompilerResult:
    """
    Result of a compilation.

    Attributes:
        filename: Source filename
        success: True if compilation succeeded
        assembly: Generated assembly code (empty on failure)
        source: The compiled source text, after include expansion
        program: Parsed command tree (if parsing succeeded)
        error: The error that stopped the compile, if any
    """
    filename: str = ""
    success: bool = False
    assembly: str = ""
    source: str = ""
    program: Optional[Program] = None
    error: Optional[TCompileError] = None

    @property
    def line_index(self) -> Optional[int]:
        """0-based index of the offending line."""
        return self.error.line_index if self.error else None

    @property
    def source_line(self) -> Optional[str]:
        return self.error.source_line if self.error else None

    @property
    def message(self) -> str:
        return self.error.message if self.error else ""


class TCodeCompiler:
    """
    TCode to 8051 assembly compiler.

    Example:
        compiler = TCodeCompiler()
        result = compiler.compile_file("blink.tc")
        if result.success:
            print(result.assembly)

    Attributes:
        options: Compiler configuration options
    """

    def __init__(self, options: Optional[CompilerOptions] = None):
        self.options = options or CompilerOptions()

    def compile_source(self, source: str, filename: str = "<input>") -> CompilerResult:
        """
        Compile TCode source text to assembly.

        Args:
            source: TCode source string
            filename: Source filename for error messages

        Returns:
            CompilerResult with the assembly, or the error that stopped it
        """
        result = CompilerResult(filename=filename, source=source)
        logger.info(f"Compiling {filename}")

        try:
            result.program = self._parse(source, filename)
            result.assembly = self._generate(result.program)
            result.success = True
        except TCompileError as e:
            logger.debug(f"Compilation of {filename} failed: {e.message}")
            result.error = e

        return result

    def compile_file(self, filepath: str) -> CompilerResult:
        """
        Compile a TCode file, expanding includes first.

        An unreadable file compiles as empty source.

        Args:
            filepath: Path to the TCode source file

        Returns:
            CompilerResult; errors are located in the file that caused them
        """
        source = read_source(filepath)
        preprocessor = IncludePreprocessor(source, filepath, self.options.include_paths)
        try:
            expanded = preprocessor.process()
        except TCompileError as e:
            return CompilerResult(filename=filepath, source=source, error=e)

        result = self.compile_source(expanded, filepath)
        if result.error is not None and result.error.location is not None:
            self._map_to_origin(result.error, preprocessor.origins)
        return result

    @staticmethod
    def _map_to_origin(error: TCompileError, origins: list[SourceLocation]) -> None:
        index = error.line_index
        if 0 <= index < len(origins):
            error.relocate(origins[index])

    def _parse(self, source: str, filename: str) -> Program:
        parser = TCodeParser(source.splitlines(), filename)
        return parser.parse()

    def _generate(self, program: Program) -> str:
        generator = CodeGenerator(
            output_comments=self.options.output_comments,
            guard_interrupts=self.options.guard_interrupts,
            register_file=self.options.register_file,
        )
        return generator.generate(program)


# =============================================================================
# Convenience Functions
# =============================================================================

def compile_tcode(
    source: str,
    filename: str = "<input>",
    options: Optional[CompilerOptions] = None,
) -> str:
    """
    Compile TCode source to 8051 assembly.

    Args:
        source: TCode source
        filename: Source filename for error messages
        options: Compiler options (defaults if None)

    Returns:
        Generated assembly code

    Raises:
        TCompileError: If compilation fails

    Example:
        >>> print(compile_tcode("bool led := true"))
    """
    result = TCodeCompiler(options).compile_source(source, filename)
    if result.error is not None:
        raise result.error
    return result.assembly


def compile_file(
    filepath: str,
    output_path: Optional[str] = None,
    include_paths: Optional[list[str]] = None,
) -> str:
    """
    Compile a TCode source file to 8051 assembly.

    Args:
        filepath: Path to the TCode source file
        output_path: Optional path to write the assembly to
        include_paths: Directories to search for includes

    Returns:
        Generated assembly code

    Raises:
        TCompileError: If compilation fails
    """
    options = CompilerOptions(include_paths=include_paths or [])
    result = TCodeCompiler(options).compile_file(filepath)
    if result.error is not None:
        raise result.error

    if output_path:
        Path(output_path).write_text(result.assembly, encoding="utf-8")
    return result.assembly
