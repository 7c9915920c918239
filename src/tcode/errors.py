"""
TCode Toolchain Error Hierarchy
===============================

This module defines the base exception for the TCode toolchain. Every
error raised by the compiler, the include preprocessor and the CLI
inherits from TCodeError, allowing callers to catch all toolchain errors
with a single except clause.

Exception Hierarchy
-------------------
TCodeError (base)
└── TCompileError (compiler errors, see tcode.compiler.errors)
    ├── TooManyValuesError - byte RAM exhausted
    ├── TooManyBoolsError - bit-addressable RAM exhausted
    ├── TooManyRegistersError - work register bank exhausted
    ├── InvalidNameError - bad or unknown identifier
    ├── VariableExistsError - redeclaration in visible scope
    ├── ElseWithoutIfError - else with no open if
    ├── ParameterError - wrong operand/argument kind or count
    ├── InvalidCommandError - line matches no grammar
    ├── InvalidSyntaxError - malformed or unbalanced construct
    ├── InvalidValueError - literal out of range
    ├── IncludeError - include file missing or circular
    └── CodeGenError - internal generator invariant violated

Design Philosophy
-----------------
TCode is line oriented, so every error is pinned to one source line.
The 0-based line index is kept for programmatic consumers (the editor
highlights the offending line), while the printed message uses the
1-based line number familiar from other compilers:

    blink.tc:12: error: variable 'led' already exists
        int led
"""

from dataclasses import dataclass
from typing import Optional


# =============================================================================
# Source Location Tracking
# =============================================================================

@dataclass(frozen=True)
class SourceLocation:
    """
    Represents a location in TCode source for error reporting.

    Attributes:
        filename: Name of the source file (or "<input>" for string input)
        line: Line number (1-indexed)
        column: Column number (1-indexed, 0 when the whole line is meant)
    """
    filename: str
    line: int
    column: int = 0

    def __str__(self) -> str:
        """Format as 'filename:line' or 'filename:line:column'."""
        if self.column > 0:
            return f"{self.filename}:{self.line}:{self.column}"
        return f"{self.filename}:{self.line}"


# =============================================================================
# Base Exception Class
# =============================================================================

class TCodeError(Exception):
    """
    Base exception for all TCode toolchain errors.

    Attributes:
        message: The error description
        location: Where in the source the error occurred (optional)
        hint: A suggestion for fixing the error (optional)
        source_line: The raw source text at the error location (optional)
    """

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        hint: Optional[str] = None,
        source_line: Optional[str] = None,
    ):
        self.message = message
        self.location = location
        self.hint = hint
        self.source_line = source_line
        super().__init__(self._format_message())

    @property
    def line_index(self) -> Optional[int]:
        """0-based index of the offending line, or None if unknown."""
        if self.location is None:
            return None
        return self.location.line - 1

    def locate(
        self,
        line_index: int,
        source_line: Optional[str] = None,
        filename: str = "<input>",
    ) -> "TCodeError":
        """
        Attach a source position to an error raised without one.

        Resource allocators do not know which line triggered them, so the
        parser pins their errors to the line it is processing. Errors that
        already carry a location are left untouched.

        Returns:
            self, so the call can be used directly in a raise statement
        """
        if self.location is None:
            self.location = SourceLocation(filename, line_index + 1)
            if self.source_line is None:
                self.source_line = source_line
            self.args = (self._format_message(),)
        return self

    def relocate(self, location: SourceLocation, source_line: Optional[str] = None) -> None:
        """Move the error to another location, e.g. back into an included file."""
        self.location = location
        if source_line is not None:
            self.source_line = source_line
        self.args = (self._format_message(),)

    def _format_message(self) -> str:
        """
        Format the error message with location, source context, and hint.

        Example output:
            blink.tc:3: error: invalid name '1led'
                int 1led
            hint: names start with a letter
        """
        parts = []

        if self.location:
            parts.append(f"{self.location}: error: {self.message}")
        else:
            parts.append(f"error: {self.message}")

        if self.source_line is not None and self.location is not None:
            parts.append(f"    {self.source_line}")
            if self.location.column > 0:
                padding = " " * (4 + self.location.column - 1)
                parts.append(f"{padding}^")

        if self.hint:
            parts.append(f"hint: {self.hint}")

        return "\n".join(parts)
