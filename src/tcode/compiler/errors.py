"""
TCode Compiler Error Hierarchy
==============================

Exceptions raised while translating TCode to 8051 assembly. All of them
inherit from TCompileError, which itself inherits from the toolchain-wide
TCodeError.

Every compile error is fatal: the first violation aborts the running
phase and no partial assembly is produced. Errors raised by the resource
allocators start without a location; the parser attaches the line it was
processing (see TCodeError.locate).

Error Message Format
--------------------
    filename:line: error: description
        source_line_text
    hint: suggestion for fixing
"""

from typing import Optional

from tcode.errors import TCodeError, SourceLocation


class TCompileError(TCodeError):
    """Base exception for all compiler errors."""
    pass


# =============================================================================
# Resource Exhaustion
# =============================================================================

class TooManyValuesError(TCompileError):
    """The byte-addressable RAM region is exhausted."""

    def __init__(self, location: Optional[SourceLocation] = None, source_line: Optional[str] = None):
        super().__init__(
            "too many byte variables, RAM is full",
            location=location,
            hint="close blocks earlier so their variables are released",
            source_line=source_line,
        )


class TooManyBoolsError(TCompileError):
    """The bit-addressable RAM region is exhausted."""

    def __init__(self, location: Optional[SourceLocation] = None, source_line: Optional[str] = None):
        super().__init__(
            "too many bool variables, bit-addressable RAM is full",
            location=location,
            source_line=source_line,
        )


class TooManyRegistersError(TCompileError):
    """All work registers are in use (usually too deeply nested fortil loops)."""

    def __init__(self, location: Optional[SourceLocation] = None, source_line: Optional[str] = None):
        super().__init__(
            "too many registers in use",
            location=location,
            hint="fortil loops hold a register each, reduce their nesting depth",
            source_line=source_line,
        )


# =============================================================================
# Names and Scopes
# =============================================================================

class InvalidNameError(TCompileError):
    """
    Identifier is empty, starts with a non-letter, is a reserved word,
    or refers to an unknown variable or method.
    """

    def __init__(
        self,
        name: str,
        reason: str = "invalid name",
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.name = name
        super().__init__(
            f"{reason} '{name}'",
            location=location,
            source_line=source_line,
        )


class VariableExistsError(TCompileError):
    """A name that is already visible in the current scope chain is declared again."""

    def __init__(self, name: str, location: Optional[SourceLocation] = None, source_line: Optional[str] = None):
        self.name = name
        super().__init__(
            f"'{name}' already exists",
            location=location,
            source_line=source_line,
        )


class ElseWithoutIfError(TCompileError):
    """An else appears without an enclosing open if."""

    def __init__(self, location: Optional[SourceLocation] = None, source_line: Optional[str] = None):
        super().__init__(
            "else cannot stand alone",
            location=location,
            hint="else must directly follow the body of an if",
            source_line=source_line,
        )


# =============================================================================
# Grammar and Types
# =============================================================================

class ParameterError(TCompileError):
    """
    Wrong argument count or kind for a call, wrong operand kind for an
    operator, or a malformed assignment right-hand side.
    """

    def __init__(
        self,
        message: str = "invalid parameter",
        location: Optional[SourceLocation] = None,
        hint: Optional[str] = None,
        source_line: Optional[str] = None,
    ):
        super().__init__(message, location=location, hint=hint, source_line=source_line)


class InvalidCommandError(TCompileError):
    """A line matches no known grammar or appears where it cannot stand."""

    def __init__(
        self,
        message: str = "invalid command",
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        super().__init__(message, location=location, source_line=source_line)


class InvalidSyntaxError(TCompileError):
    """A required clause is missing or a block structure is unbalanced."""

    def __init__(
        self,
        message: str = "invalid syntax",
        location: Optional[SourceLocation] = None,
        hint: Optional[str] = None,
        source_line: Optional[str] = None,
    ):
        super().__init__(message, location=location, hint=hint, source_line=source_line)


class InvalidValueError(TCompileError):
    """A numeric or character literal is outside its type's range."""

    def __init__(
        self,
        literal: str,
        value_range: Optional[str] = None,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.literal = literal
        hint = f"allowed range is {value_range}" if value_range else None
        super().__init__(
            f"value {literal} is out of range",
            location=location,
            hint=hint,
            source_line=source_line,
        )


# =============================================================================
# Preprocessing and Generation
# =============================================================================

class IncludeError(TCompileError):
    """
    Error including a file.

    Raised when an include file cannot be found or includes itself
    (directly or indirectly).
    """

    def __init__(
        self,
        filename: str,
        reason: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
        search_paths: Optional[list[str]] = None,
    ):
        self.included_filename = filename
        self.reason = reason
        self.search_paths = search_paths or []

        hint = None
        if self.search_paths:
            hint = f"searched in: {', '.join(self.search_paths)}"

        super().__init__(
            f"cannot include '{filename}': {reason}",
            location=location,
            hint=hint,
            source_line=source_line,
        )


class CodeGenError(TCompileError):
    """
    Internal error during code generation.

    The generator trusts the command sequence built by the parser; this
    is only raised when that trust is broken, e.g. when the generator's
    replayed address allocation disagrees with the parser's.
    """
    pass
