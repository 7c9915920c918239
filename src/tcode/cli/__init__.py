"""
TCode Command-Line Interface
============================

This package provides the command-line tools for the TCode toolchain:

- **tcc**: TCode to 8051 assembly compiler

Each tool is a Click-based CLI application with help text and unified
error reporting (see `errors`).
"""

__all__ = ["tcc"]
