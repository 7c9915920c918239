"""
TCode Compiler Driver Tests
===========================

Tests for TCodeCompiler, the convenience functions and the error
hierarchy shared by the toolchain.
"""

import pytest

from tcode import TCodeError, SourceLocation, __version__
from tcode.compiler import (
    TCodeCompiler,
    CompilerOptions,
    compile_tcode,
    compile_file,
    TCompileError,
)
from tcode.compiler.errors import (
    IncludeError,
    InvalidCommandError,
    InvalidValueError,
    VariableExistsError,
)


# =============================================================================
# compile_source
# =============================================================================

class TestCompileSource:
    """Tests for compiling source text."""

    def test_success(self):
        result = TCodeCompiler().compile_source("int x := 5")
        assert result.success
        assert result.error is None
        assert "x data 031h" in result.assembly
        assert result.program is not None
        assert result.line_index is None
        assert result.message == ""

    def test_structured_failure(self):
        """Failures carry the line index, raw line and message."""
        result = TCodeCompiler().compile_source("int x\n  Int X ; again")
        assert not result.success
        assert result.assembly == ""
        assert isinstance(result.error, VariableExistsError)
        assert result.line_index == 1
        assert result.source_line == "Int X ; again"
        assert result.message == "'x' already exists"

    def test_filename_in_error(self):
        result = TCodeCompiler().compile_source("int x := 300", "blink.tc")
        assert isinstance(result.error, InvalidValueError)
        assert str(result.error).startswith("blink.tc:1: error: value 300 is out of range")

    def test_include_not_expanded(self):
        """Source text is compiled without touching the file system."""
        result = TCodeCompiler().compile_source("include lib.tc")
        assert isinstance(result.error, InvalidCommandError)

    def test_separate_compiles_do_not_share_state(self):
        compiler = TCodeCompiler()
        first = compiler.compile_source("int a\nint b\nfortil 3\nendfortil")
        second = compiler.compile_source("int z")
        assert first.success and second.success
        assert "z data 031h" in second.assembly
        assert "l1:" not in second.assembly

    def test_options_applied(self):
        options = CompilerOptions(output_comments=True, register_file="my.inc")
        result = TCodeCompiler(options).compile_source("int x")
        assert result.assembly.startswith("include my.inc\n")
        assert "; int x" in result.assembly


# =============================================================================
# compile_file
# =============================================================================

class TestCompileFile:
    """Tests for compiling files with includes."""

    def test_compile_file(self, tmp_path):
        source = tmp_path / "blink.tc"
        source.write_text("bool led := true\n")
        result = TCodeCompiler().compile_file(str(source))
        assert result.success
        assert "led bit 020h.0" in result.assembly

    def test_missing_file_is_empty_program(self, tmp_path):
        """An unreadable file degrades to empty output."""
        result = TCodeCompiler().compile_file(str(tmp_path / "missing.tc"))
        assert result.success
        assert result.assembly == compile_tcode("")

    def test_include(self, tmp_path):
        (tmp_path / "lib.tc").write_text("int shared := 1\n")
        main = tmp_path / "main.tc"
        main.write_text("include lib.tc\nshared := 2\n")
        result = TCodeCompiler().compile_file(str(main))
        assert result.success
        assert "shared data 031h" in result.assembly
        assert "mov 031h, #2" in result.assembly

    def test_include_path_option(self, tmp_path):
        lib_dir = tmp_path / "lib"
        lib_dir.mkdir()
        (lib_dir / "leds.tc").write_text("bool led\n")
        main = tmp_path / "main.tc"
        main.write_text("include leds.tc\nled := true\n")
        options = CompilerOptions(include_paths=[str(lib_dir)])
        result = TCodeCompiler(options).compile_file(str(main))
        assert result.success

    def test_error_located_in_included_file(self, tmp_path):
        lib = tmp_path / "lib.tc"
        lib.write_text("int ok\nint ok\n")
        main = tmp_path / "main.tc"
        main.write_text("int first\ninclude lib.tc\n")
        result = TCodeCompiler().compile_file(str(main))
        assert isinstance(result.error, VariableExistsError)
        assert result.error.location == SourceLocation(str(lib), 2)
        assert result.line_index == 1

    def test_error_in_main_file_after_include(self, tmp_path):
        (tmp_path / "lib.tc").write_text("int a\nint b\n")
        main = tmp_path / "main.tc"
        main.write_text("include lib.tc\nelse\n")
        result = TCodeCompiler().compile_file(str(main))
        assert result.error.location == SourceLocation(str(main), 2)

    def test_missing_include(self, tmp_path):
        main = tmp_path / "main.tc"
        main.write_text("include nowhere.tc\n")
        result = TCodeCompiler().compile_file(str(main))
        assert isinstance(result.error, IncludeError)
        assert result.line_index == 0


# =============================================================================
# Convenience Functions
# =============================================================================

class TestConvenienceFunctions:
    """Tests for compile_tcode and compile_file."""

    def test_compile_tcode_raises(self):
        with pytest.raises(TCompileError):
            compile_tcode("else")

    def test_compile_file_writes_output(self, tmp_path):
        source = tmp_path / "prog.tc"
        source.write_text("int x := 1\n")
        output = tmp_path / "prog.asm"
        assembly = compile_file(str(source), str(output))
        assert output.read_text() == assembly

    def test_compile_file_raises(self, tmp_path):
        source = tmp_path / "bad.tc"
        source.write_text("endif\n")
        with pytest.raises(TCompileError):
            compile_file(str(source))


# =============================================================================
# Error Hierarchy
# =============================================================================

class TestErrors:
    """Tests for error formatting and the exception hierarchy."""

    def test_hierarchy(self):
        assert issubclass(TCompileError, TCodeError)
        assert issubclass(VariableExistsError, TCompileError)

    def test_format_without_location(self):
        assert str(TCodeError("boom")) == "error: boom"

    def test_format_with_hint(self):
        error = InvalidValueError("256", "0..255", SourceLocation("a.tc", 3), "int x := 256")
        assert str(error) == (
            "a.tc:3: error: value 256 is out of range\n"
            "    int x := 256\n"
            "hint: allowed range is 0..255"
        )

    def test_locate_keeps_existing_location(self):
        error = TCodeError("boom", SourceLocation("a.tc", 5))
        error.locate(0, "x")
        assert error.location.line == 5

    def test_relocate(self):
        error = TCodeError("boom", SourceLocation("<input>", 5))
        error.relocate(SourceLocation("lib.tc", 2))
        assert str(error) == "lib.tc:2: error: boom"

    def test_include_error_hint(self):
        error = IncludeError("x.tc", "file not found", search_paths=["a", "b"])
        assert error.hint == "searched in: a, b"

    def test_version(self):
        assert __version__ == "1.0.0"
