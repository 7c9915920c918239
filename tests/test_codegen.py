"""
TCode Code Generator Tests
==========================

Tests for the 8051 assembly emitted for declarations, operators, control
flow, methods and interrupt handlers.
"""

import pytest

from tcode.compiler import compile_tcode, CompilerOptions
from tcode.compiler.codegen import CodeGenerator
from tcode.compiler.errors import CodeGenError
from tcode.compiler.parser import TCodeParser


# =============================================================================
# Helper Functions
# =============================================================================

def compile_lines(source: str, **options) -> list[str]:
    """Compile source and return the assembly as a list of lines."""
    return compile_tcode(source, options=CompilerOptions(**options)).splitlines()


def main_body(source: str, **options) -> list[str]:
    """The main program: everything after the stack setup up to 'jmp main'."""
    lines = compile_lines(source, **options)
    start = lines.index("mov 081h, #07Fh") + 1
    return lines[start:lines.index("jmp main")]


def has_sequence(lines: list[str], expected: list[str]) -> bool:
    """True if `expected` appears as consecutive lines in `lines`."""
    for i in range(len(lines) - len(expected) + 1):
        if lines[i:i + len(expected)] == expected:
            return True
    return False


# =============================================================================
# Program Frame
# =============================================================================

class TestProgramFrame:
    """Tests for the fixed parts of every program."""

    def test_empty_program(self):
        assert compile_tcode("") == (
            "include reg8051.inc\n"
            "main:\n"
            "mov 081h, #07Fh\n"
            "jmp main\n"
            "end\n"
        )

    def test_end_to_end(self):
        """Two declarations, an immediate store and an addition."""
        assert compile_lines("int x := 5\nint y := x + 3\n") == [
            "include reg8051.inc",
            "main:",
            "mov 081h, #07Fh",
            "x data 031h",
            "mov 031h, #5",
            "y data 032h",
            "mov A, 031h",
            "mov 0F0h, #3",
            "add A, 0F0h",
            "mov 032h, A",
            "jmp main",
            "end",
        ]

    def test_custom_register_file(self):
        lines = compile_lines("", register_file="at89c51.inc")
        assert lines[0] == "include at89c51.inc"

    def test_idempotent(self):
        """The same source compiles to identical text every time."""
        source = "int a := 3\nwhile [a > 0]\na--\nendwhile\nsleep 5"
        assert compile_tcode(source) == compile_tcode(source)

    def test_comments(self):
        lines = compile_lines("int x := 5", output_comments=True)
        assert has_sequence(lines, ["; int x := 5", "x data 031h"])

    def test_no_comments_by_default(self):
        assert not any(line.startswith(";") for line in compile_lines("int x := 5"))


# =============================================================================
# Declarations and Assignments
# =============================================================================

class TestDeclarations:
    """Tests for data/bit directives and stores."""

    def test_bool_directive(self):
        assert main_body("bool led := true") == ["led bit 020h.0", "setb 020h.0"]

    def test_bool_false(self):
        assert main_body("bool led := false") == ["led bit 020h.0", "clr 020h.0"]

    def test_bool_copy(self):
        assert main_body("bool up\nbool down := up") == [
            "up bit 020h.0",
            "down bit 020h.1",
            "mov C, 020h.0",
            "mov 020h.1, C",
        ]

    def test_reused_address_in_directives(self):
        body = main_body("block\nint first\nendblock\nint second")
        assert "first data 031h" in body
        assert "second data 031h" in body

    def test_sibling_scopes_get_distinct_symbols(self):
        """A name reused in a sibling scope must not redefine its symbol."""
        body = main_body("block\nint x\nendblock\nint y\nblock\nint x\nendblock")
        assert "x data 031h" in body
        assert "y data 031h" in body
        assert "x_1 data 032h" in body

    def test_sibling_scopes_with_other_kind(self):
        body = main_body("block\nint x\nendblock\nblock\nbool x\nendblock")
        assert "x data 031h" in body
        assert "x_1 bit 020h.0" in body

    def test_numbered_symbol_skips_declared_names(self):
        body = main_body("block\nint x\nendblock\nblock\nint x\nendblock\nint x_1")
        assert "x data 031h" in body
        assert "x_2 data 031h" in body
        assert "x_1 data 031h" in body

    def test_symbols_unique(self):
        source = "\n".join(["block\nint v\nendblock"] * 4)
        symbols = [line.split()[0] for line in main_body(source) if " data " in line]
        assert symbols == ["v", "v_1", "v_2", "v_3"]

    @pytest.mark.parametrize("source, directive", [
        ("int a", "a_1 data 031h"),
        ("bool b", "b_1 bit 020h.0"),
        ("char c := 'a'", "c_1 data 031h"),
        ("int acc", "acc_1 data 031h"),
        ("int r0", "r0_1 data 031h"),
        ("int sp", "sp_1 data 031h"),
        ("int dptr", "dptr_1 data 031h"),
        ("int data", "data_1 data 031h"),
    ])
    def test_assembler_names_renamed(self, source, directive):
        """Variables named like registers or directives keep a usable symbol."""
        body = main_body(source)
        assert body[0] == directive

    def test_signed_immediate(self):
        assert main_body("cint n := -5") == ["n data 031h", "mov 031h, #251"]

    def test_port_store(self):
        assert main_body("p1 := 0xff") == ["mov 090h, #255"]

    def test_compound_assignment(self):
        assert main_body("int x\nx += 2") == [
            "x data 031h",
            "mov A, #2",
            "mov 0F0h, A",
            "mov A, 031h",
            "add A, 0F0h",
            "mov 031h, A",
        ]

    def test_subtract_assignment(self):
        body = main_body("int x\nx -= 1")
        assert has_sequence(body, ["mov A, 031h", "clr C", "subb A, 0F0h", "mov 031h, A"])

    def test_bit_assignment(self):
        assert main_body("int flags\nflags.2 := true") == [
            "flags data 031h",
            "setb acc.0",
            "mov C, acc.0",
            "mov A, 031h",
            "mov acc.2, C",
            "mov 031h, A",
        ]


# =============================================================================
# Operators
# =============================================================================

class TestOperators:
    """Tests for operator instruction templates."""

    @pytest.mark.parametrize("symbol,instructions", [
        ("-", ["clr C", "subb A, 0F0h"]),
        ("*", ["mul AB"]),
        ("/", ["div AB"]),
        ("%", ["div AB", "mov A, 0F0h"]),
        ("&", ["anl A, 0F0h"]),
        ("|", ["orl A, 0F0h"]),
    ])
    def test_byte_operators(self, symbol, instructions):
        body = main_body(f"int a\nint b := a {symbol} 3")
        assert has_sequence(body, ["mov A, 031h", "mov 0F0h, #3"] + instructions + ["mov 032h, A"])

    def test_both_operands_compound(self):
        """The right operand is evaluated first and parked on the stack."""
        body = main_body("int a\nint b\nint c := a * 2 + b * 3")
        assert body[3:] == [
            "mov A, 032h",
            "mov 0F0h, #3",
            "mul AB",
            "push 0E0h",
            "mov A, 031h",
            "mov 0F0h, #2",
            "mul AB",
            "pop 0F0h",
            "add A, 0F0h",
            "mov 033h, A",
        ]

    def test_atom_left_compound_right(self):
        body = main_body("int a\nint b := 1 + a * 2")
        assert has_sequence(body, [
            "mov A, 031h",
            "mov 0F0h, #2",
            "mul AB",
            "mov 0F0h, A",
            "mov A, #1",
            "add A, 0F0h",
        ])

    def test_shift_left(self):
        body = main_body("int a\nint b := a << 2")
        assert has_sequence(body, [
            "mov A, 031h",
            "mov 0F0h, #2",
            "inc 0F0h",
            "jmp l2",
            "l1:",
            "clr C",
            "rlc A",
            "l2:",
            "djnz 0F0h, l1",
        ])

    def test_shift_right(self):
        body = main_body("int a\nint b := a >> 1")
        assert "rrc A" in body

    def test_bigger(self):
        body = main_body("int a\nbool b := a > 1")
        assert has_sequence(body, [
            "mov A, 031h",
            "mov 0F0h, #1",
            "cjne A, 0F0h, l1",
            "setb C",
            "l1:",
            "clr A",
            "jc l2",
            "mov A, #1",
            "l2:",
            "mov C, acc.0",
            "mov 020h.0, C",
        ])

    def test_smaller(self):
        body = main_body("int a\nbool b := a < 1")
        assert has_sequence(body, [
            "cjne A, 0F0h, l1",
            "l1:",
            "clr A",
            "jnc l2",
            "mov A, #1",
            "l2:",
        ])

    def test_equal(self):
        body = main_body("int a\nbool b := a = 1")
        assert has_sequence(body, [
            "cjne A, 0F0h, l1",
            "mov A, #1",
            "jmp l2",
            "l1:",
            "clr A",
            "l2:",
        ])

    def test_unequal(self):
        body = main_body("int a\nbool b := a != 1")
        assert has_sequence(body, [
            "cjne A, 0F0h, l1",
            "clr A",
            "jmp l2",
            "l1:",
            "mov A, #1",
            "l2:",
        ])

    def test_signed_compare(self):
        body = main_body("cint a\nbool b := a < 0")
        assert has_sequence(body, ["xrl A, #080h", "xrl 0F0h, #080h", "cjne A, 0F0h, l1"])

    def test_unsigned_compare_has_no_flip(self):
        assert "xrl A, #080h" not in main_body("int a\nbool b := a < 0")

    def test_not_bit(self):
        body = main_body("bool a\nbool b := !a")
        assert has_sequence(body, ["mov C, 020h.0", "mov acc.0, C", "cpl acc.0"])

    def test_not_byte(self):
        body = main_body("int a\nint b := !a")
        assert has_sequence(body, ["mov A, 031h", "cpl A", "mov 032h, A"])

    def test_increment(self):
        assert main_body("int x\nx++") == ["x data 031h", "inc 031h", "mov A, 031h"]

    def test_decrement(self):
        assert main_body("int x\n--x") == ["x data 031h", "dec 031h", "mov A, 031h"]

    def test_bit_of(self):
        body = main_body("int flags\nbool b := flags.3")
        assert has_sequence(body, [
            "mov A, 031h",
            "jb acc.3, l1",
            "clr acc.0",
            "jmp l2",
            "l1:",
            "setb acc.0",
            "l2:",
        ])

    def test_bit_and(self):
        body = main_body("bool a\nbool b\nbool c := a & b")
        assert has_sequence(body, [
            "mov C, 020h.0",
            "mov acc.0, C",
            "mov C, 020h.1",
            "mov 0F0h.0, C",
            "anl A, 0F0h",
            "mov C, acc.0",
            "mov 020h.2, C",
        ])


# =============================================================================
# Control Flow
# =============================================================================

class TestControlFlow:
    """Tests for block, if, while, fortil, break and sleep."""

    def test_if(self):
        assert main_body("bool on\nif [on]\non := false\nendif") == [
            "on bit 020h.0",
            "mov C, 020h.0",
            "mov acc.0, C",
            "jnb acc.0, l1",
            "clr 020h.0",
            "l1:",
        ]

    def test_if_else(self):
        assert main_body("bool on\nif [on]\nelse\nendif") == [
            "on bit 020h.0",
            "mov C, 020h.0",
            "mov acc.0, C",
            "jnb acc.0, l2",
            "jmp l1",
            "l2:",
            "l1:",
        ]

    def test_while(self):
        assert main_body("int i := 3\nwhile [i > 0]\ni--\nendwhile") == [
            "i data 031h",
            "mov 031h, #3",
            "l3:",
            "mov A, 031h",
            "mov 0F0h, #0",
            "cjne A, 0F0h, l1",
            "setb C",
            "l1:",
            "clr A",
            "jc l2",
            "mov A, #1",
            "l2:",
            "jnb acc.0, l4",
            "dec 031h",
            "mov A, 031h",
            "jmp l3",
            "l4:",
        ]

    def test_fortil(self):
        assert main_body("fortil 3\nendfortil") == [
            "mov A, #3",
            "mov R0, A",
            "jz l2",
            "l1:",
            "djnz R0, l1",
            "l2:",
        ]

    def test_fortil_single_decrement(self):
        """Exactly one djnz on the loop's register."""
        body = main_body("int x\nfortil 10\nx++\nendfortil")
        assert [line for line in body if line.startswith("djnz")] == ["djnz R0, l1"]

    def test_nested_fortil_registers(self):
        body = main_body("fortil 3\nfortil 2\nendfortil\nendfortil")
        assert "djnz R1, l2" in body
        assert "djnz R0, l1" in body

    def test_block_emits_only_end_label(self):
        assert main_body("block\nendblock") == ["l1:"]

    def test_break(self):
        assert main_body("while [true]\nbreak\nendwhile") == [
            "l1:",
            "setb acc.0",
            "jnb acc.0, l2",
            "jmp l2",
            "jmp l1",
            "l2:",
        ]

    def test_break_in_if_else(self):
        """break inside the else part jumps to the shared end label."""
        body = main_body("bool b\nif [b]\nelse\nbreak\nendif")
        assert body[-3:] == ["l2:", "jmp l1", "l1:"]

    def test_sleep(self):
        assert main_body("sleep 10") == [
            "mov A, #10",
            "jz l3",
            "l1:",
            "mov 0F0h, #0FAh",
            "l2:",
            "nop",
            "nop",
            "djnz 0F0h, l2",
            "djnz 0E0h, l1",
            "l3:",
        ]


# =============================================================================
# Methods
# =============================================================================

class TestMethods:
    """Tests for method bodies, returns and calls."""

    def test_method_after_main_loop(self):
        assert compile_lines("method blink[int n]\nreturn n\nendmethod\nblink[4]") == [
            "include reg8051.inc",
            "main:",
            "mov 081h, #07Fh",
            "mov 031h, #4",
            "call M1",
            "jmp main",
            "M1:",
            "mov A, 031h",
            "ret",
            "ret",
            "end",
        ]

    def test_forward_call(self):
        lines = compile_lines("blink[]\nmethod blink[]\nendmethod")
        assert lines.index("call M1") < lines.index("jmp main") < lines.index("M1:")

    def test_bit_argument(self):
        body = main_body("bool led\nmethod set[bool on]\nendmethod\nset[led]")
        assert has_sequence(body, ["mov C, 020h.1", "mov 020h.0, C", "call M1"])

    def test_compound_argument(self):
        body = main_body("int x\nmethod f[int a]\nendmethod\nf[x + 1]")
        assert has_sequence(body, [
            "mov A, 032h",
            "mov 0F0h, #1",
            "add A, 0F0h",
            "mov 031h, A",
            "call M1",
        ])

    def test_call_result_stored(self):
        body = main_body("method get[]\nreturn 5\nendmethod\nint x := get[]")
        assert body == ["x data 031h", "call M1", "mov 031h, A"]

    def test_method_locals_directives(self):
        lines = compile_lines("method f[]\nint n := 1\nendmethod")
        assert has_sequence(lines, ["M1:", "n data 031h", "mov 031h, #1", "ret"])


# =============================================================================
# Interrupts
# =============================================================================

class TestInterrupts:
    """Tests for the vector table, interrupt setup and command guards."""

    SOURCE = (
        "interrupt timer0 tick\n"
        "int x\n"
        "x := 1\n"
        "method tick[]\n"
        "x := 2\n"
        "endmethod"
    )

    def test_timer_program(self):
        assert compile_lines(self.SOURCE) == [
            "include reg8051.inc",
            "ljmp main",
            "org 0Bh",
            "call M1",
            "reti",
            "main:",
            "mov 081h, #07Fh",
            "mov 089h, #0",
            "orl 089h, #00000001b",
            "setb 088h.4",
            "clr 088h.5",
            "setb 0A8h.1",
            "setb 0A8h.7",
            "x data 031h",
            "clr 0A8h.7",
            "mov 031h, #1",
            "setb 0A8h.7",
            "jmp main",
            "M1:",
            "push 0E0h",
            "push 0F0h",
            "push 0D0h",
            "mov 031h, #2",
            "pop 0D0h",
            "pop 0F0h",
            "pop 0E0h",
            "ret",
            "end",
        ]

    def test_handler_saves_context_around_branches(self):
        """A handler cannot change A, B or C between a compare and its jump."""
        lines = compile_lines(
            "interrupt timer0 t\n"
            "int x\n"
            "if [x > 2]\n"
            "endif\n"
            "method t[]\n"
            "x := 1 + x\n"
            "endmethod"
        )
        assert has_sequence(lines, ["M1:", "push 0E0h", "push 0F0h", "push 0D0h"])
        assert has_sequence(lines, ["pop 0D0h", "pop 0F0h", "pop 0E0h", "ret", "end"])

    def test_return_in_handler_restores_context(self):
        lines = compile_lines(
            "interrupt external1 t\n"
            "bool on\n"
            "method t[]\n"
            "if [on]\n"
            "return\n"
            "endif\n"
            "endmethod"
        )
        handler = lines[lines.index("M1:"):]
        assert handler.count("pop 0E0h") == 2
        assert has_sequence(handler, ["jnb acc.0, l1", "pop 0D0h", "pop 0F0h", "pop 0E0h", "ret"])

    def test_handler_saves_fortil_registers(self):
        lines = compile_lines(
            "interrupt timer0 t\n"
            "fortil 3\n"
            "fortil 2\n"
            "endfortil\n"
            "endfortil\n"
            "method t[]\n"
            "endmethod"
        )
        assert has_sequence(lines, [
            "M1:",
            "push 0E0h",
            "push 0F0h",
            "push 0D0h",
            "push 000h",
            "push 001h",
            "pop 001h",
            "pop 000h",
            "pop 0D0h",
            "pop 0F0h",
            "pop 0E0h",
            "ret",
        ])

    def test_plain_method_saves_nothing(self):
        lines = compile_lines("interrupt timer0 t\nmethod t[]\nendmethod\nmethod f[]\nendmethod")
        assert has_sequence(lines, ["M2:", "ret"])

    def test_vector_stub_fits_vector_spacing(self):
        """Each vector holds only the call and reti; saving is done in the handler."""
        lines = compile_lines(self.SOURCE)
        assert has_sequence(lines, ["org 0Bh", "call M1", "reti", "main:"])

    def test_no_guard(self):
        lines = compile_lines(self.SOURCE, guard_interrupts=False)
        assert "clr 0A8h.7" not in lines
        assert has_sequence(lines, ["x data 031h", "mov 031h, #1", "jmp main"])

    def test_counter_mode(self):
        lines = compile_lines("interrupt counter1 c\nmethod c[]\nendmethod")
        assert has_sequence(lines, [
            "mov 089h, #0",
            "orl 089h, #01010000b",
            "setb 088h.6",
            "clr 088h.7",
            "setb 0A8h.3",
            "setb 0A8h.7",
        ])
        assert "org 1Bh" in lines

    def test_external_interrupt(self):
        lines = compile_lines("interrupt external0 e\nmethod e[]\nendmethod")
        assert has_sequence(lines, ["org 03h", "call M1", "reti"])
        assert has_sequence(lines, ["setb 088h.0", "clr 088h.1", "setb 0A8h.0"])
        assert not any(line.startswith("mov 089h") for line in lines)

    def test_vectors_sorted(self):
        lines = compile_lines(
            "interrupt timer1 a\ninterrupt external0 b\n"
            "method a[]\nendmethod\nmethod b[]\nendmethod"
        )
        assert lines.index("org 03h") < lines.index("org 1Bh")

    def test_control_flow_not_guarded(self):
        lines = compile_lines("interrupt timer0 t\nbool on\nif [on]\nendif\nmethod t[]\nendmethod")
        body = lines[lines.index("setb 0A8h.7") + 1:lines.index("jmp main")]
        assert body == [
            "on bit 020h.0",
            "mov C, 020h.0",
            "mov acc.0, C",
            "jnb acc.0, l1",
            "l1:",
        ]

    def test_no_interrupts_no_guard(self):
        assert "clr 0A8h.7" not in compile_lines("int x := 1")


# =============================================================================
# Generator Invariants
# =============================================================================

class TestGeneratorInvariants:
    """Tests for the parser/generator address agreement."""

    def test_address_mismatch(self):
        program = TCodeParser(["int x"]).parse()
        program.commands[0].variable.address = 0x40
        with pytest.raises(CodeGenError):
            CodeGenerator().generate(program)

    def test_generator_reusable(self):
        """A generator resets its counters on every call."""
        program = TCodeParser(["int x := 1"]).parse()
        generator = CodeGenerator()
        assert generator.generate(program) == generator.generate(program)
