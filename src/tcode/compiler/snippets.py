"""
Assembly Snippets
=================

Small instruction templates shared by the generator: moving single bits
through the carry flag, the interrupt vector table with its control
register setup, and the context a handler saves and restores.

All functions return a list of assembly lines without trailing newlines.
"""

from tcode.compiler.commands import InterruptBinding, Variable
from tcode.compiler.target import (
    ACC,
    ACC_BIT0,
    B,
    B_REGISTER,
    EA_BIT,
    IE,
    PSW,
    SP,
    STACK_START,
    TCON,
    TMOD,
    InterruptSource,
    format_address,
    format_bit,
    register_address,
)


# TCON bits per source: (bit set at start, flag bit cleared at start)
# External lines are set to edge triggered, timers are started.
TCON_BITS = {
    InterruptSource.EXTERNAL0: (0, 1),
    InterruptSource.EXTERNAL1: (2, 3),
    InterruptSource.TIMER0: (4, 5),
    InterruptSource.TIMER1: (6, 7),
}

# TMOD mode 1 (16 bit); the counter variants also set C/T
TMOD_MODES = {
    InterruptSource.TIMER0: ("00000001b", "00000101b"),
    InterruptSource.TIMER1: ("00010000b", "01010000b"),
}


# =============================================================================
# Bit Moves
# =============================================================================

def move_bit(source: Variable, destination: str) -> list[str]:
    """
    Copy a bit value (variable or constant) into a bit-addressable destination.
    """
    if source.constant:
        return [f"setb {destination}" if source.value else f"clr {destination}"]
    return [f"mov C, {source.operand}", f"mov {destination}, C"]


def move_bit_to_accu(source: Variable) -> list[str]:
    return move_bit(source, ACC_BIT0)


def move_bit_to_b(source: Variable) -> list[str]:
    return move_bit(source, f"{B_REGISTER}.0")


def store_accu_bit(destination: str) -> list[str]:
    """Store bit 0 of the accumulator into a bit address."""
    return [f"mov C, {ACC_BIT0}", f"mov {destination}, C"]


# =============================================================================
# Program Frame
# =============================================================================

def prologue(bindings: list[InterruptBinding]) -> list[str]:
    """
    Code before the main program.

    Without interrupt handlers this is just the main label and the stack
    setup. With handlers, a jump over the vector table comes first, then
    one `org`/`call`/`reti` stub per vector, then the control register
    setup and the global enable.
    """
    if not bindings:
        return ["main:", _stack_setup()]

    lines = ["ljmp main"]
    for binding in sorted(bindings, key=lambda b: b.source.vector):
        lines.append(f"org {binding.source.vector:02X}h")
        lines.append(f"call {binding.method.label}")
        lines.append("reti")

    lines.append("main:")
    lines.append(_stack_setup())

    by_source = {binding.source: binding for binding in bindings}
    timers_used = any(source in TMOD_MODES for source in by_source)
    if timers_used:
        lines.append(f"mov {format_address(TMOD)}, #0")

    for source in (InterruptSource.EXTERNAL0, InterruptSource.EXTERNAL1,
                   InterruptSource.TIMER0, InterruptSource.TIMER1):
        binding = by_source.get(source)
        if binding is None:
            continue
        if source in TMOD_MODES:
            timer_mode, counter_mode = TMOD_MODES[source]
            mode = counter_mode if binding.counter else timer_mode
            lines.append(f"orl {format_address(TMOD)}, #{mode}")
        set_bit, flag_bit = TCON_BITS[source]
        lines.append(f"setb {format_bit(TCON, set_bit)}")
        lines.append(f"clr {format_bit(TCON, flag_bit)}")
        lines.append(f"setb {format_bit(IE, source.enable_bit)}")

    lines.append(f"setb {EA_BIT}")
    return lines


def _stack_setup() -> str:
    return f"mov {format_address(SP)}, #{format_address(STACK_START)}"


# =============================================================================
# Interrupt Handlers
# =============================================================================

def save_context(registers: list[str]) -> list[str]:
    """
    Push what a handler may change behind the interrupted code's back.

    A, B and PSW hold expression results and flags between instructions;
    `registers` are the work registers counting fortil loops.
    """
    addresses = [ACC, B, PSW] + [register_address(r) for r in registers]
    return [f"push {format_address(address)}" for address in addresses]


def restore_context(registers: list[str]) -> list[str]:
    return ["pop " + line.split()[1] for line in reversed(save_context(registers))]


def main_loop_end() -> list[str]:
    """Jump back to the start once the main program has run."""
    return ["jmp main"]


def before_command() -> str:
    """Disable interrupts around a command that must not be interrupted."""
    return f"clr {EA_BIT}"


def after_command() -> str:
    return f"setb {EA_BIT}"
