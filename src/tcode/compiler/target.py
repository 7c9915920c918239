"""
8051 Target Description
=======================

Memory map, special function registers and operand formatting for the
8051 family targeted by the TCode compiler.

Internal RAM Layout
-------------------
| Range       | Usage                                          |
|-------------|------------------------------------------------|
| 00h - 07h   | Register bank 0 (R0 - R7), fortil counters     |
| 20h - 2Fh   | Bit-addressable area, one bool per bit         |
| 30h         | Reserved scratch byte                          |
| 31h - 7Fh   | Byte variables (int, char, cint, parameters)   |
| 80h -       | Stack (SP initialised to 7Fh)                  |

Special Function Registers
--------------------------
| Address | Name | Usage                                       |
|---------|------|---------------------------------------------|
| 080h    | P0   | Port 0 (standard variable p0)               |
| 081h    | SP   | Stack pointer                               |
| 088h    | TCON | Timer/interrupt control                     |
| 089h    | TMOD | Timer mode                                  |
| 090h    | P1   | Port 1 (standard variable p1)               |
| 0A0h    | P2   | Port 2 (standard variable p2)               |
| 0A8h    | IE   | Interrupt enable (bit 7 = EA)               |
| 0B0h    | P3   | Port 3 (standard variable p3)               |
| 0D0h    | PSW  | Flags, saved by interrupt handlers          |
| 0E0h    | ACC  | Accumulator                                 |
| 0F0h    | B    | B register, second operand of binary ops    |
"""

from enum import Enum


# =============================================================================
# Memory Map
# =============================================================================

REGISTER_FILE = "reg8051.inc"

# Byte RAM: the counter holds the last used address
BYTE_COUNTER_START = 0x30
BYTE_RAM_END = 0x80

# Bit RAM: bytes 20h..2Fh, eight bools each
BIT_RAM_START = 0x20
BIT_RAM_END = 0x30
BIT_COUNT = (BIT_RAM_END - BIT_RAM_START) * 8

REGISTER_COUNT = 8

STACK_START = 0x7F


# =============================================================================
# Special Function Registers
# =============================================================================

SP = 0x81
TCON = 0x88
TMOD = 0x89
IE = 0xA8
PSW = 0xD0
ACC = 0xE0
B = 0xF0

PORTS = {
    "p0": 0x80,
    "p1": 0x90,
    "p2": 0xA0,
    "p3": 0xB0,
}


# =============================================================================
# Interrupt Sources
# =============================================================================

class InterruptSource(Enum):
    """
    Interrupt lines that can be bound to a method.

    Each value is (vector address, enable bit in IE). Timer sources can
    run as timers or counters; the counter mode is a flag on the binding,
    not a separate source, because both use the same vector.
    """
    EXTERNAL0 = (0x03, 0)
    TIMER0 = (0x0B, 1)
    EXTERNAL1 = (0x13, 2)
    TIMER1 = (0x1B, 3)

    @property
    def vector(self) -> int:
        return self.value[0]

    @property
    def enable_bit(self) -> int:
        return self.value[1]


# Source keywords accepted by "interrupt <source> <method>": (source, is_counter)
INTERRUPT_KEYWORDS: dict[str, tuple[InterruptSource, bool]] = {
    "external0": (InterruptSource.EXTERNAL0, False),
    "external1": (InterruptSource.EXTERNAL1, False),
    "timer0": (InterruptSource.TIMER0, False),
    "timer1": (InterruptSource.TIMER1, False),
    "counter0": (InterruptSource.TIMER0, True),
    "counter1": (InterruptSource.TIMER1, True),
}


# =============================================================================
# Operand Formatting
# =============================================================================

def format_address(address: int) -> str:
    """
    Format a direct address in assembler hex notation.

    A leading zero keeps addresses like A8h from being read as symbols.

    >>> format_address(0x31)
    '031h'
    >>> format_address(0xA8)
    '0A8h'
    """
    return f"0{address:02X}h"


def format_bit(address: int, bit: int) -> str:
    """Format a bit of a bit-addressable byte, e.g. '020h.3'."""
    return f"{format_address(address)}.{bit}"


def format_immediate(value: int) -> str:
    """Format an 8-bit immediate; negative values become two's complement."""
    return f"#{value & 0xFF}"


def register_name(index: int) -> str:
    """Name of work register `index` (R0..R7)."""
    return f"R{index}"


ACC_BIT0 = "acc.0"
B_REGISTER = format_address(B)
EA_BIT = format_bit(IE, 7)


def register_address(register: str) -> int:
    """Direct address of a bank 0 work register, e.g. 'R3' -> 3."""
    return int(register[1:])


# Names the assembler or reg8051.inc already define. A variable with one
# of these names gets a suffixed symbol in its data/bit directive.
ASSEMBLER_SYMBOLS = frozenset(
    {"a", "b", "c", "ab", "acc", "psw", "sp", "dptr", "dpl", "dph", "pc"}
    | {f"r{index}" for index in range(REGISTER_COUNT)}
    | {"org", "end", "equ", "set", "data", "idata", "xdata", "bit", "code",
       "db", "dw", "ds", "dbit", "using"}
    | {"tcon", "tmod", "ie", "ip", "scon", "sbuf", "pcon",
       "th0", "tl0", "th1", "tl1"}
    | {"ea", "es", "et0", "et1", "ex0", "ex1",
       "tf0", "tf1", "tr0", "tr1", "ie0", "ie1", "it0", "it1",
       "ri", "ti", "cy", "ac", "f0", "ov", "p"}
)
