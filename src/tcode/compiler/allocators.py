"""
Compile-Scoped Resource Allocators
==================================

The 8051 has very little memory, and TCode maps every variable straight
onto it. This module hands out the scarce resources:

- byte addresses in internal RAM (int, char, cint, parameters)
- bit addresses in the bit-addressable area (bool)
- work registers (one per open fortil loop)
- jump labels (l1, l2, ...) and method entry labels (M1, M2, ...)

Every counter is a bump pointer. Scopes close in LIFO order, so a
release simply steps the pointer back and the next declaration reuses
the address. A fresh ResourceAllocator is created for each compile;
the parser and the generator each own one and must make the same
allocation calls in the same order.
"""

from dataclasses import dataclass

from tcode.compiler.errors import (
    TooManyValuesError,
    TooManyBoolsError,
    TooManyRegistersError,
)
from tcode.compiler.target import (
    BYTE_COUNTER_START,
    BYTE_RAM_END,
    BIT_RAM_START,
    BIT_COUNT,
    REGISTER_COUNT,
    register_name,
)


@dataclass(frozen=True)
class Label:
    """
    A named jump target. Labels are pure names; the assembler resolves
    their addresses.
    """
    name: str

    def __str__(self) -> str:
        return self.name


class ResourceAllocator:
    """
    Counters for one compilation.

    Attributes:
        byte_counter: Last byte address handed out
        bit_index: Number of bits currently in use
        register_index: Index of the last register handed out (-1 if none)
    """

    def __init__(self):
        self.byte_counter = BYTE_COUNTER_START
        self.bit_index = 0
        self.register_index = -1
        self._label_count = 0
        self._method_label_count = 0

    # =========================================================================
    # Byte RAM
    # =========================================================================

    def next_byte_address(self) -> int:
        """
        Allocate the next free byte address.

        Raises:
            TooManyValuesError: If byte RAM is exhausted
        """
        if self.byte_counter + 1 >= BYTE_RAM_END:
            raise TooManyValuesError()
        self.byte_counter += 1
        return self.byte_counter

    def release_byte(self) -> None:
        self.byte_counter -= 1

    # =========================================================================
    # Bit RAM
    # =========================================================================

    def next_bit_address(self) -> tuple[int, int]:
        """
        Allocate the next free bit.

        Bits are handed out bit-then-byte: 020h.0, 020h.1 ... 020h.7, 021h.0.

        Returns:
            (byte address, bit number) tuple

        Raises:
            TooManyBoolsError: If the bit-addressable area is exhausted
        """
        if self.bit_index >= BIT_COUNT:
            raise TooManyBoolsError()
        address = BIT_RAM_START + self.bit_index // 8
        bit = self.bit_index % 8
        self.bit_index += 1
        return address, bit

    def release_bit(self) -> None:
        self.bit_index -= 1

    # =========================================================================
    # Registers
    # =========================================================================

    def next_register(self) -> str:
        """
        Allocate the next work register.

        Raises:
            TooManyRegistersError: If all of R0..R7 are in use
        """
        if self.register_index + 1 >= REGISTER_COUNT:
            raise TooManyRegistersError()
        self.register_index += 1
        return register_name(self.register_index)

    def release_register(self) -> None:
        self.register_index -= 1

    # =========================================================================
    # Labels
    # =========================================================================

    def next_label(self) -> Label:
        self._label_count += 1
        return Label(f"l{self._label_count}")

    def next_method_label(self) -> Label:
        self._method_label_count += 1
        return Label(f"M{self._method_label_count}")
