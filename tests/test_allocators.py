"""
Resource Allocator Tests
========================

Tests for the compile-scoped counters handing out byte addresses, bits,
work registers and labels.
"""

import pytest

from tcode.compiler.allocators import Label, ResourceAllocator
from tcode.compiler.errors import (
    TooManyValuesError,
    TooManyBoolsError,
    TooManyRegistersError,
)


# =============================================================================
# Byte RAM
# =============================================================================

class TestByteAllocation:
    """Tests for byte address allocation."""

    def test_first_address(self):
        """The first byte variable lands just above the scratch byte."""
        allocator = ResourceAllocator()
        assert allocator.next_byte_address() == 0x31

    def test_sequential_addresses(self):
        allocator = ResourceAllocator()
        addresses = [allocator.next_byte_address() for _ in range(3)]
        assert addresses == [0x31, 0x32, 0x33]

    def test_release_reuses_address(self):
        """A released address is handed out again."""
        allocator = ResourceAllocator()
        allocator.next_byte_address()
        second = allocator.next_byte_address()
        allocator.release_byte()
        assert allocator.next_byte_address() == second

    def test_exhaustion(self):
        """Addresses 031h..07Fh fit, the next one does not."""
        allocator = ResourceAllocator()
        addresses = [allocator.next_byte_address() for _ in range(0x7F - 0x30)]
        assert addresses[-1] == 0x7F
        with pytest.raises(TooManyValuesError):
            allocator.next_byte_address()

    def test_exhaustion_error_has_no_location(self):
        """Allocators do not know the source line; the parser adds it."""
        allocator = ResourceAllocator()
        allocator.byte_counter = 0x7F
        with pytest.raises(TooManyValuesError) as exc_info:
            allocator.next_byte_address()
        assert exc_info.value.location is None


# =============================================================================
# Bit RAM
# =============================================================================

class TestBitAllocation:
    """Tests for bit allocation in the bit-addressable area."""

    def test_bit_then_byte_order(self):
        """Bits fill one byte before moving to the next."""
        allocator = ResourceAllocator()
        bits = [allocator.next_bit_address() for _ in range(9)]
        assert bits[0] == (0x20, 0)
        assert bits[7] == (0x20, 7)
        assert bits[8] == (0x21, 0)

    def test_release_reuses_bit(self):
        allocator = ResourceAllocator()
        allocator.next_bit_address()
        allocator.release_bit()
        assert allocator.next_bit_address() == (0x20, 0)

    def test_exhaustion(self):
        """128 bools fit into 020h..02Fh."""
        allocator = ResourceAllocator()
        for _ in range(128):
            last = allocator.next_bit_address()
        assert last == (0x2F, 7)
        with pytest.raises(TooManyBoolsError):
            allocator.next_bit_address()

    def test_bits_independent_of_bytes(self):
        allocator = ResourceAllocator()
        allocator.next_bit_address()
        assert allocator.next_byte_address() == 0x31


# =============================================================================
# Registers and Labels
# =============================================================================

class TestRegisterAllocation:
    """Tests for work register allocation."""

    def test_register_names(self):
        allocator = ResourceAllocator()
        assert allocator.next_register() == "R0"
        assert allocator.next_register() == "R1"

    def test_exhaustion(self):
        """R0..R7 can be held at once, a ninth register fails."""
        allocator = ResourceAllocator()
        names = [allocator.next_register() for _ in range(8)]
        assert names[-1] == "R7"
        with pytest.raises(TooManyRegistersError):
            allocator.next_register()

    def test_release_reuses_register(self):
        allocator = ResourceAllocator()
        allocator.next_register()
        allocator.release_register()
        assert allocator.next_register() == "R0"


class TestLabels:
    """Tests for jump and method label allocation."""

    def test_jump_labels(self):
        allocator = ResourceAllocator()
        assert allocator.next_label() == Label("l1")
        assert allocator.next_label() == Label("l2")

    def test_method_labels_are_separate(self):
        """Method labels have their own counter."""
        allocator = ResourceAllocator()
        allocator.next_label()
        assert allocator.next_method_label() == Label("M1")
        assert allocator.next_label() == Label("l2")

    def test_label_str(self):
        assert str(Label("l7")) == "l7"

    def test_fresh_allocators_are_independent(self):
        """Each compile starts from the same counters."""
        first = ResourceAllocator()
        first.next_byte_address()
        first.next_label()
        second = ResourceAllocator()
        assert second.next_byte_address() == 0x31
        assert second.next_label() == Label("l1")
