"""Tests for checksum functions."""

import pytest

from visigenie.protocol.checksums import (
    append_checksum,
    calculate_checksum,
    validate_checksum,
)


class TestChecksums:
    """Tests for checksum calculation and validation."""

    def test_calculate_checksum_basic(self):
        """Test XOR of a WRITE_OBJ frame body."""
        data = bytes([0x01, 0x0A, 0x01, 0x00, 0x00])
        assert calculate_checksum(data) == 0x0A

    def test_calculate_checksum_single_byte(self):
        """Test checksum of single byte."""
        assert calculate_checksum(bytes([0x42])) == 0x42

    def test_calculate_checksum_cancels_pairs(self):
        """Test that equal bytes cancel out."""
        assert calculate_checksum(bytes([0xFF, 0xFF])) == 0x00

    def test_calculate_checksum_empty(self):
        """Test checksum of empty data."""
        assert calculate_checksum(b"") == 0x00

    def test_calculate_checksum_stays_in_byte_range(self):
        """Test that the checksum of any data fits one byte."""
        assert 0 <= calculate_checksum(bytes(range(256))) <= 0xFF

    def test_append_checksum(self):
        """Test appending checksum to data."""
        data = bytes([0x04, 0x0F])
        result = append_checksum(data)
        assert result == bytes([0x04, 0x0F, 0x0B])

    def test_frame_xors_to_zero(self):
        """Test that a checksummed frame XORs to zero over its full length."""
        frame = append_checksum(bytes([0x07, 0x06, 0x03, 0x12, 0x34]))
        assert calculate_checksum(frame) == 0

    def test_validate_checksum_valid(self):
        """Test validation of correct checksum."""
        assert validate_checksum(append_checksum(b"\x05\x04\x00\x00\x10")) is True

    def test_validate_checksum_invalid(self):
        """Test validation of incorrect checksum."""
        assert validate_checksum(bytes([0x01, 0x0A, 0x01, 0x00, 0x00, 0x00])) is False

    @pytest.mark.parametrize("frame", [b"", b"\x06"])
    def test_validate_checksum_too_short(self, frame):
        """Test validation of data too short to hold a checksum."""
        assert validate_checksum(frame) is False
