"""
8-bit XOR checksum calculation and validation.

The Genie protocol uses a running exclusive-OR checksum:
- XOR every byte from the command through the last payload byte
- Append the result as one raw byte at the end of the frame

A well-formed frame therefore XORs to zero over its full length.
"""

from __future__ import annotations

from functools import reduce
from operator import xor


def calculate_checksum(data: bytes | bytearray | memoryview) -> int:
    """
    Calculate the XOR checksum over the specified data.

    Args:
        data: Frame bytes to checksum (command and payload, no checksum).

    Returns:
        8-bit checksum value (0-255).

    Example:
        >>> calculate_checksum(b"\\x01\\x0a\\x00\\x00\\x00")
        11
    """
    return reduce(xor, bytes(data), 0)


def validate_checksum(frame: bytes | bytearray | memoryview) -> bool:
    """
    Validate a complete frame whose last byte is the checksum.

    Args:
        frame: Complete frame including the trailing checksum byte.

    Returns:
        True if checksum is valid, False otherwise.
    """
    if len(frame) < 2:
        return False
    return calculate_checksum(frame[:-1]) == frame[-1]


def append_checksum(data: bytes | bytearray) -> bytes:
    """
    Calculate checksum and append it as a single byte.

    Args:
        data: Command and payload bytes.

    Returns:
        Original data with the checksum byte appended.

    Example:
        >>> append_checksum(b"\\x04\\x0f")
        b'\\x04\\x0f\\x0b'
    """
    return bytes(data) + bytes([calculate_checksum(data)])
