"""
Byte-level helpers for Genie frames.

Multi-byte values are big-endian (MSB first) on the wire. Strings are
null terminated: one zero byte for ASCII, two for UCS-2.
"""

from __future__ import annotations


def encode_uint16(value: int) -> bytes:
    """
    Encode a 16-bit value MSB first.

    Raises:
        ValueError: If value is not in range 0-65535.

    Example:
        >>> encode_uint16(0x1234)
        b'\\x124'
    """
    if not 0 <= value <= 0xFFFF:
        raise ValueError(f"Word value must be 0-65535, got {value}")
    return bytes([value >> 8, value & 0xFF])


def decode_uint16(data: bytes | bytearray, offset: int = 0) -> int:
    """Decode a big-endian 16-bit value at offset."""
    return (data[offset] << 8) | data[offset + 1]


def encode_ascii_string(text: str) -> bytes:
    """Encode text as ASCII followed by the null terminator."""
    return text.encode("ascii") + b"\x00"


def encode_unicode_string(text: str) -> bytes:
    """Encode text as UTF-16BE code units followed by a two-byte null."""
    return text.encode("utf-16-be") + b"\x00\x00"


def bytes_to_hex(data: bytes | bytearray) -> str:
    """
    Format bytes the way Genie traces print them.

    Example:
        >>> bytes_to_hex(b"\\x01\\x0a")
        '0x01 0x0A'
    """
    return " ".join(f"0x{b:02X}" for b in data)
