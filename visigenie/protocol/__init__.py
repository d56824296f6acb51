"""
Protocol layer for ViSi-Genie communication.

This module contains the low-level protocol handling:
- Command codes, object types and protocol constants
- XOR checksum calculation and validation
- Byte encoding helpers
- Frame encoding and the streaming frame decoder
"""

from visigenie.protocol.checksums import append_checksum, calculate_checksum, validate_checksum
from visigenie.protocol.constants import BaudRate, CommandCode, ObjectType, ProtocolConstants
from visigenie.protocol.encoding import bytes_to_hex, decode_uint16, encode_uint16
from visigenie.protocol.frame_reader import (
    DecodeResult,
    DecoderState,
    FrameDecoder,
    decode_frames,
    encode_frame,
)

__all__ = [
    # Constants
    "CommandCode",
    "ObjectType",
    "BaudRate",
    "ProtocolConstants",
    # Checksums
    "calculate_checksum",
    "validate_checksum",
    "append_checksum",
    # Encoding
    "encode_uint16",
    "decode_uint16",
    "bytes_to_hex",
    # Frames
    "FrameDecoder",
    "DecoderState",
    "DecodeResult",
    "encode_frame",
    "decode_frames",
]
