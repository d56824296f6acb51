"""
Genie protocol frame encoding and streaming decoding.

The Genie protocol has no start or stop delimiter. Frame boundaries are
implied by the command byte alone:

1. **Acknowledgments**: Single command byte (no payload, no checksum)
   - Used for: ACK, NAK
   - Format: [CMD]

2. **Fixed frames**: Payload size fixed per command
   - Used for: READ_OBJ, WRITE_OBJ, WRITE_CONTRAST, REPORT_OBJ, REPORT_EVENT
   - Format: [CMD][PAYLOAD][CS]

3. **String frames**: Length byte prefix
   - Used for: WRITE_STR, WRITE_STRU
   - Format: [CMD][INDEX][LEN][CHARS incl. null][CS]
   - Character bytes = LEN * bytes per character

Serial reads return arbitrary slices of the stream, so the decoder is a
state machine that keeps partial frames between calls. Corrupted or
misaligned input never stops the stream: unknown bytes are skipped one at a
time and frames with a bad checksum are dropped, each reported as a
FrameError value.
"""

from __future__ import annotations

import logging
from enum import Enum, auto

from visigenie.exceptions import (
    FrameChecksumError,
    FrameError,
    MalformedFrameError,
    UnknownCommandError,
)
from visigenie.models.messages import MESSAGE_TYPES, GenieMessage
from visigenie.protocol.checksums import calculate_checksum
from visigenie.protocol.constants import (
    ACKNOWLEDGMENT_CODES,
    FIXED_PAYLOAD_LENGTHS,
    STRING_COMMANDS,
    STRING_HEADER_LENGTH,
    ProtocolConstants,
)

logger = logging.getLogger(__name__)

DecodeResult = GenieMessage | FrameError
"""A decoded message, or the error that caused a frame to be dropped."""


class DecoderState(Enum):
    """States of the streaming frame decoder."""

    AWAITING_COMMAND = auto()
    """Waiting for the first byte of a frame."""

    AWAITING_LENGTH = auto()
    """String frame: collecting the index and length bytes."""

    AWAITING_PAYLOAD = auto()
    """Collecting the payload and trailing checksum."""


def encode_frame(message: GenieMessage) -> bytes:
    """
    Encode a message to its wire frame.

    No framing bytes are added; the frame is the message encoding.
    """
    return message.encode()


class FrameDecoder:
    """
    Incremental Genie frame decoder.

    Feed it bytes as they arrive; it returns every frame completed by
    those bytes. Partial frames are kept until the next call, so a frame
    split across reads decodes exactly as if it arrived at once.

    Example:
        >>> decoder = FrameDecoder()
        >>> decoder.feed(b"\\x07\\x06\\x01")
        []
        >>> decoder.feed(b"\\x00\\x01\\x01")
        [ReportEvent(object_type=<ObjectType.WINBUTTON: 6>, index=1, value=1)]
    """

    def __init__(self) -> None:
        self._state = DecoderState.AWAITING_COMMAND
        self._frame = bytearray()
        self._expected = 0

    @property
    def state(self) -> DecoderState:
        """Get the current decoder state."""
        return self._state

    @property
    def pending(self) -> bytes:
        """Bytes of the frame currently being collected."""
        return bytes(self._frame)

    def reset(self) -> None:
        """Drop any partial frame and wait for a command byte."""
        self._state = DecoderState.AWAITING_COMMAND
        self._frame.clear()
        self._expected = 0

    def feed(self, data: bytes | bytearray | memoryview) -> list[DecodeResult]:
        """
        Consume bytes and return the frames they complete.

        Args:
            data: Any number of bytes from the stream.

        Returns:
            Decoded messages and frame errors, in stream order.
        """
        results: list[DecodeResult] = []
        for byte in bytes(data):
            result = self._consume(byte)
            if result is not None:
                results.append(result)
        return results

    def _consume(self, byte: int) -> DecodeResult | None:
        if self._state is DecoderState.AWAITING_COMMAND:
            return self._start_frame(byte)

        self._frame.append(byte)

        if self._state is DecoderState.AWAITING_LENGTH:
            if len(self._frame) < 1 + STRING_HEADER_LENGTH:
                return None
            return self._read_string_length()

        # AWAITING_PAYLOAD: command + payload + checksum
        if len(self._frame) < 1 + self._expected + 1:
            return None
        return self._finish_frame()

    def _start_frame(self, byte: int) -> DecodeResult | None:
        if byte in ACKNOWLEDGMENT_CODES:
            return MESSAGE_TYPES[byte].from_payload(b"")

        if byte in FIXED_PAYLOAD_LENGTHS:
            self._frame.append(byte)
            self._expected = FIXED_PAYLOAD_LENGTHS[byte]
            self._state = DecoderState.AWAITING_PAYLOAD
            return None

        if byte in STRING_COMMANDS:
            self._frame.append(byte)
            self._state = DecoderState.AWAITING_LENGTH
            return None

        logger.debug("Skipping unknown byte 0x%02X", byte)
        return UnknownCommandError(byte)

    def _read_string_length(self) -> DecodeResult | None:
        command, length = self._frame[0], self._frame[2]

        if not 1 <= length <= ProtocolConstants.MAX_STRING_LENGTH + 1:
            raw = bytes(self._frame)
            self.reset()
            return MalformedFrameError(
                f"Invalid string length {length} for command 0x{command:02X}",
                raw_frame=raw,
            )

        self._expected = STRING_HEADER_LENGTH + length * STRING_COMMANDS[command]
        self._state = DecoderState.AWAITING_PAYLOAD
        return None

    def _finish_frame(self) -> DecodeResult:
        raw = bytes(self._frame)
        self.reset()

        expected = calculate_checksum(raw[:-1])
        if expected != raw[-1]:
            return FrameChecksumError(
                f"Checksum mismatch in frame 0x{raw[0]:02X}",
                expected=expected,
                received=raw[-1],
                raw_frame=raw,
            )

        try:
            return MESSAGE_TYPES[raw[0]].from_payload(raw[1:-1])
        except MalformedFrameError as e:
            e.raw_frame = raw
            return e


def decode_frames(data: bytes | bytearray | memoryview) -> list[GenieMessage]:
    """
    Decode a complete byte string, ignoring frame errors.

    Convenience for traces and tests; uses a fresh decoder, so a trailing
    partial frame is discarded.

    Args:
        data: Captured stream bytes.

    Returns:
        Every message decoded from the data.
    """
    return [
        result
        for result in FrameDecoder().feed(data)
        if isinstance(result, GenieMessage)
    ]
