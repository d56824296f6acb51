"""
Exception hierarchy for visigenie.

All exceptions inherit from GenieError, providing a clean hierarchy
for error handling. The design follows these principles:

1. Caller input errors (ValidationError) are raised before any I/O occurs
2. Frame errors (checksum, unknown command, malformed) are recovered by the
   decoder and returned as values, never raised to application code
3. Transport errors are fatal for the connection they occur on
4. All exceptions provide meaningful error messages
"""

from __future__ import annotations


class GenieError(Exception):
    """
    Base exception for all visigenie errors.

    All library-specific exceptions inherit from this class, allowing
    callers to catch all visigenie errors with a single except clause.
    """

    pass


class ValidationError(GenieError):
    """
    Malformed caller input.

    Raised synchronously, before anything is written to the wire, when:
    - An index or value does not fit its wire width
    - A string is longer than the display accepts
    - A string contains characters the command cannot carry
    - A field is missing or has the wrong type

    Raised from pydantic validators; it is not a ValueError, so it reaches
    the caller as-is rather than inside a pydantic ValidationError.
    """

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field

    def __str__(self) -> str:
        base = super().__str__()
        if self.field:
            return f"{base} (field={self.field})"
        return base


class ProtocolError(GenieError):
    """
    Protocol-level error.

    Raised when the protocol is violated, such as:
    - Invalid frame format
    - Unexpected reply from the display
    """

    pass


class FrameError(ProtocolError):
    """
    Inbound frame decoding error.

    Frame errors are produced by the FrameDecoder as values. The decoder
    resynchronizes after each one, so they are informational only.
    """

    def __init__(self, message: str, *, raw_frame: bytes = b"") -> None:
        super().__init__(message)
        self.raw_frame = raw_frame


class FrameChecksumError(FrameError):
    """
    Checksum validation failure.

    The received frame's trailing byte doesn't match the XOR of the
    preceding bytes. This typically indicates data corruption on the line.
    """

    def __init__(
        self,
        message: str = "Checksum validation failed",
        *,
        expected: int | None = None,
        received: int | None = None,
        raw_frame: bytes = b"",
    ) -> None:
        super().__init__(message, raw_frame=raw_frame)
        self.expected = expected
        self.received = received

    def __str__(self) -> str:
        base = super().__str__()
        if self.expected is not None and self.received is not None:
            return f"{base} (expected 0x{self.expected:02X}, got 0x{self.received:02X})"
        return base


class UnknownCommandError(FrameError):
    """A byte that does not start any known frame was skipped."""

    def __init__(self, byte: int) -> None:
        super().__init__(f"Unknown command byte 0x{byte:02X}", raw_frame=bytes([byte]))
        self.byte = byte


class MalformedFrameError(FrameError):
    """
    Structurally invalid frame.

    Raised (as a value) for impossible string lengths or a string frame
    missing its null terminator.
    """

    pass


class NegativeAcknowledgeError(ProtocolError):
    """The display answered a write with NAK."""

    pass


class TimeoutError(GenieError):  # noqa: A001 - intentionally shadows builtin
    """
    Communication timeout.

    Raised when an acknowledgment or reply is not received within the
    expected time, or a write does not drain in time.
    """

    def __init__(
        self,
        message: str = "Communication timeout",
        *,
        timeout_seconds: float | None = None,
    ) -> None:
        super().__init__(message)
        self.timeout_seconds = timeout_seconds

    def __str__(self) -> str:
        base = super().__str__()
        if self.timeout_seconds is not None:
            return f"{base} (after {self.timeout_seconds:.1f}s)"
        return base


class ConnectionError(GenieError):  # noqa: A001 - intentionally shadows builtin
    """
    Display connection error.

    Raised when:
    - Operating on a device id that is not registered or not connected
    - A connection is opened twice
    - The serial port cannot be opened at the requested baud rate
    """

    def __init__(self, message: str, *, device_id: str | None = None) -> None:
        super().__init__(message)
        self.device_id = device_id

    def __str__(self) -> str:
        base = super().__str__()
        if self.device_id is not None:
            return f"{base} (device={self.device_id})"
        return base


class TransportError(GenieError):
    """
    Transport-level error.

    Raised for low-level transport issues:
    - Serial port errors
    - I/O errors
    - Hardware communication failures
    """

    pass


class TransportWriteError(TransportError):
    """Writing a frame to the transport failed."""

    pass


class TransportReadError(TransportError):
    """Reading from the transport failed or the stream ended."""

    pass


class ObservabilityWarning(UserWarning):
    """
    Issued when a report handler's deferred completion does not finish
    within the delivery timeout. The message is abandoned and delivery
    continues with the next one.
    """

    pass
