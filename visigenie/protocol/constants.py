"""
ViSi-Genie protocol command codes and constants.

Based on the ViSi-Genie Reference Manual (revision 1.11) and the
ViSiGenie4DSystems.Async .NET library.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Final


class CommandCode(IntEnum):
    """
    ViSi-Genie command codes.

    Command codes are single bytes that identify the type of message being
    sent or received. They are grouped by direction:
    - 0x00-0x04: Host to display (read/write)
    - 0x05, 0x07: Display to host (reports)
    - 0x06, 0x15: Display to host (acknowledgments)
    """

    # ===== Host to Display =====

    READ_OBJ = 0x00
    """Request the current value of an object."""

    WRITE_OBJ = 0x01
    """Set the value of an object (16-bit value)."""

    WRITE_STR = 0x02
    """Write an ASCII string to a string object."""

    WRITE_STRU = 0x03
    """Write a Unicode (UCS-2) string to a string object."""

    WRITE_CONTRAST = 0x04
    """Set the display backlight/contrast level."""

    # ===== Display to Host =====

    REPORT_OBJ = 0x05
    """Object value reply to a READ_OBJ request."""

    REPORT_EVENT = 0x07
    """Unsolicited report raised by a user interaction."""

    # ===== Acknowledgments =====

    ACK = 0x06
    """Write command accepted."""

    NAK = 0x15
    """Write command rejected (bad checksum or unknown object)."""


class ObjectType(IntEnum):
    """
    Object type codes defined by the Genie object model.

    The engine treats object types as opaque bytes; unknown codes are kept
    as plain integers by the decoder.
    """

    DIPSWITCH = 0x00
    KNOB = 0x01
    ROCKERSWITCH = 0x02
    ROTARYSWITCH = 0x03
    SLIDER = 0x04
    TRACKBAR = 0x05
    WINBUTTON = 0x06
    ANGULAR_METER = 0x07
    COOL_GAUGE = 0x08
    CUSTOM_DIGITS = 0x09
    FORM = 0x0A
    GAUGE = 0x0B
    IMAGE = 0x0C
    KEYBOARD = 0x0D
    LED = 0x0E
    LED_DIGITS = 0x0F
    METER = 0x10
    STRINGS = 0x11
    THERMOMETER = 0x12
    USER_LED = 0x13
    VIDEO = 0x14
    STATIC_TEXT = 0x15
    SOUND = 0x16
    TIMER = 0x17
    SPECTRUM = 0x18
    SCOPE = 0x19
    TANK = 0x1A
    USER_IMAGES = 0x1B
    PIN_OUTPUT = 0x1C
    PIN_INPUT = 0x1D
    FOUR_D_BUTTON = 0x1E
    ANI_BUTTON = 0x1F
    COLOR_PICKER = 0x20
    USER_BUTTON = 0x21


class BaudRate(IntEnum):
    """Baud rates selectable in the Genie project settings."""

    B110 = 110
    B300 = 300
    B600 = 600
    B1200 = 1200
    B2400 = 2400
    B4800 = 4800
    B9600 = 9600
    B14400 = 14400
    B19200 = 19200
    B31250 = 31250
    B38400 = 38400
    B56000 = 56000
    B57600 = 57600
    B115200 = 115200
    B128000 = 128000
    B256000 = 256000
    B300000 = 300000
    B375000 = 375000
    B500000 = 500000
    B600000 = 600000


class ProtocolConstants:
    """
    ViSi-Genie protocol constants.

    Contains field limits, timing values and buffer sizes used throughout
    the protocol implementation.
    """

    # ===== Field Limits =====

    MAX_BYTE: Final[int] = 0xFF
    """Largest value of a one-byte field (indexes, contrast)."""

    MAX_WORD: Final[int] = 0xFFFF
    """Largest value of a two-byte field (object values)."""

    MAX_STRING_LENGTH: Final[int] = 80
    """Maximum characters in a string write, excluding the null terminator."""

    # ===== Timing Constants (in seconds) =====

    DEFAULT_DELIVERY_TIMEOUT: Final[float] = 5.0
    """How long a report handler may defer completion."""

    DEFAULT_ACK_TIMEOUT: Final[float] = 1.0
    """How long to wait for ACK/NAK or a READ_OBJ reply."""

    # ===== Serial Port Configuration =====

    DEFAULT_BAUD_RATE: Final[BaudRate] = BaudRate.B9600
    """Factory default baud rate of Genie projects."""

    DEFAULT_DATA_BITS: Final[int] = 8
    """Default data bits."""

    DEFAULT_STOP_BITS: Final[int] = 1
    """Default stop bits."""

    DEFAULT_READ_CHUNK_SIZE: Final[int] = 64
    """Maximum bytes requested per transport read."""


# Frame layout table, excluding the command and checksum bytes

FIXED_PAYLOAD_LENGTHS: Final[dict[int, int]] = {
    CommandCode.READ_OBJ: 2,
    CommandCode.WRITE_OBJ: 4,
    CommandCode.WRITE_CONTRAST: 1,
    CommandCode.REPORT_OBJ: 4,
    CommandCode.REPORT_EVENT: 4,
}
"""Commands whose payload has a fixed size."""

STRING_COMMANDS: Final[dict[int, int]] = {
    CommandCode.WRITE_STR: 1,
    CommandCode.WRITE_STRU: 2,
}
"""Length-prefixed string commands mapped to bytes per character."""

STRING_HEADER_LENGTH: Final[int] = 2
"""String index byte plus length byte."""

ACKNOWLEDGMENT_CODES: Final[frozenset[int]] = frozenset({
    CommandCode.ACK,
    CommandCode.NAK,
})
"""Single-byte replies with no payload and no checksum."""
