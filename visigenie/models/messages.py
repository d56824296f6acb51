"""
Pydantic models for ViSi-Genie protocol messages.

Every message is an immutable model that knows its command code, how to
serialize its payload, and how to compute its checksum. Inbound frames are
rebuilt through ``from_payload`` by the frame decoder.

Design principles:
- All models are frozen (immutable)
- Field limits are the wire widths; violations and wrongly typed fields
  raise ValidationError before any I/O happens
- Derived wire fields (string length) are computed, never supplied
- The checksum is always computed over the encoded bytes

Wire layouts (checksum = XOR of every preceding byte):

    READ_OBJ        [0x00][type][index][cs]
    WRITE_OBJ       [0x01][type][index][msb][lsb][cs]
    WRITE_STR       [0x02][index][len][chars...][0x00][cs]
    WRITE_STRU      [0x03][index][len][char msb][char lsb]...[0x00][0x00][cs]
    WRITE_CONTRAST  [0x04][value][cs]
    REPORT_OBJ      [0x05][type][index][msb][lsb][cs]
    REPORT_EVENT    [0x07][type][index][msb][lsb][cs]
    ACK / NAK       [0x06] / [0x15]
"""

from __future__ import annotations

from typing import Annotated, Any, ClassVar, Final

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    ValidationInfo,
    ValidatorFunctionWrapHandler,
    field_validator,
    model_validator,
)
from pydantic import ValidationError as PydanticValidationError

from visigenie.exceptions import MalformedFrameError, ValidationError
from visigenie.protocol.checksums import append_checksum, calculate_checksum
from visigenie.protocol.constants import CommandCode, ObjectType, ProtocolConstants
from visigenie.protocol.encoding import (
    bytes_to_hex,
    decode_uint16,
    encode_ascii_string,
    encode_uint16,
    encode_unicode_string,
)


def _check_byte(value: int, info: ValidationInfo) -> int:
    if not 0 <= value <= ProtocolConstants.MAX_BYTE:
        raise ValidationError(
            f"{info.field_name} must be 0-{ProtocolConstants.MAX_BYTE}, got {value}",
            field=info.field_name,
        )
    return value


def _check_word(value: int, info: ValidationInfo) -> int:
    if not 0 <= value <= ProtocolConstants.MAX_WORD:
        raise ValidationError(
            f"{info.field_name} must be 0-{ProtocolConstants.MAX_WORD}, got {value}",
            field=info.field_name,
        )
    return value


def _check_object_type(value: int, info: ValidationInfo) -> int:
    value = _check_byte(value, info)
    try:
        return ObjectType(value)
    except ValueError:
        # Opaque to the engine: keep codes newer than ObjectType as-is
        return value


Byte = Annotated[int, AfterValidator(_check_byte)]
"""An unsigned 8-bit wire field."""

Word = Annotated[int, AfterValidator(_check_word)]
"""An unsigned 16-bit wire field, sent MSB first."""

ObjectTypeCode = Annotated[int, AfterValidator(_check_object_type)]
"""Object type byte, normalized to ObjectType when recognized."""


class GenieMessage(BaseModel):
    """
    Base class of every Genie protocol message.

    Subclasses set ``command`` and implement ``payload`` and
    ``from_payload``.
    """

    model_config = ConfigDict(frozen=True)

    command: ClassVar[CommandCode]
    has_checksum: ClassVar[bool] = True
    expects_ack: ClassVar[bool] = False

    @model_validator(mode="wrap")
    @classmethod
    def check_input(cls, data: Any, handler: ValidatorFunctionWrapHandler) -> GenieMessage:
        """Report missing or wrongly typed fields as ValidationError."""
        try:
            return handler(data)
        except PydanticValidationError as e:
            error = e.errors()[0]
            field = ".".join(str(part) for part in error["loc"]) or None
            raise ValidationError(
                f"Invalid {cls.__name__}: {error['msg']}",
                field=field,
            ) from e

    def payload(self) -> bytes:
        """Bytes between the command byte and the checksum."""
        raise NotImplementedError

    @classmethod
    def from_payload(cls, payload: bytes) -> GenieMessage:
        """
        Rebuild a message from its decoded payload.

        Raises:
            MalformedFrameError: If the payload cannot form this message.
        """
        raise NotImplementedError

    def checksum(self) -> int:
        """XOR of the command byte and every payload byte."""
        return calculate_checksum(bytes([self.command]) + self.payload())

    @property
    def frame_length(self) -> int:
        """Total bytes the message occupies on the wire."""
        return 1 + len(self.payload()) + int(self.has_checksum)

    def encode(self) -> bytes:
        """
        Serialize the message to its complete wire frame.

        Returns:
            Command, payload and (where the command has one) checksum.
        """
        body = bytes([self.command]) + self.payload()
        if not self.has_checksum:
            return body
        return append_checksum(body)

    def to_hex(self) -> str:
        """Encoded frame formatted for traces, e.g. ``0x06``."""
        return bytes_to_hex(self.encode())


class WriteMessage(GenieMessage):
    """A message sent from the host to the display."""

    expects_ack: ClassVar[bool] = True


class ReportMessage(GenieMessage):
    """
    A message raised by the display.

    Both report kinds carry the object that produced them and its
    current 16-bit value.
    """

    object_type: ObjectTypeCode
    index: Byte
    value: Word

    def payload(self) -> bytes:
        return bytes([self.object_type, self.index]) + encode_uint16(self.value)

    @classmethod
    def from_payload(cls, payload: bytes) -> ReportMessage:
        return cls(
            object_type=payload[0],
            index=payload[1],
            value=decode_uint16(payload, 2),
        )


class AcknowledgmentMessage(GenieMessage):
    """Single-byte reply to a write: no payload and no checksum."""

    has_checksum: ClassVar[bool] = False

    def payload(self) -> bytes:
        return b""

    @classmethod
    def from_payload(cls, payload: bytes) -> AcknowledgmentMessage:
        return cls()


class ReadObject(WriteMessage):
    """
    Request an object's current value.

    The display answers with a ReportObjectStatus for the same object.
    """

    command: ClassVar[CommandCode] = CommandCode.READ_OBJ
    expects_ack: ClassVar[bool] = False

    object_type: ObjectTypeCode
    index: Byte

    def payload(self) -> bytes:
        return bytes([self.object_type, self.index])

    @classmethod
    def from_payload(cls, payload: bytes) -> ReadObject:
        return cls(object_type=payload[0], index=payload[1])


class WriteObjectValue(WriteMessage):
    """
    Set an object's value.

    Writing to a FORM object activates that form.

    Example:
        >>> WriteObjectValue(object_type=ObjectType.FORM, index=1, value=0).encode()
        b'\\x01\\n\\x01\\x00\\x00\\n'
    """

    command: ClassVar[CommandCode] = CommandCode.WRITE_OBJ

    object_type: ObjectTypeCode
    index: Byte
    value: Word

    def payload(self) -> bytes:
        return bytes([self.object_type, self.index]) + encode_uint16(self.value)

    @classmethod
    def from_payload(cls, payload: bytes) -> WriteObjectValue:
        return cls(
            object_type=payload[0],
            index=payload[1],
            value=decode_uint16(payload, 2),
        )


class WriteContrast(WriteMessage):
    """Set the display contrast (backlight) level."""

    command: ClassVar[CommandCode] = CommandCode.WRITE_CONTRAST

    value: Byte

    def payload(self) -> bytes:
        return bytes([self.value])

    @classmethod
    def from_payload(cls, payload: bytes) -> WriteContrast:
        return cls(value=payload[0])


class _StringMessage(WriteMessage):
    """
    Common base of the two string writes.

    The length byte counts characters including the null terminator. It is
    derived from ``text`` and cannot be supplied by the caller.
    """

    char_width: ClassVar[int]

    str_index: Byte
    text: str

    @field_validator("text")
    @classmethod
    def check_text(cls, v: str) -> str:
        if len(v) > ProtocolConstants.MAX_STRING_LENGTH:
            raise ValidationError(
                f"String is {len(v)} characters, maximum is {ProtocolConstants.MAX_STRING_LENGTH}",
                field="text",
            )
        if "\x00" in v:
            raise ValidationError("String must not contain a null character", field="text")
        return v

    @property
    def length(self) -> int:
        """Value of the length byte: characters plus the null terminator."""
        return len(self.text) + 1

    def _encode_text(self) -> bytes:
        raise NotImplementedError

    def payload(self) -> bytes:
        return bytes([self.str_index, self.length]) + self._encode_text()

    @classmethod
    def _decode_text(cls, data: bytes) -> str:
        raise NotImplementedError

    @classmethod
    def from_payload(cls, payload: bytes) -> _StringMessage:
        str_index, length = payload[0], payload[1]
        chars = payload[2:]
        terminator = b"\x00" * cls.char_width

        if len(chars) != length * cls.char_width:
            raise MalformedFrameError(
                f"String length byte {length} does not match {len(chars)} payload bytes"
            )
        if not chars.endswith(terminator):
            raise MalformedFrameError("String is not null terminated")

        try:
            text = cls._decode_text(chars[: -cls.char_width])
            return cls(str_index=str_index, text=text)
        except (UnicodeDecodeError, ValidationError) as e:
            raise MalformedFrameError(f"Invalid string payload: {e}") from e


class WriteStringASCII(_StringMessage):
    """
    Write an ASCII string to a string object.

    The maximum string length is 80 characters. One byte per character,
    followed by the null terminator, which is part of the checksum.

    Example:
        >>> msg = WriteStringASCII(str_index=0, text="Hi")
        >>> msg.length
        3
        >>> msg.to_hex()
        '0x02 0x00 0x03 0x48 0x69 0x00 0x20'
    """

    command: ClassVar[CommandCode] = CommandCode.WRITE_STR
    char_width: ClassVar[int] = 1

    @field_validator("text")
    @classmethod
    def check_ascii(cls, v: str) -> str:
        if not v.isascii():
            raise ValidationError("String must contain only ASCII characters", field="text")
        return v

    def _encode_text(self) -> bytes:
        return encode_ascii_string(self.text)

    @classmethod
    def _decode_text(cls, data: bytes) -> str:
        return data.decode("ascii")


class WriteStringUnicode(_StringMessage):
    """
    Write a Unicode string to a string object.

    Characters are sent as two bytes each (UCS-2, MSB first), followed by
    a two-byte null terminator. Only Basic Multilingual Plane characters
    can be represented.
    """

    command: ClassVar[CommandCode] = CommandCode.WRITE_STRU
    char_width: ClassVar[int] = 2

    @field_validator("text")
    @classmethod
    def check_bmp(cls, v: str) -> str:
        if any(ord(c) > 0xFFFF for c in v):
            raise ValidationError(
                "String must contain only Basic Multilingual Plane characters",
                field="text",
            )
        return v

    def _encode_text(self) -> bytes:
        return encode_unicode_string(self.text)

    @classmethod
    def _decode_text(cls, data: bytes) -> str:
        return data.decode("utf-16-be")


class ReportObjectStatus(ReportMessage):
    """Reply to ReadObject carrying the object's current value."""

    command: ClassVar[CommandCode] = CommandCode.REPORT_OBJ


class ReportEvent(ReportMessage):
    """Raised by the display when the user interacts with an object."""

    command: ClassVar[CommandCode] = CommandCode.REPORT_EVENT


class Acknowledge(AcknowledgmentMessage):
    """The display accepted the last write."""

    command: ClassVar[CommandCode] = CommandCode.ACK


class NegativeAcknowledge(AcknowledgmentMessage):
    """The display rejected the last write."""

    command: ClassVar[CommandCode] = CommandCode.NAK


MESSAGE_TYPES: Final[dict[int, type[GenieMessage]]] = {
    cls.command: cls
    for cls in (
        ReadObject,
        WriteObjectValue,
        WriteStringASCII,
        WriteStringUnicode,
        WriteContrast,
        ReportObjectStatus,
        ReportEvent,
        Acknowledge,
        NegativeAcknowledge,
    )
}
"""Message class for every supported command code."""
