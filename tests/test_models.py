"""Tests for message and configuration models."""

import pytest
from pydantic import ValidationError as PydanticValidationError

from visigenie.exceptions import ValidationError
from visigenie.models.config import PortConfiguration
from visigenie.models.messages import (
    MESSAGE_TYPES,
    Acknowledge,
    NegativeAcknowledge,
    ReadObject,
    ReportEvent,
    ReportObjectStatus,
    WriteContrast,
    WriteObjectValue,
    WriteStringASCII,
    WriteStringUnicode,
)
from visigenie.protocol.constants import BaudRate, CommandCode, ObjectType


class TestWriteObjectValue:
    """Tests for WriteObjectValue model."""

    def test_encode_form_zero(self):
        """Test the frame of the first form activation."""
        msg = WriteObjectValue(object_type=ObjectType.FORM, index=0, value=0)
        assert msg.encode() == bytes([0x01, 0x0A, 0x00, 0x00, 0x00, 0x0B])

    def test_encode_all_zero_fields(self):
        """Test that zero fields encode as zero bytes with XOR checksum."""
        msg = WriteObjectValue(object_type=ObjectType.DIPSWITCH, index=0, value=0)
        frame = msg.encode()
        assert frame[:5] == bytes([CommandCode.WRITE_OBJ, 0x00, 0x00, 0x00, 0x00])
        assert frame[5] == 0x01 ^ 0x00 ^ 0x00 ^ 0x00 ^ 0x00

    def test_value_is_big_endian(self):
        """Test that the 16-bit value is sent MSB first."""
        msg = WriteObjectValue(object_type=ObjectType.GAUGE, index=3, value=0x1234)
        assert msg.payload() == bytes([0x0B, 0x03, 0x12, 0x34])

    def test_checksum_matches_last_byte(self):
        """Test that checksum() is the trailing frame byte."""
        msg = WriteObjectValue(object_type=ObjectType.LED_DIGITS, index=7, value=999)
        assert msg.checksum() == msg.encode()[-1]

    def test_object_type_normalized(self):
        """Test that known object type codes become ObjectType members."""
        msg = WriteObjectValue(object_type=0x0A, index=0, value=0)
        assert msg.object_type is ObjectType.FORM

    def test_unknown_object_type_kept(self):
        """Test that unknown object type codes stay plain integers."""
        msg = WriteObjectValue(object_type=0x40, index=0, value=0)
        assert msg.object_type == 0x40
        assert not isinstance(msg.object_type, ObjectType)

    @pytest.mark.parametrize("index", [-1, 256, 1000])
    def test_index_out_of_range(self, index):
        """Test that indexes outside 0-255 are rejected."""
        with pytest.raises(ValidationError) as exc_info:
            WriteObjectValue(object_type=ObjectType.FORM, index=index, value=0)
        assert exc_info.value.field == "index"

    @pytest.mark.parametrize("value", [-1, 0x10000])
    def test_value_out_of_range(self, value):
        """Test that values outside 0-65535 are rejected."""
        with pytest.raises(ValidationError):
            WriteObjectValue(object_type=ObjectType.FORM, index=0, value=value)

    def test_object_type_out_of_range(self):
        """Test that object types wider than a byte are rejected."""
        with pytest.raises(ValidationError):
            WriteObjectValue(object_type=0x100, index=0, value=0)

    @pytest.mark.parametrize(
        ("fields", "field"),
        [
            ({"object_type": ObjectType.FORM, "index": "abc", "value": 0}, "index"),
            ({"object_type": ObjectType.FORM, "index": 0, "value": None}, "value"),
            ({"object_type": "form", "index": 0, "value": 0}, "object_type"),
            ({"object_type": ObjectType.FORM, "index": 0}, "value"),
        ],
    )
    def test_wrong_field_types_rejected(self, fields, field):
        """Test that missing or wrongly typed fields raise ValidationError."""
        with pytest.raises(ValidationError) as exc_info:
            WriteObjectValue(**fields)
        assert exc_info.value.field == field

    def test_frozen(self):
        """Test that messages are immutable."""
        msg = WriteObjectValue(object_type=ObjectType.FORM, index=0, value=0)
        with pytest.raises(PydanticValidationError):
            msg.value = 5

    def test_to_hex(self):
        """Test trace formatting."""
        msg = WriteObjectValue(object_type=ObjectType.FORM, index=1, value=0)
        assert msg.to_hex() == "0x01 0x0A 0x01 0x00 0x00 0x0A"


class TestWriteStringASCII:
    """Tests for WriteStringASCII model."""

    def test_encode(self):
        """Test the complete frame, including the null terminator."""
        msg = WriteStringASCII(str_index=0, text="Hi")
        assert msg.encode() == bytes([0x02, 0x00, 0x03, 0x48, 0x69, 0x00, 0x20])

    def test_length_includes_terminator(self):
        """Test that the length byte counts the null terminator."""
        msg = WriteStringASCII(str_index=4, text="Hello")
        assert msg.length == 6
        assert msg.encode()[2] == 6

    def test_empty_string(self):
        """Test that an empty string carries only the terminator."""
        msg = WriteStringASCII(str_index=9, text="")
        assert msg.length == 1
        assert msg.encode() == bytes([0x02, 0x09, 0x01, 0x00, 0x02 ^ 0x09 ^ 0x01])

    def test_maximum_length_accepted(self):
        """Test that 80 characters are accepted with length byte 81."""
        msg = WriteStringASCII(str_index=0, text="x" * 80)
        assert msg.length == 81
        assert len(msg.encode()) == 1 + 2 + 81 + 1

    def test_too_long_rejected(self):
        """Test that 81 characters are rejected."""
        with pytest.raises(ValidationError) as exc_info:
            WriteStringASCII(str_index=0, text="x" * 81)
        assert exc_info.value.field == "text"

    def test_caller_length_ignored(self):
        """Test that the length cannot be supplied by the caller."""
        msg = WriteStringASCII(str_index=0, text="ab", length=99)
        assert msg.length == 3

    def test_checksum_covers_terminator(self):
        """Test checksum over command, index, length, characters and null."""
        msg = WriteStringASCII(str_index=2, text="A")
        assert msg.checksum() == 0x02 ^ 0x02 ^ 0x02 ^ 0x41 ^ 0x00

    def test_non_ascii_rejected(self):
        """Test that characters outside ASCII are rejected."""
        with pytest.raises(ValidationError):
            WriteStringASCII(str_index=0, text="café")

    def test_embedded_null_rejected(self):
        """Test that an embedded null character is rejected."""
        with pytest.raises(ValidationError):
            WriteStringASCII(str_index=0, text="a\x00b")

    def test_index_out_of_range(self):
        """Test that string indexes outside 0-255 are rejected."""
        with pytest.raises(ValidationError) as exc_info:
            WriteStringASCII(str_index=256, text="x")
        assert exc_info.value.field == "str_index"

    def test_non_string_text_rejected(self):
        """Test that text must be a str."""
        with pytest.raises(ValidationError) as exc_info:
            WriteStringASCII(str_index=0, text=5)
        assert exc_info.value.field == "text"


class TestWriteStringUnicode:
    """Tests for WriteStringUnicode model."""

    def test_encode(self):
        """Test two bytes per character and a two-byte terminator."""
        msg = WriteStringUnicode(str_index=1, text="Aé")
        assert msg.length == 3
        assert msg.encode() == bytes(
            [0x03, 0x01, 0x03, 0x00, 0x41, 0x00, 0xE9, 0x00, 0x00, 0xA9]
        )

    def test_outside_bmp_rejected(self):
        """Test that characters needing surrogate pairs are rejected."""
        with pytest.raises(ValidationError):
            WriteStringUnicode(str_index=0, text="\U0001F600")

    def test_too_long_rejected(self):
        """Test the 80 character limit."""
        with pytest.raises(ValidationError):
            WriteStringUnicode(str_index=0, text="é" * 81)


class TestOtherMessages:
    """Tests for ReadObject, WriteContrast, reports and acknowledgments."""

    def test_read_object(self):
        """Test the READ_OBJ frame."""
        msg = ReadObject(object_type=ObjectType.FORM, index=2)
        assert msg.encode() == bytes([0x00, 0x0A, 0x02, 0x08])

    def test_write_contrast(self):
        """Test the WRITE_CONTRAST frame."""
        assert WriteContrast(value=15).encode() == bytes([0x04, 0x0F, 0x0B])

    def test_write_contrast_out_of_range(self):
        """Test that contrast wider than a byte is rejected."""
        with pytest.raises(ValidationError):
            WriteContrast(value=300)

    def test_report_event(self):
        """Test the REPORT_EVENT frame."""
        msg = ReportEvent(object_type=ObjectType.WINBUTTON, index=1, value=1)
        assert msg.encode() == bytes([0x07, 0x06, 0x01, 0x00, 0x01, 0x01])

    def test_report_kinds_not_equal(self):
        """Test that report kinds with equal fields are different messages."""
        event = ReportEvent(object_type=ObjectType.SLIDER, index=0, value=5)
        status = ReportObjectStatus(object_type=ObjectType.SLIDER, index=0, value=5)
        assert event != status

    def test_acknowledgments_have_no_checksum(self):
        """Test that ACK and NAK are single bytes."""
        assert Acknowledge().encode() == b"\x06"
        assert NegativeAcknowledge().encode() == b"\x15"

    @pytest.mark.parametrize(
        "message, length",
        [
            (Acknowledge(), 1),
            (WriteContrast(value=0), 3),
            (ReadObject(object_type=ObjectType.FORM, index=0), 4),
            (ReportEvent(object_type=ObjectType.FORM, index=0, value=0), 6),
            (WriteStringASCII(str_index=0, text="abc"), 8),
            (WriteStringUnicode(str_index=0, text="abc"), 12),
        ],
    )
    def test_frame_length(self, message, length):
        """Test that frame_length matches the encoded size."""
        assert message.frame_length == length
        assert len(message.encode()) == length

    def test_message_types_cover_commands(self):
        """Test that every command code has a message class."""
        assert set(MESSAGE_TYPES) == set(CommandCode)
        for code, cls in MESSAGE_TYPES.items():
            assert cls.command == code


class TestPortConfiguration:
    """Tests for PortConfiguration model."""

    def test_defaults(self):
        """Test the factory default 9600 8N1 settings."""
        config = PortConfiguration()
        assert config.baud_rate is BaudRate.B9600
        assert str(config) == "9600 8N1"

    def test_baud_rate_from_int(self):
        """Test that supported integer rates are accepted."""
        assert PortConfiguration(baud_rate=115200).baud_rate is BaudRate.B115200

    def test_unsupported_baud_rate(self):
        """Test that arbitrary integers are rejected."""
        with pytest.raises(ValueError):
            PortConfiguration(baud_rate=12345)

    def test_frozen(self):
        """Test that configuration is immutable."""
        config = PortConfiguration()
        with pytest.raises(PydanticValidationError):
            config.baud_rate = BaudRate.B19200
