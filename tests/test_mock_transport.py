"""Tests for MockTransport."""

import asyncio

import pytest

from visigenie.exceptions import TransportError, TransportReadError, TransportWriteError
from visigenie.models.messages import Acknowledge, ReportEvent
from visigenie.protocol.constants import ObjectType
from visigenie.transport.mock import MockTransport


class TestMockTransport:
    """Tests for MockTransport class."""

    @pytest.fixture
    def transport(self):
        """Create a MockTransport instance."""
        return MockTransport()

    @pytest.mark.asyncio
    async def test_open_close(self, transport):
        """Test opening and closing transport."""
        assert not transport.is_open
        await transport.open()
        assert transport.is_open
        assert transport.open_count == 1
        await transport.close()
        assert not transport.is_open

    @pytest.mark.asyncio
    async def test_double_open_raises(self, transport):
        """Test that opening twice raises error."""
        await transport.open()
        with pytest.raises(TransportError):
            await transport.open()

    @pytest.mark.asyncio
    async def test_fail_open(self):
        """Test simulating a port that cannot be opened."""
        transport = MockTransport(fail_open=True)
        with pytest.raises(TransportError):
            await transport.open()
        assert not transport.is_open

    @pytest.mark.asyncio
    async def test_write_records_data(self, transport):
        """Test that write records data."""
        await transport.open()
        await transport.write(b"hello")
        await transport.write(b"world")
        assert transport.written_data == [b"hello", b"world"]
        assert transport.last_written == b"world"
        transport.assert_write_count(2)
        transport.assert_written(b"hello", index=0)

    @pytest.mark.asyncio
    async def test_write_when_closed_raises(self, transport):
        """Test that writing to closed transport raises."""
        with pytest.raises(TransportWriteError):
            await transport.write(b"test")

    @pytest.mark.asyncio
    async def test_fail_writes(self, transport):
        """Test simulated write failures."""
        await transport.open()
        transport.fail_writes()
        with pytest.raises(TransportWriteError):
            await transport.write(b"\x06")

    @pytest.mark.asyncio
    async def test_read_available(self, transport):
        """Test reading queued bytes up to a limit."""
        await transport.open()
        transport.add_responses(b"hello", b" world")
        assert await transport.read_available(5) == b"hello"
        assert await transport.read_available() == b" world"

    @pytest.mark.asyncio
    async def test_read_waits_for_data(self, transport):
        """Test that a read suspends until bytes arrive."""
        await transport.open()
        read = asyncio.create_task(transport.read_available())
        await asyncio.sleep(0)
        assert not read.done()

        transport.add_response(b"\x06")
        assert await asyncio.wait_for(read, 1.0) == b"\x06"

    @pytest.mark.asyncio
    async def test_close_wakes_reader(self, transport):
        """Test that closing fails a pending read."""
        await transport.open()
        read = asyncio.create_task(transport.read_available())
        await asyncio.sleep(0)

        await transport.close()
        with pytest.raises(TransportReadError):
            await asyncio.wait_for(read, 1.0)

    @pytest.mark.asyncio
    async def test_fail_reads(self, transport):
        """Test simulated read failures."""
        await transport.open()
        transport.fail_reads("line dropped")
        with pytest.raises(TransportReadError, match="line dropped"):
            await transport.read_available()

    @pytest.mark.asyncio
    async def test_discard_buffers(self, transport):
        """Test dropping pending inbound bytes."""
        await transport.open()
        transport.add_response(b"stale")
        transport.discard_buffers()
        transport.add_response(b"\x15")
        assert await transport.read_available() == b"\x15"

    @pytest.mark.asyncio
    async def test_response_callback(self, transport):
        """Test replies generated from written frames."""
        await transport.open()
        transport.set_response_callback(lambda data: b"\x06" if data[0] == 0x01 else None)

        await transport.write(b"\x04\x0f\x0b")
        await transport.write(b"\x01\x0a\x00\x00\x00\x0b")

        assert await transport.read_available() == b"\x06"

    def test_assert_written_mismatch(self, transport):
        """Test assertion helpers on an empty history."""
        with pytest.raises(AssertionError):
            transport.assert_written(b"x")
        with pytest.raises(AssertionError):
            transport.assert_write_count(1)

    @pytest.mark.asyncio
    async def test_emit_messages(self, transport):
        """Test queueing whole messages as the display would send them."""
        event = ReportEvent(object_type=ObjectType.WINBUTTON, index=0, value=1)
        await transport.open()
        transport.emit(event, Acknowledge())
        assert await transport.read_available() == event.encode() + b"\x06"

    def test_repr(self, transport):
        """Test string representation."""
        assert repr(transport) == "MockTransport('mock://display', closed)"
