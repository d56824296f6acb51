"""
In-memory display for tests.

MockTransport stands in for a serial port: the test plays the display by
queueing inbound bytes (or whole messages) and inspects the frames the
engine wrote. A reply callback can answer writes as they happen, which is
how ACK/NAK and READ_OBJ round trips are simulated.

Example:
    >>> mock = MockTransport()
    >>> mock.set_response_callback(lambda frame: b"\\x06")  # ACK every write
    >>>
    >>> async with GenieConnection("mock", mock) as display:
    ...     await display.send(WriteContrast(value=15), wait_ack=True)
    ...     mock.emit(ReportEvent(object_type=ObjectType.WINBUTTON, index=0, value=1))
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Callable

from visigenie.exceptions import TransportError, TransportReadError, TransportWriteError
from visigenie.protocol.constants import ProtocolConstants
from visigenie.transport.abc import AbstractTransport

if TYPE_CHECKING:
    from visigenie.models.messages import GenieMessage

ResponseCallback = Callable[[bytes], "bytes | None"]
"""Maps a written frame to the bytes the display answers with."""


class MockTransport(AbstractTransport):
    """
    Serial line simulation without hardware.

    Inbound bytes are kept in one buffer and handed out in arrival order;
    chunk boundaries are not preserved, as on a real line. read_available()
    suspends until bytes are queued, the transport closes, or reads are made
    to fail.

    Attributes:
        written_data: Every frame written, one entry per write call.
        open_count: Number of successful open() calls.
    """

    def __init__(
        self,
        port_name: str = "mock://display",
        *,
        fail_open: bool = False,
    ) -> None:
        """
        Args:
            port_name: Name reported by port_name.
            fail_open: Make open() raise TransportError, like a missing
                port or an unsupported baud rate.
        """
        self._port_name = port_name
        self._fail_open = fail_open
        self._is_open = False
        self._inbound = bytearray()
        self._inbound_ready = asyncio.Event()
        self._frames: list[bytes] = []
        self._read_error: TransportReadError | None = None
        self._write_error: TransportWriteError | None = None
        self._on_write: ResponseCallback | None = None
        self.open_count = 0

    @property
    def is_open(self) -> bool:
        return self._is_open

    @property
    def port_name(self) -> str:
        return self._port_name

    @property
    def written_data(self) -> list[bytes]:
        """Copy of the frames written so far."""
        return list(self._frames)

    @property
    def last_written(self) -> bytes | None:
        """The latest frame written, or None."""
        return self._frames[-1] if self._frames else None

    def add_response(self, data: bytes) -> None:
        """Queue bytes as if the display had sent them."""
        self._inbound.extend(data)
        self._inbound_ready.set()

    def add_responses(self, *chunks: bytes) -> None:
        """Queue several byte strings in order."""
        for chunk in chunks:
            self.add_response(chunk)

    def emit(self, *messages: GenieMessage) -> None:
        """Queue the wire frames of the given messages."""
        self.add_response(b"".join(message.encode() for message in messages))

    def set_response_callback(self, callback: ResponseCallback | None) -> None:
        """
        Answer writes automatically.

        The callback runs inside write() with the written frame; bytes it
        returns are queued for reading, None sends nothing.
        """
        self._on_write = callback

    def fail_reads(self, message: str = "Mock read failure") -> None:
        """Make the pending and every later read raise TransportReadError."""
        self._read_error = TransportReadError(message)
        self._inbound_ready.set()

    def fail_writes(self, message: str = "Mock write failure") -> None:
        """Make every later write raise TransportWriteError."""
        self._write_error = TransportWriteError(message)

    def clear(self) -> None:
        """Forget written frames and queued inbound bytes."""
        self._frames.clear()
        self._inbound.clear()

    def clear_written(self) -> None:
        """Forget written frames only."""
        self._frames.clear()

    async def open(self) -> None:
        if self._fail_open:
            raise TransportError(f"Cannot open {self._port_name}")
        if self._is_open:
            raise TransportError(f"{self._port_name} is already open")
        self._is_open = True
        self.open_count += 1

    async def close(self) -> None:
        self._is_open = False
        # Wake a reader blocked in read_available()
        self._inbound_ready.set()

    async def write(self, data: bytes) -> None:
        if not self._is_open:
            raise TransportWriteError(f"{self._port_name} is not open")
        if self._write_error is not None:
            raise self._write_error

        frame = bytes(data)
        self._frames.append(frame)

        if self._on_write is not None:
            reply = self._on_write(frame)
            if reply is not None:
                self.add_response(reply)

    async def read_available(
        self,
        max_bytes: int = ProtocolConstants.DEFAULT_READ_CHUNK_SIZE,
    ) -> bytes:
        while not self._inbound:
            if not self._is_open:
                raise TransportReadError(f"{self._port_name} is not open")
            if self._read_error is not None:
                raise self._read_error
            self._inbound_ready.clear()
            await self._inbound_ready.wait()

        if not self._is_open:
            raise TransportReadError(f"{self._port_name} is not open")
        if self._read_error is not None:
            raise self._read_error

        chunk = bytes(self._inbound[:max_bytes])
        del self._inbound[:max_bytes]
        return chunk

    def discard_buffers(self) -> None:
        self._inbound.clear()

    def assert_written(self, expected: bytes, index: int = -1) -> None:
        """
        Check one written frame.

        Args:
            expected: Frame bytes expected at index.
            index: Position in written_data (default: the latest).

        Raises:
            AssertionError: If nothing was written or the frame differs.
        """
        if not self._frames:
            raise AssertionError(f"Nothing was written to {self._port_name}")
        actual = self._frames[index]
        if actual != expected:
            raise AssertionError(f"Frame {index}: expected {expected!r}, got {actual!r}")

    def assert_write_count(self, expected: int) -> None:
        """Check how many frames were written."""
        if len(self._frames) != expected:
            raise AssertionError(f"Expected {expected} frame(s), got {len(self._frames)}")

    def __repr__(self) -> str:
        status = "open" if self._is_open else "closed"
        return f"MockTransport({self._port_name!r}, {status})"
