"""
Byte-stream interface between a GenieConnection and a display link.

A transport moves raw bytes and knows nothing about frames. The connection
relies on three properties of every implementation:

- write() hands a whole frame over in one call
- read_available() is the only call that waits for the display
- close() releases a reader blocked in read_available()

Implementations:
- AsyncSerialTransport: serial port through pyserial-asyncio
- MockTransport: in-memory display for tests
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from visigenie.protocol.constants import ProtocolConstants

if TYPE_CHECKING:
    from types import TracebackType


class AbstractTransport(ABC):
    """
    Base class of display transports.

    Usable as an async context manager:

        async with AsyncSerialTransport("/dev/ttyUSB0") as transport:
            await transport.write(frame)
            data = await transport.read_available()

    Attributes:
        is_open: Whether bytes can currently be exchanged.
        port_name: Name of the link, e.g. the serial device path.
    """

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """True while the link is open and usable for I/O."""
        ...

    @property
    @abstractmethod
    def port_name(self) -> str:
        """Name of the link ("/dev/ttyUSB0", "COM3", "mock://display")."""
        ...

    @abstractmethod
    async def open(self) -> None:
        """
        Open the link.

        Raises:
            TransportError: If the link cannot be opened with its
                configured settings.
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """
        Close the link.

        Idempotent. A read_available() pending at the time must return or
        raise rather than wait forever.
        """
        ...

    @abstractmethod
    async def write(self, data: bytes) -> None:
        """
        Send one complete frame.

        Args:
            data: Frame bytes.

        Raises:
            TransportWriteError: If the link is closed or the write fails.
        """
        ...

    @abstractmethod
    async def read_available(
        self,
        max_bytes: int = ProtocolConstants.DEFAULT_READ_CHUNK_SIZE,
    ) -> bytes:
        """
        Wait for inbound bytes.

        Suspends until at least one byte has arrived, then returns up to
        `max_bytes` of them without waiting for more.

        Raises:
            TransportReadError: If the link is closed, the stream ends, or
                the read fails.
        """
        ...

    @abstractmethod
    def discard_buffers(self) -> None:
        """Drop bytes received but not yet read."""
        ...

    async def __aenter__(self) -> AbstractTransport:
        await self.open()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()
