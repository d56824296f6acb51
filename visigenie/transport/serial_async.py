"""
Serial port transport for Genie displays, built on pyserial-asyncio.

Genie displays talk 8N1 without flow control. Only the baud rate varies; it
must match the rate chosen in the Workshop project (9600 unless changed).

Example:
    >>> transport = AsyncSerialTransport("COM3", PortConfiguration(baud_rate=115200))
    >>> async with transport:
    ...     await transport.write(WriteContrast(value=15).encode())
    ...     reply = await transport.read_available()
"""

from __future__ import annotations

import asyncio
import logging

import serial
import serial_asyncio

from visigenie.exceptions import TransportError, TransportReadError, TransportWriteError
from visigenie.models.config import PortConfiguration
from visigenie.protocol.constants import ProtocolConstants
from visigenie.transport.abc import AbstractTransport

logger = logging.getLogger(__name__)


class AsyncSerialTransport(AbstractTransport):
    """
    Transport over a local serial port.

    The port is opened through serial_asyncio.open_serial_connection, so
    reads and writes go through asyncio streams and never block the loop.

    Attributes:
        port_name: Device path the port was created with.
        config: Port configuration (baud rate, read chunk size).
    """

    def __init__(
        self,
        port: str,
        config: PortConfiguration | None = None,
    ) -> None:
        """
        Args:
            port: Device path, e.g. "/dev/ttyUSB0" or "COM3".
            config: Port configuration (default: 9600 8N1).
        """
        self._port = port
        self._config = config or PortConfiguration()
        self._reader: asyncio.StreamReader | None = None
        self._writer: asyncio.StreamWriter | None = None
        self._serial: serial.Serial | None = None

    @property
    def is_open(self) -> bool:
        return (
            self._reader is not None
            and self._writer is not None
            and not self._writer.is_closing()
        )

    @property
    def port_name(self) -> str:
        return self._port

    @property
    def config(self) -> PortConfiguration:
        return self._config

    async def open(self) -> None:
        """
        Open the port at the configured baud rate, 8N1, no flow control.

        Raises:
            TransportError: If the port does not exist, is busy, or rejects
                the baud rate.
        """
        if self.is_open:
            return

        baud_rate = int(self._config.baud_rate)
        try:
            self._reader, self._writer = await serial_asyncio.open_serial_connection(
                url=self._port,
                baudrate=baud_rate,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                xonxoff=False,
                rtscts=False,
                dsrdtr=False,
            )
        except serial.SerialException as e:
            raise TransportError(f"Cannot open serial port {self._port}: {e}") from e
        except (OSError, ValueError) as e:
            raise TransportError(f"Cannot open {self._port} at {baud_rate} baud: {e}") from e

        # pyserial-asyncio exposes the pySerial port on its transport
        self._serial = getattr(self._writer.transport, "serial", None)
        logger.debug("Opened %s (%s)", self._port, self._config)

    async def close(self) -> None:
        """Close the port. Errors while closing are logged, not raised."""
        writer = self._writer
        self._reader = None
        self._writer = None
        self._serial = None

        if writer is None:
            return
        try:
            writer.close()
            await writer.wait_closed()
        except (OSError, serial.SerialException) as e:
            logger.debug("Error closing %s: %s", self._port, e)
        else:
            logger.debug("Closed %s", self._port)

    async def write(self, data: bytes) -> None:
        """
        Queue one frame and wait until it has drained to the port.

        Raises:
            TransportWriteError: If the port is closed or the write fails.
        """
        if not self.is_open:
            raise TransportWriteError(f"Serial port {self._port} is not open")

        try:
            self._writer.write(data)
            await self._writer.drain()
        except (OSError, serial.SerialException) as e:
            raise TransportWriteError(f"Write to {self._port} failed: {e}") from e

    async def read_available(
        self,
        max_bytes: int = ProtocolConstants.DEFAULT_READ_CHUNK_SIZE,
    ) -> bytes:
        """
        Wait for inbound bytes and return up to `max_bytes` of them.

        Raises:
            TransportReadError: If the port is closed, reaches end of
                stream, or the read fails.
        """
        if not self.is_open:
            raise TransportReadError(f"Serial port {self._port} is not open")

        try:
            data = await self._reader.read(max_bytes)
        except (OSError, serial.SerialException) as e:
            raise TransportReadError(f"Read from {self._port} failed: {e}") from e

        if not data:
            raise TransportReadError(f"Serial port {self._port} closed")
        return data

    def discard_buffers(self) -> None:
        """
        Reset the pySerial input and output buffers.

        Bytes already moved into the asyncio stream are not affected.
        """
        if self._serial is None:
            return
        try:
            self._serial.reset_input_buffer()
            self._serial.reset_output_buffer()
        except (OSError, serial.SerialException) as e:
            logger.debug("Could not discard buffers on %s: %s", self._port, e)

    def __repr__(self) -> str:
        status = "open" if self.is_open else "closed"
        return f"AsyncSerialTransport({self._port!r}, {self._config}, {status})"
