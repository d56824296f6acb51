"""
Transport layer for Genie protocol communication.

This package provides transport implementations for talking to displays
over various byte-oriented links, plus serial port discovery.

Available transports:
- AsyncSerialTransport: Async serial port using pyserial-asyncio
- MockTransport: Mock transport for testing without hardware

Example:
    >>> from visigenie.transport import AsyncSerialTransport
    >>> async with AsyncSerialTransport("/dev/ttyUSB0") as transport:
    ...     await transport.write(frame)
    ...     data = await transport.read_available()

Testing Example:
    >>> from visigenie.transport import MockTransport
    >>> mock = MockTransport()
    >>> mock.add_response(bytes([0x06]))  # ACK
"""

from visigenie.transport.abc import AbstractTransport
from visigenie.transport.discovery import list_serial_ports
from visigenie.transport.mock import MockTransport
from visigenie.transport.serial_async import AsyncSerialTransport

__all__ = [
    "AbstractTransport",
    "AsyncSerialTransport",
    "MockTransport",
    "list_serial_ports",
]
