"""
visigenie - Python library for talking to 4D Systems ViSi-Genie displays.

This library provides async communication with Genie display modules over
serial links: encoding write commands, decoding the report stream, and
delivering user-interaction events to handlers in order. Any number of
displays can be attached at once.

Example:
    >>> from visigenie import GenieHost, ObjectType, WriteObjectValue
    >>>
    >>> async def on_event(event):
    ...     print(event.object_type, event.index, event.value)
    >>>
    >>> async def main():
    ...     async with GenieHost() as host:
    ...         await host.connect("/dev/ttyUSB0")
    ...         await host.start_listening("/dev/ttyUSB0", on_event, None)
    ...         await host.send(
    ...             "/dev/ttyUSB0",
    ...             WriteObjectValue(object_type=ObjectType.FORM, index=1, value=0),
    ...             wait_ack=True,
    ...         )
"""

from visigenie.connection import ConnectionState, ConnectionStats, GenieConnection
from visigenie.exceptions import (
    ConnectionError,
    FrameChecksumError,
    FrameError,
    GenieError,
    MalformedFrameError,
    NegativeAcknowledgeError,
    ObservabilityWarning,
    ProtocolError,
    TimeoutError,
    TransportError,
    TransportReadError,
    TransportWriteError,
    UnknownCommandError,
    ValidationError,
)
from visigenie.host import GenieHost
from visigenie.models import (
    Acknowledge,
    GenieMessage,
    NegativeAcknowledge,
    PortConfiguration,
    ReadObject,
    ReportEvent,
    ReportObjectStatus,
    WriteContrast,
    WriteObjectValue,
    WriteStringASCII,
    WriteStringUnicode,
)
from visigenie.protocol import BaudRate, CommandCode, FrameDecoder, ObjectType
from visigenie.transport import AbstractTransport, AsyncSerialTransport, MockTransport

__version__ = "0.1.0"
__all__ = [
    # Host and connections
    "GenieHost",
    "GenieConnection",
    "ConnectionState",
    "ConnectionStats",
    # Messages
    "GenieMessage",
    "ReadObject",
    "WriteObjectValue",
    "WriteStringASCII",
    "WriteStringUnicode",
    "WriteContrast",
    "ReportEvent",
    "ReportObjectStatus",
    "Acknowledge",
    "NegativeAcknowledge",
    "PortConfiguration",
    # Protocol
    "CommandCode",
    "ObjectType",
    "BaudRate",
    "FrameDecoder",
    # Exceptions
    "GenieError",
    "ValidationError",
    "ProtocolError",
    "FrameError",
    "FrameChecksumError",
    "UnknownCommandError",
    "MalformedFrameError",
    "NegativeAcknowledgeError",
    "TimeoutError",
    "ConnectionError",
    "TransportError",
    "TransportReadError",
    "TransportWriteError",
    "ObservabilityWarning",
    # Transport
    "AbstractTransport",
    "AsyncSerialTransport",
    "MockTransport",
    # Version
    "__version__",
]
