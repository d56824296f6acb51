"""
Registry of display connections.

A GenieHost maps device ids to GenieConnections and guarantees at most one
live connection per id. The application creates one host at its top level
and passes it where it is needed; closing the host closes every connection.

Example:
    >>> from visigenie import GenieHost, PortConfiguration
    >>>
    >>> async def main():
    ...     async with GenieHost() as host:
    ...         for device_id in host.discover_device_ids():
    ...             await host.connect(device_id, PortConfiguration(baud_rate=115200))
    ...             await host.start_listening(device_id, on_event, on_status)
    ...         await asyncio.Event().wait()
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from typing import Callable

from visigenie.connection import (
    GenieConnection,
    ReportEventHandler,
    ReportObjectStatusHandler,
)
from visigenie.exceptions import ConnectionError
from visigenie.models.config import PortConfiguration
from visigenie.models.messages import GenieMessage, ReportObjectStatus
from visigenie.protocol.constants import ProtocolConstants
from visigenie.transport.abc import AbstractTransport
from visigenie.transport.discovery import list_serial_ports
from visigenie.transport.serial_async import AsyncSerialTransport

logger = logging.getLogger(__name__)

TransportFactory = Callable[[str, PortConfiguration], AbstractTransport]
"""Builds the transport for a device id and port configuration."""

DeviceDiscovery = Callable[[], Iterable[str]]
"""Lists the device ids that may have a display attached."""


class GenieHost:
    """
    Registry of Genie display connections.

    All lookups and changes to the device id mapping are serialized by a
    single lock, so concurrent connect/disconnect calls for the same id
    cannot produce two connections.

    Args:
        transport_factory: Builds a transport per device (default:
            AsyncSerialTransport on the device id as port path).
        discovery: Lists candidate device ids (default: every serial port).
        delivery_timeout: Passed to each connection.
        ack_timeout: Passed to each connection.
    """

    def __init__(
        self,
        *,
        transport_factory: TransportFactory = AsyncSerialTransport,
        discovery: DeviceDiscovery = list_serial_ports,
        delivery_timeout: float = ProtocolConstants.DEFAULT_DELIVERY_TIMEOUT,
        ack_timeout: float = ProtocolConstants.DEFAULT_ACK_TIMEOUT,
    ) -> None:
        self._transport_factory = transport_factory
        self._discovery = discovery
        self._delivery_timeout = delivery_timeout
        self._ack_timeout = ack_timeout
        self._connections: dict[str, GenieConnection] = {}
        self._lock = asyncio.Lock()

    def discover_device_ids(self) -> list[str]:
        """Return the device ids reported by the discovery collaborator."""
        return list(self._discovery())

    def connections(self) -> dict[str, GenieConnection]:
        """Snapshot of the registered connections."""
        return dict(self._connections)

    async def connect(
        self,
        device_id: str,
        config: PortConfiguration | None = None,
    ) -> GenieConnection:
        """
        Connect to a display, or return the existing live connection.

        A registered connection that was lost is replaced by a new one.

        Args:
            device_id: Display identifier.
            config: Port configuration (default: 9600 8N1). Ignored when a
                live connection already exists.

        Returns:
            The connection for device_id.

        Raises:
            ConnectionError: If the transport cannot be opened.
        """
        async with self._lock:
            existing = self._connections.get(device_id)
            if existing is not None and existing.is_connected:
                logger.debug("Display %s already connected", device_id)
                return existing

            if existing is not None:
                logger.info("Replacing lost connection to %s", device_id)
                del self._connections[device_id]

            config = config or PortConfiguration()
            connection = GenieConnection(
                device_id,
                self._transport_factory(device_id, config),
                config,
                delivery_timeout=self._delivery_timeout,
                ack_timeout=self._ack_timeout,
            )
            await connection.open()
            self._connections[device_id] = connection
            return connection

    async def disconnect(self, device_id: str) -> None:
        """
        Close and unregister a display connection.

        Raises:
            ConnectionError: If device_id is not registered.
        """
        async with self._lock:
            connection = self._connections.pop(device_id, None)
        if connection is None:
            raise ConnectionError("Unknown device", device_id=device_id)
        await connection.close()

    async def get(self, device_id: str) -> GenieConnection:
        """
        Look up the live connection for a device id.

        Raises:
            ConnectionError: If device_id is unknown or disconnected.
        """
        async with self._lock:
            connection = self._connections.get(device_id)
        if connection is None:
            raise ConnectionError("Unknown device", device_id=device_id)
        if not connection.is_connected:
            raise ConnectionError(
                f"Device is {connection.state.name}",
                device_id=device_id,
            )
        return connection

    async def send(
        self,
        device_id: str,
        message: GenieMessage,
        *,
        wait_ack: bool = False,
        timeout: float | None = None,
    ) -> None:
        """Send a message to a connected display. See GenieConnection.send."""
        connection = await self.get(device_id)
        await connection.send(message, wait_ack=wait_ack, timeout=timeout)

    async def read_object(
        self,
        device_id: str,
        object_type: int,
        index: int,
        timeout: float | None = None,
    ) -> ReportObjectStatus:
        """Read an object's value. See GenieConnection.read_object."""
        connection = await self.get(device_id)
        return await connection.read_object(object_type, index, timeout)

    async def start_listening(
        self,
        device_id: str,
        report_event_handler: ReportEventHandler | None,
        report_object_status_handler: ReportObjectStatusHandler | None,
    ) -> None:
        """Register a handler pair on a connected display."""
        connection = await self.get(device_id)
        connection.start_listening(report_event_handler, report_object_status_handler)

    async def stop_listening(
        self,
        device_id: str,
        report_event_handler: ReportEventHandler | None,
        report_object_status_handler: ReportObjectStatusHandler | None,
    ) -> bool:
        """Unregister a handler pair from a display."""
        async with self._lock:
            connection = self._connections.get(device_id)
        if connection is None:
            raise ConnectionError("Unknown device", device_id=device_id)
        return connection.stop_listening(report_event_handler, report_object_status_handler)

    async def close(self) -> None:
        """Close every connection and empty the registry."""
        async with self._lock:
            connections = list(self._connections.values())
            self._connections.clear()

        if connections:
            logger.info("Closing %d display connection(s)", len(connections))
        results = await asyncio.gather(
            *(connection.close() for connection in connections),
            return_exceptions=True,
        )
        for connection, result in zip(connections, results):
            if isinstance(result, Exception):
                logger.error("Error closing %s: %s", connection.device_id, result)

    async def __aenter__(self) -> GenieHost:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"GenieHost(connections={sorted(self._connections)})"
