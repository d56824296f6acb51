"""
Genie display connection.

This module provides the per-display connection: it owns one transport,
runs a background read loop that feeds the frame decoder, and delivers the
decoded report messages to subscribed handlers strictly in arrival order.

The connection implements a small state machine:
    DISCONNECTED -> open() -> CONNECTING -> CONNECTED
    CONNECTED -> start_listening() -> LISTENING
    LISTENING -> stop_listening() (last pair) -> CONNECTED
    any state -> close() or transport failure -> DISCONNECTED

Handlers may be plain functions or coroutine functions. Whatever awaitable
a handler returns is its deferral: the next message is not delivered until
it completes or the delivery timeout expires.

Example:
    >>> from visigenie import GenieConnection
    >>> from visigenie.transport import AsyncSerialTransport
    >>>
    >>> async def on_event(event):
    ...     print(f"{event.object_type.name} {event.index} -> {event.value}")
    >>>
    >>> async def main():
    ...     transport = AsyncSerialTransport("/dev/ttyUSB0")
    ...     async with GenieConnection("/dev/ttyUSB0", transport) as display:
    ...         display.start_listening(on_event, None)
    ...         await display.send(WriteObjectValue(object_type=ObjectType.FORM, index=1, value=0))
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import warnings
from collections import deque
from collections.abc import Awaitable
from contextvars import ContextVar
from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING, Callable, Union

from visigenie.exceptions import (
    ConnectionError,
    FrameChecksumError,
    FrameError,
    GenieError,
    MalformedFrameError,
    NegativeAcknowledgeError,
    ObservabilityWarning,
    TimeoutError,
    TransportError,
    TransportReadError,
    TransportWriteError,
    UnknownCommandError,
    ValidationError,
)
from visigenie.models.config import PortConfiguration
from visigenie.models.messages import (
    AcknowledgmentMessage,
    GenieMessage,
    NegativeAcknowledge,
    ReadObject,
    ReportEvent,
    ReportMessage,
    ReportObjectStatus,
)
from visigenie.protocol.constants import ProtocolConstants
from visigenie.protocol.encoding import bytes_to_hex
from visigenie.protocol.frame_reader import DecodeResult, FrameDecoder, encode_frame

if TYPE_CHECKING:
    from visigenie.transport.abc import AbstractTransport

# Module logger
logger = logging.getLogger(__name__)

_delivering: ContextVar[GenieConnection | None] = ContextVar("_delivering", default=None)
"""The connection whose delivery task runs the current handler."""

ReportEventHandler = Callable[[ReportEvent], Union[Awaitable[None], None]]
"""Called for every ReportEvent; may return an awaitable deferral."""

ReportObjectStatusHandler = Callable[[ReportObjectStatus], Union[Awaitable[None], None]]
"""Called for every ReportObjectStatus; may return an awaitable deferral."""


def _consume_outcome(future: asyncio.Future) -> None:
    """Mark a waiter's exception as retrieved."""
    if not future.cancelled():
        future.exception()


class ConnectionState(Enum):
    """Display connection states."""

    DISCONNECTED = auto()
    """Transport closed; send and listen operations fail."""

    CONNECTING = auto()
    """Opening the transport."""

    CONNECTED = auto()
    """Transport open, no listeners registered."""

    LISTENING = auto()
    """Transport open and report handlers registered."""


@dataclass
class ConnectionStats:
    """Counters describing the traffic seen on one connection."""

    frames_sent: int = 0
    frames_received: int = 0
    checksum_errors: int = 0
    unknown_bytes: int = 0
    malformed_frames: int = 0
    messages_delivered: int = 0
    messages_discarded: int = 0
    delivery_timeouts: int = 0
    handler_errors: int = 0


class GenieConnection:
    """
    Connection to one Genie display.

    The connection owns its transport, a FrameDecoder, and a delivery
    queue. Once a listener is registered (or a reply is awaited) two
    background tasks run:

    - the read loop: transport bytes -> decoder -> delivery queue
    - the delivery task: pops the queue in order and calls the handlers

    Transport failures are fatal: the connection moves to DISCONNECTED and
    must be reopened. Corrupted frames are counted and logged only.

    Attributes:
        device_id: Opaque identifier of the display (usually the port path).
        state: Current connection state.
        stats: Traffic counters.
        transport: The underlying transport layer.

    Example:
        >>> connection = GenieConnection("COM3", AsyncSerialTransport("COM3"))
        >>> await connection.open()
        >>> connection.start_listening(on_event, on_status)
        >>> await connection.send(WriteStringASCII(str_index=0, text="Ready"))
        >>> await connection.close()
    """

    def __init__(
        self,
        device_id: str,
        transport: AbstractTransport,
        config: PortConfiguration | None = None,
        *,
        delivery_timeout: float = ProtocolConstants.DEFAULT_DELIVERY_TIMEOUT,
        ack_timeout: float = ProtocolConstants.DEFAULT_ACK_TIMEOUT,
    ) -> None:
        """
        Initialize the connection.

        Args:
            device_id: Identifier of the display.
            transport: Transport layer for communication.
            config: Port configuration the transport was built with.
            delivery_timeout: Seconds a handler may defer completion.
            ack_timeout: Default seconds to wait for ACK/NAK or a reply.
        """
        self._device_id = device_id
        self._transport = transport
        self._config = config or PortConfiguration()
        self._delivery_timeout = delivery_timeout
        self._ack_timeout = ack_timeout
        self._state = ConnectionState.DISCONNECTED
        self._stats = ConnectionStats()
        self._decoder = FrameDecoder()
        self._queue: asyncio.Queue[ReportMessage | None] = asyncio.Queue()
        self._write_lock = asyncio.Lock()
        self._event_handlers: list[ReportEventHandler] = []
        self._status_handlers: list[ReportObjectStatusHandler] = []
        self._listeners: list[tuple[ReportEventHandler | None, ReportObjectStatusHandler | None]] = []
        self._pending_acks: deque[asyncio.Future[AcknowledgmentMessage]] = deque()
        self._pending_reads: list[tuple[int, int, asyncio.Future[ReportObjectStatus]]] = []
        self._read_task: asyncio.Task[None] | None = None
        self._delivery_task: asyncio.Task[None] | None = None
        self._last_error: GenieError | None = None

    @property
    def device_id(self) -> str:
        """Get the display identifier."""
        return self._device_id

    @property
    def state(self) -> ConnectionState:
        """Get the current connection state."""
        return self._state

    @property
    def config(self) -> PortConfiguration:
        """Get the port configuration."""
        return self._config

    @property
    def transport(self) -> AbstractTransport:
        """Get the underlying transport."""
        return self._transport

    @property
    def stats(self) -> ConnectionStats:
        """Get the traffic counters."""
        return self._stats

    @property
    def is_connected(self) -> bool:
        """Check if the connection can send and listen."""
        return self._state in (ConnectionState.CONNECTED, ConnectionState.LISTENING)

    @property
    def is_listening(self) -> bool:
        """Check if any handler pair is registered."""
        return self._state == ConnectionState.LISTENING

    @property
    def last_error(self) -> GenieError | None:
        """The transport error that ended the connection, if any."""
        return self._last_error

    async def open(self) -> None:
        """
        Open the transport and make the connection usable.

        Raises:
            ConnectionError: If already connected, or the transport cannot
                be opened with the configured baud rate.
        """
        if self._state != ConnectionState.DISCONNECTED:
            raise ConnectionError(
                f"Cannot open: connection is in {self._state.name} state",
                device_id=self._device_id,
            )

        self._state = ConnectionState.CONNECTING
        logger.info("Connecting to display %s (%s)", self._device_id, self._config)

        try:
            if not self._transport.is_open:
                await self._transport.open()
        except TransportError as e:
            self._state = ConnectionState.DISCONNECTED
            logger.error("Cannot open display %s: %s", self._device_id, e)
            raise ConnectionError(
                f"Cannot open transport {self._transport.port_name}: {e}",
                device_id=self._device_id,
            ) from e

        self._transport.discard_buffers()
        self._decoder.reset()
        self._queue = asyncio.Queue()
        self._read_task = None
        self._delivery_task = None
        self._listeners.clear()
        self._event_handlers.clear()
        self._status_handlers.clear()
        self._last_error = None
        self._state = ConnectionState.CONNECTED
        logger.info("Connected to display %s", self._device_id)

    async def close(self) -> None:
        """
        Stop the background tasks and close the transport.

        Undelivered messages are discarded. Safe to call in any state and
        from inside a report handler.
        """
        if self._state == ConnectionState.DISCONNECTED and not self._transport.is_open:
            return

        logger.info("Disconnecting from display %s", self._device_id)
        self._state = ConnectionState.DISCONNECTED

        tasks = [self._read_task]
        if _delivering.get() is not self:
            tasks.append(self._delivery_task)
        current = asyncio.current_task()
        tasks = [
            task
            for task in tasks
            if task is not None and task is not current and not task.done()
        ]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        # Stops the delivery task when close() runs inside a handler
        self._queue.put_nowait(None)

        self._read_task = None
        self._delivery_task = None
        self._listeners.clear()
        self._event_handlers.clear()
        self._status_handlers.clear()
        self._fail_waiters(
            ConnectionError("Connection closed", device_id=self._device_id)
        )

        await self._transport.close()
        logger.debug("Disconnected from display %s", self._device_id)

    def start_listening(
        self,
        report_event_handler: ReportEventHandler | None,
        report_object_status_handler: ReportObjectStatusHandler | None,
    ) -> None:
        """
        Register a handler pair and start receiving reports.

        Every registered handler receives every message of its category, in
        registration order. The read loop starts with the first listener.

        Args:
            report_event_handler: Called with each ReportEvent, or None.
            report_object_status_handler: Called with each
                ReportObjectStatus, or None.

        Raises:
            ConnectionError: If the connection is not open.
            ValidationError: If both handlers are None.
        """
        self._ensure_connected()
        if report_event_handler is None and report_object_status_handler is None:
            raise ValidationError("At least one handler is required")

        self._listeners.append((report_event_handler, report_object_status_handler))
        if report_event_handler is not None:
            self._event_handlers.append(report_event_handler)
        if report_object_status_handler is not None:
            self._status_handlers.append(report_object_status_handler)

        self._state = ConnectionState.LISTENING
        logger.debug(
            "Display %s: listener added (%d registered)",
            self._device_id,
            len(self._listeners),
        )
        self._ensure_reader()

    def stop_listening(
        self,
        report_event_handler: ReportEventHandler | None,
        report_object_status_handler: ReportObjectStatusHandler | None,
    ) -> bool:
        """
        Unregister a handler pair previously passed to start_listening.

        The read loop keeps running; with no listeners left, reports are
        discarded as they are dequeued.

        Returns:
            True if the pair was registered, False otherwise.
        """
        pair = (report_event_handler, report_object_status_handler)
        if pair not in self._listeners:
            logger.debug("Display %s: stop_listening for unknown pair", self._device_id)
            return False

        self._listeners.remove(pair)
        if report_event_handler is not None:
            self._event_handlers.remove(report_event_handler)
        if report_object_status_handler is not None:
            self._status_handlers.remove(report_object_status_handler)

        if not self._listeners and self._state == ConnectionState.LISTENING:
            self._state = ConnectionState.CONNECTED
        logger.debug(
            "Display %s: listener removed (%d registered)",
            self._device_id,
            len(self._listeners),
        )
        return True

    async def send(
        self,
        message: GenieMessage,
        *,
        wait_ack: bool = False,
        timeout: float | None = None,
    ) -> None:
        """
        Encode a message and write it to the display.

        Frames are written one at a time, each in a single transport
        write, so concurrent senders never interleave bytes. Cancelling the
        calling task aborts the send; a frame is never half written.

        Args:
            message: Message to send.
            wait_ack: Wait for the display's ACK before returning.
            timeout: Seconds allowed for the write and for the ACK wait
                (default: the port write timeout and the ack timeout).

        Raises:
            ValidationError: If message is not a Genie message.
            ConnectionError: If the connection is not open.
            TransportWriteError: If the write fails (the connection closes).
            TimeoutError: If the write or the ACK wait times out.
            NegativeAcknowledgeError: If the display answers with NAK.
        """
        if not isinstance(message, GenieMessage):
            raise ValidationError(f"Cannot send {type(message).__name__}: not a Genie message")

        self._ensure_connected()
        frame = encode_frame(message)

        async with self._write_lock:
            ack: asyncio.Future[AcknowledgmentMessage] | None = None
            if wait_ack or message.expects_ack:
                # The display answers writes in order; one slot per write
                self._ensure_reader()
                ack = self._new_waiter()
                self._pending_acks.append(ack)

            try:
                await self._write(frame, timeout)
            except BaseException:
                if ack is not None and ack in self._pending_acks:
                    self._pending_acks.remove(ack)
                raise

            if not wait_ack:
                return
            reply = await self._wait_reply(
                ack,
                timeout if timeout is not None else self._ack_timeout,
                f"acknowledgment of {type(message).__name__}",
            )

        if isinstance(reply, NegativeAcknowledge):
            raise NegativeAcknowledgeError(
                f"Display {self._device_id} rejected {type(message).__name__} ({message.to_hex()})"
            )

    async def read_object(
        self,
        object_type: int,
        index: int,
        timeout: float | None = None,
    ) -> ReportObjectStatus:
        """
        Ask the display for an object's current value.

        The ReportObjectStatus reply is returned here and also delivered to
        the registered report-object-status handlers.

        Args:
            object_type: Object type code.
            index: Object index.
            timeout: Seconds to wait for the reply (default: ack timeout).

        Returns:
            The display's reply.

        Raises:
            ValidationError: If type or index is out of range.
            ConnectionError: If the connection is not open or closes.
            TimeoutError: If no reply arrives in time.
            NegativeAcknowledgeError: If the display rejects the request.
        """
        request = ReadObject(object_type=object_type, index=index)
        self._ensure_connected()
        self._ensure_reader()

        reply: asyncio.Future[ReportObjectStatus] = self._new_waiter()
        waiter = (int(request.object_type), request.index, reply)
        self._pending_reads.append(waiter)
        try:
            await self.send(request, timeout=timeout)
            return await self._wait_reply(
                reply,
                timeout if timeout is not None else self._ack_timeout,
                f"reply to {request!r}",
            )
        finally:
            self._pending_reads.remove(waiter)

    def _ensure_connected(self) -> None:
        """Verify the connection is usable."""
        if not self.is_connected:
            detail = f": {self._last_error}" if self._last_error else ""
            raise ConnectionError(
                f"Not connected (state: {self._state.name}){detail}",
                device_id=self._device_id,
            )

    def _ensure_reader(self) -> None:
        """Start the read loop and delivery task if they are not running."""
        if self._read_task is None or self._read_task.done():
            self._read_task = asyncio.create_task(
                self._read_loop(),
                name=f"genie-read-{self._device_id}",
            )
        if self._delivery_task is None or self._delivery_task.done():
            self._delivery_task = asyncio.create_task(
                self._delivery_loop(self._queue),
                name=f"genie-deliver-{self._device_id}",
            )

    def _new_waiter(self) -> asyncio.Future:
        future = asyncio.get_running_loop().create_future()
        # Slots of fire-and-forget writes are never awaited
        future.add_done_callback(_consume_outcome)
        return future

    async def _write(self, frame: bytes, timeout: float | None) -> None:
        effective_timeout = timeout if timeout is not None else self._config.write_timeout
        logger.debug("TX %s: %s", self._device_id, bytes_to_hex(frame))

        try:
            await asyncio.wait_for(self._transport.write(frame), effective_timeout)
        except asyncio.TimeoutError:
            raise TimeoutError(
                f"Write to {self._device_id} did not complete",
                timeout_seconds=effective_timeout,
            ) from None
        except TransportError as e:
            logger.error("Write to display %s failed: %s", self._device_id, e)
            error = TransportWriteError(f"Write to {self._device_id} failed: {e}")
            await self._abort(error)
            raise error from e

        self._stats.frames_sent += 1

    async def _wait_reply(self, future: asyncio.Future, timeout: float, what: str):
        try:
            return await asyncio.wait_for(future, timeout)
        except asyncio.TimeoutError:
            raise TimeoutError(
                f"No {what} from {self._device_id}",
                timeout_seconds=timeout,
            ) from None

    async def _read_loop(self) -> None:
        """
        Feed transport bytes to the decoder until the connection ends.

        A failed read is fatal; cancellation (from close) is the normal way
        to stop the loop.
        """
        logger.debug("Read loop started for %s", self._device_id)
        try:
            while True:
                data = await self._transport.read_available(self._config.read_chunk_size)
                logger.debug("RX %s: %s", self._device_id, bytes_to_hex(data))
                for result in self._decoder.feed(data):
                    self._handle_result(result)
        except TransportError as e:
            if self._state == ConnectionState.DISCONNECTED:
                return
            logger.error("Read from display %s failed: %s", self._device_id, e)
            await self._abort(TransportReadError(f"Read from {self._device_id} failed: {e}"))
        except Exception as e:
            logger.exception("Read loop for display %s crashed", self._device_id)
            await self._abort(TransportReadError(f"Read from {self._device_id} failed: {e!r}"))
        finally:
            logger.debug("Read loop stopped for %s", self._device_id)

    def _handle_result(self, result: DecodeResult) -> None:
        if isinstance(result, FrameError):
            self._count_frame_error(result)
            return

        self._stats.frames_received += 1

        if isinstance(result, AcknowledgmentMessage):
            self._resolve_ack(result)
            return

        if isinstance(result, ReportMessage):
            if isinstance(result, ReportObjectStatus):
                self._resolve_read(result)
            self._queue.put_nowait(result)
            return

        logger.debug("Display %s: ignoring inbound %r", self._device_id, result)

    def _count_frame_error(self, error: FrameError) -> None:
        if isinstance(error, UnknownCommandError):
            self._stats.unknown_bytes += 1
            logger.debug("Display %s: %s", self._device_id, error)
        elif isinstance(error, FrameChecksumError):
            self._stats.checksum_errors += 1
            logger.warning("Display %s: %s", self._device_id, error)
        elif isinstance(error, MalformedFrameError):
            self._stats.malformed_frames += 1
            logger.warning("Display %s: %s", self._device_id, error)

    def _resolve_ack(self, reply: AcknowledgmentMessage) -> None:
        if self._pending_acks:
            future = self._pending_acks.popleft()
            if not future.done():
                future.set_result(reply)
            else:
                logger.debug(
                    "Display %s: %s arrived after its sender gave up",
                    self._device_id,
                    type(reply).__name__,
                )
            return

        if isinstance(reply, NegativeAcknowledge):
            # READ_OBJ on an unknown object is answered with NAK
            for _, _, future in self._pending_reads:
                if not future.done():
                    future.set_exception(
                        NegativeAcknowledgeError(f"Display {self._device_id} rejected read request")
                    )
                    return

        logger.debug("Display %s: unsolicited %s", self._device_id, type(reply).__name__)

    def _resolve_read(self, report: ReportObjectStatus) -> None:
        for object_type, index, future in self._pending_reads:
            if not future.done() and object_type == report.object_type and index == report.index:
                future.set_result(report)
                return

    async def _delivery_loop(self, queue: asyncio.Queue[ReportMessage | None]) -> None:
        """Deliver queued reports one at a time, in arrival order."""
        _delivering.set(self)
        while True:
            message = await queue.get()
            try:
                if message is None:
                    return
                await self._dispatch(message)
            finally:
                queue.task_done()

    async def _dispatch(self, message: ReportMessage) -> None:
        if isinstance(message, ReportEvent):
            handlers = list(self._event_handlers)
        else:
            handlers = list(self._status_handlers)

        if not handlers:
            self._stats.messages_discarded += 1
            logger.debug("Display %s: no listener for %r", self._device_id, message)
            return

        for handler in handlers:
            await self._invoke(handler, message)
        self._stats.messages_delivered += 1

    async def _invoke(self, handler: Callable, message: ReportMessage) -> None:
        try:
            deferral = handler(message)
        except Exception:
            self._stats.handler_errors += 1
            logger.exception("Report handler %r failed on %r", handler, message)
            return

        if not inspect.isawaitable(deferral):
            return

        try:
            await asyncio.wait_for(deferral, self._delivery_timeout)
        except asyncio.TimeoutError:
            self._stats.delivery_timeouts += 1
            logger.warning(
                "Display %s: handler %r did not finish %r within %.1fs, abandoned",
                self._device_id,
                handler,
                message,
                self._delivery_timeout,
            )
            warnings.warn(
                f"Delivery of {message!r} on {self._device_id} timed out "
                f"after {self._delivery_timeout:.1f}s",
                ObservabilityWarning,
                stacklevel=2,
            )
        except Exception:
            self._stats.handler_errors += 1
            logger.exception("Report handler %r failed on %r", handler, message)

    async def _abort(self, error: GenieError) -> None:
        """Tear the connection down after a transport failure."""
        if self._state == ConnectionState.DISCONNECTED:
            return

        self._state = ConnectionState.DISCONNECTED
        self._last_error = error

        current = asyncio.current_task()
        if self._read_task is not None and self._read_task is not current:
            self._read_task.cancel()

        # Reports decoded before the failure are still delivered
        self._queue.put_nowait(None)
        self._fail_waiters(
            ConnectionError(f"Connection lost: {error}", device_id=self._device_id)
        )
        await self._transport.close()

    def _fail_waiters(self, error: GenieError) -> None:
        for future in self._pending_acks:
            if not future.done():
                future.set_exception(error)
        for _, _, future in self._pending_reads:
            if not future.done():
                future.set_exception(error)
        self._pending_acks.clear()

    async def __aenter__(self) -> GenieConnection:
        """Async context manager entry - opens the connection."""
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit - closes the connection."""
        await self.close()

    def __repr__(self) -> str:
        return f"GenieConnection({self._device_id!r}, state={self._state.name})"
