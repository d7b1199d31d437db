"""Device session: TCP lifecycle, keepalive, queue draining and inbound dispatch.

The session is an explicit state machine::

    DISCONNECTED -> CONNECTING -> CONNECTED -> DISCONNECTED | FAILED

It never retries on its own; a supervisor watches ``state`` and calls
``connect()`` again.
"""

import asyncio
import logging
from typing import Any

from dpro_gateway.core.cache import StateCache
from dpro_gateway.core.listener import DeviceListener, MultiplexingListener
from dpro_gateway.core.models import Command, SessionState, SetMode
from dpro_gateway.net.protocol import LineProtocol
from dpro_gateway.protocol.catalog import ParameterCatalog
from dpro_gateway.protocol.constants import (
    CONNECT_TIMEOUT,
    HEARTBEAT_COMMAND,
    KA_INTERVAL,
    KEEPALIVE_COMMAND,
    MAX_DEFERRALS,
    MSG_DELAY,
    RCP_PORT,
    ReplyStatus,
)
from dpro_gateway.protocol.messages import decode, decode_info, encode
from dpro_gateway.protocol.queue import CommandQueue

logger = logging.getLogger(__name__)


class DeviceSession:
    """Single managed connection to one device.

    Owns the transport, the state cache, the command queue and three tasks:
    the reader, the keepalive heartbeat and the queue drain loop. All state
    is mutated from the event loop only, so consumers may call ``get_value``,
    ``set_value`` and ``enqueue`` from any coroutine or callback on that loop.
    """

    def __init__(
        self,
        host: str,
        port: int = RCP_PORT,
        catalog: ParameterCatalog | None = None,
        listener: DeviceListener | None = None,
        connect_timeout: float = CONNECT_TIMEOUT,
        message_delay: float = MSG_DELAY,
        keepalive_interval: float = KA_INTERVAL,
        max_deferrals: int = MAX_DEFERRALS,
    ):
        """Initialize the session.

        Args:
            host: Device control address.
            port: Device control port.
            catalog: Parameter catalog; the bundled table is used if omitted.
            listener: Optional listener registered for session events.
            connect_timeout: Seconds to wait for the TCP connection.
            message_delay: Minimum seconds between queued transmissions.
            keepalive_interval: Seconds between heartbeats. The device is told
                to drop the link after twice this long without traffic.
            max_deferrals: How often an unresolved set may be recycled.
        """
        self._host = host
        self._port = port
        self._catalog = catalog or ParameterCatalog.default()
        self._connect_timeout = connect_timeout
        self._message_delay = message_delay
        self._keepalive_interval = keepalive_interval

        self._listeners = MultiplexingListener()
        if listener is not None:
            self._listeners.register_listener(listener)

        self._queue = CommandQueue(self._catalog, max_deferrals=max_deferrals)
        self._cache = StateCache(self._catalog, fetch=self.enqueue, on_change=self._listeners.value_changed)

        self._state = SessionState.DISCONNECTED
        self._protocol: LineProtocol | None = None
        self._reader_task: asyncio.Task | None = None
        self._keepalive_task: asyncio.Task | None = None
        self._drain_task: asyncio.Task | None = None
        self._wakeup = asyncio.Event()
        self._device_info: dict[str, str] = {}

    # -- properties ----------------------------------------------------------

    @property
    def host(self) -> str:
        return self._host

    @property
    def port(self) -> int:
        return self._port

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def connected(self) -> bool:
        """Whether the session is connected and the socket is writable."""
        return self._state == SessionState.CONNECTED and self._protocol is not None and self._protocol.connected

    @property
    def catalog(self) -> ParameterCatalog:
        return self._catalog

    @property
    def cache(self) -> StateCache:
        return self._cache

    @property
    def queue(self) -> CommandQueue:
        return self._queue

    @property
    def listeners(self) -> MultiplexingListener:
        return self._listeners

    @property
    def device_info(self) -> dict[str, str]:
        """Latest devstatus/devinfo values reported by the device."""
        return dict(self._device_info)

    @property
    def run_mode(self) -> str | None:
        return self._device_info.get("runmode")

    def add_listener(self, listener: DeviceListener) -> None:
        self._listeners.register_listener(listener)

    def remove_listener(self, listener: DeviceListener) -> None:
        self._listeners.unregister_listener(listener)

    # -- lifecycle -----------------------------------------------------------

    def _set_state(self, state: SessionState) -> None:
        if state == self._state:
            return
        logger.info("Session %s:%d %s -> %s", self._host, self._port, self._state.label, state.label)
        self._state = state
        self._listeners.status_changed(state)

    async def connect(self) -> bool:
        """
        Open the TCP connection.

        Returns:
            True if the session is connected, False otherwise
        """
        if self._state == SessionState.CONNECTED:
            logger.debug("Already connected to %s:%d", self._host, self._port)
            return True
        if self._state == SessionState.CONNECTING:
            logger.warning("Connection attempt to %s:%d already in progress", self._host, self._port)
            return False

        self._set_state(SessionState.CONNECTING)
        loop = asyncio.get_running_loop()
        try:
            logger.info("Connecting to %s:%d", self._host, self._port)
            _, protocol = await asyncio.wait_for(
                loop.create_connection(LineProtocol, self._host, self._port),
                timeout=self._connect_timeout,
            )
        except (OSError, TimeoutError) as e:
            reason = str(e) or "timed out"
            logger.error("Failed to connect to %s:%d: %s", self._host, self._port, reason)
            self._set_state(SessionState.FAILED)
            self._listeners.error(f"Connection to {self._host}:{self._port} failed: {reason}")
            return False
        except asyncio.CancelledError:
            self._set_state(SessionState.DISCONNECTED)
            raise

        self._on_connected(protocol)
        return True

    def _on_connected(self, protocol: LineProtocol) -> None:
        self._protocol = protocol
        self._cache.clear()
        dropped = self._queue.clear()
        if dropped:
            logger.debug("Discarded %d commands queued before the connection", dropped)
        self._cancel_task(self._keepalive_task)
        self._keepalive_task = None

        self._set_state(SessionState.CONNECTED)

        # The device closes the link after 2x the heartbeat period without traffic
        timeout_ms = int(self._keepalive_interval * 2000)
        self.send_line(KEEPALIVE_COMMAND.format(timeout_ms=timeout_ms))

        self._keepalive_task = asyncio.create_task(self._keepalive_loop())
        self._drain_task = asyncio.create_task(self._drain_loop())
        self._reader_task = asyncio.create_task(self._reader_loop(protocol))

        self._listeners.connected()

    def _on_connection_lost(self, protocol: LineProtocol, exc: Exception | None) -> None:
        if protocol is not self._protocol:
            return
        self._protocol = None
        self._cancel_tasks()

        if exc is not None:
            logger.error("Network error on %s:%d: %s", self._host, self._port, exc)
            self._set_state(SessionState.FAILED)
            self._listeners.error(f"Network error: {exc}")
        else:
            logger.warning("Connection to %s:%d closed", self._host, self._port)
            self._set_state(SessionState.DISCONNECTED)
        self._listeners.disconnected()

    def _cancel_task(self, task: asyncio.Task | None) -> asyncio.Task | None:
        if task is None or task.done() or task is asyncio.current_task():
            return None
        task.cancel()
        return task

    def _cancel_tasks(self) -> list[asyncio.Task]:
        cancelled = [
            task
            for task in (
                self._cancel_task(self._keepalive_task),
                self._cancel_task(self._drain_task),
                self._cancel_task(self._reader_task),
            )
            if task is not None
        ]
        self._keepalive_task = None
        self._drain_task = None
        self._reader_task = None
        return cancelled

    async def close(self) -> None:
        """Cancel all tasks and close the connection."""
        protocol = self._protocol
        was_connected = self._state == SessionState.CONNECTED
        self._protocol = None
        tasks = self._cancel_tasks()
        if protocol is not None:
            protocol.close()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._set_state(SessionState.DISCONNECTED)
        if was_connected:
            self._listeners.disconnected()
        logger.info("Session %s:%d closed", self._host, self._port)

    async def __aenter__(self):
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    # -- background tasks ----------------------------------------------------

    async def _reader_loop(self, protocol: LineProtocol) -> None:
        while True:
            line = await protocol.receive_line()
            if line is None:
                break
            try:
                self.handle_line(line)
            except Exception as e:
                logger.error("Error handling line %r: %s", line, e, exc_info=True)
        self._on_connection_lost(protocol, protocol.close_exception)

    async def _keepalive_loop(self) -> None:
        while True:
            await asyncio.sleep(self._keepalive_interval)
            self.send_line(HEARTBEAT_COMMAND)

    async def _drain_loop(self) -> None:
        while True:
            if not self._queue:
                self._wakeup.clear()
                await self._wakeup.wait()
                continue
            try:
                self.tick()
            except Exception as e:
                logger.error("Error draining command queue: %s", e, exc_info=True)
            await asyncio.sleep(self._message_delay)

    # -- inbound -------------------------------------------------------------

    def handle_line(self, line: str) -> list[Command]:
        """Process one complete received line.

        Every decoded command is stored in the cache (except plain set
        acknowledgements and errors), offered to the queue to satisfy a
        pending get, and forwarded to listeners.
        """
        logger.debug("Received: %r", line)
        commands = decode(line, self._catalog)

        if not commands:
            info = decode_info(line)
            if info is not None:
                _, key, value = info
                self._device_info[key] = value
            return []

        for command in commands:
            if command.status == ReplyStatus.ERROR:
                logger.warning("Device returned error: %s", line)
                self._listeners.error(line)
            elif not (command.status == ReplyStatus.OK and command.is_set):
                self._cache.put_command(command)

            self._queue.reconcile(command)
            self._listeners.command_received(command)

        return commands

    # -- outbound ------------------------------------------------------------

    def send_line(self, line: str) -> bool:
        """Write a raw protocol line.

        Returns:
            True if the line was handed to the transport, False if the socket
            is not connected.
        """
        line = line.strip()
        if self._protocol is None or not self._protocol.connected:
            logger.info("Socket not connected, not sending %r", line)
            return False
        logger.debug("Sending %r to %s:%d", line, self._host, self._port)
        return self._protocol.write_line(line)

    def send_command(self, command: Command) -> bool:
        """Encode and write a command immediately, bypassing the queue."""
        try:
            line = encode(command, self._catalog)
        except ValueError as e:
            logger.warning("Cannot send %s: %s", command, e)
            return False
        return self.send_line(line)

    def enqueue(self, command: Command) -> None:
        """Queue a command for paced transmission."""
        self._queue.enqueue(command)
        self._wakeup.set()

    def tick(self) -> Command | None:
        """Transmit at most one queued command.

        Returns:
            The command taken from the queue, or None if nothing was taken.
        """
        command = self._queue.drain_once(self._resolve_value)
        if command is None:
            return None

        if self.send_command(command) and command.is_set:
            # The device does not echo every set, so reflect it locally
            self._cache.put_command(command)
        return command

    def _resolve_value(self, command: Command) -> Any:
        if command.mode == SetMode.ABSOLUTE:
            return command.value

        current = self._cache.get(command.address, command.row, command.column)
        if current is None:
            return None
        if command.mode == SetMode.TOGGLE:
            return not bool(current)
        return self._catalog.clamp(command.address, int(current) + int(command.value or 0))

    # -- consumer API --------------------------------------------------------

    def get_value(self, address: str, row: int = 0, column: int = 0) -> Any:
        """Get a cached value; a miss schedules a fetch and returns None."""
        return self._cache.get(address, row, column)

    def set_value(
        self,
        address: str,
        row: int = 0,
        column: int = 0,
        value: Any = None,
        mode: SetMode = SetMode.ABSOLUTE,
    ) -> Command:
        """Validate and queue a set command.

        Returns:
            The queued command.

        Raises:
            ValueError: If the value is not valid for the parameter.
        """
        command = self._catalog.validate_value(Command.set(address, row, column, value, mode))
        self.enqueue(command)
        return command

    def request(self, address: str, row: int = 0, column: int = 0) -> None:
        """Queue a get request regardless of the cached value."""
        self.enqueue(Command.get(address, row, column))

    def poll(self) -> int:
        """Discard all cached values so every value is read again.

        Returns:
            Number of cache entries discarded.
        """
        cleared = self._cache.clear()
        logger.info("Poll reset: discarded %d cached values", cleared)
        self._listeners.cache_reset()
        return cleared
