"""asyncio.Protocol implementation for DPRO line framing."""

import asyncio
import logging

from dpro_gateway.protocol.constants import ENCODING, LINE_TERMINATOR

logger = logging.getLogger(__name__)

_QUEUE_MAXSIZE = 1024


class LineProtocol(asyncio.Protocol):
    """Event-driven line splitter and writer.

    Receives raw bytes via ``data_received()``, splits them on line feeds
    and places complete lines on an asyncio.Queue for the session's reader
    task. A trailing partial line stays in the buffer until the rest of it
    arrives. ``None`` on the queue marks the end of the connection.
    """

    def __init__(self) -> None:
        self._transport: asyncio.Transport | None = None
        self._rx_buffer = bytearray()
        self._line_queue: asyncio.Queue[str | None] = asyncio.Queue(maxsize=_QUEUE_MAXSIZE)
        self._closed = asyncio.Event()
        self._close_exc: Exception | None = None
        self._stats = {
            "lines_read": 0,
            "lines_dropped": 0,
            "bytes_read": 0,
            "lines_written": 0,
        }

    # -- asyncio.Protocol callbacks ------------------------------------------

    def connection_made(self, transport: asyncio.Transport) -> None:  # type: ignore[override]
        self._transport = transport
        logger.debug("LineProtocol: connection made to %s", transport.get_extra_info("peername"))

    def connection_lost(self, exc: Exception | None) -> None:
        self._transport = None
        self._close_exc = exc
        self._closed.set()
        # Push sentinel so a pending receive_line() unblocks.
        self._put(None)
        logger.debug("LineProtocol: connection lost (exc=%s)", exc)

    def data_received(self, data: bytes) -> None:
        self._rx_buffer.extend(data)
        self._stats["bytes_read"] += len(data)

        while True:
            end = self._rx_buffer.find(LINE_TERMINATOR)
            if end == -1:
                break
            raw = bytes(self._rx_buffer[:end])
            del self._rx_buffer[: end + len(LINE_TERMINATOR)]

            line = raw.decode(ENCODING, errors="replace").rstrip("\r")
            if not line:
                continue
            self._stats["lines_read"] += 1
            self._put(line)

    def _put(self, line: str | None) -> None:
        if self._line_queue.full():
            # Drop oldest line to make room.
            try:
                self._line_queue.get_nowait()
                self._stats["lines_dropped"] += 1
            except asyncio.QueueEmpty:
                pass
        try:
            self._line_queue.put_nowait(line)
        except asyncio.QueueFull:
            pass

    # -- public API ----------------------------------------------------------

    @property
    def connected(self) -> bool:
        return self._transport is not None and not self._transport.is_closing()

    @property
    def stats(self) -> dict:
        return self._stats.copy()

    @property
    def pending_bytes(self) -> int:
        """Bytes of an incomplete line waiting for its terminator."""
        return len(self._rx_buffer)

    async def receive_line(self, timeout: float | None = None) -> str | None:
        """Wait for the next complete line.

        Returns ``None`` on timeout or when the connection has ended.
        """
        try:
            return await asyncio.wait_for(self._line_queue.get(), timeout=timeout)
        except TimeoutError:
            return None

    @property
    def close_exception(self) -> Exception | None:
        """Transport error that ended the connection, if any."""
        return self._close_exc

    async def wait_closed(self) -> Exception | None:
        """Wait until the connection is lost; returns the transport error, if any."""
        await self._closed.wait()
        return self._close_exc

    def write_line(self, line: str) -> bool:
        """Write one line followed by the terminator.

        Returns True on success, False when the transport is unavailable.
        """
        if not self.connected:
            return False
        self._transport.write(line.encode(ENCODING, errors="replace") + LINE_TERMINATOR)
        self._stats["lines_written"] += 1
        return True

    def close(self) -> None:
        if self._transport is not None:
            self._transport.close()
