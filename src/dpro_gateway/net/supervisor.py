"""Reconnect supervisor for a device session."""

import asyncio
import logging

from dpro_gateway.core.models import SessionState
from dpro_gateway.net.session import DeviceSession
from dpro_gateway.protocol.constants import RECONNECT_DELAY

logger = logging.getLogger(__name__)


class SessionSupervisor:
    """Keeps a session connected by retrying after failures.

    The session itself never reconnects; this task checks its state every
    ``reconnect_delay`` seconds and calls ``connect()`` when it is down.
    """

    def __init__(self, session: DeviceSession, reconnect_delay: float = RECONNECT_DELAY):
        self.session = session
        self.reconnect_delay = reconnect_delay
        self._task: asyncio.Task | None = None
        self._running = False
        self.attempts = 0

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start supervising. Connects immediately, then keeps watching."""
        if self._running:
            logger.warning("Supervisor already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._reconnect_loop())
        logger.info("Session supervisor started for %s:%d", self.session.host, self.session.port)

    async def stop(self) -> None:
        """Stop supervising. Does not close the session."""
        if not self._running:
            return

        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        logger.info("Session supervisor stopped")

    async def _reconnect_loop(self) -> None:
        while self._running:
            try:
                if self.session.state in (SessionState.DISCONNECTED, SessionState.FAILED):
                    self.attempts += 1
                    logger.info(
                        "Connecting to %s:%d (attempt %d)",
                        self.session.host,
                        self.session.port,
                        self.attempts,
                    )
                    if await self.session.connect():
                        self.attempts = 0
                    else:
                        logger.warning("Connection failed, retrying in %.1fs", self.reconnect_delay)

                await asyncio.sleep(self.reconnect_delay)

            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("Error in reconnect loop: %s", e, exc_info=True)
                await asyncio.sleep(self.reconnect_delay)
