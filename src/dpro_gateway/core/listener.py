"""Notification sinks for session and parameter events."""

import logging
from abc import ABC, abstractmethod
from typing import Any

from dpro_gateway.core.models import Command, SessionState

logger = logging.getLogger(__name__)


class DeviceListener(ABC):
    """Receives events from a device session.

    Only ``value_changed`` is required; the other hooks default to no-ops.
    """

    @abstractmethod
    def value_changed(self, address: str, row: int, column: int, value: Any):
        """Called when a cached value changes."""

    def status_changed(self, state: SessionState):
        pass

    def connected(self):
        """Called after the session reaches CONNECTED and the cache was cleared.

        Consumers should re-read the values they display.
        """

    def disconnected(self):
        pass

    def command_received(self, command: Command):
        """Called for every decoded inbound command, changed or not."""

    def cache_reset(self):
        """Called after a poll-reset cleared the cache."""

    def error(self, error_message: str):
        # By default, do nothing but can be overwritten to be notified of these messages.
        pass


class MultiplexingListener(DeviceListener):
    """Fans events out to registered listeners.

    A failing listener is logged and does not stop delivery to the others.
    """

    _listeners: list[DeviceListener]

    def __init__(self):
        self._listeners = []

    def _dispatch(self, method: str, *args):
        for listener in list(self._listeners):
            try:
                getattr(listener, method)(*args)
            except Exception as e:
                logger.error("Listener %r failed in %s: %s", listener, method, e)

    def value_changed(self, address: str, row: int, column: int, value: Any):
        self._dispatch("value_changed", address, row, column, value)

    def status_changed(self, state: SessionState):
        self._dispatch("status_changed", state)

    def connected(self):
        self._dispatch("connected")

    def disconnected(self):
        self._dispatch("disconnected")

    def command_received(self, command: Command):
        self._dispatch("command_received", command)

    def cache_reset(self):
        self._dispatch("cache_reset")

    def error(self, error_message: str):
        self._dispatch("error", error_message)

    def register_listener(self, listener: DeviceListener):
        self._listeners.append(listener)

    def unregister_listener(self, listener: DeviceListener):
        if listener in self._listeners:
            self._listeners.remove(listener)
        else:
            logger.info("Listener isn't registered")

    def __len__(self) -> int:
        return len(self._listeners)


class LoggingListener(DeviceListener):

    def __init__(self, logger=logger):
        self.logger = logger

    def value_changed(self, address: str, row: int, column: int, value: Any):
        self.logger.info(f"{address} [{row},{column}] = {value!r}")

    def status_changed(self, state: SessionState):
        self.logger.info(f"Session status: {state.label}")

    def connected(self):
        self.logger.info("Connected")

    def disconnected(self):
        self.logger.info("Disconnected")

    def cache_reset(self):
        self.logger.info("Cache reset, values will be re-read")

    def error(self, error_message: str):
        self.logger.warning(f"Device error: {error_message}")
