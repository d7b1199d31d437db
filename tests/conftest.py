"""Shared test fixtures."""

from typing import Any
from unittest.mock import MagicMock

import pytest

from dpro_gateway.core.listener import DeviceListener
from dpro_gateway.core.models import SessionState
from dpro_gateway.net.protocol import LineProtocol
from dpro_gateway.net.session import DeviceSession
from dpro_gateway.protocol.catalog import ParameterCatalog

LEVEL = "IO:Current/InCh/Fader/Level"
MUTE = "IO:Current/InCh/Fader/On"
GAIN = "IO:Current/InCh/HA/Gain"
NAME = "IO:Current/InCh/Label/Name"
HPF = "IO:Current/InCh/HPF/Freq"
METER = "IO:Current/Meter/InCh"
DEVICE_NAME = "IO:Device/Name"


class RecordingListener(DeviceListener):
    """Listener that records every event it receives."""

    def __init__(self):
        self.events: list[tuple] = []

    def value_changed(self, address: str, row: int, column: int, value: Any):
        self.events.append(("value_changed", address, row, column, value))

    def status_changed(self, state: SessionState):
        self.events.append(("status_changed", state))

    def connected(self):
        self.events.append(("connected",))

    def disconnected(self):
        self.events.append(("disconnected",))

    def command_received(self, command):
        self.events.append(("command_received", command))

    def cache_reset(self):
        self.events.append(("cache_reset",))

    def error(self, error_message: str):
        self.events.append(("error", error_message))

    def of(self, kind: str) -> list[tuple]:
        return [event for event in self.events if event[0] == kind]


def make_fake_protocol() -> MagicMock:
    """Create a connected LineProtocol stand-in that records written lines."""
    protocol = MagicMock(spec=LineProtocol)
    protocol.connected = True
    protocol.write_line.return_value = True
    return protocol


def attach_protocol(session: DeviceSession, protocol: MagicMock | None = None) -> MagicMock:
    """Put a session into CONNECTED without starting its background tasks."""
    protocol = protocol or make_fake_protocol()
    session._protocol = protocol
    session._state = SessionState.CONNECTED
    return protocol


def written_lines(protocol: MagicMock) -> list[str]:
    return [call.args[0] for call in protocol.write_line.call_args_list]


@pytest.fixture
def catalog() -> ParameterCatalog:
    return ParameterCatalog.default()


@pytest.fixture
def listener() -> RecordingListener:
    return RecordingListener()


@pytest.fixture
def session(catalog, listener) -> DeviceSession:
    """A session with a recording listener; not connected."""
    return DeviceSession("127.0.0.1", catalog=catalog, listener=listener, message_delay=0.001)
