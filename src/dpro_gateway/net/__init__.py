"""TCP transport and session management."""

from dpro_gateway.net.protocol import LineProtocol
from dpro_gateway.net.session import DeviceSession
from dpro_gateway.net.supervisor import SessionSupervisor

__all__ = ["DeviceSession", "LineProtocol", "SessionSupervisor"]
