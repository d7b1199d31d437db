"""Core application functionality."""

from dpro_gateway.core.cache import StateCache
from dpro_gateway.core.config import Settings, setup_logging
from dpro_gateway.core.listener import DeviceListener, LoggingListener, MultiplexingListener
from dpro_gateway.core.models import Command, ParameterSpec, SessionState, SetMode

__all__ = [
    "Command",
    "DeviceListener",
    "LoggingListener",
    "MultiplexingListener",
    "ParameterSpec",
    "SessionState",
    "SetMode",
    "Settings",
    "StateCache",
    "setup_logging",
]
