"""DPRO remote control protocol implementation."""

from dpro_gateway.protocol.codec import decode_value, encode_value
from dpro_gateway.protocol.constants import (
    KA_INTERVAL,
    MSG_DELAY,
    NEG_INF,
    RCP_PORT,
    Action,
    ParamType,
    ReplyStatus,
)

# Modules depending on core.models are imported lazily to avoid a circular
# import (core.models -> protocol.constants -> protocol.__init__ -> catalog -> core.models)
_LAZY = {
    "ParameterCatalog": ("dpro_gateway.protocol.catalog", "ParameterCatalog"),
    "CommandQueue": ("dpro_gateway.protocol.queue", "CommandQueue"),
    "encode": ("dpro_gateway.protocol.messages", "encode"),
    "decode": ("dpro_gateway.protocol.messages", "decode"),
}


def __getattr__(name: str):
    if name in _LAZY:
        import importlib

        module_name, attr = _LAZY[name]
        return getattr(importlib.import_module(module_name), attr)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "Action",
    "CommandQueue",
    "KA_INTERVAL",
    "MSG_DELAY",
    "NEG_INF",
    "ParamType",
    "ParameterCatalog",
    "RCP_PORT",
    "ReplyStatus",
    "decode",
    "decode_value",
    "encode",
    "encode_value",
]
