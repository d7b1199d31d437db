"""Protocol constants for the DPRO remote control protocol."""

from enum import Enum

# ============================================================================
# Transport
# ============================================================================

RCP_PORT = 49280
LINE_TERMINATOR = b"\n"
ENCODING = "ascii"

# ============================================================================
# Timing (seconds)
# ============================================================================

MSG_DELAY = 0.005  # Minimum gap between two queued transmissions
KA_INTERVAL = 10.0  # Heartbeat period; the device idles out after 2x this
CONNECT_TIMEOUT = 5.0
RECONNECT_DELAY = 5.0
MAX_DEFERRALS = 1000  # Times a set may be recycled while its value is unresolved

# ============================================================================
# Session Commands
# ============================================================================

KEEPALIVE_COMMAND = "scpmode keepalive {timeout_ms}"
HEARTBEAT_COMMAND = "devstatus runmode"

# ============================================================================
# Values
# ============================================================================

NEG_INF = -32768  # Level sentinel for "-Inf dB"


class Action(str, Enum):
    """Command directions understood by the session."""

    GET = "get"
    SET = "set"


class ParamType(str, Enum):
    """Parameter value types as named in the parameter table."""

    INTEGER = "integer"
    SCALED = "scaled"
    FREQUENCY = "freq"
    BOOLEAN = "bool"
    STRING = "string"


class ReplyStatus(str, Enum):
    """Leading token of device replies."""

    OK = "OK"
    NOTIFY = "NOTIFY"
    ERROR = "ERROR"


# "OKm" is sent for multi-value replies and is treated as a plain OK
REPLY_STATUS_ALIASES = {
    "OK": ReplyStatus.OK,
    "OKm": ReplyStatus.OK,
    "NOTIFY": ReplyStatus.NOTIFY,
    "ERROR": ReplyStatus.ERROR,
}

METER_ACTION = "mtrinfo"
INFO_ACTIONS = ("devstatus", "devinfo", "scpmode")

# ============================================================================
# Default Parameter Table
# ============================================================================

DEFAULT_PARAMETERS = [
    {"address": "IO:Current/InCh/HA/Gain", "type": "integer", "access": "rw", "min": -6, "max": 66, "rows": 2},
    {"address": "IO:Current/InCh/HA/Phantom", "type": "bool", "access": "rw", "rows": 2},
    {"address": "IO:Current/InCh/HA/Pad", "type": "bool", "access": "rw", "rows": 2},
    {
        "address": "IO:Current/InCh/Fader/Level",
        "type": "scaled",
        "scale": 100,
        "access": "rw",
        "min": NEG_INF,
        "max": 1000,
        "rows": 2,
    },
    {"address": "IO:Current/InCh/Fader/On", "type": "bool", "access": "rw", "rows": 2},
    {"address": "IO:Current/InCh/Label/Name", "type": "string", "access": "rw", "rows": 2},
    {
        "address": "IO:Current/InCh/HPF/Freq",
        "type": "freq",
        "scale": 10,
        "access": "rw",
        "min": 200,
        "max": 6000,
        "rows": 2,
    },
    {
        "address": "IO:Current/OutCh/Fader/Level",
        "type": "scaled",
        "scale": 100,
        "access": "rw",
        "min": NEG_INF,
        "max": 1000,
        "rows": 2,
    },
    {"address": "IO:Current/OutCh/Fader/On", "type": "bool", "access": "rw", "rows": 2},
    {"address": "IO:Current/OutCh/Label/Name", "type": "string", "access": "rw", "rows": 2},
    {
        "address": "IO:Current/OutCh/Delay/Time",
        "type": "scaled",
        "scale": 100,
        "access": "rw",
        "min": 0,
        "max": 100000,
        "rows": 2,
    },
    {
        "address": "IO:Current/Meter/InCh",
        "type": "integer",
        "access": "r",
        "min": 0,
        "max": 127,
        "rows": 2,
        "columns": 2,
        "meter": True,
    },
    {
        "address": "IO:Current/Meter/OutCh",
        "type": "integer",
        "access": "r",
        "min": 0,
        "max": 127,
        "rows": 2,
        "columns": 2,
        "meter": True,
    },
    {"address": "IO:Device/Name", "type": "string", "access": "r"},
]
