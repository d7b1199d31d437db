"""Data models for the DPRO gateway."""

from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from dpro_gateway.protocol.constants import Action, ParamType, ReplyStatus

CacheKey = tuple[str, int, int]


class SetMode(str, Enum):
    """How the value of a set command is applied."""

    ABSOLUTE = "absolute"
    RELATIVE = "relative"  # value is a delta on the cached value
    TOGGLE = "toggle"  # inverts the cached boolean, value is ignored


class SessionState(str, Enum):
    """Lifecycle state of the device session."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    FAILED = "failed"

    @property
    def label(self) -> str:
        """Status label reported to supervisors and health checks."""
        return _STATE_LABELS[self]


_STATE_LABELS = {
    SessionState.DISCONNECTED: "Disconnected",
    SessionState.CONNECTING: "Connecting",
    SessionState.CONNECTED: "Connected",
    SessionState.FAILED: "ConnectionFailure",
}


class Command(BaseModel):
    """A single unit of protocol traffic.

    Commands are immutable; use ``model_copy(update=...)`` to derive a
    changed command.
    """

    action: Action = Field(..., description="Request direction (get or set)")
    address: str = Field(..., min_length=1, description="Colon-delimited parameter address")
    row: int = Field(0, ge=0, description="Zero-based first index")
    column: int = Field(0, ge=0, description="Zero-based second index")
    value: bool | int | float | str | None = Field(None, description="Parameter value")
    status: ReplyStatus | None = Field(None, description="Reply tag for inbound commands")
    mode: SetMode = Field(SetMode.ABSOLUTE, description="How a set value is applied")

    model_config = ConfigDict(frozen=True)

    @field_validator("address")
    @classmethod
    def validate_address(cls, v: str) -> str:
        """Addresses are sent as a single wire token."""
        if any(ch.isspace() for ch in v):
            raise ValueError("Address cannot contain whitespace")
        return v

    @property
    def cache_key(self) -> CacheKey:
        return (self.address, self.row, self.column)

    @property
    def is_get(self) -> bool:
        return self.action == Action.GET

    @property
    def is_set(self) -> bool:
        return self.action == Action.SET

    @classmethod
    def get(cls, address: str, row: int = 0, column: int = 0) -> "Command":
        """Build a get request."""
        return cls(action=Action.GET, address=address, row=row, column=column)

    @classmethod
    def set(
        cls,
        address: str,
        row: int = 0,
        column: int = 0,
        value: Any = None,
        mode: SetMode = SetMode.ABSOLUTE,
    ) -> "Command":
        """Build a set request."""
        return cls(action=Action.SET, address=address, row=row, column=column, value=value, mode=mode)

    def __str__(self) -> str:
        text = f"{self.action.value} {self.address} {self.row} {self.column}"
        if self.value is not None:
            text += f" {self.value!r}"
        if self.status is not None:
            text = f"{self.status.value} {text}"
        return text


class ParameterSpec(BaseModel):
    """Parameter table entry describing one device address."""

    address: str = Field(..., min_length=1, description="Colon-delimited parameter address")
    type: ParamType = Field(..., description="Value type")
    scale: int = Field(1, ge=1, description="Power-of-ten fixed-point scale")
    access: Literal["r", "w", "rw"] = Field("rw", description="Access mode")
    min_value: float | None = Field(None, alias="min", description="Minimum allowed value")
    max_value: float | None = Field(None, alias="max", description="Maximum allowed value")
    rows: int = Field(1, ge=1, description="Number of rows (first index)")
    columns: int = Field(1, ge=1, description="Number of columns (second index)")
    meter: bool = Field(False, description="Values are reported per row in one aggregate reply")

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "address": "IO:Current/InCh/Fader/Level",
                "type": "scaled",
                "scale": 100,
                "access": "rw",
                "min": -32768,
                "max": 1000,
                "rows": 2,
            }
        },
    )

    @field_validator("scale")
    @classmethod
    def validate_scale(cls, v: int) -> int:
        """Scale must be a power of ten so fixed-point text is exact."""
        if str(v).rstrip("0") != "1":
            raise ValueError("scale must be a power of ten")
        return v

    @field_validator("max_value")
    @classmethod
    def validate_range(cls, v: float | None, info) -> float | None:
        """Ensure max_value >= min_value if both are set."""
        if v is not None and info.data.get("min_value") is not None:
            if v < info.data["min_value"]:
                raise ValueError("max_value must be >= min_value")
        return v

    @model_validator(mode="after")
    def validate_scale_type(self) -> "ParameterSpec":
        """Only scaled and frequency parameters use a scale."""
        if self.scale != 1 and self.type not in (ParamType.SCALED, ParamType.FREQUENCY):
            raise ValueError(f"scale is only valid for scaled and freq parameters, not {self.type.value}")
        return self

    @property
    def readable(self) -> bool:
        return "r" in self.access

    @property
    def writable(self) -> bool:
        return "w" in self.access


# ============================================================================
# API Request/Response Models
# ============================================================================


class ParameterValue(BaseModel):
    """A cached parameter value."""

    address: str = Field(..., description="Parameter address")
    row: int = Field(0, ge=0, description="Row index")
    column: int = Field(0, ge=0, description="Column index")
    value: Any = Field(None, description="Cached value, None while pending")
    pending: bool = Field(False, description="True when the value is being fetched")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "address": "IO:Current/InCh/Fader/Level",
                "row": 0,
                "column": 0,
                "value": -1350,
                "pending": False,
            }
        }
    )


class ParametersResponse(BaseModel):
    """Response model for GET /api/parameters."""

    timestamp: datetime = Field(..., description="Time of the last cache update")
    parameters: list[ParameterValue] = Field(default_factory=list, description="All cached values")


class ParameterSetRequest(BaseModel):
    """Request model for POST /api/parameters/{address}."""

    row: int = Field(0, ge=0, description="Row index")
    column: int = Field(0, ge=0, description="Column index")
    value: bool | int | float | str | None = Field(None, description="New value or delta")
    mode: SetMode = Field(SetMode.ABSOLUTE, description="How the value is applied")

    model_config = ConfigDict(json_schema_extra={"example": {"row": 0, "column": 0, "value": -1000}})


class ParameterSetResponse(BaseModel):
    """Response model for an accepted set request."""

    queued: bool = Field(True, description="Whether the command was queued")
    address: str = Field(..., description="Parameter address")
    row: int = Field(..., description="Row index")
    column: int = Field(..., description="Column index")
    value: Any = Field(None, description="Requested value")
    mode: SetMode = Field(..., description="How the value is applied")
    queue_length: int = Field(..., ge=0, description="Commands waiting for transmission")


class PollResponse(BaseModel):
    """Response model for POST /api/poll."""

    cleared: int = Field(..., ge=0, description="Number of cache entries discarded")
    timestamp: datetime = Field(default_factory=datetime.now, description="Operation timestamp")


class ErrorResponse(BaseModel):
    """Response model for errors."""

    success: bool = Field(False, description="Operation success status")
    error: str = Field(..., description="Error message")
    detail: str | None = Field(None, description="Additional error details")
    timestamp: datetime = Field(default_factory=datetime.now, description="Error timestamp")


class HealthResponse(BaseModel):
    """Response model for health check."""

    status: str = Field(..., description="Health status (healthy/degraded/unhealthy)")
    session: str = Field(..., description="Session status label")
    device_connected: bool = Field(..., description="Whether the device session is connected")
    cached_values: int = Field(..., ge=0, description="Number of cached values")
    queue_length: int = Field(..., ge=0, description="Commands waiting for transmission")
    run_mode: str | None = Field(None, description="Run mode last reported by the device")
    last_update: datetime | None = Field(None, description="Last cache update timestamp")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "status": "healthy",
                "session": "Connected",
                "device_connected": True,
                "cached_values": 24,
                "queue_length": 0,
                "run_mode": "normal",
                "last_update": "2026-01-13T10:30:00",
            }
        }
    )
