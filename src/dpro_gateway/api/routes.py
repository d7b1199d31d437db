"""API route handlers."""

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Response

from dpro_gateway.api.dependencies import get_session
from dpro_gateway.core.models import (
    ErrorResponse,
    ParameterSetRequest,
    ParameterSetResponse,
    ParametersResponse,
    ParameterValue,
    PollResponse,
)
from dpro_gateway.net.session import DeviceSession

router = APIRouter(prefix="/api")


def _require_connected(session: DeviceSession) -> None:
    if not session.connected:
        raise HTTPException(status_code=503, detail="Device not connected")


@router.get("/parameters", response_model=ParametersResponse)
async def get_parameters(session: DeviceSession = Depends(get_session)):
    """Get all cached parameter values."""
    _require_connected(session)

    parameters = [
        ParameterValue(address=address, row=row, column=column, value=value)
        for (address, row, column), value in sorted(session.cache.snapshot().items())
    ]

    return ParametersResponse(
        timestamp=session.cache.last_update or datetime.now(),
        parameters=parameters,
    )


@router.get(
    "/parameters/{address:path}",
    response_model=ParameterValue,
    responses={
        202: {"model": ParameterValue},
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
async def get_parameter(
    address: str,
    response: Response,
    row: int = 0,
    column: int = 0,
    session: DeviceSession = Depends(get_session),
):
    """Get one value. A cache miss queues a read and answers 202."""
    spec = session.catalog.find(address)
    if spec is None:
        raise HTTPException(status_code=404, detail=f"Parameter not found: {address}")
    if not spec.readable:
        raise HTTPException(status_code=400, detail=f"Parameter is write-only: {address}")
    if not (0 <= row < spec.rows and 0 <= column < spec.columns):
        raise HTTPException(status_code=400, detail=f"Index {row}/{column} out of range for {address}")
    _require_connected(session)

    if (address, row, column) in session.cache:
        return ParameterValue(address=address, row=row, column=column, value=session.cache.peek(address, row, column))

    session.get_value(address, row, column)
    response.status_code = 202
    return ParameterValue(address=address, row=row, column=column, value=None, pending=True)


@router.post(
    "/parameters/{address:path}",
    response_model=ParameterSetResponse,
    status_code=202,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
async def set_parameter(
    address: str,
    request: ParameterSetRequest,
    session: DeviceSession = Depends(get_session),
):
    """Queue a parameter change."""
    if address not in session.catalog:
        raise HTTPException(status_code=404, detail=f"Parameter not found: {address}")
    _require_connected(session)

    try:
        command = session.set_value(address, request.row, request.column, request.value, request.mode)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from None

    return ParameterSetResponse(
        queued=True,
        address=address,
        row=command.row,
        column=command.column,
        value=command.value,
        mode=command.mode,
        queue_length=len(session.queue),
    )


@router.post("/poll", response_model=PollResponse)
async def poll(session: DeviceSession = Depends(get_session)):
    """Discard the cache so values are read from the device again."""
    return PollResponse(cleared=session.poll())
