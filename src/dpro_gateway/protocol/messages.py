"""Line encoding and decoding for the DPRO remote control protocol.

Outbound lines::

    get <address> <row> <column>
    set <address> <row> <column> <value>
    mtrinfo <address> <row> <column>

Inbound lines::

    <STATUS> get|set <address> <row> <column> <value>
    <STATUS> mtrinfo <address> <row> <value0> <value1> ...
    <STATUS> devstatus|devinfo|scpmode <key> <value>

STATUS is OK, OKm, NOTIFY or ERROR. The line terminator is a transport
concern and is not part of the encoded text.
"""

import logging
import shlex

from dpro_gateway.core.models import Command, SetMode
from dpro_gateway.protocol.catalog import ParameterCatalog
from dpro_gateway.protocol.constants import (
    INFO_ACTIONS,
    METER_ACTION,
    REPLY_STATUS_ALIASES,
    Action,
    ReplyStatus,
)

logger = logging.getLogger(__name__)


def encode(command: Command, catalog: ParameterCatalog) -> str:
    """
    Encode a command as a wire line (without terminator).

    Args:
        command: Command to encode. Set commands must carry an absolute value.
        catalog: Parameter catalog used for value formatting.

    Returns:
        Encoded line

    Raises:
        ValueError: If a set cannot be encoded (unknown address, missing or
            unresolved value)

    Example:
        >>> encode(Command.get("IO:Current/InCh/Fader/On", 1, 0), catalog)
        'get IO:Current/InCh/Fader/On 1 0'
    """
    entry = catalog.entry(command.address)
    index = f"{command.address} {command.row} {command.column}"

    if command.is_get:
        keyword = METER_ACTION if entry is not None and entry.spec.meter else Action.GET.value
        return f"{keyword} {index}"

    if entry is None:
        raise ValueError(f"Cannot encode set for unknown parameter: {command.address}")
    if command.mode != SetMode.ABSOLUTE:
        raise ValueError(f"Set value for {command.address} is not resolved ({command.mode.value})")
    if command.value is None:
        raise ValueError(f"Set command for {command.address} has no value")

    return f"{Action.SET.value} {index} {entry.encode(command.value)}"


def _tokenize(line: str) -> list[str] | None:
    try:
        return shlex.split(line)
    except ValueError as e:
        logger.debug("Unparseable line %r: %s", line, e)
        return None


def _parse_index(token: str) -> int:
    index = int(token)
    if index < 0:
        raise ValueError(f"Negative index: {index}")
    return index


def decode(line: str, catalog: ParameterCatalog) -> list[Command]:
    """
    Decode a received line into zero or more commands.

    Meter replies carry every column of a row and are split into one get
    command per column. Malformed, unknown or non-parameter lines decode to
    an empty list; this function never raises.

    Args:
        line: Received line without terminator
        catalog: Parameter catalog used for value parsing

    Returns:
        Decoded commands

    Example:
        >>> decode("NOTIFY set IO:Current/InCh/Fader/Level 0 0 -13.50", catalog)
        [Command(action=<Action.SET: 'set'>, ..., value=-1350, status=<ReplyStatus.NOTIFY: 'NOTIFY'>, ...)]
    """
    tokens = _tokenize(line)
    if tokens is None or len(tokens) < 3:
        if tokens:
            logger.debug("Ignoring short line: %r", line)
        return []

    status = REPLY_STATUS_ALIASES.get(tokens[0])
    if status is None:
        logger.debug("Ignoring line with unknown status %r: %r", tokens[0], line)
        return []

    action_token, address = tokens[1], tokens[2]
    try:
        if action_token == METER_ACTION:
            return _decode_meter(status, address, tokens[3:], catalog, line)

        try:
            action = Action(action_token)
        except ValueError:
            if action_token not in INFO_ACTIONS:
                logger.debug("Ignoring unrecognized action %r: %r", action_token, line)
            return []

        if status == ReplyStatus.ERROR:
            row = _parse_index(tokens[3]) if len(tokens) > 3 and tokens[3].isdigit() else 0
            column = _parse_index(tokens[4]) if len(tokens) > 4 and tokens[4].isdigit() else 0
            return [Command(action=action, address=address, row=row, column=column, status=status)]

        if len(tokens) < 6:
            logger.debug("Ignoring truncated reply: %r", line)
            return []

        entry = catalog.entry(address)
        if entry is None:
            logger.debug("Ignoring reply for unknown parameter %s", address)
            return []

        row = _parse_index(tokens[3])
        column = _parse_index(tokens[4])
        value = entry.decode(tokens[5])
        return [Command(action=action, address=address, row=row, column=column, value=value, status=status)]

    except ValueError as e:
        logger.debug("Dropping malformed line %r: %s", line, e)
        return []


def _decode_meter(
    status: ReplyStatus,
    address: str,
    args: list[str],
    catalog: ParameterCatalog,
    line: str,
) -> list[Command]:
    entry = catalog.entry(address)
    if entry is None:
        logger.debug("Ignoring meter reply for unknown parameter %s", address)
        return []
    if not args:
        logger.debug("Ignoring meter reply without row: %r", line)
        return []

    row = _parse_index(args[0])
    if status == ReplyStatus.ERROR:
        return [Command(action=Action.GET, address=address, row=row, status=status)]

    return [
        Command(action=Action.GET, address=address, row=row, column=column, value=entry.decode(token), status=status)
        for column, token in enumerate(args[1:])
    ]


def decode_info(line: str) -> tuple[str, str, str] | None:
    """
    Decode a device status/info reply.

    Returns:
        Tuple of (action, key, value), or None if the line is not an info reply

    Example:
        >>> decode_info('OK devstatus runmode "normal"')
        ('devstatus', 'runmode', 'normal')
    """
    tokens = _tokenize(line)
    if not tokens or len(tokens) < 3:
        return None
    if tokens[0] not in REPLY_STATUS_ALIASES or tokens[1] not in INFO_ACTIONS:
        return None
    return tokens[1], tokens[2], " ".join(tokens[3:])
