"""Outbound command queue with deduplication and get/set reconciliation."""

import logging
from collections import deque
from collections.abc import Callable
from typing import Any

from dpro_gateway.core.models import Command, SetMode
from dpro_gateway.protocol.catalog import ParameterCatalog
from dpro_gateway.protocol.constants import MAX_DEFERRALS, Action

logger = logging.getLogger(__name__)

DedupKey = tuple[Action, str, int, int | None]

# Returns the absolute value to send for a set, or None if not yet computable
ValueResolver = Callable[[Command], Any]


class PendingCommand:
    """Queue slot holding a command and how often it has been deferred."""

    def __init__(self, command: Command, key: DedupKey):
        self.command = command
        self.key = key
        self.deferrals = 0

    def __repr__(self) -> str:
        return f"PendingCommand({self.command}, deferrals={self.deferrals})"


class CommandQueue:
    """Ordered queue of commands awaiting transmission.

    A command whose dedup key is already queued replaces the queued command
    in place, so rapid input on one parameter (a fader being dragged) grows
    the queue by distinct parameters rather than by events. The key is
    (action, address, row, column), or (action, address, row) for meter
    parameters whose replies carry every column of a row.

    The queue does no I/O and never awaits; the session drains it one entry
    per tick.
    """

    def __init__(self, catalog: ParameterCatalog, max_deferrals: int = MAX_DEFERRALS):
        self._catalog = catalog
        self._max_deferrals = max_deferrals
        self._entries: deque[PendingCommand] = deque()
        self._stats = {
            "enqueued": 0,
            "replaced": 0,
            "reconciled": 0,
            "deferred": 0,
            "expired": 0,
            "drained": 0,
        }

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        return bool(self._entries)

    @property
    def stats(self) -> dict:
        return self._stats.copy()

    def pending(self) -> list[Command]:
        """Snapshot of queued commands, head first."""
        return [entry.command for entry in self._entries]

    def dedup_key(self, command: Command) -> DedupKey:
        if self._catalog.is_meter(command.address):
            return (command.action, command.address, command.row, None)
        return (command.action, command.address, command.row, command.column)

    def enqueue(self, command: Command) -> None:
        """Add a command, replacing a queued command with the same key."""
        key = self.dedup_key(command)
        for entry in self._entries:
            if entry.key == key:
                entry.command = command
                entry.deferrals = 0
                self._stats["replaced"] += 1
                logger.debug("Replaced queued command: %s", command)
                return

        self._entries.append(PendingCommand(command, key))
        self._stats["enqueued"] += 1
        logger.debug("Queued command: %s (queue length %d)", command, len(self._entries))

    def reconcile(self, inbound: Command) -> bool:
        """Remove the oldest queued get satisfied by an inbound reply.

        Meter replies cover a whole row, so any queued get for that row
        matches regardless of column.

        Returns:
            True if a queued get was removed.
        """
        meter = self._catalog.is_meter(inbound.address)
        for entry in self._entries:
            queued = entry.command
            if (
                queued.action == Action.GET
                and queued.address == inbound.address
                and queued.row == inbound.row
                and (meter or queued.column == inbound.column)
            ):
                self._entries.remove(entry)
                self._stats["reconciled"] += 1
                logger.debug("Reply satisfied queued request: %s", queued)
                return True
        return False

    def drain_once(self, resolve: ValueResolver) -> Command | None:
        """Take the head command for transmission.

        A set whose value cannot be resolved yet is moved to the tail so it
        does not block other traffic; after ``max_deferrals`` attempts it is
        dropped.

        Args:
            resolve: Computes the absolute value of a set, or None if the
                value depends on state that is not cached yet.

        Returns:
            The command to transmit (sets carry their resolved absolute
            value), or None if nothing should be sent this tick.
        """
        if not self._entries:
            return None

        entry = self._entries.popleft()
        command = entry.command

        if command.action == Action.SET:
            value = resolve(command)
            if value is None:
                entry.deferrals += 1
                if entry.deferrals > self._max_deferrals:
                    self._stats["expired"] += 1
                    logger.warning(
                        "Dropping %s: value still unresolved after %d attempts", command, self._max_deferrals
                    )
                    return None
                self._stats["deferred"] += 1
                self._entries.append(entry)
                return None
            command = command.model_copy(update={"value": value, "mode": SetMode.ABSOLUTE})

        self._stats["drained"] += 1
        return command

    def clear(self) -> int:
        """Remove all queued commands. Returns the number removed."""
        count = len(self._entries)
        self._entries.clear()
        return count
