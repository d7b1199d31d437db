"""Read-through state cache for the DPRO gateway."""

import logging
from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING, Any

from dpro_gateway.core.models import CacheKey, Command

if TYPE_CHECKING:
    from dpro_gateway.protocol.catalog import ParameterCatalog

logger = logging.getLogger(__name__)

FetchCallback = Callable[[Command], None]
ChangeCallback = Callable[[str, int, int, Any], None]


class StateCache:
    """Last-known device values keyed by (address, row, column).

    A miss on a readable parameter schedules a get request through the fetch
    callback and returns None straight away; callers treat None as "pending,
    look again later". Only ``put`` raises change notifications, and only
    when the value actually differs.

    All methods are synchronous and must be called from the event loop that
    owns the session, which serialises every mutation.
    """

    def __init__(
        self,
        catalog: "ParameterCatalog",
        fetch: FetchCallback | None = None,
        on_change: ChangeCallback | None = None,
    ) -> None:
        self._catalog = catalog
        self._fetch = fetch
        self._on_change = on_change
        self._values: dict[CacheKey, Any] = {}
        self._last_update: datetime | None = None

    def peek(self, address: str, row: int = 0, column: int = 0) -> Any:
        """Get a cached value without fetching on a miss."""
        return self._values.get((address, row, column))

    def get(self, address: str, row: int = 0, column: int = 0) -> Any:
        """Get a cached value, requesting it from the device on a miss."""
        key = (address, row, column)
        if key in self._values:
            return self._values[key]

        if self._fetch is not None and self._catalog.is_readable(address):
            logger.debug("Cache miss for %s %d %d, requesting", address, row, column)
            self._fetch(Command.get(address, row, column))
        return None

    def put(self, address: str, row: int, column: int, value: Any) -> bool:
        """Store a value.

        Returns:
            True if the value changed and a notification was raised.
        """
        key = (address, row, column)
        if key in self._values and self._catalog.values_equal(address, self._values[key], value):
            return False

        self._values[key] = value
        self._last_update = datetime.now()
        if self._on_change is not None:
            try:
                self._on_change(address, row, column, value)
            except Exception as e:
                logger.error("Change callback failed for %s: %s", address, e)
        return True

    def put_command(self, command: Command) -> bool:
        """Store the value carried by a command."""
        return self.put(command.address, command.row, command.column, command.value)

    def snapshot(self) -> dict[CacheKey, Any]:
        """Get a copy of all cached values."""
        return dict(self._values)

    def clear(self) -> int:
        """Remove all cached values. Returns the number removed."""
        count = len(self._values)
        self._values.clear()
        self._last_update = None
        return count

    def __contains__(self, key: object) -> bool:
        return key in self._values

    @property
    def last_update(self) -> datetime | None:
        """Get timestamp of last cache update."""
        return self._last_update

    @property
    def count(self) -> int:
        """Get number of cached values."""
        return len(self._values)
