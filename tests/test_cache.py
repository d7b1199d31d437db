"""Unit tests for the state cache."""

from unittest.mock import MagicMock

from conftest import DEVICE_NAME, GAIN, LEVEL, MUTE

from dpro_gateway.core.cache import StateCache
from dpro_gateway.core.models import Command
from dpro_gateway.protocol.constants import Action


class TestStateCache:
    """Tests for StateCache class."""

    def test_init_empty(self, catalog):
        """Test cache starts empty."""
        cache = StateCache(catalog)

        assert cache.count == 0
        assert cache.last_update is None
        assert cache.snapshot() == {}

    def test_put_and_get(self, catalog):
        cache = StateCache(catalog)

        assert cache.put(LEVEL, 1, 0, -1350) is True
        assert cache.get(LEVEL, 1, 0) == -1350
        assert (LEVEL, 1, 0) in cache
        assert cache.last_update is not None

    def test_keys_are_independent(self, catalog):
        """Row and column are part of the key."""
        cache = StateCache(catalog)
        cache.put(LEVEL, 0, 0, -1000)
        cache.put(LEVEL, 1, 0, 0)

        assert cache.peek(LEVEL, 0, 0) == -1000
        assert cache.peek(LEVEL, 1, 0) == 0
        assert cache.count == 2

    def test_miss_fetches_and_returns_none(self, catalog):
        """A miss on a readable parameter requests the value."""
        fetch = MagicMock()
        cache = StateCache(catalog, fetch=fetch)

        assert cache.get(GAIN, 1, 0) is None

        fetch.assert_called_once()
        command = fetch.call_args.args[0]
        assert command.action == Action.GET
        assert command.cache_key == (GAIN, 1, 0)

    def test_miss_on_read_only_parameter_fetches(self, catalog):
        fetch = MagicMock()
        cache = StateCache(catalog, fetch=fetch)

        cache.get(DEVICE_NAME)

        fetch.assert_called_once()

    def test_miss_on_unknown_address_does_not_fetch(self, catalog):
        fetch = MagicMock()
        cache = StateCache(catalog, fetch=fetch)

        assert cache.get("IO:Other/Thing") is None
        fetch.assert_not_called()

    def test_peek_does_not_fetch(self, catalog):
        fetch = MagicMock()
        cache = StateCache(catalog, fetch=fetch)

        assert cache.peek(GAIN) is None
        fetch.assert_not_called()

    def test_hit_does_not_fetch(self, catalog):
        fetch = MagicMock()
        cache = StateCache(catalog, fetch=fetch)
        cache.put(GAIN, 0, 0, 10)

        assert cache.get(GAIN) == 10
        fetch.assert_not_called()

    def test_put_notifies_on_change(self, catalog):
        on_change = MagicMock()
        cache = StateCache(catalog, on_change=on_change)

        cache.put(LEVEL, 0, 0, -1350)

        on_change.assert_called_once_with(LEVEL, 0, 0, -1350)

    def test_equal_put_notifies_once(self, catalog):
        """Storing an equal value again raises no second notification."""
        on_change = MagicMock()
        cache = StateCache(catalog, on_change=on_change)

        assert cache.put(LEVEL, 0, 0, -1350) is True
        assert cache.put(LEVEL, 0, 0, -1350) is False

        assert on_change.call_count == 1

    def test_equal_put_uses_parameter_type(self, catalog):
        """A boolean parameter treats 1 and True as the same value."""
        on_change = MagicMock()
        cache = StateCache(catalog, on_change=on_change)

        cache.put(MUTE, 0, 0, True)
        cache.put(MUTE, 0, 0, 1)

        assert on_change.call_count == 1

    def test_changed_put_notifies_again(self, catalog):
        on_change = MagicMock()
        cache = StateCache(catalog, on_change=on_change)

        cache.put(LEVEL, 0, 0, -1350)
        cache.put(LEVEL, 0, 0, -1300)

        assert on_change.call_count == 2
        assert cache.peek(LEVEL) == -1300

    def test_callback_error_is_contained(self, catalog):
        """A failing change callback does not prevent the store."""
        cache = StateCache(catalog, on_change=MagicMock(side_effect=RuntimeError("boom")))

        assert cache.put(GAIN, 0, 0, 10) is True
        assert cache.peek(GAIN) == 10

    def test_put_command(self, catalog):
        cache = StateCache(catalog)

        cache.put_command(Command.set(GAIN, 1, 0, 24))

        assert cache.peek(GAIN, 1, 0) == 24

    def test_clear(self, catalog):
        cache = StateCache(catalog)
        cache.put(GAIN, 0, 0, 10)
        cache.put(GAIN, 1, 0, 20)

        assert cache.clear() == 2
        assert cache.count == 0
        assert cache.last_update is None

    def test_snapshot_is_a_copy(self, catalog):
        cache = StateCache(catalog)
        cache.put(GAIN, 0, 0, 10)

        snapshot = cache.snapshot()
        snapshot[(GAIN, 0, 0)] = 99

        assert cache.peek(GAIN) == 10
