"""Unit tests for protocol line encoding and decoding."""

import pytest

from conftest import DEVICE_NAME, GAIN, LEVEL, METER, MUTE, NAME

from dpro_gateway.core.models import Command, SetMode
from dpro_gateway.protocol.constants import NEG_INF, Action, ReplyStatus
from dpro_gateway.protocol.messages import decode, decode_info, encode


class TestEncode:
    """Tests for encode()."""

    def test_get(self, catalog):
        """Get requests carry address, row and column."""
        assert encode(Command.get(MUTE, 1, 0), catalog) == f"get {MUTE} 1 0"

    def test_get_meter(self, catalog):
        """Meter parameters are read with mtrinfo."""
        assert encode(Command.get(METER, 0, 1), catalog) == f"mtrinfo {METER} 0 1"

    def test_get_unknown_address(self, catalog):
        """Gets for addresses outside the catalog are still encodable."""
        assert encode(Command.get("IO:Other/Thing"), catalog) == "get IO:Other/Thing 0 0"

    def test_set_scaled(self, catalog):
        line = encode(Command.set(LEVEL, 0, 0, -1350), catalog)
        assert line == f"set {LEVEL} 0 0 -13.50"

    def test_set_neg_inf(self, catalog):
        line = encode(Command.set(LEVEL, 1, 0, NEG_INF), catalog)
        assert line == f"set {LEVEL} 1 0 -32768"

    def test_set_bool(self, catalog):
        assert encode(Command.set(MUTE, 0, 0, True), catalog) == f"set {MUTE} 0 0 1"

    def test_set_string(self, catalog):
        line = encode(Command.set(NAME, 1, 0, "Kick In"), catalog)
        assert line == f'set {NAME} 1 0 "Kick In"'

    def test_set_unknown_address(self, catalog):
        with pytest.raises(ValueError, match="unknown parameter"):
            encode(Command.set("IO:Other/Thing", 0, 0, 1), catalog)

    def test_set_unresolved_mode(self, catalog):
        """Relative and toggle sets must be resolved before encoding."""
        with pytest.raises(ValueError, match="not resolved"):
            encode(Command.set(GAIN, 0, 0, 3, mode=SetMode.RELATIVE), catalog)

    def test_set_without_value(self, catalog):
        with pytest.raises(ValueError, match="no value"):
            encode(Command.set(GAIN, 0, 0), catalog)


class TestDecode:
    """Tests for decode()."""

    def test_notify_set(self, catalog):
        """Unsolicited change notifications decode to set commands."""
        commands = decode(f"NOTIFY set {LEVEL} 0 0 -13.50", catalog)

        assert len(commands) == 1
        command = commands[0]
        assert command.action == Action.SET
        assert command.address == LEVEL
        assert command.row == 0
        assert command.column == 0
        assert command.value == -1350
        assert command.status == ReplyStatus.NOTIFY

    def test_ok_get(self, catalog):
        commands = decode(f"OK get {GAIN} 1 0 24", catalog)

        assert len(commands) == 1
        assert commands[0].action == Action.GET
        assert commands[0].row == 1
        assert commands[0].value == 24
        assert commands[0].status == ReplyStatus.OK

    def test_okm_is_ok(self, catalog):
        commands = decode(f"OKm get {GAIN} 0 0 10", catalog)
        assert commands[0].status == ReplyStatus.OK

    def test_quoted_string(self, catalog):
        """Quoted values may contain spaces."""
        commands = decode(f'OK get {NAME} 0 0 "Lead Vox"', catalog)
        assert commands[0].value == "Lead Vox"

    def test_quoted_string_with_escaped_quote(self, catalog):
        commands = decode(f'OK get {NAME} 0 0 "Say \\"hi\\""', catalog)
        assert commands[0].value == 'Say "hi"'

    def test_neg_inf(self, catalog):
        commands = decode(f"NOTIFY set {LEVEL} 1 0 -32768", catalog)
        assert commands[0].value == NEG_INF

    def test_meter_row_splits_into_columns(self, catalog):
        """A meter reply yields one command per column."""
        commands = decode(f"OK mtrinfo {METER} 1 12 40", catalog)

        assert [(c.row, c.column, c.value) for c in commands] == [(1, 0, 12), (1, 1, 40)]
        assert all(c.action == Action.GET for c in commands)

    def test_error_reply(self, catalog):
        """Rejected requests decode with ERROR status and no value."""
        commands = decode(f"ERROR set {GAIN} 1 0 99", catalog)

        assert len(commands) == 1
        assert commands[0].status == ReplyStatus.ERROR
        assert commands[0].row == 1
        assert commands[0].value is None

    def test_error_reply_without_index(self, catalog):
        commands = decode(f"ERROR get {GAIN}", catalog)
        assert commands[0].row == 0
        assert commands[0].column == 0

    @pytest.mark.parametrize(
        "line",
        [
            "",
            "hello",
            f"OK get {GAIN}",
            f"OK get {GAIN} 0 0",
            f"BUSY get {GAIN} 0 0 1",
            f"OK fetch {GAIN} 0 0 1",
            "OK get IO:Other/Thing 0 0 1",
            f"OK set {MUTE} 0 0 maybe",
            f"OK set {GAIN} x 0 1",
            f'OK get {NAME} 0 0 "unterminated',
        ],
    )
    def test_malformed_lines_dropped(self, catalog, line):
        """Lines that cannot be decoded yield no commands."""
        assert decode(line, catalog) == []

    def test_info_lines_yield_no_commands(self, catalog):
        assert decode('OK devstatus runmode "normal"', catalog) == []
        assert decode("OK scpmode keepalive 20000", catalog) == []

    def test_encoded_set_decodes_to_same_value(self, catalog):
        """A set echoed back by the device decodes to the value that was sent."""
        for value in (NEG_INF, -1350, 0, 1000):
            line = encode(Command.set(LEVEL, 0, 0, value), catalog)
            commands = decode(f"OK {line}", catalog)
            assert commands[0].value == value

    def test_read_only_string(self, catalog):
        commands = decode(f'OK get {DEVICE_NAME} 0 0 "NA2-IO-DPRO"', catalog)
        assert commands[0].value == "NA2-IO-DPRO"


class TestDecodeInfo:
    """Tests for decode_info()."""

    def test_devstatus(self):
        assert decode_info('OK devstatus runmode "normal"') == ("devstatus", "runmode", "normal")

    def test_scpmode(self):
        assert decode_info("OK scpmode keepalive 20000") == ("scpmode", "keepalive", "20000")

    def test_parameter_reply_is_not_info(self):
        assert decode_info(f"NOTIFY set {GAIN} 0 0 1") is None

    def test_empty(self):
        assert decode_info("") is None
