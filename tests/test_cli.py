"""Tests for the interactive command dispatcher."""

import pytest
from click.testing import CliRunner

from src.sapf_cli import handle_command, main
from src.sapf_server import DeviceRecord


class MockServer:
    """Records the calls the CLI makes on a session."""

    def __init__(self):
        self.calls = []

    def submit(self, command):
        self.calls.append(("submit", command))

    def midi_start(self):
        self.calls.append(("midi_start",))

        class Result:
            devices = {"sapf": DeviceRecord(uid=42, dev=1)}

        return Result()

    def connect_input(self, device):
        self.calls.append(("connect_input", device))

    def play(self, path):
        self.calls.append(("play", path))
        return 12

    def get_devices(self):
        return {"sapf": DeviceRecord(uid=42, dev=1)}

    def quit(self):
        self.calls.append(("quit",))
        return 0


class TestHandleCommand:
    """Test handle_command."""

    def setup_method(self):
        """Set up test fixtures."""
        self.server = MockServer()

    def test_passthrough(self):
        """Test unknown commands are sent to sapf verbatim."""
        assert handle_command(self.server, "60 nnhz 0 sinosc 0.2 * play") is None
        assert self.server.calls == [("submit", "60 nnhz 0 sinosc 0.2 * play")]

    def test_midi_start(self):
        """Test midi_start starts enumeration."""
        handle_command(self.server, "midi_start")
        assert self.server.calls == [("midi_start",)]

    def test_connect_input_default_device(self):
        """Test the sapf device is connected when none is named."""
        handle_command(self.server, "midi_connect_input")
        handle_command(self.server, "midi_connect_input IAC")
        assert self.server.calls == [
            ("connect_input", "sapf"),
            ("connect_input", "IAC"),
        ]

    def test_play_quoted_path(self):
        """Test file paths with spaces can be quoted."""
        handle_command(self.server, "play_midi_file '/tmp/my song.mid'")
        assert self.server.calls == [("play", "/tmp/my song.mid")]

    def test_play_usage(self):
        """Test play_midi_file needs exactly one path."""
        handle_command(self.server, "play_midi_file")
        assert self.server.calls == []

    def test_devices_and_help(self):
        """Test local commands do not reach sapf."""
        handle_command(self.server, "devices")
        handle_command(self.server, "help")
        assert self.server.calls == []

    def test_quit(self):
        """Test quit shuts the session down and exits."""
        assert handle_command(self.server, "quit") is True
        assert self.server.calls == [("quit",)]


class TestMain:
    """Test command line option handling."""

    def setup_method(self):
        """Set up test fixtures."""
        self.runner = CliRunner()

    @pytest.mark.parametrize("value", ["0", "-5"])
    def test_rejects_non_positive_quiescence(self, value):
        """Test a quiescence window must be positive."""
        result = self.runner.invoke(main, [f"--quiescence-ms={value}"])
        assert result.exit_code == 2
        assert "--quiescence-ms" in result.output
