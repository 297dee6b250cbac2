"""Tests for synth program templates."""

import pytest

from src.sapf_server.device_table import DeviceRecord
from src.sapf_server.errors import SynthProgramError
from src.sapf_server.synth_loader import render_synth_program, render_synth_text

DEVICE = DeviceRecord(uid=-1198431231, dev=3)


class TestRenderSynthText:
    """Test render_synth_text."""

    def test_substitutes_identifiers(self):
        """Test $uid and $dev are bound to the device."""
        lines = render_synth_text("$uid $dev midiConnectInput", DEVICE)
        assert lines == ["-1198431231 3 midiConnectInput"]

    def test_drops_blank_lines_and_strips(self):
        """Test blank lines are dropped and surrounding space removed."""
        text = "\n  1 mlastkey nnhz 0 sinosc  \n\n\t0.2 * play\n"
        assert render_synth_text(text, DEVICE) == [
            "1 mlastkey nnhz 0 sinosc",
            "0.2 * play",
        ]

    def test_unknown_placeholders_are_kept(self):
        """Test placeholders other than $uid and $dev are left alone."""
        assert render_synth_text("$other $dev", DEVICE) == ["$other 3"]


class TestRenderSynthProgram:
    """Test render_synth_program."""

    def test_reads_file(self, tmp_path):
        """Test a program file is read and rendered."""
        path = tmp_path / "synth.sapf"
        path.write_text("$uid $dev midiConnectInput\n\\f = 1\n")
        assert render_synth_program(path, DEVICE) == [
            "-1198431231 3 midiConnectInput",
            "\\f = 1",
        ]

    def test_missing_file(self, tmp_path):
        """Test a missing file raises SynthProgramError."""
        with pytest.raises(SynthProgramError, match="doesn't exist"):
            render_synth_program(tmp_path / "missing.sapf", DEVICE)
