"""Tests for note sequence structures."""

import mido
import pytest

from src.midi_player import Note, Sequence


class TestNote:
    """Test Note validation."""

    def test_valid_note(self):
        """Test a valid note keeps its values."""
        note = Note(pitch=60, velocity=100, duration=1.0, start_beat=2.0, channel=9)
        assert note.pitch == 60
        assert note.channel == 9

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"pitch": 128},
            {"velocity": -1},
            {"channel": 16},
            {"duration": 0},
            {"start_beat": -0.5},
        ],
    )
    def test_invalid_note(self, kwargs):
        """Test out of range values are rejected."""
        params = {"pitch": 60, "velocity": 100, "duration": 1.0}
        params.update(kwargs)
        with pytest.raises(ValueError):
            Note(**params)


class TestSequence:
    """Test Sequence."""

    def test_empty_sequence(self):
        """Test a sequence needs at least one note."""
        with pytest.raises(ValueError):
            Sequence(notes=[])

    def test_invalid_program(self):
        """Test program numbers are validated."""
        with pytest.raises(ValueError):
            Sequence(notes=[Note(60, 100, 1.0)], program=200)

    def test_from_tuple_list(self):
        """Test tuples are laid out back to back."""
        sequence = Sequence.from_tuple_list(
            [(60, 100, 0, 1.0), (62, 90, 0, 0.5), (64, 80, 1, 2.0)], name="riff"
        )
        assert [note.start_beat for note in sequence.notes] == [0.0, 1.0, 1.5]
        assert sequence.total_duration() == 3.5
        assert sequence.name == "riff"

    def test_from_tuple_list_bad_tuple(self):
        """Test tuples must have four elements."""
        with pytest.raises(ValueError):
            Sequence.from_tuple_list([(60, 100, 1.0)])

    def test_to_midi_file(self):
        """Test rendering produces timed note events."""
        sequence = Sequence.from_tuple_list(
            [(60, 100, 0, 1.0), (62, 100, 0, 1.0)], name="riff", program=5
        )
        midi_file = sequence.to_midi_file(bpm=120, tpqn=480)

        assert midi_file.type == 0
        assert midi_file.ticks_per_beat == 480
        track = midi_file.tracks[0]
        assert track[0].type == "track_name"
        assert track[1].tempo == mido.bpm2tempo(120)
        assert track[2].type == "program_change"
        assert track[2].program == 5

        notes = [(m.type, m.note, m.time) for m in track if m.type.startswith("note")]
        assert notes == [
            ("note_on", 60, 0),
            ("note_off", 60, 480),
            ("note_on", 62, 0),
            ("note_off", 62, 480),
        ]
        assert track[-1].type == "end_of_track"

    def test_sequence_tempo_overrides_default(self):
        """Test a sequence's own tempo wins over the default."""
        sequence = Sequence([Note(60, 100, 1.0)], tempo_bpm=90)
        midi_file = sequence.to_midi_file(bpm=120)
        tempos = [m.tempo for m in midi_file.tracks[0] if m.type == "set_tempo"]
        assert tempos == [mido.bpm2tempo(90)]
