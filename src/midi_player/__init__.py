"""MIDI playback into sapf's virtual input."""

from .player import MidiPlayer, load_midi_file, open_virtual_output
from .structures import Note, Sequence

__all__ = [
    "MidiPlayer",
    "Note",
    "Sequence",
    "load_midi_file",
    "open_virtual_output",
]
