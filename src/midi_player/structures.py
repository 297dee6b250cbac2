"""Data structures for building note sequences to play through sapf."""

from dataclasses import dataclass
from typing import List, Optional

import mido


@dataclass
class Note:
    """Represents a musical note with timing and expression."""

    pitch: int  # MIDI note number (0-127)
    velocity: int  # Note velocity (0-127)
    duration: float  # Duration in beats
    start_beat: float = 0.0  # Starting beat position
    channel: int = 0  # MIDI channel (0-15)

    def __post_init__(self):
        """Validate note parameters."""
        if not (0 <= self.pitch <= 127):
            raise ValueError(f"Pitch must be 0-127, got {self.pitch}")
        if not (0 <= self.velocity <= 127):
            raise ValueError(f"Velocity must be 0-127, got {self.velocity}")
        if not (0 <= self.channel <= 15):
            raise ValueError(f"Channel must be 0-15, got {self.channel}")
        if self.duration <= 0:
            raise ValueError(f"Duration must be positive, got {self.duration}")
        if self.start_beat < 0:
            raise ValueError(f"Start beat must be non-negative, got {self.start_beat}")


@dataclass
class Sequence:
    """Represents a musical sequence."""

    notes: List[Note]
    tempo_bpm: Optional[float] = None  # Override the default tempo
    name: Optional[str] = None
    program: Optional[int] = None  # General MIDI program number

    def __post_init__(self):
        """Validate sequence parameters."""
        if not self.notes:
            raise ValueError("Sequence must contain at least one note")
        if self.tempo_bpm is not None and self.tempo_bpm <= 0:
            raise ValueError(f"Tempo must be positive, got {self.tempo_bpm}")
        if self.program is not None and not (0 <= self.program <= 127):
            raise ValueError(f"Program must be 0-127, got {self.program}")

    def total_duration(self) -> float:
        """Calculate the total duration of the sequence in beats.

        Returns:
            Total duration in beats.
        """
        return max(note.start_beat + note.duration for note in self.notes)

    @classmethod
    def from_tuple_list(cls, tuples: List[tuple], **kwargs) -> "Sequence":
        """Create a back-to-back Sequence from a list of tuples.

        Args:
            tuples: List of (pitch, velocity, channel, duration) tuples.
            **kwargs: Additional sequence parameters.

        Returns:
            Sequence object.
        """
        notes = []
        current_beat = 0.0

        for tuple_data in tuples:
            if len(tuple_data) != 4:
                raise ValueError(f"Tuple must have 4 elements, got {len(tuple_data)}")
            pitch, velocity, channel, duration = tuple_data

            notes.append(
                Note(
                    pitch=pitch,
                    velocity=velocity,
                    duration=duration,
                    start_beat=current_beat,
                    channel=channel,
                )
            )
            current_beat += duration

        return cls(notes=notes, **kwargs)

    def to_midi_file(self, bpm: float = 100.0, tpqn: int = 960) -> mido.MidiFile:
        """Render the sequence as a single-track MIDI file.

        Args:
            bpm: Tempo used when the sequence does not override it.
            tpqn: Ticks per quarter note.

        Returns:
            A mido MidiFile ready to be played.
        """
        tempo_bpm = self.tempo_bpm or bpm
        midi_file = mido.MidiFile(type=0, ticks_per_beat=tpqn)
        track = mido.MidiTrack()
        midi_file.tracks.append(track)

        if self.name:
            track.append(mido.MetaMessage("track_name", name=self.name, time=0))
        track.append(
            mido.MetaMessage("set_tempo", tempo=mido.bpm2tempo(tempo_bpm), time=0)
        )
        if self.program is not None:
            for channel in sorted({note.channel for note in self.notes}):
                track.append(
                    mido.Message(
                        "program_change", program=self.program, channel=channel, time=0
                    )
                )

        # (absolute tick, order, message); note_off sorts before note_on on a tie
        events = []
        for note in self.notes:
            start = round(note.start_beat * tpqn)
            end = round((note.start_beat + note.duration) * tpqn)
            events.append(
                (
                    start,
                    1,
                    mido.Message(
                        "note_on",
                        note=note.pitch,
                        velocity=note.velocity,
                        channel=note.channel,
                    ),
                )
            )
            events.append(
                (
                    end,
                    0,
                    mido.Message(
                        "note_off", note=note.pitch, velocity=0, channel=note.channel
                    ),
                )
            )
        events.sort(key=lambda event: (event[0], event[1]))

        last_tick = 0
        for tick, _, message in events:
            track.append(message.copy(time=tick - last_tick))
            last_tick = tick
        track.append(mido.MetaMessage("end_of_track", time=0))

        return midi_file
