"""MIDI playback into the port sapf listens on."""

import os
import threading
import time
from typing import Union

import mido

from ..logging_config import get_logger

# Get logger for this module
logger = get_logger(__name__)


def open_virtual_output(name: str):
    """Create a virtual MIDI output port other applications can connect to.

    Args:
        name: Port name as it will appear in sapf's device list

    Returns:
        An open mido output port
    """
    logger.debug(f"Creating virtual MIDI output: {name}")
    port = mido.open_output(name, virtual=True)
    logger.info(f"Virtual MIDI output '{name}' created")
    return port


def load_midi_file(path: Union[str, os.PathLike]) -> mido.MidiFile:
    """Load a standard MIDI file.

    Args:
        path: Path of the .mid file

    Returns:
        Decoded MIDI file

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file is not valid MIDI
    """
    if not os.path.exists(path):
        raise FileNotFoundError(f"MIDI file {path} doesn't exist")
    try:
        return mido.MidiFile(path)
    except (OSError, EOFError, KeyError) as e:
        raise ValueError(f"Cannot read MIDI file {path}: {e}") from e


class MidiPlayer:
    """Plays decoded MIDI sequences to an output port in real time."""

    def __init__(self, port):
        """Initialize the player.

        Args:
            port: Open mido output port
        """
        self.port = port
        self._stop_event = threading.Event()
        self.is_playing = False
        logger.debug(f"MidiPlayer initialized on port {getattr(port, 'name', port)}")

    def play(self, midi_file: mido.MidiFile) -> int:
        """Play a MIDI file, blocking until it ends or stop() is called.

        Iterating a MidiFile yields messages with their delta time in
        seconds, following the file's own tempo map. Each message is sent
        at its offset from the start of playback, so waiting never drifts.

        Args:
            midi_file: Sequence to play

        Returns:
            Number of channel messages sent
        """
        if self.port is None:
            raise RuntimeError("No MIDI output port to play to")

        logger.info(
            f"Playing {midi_file.filename or 'sequence'} "
            f"({len(midi_file.tracks)} tracks, {midi_file.ticks_per_beat} tpqn)"
        )
        self._stop_event.clear()
        self.is_playing = True
        sent = 0
        start = time.monotonic()
        offset = 0.0
        try:
            for message in midi_file:
                offset += message.time
                delay = start + offset - time.monotonic()
                # Event.wait returns True as soon as stop() is called
                if delay > 0 and self._stop_event.wait(delay):
                    break
                if self._stop_event.is_set():
                    break
                if message.is_meta:
                    continue
                self.port.send(message)
                sent += 1
        finally:
            self.is_playing = False
            if self._stop_event.is_set():
                logger.info("Playback stopped")
                self.all_notes_off()

        logger.debug(f"Playback finished after {sent} messages")
        return sent

    def stop(self) -> None:
        """Interrupt a running play() call, including during a rest."""
        self._stop_event.set()

    def all_notes_off(self) -> None:
        """Send all notes off on every channel."""
        if self.port is None:
            logger.warning("Cannot send all notes off: no MIDI port")
            return
        for channel in range(16):
            self.port.send(
                mido.Message("control_change", control=123, value=0, channel=channel)
            )
        logger.debug("Sent all notes off on all channels")

    def close(self) -> None:
        """Close the output port."""
        if self.port is not None:
            self.port.close()
            self.port = None
            logger.info("MIDI port closed")
