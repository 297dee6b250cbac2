"""Session facade around a running sapf interpreter.

Example use::

    with SAPFServer() as sapf:
        sapf.midi_start()
        sapf.connect_input()
        sapf.play("song.mid", synth_file="sapf_snippets.sapf")

Any sapf command can be sent directly::

    sapf.submit("5 4 *")                      # prints 20
    sapf.submit("60 nnhz 0 sinosc 0.2 * play")
    sapf.stop()                               # stops the sine wave
    sapf.quit()                               # shuts down sapf

All state changes happen on one session thread that consumes a queue of
events: caller submissions, output lines from the reader thread, quiescence
timer firings and process exit. Callers on any thread may submit commands
concurrently; they are written to sapf one at a time, each only after the
previous response has been framed.
"""

import os
import queue
import threading
import time
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, Callable, Optional, Union

import mido

from ..config import MIDIConfig, SessionConfig, get_config, get_session_config
from ..logging_config import OUTPUT_LOGGER_NAME, get_logger
from ..midi_player import MidiPlayer, Sequence, load_midi_file, open_virtual_output
from .aggregator import ResponseAggregator
from .correlator import CommandCorrelator, CorrelatorState
from .device_table import DEFAULT_LAYOUT, DeviceRecord, DeviceTable, DeviceTableLayout
from .errors import (
    CommandTimeoutError,
    SAPFError,
    SessionStoppedError,
    SpawnError,
    UnknownDeviceError,
)
from .events import (
    NO_WAITER,
    CommandResult,
    LineReceived,
    ProcessExited,
    QuiescenceElapsed,
    SessionEvent,
    Shutdown,
    SubmitCommand,
    Waiter,
)
from .process import ProcessSession
from .synth_loader import render_synth_program

logger = get_logger(__name__)

PlaySource = Union[str, os.PathLike, mido.MidiFile, Sequence]


def _log_output(line: str) -> None:
    get_logger(OUTPUT_LOGGER_NAME).info(line)


class SAPFServer:
    """One session owning one sapf process."""

    def __init__(
        self,
        config: Optional[SessionConfig] = None,
        output: Optional[Callable[[str], None]] = None,
        process_factory: Callable[[list], ProcessSession] = ProcessSession,
        port_factory: Callable[[str], Any] = open_virtual_output,
        player_factory: Callable[[Any], MidiPlayer] = MidiPlayer,
        midi_config: Optional[MIDIConfig] = None,
        layout: DeviceTableLayout = DEFAULT_LAYOUT,
    ):
        """Initialize the session without starting sapf.

        Args:
            config: Process and protocol settings, defaults to the global config
            output: Receives sapf's response lines, defaults to the output logger
            process_factory: Builds the process session from a command line
            port_factory: Creates the virtual MIDI output sapf listens to
            player_factory: Builds the playback collaborator for a port
            midi_config: Playback defaults, defaults to the global config
            layout: Field positions of sapf's device enumeration lines
        """
        self.config = config or get_session_config()
        self.midi_config = midi_config or get_config().midi
        self._process_factory = process_factory
        self._port_factory = port_factory
        self._player_factory = player_factory

        self._events: "queue.Queue[SessionEvent]" = queue.Queue()
        self._process: Optional[ProcessSession] = None
        self._actor: Optional[threading.Thread] = None
        self._player: Optional[MidiPlayer] = None
        self._owned_port = None

        # Guards the closed flag so no submission is queued after Shutdown
        self._lifecycle_lock = threading.Lock()
        self._closed = False

        aggregator = ResponseAggregator(
            window=self.config.quiescence_window,
            schedule=self._schedule_quiescence,
            prompt_marker=self.config.prompt_marker,
        )
        self._correlator = CommandCorrelator(
            send=self._send,
            aggregator=aggregator,
            output=output or _log_output,
            enumeration_command=self.config.enumeration_command,
            layout=layout,
        )

    @property
    def state(self) -> CorrelatorState:
        """Get the session's lifecycle state."""
        return self._correlator.state

    @property
    def is_running(self) -> bool:
        """Check whether the session accepts commands."""
        return (
            self._actor is not None
            and not self._closed
            and self._correlator.state is not CorrelatorState.STOPPED
        )

    @property
    def devices(self) -> DeviceTable:
        """Get an immutable snapshot of the device table."""
        return self._correlator.devices

    @property
    def output_port(self) -> Any:
        """Get the MIDI output port registered by the last midi_start()."""
        return self._correlator.output_port

    def start(self) -> "SAPFServer":
        """Spawn sapf and start the session thread.

        Returns:
            This session, for chaining

        Raises:
            SpawnError: If sapf could not be started
        """
        if self._actor is not None or self._closed:
            raise SpawnError("Session already started")

        process = self._process_factory(self.config.command)
        process.start()
        self._process = process

        self._actor = threading.Thread(
            target=self._run, name="sapf-session", daemon=True
        )
        self._actor.start()
        process.watch(
            on_line=lambda line: self._post(LineReceived(line)),
            on_exit=lambda returncode: self._post(ProcessExited(returncode)),
        )
        logger.info("sapf session started")
        return self

    def submit(
        self,
        command: str,
        parameter: Any = None,
        await_completion: bool = False,
        timeout: Optional[float] = None,
    ) -> Optional[CommandResult]:
        """Send a command to sapf.

        Blocks until the command has been written, which waits for any
        command already in flight to complete first.

        Args:
            command: sapf command line
            parameter: Value carried with the command until it completes
            await_completion: Also wait until the response has been framed
            timeout: Seconds the whole call may take when awaiting
                completion, including time queued behind other commands.
                Defaults to the configured await timeout

        Returns:
            The command result when awaiting completion, otherwise None

        Raises:
            CommandTimeoutError: If completion was not observed in time. The
                command may still be written and complete later.
            SessionStoppedError: If the session stopped before completion
            DeviceTableParseError: If an enumeration response was malformed
        """
        target = Waiter() if await_completion else NO_WAITER
        request = self._enqueue(command, parameter, target)

        if not await_completion:
            request.dispatched.result()
            return None

        timeout = self.config.await_timeout if timeout is None else timeout
        deadline = time.monotonic() + timeout
        try:
            request.dispatched.result(timeout=timeout)
            return target.future.result(
                timeout=max(0.0, deadline - time.monotonic())
            )
        except FutureTimeoutError:
            if target.future.cancel():
                raise CommandTimeoutError(command, timeout) from None
            # Completed between the timeout and the cancel
            return target.future.result()

    def submit_async(self, command: str, parameter: Any = None) -> Future:
        """Send a command without blocking.

        Args:
            command: sapf command line
            parameter: Value carried with the command until it completes

        Returns:
            Future resolved with the CommandResult once the response is framed
        """
        target = Waiter()
        self._enqueue(command, parameter, target)
        return target.future

    def send_command(self, command: str, parameter: Any = None) -> Optional[CommandResult]:
        """Send a command, waiting for completion only if it carries a parameter."""
        if parameter is None or parameter == "":
            return self.submit(command)
        return self.submit(command, parameter, await_completion=True)

    def get_devices(self) -> DeviceTable:
        """Get an immutable snapshot of the device table."""
        return self.devices

    def get_device(self, name: str) -> Optional[DeviceRecord]:
        """Look up a MIDI device by name."""
        return self.devices.get(name)

    def get_sapf_port(self) -> Any:
        """Get the MIDI output port registered by the last midi_start()."""
        return self.output_port

    def midi_start(self, port: Any = None) -> CommandResult:
        """Start sapf's MIDI client and load its device table.

        Args:
            port: Output port to register. If omitted, the session's own virtual
                port named after ``config.virtual_port_name`` is used, created
                on first use

        Returns:
            Result of the enumeration command, including the device table
        """
        if port is None:
            # One virtual port per session, reused by later enumerations
            if self._owned_port is None:
                self._owned_port = self._port_factory(self.config.virtual_port_name)
            port = self._owned_port
        return self.submit(
            self.config.enumeration_command, port, await_completion=True
        )

    def connect_input(self, device: str = "sapf") -> None:
        """Connect a MIDI device to sapf's input.

        Args:
            device: Device name from the device table

        Raises:
            UnknownDeviceError: If the device is not in the table
        """
        record = self._require_device(device)
        self.submit(f"{record.uid} {record.dev} midiConnectInput")

    def build_synth(self, file_name: Union[str, os.PathLike], device: str = "sapf") -> int:
        """Load a synth program with the device's identifiers bound in.

        Args:
            file_name: Synth program template
            device: Device the synth listens to

        Returns:
            Number of commands sent

        Raises:
            SynthProgramError: If the program cannot be read
            UnknownDeviceError: If the device is not in the table
        """
        record = self._require_device(device)
        commands = render_synth_program(file_name, record)
        for command in commands:
            self.submit(command)
        logger.info(f"Loaded synth program {file_name} ({len(commands)} commands)")
        return len(commands)

    def play(
        self,
        source: PlaySource,
        synth_file: Optional[Union[str, os.PathLike]] = None,
        bpm: Optional[float] = None,
        tpqn: Optional[int] = None,
    ) -> int:
        """Build the synth and play a sequence into sapf.

        Args:
            source: MIDI file path, decoded MIDI file or note sequence
            synth_file: Synth program to load first
            bpm: Tempo for note sequences without their own tempo
            tpqn: Ticks per quarter note for note sequences

        Returns:
            Number of MIDI messages sent
        """
        if isinstance(source, (str, os.PathLike)):
            midi_file = load_midi_file(source)
        elif isinstance(source, mido.MidiFile):
            midi_file = source
        elif isinstance(source, Sequence):
            midi_file = source.to_midi_file(
                bpm=bpm or self.midi_config.default_bpm,
                tpqn=tpqn or self.midi_config.default_tpqn,
            )
        else:
            raise TypeError(f"Cannot play {type(source).__name__}")

        port = self.output_port
        if port is None:
            raise SAPFError("No sapf MIDI port registered; run midi_start() first")

        self.build_synth(synth_file or self.midi_config.synth_file)
        self._player = self._player_factory(port)
        return self._player.play(midi_file)

    def stop(self) -> None:
        """Stop playback and silence everything sapf is playing."""
        if self._player is not None:
            self._player.stop()
        self.submit("stop")

    def quit(self) -> Optional[int]:
        """Shut down sapf and close the session.

        Returns:
            sapf's exit status, or None if it had to be terminated
        """
        returncode = None
        try:
            self.submit("quit")
        except SessionStoppedError as e:
            logger.debug(f"quit not sent: {e}")
        else:
            returncode = self._process.wait(timeout=self.config.quit_timeout)
            if returncode is None:
                logger.warning("sapf did not exit after quit")
        self.close()
        return returncode

    def close(self) -> None:
        """Stop the session thread and terminate sapf."""
        with self._lifecycle_lock:
            if self._closed:
                return
            self._closed = True
            self._post(Shutdown())

        if self._actor is not None and self._actor is not threading.current_thread():
            self._actor.join(timeout=self.config.quit_timeout)
        if self._process is not None:
            self._process.close(timeout=self.config.quit_timeout)
        if self._owned_port is not None:
            self._owned_port.close()
            self._owned_port = None
        logger.info("sapf session closed")

    def __enter__(self):
        if self._actor is None:
            self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def _require_device(self, name: str) -> DeviceRecord:
        record = self.get_device(name)
        if record is None:
            raise UnknownDeviceError(name)
        return record

    def _enqueue(self, command: str, parameter: Any, target) -> SubmitCommand:
        request = SubmitCommand(command=command, parameter=parameter, target=target)
        with self._lifecycle_lock:
            if self._actor is None:
                raise SessionStoppedError("Session not started")
            if self._closed:
                raise SessionStoppedError("Session closed")
            self._post(request)
        return request

    def _post(self, event: SessionEvent) -> None:
        self._events.put(event)

    def _send(self, command: str) -> None:
        self._process.send(command)

    def _schedule_quiescence(self, delay: float, generation: int) -> threading.Timer:
        timer = threading.Timer(
            delay, self._post, args=(QuiescenceElapsed(generation),)
        )
        timer.daemon = True
        timer.start()
        return timer

    def _run(self) -> None:
        logger.debug("Session thread started")
        while True:
            event = self._events.get()
            try:
                self._correlator.handle(event)
            except Exception as e:
                logger.exception(f"Error handling {type(event).__name__}")
                self._correlator.stop(SessionStoppedError(f"Session failed: {e}"))
            if isinstance(event, Shutdown):
                break
        logger.debug("Session thread stopped")
