"""Command/response correlation for the sapf line protocol.

The correlator is the session's state machine. It is fed one event at a
time from a single execution context and never runs concurrently with
itself, so none of its state needs locking.
"""

from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Deque, Optional

from ..logging_config import get_logger
from .aggregator import ResponseAggregator
from .device_table import (
    DEFAULT_LAYOUT,
    EMPTY_DEVICE_TABLE,
    DeviceTable,
    DeviceTableLayout,
    parse_device_table,
)
from .errors import (
    DeviceTableParseError,
    ProcessExitedError,
    SessionStoppedError,
    SessionWriteError,
)
from .events import (
    NO_WAITER,
    CommandResult,
    CompletionTarget,
    LineReceived,
    ProcessExited,
    QuiescenceElapsed,
    SessionEvent,
    Shutdown,
    SubmitCommand,
    reject,
    resolve,
)

logger = get_logger(__name__)


class CorrelatorState(Enum):
    """Lifecycle states of a session."""

    IDLE = "idle"
    AWAITING_RESPONSE = "awaiting-response"
    STOPPED = "stopped"


@dataclass(frozen=True)
class PendingCommand:
    """The command currently awaiting its response."""

    command: str
    parameter: Any = None
    target: CompletionTarget = NO_WAITER


class CommandCorrelator:
    """Attributes sapf output to the command that produced it.

    Exactly one command is in flight at a time. Submissions that arrive
    while a command is awaiting its response wait in a FIFO backlog and are
    written to sapf only after the in-flight command has been finalized.
    """

    def __init__(
        self,
        send: Callable[[str], None],
        aggregator: ResponseAggregator,
        output: Callable[[str], None],
        enumeration_command: str = "midiStart",
        layout: DeviceTableLayout = DEFAULT_LAYOUT,
    ):
        """Initialize the correlator.

        Args:
            send: Writes one command line to sapf
            aggregator: Buffers response lines and owns the quiescence timer
            output: Receives every response line that is not a prompt echo
            enumeration_command: Command whose response is the device table
            layout: Field positions of the device enumeration lines
        """
        self._send = send
        self.aggregator = aggregator
        self._output = output
        self.enumeration_command = enumeration_command
        self.layout = layout

        self._state = CorrelatorState.IDLE
        self._pending: Optional[PendingCommand] = None
        self._backlog: Deque[SubmitCommand] = deque()
        self._stop_error: Optional[SessionStoppedError] = None

        self._devices: DeviceTable = EMPTY_DEVICE_TABLE
        self._output_port: Any = None

        self._handlers = {
            SubmitCommand: self._on_submit,
            LineReceived: self._on_line,
            QuiescenceElapsed: self._on_quiescence,
            ProcessExited: self._on_process_exited,
            Shutdown: self._on_shutdown,
        }

    @property
    def state(self) -> CorrelatorState:
        """Get the current lifecycle state."""
        return self._state

    @property
    def pending_command(self) -> Optional[str]:
        """Get the text of the command awaiting its response, if any."""
        return self._pending.command if self._pending else None

    @property
    def backlog_size(self) -> int:
        """Get the number of submissions waiting to be written."""
        return len(self._backlog)

    @property
    def devices(self) -> DeviceTable:
        """Get the device table from the last successful enumeration."""
        return self._devices

    @property
    def output_port(self) -> Any:
        """Get the output port carried by the last successful enumeration."""
        return self._output_port

    @property
    def stop_error(self) -> Optional[SessionStoppedError]:
        """Get the error that stopped the session, if it is stopped."""
        return self._stop_error

    def handle(self, event: SessionEvent) -> None:
        """Process one event.

        Args:
            event: The next event from the session queue
        """
        handler = self._handlers.get(type(event))
        if handler is None:
            raise TypeError(f"Unsupported session event: {event!r}")
        handler(event)

    def stop(self, error: SessionStoppedError) -> None:
        """Enter the terminal state and release every waiter with an error."""
        if self._state is CorrelatorState.STOPPED:
            return

        logger.info(f"Session stopping: {error}")
        self._state = CorrelatorState.STOPPED
        self._stop_error = error
        self.aggregator.reset()

        if self._pending is not None:
            self._pending.target.fail(error)
            self._pending = None

        while self._backlog:
            request = self._backlog.popleft()
            reject(request.dispatched, error)
            request.target.fail(error)

    def _on_submit(self, request: SubmitCommand) -> None:
        if self._state is CorrelatorState.STOPPED:
            reject(request.dispatched, self._stop_error)
            request.target.fail(self._stop_error)
            return

        self._backlog.append(request)
        if self._state is CorrelatorState.AWAITING_RESPONSE:
            logger.debug(
                f"Queued '{request.command}' behind '{self.pending_command}' "
                f"({len(self._backlog)} waiting)"
            )
            return
        self._dispatch_next()

    def _dispatch_next(self) -> None:
        if self._state is not CorrelatorState.IDLE or not self._backlog:
            return

        request = self._backlog.popleft()

        # Output that arrived while idle belongs to no command
        unsolicited = self.aggregator.drain()
        if unsolicited:
            self._emit(unsolicited)

        logger.debug(f"Sending command: {request.command!r}")
        try:
            self._send(request.command)
        except SessionWriteError as e:
            self._backlog.appendleft(request)
            self.stop(e)
            return

        self._pending = PendingCommand(
            command=request.command,
            parameter=request.parameter,
            target=request.target,
        )
        self._state = CorrelatorState.AWAITING_RESPONSE
        # A command that prints nothing still completes after one window
        self.aggregator.arm()
        resolve(request.dispatched, None)

    def _on_line(self, event: LineReceived) -> None:
        if self._state is CorrelatorState.STOPPED:
            return
        self.aggregator.add(event.line)

    def _on_quiescence(self, event: QuiescenceElapsed) -> None:
        if self._state is CorrelatorState.STOPPED:
            return
        if not self.aggregator.is_current(event.generation):
            logger.debug(f"Ignoring stale quiescence timer {event.generation}")
            return

        lines = self.aggregator.drain()
        if self._pending is None:
            self._emit(lines)
            return

        pending, self._pending = self._pending, None
        self._state = CorrelatorState.IDLE
        try:
            self._finalize(pending, lines)
        finally:
            self._dispatch_next()

    def _finalize(self, pending: PendingCommand, lines) -> None:
        visible = self._emit(lines)

        if pending.command != self.enumeration_command:
            logger.debug(
                f"Command '{pending.command}' completed with {len(visible)} lines"
            )
            pending.target.succeed(
                CommandResult(command=pending.command, lines=tuple(visible))
            )
            return

        try:
            devices = parse_device_table(visible, self.layout)
        except DeviceTableParseError as e:
            logger.error(f"Device enumeration failed: {e}")
            pending.target.fail(e)
            return

        self._output_port = pending.parameter
        self._devices = devices
        logger.info(f"Device table updated with {len(devices)} devices")
        pending.target.succeed(
            CommandResult(command=pending.command, lines=tuple(visible), devices=devices)
        )

    def _emit(self, lines):
        visible = self.aggregator.visible_lines(lines)
        for line in visible:
            self._output(line)
        return visible

    def _on_process_exited(self, event: ProcessExited) -> None:
        logger.info(f"sapf exited with status: {event.returncode}")
        leftover = self.aggregator.drain()
        if leftover and self._state is not CorrelatorState.STOPPED:
            self._emit(leftover)
        self.stop(ProcessExitedError(event.returncode))

    def _on_shutdown(self, event: Shutdown) -> None:
        self.stop(SessionStoppedError("Session closed"))

