"""Quiescence-based framing of sapf responses.

sapf never marks the end of a response. Lines are collected until no new
line has arrived for a short window, at which point the burst is taken to be
the complete response.
"""

from typing import Callable, Iterable, List, Optional, Protocol

from ..logging_config import get_logger

logger = get_logger(__name__)


class TimerHandle(Protocol):
    """Anything that can cancel a scheduled quiescence check."""

    def cancel(self) -> None:
        ...


# schedule(delay_seconds, generation) -> handle
Scheduler = Callable[[float, int], TimerHandle]


class ResponseAggregator:
    """Accumulates output lines and restarts the quiescence timer per line."""

    def __init__(
        self, window: float, schedule: Scheduler, prompt_marker: str = "sapf>"
    ):
        """Initialize the aggregator.

        Args:
            window: Quiescence window in seconds
            schedule: Starts a timer that reports the given generation when
                it fires
            prompt_marker: Text identifying sapf prompt echoes
        """
        self.window = window
        self.prompt_marker = prompt_marker
        self._schedule = schedule
        self._lines: List[str] = []
        self._timer: Optional[TimerHandle] = None
        self._generation = 0

    @property
    def lines(self) -> List[str]:
        """Get a copy of the lines buffered so far."""
        return list(self._lines)

    @property
    def generation(self) -> int:
        """Get the generation of the outstanding timer."""
        return self._generation

    @property
    def has_timer(self) -> bool:
        """Check whether a quiescence timer is outstanding."""
        return self._timer is not None

    def add(self, line: str) -> None:
        """Buffer a line and restart the quiescence timer.

        Prompt echoes are buffered too; they are only dropped on the way out.
        """
        self._lines.append(line)
        self.arm()

    def arm(self) -> None:
        """Cancel any outstanding timer and start a new one."""
        self._cancel_timer()
        self._generation += 1
        self._timer = self._schedule(self.window, self._generation)

    def is_current(self, generation: int) -> bool:
        """Check whether a fired timer is the outstanding one.

        A timer that was cancelled after it had already fired reports a
        stale generation and must be ignored.
        """
        return self._timer is not None and generation == self._generation

    def drain(self) -> List[str]:
        """Hand over the buffered lines and clear the buffer."""
        self._cancel_timer()
        lines, self._lines = self._lines, []
        return lines

    def reset(self) -> None:
        """Drop the buffered lines and any outstanding timer."""
        dropped = len(self._lines)
        self._cancel_timer()
        self._lines = []
        if dropped:
            logger.debug(f"Discarded {dropped} buffered lines")

    def is_prompt(self, line: str) -> bool:
        """Check whether a line is a sapf prompt echo."""
        return self.prompt_marker in line

    def visible_lines(self, lines: Iterable[str]) -> List[str]:
        """Filter prompt echoes out of a response."""
        return [line for line in lines if not self.is_prompt(line)]

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
