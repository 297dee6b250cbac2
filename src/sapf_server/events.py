"""Events delivered into the session's serialized state machine."""

from concurrent.futures import Future, InvalidStateError
from dataclasses import dataclass, field
from typing import Any, Optional, Tuple, Union

from ..logging_config import get_logger
from .device_table import DeviceTable

logger = get_logger(__name__)


def resolve(future: Future, result: Any) -> bool:
    """Set a future's result unless it is already done or cancelled."""
    try:
        future.set_result(result)
    except InvalidStateError:
        logger.debug(f"Dropped result for settled future {future!r}")
        return False
    return True


def reject(future: Future, error: BaseException) -> bool:
    """Set a future's exception unless it is already done or cancelled."""
    try:
        future.set_exception(error)
    except InvalidStateError:
        logger.debug(f"Dropped {error!r} for settled future {future!r}")
        return False
    return True


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one finalized command."""

    command: str
    lines: Tuple[str, ...] = ()
    devices: Optional[DeviceTable] = None


class NoWaiter:
    """Completion target of a fire-and-forget command."""

    def succeed(self, result: CommandResult) -> None:
        pass

    def fail(self, error: BaseException) -> None:
        pass

    def __repr__(self):
        return "NO_WAITER"


NO_WAITER = NoWaiter()


@dataclass(frozen=True)
class Waiter:
    """Completion target backed by a future the caller is blocked on.

    The future is released at most once. Notifications arriving after the
    caller gave up (cancelled future) are dropped.
    """

    future: Future = field(default_factory=Future)

    def succeed(self, result: CommandResult) -> None:
        resolve(self.future, result)

    def fail(self, error: BaseException) -> None:
        reject(self.future, error)


CompletionTarget = Union[NoWaiter, Waiter]


@dataclass(frozen=True)
class SubmitCommand:
    """A caller wants a command written to sapf."""

    command: str
    parameter: Any = None
    target: CompletionTarget = NO_WAITER
    # Resolved once the command has been written to the process
    dispatched: Future = field(default_factory=Future)


@dataclass(frozen=True)
class LineReceived:
    """sapf printed a complete line."""

    line: str


@dataclass(frozen=True)
class QuiescenceElapsed:
    """No output arrived for the quiescence window."""

    generation: int


@dataclass(frozen=True)
class ProcessExited:
    """The sapf process terminated."""

    returncode: Optional[int]


@dataclass(frozen=True)
class Shutdown:
    """The owning application is closing the session."""


SessionEvent = Union[
    SubmitCommand, LineReceived, QuiescenceElapsed, ProcessExited, Shutdown
]
