"""Exceptions raised by the sapf session."""

from typing import Optional


class SAPFError(Exception):
    """Base class for all sapf session errors."""


class SpawnError(SAPFError):
    """The sapf process could not be started."""


class SessionStoppedError(SAPFError):
    """The session no longer accepts commands."""


class SessionWriteError(SessionStoppedError):
    """Writing a command to the sapf process failed."""


class ProcessExitedError(SessionStoppedError):
    """The sapf process terminated."""

    def __init__(self, returncode: Optional[int]):
        super().__init__(f"sapf exited with status: {returncode}")
        self.returncode = returncode


class CommandTimeoutError(SAPFError):
    """A caller stopped waiting for a command to complete.

    The command may still complete afterwards; the result is unknown.
    """

    def __init__(self, command: str, timeout: float):
        super().__init__(
            f"Timed out after {timeout:.2f}s waiting for '{command}' to complete"
        )
        self.command = command
        self.timeout = timeout


class DeviceTableParseError(SAPFError):
    """A device enumeration response did not have the expected layout."""

    def __init__(self, line: str, reason: str):
        super().__init__(f"Cannot parse device line {line!r}: {reason}")
        self.line = line
        self.reason = reason


class UnknownDeviceError(SAPFError, KeyError):
    """No device with the requested name is in the device table."""

    def __init__(self, name: str):
        super().__init__(name)
        self.name = name

    def __str__(self):
        return f"Unknown MIDI device: {self.name!r}"


class SynthProgramError(SAPFError):
    """A synth program file could not be loaded."""
