"""Session management for the Sound as Pure Form (sapf) interpreter."""

from .aggregator import ResponseAggregator
from .correlator import CommandCorrelator, CorrelatorState
from .device_table import (
    DEFAULT_LAYOUT,
    DeviceRecord,
    DeviceTable,
    DeviceTableLayout,
    parse_device_table,
)
from .errors import (
    CommandTimeoutError,
    DeviceTableParseError,
    ProcessExitedError,
    SAPFError,
    SessionStoppedError,
    SessionWriteError,
    SpawnError,
    SynthProgramError,
    UnknownDeviceError,
)
from .events import NO_WAITER, CommandResult, NoWaiter, Waiter
from .process import ProcessSession
from .server import SAPFServer
from .synth_loader import render_synth_program, render_synth_text
from .tokenizer import split_with_quotes

__all__ = [
    # Session
    "SAPFServer",
    "ProcessSession",
    "CommandCorrelator",
    "CorrelatorState",
    "ResponseAggregator",
    "CommandResult",
    "NoWaiter",
    "NO_WAITER",
    "Waiter",
    # Parsing
    "split_with_quotes",
    "parse_device_table",
    "DeviceRecord",
    "DeviceTable",
    "DeviceTableLayout",
    "DEFAULT_LAYOUT",
    "render_synth_program",
    "render_synth_text",
    # Errors
    "SAPFError",
    "SpawnError",
    "SessionWriteError",
    "SessionStoppedError",
    "ProcessExitedError",
    "CommandTimeoutError",
    "DeviceTableParseError",
    "UnknownDeviceError",
    "SynthProgramError",
]
