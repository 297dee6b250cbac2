"""Centralized configuration for the SAPF server.

This module provides a single source of truth for all configuration values
and environment variables used throughout the application.
"""

import os
import shlex
from dataclasses import dataclass, field
from typing import List

from dotenv import load_dotenv


@dataclass
class SessionConfig:
    """sapf process and protocol configuration."""

    # sapf only disables output buffering when attached to a terminal
    command: List[str] = field(
        default_factory=lambda: ["script", "-q", "/dev/null", "sapf"]
    )
    quiescence_ms: float = 100.0
    await_timeout: float = 5.0
    quit_timeout: float = 2.0
    prompt_marker: str = "sapf>"
    enumeration_command: str = "midiStart"
    virtual_port_name: str = "sapf"

    @property
    def quiescence_window(self) -> float:
        """Get the quiescence window in seconds."""
        return self.quiescence_ms / 1000.0


@dataclass
class MIDIConfig:
    """MIDI playback configuration."""

    default_bpm: float = 100.0
    default_tpqn: int = 960
    synth_file: str = "sapf_snippets.sapf"


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # Module-specific log levels
    session_log_level: str = "INFO"
    process_log_level: str = "INFO"
    midi_log_level: str = "INFO"


@dataclass
class AppConfig:
    """Main application configuration."""

    session: SessionConfig = field(default_factory=SessionConfig)
    midi: MIDIConfig = field(default_factory=MIDIConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    app_name: str = "SAPF Server"
    version: str = "0.1.0"
    debug: bool = False

    def __post_init__(self):
        """Load environment variables and validate configuration."""
        self._load_from_environment()
        self._validate_config()

    def _load_from_environment(self):
        """Load configuration from environment variables."""
        # Load .env file if it exists
        load_dotenv()

        # Session configuration
        command = os.getenv("SAPF_COMMAND")
        if command:
            self.session.command = shlex.split(command)
        self.session.quiescence_ms = float(
            os.getenv("SAPF_QUIESCENCE_MS", str(self.session.quiescence_ms))
        )
        self.session.await_timeout = float(
            os.getenv("SAPF_AWAIT_TIMEOUT", str(self.session.await_timeout))
        )
        self.session.quit_timeout = float(
            os.getenv("SAPF_QUIT_TIMEOUT", str(self.session.quit_timeout))
        )
        self.session.prompt_marker = os.getenv(
            "SAPF_PROMPT", self.session.prompt_marker
        )
        self.session.enumeration_command = os.getenv(
            "SAPF_ENUMERATION_COMMAND", self.session.enumeration_command
        )
        self.session.virtual_port_name = os.getenv(
            "SAPF_VIRTUAL_PORT", self.session.virtual_port_name
        )

        # MIDI configuration
        self.midi.default_bpm = float(
            os.getenv("MIDI_DEFAULT_BPM", str(self.midi.default_bpm))
        )
        self.midi.default_tpqn = int(
            os.getenv("MIDI_DEFAULT_TPQN", str(self.midi.default_tpqn))
        )
        self.midi.synth_file = os.getenv("SAPF_SYNTH_FILE", self.midi.synth_file)

        # Logging configuration
        self.logging.level = os.getenv("LOG_LEVEL", self.logging.level).upper()
        self.logging.session_log_level = os.getenv(
            "SESSION_LOG_LEVEL", self.logging.session_log_level
        ).upper()
        self.logging.process_log_level = os.getenv(
            "PROCESS_LOG_LEVEL", self.logging.process_log_level
        ).upper()
        self.logging.midi_log_level = os.getenv(
            "MIDI_LOG_LEVEL", self.logging.midi_log_level
        ).upper()

        # Application settings
        self.debug = os.getenv("DEBUG", "false").lower() in ("true", "1", "yes", "on")

    def _validate_config(self):
        """Validate configuration values."""
        if not self.session.command:
            raise ValueError("Invalid SAPF_COMMAND: must not be empty.")

        if self.session.quiescence_ms <= 0:
            raise ValueError(
                f"Invalid quiescence window: {self.session.quiescence_ms}ms. "
                f"Must be positive."
            )

        if self.session.await_timeout <= 0:
            raise ValueError(
                f"Invalid await timeout: {self.session.await_timeout}s. "
                f"Must be positive."
            )

        if not self.session.prompt_marker:
            raise ValueError("Invalid SAPF_PROMPT: must not be empty.")

        if not (20.0 <= self.midi.default_bpm <= 300.0):
            raise ValueError(
                f"Invalid MIDI BPM: {self.midi.default_bpm}. Must be between 20-300."
            )

        if self.midi.default_tpqn <= 0:
            raise ValueError(
                f"Invalid ticks per quarter note: {self.midi.default_tpqn}. "
                f"Must be positive."
            )

        # Validate logging levels
        valid_log_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        for level_name, level_value in [
            ("LOG_LEVEL", self.logging.level),
            ("SESSION_LOG_LEVEL", self.logging.session_log_level),
            ("PROCESS_LOG_LEVEL", self.logging.process_log_level),
            ("MIDI_LOG_LEVEL", self.logging.midi_log_level),
        ]:
            if level_value not in valid_log_levels:
                raise ValueError(
                    f"Invalid {level_name}: {level_value}. Must be one of {valid_log_levels}."
                )


# Global configuration instance
config = AppConfig()


def get_config() -> AppConfig:
    """Get the global configuration instance."""
    return config


def reload_config():
    """Reload configuration from environment variables."""
    global config
    config = AppConfig()
    return config


def get_session_config() -> SessionConfig:
    """Get the sapf session configuration."""
    return config.session


def is_debug_mode() -> bool:
    """Check if debug mode is enabled."""
    return config.debug
