"""SAPF Server - A session wrapper around the Sound as Pure Form interpreter."""

__version__ = "0.1.0"

from .config import get_config, get_session_config

__all__ = ["get_config", "get_session_config"]
