"""Loading synth programs written as sapf code templates.

A synth program is a text file of sapf commands, one per line. ``$uid`` and
``$dev`` are replaced with the identifiers of the MIDI device the synth
should listen to, for example::

    $uid $dev midiConnectInput
    1 mlastkey nnhz 0 sinosc 0.2 * play
"""

import os
from string import Template
from typing import List, Union

from ..logging_config import get_logger
from .device_table import DeviceRecord
from .errors import SynthProgramError

logger = get_logger(__name__)


def render_synth_text(text: str, device: DeviceRecord) -> List[str]:
    """Bind device identifiers into a synth program.

    Args:
        text: Template source
        device: Device the synth listens to

    Returns:
        Non-blank command lines with placeholders substituted
    """
    rendered = Template(text).safe_substitute(uid=device.uid, dev=device.dev)
    return [line.strip() for line in rendered.splitlines() if line.strip()]


def render_synth_program(
    path: Union[str, os.PathLike], device: DeviceRecord
) -> List[str]:
    """Read a synth program file and bind device identifiers into it.

    Args:
        path: Template file
        device: Device the synth listens to

    Returns:
        Command lines ready to send to sapf

    Raises:
        SynthProgramError: If the file cannot be read
    """
    if not os.path.exists(path):
        raise SynthProgramError(f"File {path} doesn't exist")

    try:
        with open(path, encoding="utf-8") as f:
            text = f.read()
    except OSError as e:
        raise SynthProgramError(f"Cannot read synth program {path}: {e}") from e

    lines = render_synth_text(text, device)
    logger.debug(f"Rendered {len(lines)} commands from {path}")
    return lines
