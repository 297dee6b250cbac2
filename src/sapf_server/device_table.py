"""Parser for sapf's MIDI device enumeration output.

``midiStart`` prints one line per MIDI endpoint once the MIDI client is up,
for example::

    MIDI Source 0 'IAC Driver Bus 1', unique id -1198431231
    MIDI Destination 0 'sapf', unique id 42

Each line is two comma separated clauses. The first carries the device index
and the quoted device name, the second carries the endpoint uid. Field
positions are not a documented interface of sapf, so they live in
:class:`DeviceTableLayout` and any mismatch is reported as a parse error
instead of being guessed around.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Iterable, Mapping

from ..logging_config import get_logger
from .errors import DeviceTableParseError
from .tokenizer import split_with_quotes

logger = get_logger(__name__)


@dataclass(frozen=True)
class DeviceRecord:
    """Numeric identifiers sapf needs to address a MIDI device."""

    uid: int
    dev: int


# Read-only mapping of device name -> DeviceRecord
DeviceTable = Mapping[str, DeviceRecord]

EMPTY_DEVICE_TABLE: DeviceTable = MappingProxyType({})


@dataclass(frozen=True)
class DeviceTableLayout:
    """Token positions of the fields in an enumeration line."""

    marker: str = "MIDI"
    index_token: int = 2
    name_token: int = 3
    uid_token: int = 2
    min_first_clause_tokens: int = 4
    second_clause_tokens: int = 3

    def __post_init__(self):
        """Validate that every extracted position fits its clause."""
        if self.min_first_clause_tokens <= max(self.index_token, self.name_token):
            raise ValueError(
                "First clause must have more tokens than the index and name positions"
            )
        if self.second_clause_tokens <= self.uid_token:
            raise ValueError("Second clause must have more tokens than the uid position")


DEFAULT_LAYOUT = DeviceTableLayout()


def _to_int(value: str, field_name: str, line: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise DeviceTableParseError(
            line, f"{field_name} {value!r} is not an integer"
        ) from None


def parse_device_line(line: str, layout: DeviceTableLayout = DEFAULT_LAYOUT):
    """Parse a single enumeration line.

    Args:
        line: One line of the enumeration response.
        layout: Token positions to extract from.

    Returns:
        Tuple of (device name, DeviceRecord).

    Raises:
        DeviceTableParseError: If the line does not match the layout.
    """
    clauses = line.split(",")
    if len(clauses) != 2:
        raise DeviceTableParseError(
            line, f"expected 2 comma separated clauses, got {len(clauses)}"
        )

    first = split_with_quotes(clauses[0])
    if len(first) < layout.min_first_clause_tokens:
        raise DeviceTableParseError(
            line,
            f"expected at least {layout.min_first_clause_tokens} tokens before "
            f"the comma, got {len(first)}",
        )

    second = split_with_quotes(clauses[1])
    if len(second) != layout.second_clause_tokens:
        raise DeviceTableParseError(
            line,
            f"expected {layout.second_clause_tokens} tokens after the comma, "
            f"got {len(second)}",
        )

    name = first[layout.name_token].replace("'", "")
    dev = _to_int(first[layout.index_token], "device index", line)
    uid = _to_int(second[layout.uid_token], "uid", line)
    return name, DeviceRecord(uid=uid, dev=dev)


def parse_device_table(
    lines: Iterable[str], layout: DeviceTableLayout = DEFAULT_LAYOUT
) -> DeviceTable:
    """Build a device table from a completed enumeration response.

    Lines before the first one starting with ``layout.marker`` are banner
    output and are skipped. Blank lines are ignored. A later line with the
    same device name replaces the earlier entry.

    Args:
        lines: Response lines in arrival order, prompt echoes removed.
        layout: Token positions to extract from.

    Returns:
        A new read-only device table.

    Raises:
        DeviceTableParseError: If any device line is malformed. No partial
            table is returned.
    """
    table: Dict[str, DeviceRecord] = {}
    started = False

    for line in lines:
        if not started:
            if not line.startswith(layout.marker):
                continue
            started = True
        if not line.strip():
            continue
        name, record = parse_device_line(line, layout)
        table[name] = record

    logger.debug(f"Parsed device table with {len(table)} entries: {sorted(table)}")
    return MappingProxyType(table)
