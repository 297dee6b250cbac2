"""Tokenizer for sapf output lines containing single-quoted names."""

import re
from typing import List

# Either a quoted run or a run of characters that are neither space nor quote
_TOKEN_RE = re.compile(r"'[^']*'|[^\s']+")


def split_with_quotes(text: str) -> List[str]:
    """Split a line into tokens, keeping single-quoted runs together.

    Quotes are retained on quoted tokens. Embedded quotes cannot be escaped.

    Args:
        text: Line to split.

    Returns:
        Tokens in order of appearance.

    Example:
        >>> split_with_quotes("MIDI Source 0 'IAC Driver Bus 1'")
        ['MIDI', 'Source', '0', "'IAC Driver Bus 1'"]
    """
    return _TOKEN_RE.findall(text)
