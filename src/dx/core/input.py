"""Piped stdin decoding.

``cat data.json | dx`` makes the parsed JSON available as ``_input``.
Anything that is not JSON is passed through as text. With no pipe (stdin
is a terminal) or blank input, ``_input`` is None.
"""

from __future__ import annotations

import json
import logging
import sys
from typing import Any, TextIO

logger = logging.getLogger(__name__)


def decode_input(text: str) -> Any:
    """Decode piped text: JSON value if it parses, else the text itself."""
    if not text.strip():
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return text


def read_piped_input(stream: TextIO | None = None) -> Any:
    """Read and decode all of stdin if it is piped.

    Args:
        stream: Input stream (default: sys.stdin).

    Returns:
        Decoded value, or None when there is no piped data.
    """
    stream = stream if stream is not None else sys.stdin
    if stream is None or stream.isatty():
        return None

    text = stream.read()
    value = decode_input(text)
    logger.debug(
        "Read %d characters of piped input (%s)", len(text), type(value).__name__
    )
    return value
