"""Direct terminal access for the REPL.

When data is piped into dx (``cat data.json | dx``), stdin is the pipe and
is exhausted after reading ``_input``. Prompts are then read from the
controlling terminal instead:

    Unix        /dev/tty (read and write)
    Windows     CONIN$ (read) and CONOUT$ (write)

The handle is closed exactly once, whichever comes first: an explicit
close(), or interpreter exit (atexit).
"""

from __future__ import annotations

import atexit
import logging
import sys
from dataclasses import dataclass, field
from typing import TextIO

logger = logging.getLogger(__name__)

UNIX_TTY = "/dev/tty"
WINDOWS_CONSOLE_IN = "CONIN$"
WINDOWS_CONSOLE_OUT = "CONOUT$"


@dataclass
class TerminalHandle:
    """Reader/writer pair bound to the controlling terminal."""

    reader: TextIO
    writer: TextIO
    description: str
    _closed: bool = field(default=False, init=False)

    @classmethod
    def open(cls) -> TerminalHandle:
        """Open the controlling terminal.

        Raises:
            OSError: If there is no controlling terminal.
        """
        if sys.platform == "win32":
            reader = open(WINDOWS_CONSOLE_IN, encoding="utf-8")  # noqa: SIM115
            try:
                writer = open(WINDOWS_CONSOLE_OUT, "w", encoding="utf-8")  # noqa: SIM115
            except OSError:
                reader.close()
                raise
            handle = cls(reader, writer, f"{WINDOWS_CONSOLE_IN} and {WINDOWS_CONSOLE_OUT}")
        else:
            reader = open(UNIX_TTY, encoding="utf-8")  # noqa: SIM115
            try:
                writer = open(UNIX_TTY, "w", encoding="utf-8")  # noqa: SIM115
            except OSError:
                reader.close()
                raise
            handle = cls(reader, writer, UNIX_TTY)

        atexit.register(handle.close)
        logger.debug("Opened direct terminal %s", handle.description)
        return handle

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Close both streams. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        atexit.unregister(self.close)

        for stream in (self.writer, self.reader):
            try:
                stream.close()
            except OSError as e:
                logger.debug("Error closing %s: %s", self.description, e)
        logger.debug("Closed direct terminal %s", self.description)
