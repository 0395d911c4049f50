"""dx error types.

Every failure the REPL reports to the user is a DxError subclass. Inside
the interactive loop these are caught per command and printed; in
one-shot mode (``dx -c`` / ``dx -f``) they end the process with exit code 1.
"""

from __future__ import annotations


class DxError(Exception):
    """Base error for dx operations."""


class UnresolvableSpecifier(DxError):
    """A module specifier could not be turned into a loadable specifier.

    The message always carries the specifier as the user typed it, before
    any import-map substitution.
    """

    def __init__(self, specifier: str):
        super().__init__(
            f'Cannot resolve module specifier "{specifier}". '
            "Use a URL, a jsr:/npm: specifier, an @std/ shorthand or an import-map key."
        )
        self.specifier = specifier


class PersistenceFailure(DxError):
    """Reading or writing the persistent module map failed.

    The store never lets this escape to callers: reads degrade to an
    empty map and writes are logged.
    """


class EvaluationFailure(DxError):
    """Code raised an error inside the evaluator."""

    def __init__(self, kind: str, message: str):
        super().__init__(f"{kind}: {message}" if message else kind)
        self.kind = kind
        self.message = message


class FileAccessFailure(DxError):
    """A script or data file is missing or unreadable."""

    def __init__(self, path: str, reason: str, hint: str | None = None):
        super().__init__(f"{reason}: {path}")
        self.path = path
        self.reason = reason
        self.hint = hint


class UsageError(DxError):
    """Malformed command arguments. No state was changed."""


class UnknownCommand(UsageError):
    """A dot-command token that the REPL does not know."""

    def __init__(self, token: str):
        super().__init__(
            f"Unknown command: .{token}. Not added to buffer. Type .help for commands."
        )
        self.token = token
