"""Command-line frontend: the ``dx`` command and the interactive REPL."""
