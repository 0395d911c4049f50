"""dx - Pipe data into Python and work with it interactively.

dx reads piped stdin into a shared namespace, lets you accumulate and
execute buffered code blocks, and imports modules by specifier into a
shared ``_imports`` mapping.

Layers:
    core/       Buffer engine, evaluator, module map and specifier resolution
    frontends/  User interfaces (CLI and interactive REPL)

Quick Start:
    $ cat data.json | dx
    > len(_input["items"])
    >
    3

    $ dx -c "print(sum(range(10)))"
    45

    $ dx module add fs @std/json
"""

__version__ = "0.1.0"
