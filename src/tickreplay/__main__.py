"""Entry point for running tickreplay as a module.

This allows the CLI to be invoked with ``python -m tickreplay``.
"""

from .cli import cli

if __name__ == "__main__":  # pragma: no cover
    cli()
