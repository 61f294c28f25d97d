"""Diagnostic output for flickrkit, written to stderr.

The library never prints to stdout. What it has to say (cache hits and
misses, outgoing calls, persistence, discarded cache files) goes to stderr
through a single :class:`OutputManager`, read with :func:`get_output`.
Applications that want to see debug lines install their own manager::

    from flickrkit.output import OutputManager, set_output

    set_output(OutputManager(verbose=True))

The default manager shows warnings only.
"""

from __future__ import annotations

import os
import sys
from typing import Optional

from rich.console import Console


class OutputManager:
    """Routes library diagnostics to stderr.

    Args:
        no_color: Disable all colour and Rich markup.
        verbose: Enable debug-level messages.
    """

    def __init__(self, no_color: bool = False, verbose: bool = False) -> None:
        self._no_color = no_color or _should_disable_color()
        self._verbose = verbose
        self._stderr = Console(
            file=sys.stderr,
            no_color=self._no_color,
            stderr=True,
        )

    def warning(self, message: str) -> None:
        """Print a yellow warning to stderr. Always shown."""
        if self._no_color:
            print(f"Warning: {message}", file=sys.stderr, flush=True)
        else:
            self._stderr.print(f"[yellow]Warning:[/yellow] {message}")

    def debug(self, message: str) -> None:
        """Print a debug message to stderr. Only shown when verbose.

        Args:
            message: The debug text (prefixed with ``[debug]`` on output).
        """
        if self._verbose:
            if self._no_color:
                print(f"[debug] {message}", file=sys.stderr, flush=True)
            else:
                self._stderr.print(f"[dim][debug] {message}[/dim]")


def _should_disable_color() -> bool:
    """Return True when NO_COLOR is set (any value) or TERM=dumb."""
    if os.environ.get("NO_COLOR") is not None:
        return True
    return os.environ.get("TERM") == "dumb"


_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the global :class:`OutputManager`, creating the default one on first use."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    """Install *output* as the global :class:`OutputManager`."""
    global _output
    _output = output


def reset_output() -> None:
    """Discard the global manager so the next :func:`get_output` builds a fresh one."""
    global _output
    _output = None
