"""
Terminal window title handling.

The title is a process-wide resource, so it is only ever changed through
:func:`terminal_title`, which restores it on every exit path.  Terminals
without title support are silently skipped.
"""

from __future__ import annotations

import logging
import os
import sys
from contextlib import contextmanager
from typing import Iterator, Mapping, Optional, TextIO

logger = logging.getLogger(__name__)

FORCE_ENV_VAR = "CI_FORCE_WINDOW_TITLE"

# xterm window-ops: push / pop the title stack
_PUSH_TITLE = "\x1b[22;0t"
_POP_TITLE = "\x1b[23;0t"
_TERMINAL_ENV_HINTS = ("TERM_PROGRAM", "ITERM_SESSION_ID", "TERMINAL_EMULATOR")


def _osc_title(title: str) -> str:
    # Control characters would terminate the OSC sequence early
    clean = "".join(ch for ch in title if ch.isprintable())
    return f"\x1b]0;{clean}\x07"


class TerminalTitle:
    """Writes title escape sequences to a terminal stream."""

    def __init__(self, stream: Optional[TextIO] = None,
                 env: Optional[Mapping[str, str]] = None):
        self.stream = stream if stream is not None else sys.stdout
        self.env = os.environ if env is None else env
        self.current: Optional[str] = None

    @property
    def supported(self) -> bool:
        if self.env.get(FORCE_ENV_VAR, "").lower() == "true":
            return True
        if self.env.get("TERM") == "dumb":
            return False
        try:
            if self.stream.isatty():
                return True
        except (AttributeError, ValueError):
            pass
        return bool(self.env.get("TERM")) or any(
            self.env.get(key) for key in _TERMINAL_ENV_HINTS)

    def _write(self, sequence: str) -> None:
        try:
            self.stream.write(sequence)
            self.stream.flush()
        except (OSError, ValueError) as exc:
            logger.debug("Cannot write terminal title: %s", exc)

    def capture(self) -> Optional[str]:
        """Save the current title; returns it when known, else None."""
        if not self.supported:
            return None
        self._write(_PUSH_TITLE)
        return self.current

    def set(self, title: str) -> None:
        if not self.supported:
            return
        self._write(_osc_title(title))
        self.current = title

    def restore(self, previous: Optional[str]) -> None:
        if not self.supported:
            return
        self._write(_POP_TITLE)
        if previous is not None:
            self._write(_osc_title(previous))
        self.current = previous


@contextmanager
def terminal_title(terminal: Optional[TerminalTitle], title: str) -> Iterator[None]:
    """Hold *title* on *terminal* for the duration of the block."""
    if terminal is None:
        yield
        return
    previous = terminal.capture()
    terminal.set(title)
    try:
        yield
    finally:
        terminal.restore(previous)
