"""Session launching: bundle rendering, process spawn and terminal title."""

from .launcher import SessionContext, SessionLauncher, load_agent
from .terminal import TerminalTitle, terminal_title

__all__ = [
    "SessionContext",
    "SessionLauncher",
    "TerminalTitle",
    "load_agent",
    "terminal_title",
]
