"""
Error taxonomy for the ci tool.

Every fatal error derives from :class:`CIError` and carries the specific
candidates or identifier involved, so the CLI never has to print a bare
"not found".  Parse problems are *not* errors: see
:class:`collab_intel.kb.parser.ParseDiagnostic`.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from .kb.paths import ResolutionCandidate


class CIError(Exception):
    """Base class for all fatal ci errors."""


class PathNotFound(CIError):
    """No knowledge base candidate resolved to an existing directory."""

    def __init__(self, candidates: Sequence["ResolutionCandidate"]):
        self.candidates = list(candidates)
        if self.candidates:
            tried = "; ".join(
                f"{c.source}: {c.path} ({c.reason})" for c in self.candidates
            )
        else:
            tried = "no candidates configured"
        super().__init__(f"Knowledge base not found. Tried: {tried}")


class NoKnowledgeBase(CIError):
    """The root directory exists but has no descriptor file."""

    def __init__(self, root, descriptor):
        self.root = root
        self.descriptor = descriptor
        super().__init__(
            f"No agent descriptor in knowledge base {root}: "
            f"expected {descriptor}"
        )


class AgentNotFound(CIError):
    """The requested agent is absent from the parsed registry."""

    def __init__(self, name: str, available: Sequence[str] = ()):
        self.name = name
        self.available = list(available)
        msg = f"Agent '{name}' not found in knowledge base"
        if self.available:
            msg += f" (available: {', '.join(self.available)})"
        super().__init__(msg)


class MemorySourceUnreadable(CIError):
    """An explicitly supplied memory file could not be read."""

    def __init__(self, path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot read memory file {path}: {reason}")


class LauncherMissing(CIError):
    """The external assistant program is not installed."""

    def __init__(self, program: str, hint: str = ""):
        self.program = program
        self.hint = hint
        msg = f"Launcher program '{program}' not found on PATH"
        if hint:
            msg += f". {hint}"
        super().__init__(msg)


class LaunchFailed(CIError):
    """The external program exists but the OS refused to start it."""

    def __init__(self, program: str, reason: str):
        self.program = program
        self.reason = reason
        super().__init__(f"Failed to launch '{program}': {reason}")


class ProjectConfigError(CIError):
    """The project settings file exists but is not a usable mapping."""

    def __init__(self, path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid project settings in {path}: {reason}")
