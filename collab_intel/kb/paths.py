"""
Knowledge base location — finds the shared CollaborativeIntelligence root.

Resolution order (first existing directory wins):

1. explicit override (``--ci-path``); fails immediately when it does not exist
2. the ``CI_PATH`` environment variable
3. ``ci_path`` in the nearest project settings file (cwd upward)
4. conventional install locations (``search``), ending with the system-wide
   ``default``

A failure raises :class:`~collab_intel.errors.PathNotFound` carrying every
candidate tried, in that order.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Mapping, Optional, Sequence

from ..errors import PathNotFound
from ..project_config import find_nearest_config

logger = logging.getLogger(__name__)

ENV_VAR = "CI_PATH"
DESCRIPTOR_FILENAME = "AGENTS.md"
AGENTS_DIRNAME = "AGENTS"

SOURCE_EXPLICIT = "explicit"
SOURCE_ENV = "env"
SOURCE_CONFIG = "config"
SOURCE_SEARCH = "search"
SOURCE_DEFAULT = "default"

SYSTEM_DEFAULT = Path("/usr/local/share/CollaborativeIntelligence")


def conventional_locations(home: Optional[Path] = None) -> list[Path]:
    """The fixed per-user install locations, in search order."""
    home = home or Path.home()
    return [
        home / "Documents" / "Projects" / "CollaborativeIntelligence",
        home / "Projects" / "CollaborativeIntelligence",
        home / "CollaborativeIntelligence",
    ]


@dataclass(frozen=True)
class ResolutionCandidate:
    """One location that was tried, and why it was rejected."""

    source: str
    path: Path
    reason: str


@dataclass(frozen=True)
class KnowledgeBaseLocation:
    """A resolved knowledge base root."""

    path: Path
    source: str
    valid: bool

    @property
    def descriptor(self) -> Path:
        return self.path / DESCRIPTOR_FILENAME

    @property
    def agents_dir(self) -> Path:
        return self.path / AGENTS_DIRNAME


def _to_path(raw: str, base: Optional[Path] = None) -> Path:
    p = Path(raw).expanduser()
    if not p.is_absolute() and base is not None:
        p = base / p
    return p.resolve()


def _rejection(path: Path) -> Optional[str]:
    """Return why *path* is unusable, or None when it is a readable directory."""
    if not path.exists():
        return "does not exist"
    if not path.is_dir():
        return "not a directory"
    if not os.access(path, os.R_OK | os.X_OK):
        return "not readable"
    return None


def _accept(path: Path, source: str) -> KnowledgeBaseLocation:
    location = KnowledgeBaseLocation(
        path=path,
        source=source,
        valid=(path / DESCRIPTOR_FILENAME).is_file(),
    )
    logger.info("Knowledge base resolved from %s: %s", source, path)
    return location


def resolve_knowledge_base(
    override: Optional[str] = None,
    *,
    env: Optional[Mapping[str, str]] = None,
    cwd: Optional[Path] = None,
    search_paths: Optional[Sequence[Path]] = None,
    extra_search_paths: Iterable[str] = (),
) -> KnowledgeBaseLocation:
    """
    Resolve the knowledge base root.

    Parameters
    ----------
    override:
        Explicit path from the command line.  When given it must exist.
    env:
        Environment mapping (defaults to ``os.environ``).
    cwd:
        Directory to start the project-settings search from.
    search_paths:
        Replaces the built-in conventional locations (tests).
    extra_search_paths:
        User-configured locations tried before the conventional ones.

    Raises
    ------
    PathNotFound
        With the ordered list of every candidate tried.
    """
    env = os.environ if env is None else env
    cwd = (cwd or Path.cwd()).resolve()
    tried: list[ResolutionCandidate] = []

    # 1. explicit override: no fallthrough
    if override:
        path = _to_path(override, cwd)
        reason = _rejection(path)
        if reason is None:
            return _accept(path, SOURCE_EXPLICIT)
        raise PathNotFound([ResolutionCandidate(SOURCE_EXPLICIT, path, reason)])

    # 2. environment
    env_value = (env.get(ENV_VAR) or "").strip()
    if env_value:
        path = _to_path(env_value, cwd)
        reason = _rejection(path)
        if reason is None:
            return _accept(path, SOURCE_ENV)
        tried.append(ResolutionCandidate(SOURCE_ENV, path, f"${ENV_VAR} {reason}"))

    # 3. nearest project settings
    project = find_nearest_config(cwd)
    if project is not None:
        path = project.resolved_ci_path()
        if path is not None:
            reason = _rejection(path)
            if reason is None:
                return _accept(path, SOURCE_CONFIG)
            tried.append(ResolutionCandidate(
                SOURCE_CONFIG, path, f"ci_path in {project.path} {reason}"))
        else:
            logger.debug("No ci_path in %s", project.path)

    # 4. conventional locations
    if search_paths is not None:
        ordered = [(SOURCE_SEARCH, Path(p)) for p in search_paths]
    else:
        ordered = [(SOURCE_SEARCH, _to_path(p, cwd)) for p in extra_search_paths]
        ordered += [(SOURCE_SEARCH, p) for p in conventional_locations()]
        ordered.append((SOURCE_DEFAULT, SYSTEM_DEFAULT))

    for source, path in ordered:
        reason = _rejection(path)
        if reason is None:
            return _accept(path, source)
        tried.append(ResolutionCandidate(source, path, reason))

    logger.warning("Knowledge base not found after %d candidate(s)", len(tried))
    raise PathNotFound(tried)


def format_resolution_failure(error: PathNotFound) -> str:
    """Render a :class:`PathNotFound` as actionable guidance for the CLI."""
    lines = ["", "Could not locate the CollaborativeIntelligence knowledge base.", ""]
    if error.candidates:
        lines.append("Tried, in order:")
        for i, c in enumerate(error.candidates, 1):
            lines.append(f"  {i}. [{c.source:<8}] {c.path}  ({c.reason})")
    else:
        lines.append("No candidate locations were available.")
    lines += [
        "",
        "To fix, do one of:",
        "  - pass --ci-path /path/to/CollaborativeIntelligence",
        f"  - export {ENV_VAR}=/path/to/CollaborativeIntelligence",
        '  - add "ci_path" to the project\'s .ci-config.json',
        f"  - clone the knowledge base to {conventional_locations()[0]}",
        "",
    ]
    return "\n".join(lines)
