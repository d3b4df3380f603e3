"""
Knowledge base parser — turns ``AGENTS.md`` plus the per-agent detail files
under ``AGENTS/<Name>/`` into an :class:`~collab_intel.kb.registry.AgentRegistry`.

Descriptor convention::

    ## Core Agents

    ### Athena - Knowledge architect and memory systems specialist
    Fallback summary text, used when AGENTS/Athena/ has no detail file.

    #### Notes
    Deeper headings stay part of Athena's summary.

    ### ProjectArchitect - System design
    ...

Parsing is tolerant: a heading whose name token cannot be parsed is skipped
and reported as a :class:`ParseDiagnostic`; everything else is still returned.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from ..errors import NoKnowledgeBase, PathNotFound
from .paths import (
    AGENTS_DIRNAME,
    DESCRIPTOR_FILENAME,
    SOURCE_EXPLICIT,
    KnowledgeBaseLocation,
    ResolutionCandidate,
)
from .registry import AgentProfile, AgentRegistry

logger = logging.getLogger(__name__)

AGENT_HEADING_LEVEL = 3
LEARNING_FILENAME = "ContinuousLearning.md"

_HEADING_RE = re.compile(r"^(#{1,6})(?:[ \t]+(.*?))?[ \t]*$")
_FENCE_RE = re.compile(r"^[ \t]{0,3}(`{3,}|~{3,})")
_NAME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9_.-]*$")
# "Name - description"; en/em dashes are accepted as the separator too
_SEPARATOR_RE = re.compile(r"[ \t]+[-–—][ \t]+")


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ParseDiagnostic:
    """A skipped or degraded descriptor entry.  Never raised."""
    line_number: int
    line: str
    reason: str

    def __str__(self) -> str:
        return f"line {self.line_number}: {self.reason}: {self.line.strip()}"


@dataclass(frozen=True)
class ParseResult:
    """Registry plus the side-channel list of diagnostics."""
    registry: AgentRegistry
    diagnostics: tuple[ParseDiagnostic, ...] = ()
    root: Optional[Path] = None

    @property
    def has_diagnostics(self) -> bool:
        return bool(self.diagnostics)


@dataclass
class _Entry:
    name: str
    description: str
    line_number: int
    heading: str
    body: list[str] = field(default_factory=list)

    @property
    def summary(self) -> str:
        return "\n".join(self.body).strip()


# ---------------------------------------------------------------------------
# Descriptor scanning
# ---------------------------------------------------------------------------

def split_heading(text: str) -> tuple[str, str]:
    """Split ``"Name - description"`` into its two parts."""
    parts = _SEPARATOR_RE.split(text, maxsplit=1)
    name = parts[0].strip()
    description = parts[1].strip() if len(parts) > 1 else ""
    return name, description


def scan_descriptor(text: str) -> tuple[list[_Entry], list[ParseDiagnostic]]:
    """Scan descriptor text into raw entries (duplicates included) and diagnostics."""
    entries: list[_Entry] = []
    diagnostics: list[ParseDiagnostic] = []
    current: Optional[_Entry] = None
    fence: Optional[str] = None

    for lineno, line in enumerate(text.splitlines(), 1):
        fence_match = _FENCE_RE.match(line)
        if fence_match:
            marker = fence_match.group(1)
            if fence is None:
                fence = marker[0] * len(marker)
            elif marker.startswith(fence):
                fence = None
            if current is not None:
                current.body.append(line)
            continue

        heading = None if fence is not None else _HEADING_RE.match(line)
        if heading is None:
            if current is not None:
                current.body.append(line)
            continue

        level = len(heading.group(1))
        if level > AGENT_HEADING_LEVEL:
            if current is not None:
                current.body.append(line)
            continue

        # Equal-or-higher level heading closes the open entry
        current = None
        if level < AGENT_HEADING_LEVEL:
            continue

        name, description = split_heading(heading.group(2) or "")
        if not name:
            diagnostics.append(ParseDiagnostic(lineno, line, "missing agent name"))
            continue
        if not _NAME_RE.match(name):
            diagnostics.append(
                ParseDiagnostic(lineno, line, f"unparsable agent name {name!r}"))
            continue

        current = _Entry(name=name, description=description,
                         line_number=lineno, heading=line)
        entries.append(current)

    return entries, diagnostics


# ---------------------------------------------------------------------------
# Memory assembly
# ---------------------------------------------------------------------------

def detail_candidates(agents_dir: Path, name: str) -> list[Path]:
    """Per-agent detail files, in lookup order."""
    agent_dir = agents_dir / name
    return [
        agent_dir / f"{name}.md",
        agent_dir / f"{name}_memory.md",
        agent_dir / "MEMORY.md",
    ]


def _read_text(path: Path) -> str:
    return path.read_text(encoding="utf-8")


def _assemble_memory(
    agents_dir: Path,
    entry: _Entry,
    diagnostics: list[ParseDiagnostic],
) -> tuple[str, Optional[Path]]:
    memory, source = entry.summary, None

    for candidate in detail_candidates(agents_dir, entry.name):
        if not candidate.is_file():
            continue
        try:
            memory, source = _read_text(candidate), candidate
        except (OSError, UnicodeDecodeError) as exc:
            diagnostics.append(ParseDiagnostic(
                entry.line_number, entry.heading,
                f"unreadable detail file {candidate} ({exc}); using summary"))
        break

    learning = agents_dir / entry.name / LEARNING_FILENAME
    if learning.is_file():
        try:
            memory = f"{memory}\n\n# Continuous Learning\n\n{_read_text(learning)}"
        except (OSError, UnicodeDecodeError) as exc:
            diagnostics.append(ParseDiagnostic(
                entry.line_number, entry.heading,
                f"unreadable learning file {learning} ({exc})"))

    return memory, source


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------

def parse_knowledge_base(
    location: Union[KnowledgeBaseLocation, Path, str],
) -> ParseResult:
    """
    Parse the knowledge base at *location*.

    Duplicate agent names are last-wins: the later heading replaces the
    earlier profile entirely, while the profile keeps the position (and
    ``index``) of the first occurrence.

    Raises
    ------
    PathNotFound
        When *location* is not an existing readable directory.
    NoKnowledgeBase
        When the root has no ``AGENTS.md``.
    """
    if isinstance(location, KnowledgeBaseLocation):
        root, source = location.path, location.source
    else:
        root, source = Path(location).expanduser().resolve(), SOURCE_EXPLICIT

    if not root.is_dir() or not os.access(root, os.R_OK | os.X_OK):
        raise PathNotFound([ResolutionCandidate(
            source, root, "not a readable directory")])

    descriptor = root / DESCRIPTOR_FILENAME
    if not descriptor.is_file():
        raise NoKnowledgeBase(root, descriptor)
    try:
        text = descriptor.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        logger.error("Cannot read %s: %s", descriptor, exc)
        raise NoKnowledgeBase(root, descriptor) from exc

    entries, diagnostics = scan_descriptor(text)
    agents_dir = root / AGENTS_DIRNAME

    latest: dict[str, _Entry] = {}
    for entry in entries:
        if entry.name in latest:
            logger.warning(
                "Duplicate agent %r at line %d overrides line %d",
                entry.name, entry.line_number, latest[entry.name].line_number)
        latest[entry.name] = entry

    profiles: dict[str, AgentProfile] = {}
    for index, (name, entry) in enumerate(latest.items()):
        memory, memory_source = _assemble_memory(agents_dir, entry, diagnostics)
        profiles[name] = AgentProfile(
            name=name,
            description=entry.description,
            memory=memory,
            index=index,
            memory_source=memory_source,
        )

    for diag in diagnostics:
        logger.warning("[KB parser] %s", diag)
    logger.info("Parsed %d agent(s) from %s (%d diagnostic(s))",
                len(profiles), descriptor, len(diagnostics))

    return ParseResult(
        registry=AgentRegistry(profiles),
        diagnostics=tuple(diagnostics),
        root=root,
    )
