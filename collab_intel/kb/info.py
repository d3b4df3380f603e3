"""
Per-agent summary for ``ci info NAME``.

Shows whether the project lists the agent as active, where its memory comes
from, and how each command category would launch it.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Optional

from ..auto_accept import resolve_auto_accept
from ..config import Config
from ..project_config import ProjectConfig, find_nearest_config
from .parser import LEARNING_FILENAME, parse_knowledge_base
from .paths import AGENTS_DIRNAME, resolve_knowledge_base

logger = logging.getLogger(__name__)

STATUS_ACTIVE = "active"
STATUS_AVAILABLE = "available"


@dataclass
class AgentInfo:
    """What ``ci info`` reports for one agent."""

    name: str
    description: str = ""
    status: str = STATUS_AVAILABLE
    kb_path: str = ""
    toolkit_path: str = ""
    memory_source: Optional[str] = None
    memory_lines: int = 0
    learning_lines: Optional[int] = None
    project: Optional[str] = None
    auto_accept_load: str = ""
    auto_accept_activate: str = ""


def _line_count(path: Path) -> Optional[int]:
    try:
        return len(path.read_text(encoding="utf-8").splitlines())
    except (OSError, UnicodeDecodeError) as exc:
        logger.debug("[Agent info] Cannot read %s: %s", path, exc)
        return None


def agent_status(name: str, project_config: Optional[ProjectConfig]) -> str:
    """``active`` when the project lists *name* in ``active_agents``."""
    if project_config is None:
        return STATUS_AVAILABLE
    wanted = name.casefold()
    if any(a.casefold() == wanted for a in project_config.active_agents):
        return STATUS_ACTIVE
    return STATUS_AVAILABLE


def describe_agent(
    name: str,
    override: Optional[str] = None,
    cwd: Optional[Path] = None,
    config: Optional[Config] = None,
) -> AgentInfo:
    """
    Collect an :class:`AgentInfo` for *name*.

    Raises
    ------
    PathNotFound, NoKnowledgeBase, AgentNotFound
        As for ``ci load``; nothing is launched.
    """
    config = config or Config()
    cwd = (cwd or Path.cwd()).resolve()

    project_config = find_nearest_config(cwd)
    location = resolve_knowledge_base(
        override, cwd=cwd, extra_search_paths=config.SEARCH_PATHS)
    profile = parse_knowledge_base(location).registry.require(name)

    toolkit = location.path / AGENTS_DIRNAME / profile.name
    learning = toolkit / LEARNING_FILENAME
    info = AgentInfo(
        name=profile.name,
        description=profile.description,
        status=agent_status(profile.name, project_config),
        kb_path=str(location.path),
        toolkit_path=str(toolkit),
        memory_source=str(profile.memory_source) if profile.memory_source else None,
        memory_lines=len(profile.memory.splitlines()),
        learning_lines=_line_count(learning) if learning.is_file() else None,
        project=(project_config.project_name or None) if project_config else None,
    )
    for command in ("load", "activate"):
        policy = resolve_auto_accept(profile.name, project_config=project_config,
                                     command=command)
        setattr(info, f"auto_accept_{command}", str(policy))
    return info


def format_info(info: AgentInfo) -> str:
    """Format an :class:`AgentInfo` into a human-readable report."""
    lines = [
        "",
        f"Agent: {info.name}",
        "=" * 40,
        "",
        f"  Description   : {info.description or 'n/a'}",
        f"  Status        : {info.status}",
        f"  Project       : {info.project or 'n/a'}",
        f"  Knowledge base: {info.kb_path}",
        f"  Toolkit       : {info.toolkit_path}",
        "",
        "Memory:",
        f"  Source        : {info.memory_source or 'AGENTS.md summary'}",
        f"  Lines         : {info.memory_lines}",
        "  Learning      : "
        + ("none" if info.learning_lines is None else f"{info.learning_lines} lines"),
        "",
        "Auto-accept:",
        f"  load          : {info.auto_accept_load}",
        f"  activate      : {info.auto_accept_activate}",
        "",
    ]
    return "\n".join(lines)


def to_json(info: AgentInfo) -> str:
    """Serialise an :class:`AgentInfo` to JSON."""
    return json.dumps(asdict(info), indent=2)
