"""
KB health check — summary of knowledge base and launcher readiness.

Used by the CLI (``ci health``).
"""

from __future__ import annotations

import json
import logging
import shutil
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Callable, Optional

from ..config import Config
from ..errors import CIError
from .parser import parse_knowledge_base
from .paths import resolve_knowledge_base

logger = logging.getLogger(__name__)


@dataclass
class KBHealth:
    """Overall knowledge base health status."""

    resolved: bool = False
    kb_path: Optional[str] = None
    source: Optional[str] = None
    descriptor_present: bool = False
    agent_count: int = 0
    diagnostic_count: int = 0
    launcher: str = ""
    launcher_available: bool = False
    error: Optional[str] = None


def check(
    override: Optional[str] = None,
    cwd: Optional[Path] = None,
    config: Optional[Config] = None,
    which: Callable[[str], Optional[str]] = shutil.which,
) -> KBHealth:
    """
    Check the health of the knowledge base and the launcher.

    Parameters
    ----------
    override:
        Explicit knowledge base path (``--ci-path``).
    cwd:
        Directory to resolve project settings from.  Defaults to the cwd.
    config:
        Tool configuration.  Defaults to built-in settings.

    Returns
    -------
    KBHealth
        Aggregated health status.  Failures are recorded in ``error``,
        never raised.
    """
    config = config or Config()
    health = KBHealth(launcher=config.LAUNCHER)
    health.launcher_available = which(config.LAUNCHER) is not None

    try:
        location = resolve_knowledge_base(
            override, cwd=cwd, extra_search_paths=config.SEARCH_PATHS)
    except CIError as exc:
        logger.debug("[KB health] Resolution failed: %s", exc)
        health.error = str(exc)
        return health

    health.resolved = True
    health.kb_path = str(location.path)
    health.source = location.source
    health.descriptor_present = location.valid

    try:
        result = parse_knowledge_base(location)
    except CIError as exc:
        logger.debug("[KB health] Parse failed: %s", exc)
        health.error = str(exc)
        return health

    health.agent_count = len(result.registry)
    health.diagnostic_count = len(result.diagnostics)
    return health


def format_health(health: KBHealth) -> str:
    """
    Format a :class:`KBHealth` into a human-readable report.

    Parameters
    ----------
    health:
        The health status to format.

    Returns
    -------
    str
        Multi-line human-readable report.
    """
    def _status(ok: bool) -> str:
        return "OK" if ok else "NOT OK"

    lines = [
        "",
        "Knowledge Base Health Report",
        "=" * 40,
        "",
        "Knowledge base:",
        f"  Resolved      : {_status(health.resolved)}",
        f"  Path          : {health.kb_path or 'n/a'}",
        f"  Source        : {health.source or 'n/a'}",
        f"  AGENTS.md     : {_status(health.descriptor_present)}",
        f"  Agents        : {health.agent_count}",
        f"  Diagnostics   : {health.diagnostic_count}",
        "",
        "Launcher:",
        f"  Program       : {health.launcher}",
        f"  Installed     : {_status(health.launcher_available)}",
        "",
    ]
    if health.error:
        lines += [f"Error: {health.error}", ""]
    return "\n".join(lines)


def to_json(health: KBHealth) -> str:
    """Serialise a :class:`KBHealth` to JSON."""
    return json.dumps(asdict(health), indent=2)
