"""
Decides whether a session launches unattended ("auto-accept").

Precedence is an ordered tuple of resolvers; the first one that returns a
policy wins:

1. ``--auto-accept`` on the command line           -> ``flag``
2. project ``auto_accept.global`` is true           -> ``global``
3. agent in ``auto_accept.agents`` (any case)       -> ``agent-list``
4. ``agent_load`` / ``agent_activate`` for command  -> ``category``
5. nothing matched                                  -> ``default`` (False)

``global: false`` is not a veto: it simply does not match, so the allow-list
and category flags below it still apply.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from .project_config import AutoAcceptSettings, ProjectConfig

logger = logging.getLogger(__name__)

SOURCE_FLAG = "flag"
SOURCE_GLOBAL = "global"
SOURCE_AGENT_LIST = "agent-list"
SOURCE_CATEGORY = "category"
SOURCE_DEFAULT = "default"


@dataclass(frozen=True)
class AutoAcceptPolicy:
    """The decision plus the layer that produced it."""
    decision: bool
    source: str

    def __str__(self) -> str:
        return f"{'enabled' if self.decision else 'disabled'} ({self.source})"


@dataclass(frozen=True)
class _Request:
    agent_name: str
    force: bool
    settings: AutoAcceptSettings
    command: str


def _from_flag(req: _Request) -> Optional[AutoAcceptPolicy]:
    if req.force:
        return AutoAcceptPolicy(True, SOURCE_FLAG)
    return None


def _from_global(req: _Request) -> Optional[AutoAcceptPolicy]:
    if req.settings.global_override is True:
        return AutoAcceptPolicy(True, SOURCE_GLOBAL)
    return None


def _from_agent_list(req: _Request) -> Optional[AutoAcceptPolicy]:
    wanted = req.agent_name.casefold()
    if any(name.casefold() == wanted for name in req.settings.agents):
        return AutoAcceptPolicy(True, SOURCE_AGENT_LIST)
    return None


def _from_category(req: _Request) -> Optional[AutoAcceptPolicy]:
    if req.settings.category_enabled(req.command):
        return AutoAcceptPolicy(True, SOURCE_CATEGORY)
    return None


def _fallback(req: _Request) -> Optional[AutoAcceptPolicy]:
    return AutoAcceptPolicy(False, SOURCE_DEFAULT)


RESOLVERS: tuple[Callable[[_Request], Optional[AutoAcceptPolicy]], ...] = (
    _from_flag,
    _from_global,
    _from_agent_list,
    _from_category,
    _fallback,
)


def resolve_auto_accept(
    agent_name: str,
    force: bool = False,
    project_config: Optional[ProjectConfig] = None,
    command: str = "load",
) -> AutoAcceptPolicy:
    """
    Compute the auto-accept policy for launching *agent_name*.

    Parameters
    ----------
    agent_name:
        Canonical agent name (matched case-insensitively against the
        allow-list).
    force:
        True when ``--auto-accept`` was passed.
    project_config:
        Nearest project settings, or None when the project has none.
    command:
        ``load`` or ``activate``; selects the category flag.

    Returns
    -------
    AutoAcceptPolicy
        Always a decision; the last resolver never abstains.
    """
    settings = project_config.auto_accept if project_config else AutoAcceptSettings()
    req = _Request(agent_name=agent_name, force=force,
                   settings=settings, command=command)
    for resolver in RESOLVERS:
        policy = resolver(req)
        if policy is not None:
            logger.debug("Auto-accept for %s: %s", agent_name, policy)
            return policy
    raise AssertionError("resolver chain ended without a decision")
