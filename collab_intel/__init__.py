"""
Load agents from a CollaborativeIntelligence knowledge base into external
assistant sessions.
"""

__version__ = "0.1.0"

from .auto_accept import AutoAcceptPolicy, resolve_auto_accept
from .kb.parser import parse_knowledge_base
from .kb.paths import resolve_knowledge_base
from .session.launcher import SessionLauncher, load_agent

__all__ = [
    "AutoAcceptPolicy",
    "SessionLauncher",
    "load_agent",
    "parse_knowledge_base",
    "resolve_auto_accept",
    "resolve_knowledge_base",
]
