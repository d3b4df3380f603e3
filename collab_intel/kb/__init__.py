"""
Locating the CollaborativeIntelligence root and parsing its agent descriptor.
"""

from .parser import ParseDiagnostic, ParseResult, parse_knowledge_base
from .paths import KnowledgeBaseLocation, ResolutionCandidate, resolve_knowledge_base
from .registry import AgentProfile, AgentRegistry

__all__ = [
    "AgentProfile",
    "AgentRegistry",
    "KnowledgeBaseLocation",
    "ParseDiagnostic",
    "ParseResult",
    "ResolutionCandidate",
    "parse_knowledge_base",
    "resolve_knowledge_base",
]
