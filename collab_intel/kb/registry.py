"""
The immutable, insertion-ordered mapping of agent name to profile that one
parse of the knowledge base produces.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Iterator, Optional

from ..errors import AgentNotFound


@dataclass(frozen=True)
class AgentProfile:
    """A named capability/context bundle loadable into a session."""
    name: str
    description: str
    memory: str
    index: int                           # first-occurrence position
    memory_source: Optional[Path] = None  # detail file, None = descriptor summary


class AgentRegistry(Mapping):
    """Read-only mapping of agent name to :class:`AgentProfile`.

    Iteration follows first-occurrence order in the descriptor.  Callers that
    want alphabetical output sort for themselves.
    """

    def __init__(self, profiles: Mapping[str, AgentProfile] | None = None):
        self._profiles = MappingProxyType(dict(profiles or {}))

    def __getitem__(self, name: str) -> AgentProfile:
        return self._profiles[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._profiles)

    def __len__(self) -> int:
        return len(self._profiles)

    def __repr__(self) -> str:
        return f"AgentRegistry({list(self._profiles)!r})"

    def names(self) -> list[str]:
        return list(self._profiles)

    def find(self, name: str) -> Optional[AgentProfile]:
        """Exact match first, then a case-insensitive one."""
        profile = self._profiles.get(name)
        if profile is not None:
            return profile
        wanted = name.casefold()
        for key, profile in self._profiles.items():
            if key.casefold() == wanted:
                return profile
        return None

    def require(self, name: str) -> AgentProfile:
        """Like :meth:`find` but raises :class:`AgentNotFound`."""
        profile = self.find(name)
        if profile is None:
            raise AgentNotFound(name, sorted(self._profiles, key=str.casefold))
        return profile
