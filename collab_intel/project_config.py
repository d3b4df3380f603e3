"""
The read-only project settings file (``.ci-config.json``) a project keeps
at its root.  It is found by walking from the working directory up to the
filesystem root; the nearest ancestor holding a settings file wins.

Example::

    {
      "project_name": "billing-service",
      "ci_path": "../CollaborativeIntelligence",
      "active_agents": ["Athena", "ProjectArchitect"],
      "auto_accept": {
        "global": false,
        "agents": ["Athena"],
        "agent_load": false,
        "agent_activate": false
      }
    }
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator, Optional

import yaml

from .errors import ProjectConfigError

logger = logging.getLogger(__name__)

# The YAML loader also accepts the JSON form
SETTINGS_FILENAMES = (".ci-config.json", ".ci-config.yaml", ".ci-config.yml")


@dataclass(frozen=True)
class AutoAcceptSettings:
    """The ``auto_accept`` block of the project settings."""

    # Tri-state: None means "not set", which differs from an explicit False
    global_override: Optional[bool] = None
    agents: tuple[str, ...] = ()
    agent_load: bool = False
    agent_activate: bool = False

    def category_enabled(self, command: str) -> bool:
        """Return the category flag covering *command* (``load``/``activate``)."""
        if command == "load":
            return self.agent_load
        if command == "activate":
            return self.agent_activate
        return False


@dataclass(frozen=True)
class ProjectConfig:
    """Persisted project settings.  Never written back by this tool."""

    project_name: str = ""
    ci_path: Optional[str] = None
    active_agents: tuple[str, ...] = ()
    auto_accept: AutoAcceptSettings = field(default_factory=AutoAcceptSettings)
    metadata: dict = field(default_factory=dict)
    path: Optional[Path] = None

    @property
    def root(self) -> Optional[Path]:
        """Directory holding the settings file."""
        return self.path.parent if self.path is not None else None

    def resolved_ci_path(self) -> Optional[Path]:
        """``ci_path`` made absolute relative to the settings file's directory."""
        if not self.ci_path:
            return None
        p = Path(self.ci_path).expanduser()
        if not p.is_absolute() and self.root is not None:
            p = self.root / p
        return p.resolve()

    def to_dict(self) -> dict[str, Any]:
        return {
            "project_name": self.project_name,
            "ci_path": self.ci_path,
            "active_agents": list(self.active_agents),
            "auto_accept": {
                "global": self.auto_accept.global_override,
                "agents": list(self.auto_accept.agents),
                "agent_load": self.auto_accept.agent_load,
                "agent_activate": self.auto_accept.agent_activate,
            },
            "metadata": self.metadata,
            "path": str(self.path) if self.path else None,
        }


def _optional_bool(value: Any, key: str, path: Path) -> Optional[bool]:
    if value is None or isinstance(value, bool):
        return value
    raise ProjectConfigError(path, f"'{key}' must be true, false or null")


def _name_list(value: Any, key: str, path: Path) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return tuple(s.strip() for s in value.split(",") if s.strip())
    if isinstance(value, list):
        return tuple(str(v).strip() for v in value if str(v).strip())
    raise ProjectConfigError(path, f"'{key}' must be a list of agent names")


def parse_project_config(data: Any, path: Path) -> ProjectConfig:
    """Build a :class:`ProjectConfig` from already-loaded settings data."""
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ProjectConfigError(path, "top level must be a mapping")

    aa = data.get("auto_accept")
    if aa is None:
        aa = {}
    if not isinstance(aa, dict):
        raise ProjectConfigError(path, "'auto_accept' must be a mapping")

    auto_accept = AutoAcceptSettings(
        global_override=_optional_bool(aa.get("global"), "auto_accept.global", path),
        agents=_name_list(aa.get("agents"), "auto_accept.agents", path),
        agent_load=bool(_optional_bool(aa.get("agent_load"), "auto_accept.agent_load", path)),
        agent_activate=bool(
            _optional_bool(aa.get("agent_activate"), "auto_accept.agent_activate", path)),
    )

    ci_path = data.get("ci_path")
    metadata = data.get("metadata")
    return ProjectConfig(
        project_name=str(data.get("project_name") or ""),
        ci_path=str(ci_path).strip() if ci_path else None,
        active_agents=_name_list(data.get("active_agents"), "active_agents", path),
        auto_accept=auto_accept,
        metadata=metadata if isinstance(metadata, dict) else {},
        path=path,
    )


def load_project_config(path: Path) -> ProjectConfig:
    """Read and validate one settings file."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ProjectConfigError(path, str(exc)) from exc
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ProjectConfigError(path, f"not valid JSON/YAML: {exc}") from exc
    return parse_project_config(data, path)


def iter_settings_files(start_dir: Optional[Path] = None) -> Iterator[Path]:
    """Yield settings files from *start_dir* upward, nearest first."""
    current = (start_dir or Path.cwd()).resolve()
    for directory in (current, *current.parents):
        for name in SETTINGS_FILENAMES:
            candidate = directory / name
            if candidate.is_file():
                yield candidate


def find_settings_file(start_dir: Optional[Path] = None) -> Optional[Path]:
    """Return the nearest settings file from *start_dir* upward, or None."""
    return next(iter_settings_files(start_dir), None)


def find_nearest_config(start_dir: Optional[Path] = None) -> Optional[ProjectConfig]:
    """Load the nearest usable project settings, or None when there are none.

    A settings file that cannot be read or parsed is skipped with a warning
    and the search continues with the next ancestor.
    """
    for path in iter_settings_files(start_dir):
        try:
            config = load_project_config(path)
        except ProjectConfigError as exc:
            logger.warning("Ignoring %s", exc)
            continue
        logger.debug("Project settings loaded from %s", path)
        return config
    return None
