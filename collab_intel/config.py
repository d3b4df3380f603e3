"""
Configuration — loads tool settings from .ci.yaml, environment variables,
and built-in defaults (in that priority order: CLI args > env > YAML > defaults).

Project-level settings (.ci-config.json) live in :mod:`project_config`.
"""

import os
import shlex

import yaml


_DEFAULTS = {
    "launcher": "claude",
    "launcher_args": [],
    "auto_accept_flag": "--dangerously-skip-permissions",
    "set_title": True,
    "log_dir": "~/.ci/logs",
    "search_paths": [],
}

# Config file search locations
_CONFIG_FILENAMES = [".ci.yaml", ".ci.yml"]


def _find_config_file(explicit_path: str | None = None) -> str | None:
    """Find the config file. Checks explicit path, CWD, then user home."""
    if explicit_path:
        if os.path.isfile(explicit_path):
            return explicit_path
        return None

    # Search CWD first, then home directory
    search_dirs = [os.getcwd(), os.path.expanduser("~")]
    for d in search_dirs:
        for name in _CONFIG_FILENAMES:
            path = os.path.join(d, name)
            if os.path.isfile(path):
                return path
    return None


def _load_yaml(path: str) -> dict:
    """Load YAML file, returns empty dict on failure."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return data if isinstance(data, dict) else {}
    except (OSError, yaml.YAMLError):
        return {}


def _str_list(value) -> list[str]:
    if isinstance(value, str):
        return shlex.split(value)
    if isinstance(value, list):
        return [str(v) for v in value]
    return []


class Config:
    """Tool configuration.

    Settings are resolved in priority order:
    1. CLI arguments (handled by caller)
    2. Environment variables
    3. .ci.yaml config file
    4. Built-in defaults
    """

    def __init__(self, yaml_data: dict | None = None, path: str | None = None):
        yd = yaml_data or {}
        self.path = path

        # Helper: env var > yaml > default
        def _get(env_key: str | None, yaml_key: str, default, cast=str):
            env_val = os.getenv(env_key) if env_key else None
            if env_val is not None and env_val != "":
                return cast(env_val)
            yaml_val = yd.get(yaml_key)
            if yaml_val is not None:
                return cast(yaml_val)
            return default

        def _get_bool(env_key: str, yaml_key: str, default: bool) -> bool:
            env_val = os.getenv(env_key)
            if env_val is not None and env_val != "":
                return env_val.lower() in ("1", "true", "yes", "on")
            yaml_val = yd.get(yaml_key)
            if yaml_val is not None:
                return bool(yaml_val)
            return default

        self.LAUNCHER = _get("CI_LAUNCHER", "launcher", _DEFAULTS["launcher"])
        self.LAUNCHER_ARGS: list[str] = _str_list(
            yd.get("launcher_args", _DEFAULTS["launcher_args"]))
        self.AUTO_ACCEPT_FLAG = _get("CI_AUTO_ACCEPT_FLAG", "auto_accept_flag",
                                     _DEFAULTS["auto_accept_flag"])
        self.SET_TITLE = _get_bool("CI_SET_TITLE", "set_title",
                                   _DEFAULTS["set_title"])
        self.LOG_DIR = os.path.expanduser(
            _get("CI_LOG_DIR", "log_dir", _DEFAULTS["log_dir"]))

        # Extra knowledge base locations, tried before the built-in list
        self.SEARCH_PATHS: list[str] = [
            os.path.expanduser(p)
            for p in _str_list(yd.get("search_paths", _DEFAULTS["search_paths"]))
        ]

    @classmethod
    def load(cls, config_path: str | None = None) -> "Config":
        """Load config from YAML file (if found) + env vars + defaults."""
        path = _find_config_file(config_path)
        yaml_data = _load_yaml(path) if path else {}
        return cls(yaml_data, path=path)
