"""Tests for collab_intel.project_config: parsing and upward discovery."""

import json

import pytest

from collab_intel.errors import ProjectConfigError
from collab_intel.project_config import (
    AutoAcceptSettings,
    find_nearest_config,
    find_settings_file,
    load_project_config,
    parse_project_config,
)


def _write(path, data):
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


# ─── parse_project_config ───────────────────────────────────────────


class TestParseProjectConfig:

    def test_full_document(self, tmp_path):
        cfg = parse_project_config({
            "project_name": "billing",
            "ci_path": "../kb",
            "active_agents": ["Athena", "Hermes"],
            "auto_accept": {
                "global": False,
                "agents": ["Athena"],
                "agent_load": True,
                "agent_activate": False,
            },
            "metadata": {"team": "core"},
        }, tmp_path / ".ci-config.json")
        assert cfg.project_name == "billing"
        assert cfg.active_agents == ("Athena", "Hermes")
        assert cfg.auto_accept == AutoAcceptSettings(
            global_override=False, agents=("Athena",),
            agent_load=True, agent_activate=False)
        assert cfg.metadata == {"team": "core"}
        assert cfg.root == tmp_path

    def test_global_absent_is_none(self, tmp_path):
        cfg = parse_project_config({"auto_accept": {}}, tmp_path / "x")
        assert cfg.auto_accept.global_override is None

    def test_empty_document(self, tmp_path):
        cfg = parse_project_config(None, tmp_path / "x")
        assert cfg.project_name == ""
        assert cfg.ci_path is None
        assert cfg.auto_accept == AutoAcceptSettings()

    def test_agents_as_comma_string(self, tmp_path):
        cfg = parse_project_config({"auto_accept": {"agents": "Athena, Hermes"}},
                                   tmp_path / "x")
        assert cfg.auto_accept.agents == ("Athena", "Hermes")

    def test_non_mapping_rejected(self, tmp_path):
        with pytest.raises(ProjectConfigError):
            parse_project_config(["not", "a", "mapping"], tmp_path / "x")

    def test_non_bool_global_rejected(self, tmp_path):
        with pytest.raises(ProjectConfigError) as exc_info:
            parse_project_config({"auto_accept": {"global": "yes"}}, tmp_path / "x")
        assert "auto_accept.global" in str(exc_info.value)

    def test_resolved_ci_path_relative_to_file(self, tmp_path):
        cfg = parse_project_config({"ci_path": "../kb"},
                                   tmp_path / "proj" / ".ci-config.json")
        assert cfg.resolved_ci_path() == (tmp_path / "kb").resolve()

    @pytest.mark.parametrize("value", [False, 0, "", []])
    def test_falsy_non_mapping_auto_accept_rejected(self, tmp_path, value):
        with pytest.raises(ProjectConfigError) as exc_info:
            parse_project_config({"auto_accept": value}, tmp_path / "x")
        assert "auto_accept" in str(exc_info.value)

    def test_null_auto_accept_means_defaults(self, tmp_path):
        cfg = parse_project_config({"auto_accept": None}, tmp_path / "x")
        assert cfg.auto_accept == AutoAcceptSettings()

    def test_to_dict_uses_global_key(self, tmp_path):
        cfg = parse_project_config({"auto_accept": {"global": True}}, tmp_path / "x")
        assert cfg.to_dict()["auto_accept"]["global"] is True


# ─── discovery ──────────────────────────────────────────────────────


class TestDiscovery:

    def test_nearest_ancestor_wins(self, tmp_path):
        _write(tmp_path / ".ci-config.json", {"project_name": "outer"})
        inner = tmp_path / "inner"
        (inner / "deep").mkdir(parents=True)
        _write(inner / ".ci-config.json", {"project_name": "inner"})
        cfg = find_nearest_config(inner / "deep")
        assert cfg.project_name == "inner"
        assert cfg.path == inner / ".ci-config.json"

    def test_yaml_settings_accepted(self, tmp_path):
        (tmp_path / ".ci-config.yaml").write_text(
            "project_name: yamly\nauto_accept:\n  agents: [Athena]\n", encoding="utf-8")
        assert find_settings_file(tmp_path) == tmp_path / ".ci-config.yaml"
        assert find_nearest_config(tmp_path).auto_accept.agents == ("Athena",)

    def test_none_when_absent(self, tmp_path):
        assert find_nearest_config(tmp_path) is None

    def test_invalid_json_raises(self, tmp_path):
        path = tmp_path / ".ci-config.json"
        path.write_text("{not: [valid", encoding="utf-8")
        with pytest.raises(ProjectConfigError):
            load_project_config(path)

    def test_unparsable_file_skipped_for_ancestor(self, tmp_path, caplog):
        _write(tmp_path / ".ci-config.json", {"project_name": "outer"})
        inner = tmp_path / "inner"
        inner.mkdir()
        (inner / ".ci-config.json").write_text("{ not json", encoding="utf-8")
        with caplog.at_level("WARNING", logger="collab_intel.project_config"):
            cfg = find_nearest_config(inner)
        assert cfg.project_name == "outer"
        assert str(inner / ".ci-config.json") in caplog.text

    def test_only_unparsable_file_gives_none(self, tmp_path):
        (tmp_path / ".ci-config.json").write_text("{ not json", encoding="utf-8")
        assert find_nearest_config(tmp_path) is None

    def test_invalid_shape_skipped(self, tmp_path):
        _write(tmp_path / ".ci-config.json", {"auto_accept": False})
        assert find_nearest_config(tmp_path) is None
