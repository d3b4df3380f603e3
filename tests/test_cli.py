"""
Tests for collab_intel.cli

Commands run in-process through ``main(argv)``; launching is either in
``--print`` mode or mocked.
"""

from __future__ import annotations

import json
from unittest.mock import patch

import pytest

from collab_intel import __version__
from collab_intel.cli import EXIT_ERROR, EXIT_INTERRUPTED, main


DESCRIPTOR = """\
### ProjectArchitect - System design
Architect summary
### Athena - Knowledge architect
Athena summary
### 7up - broken heading
"""


@pytest.fixture
def project(tmp_path, monkeypatch):
    """A project whose settings point at a two-agent knowledge base."""
    for key in ("CI_PATH", "CI_LAUNCHER", "CI_AUTO_ACCEPT_FLAG"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("CI_LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("CI_SET_TITLE", "false")

    kb = tmp_path / "kb"
    kb.mkdir()
    (kb / "AGENTS.md").write_text(DESCRIPTOR, encoding="utf-8")
    proj = tmp_path / "project"
    proj.mkdir()
    (proj / ".ci-config.json").write_text(json.dumps({
        "project_name": "demo",
        "ci_path": "../kb",
        "auto_accept": {"global": False, "agents": ["Athena"]},
    }), encoding="utf-8")
    monkeypatch.chdir(proj)
    return proj


# ─── load ───────────────────────────────────────────────────────────


class TestLoad:

    def test_print_mode(self, project, capsys):
        assert main(["load", "athena", "--print", "-c", "look at the parser"]) == 0
        out = capsys.readouterr().out
        assert out.startswith("Athena summary")
        assert "- Auto-accept: enabled (agent-list)" in out
        assert out.rstrip().endswith("look at the parser")

    def test_arguments_forwarded(self, project):
        with patch("collab_intel.cli.load_agent", return_value=7) as mock_load:
            status = main(["load", "Athena", "-y", "-f", "alt.md",
                           "--ci-path", "/kb"])
        assert status == 7
        args, kwargs = mock_load.call_args
        assert args == ("Athena",)
        assert kwargs["force"] is True
        assert kwargs["memory_file"] == "alt.md"
        assert kwargs["ci_path"] == "/kb"
        assert kwargs["print_only"] is False

    def test_unknown_agent(self, project, capsys):
        assert main(["load", "Zeus", "--print"]) == EXIT_ERROR
        err = capsys.readouterr().err
        assert "Agent 'Zeus' not found" in err
        assert "Athena, ProjectArchitect" in err

    def test_missing_launcher(self, project, capsys, monkeypatch):
        monkeypatch.setenv("CI_LAUNCHER", "ci-test-no-such-program")
        assert main(["load", "Athena"]) == EXIT_ERROR
        assert "ci-test-no-such-program" in capsys.readouterr().err

    def test_unreadable_memory_file(self, project, capsys):
        assert main(["load", "Athena", "--print", "-f", "missing.md"]) == EXIT_ERROR
        assert "missing.md" in capsys.readouterr().err

    def test_interrupt_exit_status(self, project):
        with patch("collab_intel.cli.load_agent", side_effect=KeyboardInterrupt):
            assert main(["load", "Athena"]) == EXIT_INTERRUPTED

    def test_bad_ci_path_reports_candidates(self, project, tmp_path, capsys):
        assert main(["load", "Athena", "--print",
                     "--ci-path", str(tmp_path / "nowhere")]) == EXIT_ERROR
        err = capsys.readouterr().err
        assert "Tried, in order:" in err
        assert "nowhere" in err

    def test_parse_warnings_on_stderr(self, project, capsys):
        assert main(["load", "Athena", "--print"]) == 0
        captured = capsys.readouterr()
        assert "warning:" in captured.err
        assert "7up" in captured.err
        assert "7up" not in captured.out

    def test_activate_forwards_command(self, project):
        with patch("collab_intel.cli.load_agent", return_value=0) as mock_load:
            assert main(["activate", "Athena", "-c", "triage"]) == 0
            assert mock_load.call_args.kwargs["command"] == "activate"
            assert mock_load.call_args.kwargs["extra"] == "triage"
            main(["load", "Athena"])
            assert mock_load.call_args.kwargs["command"] == "load"

    def test_activate_print_mode(self, project, capsys):
        settings = project / ".ci-config.json"
        settings.write_text(json.dumps({
            "ci_path": "../kb",
            "auto_accept": {"agent_activate": True},
        }), encoding="utf-8")
        assert main(["activate", "projectarchitect", "--print"]) == 0
        assert "- Auto-accept: enabled (category)" in capsys.readouterr().out
        main(["load", "projectarchitect", "--print"])
        assert "- Auto-accept: disabled (default)" in capsys.readouterr().out


# ─── agents / where / health ────────────────────────────────────────


class TestInspection:

    def test_agents_file_order(self, project, capsys):
        assert main(["agents"]) == 0
        captured = capsys.readouterr()
        lines = captured.out.splitlines()
        assert "2" in lines[0]
        assert lines[1].split()[0] == "ProjectArchitect"
        assert lines[2].split()[0] == "Athena"
        assert "7up" in captured.err

    def test_agents_sorted(self, project, capsys):
        main(["agents", "--sort"])
        lines = capsys.readouterr().out.splitlines()
        assert [line.split()[0] for line in lines[1:]] == ["Athena", "ProjectArchitect"]

    def test_where(self, project, tmp_path, capsys):
        assert main(["where"]) == 0
        out = capsys.readouterr().out
        assert str((tmp_path / "kb").resolve()) in out
        assert "config" in out

    def test_health_json(self, project, capsys):
        main(["health", "--json"])
        data = json.loads(capsys.readouterr().out)
        assert data["resolved"] is True
        assert data["agent_count"] == 2
        assert data["diagnostic_count"] == 1

    def test_broken_settings_with_explicit_path(self, project, tmp_path, capsys):
        (project / ".ci-config.json").write_text("{ not json", encoding="utf-8")
        assert main(["where", "--ci-path", str(tmp_path / "kb")]) == 0
        assert "explicit" in capsys.readouterr().out
        assert main(["agents", "--ci-path", str(tmp_path / "kb")]) == 0
        assert "Athena" in capsys.readouterr().out


# ─── info ───────────────────────────────────────────────────────────


class TestInfo:

    def test_report(self, project, capsys):
        settings = json.loads((project / ".ci-config.json").read_text())
        settings["active_agents"] = ["athena"]
        (project / ".ci-config.json").write_text(json.dumps(settings))
        assert main(["info", "Athena"]) == 0
        out = capsys.readouterr().out
        assert "Agent: Athena" in out
        assert "Status        : active" in out
        assert "load          : enabled (agent-list)" in out

    def test_json(self, project, capsys):
        assert main(["info", "projectarchitect", "--json"]) == 0
        data = json.loads(capsys.readouterr().out)
        assert data["name"] == "ProjectArchitect"
        assert data["status"] == "available"
        assert data["project"] == "demo"
        assert data["learning_lines"] is None

    def test_unknown_agent(self, project, capsys):
        assert main(["info", "Zeus"]) == EXIT_ERROR
        assert "Agent 'Zeus' not found" in capsys.readouterr().err


# ─── config show ────────────────────────────────────────────────────


class TestConfigShow:

    def test_yaml_output(self, project, capsys):
        assert main(["config", "show", "--agent", "athena"]) == 0
        out = capsys.readouterr().out
        assert "project_name: demo" in out
        assert "Auto-accept for athena (load): enabled (agent-list)" in out

    def test_json_output(self, project, capsys):
        main(["config", "show", "--json", "--agent", "Hermes"])
        data = json.loads(capsys.readouterr().out)
        assert data["project"]["auto_accept"]["global"] is False
        assert data["auto_accept_policy"] == {
            "agent": "Hermes", "command": "load",
            "decision": False, "source": "default",
        }

    def test_no_settings(self, tmp_path, monkeypatch, capsys):
        monkeypatch.setenv("CI_LOG_DIR", str(tmp_path / "logs"))
        empty = tmp_path / "empty"
        empty.mkdir()
        monkeypatch.chdir(empty)
        assert main(["config", "show"]) == 0
        assert "No project settings found" in capsys.readouterr().out


class TestGlobalOptions:

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--version"])
        assert exc_info.value.code == 0
        assert __version__ in capsys.readouterr().out

    def test_command_required(self, capsys):
        with pytest.raises(SystemExit):
            main([])
