"""Tests for collab_intel.session.terminal."""

import io

import pytest

from collab_intel.session.terminal import TerminalTitle, terminal_title


class _TTY(io.StringIO):
    def isatty(self):
        return True


class TestTerminalTitle:

    def test_supported_on_tty(self):
        assert TerminalTitle(_TTY(), env={}).supported is True

    def test_unsupported_without_terminal(self):
        assert TerminalTitle(io.StringIO(), env={}).supported is False

    def test_term_env_enables(self):
        assert TerminalTitle(io.StringIO(), env={"TERM": "xterm"}).supported is True

    def test_dumb_terminal_disabled(self):
        assert TerminalTitle(_TTY(), env={"TERM": "dumb"}).supported is False

    def test_force_env(self):
        term = TerminalTitle(io.StringIO(), env={"CI_FORCE_WINDOW_TITLE": "true",
                                                 "TERM": "dumb"})
        assert term.supported is True

    def test_set_writes_osc_sequence(self):
        stream = _TTY()
        term = TerminalTitle(stream, env={})
        term.set("Athena")
        assert stream.getvalue() == "\x1b]0;Athena\x07"
        assert term.current == "Athena"

    def test_control_characters_stripped(self):
        stream = _TTY()
        TerminalTitle(stream, env={}).set("Ath\x07ena")
        assert stream.getvalue() == "\x1b]0;Athena\x07"

    def test_capture_and_restore_use_title_stack(self):
        stream = _TTY()
        term = TerminalTitle(stream, env={})
        previous = term.capture()
        term.set("Athena")
        term.restore(previous)
        assert previous is None
        assert stream.getvalue() == "\x1b[22;0t\x1b]0;Athena\x07\x1b[23;0t"
        assert term.current is None

    def test_restore_known_title(self):
        stream = _TTY()
        term = TerminalTitle(stream, env={})
        term.set("shell")
        previous = term.capture()
        term.set("Athena")
        term.restore(previous)
        assert previous == "shell"
        assert stream.getvalue().endswith("\x1b[23;0t\x1b]0;shell\x07")

    def test_unsupported_writes_nothing(self):
        stream = io.StringIO()
        term = TerminalTitle(stream, env={})
        term.restore(term.capture())
        term.set("Athena")
        assert stream.getvalue() == ""

    def test_closed_stream_is_not_an_error(self):
        stream = _TTY()
        stream.close()
        TerminalTitle(stream, env={"TERM": "xterm"}).set("Athena")


class _FakeTerminal:
    def __init__(self, title="shell"):
        self.title = title
        self.calls = []

    def capture(self):
        self.calls.append("capture")
        return self.title

    def set(self, title):
        self.calls.append(f"set:{title}")
        self.title = title

    def restore(self, previous):
        self.calls.append("restore")
        self.title = previous


class TestTerminalTitleContext:

    def test_title_held_inside_block(self):
        term = _FakeTerminal()
        with terminal_title(term, "Athena"):
            assert term.title == "Athena"
        assert term.title == "shell"

    def test_restored_on_exception(self):
        term = _FakeTerminal()
        with pytest.raises(RuntimeError):
            with terminal_title(term, "Athena"):
                raise RuntimeError("boom")
        assert term.title == "shell"
        assert term.calls == ["capture", "set:Athena", "restore"]

    def test_restored_on_interrupt(self):
        term = _FakeTerminal()
        with pytest.raises(KeyboardInterrupt):
            with terminal_title(term, "Athena"):
                raise KeyboardInterrupt
        assert term.title == "shell"

    def test_no_terminal(self):
        with terminal_title(None, "Athena"):
            pass
