"""Tests for REPL mode: command handling and question dispatch."""

import json
from unittest.mock import MagicMock, patch

import pytest

from grc import ModelProviderError, Session
from grc.agent import COMPLETION_MARKER, Completion, _repl_load, repl_loop
from grc.tools import Content, Success


class ScriptedLLM:
    def __init__(self, replies):
        self.replies = list(replies)
        self.calls = 0

    def __call__(self, model_id, messages):
        self.calls += 1
        reply = self.replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        return Completion(reply, "stop")


@pytest.fixture(autouse=True)
def _home(tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path / "home"))


def _session(tmp_path, replies, **kwargs):
    llm = ScriptedLLM(replies)
    kwargs.setdefault("memory_dir", str(tmp_path / "memory"))
    session = Session(
        base_dir=str(tmp_path),
        complete=llm,
        tools={"Read": lambda args: Success(Content("1: x", 1))},
        light_prompt="light",
        heavy_prompt="heavy",
        **kwargs,
    )
    return session, llm


def _patch_prompt(inputs):
    """Replace PromptSession with a mock whose .prompt() returns values from inputs."""
    mock_session = MagicMock()
    mock_session.prompt.side_effect = [v() if isinstance(v, type) else v for v in inputs]
    return patch("prompt_toolkit.PromptSession", return_value=mock_session)


class TestReplLoop:
    @pytest.mark.parametrize("command", ["/exit", "/quit"])
    def test_exit_commands(self, tmp_path, command):
        session, llm = _session(tmp_path, [])
        with _patch_prompt([command]):
            repl_loop(session, verbose=False)
        assert llm.calls == 0

    def test_eof_and_ctrl_c(self, tmp_path):
        for terminator in (EOFError, KeyboardInterrupt):
            session, llm = _session(tmp_path, [])
            with _patch_prompt([terminator]):
                repl_loop(session, verbose=False)
            assert llm.calls == 0

    def test_empty_lines_ignored(self, tmp_path, capsys):
        session, llm = _session(tmp_path, [f"hi. {COMPLETION_MARKER}"])
        with _patch_prompt(["", "   ", "hello", "/exit"]):
            repl_loop(session, verbose=False)
        assert llm.calls == 1
        assert capsys.readouterr().out.strip() == "hi."

    def test_initial_question_runs_first(self, tmp_path, capsys):
        session, _ = _session(tmp_path, [f"first. {COMPLETION_MARKER}"])
        with _patch_prompt(["/exit"]):
            repl_loop(session, initial="what is this?", verbose=False)
        assert "first." in capsys.readouterr().out
        assert session.context.session_log[0]["content"] == "what is this?"

    def test_history_persists_across_questions(self, tmp_path):
        session, _ = _session(
            tmp_path,
            [
                '<tool name="Read" file_path="a.py" />',
                f"done. {COMPLETION_MARKER}",
                f"again. {COMPLETION_MARKER}",
            ],
        )
        with _patch_prompt(["read a.py", "and then?", "/exit"]):
            repl_loop(session, verbose=False)
        users = [m["content"] for m in session.context.session_log if m["role"] == "user"]
        assert users == ["read a.py", "and then?"]
        assert session.iterations == 3

    def test_clear_resets_session(self, tmp_path):
        session, _ = _session(tmp_path, [f"ok. {COMPLETION_MARKER}"])
        with _patch_prompt(["hello", "/clear", "/exit"]):
            repl_loop(session, verbose=False)
        assert session.context.session_log == []
        assert session.iterations == 0

    def test_provider_error_does_not_end_repl(self, tmp_path, capsys):
        session, llm = _session(
            tmp_path, [ModelProviderError("rate limited"), f"ok. {COMPLETION_MARKER}"]
        )
        with _patch_prompt(["first", "second", "/exit"]):
            repl_loop(session, verbose=False)
        assert llm.calls == 2
        captured = capsys.readouterr()
        assert "rate limited" in captured.err
        assert "ok." in captured.out

    def test_help_and_history(self, tmp_path, capsys):
        session, _ = _session(tmp_path, [])
        with _patch_prompt(["/help", "/history", "/exit"]):
            repl_loop(session, verbose=False)
        err = capsys.readouterr().err
        assert "/load <id>" in err
        assert "No saved sessions." in err

    def test_old_sessions_pruned_on_start(self, tmp_path):
        memory = tmp_path / "memory"
        memory.mkdir()
        (memory / "session_1000.json").write_text("{}", encoding="utf-8")
        session, _ = _session(tmp_path, [])
        with _patch_prompt(["/exit"]):
            repl_loop(session, verbose=False)
        assert not (memory / "session_1000.json").exists()


class TestReplLoad:
    def test_load_restores_messages(self, tmp_path, capsys):
        memory = tmp_path / "memory"
        memory.mkdir()
        (memory / "session_123.json").write_text(
            json.dumps(
                {
                    "id": "123",
                    "messages": [
                        {"role": "user", "content": "q"},
                        {"role": "assistant", "content": "a"},
                    ],
                }
            ),
            encoding="utf-8",
        )
        session, _ = _session(tmp_path, [])
        _repl_load(session, " 123 ")
        assert "restored 2 messages" in capsys.readouterr().err
        assert len(session.context.session_log) == 2

    def test_load_missing_and_invalid(self, tmp_path, capsys):
        session, _ = _session(tmp_path, [])
        _repl_load(session, "999")
        _repl_load(session, "../x")
        _repl_load(session, "")
        err = capsys.readouterr().err
        assert "no saved session 999" in err
        assert "digits only" in err
        assert "requires a session id" in err
