"""Tests for grc.memory.SessionStore."""

import json
import time

import pytest

from grc.memory import SessionStore


def test_start_session_writes_document(tmp_path):
    store = SessionStore(tmp_path, working_directory="/work")
    sid = store.start_session()
    assert sid.isdigit()
    data = json.loads((tmp_path / f"session_{sid}.json").read_text(encoding="utf-8"))
    assert data["id"] == sid
    assert data["working_directory"] == "/work"
    assert data["messages"] == []
    assert "start_time" in data


def test_record_and_load_messages(tmp_path):
    store = SessionStore(tmp_path)
    store.record_message("user", "hello", {"classification": "simple"})
    store.record_message("assistant", "hi there")
    messages = SessionStore(tmp_path).load_messages(store.session_id)
    assert [(m["role"], m["content"]) for m in messages] == [
        ("user", "hello"),
        ("assistant", "hi there"),
    ]
    assert messages[0]["metadata"] == {"classification": "simple"}
    assert "timestamp" in messages[1]


def test_record_message_starts_session_lazily(tmp_path):
    store = SessionStore(tmp_path)
    assert store.session_id is None
    store.record_message("user", "x")
    assert store.session_id is not None


def test_session_ids_are_unique(tmp_path):
    a = SessionStore(tmp_path).start_session()
    b = SessionStore(tmp_path).start_session()
    assert a != b


def test_list_recent_sessions_newest_first(tmp_path):
    for sid in ("1000", "3000", "2000"):
        (tmp_path / f"session_{sid}.json").write_text(
            json.dumps({"id": sid, "start_time": "t", "working_directory": "/w", "messages": [{"role": "user", "content": "q"}]}),
            encoding="utf-8",
        )
    (tmp_path / "notes.txt").write_text("ignored", encoding="utf-8")
    sessions = SessionStore(tmp_path).list_recent_sessions(limit=2)
    assert [s["id"] for s in sessions] == ["3000", "2000"]
    assert sessions[0]["message_count"] == 1
    assert sessions[0]["working_directory"] == "/w"


def test_list_recent_sessions_missing_dir(tmp_path):
    assert SessionStore(tmp_path / "nope").list_recent_sessions() == []


def test_load_unknown_and_corrupt(tmp_path):
    store = SessionStore(tmp_path)
    assert store.load_messages("42") is None
    (tmp_path / "session_43.json").write_text("{not json", encoding="utf-8")
    assert store.load_messages("43") is None


def test_invalid_id_rejected(tmp_path):
    with pytest.raises(ValueError, match="digits"):
        SessionStore(tmp_path).load_messages("../../secret")


def test_clear_old_sessions(tmp_path):
    now_ms = int(time.time() * 1000)
    old = now_ms - 40 * 24 * 60 * 60 * 1000
    recent = now_ms - 1 * 24 * 60 * 60 * 1000
    for sid in (old, recent):
        (tmp_path / f"session_{sid}.json").write_text("{}", encoding="utf-8")
    removed = SessionStore(tmp_path).clear_old_sessions(30)
    assert removed == 1
    assert not (tmp_path / f"session_{old}.json").exists()
    assert (tmp_path / f"session_{recent}.json").exists()


def test_save_failure_warns_but_does_not_raise(tmp_path, monkeypatch):
    blocker = tmp_path / "file"
    blocker.write_text("", encoding="utf-8")
    warnings = []
    monkeypatch.setattr("grc.memory.fmt.warning", warnings.append)
    store = SessionStore(blocker / "memory")
    store.record_message("user", "x")
    assert warnings and "failed to save session" in warnings[0]
