"""On-disk session memory: one JSON document per session."""

import json
import os
import re
import time
from datetime import datetime, timezone
from pathlib import Path

from . import fmt

DEFAULT_MEMORY_DIR = Path.home() / ".grc" / "memory"
_SESSION_FILE_RE = re.compile(r"^session_(\d+)\.json$")
_DAY_MS = 24 * 60 * 60 * 1000


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _check_id(session_id) -> str:
    sid = str(session_id).strip()
    if not sid.isdigit():
        raise ValueError(f"invalid session id {session_id!r}: expected digits only")
    return sid


class SessionStore:
    """Append-only message log keyed by a numeric session id.

    Session ids are millisecond timestamps, so sorting by id sorts by start
    time. Write failures print a warning and are otherwise ignored: losing
    the log must never interrupt the agent.
    """

    def __init__(self, memory_dir: str | Path | None = None, working_directory: str | None = None):
        self.memory_dir = Path(memory_dir) if memory_dir else DEFAULT_MEMORY_DIR
        self.working_directory = working_directory or os.getcwd()
        self.session_id: str | None = None
        self._data: dict | None = None

    def _path(self, session_id: str) -> Path:
        return self.memory_dir / f"session_{session_id}.json"

    def _save(self) -> None:
        if self._data is None:
            return
        try:
            self.memory_dir.mkdir(parents=True, exist_ok=True)
            path = self._path(self.session_id)
            tmp = path.with_suffix(".json.tmp")
            tmp.write_text(json.dumps(self._data, indent=2), encoding="utf-8")
            os.replace(tmp, path)
        except OSError as e:
            fmt.warning(f"failed to save session {self.session_id}: {e}")

    def start_session(self) -> str:
        sid = int(time.time() * 1000)
        while self._path(str(sid)).exists():
            sid += 1
        self.session_id = str(sid)
        self._data = {
            "id": self.session_id,
            "start_time": _now_iso(),
            "working_directory": self.working_directory,
            "messages": [],
        }
        self._save()
        return self.session_id

    def record_message(self, role: str, content: str, metadata: dict | None = None) -> None:
        if self._data is None:
            self.start_session()
        self._data["messages"].append(
            {
                "role": role,
                "content": content,
                "timestamp": _now_iso(),
                "metadata": dict(metadata or {}),
            }
        )
        self._save()

    def load_session(self, session_id) -> dict | None:
        """Full session document, or None if it does not exist or is unreadable."""
        path = self._path(_check_id(session_id))
        if not path.is_file():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            fmt.warning(f"failed to load session {session_id}: {e}")
            return None
        if not isinstance(data, dict) or not isinstance(data.get("messages"), list):
            fmt.warning(f"session {session_id} has an unexpected format")
            return None
        return data

    def load_messages(self, session_id) -> list[dict] | None:
        data = self.load_session(session_id)
        if data is None:
            return None
        return [m for m in data["messages"] if isinstance(m, dict) and "role" in m]

    def list_recent_sessions(self, limit: int = 10) -> list[dict]:
        """Most recent sessions first."""
        if not self.memory_dir.is_dir():
            return []
        sessions = []
        for path in self.memory_dir.iterdir():
            m = _SESSION_FILE_RE.match(path.name)
            if not m:
                continue
            data = self.load_session(m.group(1))
            if data is None:
                continue
            sessions.append(
                {
                    "id": m.group(1),
                    "start_time": data.get("start_time"),
                    "message_count": len(data["messages"]),
                    "working_directory": data.get("working_directory"),
                    "file": str(path),
                }
            )
        sessions.sort(key=lambda s: int(s["id"]), reverse=True)
        return sessions[:limit]

    def clear_old_sessions(self, days: int = 30) -> int:
        """Delete sessions started more than ``days`` ago. Returns the count removed."""
        if not self.memory_dir.is_dir():
            return 0
        cutoff = int(time.time() * 1000) - days * _DAY_MS
        removed = 0
        for path in self.memory_dir.iterdir():
            m = _SESSION_FILE_RE.match(path.name)
            if not m or int(m.group(1)) >= cutoff or m.group(1) == self.session_id:
                continue
            try:
                path.unlink()
                removed += 1
            except OSError as e:
                fmt.warning(f"failed to remove {path.name}: {e}")
        return removed
