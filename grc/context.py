"""Three-layer context: session log, turn history and the compressed view.

Layer 1 is everything said in the session, kept for the lifetime of the
process. Layer 2 is the current turn's tool executions with full payloads.
Layer 3 is a small, capped digest of what has been discovered, read and
failed so far; it is the only thing the light tier ever sees.
"""

import os
import re
import shlex
from collections import deque
from dataclasses import dataclass, field

from .directives import ToolInvocation
from .summarize import execution_log
from .tools import CombinedOutput, Failure, FileList, Success, ToolResult

FOUND_FILES_CAP = 15
READ_FILES_CAP = 10
FAILED_FILES_CAP = 5
RECENT_RESULTS_CAP = 3
SUMMARY_CHARS = 200
PLAN_CHARS = 600

_LISTING_COMMANDS = {"ls", "dir", "find", "tree", "fd", "fdfind"}
_TREE_PREFIX_RE = re.compile(r"^[\s│├└─|`\\-]+")
_TREE_FOOTER_RE = re.compile(r"^\d+ director(?:y|ies)(?:, \d+ files?)?$")
# ls -l: mode, links, owner, group, size, month, day, time or year, name
_LONG_ROW_RE = re.compile(r"^[-bcdlps][-rwxsStT]{9}[.+@]?\s+(?:\S+\s+){7}(.+)$")


@dataclass(frozen=True)
class ToolExecution:
    invocation: ToolInvocation
    result: ToolResult
    summary: str

    @property
    def ok(self) -> bool:
        return isinstance(self.result, Success)


@dataclass
class Turn:
    user_text: str
    executions: list[ToolExecution] = field(default_factory=list)


def is_listing_command(command: str) -> bool:
    """True if a shell command's output is a file listing."""
    try:
        words = shlex.split(command, posix=os.name != "nt")
    except ValueError:
        words = command.split()
    if not words:
        return False
    program = os.path.basename(words[0]).lower()
    if program.endswith(".exe"):
        program = program[:-4]
    if program in _LISTING_COMMANDS:
        return True
    return program == "git" and len(words) > 1 and words[1] == "ls-files"


def _listing_paths(output: str, base_dir: str, truncated: bool = False) -> list[str]:
    """Absolute paths of existing files named by listing output.

    Handles one-path-per-line output (find, fd, git ls-files, dir /b), plain
    ls columns-per-line output, ``ls -l`` rows and ``ls -R`` section headers.
    Directories and anything not on disk are skipped. When the output was
    cut short its last line is a partial path and is dropped.
    """
    lines = output.splitlines()
    if truncated and lines:
        lines.pop()
    paths: list[str] = []
    current_dir = base_dir
    for raw in lines:
        line = raw.rstrip()
        if not line.strip():
            continue
        if line.endswith(":") and not line.startswith(" "):
            # ls -R section header
            current_dir = _absolute(line[:-1], base_dir)
            continue
        if line.startswith("total ") or _TREE_FOOTER_RE.match(line.strip()):
            continue
        long_row = _LONG_ROW_RE.match(line)
        if long_row:
            line = long_row.group(1).split(" -> ", 1)[0]
        elif line[0] in "│├└|`":
            line = _TREE_PREFIX_RE.sub("", line)
        else:
            line = line.strip()
        if not line or line in (".", ".."):
            continue
        path = _absolute(line, current_dir)
        if not os.path.isfile(path):
            continue
        paths.append(path)
    return paths


def _absolute(path: str, base_dir: str) -> str:
    path = os.path.expanduser(path)
    if not os.path.isabs(path):
        path = os.path.join(base_dir, path)
    return os.path.normpath(path)


def _clip(text: str, limit: int) -> str:
    text = " ".join(text.split())
    return text if len(text) <= limit else text[: limit - 3] + "..."


class CompressedView:
    """Bounded digest of the session given to the light tier.

    Every list is a FIFO with a fixed cap, so rendering is independent of
    how many tools have run.
    """

    def __init__(
        self,
        *,
        found_cap: int = FOUND_FILES_CAP,
        read_cap: int = READ_FILES_CAP,
        failed_cap: int = FAILED_FILES_CAP,
        recent_cap: int = RECENT_RESULTS_CAP,
    ):
        self.task = ""
        self.plan: str | None = None
        self.found_files: deque[str] = deque(maxlen=max(found_cap, 0))
        self.found_total = 0
        self.read_files: deque[str] = deque(maxlen=max(read_cap, 0))
        self.failed_files: deque[str] = deque(maxlen=max(failed_cap, 0))
        self.recent_results: deque[str] = deque(maxlen=max(recent_cap, 0))

    def replace_found(self, paths: list[str]) -> None:
        failed = set(self.failed_files)
        kept = [p for p in dict.fromkeys(paths) if p not in failed]
        self.found_total = len(kept)
        self.found_files.clear()
        self.found_files.extend(kept)

    def mark_read(self, path: str) -> None:
        if path in self.read_files:
            self.read_files.remove(path)
        self.read_files.append(path)
        if path in self.failed_files:
            self.failed_files.remove(path)

    def mark_failed(self, path: str) -> None:
        if path in self.found_files:
            self.found_files.remove(path)
            self.found_total = max(self.found_total - 1, len(self.found_files))
        if path in self.failed_files:
            self.failed_files.remove(path)
        self.failed_files.append(path)

    def push_result(self, summary: str) -> None:
        self.recent_results.append(_clip(summary, SUMMARY_CHARS))

    def clear(self) -> None:
        self.task = ""
        self.plan = None
        self.found_files.clear()
        self.found_total = 0
        self.read_files.clear()
        self.failed_files.clear()
        self.recent_results.clear()

    def render(self) -> str:
        lines = [f"Task: {self.task}"]
        if self.plan:
            lines.append(f"Plan: {self.plan}")
        lines.append("")

        if self.found_files:
            lines.append(
                f"Files in Dir ({self.found_total} total, showing {len(self.found_files)}):"
            )
            lines.extend(self.found_files)
        else:
            lines.append("Files in Dir: none discovered yet")

        if self.read_files:
            lines.append("")
            lines.append(f"Read (last {len(self.read_files)}):")
            lines.extend(os.path.basename(p) or p for p in self.read_files)

        if self.failed_files:
            lines.append("")
            lines.append("Failed (don't retry):")
            lines.extend(self.failed_files)

        if self.recent_results:
            lines.append("")
            lines.append("Recent results:")
            lines.extend(f"- {s}" for s in self.recent_results)

        return "\n".join(lines)


class ContextManager:
    def __init__(
        self,
        base_dir: str = ".",
        *,
        found_cap: int = FOUND_FILES_CAP,
        read_cap: int = READ_FILES_CAP,
        failed_cap: int = FAILED_FILES_CAP,
        recent_cap: int = RECENT_RESULTS_CAP,
    ):
        self.base_dir = os.path.abspath(base_dir)
        self.session_log: list[dict[str, str]] = []
        self.turn = Turn("")
        self.compressed = CompressedView(
            found_cap=found_cap,
            read_cap=read_cap,
            failed_cap=failed_cap,
            recent_cap=recent_cap,
        )

    # -- Layer 1 -------------------------------------------------------------

    def record_user_message(self, text: str) -> None:
        self.session_log.append({"role": "user", "content": text})

    def record_model_response(self, text: str) -> None:
        self.session_log.append({"role": "assistant", "content": text})

    def restore(self, messages) -> int:
        """Rebuild the session log from persisted messages. Returns the count kept."""
        restored = [
            {"role": m["role"], "content": m.get("content") or ""}
            for m in messages
            if m.get("role") in ("user", "assistant")
        ]
        self.session_log = restored
        return len(restored)

    # -- Layer 2 -------------------------------------------------------------

    def begin_turn(self, user_text: str) -> None:
        self.turn = Turn(user_text)
        self.compressed.task = user_text
        self.compressed.plan = None

    @property
    def executions(self) -> list[ToolExecution]:
        return self.turn.executions

    def turn_tool_names(self) -> list[str]:
        return [ex.invocation.name for ex in self.turn.executions]

    def set_plan(self, text: str | None) -> None:
        self.compressed.plan = _clip(text, PLAN_CHARS) if text else None

    def record_tool_execution(
        self, invocation: ToolInvocation, result: ToolResult, summary: str
    ) -> ToolExecution:
        execution = ToolExecution(invocation, result, summary)
        self.turn.executions.append(execution)
        self._fold(invocation, result)
        self.compressed.push_result(summary)
        return execution

    def _fold(self, invocation: ToolInvocation, result: ToolResult) -> None:
        name = invocation.name
        if name == "Read":
            file_path = invocation.args.get("file_path", "").strip()
            if not file_path:
                return
            path = _absolute(file_path, self.base_dir)
            if isinstance(result, Failure):
                self.compressed.mark_failed(path)
            else:
                self.compressed.mark_read(path)
            return

        if isinstance(result, Failure):
            return
        payload = result.payload
        if name == "Glob" and isinstance(payload, FileList):
            self.compressed.replace_found(
                [_absolute(p, self.base_dir) for p in payload.files]
            )
        elif (
            name == "Bash"
            and isinstance(payload, CombinedOutput)
            and is_listing_command(invocation.args.get("command", ""))
        ):
            self.compressed.replace_found(
                _listing_paths(payload.text, self.base_dir, payload.truncated)
            )

    # -- Views ---------------------------------------------------------------

    def view_for(self, tier) -> str:
        """Context text for a tier: full history for heavy, the digest for light."""
        if str(getattr(tier, "value", tier)) == "light":
            return self.compressed.render()

        parts = []
        for entry in self.session_log:
            speaker = "User" if entry["role"] == "user" else "Assistant"
            parts.append(f"{speaker}: {entry['content']}")
        log = execution_log(self.turn.executions)
        if log:
            parts.append("Tool executions this turn:\n" + log)
        return "\n\n".join(parts)

    def clear(self) -> None:
        self.session_log.clear()
        self.turn = Turn("")
        self.compressed.clear()
