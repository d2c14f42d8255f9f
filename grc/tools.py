"""Tool results and the built-in tool providers.

Every provider takes a mapping of string arguments and returns a
``ToolResult``. Failures inside a provider raise ``ToolExecutionError``,
which ``_provider`` turns into ``Failure`` before it reaches the caller.
"""

import fnmatch
import functools
import os
import re
import subprocess
import sys
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Mapping

MAX_OUTPUT_BYTES = 50 * 1024  # 50 KB
MAX_LINE_LENGTH = 2000
BINARY_CHECK_BYTES = 8 * 1024  # 8 KB
DEFAULT_READ_LIMIT = 2000
MAX_GLOB_RESULTS = 500
MAX_GREP_MATCHES = 100
MAX_CAPTURE_BYTES = 1 * 1024 * 1024  # 1 MB read from the pipe
DEFAULT_SHELL_TIMEOUT = 120
TRUNCATION_NOTE = f"[output truncated at {MAX_OUTPUT_BYTES // 1024}KB]"
_KILL_WAIT_TIMEOUT = 5

MUTATING_TOOLS = frozenset({"Write", "Edit"})
READ_ONLY_TOOLS = frozenset({"Read", "Glob", "Grep"})


# -- Results -----------------------------------------------------------------


@dataclass(frozen=True)
class Content:
    text: str
    line_count: int


@dataclass(frozen=True)
class FileList:
    files: tuple[str, ...]


@dataclass(frozen=True)
class CombinedOutput:
    text: str
    exit_code: int = 0
    truncated: bool = False


@dataclass(frozen=True)
class Message:
    text: str


Payload = Content | FileList | CombinedOutput | Message


@dataclass(frozen=True)
class Success:
    payload: Payload

    ok = True


@dataclass(frozen=True)
class Failure:
    error_message: str

    ok = False


ToolResult = Success | Failure


class ToolExecutionError(Exception):
    """I/O failure, non-zero exit, timeout or missing file inside a tool."""


class UnknownToolError(KeyError):
    """The requested tool is not in the registry."""


def payload_text(payload: Payload) -> str:
    """Full text carried by a payload."""
    if isinstance(payload, FileList):
        return "\n".join(payload.files)
    return payload.text


# -- Helpers -----------------------------------------------------------------


def _resolve(file_path: str, base_dir: str) -> Path:
    path = Path(file_path).expanduser()
    if not path.is_absolute():
        path = Path(base_dir) / path
    return path.resolve()


def _require(args: Mapping[str, str], key: str) -> str:
    value = args.get(key)
    if value is None:
        raise ToolExecutionError(f"missing required argument {key!r}")
    return value


def _int_arg(args: Mapping[str, str], key: str, default: int) -> int:
    raw = args.get(key)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ToolExecutionError(f"{key} must be an integer, got {raw!r}")


def _bool_arg(args: Mapping[str, str], key: str) -> bool:
    return str(args.get(key, "")).strip().lower() in ("1", "true", "yes")


def _is_binary(path: Path) -> bool:
    with open(path, "rb") as f:
        return b"\x00" in f.read(BINARY_CHECK_BYTES)


# -- Providers ---------------------------------------------------------------


def read_file(args: Mapping[str, str], base_dir: str) -> Content:
    """Read a text file with 1-based line numbers."""
    file_path = _require(args, "file_path")
    offset = _int_arg(args, "offset", 1)
    limit = _int_arg(args, "limit", DEFAULT_READ_LIMIT)
    resolved = _resolve(file_path, base_dir)

    if not resolved.exists():
        raise ToolExecutionError(f"file does not exist: {file_path}")
    if resolved.is_dir():
        raise ToolExecutionError(f"path is a directory: {file_path}")
    try:
        if _is_binary(resolved):
            raise ToolExecutionError(f"binary file detected: {file_path}")
        text = resolved.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise ToolExecutionError(f"failed to decode {file_path} as UTF-8: {exc}")
    except OSError as exc:
        raise ToolExecutionError(f"failed to read {file_path}: {exc}")

    lines = text.splitlines()
    start = max(offset - 1, 0)
    selected = lines[start : start + max(limit, 0)]

    output_parts = []
    total_bytes = 0
    for i, line in enumerate(selected, start=start + 1):
        if len(line) > MAX_LINE_LENGTH:
            line = line[:MAX_LINE_LENGTH]
        numbered = f"{i}: {line}"
        encoded_len = len(numbered.encode("utf-8")) + 1
        if total_bytes + encoded_len > MAX_OUTPUT_BYTES:
            break
        output_parts.append(numbered)
        total_bytes += encoded_len

    remaining = len(lines) - (start + len(output_parts))
    result = "\n".join(output_parts)
    if remaining > 0:
        next_offset = start + len(output_parts) + 1
        result += f"\n[{remaining} more lines, use offset={next_offset} to continue]"
    return Content(result, len(lines))


def write_file(args: Mapping[str, str], base_dir: str) -> Message:
    """Create or overwrite a file, creating parent directories."""
    file_path = _require(args, "file_path")
    content = _require(args, "content")
    resolved = _resolve(file_path, base_dir)
    try:
        resolved.parent.mkdir(parents=True, exist_ok=True)
        data = content.encode("utf-8")
        resolved.write_bytes(data)
    except OSError as exc:
        raise ToolExecutionError(f"failed to write {file_path}: {exc}")
    return Message(f"Wrote {len(data)} bytes to {resolved}")


def edit_file(args: Mapping[str, str], base_dir: str) -> Message:
    """Replace the first (or every) occurrence of old_string."""
    file_path = _require(args, "file_path")
    old_string = _require(args, "old_string")
    new_string = _require(args, "new_string")
    if not old_string:
        raise ToolExecutionError("old_string must not be empty")

    resolved = _resolve(file_path, base_dir)
    if not resolved.is_file():
        raise ToolExecutionError(f"file does not exist: {file_path}")
    try:
        content = resolved.read_text(encoding="utf-8")
    except (UnicodeDecodeError, OSError) as exc:
        raise ToolExecutionError(f"failed to read {file_path}: {exc}")

    count = content.count(old_string)
    if count == 0:
        raise ToolExecutionError(f"old_string not found in {file_path}")
    if _bool_arg(args, "replace_all"):
        new_content = content.replace(old_string, new_string)
    else:
        new_content = content.replace(old_string, new_string, 1)
        count = 1

    try:
        resolved.write_text(new_content, encoding="utf-8")
    except OSError as exc:
        raise ToolExecutionError(f"failed to write {file_path}: {exc}")
    return Message(f"Edited {resolved} ({count} replacement{'s' if count != 1 else ''})")


def glob_files(args: Mapping[str, str], base_dir: str) -> FileList:
    """Absolute paths of files matching a glob pattern, sorted."""
    pattern = _require(args, "pattern")
    root = _resolve(args.get("path") or ".", base_dir)
    if not root.is_dir():
        raise ToolExecutionError(f"path is not a directory: {root}")
    try:
        matched = sorted(
            str(p)
            for p in root.glob(pattern)
            if p.is_file() and ".git" not in p.relative_to(root).parts
        )
    except (ValueError, OSError) as exc:
        raise ToolExecutionError(f"glob {pattern!r} failed: {exc}")
    return FileList(tuple(matched[:MAX_GLOB_RESULTS]))


def grep(args: Mapping[str, str], base_dir: str) -> Content:
    """Search file contents for a regex; line_count is the number of matches."""
    pattern = _require(args, "pattern")
    try:
        regex = re.compile(pattern)
    except re.error as exc:
        raise ToolExecutionError(f"invalid regex {pattern!r}: {exc}")

    root = _resolve(args.get("path") or ".", base_dir)
    if not root.exists():
        raise ToolExecutionError(f"path does not exist: {root}")
    include = args.get("include")
    if not include and args.get("file_type"):
        include = f"*.{args['file_type']}"

    if root.is_file():
        candidates = [root]
    else:
        candidates = []
        for dirpath, dirs, files in os.walk(root):
            dirs[:] = [d for d in dirs if d != ".git"]
            for filename in sorted(files):
                if include and not fnmatch.fnmatch(filename, include):
                    continue
                candidates.append(Path(dirpath) / filename)

    matches: list[str] = []
    total = 0
    for filepath in candidates:
        try:
            if _is_binary(filepath):
                continue
            text = filepath.read_text(encoding="utf-8")
        except (UnicodeDecodeError, OSError):
            continue
        for line_no, line in enumerate(text.splitlines(), start=1):
            if regex.search(line):
                total += 1
                if len(matches) < MAX_GREP_MATCHES:
                    matches.append(f"{filepath}:{line_no}: {line[:MAX_LINE_LENGTH]}")

    if not matches:
        return Content("No matches found.", 0)
    result = "\n".join(matches)
    if total > MAX_GREP_MATCHES:
        result += f"\n(Results truncated: showing first {MAX_GREP_MATCHES} of {total} matches.)"
    return Content(result, total)


def _kill_process_tree(proc: subprocess.Popen) -> None:
    """Kill a process and its descendants, then wait for exit."""
    if sys.platform != "win32":
        import signal

        try:
            os.killpg(proc.pid, signal.SIGKILL)
        except OSError:
            pass  # already exited
    else:
        try:
            subprocess.run(
                ["taskkill", "/T", "/F", "/PID", str(proc.pid)],
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                timeout=5,
            )
        except (OSError, subprocess.TimeoutExpired):
            pass
    try:
        proc.kill()
    except OSError:
        pass
    try:
        proc.wait(timeout=_KILL_WAIT_TIMEOUT)
    except subprocess.TimeoutExpired:
        pass


def _capture_process(proc: subprocess.Popen, timeout: int) -> tuple[str, bool, bool]:
    """Drain stdout with a wall-clock limit. Returns (output, timed_out, truncated)."""
    chunks: list[bytes] = []
    total = 0
    truncated = False

    def _reader():
        nonlocal total, truncated
        try:
            while True:
                chunk = proc.stdout.read(4096)
                if not chunk:
                    break
                if truncated:
                    continue  # keep draining to prevent pipe backpressure
                chunks.append(chunk[: MAX_CAPTURE_BYTES - total])
                total += len(chunks[-1])
                if total >= MAX_CAPTURE_BYTES:
                    truncated = True
        except (OSError, ValueError):
            pass  # pipe closed after kill

    reader = threading.Thread(target=_reader, daemon=True)
    reader.start()

    timed_out = False
    try:
        proc.wait(timeout=timeout)
    except subprocess.TimeoutExpired:
        timed_out = True
        _kill_process_tree(proc)

    reader.join(timeout=2)
    proc.stdout.close()
    return b"".join(chunks).decode("utf-8", errors="replace"), timed_out, truncated


def _clip(output: str) -> tuple[str, bool]:
    """Cut output to MAX_OUTPUT_BYTES. Returns (text, clipped)."""
    data = output.encode("utf-8")
    if len(data) <= MAX_OUTPUT_BYTES:
        return output, False
    return data[:MAX_OUTPUT_BYTES].decode("utf-8", errors="ignore"), True


def run_shell(
    args: Mapping[str, str], base_dir: str, timeout: int = DEFAULT_SHELL_TIMEOUT
) -> CombinedOutput:
    """Run a shell string with stdout and stderr combined."""
    command = _require(args, "command")
    if not Path(base_dir).is_dir():
        raise ToolExecutionError(f"base directory is not a directory: {base_dir}")

    if sys.platform == "win32":
        shell_cmd = ["cmd.exe", "/c", command]
    else:
        shell_cmd = ["/bin/sh", "-c", command]

    popen_kwargs: dict = dict(
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        stdin=subprocess.DEVNULL,
        cwd=base_dir,
    )
    if sys.platform != "win32":
        popen_kwargs["start_new_session"] = True
    try:
        proc = subprocess.Popen(shell_cmd, **popen_kwargs)
    except OSError as exc:
        raise ToolExecutionError(f"failed to start shell command: {exc}")

    output, timed_out, truncated = _capture_process(proc, max(1, timeout))
    output, clipped = _clip(output)
    truncated = truncated or clipped
    if timed_out or proc.returncode != 0:
        status = f"command timed out after {timeout}s" if timed_out else f"exit code {proc.returncode}"
        if truncated:
            output += "\n" + TRUNCATION_NOTE
        raise ToolExecutionError(f"{status}\n{output}".rstrip())
    return CombinedOutput(output, proc.returncode, truncated)


# -- Registry ----------------------------------------------------------------


ToolProvider = Callable[[Mapping[str, str]], ToolResult]


def _provider(fn, **bound) -> ToolProvider:
    """Wrap an implementation so it always returns a ToolResult."""

    @functools.wraps(fn)
    def wrapper(args: Mapping[str, str]) -> ToolResult:
        try:
            return Success(fn(args, **bound))
        except ToolExecutionError as exc:
            return Failure(str(exc))

    return wrapper


def build_registry(
    base_dir: str, *, shell_timeout: int = DEFAULT_SHELL_TIMEOUT
) -> dict[str, ToolProvider]:
    """The fixed mapping of tool names to providers, bound to base_dir."""
    return {
        "Read": _provider(read_file, base_dir=base_dir),
        "Write": _provider(write_file, base_dir=base_dir),
        "Edit": _provider(edit_file, base_dir=base_dir),
        "Bash": _provider(run_shell, base_dir=base_dir, timeout=shell_timeout),
        "Glob": _provider(glob_files, base_dir=base_dir),
        "Grep": _provider(grep, base_dir=base_dir),
    }


def dispatch(registry: Mapping[str, ToolProvider], name: str, args: Mapping[str, str]) -> ToolResult:
    """Route a tool call to its provider.

    Raises:
        UnknownToolError: If the tool name is not in the registry.
    """
    try:
        provider = registry[name]
    except KeyError:
        raise UnknownToolError(name) from None
    return provider(args)


def default_discovery_command() -> str:
    """Shell command used for the mandatory first discovery step."""
    if sys.platform == "win32":
        return "dir /s /b"
    return "find . -type f -not -path '*/.git/*'"
