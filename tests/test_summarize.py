"""Tests for grc.summarize: one-line synopses and the heavy-tier execution log."""

from grc.context import ToolExecution
from grc.directives import ToolInvocation
from grc.summarize import execution_log, summarize_result
from grc.tools import CombinedOutput, Content, Failure, FileList, Message, Success


def test_read_summary():
    inv = ToolInvocation("Read", {"file_path": "src/a.py"})
    assert summarize_result(inv, Success(Content("...", 42))) == "Read src/a.py (42 lines)"


def test_write_and_edit_summaries():
    write = ToolInvocation("Write", {"file_path": "b.py", "content": "x"})
    edit = ToolInvocation("Edit", {"file_path": "c.py", "old_string": "a", "new_string": "b"})
    assert summarize_result(write, Success(Message("Wrote 1 bytes"))) == "Created/updated b.py"
    assert summarize_result(edit, Success(Message("Edited"))) == "Edited c.py"


def test_bash_summary_is_one_line_with_preview():
    inv = ToolInvocation("Bash", {"command": "ls\n-la"})
    output = "a.py\nb.py\n" + "z" * 300
    summary = summarize_result(inv, Success(CombinedOutput(output)))
    assert "\n" not in summary
    assert summary.startswith("Executed: ls -la | Output: a.py b.py")
    assert summary.endswith("...")


def test_glob_and_grep_summaries():
    glob = ToolInvocation("Glob", {"pattern": "**/*.py"})
    grep = ToolInvocation("Grep", {"pattern": "TODO"})
    assert summarize_result(glob, Success(FileList(("a", "b")))) == 'Found 2 files matching "**/*.py"'
    assert summarize_result(grep, Success(Content("...", 7))) == 'Found 7 matches for "TODO"'


def test_failure_summary_is_flattened():
    inv = ToolInvocation("Bash", {"command": "false"})
    assert summarize_result(inv, Failure("exit code 1\nsome output")) == "Error: exit code 1 some output"


def test_unknown_tool_failure():
    inv = ToolInvocation("Nope", {})
    assert summarize_result(inv, Failure("Unknown tool: Nope")) == "Error: Unknown tool: Nope"


def test_execution_log_full_payloads_and_tally():
    body = "\n".join(f"{i}: line" for i in range(1, 400))
    executions = [
        ToolExecution(
            ToolInvocation("Read", {"file_path": "/r/a.py"}),
            Success(Content(body, 399)),
            "Read /r/a.py (399 lines)",
        ),
        ToolExecution(
            ToolInvocation("Read", {"file_path": "/r/gone.py"}),
            Failure("file does not exist: /r/gone.py"),
            "Error: file does not exist",
        ),
        ToolExecution(
            ToolInvocation("Glob", {"pattern": "*"}),
            Success(FileList(tuple(f"/r/f{i}" for i in range(30)))),
            "Found 30 files",
        ),
    ]
    log = execution_log(executions)
    assert body in log
    assert "    - /r/f29" in log
    assert "✗ FAILED - file does not exist: /r/gone.py" in log
    summary = log.split("=== SUMMARY ===", 1)[1]
    assert "Successfully read 1 files" in summary
    assert "Failed to read 1 files (DO NOT MENTION THESE)" in summary
    assert "  - /r/gone.py" in summary


def test_execution_log_empty():
    assert execution_log([]) == ""


def test_execution_log_marks_truncated_output():
    inv = ToolInvocation("Bash", {"command": "find ."})
    ex = ToolExecution(inv, Success(CombinedOutput("./a.py\n./b", truncated=True)), "Executed: find .")
    log = execution_log([ex])
    assert "./a.py\n./b\n[output truncated at 50KB]" in log
