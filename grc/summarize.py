"""One-line synopses of tool results and the full execution log."""

from .directives import ToolInvocation
from .tools import (
    TRUNCATION_NOTE,
    CombinedOutput,
    Content,
    Failure,
    FileList,
    Message,
    ToolResult,
    payload_text,
)

PREVIEW_CHARS = 100


def _preview(text: str, limit: int = PREVIEW_CHARS) -> str:
    flat = " ".join(text.split())
    return flat if len(flat) <= limit else flat[:limit] + "..."


def summarize_result(invocation: ToolInvocation, result: ToolResult) -> str:
    """Human-readable synopsis keyed by tool kind. Always a single line."""
    if isinstance(result, Failure):
        return "Error: " + " ".join(result.error_message.split())

    args = invocation.args
    payload = result.payload
    name = invocation.name

    if name == "Read" and isinstance(payload, Content):
        return f"Read {args.get('file_path', '?')} ({payload.line_count} lines)"
    if name == "Write":
        return f"Created/updated {args.get('file_path', '?')}"
    if name == "Edit":
        return f"Edited {args.get('file_path', '?')}"
    if name == "Bash":
        summary = f"Executed: {' '.join(args.get('command', '').split())}"
        output = payload_text(payload)
        if output.strip():
            summary += f" | Output: {_preview(output)}"
        return summary
    if name == "Glob" and isinstance(payload, FileList):
        return f'Found {len(payload.files)} files matching "{args.get("pattern", "")}"'
    if name == "Grep" and isinstance(payload, Content):
        return f'Found {payload.line_count} matches for "{args.get("pattern", "")}"'
    return f"{name}: {_preview(payload_text(payload), 150)}"


def _describe_success(name: str, args, payload) -> list[str]:
    if isinstance(payload, Content):
        if name == "Read":
            head = f"  ✓ SUCCESS - Read {args.get('file_path', '?')} ({payload.line_count} lines)"
        else:
            head = f"  ✓ SUCCESS - {payload.line_count} matching lines"
        return [head, payload.text]
    if isinstance(payload, FileList):
        return [f"  ✓ Found {len(payload.files)} files", *(f"    - {f}" for f in payload.files)]
    if isinstance(payload, CombinedOutput):
        lines = [f"  ✓ Command output (exit {payload.exit_code}):", payload.text]
        if payload.truncated:
            lines.append(TRUNCATION_NOTE)
        return lines
    if isinstance(payload, Message):
        return [f"  ✓ {payload.text}"]
    return ["  ✓ Success"]


def execution_log(executions) -> str:
    """Full, untruncated record of a Turn's tool executions.

    Ends with a tally of successful and failed reads so the heavy tier can
    tell real files from paths that never existed.
    """
    lines: list[str] = []
    successful_reads: list[str] = []
    failed_reads: list[str] = []

    for ex in executions:
        inv = ex.invocation
        lines.append(f"{inv.describe()}:")
        if isinstance(ex.result, Failure):
            lines.append(f"  ✗ FAILED - {ex.result.error_message}")
            if inv.name == "Read":
                path = inv.args.get("file_path", "?")
                lines.append(f"  ✗ File does NOT exist or is unreadable: {path}")
                failed_reads.append(path)
        else:
            lines.extend(_describe_success(inv.name, inv.args, ex.result.payload))
            if inv.name == "Read":
                successful_reads.append(inv.args.get("file_path", "?"))
        lines.append("")

    if successful_reads or failed_reads:
        lines.append("=== SUMMARY ===")
        if successful_reads:
            lines.append(f"✓ Successfully read {len(successful_reads)} files:")
            lines.extend(f"  - {p}" for p in successful_reads)
        if failed_reads:
            lines.append(
                f"✗ Failed to read {len(failed_reads)} files (DO NOT MENTION THESE):"
            )
            lines.extend(f"  - {p}" for p in failed_reads)

    return "\n".join(lines).rstrip()
