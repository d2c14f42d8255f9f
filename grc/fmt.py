"""ANSI-formatted stderr output using Rich."""

from rich.console import Console
from rich.markup import escape
from rich.rule import Rule
from rich.text import Text

_console = Console(stderr=True)

_TIER_STYLES = {"light": "cyan", "heavy": "bold yellow"}


def init(*, color: bool = False, no_color: bool = False) -> None:
    """Reconfigure the module-level console from CLI flags.

    Call once at startup, before any output.
    """
    global _console
    kwargs: dict = {"stderr": True}
    if color:
        kwargs["force_terminal"] = True
        kwargs["no_color"] = False
    if no_color:
        kwargs["no_color"] = True
    _console = Console(**kwargs)


# -- Iteration structure -----------------------------------------------------


def iteration_header(n: int, max_n: int, tier: str, token_est: int | None) -> None:
    title = f"Iteration {n}/{max_n} [{tier}]"
    if token_est is not None:
        title += f" (~{token_est} tokens)"
    _console.print(Rule(title, style=_TIER_STYLES.get(tier, "cyan")))


def llm_timing(elapsed: float, finish_reason: str | None) -> None:
    style = "green" if finish_reason == "stop" else "yellow"
    text = Text()
    text.append(f"  LLM responded in {elapsed:.1f}s", style=style)
    text.append(f"  finish_reason={escape(str(finish_reason))}", style=style)
    _console.print(text)


def completion(iterations: int, reason: str) -> None:
    if reason in ("complete", "final_answer"):
        _console.print(
            Text(f"  ✓ Agent finished: {iterations} iterations", style="bold green")
        )
    else:
        _console.print(
            Text(
                f"  Agent finished: {iterations} iterations, reason={reason}",
                style="bold red",
            )
        )


# -- Tools -------------------------------------------------------------------


def tool_call(name: str, args_text: str) -> None:
    header = Text()
    header.append("  ▶ ", style="bold magenta")
    header.append(name, style="bold magenta")
    _console.print(header)
    if args_text:
        for line in args_text.splitlines():
            _console.print(Text(f"    {line}", style="dim"))


def tool_result(name: str, elapsed: float, summary: str) -> None:
    header = Text()
    header.append(f"  ✓ {name}", style="green")
    header.append(f"  {elapsed:.1f}s", style="green")
    _console.print(header)
    if summary:
        _console.print(Text(f"    {summary}", style="dim"))


def tool_error(name: str, msg: str) -> None:
    header = Text()
    header.append(f"  ✗ {name}", style="bold red")
    header.append(f"  {msg}", style="red")
    _console.print(header)


# -- Tiers -------------------------------------------------------------------


def tier_switch(from_tier: str, to_tier: str, reason: str) -> None:
    line = Text()
    line.append(f"  ⇄ {from_tier} → {to_tier}", style="bold yellow")
    line.append(f"  ({reason})", style="yellow")
    _console.print(line)


def checkpoint(decision: str) -> None:
    style = "bold yellow" if decision == "STOP" else "cyan"
    _console.print(Text(f"  ◆ Checkpoint: {decision}", style=style))


def plan(text: str) -> None:
    line = Text()
    line.append("  [plan] ", style="yellow")
    line.append(text, style="dim italic")
    _console.print(line)


def assistant_text(text: str) -> None:
    line = Text()
    line.append("  [assistant] ", style="blue")
    line.append(text)
    _console.print(line)


# -- Diagnostics -------------------------------------------------------------


def model_info(msg: str) -> None:
    _console.print(Text(f"  {msg}", style="dim"))


def info(msg: str) -> None:
    _console.print(Text(f"  {msg}", style="dim"))


def warning(msg: str) -> None:
    line = Text()
    line.append("  ⚠ Warning: ", style="yellow")
    line.append(msg, style="yellow")
    _console.print(line)


def error(msg: str) -> None:
    line = Text()
    line.append("Error: ", style="bold red")
    line.append(msg, style="red")
    _console.print(line)


def repl_banner() -> None:
    _console.print(Text("Interactive mode. Type /help for commands, /exit or Ctrl-D to quit.", style="dim"))


def session_list(sessions: list[dict]) -> None:
    if not sessions:
        _console.print(Text("  No saved sessions.", style="dim"))
        return
    for s in sessions:
        _console.print(Text(f"  Session {s['id']}", style="bold"))
        _console.print(Text(f"    Time: {s.get('start_time', '?')}", style="dim"))
        _console.print(Text(f"    Messages: {s.get('message_count', 0)}", style="dim"))
        _console.print(Text(f"    Dir: {s.get('working_directory', '?')}", style="dim"))
