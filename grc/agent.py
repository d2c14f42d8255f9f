"""The tiered agent loop, its chat provider and the command-line entry point."""

import argparse
import functools
import os
import sys
import time
from dataclasses import dataclass, field
from enum import Enum
from importlib import metadata
from pathlib import Path

import tiktoken

from . import checkpoint, directives, fmt
from .checkpoint import CheckpointDecision
from .config import (
    _UNSET,
    PROVIDERS,
    apply_config_to_args,
    generate_config,
    load_config,
)
from .context import ContextManager, ToolExecution
from .report import AgentError, ConfigError, ModelProviderError, ReportCollector
from .summarize import summarize_result
from .tiers import Classification
from .tools import Failure, ToolResult, default_discovery_command, dispatch

LIGHT_PROMPT_FILE = Path(__file__).parent / "light_prompt.txt"
HEAVY_PROMPT_FILE = Path(__file__).parent / "heavy_prompt.txt"

COMPLETION_MARKER = "TASK COMPLETE"
MAX_ARG_LOG = 1000

PLAN_PROMPT = (
    "{task}\n\nCreate a brief exploration plan (2-3 sentences) for what files to explore."
)
NEXT_STEP_PROMPT = "Based on the above context, what tools should we execute next?"
SYNTHESIS_PROMPT = (
    "Based on all the files explored, complete this task:\n{task}\n\n"
    "Use only what the tool results above actually show. "
    "When you are done, say TASK COMPLETE."
)

API_KEY_ENV = {"groq": "GROQ_API_KEY", "openrouter": "OPENROUTER_API_KEY"}

_encoder = None


def estimate_tokens(messages: list) -> int:
    """Count tokens across all messages using tiktoken."""
    global _encoder
    if _encoder is None:
        _encoder = tiktoken.get_encoding("cl100k_base")
    total = sum(len(_encoder.encode(m.get("content") or "")) for m in messages)
    # Per-message overhead (role, separators), ~4 tokens each
    return total + 4 * len(messages)


def load_prompt(path: Path, base_dir: str) -> str:
    text = path.read_text(encoding="utf-8")
    return text.format(base_dir=os.path.abspath(base_dir), platform=sys.platform)


# -- Chat provider -----------------------------------------------------------


@dataclass
class Completion:
    content: str | None
    finish_reason: str | None = None


def resolve_api_key(provider: str, api_key: str | None) -> str:
    key = api_key or os.environ.get(API_KEY_ENV.get(provider, ""))
    if not key:
        raise ConfigError(
            f"--api-key or {API_KEY_ENV.get(provider, 'an API key')} env var "
            f"required for {provider} provider"
        )
    return key


def call_llm(
    model_id: str,
    messages: list[dict],
    *,
    provider: str = "groq",
    api_key: str | None = None,
    base_url: str | None = None,
    max_output_tokens: int = 4096,
    temperature: float | None = None,
    verbose: bool = False,
) -> Completion:
    """Call LiteLLM with the appropriate provider prefix."""
    import litellm

    litellm.suppress_debug_info = True

    if provider == "groq":
        model_str = f"groq/{model_id.removeprefix('groq/')}"
    elif provider == "openrouter":
        # Only strip the prefix if the caller already included LiteLLM's
        # "openrouter/" prefix; org names like "openrouter/free" stay intact.
        bare_id = (
            model_id[len("openrouter/") :]
            if model_id.startswith("openrouter/openrouter/")
            else model_id
        )
        model_str = f"openrouter/{bare_id}"
    else:
        raise ConfigError(f"unknown provider {provider!r}")

    kwargs: dict = {"api_key": api_key}
    if base_url:
        kwargs["api_base"] = base_url
    if temperature is not None:
        kwargs["temperature"] = temperature

    if verbose:
        fmt.model_info(f"Calling model {model_str} with max_tokens={max_output_tokens}")

    try:
        response = litellm.completion(
            model=model_str,
            messages=messages,
            max_tokens=max_output_tokens,
            **kwargs,
        )
    except litellm.AuthenticationError as e:
        raise ModelProviderError(f"authentication failed: {e}")
    except litellm.RateLimitError as e:
        raise ModelProviderError(f"rate limited: {e}")
    except litellm.APIConnectionError as e:
        raise ModelProviderError(f"connection failed: {e}")
    except Exception as e:
        raise ModelProviderError(f"LLM call failed: {e}")

    choice = response.choices[0]
    return Completion(choice.message.content, choice.finish_reason)


def make_completer(**llm_kwargs):
    """Bind provider settings so the loop can call ``complete(model_id, messages)``."""
    return functools.partial(call_llm, **llm_kwargs)


# -- Loop state --------------------------------------------------------------


class Tier(str, Enum):
    LIGHT = "light"
    HEAVY = "heavy"


class Phase(Enum):
    PLANNING = "planning"
    PARSING = "parsing"
    EXECUTING = "executing"
    FOLDING = "folding"
    DONE = "done"
    ABORTED = "aborted"


TERMINAL_PHASES = (Phase.DONE, Phase.ABORTED)


class Conversation:
    """One tier's chat memory, owned by the session."""

    def __init__(self, system_prompt: str | None = None):
        self.system_prompt = system_prompt
        self.messages: list[dict] = []

    def request(self, user_text: str) -> list[dict]:
        """Messages to send if ``user_text`` were the next user turn."""
        head = [{"role": "system", "content": self.system_prompt}] if self.system_prompt else []
        return head + self.messages + [{"role": "user", "content": user_text}]

    def commit(self, user_text: str, reply: str | None) -> None:
        self.messages.append({"role": "user", "content": user_text})
        if reply is not None:
            self.messages.append({"role": "assistant", "content": reply})

    def clear(self) -> None:
        self.messages.clear()

    def __len__(self) -> int:
        return len(self.messages)


@dataclass
class LoopSettings:
    max_iterations: int = 25
    checkpoint_interval: int = 5
    exploration_floor: int = 3
    empty_streak_limit: int = 2


@dataclass
class TurnResult:
    status: Phase
    reason: str
    text: str | None
    executions: list[ToolExecution] = field(default_factory=list)
    iterations: int = 0
    classification: Classification = Classification.SIMPLE
    tier: Tier = Tier.LIGHT


def checkpoint_due(iteration: int, interval: int) -> bool:
    return interval > 0 and iteration > 0 and iteration % interval == 0


def force_synthesis_due(empty_streak: int, iteration: int, floor: int, streak_limit: int = 2) -> bool:
    return empty_streak >= streak_limit and iteration >= floor


def _format_args(args) -> str:
    text = "\n".join(f"{k}={v}" for k, v in args.items())
    if len(text) > MAX_ARG_LOG:
        text = text[:MAX_ARG_LOG] + f"... ({len(text)} chars total)"
    return text


def _answer_text(prose: str) -> str:
    return prose.replace(COMPLETION_MARKER, "").strip()


class TurnRunner:
    """Drives one Turn through PLANNING, PARSING, EXECUTING and FOLDING.

    Each phase has a handler that returns the next phase. Every path that
    does not terminate passes through FOLDING, which advances the iteration
    counter, so a Turn ends within ``max_iterations`` model steps.
    """

    def __init__(
        self,
        *,
        context: ContextManager,
        light: Conversation,
        heavy: Conversation,
        light_model: str,
        heavy_model: str,
        complete,
        tools: dict,
        classification: Classification = Classification.SIMPLE,
        settings: LoopSettings | None = None,
        sink=None,
        report: ReportCollector | None = None,
        verbose: bool = False,
        iteration_offset: int = 0,
    ):
        self.context = context
        self.light = light
        self.heavy = heavy
        self.models = {Tier.LIGHT: light_model, Tier.HEAVY: heavy_model}
        self.complete = complete
        self.tools = tools
        self.classification = classification
        self.settings = settings or LoopSettings()
        self.sink = sink
        self.report = report
        self.verbose = verbose
        self.iteration_offset = iteration_offset

        self.phase = Phase.PLANNING
        self.tier = Tier.LIGHT
        self.iteration = 0
        self.reason: str | None = None
        self.task_message = context.turn.user_text
        self.response_text = ""
        self.text: str | None = None
        self.invocations: list[directives.ToolInvocation] = []
        self.pending: list[tuple[directives.ToolInvocation, ToolResult, str]] = []
        self.empty_streak = 0

    # -- Plumbing ------------------------------------------------------------

    def _call(self, tier: Tier, messages: list[dict], purpose: str) -> Completion:
        model = self.models[tier]
        token_est = estimate_tokens(messages) if (self.verbose or self.report) else None
        if self.verbose and purpose == "step":
            fmt.iteration_header(
                self.iteration + 1, self.settings.max_iterations, tier.value, token_est
            )
        t0 = time.monotonic()
        completion = self.complete(model, messages)
        elapsed = time.monotonic() - t0
        if self.verbose:
            fmt.llm_timing(elapsed, completion.finish_reason)
        if self.report:
            self.report.record_llm_call(
                self.iteration_offset + self.iteration + 1,
                tier.value,
                model,
                elapsed,
                token_est,
                completion.finish_reason,
                purpose=purpose,
            )
        return completion

    def _record(self, role: str, content: str, **metadata) -> None:
        if self.sink is not None:
            self.sink.record_message(role, content, metadata)

    def _switch(self, to_tier: Tier, reason: str) -> None:
        if self.verbose:
            fmt.tier_switch(self.tier.value, to_tier.value, reason)
        if self.report:
            self.report.record_tier_switch(
                self.iteration_offset + self.iteration + 1, self.tier.value, to_tier.value, reason
            )
        self.tier = to_tier
        self.task_message = SYNTHESIS_PROMPT.format(task=self.context.turn.user_text)

    def _finish(self, phase: Phase, reason: str) -> Phase:
        self.reason = reason
        return phase

    # -- Phase handlers ------------------------------------------------------

    def _plan(self) -> Phase:
        if self.iteration == 0 and self.classification is Classification.COMPLEX:
            self._exploration_plan()

        if self.tier is Tier.LIGHT:
            self.light.clear()
            prompt = f"{self.context.view_for(Tier.LIGHT)}\n\n{NEXT_STEP_PROMPT}"
            conversation = self.light
            remembered = prompt
        else:
            # the view is rebuilt every step; memory keeps only the instruction
            prompt = f"{self.context.view_for(Tier.HEAVY)}\n\n{self.task_message}"
            conversation = self.heavy
            remembered = self.task_message

        completion = self._call(self.tier, conversation.request(prompt), "step")
        conversation.commit(remembered, completion.content)
        if completion.content is None:
            self.iteration += 1
            return self._finish(Phase.DONE, "empty_response")
        self.response_text = completion.content
        return Phase.PARSING

    def _exploration_plan(self) -> None:
        prompt = PLAN_PROMPT.format(task=self.context.turn.user_text)
        completion = self._call(Tier.HEAVY, self.heavy.request(prompt), "plan")
        self.heavy.commit(prompt, completion.content)
        if directives.has_directives(completion.content):
            fmt.warning("tool directives in the exploration plan were not run")
        plan = directives.strip(completion.content)
        if plan:
            self.context.set_plan(plan)
            if self.verbose:
                fmt.plan(plan)

    def _parse(self) -> Phase:
        raw = self.response_text
        invocations = directives.parse(raw)
        prose = directives.strip(raw)

        self.context.record_model_response(prose)
        self._record(
            "assistant",
            prose,
            tier=self.tier.value,
            directives=len(invocations),
            iteration=self.iteration_offset + self.iteration + 1,
        )
        self.text = _answer_text(prose)
        if self.verbose and prose and self.tier is Tier.LIGHT:
            fmt.assistant_text(prose)

        if COMPLETION_MARKER in raw and not invocations:
            self.iteration += 1
            return self._finish(Phase.DONE, "complete")

        if not invocations and self.iteration == 0:
            command = default_discovery_command()
            if self.verbose:
                fmt.info(f"first iteration had no tool directives, running {command!r}")
            invocations = [directives.ToolInvocation("Bash", {"command": command})]
        elif not invocations and self.tier is Tier.HEAVY:
            self.iteration += 1
            return self._finish(Phase.DONE, "final_answer")

        self.invocations = invocations
        return Phase.EXECUTING

    def _execute(self) -> Phase:
        self.pending = []
        for inv in self.invocations:
            if self.verbose:
                fmt.tool_call(inv.name, _format_args(inv.args))
            t0 = time.monotonic()
            if inv.name not in self.tools:
                result: ToolResult = Failure(f"Unknown tool: {inv.name}")
            else:
                try:
                    result = dispatch(self.tools, inv.name, inv.args)
                except Exception as e:
                    result = Failure(f"{inv.name} raised {type(e).__name__}: {e}")
            elapsed = time.monotonic() - t0
            summary = summarize_result(inv, result)

            if isinstance(result, Failure):
                if self.verbose:
                    fmt.tool_error(inv.name, result.error_message)
            elif self.verbose:
                fmt.tool_result(inv.name, elapsed, summary)
            if self.report:
                self.report.record_tool_call(
                    self.iteration_offset + self.iteration + 1,
                    inv.name,
                    dict(inv.args),
                    result.ok,
                    elapsed,
                    error=None if result.ok else result.error_message,
                )
            self.pending.append((inv, result, summary))
        return Phase.FOLDING

    def _fold(self) -> Phase:
        for inv, result, summary in self.pending:
            self.context.record_tool_execution(inv, result, summary)
            self._record("tool", summary, tool=inv.name, success=result.ok)

        self.empty_streak = 0 if self.pending else self.empty_streak + 1
        self.pending = []

        if self.tier is Tier.LIGHT:
            if checkpoint_due(self.iteration, self.settings.checkpoint_interval):
                decision = self._checkpoint()
                if decision is CheckpointDecision.STOP:
                    self._switch(Tier.HEAVY, "checkpoint")
            elif force_synthesis_due(
                self.empty_streak,
                self.iteration,
                self.settings.exploration_floor,
                self.settings.empty_streak_limit,
            ):
                self._switch(Tier.HEAVY, "no_tools")

        self.iteration += 1
        if self.iteration >= self.settings.max_iterations:
            return self._finish(Phase.ABORTED, "max_iterations")
        return Phase.PLANNING

    def _checkpoint(self) -> CheckpointDecision:
        def complete(model_id, messages):
            return self._call(Tier.HEAVY, messages, "checkpoint")

        decision = checkpoint.evaluate(
            self.context.view_for(Tier.LIGHT),
            self.context.turn.user_text,
            complete,
            self.models[Tier.HEAVY],
            system_prompt=self.heavy.system_prompt,
        )
        if self.verbose:
            fmt.checkpoint(decision.value)
        if self.report:
            self.report.record_checkpoint(
                self.iteration_offset + self.iteration + 1, decision.value
            )
        return decision

    # -- Driver --------------------------------------------------------------

    def run(self) -> TurnResult:
        handlers = {
            Phase.PLANNING: self._plan,
            Phase.PARSING: self._parse,
            Phase.EXECUTING: self._execute,
            Phase.FOLDING: self._fold,
        }
        try:
            while self.phase not in TERMINAL_PHASES:
                self.phase = handlers[self.phase]()
        except ModelProviderError:
            self.phase = Phase.ABORTED
            self.reason = "provider_error"
            raise

        if self.verbose:
            fmt.completion(self.iteration, self.reason)
        return TurnResult(
            status=self.phase,
            reason=self.reason,
            text=self.text,
            executions=list(self.context.executions),
            iterations=self.iteration,
            classification=self.classification,
            tier=self.tier,
        )


# -- CLI ---------------------------------------------------------------------


def build_parser():
    """Build and return the argument parser.

    Options that may also come from a config file default to ``_UNSET`` so
    ``apply_config_to_args`` can tell them apart from explicit CLI values.
    """
    parser = argparse.ArgumentParser(
        prog="grc",
        usage="%(prog)s [options] <question>\n       %(prog)s --repl [options] [question]",
        description="A tiered coding agent: a fast model explores, a large model plans and answers.",
    )
    parser.add_argument("--version", action="store_true", help="Print the version and exit.")
    parser.add_argument(
        "question", nargs="?", default=None, help="The question or task for the model."
    )
    parser.add_argument(
        "--repl",
        action="store_true",
        help="Start an interactive session instead of answering a single question.",
    )
    parser.add_argument(
        "--init-config",
        action="store_true",
        help="Print a commented config template and exit.",
    )
    parser.add_argument(
        "--project",
        action="store_true",
        help="With --init-config, print the project (grc.toml) template.",
    )
    parser.add_argument(
        "--provider",
        choices=list(PROVIDERS),
        default=_UNSET,
        help="LLM provider (default: groq).",
    )
    parser.add_argument(
        "--api-key",
        type=str,
        default=_UNSET,
        help="API key for the provider (overrides GROQ_API_KEY / OPENROUTER_API_KEY).",
    )
    parser.add_argument("--base-url", default=_UNSET, help="Override the provider API base URL.")
    parser.add_argument(
        "--model",
        type=str,
        default=_UNSET,
        help="Heavy-tier model (default: chosen from the complexity table).",
    )
    parser.add_argument(
        "--light-model",
        type=str,
        default=_UNSET,
        help="Light-tier model (default: chosen from the complexity table).",
    )
    parser.add_argument(
        "--experimental",
        action="store_true",
        default=_UNSET,
        help="Use the experimental model pair.",
    )
    parser.add_argument(
        "--max-iterations",
        type=int,
        default=_UNSET,
        help="Maximum loop iterations per question (default: 25).",
    )
    parser.add_argument(
        "--checkpoint-interval",
        type=int,
        default=_UNSET,
        help="Ask the heavy model whether to stop every N iterations; 0 disables (default: 5).",
    )
    parser.add_argument(
        "--exploration-floor",
        type=int,
        default=_UNSET,
        help="Minimum iterations before an idle light model hands over (default: 3).",
    )
    parser.add_argument(
        "--max-output-tokens",
        type=int,
        default=_UNSET,
        help="Maximum output tokens per model call (default: 4096).",
    )
    parser.add_argument(
        "--temperature",
        type=float,
        default=_UNSET,
        help="Sampling temperature (default: provider default).",
    )
    parser.add_argument(
        "--shell-timeout",
        type=int,
        default=_UNSET,
        help="Wall-clock limit for Bash commands in seconds (default: 120).",
    )
    parser.add_argument("--found-files-cap", type=int, default=_UNSET, help=argparse.SUPPRESS)
    parser.add_argument("--read-files-cap", type=int, default=_UNSET, help=argparse.SUPPRESS)
    parser.add_argument("--failed-files-cap", type=int, default=_UNSET, help=argparse.SUPPRESS)
    parser.add_argument("--recent-results-cap", type=int, default=_UNSET, help=argparse.SUPPRESS)
    parser.add_argument(
        "--base-dir",
        type=str,
        default=".",
        help="Base directory for file tools (default: current directory).",
    )
    parser.add_argument(
        "--no-memory",
        action="store_true",
        default=_UNSET,
        help="Don't record this session under ~/.grc/memory.",
    )
    parser.add_argument(
        "--memory-dir",
        type=str,
        default=_UNSET,
        help="Directory for session memory (default: ~/.grc/memory).",
    )
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        default=_UNSET,
        help="Suppress all diagnostics; only print the final result.",
    )
    parser.add_argument(
        "--report",
        type=str,
        default=None,
        metavar="FILE",
        help="Write a JSON run report to FILE. Incompatible with --repl.",
    )

    color_group = parser.add_mutually_exclusive_group()
    color_group.add_argument(
        "--color",
        action="store_true",
        default=_UNSET,
        help="Force ANSI color even when stderr is not a TTY.",
    )
    color_group.add_argument(
        "--no-color",
        action="store_true",
        default=_UNSET,
        help="Disable ANSI color even when stderr is a TTY.",
    )

    return parser


def session_from_args(args):
    from .session import Session

    return Session(
        base_dir=args.base_dir,
        provider=args.provider,
        model=args.model,
        light_model=args.light_model,
        api_key=args.api_key,
        base_url=args.base_url,
        experimental=args.experimental,
        max_iterations=args.max_iterations,
        checkpoint_interval=args.checkpoint_interval,
        exploration_floor=args.exploration_floor,
        max_output_tokens=args.max_output_tokens,
        temperature=args.temperature,
        shell_timeout=args.shell_timeout,
        found_files_cap=args.found_files_cap,
        read_files_cap=args.read_files_cap,
        failed_files_cap=args.failed_files_cap,
        recent_results_cap=args.recent_results_cap,
        memory=not args.no_memory,
        memory_dir=args.memory_dir,
        verbose=args.verbose,
    )


def main():
    parser = build_parser()
    args = parser.parse_args()

    if args.version:
        try:
            version = metadata.version("grc-agent")
        except metadata.PackageNotFoundError:
            version = "unknown"
        print(version)
        sys.exit(0)

    if args.init_config:
        print(generate_config(project=args.project), end="")
        sys.exit(0)

    try:
        config = load_config(Path(args.base_dir))
    except ConfigError as e:
        fmt.error(str(e))
        sys.exit(1)
    apply_config_to_args(args, config)
    args.verbose = not args.quiet

    if not args.repl and args.question is None:
        parser.error("question is required (or use --repl)")
    if args.report and args.repl:
        parser.error("--report is incompatible with --repl")
    if args.max_iterations < 1:
        parser.error("--max-iterations must be at least 1")
    if not Path(args.base_dir).is_dir():
        parser.error(f"--base-dir is not a directory: {args.base_dir}")

    fmt.init(color=args.color, no_color=args.no_color)

    report = ReportCollector() if args.report else None
    session = None

    def _write_report(outcome, answer=None, exit_code=0, iterations=0, reason=None, error_message=None):
        if not report:
            return
        models = {
            "light": getattr(session, "light_model_id", args.light_model),
            "heavy": getattr(session, "heavy_model_id", args.model),
        }
        built = report.build_report(
            task=args.question or "",
            models=models,
            provider=args.provider,
            settings={
                "max_iterations": args.max_iterations,
                "checkpoint_interval": args.checkpoint_interval,
                "exploration_floor": args.exploration_floor,
                "max_output_tokens": args.max_output_tokens,
                "temperature": args.temperature,
                "experimental": args.experimental,
                "shell_timeout": args.shell_timeout,
            },
            outcome=outcome,
            answer=answer,
            exit_code=exit_code,
            iterations=iterations,
            reason=reason,
            error_message=error_message,
        )
        try:
            report.write(args.report, built)
        except OSError as e:
            fmt.error(f"Failed to write report to {args.report}: {e}")
            return
        if args.verbose:
            fmt.info(f"Report written to {args.report}")

    try:
        session = session_from_args(args)
        session.report = report
        if args.repl:
            repl_loop(session, initial=args.question, verbose=args.verbose)
            return

        result = session.ask(args.question)
    except AgentError as e:
        fmt.error(str(e))
        _write_report(
            "error",
            exit_code=1,
            iterations=report.max_iteration_seen if report else 0,
            error_message=str(e),
        )
        sys.exit(1)

    if result.answer:
        print(result.answer)
    if result.exhausted:
        fmt.warning("max iterations reached for this question.")
        _write_report(
            "exhausted",
            answer=result.answer,
            exit_code=2,
            iterations=result.iterations,
            reason=result.reason,
        )
        sys.exit(2)
    _write_report(
        "success", answer=result.answer, iterations=result.iterations, reason=result.reason
    )


# -- REPL --------------------------------------------------------------------


def _repl_help() -> None:
    """Print available REPL commands."""
    fmt.info(
        "Available commands:\n"
        "  /help              Show this help message\n"
        "  /clear             Clear context, model memories and counters\n"
        "  /history           List recent saved sessions\n"
        "  /load <id>         Restore a saved session's messages\n"
        "  /exit, /quit       Exit the REPL"
    )


def _repl_load(session, arg: str) -> None:
    arg = arg.strip()
    if not arg:
        fmt.warning("/load requires a session id")
        return
    try:
        count = session.load(arg)
    except ValueError as e:
        fmt.warning(str(e))
        return
    if count is None:
        fmt.warning(f"no saved session {arg}")
    else:
        fmt.info(f"restored {count} messages from session {arg}")


def _repl_ask(session, question: str) -> None:
    try:
        result = session.ask(question)
    except KeyboardInterrupt:
        fmt.warning("interrupted, question aborted.")
        return
    except AgentError as e:
        fmt.error(str(e))
        return
    if result.answer:
        print(result.answer)
    if result.exhausted:
        fmt.warning("max iterations reached for this question.")


def repl_loop(session, *, initial: str | None = None, verbose: bool = True) -> None:
    """Interactive read-eval-print loop."""
    from prompt_toolkit import PromptSession
    from prompt_toolkit.formatted_text import FormattedText
    from prompt_toolkit.history import FileHistory

    history_path = Path.home() / ".grc" / "repl_history"
    history_path.parent.mkdir(parents=True, exist_ok=True)
    prompt_session = PromptSession(
        history=FileHistory(str(history_path)),
        enable_history_search=True,
    )
    prompt_text = FormattedText([("bold fg:ansigreen", "grc> ")])

    if verbose:
        fmt.repl_banner()
        fmt.model_info(session.describe_models())
    if session.store is not None:
        removed = session.store.clear_old_sessions(30)
        if removed and verbose:
            fmt.info(f"removed {removed} sessions older than 30 days")

    if initial:
        _repl_ask(session, initial)

    while True:
        try:
            print(file=sys.stderr)  # blank line before prompt
            line = prompt_session.prompt(prompt_text)
        except (EOFError, KeyboardInterrupt):
            print(file=sys.stderr)  # newline after ^D / ^C
            break

        line = line.strip()
        if not line:
            continue
        if line in ("/exit", "/quit"):
            break

        cmd_parts = line.split(None, 1)
        cmd = cmd_parts[0].lower()
        cmd_arg = cmd_parts[1] if len(cmd_parts) > 1 else ""

        if cmd == "/help":
            _repl_help()
        elif cmd == "/clear":
            session.reset()
            fmt.info("context cleared")
        elif cmd == "/history":
            fmt.session_list(session.recent_sessions())
        elif cmd == "/load":
            _repl_load(session, cmd_arg)
        else:
            _repl_ask(session, line)


if __name__ == "__main__":
    main()
