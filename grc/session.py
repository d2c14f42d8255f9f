"""Public library API for grc: Session class and Result dataclass."""

from dataclasses import dataclass, field
from pathlib import Path

from .context import ContextManager, ToolExecution
from .memory import SessionStore
from .report import ReportCollector
from .tiers import Classification, classify, model_info, select_model_id


@dataclass
class Result:
    """Outcome of one ``Session.ask`` call."""

    answer: str | None
    status: str
    reason: str
    executions: list[ToolExecution] = field(default_factory=list)
    iterations: int = 0
    classification: str = Classification.SIMPLE.value

    @property
    def exhausted(self) -> bool:
        return self.reason == "max_iterations"


class Session:
    """Programmatic interface to the tiered agent loop.

    Owns the context manager, both tier conversations, the iteration
    counter and the tool names used by the previous question. Pass
    ``complete`` (``complete(model_id, messages) -> Completion``) and
    ``tools`` (name -> provider) to run without a network or a real
    filesystem.
    """

    def __init__(
        self,
        *,
        base_dir: str = ".",
        provider: str = "groq",
        model: str | None = None,
        light_model: str | None = None,
        api_key: str | None = None,
        base_url: str | None = None,
        experimental: bool = False,
        max_iterations: int = 25,
        checkpoint_interval: int = 5,
        exploration_floor: int = 3,
        max_output_tokens: int = 4096,
        temperature: float | None = None,
        shell_timeout: int = 120,
        found_files_cap: int = 15,
        read_files_cap: int = 10,
        failed_files_cap: int = 5,
        recent_results_cap: int = 3,
        memory: bool = True,
        memory_dir: str | None = None,
        verbose: bool = False,
        complete=None,
        tools: dict | None = None,
        light_prompt: str | None = None,
        heavy_prompt: str | None = None,
    ):
        from .agent import Conversation, LoopSettings

        self.base_dir = base_dir
        self.provider = provider
        self.model = model
        self.light_model = light_model
        self.api_key = api_key
        self.base_url = base_url
        self.experimental = experimental
        self.max_output_tokens = max_output_tokens
        self.temperature = temperature
        self.shell_timeout = shell_timeout
        self.memory_dir = memory_dir
        self.verbose = verbose
        self.settings = LoopSettings(
            max_iterations=max_iterations,
            checkpoint_interval=checkpoint_interval,
            exploration_floor=exploration_floor,
        )

        self.context = ContextManager(
            base_dir,
            found_cap=found_files_cap,
            read_cap=read_files_cap,
            failed_cap=failed_files_cap,
            recent_cap=recent_results_cap,
        )
        self.light = Conversation(light_prompt)
        self.heavy = Conversation(heavy_prompt)
        self._custom_prompts = (light_prompt is not None, heavy_prompt is not None)
        self.iterations = 0
        self.last_tool_names: list[str] = []
        self.store = SessionStore(memory_dir, base_dir) if memory else None
        self.report: ReportCollector | None = None

        self._complete = complete
        self._tools = tools
        self._setup_done = False

    @classmethod
    def from_config(cls, base_dir: str = ".", **overrides) -> "Session":
        """Build a Session from the global config and ``<base_dir>/grc.toml``.

        Keyword arguments win over config values. Raises ConfigError for
        an invalid config file.
        """
        from .config import config_to_session_kwargs, load_config

        kwargs = config_to_session_kwargs(load_config(Path(base_dir)))
        kwargs.update(overrides)
        return cls(base_dir=base_dir, **kwargs)

    @property
    def light_model_id(self) -> str:
        return select_model_id(Classification.SIMPLE, self.light_model, self.experimental)

    @property
    def heavy_model_id(self) -> str:
        return select_model_id(Classification.COMPLEX, self.model, self.experimental)

    def describe_models(self) -> str:
        light = model_info(self.light_model_id)
        heavy = model_info(self.heavy_model_id)
        return (
            f"light: {light.name} ({light.speed}), "
            f"heavy: {heavy.name} ({heavy.speed}) via {self.provider}"
        )

    def _setup(self) -> None:
        """Resolve the chat provider, tool registry and system prompts once."""
        if self._setup_done:
            return

        from .agent import (
            HEAVY_PROMPT_FILE,
            LIGHT_PROMPT_FILE,
            load_prompt,
            make_completer,
            resolve_api_key,
        )
        from .tools import build_registry

        if self._complete is None:
            self._complete = make_completer(
                provider=self.provider,
                api_key=resolve_api_key(self.provider, self.api_key),
                base_url=self.base_url,
                max_output_tokens=self.max_output_tokens,
                temperature=self.temperature,
                verbose=self.verbose,
            )
        if self._tools is None:
            self._tools = build_registry(self.base_dir, shell_timeout=self.shell_timeout)

        custom_light, custom_heavy = self._custom_prompts
        if not custom_light:
            self.light.system_prompt = load_prompt(LIGHT_PROMPT_FILE, self.base_dir)
        if not custom_heavy:
            self.heavy.system_prompt = load_prompt(HEAVY_PROMPT_FILE, self.base_dir)
        self._setup_done = True

    def ask(self, question: str) -> Result:
        """Run one Turn. Model provider errors propagate after history is kept."""
        from .agent import TurnRunner

        self._setup()
        classification = classify(question, self.last_tool_names)

        self.context.record_user_message(question)
        self.context.begin_turn(question)
        self.heavy.clear()
        if self.store is not None:
            self.store.record_message("user", question, {"classification": classification.value})

        runner = TurnRunner(
            context=self.context,
            light=self.light,
            heavy=self.heavy,
            light_model=self.light_model_id,
            heavy_model=self.heavy_model_id,
            complete=self._complete,
            tools=self._tools,
            classification=classification,
            settings=self.settings,
            sink=self.store,
            report=self.report,
            verbose=self.verbose,
            iteration_offset=self.iterations,
        )
        try:
            outcome = runner.run()
        finally:
            self.iterations += runner.iteration
            self.last_tool_names = self.context.turn_tool_names()

        return Result(
            answer=outcome.text,
            status=outcome.status.value,
            reason=outcome.reason,
            executions=outcome.executions,
            iterations=outcome.iterations,
            classification=outcome.classification.value,
        )

    def reset(self) -> None:
        """Forget everything said so far; the next question starts a new saved session."""
        self.context.clear()
        self.light.clear()
        self.heavy.clear()
        self.iterations = 0
        self.last_tool_names = []
        if self.store is not None:
            self.store = SessionStore(self.memory_dir, self.base_dir)

    def load(self, session_id) -> int | None:
        """Restore a saved session's messages into the session log.

        Returns the number of messages restored, or None if the session
        does not exist. Raises ValueError for a malformed id.
        """
        store = self.store or SessionStore(self.memory_dir, self.base_dir)
        messages = store.load_messages(session_id)
        if messages is None:
            return None
        return self.context.restore(messages)

    def recent_sessions(self, limit: int = 10) -> list[dict]:
        store = self.store or SessionStore(self.memory_dir, self.base_dir)
        return store.list_recent_sessions(limit)
