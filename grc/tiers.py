"""Task complexity classification and model selection."""

import re
from dataclasses import dataclass
from enum import Enum

from .tools import MUTATING_TOOLS, READ_ONLY_TOOLS

COMPLEX_KEYWORDS = (
    "implement",
    "create",
    "build",
    "design",
    "refactor",
    "debug",
    "fix bug",
    "optimize",
    "algorithm",
    "architecture",
    "system",
    "complex",
    "explain why",
    "analyze",
    "review",
    "improve",
    "enhance",
)

SIMPLE_KEYWORDS = (
    "read",
    "show",
    "list",
    "find",
    "search",
    "what is",
    "where is",
    "display",
    "print",
    "view",
    "check",
    "get",
    "fetch",
)

LONG_MESSAGE_CHARS = 200
LONG_MESSAGE_LINES = 5


def _keyword_re(keywords) -> re.Pattern:
    alternation = "|".join(re.escape(k) for k in keywords)
    return re.compile(rf"\b(?:{alternation})", re.IGNORECASE)


_COMPLEX_RE = _keyword_re(COMPLEX_KEYWORDS)
_SIMPLE_RE = _keyword_re(SIMPLE_KEYWORDS)


class Classification(str, Enum):
    COMPLEX = "complex"
    SIMPLE = "simple"


# (classification, experimental) -> model id
MODELS: dict[tuple[Classification, bool], str] = {
    (Classification.COMPLEX, False): "llama-3.3-70b-versatile",
    (Classification.SIMPLE, False): "llama-3.1-8b-instant",
    (Classification.COMPLEX, True): "meta-llama/llama-4-maverick-17b-128e-instruct",
    (Classification.SIMPLE, True): "meta-llama/llama-4-scout-17b-16e-instruct",
}


@dataclass(frozen=True)
class ModelInfo:
    name: str
    tier: str
    speed: str


_MODEL_INFO = {
    "llama-3.3-70b-versatile": ModelInfo("Llama 3.3 70B", "Heavy", "280 tok/s"),
    "llama-3.1-8b-instant": ModelInfo("Llama 3.1 8B", "Light", "560 tok/s"),
    "meta-llama/llama-4-maverick-17b-128e-instruct": ModelInfo(
        "Llama 4 Maverick", "Heavy", "600 tok/s"
    ),
    "meta-llama/llama-4-scout-17b-16e-instruct": ModelInfo(
        "Llama 4 Scout", "Light", "750 tok/s"
    ),
    "openai/gpt-oss-120b": ModelInfo("GPT-OSS 120B", "Heavy", "500 tok/s"),
    "openai/gpt-oss-20b": ModelInfo("GPT-OSS 20B", "Light", "1000 tok/s"),
}


def classify(message: str, prior_tool_names=()) -> Classification:
    """Decide whether a request needs the heavy tier's judgement.

    Rules are checked in order and the first match wins: a prior mutating
    tool, a complexity keyword, a simplicity keyword or an all-read-only
    tool history, then message length. Keywords match at word starts,
    ignoring case.
    """
    prior = list(prior_tool_names)
    if any(name in MUTATING_TOOLS for name in prior):
        return Classification.COMPLEX
    if _COMPLEX_RE.search(message):
        return Classification.COMPLEX
    if _SIMPLE_RE.search(message):
        return Classification.SIMPLE
    if prior and all(name in READ_ONLY_TOOLS for name in prior):
        return Classification.SIMPLE
    if len(message) > LONG_MESSAGE_CHARS or len(message.split("\n")) > LONG_MESSAGE_LINES:
        return Classification.COMPLEX
    return Classification.SIMPLE


def select_model_id(
    classification: Classification,
    user_override: str | None = None,
    experimental: bool = False,
) -> str:
    if user_override:
        return user_override
    return MODELS[(Classification(classification), bool(experimental))]


def model_info(model_id: str) -> ModelInfo:
    return _MODEL_INFO.get(model_id, ModelInfo(model_id, "Unknown", "Unknown"))
