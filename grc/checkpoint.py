"""Periodic heavy-tier check on whether exploration can stop."""

import re
from enum import Enum

STOP_PROMPT = (
    "{context}\n\n"
    "Task: {task}\n\n"
    "Based on the files we've explored so far, do we have enough information "
    "to complete the task?\n\n"
    "Respond with ONLY one word:\n"
    '- "STOP" if we have enough context\n'
    '- "CONTINUE" if we need to explore more files'
)

_STOP_RE = re.compile(r"\bSTOP\b")
_CONTINUE_RE = re.compile(r"\bCONTINUE\b")


class CheckpointDecision(str, Enum):
    STOP = "STOP"
    CONTINUE = "CONTINUE"


def decide(content: str | None) -> CheckpointDecision:
    """Read a model reply. Anything but an unambiguous STOP means CONTINUE."""
    if not content:
        return CheckpointDecision.CONTINUE
    text = content.upper()
    if _STOP_RE.search(text) and not _CONTINUE_RE.search(text):
        return CheckpointDecision.STOP
    return CheckpointDecision.CONTINUE


def evaluate(
    context_text: str, task: str, complete, model_id: str, system_prompt: str | None = None
) -> CheckpointDecision:
    """Ask the heavy tier once whether to stop exploring.

    ``complete`` is called as ``complete(model_id, messages)`` and must
    return an object with a ``content`` attribute. The exchange is not
    added to any conversation memory. Provider errors propagate.
    """
    messages = []
    if system_prompt:
        messages.append({"role": "system", "content": system_prompt})
    messages.append(
        {"role": "user", "content": STOP_PROMPT.format(context=context_text, task=task)}
    )
    completion = complete(model_id, messages)
    return decide(completion.content)
