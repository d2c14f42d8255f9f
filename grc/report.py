"""Error types and JSON run reports."""

import json
from datetime import datetime, timezone


class AgentError(Exception):
    """Raised by the agent loop or setup helpers for reportable runtime failures."""


class ConfigError(AgentError):
    """Raised for invalid configuration (missing model, bad API key, etc.)."""


class ModelProviderError(AgentError):
    """Raised when the chat provider fails (auth, network, rate limit)."""


class ReportCollector:
    """Accumulates events during a run for JSON report output."""

    def __init__(self):
        self.events: list[dict] = []
        self.tool_stats: dict[str, dict[str, int]] = {}
        self.tier_switches = 0
        self.checkpoints = 0
        self.llm_calls = 0
        self.total_llm_time = 0.0
        self.total_tool_time = 0.0
        self.max_iteration_seen = 0

    def _seen(self, iteration: int) -> None:
        if iteration > self.max_iteration_seen:
            self.max_iteration_seen = iteration

    def record_llm_call(
        self,
        iteration: int,
        tier: str,
        model: str,
        duration: float,
        token_est: int | None,
        finish_reason: str | None,
        *,
        purpose: str = "step",
    ):
        self.llm_calls += 1
        self.total_llm_time += duration
        self._seen(iteration)
        self.events.append(
            {
                "iteration": iteration,
                "type": "llm_call",
                "tier": tier,
                "model": model,
                "purpose": purpose,
                "duration_s": round(duration, 3),
                "prompt_tokens_est": token_est,
                "finish_reason": finish_reason,
            }
        )

    def record_tool_call(
        self,
        iteration: int,
        name: str,
        arguments: dict,
        succeeded: bool,
        duration: float,
        error: str | None = None,
    ):
        self.total_tool_time += duration
        self._seen(iteration)
        stats = self.tool_stats.setdefault(name, {"succeeded": 0, "failed": 0})
        if succeeded:
            stats["succeeded"] += 1
        else:
            stats["failed"] += 1
        event: dict = {
            "iteration": iteration,
            "type": "tool_call",
            "name": name,
            "arguments": arguments,
            "succeeded": succeeded,
            "duration_s": round(duration, 3),
        }
        if error is not None:
            event["error"] = error
        self.events.append(event)

    def record_tier_switch(self, iteration: int, from_tier: str, to_tier: str, reason: str):
        self.tier_switches += 1
        self.events.append(
            {
                "iteration": iteration,
                "type": "tier_switch",
                "from": from_tier,
                "to": to_tier,
                "reason": reason,
            }
        )

    def record_checkpoint(self, iteration: int, decision: str):
        self.checkpoints += 1
        self.events.append(
            {"iteration": iteration, "type": "checkpoint", "decision": decision}
        )

    def build_report(
        self,
        *,
        task: str,
        models: dict,
        provider: str,
        settings: dict,
        outcome: str,
        answer: str | None,
        exit_code: int,
        iterations: int,
        reason: str | None = None,
        error_message: str | None = None,
    ) -> dict:
        tool_calls_succeeded = sum(s["succeeded"] for s in self.tool_stats.values())
        tool_calls_failed = sum(s["failed"] for s in self.tool_stats.values())

        result: dict = {
            "outcome": outcome,
            "answer": answer,
            "exit_code": exit_code,
        }
        if reason is not None:
            result["reason"] = reason
        if error_message is not None:
            result["error_message"] = error_message

        return {
            "version": 1,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "task": task,
            "models": models,
            "provider": provider,
            "settings": settings,
            "result": result,
            "stats": {
                "iterations": iterations,
                "tool_calls_total": tool_calls_succeeded + tool_calls_failed,
                "tool_calls_succeeded": tool_calls_succeeded,
                "tool_calls_failed": tool_calls_failed,
                "tool_calls_by_name": dict(self.tool_stats),
                "tier_switches": self.tier_switches,
                "checkpoints": self.checkpoints,
                "llm_calls": self.llm_calls,
                "total_llm_time_s": round(self.total_llm_time, 3),
                "total_tool_time_s": round(self.total_tool_time, 3),
            },
            "timeline": self.events,
        }

    def write(self, path: str, report: dict):
        with open(path, "w", encoding="utf-8") as f:
            json.dump(report, f, indent=2)
            f.write("\n")
