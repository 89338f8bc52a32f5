"""Wiring between the turn engine and the action runner."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from functools import partial

from yips.core.action_runner import ActionRunnerDependencies, execute_agent_actions
from yips.core.turn_engine import run_agent_turn
from yips.core.types import (
    AgentWarning,
    AssistantReply,
    ChatMessage,
    SkillExecutorFn,
    SubagentExecutorFn,
    ToolExecutorFn,
    TurnRequest,
    TurnResult,
)


@dataclass
class ConductorDependencies:
    history: list[ChatMessage]
    request_assistant: Callable[[], Awaitable[AssistantReply]]
    execute_tool_calls: ToolExecutorFn
    on_assistant_text: Callable[[str, bool], None]
    on_warning: Callable[[str], None]
    estimate_completion_tokens: Callable[[str], int]
    estimate_history_tokens: Callable[[Sequence[ChatMessage]], int]
    compute_tokens_per_second: Callable[[int, float], float | None]
    execute_skill_calls: SkillExecutorFn | None = None
    execute_subagent_calls: SubagentExecutorFn | None = None
    on_round_complete: Callable[[], None] | None = None
    max_rounds: int | None = None


async def run_conductor_turn(dependencies: ConductorDependencies) -> TurnResult:
    """Run one turn, routing actions through the per-kind executors."""

    def forward(warning: AgentWarning) -> None:
        dependencies.on_warning(warning.message)

    runner_dependencies = ActionRunnerDependencies(
        execute_tool_calls=dependencies.execute_tool_calls,
        execute_skill_calls=dependencies.execute_skill_calls,
        execute_subagent_calls=dependencies.execute_subagent_calls,
        on_warning=forward,
    )
    return await run_agent_turn(
        TurnRequest(
            history=dependencies.history,
            request_assistant=dependencies.request_assistant,
            execute_actions=partial(execute_agent_actions, dependencies=runner_dependencies),
            on_assistant_text=dependencies.on_assistant_text,
            on_warning=forward,
            estimate_completion_tokens=dependencies.estimate_completion_tokens,
            estimate_history_tokens=dependencies.estimate_history_tokens,
            compute_tokens_per_second=dependencies.compute_tokens_per_second,
            on_round_complete=dependencies.on_round_complete,
            max_rounds=dependencies.max_rounds,
        )
    )
