"""Sequential dispatch of parsed actions to per-kind executors."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from loguru import logger

from yips.core.types import (
    ActionCall,
    ActionKind,
    ActionResult,
    AgentWarning,
    SkillAction,
    SkillExecutorFn,
    SkillResult,
    SubagentAction,
    SubagentExecutorFn,
    SubagentResult,
    ToolAction,
    ToolExecutorFn,
    ToolResult,
    WarningSink,
)

_UNAVAILABLE_OUTPUT: dict[ActionKind, str] = {
    "tool": "Tool invocation is unavailable in this runtime.",
    "skill": "Skill invocation is unavailable in this runtime.",
    "subagent": "Subagent delegation is unavailable in this runtime.",
}
_UNAVAILABLE_WARNING: dict[ActionKind, str] = {
    "tool": "Tool invocation requested, but no tool runner is configured.",
    "skill": "Skill invocation requested, but no skill runner is configured.",
    "subagent": "Subagent delegation requested, but no subagent runner is configured.",
}


@dataclass(frozen=True)
class ActionRunnerDependencies:
    """Executors injected by the surrounding runtime; ``None`` means unavailable."""

    execute_tool_calls: ToolExecutorFn | None = None
    execute_skill_calls: SkillExecutorFn | None = None
    execute_subagent_calls: SubagentExecutorFn | None = None
    on_warning: WarningSink | None = None


async def execute_agent_actions(
    actions: Sequence[ActionCall],
    dependencies: ActionRunnerDependencies,
) -> list[ActionResult]:
    """Run actions one at a time, returning exactly one result per action in order.

    Executors are awaited strictly in sequence: later actions may depend on the
    side effects of earlier ones.
    """

    results: list[ActionResult] = []
    for action in actions:
        logger.debug("action.dispatch kind={} id={}", action.kind, action.call.id)
        results.append(await _execute_one(action, dependencies))
    return results


async def _execute_one(action: ActionCall, dependencies: ActionRunnerDependencies) -> ActionResult:
    results: Sequence[ToolResult | SkillResult | SubagentResult]
    if isinstance(action, ToolAction):
        if dependencies.execute_tool_calls is None:
            return _unavailable(action, dependencies)
        results = await dependencies.execute_tool_calls([action.call])
    elif isinstance(action, SkillAction):
        if dependencies.execute_skill_calls is None:
            return _unavailable(action, dependencies)
        results = await dependencies.execute_skill_calls([action.call])
    elif isinstance(action, SubagentAction):
        if dependencies.execute_subagent_calls is None:
            return _unavailable(action, dependencies)
        results = await dependencies.execute_subagent_calls([action.call])
    else:
        raise TypeError(f"unsupported action: {action!r}")

    for result in results:
        if result.call_id == action.call.id:
            return result.to_action_result()
    return _missing_result(action)


def _unavailable(action: ActionCall, dependencies: ActionRunnerDependencies) -> ActionResult:
    logger.warning("action.runner.unavailable kind={} id={}", action.kind, action.call.id)
    if dependencies.on_warning is not None:
        dependencies.on_warning(
            AgentWarning(code=f"{action.kind}_runner_unavailable", message=_UNAVAILABLE_WARNING[action.kind])
        )
    return ActionResult(
        kind=action.kind,
        call_id=action.call.id,
        status="error",
        output=_UNAVAILABLE_OUTPUT[action.kind],
    )


def _missing_result(action: ActionCall) -> ActionResult:
    logger.warning("action.result.missing kind={} id={}", action.kind, action.call.id)
    return ActionResult(
        kind=action.kind,
        call_id=action.call.id,
        status="error",
        output=f"{action.kind.capitalize()} call '{action.call.id}' produced no result.",
    )
