"""Bounded multi-round turn engine."""

from __future__ import annotations

import json
from collections.abc import Sequence
from dataclasses import dataclass

from loguru import logger

from yips.core.envelope import parse_envelope
from yips.core.types import (
    ActionCall,
    ActionKind,
    ActionResult,
    AgentWarning,
    ChatMessage,
    SkillAction,
    ToolAction,
    TurnRequest,
    TurnResult,
)

DEFAULT_MAX_ROUNDS = 6
FAILURE_PIVOT_THRESHOLD = 2
NO_RESPONSE_PLACEHOLDER = "(no response)"
PIVOT_GUIDANCE = (
    "Automatic pivot: consecutive action failures detected. Try a different approach, "
    "use different tools, or ask the user for clarification."
)

_GROUP_LABELS: tuple[tuple[ActionKind, str, str | None], ...] = (
    ("tool", "Tool results", "tool"),
    ("skill", "Skill results", "skill"),
    ("subagent", "Subagent results", None),
)


@dataclass
class _TurnState:
    rounds: int = 0
    finished: bool = False
    consecutive_failures: int = 0
    latest_output_tokens_per_second: float | None = None
    used_tokens_exact: int | None = None


async def run_agent_turn(request: TurnRequest) -> TurnResult:
    """Drive reply → parse → execute rounds until the model stops requesting actions."""

    max_rounds = request.max_rounds if request.max_rounds is not None else DEFAULT_MAX_ROUNDS
    state = _TurnState()

    while not state.finished and state.rounds < max_rounds:
        state.rounds += 1
        logger.info("turn.round.start round={} max_rounds={}", state.rounds, max_rounds)

        reply = await request.request_assistant()
        parsed = parse_envelope(reply.text)

        for message in parsed.warnings:
            request.on_warning(AgentWarning(code="protocol_warning", message=message))
        for error in parsed.errors:
            logger.warning("turn.protocol.error round={} error={}", state.rounds, error)
            request.on_warning(AgentWarning(code="protocol_parse_error", message=error))
            request.history.append(ChatMessage(role="system", content=f"Protocol parse error: {error}"))

        assistant_text = parsed.assistant_text.strip()
        if not assistant_text and not reply.text.strip() and not parsed.actions:
            assistant_text = NO_RESPONSE_PLACEHOLDER
        if assistant_text:
            request.on_assistant_text(assistant_text, reply.rendered)
            request.history.append(ChatMessage(role="assistant", content=assistant_text))

        _record_usage(request, reply.text, reply.completion_tokens, reply.generation_duration_ms, state)
        if reply.total_tokens is not None and reply.total_tokens >= 0:
            state.used_tokens_exact = reply.total_tokens
        else:
            state.used_tokens_exact = request.estimate_history_tokens(request.history)

        if not parsed.actions:
            state.finished = True
            break

        results = await request.execute_actions(parsed.actions)
        _append_results(request.history, parsed.actions, results)
        _track_failures(request, results, state)

        if request.on_round_complete is not None:
            request.on_round_complete()

    if not state.finished:
        logger.warning("turn.max_depth rounds={}", max_rounds)
        request.on_warning(
            AgentWarning(code="max_depth", message=f"Stopped action chaining after max depth ({max_rounds} rounds).")
        )

    return TurnResult(
        finished=state.finished,
        rounds=state.rounds,
        latest_output_tokens_per_second=state.latest_output_tokens_per_second,
        used_tokens_exact=state.used_tokens_exact,
    )


def is_failure_round(results: Sequence[ActionResult]) -> bool:
    return bool(results) and all(result.failed for result in results)


def _record_usage(
    request: TurnRequest,
    text: str,
    completion_tokens: int | None,
    duration_ms: float | None,
    state: _TurnState,
) -> None:
    tokens = (
        completion_tokens
        if completion_tokens is not None and completion_tokens > 0
        else request.estimate_completion_tokens(text)
    )
    state.latest_output_tokens_per_second = request.compute_tokens_per_second(tokens, duration_ms or 0)


def _track_failures(request: TurnRequest, results: Sequence[ActionResult], state: _TurnState) -> None:
    if not is_failure_round(results):
        state.consecutive_failures = 0
        return

    state.consecutive_failures += 1
    if state.consecutive_failures < FAILURE_PIVOT_THRESHOLD:
        return

    logger.info("turn.pivot round={} failures={}", state.rounds, state.consecutive_failures)
    request.history.append(ChatMessage(role="system", content=PIVOT_GUIDANCE))
    request.on_warning(
        AgentWarning(
            code="automatic_pivot",
            message="Consecutive action failures detected. Attempting an alternative approach.",
        )
    )
    state.consecutive_failures = 0


def _append_results(
    history: list[ChatMessage],
    actions: Sequence[ActionCall],
    results: Sequence[ActionResult],
) -> None:
    history.append(ChatMessage(role="system", content=f"Action results: {_to_json([r.to_payload() for r in results])}"))

    names = {action.call.id: action.call.name for action in actions if isinstance(action, ToolAction | SkillAction)}
    for kind, label, name_key in _GROUP_LABELS:
        grouped = [_grouped_payload(result, name_key, names) for result in results if result.kind == kind]
        if grouped:
            history.append(ChatMessage(role="system", content=f"{label}: {_to_json(grouped)}"))


def _grouped_payload(result: ActionResult, name_key: str | None, names: dict[str, str]) -> dict[str, object]:
    payload: dict[str, object] = {"callId": result.call_id}
    if name_key is not None:
        payload[name_key] = names.get(result.call_id, "unknown")
    payload["status"] = result.status
    payload["output"] = result.output
    if result.metadata is not None:
        payload["metadata"] = result.metadata
    return payload


def _to_json(data: object) -> str:
    return json.dumps(data, ensure_ascii=False, default=str)
