"""Action envelope parsing for model replies."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any

from yips.core.types import ActionCall, SkillAction, SkillCall, SubagentAction, SubagentCall, ToolAction, ToolCall

AGENT_MARKER = "yips-agent"
LEGACY_MARKER = "yips-tools"
ENVELOPE_BLOCK_RE = re.compile(r"```(yips-agent|yips-tools)\s*\n(.*?)```", re.DOTALL)

ALLOWED_TOOLS: frozenset[str] = frozenset({
    "read_file",
    "write_file",
    "edit_file",
    "preview_write_file",
    "preview_edit_file",
    "apply_file_change",
    "list_dir",
    "grep",
    "run_command",
})
ALLOWED_SKILLS: frozenset[str] = frozenset({"search", "fetch", "build", "todos", "virtual_terminal"})
MAX_SUBAGENT_ROUNDS = 6

MULTIPLE_ENVELOPES_ERROR = "Multiple action envelopes found; expected exactly one."
EMPTY_BODY_ERROR = "Action envelope body is empty."
INVALID_JSON_ERROR = "Action envelope JSON is invalid."
NON_OBJECT_ROOT_ERROR = "Action envelope root must be a JSON object."


@dataclass(frozen=True)
class ParsedEnvelope:
    """Assistant prose split from the structured actions it requested."""

    assistant_text: str
    actions: list[ActionCall] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    envelope_found: bool = False


@dataclass(frozen=True)
class ParsedToolProtocol:
    """Per-kind view of a parsed envelope."""

    assistant_text: str
    tool_calls: list[ToolCall]
    skill_calls: list[SkillCall]
    subagent_calls: list[SubagentCall]


def parse_envelope(raw: str) -> ParsedEnvelope:
    """Parse one model reply. Never raises; malformed envelopes are reported in ``errors``."""

    matches = list(ENVELOPE_BLOCK_RE.finditer(raw))
    if not matches:
        return ParsedEnvelope(assistant_text=raw.strip())

    if len(matches) > 1:
        return ParsedEnvelope(assistant_text=raw.strip(), errors=[MULTIPLE_ENVELOPES_ERROR], envelope_found=True)

    match = matches[0]
    marker = match.group(1)
    body = match.group(2).strip()
    outside = (raw[: match.start()] + raw[match.end() :]).strip()

    if not body:
        return _failed(outside, EMPTY_BODY_ERROR)

    try:
        payload = json.loads(body)
    except (ValueError, RecursionError):
        return _failed(outside, INVALID_JSON_ERROR)

    if not isinstance(payload, dict):
        return _failed(outside, NON_OBJECT_ROOT_ERROR)

    if marker == AGENT_MARKER:
        actions = _parse_agent_actions(payload)
        inner_text = payload.get("assistant_text")
        inner = inner_text if isinstance(inner_text, str) else ""
    else:
        actions = _parse_legacy_actions(payload)
        inner = ""

    warnings: list[str] = []
    return ParsedEnvelope(
        assistant_text=_join_text(outside, inner),
        actions=_dedupe(actions, warnings),
        warnings=warnings,
        envelope_found=True,
    )


def parse_tool_protocol(raw: str) -> ParsedToolProtocol:
    parsed = parse_envelope(raw)
    tool_calls: list[ToolCall] = []
    skill_calls: list[SkillCall] = []
    subagent_calls: list[SubagentCall] = []
    for action in parsed.actions:
        if isinstance(action, ToolAction):
            tool_calls.append(action.call)
        elif isinstance(action, SkillAction):
            skill_calls.append(action.call)
        else:
            subagent_calls.append(action.call)
    return ParsedToolProtocol(
        assistant_text=parsed.assistant_text,
        tool_calls=tool_calls,
        skill_calls=skill_calls,
        subagent_calls=subagent_calls,
    )


def _failed(assistant_text: str, error: str) -> ParsedEnvelope:
    return ParsedEnvelope(assistant_text=assistant_text, errors=[error], envelope_found=True)


def _parse_agent_actions(payload: dict[str, Any]) -> list[ActionCall]:
    raw_actions = payload.get("actions")
    if not isinstance(raw_actions, list):
        return []

    actions: list[ActionCall] = []
    for entry in raw_actions:
        if not isinstance(entry, dict):
            continue
        action = _normalize_typed(entry)
        if action is not None:
            actions.append(action)
    return actions


def _normalize_typed(entry: dict[str, Any]) -> ActionCall | None:
    kind = entry.get("type")
    if kind == "tool":
        tool_call = _normalize_tool_call(entry)
        return ToolAction(tool_call) if tool_call is not None else None
    if kind == "skill":
        skill_call = _normalize_skill_call(entry)
        return SkillAction(skill_call) if skill_call is not None else None
    if kind == "subagent":
        subagent_call = _normalize_subagent_call(entry)
        return SubagentAction(subagent_call) if subagent_call is not None else None
    return None


def _parse_legacy_actions(payload: dict[str, Any]) -> list[ActionCall]:
    actions: list[ActionCall] = []

    for value in _as_list(payload.get("tool_calls")):
        tool_call = _normalize_tool_call(value)
        if tool_call is not None:
            actions.append(ToolAction(tool_call))

    for value in _as_list(payload.get("skill_calls")):
        skill_call = _normalize_skill_call(value)
        if skill_call is not None:
            actions.append(SkillAction(skill_call))

    for value in _as_list(payload.get("subagent_calls")):
        subagent_call = _normalize_subagent_call(value)
        if subagent_call is not None:
            actions.append(SubagentAction(subagent_call))

    return actions


def _normalize_tool_call(value: object) -> ToolCall | None:
    parts = _named_call_parts(value, ALLOWED_TOOLS)
    if parts is None:
        return None
    call_id, name, arguments = parts
    return ToolCall(id=call_id, name=name, arguments=arguments)


def _normalize_skill_call(value: object) -> SkillCall | None:
    parts = _named_call_parts(value, ALLOWED_SKILLS)
    if parts is None:
        return None
    call_id, name, arguments = parts
    return SkillCall(id=call_id, name=name, arguments=arguments)


def _named_call_parts(value: object, allowed: frozenset[str]) -> tuple[str, str, dict[str, Any]] | None:
    if not isinstance(value, dict):
        return None
    call_id = _non_empty(value.get("id"))
    if call_id is None:
        return None
    name = value.get("name")
    if not isinstance(name, str) or name not in allowed:
        return None
    arguments = value.get("arguments")
    if not isinstance(arguments, dict):
        return None
    return call_id, name, arguments


def _normalize_subagent_call(value: object) -> SubagentCall | None:
    if not isinstance(value, dict):
        return None
    call_id = _non_empty(value.get("id"))
    task = _non_empty(value.get("task"))
    if call_id is None or task is None:
        return None

    raw_tools = value.get("allowed_tools")
    allowed_tools = (
        [item for item in raw_tools if isinstance(item, str) and item in ALLOWED_TOOLS]
        if isinstance(raw_tools, list)
        else None
    )

    raw_rounds = value.get("max_rounds")
    if isinstance(raw_rounds, float) and raw_rounds.is_integer():
        raw_rounds = int(raw_rounds)
    max_rounds: int | None = None
    # bool is an int subclass; true/false must not count as a round budget.
    if isinstance(raw_rounds, int) and not isinstance(raw_rounds, bool) and raw_rounds > 0:
        max_rounds = min(raw_rounds, MAX_SUBAGENT_ROUNDS)

    return SubagentCall(
        id=call_id,
        task=task,
        context=_non_empty(value.get("context")),
        allowed_tools=allowed_tools,
        max_rounds=max_rounds,
    )


def _dedupe(actions: list[ActionCall], warnings: list[str]) -> list[ActionCall]:
    seen: set[str] = set()
    deduped: list[ActionCall] = []
    for action in actions:
        call_id = action.call.id
        if call_id in seen:
            warnings.append(f"Duplicate action id '{call_id}' ignored.")
            continue
        seen.add(call_id)
        deduped.append(action)
    return deduped


def _join_text(outside: str, inner: str) -> str:
    return "\n\n".join(chunk for chunk in (outside.strip(), inner.strip()) if chunk)


def _non_empty(value: object) -> str | None:
    if not isinstance(value, str):
        return None
    stripped = value.strip()
    return stripped or None


def _as_list(value: object) -> list[Any]:
    return value if isinstance(value, list) else []
