import json

from yips.core.envelope import (
    INVALID_JSON_ERROR,
    MULTIPLE_ENVELOPES_ERROR,
    NON_OBJECT_ROOT_ERROR,
    parse_envelope,
    parse_tool_protocol,
)
from yips.core.types import SkillAction, SubagentAction, ToolAction


def _agent_block(payload: object) -> str:
    return "\n".join(["```yips-agent", json.dumps(payload), "```"])


def test_plain_text_has_no_envelope() -> None:
    parsed = parse_envelope("  just talking  ")
    assert parsed.assistant_text == "just talking"
    assert parsed.actions == []
    assert parsed.errors == []
    assert parsed.envelope_found is False


def test_mixed_actions_and_joined_assistant_text() -> None:
    raw = "Working on it.\n" + _agent_block({
        "assistant_text": "Delegating + searching.",
        "actions": [
            {"type": "tool", "id": "t1", "name": "read_file", "arguments": {"path": "README.md"}},
            {"type": "skill", "id": "s1", "name": "search", "arguments": {"query": "roadmap"}},
            {"type": "subagent", "id": "a1", "task": "summarize docs", "allowed_tools": ["read_file"], "max_rounds": 2},
        ],
    })

    parsed = parse_envelope(raw)

    assert parsed.errors == []
    assert parsed.envelope_found is True
    assert [action.kind for action in parsed.actions] == ["tool", "skill", "subagent"]
    assert parsed.assistant_text == "Working on it.\n\nDelegating + searching."
    subagent = parsed.actions[2]
    assert isinstance(subagent, SubagentAction)
    assert subagent.call.allowed_tools == ["read_file"]
    assert subagent.call.max_rounds == 2


def test_single_list_dir_action() -> None:
    raw = '```yips-agent\n{"actions":[{"type":"tool","id":"t1","name":"list_dir","arguments":{"path":"."}}]}\n```'
    parsed = parse_envelope(raw)
    assert len(parsed.actions) == 1
    action = parsed.actions[0]
    assert isinstance(action, ToolAction)
    assert action.call.name == "list_dir"
    assert action.call.arguments == {"path": "."}


def test_malformed_json_reports_error() -> None:
    parsed = parse_envelope("before\n```yips-agent\nnot-json\n```")
    assert parsed.errors == [INVALID_JSON_ERROR]
    assert parsed.actions == []
    assert parsed.assistant_text == "before"


def test_non_object_root_reports_error() -> None:
    parsed = parse_envelope("```yips-agent\n[1, 2]\n```")
    assert parsed.errors == [NON_OBJECT_ROOT_ERROR]
    assert parsed.actions == []


def test_empty_body_reports_error_and_strips_block() -> None:
    parsed = parse_envelope("hello\n```yips-agent\n\n```")
    assert parsed.errors == ["Action envelope body is empty."]
    assert parsed.assistant_text == "hello"


def test_multiple_envelopes_are_rejected_verbatim() -> None:
    block = '```yips-agent\n{"actions":[{"type":"tool","id":"t1","name":"list_dir","arguments":{}}]}\n```'
    raw = f"{block}\n{block}"
    parsed = parse_envelope(raw)
    assert parsed.errors == [MULTIPLE_ENVELOPES_ERROR]
    assert parsed.actions == []
    assert parsed.assistant_text == raw


def test_duplicate_ids_keep_first_with_warning() -> None:
    raw = _agent_block({
        "actions": [
            {"type": "tool", "id": "dup", "name": "read_file", "arguments": {"path": "a"}},
            {"type": "tool", "id": "dup", "name": "read_file", "arguments": {"path": "b"}},
        ]
    })

    first = parse_envelope(raw)
    second = parse_envelope(raw)

    assert len(first.actions) == 1
    assert first.actions[0].call.arguments == {"path": "a"}
    assert first.warnings == ["Duplicate action id 'dup' ignored."]
    assert second.actions == first.actions


def test_invalid_entries_are_dropped_silently() -> None:
    raw = _agent_block({
        "actions": [
            {"type": "tool", "id": "ok", "name": "grep", "arguments": {"pattern": "x"}},
            {"type": "tool", "id": "bad-name", "name": "rm_everything", "arguments": {}},
            {"type": "tool", "id": "  ", "name": "grep", "arguments": {}},
            {"type": "tool", "id": "no-args", "name": "grep", "arguments": "x"},
            {"type": "skill", "id": "bad-skill", "name": "launch", "arguments": {}},
            {"type": "subagent", "id": "no-task", "task": "   "},
            {"type": "mystery", "id": "m1"},
            "not-an-object",
        ]
    })

    parsed = parse_envelope(raw)

    assert parsed.errors == []
    assert [action.call.id for action in parsed.actions] == ["ok"]


def test_ids_are_trimmed() -> None:
    raw = _agent_block({"actions": [{"type": "skill", "id": "  s1 ", "name": "fetch", "arguments": {}}]})
    parsed = parse_envelope(raw)
    assert isinstance(parsed.actions[0], SkillAction)
    assert parsed.actions[0].call.id == "s1"


def test_subagent_max_rounds_is_clamped_and_validated() -> None:
    raw = _agent_block({
        "actions": [
            {"type": "subagent", "id": "a1", "task": "big", "max_rounds": 50},
            {"type": "subagent", "id": "a2", "task": "zero", "max_rounds": 0},
            {"type": "subagent", "id": "a3", "task": "bool", "max_rounds": True},
            {"type": "subagent", "id": "a4", "task": "float", "max_rounds": 2.5, "context": "  ctx  "},
            {"type": "subagent", "id": "a5", "task": "whole float", "max_rounds": 3.0},
        ]
    })

    calls = [action.call for action in parse_envelope(raw).actions]

    assert [call.max_rounds for call in calls] == [6, None, None, None, 3]
    assert calls[3].context == "ctx"


def test_legacy_marker_uses_separate_arrays() -> None:
    raw = "\n".join([
        "```yips-tools",
        json.dumps({
            "assistant_text": "ignored for legacy blocks",
            "tool_calls": [{"id": "1", "name": "list_dir", "arguments": {"path": "."}}],
            "skill_calls": [{"id": "2", "name": "todos", "arguments": {}}],
            "subagent_calls": [{"id": "3", "task": "check"}],
        }),
        "```",
    ])

    parsed = parse_envelope(raw)

    assert parsed.errors == []
    assert [action.kind for action in parsed.actions] == ["tool", "skill", "subagent"]
    assert parsed.assistant_text == ""


def test_legacy_unknown_tool_is_dropped_without_error() -> None:
    raw = '```yips-tools\n{"tool_calls":[{"id":"1","name":"unknown_tool","arguments":{}}]}\n```'
    parsed = parse_envelope(raw)
    assert parsed.actions == []
    assert parsed.errors == []


def test_order_and_kind_preserved_for_many_actions() -> None:
    entries = []
    for idx in range(3):
        entries.append({"type": "tool", "id": f"t{idx}", "name": "read_file", "arguments": {"path": str(idx)}})
        entries.append({"type": "skill", "id": f"s{idx}", "name": "build", "arguments": {}})
        entries.append({"type": "subagent", "id": f"a{idx}", "task": f"task {idx}"})

    parsed = parse_envelope(_agent_block({"actions": entries}))

    assert [action.call.id for action in parsed.actions] == [entry["id"] for entry in entries]
    assert [action.kind for action in parsed.actions] == [entry["type"] for entry in entries]


def test_tool_protocol_view_splits_by_kind() -> None:
    raw = _agent_block({
        "actions": [
            {"type": "tool", "id": "t1", "name": "read_file", "arguments": {"path": "a"}},
            {"type": "subagent", "id": "a1", "task": "x"},
            {"type": "skill", "id": "s1", "name": "search", "arguments": {}},
        ]
    })

    view = parse_tool_protocol(raw)

    assert [call.id for call in view.tool_calls] == ["t1"]
    assert [call.id for call in view.skill_calls] == ["s1"]
    assert [call.id for call in view.subagent_calls] == ["a1"]
