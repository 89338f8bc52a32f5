"""System prompt describing the action envelope to the model."""

from __future__ import annotations

from collections.abc import Sequence

from yips.core.envelope import AGENT_MARKER, ALLOWED_SKILLS, ALLOWED_TOOLS, MAX_SUBAGENT_ROUNDS
from yips.core.types import ChatMessage


def render_protocol_prompt() -> str:
    example = (
        '{"assistant_text":"optional","actions":[{"type":"tool","id":"t1",'
        '"name":"read_file","arguments":{"path":"README.md"}}]}'
    )
    return "\n".join([
        "Tool protocol:",
        "When you need tools, skills, or subagents, emit exactly one fenced JSON block.",
        "Preferred format:",
        f"```{AGENT_MARKER}",
        example,
        "```",
        "Rules:",
        "- Use exactly one block per assistant message.",
        "- Keep action ids unique within a message.",
        f"- Allowed tools: {', '.join(sorted(ALLOWED_TOOLS))}.",
        f"- Allowed skills: {', '.join(sorted(ALLOWED_SKILLS))}.",
        "- File changes are two-phase: preview_write_file or preview_edit_file returns a token, "
        "then apply_file_change with that token commits it.",
        "- Subagent actions use type 'subagent' with fields: id, task, optional context, "
        f"optional allowed_tools, optional max_rounds (at most {MAX_SUBAGENT_ROUNDS}).",
        "- If no action is needed, answer normally without a tool block.",
    ])


PROTOCOL_SYSTEM_PROMPT = render_protocol_prompt()


def compose_chat_request_messages(
    history: Sequence[ChatMessage],
    code_context: str | None = None,
) -> list[ChatMessage]:
    """Prefix history with the protocol prompt and optional code context."""
    messages = [ChatMessage(role="system", content=PROTOCOL_SYSTEM_PROMPT)]
    if code_context:
        messages.append(ChatMessage(role="system", content=code_context))
    messages.extend(history)
    return messages
