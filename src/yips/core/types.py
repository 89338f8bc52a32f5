"""Shared core dataclasses for the action protocol."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, Literal

ActionKind = Literal["tool", "skill", "subagent"]
ActionStatus = Literal["ok", "error", "denied", "timeout"]
ChatRole = Literal["system", "user", "assistant"]

FAILURE_STATUSES: frozenset[str] = frozenset({"error", "denied", "timeout"})


@dataclass(frozen=True)
class ToolCall:
    """One requested built-in tool invocation."""

    id: str
    name: str
    arguments: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SkillCall:
    """One requested skill invocation."""

    id: str
    name: str
    arguments: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SubagentCall:
    """One delegated task for a subagent."""

    id: str
    task: str
    context: str | None = None
    allowed_tools: list[str] | None = None
    max_rounds: int | None = None


@dataclass(frozen=True)
class ToolAction:
    call: ToolCall
    kind: Literal["tool"] = "tool"


@dataclass(frozen=True)
class SkillAction:
    call: SkillCall
    kind: Literal["skill"] = "skill"


@dataclass(frozen=True)
class SubagentAction:
    call: SubagentCall
    kind: Literal["subagent"] = "subagent"


ActionCall = ToolAction | SkillAction | SubagentAction


@dataclass(frozen=True)
class ActionResult:
    """Normalized result of one action, correlated by call id."""

    kind: ActionKind
    call_id: str
    status: ActionStatus
    output: str
    metadata: dict[str, Any] | None = None

    @property
    def failed(self) -> bool:
        return self.status in FAILURE_STATUSES

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "kind": self.kind,
            "callId": self.call_id,
            "status": self.status,
            "output": self.output,
        }
        if self.metadata is not None:
            payload["metadata"] = self.metadata
        return payload


@dataclass(frozen=True)
class ToolResult:
    """Result produced by a concrete tool executor."""

    call_id: str
    tool: str
    status: ActionStatus
    output: str
    metadata: dict[str, Any] | None = None

    def to_action_result(self) -> ActionResult:
        return ActionResult(
            kind="tool",
            call_id=self.call_id,
            status=self.status,
            output=self.output,
            metadata=self.metadata,
        )


@dataclass(frozen=True)
class SkillResult:
    call_id: str
    skill: str
    status: ActionStatus
    output: str
    metadata: dict[str, Any] | None = None

    def to_action_result(self) -> ActionResult:
        return ActionResult(
            kind="skill",
            call_id=self.call_id,
            status=self.status,
            output=self.output,
            metadata=self.metadata,
        )


@dataclass(frozen=True)
class SubagentResult:
    call_id: str
    status: ActionStatus
    output: str
    metadata: dict[str, Any] | None = None

    def to_action_result(self) -> ActionResult:
        return ActionResult(
            kind="subagent",
            call_id=self.call_id,
            status=self.status,
            output=self.output,
            metadata=self.metadata,
        )


@dataclass(frozen=True)
class AgentWarning:
    """Advisory, non-fatal notice surfaced during a turn."""

    code: str
    message: str


@dataclass(frozen=True)
class ChatMessage:
    role: ChatRole
    content: str


@dataclass(frozen=True)
class AssistantReply:
    """One model reply as returned by the caller's reply requester."""

    text: str
    rendered: bool = False
    total_tokens: int | None = None
    completion_tokens: int | None = None
    generation_duration_ms: float | None = None


@dataclass(frozen=True)
class TurnResult:
    """Outcome of one call to the turn engine."""

    finished: bool
    rounds: int
    latest_output_tokens_per_second: float | None
    used_tokens_exact: int | None


ToolExecutorFn = Callable[[Sequence[ToolCall]], Awaitable[list[ToolResult]]]
SkillExecutorFn = Callable[[Sequence[SkillCall]], Awaitable[list[SkillResult]]]
SubagentExecutorFn = Callable[[Sequence[SubagentCall]], Awaitable[list[SubagentResult]]]
WarningSink = Callable[[AgentWarning], None]


@dataclass
class TurnRequest:
    """Everything one turn needs; ``history`` is owned and mutated by the caller."""

    history: list[ChatMessage]
    request_assistant: Callable[[], Awaitable[AssistantReply]]
    execute_actions: Callable[[Sequence[ActionCall]], Awaitable[list[ActionResult]]]
    on_assistant_text: Callable[[str, bool], None]
    on_warning: WarningSink
    estimate_completion_tokens: Callable[[str], int]
    estimate_history_tokens: Callable[[Sequence[ChatMessage]], int]
    compute_tokens_per_second: Callable[[int, float], float | None]
    on_round_complete: Callable[[], None] | None = None
    max_rounds: int | None = None
