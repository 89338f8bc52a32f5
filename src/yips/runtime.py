"""Runtime assembly: settings, staging store, guarded tools and turn wiring."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from .config import Settings, get_settings
from .core.conductor import ConductorDependencies, run_conductor_turn
from .core.tokens import compute_tokens_per_second, estimate_conversation_tokens, estimate_text_tokens
from .core.types import AssistantReply, ChatMessage, SkillExecutorFn, SubagentExecutorFn, TurnResult
from .tools.executor import ToolExecutor
from .tools.guard import ConfirmFn, GuardedToolExecutor
from .tools.staging import FileChangeStore


@dataclass(frozen=True)
class Runtime:
    """Long-lived pieces shared by every turn of one session."""

    settings: Settings
    workspace_path: Path
    file_change_store: FileChangeStore
    tools: GuardedToolExecutor

    @classmethod
    def build(
        cls,
        workspace_path: Path | None = None,
        *,
        settings: Settings | None = None,
        confirm: ConfirmFn | None = None,
    ) -> Runtime:
        settings = settings or get_settings(workspace_path)
        workspace = (workspace_path or settings.workspace_path or Path.cwd()).resolve()
        store = FileChangeStore(
            ttl_seconds=settings.preview_ttl_seconds,
            max_entries=settings.preview_max_entries,
        )
        executor = ToolExecutor(
            workspace,
            store,
            command_timeout_ms=int(settings.command_timeout_seconds * 1000),
        )
        logger.info("runtime.build workspace={} max_rounds={}", workspace, settings.max_rounds)
        return cls(
            settings=settings,
            workspace_path=workspace,
            file_change_store=store,
            tools=GuardedToolExecutor(executor, confirm=confirm),
        )

    async def run_turn(
        self,
        history: list[ChatMessage],
        request_assistant: Callable[[], Awaitable[AssistantReply]],
        *,
        on_assistant_text: Callable[[str, bool], None],
        on_warning: Callable[[str], None],
        execute_skill_calls: SkillExecutorFn | None = None,
        execute_subagent_calls: SubagentExecutorFn | None = None,
    ) -> TurnResult:
        return await run_conductor_turn(
            ConductorDependencies(
                history=history,
                request_assistant=request_assistant,
                execute_tool_calls=self.tools.execute_many,
                on_assistant_text=on_assistant_text,
                on_warning=on_warning,
                estimate_completion_tokens=estimate_text_tokens,
                estimate_history_tokens=estimate_conversation_tokens,
                compute_tokens_per_second=compute_tokens_per_second,
                execute_skill_calls=execute_skill_calls,
                execute_subagent_calls=execute_subagent_calls,
                max_rounds=self.settings.max_rounds,
            )
        )
