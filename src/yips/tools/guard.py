"""Risk-gated tool execution."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence

from loguru import logger

from yips.core.types import ToolCall, ToolResult
from yips.tools.executor import ToolExecutor
from yips.tools.risk import RiskAssessment, assess_action_risk

ConfirmFn = Callable[[ToolCall, RiskAssessment], Awaitable[bool]]

POLICY_DENIED_OUTPUT = "Action denied by risk policy."
USER_DENIED_OUTPUT = "Action denied by user confirmation policy."


class GuardedToolExecutor:
    """Consults the risk policy before handing each call to a ``ToolExecutor``.

    ``deny`` is refused outright. ``confirm`` asks ``confirm``; without a
    confirmation callback those calls are refused as well.
    """

    def __init__(self, executor: ToolExecutor, *, confirm: ConfirmFn | None = None) -> None:
        self._executor = executor
        self._confirm = confirm

    @property
    def session_root(self) -> str:
        return self._executor.working_directory

    async def execute_many(self, calls: Sequence[ToolCall]) -> list[ToolResult]:
        results: list[ToolResult] = []
        for call in calls:
            results.append(await self.execute(call))
        return results

    async def execute(self, call: ToolCall) -> ToolResult:
        risk = assess_action_risk(call, self.session_root)
        if risk.risk_level == "deny":
            logger.warning("tool.risk.deny name={} reasons={}", call.name, ",".join(risk.reasons))
            return _denied(call, POLICY_DENIED_OUTPUT, risk)

        if risk.requires_confirmation:
            approved = self._confirm is not None and await self._confirm(call, risk)
            logger.info("tool.risk.confirm name={} approved={}", call.name, approved)
            if not approved:
                return _denied(call, USER_DENIED_OUTPUT, risk)

        return await asyncio.to_thread(self._executor.execute, call)


def _denied(call: ToolCall, output: str, risk: RiskAssessment) -> ToolResult:
    return ToolResult(
        call_id=call.id,
        tool=call.name,
        status="denied",
        output=output,
        metadata={"riskLevel": risk.risk_level, "reasons": list(risk.reasons)},
    )
