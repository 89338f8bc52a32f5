"""Risk classification for shell commands and filesystem paths."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from typing import Literal

from yips.core.types import ToolCall

RiskLevel = Literal["none", "confirm", "deny"]

COMMAND_TOOL = "run_command"
APPLY_TOOL = "apply_file_change"

DESTRUCTIVE_COMMAND_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"(^|\s)rm\s+-rf(\s|$)"),
    re.compile(r"(^|\s)rm\s+-fr(\s|$)"),
    re.compile(r"(^|\s)mkfs(\.|\s|$)"),
    re.compile(r"(^|\s)dd\s+if="),
    re.compile(r"(^|\s)reboot(\s|$)"),
    re.compile(r"(^|\s)shutdown(\s|$)"),
    re.compile(r"(^|\s)poweroff(\s|$)"),
    re.compile(r"(^|\s)halt(\s|$)"),
)


@dataclass(frozen=True)
class RiskAssessment:
    """Classification of one prospective command or path access."""

    risk_level: RiskLevel
    reasons: list[str] = field(default_factory=list)
    destructive: bool = False
    out_of_zone: bool = False
    resolved_path: str = ""

    @property
    def requires_confirmation(self) -> bool:
        return self.risk_level == "confirm"


def resolve_session_path(path: str, session_root: str) -> str:
    root = os.path.abspath(session_root)
    trimmed = path.strip()
    if not trimmed:
        return root
    return os.path.normpath(os.path.join(root, trimmed))


def is_within_session_root(path: str, session_root: str) -> bool:
    try:
        rel = os.path.relpath(os.path.abspath(path), os.path.abspath(session_root))
    except ValueError:
        # Different drives on Windows.
        return False
    return rel == os.curdir or not (rel == os.pardir or rel.startswith(os.pardir + os.sep))


def is_destructive_command(command: str) -> bool:
    return any(pattern.search(command) for pattern in DESTRUCTIVE_COMMAND_PATTERNS)


def assess_command_risk(command: str, cwd: str, session_root: str) -> RiskAssessment:
    destructive = is_destructive_command(command)
    resolved = resolve_session_path(cwd, session_root)
    out_of_zone = not is_within_session_root(resolved, session_root)
    return _assessment(destructive=destructive, out_of_zone=out_of_zone, resolved_path=resolved)


def assess_path_risk(path: str, session_root: str) -> RiskAssessment:
    resolved = resolve_session_path(path, session_root)
    out_of_zone = not is_within_session_root(resolved, session_root)
    return _assessment(destructive=False, out_of_zone=out_of_zone, resolved_path=resolved)


def assess_action_risk(call: ToolCall, session_root: str) -> RiskAssessment:
    """Route a tool call to the command or path evaluator.

    Applying a staged file change always needs confirmation: the write cannot
    be undone once committed.
    """
    if call.name == COMMAND_TOOL:
        return assess_command_risk(
            _string_arg(call, "command", ""),
            _string_arg(call, "cwd", "."),
            session_root,
        )

    risk = assess_path_risk(_string_arg(call, "path", "."), session_root)
    if call.name != APPLY_TOOL:
        return risk
    return RiskAssessment(
        risk_level="deny" if risk.risk_level == "deny" else "confirm",
        reasons=[*risk.reasons, "file-mutation"],
        destructive=risk.destructive,
        out_of_zone=risk.out_of_zone,
        resolved_path=risk.resolved_path,
    )


def _assessment(*, destructive: bool, out_of_zone: bool, resolved_path: str) -> RiskAssessment:
    reasons: list[str] = []
    if destructive:
        reasons.append("destructive")
    if out_of_zone:
        reasons.append("outside-working-zone")
    return RiskAssessment(
        risk_level=_risk_level(destructive, out_of_zone),
        reasons=reasons,
        destructive=destructive,
        out_of_zone=out_of_zone,
        resolved_path=resolved_path,
    )


def _risk_level(destructive: bool, out_of_zone: bool) -> RiskLevel:
    if destructive and out_of_zone:
        return "deny"
    if destructive or out_of_zone:
        return "confirm"
    return "none"


def _string_arg(call: ToolCall, key: str, default: str) -> str:
    value = call.arguments.get(key)
    return value if isinstance(value, str) else default
