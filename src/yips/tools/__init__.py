"""Built-in tools, risk policy and the file-change staging store."""

from .executor import ToolExecutor
from .guard import GuardedToolExecutor
from .risk import RiskAssessment, assess_action_risk, assess_command_risk, assess_path_risk
from .staging import FileChangePreview, FileChangeStore

__all__ = [
    "FileChangePreview",
    "FileChangeStore",
    "GuardedToolExecutor",
    "RiskAssessment",
    "ToolExecutor",
    "assess_action_risk",
    "assess_command_risk",
    "assess_path_risk",
]
