"""Action protocol core: envelope parsing, dispatch and the turn loop."""

from .action_runner import ActionRunnerDependencies, execute_agent_actions
from .conductor import ConductorDependencies, run_conductor_turn
from .envelope import ParsedEnvelope, parse_envelope, parse_tool_protocol
from .turn_engine import run_agent_turn

__all__ = [
    "ActionRunnerDependencies",
    "ConductorDependencies",
    "ParsedEnvelope",
    "execute_agent_actions",
    "parse_envelope",
    "parse_tool_protocol",
    "run_agent_turn",
    "run_conductor_turn",
]
