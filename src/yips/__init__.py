"""yips - agent action protocol runtime core."""

from .core import ParsedEnvelope, parse_envelope, run_agent_turn
from .runtime import Runtime

__version__ = "0.1.0"

__all__ = ["ParsedEnvelope", "Runtime", "parse_envelope", "run_agent_turn"]
