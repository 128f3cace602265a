"""
Host-facing tools for ThinkGate.
"""

from .reasoning_tool import ReasoningToolHandler, parse_args

__all__ = [
    "ReasoningToolHandler",
    "parse_args",
]
