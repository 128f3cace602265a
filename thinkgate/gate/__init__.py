"""
Action gating for ThinkGate.
"""

from .action_gate import (
    ActionGate,
    DecisionContext,
    FinalDecision,
    GateDecision,
    ResultAnalysis,
    ThinkingStep,
)

__all__ = [
    "ActionGate",
    "DecisionContext",
    "FinalDecision",
    "GateDecision",
    "ResultAnalysis",
    "ThinkingStep",
]
