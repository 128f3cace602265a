"""
Iteration control for ThinkGate.
"""

from .iteration_controller import (
    BROAD_EXPLORATION,
    TARGETED_EXPLORATION,
    Branch,
    ConversationContext,
    IntelligentThought,
    IterationController,
    SituationAnalysis,
    StopReason,
    ThinkingResult,
)

__all__ = [
    "BROAD_EXPLORATION",
    "TARGETED_EXPLORATION",
    "Branch",
    "ConversationContext",
    "IntelligentThought",
    "IterationController",
    "SituationAnalysis",
    "StopReason",
    "ThinkingResult",
]
