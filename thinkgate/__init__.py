"""
ThinkGate - Evidence-gated reasoning loop.

Accumulates evidence produced by an external action executor, reuses
cached observations, scores confidence and drives a phase-gated
EXPLORE -> THINK -> EXECUTE loop that always terminates with a decision.

Key Components:
- EvidenceStore: Append-only evidence log, cache, summaries, phase state
- ActionGate: Per-action proceed/skip decisions and the final decision
- IterationController: Bounded convergence loop with a thought trace
- ReasoningToolHandler: Named text operations for a host
- build_session: Wires one set of components per task

Quick Start:
    from thinkgate import build_session

    session = build_session()
    session.initialize("Fix the OAuth login redirect")
    decision = session.consult("read_file", {"path": "src/auth.py"})
    if decision.proceed:
        session.record("read_file", {"path": "src/auth.py"}, executor_output)
    result = session.think(max_iterations=5)
    print(result.final_decision)
"""

__version__ = "0.1.0"

# Configuration
from .config import ThinkGateConfig, get_config, reset_config

# Errors
from .errors import InvalidParamsError, ThinkGateError, UnknownOperationError

# Evidence
from .evidence import (
    ActionKind,
    EvidenceDraft,
    EvidenceEntry,
    EvidenceStore,
    EvidenceSummary,
    Phase,
    RecordPayload,
    TextPayload,
    ToughReasoningResult,
)

# Gate
from .gate import ActionGate, FinalDecision, GateDecision, ResultAnalysis, ThinkingStep

# Controller
from .controller import IntelligentThought, IterationController, StopReason, ThinkingResult

# Tools and wiring
from .tools import ReasoningToolHandler
from .session import Observation, ThinkGateSession, build_session, load_observations

__all__ = [
    "__version__",
    # Configuration
    "ThinkGateConfig",
    "get_config",
    "reset_config",
    # Errors
    "InvalidParamsError",
    "ThinkGateError",
    "UnknownOperationError",
    # Evidence
    "ActionKind",
    "EvidenceDraft",
    "EvidenceEntry",
    "EvidenceStore",
    "EvidenceSummary",
    "Phase",
    "RecordPayload",
    "TextPayload",
    "ToughReasoningResult",
    # Gate
    "ActionGate",
    "FinalDecision",
    "GateDecision",
    "ResultAnalysis",
    "ThinkingStep",
    # Controller
    "IntelligentThought",
    "IterationController",
    "StopReason",
    "ThinkingResult",
    # Tools and wiring
    "Observation",
    "ReasoningToolHandler",
    "ThinkGateSession",
    "build_session",
    "load_observations",
]
