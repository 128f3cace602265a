"""
Evidence layer for ThinkGate.

Components:
- EvidenceStore: Append-only log, cache, summaries, phase state
- Payloads: Tagged text/record action results
- Actions: Action kinds and per-kind parameter schemas
- Scoring: Pluggable result scoring, insight extraction, reflection
"""

from .actions import (
    ActionKind,
    ActionParams,
    EXPLORATORY_ACTIONS,
    MUTATING_ACTIONS,
    action_name,
    parse_params,
    validate_params,
)
from .models import (
    EvidenceDraft,
    EvidenceEntry,
    EvidenceSummary,
    Phase,
    STORE_PHASES,
    ToughReasoningResult,
)
from .payloads import RecordPayload, TextPayload, to_payload, payload_text
from .scoring import (
    HeuristicInsightExtractor,
    HeuristicResultClassifier,
    HeuristicResultScorer,
    InsightExtractor,
    ResultClassifier,
    ResultReflection,
    ResultScorer,
)
from .store import EvidenceStore, make_cache_key

__all__ = [
    # Actions
    "ActionKind",
    "ActionParams",
    "EXPLORATORY_ACTIONS",
    "MUTATING_ACTIONS",
    "action_name",
    "parse_params",
    "validate_params",
    # Records
    "EvidenceDraft",
    "EvidenceEntry",
    "EvidenceSummary",
    "Phase",
    "STORE_PHASES",
    "ToughReasoningResult",
    # Payloads
    "RecordPayload",
    "TextPayload",
    "to_payload",
    "payload_text",
    # Scoring
    "HeuristicInsightExtractor",
    "HeuristicResultClassifier",
    "HeuristicResultScorer",
    "InsightExtractor",
    "ResultClassifier",
    "ResultReflection",
    "ResultScorer",
    # Store
    "EvidenceStore",
    "make_cache_key",
]
