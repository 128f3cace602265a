"""
Evidence Data Types for ThinkGate.

Defines the core records of the evidence layer:
- Phase: Coarse workflow stage (REFLECT is trace-only)
- EvidenceDraft: Caller-side description of an observation
- EvidenceEntry: Immutable stored observation
- EvidenceSummary: Aggregate view recomputed from the log
- ToughReasoningResult: Outcome of a refinement pass
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Tuple, Union

from .actions import ActionKind
from .payloads import RecordPayload, TextPayload


class Phase(str, Enum):
    """
    Workflow phases.

    The store walks EXPLORE -> THINK -> EXECUTE; REFLECT only appears
    in the iteration controller's thought log.
    """
    EXPLORE = "EXPLORE"
    THINK = "THINK"
    EXECUTE = "EXECUTE"
    REFLECT = "REFLECT"


STORE_PHASES: Tuple[Phase, ...] = (Phase.EXPLORE, Phase.THINK, Phase.EXECUTE)


def next_phase(phase: Phase) -> Phase:
    """Phase that follows ``phase``; EXECUTE is absorbing."""
    index = STORE_PHASES.index(phase)
    return STORE_PHASES[min(index + 1, len(STORE_PHASES) - 1)]


@dataclass
class EvidenceDraft:
    """
    An observation not yet stored.

    Only EvidenceStore.add_entry() turns a draft into an EvidenceEntry.
    """
    action_kind: Union[ActionKind, str]
    query: Optional[str] = ""
    result: Any = None
    confidence: float = 0.5
    tags: Iterable[str] = ()
    file_path: Optional[str] = None
    relevance: float = 1.0
    action_params: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class EvidenceEntry:
    """One recorded observation. Immutable once stored."""

    action_kind: str
    query: str
    result: Union[TextPayload, RecordPayload]
    confidence: float
    tags: FrozenSet[str]
    file_path: Optional[str]
    timestamp: int
    relevance: float
    action_params: Dict[str, Any] = field(default_factory=dict)
    recorded_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "action_kind": self.action_kind,
            "query": self.query,
            "result": self.result.model_dump(),
            "confidence": self.confidence,
            "tags": sorted(self.tags),
            "file_path": self.file_path,
            "timestamp": self.timestamp,
            "relevance": self.relevance,
            "action_params": dict(self.action_params),
            "recorded_at": self.recorded_at.isoformat(),
        }


@dataclass
class EvidenceSummary:
    """
    Aggregate view of the evidence log.

    Attributes:
        total_entries: Number of entries in the log
        files_explored: Read and list actions
        search_queries: Search actions
        list_operations: List actions
        key_findings: Truncated text of entries with confidence > 0.8, log order
        confidence_score: Mean entry confidence (0 when the log is empty)
    """

    total_entries: int = 0
    files_explored: int = 0
    search_queries: int = 0
    list_operations: int = 0
    key_findings: List[str] = field(default_factory=list)
    confidence_score: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "total_entries": self.total_entries,
            "files_explored": self.files_explored,
            "search_queries": self.search_queries,
            "list_operations": self.list_operations,
            "key_findings": list(self.key_findings),
            "confidence_score": self.confidence_score,
        }


@dataclass
class ToughReasoningResult:
    """Outcome of EvidenceStore.tough_reasoning()."""

    conclusion: str
    confidence: float
    iterations: int
    steps: List[str] = field(default_factory=list)
    reached_target: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "conclusion": self.conclusion,
            "confidence": self.confidence,
            "iterations": self.iterations,
            "steps": list(self.steps),
            "reached_target": self.reached_target,
        }
