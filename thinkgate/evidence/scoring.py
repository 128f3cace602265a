"""
Result scoring strategies for ThinkGate.

Three single-method interfaces decide how much an action result is
trusted and what it says:
- ResultScorer: confidence of a stored result
- InsightExtractor: short insight strings for the gate's trace
- ResultClassifier: reflection on a result registered with the controller

The heuristic defaults match on literal substrings and lengths. Tests
and hosts can swap in their own implementations through constructor
injection.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union

from .actions import ActionKind, ActionParams, action_name
from .payloads import RecordPayload, TextPayload, payload_text

Result = Union[TextPayload, RecordPayload]

ERROR_MARKERS: Tuple[str, ...] = ("error", "not found")
CONFIG_FILE_MARKERS: Tuple[str, ...] = (
    "package.json",
    "pyproject.toml",
    "setup.py",
    "setup.cfg",
    "requirements.txt",
)
SOURCE_DIR_MARKERS: Tuple[str, ...] = ("src/", "lib/")


def has_error_marker(text: str) -> bool:
    return any(marker in text for marker in ERROR_MARKERS)


class ResultScorer(ABC):
    """Scores how far a result can be trusted, in [0, 1]."""

    @abstractmethod
    def score(self, result: Result) -> float:
        ...


class InsightExtractor(ABC):
    """Extracts insight strings from a result."""

    @abstractmethod
    def extract(self, action_kind: str, result: Result, params: ActionParams) -> List[str]:
        ...


@dataclass
class ResultReflection:
    """Controller-side reading of a registered action result."""
    summary: str
    confidence: float
    evidence: List[str] = field(default_factory=list)
    suggests_next_action: bool = False
    insights: str = ""


class ResultClassifier(ABC):
    """Classifies a registered result for the reflection step."""

    @abstractmethod
    def classify(self, result: Result) -> ResultReflection:
        ...


# =============================================================================
# Heuristic defaults
# =============================================================================

class HeuristicResultScorer(ResultScorer):
    """
    Length/marker heuristic.

    Text with an error marker scores 0.3, text longer than 100
    characters 0.9, other text 0.7. Structured results score 0.8.
    """

    def __init__(self, long_text_chars: int = 100):
        self.long_text_chars = long_text_chars

    def score(self, result: Result) -> float:
        if not isinstance(result, TextPayload):
            return 0.8
        text = result.text
        if has_error_marker(text):
            return 0.3
        if len(text) > self.long_text_chars:
            return 0.9
        return 0.7


class HeuristicInsightExtractor(InsightExtractor):
    """Marker-based insights over text results."""

    NO_INSIGHT = "Result processed without specific insights"

    def __init__(self, rich_result_chars: int = 500):
        self.rich_result_chars = rich_result_chars

    def extract(self, action_kind: str, result: Result, params: ActionParams) -> List[str]:
        insights: List[str] = []

        if isinstance(result, TextPayload):
            text = result.text
            if any(marker in text for marker in CONFIG_FILE_MARKERS):
                insights.append("Found a main configuration file")
            if any(marker in text for marker in SOURCE_DIR_MARKERS):
                insights.append("Identified source code structure")
            if has_error_marker(text):
                insights.append("Result points to a possible problem or missing item")
            if len(text) > self.rich_result_chars:
                insights.append("Information-rich result")

        return insights or [self.NO_INSIGHT]


class HeuristicResultClassifier(ResultClassifier):
    """Error marker -> investigate, long result -> proceed, otherwise neutral."""

    def __init__(self, long_result_chars: int = 200):
        self.long_result_chars = long_result_chars

    def classify(self, result: Result) -> ResultReflection:
        text = payload_text(result)

        if has_error_marker(text):
            return ResultReflection(
                summary="Result indicates a problem or missing data",
                confidence=0.4,
                evidence=["Result contains errors"],
                suggests_next_action=True,
                insights="Needs investigation: adjust the approach",
            )
        if len(text) > self.long_result_chars:
            return ResultReflection(
                summary="Information-rich result",
                confidence=0.9,
                evidence=["Extensive, informative result"],
                suggests_next_action=False,
                insights="Enough data collected, proceed",
            )
        return ResultReflection(
            summary="Basic result obtained",
            confidence=0.6,
            evidence=["Standard result"],
            suggests_next_action=True,
            insights="May need more specific information",
        )


def result_tags(action_kind: Union[ActionKind, str], params: Optional[ActionParams]) -> List[str]:
    """Tags attached to an entry written by the gate."""
    name = action_name(action_kind)
    tags = [name]

    if params is not None and params.path:
        tags.append("file_specific")
    if name == ActionKind.SEARCH_FILES.value:
        tags.extend(["search", "discovery"])
    elif name == ActionKind.READ_FILE.value:
        tags.append("content_analysis")
    elif name == ActionKind.LIST_FILES.value:
        tags.append("structure_mapping")

    return tags
