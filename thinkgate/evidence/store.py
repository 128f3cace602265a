"""
Evidence Store for ThinkGate.

Append-only log of action observations with a content-addressed cache,
aggregate summaries, the task's phase state and the "tough reasoning"
refinement pass.

Key properties:
- Append-only: entries are never modified, only dropped by reset()
- Newest first: the log is ordered by a logical timestamp counter
- Cache: keyed by lower(action:query[:path]); last write wins
- Phase: EXPLORE -> THINK -> EXECUTE, forward only, one step at a time
"""

import itertools
import logging
import time
from typing import Callable, Dict, Iterable, List, Optional, Union

from ..config import ThinkGateConfig, get_config
from .actions import ActionKind, action_name
from .models import (
    EvidenceDraft,
    EvidenceEntry,
    EvidenceSummary,
    Phase,
    ToughReasoningResult,
    next_phase,
)
from .payloads import payload_content, to_payload

logger = logging.getLogger(__name__)

INSUFFICIENT_DATA_CONCLUSION = "Insufficient data for conclusion"


def make_cache_key(action_kind: Union[ActionKind, str], query: Optional[str], file_path: Optional[str] = None) -> str:
    """Normalized cache key: lower(action:query[:path])."""
    key = f"{action_name(action_kind)}:{query or ''}"
    if file_path:
        key += f":{file_path}"
    return key.lower()


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, float(value)))


class EvidenceStore:
    """
    Per-task evidence log, cache and phase state.

    One instance belongs to exactly one task; nothing here is shared
    between tasks.
    """

    def __init__(
        self,
        config: Optional[ThinkGateConfig] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize the evidence store.

        Args:
            config: Session configuration (default: get_config())
            clock: Monotonic clock in seconds, used for elapsed-time bonuses
            sleep: Pause function used between tough-reasoning iterations
        """
        self.config = config or get_config()
        self._clock = clock
        self._sleep = sleep

        self._entries: List[EvidenceEntry] = []
        self._cache: Dict[str, EvidenceEntry] = {}
        self._phase = Phase.EXPLORE
        self._counter = itertools.count(1)
        self._started_at = self._clock()

    # -------------------------------------------------------------------------
    # Log and cache
    # -------------------------------------------------------------------------

    def add_entry(self, draft: EvidenceDraft) -> EvidenceEntry:
        """
        Store an observation.

        Assigns the next logical timestamp, prepends the entry to the
        newest-first log and writes it into the cache. Never rejects.

        Args:
            draft: Observation to store

        Returns:
            The stored EvidenceEntry
        """
        entry = EvidenceEntry(
            action_kind=action_name(draft.action_kind),
            query=draft.query or "",
            result=to_payload(draft.result),
            confidence=_clamp(draft.confidence),
            tags=frozenset(draft.tags or ()),
            file_path=draft.file_path or None,
            timestamp=next(self._counter),
            relevance=_clamp(draft.relevance),
            action_params=dict(draft.action_params or {}),
        )

        self._entries.insert(0, entry)
        self._cache[make_cache_key(entry.action_kind, entry.query, entry.file_path)] = entry

        logger.debug(
            f"[EVIDENCE] Stored #{entry.timestamp} {entry.action_kind} "
            f"query={entry.query!r} confidence={entry.confidence:.2f}"
        )
        return entry

    def has_explored(self, action_kind: Union[ActionKind, str], query: Optional[str], file_path: Optional[str] = None) -> bool:
        """Check whether an equivalent action was already recorded."""
        return make_cache_key(action_kind, query, file_path) in self._cache

    def get_cached(
        self,
        action_kind: Union[ActionKind, str],
        query: Optional[str],
        file_path: Optional[str] = None,
    ) -> Optional[EvidenceEntry]:
        """Cached entry for an equivalent action, if any."""
        return self._cache.get(make_cache_key(action_kind, query, file_path))

    def get_entries(
        self,
        action_kind: Union[ActionKind, str, None] = None,
        file_path: Optional[str] = None,
        tags: Optional[Iterable[str]] = None,
        min_confidence: Optional[float] = None,
    ) -> List[EvidenceEntry]:
        """
        Entries matching all given filters, newest first.

        Args:
            action_kind: Only entries of this action
            file_path: Only entries for this exact path
            tags: Only entries sharing at least one of these tags
            min_confidence: Only entries with confidence >= this
        """
        entries = list(self._entries)

        if action_kind:
            name = action_name(action_kind)
            entries = [e for e in entries if e.action_kind == name]
        if file_path:
            entries = [e for e in entries if e.file_path == file_path]
        if tags:
            wanted = set(tags)
            entries = [e for e in entries if e.tags & wanted]
        if min_confidence is not None:
            entries = [e for e in entries if e.confidence >= min_confidence]

        return entries

    def __len__(self) -> int:
        return len(self._entries)

    # -------------------------------------------------------------------------
    # Summaries
    # -------------------------------------------------------------------------

    def generate_summary(self) -> EvidenceSummary:
        """Recompute the aggregate summary from the log."""
        reads = self._count(ActionKind.READ_FILE)
        lists = self._count(ActionKind.LIST_FILES)
        searches = self._count(ActionKind.SEARCH_FILES)

        key_findings = []
        for entry in self._entries:
            if entry.confidence > 0.8:
                content = payload_content(entry.result)
                if content is None:
                    key_findings.append(f"Explored {entry.action_kind} for {entry.query}")
                else:
                    key_findings.append(content[:self.config.key_finding_chars] + "...")

        total = len(self._entries)
        confidence = sum(e.confidence for e in self._entries) / total if total else 0.0

        return EvidenceSummary(
            total_entries=total,
            files_explored=reads + lists,
            search_queries=searches,
            list_operations=lists,
            key_findings=key_findings,
            confidence_score=confidence,
        )

    def _count(self, action_kind: ActionKind) -> int:
        return sum(1 for e in self._entries if e.action_kind == action_kind.value)

    def elapsed_seconds(self) -> float:
        """Time since the store was created or last reset."""
        return max(0.0, self._clock() - self._started_at)

    def has_sufficient_exploration(self, min_entries: int = 3, min_confidence: float = 0.7) -> bool:
        summary = self.generate_summary()
        return summary.total_entries >= min_entries and summary.confidence_score >= min_confidence

    def should_perform_auto_exploration(self) -> bool:
        """Nothing recorded yet and still exploring."""
        return not self._entries and self._phase == Phase.EXPLORE

    def should_transition_to_thinking(self) -> bool:
        return self.has_sufficient_exploration(2, 0.6) or self.elapsed_seconds() > 30.0

    def get_exploration_recommendations(self) -> List[str]:
        """Heuristic suggestions keyed off gaps in the summary."""
        recommendations = []
        summary = self.generate_summary()

        if summary.total_entries == 0:
            recommendations.append("Start with list_files to understand the project structure")
            recommendations.append("Use read_file on key configuration files (pyproject.toml, README, etc.)")
        if summary.files_explored == 0:
            recommendations.append("Explore source code directories to understand the codebase")
        if summary.search_queries == 0:
            recommendations.append("Perform targeted searches for key functionality")
        if summary.confidence_score < 0.6:
            recommendations.append("Gather more evidence before proceeding to analysis")

        return recommendations

    # -------------------------------------------------------------------------
    # Tough reasoning
    # -------------------------------------------------------------------------

    def tough_reasoning(self, max_iterations: int = 5, min_confidence: float = 0.85) -> ToughReasoningResult:
        """
        Iteratively refine confidence in what the log shows.

        Each iteration adds one themed diagnostic line and recomputes
        confidence as base * depth + iteration bonus + time bonus. The
        pass stops at the first iteration reaching ``min_confidence``;
        otherwise it runs all ``max_iterations``.

        Args:
            max_iterations: Upper bound on iterations (at least 1 is run)
            min_confidence: Target confidence

        Returns:
            ToughReasoningResult with the last computed confidence
        """
        max_iterations = max(1, int(max_iterations))
        confidence = 0.0
        conclusion = INSUFFICIENT_DATA_CONCLUSION
        steps: List[str] = []
        reached = False
        iterations = 0

        for iteration in range(1, max_iterations + 1):
            iterations = iteration
            summary = self.generate_summary()
            steps.append(
                f"Iteration {iteration}: analyzing {summary.total_entries} entries | "
                f"{self._reasoning_theme(iteration, summary)}"
            )

            confidence = self._refined_confidence(summary, iteration)
            if confidence >= min_confidence:
                conclusion = self._detailed_conclusion(summary, iteration)
                steps.append(f"Conclusion reached with {round(confidence * 100)}% confidence")
                reached = True
                break

            if iteration < max_iterations and self.config.reasoning_pause_seconds > 0:
                self._sleep(self.config.reasoning_pause_seconds)

        logger.info(
            f"[EVIDENCE] Tough reasoning: {iterations}/{max_iterations} iterations, "
            f"confidence={confidence:.2f}, target {'reached' if reached else 'missed'}"
        )

        return ToughReasoningResult(
            conclusion=conclusion,
            confidence=confidence,
            iterations=iterations,
            steps=steps,
            reached_target=reached,
        )

    def _refined_confidence(self, summary: EvidenceSummary, iteration: int) -> float:
        depth = min(1.0, summary.total_entries / 10)
        iteration_bonus = min(0.2, iteration * 0.05)
        time_bonus = min(0.1, self.elapsed_seconds() / 60.0)
        return _clamp(summary.confidence_score * depth + iteration_bonus + time_bonus)

    def _reasoning_theme(self, iteration: int, summary: EvidenceSummary) -> str:
        if iteration == 1:
            return f"problem scope: {self._problem_scope(summary)}"
        if iteration == 2:
            return f"evidence quality: {self._evidence_quality(summary)}"
        if iteration == 3:
            return f"patterns identified: {self._dominant_pattern()}"
        throughput = summary.total_entries / max(self.elapsed_seconds(), 1.0)
        return f"deep analysis: throughput {throughput:.2f} actions/second"

    @staticmethod
    def _problem_scope(summary: EvidenceSummary) -> str:
        if summary.total_entries < 2:
            return "Too early to determine scope"
        return f"Exploring {summary.files_explored} files with {summary.search_queries} searches"

    @staticmethod
    def _evidence_quality(summary: EvidenceSummary) -> str:
        score = summary.confidence_score
        tier = "High" if score > 0.8 else "Medium" if score > 0.6 else "Low"
        return f"{tier} quality ({round(score * 100)}% confidence)"

    def _dominant_pattern(self) -> str:
        reads = self._count(ActionKind.READ_FILE)
        searches = self._count(ActionKind.SEARCH_FILES)
        lists = self._count(ActionKind.LIST_FILES)

        if reads > searches + lists:
            return "Code-focused exploration"
        if searches > reads + lists:
            return "Search-driven investigation"
        if lists > reads + searches:
            return "Structure mapping"
        return "Balanced exploration approach"

    def _detailed_conclusion(self, summary: EvidenceSummary, iterations: int) -> str:
        if summary.total_entries == 0:
            findings = "No exploration data available"
        else:
            parts = [
                f"Explored {summary.total_entries} items",
                f"Found {summary.files_explored} relevant files",
                f"Performed {summary.search_queries} search queries",
                f"Overall confidence: {summary.confidence_score * 100:.1f}%",
            ]
            if summary.key_findings:
                parts.append(f"Key findings: {', '.join(summary.key_findings[:3])}")
            findings = ". ".join(parts) + ". Ready to proceed with execution."

        return (
            f"{findings}\n\nAnalysis Summary:\n"
            f"- Evidence Quality: {self._evidence_quality(summary)}\n"
            f"- Exploration Pattern: {self._dominant_pattern()}\n"
            f"- Reasoning Iterations: {iterations}\n"
            f"- Total Data Points: {summary.total_entries}"
        )

    # -------------------------------------------------------------------------
    # Phase
    # -------------------------------------------------------------------------

    @property
    def current_phase(self) -> Phase:
        return self._phase

    def transition_to_next_phase(self) -> Phase:
        """Advance one phase; a no-op at EXECUTE."""
        previous = self._phase
        self._phase = next_phase(previous)
        if self._phase != previous:
            logger.info(f"[EVIDENCE] Phase transition {previous.value} -> {self._phase.value}")
        return self._phase

    @staticmethod
    def should_transition_phase(current_phase: Phase, summary: EvidenceSummary) -> bool:
        """
        Whether the evidence supports leaving ``current_phase``.

        EXPLORE needs at least 5 entries and confidence above 0.7; THINK
        needs confidence above 0.85; EXECUTE never auto-transitions.
        """
        if current_phase == Phase.EXPLORE:
            return summary.total_entries >= 5 and summary.confidence_score > 0.7
        if current_phase == Phase.THINK:
            return summary.confidence_score > 0.85
        return False

    def reset(self) -> None:
        """Drop all evidence and return to EXPLORE."""
        self._entries = []
        self._cache.clear()
        self._phase = Phase.EXPLORE
        self._started_at = self._clock()
        logger.debug("[EVIDENCE] Store reset")
