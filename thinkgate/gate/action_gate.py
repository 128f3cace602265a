"""
Action Gate for ThinkGate.

Consulted before and after every candidate action:
- before_action(): cache reuse, phase relevance and evidence sufficiency
- after_result(): records the result as evidence and proposes next actions
- final_decision(): turns the evidence summary into a decision and plan

Every call appends a ThinkingStep to the gate's own trace.
"""

import itertools
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

from ..config import ThinkGateConfig, get_config
from ..evidence.actions import (
    ActionKind,
    action_name,
    is_deep_reasoning,
    is_exploratory,
    is_mutating,
    parse_params,
)
from ..evidence.models import EvidenceDraft, EvidenceEntry, EvidenceSummary, Phase
from ..evidence.payloads import payload_text, to_payload, truncate
from ..evidence.scoring import (
    HeuristicInsightExtractor,
    HeuristicResultScorer,
    InsightExtractor,
    ResultScorer,
    result_tags,
)
from ..evidence.store import EvidenceStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ThinkingStep:
    """One entry of the gate's trace. Never mutated after append."""

    timestamp: int
    phase: Phase
    action: str
    reasoning: str
    confidence: float
    evidence: Tuple[str, ...] = ()
    next_actions: Tuple[str, ...] = ()
    recorded_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "phase": self.phase.value,
            "action": self.action,
            "reasoning": self.reasoning,
            "confidence": self.confidence,
            "evidence": list(self.evidence),
            "next_actions": list(self.next_actions),
            "recorded_at": self.recorded_at.isoformat(),
        }


@dataclass
class GateDecision:
    """Answer of before_action()."""
    proceed: bool
    reasoning: str
    confidence: float
    cached: Optional[EvidenceEntry] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "proceed": self.proceed,
            "reasoning": self.reasoning,
            "confidence": self.confidence,
            "cached": self.cached.to_dict() if self.cached else None,
        }


@dataclass
class ResultAnalysis:
    """Answer of after_result()."""
    insights: List[str]
    should_transition: bool
    next_actions: List[str]
    entry: Optional[EvidenceEntry] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "insights": list(self.insights),
            "should_transition": self.should_transition,
            "next_actions": list(self.next_actions),
            "entry": self.entry.to_dict() if self.entry else None,
        }


@dataclass
class FinalDecision:
    """Decision derived from the evidence summary."""
    decision: str
    confidence: float
    action_plan: List[str]
    reasoning: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "decision": self.decision,
            "confidence": self.confidence,
            "action_plan": list(self.action_plan),
            "reasoning": self.reasoning,
        }


@dataclass
class DecisionContext:
    """Snapshot of everything a decision is based on."""
    task: str
    current_phase: Phase
    available_evidence: List[EvidenceEntry]
    confidence: float
    elapsed_seconds: float
    previous_steps: List[ThinkingStep]


HIGH_CONFIDENCE_PLAN = ["Execute the required changes", "Validate the implementation", "Test the functionality"]
MODERATE_CONFIDENCE_PLAN = ["Implement the proposed solution", "Verify it resolves the problem", "Prepare adjustments if needed"]
NEEDS_ANALYSIS_PLAN = ["Continue exploring", "Collect more evidence", "Reassess the approach"]


class ActionGate:
    """
    Per-action decision function backed by an EvidenceStore.

    Scoring of results and extraction of insights are delegated to
    injected strategies so hosts and tests can replace the substring
    heuristics.
    """

    def __init__(
        self,
        store: EvidenceStore,
        config: Optional[ThinkGateConfig] = None,
        scorer: Optional[ResultScorer] = None,
        insight_extractor: Optional[InsightExtractor] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the action gate.

        Args:
            store: Evidence store owned by the same task
            config: Session configuration (default: get_config())
            scorer: Result confidence strategy (default: HeuristicResultScorer)
            insight_extractor: Insight strategy (default: HeuristicInsightExtractor)
            clock: Monotonic clock used for the decision context
        """
        self.store = store
        self.config = config or get_config()
        self.scorer = scorer or HeuristicResultScorer()
        self.insight_extractor = insight_extractor or HeuristicInsightExtractor()
        self._clock = clock

        self._steps: List[ThinkingStep] = []
        self._counter = itertools.count(1)
        self._task = ""
        self._started_at = self._clock()

    @property
    def task(self) -> str:
        return self._task

    @property
    def history(self) -> List[ThinkingStep]:
        """Copy of the full step log."""
        return list(self._steps)

    def initialize_task(self, task: str) -> None:
        """
        Start a new task: clear the trace and record the initial assessment.

        Args:
            task: Task description
        """
        self._task = task or ""
        self._steps = []
        self._started_at = self._clock()

        self._add_step(
            Phase.EXPLORE,
            "task_received",
            f'New task received: "{self._task}". Assessing current knowledge.',
            0.5,
            next_actions=[
                "Check whether the store already holds relevant evidence",
                "Decide the initial exploration strategy",
                "Assess task complexity",
            ],
        )

        if self.store.generate_summary().total_entries == 0:
            self._add_step(
                Phase.EXPLORE,
                "no_prior_knowledge",
                "No prior knowledge of this task. Starting systematic exploration.",
                0.3,
                next_actions=[
                    "Run auto-exploration to understand the context",
                    "Read the main configuration files",
                    "Map the project structure",
                ],
            )

    # -------------------------------------------------------------------------
    # Before / after an action
    # -------------------------------------------------------------------------

    def before_action(self, action_kind: Union[ActionKind, str], params: Any = None) -> GateDecision:
        """
        Decide whether an action should run.

        A cached equivalent short-circuits with proceed=False and the
        cached entry's confidence. Otherwise relevance and store
        confidence are averaged, discounted by 0.8 when the evidence is
        insufficient for the action, and the action proceeds above 0.6.

        Args:
            action_kind: Action about to be executed
            params: Raw action parameters

        Returns:
            GateDecision
        """
        name = action_name(action_kind)
        phase = self.store.current_phase
        summary = self.store.generate_summary()
        parsed = parse_params(name, params)
        query = parsed.derive_query()

        cached = self.store.get_cached(name, query, parsed.path)
        if cached is not None:
            self._add_step(
                phase,
                "cache_check",
                f"Already executed {name} with equivalent parameters. Reusing the cached result.",
                0.9,
                evidence=[
                    f"Previous result: {truncate(payload_text(cached.result), 100)}",
                    f"Cache confidence: {cached.confidence * 100:.1f}%",
                ],
            )
            return GateDecision(
                proceed=False,
                reasoning="Cached result available",
                confidence=cached.confidence,
                cached=cached,
            )

        relevance = self._relevance(name, phase, summary)
        sufficient = self._has_sufficient_evidence(name, summary)
        reasoning = self._action_reasoning(name, relevance, sufficient, phase)

        confidence = (relevance + summary.confidence_score) / 2
        if not sufficient:
            confidence *= 0.8
        confidence = min(1.0, confidence)

        relevance_label = "High" if relevance > 0.7 else "Medium" if relevance > 0.5 else "Low"
        self._add_step(
            phase,
            "tool_evaluation",
            reasoning,
            confidence,
            evidence=[
                f"Action: {name}",
                f"Relevance: {relevance_label}",
                f"Sufficient evidence: {'Yes' if sufficient else 'No'}",
                f"Current phase: {phase.value}",
            ],
        )

        return GateDecision(proceed=confidence > 0.6, reasoning=reasoning, confidence=confidence)

    def after_result(self, action_kind: Union[ActionKind, str], params: Any, result: Any) -> ResultAnalysis:
        """
        Record an action result and analyse it.

        Args:
            action_kind: Action that was executed
            params: Raw action parameters
            result: Opaque executor result (text or structured)

        Returns:
            ResultAnalysis with insights, transition advice and next actions
        """
        name = action_name(action_kind)
        phase = self.store.current_phase
        parsed = parse_params(name, params)
        payload = to_payload(result)
        # Transition advice reads the evidence as it was before this result
        summary = self.store.generate_summary()

        entry = self.store.add_entry(EvidenceDraft(
            action_kind=name,
            query=parsed.derive_query(),
            result=payload,
            confidence=self.scorer.score(payload),
            tags=result_tags(name, parsed),
            file_path=parsed.path,
            relevance=1.0,
            action_params=parsed.model_dump(exclude_none=True),
        ))

        insights = self.insight_extractor.extract(name, payload, parsed)
        should_transition = self.store.should_transition_phase(phase, summary)
        next_actions = self._suggest_next_actions(phase, summary, should_transition)

        if should_transition and self.config.auto_advance_phase:
            self.store.transition_to_next_phase()

        self._add_step(
            phase,
            "result_analysis",
            f"Analysed result of {name}. {len(insights)} insight(s) extracted. "
            + ("Ready to transition phase." if should_transition else "Staying in the current phase."),
            summary.confidence_score,
            evidence=insights,
            next_actions=next_actions,
        )

        return ResultAnalysis(
            insights=insights,
            should_transition=should_transition,
            next_actions=next_actions,
            entry=entry,
        )

    # -------------------------------------------------------------------------
    # Final decision
    # -------------------------------------------------------------------------

    def final_decision(self) -> FinalDecision:
        """
        Derive the final decision from the evidence summary.

        Below 0.8 confidence a tough_reasoning(5, 0.85) pass runs first
        and its outcome is logged. The summary confidence then picks one
        of three decisions, each with a three-step plan.
        """
        summary = self.store.generate_summary()

        if summary.confidence_score < 0.8:
            tough = self.store.tough_reasoning(5, 0.85)
            self._add_step(
                Phase.THINK,
                "tough_reasoning",
                f"Ran deep reasoning: {tough.conclusion}",
                tough.confidence,
                evidence=[f"Iterations: {tough.iterations}", f"Reasoning steps: {len(tough.steps)}"],
            )
            summary = self.store.generate_summary()

        score = summary.confidence_score
        if score > 0.9:
            decision = "Clear solution identified with high confidence"
            plan = list(HIGH_CONFIDENCE_PLAN)
        elif score > 0.7:
            decision = "Solution identified with moderate confidence"
            plan = list(MODERATE_CONFIDENCE_PLAN)
        else:
            decision = "More analysis needed before a final decision"
            plan = list(NEEDS_ANALYSIS_PLAN)

        reasoning = (
            f"Based on {summary.total_entries} evidence entries and "
            f"{score * 100:.1f}% confidence, decided: {decision}"
        )

        self._add_step(
            Phase.EXECUTE,
            "final_decision",
            reasoning,
            score,
            evidence=[
                f"Total evidence: {summary.total_entries}",
                f"Files explored: {summary.files_explored}",
                f"Key findings: {len(summary.key_findings)}",
            ],
            next_actions=plan,
        )
        logger.info(f"[GATE] Final decision: {decision} ({score:.2f})")

        return FinalDecision(decision=decision, confidence=score, action_plan=plan, reasoning=reasoning)

    def build_decision_context(self) -> DecisionContext:
        return DecisionContext(
            task=self._task,
            current_phase=self.store.current_phase,
            available_evidence=self.store.get_entries(),
            confidence=self.store.generate_summary().confidence_score,
            elapsed_seconds=max(0.0, self._clock() - self._started_at),
            previous_steps=self.history,
        )

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _add_step(
        self,
        phase: Phase,
        action: str,
        reasoning: str,
        confidence: float,
        evidence: Sequence[str] = (),
        next_actions: Sequence[str] = (),
    ) -> ThinkingStep:
        step = ThinkingStep(
            timestamp=next(self._counter),
            phase=phase,
            action=action,
            reasoning=reasoning,
            confidence=confidence,
            evidence=tuple(evidence),
            next_actions=tuple(next_actions),
        )
        self._steps.append(step)
        logger.debug(f"[GATE] {phase.value}:{action} - {reasoning} ({confidence * 100:.1f}%)")
        return step

    @staticmethod
    def _relevance(name: str, phase: Phase, summary: EvidenceSummary) -> float:
        if phase == Phase.EXPLORE and is_exploratory(name):
            return 0.9
        if phase == Phase.EXECUTE and is_mutating(name):
            return 0.9 if summary.confidence_score > 0.7 else 0.5
        if is_deep_reasoning(name):
            return 0.95
        return 0.6

    @staticmethod
    def _has_sufficient_evidence(name: str, summary: EvidenceSummary) -> bool:
        if is_exploratory(name):
            return True
        if is_mutating(name):
            return summary.confidence_score > 0.8 and summary.total_entries > 5
        return summary.total_entries > 0

    @staticmethod
    def _action_reasoning(name: str, relevance: float, sufficient: bool, phase: Phase) -> str:
        reasoning = f"Evaluating {name}"
        if relevance > 0.8:
            reasoning += " - highly relevant for the current phase"
        elif relevance < 0.5:
            reasoning += " - low relevance, but may be needed"
        if not sufficient:
            reasoning += ". Warning: evidence may be insufficient for a decisive action"
        return reasoning + f". Current phase: {phase.value}"

    @staticmethod
    def _suggest_next_actions(phase: Phase, summary: EvidenceSummary, should_transition: bool) -> List[str]:
        actions: List[str] = []

        if should_transition:
            if phase == Phase.EXPLORE:
                actions.append("Move to THINK - analyse the collected evidence")
                actions.append("Use exploration_summary() for a synthesis")
            elif phase == Phase.THINK:
                actions.append("Move to EXECUTE - implement the solution")
                actions.append("Build an action plan from the evidence")
        elif phase == Phase.EXPLORE:
            if summary.files_explored == 0:
                actions.append("Explore the main configuration files")
            if summary.search_queries == 0:
                actions.append("Search for key functionality")
        elif phase == Phase.THINK:
            actions.append("Continue analysis - run tough_reasoning()")
        elif phase == Phase.EXECUTE:
            actions.append("Implement the planned changes")

        return actions
