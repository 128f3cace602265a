"""
Iteration Controller for ThinkGate.

Runs the bounded think -> explore/reason -> decide loop for one task.

Each iteration:
1. Classifies the situation from the evidence summary and phase
2. Records exploration intent or runs deep reasoning, then moves on
   to the next iteration
3. Decides when the evidence is sufficient
4. Otherwise reflects on a pending action result and decides once
   convergence crosses the threshold

The loop always terminates: when the iteration budget runs out (or the
stop flag is raised) a final decision is forced with whatever
confidence was reached.
"""

import itertools
import logging
import math
import time
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np

from ..config import ThinkGateConfig, get_config
from ..evidence.models import Phase
from ..evidence.payloads import to_payload
from ..evidence.scoring import HeuristicResultClassifier, ResultClassifier
from ..evidence.store import EvidenceStore
from ..gate.action_gate import ActionGate, FinalDecision

logger = logging.getLogger(__name__)


class Branch(str, Enum):
    """Outcome of classifying the current situation."""
    NEEDS_EXPLORATION = "needs_exploration"
    NEEDS_DEEP_REASONING = "needs_deep_reasoning"
    CAN_DECIDE = "can_decide"
    # Never produced by the default classification; reflect and check convergence
    OBSERVE = "observe"


class StopReason(str, Enum):
    """Why the loop produced its decision."""
    CAN_DECIDE = "can_decide"
    CONVERGENCE = "convergence"
    BUDGET_EXHAUSTED = "budget_exhausted"
    STOPPED = "stopped"
    ERROR = "error"


BROAD_EXPLORATION: Tuple[str, ...] = ("auto_explore", "read_key_files", "search_patterns")
TARGETED_EXPLORATION: Tuple[str, ...] = ("targeted_search", "deep_file_analysis")

FOCUS_BY_PHASE: Dict[Phase, str] = {
    Phase.EXPLORE: "data_collection",
    Phase.THINK: "analysis",
    Phase.EXECUTE: "decision_making",
    Phase.REFLECT: "learning",
}


@dataclass(frozen=True)
class IntelligentThought:
    """One entry of the controller's thought log. Never mutated after append."""

    id: str
    timestamp: int
    phase: Phase
    thought: str
    confidence: float
    evidence: Tuple[str, ...] = ()
    triggers_action: bool = False
    action_type: Optional[str] = None  # "tool_use" | "analysis" | "decision"
    action_params: Dict[str, Any] = field(default_factory=dict)
    reflection: Optional[str] = None
    recorded_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "phase": self.phase.value,
            "thought": self.thought,
            "confidence": self.confidence,
            "evidence": list(self.evidence),
            "triggers_action": self.triggers_action,
            "action_type": self.action_type,
            "action_params": dict(self.action_params),
            "reflection": self.reflection,
            "recorded_at": self.recorded_at.isoformat(),
        }


@dataclass
class ConversationContext:
    """Mutable per-task loop state."""

    task_description: str = ""
    current_iteration: int = 0
    total_iterations: int = 0
    accumulated_knowledge: Dict[str, Any] = field(default_factory=dict)
    current_focus: str = "task_understanding"
    last_action_result: Optional[Any] = None
    convergence_level: float = 0.0

    def snapshot(self) -> "ConversationContext":
        """Independent copy of the context."""
        return replace(self, accumulated_knowledge=dict(self.accumulated_knowledge))


@dataclass
class SituationAnalysis:
    """Result of classifying one iteration."""
    branch: Branch
    strategy: Tuple[str, ...] = ()
    reasoning_focus: str = ""


@dataclass
class ThinkingResult:
    """What run() hands back to the caller."""

    final_decision: str
    confidence: float
    thought_process: List[IntelligentThought]
    iterations: int
    decided_by: StopReason
    convergence: float
    decision: Optional[FinalDecision] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "final_decision": self.final_decision,
            "confidence": self.confidence,
            "iterations": self.iterations,
            "decided_by": self.decided_by.value,
            "convergence": self.convergence,
            "decision": self.decision.to_dict() if self.decision else None,
            "thought_process": [t.to_dict() for t in self.thought_process],
        }


class IterationController:
    """
    Drives the convergence loop for one task.

    The controller never calls the action executor. Exploration
    branches only record the intended strategy in the thought log
    and in ``accumulated_knowledge["exploration_strategy"]``; the caller
    executes it and feeds results back through the ActionGate and
    register_action_result().
    """

    def __init__(
        self,
        store: EvidenceStore,
        gate: ActionGate,
        config: Optional[ThinkGateConfig] = None,
        classifier: Optional[ResultClassifier] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize the iteration controller.

        Args:
            store: Evidence store owned by the same task
            gate: Action gate producing the final decision
            config: Session configuration (default: get_config())
            classifier: Reflection strategy (default: HeuristicResultClassifier)
            sleep: Pause function used for pacing between iterations
        """
        self.store = store
        self.gate = gate
        self.config = config or get_config()
        self.classifier = classifier or HeuristicResultClassifier()
        self._sleep = sleep

        self._context = ConversationContext()
        self._thoughts: List[IntelligentThought] = []
        self._counter = itertools.count(1)
        self._active = False

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    @property
    def history(self) -> List[IntelligentThought]:
        """Copy of the full thought log."""
        return list(self._thoughts)

    @property
    def context(self) -> ConversationContext:
        return self._context.snapshot()

    @property
    def convergence_level(self) -> float:
        return self._context.convergence_level

    @property
    def is_active(self) -> bool:
        return self._active

    def stop(self) -> None:
        """Ask the running loop to stop at the top of its next iteration."""
        self._active = False

    def initialize(self, task: str) -> None:
        """
        Start thinking about a task.

        Seeds the thought log with a restatement of the task and an
        assessment of what the store already knows.
        """
        self._context = ConversationContext(task_description=task or "")
        self._thoughts = []
        self._active = True

        self._add_thought(
            Phase.THINK,
            f'New task received: "{self._context.task_description}". '
            "Need to understand exactly what is being asked.",
            0.5,
        )

        summary = self.store.generate_summary()
        self._add_thought(
            Phase.THINK,
            f"Assessing current knowledge: {summary.total_entries} data points collected, "
            f"{summary.confidence_score * 100:.1f}% confidence.",
            summary.confidence_score,
            evidence=summary.key_findings,
            triggers_action=True,
            action_type="analysis",
            action_params={"type": "knowledge_assessment"},
        )

    def register_action_result(self, result: Any) -> None:
        """
        Register an external result for the next reflection step.

        Only one result is pending at a time; an unreflected result is
        overwritten.
        """
        if self._context.last_action_result is not None:
            logger.debug("[THINKING] Overwriting unreflected action result")
        self._context.last_action_result = to_payload(result)

    def run(self, max_iterations: Optional[int] = None) -> ThinkingResult:
        """
        Run the convergence loop.

        Args:
            max_iterations: Hard iteration cap (default: config.default_max_iterations)

        Returns:
            ThinkingResult with the decision, its confidence and the full trace
        """
        if max_iterations is None:
            max_iterations = self.config.default_max_iterations
        max_iterations = max(0, int(max_iterations))

        ctx = self._context
        ctx.total_iterations = max_iterations
        ctx.current_iteration = 0
        self._active = True

        while self._active and ctx.current_iteration < max_iterations:
            ctx.current_iteration += 1
            iteration = ctx.current_iteration

            try:
                analysis = self.analyze_situation(iteration)

                if analysis.branch == Branch.CAN_DECIDE:
                    return self._decide(StopReason.CAN_DECIDE)

                if analysis.branch == Branch.NEEDS_EXPLORATION:
                    self._explore(analysis.strategy)
                elif analysis.branch == Branch.NEEDS_DEEP_REASONING:
                    self._deep_reasoning()
                else:
                    if ctx.last_action_result is not None:
                        self._reflect_on_action_result(iteration)

                    self._update_convergence()
                    if ctx.convergence_level >= self.config.convergence_threshold:
                        return self._decide(StopReason.CONVERGENCE)

            except Exception as e:
                self._handle_error(e)

            if self._active and iteration < max_iterations and self.config.pacing_delay_seconds > 0:
                self._sleep(self.config.pacing_delay_seconds)

        reason = StopReason.BUDGET_EXHAUSTED if self._active else StopReason.STOPPED
        try:
            return self._decide(reason)
        except Exception as e:
            self._handle_error(e)
            self._active = False
            return ThinkingResult(
                final_decision=f"No decision reached: {e}",
                confidence=0.0,
                thought_process=self.history,
                iterations=ctx.current_iteration,
                decided_by=StopReason.ERROR,
                convergence=ctx.convergence_level,
            )

    # -------------------------------------------------------------------------
    # Loop steps
    # -------------------------------------------------------------------------

    def analyze_situation(self, iteration: int) -> SituationAnalysis:
        """
        Classify the current iteration and log the rationale.

        Subclasses may return Branch.OBSERVE to run the reflection and
        convergence step instead of a branch action.
        """
        summary = self.store.generate_summary()
        phase = self.store.current_phase
        confidence = summary.confidence_score
        percent = f"{confidence * 100:.1f}%"

        preamble = (
            f"Iteration {iteration} analysis: {summary.total_entries} data points, "
            f"{percent} confidence, phase {phase.value}."
        )

        if summary.total_entries < 3 and phase == Phase.EXPLORE:
            analysis = SituationAnalysis(Branch.NEEDS_EXPLORATION, strategy=BROAD_EXPLORATION)
            self._add_thought(
                Phase.THINK,
                f"{preamble} Still need to explore to understand the context.",
                confidence,
                evidence=[f"Few data points: {summary.total_entries} entries"],
                triggers_action=True,
                action_type="analysis",
                action_params={"strategy": list(analysis.strategy)},
            )
        elif confidence < 0.7 and phase == Phase.THINK:
            analysis = SituationAnalysis(Branch.NEEDS_DEEP_REASONING, reasoning_focus="evidence_evaluation")
            self._add_thought(
                Phase.THINK,
                f"{preamble} Confidence is still low; reasoning more deeply.",
                confidence,
                evidence=[f"Low confidence: {percent}"],
                triggers_action=True,
                action_type="analysis",
                action_params={"focus": analysis.reasoning_focus},
            )
        elif confidence >= 0.8 or iteration >= 5:
            analysis = SituationAnalysis(Branch.CAN_DECIDE)
            self._add_thought(
                Phase.THINK,
                f"{preamble} Enough information to make a decision.",
                confidence,
                evidence=[f"Adequate confidence: {percent}", f"Iteration {iteration}"],
            )
        else:
            analysis = SituationAnalysis(Branch.NEEDS_EXPLORATION, strategy=TARGETED_EXPLORATION)
            self._add_thought(
                Phase.THINK,
                f"{preamble} Switching to targeted exploration.",
                confidence,
                evidence=["Targeted strategy needed"],
                triggers_action=True,
                action_type="analysis",
                action_params={"strategy": list(analysis.strategy)},
            )

        logger.debug(f"[THINKING] Iteration {iteration} classified as {analysis.branch.value}")
        return analysis

    def _explore(self, strategy: Sequence[str]) -> None:
        self._context.accumulated_knowledge["exploration_strategy"] = list(strategy)

        for exploration_type in strategy:
            self._add_thought(
                Phase.EXPLORE,
                f"Requesting exploration of type: {exploration_type}",
                0.8,
                evidence=[f"Exploration type: {exploration_type}"],
                triggers_action=True,
                action_type="tool_use",
                action_params={"exploration_type": exploration_type},
            )

        self._add_thought(
            Phase.REFLECT,
            "Exploration complete. Next iteration analyses the newly collected data.",
            0.75,
            evidence=["Exploration data processed"],
        )

    def _deep_reasoning(self) -> None:
        result = self.store.tough_reasoning(3, 0.8)
        self._context.accumulated_knowledge["deep_reasoning"] = result.to_dict()

        self._add_thought(
            Phase.THINK,
            f"Deep reasoning finished: {result.conclusion}",
            result.confidence,
            evidence=result.steps,
            reflection=f"Confidence reached {result.confidence * 100:.1f}% after deep analysis.",
        )

    def _reflect_on_action_result(self, iteration: int) -> None:
        result = self._context.last_action_result
        reflection = self.classifier.classify(result)

        self._add_thought(
            Phase.REFLECT,
            f"Reflecting on action result: {reflection.summary}",
            reflection.confidence,
            evidence=reflection.evidence,
            triggers_action=reflection.suggests_next_action,
            action_type="analysis",
            action_params={"reflection_type": "action_result"},
            reflection=reflection.insights,
        )

        self._context.accumulated_knowledge[f"reflection_{iteration}"] = reflection.summary
        self._context.last_action_result = None

    def _decide(self, reason: StopReason) -> ThinkingResult:
        self._update_convergence()
        summary = self.store.generate_summary()
        self._add_thought(
            Phase.EXECUTE,
            f"Making the final decision from {len(self._thoughts)} thoughts "
            f"and {summary.total_entries} data points.",
            summary.confidence_score,
            evidence=[f"Thoughts analysed: {len(self._thoughts)}"],
        )

        decision = self.gate.final_decision()

        self._add_thought(
            Phase.EXECUTE,
            f"Decision made: {decision.decision}",
            decision.confidence,
            evidence=["Final decision based on collected evidence"],
            reflection=f"Thinking finished after {self._context.current_iteration} iteration(s).",
        )

        self._active = False
        logger.info(
            f"[THINKING] Decided after {self._context.current_iteration} iteration(s) "
            f"({reason.value}): {decision.decision}"
        )

        return ThinkingResult(
            final_decision=decision.decision,
            confidence=decision.confidence,
            thought_process=self.history,
            iterations=self._context.current_iteration,
            decided_by=reason,
            convergence=self._context.convergence_level,
            decision=decision,
        )

    def _handle_error(self, error: Exception) -> None:
        logger.warning(f"[THINKING] Iteration {self._context.current_iteration} failed: {error}")
        self._add_thought(
            Phase.REFLECT,
            f"Error while thinking: {error}. Adjusting the approach.",
            0.3,
            evidence=[f"Error: {error}"],
            triggers_action=True,
            action_type="analysis",
            action_params={"type": "error_recovery"},
        )

    # -------------------------------------------------------------------------
    # Convergence
    # -------------------------------------------------------------------------

    def thought_consistency(self) -> float:
        """1 - std of all thought confidences (0.5 with fewer than 2 thoughts)."""
        if len(self._thoughts) < 2:
            return 0.5
        confidences = np.array([t.confidence for t in self._thoughts], dtype=float)
        return max(0.0, 1.0 - math.sqrt(float(np.var(confidences))))

    def compute_convergence(self) -> float:
        """Store confidence + iteration bonus + consistency bonus, clamped to [0, 1]."""
        confidence = self.store.generate_summary().confidence_score
        iteration_bonus = min(0.3, self._context.current_iteration * 0.05)
        consistency_bonus = 0.2 * self.thought_consistency()
        return max(0.0, min(1.0, confidence + iteration_bonus + consistency_bonus))

    def _update_convergence(self) -> None:
        self._context.convergence_level = self.compute_convergence()
        logger.debug(f"[THINKING] Convergence {self._context.convergence_level:.2f}")

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _add_thought(
        self,
        phase: Phase,
        thought: str,
        confidence: float,
        evidence: Sequence[str] = (),
        triggers_action: bool = False,
        action_type: Optional[str] = None,
        action_params: Optional[Dict[str, Any]] = None,
        reflection: Optional[str] = None,
    ) -> IntelligentThought:
        timestamp = next(self._counter)
        record = IntelligentThought(
            id=f"thought_{timestamp:04d}",
            timestamp=timestamp,
            phase=phase,
            thought=thought,
            confidence=confidence,
            evidence=tuple(evidence),
            triggers_action=triggers_action,
            action_type=action_type,
            action_params=dict(action_params or {}),
            reflection=reflection,
        )
        self._thoughts.append(record)
        self._context.current_focus = FOCUS_BY_PHASE[phase]

        logger.debug(f"[THINKING] {phase.value}:{record.id} - {thought} ({confidence * 100:.1f}%)")
        return record
