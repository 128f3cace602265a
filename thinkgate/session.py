"""
Session wiring for ThinkGate.

Builds one evidence store, action gate, iteration controller and
reasoning tool handler for a single task. Nothing is shared between
sessions.

Also loads recorded executor observations from JSON so a session can
be replayed offline (used by the CLI and the demo).
"""

import json
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from .config import ThinkGateConfig, get_config
from .controller.iteration_controller import IterationController, ThinkingResult
from .errors import InvalidParamsError
from .evidence.actions import ActionKind
from .evidence.scoring import InsightExtractor, ResultClassifier, ResultScorer
from .evidence.store import EvidenceStore
from .gate.action_gate import ActionGate, GateDecision, ResultAnalysis
from .tools.reasoning_tool import ReasoningToolHandler

logger = logging.getLogger(__name__)


class Observation(BaseModel):
    """One executed action as recorded by the host."""
    action: str
    params: Dict[str, Any] = Field(default_factory=dict)
    result: Any = None


_observations_adapter: TypeAdapter = TypeAdapter(List[Observation])


def load_observations(path: Union[str, Path]) -> List[Observation]:
    """
    Read a JSON list of ``{"action", "params", "result"}`` objects.

    Raises:
        InvalidParamsError: If the file is not valid JSON or does not fit
    """
    path = Path(path)
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
        return _observations_adapter.validate_python(raw)
    except json.JSONDecodeError as e:
        raise InvalidParamsError(str(path), f"invalid JSON: {e.msg}") from e
    except ValidationError as e:
        raise InvalidParamsError(str(path), f"{e.error_count()} validation error(s)") from e


@dataclass
class ReplayReport:
    """What happened while replaying observations."""
    recorded: int = 0
    reused: int = 0
    decisions: List[GateDecision] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "recorded": self.recorded,
            "reused": self.reused,
            "decisions": [d.to_dict() for d in self.decisions],
        }


@dataclass
class ThinkGateSession:
    """All per-task components, wired together."""

    config: ThinkGateConfig
    store: EvidenceStore
    gate: ActionGate
    controller: IterationController
    handler: ReasoningToolHandler

    def initialize(self, task: str) -> None:
        """Start a task on both the gate and the controller."""
        self.gate.initialize_task(task)
        self.controller.initialize(task)
        logger.info(f"[SESSION] Task initialized: {task}")

    def consult(self, action_kind: Union[ActionKind, str], params: Any = None) -> GateDecision:
        """Ask the gate whether an action should run."""
        return self.gate.before_action(action_kind, params)

    def record(self, action_kind: Union[ActionKind, str], params: Any, result: Any) -> ResultAnalysis:
        """
        Feed an executed action's result back.

        The result is stored as evidence by the gate and kept as the
        controller's pending result.
        """
        analysis = self.gate.after_result(action_kind, params, result)
        self.controller.register_action_result(result)
        return analysis

    def replay(self, observations: List[Observation]) -> ReplayReport:
        """
        Run recorded observations through the gate.

        The gate is consulted for every observation; a cache hit is
        reused and not recorded again. Every other observation is
        recorded, since the host already executed it.
        """
        report = ReplayReport()
        for observation in observations:
            decision = self.consult(observation.action, observation.params)
            report.decisions.append(decision)

            if decision.cached is not None:
                report.reused += 1
                logger.debug(f"[SESSION] Reused cached result for {observation.action}")
                continue

            self.record(observation.action, observation.params, observation.result)
            report.recorded += 1

        logger.info(f"[SESSION] Replayed {len(observations)} observation(s): {report.recorded} recorded, {report.reused} reused")
        return report

    def think(self, max_iterations: Optional[int] = None) -> ThinkingResult:
        return self.controller.run(max_iterations)


def build_session(
    config: Optional[ThinkGateConfig] = None,
    scorer: Optional[ResultScorer] = None,
    insight_extractor: Optional[InsightExtractor] = None,
    classifier: Optional[ResultClassifier] = None,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> ThinkGateSession:
    """
    Create the components for one task.

    Args:
        config: Session configuration (default: get_config())
        scorer: Result confidence strategy for the gate
        insight_extractor: Insight strategy for the gate
        classifier: Reflection strategy for the controller
        clock: Monotonic clock shared by store and gate
        sleep: Pause function shared by store and controller

    Returns:
        ThinkGateSession
    """
    config = config or get_config()

    store = EvidenceStore(config=config, clock=clock, sleep=sleep)
    gate = ActionGate(
        store,
        config=config,
        scorer=scorer,
        insight_extractor=insight_extractor,
        clock=clock,
    )
    controller = IterationController(store, gate, config=config, classifier=classifier, sleep=sleep)
    handler = ReasoningToolHandler(store, gate=gate, controller=controller, config=config)

    return ThinkGateSession(
        config=config,
        store=store,
        gate=gate,
        controller=controller,
        handler=handler,
    )
