"""
Reasoning Tool Handler for ThinkGate.

Exposes the evidence store, action gate and iteration controller to a
presentation/control layer as named operations returning text:

    exploration_summary, tough_reasoning, check_cache,
    get_exploration_recommendations, thinking_history,
    intelligent_thinking_history, final_decision, intelligent_thinking

Unknown names and failing operations come back as error strings; the
handler never raises into the host.
"""

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel, Field, ValidationError

from ..config import ThinkGateConfig, get_config
from ..controller.iteration_controller import IterationController
from ..errors import UnknownOperationError
from ..evidence.store import EvidenceStore
from ..gate.action_gate import ActionGate
from .formatting import (
    format_cache_status,
    format_exploration_summary,
    format_final_decision,
    format_intelligent_history,
    format_recommendations,
    format_thinking_history,
    format_thinking_result,
    format_tough_reasoning,
)

logger = logging.getLogger(__name__)

ArgsT = TypeVar("ArgsT", bound=BaseModel)


# =============================================================================
# Operation arguments
# =============================================================================

class ToughReasoningArgs(BaseModel):
    max_iterations: int = Field(default=5, ge=1)
    min_confidence: float = Field(default=0.85, ge=0.0, le=1.0)


class CheckCacheArgs(BaseModel):
    tool_name: str = ""
    query: str = ""
    file_path: Optional[str] = None


class IntelligentThinkingArgs(BaseModel):
    max_iterations: int = Field(default=5, ge=1)


def parse_args(model: Type[ArgsT], params: Optional[Mapping[str, Any]]) -> ArgsT:
    """
    Validate operation arguments, replacing malformed fields by defaults.
    """
    data = {k: v for k, v in dict(params or {}).items() if v is not None}
    try:
        return model.model_validate(data)
    except ValidationError as e:
        bad_fields = {err["loc"][0] for err in e.errors() if err.get("loc")}
        logger.warning(
            f"[REASONING] Malformed arguments {sorted(map(str, bad_fields))} "
            f"for {model.__name__}; using defaults"
        )
        return model.model_validate({k: v for k, v in data.items() if k not in bad_fields})


class ReasoningToolHandler:
    """
    Dispatches named reasoning operations.

    The gate and controller are optional collaborators; operations that
    need a missing one report that they are unavailable.
    """

    name = "reasoning"

    def __init__(
        self,
        store: EvidenceStore,
        gate: Optional[ActionGate] = None,
        controller: Optional[IterationController] = None,
        config: Optional[ThinkGateConfig] = None,
    ):
        self.store = store
        self.gate = gate
        self.controller = controller
        self.config = config or get_config()

        self._functions: Dict[str, Callable[[Mapping[str, Any]], str]] = {
            "exploration_summary": self._exploration_summary,
            "tough_reasoning": self._tough_reasoning,
            "check_cache": self._check_cache,
            "get_exploration_recommendations": self._recommendations,
            "thinking_history": self._thinking_history,
            "final_decision": self._final_decision,
            "intelligent_thinking": self._intelligent_thinking,
            "intelligent_thinking_history": self._intelligent_thinking_history,
        }

    def available_functions(self) -> List[str]:
        return list(self._functions)

    def get_description(self, function_name: Optional[str] = None) -> str:
        return f"[Reasoning: {function_name or 'analysis'}]"

    def execute(self, function_name: str, params: Optional[Mapping[str, Any]] = None) -> str:
        """
        Run a named operation and return its rendered text.

        Args:
            function_name: Operation name
            params: Operation arguments (missing or malformed ones default)

        Returns:
            Rendered markdown, or an error string
        """
        try:
            operation = self._resolve(function_name)
        except UnknownOperationError as e:
            logger.warning(f"[REASONING] {e}")
            return f"Error: {e}"

        try:
            return operation(params or {})
        except Exception as e:
            logger.warning(f"[REASONING] {function_name} failed: {e}")
            return f"Error during {function_name}: {e}"

    def _resolve(self, function_name: str) -> Callable[[Mapping[str, Any]], str]:
        operation = self._functions.get(function_name or "")
        if operation is None:
            raise UnknownOperationError(function_name)
        return operation

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def _exploration_summary(self, params: Mapping[str, Any]) -> str:
        return format_exploration_summary(self.store)

    def _tough_reasoning(self, params: Mapping[str, Any]) -> str:
        args = parse_args(ToughReasoningArgs, params)
        result = self.store.tough_reasoning(args.max_iterations, args.min_confidence)

        transitioned_to = None
        if result.confidence >= args.min_confidence:
            before = self.store.current_phase
            after = self.store.transition_to_next_phase()
            if after != before:
                transitioned_to = after

        return format_tough_reasoning(result, transitioned_to)

    def _check_cache(self, params: Mapping[str, Any]) -> str:
        args = parse_args(CheckCacheArgs, params)
        entry = self.store.get_cached(args.tool_name, args.query, args.file_path)
        return format_cache_status(
            args.tool_name,
            args.query,
            args.file_path,
            entry,
            preview_chars=self.config.cache_preview_chars,
        )

    def _recommendations(self, params: Mapping[str, Any]) -> str:
        return format_recommendations(self.store)

    def _thinking_history(self, params: Mapping[str, Any]) -> str:
        if self.gate is None:
            return "Action gate not available - thinking history cannot be shown"
        return format_thinking_history(self.gate.history)

    def _final_decision(self, params: Mapping[str, Any]) -> str:
        if self.gate is None:
            return "Action gate not available - cannot make a final decision"
        return format_final_decision(self.gate.final_decision())

    def _intelligent_thinking(self, params: Mapping[str, Any]) -> str:
        if self.controller is None:
            return "Iteration controller not available"
        args = parse_args(IntelligentThinkingArgs, params)
        return format_thinking_result(self.controller.run(args.max_iterations))

    def _intelligent_thinking_history(self, params: Mapping[str, Any]) -> str:
        if self.controller is None:
            return "Iteration controller not available"
        return format_intelligent_history(self.controller.context, self.controller.history)
