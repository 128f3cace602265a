"""
Markdown renderers for ThinkGate.

Turns summaries, traces and decisions into the text returned by the
reasoning tool handler and printed by the CLI.
"""

from typing import Dict, Iterable, List, Optional, Sequence

from ..controller.iteration_controller import ConversationContext, IntelligentThought, ThinkingResult
from ..evidence.models import EvidenceEntry, Phase, ToughReasoningResult
from ..evidence.payloads import payload_text, truncate
from ..evidence.store import EvidenceStore
from ..gate.action_gate import FinalDecision, ThinkingStep

GATE_PHASE_ORDER = (Phase.EXPLORE, Phase.THINK, Phase.EXECUTE)
CONTROLLER_PHASE_ORDER = (Phase.THINK, Phase.EXPLORE, Phase.REFLECT, Phase.EXECUTE)


def pct(value: float) -> str:
    return f"{value * 100:.1f}%"


def _group_by_phase(records: Iterable, order: Sequence[Phase]) -> Dict[Phase, List]:
    groups: Dict[Phase, List] = {phase: [] for phase in order}
    for record in records:
        groups.setdefault(record.phase, []).append(record)
    return groups


def format_exploration_summary(store: EvidenceStore) -> str:
    summary = store.generate_summary()
    phase = store.current_phase
    elapsed = int(store.elapsed_seconds())
    findings = "\n".join(f"- {f}" for f in summary.key_findings) or "- None"

    return (
        "## Exploration Summary\n\n"
        f"- **Phase**: {phase.value}\n"
        f"- **Duration**: {elapsed // 60}m {elapsed % 60}s\n"
        f"- **Total Explorations**: {summary.total_entries}\n"
        f"- **Files Explored**: {summary.files_explored}\n"
        f"- **Search Queries**: {summary.search_queries}\n"
        f"- **List Operations**: {summary.list_operations}\n"
        f"- **Confidence Score**: {pct(summary.confidence_score)}\n\n"
        f"### Key Findings:\n{findings}\n\n"
        + ("Continue exploring..." if phase == Phase.EXPLORE else "Ready for analysis...")
    )


def format_tough_reasoning(result: ToughReasoningResult, transitioned_to: Optional[Phase] = None) -> str:
    output = "## Tough Reasoning Results\n\n"
    output += f"**Conclusion:** {result.conclusion}\n\n"
    output += f"**Confidence:** {pct(result.confidence)}\n\n"
    output += f"**Iterations:** {result.iterations}\n\n"

    if result.steps:
        output += "### Reasoning Steps:\n"
        for index, step in enumerate(result.steps, 1):
            output += f"{index}. {step}\n"

    if transitioned_to is not None:
        output += f"\n**Phase Transition:** Moved to {transitioned_to.value} phase"

    return output


def format_cache_status(
    action_kind: str,
    query: str,
    file_path: Optional[str],
    entry: Optional[EvidenceEntry],
    preview_chars: int = 100,
) -> str:
    output = "## Cache Status Check\n\n"
    output += f"**Action:** {action_kind}\n"
    output += f"**Query:** {query}\n"
    if file_path:
        output += f"**File Path:** {file_path}\n"
    output += f"**Cache Hit:** {'Yes' if entry else 'No'}\n\n"

    if entry is None:
        return output + "No cached result available."

    output += "### Cached Result:\n"
    output += f"- Confidence: {pct(entry.confidence)}\n"
    output += f"- Timestamp: #{entry.timestamp} ({entry.recorded_at:%Y-%m-%d %H:%M:%S})\n"
    output += f"- Tags: {', '.join(sorted(entry.tags))}\n"
    output += f"- Relevance: {pct(entry.relevance)}\n\n"
    output += f"**Result:** {truncate(payload_text(entry.result), preview_chars)}"
    return output


def format_recommendations(store: EvidenceStore) -> str:
    recommendations = store.get_exploration_recommendations()
    summary = store.generate_summary()

    output = "## Exploration Recommendations\n\n"
    output += f"**Current Phase:** {store.current_phase.value}\n\n"

    if recommendations:
        output += "### Recommended Actions:\n"
        for index, rec in enumerate(recommendations, 1):
            output += f"{index}. {rec}\n"
    else:
        output += "No specific recommendations. Exploration appears sufficient.\n"

    output += "\n### Exploration Status:\n"
    output += f"- Entries: {summary.total_entries}\n"
    output += f"- Confidence: {pct(summary.confidence_score)}\n"
    output += f"- Should Transition: {'Yes' if store.should_transition_to_thinking() else 'No'}"
    return output


def format_thinking_history(steps: Sequence[ThinkingStep]) -> str:
    output = f"## Thinking History ({len(steps)} steps)\n\n"

    for phase, group in _group_by_phase(steps, GATE_PHASE_ORDER).items():
        if not group:
            continue
        output += f"### Phase {phase.value} ({len(group)} steps)\n\n"
        for index, step in enumerate(group, 1):
            output += f"**{index}. {step.action}** ({step.recorded_at:%H:%M:%S})\n"
            output += f"Confidence: {pct(step.confidence)}\n"
            output += f"Reasoning: {step.reasoning}\n"
            if step.evidence:
                output += f"Evidence: {', '.join(step.evidence)}\n"
            if step.next_actions:
                output += f"Next actions: {', '.join(step.next_actions)}\n"
            output += "\n"

    return output


def format_intelligent_history(context: ConversationContext, thoughts: Sequence[IntelligentThought]) -> str:
    output = "## Intelligent Thinking History\n\n"
    output += f"**Task:** {context.task_description}\n"
    output += f"**Iterations:** {context.current_iteration}/{context.total_iterations}\n"
    output += f"**Convergence:** {pct(context.convergence_level)}\n"
    output += f"**Current Focus:** {context.current_focus}\n\n"

    for phase, group in _group_by_phase(thoughts, CONTROLLER_PHASE_ORDER).items():
        if not group:
            continue
        output += f"### Phase {phase.value} ({len(group)} thoughts)\n\n"
        for index, thought in enumerate(group, 1):
            output += f"**{index}. {thought.id}** ({thought.recorded_at:%H:%M:%S})\n"
            output += f"Thought: {thought.thought}\n"
            output += f"Confidence: {pct(thought.confidence)}\n"
            if thought.evidence:
                output += f"Evidence: {', '.join(thought.evidence)}\n"
            if thought.reflection:
                output += f"Reflection: {thought.reflection}\n"
            if thought.triggers_action:
                output += f"Triggers action: {thought.action_type}\n"
            output += "\n"

    return output


def format_final_decision(decision: FinalDecision) -> str:
    output = "## Final Decision\n\n"
    output += f"**Decision:** {decision.decision}\n\n"
    output += f"**Confidence:** {pct(decision.confidence)}\n\n"
    output += f"**Reasoning:** {decision.reasoning}\n\n"

    if decision.action_plan:
        output += "### Action Plan:\n"
        for index, action in enumerate(decision.action_plan, 1):
            output += f"{index}. {action}\n"

    return output


def format_thinking_result(result: ThinkingResult) -> str:
    output = "## Intelligent Thinking Result\n\n"
    output += f"**Decision:** {result.final_decision}\n\n"
    output += f"**Confidence:** {pct(result.confidence)}\n\n"
    output += f"**Iterations:** {result.iterations} ({result.decided_by.value})\n\n"
    output += f"**Thoughts Processed:** {len(result.thought_process)}\n\n"

    output += "### Thought Process:\n"
    for index, thought in enumerate(result.thought_process, 1):
        output += f"{index}. **[{thought.phase.value}]** {thought.thought} (Confidence: {pct(thought.confidence)})\n"

    return output
