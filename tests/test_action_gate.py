"""
Tests for the ActionGate.

Covers cache short-circuiting, proceed scoring, result recording and
the final decision buckets.
"""

import pytest

from thinkgate.config import ThinkGateConfig
from thinkgate.evidence import EvidenceStore, Phase, ResultScorer
from thinkgate.gate import ActionGate
from thinkgate.gate.action_gate import HIGH_CONFIDENCE_PLAN, NEEDS_ANALYSIS_PLAN

LONG_CONFIG_TEXT = "[project]\nname = 'app'\n# pyproject.toml for the service\n" + "dependencies = []\n" * 5


class FixedScorer(ResultScorer):
    """Scores every result the same."""

    def __init__(self, value: float):
        self.value = value

    def score(self, result) -> float:
        return self.value


class TestInitializeTask:
    """Tests for task initialization."""

    def test_initial_steps_on_empty_store(self, gate):
        """Test the two initial assessment steps."""
        gate.initialize_task("Fix login")

        history = gate.history
        assert gate.task == "Fix login"
        assert [s.action for s in history] == ["task_received", "no_prior_knowledge"]
        assert [s.confidence for s in history] == [0.5, 0.3]
        assert all(s.phase == Phase.EXPLORE for s in history)

    def test_prior_knowledge_skips_second_step(self, gate, store, fill_store):
        """Test that existing evidence suppresses the no-knowledge step."""
        fill_store(store, 1, 0.9)

        gate.initialize_task("Fix login")

        assert [s.action for s in gate.history] == ["task_received"]

    def test_reinitialize_clears_trace(self, gate):
        """Test that a new task starts a fresh trace."""
        gate.initialize_task("first")
        gate.before_action("read_file", {"path": "a.py"})
        gate.initialize_task("second")

        assert len(gate.history) == 2
        assert gate.history[0].timestamp > 1


class TestBeforeAction:
    """Tests for before_action."""

    def test_cached_action_is_skipped(self, gate):
        """Test that a stored equivalent action short-circuits."""
        params = {"path": "src/auth.py"}
        first = gate.before_action("read_file", params)
        analysis = gate.after_result("read_file", params, "def login(): pass")

        second = gate.before_action("read_file", params)

        assert first.cached is None
        assert second.proceed is False
        assert second.reasoning == "Cached result available"
        assert second.confidence == analysis.entry.confidence
        assert second.cached == analysis.entry
        assert gate.history[-1].action == "cache_check"

    def test_exploration_on_empty_store(self, gate):
        """Test that relevance alone is averaged with zero confidence."""
        decision = gate.before_action("read_file", {"path": "a.py"})

        assert decision.confidence == pytest.approx(0.45)
        assert decision.proceed is False
        assert "highly relevant" in decision.reasoning

    def test_exploration_with_confident_store(self, gate, store, fill_store):
        """Test that confident evidence lets exploration proceed."""
        fill_store(store, 2, 0.9)

        decision = gate.before_action("search_files", {"regex": "login"})

        assert decision.confidence == pytest.approx(0.9)
        assert decision.proceed is True

    def test_mutation_without_evidence_is_discounted(self, gate):
        """Test the insufficient-evidence discount for mutating actions."""
        decision = gate.before_action("write_to_file", {"path": "a.py", "content": "x"})

        assert decision.confidence == pytest.approx(0.24)
        assert decision.proceed is False
        assert "insufficient" in decision.reasoning

    def test_mutation_in_execute_with_strong_evidence(self, gate, store, fill_store):
        """Test that mutations proceed in EXECUTE with enough evidence."""
        fill_store(store, 6, 0.9)
        store.transition_to_next_phase()
        store.transition_to_next_phase()

        decision = gate.before_action("replace_in_file", {"path": "new.py", "diff": "-a\n+b"})

        assert decision.confidence == pytest.approx(0.9)
        assert decision.proceed is True

    def test_deep_reasoning_relevance(self, gate, store, fill_store):
        """Test that the reasoning action is always highly relevant."""
        fill_store(store, 1, 0.45)

        decision = gate.before_action("reasoning", {"function": "tough_reasoning"})

        assert decision.confidence == pytest.approx(0.7)
        assert decision.proceed is True

    def test_malformed_params_fall_back(self, gate):
        """Test that malformed params never raise."""
        decision = gate.before_action("read_file", "not a mapping")

        assert decision.cached is None
        assert gate.history[-1].action == "tool_evaluation"

    def test_unknown_action_uses_generic_params(self, gate, store):
        """Test that unknown actions are keyed by all their params."""
        gate.after_result("browser_action", {"url": "http://x", "action": "click"}, "done")

        assert store.has_explored("browser_action", '{"action": "click", "url": "http://x"}') is True


class TestAfterResult:
    """Tests for after_result."""

    def test_records_entry(self, gate, store):
        """Test the entry written for a read result."""
        analysis = gate.after_result("read_file", {"path": "pyproject.toml"}, LONG_CONFIG_TEXT)

        entry = analysis.entry
        assert len(store) == 1
        assert entry.query == "pyproject.toml"
        assert entry.file_path == "pyproject.toml"
        assert entry.confidence == 0.9
        assert entry.tags == frozenset({"read_file", "file_specific", "content_analysis"})
        assert "Found a main configuration file" in analysis.insights

    def test_error_result_scores_low(self, gate):
        """Test the error-marker heuristic."""
        analysis = gate.after_result("read_file", {"path": "missing.py"}, "Error: file not found")

        assert analysis.entry.confidence == 0.3

    def test_search_query_and_tags(self, gate, store):
        """Test that searches are keyed by their regex."""
        gate.after_result("search_files", {"regex": "login|auth", "path": "src"}, "auth.py: login")

        entry = store.get_cached("search_files", "login|auth", "src")
        assert entry is not None
        assert {"search", "discovery", "file_specific"} <= entry.tags

    def test_injected_scorer(self, store, config, clock):
        """Test that a replacement scorer decides the stored confidence."""
        gate = ActionGate(store, config=config, scorer=FixedScorer(0.42), clock=clock)

        analysis = gate.after_result("read_file", {"path": "a.py"}, "Error everywhere")

        assert analysis.entry.confidence == 0.42

    def test_transition_reads_summary_before_write(self, gate, store):
        """Test that the transition is advised only once five entries already existed."""
        analyses = [
            gate.after_result("read_file", {"path": f"f{i}.py"}, LONG_CONFIG_TEXT)
            for i in range(6)
        ]

        assert [a.should_transition for a in analyses] == [False] * 5 + [True]
        assert "Move to THINK - analyse the collected evidence" in analyses[-1].next_actions
        assert store.current_phase == Phase.EXPLORE

    def test_auto_advance_phase(self, store, clock):
        """Test that auto_advance_phase moves the store forward."""
        gate = ActionGate(store, config=ThinkGateConfig(auto_advance_phase=True), clock=clock)

        for i in range(5):
            gate.after_result("read_file", {"path": f"f{i}.py"}, LONG_CONFIG_TEXT)
        assert store.current_phase == Phase.EXPLORE

        gate.after_result("read_file", {"path": "f5.py"}, LONG_CONFIG_TEXT)

        assert store.current_phase == Phase.THINK

    def test_next_actions_point_at_gaps(self, gate):
        """Test gap-driven suggestions while exploring."""
        first = gate.after_result("search_files", {"regex": "x"}, "nothing")
        second = gate.after_result("search_files", {"regex": "y"}, "nothing")

        assert first.next_actions == ["Explore the main configuration files", "Search for key functionality"]
        assert second.next_actions == ["Explore the main configuration files"]

    def test_step_recorded(self, gate):
        """Test that every result adds a result_analysis step."""
        gate.after_result("list_files", {"path": "src"}, "src/a.py")

        step = gate.history[-1]
        assert step.action == "result_analysis"
        assert step.phase == Phase.EXPLORE


class TestFinalDecision:
    """Tests for final_decision."""

    def test_high_confidence_decision(self, gate, store, fill_store):
        """Test the high-confidence bucket and its plan."""
        fill_store(store, 4, 0.95)

        decision = gate.final_decision()

        assert "high confidence" in decision.decision
        assert len(decision.action_plan) == 3
        assert decision.action_plan == HIGH_CONFIDENCE_PLAN
        assert [s.action for s in gate.history] == ["final_decision"]
        assert gate.history[-1].phase == Phase.EXECUTE

    def test_moderate_confidence_decision(self, gate, store, fill_store):
        """Test the moderate bucket also runs tough reasoning below 0.8."""
        fill_store(store, 4, 0.75)

        decision = gate.final_decision()

        assert decision.decision == "Solution identified with moderate confidence"
        assert [s.action for s in gate.history] == ["tough_reasoning", "final_decision"]

    def test_empty_store_needs_analysis(self, gate):
        """Test the lowest bucket."""
        decision = gate.final_decision()

        assert decision.decision == "More analysis needed before a final decision"
        assert decision.confidence == 0.0
        assert decision.action_plan == NEEDS_ANALYSIS_PLAN
        assert "0 evidence entries" in decision.reasoning

    def test_plan_is_a_copy(self, gate, store, fill_store):
        """Test that callers cannot mutate the shared plan constants."""
        fill_store(store, 2, 1.0)

        gate.final_decision().action_plan.append("extra")

        assert len(HIGH_CONFIDENCE_PLAN) == 3


class TestDecisionContext:
    """Tests for build_decision_context."""

    def test_context_snapshot(self, gate, store, clock, fill_store):
        """Test the fields of the decision context."""
        gate.initialize_task("Fix login")
        fill_store(store, 2, 0.5)
        clock.advance(12)

        context = gate.build_decision_context()

        assert context.task == "Fix login"
        assert context.current_phase == Phase.EXPLORE
        assert len(context.available_evidence) == 2
        assert context.confidence == pytest.approx(0.5)
        assert context.elapsed_seconds == pytest.approx(12)
        assert len(context.previous_steps) == 2

    def test_stores_are_not_shared(self, config, clock):
        """Test that two gates over two stores do not see each other's cache."""
        first = ActionGate(EvidenceStore(config=config, clock=clock), config=config, clock=clock)
        second = ActionGate(EvidenceStore(config=config, clock=clock), config=config, clock=clock)

        first.after_result("read_file", {"path": "a.py"}, "content")

        assert second.before_action("read_file", {"path": "a.py"}).cached is None
