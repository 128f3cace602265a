"""
Tests for the IterationController.

Covers situation classification, exploration and deep reasoning
branches, reflection, convergence, error recovery and the guaranteed
termination of run().
"""

from unittest.mock import MagicMock

import pytest

from thinkgate.config import ThinkGateConfig
from thinkgate.controller import (
    BROAD_EXPLORATION,
    TARGETED_EXPLORATION,
    Branch,
    IterationController,
    SituationAnalysis,
    StopReason,
)
from thinkgate.evidence import Phase, ResultClassifier


class ExplodingClassifier(ResultClassifier):
    """Classifier that always fails."""

    def classify(self, result):
        raise RuntimeError("classifier down")


class ObservingController(IterationController):
    """Controller whose classification never picks an acting branch."""

    def analyze_situation(self, iteration):
        return SituationAnalysis(Branch.OBSERVE)


@pytest.fixture
def observer(store, gate, config, sleeper):
    return ObservingController(store, gate, config=config, sleep=sleeper)


class TestInitialize:
    """Tests for initialize and the thought log."""

    def test_seed_thoughts(self, controller):
        """Test the two initial THINK thoughts."""
        controller.initialize("Add OAuth")

        history = controller.history
        assert [t.id for t in history] == ["thought_0001", "thought_0002"]
        assert all(t.phase == Phase.THINK for t in history)
        assert history[0].confidence == 0.5
        assert history[1].action_params == {"type": "knowledge_assessment"}
        assert controller.is_active is True
        assert controller.context.task_description == "Add OAuth"
        assert controller.context.current_focus == "analysis"

    def test_history_is_a_copy(self, controller):
        """Test that the returned thought log cannot mutate the controller."""
        controller.initialize("task")
        controller.history.clear()

        assert len(controller.history) == 2

    def test_context_is_a_snapshot(self, controller):
        """Test that context() returns an independent copy."""
        controller.initialize("task")
        snapshot = controller.context
        snapshot.accumulated_knowledge["x"] = 1
        snapshot.current_iteration = 99

        assert "x" not in controller.context.accumulated_knowledge
        assert controller.context.current_iteration == 0


class TestRun:
    """Tests for the convergence loop."""

    def test_can_decide_in_one_iteration(self, controller, store, fill_store):
        """Test that a confident store decides on the first iteration."""
        fill_store(store, 3, 1.0)
        controller.initialize("task")

        result = controller.run(max_iterations=1)

        assert result.iterations == 1
        assert result.decided_by == StopReason.CAN_DECIDE
        assert result.final_decision == "Clear solution identified with high confidence"
        assert result.confidence == 1.0
        assert result.thought_process[-1].phase == Phase.EXECUTE
        assert controller.is_active is False

    def test_budget_exhausted_on_empty_store(self, controller):
        """Test that an empty store explores until the budget runs out."""
        controller.initialize("task")

        result = controller.run(max_iterations=2)

        assert result.iterations == 2
        assert result.decided_by == StopReason.BUDGET_EXHAUSTED
        assert result.final_decision == "More analysis needed before a final decision"
        assert result.confidence == 0.0
        assert controller.context.accumulated_knowledge["exploration_strategy"] == list(BROAD_EXPLORATION)

        explore = [t for t in result.thought_process if t.phase == Phase.EXPLORE]
        assert [t.action_params["exploration_type"] for t in explore] == list(BROAD_EXPLORATION) * 2
        assert all(t.action_type == "tool_use" for t in explore)

    def test_zero_budget_still_decides(self, controller):
        """Test run(0) forces a decision without iterating."""
        controller.initialize("task")

        result = controller.run(max_iterations=0)

        assert result.iterations == 0
        assert result.decided_by == StopReason.BUDGET_EXHAUSTED
        assert result.final_decision

    def test_default_budget_from_config(self, store, gate, sleeper):
        """Test that run() without a cap uses the configured budget."""
        controller = IterationController(
            store, gate, config=ThinkGateConfig(default_max_iterations=3), sleep=sleeper,
        )
        controller.initialize("task")

        result = controller.run()

        assert result.iterations == 3
        assert controller.context.total_iterations == 3

    def test_targeted_exploration_until_iteration_five(self, controller, store, fill_store):
        """Test that moderate evidence keeps exploring and decides on iteration five."""
        fill_store(store, 4, 0.75)
        controller.initialize("task")

        result = controller.run(max_iterations=10)

        assert result.iterations == 5
        assert result.decided_by == StopReason.CAN_DECIDE
        assert 0.0 <= result.convergence <= 1.0
        assert controller.context.accumulated_knowledge["exploration_strategy"] == list(TARGETED_EXPLORATION)

        explore = [t for t in result.thought_process if t.phase == Phase.EXPLORE]
        assert len(explore) == 4 * len(TARGETED_EXPLORATION)

    def test_exploration_leaves_pending_result(self, controller):
        """Test that an exploration iteration does not reflect or converge."""
        controller.initialize("task")
        controller.register_action_result("x" * 300)

        result = controller.run(max_iterations=1)

        assert result.decided_by == StopReason.BUDGET_EXHAUSTED
        assert controller.context.last_action_result is not None
        assert "reflection_1" not in controller.context.accumulated_knowledge

    def test_deep_reasoning_branch(self, controller, store, fill_store):
        """Test that low confidence while thinking runs deep reasoning."""
        fill_store(store, 1, 0.5)
        store.transition_to_next_phase()
        controller.initialize("task")

        controller.run(max_iterations=1)

        knowledge = controller.context.accumulated_knowledge
        assert knowledge["deep_reasoning"]["iterations"] == 3
        assert knowledge["deep_reasoning"]["reached_target"] is False
        assert any(t.thought.startswith("Deep reasoning finished") for t in controller.history)

    def test_reflection_on_registered_result(self, observer):
        """Test that a pending result is reflected on and then cleared."""
        observer.initialize("task")
        observer.register_action_result("Error: module 'validate' not found")

        observer.run(max_iterations=1)

        context = observer.context
        reflections = [t for t in observer.history if t.action_params.get("reflection_type") == "action_result"]
        assert len(reflections) == 1
        assert reflections[0].phase == Phase.REFLECT
        assert reflections[0].confidence == 0.4
        assert reflections[0].triggers_action is True
        assert context.accumulated_knowledge["reflection_1"] == "Result indicates a problem or missing data"
        assert context.last_action_result is None

    def test_only_one_pending_result(self, observer):
        """Test that a newer result replaces an unreflected one."""
        observer.initialize("task")
        observer.register_action_result("Error: first")
        observer.register_action_result("x" * 300)

        observer.run(max_iterations=1)

        assert observer.context.accumulated_knowledge["reflection_1"] == "Information-rich result"

    def test_iteration_error_is_recovered(self, store, gate, config, sleeper):
        """Test that a failing branch becomes a low-confidence reflection."""
        controller = ObservingController(store, gate, config=config, classifier=ExplodingClassifier(), sleep=sleeper)
        controller.initialize("task")
        controller.register_action_result("result")

        result = controller.run(max_iterations=2)

        recoveries = [t for t in controller.history if t.action_params.get("type") == "error_recovery"]
        assert len(recoveries) == 2
        assert recoveries[0].confidence == 0.3
        assert recoveries[0].phase == Phase.REFLECT
        assert "classifier down" in recoveries[0].thought
        assert result.decided_by == StopReason.BUDGET_EXHAUSTED

    def test_failed_forced_decision(self, store, config, sleeper):
        """Test that a failing final decision still returns a result."""
        gate = MagicMock()
        gate.final_decision.side_effect = RuntimeError("gate down")
        controller = IterationController(store, gate, config=config, sleep=sleeper)
        controller.initialize("task")

        result = controller.run(max_iterations=0)

        assert result.decided_by == StopReason.ERROR
        assert result.confidence == 0.0
        assert "gate down" in result.final_decision
        assert controller.is_active is False

    def test_stop_during_run(self, store, gate, sleeper):
        """Test that stop() ends the loop before the next iteration."""
        config = ThinkGateConfig(pacing_delay_seconds=0.25)
        controller = IterationController(store, gate, config=config, sleep=lambda _: controller.stop())
        controller.initialize("task")

        result = controller.run(max_iterations=5)

        assert result.iterations == 1
        assert result.decided_by == StopReason.STOPPED

    def test_pacing_between_iterations(self, store, gate, sleeper):
        """Test that pacing sleeps between iterations but not after the last."""
        config = ThinkGateConfig(pacing_delay_seconds=0.25)
        controller = IterationController(store, gate, config=config, sleep=sleeper)
        controller.initialize("task")

        controller.run(max_iterations=3)

        assert sleeper.calls == [0.25, 0.25]

    def test_no_pacing_by_default(self, controller, sleeper):
        """Test that the default configuration never sleeps."""
        controller.initialize("task")
        controller.run(max_iterations=3)

        assert sleeper.calls == []

    def test_thought_ids_are_unique(self, controller):
        """Test that thought ids keep increasing across runs."""
        controller.initialize("task")
        controller.run(max_iterations=2)
        controller.run(max_iterations=1)

        ids = [t.id for t in controller.history]
        assert len(ids) == len(set(ids))


class TestConvergence:
    """Tests for convergence scoring."""

    def test_consistency_defaults(self, controller):
        """Test the neutral consistency with fewer than two thoughts."""
        assert controller.thought_consistency() == 0.5

    def test_consistency_of_equal_thoughts(self, controller, store, fill_store):
        """Test that identical confidences are perfectly consistent."""
        fill_store(store, 1, 0.5)
        controller.initialize("task")

        assert controller.thought_consistency() == pytest.approx(1.0)

    def test_convergence_is_clamped(self, controller, store, fill_store):
        """Test that convergence never exceeds 1."""
        fill_store(store, 5, 1.0)
        controller.initialize("task")
        controller.run(max_iterations=1)

        assert 0.0 <= controller.compute_convergence() <= 1.0
        assert controller.compute_convergence() == 1.0

    def test_convergence_stops_observing_loop(self, observer, store, fill_store):
        """Test that crossing the threshold decides by convergence."""
        fill_store(store, 5, 1.0)
        observer.initialize("task")

        result = observer.run(max_iterations=3)

        assert result.iterations == 1
        assert result.decided_by == StopReason.CONVERGENCE
        assert result.convergence == 1.0

    def test_low_convergence_runs_to_budget(self, observer):
        """Test that an empty store never converges."""
        observer.initialize("task")

        result = observer.run(max_iterations=3)

        assert result.iterations == 3
        assert result.decided_by == StopReason.BUDGET_EXHAUSTED
        assert result.convergence < 0.85

    @pytest.mark.parametrize("max_iterations", [1, 4, 10])
    def test_convergence_bounds_on_empty_store(self, controller, max_iterations):
        """Test the bounds with widely spread thought confidences."""
        controller.initialize("task")
        controller.run(max_iterations=max_iterations)

        assert 0.0 <= controller.convergence_level <= 1.0
