"""Tests for shared schema helpers."""

from agentspace.schemas import Action, ActionType, Behavior, RoundMetrics


def _actions(kinds):
    return [Action(agent_id=f"a{i}", action_type=kind) for i, kind in enumerate(kinds)]


def test_round_metrics_ratio_counts_none_actions():
    actions = _actions([ActionType.NONE, ActionType.ELIMINATE, ActionType.NONE, ActionType.CONFIRM])
    metrics = RoundMetrics.from_actions(actions, active_agents=4)

    assert metrics.total_actions == 2
    assert metrics.none_count == 2
    assert metrics.convergence_ratio == 0.5


def test_round_metrics_all_none_is_fully_converged():
    metrics = RoundMetrics.from_actions(_actions([ActionType.NONE] * 3), active_agents=3)
    assert metrics.convergence_ratio == 1.0
    assert metrics.total_actions == 0


def test_round_metrics_without_agents_defaults_to_one():
    metrics = RoundMetrics.from_actions([], active_agents=0)
    assert metrics.convergence_ratio == 1.0


def test_behavior_from_label_maps_known_and_unknown_labels():
    assert Behavior.from_label("reactive") == Behavior.REACTIVE
    assert Behavior.from_label("Contemplative") == Behavior.CONTEMPLATIVE
    assert Behavior.from_label("cooperative") == Behavior.COOPERATIVE
    assert Behavior.from_label("minimax") == Behavior.SEARCH
    assert Behavior.from_label("random") == Behavior.SEARCH
    assert Behavior.from_label(None) == Behavior.SEARCH
