"""Tests for the agent arena and per-agent memory."""

import pytest

from agentspace.config import Config
from agentspace.registry import AgentNotFoundError, AgentRegistry
from agentspace.schemas import Behavior, PlayerValue


def _player(player: int = 1) -> PlayerValue:
    return PlayerValue(player=player, strategy="minimax", behavior=Behavior.SEARCH)


def test_spawn_assigns_stable_indices():
    registry = AgentRegistry()
    first = registry.spawn(_player(1), agent_id="player_1")
    second = registry.spawn(_player(2), agent_id="player_2")

    assert (first.index, second.index) == (0, 1)
    assert registry.at(1) is second
    assert registry.get("player_1") is first
    assert len(registry) == 2
    assert "player_2" in registry


def test_duplicate_agent_id_is_rejected():
    registry = AgentRegistry()
    registry.spawn(_player(), agent_id="player_1")
    with pytest.raises(ValueError):
        registry.spawn(_player(), agent_id="player_1")


def test_require_missing_agent_raises_with_remediation():
    registry = AgentRegistry()
    registry.spawn(_player(), agent_id="player_1")

    with pytest.raises(AgentNotFoundError) as excinfo:
        registry.require("player_2")

    assert excinfo.value.agent_id == "player_2"
    assert "player_1" in str(excinfo.value)
    assert "Remediation tips" in str(excinfo.value)
    assert registry.get("player_2") is None


def test_memory_is_trimmed_to_newest_entries(monkeypatch):
    monkeypatch.setattr(Config, "MEMORY_LIMIT", 10)
    agent = AgentRegistry().spawn(_player(), agent_id="player_1")

    for step in range(11):
        agent.add_memory(step, "observation", f"step {step}")

    assert len(agent.memory) == 8
    assert agent.memory[-1].summary == "step 10"
    assert agent.memory[0].summary == "step 3"


def test_deactivate_and_deep_meta():
    registry = AgentRegistry()
    agent = registry.spawn(_player(), agent_id="player_1")
    agent.set_deep_meta({"will": {"tendency": "expand"}})
    registry.deactivate("player_1")

    assert not agent.is_active
    assert registry.active() == []
    assert agent.deep_meta["will"]["tendency"] == "expand"
