"""Turn/priority mediator.

Spaces construct one mediator and set its default strategy and per-agent
priorities; the round engines themselves visit agents in registry order.
"""

from typing import Dict


class Mediator:
    """Holds the space's mediation strategy and per-agent priorities."""

    DEFAULT_PRIORITY = 1.0

    def __init__(self, default_strategy: str = "cooperative") -> None:
        self.default_strategy = default_strategy
        self._priorities: Dict[str, float] = {}

    def set_agent_priority(self, agent_id: str, priority: float) -> None:
        if priority < 0:
            raise ValueError(f"Priority for '{agent_id}' must be non-negative")
        self._priorities[agent_id] = priority

    def get_agent_priority(self, agent_id: str) -> float:
        return self._priorities.get(agent_id, self.DEFAULT_PRIORITY)

    @property
    def priorities(self) -> Dict[str, float]:
        return dict(self._priorities)
