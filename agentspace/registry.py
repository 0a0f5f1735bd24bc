"""
Agent substrate: identity, typed payload, memory log, lifecycle.

Agents live in a single arena owned by ``AgentRegistry``. Each agent gets a
stable integer ``index`` into that arena alongside its string id, so callers that
need to snapshot or address many agents (the puzzle engine's backtracking
checkpoint, the grid position maps) work with indices instead of holding
aliased references.
"""

from __future__ import annotations

from typing import Any, Dict, Iterator, List, Optional, Union

from .config import Config
from .puzzle import PuzzleCell
from .schemas import AgentMemoryEntry, PlayerValue

AgentValue = Union[PuzzleCell, PlayerValue]

AGENT_ACTIVE = "active"
AGENT_INACTIVE = "inactive"


class AgentNotFoundError(Exception):
    """Raised when an agent required by the current round is not registered.

    This is a construction invariant violation (the space was built without the
    agent, or the agent id was mistyped) and aborts the run.
    """

    def __init__(self, *, agent_id: str, known: Optional[List[str]] = None) -> None:
        self.agent_id = agent_id
        self.known = known or []
        message_lines = [f"Agent '{agent_id}' is not registered."]
        if self.known:
            preview = ", ".join(self.known[:6])
            suffix = ", ..." if len(self.known) > 6 else ""
            message_lines.append(f"Registered agents: {preview}{suffix}")
        message_lines.extend(
            [
                "\nRemediation tips:",
                "  - Build spaces with create_puzzle_agent_space / create_game_agent_space",
                "  - Player agents are named 'player_1' and 'player_2'",
                "  - Cell agents are named 'cell_<row>_<col>' (0-based)",
            ]
        )
        super().__init__("\n".join(message_lines))


class Agent:
    """One agent: a typed payload plus an append-only memory log."""

    def __init__(self, agent_id: str, index: int, value: AgentValue, behavior: str) -> None:
        self.id = agent_id
        self.index = index
        self.value = value
        self.behavior = behavior
        self.state = AGENT_ACTIVE
        self.memory: List[AgentMemoryEntry] = []
        self.deep_meta: Dict[str, Any] = {}

    @property
    def is_active(self) -> bool:
        return self.state == AGENT_ACTIVE

    def add_memory(
        self,
        step: int,
        memory_type: str,
        summary: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> AgentMemoryEntry:
        """Append a memory, trimming the oldest entries past ``Config.MEMORY_LIMIT``.

        Trimming keeps the newest 80% of the limit so it does not run on every
        append once the log is full.
        """
        entry = AgentMemoryEntry(
            step=step, memory_type=memory_type, summary=summary, data=data or {}
        )
        self.memory.append(entry)
        limit = Config.MEMORY_LIMIT
        if len(self.memory) > limit:
            keep = max(1, int(limit * 0.8))
            self.memory = self.memory[-keep:]
        return entry

    def set_deep_meta(self, updates: Dict[str, Any]) -> None:
        """Merge analysis metadata (volitional tendency etc.) into the agent."""
        self.deep_meta.update(updates)

    def __repr__(self) -> str:  # pragma: no cover - debugging aid
        return f"Agent(id={self.id!r}, index={self.index}, state={self.state!r})"


class AgentRegistry:
    """Arena of agents with an id -> index lookup."""

    def __init__(self) -> None:
        self._arena: List[Agent] = []
        self._index_by_id: Dict[str, int] = {}

    def spawn(self, value: AgentValue, *, agent_id: str, behavior: str = "") -> Agent:
        if agent_id in self._index_by_id:
            raise ValueError(f"Agent id '{agent_id}' is already registered")
        agent = Agent(agent_id, len(self._arena), value, behavior)
        self._arena.append(agent)
        self._index_by_id[agent_id] = agent.index
        return agent

    def get(self, agent_id: str) -> Optional[Agent]:
        index = self._index_by_id.get(agent_id)
        return None if index is None else self._arena[index]

    def require(self, agent_id: str) -> Agent:
        """Return the agent or raise ``AgentNotFoundError``."""
        agent = self.get(agent_id)
        if agent is None:
            raise AgentNotFoundError(agent_id=agent_id, known=list(self._index_by_id))
        return agent

    def at(self, index: int) -> Agent:
        return self._arena[index]

    def deactivate(self, agent_id: str) -> None:
        self.require(agent_id).state = AGENT_INACTIVE

    def active(self) -> List[Agent]:
        return [agent for agent in self._arena if agent.is_active]

    def __iter__(self) -> Iterator[Agent]:
        return iter(self._arena)

    def __len__(self) -> int:
        return len(self._arena)

    def __contains__(self, agent_id: object) -> bool:
        return agent_id in self._index_by_id
