"""
Relational metadata: the binding graph between agents.

In a puzzle space every unordered pair of cells sharing a constraint group is
one binding, tagged with the group kind (a pair sharing a row and a block is
bound twice). In a game space the two players are bound as opponents.

The graph is derived from the space on demand and only feeds analysis:
summaries, breadth-first relation traces and hop-based influence scores.
"""

from __future__ import annotations

import re
from collections import Counter, deque
from typing import Deque, Dict, List, Optional, Set, Tuple

from pydantic import BaseModel, Field

from .schemas import SpaceKind
from .space import AgentSpace, cell_agent_id

DIRECT_INFLUENCE = 0.8
INFLUENCE_DECAY = 0.5

_RC_REF = re.compile(r"^[Rr](\d+)[Cc](\d+)$")
_PAIR_REF = re.compile(r"^\s*(\d+)\s*,\s*(\d+)\s*$")
_CELL_ID = re.compile(r"^cell_(\d+)_(\d+)$")


class AgentConnection(BaseModel):
    agent_id: str
    binding_count: int


class RelationSummary(BaseModel):
    total_bindings: int
    constraint_bindings: Dict[str, int] = Field(..., description="Bindings per group kind")
    avg_bindings_per_agent: float
    most_connected_agent: Optional[AgentConnection] = None
    least_connected_agent: Optional[AgentConnection] = None


class TraceNode(BaseModel):
    agent_id: str
    depth: int
    parent: Optional[str] = None


class TraceResult(BaseModel):
    root: str
    nodes: List[TraceNode]
    total_refs: int = Field(..., description="Agents reached, excluding the root")
    max_depth: int = Field(..., description="Deepest level reached")
    depth_limit: int


class InfluenceResult(BaseModel):
    source: str
    target: str
    score: float = Field(..., ge=0.0, le=1.0)
    hops: int = Field(..., description="Shortest binding distance, -1 when unreachable")
    path: List[str]
    directly_bound: bool


class BindingGraph:
    """Undirected multigraph of agent bindings."""

    def __init__(self) -> None:
        self._edges: Dict[str, Dict[str, List[str]]] = {}
        self.kind_counts: Counter = Counter()

    def add_agent(self, agent_id: str) -> None:
        self._edges.setdefault(agent_id, {})

    def bind(self, a: str, b: str, kind: str) -> None:
        self.add_agent(a)
        self.add_agent(b)
        self._edges[a].setdefault(b, []).append(kind)
        self._edges[b].setdefault(a, []).append(kind)
        self.kind_counts[kind] += 1

    @classmethod
    def from_space(cls, space: AgentSpace) -> "BindingGraph":
        graph = cls()
        for agent_id in space.agent_ids:
            graph.add_agent(agent_id)
        if space.kind == SpaceKind.PUZZLE:
            for group in space.puzzle.constraints:
                ids = [space.cell_agent(pos).id for pos in group.cells]
                for i, a in enumerate(ids):
                    for b in ids[i + 1:]:
                        graph.bind(a, b, group.kind)
        elif len(space.agent_ids) == 2:
            graph.bind(space.agent_ids[0], space.agent_ids[1], "opponent")
        return graph

    def __contains__(self, agent_id: object) -> bool:
        return agent_id in self._edges

    @property
    def agents(self) -> List[str]:
        return list(self._edges)

    @property
    def total_bindings(self) -> int:
        return sum(self.kind_counts.values())

    def neighbors(self, agent_id: str) -> List[str]:
        return list(self._edges.get(agent_id, {}))

    def binding_count(self, agent_id: str) -> int:
        return sum(len(kinds) for kinds in self._edges.get(agent_id, {}).values())

    def shortest_path(self, start: str, goal: str) -> Optional[List[str]]:
        """Breadth-first path from ``start`` to ``goal`` (None when disconnected)."""
        if start == goal:
            return [start]
        visited = {start}
        queue: Deque[Tuple[str, List[str]]] = deque([(start, [start])])
        while queue:
            node, path = queue.popleft()
            for neighbor in self.neighbors(node):
                if neighbor in visited:
                    continue
                visited.add(neighbor)
                new_path = path + [neighbor]
                if neighbor == goal:
                    return new_path
                queue.append((neighbor, new_path))
        return None


def cell_ref_to_agent_id(ref: str) -> Optional[str]:
    """Resolve ``R1C1`` (1-based), ``0,0`` (0-based) or ``cell_0_0`` to a cell agent id."""
    ref = ref.strip()
    match = _RC_REF.match(ref)
    if match:
        row, col = int(match.group(1)), int(match.group(2))
        if row < 1 or col < 1:
            return None
        return cell_agent_id(row - 1, col - 1)
    match = _PAIR_REF.match(ref)
    if match:
        return cell_agent_id(int(match.group(1)), int(match.group(2)))
    if _CELL_ID.match(ref):
        return ref
    return None


def _resolve(graph: BindingGraph, ref: str) -> Optional[str]:
    if ref in graph:
        return ref
    agent_id = cell_ref_to_agent_id(ref)
    return agent_id if agent_id in graph else None


def get_relation_summary(space: AgentSpace) -> Optional[RelationSummary]:
    """Binding statistics for a puzzle space (None for games)."""
    if space.kind != SpaceKind.PUZZLE:
        return None
    graph = BindingGraph.from_space(space)
    counts = [(agent_id, graph.binding_count(agent_id)) for agent_id in graph.agents]
    total = graph.total_bindings
    constraint_bindings = {kind: graph.kind_counts.get(kind, 0) for kind in ("row", "column", "block")}
    for kind, count in graph.kind_counts.items():
        constraint_bindings.setdefault(kind, count)

    most = least = None
    if counts:
        # max/min keep the first agent on ties.
        most_id, most_count = max(counts, key=lambda item: item[1])
        least_id, least_count = min(counts, key=lambda item: item[1])
        most = AgentConnection(agent_id=most_id, binding_count=most_count)
        least = AgentConnection(agent_id=least_id, binding_count=least_count)

    return RelationSummary(
        total_bindings=total,
        constraint_bindings=constraint_bindings,
        avg_bindings_per_agent=round(2 * total / len(counts), 4) if counts else 0.0,
        most_connected_agent=most,
        least_connected_agent=least,
    )


def trace_relations(space: AgentSpace, ref: str, max_depth: int = 3) -> TraceResult:
    """Breadth-first tree of agents reachable from ``ref`` within ``max_depth`` hops."""
    graph = BindingGraph.from_space(space)
    root = _resolve(graph, ref)
    if root is None:
        return TraceResult(root=ref, nodes=[], total_refs=0, max_depth=0, depth_limit=max_depth)

    nodes = [TraceNode(agent_id=root, depth=0)]
    visited: Set[str] = {root}
    queue: Deque[Tuple[str, int]] = deque([(root, 0)])
    deepest = 0
    while queue:
        node, depth = queue.popleft()
        if depth >= max_depth:
            continue
        for neighbor in graph.neighbors(node):
            if neighbor in visited:
                continue
            visited.add(neighbor)
            nodes.append(TraceNode(agent_id=neighbor, depth=depth + 1, parent=node))
            deepest = max(deepest, depth + 1)
            queue.append((neighbor, depth + 1))

    return TraceResult(
        root=root,
        nodes=nodes,
        total_refs=len(nodes) - 1,
        max_depth=deepest,
        depth_limit=max_depth,
    )


def get_influence(space: AgentSpace, source: str, target: str) -> InfluenceResult:
    """Influence decays with binding distance: 1.0 self, 0.8 direct, halved per extra hop."""
    graph = BindingGraph.from_space(space)
    source_id = _resolve(graph, source)
    target_id = _resolve(graph, target)
    path = None
    if source_id is not None and target_id is not None:
        path = graph.shortest_path(source_id, target_id)

    if path is None:
        return InfluenceResult(
            source=source_id or source,
            target=target_id or target,
            score=0.0,
            hops=-1,
            path=[],
            directly_bound=False,
        )

    hops = len(path) - 1
    score = 1.0 if hops == 0 else DIRECT_INFLUENCE * INFLUENCE_DECAY ** (hops - 1)
    return InfluenceResult(
        source=source_id,
        target=target_id,
        score=round(score, 6),
        hops=hops,
        path=path,
        directly_bound=hops == 1,
    )
