"""Reason graph construction (Proof of Reason).

A reason graph links premises (input fields) through rules to
conclusions (decision fields). Engines declare the full graph for a
decision through :class:`GraphBuilder`; ``build()`` then keeps only
what actually participates:
- rule vertices with at least one edge into a conclusion
- premise vertices that still feed something
- every conclusion vertex
"""

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from triadic.core.crypto import canonical_json, sha256_hex


class VertexType(str, Enum):
    """Reason graph vertex types."""
    PREMISE = "premise"
    RULE = "rule"
    CONCLUSION = "conclusion"


class Relation(str, Enum):
    """Reason graph edge relations."""
    INPUT = "input"  # premise or conclusion feeds a rule
    ENTAILS = "entails"  # rule mechanically sets a conclusion
    DETERMINES = "determines"  # rule or conclusion fixes a conclusion value
    INFLUENCES = "influences"  # one of several contributing factors
    PRODUCES = "produces"  # conclusion derived from another conclusion


@dataclass(frozen=True)
class Vertex:
    id: str
    type: VertexType
    label: str

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "type": self.type.value, "label": self.label}


@dataclass(frozen=True)
class Edge:
    source: str
    target: str
    relation: Relation

    def to_dict(self) -> dict[str, str]:
        return {"from": self.source, "to": self.target, "relation": self.relation.value}


@dataclass(frozen=True)
class ReasonGraph:
    """Immutable directed acyclic reason graph."""
    vertices: tuple[Vertex, ...]
    edges: tuple[Edge, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "vertices": [v.to_dict() for v in self.vertices],
            "edges": [e.to_dict() for e in self.edges],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ReasonGraph":
        """Rebuild a graph from its JSON form."""
        return cls(
            vertices=tuple(
                Vertex(id=v["id"], type=VertexType(v["type"]), label=v["label"])
                for v in data.get("vertices", [])
            ),
            edges=tuple(
                Edge(source=e["from"], target=e["to"], relation=Relation(e["relation"]))
                for e in data.get("edges", [])
            ),
        )

    def compute_hash(self) -> str:
        """SHA-256 over the canonical JSON form."""
        return sha256_hex(canonical_json(self.to_dict()))

    def vertex(self, vertex_id: str) -> Vertex:
        for vertex in self.vertices:
            if vertex.id == vertex_id:
                return vertex
        raise KeyError(vertex_id)

    def has_vertex(self, vertex_id: str) -> bool:
        return any(v.id == vertex_id for v in self.vertices)

    def vertices_of(self, vertex_type: VertexType) -> list[Vertex]:
        return [v for v in self.vertices if v.type == vertex_type]

    def successors(self, vertex_id: str) -> list[str]:
        return [e.target for e in self.edges if e.source == vertex_id]

    def _topological_order(self) -> list[str] | None:
        indegree = {v.id: 0 for v in self.vertices}
        for edge in self.edges:
            indegree[edge.target] = indegree.get(edge.target, 0) + 1
            indegree.setdefault(edge.source, 0)

        ready = [vid for vid, deg in indegree.items() if deg == 0]
        order = []
        while ready:
            current = ready.pop(0)
            order.append(current)
            for target in self.successors(current):
                indegree[target] -= 1
                if indegree[target] == 0:
                    ready.append(target)

        if len(order) != len(indegree):
            return None
        return order

    def is_acyclic(self) -> bool:
        return self._topological_order() is not None

    def depth(self) -> int:
        """Length in edges of the longest path.

        Raises:
            ValueError: If the graph contains a cycle
        """
        order = self._topological_order()
        if order is None:
            raise ValueError("Reason graph contains a cycle")

        longest = {vid: 0 for vid in order}
        for vid in order:
            for target in self.successors(vid):
                longest[target] = max(longest[target], longest[vid] + 1)
        return max(longest.values(), default=0)


class GraphBuilder:
    """Collects declared vertices and edges, then prunes on build."""

    def __init__(self) -> None:
        self._vertices: dict[str, Vertex] = {}
        self._edges: list[Edge] = []

    def _add(self, vertex_id: str, vertex_type: VertexType, label: str) -> "GraphBuilder":
        if vertex_id in self._vertices:
            raise ValueError(f"Vertex {vertex_id} declared twice")
        self._vertices[vertex_id] = Vertex(vertex_id, vertex_type, label)
        return self

    def premise(self, vertex_id: str, label: str) -> "GraphBuilder":
        return self._add(vertex_id, VertexType.PREMISE, label)

    def rule(self, vertex_id: str, label: str) -> "GraphBuilder":
        return self._add(vertex_id, VertexType.RULE, label)

    def conclusion(self, vertex_id: str, label: str) -> "GraphBuilder":
        return self._add(vertex_id, VertexType.CONCLUSION, label)

    def edge(self, source: str, target: str, relation: Relation) -> "GraphBuilder":
        """Declare an edge between two already declared vertices."""
        for vertex_id in (source, target):
            if vertex_id not in self._vertices:
                raise ValueError(f"Edge {source}->{target} references undeclared vertex {vertex_id}")
        if self._vertices[target].type == VertexType.PREMISE:
            raise ValueError(f"Edge {source}->{target} points into a premise")
        self._edges.append(Edge(source, target, relation))
        return self

    def build(self) -> ReasonGraph:
        """Prune unused vertices and freeze the graph.

        Raises:
            ValueError: If the declared edges form a cycle
        """
        vtype = {vid: v.type for vid, v in self._vertices.items()}

        live_rules = {
            e.source
            for e in self._edges
            if vtype[e.source] == VertexType.RULE and vtype[e.target] == VertexType.CONCLUSION
        }

        def keeps(vertex_id: str) -> bool:
            return vtype[vertex_id] != VertexType.RULE or vertex_id in live_rules

        edges = [e for e in self._edges if keeps(e.source) and keeps(e.target)]
        feeding = {e.source for e in edges}

        vertices = [
            v
            for v in self._vertices.values()
            if keeps(v.id) and (v.type != VertexType.PREMISE or v.id in feeding)
        ]

        graph = ReasonGraph(vertices=tuple(vertices), edges=tuple(edges))
        if not graph.is_acyclic():
            raise ValueError("Reason graph contains a cycle")
        return graph
