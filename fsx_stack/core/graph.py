"""
Resource graph: nodes, typed edges and outputs of one stack.
"""

from collections import defaultdict, deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from loguru import logger

from fsx_stack.resources.base import Ref, Resource, ResourceKind
from fsx_stack.resources.outputs import StackOutput


class GraphError(Exception):
    """Raised when a graph is built inconsistently."""
    pass


class EdgeKind(str, Enum):
    """
    Typed relationships between nodes.

    All kinds except ALLOWS_PORT mean "source needs target to exist first".
    ALLOWS_PORT is a security rule: the source lets the target reach its
    default port, and imposes no creation order.
    """

    PLACED_IN = "placed_in"
    BACKED_BY = "backed_by"
    ASSOCIATES = "associates"
    MOUNTS = "mounts"
    ALLOWS_PORT = "allows_port"

    @property
    def orders_creation(self) -> bool:
        return self != EdgeKind.ALLOWS_PORT


@dataclass(frozen=True)
class Edge:
    source: str
    target: str
    kind: EdgeKind
    attributes: tuple[tuple[str, Any], ...] = ()

    def get(self, name: str, default: Any = None) -> Any:
        return dict(self.attributes).get(name, default)

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "target": self.target,
            "kind": self.kind.value,
            **dict(self.attributes),
        }


@dataclass
class ResourceGraph:
    """
    Declarative resource graph for one stack.

    Provides:
    1. Node registration keyed by logical id
    2. Typed edges between nodes
    3. Outputs projected from node attributes
    4. Creation order for engines that apply nodes one by one

    Example:
        graph = ResourceGraph("FsxS3Stack")
        graph.add(vpc)
        graph.add(fs)
        graph.connect(fs, vpc, EdgeKind.PLACED_IN)
        graph.dependency_order()  # ["VPC", "Lustre"]
    """

    stack_id: str
    nodes: dict[str, Resource] = field(default_factory=dict)
    edges: list[Edge] = field(default_factory=list)
    outputs: dict[str, StackOutput] = field(default_factory=dict)

    def add(self, node: Resource) -> Resource:
        """Add a node; returns it so construction can be chained."""
        if node.logical_id in self.nodes:
            raise GraphError(
                f"Duplicate logical id '{node.logical_id}' in stack '{self.stack_id}'"
            )
        self.nodes[node.logical_id] = node
        logger.debug(f"{self.stack_id}: added {node.kind.value} '{node.logical_id}'")
        return node

    def connect(
        self,
        source: Resource | str,
        target: Resource | str,
        kind: EdgeKind,
        **attributes: Any,
    ) -> Edge:
        """
        Add a directed edge.

        Args:
            source: Node (or logical id) the edge starts at
            target: Node (or logical id) the edge points to
            kind: Relationship type
            **attributes: Extra edge data, e.g. ``port=988``

        Raises:
            GraphError: If either end is not in the graph
        """
        source_id = _logical_id(source)
        target_id = _logical_id(target)
        for node_id in (source_id, target_id):
            if node_id not in self.nodes:
                raise GraphError(f"Cannot connect unknown node '{node_id}'")

        edge = Edge(source_id, target_id, kind, tuple(sorted(attributes.items())))
        self.edges.append(edge)
        return edge

    def export(self, name: str, value: Ref, description: str = "") -> StackOutput:
        """Register an output; the referenced node must already exist."""
        if value.logical_id not in self.nodes:
            raise GraphError(f"Output '{name}' references unknown node '{value.logical_id}'")
        if name in self.outputs:
            raise GraphError(f"Duplicate output '{name}'")
        output = StackOutput(name=name, value=value, description=description)
        self.outputs[name] = output
        return output

    def get(self, logical_id: str) -> Resource | None:
        return self.nodes.get(logical_id)

    def nodes_of_kind(self, kind: ResourceKind) -> list[Resource]:
        return [node for node in self.nodes.values() if node.kind == kind]

    def edges_of_kind(self, kind: EdgeKind) -> list[Edge]:
        return [edge for edge in self.edges if edge.kind == kind]

    def dependencies(self, logical_id: str) -> list[str]:
        """Nodes that must exist before ``logical_id`` can be created."""
        return [
            edge.target
            for edge in self.edges
            if edge.source == logical_id and edge.kind.orders_creation
        ]

    def dependency_order(self) -> list[str]:
        """
        Return a creation order for the nodes.

        Ties keep insertion order, so the result is deterministic.

        Raises:
            GraphError: If ordering edges form a cycle
        """
        dependents: dict[str, list[str]] = defaultdict(list)
        in_degree = {node_id: 0 for node_id in self.nodes}
        for edge in self.edges:
            if not edge.kind.orders_creation:
                continue
            dependents[edge.target].append(edge.source)
            in_degree[edge.source] += 1

        queue = deque(node_id for node_id, degree in in_degree.items() if degree == 0)
        result = []

        while queue:
            node_id = queue.popleft()
            result.append(node_id)
            for dependent in dependents[node_id]:
                in_degree[dependent] -= 1
                if in_degree[dependent] == 0:
                    queue.append(dependent)

        if len(result) != len(self.nodes):
            raise GraphError(f"Stack '{self.stack_id}' has a dependency cycle")

        return result

    def to_dict(self) -> dict[str, Any]:
        """Convert the graph to plain data for serialization and comparison."""
        return {
            "stack_id": self.stack_id,
            "nodes": [node.to_dict() for node in self.nodes.values()],
            "edges": [edge.to_dict() for edge in self.edges],
            "outputs": [output.to_dict() for output in self.outputs.values()],
        }

    def to_mermaid(self) -> str:
        lines = ["graph TD"]
        for node in self.nodes.values():
            lines.append(f"  {node.logical_id}[\"{node.logical_id} ({node.kind.value})\"]")
        for edge in self.edges:
            lines.append(f"  {edge.source} -->|{edge.kind.value}| {edge.target}")
        return "\n".join(lines)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ResourceGraph):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        return (
            f"ResourceGraph(stack={self.stack_id}, nodes={len(self.nodes)}, "
            f"edges={len(self.edges)})"
        )


def _logical_id(node: Resource | str) -> str:
    return node if isinstance(node, str) else node.logical_id
