"""
Engine: the provisioning collaborator a resource graph is handed to.

The graph never talks to a cloud API itself. An engine takes the
complete graph, materializes it (for real, or simulated), and returns
the identifiers it generated.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from fsx_stack.core.graph import ResourceGraph


class EngineError(Exception):
    """Raised when an engine cannot materialize a graph."""
    pass


@dataclass
class MaterializedStack:
    """
    Result of submitting a graph to an engine.

    Values are plain strings for the in-memory engine and
    ``pulumi.Output`` objects for the Pulumi engine.
    """

    stack_id: str
    """Stack the values belong to"""

    identifiers: dict[str, Any] = field(default_factory=dict)
    """Physical identifier per logical id"""

    outputs: dict[str, Any] = field(default_factory=dict)
    """Resolved stack outputs"""

    user_data: dict[str, Any] = field(default_factory=dict)
    """Rendered boot script per instance logical id"""

    def get_output(self, name: str) -> Any | None:
        return self.outputs.get(name)

    def get_identifier(self, logical_id: str) -> Any | None:
        return self.identifiers.get(logical_id)


class Engine(ABC):
    """
    Abstract engine interface.

    Implementations create the graph's nodes in ``graph.dependency_order()``
    and resolve ``Ref`` values against what they created.
    """

    @abstractmethod
    def submit(self, graph: ResourceGraph) -> MaterializedStack:
        """
        Materialize a graph.

        Args:
            graph: Fully built resource graph

        Returns:
            MaterializedStack with generated identifiers and outputs

        Raises:
            EngineError: If the graph cannot be materialized
        """
        pass

    def get_engine_name(self) -> str:
        return type(self).__name__
