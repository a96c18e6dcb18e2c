"""
Base types shared by every node of the resource graph.

Nodes are plain value objects: they describe WHAT should exist and how it
references other nodes, never how an engine creates it.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable


class ResourceKind(str, Enum):
    """Closed set of node kinds a stack graph can hold."""

    NETWORK = "network"
    BUCKET = "bucket"
    FILESYSTEM = "filesystem"
    DATA_REPOSITORY_ASSOCIATION = "data_repository_association"
    INSTANCE = "instance"


class RemovalPolicy(str, Enum):
    """What happens to a resource when the stack is torn down."""

    DESTROY = "destroy"
    RETAIN = "retain"


@dataclass(frozen=True)
class Ref:
    """
    Reference to an attribute of another node.

    The value is only known once an engine materializes the graph, so
    until then it renders as a ``${LogicalId.attribute}`` token.

    Example:
        dns = Ref("Lustre", "dns_name")
        str(dns)  # "${Lustre.dns_name}"
    """

    logical_id: str
    attribute: str = "id"

    def __str__(self) -> str:
        return f"${{{self.logical_id}.{self.attribute}}}"


Resolver = Callable[[Ref], str]
"""Turns a reference into its concrete value."""


def render(value: "Ref | str", resolve: Resolver = str) -> str:
    """Render a literal or a reference with the given resolver."""
    if isinstance(value, Ref):
        return resolve(value)
    return value


@dataclass
class Resource:
    """
    Abstract base for graph nodes.

    Subclasses set ``kind`` and implement ``properties()``.
    """

    logical_id: str
    """Identifier unique within a stack"""

    kind = None  # type: ResourceKind

    def ref(self, attribute: str = "id") -> Ref:
        """Reference one of this node's materialized attributes."""
        return Ref(self.logical_id, attribute)

    def properties(self) -> dict[str, Any]:
        raise NotImplementedError

    def to_dict(self) -> dict[str, Any]:
        return {
            "logical_id": self.logical_id,
            "kind": self.kind.value,
            "properties": self.properties(),
        }
