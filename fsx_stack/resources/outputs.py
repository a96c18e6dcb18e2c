"""
Stack outputs: identifiers surfaced once the graph is materialized.
"""

from dataclasses import dataclass

from fsx_stack.resources.base import Ref


@dataclass(frozen=True)
class StackOutput:
    """Named, read-only projection of a node attribute."""

    name: str
    value: Ref
    description: str = ""

    def to_dict(self) -> dict[str, str]:
        return {
            "name": self.name,
            "value": str(self.value),
            "description": self.description,
        }
