"""
App: the scope stacks register with.

The app only collects graphs. Turning them into infrastructure is the
job of an engine passed to ``deploy``.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from loguru import logger

from fsx_stack.core.graph import GraphError

if TYPE_CHECKING:
    from fsx_stack.core.stack import FsxS3Stack
    from fsx_stack.engines.base import Engine, MaterializedStack


@dataclass
class App:
    """
    Container for every stack of a deployment.

    Example:
        app = App()
        FsxS3Stack(app, "FsxS3", StackConfig())

        app.synth()                     # plain-data graphs
        app.deploy(InMemoryEngine())    # materialized stacks
    """

    _stacks: dict[str, "FsxS3Stack"] = field(default_factory=dict)
    """Stacks in registration order"""

    def register(self, stack: "FsxS3Stack") -> None:
        if stack.stack_id in self._stacks:
            raise GraphError(f"Stack '{stack.stack_id}' is already registered")
        self._stacks[stack.stack_id] = stack
        logger.debug(f"Registered stack '{stack.stack_id}'")

    def get_stack(self, stack_id: str) -> "FsxS3Stack | None":
        return self._stacks.get(stack_id)

    def list_stacks(self) -> list[str]:
        return list(self._stacks.keys())

    def synth(self) -> dict[str, dict[str, Any]]:
        """Return every stack's graph as plain data, keyed by stack id."""
        return {stack_id: stack.graph.to_dict() for stack_id, stack in self._stacks.items()}

    def deploy(self, engine: "Engine") -> dict[str, "MaterializedStack"]:
        """
        Hand each stack's graph to an engine.

        Args:
            engine: Engine that materializes graphs

        Returns:
            Materialized stacks keyed by stack id
        """
        results = {}
        for stack_id, stack in self._stacks.items():
            logger.info(f"Submitting stack '{stack_id}' to {type(engine).__name__}")
            results[stack_id] = engine.submit(stack.graph)
        return results
