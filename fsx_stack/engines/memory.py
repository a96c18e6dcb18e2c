"""
In-memory engine: materializes a graph without touching a cloud.

Identifiers are derived from the stack id and logical id, so submitting
the same graph twice yields the same values. Used for dry runs and tests.
"""

import hashlib

from loguru import logger

from fsx_stack.core.graph import ResourceGraph
from fsx_stack.engines.base import Engine, EngineError, MaterializedStack
from fsx_stack.resources.base import Ref, Resource, ResourceKind
from fsx_stack.resources.compute import Instance

_PREFIXES = {
    ResourceKind.NETWORK: "vpc",
    ResourceKind.BUCKET: "bucket",
    ResourceKind.FILESYSTEM: "fs",
    ResourceKind.DATA_REPOSITORY_ASSOCIATION: "dra",
    ResourceKind.INSTANCE: "i",
}


class InMemoryEngine(Engine):
    """
    Engine that fabricates deterministic identifiers.

    Example:
        engine = InMemoryEngine(region="eu-west-1")
        stack = engine.submit(build_graph())
        stack.outputs["InstanceID"]     # "i-3f2a..."
        stack.user_data["Instance"]     # boot script with real-looking values
    """

    def __init__(self, region: str = "us-east-1"):
        self.region = region
        self.submitted: list[str] = []

    def submit(self, graph: ResourceGraph) -> MaterializedStack:
        order = graph.dependency_order()
        attributes: dict[Ref, str] = {}
        identifiers: dict[str, str] = {}

        for logical_id in order:
            node = graph.nodes[logical_id]
            values = self._attributes(graph.stack_id, node)
            identifiers[logical_id] = values["id"]
            for name, value in values.items():
                attributes[Ref(logical_id, name)] = value

        def resolve(ref: Ref) -> str:
            try:
                return attributes[ref]
            except KeyError:
                raise EngineError(f"Unresolvable reference {ref}") from None

        outputs = {name: resolve(output.value) for name, output in graph.outputs.items()}

        user_data = {}
        for node in graph.nodes_of_kind(ResourceKind.INSTANCE):
            if isinstance(node, Instance) and node.user_data is not None:
                user_data[node.logical_id] = node.user_data.render(resolve)

        self.submitted.append(graph.stack_id)
        logger.info(f"Materialized '{graph.stack_id}' in memory: {len(order)} resources")

        return MaterializedStack(
            stack_id=graph.stack_id,
            identifiers=identifiers,
            outputs=outputs,
            user_data=user_data,
        )

    def _attributes(self, stack_id: str, node: Resource) -> dict[str, str]:
        digest = hashlib.sha1(f"{stack_id}/{node.logical_id}".encode()).hexdigest()
        physical_id = f"{_PREFIXES[node.kind]}-{digest[:17]}"
        values = {"id": physical_id}

        if node.kind == ResourceKind.BUCKET:
            values["bucket"] = f"{stack_id.lower()}-{node.logical_id.lower()}-{digest[:12]}"
        elif node.kind == ResourceKind.FILESYSTEM:
            values["dns_name"] = f"{physical_id}.fsx.{self.region}.amazonaws.com"
            values["mount_name"] = digest[:8]
        elif node.kind == ResourceKind.INSTANCE:
            values["instance_id"] = physical_id

        return values
