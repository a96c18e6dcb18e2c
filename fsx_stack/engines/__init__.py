"""
Engines that materialize resource graphs.

The Pulumi engine lives in ``fsx_stack.engines.pulumi_engine`` and is
imported explicitly, since loading pulumi_aws is slow.
"""

from fsx_stack.engines.base import Engine, EngineError, MaterializedStack
from fsx_stack.engines.memory import InMemoryEngine

__all__ = [
    "Engine",
    "EngineError",
    "MaterializedStack",
    "InMemoryEngine",
]
