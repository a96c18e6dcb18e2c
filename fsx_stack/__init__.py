"""
fsx-s3-stack: an FSx for Lustre filesystem backed by S3, as code.

The stack is built as a plain resource graph (network, bucket, Lustre
filesystem, optional data repository association, compute instance and
outputs) and handed to an engine that materializes it.

Example:
    from fsx_stack import App, FsxS3Stack, StackConfig, InMemoryEngine

    app = App()
    stack = FsxS3Stack(app, "FsxS3", StackConfig(ubuntu=True, variant="hpc"))

    # Inspect the graph
    app.synth()

    # Dry run with generated identifiers
    app.deploy(InMemoryEngine())

    # Or, inside a Pulumi program
    from fsx_stack.engines.pulumi_engine import PulumiEngine
    app.deploy(PulumiEngine())
"""

from fsx_stack.logging import setup_logging
from fsx_stack.config import ConfigError, StackConfig, Variant
from fsx_stack.core import App, FsxS3Stack, GraphError, ResourceGraph, build_graph
from fsx_stack.engines import Engine, EngineError, InMemoryEngine, MaterializedStack

__version__ = "0.1.0"
__all__ = [
    "App",
    "FsxS3Stack",
    "ResourceGraph",
    "build_graph",
    "StackConfig",
    "Variant",
    "Engine",
    "InMemoryEngine",
    "MaterializedStack",
    "setup_logging",
    # Errors
    "ConfigError",
    "GraphError",
    "EngineError",
]
