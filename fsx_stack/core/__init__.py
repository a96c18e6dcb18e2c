"""
Core stack functionality.

- ResourceGraph: nodes, typed edges and outputs of one stack
- Variants: compiled-in constants of each stack flavour
- build_graph / FsxS3Stack: the stack definition itself
- App: the scope stacks register with
"""

from fsx_stack.core.app import App
from fsx_stack.core.graph import Edge, EdgeKind, GraphError, ResourceGraph
from fsx_stack.core.stack import DEFAULT_STACK_ID, FsxS3Stack, build_graph
from fsx_stack.core.variants import PROFILES, RepositoryLink, VariantProfile, profile_for

__all__ = [
    "App",
    "Edge",
    "EdgeKind",
    "GraphError",
    "ResourceGraph",
    "DEFAULT_STACK_ID",
    "FsxS3Stack",
    "build_graph",
    "PROFILES",
    "RepositoryLink",
    "VariantProfile",
    "profile_for",
]
