"""
Resource nodes of a stack graph.

Each class describes one cloud resource as data. Engines (Pulumi, the
in-memory engine) turn them into real or simulated infrastructure.
"""

from fsx_stack.resources.base import (
    Ref,
    RemovalPolicy,
    Resource,
    ResourceKind,
    render,
)
from fsx_stack.resources.compute import (
    ImageLookup,
    InitFile,
    Instance,
    InstanceInit,
    InstanceType,
    MachineImage,
    ManagedPolicy,
    OsFamily,
    UBUNTU_FOCAL_SSM_PARAMETER,
)
from fsx_stack.resources.filesystem import (
    ALL_EVENTS,
    DataRepositoryAssociation,
    EventType,
    LustreAutoImportPolicy,
    LustreDataCompressionType,
    LustreDeploymentType,
    LustreFileSystem,
)
from fsx_stack.resources.network import Network, Subnet, SubnetType
from fsx_stack.resources.outputs import StackOutput
from fsx_stack.resources.storage import (
    Bucket,
    LifecycleRule,
    ObjectOwnership,
    S3Url,
    STANDARD_LIFECYCLE_RULE,
    StorageClass,
    Transition,
)

__all__ = [
    "Ref",
    "RemovalPolicy",
    "Resource",
    "ResourceKind",
    "render",
    # Network
    "Network",
    "Subnet",
    "SubnetType",
    # Storage
    "Bucket",
    "LifecycleRule",
    "ObjectOwnership",
    "S3Url",
    "STANDARD_LIFECYCLE_RULE",
    "StorageClass",
    "Transition",
    # Filesystem
    "ALL_EVENTS",
    "DataRepositoryAssociation",
    "EventType",
    "LustreAutoImportPolicy",
    "LustreDataCompressionType",
    "LustreDeploymentType",
    "LustreFileSystem",
    # Compute
    "ImageLookup",
    "InitFile",
    "Instance",
    "InstanceInit",
    "InstanceType",
    "MachineImage",
    "ManagedPolicy",
    "OsFamily",
    "UBUNTU_FOCAL_SSM_PARAMETER",
    # Outputs
    "StackOutput",
]
