"""
Lustre parallel filesystem and its link to the backing bucket.

Two ways of linking exist, depending on the deployment type:

- SCRATCH_1, SCRATCH_2 and PERSISTENT_1 take an import/export path on
  the filesystem itself.
- PERSISTENT_2 rejects those paths; a separate DataRepositoryAssociation
  declares which change events flow in each direction.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from fsx_stack.resources.base import RemovalPolicy, Resource, ResourceKind
from fsx_stack.resources.network import Subnet
from fsx_stack.resources.storage import S3Url


class LustreDeploymentType(str, Enum):
    SCRATCH_1 = "SCRATCH_1"
    SCRATCH_2 = "SCRATCH_2"
    PERSISTENT_1 = "PERSISTENT_1"
    PERSISTENT_2 = "PERSISTENT_2"

    @property
    def is_persistent(self) -> bool:
        return self in (LustreDeploymentType.PERSISTENT_1, LustreDeploymentType.PERSISTENT_2)

    @property
    def supports_repository_paths(self) -> bool:
        return self != LustreDeploymentType.PERSISTENT_2


class LustreDataCompressionType(str, Enum):
    NONE = "NONE"
    LZ4 = "LZ4"


class LustreAutoImportPolicy(str, Enum):
    NONE = "NONE"
    NEW = "NEW"
    NEW_CHANGED = "NEW_CHANGED"
    NEW_CHANGED_DELETED = "NEW_CHANGED_DELETED"


class EventType(str, Enum):
    """Change-event classes a data repository association can propagate."""

    NEW = "NEW"
    CHANGED = "CHANGED"
    DELETED = "DELETED"


ALL_EVENTS = frozenset(EventType)

# Throughput tiers (MB/s per TiB) accepted by each persistent deployment type.
_THROUGHPUT_TIERS = {
    LustreDeploymentType.PERSISTENT_1: (50, 100, 200),
    LustreDeploymentType.PERSISTENT_2: (125, 250, 500, 1000),
}


@dataclass
class LustreFileSystem(Resource):
    """
    High-throughput POSIX filesystem (FSx for Lustre).

    Example:
        fs = LustreFileSystem(
            "Lustre",
            subnet=vpc.private_subnets[0],
            deployment_type=LustreDeploymentType.SCRATCH_2,
            import_path=bucket.s3_url(),
            export_path=bucket.s3_url(),
            auto_import_policy=LustreAutoImportPolicy.NEW_CHANGED_DELETED,
            compression=LustreDataCompressionType.LZ4,
        )
        fs.dns_name  # Ref("Lustre", "dns_name")
    """

    subnet: Subnet | None = None
    """Subnet the filesystem's network interfaces live in"""

    storage_capacity_gib: int = 1200
    """Storage capacity in GiB"""

    deployment_type: LustreDeploymentType = LustreDeploymentType.SCRATCH_2
    """Durability/performance tier"""

    compression: LustreDataCompressionType = LustreDataCompressionType.NONE
    """Data compression"""

    import_path: S3Url | None = None
    """Bucket path imported into the filesystem (not for PERSISTENT_2)"""

    export_path: S3Url | None = None
    """Bucket path filesystem changes are exported to (not for PERSISTENT_2)"""

    auto_import_policy: LustreAutoImportPolicy | None = None
    """Which bucket changes are imported automatically (path-based linking only)"""

    per_unit_storage_throughput: int | None = None
    """MB/s per TiB; persistent deployment types only"""

    removal_policy: RemovalPolicy = RemovalPolicy.RETAIN
    """Whether the filesystem is destroyed with the stack"""

    kind = ResourceKind.FILESYSTEM

    DEFAULT_PORT = 988

    def __post_init__(self):
        if self.subnet is None:
            raise ValueError(f"Filesystem '{self.logical_id}' needs a subnet")

        capacity = self.storage_capacity_gib
        if capacity != 1200 and capacity % 2400 != 0:
            raise ValueError(
                f"Lustre capacity must be 1200 GiB or a multiple of 2400 GiB, got {capacity}"
            )

        if not self.deployment_type.supports_repository_paths:
            if self.import_path or self.export_path or self.auto_import_policy:
                raise ValueError(
                    f"{self.deployment_type.value} does not accept import/export paths; "
                    f"use a DataRepositoryAssociation"
                )

        if self.export_path is not None and self.import_path is None:
            raise ValueError("export_path requires import_path")

        if self.auto_import_policy is not None and self.import_path is None:
            raise ValueError("auto_import_policy requires import_path")

        if self.deployment_type.is_persistent:
            tiers = _THROUGHPUT_TIERS[self.deployment_type]
            if self.per_unit_storage_throughput not in tiers:
                raise ValueError(
                    f"{self.deployment_type.value} needs per_unit_storage_throughput "
                    f"in {tiers}, got {self.per_unit_storage_throughput}"
                )
        elif self.per_unit_storage_throughput is not None:
            raise ValueError("per_unit_storage_throughput is only valid for persistent types")

    @property
    def dns_name(self):
        return self.ref("dns_name")

    @property
    def mount_name(self):
        return self.ref("mount_name")

    def properties(self) -> dict[str, Any]:
        return {
            "subnet": self.subnet.name,
            "storage_capacity_gib": self.storage_capacity_gib,
            "deployment_type": self.deployment_type.value,
            "compression": self.compression.value,
            "import_path": str(self.import_path) if self.import_path else None,
            "export_path": str(self.export_path) if self.export_path else None,
            "auto_import_policy": (
                self.auto_import_policy.value if self.auto_import_policy else None
            ),
            "per_unit_storage_throughput": self.per_unit_storage_throughput,
            "removal_policy": self.removal_policy.value,
        }


@dataclass
class DataRepositoryAssociation(Resource):
    """
    Links one filesystem path to one bucket path.

    Auto-import and auto-export event sets are independent: a file created
    in the bucket shows up in the filesystem if NEW is in
    ``auto_import_events``, and a file changed on the filesystem is
    written back if CHANGED is in ``auto_export_events``.
    """

    file_system_id: str = ""
    """Logical id of the linked filesystem"""

    repository_path: S3Url | None = None
    """Bucket path on the object-store side"""

    file_system_path: str = "/"
    """Path on the filesystem side"""

    auto_import_events: frozenset[EventType] = field(default_factory=lambda: ALL_EVENTS)
    auto_export_events: frozenset[EventType] = field(default_factory=lambda: ALL_EVENTS)

    batch_import_metadata: bool = True
    """Import existing object metadata when the association is created"""

    kind = ResourceKind.DATA_REPOSITORY_ASSOCIATION

    def __post_init__(self):
        if not self.file_system_id or self.repository_path is None:
            raise ValueError(
                f"Association '{self.logical_id}' needs a filesystem and a repository path"
            )
        if not self.file_system_path.startswith("/"):
            raise ValueError("file_system_path must be absolute")
        self.auto_import_events = frozenset(self.auto_import_events)
        self.auto_export_events = frozenset(self.auto_export_events)

    @property
    def bucket_id(self) -> str:
        return self.repository_path.bucket_logical_id

    def properties(self) -> dict[str, Any]:
        return {
            "file_system": self.file_system_id,
            "repository_path": str(self.repository_path),
            "file_system_path": self.file_system_path,
            "auto_import_events": sorted_event_names(self.auto_import_events),
            "auto_export_events": sorted_event_names(self.auto_export_events),
            "batch_import_metadata": self.batch_import_metadata,
        }


def sorted_event_names(events: frozenset[EventType]) -> list[str]:
    """Event values in declaration order: NEW, CHANGED, DELETED."""
    order = list(EventType)
    return [e.value for e in sorted(events, key=order.index)]
