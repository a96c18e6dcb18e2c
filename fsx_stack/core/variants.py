"""
Stack variants.

A variant fixes every compiled-in choice of the stack: filesystem
deployment mode and throughput, how the bucket is linked, instance
sizing, boot script options and extra outputs. Only the OS family and
the removal posture are left to the configuration.
"""

from dataclasses import dataclass
from enum import Enum

from fsx_stack.bootstrap.steps import FinalizeMode
from fsx_stack.config.stack import Variant
from fsx_stack.resources.compute import InitFile, InstanceInit, InstanceType
from fsx_stack.resources.filesystem import (
    LustreDataCompressionType,
    LustreDeploymentType,
)


class RepositoryLink(str, Enum):
    """How the filesystem is linked to the bucket."""

    PATHS = "paths"
    ASSOCIATION = "association"


@dataclass(frozen=True)
class VariantProfile:
    """Compiled-in constants of one variant."""

    deployment_type: LustreDeploymentType
    compression: LustreDataCompressionType
    repository_link: RepositoryLink
    instance_type: InstanceType
    per_unit_storage_throughput: int | None = None
    storage_capacity_gib: int = 1200
    dir_mode: str = "770"
    tuning: bool = False
    with_init_bundle: bool = False
    finalize: FinalizeMode = FinalizeMode.MOUNT
    export_mount_name: bool = False

    def init_bundle(self) -> InstanceInit | None:
        if not self.with_init_bundle:
            return None
        return lustre_settings_bundle()


def lustre_settings_bundle() -> InstanceInit:
    """Cron entry plus the settings script it runs after each boot."""
    return InstanceInit(
        files=(
            InitFile.from_asset(
                "/etc/cron.d/lustre-settings", "lustre-settings.cron", mode="000644"
            ),
            InitFile.from_asset(
                "/usr/local/sbin/lustre-settings.sh", "lustre-settings.sh", mode="000700"
            ),
        )
    )


PROFILES: dict[Variant, VariantProfile] = {
    Variant.LEGACY: VariantProfile(
        deployment_type=LustreDeploymentType.SCRATCH_1,
        compression=LustreDataCompressionType.NONE,
        repository_link=RepositoryLink.PATHS,
        instance_type=InstanceType.of("t2", "large"),
        dir_mode="777",
    ),
    Variant.SCRATCH: VariantProfile(
        deployment_type=LustreDeploymentType.SCRATCH_2,
        compression=LustreDataCompressionType.LZ4,
        repository_link=RepositoryLink.PATHS,
        instance_type=InstanceType.of("t2", "large"),
    ),
    Variant.PERSISTENT_1: VariantProfile(
        deployment_type=LustreDeploymentType.PERSISTENT_1,
        compression=LustreDataCompressionType.LZ4,
        repository_link=RepositoryLink.PATHS,
        instance_type=InstanceType.of("t2", "large"),
        per_unit_storage_throughput=200,
    ),
    Variant.PERSISTENT_2: VariantProfile(
        deployment_type=LustreDeploymentType.PERSISTENT_2,
        compression=LustreDataCompressionType.LZ4,
        repository_link=RepositoryLink.ASSOCIATION,
        instance_type=InstanceType.of("t3", "large"),
        per_unit_storage_throughput=125,
        finalize=FinalizeMode.REBOOT,
        export_mount_name=True,
    ),
    Variant.HPC: VariantProfile(
        deployment_type=LustreDeploymentType.PERSISTENT_2,
        compression=LustreDataCompressionType.LZ4,
        repository_link=RepositoryLink.ASSOCIATION,
        instance_type=InstanceType.of("c5n", "18xlarge"),
        per_unit_storage_throughput=250,
        tuning=True,
        with_init_bundle=True,
        finalize=FinalizeMode.REBOOT,
        export_mount_name=True,
    ),
}


def profile_for(variant: Variant) -> VariantProfile:
    return PROFILES[Variant(variant)]
