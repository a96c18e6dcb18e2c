"""
Stack definition: the FSx for Lustre + S3 stack as a resource graph.

``build_graph`` is a pure function from configuration to graph, so the
whole stack can be inspected and tested without any provisioning call.
``FsxS3Stack`` is the construct that builds the graph and registers it
with a scope.
"""

from typing import TYPE_CHECKING

from loguru import logger

from fsx_stack.bootstrap.script import MOUNT_PATH, compose_boot_script
from fsx_stack.config.stack import StackConfig
from fsx_stack.core.graph import EdgeKind, ResourceGraph
from fsx_stack.core.variants import RepositoryLink, VariantProfile, profile_for
from fsx_stack.resources.base import RemovalPolicy
from fsx_stack.resources.compute import (
    Instance,
    MachineImage,
    ManagedPolicy,
    OsFamily,
    UBUNTU_FOCAL_SSM_PARAMETER,
)
from fsx_stack.resources.filesystem import (
    DataRepositoryAssociation,
    EventType,
    LustreAutoImportPolicy,
    LustreFileSystem,
)
from fsx_stack.resources.network import Network, SubnetType
from fsx_stack.resources.storage import Bucket, STANDARD_LIFECYCLE_RULE

if TYPE_CHECKING:
    from fsx_stack.core.app import App

DEFAULT_STACK_ID = "FsxS3Stack"

FSX_FULL_ACCESS = ManagedPolicy.from_aws_managed_policy_name("AmazonFSxFullAccess")
# Console sessions through Systems Manager: no bastion host, still a private subnet.
SSM_MANAGED_INSTANCE_CORE = ManagedPolicy.from_aws_managed_policy_name(
    "AmazonSSMManagedInstanceCore"
)


def select_machine_image(config: StackConfig) -> MachineImage:
    if config.ubuntu:
        return MachineImage.from_ssm_parameter(UBUNTU_FOCAL_SSM_PARAMETER, OsFamily.UBUNTU)
    return MachineImage.amazon_linux()


def build_graph(config: StackConfig | None = None, stack_id: str = DEFAULT_STACK_ID) -> ResourceGraph:
    """
    Build the stack's resource graph.

    Args:
        config: Stack configuration (defaults apply when omitted)
        stack_id: Identifier of the stack the graph belongs to

    Returns:
        Fully wired ResourceGraph

    Example:
        graph = build_graph(StackConfig(ubuntu=True, variant="hpc"))
        graph.get("Instance").user_data.render()
    """
    config = config or StackConfig()
    profile = profile_for(config.variant)
    destroy = config.destroy_with_stack
    removal_policy = RemovalPolicy.DESTROY if destroy else RemovalPolicy.RETAIN

    logger.debug(
        f"Building stack '{stack_id}': variant={config.variant.value}, "
        f"ubuntu={config.ubuntu}, removal={removal_policy.value}"
    )

    graph = ResourceGraph(stack_id)

    vpc = graph.add(Network("VPC", max_azs=1))

    bucket = graph.add(
        Bucket(
            "BackingBucket",
            removal_policy=removal_policy,
            auto_delete_objects=destroy,
            lifecycle_rules=[STANDARD_LIFECYCLE_RULE],
        )
    )

    lustre = graph.add(_filesystem(profile, vpc, bucket, removal_policy))
    graph.connect(lustre, vpc, EdgeKind.PLACED_IN, subnet=lustre.subnet.name)
    graph.connect(lustre, bucket, EdgeKind.BACKED_BY)

    if profile.repository_link == RepositoryLink.ASSOCIATION:
        association = graph.add(
            DataRepositoryAssociation(
                "LustreRepositoryAssociation",
                file_system_id=lustre.logical_id,
                repository_path=bucket.s3_url(),
                auto_import_events=frozenset(EventType),
                auto_export_events=frozenset(EventType),
            )
        )
        graph.connect(association, lustre, EdgeKind.ASSOCIATES)
        graph.connect(association, bucket, EdgeKind.ASSOCIATES)

    machine_image = select_machine_image(config)
    init = profile.init_bundle()
    instance = graph.add(
        Instance(
            "Instance",
            instance_type=profile.instance_type,
            machine_image=machine_image,
            subnet_type=SubnetType.PRIVATE_WITH_EGRESS,
            user_data_causes_replacement=True,
            init=init,
        )
    )
    graph.connect(instance, vpc, EdgeKind.PLACED_IN, subnet=vpc.private_subnets[0].name)

    graph.connect(lustre, instance, EdgeKind.ALLOWS_PORT, port=LustreFileSystem.DEFAULT_PORT)

    instance.grant(FSX_FULL_ACCESS)
    instance.grant(SSM_MANAGED_INSTANCE_CORE)

    instance.user_data = compose_boot_script(
        machine_image.os_family,
        lustre.dns_name,
        lustre.mount_name,
        mount_path=MOUNT_PATH,
        dir_mode=profile.dir_mode,
        init=init,
        tuning=profile.tuning,
        finalize=profile.finalize,
    )
    graph.connect(instance, lustre, EdgeKind.MOUNTS, path=MOUNT_PATH)

    graph.export("InstanceID", instance.instance_id, "Identifier of the compute instance")
    if profile.export_mount_name:
        graph.export("MountName", lustre.mount_name, "Lustre mount name")

    return graph


def _filesystem(
    profile: VariantProfile,
    vpc: Network,
    bucket: Bucket,
    removal_policy: RemovalPolicy,
) -> LustreFileSystem:
    paths = {}
    if profile.repository_link == RepositoryLink.PATHS:
        paths = {
            "import_path": bucket.s3_url(),
            "export_path": bucket.s3_url(),
            "auto_import_policy": LustreAutoImportPolicy.NEW_CHANGED_DELETED,
        }

    return LustreFileSystem(
        "Lustre",
        subnet=vpc.private_subnets[0],
        storage_capacity_gib=profile.storage_capacity_gib,
        deployment_type=profile.deployment_type,
        compression=profile.compression,
        per_unit_storage_throughput=profile.per_unit_storage_throughput,
        removal_policy=removal_policy,
        **paths,
    )


class FsxS3Stack:
    """
    Construct that builds the FSx/S3 graph and registers it with a scope.

    Example:
        app = App()
        FsxS3Stack(app, "FsxS3", StackConfig(ubuntu=True))
        app.synth()
    """

    def __init__(self, scope: "App", stack_id: str, config: StackConfig | None = None):
        self.stack_id = stack_id
        self.config = config or StackConfig()
        self.graph = build_graph(self.config, stack_id)
        scope.register(self)

    @property
    def outputs(self) -> list[str]:
        return list(self.graph.outputs.keys())

    def __repr__(self) -> str:
        return f"FsxS3Stack({self.stack_id}, variant={self.config.variant.value})"
