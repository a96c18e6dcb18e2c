"""
Tests for the stack graph, variants and the App scope.
"""

import pytest

from fsx_stack import App, FsxS3Stack, GraphError, StackConfig, Variant, build_graph
from fsx_stack.bootstrap import FstabEntry, LustreTuning, WriteFile
from fsx_stack.core import PROFILES, RepositoryLink, profile_for
from fsx_stack.core.graph import EdgeKind
from fsx_stack.engines import InMemoryEngine
from fsx_stack.resources import (
    ALL_EVENTS,
    EventType,
    ImageLookup,
    LustreDataCompressionType,
    LustreDeploymentType,
    OsFamily,
    RemovalPolicy,
    ResourceKind,
    StorageClass,
    UBUNTU_FOCAL_SSM_PARAMETER,
)

FSTAB_LINE = (
    "${Lustre.dns_name}@tcp:/${Lustre.mount_name} /mnt/fsx lustre "
    "defaults,noatime,flock,_netdev 0 0"
)


def _instance(graph):
    (instance,) = graph.nodes_of_kind(ResourceKind.INSTANCE)
    return instance


def _filesystem(graph):
    (fs,) = graph.nodes_of_kind(ResourceKind.FILESYSTEM)
    return fs


@pytest.mark.parametrize("variant", list(Variant))
@pytest.mark.parametrize("ubuntu", [False, True])
class TestEveryVariant:
    """Properties that hold for every configuration."""

    def test_exactly_one_of_each(self, variant, ubuntu):
        graph = build_graph(StackConfig(ubuntu=ubuntu, variant=variant))

        assert len(graph.nodes_of_kind(ResourceKind.INSTANCE)) == 1
        assert len(graph.nodes_of_kind(ResourceKind.BUCKET)) == 1
        assert len(graph.nodes_of_kind(ResourceKind.FILESYSTEM)) == 1
        assert len(graph.nodes_of_kind(ResourceKind.NETWORK)) == 1

    def test_fstab_line(self, variant, ubuntu):
        graph = build_graph(StackConfig(ubuntu=ubuntu, variant=variant))
        user_data = _instance(graph).user_data

        (fstab,) = user_data.find(FstabEntry)
        assert fstab.line() == FSTAB_LINE
        assert f'echo "{FSTAB_LINE}" >> /etc/fstab' in user_data.commands()

    def test_port_allowed_from_filesystem_to_instance(self, variant, ubuntu):
        graph = build_graph(StackConfig(ubuntu=ubuntu, variant=variant))

        (edge,) = graph.edges_of_kind(EdgeKind.ALLOWS_PORT)
        assert (edge.source, edge.target) == ("Lustre", "Instance")
        assert edge.get("port") == 988

    def test_instance_in_private_subnet(self, variant, ubuntu):
        graph = build_graph(StackConfig(ubuntu=ubuntu, variant=variant))
        placements = {
            edge.source: edge.get("subnet") for edge in graph.edges_of_kind(EdgeKind.PLACED_IN)
        }

        assert placements == {"Lustre": "Private1", "Instance": "Private1"}

    def test_deterministic(self, variant, ubuntu):
        config = StackConfig(ubuntu=ubuntu, variant=variant)

        assert build_graph(config) == build_graph(config)

    def test_dependency_order(self, variant, ubuntu):
        order = build_graph(StackConfig(ubuntu=ubuntu, variant=variant)).dependency_order()

        assert order.index("VPC") < order.index("Lustre") < order.index("Instance")
        assert order.index("BackingBucket") < order.index("Lustre")

    def test_policies(self, variant, ubuntu):
        instance = _instance(build_graph(StackConfig(ubuntu=ubuntu, variant=variant)))

        assert [p.name for p in instance.managed_policies] == [
            "AmazonFSxFullAccess",
            "AmazonSSMManagedInstanceCore",
        ]
        assert instance.user_data_causes_replacement is True


class TestVariants:
    def test_default_is_scratch(self):
        assert StackConfig().variant == Variant.SCRATCH

    def test_profiles_cover_every_variant(self):
        assert set(PROFILES) == set(Variant)

    def test_association_variants_have_dra(self):
        for variant in Variant:
            graph = build_graph(StackConfig(variant=variant))
            associations = graph.nodes_of_kind(ResourceKind.DATA_REPOSITORY_ASSOCIATION)
            expected = 1 if profile_for(variant).repository_link == RepositoryLink.ASSOCIATION else 0

            assert len(associations) == expected, variant

    def test_persistent_2_association(self):
        graph = build_graph(StackConfig(variant=Variant.PERSISTENT_2))

        (dra,) = graph.nodes_of_kind(ResourceKind.DATA_REPOSITORY_ASSOCIATION)
        assert dra.auto_import_events == {EventType.NEW, EventType.CHANGED, EventType.DELETED}
        assert dra.auto_export_events == ALL_EVENTS
        assert dra.file_system_id == "Lustre"
        assert dra.bucket_id == "BackingBucket"

        fs = _filesystem(graph)
        assert fs.import_path is None
        assert fs.per_unit_storage_throughput == 125
        assert "MountName" in graph.outputs

    def test_legacy_world_writable(self):
        graph = build_graph(StackConfig(variant=Variant.LEGACY))

        assert _filesystem(graph).deployment_type == LustreDeploymentType.SCRATCH_1
        assert "chmod 777 /mnt/fsx" in _instance(graph).user_data.commands()

    def test_persistent_1_throughput(self):
        fs = _filesystem(build_graph(StackConfig(variant=Variant.PERSISTENT_1)))

        assert fs.deployment_type == LustreDeploymentType.PERSISTENT_1
        assert fs.per_unit_storage_throughput == 200
        assert fs.import_path is not None


class TestScenarios:
    def test_default_stack(self):
        """Amazon Linux, scratch filesystem linked by import/export paths."""
        graph = build_graph()

        (bucket,) = graph.nodes_of_kind(ResourceKind.BUCKET)
        (rule,) = bucket.lifecycle_rules
        assert rule.transitions[0].storage_class == StorageClass.INFREQUENT_ACCESS
        assert rule.transitions[0].after_days == 30
        assert bucket.auto_delete_objects is True
        assert bucket.removal_policy == RemovalPolicy.DESTROY

        fs = _filesystem(graph)
        assert fs.deployment_type == LustreDeploymentType.SCRATCH_2
        assert fs.compression == LustreDataCompressionType.LZ4
        assert fs.storage_capacity_gib == 1200
        assert str(fs.import_path) == "s3://${BackingBucket.bucket}"
        assert str(fs.export_path) == "s3://${BackingBucket.bucket}"

        instance = _instance(graph)
        assert str(instance.instance_type) == "t2.large"
        assert instance.os_family == OsFamily.AMAZON_LINUX
        assert instance.machine_image.lookup == ImageLookup.AMAZON_LINUX_GENERATION

        commands = instance.user_data.commands()
        assert commands[:3] == ["set -eux", "yum update -y", "amazon-linux-extras install -y lustre"]
        assert "chown ec2-user:ec2-user /mnt/fsx" in commands
        assert commands[-1] == "mount -a"

        assert list(graph.outputs) == ["InstanceID"]
        assert graph.nodes_of_kind(ResourceKind.DATA_REPOSITORY_ASSOCIATION) == []

    def test_hpc_ubuntu_stack(self):
        graph = build_graph(StackConfig(ubuntu=True, variant=Variant.HPC))

        instance = _instance(graph)
        assert instance.machine_image.parameter_name == UBUNTU_FOCAL_SSM_PARAMETER
        assert str(instance.instance_type) == "c5n.18xlarge"

        user_data = instance.user_data
        commands = user_data.commands()
        assert commands[1] == "apt -y update && apt -y upgrade"
        assert any("gpg --dearmor" in c for c in commands)
        assert any("jammy main" in c for c in commands)
        assert "apt install -y linux-aws lustre-client-modules-aws" in commands
        assert "chown ubuntu:ubuntu /mnt/fsx" in commands
        assert len(user_data.find(LustreTuning)) == 1
        assert [step.file.path for step in user_data.find(WriteFile)] == [
            "/etc/cron.d/lustre-settings",
            "/usr/local/sbin/lustre-settings.sh",
        ]
        assert commands[-1] == "reboot"

        fs = _filesystem(graph)
        assert fs.deployment_type == LustreDeploymentType.PERSISTENT_2
        assert fs.per_unit_storage_throughput == 250
        assert set(graph.outputs) == {"InstanceID", "MountName"}

    def test_retain_posture(self):
        graph = build_graph(StackConfig(removal_policy=RemovalPolicy.RETAIN))

        (bucket,) = graph.nodes_of_kind(ResourceKind.BUCKET)
        assert bucket.removal_policy == RemovalPolicy.RETAIN
        assert bucket.auto_delete_objects is False
        assert _filesystem(graph).removal_policy == RemovalPolicy.RETAIN


class TestApp:
    def test_register_and_synth(self):
        app = App()
        stack = FsxS3Stack(app, "Dev", StackConfig())

        assert app.list_stacks() == ["Dev"]
        assert app.get_stack("Dev") is stack
        assert stack.outputs == ["InstanceID"]

        synthesized = app.synth()
        assert synthesized["Dev"]["stack_id"] == "Dev"
        assert synthesized["Dev"] == build_graph(StackConfig(), "Dev").to_dict()

    def test_duplicate_stack_id(self):
        app = App()
        FsxS3Stack(app, "Dev")

        with pytest.raises(GraphError, match="already registered"):
            FsxS3Stack(app, "Dev")

    def test_deploy_hands_graphs_to_engine(self):
        app = App()
        FsxS3Stack(app, "Dev")
        FsxS3Stack(app, "Hpc", StackConfig(ubuntu=True, variant=Variant.HPC))
        engine = InMemoryEngine()

        results = app.deploy(engine)

        assert list(results) == ["Dev", "Hpc"]
        assert engine.submitted == ["Dev", "Hpc"]
        assert results["Hpc"].get_output("MountName")
