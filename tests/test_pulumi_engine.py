"""
Tests for the Pulumi engine, run against Pulumi's resource mocks.

Graphs are submitted at import time, after the mocks are installed, the
way Pulumi programs register resources. Tests then inspect the created
resources and their outputs.
"""

import pulumi


class FsxMocks(pulumi.runtime.Mocks):
    def new_resource(self, args: pulumi.runtime.MockResourceArgs):
        outputs = dict(args.inputs)
        if args.typ == "aws:fsx/lustreFileSystem:LustreFileSystem":
            outputs["dnsName"] = f"{args.name}.fsx.us-east-1.amazonaws.com"
            outputs["mountName"] = "abcdefgh"
        elif args.typ == "aws:s3/bucketV2:BucketV2":
            outputs["bucket"] = f"{args.name.lower()}-bucket"
        return [f"{args.name}-id", outputs]

    def call(self, args: pulumi.runtime.MockCallArgs):
        if args.token == "aws:index/getAvailabilityZones:getAvailabilityZones":
            return {"names": ["us-east-1a", "us-east-1b"], "zoneIds": ["use1-az1", "use1-az2"]}
        if args.token == "aws:ec2/getAmi:getAmi":
            return {"id": "ami-amazonlinux", "architecture": "x86_64"}
        if args.token == "aws:ssm/getParameter:getParameter":
            return {"name": args.args.get("name"), "value": "ami-ubuntu"}
        return {}


pulumi.runtime.set_mocks(FsxMocks(), preview=False)

from fsx_stack import StackConfig, Variant, build_graph  # noqa: E402
from fsx_stack.engines.pulumi_engine import PulumiEngine, removal_options  # noqa: E402
from fsx_stack.resources import RemovalPolicy  # noqa: E402

default_engine = PulumiEngine(tags={"project": "test"}, export_outputs=False)
default_stack = default_engine.submit(build_graph(stack_id="FsxS3Stack"))

hpc_engine = PulumiEngine(export_outputs=False)
hpc_stack = hpc_engine.submit(
    build_graph(StackConfig(ubuntu=True, variant=Variant.HPC), stack_id="HpcStack")
)

retain_engine = PulumiEngine(export_outputs=False)
retain_engine.submit(
    build_graph(StackConfig(removal_policy=RemovalPolicy.RETAIN), stack_id="RetainStack")
)


class TestResources:
    def test_policy_attachments(self):
        assert "FsxS3Stack-Instance-AmazonFSxFullAccess" in default_engine.resources
        assert "FsxS3Stack-Instance-AmazonSSMManagedInstanceCore" in default_engine.resources
        assert "FsxS3Stack-Instance-profile" in default_engine.resources

    def test_network_layout(self):
        for suffix in ("VPC", "VPC-igw", "VPC-Public1", "VPC-Public1-nat", "VPC-Private1", "VPC-Private1-rt"):
            assert f"FsxS3Stack-{suffix}" in default_engine.resources

    def test_bucket_companions(self):
        assert "FsxS3Stack-BackingBucket-ownership" in default_engine.resources
        assert "FsxS3Stack-BackingBucket-lifecycle" in default_engine.resources

    def test_lustre_port_rule(self):
        assert "FsxS3Stack-Lustre-from-Instance-988" in default_engine.resources
        assert "FsxS3Stack-Lustre-internal-988" in default_engine.resources
        assert "FsxS3Stack-Lustre-internal-1018" in default_engine.resources

    def test_association_only_for_association_variants(self):
        assert "HpcStack-LustreRepositoryAssociation" in hpc_engine.resources
        assert not any("RepositoryAssociation" in name for name in default_engine.resources)

    def test_removal_options(self):
        assert removal_options(RemovalPolicy.RETAIN).retain_on_delete is True
        assert not removal_options(RemovalPolicy.DESTROY).retain_on_delete

    def test_stack_ids_do_not_collide(self):
        assert not set(default_engine.resources) & set(hpc_engine.resources)
        assert not set(default_engine.resources) & set(retain_engine.resources)


@pulumi.runtime.test
def test_default_user_data():
    def check(script):
        assert script.startswith("#!/bin/bash\nset -eux\n")
        assert (
            'echo "FsxS3Stack-Lustre.fsx.us-east-1.amazonaws.com@tcp:/abcdefgh /mnt/fsx lustre '
            'defaults,noatime,flock,_netdev 0 0" >> /etc/fstab'
        ) in script
        assert script.endswith("mount -a\n")

    return default_stack.user_data["Instance"].apply(check)


@pulumi.runtime.test
def test_hpc_user_data():
    def check(script):
        assert "apt install -y linux-aws lustre-client-modules-aws" in script
        assert "options ksocklnd credits=2560" in script
        assert "/etc/cron.d/lustre-settings" in script
        assert script.endswith("reboot\n")

    return hpc_stack.user_data["Instance"].apply(check)


@pulumi.runtime.test
def test_scratch_import_path():
    def check(args):
        import_path, export_path = args
        assert import_path == "s3://fsxs3stack-backingbucket-bucket"
        assert export_path == import_path

    fs = default_engine.resources["FsxS3Stack-Lustre"]
    return pulumi.Output.all(fs.import_path, fs.export_path).apply(check)


@pulumi.runtime.test
def test_association_repository_path():
    def check(path):
        assert path == "s3://hpcstack-backingbucket-bucket"

    association = hpc_engine.resources["HpcStack-LustreRepositoryAssociation"]
    return association.data_repository_path.apply(check)


@pulumi.runtime.test
def test_machine_images():
    def check(args):
        default_ami, hpc_ami = args
        assert default_ami == "ami-amazonlinux"
        assert hpc_ami == "ami-ubuntu"

    return pulumi.Output.all(
        default_engine.resources["FsxS3Stack-Instance"].ami,
        hpc_engine.resources["HpcStack-Instance"].ami,
    ).apply(check)


@pulumi.runtime.test
def test_outputs():
    def check(args):
        instance_id, mount_name = args
        assert instance_id == "HpcStack-Instance-id"
        assert mount_name == "abcdefgh"

    return pulumi.Output.all(
        hpc_stack.get_output("InstanceID"),
        hpc_stack.get_output("MountName"),
    ).apply(check)


@pulumi.runtime.test
def test_tags():
    def check(tags):
        assert tags == {"Name": "FsxS3Stack-Lustre", "project": "test"}

    return default_engine.resources["FsxS3Stack-Lustre"].tags.apply(check)


@pulumi.runtime.test
def test_lustre_port_rule_direction():
    """The filesystem's group admits the instance's group, never the reverse."""

    def check(args):
        security_group_id, source_security_group_id, from_port, to_port = args
        assert security_group_id == "FsxS3Stack-Lustre-sg-id"
        assert source_security_group_id == "FsxS3Stack-Instance-sg-id"
        assert (from_port, to_port) == (988, 988)

    rule = default_engine.resources["FsxS3Stack-Lustre-from-Instance-988"]
    return pulumi.Output.all(
        rule.security_group_id,
        rule.source_security_group_id,
        rule.from_port,
        rule.to_port,
    ).apply(check)


@pulumi.runtime.test
def test_bucket_force_destroy_follows_removal_policy():
    def check(args):
        destroyed, retained = args
        assert destroyed is True
        assert retained is False

    return pulumi.Output.all(
        default_engine.resources["FsxS3Stack-BackingBucket"].force_destroy,
        retain_engine.resources["RetainStack-BackingBucket"].force_destroy,
    ).apply(check)
