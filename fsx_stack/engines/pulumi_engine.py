"""
Pulumi engine: translates a resource graph into pulumi_aws resources.

Must run inside a Pulumi program (``pulumi up``) or with Pulumi mocks
installed. Nodes are created in dependency order; references between
nodes become ``pulumi.Output`` values, so the Pulumi engine itself
orders the actual cloud calls.
"""

import json
from typing import Any, Callable

import pulumi
import pulumi_aws as aws
from loguru import logger

from fsx_stack.core.graph import EdgeKind, ResourceGraph
from fsx_stack.engines.base import Engine, EngineError, MaterializedStack
from fsx_stack.resources.base import Ref, RemovalPolicy, Resource, ResourceKind
from fsx_stack.resources.compute import ImageLookup, Instance, MachineImage
from fsx_stack.resources.filesystem import (
    DataRepositoryAssociation,
    LustreFileSystem,
    sorted_event_names,
)
from fsx_stack.resources.network import Network, SubnetType
from fsx_stack.resources.storage import Bucket

EC2_ASSUME_ROLE_POLICY = json.dumps({
    "Version": "2012-10-17",
    "Statement": [{
        "Effect": "Allow",
        "Principal": {"Service": "ec2.amazonaws.com"},
        "Action": "sts:AssumeRole",
    }],
})

# Lustre servers talk to each other on 988 and 1018-1023 inside their security group.
LUSTRE_INTERNAL_PORTS = ((988, 988), (1018, 1023))


def removal_options(policy: RemovalPolicy) -> pulumi.ResourceOptions:
    """Resource options that keep the cloud resource when the stack is destroyed."""
    return pulumi.ResourceOptions(retain_on_delete=policy == RemovalPolicy.RETAIN)


class PulumiEngine(Engine):
    """
    Engine that registers real AWS resources with the Pulumi runtime.

    Example (inside a Pulumi program):
        engine = PulumiEngine(tags={"project": "fsx-s3"})
        stack = engine.submit(build_graph(config))
        # outputs are exported with pulumi.export as well
    """

    def __init__(self, tags: dict[str, str] | None = None, export_outputs: bool = True):
        """
        Initialize the engine.

        Args:
            tags: Tags applied to every taggable resource
            export_outputs: Call ``pulumi.export`` for each stack output
        """
        self.tags = dict(tags or {})
        self.export_outputs = export_outputs
        self.resources: dict[str, pulumi.Resource] = {}
        self._attributes: dict[Ref, pulumi.Output] = {}
        self._subnets: dict[tuple[str, str], aws.ec2.Subnet] = {}
        self._networks: dict[str, aws.ec2.Vpc] = {}
        self._security_groups: dict[str, aws.ec2.SecurityGroup] = {}

    def submit(self, graph: ResourceGraph) -> MaterializedStack:
        handlers: dict[ResourceKind, Callable[[ResourceGraph, Any], None]] = {
            ResourceKind.NETWORK: self._network,
            ResourceKind.BUCKET: self._bucket,
            ResourceKind.FILESYSTEM: self._filesystem,
            ResourceKind.DATA_REPOSITORY_ASSOCIATION: self._association,
            ResourceKind.INSTANCE: self._instance,
        }

        self._attributes = {}
        self._subnets = {}
        self._networks = {}
        self._security_groups = {}

        try:
            for logical_id in graph.dependency_order():
                node = graph.nodes[logical_id]
                logger.debug(f"{graph.stack_id}: creating {node.kind.value} '{logical_id}'")
                handlers[node.kind](graph, node)

            for edge in graph.edges_of_kind(EdgeKind.ALLOWS_PORT):
                self._allow_port(graph, edge.source, edge.target, edge.get("port"))

        except EngineError:
            raise
        except Exception as e:
            raise EngineError(f"Failed to translate stack '{graph.stack_id}': {e}") from e

        outputs = {}
        for name, output in graph.outputs.items():
            value = self._attributes[output.value]
            outputs[name] = value
            if self.export_outputs:
                pulumi.export(name, value)

        user_data = {
            node.logical_id: self.resources[self._name(graph, node.logical_id)].user_data
            for node in graph.nodes_of_kind(ResourceKind.INSTANCE)
        }

        logger.info(f"Registered {len(self.resources)} Pulumi resources for '{graph.stack_id}'")

        return MaterializedStack(
            stack_id=graph.stack_id,
            identifiers={
                logical_id: self._attributes[Ref(logical_id, "id")]
                for logical_id in graph.nodes
            },
            outputs=outputs,
            user_data=user_data,
        )

    # ------------------------------------------------------------------
    # Node handlers
    # ------------------------------------------------------------------

    def _network(self, graph: ResourceGraph, node: Network) -> None:
        name = self._name(graph, node.logical_id)
        azs = aws.get_availability_zones(state="available").names[: node.max_azs]

        vpc = self._track(name, aws.ec2.Vpc(
            name,
            cidr_block=node.cidr,
            enable_dns_hostnames=True,
            enable_dns_support=True,
            tags=self._tags(name),
        ))
        self._networks[node.logical_id] = vpc

        igw = self._track(f"{name}-igw", aws.ec2.InternetGateway(
            f"{name}-igw", vpc_id=vpc.id, tags=self._tags(f"{name}-igw")
        ))
        public_routes = self._track(f"{name}-public-rt", aws.ec2.RouteTable(
            f"{name}-public-rt",
            vpc_id=vpc.id,
            routes=[aws.ec2.RouteTableRouteArgs(cidr_block="0.0.0.0/0", gateway_id=igw.id)],
            tags=self._tags(f"{name}-public-rt"),
        ))

        nat_gateways: dict[int, aws.ec2.NatGateway] = {}
        for subnet in node.public_subnets:
            aws_subnet = self._subnet(name, node, subnet, vpc, azs)
            self._track(f"{name}-{subnet.name}-rta", aws.ec2.RouteTableAssociation(
                f"{name}-{subnet.name}-rta",
                subnet_id=aws_subnet.id,
                route_table_id=public_routes.id,
            ))
            eip = self._track(f"{name}-{subnet.name}-eip", aws.ec2.Eip(
                f"{name}-{subnet.name}-eip", domain="vpc", tags=self._tags(f"{name}-{subnet.name}-eip")
            ))
            nat_gateways[subnet.az_index] = self._track(f"{name}-{subnet.name}-nat", aws.ec2.NatGateway(
                f"{name}-{subnet.name}-nat",
                allocation_id=eip.id,
                subnet_id=aws_subnet.id,
                tags=self._tags(f"{name}-{subnet.name}-nat"),
                opts=pulumi.ResourceOptions(depends_on=[igw]),
            ))

        for subnet in node.private_subnets:
            aws_subnet = self._subnet(name, node, subnet, vpc, azs)
            private_routes = self._track(f"{name}-{subnet.name}-rt", aws.ec2.RouteTable(
                f"{name}-{subnet.name}-rt",
                vpc_id=vpc.id,
                routes=[aws.ec2.RouteTableRouteArgs(
                    cidr_block="0.0.0.0/0",
                    nat_gateway_id=nat_gateways[subnet.az_index].id,
                )],
                tags=self._tags(f"{name}-{subnet.name}-rt"),
            ))
            self._track(f"{name}-{subnet.name}-rta", aws.ec2.RouteTableAssociation(
                f"{name}-{subnet.name}-rta",
                subnet_id=aws_subnet.id,
                route_table_id=private_routes.id,
            ))

        self._attributes[Ref(node.logical_id, "id")] = vpc.id

    def _subnet(self, name, node, subnet, vpc, azs) -> aws.ec2.Subnet:
        subnet_name = f"{name}-{subnet.name}"
        aws_subnet = self._track(subnet_name, aws.ec2.Subnet(
            subnet_name,
            vpc_id=vpc.id,
            cidr_block=subnet.cidr,
            availability_zone=azs[subnet.az_index],
            map_public_ip_on_launch=subnet.type == SubnetType.PUBLIC,
            tags=self._tags(subnet_name),
        ))
        self._subnets[(node.logical_id, subnet.name)] = aws_subnet
        return aws_subnet

    def _bucket(self, graph: ResourceGraph, node: Bucket) -> None:
        name = self._name(graph, node.logical_id)
        bucket = self._track(name, aws.s3.BucketV2(
            name,
            force_destroy=node.auto_delete_objects,
            tags=self._tags(name),
            opts=removal_options(node.removal_policy),
        ))

        self._track(f"{name}-ownership", aws.s3.BucketOwnershipControls(
            f"{name}-ownership",
            bucket=bucket.id,
            rule=aws.s3.BucketOwnershipControlsRuleArgs(
                object_ownership=node.object_ownership.value,
            ),
        ))

        if node.lifecycle_rules:
            self._track(f"{name}-lifecycle", aws.s3.BucketLifecycleConfigurationV2(
                f"{name}-lifecycle",
                bucket=bucket.id,
                rules=[
                    aws.s3.BucketLifecycleConfigurationV2RuleArgs(
                        id=f"rule-{index}",
                        status="Enabled" if rule.enabled else "Disabled",
                        filter=aws.s3.BucketLifecycleConfigurationV2RuleFilterArgs(prefix=""),
                        transitions=[
                            aws.s3.BucketLifecycleConfigurationV2RuleTransitionArgs(
                                days=transition.after_days,
                                storage_class=transition.storage_class.value,
                            )
                            for transition in rule.transitions
                        ],
                    )
                    for index, rule in enumerate(node.lifecycle_rules)
                ],
            ))

        self._attributes[Ref(node.logical_id, "id")] = bucket.id
        self._attributes[Ref(node.logical_id, "bucket")] = bucket.bucket

    def _filesystem(self, graph: ResourceGraph, node: LustreFileSystem) -> None:
        name = self._name(graph, node.logical_id)
        network_id = self._network_of(graph, node.logical_id)
        subnet = self._subnets[(network_id, node.subnet.name)]

        security_group = self._security_group(graph, node, network_id)
        for from_port, to_port in LUSTRE_INTERNAL_PORTS:
            self._track(f"{name}-internal-{from_port}", aws.ec2.SecurityGroupRule(
                f"{name}-internal-{from_port}",
                type="ingress",
                protocol="tcp",
                from_port=from_port,
                to_port=to_port,
                security_group_id=security_group.id,
                self=True,
            ))

        paths = {}
        if node.import_path is not None:
            paths["import_path"] = self._s3_url(node.import_path)
        if node.export_path is not None:
            paths["export_path"] = self._s3_url(node.export_path)
        if node.auto_import_policy is not None:
            paths["auto_import_policy"] = node.auto_import_policy.value

        filesystem = self._track(name, aws.fsx.LustreFileSystem(
            name,
            storage_capacity=node.storage_capacity_gib,
            subnet_ids=subnet.id,
            security_group_ids=[security_group.id],
            deployment_type=node.deployment_type.value,
            data_compression_type=node.compression.value,
            per_unit_storage_throughput=node.per_unit_storage_throughput,
            tags=self._tags(name),
            opts=removal_options(node.removal_policy),
            **paths,
        ))

        self._attributes[Ref(node.logical_id, "id")] = filesystem.id
        self._attributes[Ref(node.logical_id, "dns_name")] = filesystem.dns_name
        self._attributes[Ref(node.logical_id, "mount_name")] = filesystem.mount_name

    def _association(self, graph: ResourceGraph, node: DataRepositoryAssociation) -> None:
        name = self._name(graph, node.logical_id)
        association = self._track(name, aws.fsx.DataRepositoryAssociation(
            name,
            file_system_id=self._attributes[Ref(node.file_system_id, "id")],
            data_repository_path=self._s3_url(node.repository_path),
            file_system_path=node.file_system_path,
            batch_import_meta_data_on_create=node.batch_import_metadata,
            s3=aws.fsx.DataRepositoryAssociationS3Args(
                auto_import_policy=aws.fsx.DataRepositoryAssociationS3AutoImportPolicyArgs(
                    events=sorted_event_names(node.auto_import_events),
                ),
                auto_export_policy=aws.fsx.DataRepositoryAssociationS3AutoExportPolicyArgs(
                    events=sorted_event_names(node.auto_export_events),
                ),
            ),
            tags=self._tags(name),
        ))
        self._attributes[Ref(node.logical_id, "id")] = association.id

    def _instance(self, graph: ResourceGraph, node: Instance) -> None:
        name = self._name(graph, node.logical_id)
        network_id = self._network_of(graph, node.logical_id)
        placement = next(
            edge for edge in graph.edges_of_kind(EdgeKind.PLACED_IN)
            if edge.source == node.logical_id
        )
        subnet = self._subnets[(network_id, placement.get("subnet"))]
        security_group = self._security_group(graph, node, network_id)

        role = self._track(f"{name}-role", aws.iam.Role(
            f"{name}-role",
            assume_role_policy=EC2_ASSUME_ROLE_POLICY,
            tags=self._tags(f"{name}-role"),
        ))
        for policy in node.managed_policies:
            self._track(f"{name}-{policy.name}", aws.iam.RolePolicyAttachment(
                f"{name}-{policy.name}",
                role=role.name,
                policy_arn=policy.arn,
            ))
        profile = self._track(f"{name}-profile", aws.iam.InstanceProfile(
            f"{name}-profile", role=role.name
        ))

        user_data = None
        if node.user_data is not None:
            user_data = self._apply_refs(node.user_data.refs(), node.user_data.render)

        instance = self._track(name, aws.ec2.Instance(
            name,
            ami=self._ami(node.machine_image),
            instance_type=str(node.instance_type),
            subnet_id=subnet.id,
            vpc_security_group_ids=[security_group.id],
            iam_instance_profile=profile.name,
            user_data=user_data,
            user_data_replace_on_change=node.user_data_causes_replacement,
            tags=self._tags(name),
        ))

        self._attributes[Ref(node.logical_id, "id")] = instance.id
        self._attributes[Ref(node.logical_id, "instance_id")] = instance.id

    def _allow_port(self, graph: ResourceGraph, source: str, target: str, port: int) -> None:
        name = f"{self._name(graph, source)}-from-{target}-{port}"
        self._track(name, aws.ec2.SecurityGroupRule(
            name,
            type="ingress",
            protocol="tcp",
            from_port=port,
            to_port=port,
            security_group_id=self._security_groups[source].id,
            source_security_group_id=self._security_groups[target].id,
        ))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _security_group(self, graph: ResourceGraph, node: Resource, network_id: str) -> aws.ec2.SecurityGroup:
        name = f"{self._name(graph, node.logical_id)}-sg"
        security_group = self._track(name, aws.ec2.SecurityGroup(
            name,
            vpc_id=self._networks[network_id].id,
            description=f"{node.logical_id} security group",
            egress=[aws.ec2.SecurityGroupEgressArgs(
                protocol="-1",
                from_port=0,
                to_port=0,
                cidr_blocks=["0.0.0.0/0"],
            )],
            tags=self._tags(name),
        ))
        self._security_groups[node.logical_id] = security_group
        return security_group

    def _ami(self, image: MachineImage) -> str:
        if image.lookup == ImageLookup.SSM_PARAMETER:
            return aws.ssm.get_parameter(name=image.parameter_name).value
        return aws.ec2.get_ami(
            most_recent=True,
            owners=["amazon"],
            filters=[aws.ec2.GetAmiFilterArgs(name="name", values=[image.name_filter])],
        ).id

    def _s3_url(self, url) -> pulumi.Output:
        return self._attributes[Ref(url.bucket_logical_id, "bucket")].apply(url.format)

    def _apply_refs(self, refs: list[Ref], fn: Callable[[Callable[[Ref], str]], str]) -> pulumi.Output:
        """Call ``fn`` with a resolver once every referenced value is known."""
        values = [self._attributes[ref] for ref in refs]

        def resolve_all(resolved: list[str]) -> str:
            lookup = dict(zip(refs, resolved))
            return fn(lambda ref: lookup[ref])

        return pulumi.Output.all(*values).apply(resolve_all)

    def _network_of(self, graph: ResourceGraph, logical_id: str) -> str:
        for edge in graph.edges_of_kind(EdgeKind.PLACED_IN):
            if edge.source == logical_id:
                return edge.target
        raise EngineError(f"'{logical_id}' is not placed in a network")

    def _tags(self, name: str) -> dict[str, str]:
        return {"Name": name, **self.tags}

    def _name(self, graph: ResourceGraph, logical_id: str) -> str:
        return f"{graph.stack_id}-{logical_id}"

    def _track(self, name: str, resource: pulumi.Resource) -> Any:
        self.resources[name] = resource
        return resource
