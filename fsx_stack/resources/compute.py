"""
Compute: the instance that mounts the filesystem, its image and grants.
"""

from dataclasses import dataclass, field
from enum import Enum
from importlib import resources as importlib_resources
from typing import TYPE_CHECKING, Any

from fsx_stack.resources.base import Resource, ResourceKind
from fsx_stack.resources.network import SubnetType

if TYPE_CHECKING:
    from fsx_stack.bootstrap.script import UserData


class OsFamily(str, Enum):
    """Operating system families the boot script knows how to provision."""

    AMAZON_LINUX = "amazon_linux"
    UBUNTU = "ubuntu"

    @property
    def default_user(self) -> str:
        return "ubuntu" if self == OsFamily.UBUNTU else "ec2-user"

    @property
    def default_group(self) -> str:
        return self.default_user


@dataclass(frozen=True)
class InstanceType:
    """Instance class and size, e.g. ``InstanceType("t2", "large")``."""

    instance_class: str
    size: str

    @classmethod
    def of(cls, instance_class: str, size: str) -> "InstanceType":
        return cls(instance_class, size)

    def __str__(self) -> str:
        return f"{self.instance_class}.{self.size}"


class ImageLookup(str, Enum):
    SSM_PARAMETER = "ssm_parameter"
    AMAZON_LINUX_GENERATION = "amazon_linux_generation"


UBUNTU_FOCAL_SSM_PARAMETER = (
    "/aws/service/canonical/ubuntu/server/focal/stable/current/amd64/hvm/ebs-gp2/ami-id"
)


@dataclass(frozen=True)
class MachineImage:
    """
    How the instance's image is located.

    Use the constructors rather than building one by hand:

        MachineImage.amazon_linux()                    # current AL2 generation
        MachineImage.from_ssm_parameter(path, OsFamily.UBUNTU)
    """

    lookup: ImageLookup
    os_family: OsFamily
    parameter_name: str | None = None
    generation: str | None = None

    @classmethod
    def amazon_linux(cls, generation: str = "amzn2") -> "MachineImage":
        return cls(
            lookup=ImageLookup.AMAZON_LINUX_GENERATION,
            os_family=OsFamily.AMAZON_LINUX,
            generation=generation,
        )

    @classmethod
    def from_ssm_parameter(cls, parameter_name: str, os_family: OsFamily) -> "MachineImage":
        return cls(
            lookup=ImageLookup.SSM_PARAMETER,
            os_family=os_family,
            parameter_name=parameter_name,
        )

    @property
    def name_filter(self) -> str:
        """AMI name pattern for generation lookups."""
        return f"{self.generation}-ami-hvm-*-x86_64-gp2"

    def to_dict(self) -> dict[str, Any]:
        return {
            "lookup": self.lookup.value,
            "os_family": self.os_family.value,
            "parameter_name": self.parameter_name,
            "generation": self.generation,
        }


@dataclass(frozen=True)
class ManagedPolicy:
    """A provider-curated permission bundle, referenced by name."""

    name: str

    @classmethod
    def from_aws_managed_policy_name(cls, name: str) -> "ManagedPolicy":
        return cls(name)

    @property
    def arn(self) -> str:
        return f"arn:aws:iam::aws:policy/{self.name}"


@dataclass(frozen=True)
class InitFile:
    """A file the boot-time configuration bundle places on the instance."""

    path: str
    mode: str
    content: str
    asset: str = ""

    @classmethod
    def from_asset(cls, path: str, asset: str, mode: str = "000644") -> "InitFile":
        """Load the file content from ``fsx_stack/assets/<asset>``."""
        content = (
            importlib_resources.files("fsx_stack.assets").joinpath(asset).read_text()
        )
        return cls(path=path, mode=mode, content=content, asset=asset)


@dataclass(frozen=True)
class InstanceInit:
    """Boot-time configuration bundle: files written before the mount is finalized."""

    files: tuple[InitFile, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "files": [
                {"path": f.path, "mode": f.mode, "asset": f.asset} for f in self.files
            ]
        }


@dataclass
class Instance(Resource):
    """
    Virtual machine in a private subnet.

    The instance's principal accumulates managed-policy grants through
    ``grant()``; the boot script is attached as ``user_data``.
    """

    instance_type: InstanceType = field(default_factory=lambda: InstanceType("t2", "large"))
    machine_image: MachineImage = field(default_factory=MachineImage.amazon_linux)
    subnet_type: SubnetType = SubnetType.PRIVATE_WITH_EGRESS
    user_data: "UserData | None" = None
    user_data_causes_replacement: bool = True
    init: InstanceInit | None = None
    managed_policies: list[ManagedPolicy] = field(default_factory=list)

    kind = ResourceKind.INSTANCE

    def __post_init__(self):
        if self.subnet_type != SubnetType.PRIVATE_WITH_EGRESS:
            raise ValueError(
                f"Instance '{self.logical_id}' must be placed in a private subnet with egress"
            )

    @property
    def os_family(self) -> OsFamily:
        return self.machine_image.os_family

    @property
    def instance_id(self):
        return self.ref("instance_id")

    def grant(self, policy: ManagedPolicy) -> None:
        """Attach a managed policy to the instance's principal."""
        if policy not in self.managed_policies:
            self.managed_policies.append(policy)

    def properties(self) -> dict[str, Any]:
        return {
            "instance_type": str(self.instance_type),
            "machine_image": self.machine_image.to_dict(),
            "subnet_type": self.subnet_type.value,
            "managed_policies": [p.name for p in self.managed_policies],
            "user_data": self.user_data.render() if self.user_data else None,
            "user_data_causes_replacement": self.user_data_causes_replacement,
            "init": self.init.to_dict() if self.init else None,
        }
