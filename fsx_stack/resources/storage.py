"""
Object storage: the bucket that backs the Lustre filesystem.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from fsx_stack.resources.base import RemovalPolicy, Resource, ResourceKind


class StorageClass(str, Enum):
    """S3 storage tiers a lifecycle rule can transition objects to."""

    INFREQUENT_ACCESS = "STANDARD_IA"
    ONE_ZONE_INFREQUENT_ACCESS = "ONEZONE_IA"
    INTELLIGENT_TIERING = "INTELLIGENT_TIERING"
    GLACIER = "GLACIER"


class ObjectOwnership(str, Enum):
    BUCKET_OWNER_ENFORCED = "BucketOwnerEnforced"
    BUCKET_OWNER_PREFERRED = "BucketOwnerPreferred"
    OBJECT_WRITER = "ObjectWriter"


@dataclass(frozen=True)
class Transition:
    """Move objects to ``storage_class`` once they are ``after_days`` old."""

    storage_class: StorageClass = StorageClass.INFREQUENT_ACCESS
    after_days: int = 30


@dataclass(frozen=True)
class LifecycleRule:
    """A lifecycle rule applied to every object in the bucket."""

    transitions: tuple[Transition, ...] = (Transition(),)
    enabled: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "enabled": self.enabled,
            "transitions": [
                {"storage_class": t.storage_class.value, "after_days": t.after_days}
                for t in self.transitions
            ],
        }


STANDARD_LIFECYCLE_RULE = LifecycleRule()
"""Objects older than 30 days move to the infrequent-access tier"""


@dataclass
class Bucket(Resource):
    """
    Durable object-store bucket.

    Ownership is always enforced by the bucket owner: ACL-based ownership
    is rejected at construction time.

    Example:
        bucket = Bucket(
            "BackingBucket",
            removal_policy=RemovalPolicy.DESTROY,
            auto_delete_objects=True,
            lifecycle_rules=[STANDARD_LIFECYCLE_RULE],
        )
        bucket.s3_url()  # Ref token for s3://<bucket name>
    """

    object_ownership: ObjectOwnership = ObjectOwnership.BUCKET_OWNER_ENFORCED
    """Object ownership setting"""

    removal_policy: RemovalPolicy = RemovalPolicy.RETAIN
    """Whether the bucket is destroyed with the stack"""

    auto_delete_objects: bool = False
    """Empty the bucket on stack deletion so it can actually be destroyed"""

    lifecycle_rules: list[LifecycleRule] = field(default_factory=list)
    """Lifecycle rules"""

    kind = ResourceKind.BUCKET

    def __post_init__(self):
        if self.object_ownership != ObjectOwnership.BUCKET_OWNER_ENFORCED:
            raise ValueError(
                f"Bucket '{self.logical_id}' must enforce bucket-owner ownership, "
                f"got {self.object_ownership.value}"
            )
        if self.auto_delete_objects and self.removal_policy != RemovalPolicy.DESTROY:
            raise ValueError(
                "auto_delete_objects requires removal_policy=DESTROY"
            )

    def s3_url(self) -> "S3Url":
        return S3Url(self.logical_id)

    def properties(self) -> dict[str, Any]:
        return {
            "object_ownership": self.object_ownership.value,
            "removal_policy": self.removal_policy.value,
            "auto_delete_objects": self.auto_delete_objects,
            "lifecycle_rules": [rule.to_dict() for rule in self.lifecycle_rules],
        }


@dataclass(frozen=True)
class S3Url:
    """``s3://`` URL of a bucket (optionally a key prefix), resolved at apply time."""

    bucket_logical_id: str
    key: str = ""

    def __str__(self) -> str:
        suffix = f"/{self.key}" if self.key else ""
        return f"s3://${{{self.bucket_logical_id}.bucket}}{suffix}"

    def format(self, bucket_name: str) -> str:
        suffix = f"/{self.key}" if self.key else ""
        return f"s3://{bucket_name}{suffix}"
