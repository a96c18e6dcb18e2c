"""
Stack configuration.

The configuration surface is deliberately small: the OS image family,
which variant to build, and whether storage is destroyed with the stack.
Everything else is compiled into the variant profiles.
"""

import os
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from fsx_stack.resources.base import RemovalPolicy


class ConfigError(Exception):
    """Raised when a configuration source cannot be loaded or is invalid."""
    pass


class Variant(str, Enum):
    """Compiled-in stack variants; see ``fsx_stack.core.variants``."""

    LEGACY = "legacy"
    SCRATCH = "scratch"
    PERSISTENT_1 = "persistent-1"
    PERSISTENT_2 = "persistent-2"
    HPC = "hpc"


_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


class StackConfig(BaseModel):
    """
    Configuration for one FSx/S3 stack.

    Example:
        config = StackConfig(ubuntu=True, variant="hpc")

        # From a YAML file
        config = StackConfig.from_yaml("stack.yaml")

        # From the environment (FSX_STACK_UBUNTU, FSX_STACK_VARIANT, ...)
        config = StackConfig.from_env()
    """

    model_config = ConfigDict(frozen=True, use_enum_values=False)

    ubuntu: bool = Field(default=False, description="Use the Ubuntu image instead of Amazon Linux")
    variant: Variant = Field(default=Variant.SCRATCH, description="Stack variant to build")
    removal_policy: RemovalPolicy = Field(
        default=RemovalPolicy.DESTROY,
        description="Destroy bucket and filesystem with the stack, or retain them",
    )
    region: str = Field(default="us-east-1", description="AWS region")
    tags: dict[str, str] = Field(
        default_factory=dict, description="Tags applied to every resource"
    )

    @property
    def destroy_with_stack(self) -> bool:
        return self.removal_policy == RemovalPolicy.DESTROY

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StackConfig":
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigError(f"Invalid stack configuration: {e}") from e

    @classmethod
    def from_yaml(cls, path: str | Path) -> "StackConfig":
        """
        Load configuration from a YAML file.

        Args:
            path: File holding a mapping of StackConfig fields

        Raises:
            ConfigError: If the file is missing, malformed or invalid
        """
        config_path = Path(path)
        if not config_path.exists():
            raise ConfigError(f"Config file not found: {config_path}")

        try:
            data = yaml.safe_load(config_path.read_text()) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Failed to parse {config_path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"{config_path} must contain a mapping")

        return cls.from_dict(data)

    @classmethod
    def from_env(cls, **overrides: Any) -> "StackConfig":
        """Load configuration from environment variables; keyword arguments win."""
        data: dict[str, Any] = {}

        ubuntu = os.getenv("FSX_STACK_UBUNTU")
        if ubuntu is not None:
            data["ubuntu"] = _parse_bool("FSX_STACK_UBUNTU", ubuntu)

        for key, env_var in (
            ("variant", "FSX_STACK_VARIANT"),
            ("removal_policy", "FSX_STACK_REMOVAL_POLICY"),
            ("region", "AWS_REGION"),
        ):
            value = os.getenv(env_var)
            if value:
                data[key] = value

        data.update({k: v for k, v in overrides.items() if v is not None})
        return cls.from_dict(data)

    @classmethod
    def from_pulumi(cls, config: Any) -> "StackConfig":
        """
        Load configuration from a ``pulumi.Config``.

        Reads the keys ``ubuntu``, ``variant``, ``removalPolicy`` and
        ``tags``; the region comes from ``aws:region`` when set.
        """
        data: dict[str, Any] = {}

        ubuntu = config.get_bool("ubuntu")
        if ubuntu is not None:
            data["ubuntu"] = ubuntu

        variant = config.get("variant")
        if variant:
            data["variant"] = variant

        removal_policy = config.get("removalPolicy")
        if removal_policy:
            data["removal_policy"] = removal_policy

        tags = config.get_object("tags")
        if tags:
            data["tags"] = tags

        import pulumi

        region = pulumi.Config("aws").get("region")
        if region:
            data["region"] = region

        return cls.from_dict(data)


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigError(f"{name} must be a boolean, got '{value}'")
