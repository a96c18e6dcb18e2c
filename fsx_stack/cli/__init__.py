"""CLI and deployment helpers for fsx-stack."""

from fsx_stack.cli.deploy import DeploymentCLI, DeploymentError

__all__ = [
    "DeploymentCLI",
    "DeploymentError",
]
