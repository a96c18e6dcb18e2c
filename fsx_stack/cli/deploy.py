"""
Deployment helpers: drive the Pulumi CLI against the stack's Pulumi project.

The Pulumi program (``__main__.py`` next to ``Pulumi.yaml``) builds the
graph and submits it to the PulumiEngine. These helpers only run
``pulumi`` subcommands in that project directory, passing the stack
configuration through environment variables.
"""

import json
import os
import subprocess
from pathlib import Path
from typing import Any

from loguru import logger

from fsx_stack.config.stack import StackConfig


class DeploymentError(Exception):
    """Raised when a Pulumi command fails."""
    pass


class DeploymentCLI:
    """
    Wrapper around the Pulumi CLI.

    Provides commands for:
    - Previewing infrastructure changes
    - Deploying and destroying the stack
    - Reading stack outputs
    """

    def __init__(self, project_dir: str | Path = ".", config: StackConfig | None = None):
        """
        Initialize deployment CLI.

        Args:
            project_dir: Directory holding Pulumi.yaml
            config: Stack configuration passed to the Pulumi program
        """
        self.project_dir = Path(project_dir)
        self.config = config

    def preview(self, stack: str | None = None) -> subprocess.CompletedProcess:
        """Run 'pulumi preview'."""
        return self._run_pulumi_command(
            ["preview"], stack, description="Previewing infrastructure changes"
        )

    def up(self, stack: str | None = None, yes: bool = False) -> subprocess.CompletedProcess:
        """
        Run 'pulumi up' to deploy the stack.

        Args:
            stack: Optional Pulumi stack name
            yes: Skip confirmation prompt

        Raises:
            DeploymentError: If deployment fails
        """
        extra_args = ["--yes"] if yes else []
        return self._run_pulumi_command(
            ["up", *extra_args], stack, description="Deploying infrastructure"
        )

    def destroy(self, stack: str | None = None, yes: bool = False) -> subprocess.CompletedProcess:
        """Run 'pulumi destroy' to tear the stack down."""
        extra_args = ["--yes"] if yes else []
        return self._run_pulumi_command(
            ["destroy", *extra_args], stack, description="Destroying infrastructure"
        )

    def stack_outputs(self, stack: str | None = None) -> dict[str, Any]:
        """
        Get stack outputs as a dictionary.

        Raises:
            DeploymentError: If the command fails or prints invalid JSON
        """
        result = self._run_pulumi_command(
            ["stack", "output", "--json"], stack, description="Getting stack outputs"
        )

        try:
            return json.loads(result.stdout)
        except json.JSONDecodeError as e:
            raise DeploymentError(f"Failed to parse stack outputs: {e}") from e

    def environment(self) -> dict[str, str]:
        """Environment for the Pulumi program, carrying the stack configuration."""
        env = dict(os.environ)
        if self.config is not None:
            env["FSX_STACK_UBUNTU"] = "true" if self.config.ubuntu else "false"
            env["FSX_STACK_VARIANT"] = self.config.variant.value
            env["FSX_STACK_REMOVAL_POLICY"] = self.config.removal_policy.value
        return env

    def _run_pulumi_command(
        self,
        args: list[str],
        stack: str | None = None,
        description: str | None = None,
    ) -> subprocess.CompletedProcess:
        """
        Run a Pulumi CLI command in the project directory.

        Args:
            args: Pulumi subcommand and its arguments
            stack: Optional stack name
            description: Optional description for the log

        Returns:
            CompletedProcess with command results

        Raises:
            DeploymentError: If the project is missing or the command fails
        """
        if not (self.project_dir / "Pulumi.yaml").exists():
            raise DeploymentError(f"No Pulumi.yaml in {self.project_dir}")

        cmd = ["pulumi", *args, "--non-interactive"]
        if stack:
            cmd.extend(["--stack", stack])

        if description:
            logger.info(f"{description}: {' '.join(cmd)} (in {self.project_dir})")

        try:
            result = subprocess.run(
                cmd,
                cwd=self.project_dir,
                env=self.environment(),
                check=True,
                capture_output=True,
                text=True,
            )
        except FileNotFoundError as e:
            raise DeploymentError("pulumi CLI not found on PATH") from e
        except subprocess.CalledProcessError as e:
            error_msg = f"Pulumi command failed: {' '.join(cmd)}"
            if e.stderr:
                error_msg += f"\n{e.stderr}"
            raise DeploymentError(error_msg) from e

        logger.debug(f"Command completed: {' '.join(cmd)}")
        return result
