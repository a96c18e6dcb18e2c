"""
Tests for the fsx-stack CLI and the Pulumi CLI wrapper.
"""

import json
import subprocess

import pytest
import yaml
from click.testing import CliRunner
from loguru import logger

from fsx_stack.cli import DeploymentCLI, DeploymentError
from fsx_stack.cli.main import cli
from fsx_stack.config import StackConfig, Variant


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def clean_env(monkeypatch):
    for name in ("FSX_STACK_UBUNTU", "FSX_STACK_VARIANT", "FSX_STACK_REMOVAL_POLICY", "AWS_REGION"):
        monkeypatch.delenv(name, raising=False)


@pytest.mark.usefixtures("clean_env")
class TestSynth:
    def test_json(self, runner):
        result = runner.invoke(cli, ["synth", "--format", "json"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["stack_id"] == "FsxS3Stack"
        assert {node["kind"] for node in data["nodes"]} == {
            "network", "bucket", "filesystem", "instance"
        }

    def test_variant_option(self, runner):
        result = runner.invoke(
            cli, ["synth", "--variant", "persistent-2", "--stack-id", "Dev", "--format", "yaml"]
        )

        assert result.exit_code == 0
        data = yaml.safe_load(result.stdout)
        assert data["stack_id"] == "Dev"
        assert "MountName" in [output["name"] for output in data["outputs"]]

    def test_text(self, runner):
        result = runner.invoke(cli, ["synth"])

        assert result.exit_code == 0
        assert "Stack: FsxS3Stack (scratch)" in result.stdout
        assert "Lustre -[allows_port]-> Instance" in result.stdout

    def test_mermaid(self, runner):
        result = runner.invoke(cli, ["synth", "--format", "mermaid"])

        assert result.exit_code == 0
        assert "graph TD" in result.stdout

    def test_config_file(self, runner, tmp_path):
        path = tmp_path / "stack.yaml"
        path.write_text("variant: legacy\n")

        result = runner.invoke(cli, ["synth", "--config", str(path), "--format", "json"])

        assert result.exit_code == 0
        assert "chmod 777 /mnt/fsx" in result.stdout

    def test_invalid_config_file(self, runner, tmp_path):
        path = tmp_path / "stack.yaml"
        path.write_text("variant: gigantic\n")

        result = runner.invoke(cli, ["synth", "--config", str(path)])

        assert result.exit_code == 1
        assert "Synthesis failed" in result.output

    def test_invalid_variant_choice(self, runner):
        result = runner.invoke(cli, ["synth", "--variant", "gigantic"])

        assert result.exit_code != 0

    def test_leaves_host_logging_alone(self, runner):
        """Handlers installed before the CLI runs keep receiving records afterwards."""
        received = []
        handler_id = logger.add(received.append, format="{message}")
        try:
            result = runner.invoke(cli, ["--verbose", "synth", "--format", "json"])
            logger.info("host message")
        finally:
            logger.remove(handler_id)

        assert result.exit_code == 0
        assert str(received[-1]).strip() == "host message"


@pytest.mark.usefixtures("clean_env")
class TestUserData:
    def test_tokens(self, runner):
        result = runner.invoke(cli, ["user-data", "--ubuntu", "--variant", "hpc"])

        assert result.exit_code == 0
        assert result.stdout.startswith("#!/bin/bash\n")
        assert "${Lustre.dns_name}@tcp:/${Lustre.mount_name} /mnt/fsx lustre" in result.stdout
        assert result.stdout.endswith("reboot\n")

    def test_resolved(self, runner):
        result = runner.invoke(cli, ["user-data", "--resolve"])

        assert result.exit_code == 0
        assert "${" not in result.stdout
        assert ".fsx.us-east-1.amazonaws.com@tcp:/" in result.stdout
        assert result.stdout.endswith("mount -a\n")


@pytest.mark.usefixtures("clean_env")
class TestDeployCommands:
    def test_missing_project(self, runner, tmp_path):
        result = runner.invoke(cli, ["preview", "--project-dir", str(tmp_path)])

        assert result.exit_code == 1
        assert "No Pulumi.yaml" in result.output

    def test_up_shows_outputs(self, runner, tmp_path, monkeypatch):
        (tmp_path / "Pulumi.yaml").write_text("name: test\nruntime: python\n")
        calls = []

        def fake_run(cmd, **kwargs):
            calls.append((cmd, kwargs["env"]))
            stdout = '{"InstanceID": "i-123"}' if "output" in cmd else ""
            return subprocess.CompletedProcess(cmd, 0, stdout=stdout, stderr="")

        monkeypatch.setattr(subprocess, "run", fake_run)

        result = runner.invoke(
            cli, ["up", "--project-dir", str(tmp_path), "--variant", "hpc", "-s", "dev", "--yes"]
        )

        assert result.exit_code == 0
        assert "✓ Stack deployed" in result.stdout
        assert "InstanceID: i-123" in result.stdout
        up_cmd, env = calls[0]
        assert up_cmd == ["pulumi", "up", "--yes", "--non-interactive", "--stack", "dev"]
        assert env["FSX_STACK_VARIANT"] == "hpc"


class TestDeploymentCLI:
    def test_environment_carries_config(self):
        deployment = DeploymentCLI(config=StackConfig(ubuntu=True, variant=Variant.PERSISTENT_1))

        env = deployment.environment()

        assert env["FSX_STACK_UBUNTU"] == "true"
        assert env["FSX_STACK_VARIANT"] == "persistent-1"
        assert env["FSX_STACK_REMOVAL_POLICY"] == "destroy"

    def test_command_failure(self, tmp_path, monkeypatch):
        (tmp_path / "Pulumi.yaml").write_text("name: test\nruntime: python\n")

        def fake_run(cmd, **kwargs):
            raise subprocess.CalledProcessError(255, cmd, stderr="error: no stack selected")

        monkeypatch.setattr(subprocess, "run", fake_run)

        with pytest.raises(DeploymentError, match="no stack selected"):
            DeploymentCLI(project_dir=tmp_path).preview()

    def test_pulumi_not_installed(self, tmp_path, monkeypatch):
        (tmp_path / "Pulumi.yaml").write_text("name: test\nruntime: python\n")

        def fake_run(cmd, **kwargs):
            raise FileNotFoundError("pulumi")

        monkeypatch.setattr(subprocess, "run", fake_run)

        with pytest.raises(DeploymentError, match="not found"):
            DeploymentCLI(project_dir=tmp_path).destroy(yes=True)

    def test_invalid_outputs_json(self, tmp_path, monkeypatch):
        (tmp_path / "Pulumi.yaml").write_text("name: test\nruntime: python\n")
        monkeypatch.setattr(
            subprocess,
            "run",
            lambda cmd, **kwargs: subprocess.CompletedProcess(cmd, 0, stdout="not json", stderr=""),
        )

        with pytest.raises(DeploymentError, match="parse"):
            DeploymentCLI(project_dir=tmp_path).stack_outputs()
