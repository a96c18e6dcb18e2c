"""
fsx-stack CLI - inspect and deploy the FSx for Lustre + S3 stack.
"""

import json
import sys

import click
import yaml

from fsx_stack.cli.deploy import DeploymentCLI, DeploymentError
from fsx_stack.config.stack import ConfigError, StackConfig, Variant
from fsx_stack.core.graph import GraphError
from fsx_stack.core.stack import DEFAULT_STACK_ID, build_graph
from fsx_stack.engines.memory import InMemoryEngine
from fsx_stack.logging import setup_logging, teardown_logging
from fsx_stack.resources.base import RemovalPolicy, ResourceKind


def config_options(fn):
    """Options shared by every command that builds a stack."""
    options = [
        click.option(
            "--config",
            "config_file",
            type=click.Path(exists=True, dir_okay=False),
            help="YAML file with stack configuration",
        ),
        click.option("--ubuntu/--amazon-linux", default=None, help="Machine image family"),
        click.option(
            "--variant",
            type=click.Choice([v.value for v in Variant]),
            default=None,
            help="Stack variant",
        ),
        click.option(
            "--removal-policy",
            type=click.Choice([p.value for p in RemovalPolicy]),
            default=None,
            help="Destroy storage with the stack, or retain it",
        ),
    ]
    for option in reversed(options):
        fn = option(fn)
    return fn


def _load_config(config_file, ubuntu, variant, removal_policy) -> StackConfig:
    overrides = {"ubuntu": ubuntu, "variant": variant, "removal_policy": removal_policy}
    if config_file:
        base = StackConfig.from_yaml(config_file).model_dump(mode="json")
        base.update({k: v for k, v in overrides.items() if v is not None})
        return StackConfig.from_dict(base)
    return StackConfig.from_env(**overrides)


@click.group()
@click.version_option(version="0.1.0")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool):
    """
    fsx-stack - FSx for Lustre backed by S3, with a compute instance that mounts it.

    Build the stack's resource graph, inspect it, and deploy it with Pulumi.
    """
    handler_ids = setup_logging(level="DEBUG" if verbose else "WARNING")
    ctx.call_on_close(lambda: teardown_logging(handler_ids))


@cli.command()
@config_options
@click.option("--stack-id", default=DEFAULT_STACK_ID, help="Stack identifier")
@click.option(
    "--format", "output_format",
    type=click.Choice(["json", "yaml", "mermaid", "text"]),
    default="text",
)
def synth(config_file, ubuntu, variant, removal_policy, stack_id, output_format):
    """
    Build the resource graph and print it.

    Example:
        fsx-stack synth
        fsx-stack synth --ubuntu --variant hpc --format json
        fsx-stack synth --format mermaid
    """
    try:
        config = _load_config(config_file, ubuntu, variant, removal_policy)
        graph = build_graph(config, stack_id)
    except (ConfigError, GraphError, ValueError) as e:
        click.echo(f"✗ Synthesis failed: {e}", err=True)
        sys.exit(1)

    if output_format == "json":
        click.echo(json.dumps(graph.to_dict(), indent=2))
    elif output_format == "yaml":
        click.echo(yaml.safe_dump(graph.to_dict(), sort_keys=False))
    elif output_format == "mermaid":
        click.echo("```mermaid")
        click.echo(graph.to_mermaid())
        click.echo("```")
    else:
        click.echo(f"\n Stack: {graph.stack_id} ({config.variant.value})")
        click.echo(f"{'=' * 50}")
        click.echo(f"\n Resources: {len(graph.nodes)}")
        for logical_id in graph.dependency_order():
            click.echo(f"  - {logical_id} ({graph.nodes[logical_id].kind.value})")
        click.echo(f"\n Edges: {len(graph.edges)}")
        for edge in graph.edges:
            click.echo(f"  - {edge.source} -[{edge.kind.value}]-> {edge.target}")
        click.echo(f"\n Outputs: {', '.join(graph.outputs) or 'none'}")


@cli.command(name="user-data")
@config_options
@click.option(
    "--resolve/--tokens",
    default=False,
    help="Fill in generated values from a dry run instead of ${Id.attr} tokens",
)
def user_data(config_file, ubuntu, variant, removal_policy, resolve):
    """
    Print the instance boot script.

    Example:
        fsx-stack user-data --ubuntu --variant hpc
    """
    try:
        config = _load_config(config_file, ubuntu, variant, removal_policy)
        graph = build_graph(config)
    except (ConfigError, GraphError, ValueError) as e:
        click.echo(f"✗ Synthesis failed: {e}", err=True)
        sys.exit(1)

    if resolve:
        materialized = InMemoryEngine(region=config.region).submit(graph)
        for script in materialized.user_data.values():
            click.echo(script, nl=False)
        return

    for instance in graph.nodes_of_kind(ResourceKind.INSTANCE):
        click.echo(instance.user_data.render(), nl=False)


def _deployment(project_dir, config_file, ubuntu, variant, removal_policy) -> DeploymentCLI:
    try:
        config = _load_config(config_file, ubuntu, variant, removal_policy)
    except ConfigError as e:
        click.echo(f"✗ {e}", err=True)
        sys.exit(1)
    return DeploymentCLI(project_dir=project_dir, config=config)


def pulumi_options(fn):
    fn = click.option("--stack", "-s", default=None, help="Pulumi stack name")(fn)
    fn = click.option(
        "--project-dir",
        type=click.Path(exists=True, file_okay=False),
        default=".",
        help="Directory holding Pulumi.yaml",
    )(fn)
    return fn


@cli.command()
@config_options
@pulumi_options
def preview(config_file, ubuntu, variant, removal_policy, project_dir, stack):
    """Preview the infrastructure changes with 'pulumi preview'."""
    deployment = _deployment(project_dir, config_file, ubuntu, variant, removal_policy)
    try:
        result = deployment.preview(stack)
    except DeploymentError as e:
        click.echo(f"✗ {e}", err=True)
        sys.exit(1)
    click.echo(result.stdout)


@cli.command()
@config_options
@pulumi_options
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
def up(config_file, ubuntu, variant, removal_policy, project_dir, stack, yes):
    """
    Deploy the stack with 'pulumi up' and show its outputs.

    Example:
        fsx-stack up --variant persistent-2 --stack dev --yes
    """
    deployment = _deployment(project_dir, config_file, ubuntu, variant, removal_policy)
    try:
        deployment.up(stack, yes=yes)
        outputs = deployment.stack_outputs(stack)
    except DeploymentError as e:
        click.echo(f"✗ Deployment failed: {e}", err=True)
        sys.exit(1)

    click.echo("✓ Stack deployed")
    for key, value in outputs.items():
        click.echo(f"  {key}: {value}")


@cli.command()
@config_options
@pulumi_options
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
def destroy(config_file, ubuntu, variant, removal_policy, project_dir, stack, yes):
    """Tear the stack down with 'pulumi destroy'."""
    deployment = _deployment(project_dir, config_file, ubuntu, variant, removal_policy)
    try:
        deployment.destroy(stack, yes=yes)
    except DeploymentError as e:
        click.echo(f"✗ Destroy failed: {e}", err=True)
        sys.exit(1)
    click.echo("✓ Stack destroyed")


@cli.command()
@pulumi_options
def outputs(project_dir, stack):
    """Print the deployed stack's outputs as JSON."""
    deployment = DeploymentCLI(project_dir=project_dir)
    try:
        values = deployment.stack_outputs(stack)
    except DeploymentError as e:
        click.echo(f"✗ {e}", err=True)
        sys.exit(1)
    click.echo(json.dumps(values, indent=2))


if __name__ == "__main__":
    cli()
