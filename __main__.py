"""
Pulumi program for the FSx/S3 stack.

Configuration comes from the Pulumi stack config (``ubuntu``, ``variant``,
``removalPolicy``, ``tags``); ``FSX_STACK_*`` environment variables set by
the fsx-stack CLI take precedence.
"""

import pulumi

from fsx_stack import App, FsxS3Stack, StackConfig, setup_logging
from fsx_stack.core.stack import DEFAULT_STACK_ID
from fsx_stack.engines.pulumi_engine import PulumiEngine

setup_logging(level="INFO")

pulumi_config = StackConfig.from_pulumi(pulumi.Config())
env_config = StackConfig.from_env()
config = StackConfig.from_dict({
    **pulumi_config.model_dump(mode="json", exclude_unset=True),
    **env_config.model_dump(mode="json", exclude_unset=True),
})

app = App()
FsxS3Stack(app, DEFAULT_STACK_ID, config)
app.deploy(PulumiEngine(tags={"project": pulumi.get_project(), **config.tags}))
