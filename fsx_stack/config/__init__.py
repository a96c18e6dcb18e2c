"""
Configuration for FSx/S3 stacks.
"""

from fsx_stack.config.stack import ConfigError, StackConfig, Variant

__all__ = [
    "ConfigError",
    "StackConfig",
    "Variant",
]
