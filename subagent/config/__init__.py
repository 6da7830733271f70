"""Configuration management.

Configuration is loaded once by the CLI entry point and passed down as
parameters; nothing below the CLI reads it from ambient state::

    from subagent.config import load_subagent_config, resolve_subagent_root

    config = load_subagent_config()
    root = resolve_subagent_root(config, "code")
"""

from subagent.config.loader import (
    load_config,
    load_subagent_config,
    resolve_subagent_root,
    resolve_templates_dir,
)
from subagent.config.schema import SubagentConfig, TimingConfig

__all__ = [
    "SubagentConfig",
    "TimingConfig",
    "load_config",
    "load_subagent_config",
    "resolve_subagent_root",
    "resolve_templates_dir",
]
