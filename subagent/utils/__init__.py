"""Utility functions for subagent."""

import os
import re
from datetime import datetime, timezone

_ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}|\$([A-Z_][A-Z0-9_]*)")


def expand_env_vars(config: object) -> object:
    """Recursively expand environment variables in config.

    Replaces ${VAR} and $VAR patterns with environment variable values.
    Unknown variables are left untouched.

    Args:
        config: Configuration object (dict, list, str, or primitive)

    Returns:
        Configuration with all known variable references replaced
    """
    if isinstance(config, dict):
        return {k: expand_env_vars(v) for k, v in config.items()}  # type: ignore[misc]
    if isinstance(config, list):
        return [expand_env_vars(item) for item in config]
    if isinstance(config, str):

        def replace_env_var(match: re.Match[str]) -> str:
            env_var = match.group(1) or match.group(2)
            return os.getenv(env_var, match.group(0))

        return _ENV_VAR_PATTERN.sub(replace_env_var, config)
    return config


def message_timestamp(now: datetime | None = None) -> str:
    """UTC timestamp prefix for message artifacts (YYYYMMDDHHMMSS)."""
    moment = now or datetime.now(timezone.utc)
    return moment.astimezone(timezone.utc).strftime("%Y%m%d%H%M%S")
