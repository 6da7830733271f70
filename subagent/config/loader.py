import os
from pathlib import Path
from typing import Optional, Type, TypeVar

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel

from subagent.config.schema import SubagentConfig
from subagent.constants import DEFAULT_HOST_COMMAND
from subagent.logging_config import get_logger
from subagent.paths import CONFIG_PATH, ENV_PATH, TEMPLATES_DIR, default_subagent_root
from subagent.utils import expand_env_vars

logger = get_logger(__name__)

T = TypeVar("T", bound=BaseModel)


def _warn_unknown_keys(model: BaseModel, path: str, config_path: Path) -> None:
    """Recursively warn about unknown keys in a model and its nested models."""
    if hasattr(model, "model_extra") and model.model_extra:
        logger.warning("Unknown keys in %s at %s: %s", path, config_path, list(model.model_extra.keys()))

    for field_name, field_value in model.__dict__.items():
        if isinstance(field_value, BaseModel):
            _warn_unknown_keys(field_value, f"{path}.{field_name}", config_path)


def load_config(path: Path, model_class: Type[T]) -> T:
    """Load and validate configuration from a YAML file.

    Args:
        path: Path to the config.yml file.
        model_class: The Pydantic model class to use for validation.

    Returns:
        The validated configuration model.
    """
    if not path.exists():
        return model_class()

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Failed to read config file %s: %s", path, e)
        return model_class()

    expanded = expand_env_vars(raw)
    model = model_class.model_validate(expanded)
    _warn_unknown_keys(model, "root", path)
    return model


def load_subagent_config(path: Optional[Path] = None) -> SubagentConfig:
    """Load user-level configuration.

    Loads the dotenv file first so `${VAR}` references in the YAML can use it.
    """
    env_override = os.getenv("SUBAGENT_ENV_PATH")
    load_dotenv(Path(env_override).expanduser() if env_override else ENV_PATH)

    if path is None:
        config_override = os.getenv("SUBAGENT_CONFIG_PATH")
        path = Path(config_override).expanduser() if config_override else CONFIG_PATH
    return load_config(path, SubagentConfig)


def resolve_subagent_root(config: SubagentConfig, host_command: str = DEFAULT_HOST_COMMAND) -> Path:
    """Pool root for a host variant: configured value, else the per-variant default."""
    configured = config.insiders_root if host_command == "code-insiders" else config.subagent_root
    if configured:
        return Path(configured).expanduser()
    return default_subagent_root(host_command)


def resolve_templates_dir(config: SubagentConfig) -> Path:
    if config.templates_dir:
        return Path(config.templates_dir).expanduser()
    return TEMPLATES_DIR
