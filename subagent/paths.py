from __future__ import annotations

from pathlib import Path

from subagent.constants import HOST_VARIANTS

SUBAGENT_HOME = (Path("~") / ".subagent").expanduser()
CONFIG_PATH = SUBAGENT_HOME / "config.yml"
ENV_PATH = SUBAGENT_HOME / ".env"
LOG_PATH = SUBAGENT_HOME / "logs" / "subagent.log"
TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"


def default_subagent_root(host_command: str) -> Path:
    """Pool root for a host variant when nothing is configured."""
    folder = HOST_VARIANTS.get(host_command, HOST_VARIANTS["code"])
    return SUBAGENT_HOME / folder
