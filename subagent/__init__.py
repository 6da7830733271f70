"""Slot pool and file-mediated dispatch for VS Code chat subagents."""

from __future__ import annotations

import tomllib
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

_UNKNOWN_VERSION = "0.0.0"


def _source_checkout_version() -> str:
    """Version declared next to the package when running from a checkout."""
    pyproject = Path(__file__).resolve().parents[1] / "pyproject.toml"
    try:
        declared = tomllib.loads(pyproject.read_text(encoding="utf-8")).get("project", {}).get("version")
    except (OSError, tomllib.TOMLDecodeError, AttributeError):
        return _UNKNOWN_VERSION
    return declared if isinstance(declared, str) else _UNKNOWN_VERSION


try:
    __version__ = version("subagent")
except PackageNotFoundError:
    __version__ = _source_checkout_version()

__all__ = ["__version__"]
