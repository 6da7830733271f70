"""Workspace template materialization.

A workspace template is a VS Code `.code-workspace` document. Before a slot
opens it, every relative path in the template is resolved against the
template's own directory and a `{"path": "."}` folder is put first, so that
the slot directory itself is always part of the workspace while the
template's folders keep pointing where the template author meant.
"""

from __future__ import annotations

import json
import os
import re
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath, PureWindowsPath

import json5

from subagent.constants import CHAT_LOCATION_SETTINGS, DEFAULT_WORKSPACE_FILENAME
from subagent.core.errors import (
    FoldersNotArrayError,
    InvalidTemplateError,
    MissingFoldersError,
    TemplateIsDirectoryError,
    TemplateNotFoundError,
)

_GLOB_CHARS = re.compile(r"[*?\[{]")

JsonObject = dict[str, object]


@dataclass
class WorkspaceDocument:
    """Parsed workspace file.

    Only `folders` and `settings` are interpreted. Every other top-level key is
    carried in `extra`, and `key_order` remembers where each key appeared so
    that serialization reproduces the input layout.
    """

    folders: list[JsonObject]
    settings: JsonObject | None = None
    extra: JsonObject = field(default_factory=dict)
    key_order: list[str] = field(default_factory=list)

    @classmethod
    def parse(cls, content: str) -> "WorkspaceDocument":
        try:
            raw = json5.loads(content)
        except ValueError as e:
            raise InvalidTemplateError(f"Invalid workspace JSON: {e}") from e

        if not isinstance(raw, dict):
            raise InvalidTemplateError("Invalid workspace JSON: top level must be an object")
        if "folders" not in raw or raw["folders"] is None:
            raise MissingFoldersError("Workspace file must contain a 'folders' array")

        folders = raw["folders"]
        if not isinstance(folders, list):
            raise FoldersNotArrayError("Workspace 'folders' must be an array")
        for entry in folders:
            if not isinstance(entry, dict) or not isinstance(entry.get("path"), str):
                raise InvalidTemplateError("Workspace folder entries must be objects with a 'path' string")

        settings = raw.get("settings")
        if not isinstance(settings, dict):
            # Non-object settings pass through untouched
            settings = None
        extra = {k: v for k, v in raw.items() if k != "folders" and not (k == "settings" and settings is not None)}
        return cls(
            folders=list(folders),
            settings=settings,
            extra=extra,
            key_order=list(raw.keys()),
        )

    def to_dict(self) -> JsonObject:
        known: JsonObject = {"folders": self.folders}
        if self.settings is not None:
            known["settings"] = self.settings

        result: JsonObject = {}
        for key in self.key_order:
            if key in known:
                result[key] = known[key]
            elif key in self.extra:
                result[key] = self.extra[key]
        for key, value in known.items():
            result.setdefault(key, value)
        return result

    def dumps(self) -> str:
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False)


def is_absolute_path(value: str) -> bool:
    """True for POSIX absolute paths and Windows drive or UNC paths."""
    return PurePosixPath(value).is_absolute() or PureWindowsPath(value).is_absolute()


def _resolve(template_dir: Path, relative: str) -> str:
    return os.path.abspath(os.path.join(template_dir, relative))


def _resolve_location_key(location: str, template_dir: Path) -> str:
    """Resolve a path-or-glob settings key, leaving the glob part verbatim."""
    if is_absolute_path(location):
        return location

    normalized = location.replace("\\", "/")
    match = _GLOB_CHARS.search(normalized)
    if match is None:
        return _resolve(template_dir, normalized).replace("\\", "/")

    separator = normalized.rfind("/", 0, match.start())
    if separator == -1:
        base, pattern = ".", "/" + normalized
    else:
        base, pattern = normalized[:separator], normalized[separator:]
    resolved_base = _resolve(template_dir, base).replace("\\", "/").rstrip("/")
    return resolved_base + pattern


def transform_workspace(document: WorkspaceDocument, template_dir: Path) -> WorkspaceDocument:
    """Return a slot-ready copy of `document`. The input is not modified."""
    folders: list[JsonObject] = [{"path": "."}]
    for folder in document.folders:
        folder_path = str(folder["path"])
        if is_absolute_path(folder_path):
            folders.append(dict(folder))
        else:
            folders.append({**folder, "path": _resolve(template_dir, folder_path)})

    settings = None
    if document.settings is not None:
        settings = dict(document.settings)
        for setting_key in CHAT_LOCATION_SETTINGS:
            locations = settings.get(setting_key)
            if isinstance(locations, dict):
                settings[setting_key] = {
                    _resolve_location_key(str(location), template_dir): enabled
                    for location, enabled in locations.items()
                }

    return WorkspaceDocument(
        folders=folders,
        settings=settings,
        extra=dict(document.extra),
        key_order=list(document.key_order),
    )


def transform_workspace_paths(workspace_content: str, template_dir: Path | str) -> str:
    """Materialize workspace template text for a slot.

    1. Resolve relative folder paths (including ".") against `template_dir`
    2. Insert {"path": "."} as the first folder (the slot directory)
    3. Resolve relative keys of the chat location settings, keeping any glob
       suffix as written

    Args:
        workspace_content: Template text (JSON, comments and trailing commas allowed)
        template_dir: Directory containing the template file

    Returns:
        Materialized workspace JSON with 2-space indentation

    Raises:
        InvalidTemplateError: Content is not a workspace object
        MissingFoldersError: No `folders` entry
        FoldersNotArrayError: `folders` is not a list
    """
    document = WorkspaceDocument.parse(workspace_content)
    return transform_workspace(document, Path(template_dir)).dumps()


def check_template_path(template_path: Path) -> Path:
    """Validate a user-supplied template path and return it absolute."""
    resolved = template_path.expanduser().resolve()
    if not resolved.exists():
        raise TemplateNotFoundError(f"Workspace template not found: {resolved}")
    if resolved.is_dir():
        raise TemplateIsDirectoryError(f"Workspace template must be a file, not a directory: {resolved}")
    return resolved


def materialize_template_file(template_path: Path) -> str:
    """Read a template file and materialize it against its own directory."""
    resolved = check_template_path(template_path)
    try:
        content = resolved.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise InvalidTemplateError(f"Invalid workspace JSON: {e}") from e
    return transform_workspace_paths(content, resolved.parent)


def default_workspace_template(templates_dir: Path) -> JsonObject:
    """Built-in workspace template as a JSON object."""
    template_path = templates_dir / DEFAULT_WORKSPACE_FILENAME
    if not template_path.is_file():
        raise TemplateNotFoundError(f"Default workspace template not found: {template_path}")
    return WorkspaceDocument.parse(template_path.read_text(encoding="utf-8")).to_dict()
