"""Slot pool management.

Slots are `subagent-<N>` directories under a pool root. Ordinal order is the
only priority: the lowest-numbered free slot is always reused or claimed
first, and new slots continue after the highest ordinal on disk.

Public entry points:
1) iter_slots / find_unlocked_slot / list_slot_workspaces / describe_slots
2) provision_slots
3) unlock_slots
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path

from subagent.constants import DEFAULT_LOCK_NAME, DEFAULT_WAKEUP_FILENAME, SLOT_PREFIX
from subagent.core import locks
from subagent.core.errors import SlotNotFoundError
from subagent.core.models import ProvisionResult, Slot, SlotInfo
from subagent.core.workspace import default_workspace_template
from subagent.logging_config import get_logger
from subagent.paths import TEMPLATES_DIR

logger = get_logger(__name__)


def parse_slot_ordinal(name: str) -> int | None:
    """Ordinal of a slot directory name, or None if it is not a slot name."""
    if not name.startswith(SLOT_PREFIX):
        return None
    suffix = name[len(SLOT_PREFIX) :]
    if not suffix.isascii() or not suffix.isdigit():
        return None
    return int(suffix)


def iter_slots(root: Path) -> list[Slot]:
    """Existing slots under `root` in ascending ordinal order."""
    if not root.is_dir():
        return []

    slots: list[Slot] = []
    for entry in root.iterdir():
        if not entry.is_dir():
            continue
        ordinal = parse_slot_ordinal(entry.name)
        if ordinal is None:
            continue
        slots.append(Slot(ordinal=ordinal, path=entry.resolve()))
    slots.sort(key=lambda slot: slot.ordinal)
    return slots


def find_unlocked_slot(root: Path, lock_name: str = DEFAULT_LOCK_NAME) -> Slot | None:
    """First slot (by ordinal) without a lock marker."""
    for slot in iter_slots(root):
        if not locks.is_locked(slot.path, lock_name):
            return slot
    return None


def list_slot_workspaces(root: Path) -> list[Path]:
    """Workspace files of provisioned slots, skipping slots without one."""
    return [slot.config_path for slot in iter_slots(root) if slot.config_path.exists()]


def describe_slots(root: Path, lock_name: str = DEFAULT_LOCK_NAME) -> list[SlotInfo]:
    infos: list[SlotInfo] = []
    for slot in iter_slots(root):
        locked = locks.is_locked(slot.path, lock_name)
        infos.append(
            SlotInfo(
                name=slot.name,
                path=str(slot.path),
                workspace=str(slot.config_path) if slot.config_path.exists() else None,
                locked=locked,
                status="locked" if locked else "available",
            )
        )
    return infos


def _default_wakeup_content(templates_dir: Path) -> str:
    return (templates_dir / DEFAULT_WAKEUP_FILENAME).read_text(encoding="utf-8")


def _write_slot_files(slot: Slot, workspace_json: str, wakeup_content: str) -> None:
    slot.path.mkdir(parents=True, exist_ok=True)
    slot.config_path.write_text(workspace_json, encoding="utf-8")
    slot.wakeup_path.write_text(wakeup_content, encoding="utf-8")


def provision_slots(
    target_root: Path,
    count: int,
    *,
    lock_name: str = DEFAULT_LOCK_NAME,
    force: bool = False,
    dry_run: bool = False,
    workspace_template: Mapping[str, object] | None = None,
    wakeup_content: str | None = None,
    templates_dir: Path = TEMPLATES_DIR,
) -> ProvisionResult:
    """Make sure `count` unlocked slots exist under `target_root`.

    Existing unlocked slots are reused first (lowest ordinal first). Locked
    slots are skipped unless `force`, which unlocks them and rewrites their
    workspace file in place. Any shortfall is covered by new slots numbered
    after the highest existing ordinal.

    Args:
        target_root: Pool root, created if missing (unless dry_run)
        count: Number of unlocked slots wanted
        lock_name: Lock marker file name
        force: Unlock and rewrite existing slots regardless of lock status
        dry_run: Decide everything but touch nothing
        workspace_template: Workspace document written to each slot
        wakeup_content: Wake-up chat mode written next to it
        templates_dir: Where the built-in templates are read from when the
            two arguments above are omitted

    Returns:
        ProvisionResult describing created and skipped slots

    Raises:
        ValueError: count is not a positive integer
    """
    if isinstance(count, bool) or not isinstance(count, int) or count < 1:
        raise ValueError("subagents must be a positive integer")

    if workspace_template is None:
        workspace_template = default_workspace_template(templates_dir)
    if wakeup_content is None:
        wakeup_content = _default_wakeup_content(templates_dir)
    workspace_json = json.dumps(dict(workspace_template), indent=2, ensure_ascii=False)

    root = target_root.expanduser().resolve()
    if not dry_run:
        root.mkdir(parents=True, exist_ok=True)

    existing = iter_slots(root)
    highest = max((slot.ordinal for slot in existing), default=0)
    locked_paths = [slot.path for slot in existing if locks.is_locked(slot.path, lock_name)]

    result = ProvisionResult()
    provisioned = 0

    for slot in existing:
        if provisioned >= count:
            break

        is_locked = slot.path in locked_paths
        if is_locked and not force:
            continue

        if force:
            if not dry_run:
                if is_locked:
                    locks.unlock(slot.path, lock_name)
                _write_slot_files(slot, workspace_json, wakeup_content)
            if is_locked:
                locked_paths.remove(slot.path)
            result.created.append(slot.path)
            provisioned += 1
            continue

        if not dry_run and not slot.config_path.exists():
            logger.debug("Backfilling missing workspace file for %s", slot.name)
            _write_slot_files(slot, workspace_json, wakeup_content)
        result.skipped_existing.append(slot.path)
        provisioned += 1

    next_ordinal = highest
    while provisioned < count:
        next_ordinal += 1
        slot = Slot.at(root, next_ordinal)
        if not dry_run:
            _write_slot_files(slot, workspace_json, wakeup_content)
        result.created.append(slot.path)
        provisioned += 1

    result.skipped_locked = locked_paths
    logger.debug(
        "Provisioned %s: created=%d skipped_existing=%d skipped_locked=%d dry_run=%s",
        root,
        len(result.created),
        len(result.skipped_existing),
        len(result.skipped_locked),
        dry_run,
    )
    return result


def unlock_slots(
    target_root: Path,
    *,
    slot_name: str | None = None,
    unlock_all: bool = False,
    lock_name: str = DEFAULT_LOCK_NAME,
    dry_run: bool = False,
) -> list[Path]:
    """Remove lock markers.

    Args:
        target_root: Pool root
        slot_name: Single slot to unlock (e.g. "subagent-1")
        unlock_all: Unlock every slot instead
        lock_name: Lock marker file name
        dry_run: Report what would be unlocked without removing anything

    Returns:
        Slot paths that were locked, in ordinal order

    Raises:
        ValueError: Neither or both of slot_name and unlock_all were given
        SlotNotFoundError: The root or the named slot does not exist
    """
    if (slot_name is None) == (not unlock_all):
        raise ValueError("must specify either --subagent or --all (but not both)")

    root = target_root.expanduser().resolve()
    if not root.exists():
        raise SlotNotFoundError(f"target root {root} does not exist")

    if unlock_all:
        unlocked: list[Path] = []
        for slot in iter_slots(root):
            if locks.is_locked(slot.path, lock_name):
                if not dry_run:
                    locks.unlock(slot.path, lock_name)
                unlocked.append(slot.path)
        return unlocked

    slot_dir = root / str(slot_name)
    if not slot_dir.is_dir():
        raise SlotNotFoundError(f"{slot_name} does not exist in {root}")
    if not locks.is_locked(slot_dir, lock_name):
        return []
    if not dry_run:
        locks.unlock(slot_dir, lock_name)
    return [slot_dir]
