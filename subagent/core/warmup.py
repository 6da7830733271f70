"""Open slot windows ahead of time so the first dispatch does not pay for startup."""

from __future__ import annotations

from pathlib import Path

from subagent.core.errors import EmptyPoolError
from subagent.core.launcher import Launcher
from subagent.core.pool import list_slot_workspaces
from subagent.logging_config import get_logger

logger = get_logger(__name__)


async def warmup_slots(root: Path, count: int = 1, *, dry_run: bool = False, launcher: Launcher) -> list[Path]:
    """Open the workspaces of the first `count` provisioned slots.

    Args:
        root: Pool root
        count: Number of windows to open, at least one
        dry_run: Return the selection without opening anything
        launcher: Host editor launcher

    Returns:
        Workspace files selected, in ordinal order

    Raises:
        EmptyPoolError: No slot under `root` has a workspace file
    """
    workspaces = list_slot_workspaces(root.expanduser())
    if not workspaces:
        raise EmptyPoolError(f"No subagent workspaces found in {root}")

    selected = workspaces[: max(1, count)]
    for workspace in selected:
        if dry_run:
            logger.info("Would open %s", workspace)
            continue
        logger.info("Opening %s", workspace)
        await launcher.open_workspace(workspace)
    return selected
