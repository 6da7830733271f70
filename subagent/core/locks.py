"""Cooperative slot locks.

A slot is busy while a marker file exists inside its directory. The marker
carries no content. This is a convention shared with the worker running in
the host editor (which removes the marker through `subagent ... unlock`), not
a mutex: two processes that observe the same slot as free at the same moment
can both claim it.
"""

from __future__ import annotations

from pathlib import Path

from subagent.constants import DEFAULT_LOCK_NAME


def lock_path(slot_dir: Path, lock_name: str = DEFAULT_LOCK_NAME) -> Path:
    return slot_dir / lock_name


def is_locked(slot_dir: Path, lock_name: str = DEFAULT_LOCK_NAME) -> bool:
    return lock_path(slot_dir, lock_name).exists()


def lock(slot_dir: Path, lock_name: str = DEFAULT_LOCK_NAME) -> Path:
    """Create (or truncate) the lock marker. Last writer wins."""
    marker = lock_path(slot_dir, lock_name)
    marker.write_text("", encoding="utf-8")
    return marker


def unlock(slot_dir: Path, lock_name: str = DEFAULT_LOCK_NAME) -> bool:
    """Remove the lock marker.

    Returns:
        True if a marker was removed, False if the slot was not locked
    """
    marker = lock_path(slot_dir, lock_name)
    try:
        marker.unlink()
    except FileNotFoundError:
        return False
    return True
