"""Filesystem polling.

The host editor has no push channel back to us; everything it reports is a
file appearing on disk. These helpers poll at a fixed interval with
`asyncio.sleep`, so a caller can cancel a wait by cancelling its task.
"""

from __future__ import annotations

import asyncio
import time
from pathlib import Path

from subagent.core.errors import HostReadinessTimeout, ResponseUnreadableError
from subagent.logging_config import get_logger

logger = get_logger(__name__)


async def wait_for_path(path: Path, *, poll_interval_s: float, timeout_s: float | None = None) -> None:
    """Wait until `path` exists.

    Args:
        path: File to wait for
        poll_interval_s: Seconds between existence checks
        timeout_s: Give up after this many seconds; None waits forever

    Raises:
        HostReadinessTimeout: timeout_s elapsed before the file appeared
    """
    deadline = time.monotonic() + timeout_s if timeout_s is not None else None
    while not path.exists():
        if deadline is not None and time.monotonic() >= deadline:
            raise HostReadinessTimeout(f"{path.name} did not appear after {timeout_s:g}s")
        await asyncio.sleep(poll_interval_s)


async def read_text_with_retry(path: Path, *, attempts: int, delay_s: float) -> str:
    """Read a file the writer may still be holding.

    Retries on OSError with linear backoff (delay_s, 2 * delay_s, ...).
    Content that is not UTF-8 fails at once.

    Raises:
        ResponseUnreadableError: Every attempt failed, or the content is not UTF-8
    """
    last_error: OSError | None = None
    for attempt in range(1, attempts + 1):
        try:
            return path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise ResponseUnreadableError(f"failed to read agent response: {e}") from e
        except OSError as e:
            last_error = e
            logger.debug("Read of %s failed (attempt %d/%d): %s", path, attempt, attempts, e)
            if attempt < attempts:
                await asyncio.sleep(delay_s * attempt)
    raise ResponseUnreadableError(f"failed to read agent response: {last_error}")
