"""Host editor launcher.

Everything the dispatcher asks of VS Code goes through a `Launcher`. The real
one shells out to the `code` / `code-insiders` CLI; tests substitute a fake
that writes the files the host would have written.
"""

from __future__ import annotations

import asyncio
import re
import shutil
from pathlib import Path
from typing import Protocol, Sequence

from subagent.constants import DEFAULT_HOST_COMMAND, STATUS_PROBE_TIMEOUT_S
from subagent.core.errors import LaunchFailedError
from subagent.logging_config import get_logger

logger = get_logger(__name__)


class Launcher(Protocol):
    """What the dispatcher needs from a host editor."""

    command: str

    async def open_workspace(self, workspace_path: Path) -> None: ...

    async def send_chat(self, chat_mode: str, message: str, attachments: Sequence[Path] = ()) -> None: ...

    async def is_workspace_open(self, workspace_name: str) -> bool: ...


class VSCodeLauncher:
    """Launcher backed by the VS Code command line.

    Args:
        command: Host variant, "code" or "code-insiders"
        status_timeout_s: Upper bound for the `--status` window probe
    """

    def __init__(self, command: str = DEFAULT_HOST_COMMAND, *, status_timeout_s: float = STATUS_PROBE_TIMEOUT_S):
        self.command = command
        self.status_timeout_s = status_timeout_s

    @property
    def executable(self) -> str:
        return shutil.which(self.command) or self.command

    async def _spawn(self, *args: str) -> None:
        """Start the CLI with `args` and let it run on its own."""
        logger.debug("Running %s %s", self.command, " ".join(args))
        try:
            await asyncio.create_subprocess_exec(
                self.executable,
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
                start_new_session=True,
            )
        except OSError as e:
            raise LaunchFailedError(f"Failed to launch {self.command}: {e}") from e

    async def open_workspace(self, workspace_path: Path) -> None:
        await self._spawn(str(workspace_path))

    async def send_chat(self, chat_mode: str, message: str, attachments: Sequence[Path] = ()) -> None:
        args = ["-r", "chat", "-m", chat_mode]
        for attachment in attachments:
            args.extend(["-a", str(attachment)])
        args.append(message)
        await self._spawn(*args)

    async def is_workspace_open(self, workspace_name: str) -> bool:
        """Best-effort check whether a window for `workspace_name` is open.

        Any failure (missing binary, timeout, non-zero exit) counts as not open.
        """
        try:
            process = await asyncio.create_subprocess_exec(
                self.executable,
                "--status",
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as e:
            logger.debug("%s --status could not start: %s", self.command, e)
            return False

        try:
            stdout, _ = await asyncio.wait_for(process.communicate(), timeout=self.status_timeout_s)
        except asyncio.TimeoutError:
            logger.debug("%s --status timed out after %ss", self.command, self.status_timeout_s)
            try:
                process.kill()
            except ProcessLookupError:
                pass
            return False

        if process.returncode != 0:
            return False
        # subagent-1 must not match a window titled subagent-10
        pattern = rf"(?<![\w-]){re.escape(workspace_name)}(?![\w])"
        return re.search(pattern, stdout.decode(errors="replace")) is not None
