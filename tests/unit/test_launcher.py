"""Unit tests for the VS Code launcher."""

import asyncio
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from subagent.core import launcher as launcher_module
from subagent.core.errors import LaunchFailedError
from subagent.core.launcher import VSCodeLauncher


@pytest.fixture
def spawn(monkeypatch):
    mock = AsyncMock(return_value=MagicMock())
    monkeypatch.setattr(launcher_module.asyncio, "create_subprocess_exec", mock)
    monkeypatch.setattr(launcher_module.shutil, "which", lambda name: f"/usr/bin/{name}")
    return mock


def _status_process(stdout: bytes, returncode: int = 0):
    process = MagicMock()
    process.communicate = AsyncMock(return_value=(stdout, b""))
    process.returncode = returncode
    return process


@pytest.mark.asyncio
async def test_open_workspace_spawns_detached(spawn):
    await VSCodeLauncher("code").open_workspace(Path("/pool/subagent-1/subagent-1.code-workspace"))

    args, kwargs = spawn.call_args
    assert args == ("/usr/bin/code", "/pool/subagent-1/subagent-1.code-workspace")
    assert kwargs["start_new_session"] is True
    assert kwargs["stdout"] == asyncio.subprocess.DEVNULL


@pytest.mark.asyncio
async def test_send_chat_builds_chat_arguments(spawn):
    await VSCodeLauncher("code-insiders").send_chat(
        "a1b2c3d4", "Follow instructions in 1_req.md", [Path("/x/notes.md"), Path("/pool/1_req.md")]
    )

    args, _ = spawn.call_args
    assert args == (
        "/usr/bin/code-insiders",
        "-r",
        "chat",
        "-m",
        "a1b2c3d4",
        "-a",
        "/x/notes.md",
        "-a",
        "/pool/1_req.md",
        "Follow instructions in 1_req.md",
    )


@pytest.mark.asyncio
async def test_spawn_failure_raises_launch_failed(spawn):
    spawn.side_effect = FileNotFoundError("code")

    with pytest.raises(LaunchFailedError, match="Failed to launch code"):
        await VSCodeLauncher("code").open_workspace(Path("/w.code-workspace"))


@pytest.mark.asyncio
async def test_falls_back_to_bare_command(spawn, monkeypatch):
    monkeypatch.setattr(launcher_module.shutil, "which", lambda name: None)

    await VSCodeLauncher("code").open_workspace(Path("/w.code-workspace"))

    assert spawn.call_args.args[0] == "code"


class TestIsWorkspaceOpen:
    @pytest.mark.asyncio
    async def test_matches_window_title(self, spawn):
        spawn.return_value = _status_process(b"Window (subagent-2 (Workspace) - Visual Studio Code)\n")

        assert await VSCodeLauncher().is_workspace_open("subagent-2") is True
        assert spawn.call_args.args == ("/usr/bin/code", "--status")

    @pytest.mark.asyncio
    async def test_does_not_match_longer_ordinal(self, spawn):
        spawn.return_value = _status_process(b"Window (subagent-10 (Workspace) - Visual Studio Code)\n")

        assert await VSCodeLauncher().is_workspace_open("subagent-1") is False

    @pytest.mark.asyncio
    async def test_nonzero_exit_is_not_open(self, spawn):
        spawn.return_value = _status_process(b"subagent-1", returncode=1)

        assert await VSCodeLauncher().is_workspace_open("subagent-1") is False

    @pytest.mark.asyncio
    async def test_spawn_error_is_not_open(self, spawn):
        spawn.side_effect = OSError("no such file")

        assert await VSCodeLauncher().is_workspace_open("subagent-1") is False

    @pytest.mark.asyncio
    async def test_timeout_is_not_open(self, spawn):
        async def hang():
            await asyncio.sleep(10)

        process = MagicMock()
        process.communicate = hang
        spawn.return_value = process

        assert await VSCodeLauncher(status_timeout_s=0.01).is_workspace_open("subagent-1") is False
        process.kill.assert_called_once()
