"""Unit tests for filesystem polling helpers."""

import asyncio
from pathlib import Path

import pytest

from subagent.core.errors import HostReadinessTimeout, ResponseUnreadableError
from subagent.core.polling import read_text_with_retry, wait_for_path


@pytest.mark.asyncio
async def test_wait_for_path_returns_once_file_appears(tmp_path):
    target = tmp_path / ".alive"

    async def create_later():
        await asyncio.sleep(0.03)
        target.write_text("")

    writer = asyncio.create_task(create_later())
    await wait_for_path(target, poll_interval_s=0.01, timeout_s=0.5)
    await writer

    assert target.exists()


@pytest.mark.asyncio
async def test_wait_for_path_times_out(tmp_path):
    with pytest.raises(HostReadinessTimeout, match=".alive did not appear"):
        await wait_for_path(tmp_path / ".alive", poll_interval_s=0.01, timeout_s=0.05)


@pytest.mark.asyncio
async def test_unbounded_wait_can_be_cancelled(tmp_path):
    task = asyncio.create_task(wait_for_path(tmp_path / "never.md", poll_interval_s=0.01))
    await asyncio.sleep(0.05)

    assert not task.done()
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task


@pytest.mark.asyncio
async def test_read_retries_until_readable(tmp_path, monkeypatch):
    target = tmp_path / "res.md"
    target.write_text("answer", encoding="utf-8")
    real_read_text = Path.read_text
    calls = {"count": 0}

    def flaky_read_text(self, *args, **kwargs):
        calls["count"] += 1
        if calls["count"] < 3:
            raise PermissionError("busy")
        return real_read_text(self, *args, **kwargs)

    monkeypatch.setattr(Path, "read_text", flaky_read_text)

    assert await read_text_with_retry(target, attempts=5, delay_s=0.001) == "answer"
    assert calls["count"] == 3


@pytest.mark.asyncio
async def test_read_gives_up_after_attempts(tmp_path):
    with pytest.raises(ResponseUnreadableError, match="failed to read agent response"):
        await read_text_with_retry(tmp_path / "missing.md", attempts=3, delay_s=0.001)


@pytest.mark.asyncio
async def test_read_rejects_non_utf8_without_retrying(tmp_path, monkeypatch):
    target = tmp_path / "response.md"
    target.write_bytes(b"caf\xe9 answer")
    sleeps = []

    async def record_sleep(delay):
        sleeps.append(delay)

    monkeypatch.setattr(asyncio, "sleep", record_sleep)

    with pytest.raises(ResponseUnreadableError, match="codec can't decode"):
        await read_text_with_retry(target, attempts=5, delay_s=0.001)
    assert sleeps == []
