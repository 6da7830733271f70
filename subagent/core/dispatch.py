"""Agent dispatch.

A dispatch claims the first free slot, prepares it for a new session, makes
sure its VS Code window is up, and hands the host a request file through the
chat CLI. The agent answers by writing `<ts>_res.tmp.md`, renaming it to
`<ts>_res.md` and running the unlock command it was given.

    IDLE -> CLAIMING -> PREPARING -> AWAITING_HOST_READY -> DISPATCHED
         -> (AWAITING_RESPONSE) -> RELEASED

Any state can fall into FAILED. A failed dispatch never removes the lock
marker it created; the marker is the durable record that the slot was in use.
"""

from __future__ import annotations

import asyncio
import json
import os
import secrets
import shlex
import shutil
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional, Sequence, TextIO

from subagent.config.schema import TimingConfig
from subagent.constants import (
    CHATMODE_SUFFIX,
    DEFAULT_CHAT_MODE,
    DEFAULT_LOCK_NAME,
    DEFAULT_WAKEUP_FILENAME,
    DEFAULT_WORKSPACE_FILENAME,
    WAKEUP_CHAT_MODE,
    WAKEUP_MESSAGE,
)
from subagent.core import locks
from subagent.core.errors import (
    AttachmentNotFoundError,
    HostReadinessTimeout,
    NoAvailableSlotError,
    PreparationFailedError,
    PromptFileError,
    SubagentError,
    TemplateNotFoundError,
)
from subagent.core.launcher import Launcher
from subagent.core.models import DispatchResult, DispatchState, Slot
from subagent.core.polling import read_text_with_retry, wait_for_path
from subagent.core.pool import find_unlocked_slot
from subagent.core.workspace import check_template_path, materialize_template_file
from subagent.logging_config import get_logger
from subagent.paths import TEMPLATES_DIR, default_subagent_root
from subagent.utils import message_timestamp

logger = get_logger(__name__)

REQUEST_TEMPLATE_FILENAME = "request.md"


@dataclass
class DispatchOptions:
    """Inputs for a single dispatch.

    Attributes:
        user_query: Task text handed to the agent
        subagent_root: Pool root to claim from
        prompt_file: Chat mode file copied to `<chat_id>.chatmode.md`;
            without one the host's default agent mode is used
        workspace_template: Custom workspace template, materialized into the slot
        attachments: Extra files attached to the chat request
        lock_name: Lock marker file name
        templates_dir: Directory holding the built-in templates
        dry_run: Pick a slot and report paths without touching anything
        wait: Block until the response arrives and return it
        timing: Poll intervals and timeouts
        default_root: Root the unlock command resolves on its own; when
            `subagent_root` differs, the command carries `--target-root`
    """

    user_query: str
    subagent_root: Path
    prompt_file: Optional[Path] = None
    workspace_template: Optional[Path] = None
    attachments: Sequence[Path] = ()
    lock_name: str = DEFAULT_LOCK_NAME
    templates_dir: Path = TEMPLATES_DIR
    dry_run: bool = False
    wait: bool = False
    timing: TimingConfig = field(default_factory=TimingConfig)
    default_root: Optional[Path] = None


def _is_windows() -> bool:
    return os.name == "nt"


def _ps_quote(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def build_rename_command(temp_file: Path, response_file: Path, *, windows: bool) -> str:
    if windows:
        return f"Move-Item -LiteralPath {_ps_quote(str(temp_file))} -Destination {_ps_quote(str(response_file))}"
    return f"mv {shlex.quote(str(temp_file))} {shlex.quote(str(response_file))}"


def build_unlock_command(
    host_command: str,
    slot_name: str,
    *,
    target_root: Optional[Path] = None,
    lock_name: str = DEFAULT_LOCK_NAME,
    windows: bool,
) -> str:
    """Command the agent runs to release its slot."""
    quote = _ps_quote if windows else shlex.quote
    parts = ["subagent", host_command, "unlock", "--subagent", slot_name]
    if target_root is not None:
        parts.extend(["--target-root", quote(str(target_root))])
    if lock_name != DEFAULT_LOCK_NAME:
        parts.extend(["--lock-name", quote(lock_name)])
    return " ".join(parts)


def build_request_prompt(
    user_query: str,
    temp_file: Path,
    *,
    rename_command: str,
    unlock_command: str,
    windows: bool,
    templates_dir: Path = TEMPLATES_DIR,
) -> str:
    """Render the request artifact the agent is pointed at."""
    template_path = templates_dir / REQUEST_TEMPLATE_FILENAME
    if not template_path.is_file():
        template_path = TEMPLATES_DIR / REQUEST_TEMPLATE_FILENAME
    template = template_path.read_text(encoding="utf-8")
    return template.format(
        query=user_query,
        response_tmp=temp_file,
        shell_name="PowerShell" if windows else "shell",
        rename_command=rename_command,
        unlock_command=unlock_command,
    ).rstrip("\n")


def _purge_session_files(slot: Slot) -> None:
    """Remove the previous session's messages and chat modes. The wake-up mode stays."""
    if slot.messages_dir.is_dir():
        for entry in slot.messages_dir.iterdir():
            if entry.is_dir() and not entry.is_symlink():
                shutil.rmtree(entry)
            else:
                entry.unlink(missing_ok=True)

    for entry in slot.path.iterdir():
        if entry.name.endswith(CHATMODE_SUFFIX) and entry.name != DEFAULT_WAKEUP_FILENAME and entry.is_file():
            entry.unlink(missing_ok=True)


async def ensure_workspace_focused(
    slot: Slot,
    launcher: Launcher,
    *,
    templates_dir: Path = TEMPLATES_DIR,
    timing: Optional[TimingConfig] = None,
) -> bool:
    """Bring the slot's window up and wait until the host answers.

    An already open window is only re-focused. Otherwise the window is opened
    and asked, through the wake-up chat mode, to create the `.alive` marker.

    Returns:
        False if the marker did not show up within the readiness timeout
    """
    timing = timing or TimingConfig()

    if await launcher.is_workspace_open(slot.name):
        logger.debug("Workspace %s already open, focusing", slot.name)
        await launcher.open_workspace(slot.config_path)
        return True

    slot.alive_path.unlink(missing_ok=True)
    wakeup_source = templates_dir / DEFAULT_WAKEUP_FILENAME
    if wakeup_source.is_file():
        shutil.copyfile(wakeup_source, slot.wakeup_path)

    await launcher.open_workspace(slot.config_path)
    await launcher.send_chat(WAKEUP_CHAT_MODE, WAKEUP_MESSAGE)

    try:
        await wait_for_path(
            slot.alive_path,
            poll_interval_s=timing.ready_poll_interval_s,
            timeout_s=timing.ready_timeout_s,
        )
    except HostReadinessTimeout as e:
        logger.warning("Workspace readiness timeout: %s", e)
        return False
    return True


class DispatchSession:
    """One pass through the dispatch state machine."""

    def __init__(
        self,
        options: DispatchOptions,
        launcher: Launcher,
        on_acquired: Optional[Callable[[DispatchResult], None]] = None,
    ):
        self.options = options
        self.launcher = launcher
        self.on_acquired = on_acquired
        self.state = DispatchState.IDLE
        self.slot: Optional[Slot] = None
        self.response_file: Optional[Path] = None
        self.temp_file: Optional[Path] = None

    def _transition(self, state: DispatchState) -> None:
        logger.debug("Dispatch state %s -> %s", self.state.value, state.value)
        self.state = state

    def _result(
        self, exit_code: int = 0, *, response: Optional[str] = None, error: Optional[str] = None
    ) -> DispatchResult:
        return DispatchResult(
            exit_code=exit_code,
            state=self.state,
            subagent_name=self.slot.name if self.slot else None,
            response_file=self.response_file,
            temp_file=self.temp_file,
            response=response,
            error=error,
        )

    def _validate(self) -> tuple[Optional[Path], Optional[Path], list[Path]]:
        options = self.options

        prompt: Optional[Path] = None
        if options.prompt_file is not None:
            prompt = options.prompt_file.expanduser().resolve()
            if not prompt.exists():
                raise PromptFileError(f"Prompt file not found: {prompt}")
            if not prompt.is_file():
                raise PromptFileError(f"Prompt file must be a file, not a directory: {prompt}")

        template: Optional[Path] = None
        if options.workspace_template is not None:
            template = check_template_path(options.workspace_template)

        attachments: list[Path] = []
        for attachment in options.attachments:
            resolved = attachment.expanduser().resolve()
            if not resolved.exists():
                raise AttachmentNotFoundError(f"Attachment not found: {resolved}")
            attachments.append(resolved)

        return prompt, template, attachments

    def _claim(self) -> Slot:
        slot = find_unlocked_slot(self.options.subagent_root.expanduser(), self.options.lock_name)
        if slot is None:
            raise NoAvailableSlotError(
                "No unlocked subagents available. Provision additional subagents with:\n"
                f"  subagent {self.launcher.command} provision --subagents <desired_total>"
            )
        return slot

    def _write_workspace(self, slot: Slot, template: Optional[Path]) -> None:
        if template is not None:
            slot.config_path.write_text(materialize_template_file(template), encoding="utf-8")
            return

        default_template = self.options.templates_dir / DEFAULT_WORKSPACE_FILENAME
        if not default_template.is_file():
            raise TemplateNotFoundError(f"Default workspace template not found: {default_template}")
        shutil.copyfile(default_template, slot.config_path)

    def _prepare(self, slot: Slot, prompt: Optional[Path], template: Optional[Path], chat_id: str) -> None:
        try:
            self._write_workspace(slot, template)
            slot.messages_dir.mkdir(parents=True, exist_ok=True)
            locks.lock(slot.path, self.options.lock_name)
            _purge_session_files(slot)
            if prompt is not None:
                shutil.copyfile(prompt, slot.path / f"{chat_id}{CHATMODE_SUFFIX}")
        except OSError as e:
            raise PreparationFailedError(f"Failed to prepare {slot.name}: {e}") from e

    def _unlock_command(self, slot: Slot, *, windows: bool) -> str:
        options = self.options
        default_root = options.default_root or default_subagent_root(self.launcher.command)
        root = options.subagent_root.expanduser().resolve()
        target_root = None if root == default_root.expanduser().resolve() else root
        return build_unlock_command(
            self.launcher.command,
            slot.name,
            target_root=target_root,
            lock_name=options.lock_name,
            windows=windows,
        )

    async def run(self) -> DispatchResult:
        options = self.options
        try:
            prompt, template, attachments = self._validate()

            self._transition(DispatchState.CLAIMING)
            slot = self._claim()
            self.slot = slot
            logger.info("Acquiring subagent: %s", slot.name)

            chat_id = secrets.token_hex(4)
            timestamp = message_timestamp()
            request_file = slot.messages_dir / f"{timestamp}_req.md"
            self.temp_file = slot.messages_dir / f"{timestamp}_res.tmp.md"
            self.response_file = slot.messages_dir / f"{timestamp}_res.md"

            self._transition(DispatchState.PREPARING)
            if not options.dry_run:
                self._prepare(slot, prompt, template, chat_id)

            if self.on_acquired is not None:
                self.on_acquired(self._result())

            if options.dry_run:
                # Nothing was locked
                self._transition(DispatchState.RELEASED)
                logger.info("Dry run: %s would receive the request", slot.name)
                return self._result()

            self._transition(DispatchState.AWAITING_HOST_READY)
            ready = await ensure_workspace_focused(
                slot, self.launcher, templates_dir=options.templates_dir, timing=options.timing
            )
            if not ready:
                logger.warning("Workspace may not be fully ready")

            self._transition(DispatchState.DISPATCHED)
            windows = _is_windows()
            request = build_request_prompt(
                options.user_query,
                self.temp_file,
                rename_command=build_rename_command(self.temp_file, self.response_file, windows=windows),
                unlock_command=self._unlock_command(slot, windows=windows),
                windows=windows,
                templates_dir=options.templates_dir,
            )
            request_file.write_text(request, encoding="utf-8")

            await asyncio.sleep(options.timing.chat_launch_delay_s)
            chat_mode = chat_id if prompt is not None else DEFAULT_CHAT_MODE
            await self.launcher.send_chat(
                chat_mode,
                f"Follow instructions in {request_file.name}",
                [*attachments, request_file],
            )

            if not options.wait:
                return self._result()

            self._transition(DispatchState.AWAITING_RESPONSE)
            logger.info("Waiting for agent to finish: %s", self.response_file)
            await wait_for_path(self.response_file, poll_interval_s=options.timing.response_poll_interval_s)
            response = await read_text_with_retry(
                self.response_file,
                attempts=options.timing.read_attempts,
                delay_s=options.timing.read_retry_delay_s,
            )
            locks.unlock(slot.path, options.lock_name)
            self._transition(DispatchState.RELEASED)
            return self._result(response=response)
        except (SubagentError, OSError) as e:
            self._transition(DispatchState.FAILED)
            logger.error("Dispatch failed: %s", e)
            return self._result(1, error=str(e))


async def dispatch_agent_session(
    options: DispatchOptions,
    launcher: Launcher,
    *,
    on_acquired: Optional[Callable[[DispatchResult], None]] = None,
) -> DispatchResult:
    """Run a dispatch and report how it ended.

    Errors never escape as exceptions; they come back as a failed result.

    Args:
        options: What to dispatch and where
        launcher: Host editor launcher
        on_acquired: Called once the slot is claimed and prepared, before the
            host is contacted
    """
    return await DispatchSession(options, launcher, on_acquired).run()


def _emit(out: TextIO, payload: dict[str, object]) -> None:
    out.write(json.dumps(payload) + "\n")
    out.flush()


async def dispatch_agent(options: DispatchOptions, launcher: Launcher, out: Optional[TextIO] = None) -> int:
    """Dispatch and print JSON lines for the caller. Returns the exit code."""
    out = out or sys.stdout

    def announce(result: DispatchResult) -> None:
        _emit(
            out,
            {
                "success": True,
                "subagent_name": result.subagent_name,
                "response_file": str(result.response_file),
            },
        )

    result = await dispatch_agent_session(options, launcher, on_acquired=announce)
    if not result.success:
        _emit(out, {"success": False, "error": result.error})
        return result.exit_code

    if options.dry_run:
        return 0

    if options.wait:
        out.write(f"{result.response}\n")
        out.flush()
        return 0

    _emit(
        out,
        {
            "subagent": result.subagent_name,
            "status": DispatchState.DISPATCHED.value,
            "response_file": str(result.response_file),
            "temp_file": str(result.temp_file),
        },
    )
    logger.info(
        "Agent dispatched. Response will be written to %s (watch for %s to be renamed)",
        result.response_file,
        result.temp_file.name if result.temp_file else None,
    )
    return 0
