"""subagent command line.

    subagent code provision --subagents 3
    subagent code chat "Summarize README.md" --prompt reviewer.chatmode.md -w
    subagent code unlock --subagent subagent-1

Each host variant (`code`, `code-insiders`) gets the same set of commands and
its own default pool root. Command results go to stdout; diagnostics go to
stderr through the logger.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Optional

from subagent import __version__
from subagent.config import SubagentConfig, load_subagent_config, resolve_subagent_root, resolve_templates_dir
from subagent.constants import HOST_VARIANTS
from subagent.core.dispatch import DispatchOptions, dispatch_agent
from subagent.core.errors import SubagentError
from subagent.core.launcher import VSCodeLauncher
from subagent.core.pool import describe_slots, provision_slots, unlock_slots
from subagent.core.warmup import warmup_slots
from subagent.logging_config import configure_logging, get_logger
from subagent.paths import LOG_PATH

logger = get_logger(__name__)

_VARIANT_HELP = {
    "code": "Manage VS Code workspace agents",
    "code-insiders": "Manage VS Code Insiders workspace agents",
}


def _print_paths(header: str, paths: list[Path]) -> None:
    print(header)
    for path in paths:
        print(f"  {path}")


def _target_root(args: argparse.Namespace, config: SubagentConfig) -> Path:
    if args.target_root:
        return Path(args.target_root).expanduser()
    return resolve_subagent_root(config, args.variant)


def _lock_name(args: argparse.Namespace, config: SubagentConfig) -> str:
    return args.lock_name or config.lock_name


def _provision_hint(variant: str) -> str:
    return f"hint: Provision subagents first with:\n  subagent {variant} provision --subagents <count>"


def _cmd_provision(args: argparse.Namespace, config: SubagentConfig) -> int:
    root = _target_root(args, config)
    try:
        result = provision_slots(
            root,
            args.subagents,
            lock_name=_lock_name(args, config),
            force=args.force,
            dry_run=args.dry_run,
            templates_dir=resolve_templates_dir(config),
        )
    except (SubagentError, ValueError, OSError) as e:
        logger.error("Provision failed: %s", e)
        return 1

    if result.created:
        _print_paths("created subagents:", result.created)
    if result.skipped_existing:
        _print_paths("skipped existing unlocked subagents:", result.skipped_existing)
    if result.skipped_locked:
        _print_paths("skipped locked subagents:", result.skipped_locked)
    if not (result.created or result.skipped_existing or result.skipped_locked):
        print("no operations were required")
    if result.total_unlocked > 0:
        print(f"\ntotal unlocked subagents available: {result.total_unlocked}")

    if args.dry_run:
        print("dry run complete; no changes were made")
        if args.warmup:
            print("warmup skipped because this was a dry run")
        return 0

    if args.warmup:
        return asyncio.run(_run_warmup(root, args.subagents, dry_run=False, variant=args.variant))
    return 0


def _cmd_chat(args: argparse.Namespace, config: SubagentConfig) -> int:
    options = DispatchOptions(
        user_query=args.query,
        subagent_root=_target_root(args, config),
        prompt_file=Path(args.prompt) if args.prompt else None,
        workspace_template=Path(args.workspace_template) if args.workspace_template else None,
        attachments=[Path(a) for a in args.attachment],
        lock_name=_lock_name(args, config),
        templates_dir=resolve_templates_dir(config),
        dry_run=args.dry_run,
        wait=args.wait,
        timing=config.timing,
        default_root=resolve_subagent_root(config, args.variant),
    )
    return asyncio.run(dispatch_agent(options, VSCodeLauncher(args.variant)))


async def _run_warmup(root: Path, count: int, *, dry_run: bool, variant: str) -> int:
    try:
        opened = await warmup_slots(root, count, dry_run=dry_run, launcher=VSCodeLauncher(variant))
    except SubagentError as e:
        logger.error("%s", e)
        print(_provision_hint(variant), file=sys.stderr)
        return 1

    _print_paths("workspaces that would be opened:" if dry_run else "opened workspaces:", opened)
    return 0


def _cmd_warmup(args: argparse.Namespace, config: SubagentConfig) -> int:
    root = _target_root(args, config)
    return asyncio.run(_run_warmup(root, args.subagents, dry_run=args.dry_run, variant=args.variant))


def _cmd_list(args: argparse.Namespace, config: SubagentConfig) -> int:
    root = _target_root(args, config)
    infos = describe_slots(root, _lock_name(args, config))

    if not infos:
        if args.json:
            print(json.dumps({"subagents": []}))
        else:
            print(f"No subagents found in {root}", file=sys.stderr)
            print(_provision_hint(args.variant), file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps({"subagents": [asdict(info) for info in infos]}, indent=2))
        return 0

    locked = sum(1 for info in infos if info.locked)
    print(f"Found {len(infos)} subagent(s) in {root}", file=sys.stderr)
    print(f"  Available: {len(infos) - locked}", file=sys.stderr)
    print(f"  Locked: {locked}", file=sys.stderr)
    print("", file=sys.stderr)
    for info in infos:
        icon = "🔒" if info.locked else "✓"
        print(f"{icon} {info.name:<15} {info.status:<10} {info.path}")
    return 0


def _cmd_unlock(args: argparse.Namespace, config: SubagentConfig) -> int:
    try:
        unlocked = unlock_slots(
            _target_root(args, config),
            slot_name=args.subagent,
            unlock_all=args.all,
            lock_name=_lock_name(args, config),
            dry_run=args.dry_run,
        )
    except (SubagentError, ValueError, OSError) as e:
        logger.error("Unlock failed: %s", e)
        return 1

    if unlocked:
        _print_paths("unlocked subagents:", unlocked)
    elif args.all:
        print("no locked subagents found")
    else:
        print(f"subagent '{args.subagent}' was not locked")

    if args.dry_run:
        print("dry run complete; no changes were made")
    return 0


def _add_variant_commands(parent: argparse.ArgumentParser) -> None:
    commands = parent.add_subparsers(dest="command", metavar="<command>", required=True)

    provision = commands.add_parser("provision", help="Provision subagent workspace directories")
    provision.add_argument("--subagents", type=int, default=1, help="Number of unlocked subagents wanted")
    provision.add_argument("--target-root", help="Destination root for subagent directories")
    provision.add_argument("--lock-name", help="Filename that marks a subagent as locked")
    provision.add_argument(
        "--force", action="store_true", help="Unlock and overwrite subagent directories regardless of lock status"
    )
    provision.add_argument("--dry-run", action="store_true", help="Show the planned operations without writing files")
    provision.add_argument("--warmup", action="store_true", help="Open the workspaces after provisioning")
    provision.set_defaults(handler=_cmd_provision)

    chat = commands.add_parser("chat", help="Start a chat with an agent in an isolated subagent workspace")
    chat.add_argument("query", help="Task for the agent")
    chat.add_argument("--prompt", help="Chat mode file to copy into the subagent")
    chat.add_argument("--workspace-template", help="Custom .code-workspace file to use as template")
    chat.add_argument(
        "-a", "--attachment", action="append", default=[], help="Additional attachment to forward to the chat"
    )
    chat.add_argument("--target-root", help="Root directory containing subagents")
    chat.add_argument("--lock-name", help="Filename that marks a subagent as locked")
    chat.add_argument("--dry-run", action="store_true", help="Print what would be done without making changes")
    chat.add_argument("-w", "--wait", action="store_true", help="Wait for the response and print it to stdout")
    chat.set_defaults(handler=_cmd_chat)

    warmup = commands.add_parser("warmup", help="Open provisioned workspaces to warm them up")
    warmup.add_argument("--subagents", type=int, default=1, help="Number of workspaces to open")
    warmup.add_argument("--target-root", help="Root directory containing subagents")
    warmup.add_argument("--dry-run", action="store_true", help="Show which workspaces would be opened")
    warmup.set_defaults(handler=_cmd_warmup)

    list_cmd = commands.add_parser("list", help="List provisioned subagents and their status")
    list_cmd.add_argument("--target-root", help="Root directory containing subagents")
    list_cmd.add_argument("--lock-name", help="Filename that marks a subagent as locked")
    list_cmd.add_argument("--json", action="store_true", help="Output results as JSON")
    list_cmd.set_defaults(handler=_cmd_list)

    unlock = commands.add_parser("unlock", help="Unlock subagents by removing their lock files")
    target = unlock.add_mutually_exclusive_group(required=True)
    target.add_argument("--subagent", help="Subagent name to unlock (e.g. subagent-1)")
    target.add_argument("--all", action="store_true", help="Unlock all subagents")
    unlock.add_argument("--target-root", help="Root directory containing subagents")
    unlock.add_argument("--lock-name", help="Filename that marks a subagent as locked")
    unlock.add_argument("--dry-run", action="store_true", help="Show what would be unlocked without changing anything")
    unlock.set_defaults(handler=_cmd_unlock)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="subagent", description="Manage workspace agents in isolated VS Code slots.")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (default: SUBAGENT_LOG_LEVEL, then config, then INFO)",
    )
    variants = parser.add_subparsers(dest="variant", metavar="<variant>", required=True)
    for variant in HOST_VARIANTS:
        _add_variant_commands(variants.add_parser(variant, help=_VARIANT_HELP[variant]))
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    # Loader warnings need a configured logger before the config level is known
    configure_logging(args.log_level)
    config = load_subagent_config()
    level = args.log_level or os.getenv("SUBAGENT_LOG_LEVEL") or config.log_level
    configure_logging(level, LOG_PATH if config.log_to_file else None)

    try:
        return args.handler(args, config)
    except KeyboardInterrupt:
        logger.info("Received SIGINT, shutting down")
        return 130
    except Exception:  # noqa: BLE001 - CLI error path
        logger.exception("Command %s %s failed", args.variant, args.command)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
