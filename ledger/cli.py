#!/usr/bin/env python3
"""ledger CLI entrypoint."""

import argparse
import logging
import sys
from pathlib import Path

from ledger.commands import diff as cmd_diff_module
from ledger.commands import stage as cmd_stage_module
from ledger.commands import status as cmd_status_module
from ledger.commands import sync as cmd_sync_module
from ledger.lib.config import load_config
from ledger.lib.validate import ValidationError
from ledger.repos.manager import InvalidRepository, RepositoryManager
from ledger.workflow.orchestrator import SyncOrchestrator


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ledger",
        description="Structured diffs and safe pull/commit/promote workflows for git repositories",
    )
    parser.add_argument("-C", "--repo", default=".", help="Repository path (default: current directory)")
    parser.add_argument("--config", help="Config file (default: <repo>/.ledger.env if present)")
    parser.add_argument("--json", action="store_true", help="Machine-readable output")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log workflow steps to stderr")

    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("diff", help="Show parsed diff")
    group = p.add_mutually_exclusive_group()
    group.add_argument("--staged", action="store_true", help="Staged changes instead of unstaged")
    group.add_argument("--commit", metavar="SHA", help="Changes introduced by a commit")
    group.add_argument("--branch", metavar="NAME", help="Branch changes since its base branch")
    p.add_argument("--hunks", action="store_true", help="List hunks per file")
    p.set_defaults(func=cmd_diff_module.cmd_diff)

    p = sub.add_parser("status", help="Summarize uncommitted work")
    p.set_defaults(func=cmd_status_module.cmd_status)

    p = sub.add_parser("stage", help="Stage a path, or all changes")
    p.add_argument("path", nargs="?", help="Path to stage (default: everything)")
    p.set_defaults(func=cmd_stage_module.cmd_stage)

    p = sub.add_parser("unstage", help="Unstage a path, or all changes")
    p.add_argument("path", nargs="?", help="Path to unstage (default: everything)")
    p.set_defaults(func=cmd_stage_module.cmd_unstage)

    p = sub.add_parser("pull", help="Pull with rebase, protecting uncommitted changes")
    p.set_defaults(func=cmd_sync_module.cmd_pull)

    p = sub.add_parser("commit", help="Commit staged changes if the remote has not moved")
    p.add_argument("-m", "--message", required=True, help="Commit subject")
    p.add_argument("-d", "--description", help="Commit body")
    p.add_argument("--force", action="store_true", help="Commit even if behind the remote")
    p.set_defaults(func=cmd_sync_module.cmd_commit)

    p = sub.add_parser("promote", help="Turn a workspace's changes into a new staged branch")
    p.add_argument("workspace", help="Path of the workspace (e.g. a detached worktree)")
    p.set_defaults(func=cmd_sync_module.cmd_promote)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
            stream=sys.stderr,
        )

    config_path = Path(args.config) if args.config else None
    manager = RepositoryManager(config_loader=lambda repo_path: load_config(repo_path, config_path))

    try:
        manager.open(args.repo)
    except InvalidRepository as e:
        print(f"ERROR: {e}")
        return 2
    except (FileNotFoundError, ValueError, ValidationError) as e:
        print(f"ERROR: Bad configuration: {e}")
        return 2

    try:
        return args.func(args, SyncOrchestrator(manager))
    finally:
        manager.close_all()


if __name__ == "__main__":
    sys.exit(main())
