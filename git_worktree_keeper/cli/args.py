"""Command-line argument parsing for git-worktree-keeper."""

import argparse
from typing import Optional, Sequence

from git_worktree_keeper.__version__ import __version__


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wt",
        description="Parallel git worktrees with their own dev-server ports",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Show verbose output")
    parser.add_argument("--debug", action="store_true", help="Show debug information for troubleshooting")
    parser.add_argument("--version", action="version", version=f"git-worktree-keeper {__version__}")

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    subparsers.add_parser("init", help="Create .worktree-config.json and the worktree directory")

    create = subparsers.add_parser("create", help="Create a worktree with its own ports")
    create.add_argument("branch", help="Branch to check out (created if it doesn't exist)")
    create.add_argument("--from", dest="base_branch", metavar="BRANCH", help="Base branch for a new branch")
    create.add_argument(
        "--new-branch", action="store_true", help="Fail if the branch already exists"
    )
    create.add_argument(
        "--require-clean", action="store_true", help="Refuse when the main checkout has uncommitted changes"
    )

    subparsers.add_parser("list", help="List managed worktrees")

    merge = subparsers.add_parser("merge", help="Merge a worktree's branch into the main branch")
    merge.add_argument("name", nargs="?", help="Worktree name (default: the current worktree)")
    cleanup = merge.add_mutually_exclusive_group()
    cleanup.add_argument("--delete", dest="delete", action="store_true", default=None,
                         help="Remove the worktree and its branch after merging")
    cleanup.add_argument("--no-delete", dest="delete", action="store_false",
                         help="Keep the worktree after merging")
    merge.add_argument("--abort", action="store_true", help="Abort a merge stopped by conflicts")

    remove = subparsers.add_parser("remove", help="Remove a worktree and release its ports")
    remove.add_argument("name", nargs="?", help="Worktree name (default: the current worktree)")
    remove.add_argument("--force", action="store_true", help="Remove even with uncommitted changes")

    ports = subparsers.add_parser("ports", help="Show port assignments")
    ports.add_argument("name", nargs="?", help="Only show this worktree (with --reassign: the worktree to fix)")
    ports.add_argument(
        "--reassign", action="store_true", help="Move services whose ports another process is listening on"
    )

    subparsers.add_parser("conflicts", help="List files left in conflict by a stopped merge")

    return parser


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    return build_parser().parse_args(argv)
