"""Entry point for the `wt` command."""

import sys
from typing import Optional, Sequence

from rich.console import Console
from rich.markup import escape

from git_worktree_keeper.cli.args import parse_args
from git_worktree_keeper.core import WorktreeKeeper
from git_worktree_keeper.exceptions import ValidationError, WorktreeKeeperError
from git_worktree_keeper.logging_config import setup_logging
from git_worktree_keeper.services.display_service import DisplayService
from git_worktree_keeper.services.port_allocator import PortAllocator

console = Console()

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_VALIDATION = 2


def run(args) -> int:
    display = DisplayService(verbose=args.verbose)

    if args.command == "init":
        keeper = WorktreeKeeper.init()
        console.print(f"[green]Initialised worktrees in {keeper.paths.worktree_base}[/green]")
        console.print("[dim]Commit .worktree-config.json to share the settings[/dim]")
        return EXIT_OK

    keeper = WorktreeKeeper()

    if args.command == "create":
        result = keeper.create(
            args.branch,
            base_branch=args.base_branch,
            require_clean=args.require_clean,
            new_branch=args.new_branch,
        )
        if result.created_branch:
            console.print(
                f"[green]Created '{args.branch}' from '{result.base_branch}' at {result.worktree.path}[/green]"
            )
        else:
            console.print(f"[green]Created worktree at {result.worktree.path}[/green]")
        console.print(f"  ports: {PortAllocator.format_port_display(result.ports)}")
    elif args.command == "list":
        display.display_worktree_table(keeper.list_worktrees(), keeper.allocator)
    elif args.command == "merge" and args.abort:
        conflicted = keeper.abort_merge()
        console.print("[green]Aborted merge, main checkout is back to its pre-merge state[/green]")
        if conflicted:
            console.print(f"[dim]Had conflicts in: {escape(', '.join(conflicted))}[/dim]")
    elif args.command == "merge":
        result = keeper.merge(args.name, delete=args.delete)
        suffix = " and removed worktree" if result.cleaned_up else ""
        console.print(f"[green]Merged '{result.branch}' into {result.target}{suffix}[/green]")
        for warning in result.warnings:
            console.print(f"[yellow]Warning: {warning}[/yellow]")
    elif args.command == "remove":
        removed = keeper.remove(args.name, force=args.force)
        console.print(f"[green]Removed worktree '{removed.name}'[/green]")
        if removed.branch:
            console.print(
                f"[dim]Branch '{removed.branch}' was kept. To delete it, run: git branch -d {removed.branch}[/dim]"
            )
    elif args.command == "ports" and args.reassign:
        result = keeper.reassign_busy_ports(args.name)
        if not result.moved:
            console.print(f"[green]No port conflicts for '{result.worktree}'[/green]")
        for service, (old, new) in result.moved.items():
            console.print(f"[green]Reassigned {service} from {old} to {new}[/green] (port {old} is in use by another process)")
        console.print(f"  ports: {PortAllocator.format_port_display(result.ports)}")
    elif args.command == "ports":
        statuses = keeper.ports(args.name)
        if args.name and not statuses:
            console.print(f"[yellow]No ports assigned to worktree '{args.name}'[/yellow]")
        else:
            display.display_ports(statuses, keeper.config.port_ranges)
    elif args.command == "conflicts":
        display.display_conflicts(keeper.conflicts())
    return EXIT_OK


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for the application."""
    args = parse_args(argv)
    setup_logging(verbose=args.verbose, debug=args.debug)

    try:
        return run(args)
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        return EXIT_ERROR
    except ValidationError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}", highlight=False)
        return EXIT_VALIDATION
    except WorktreeKeeperError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}", highlight=False)
        if args.debug:
            console.print_exception()
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
