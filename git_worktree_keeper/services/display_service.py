"""Display and formatting service for worktree information"""
from typing import List, Mapping

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from git_worktree_keeper.constants import LIST_COLUMNS, SYMBOL_IN_USE, SYMBOL_MISSING
from git_worktree_keeper.models.ports import PortRange
from git_worktree_keeper.models.worktree import WorktreeReference
from git_worktree_keeper.services.port_allocator import PortAllocator

console = Console()


class DisplayService:
    def __init__(self, verbose: bool = False):
        self.verbose = verbose

    def display_worktree_table(self, worktrees: List[WorktreeReference], allocator: PortAllocator) -> None:
        """Display managed worktrees with their ports."""
        if not worktrees:
            console.print("[yellow]No worktrees found[/yellow]")
            return

        table = Table()
        for label in LIST_COLUMNS:
            table.add_column(label)

        for wt in worktrees:
            ports = allocator.get_ports(wt.normalized_name)
            notes = "" if wt.exists else f"[red]{SYMBOL_MISSING} directory missing[/red]"
            table.add_row(
                wt.name,
                wt.branch or "[yellow](detached)[/yellow]",
                PortAllocator.format_port_display(ports),
                str(wt.path),
                notes,
            )
        console.print(table)

    def display_ports(self, statuses, port_ranges: Mapping[str, PortRange]) -> None:
        """Display port assignments; a check mark means something is listening."""
        if not statuses:
            console.print("[yellow]No port assignments found[/yellow]")
            return

        table = Table()
        table.add_column("Worktree")
        table.add_column("Service")
        table.add_column("Port", justify="right")
        table.add_column("Listening")

        total = 0
        for status in statuses:
            for service, port in status.ports.items():
                listening = f"[green]{SYMBOL_IN_USE}[/green]" if status.in_use.get(service) else ""
                table.add_row(status.worktree, service, str(port), listening)
                total += 1
        console.print(table)
        console.print(f"[dim]Total ports assigned: {total}[/dim]")

        if self.verbose:
            console.print("[dim]Port ranges:[/dim]")
            for service, port_range in port_ranges.items():
                console.print(f"[dim]  {service}: from {port_range.start} (increment: {port_range.increment})[/dim]")

    def display_conflicts(self, files: List[str]) -> None:
        """List unmerged files with the ways out of a stopped merge."""
        if not files:
            console.print("[green]No conflicts[/green]")
            return

        console.print(f"[red]{len(files)} conflicted file(s):[/red]")
        for path in files:
            console.print(f"  {escape(path)}")
        console.print("[dim]Resolve them and commit, or run 'wt merge --abort'[/dim]")
