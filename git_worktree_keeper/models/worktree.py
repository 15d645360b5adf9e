"""Worktree data models."""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional


@dataclass
class WorktreeInfo:
    """A worktree as registered in git's worktree list."""

    path: str
    branch_name: Optional[str]  # None = detached HEAD
    commit_sha: str
    is_main: bool  # First entry of `git worktree list`
    is_missing: bool  # Registered but directory gone
    is_bare: bool = False

    def __str__(self) -> str:
        status = "missing" if self.is_missing else "active"
        main_marker = " (main)" if self.is_main else ""
        branch = self.branch_name or "(detached)"
        return f"{branch} @ {self.path}{main_marker} [{status}]"


@dataclass
class WorktreeReference:
    """A managed worktree as seen from the worktree base directory."""

    name: str  # raw, branch-derived
    normalized_name: str
    path: Path
    branch: Optional[str]
    exists: bool


@dataclass(frozen=True)
class WorkingTreeStatus:
    """Result of `git status --porcelain`."""

    clean: bool
    file_count: int
