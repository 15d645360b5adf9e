"""Git-related services for git-worktree-keeper."""

from .queries import GitQuery
from .worktrees import WorktreeService, parse_worktree_porcelain

__all__ = [
    "GitQuery",
    "WorktreeService",
    "parse_worktree_porcelain",
]
