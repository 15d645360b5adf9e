"""Data models for git-worktree-keeper."""

from .ports import PortRange, PortAssignment
from .repository import MainRepo, LinkedWorktree, GitLocation, RepositoryRoot
from .validation import ViolationKind, Violation, ValidationResult, Valid, Invalid
from .worktree import WorktreeInfo, WorktreeReference, WorkingTreeStatus

__all__ = [
    "PortRange",
    "PortAssignment",
    "MainRepo",
    "LinkedWorktree",
    "GitLocation",
    "RepositoryRoot",
    "ViolationKind",
    "Violation",
    "ValidationResult",
    "Valid",
    "Invalid",
    "WorktreeInfo",
    "WorktreeReference",
    "WorkingTreeStatus",
]
