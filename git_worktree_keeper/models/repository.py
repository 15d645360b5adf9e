"""Repository location models."""
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union


@dataclass(frozen=True)
class MainRepo:
    """A directory whose .git entry is the canonical git directory."""
    path: Path


@dataclass(frozen=True)
class LinkedWorktree:
    """A directory whose .git entry is a file pointing into the main repository."""
    path: Path
    git_dir: Path
    resolved_root: Path


GitLocation = Union[MainRepo, LinkedWorktree]


@dataclass(frozen=True)
class RepositoryRoot:
    """Canonical main-repository root plus where the lookup started from."""
    root: Path
    is_worktree: bool
    worktree_path: Optional[Path] = None

    @property
    def worktree_name(self) -> Optional[str]:
        return self.worktree_path.name if self.worktree_path else None

    @classmethod
    def from_location(cls, location: GitLocation) -> "RepositoryRoot":
        if isinstance(location, LinkedWorktree):
            return cls(root=location.resolved_root, is_worktree=True, worktree_path=location.path)
        return cls(root=location.path, is_worktree=False)
