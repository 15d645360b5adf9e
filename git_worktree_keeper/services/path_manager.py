"""Worktree path and name management for git-worktree-keeper.

All paths returned here are absolute and derived from the main repository
root, so callers never depend on their current directory.
"""

import os
import re
from pathlib import Path
from typing import Optional, Union

from git_worktree_keeper.constants import DEFAULT_BASE_DIR, ENV_FILE
from git_worktree_keeper.logging_config import get_logger

logger = get_logger(__name__)

VALID_NAME = re.compile(r"^[A-Za-z0-9_-]+$")

PathLike = Union[str, Path]


def _real(path: PathLike) -> Path:
    return Path(os.path.realpath(os.path.abspath(path)))


class PathManager:
    """Builds worktree paths, normalises names and tests containment."""

    def __init__(self, git_root: Optional[PathLike], base_dir: str = DEFAULT_BASE_DIR, prefix: str = "wt-"):
        """Initialize the path manager.

        Args:
            git_root: Resolved main repository root
            base_dir: Worktree directory name relative to the root
            prefix: Prefix every managed worktree name carries
        """
        if not git_root:
            raise ValueError("PathManager requires a resolved repository root")
        self.git_root = _real(git_root)
        self.worktree_base = self.git_root / base_dir
        self.prefix = prefix

    @classmethod
    def from_config(cls, git_root: PathLike, config) -> "PathManager":
        return cls(git_root, base_dir=config.base_dir, prefix=config.prefix)

    def normalize_worktree_name(self, name: str) -> str:
        """Prepend the prefix unless already present. Idempotent."""
        if name is None or not name.strip():
            raise ValueError("Worktree name cannot be empty")
        name = name.strip()
        if name.startswith(self.prefix):
            return name
        return f"{self.prefix}{name}"

    def strip_prefix(self, name: str) -> str:
        if not name:
            return name
        return name[len(self.prefix):] if self.prefix and name.startswith(self.prefix) else name

    def get_display_name(self, name: str) -> str:
        """Name without the prefix, the inverse of normalize_worktree_name."""
        return self.strip_prefix(name)

    def is_valid_worktree_name(self, name: str) -> bool:
        """Only letters, digits, hyphens and underscores after the prefix.

        Rejects separators and traversal before the name reaches a path.
        """
        if not name or not isinstance(name, str):
            return False
        return bool(VALID_NAME.match(self.strip_prefix(name.strip())))

    def get_worktree_path(self, name: str) -> Path:
        return self.worktree_base / self.normalize_worktree_name(name)

    def env_file_path(self, name: str) -> Path:
        return self.get_worktree_path(name) / ENV_FILE

    def _relative_to_base(self, path: PathLike) -> Optional[str]:
        try:
            return os.path.relpath(_real(path), self.worktree_base)
        except ValueError:
            # Different drive on Windows
            return None

    def is_in_worktree(self, path: PathLike) -> bool:
        """True iff path lies strictly under the base directory.

        The base directory itself belongs to no worktree.
        """
        relative = self._relative_to_base(path)
        if relative is None or os.path.isabs(relative) or relative == os.curdir:
            return False
        return Path(relative).parts[:1] != ("..",)

    def get_worktree_from_path(self, path: PathLike) -> Optional[str]:
        """First path segment under the base directory, or None."""
        if not self.is_in_worktree(path):
            return None
        relative = self._relative_to_base(path)
        first = Path(relative).parts[0] if relative else ""
        if first in ("", "."):
            return None
        return first

    def current_worktree(self, cwd: Optional[PathLike] = None) -> Optional[str]:
        """Name of the managed worktree containing cwd (default: process cwd)."""
        return self.get_worktree_from_path(cwd if cwd is not None else os.getcwd())

    def resolve_worktree_path(self, reference: PathLike) -> Path:
        """Turn a worktree name or absolute path into the worktree's path."""
        if os.path.isabs(str(reference)):
            if self.is_in_worktree(reference):
                return _real(reference)
            raise ValueError(f"Path {reference} is not in a worktree")
        return self.get_worktree_path(str(reference))

    def worktree_exists(self, name: str) -> bool:
        """Directory presence on disk, independent of git's registry."""
        try:
            return self.get_worktree_path(name).is_dir()
        except (OSError, ValueError):
            return False

    def get_relative_from_root(self, path: PathLike) -> str:
        return os.path.relpath(_real(path), self.git_root)

    def ensure_worktree_base(self) -> Path:
        """Create the base directory if missing.

        Raises:
            OSError: If the directory cannot be created
        """
        self.worktree_base.mkdir(parents=True, exist_ok=True)
        logger.debug(f"Ensured worktree base {self.worktree_base}")
        return self.worktree_base
