"""Repository root resolution for git-worktree-keeper.

Finds the canonical main-repository root from anywhere inside the main
checkout, a linked worktree, or a subdirectory of either.
"""

import os
import re
from pathlib import Path
from typing import Optional, Union

from git_worktree_keeper.constants import CONFIG_FILE, GIT_ENTRY
from git_worktree_keeper.exceptions import MainRepositoryNotFoundError, NotAGitRepositoryError
from git_worktree_keeper.logging_config import get_logger
from git_worktree_keeper.models.repository import GitLocation, LinkedWorktree, MainRepo, RepositoryRoot

logger = get_logger(__name__)

GITDIR_LINE = re.compile(r"^gitdir:\s*(.+?)\s*$", re.MULTILINE)


def _real(path: Union[str, Path]) -> Path:
    """Absolute path with symlinks resolved (e.g. /tmp -> /private/tmp on macOS)."""
    return Path(os.path.realpath(os.path.abspath(path)))


def read_gitdir(git_file: Path) -> Optional[Path]:
    """Parse the `gitdir: <path>` line of a worktree's .git file.

    Relative paths are resolved against the directory holding the file.
    Returns None when the file has no gitdir line.
    """
    content = git_file.read_text(encoding="utf-8", errors="replace")
    match = GITDIR_LINE.search(content)
    if not match:
        return None
    git_dir = Path(match.group(1))
    if not git_dir.is_absolute():
        git_dir = git_file.parent / git_dir
    return _real(git_dir)


def main_root_from_git_dir(git_dir: Path) -> Path:
    """Locate the main repository root for a linked worktree's git dir.

    Tries the `<root>/.git/worktrees/<name>` layout first, then falls back to
    the `commondir` file that git writes into every worktree git dir.

    Raises:
        MainRepositoryNotFoundError: If neither strategy succeeds
    """
    parts = git_dir.parts
    for index in range(len(parts) - 3, 0, -1):
        if parts[index] == GIT_ENTRY and parts[index + 1] == "worktrees":
            candidate = Path(*parts[:index])
            if (candidate / GIT_ENTRY).is_dir():
                logger.debug(f"Main repository {candidate} found from worktree layout")
                return candidate
            break

    commondir_file = git_dir / "commondir"
    try:
        common = Path(commondir_file.read_text(encoding="utf-8").strip())
    except OSError:
        raise MainRepositoryNotFoundError(str(git_dir))

    if not common.is_absolute():
        common = git_dir / common
    root = _real(common).parent
    logger.debug(f"Main repository {root} found from {commondir_file}")
    return root


def parse_git_entry(directory: Union[str, Path]) -> Optional[GitLocation]:
    """Classify `directory` by its .git entry.

    Returns:
        MainRepo if .git is a directory, LinkedWorktree if it is a gitdir
        file, None if there is no usable .git entry here
    """
    directory = Path(directory)
    git_entry = directory / GIT_ENTRY

    if git_entry.is_dir():
        return MainRepo(path=directory)

    if git_entry.is_file():
        try:
            git_dir = read_gitdir(git_entry)
        except OSError as e:
            logger.debug(f"Could not read {git_entry}: {e}")
            return None
        if git_dir is None:
            logger.debug(f"{git_entry} has no gitdir line, ignoring")
            return None
        return LinkedWorktree(
            path=directory,
            git_dir=git_dir,
            resolved_root=main_root_from_git_dir(git_dir),
        )

    return None


class RootFinder:
    """Finds the main repository root, handling both main repo and worktree cases."""

    def find_git_location(self, start_dir: Union[str, Path, None] = None) -> GitLocation:
        """Walk upward from start_dir to the nearest .git entry."""
        start = _real(start_dir if start_dir is not None else os.getcwd())
        for directory in (start, *start.parents):
            location = parse_git_entry(directory)
            if location is not None:
                logger.debug(f"Resolved {start} to {location}")
                return location
        raise NotAGitRepositoryError(str(start))

    def find_root(self, start_dir: Union[str, Path, None] = None) -> RepositoryRoot:
        """Resolve the canonical root for start_dir (default: cwd).

        Raises:
            NotAGitRepositoryError: If no .git entry exists up to the filesystem root
            MainRepositoryNotFoundError: If a worktree's main repository cannot be located
        """
        return RepositoryRoot.from_location(self.find_git_location(start_dir))

    def get_main_repo_root(self, start_dir: Union[str, Path, None] = None) -> Path:
        return self.find_root(start_dir).root

    def find_config_file(self, start_dir: Union[str, Path, None] = None) -> Optional[Path]:
        """Find the nearest configuration file walking upward from start_dir."""
        start = _real(start_dir if start_dir is not None else os.getcwd())
        for directory in (start, *start.parents):
            candidate = directory / CONFIG_FILE
            if candidate.is_file():
                return candidate
        return None
