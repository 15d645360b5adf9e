"""Worktree operations service for git-worktree-keeper."""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import git

from git_worktree_keeper.exceptions import GitOperationError
from git_worktree_keeper.logging_config import get_logger
from git_worktree_keeper.models.worktree import WorktreeInfo

logger = get_logger(__name__)


def wrap_command_error(operation: str, target: Optional[str], e: git.exc.GitCommandError) -> GitOperationError:
    """Wrap a GitCommandError, keeping git's stderr and exit status."""
    stderr = (e.stderr if hasattr(e, "stderr") and e.stderr else str(e)).strip()
    status = e.status if hasattr(e, "status") else "unknown"
    if stderr:
        message = f"exit {status}: {stderr}"
    else:
        message = f"exit code {status}"
    return GitOperationError(operation, target, message)


def parse_worktree_porcelain(output: str) -> List[WorktreeInfo]:
    """Parse `git worktree list --porcelain` output.

    Format:
        worktree /path/to/worktree
        HEAD commit_sha
        branch refs/heads/branch-name   (or `detached`, or `bare`)
        (blank line between worktrees)
    """
    worktrees: List[WorktreeInfo] = []
    current: Dict[str, Any] = {}

    def flush():
        path = current.get("path")
        if path:
            worktrees.append(
                WorktreeInfo(
                    path=path,
                    branch_name=current.get("branch"),
                    commit_sha=current.get("HEAD", ""),
                    is_main=not worktrees,  # First entry is always the main worktree
                    is_missing=not os.path.exists(path),
                    is_bare=current.get("bare", False),
                )
            )

    for line in output.splitlines():
        line = line.strip()
        if not line:
            flush()
            current = {}
            continue

        if line.startswith("worktree "):
            current["path"] = line.split(" ", 1)[1]
        elif line.startswith("HEAD "):
            current["HEAD"] = line.split(" ", 1)[1]
        elif line.startswith("branch "):
            branch_ref = line.split(" ", 1)[1]
            if branch_ref.startswith("refs/heads/"):
                current["branch"] = branch_ref[len("refs/heads/"):]
        elif line == "bare":
            current["bare"] = True

    # Last entry when there is no trailing blank line
    flush()
    return worktrees


class WorktreeService:
    """Invokes git to add, remove and merge worktrees. Never reimplements git."""

    def __init__(self, repo_path: Union[str, Path]):
        """Initialize the worktree service.

        Args:
            repo_path: Path to the main repository root
        """
        self.repo_path = str(repo_path)

    def _get_repo(self):
        """Get a fresh git.Repo instance.

        Returns:
            git.Repo: A repository instance for the main root
        """
        return git.Repo(self.repo_path)

    def add_worktree(self, path: Union[str, Path], branch_name: str, base_branch: Optional[str] = None) -> None:
        """Run `git worktree add`, creating the branch from base_branch when it is new.

        Raises:
            GitOperationError: If git refuses
        """
        repo = self._get_repo()
        local_branches = {head.name for head in repo.heads}
        path = Path(path).as_posix()

        if branch_name not in local_branches and base_branch:
            args = ["add", "-b", branch_name, path, base_branch]
        else:
            args = ["add", path, branch_name]

        try:
            repo.git.worktree(*args)
        except git.exc.GitCommandError as e:
            raise wrap_command_error("worktree add", branch_name, e) from e
        logger.info(f"Created worktree for {branch_name} at {path}")

    def remove_worktree(self, path: Union[str, Path], force: bool = False) -> None:
        """Run `git worktree remove`, which also deletes the directory.

        Raises:
            GitOperationError: If git refuses (e.g. uncommitted changes without force)
        """
        repo = self._get_repo()
        args = ["remove", Path(path).as_posix()]
        if force:
            args.append("--force")
        try:
            repo.git.worktree(*args)
        except git.exc.GitCommandError as e:
            raise wrap_command_error("worktree remove", str(path), e) from e
        logger.info(f"Removed worktree at {path}")

    def merge_branch(self, branch_name: str, into: str) -> None:
        """Check out `into` in the main root and merge branch_name.

        A failed merge (including conflicts) leaves the repository as git
        left it; there is no rollback.
        """
        repo = self._get_repo()
        try:
            repo.git.checkout(into)
            repo.git.merge(branch_name)
        except git.exc.GitCommandError as e:
            raise wrap_command_error("merge", f"{branch_name} -> {into}", e) from e
        logger.info(f"Merged {branch_name} into {into}")

    def delete_branch(self, branch_name: str, force: bool = False) -> None:
        repo = self._get_repo()
        try:
            repo.git.branch("-D" if force else "-d", branch_name)
        except git.exc.GitCommandError as e:
            raise wrap_command_error("delete branch", branch_name, e) from e
        logger.info(f"Deleted branch {branch_name}")

    def conflicted_files(self) -> List[str]:
        """Paths git reports as unmerged in the main root."""
        repo = self._get_repo()
        try:
            output = repo.git.diff("--name-only", "--diff-filter=U")
        except git.exc.GitCommandError as e:
            logger.debug(f"Could not list conflicted files: {e}")
            return []
        return [line for line in output.splitlines() if line.strip()]

    def abort_merge(self) -> None:
        """Run `git merge --abort` in the main root.

        Raises:
            GitOperationError: If there is no merge to abort
        """
        repo = self._get_repo()
        try:
            repo.git.merge("--abort")
        except git.exc.GitCommandError as e:
            raise wrap_command_error("merge abort", None, e) from e
        logger.info("Aborted merge")
