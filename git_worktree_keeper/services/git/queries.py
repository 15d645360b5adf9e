"""Read-only git queries used by validation."""

from pathlib import Path
from typing import List, Optional, Union

import git

from git_worktree_keeper.logging_config import get_logger
from git_worktree_keeper.models.worktree import WorkingTreeStatus, WorktreeInfo
from git_worktree_keeper.services.git.worktrees import wrap_command_error, parse_worktree_porcelain

logger = get_logger(__name__)


class GitQuery:
    """Answers questions about a repository without changing it.

    Queries run against repo_path unless a `path` is given, in which case
    they run with `git -C <path>` so a worktree can be inspected without
    changing the process directory.
    """

    def __init__(self, repo_path: Union[str, Path]):
        self.repo_path = str(repo_path)

    def _get_repo(self):
        """Get a fresh git.Repo instance for repo_path."""
        return git.Repo(self.repo_path, search_parent_directories=True)

    def _run(self, operation: str, *args: str, path: Optional[Union[str, Path]] = None) -> str:
        repo = self._get_repo()
        command = ["git"]
        if path is not None:
            command += ["-C", Path(path).as_posix()]
        command += list(args)
        try:
            return repo.git.execute(command)
        except git.exc.GitCommandError as e:
            raise wrap_command_error(operation, str(path) if path else None, e) from e

    def is_repository(self) -> bool:
        try:
            self._get_repo()
            return True
        except (git.exc.InvalidGitRepositoryError, git.exc.NoSuchPathError):
            return False

    def status(self, path: Optional[Union[str, Path]] = None) -> WorkingTreeStatus:
        """Working-tree status from `git status --porcelain`.

        Raises:
            GitOperationError: If git status fails
        """
        output = self._run("status", "status", "--porcelain", path=path)
        files = [line for line in output.splitlines() if line.strip()]
        return WorkingTreeStatus(clean=not files, file_count=len(files))

    def list_worktrees(self) -> List[WorktreeInfo]:
        """Registry entries from `git worktree list --porcelain`."""
        output = self._run("worktree list", "worktree", "list", "--porcelain")
        worktrees = parse_worktree_porcelain(output)
        logger.debug(f"Found {len(worktrees)} worktrees")
        for wt in worktrees:
            logger.debug(f"  {wt}")
        return worktrees

    def branch_exists(self, branch_name: str) -> bool:
        """True if branch_name exists locally or as a remote-tracking branch."""
        output = self._run(
            "branch lookup", "for-each-ref", "--format=%(refname)", "refs/heads", "refs/remotes"
        )
        for ref in output.splitlines():
            ref = ref.strip()
            if ref == f"refs/heads/{branch_name}":
                return True
            if ref.startswith("refs/remotes/"):
                # refs/remotes/<remote>/<branch>
                remote_branch = ref[len("refs/remotes/"):].split("/", 1)
                if len(remote_branch) == 2 and remote_branch[1] == branch_name:
                    return True
        return False

    def current_branch(self, path: Optional[Union[str, Path]] = None) -> Optional[str]:
        """Checked-out branch name, or None for detached HEAD."""
        branch = self._run("rev-parse", "rev-parse", "--abbrev-ref", "HEAD", path=path).strip()
        return None if branch == "HEAD" else branch

    def merge_in_progress(self) -> bool:
        """True while a merge is stopped in the repository (MERGE_HEAD present)."""
        repo = self._get_repo()
        return Path(repo.git_dir, "MERGE_HEAD").exists()
