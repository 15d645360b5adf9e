"""Core functionality for git-worktree-keeper"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from git_worktree_keeper.config import Config, init_config, load_config
from git_worktree_keeper.constants import ENV_FILE
from git_worktree_keeper.exceptions import GitOperationError, WorktreeKeeperError
from git_worktree_keeper.logging_config import get_logger
from git_worktree_keeper.models.repository import RepositoryRoot
from git_worktree_keeper.models.worktree import WorktreeReference
from git_worktree_keeper.services.git import GitQuery, WorktreeService
from git_worktree_keeper.services.path_manager import PathManager
from git_worktree_keeper.services.port_allocator import PortAllocator
from git_worktree_keeper.services.root_finder import RootFinder
from git_worktree_keeper.services.validator import Validator

logger = get_logger(__name__)


@dataclass
class CreateResult:
    worktree: WorktreeReference
    ports: Dict[str, int]
    created_branch: bool
    base_branch: Optional[str]


@dataclass
class MergeResult:
    branch: str
    target: str
    cleaned_up: bool
    warnings: List[str] = field(default_factory=list)


@dataclass
class PortStatus:
    worktree: str
    ports: Dict[str, int]
    in_use: Dict[str, bool]


@dataclass
class PortReassignment:
    worktree: str
    moved: Dict[str, Tuple[int, int]]  # service -> (old, new)
    ports: Dict[str, int]


class WorktreeKeeper:
    """Runs worktree operations for one repository.

    Every operation validates its preconditions first and raises a single
    ValidationError listing all of them, so git is only invoked when the
    operation is expected to succeed. There is no rollback when git fails
    part way through.
    """

    def __init__(self, start_dir: Union[str, Path, None] = None, config: Optional[Config] = None):
        """Resolve the repository from start_dir and load its configuration.

        Args:
            start_dir: Any directory inside the main checkout or a linked worktree
            config: Pre-loaded configuration (read from the repository when None)

        Raises:
            NotAGitRepositoryError: If start_dir is not inside a repository
            ConfigNotFoundError: If the repository was never initialised
        """
        self.start_dir = Path(start_dir) if start_dir is not None else Path.cwd()
        self.repository: RepositoryRoot = RootFinder().find_root(self.start_dir)
        self.root = self.repository.root
        self.config = config if config is not None else load_config(self.root)
        self.paths = PathManager.from_config(self.root, self.config)
        self.git_query = GitQuery(self.root)
        self.worktrees = WorktreeService(self.root)
        self._allocator: Optional[PortAllocator] = None
        logger.debug(f"Repository root {self.root} (started in worktree: {self.repository.is_worktree})")

    @classmethod
    def init(cls, start_dir: Union[str, Path, None] = None) -> "WorktreeKeeper":
        """Write the default configuration (if absent) and prepare the base directory."""
        root = RootFinder().get_main_repo_root(start_dir)
        config = init_config(root)
        _exclude_locally(root, config.base_dir)
        return cls(start_dir, config)

    @property
    def allocator(self) -> PortAllocator:
        """Port allocator for this repository, loaded on first use."""
        if self._allocator is None:
            self._allocator = PortAllocator.for_base_dir(self.paths.worktree_base)
        return self._allocator

    def _resolve_name(self, name: Optional[str], cwd: Union[str, Path, None]) -> str:
        if name and name.strip():
            return self.paths.normalize_worktree_name(name)
        detected = self.paths.current_worktree(cwd if cwd is not None else self.start_dir)
        if not detected:
            raise WorktreeKeeperError("no worktree specified and not currently inside a worktree")
        logger.info(f"Auto-detected current worktree: {detected}")
        return detected

    def create(
        self,
        branch_name: str,
        base_branch: Optional[str] = None,
        require_clean: bool = False,
        new_branch: bool = False,
    ) -> CreateResult:
        """Create a worktree for branch_name and give it its own ports.

        A new branch is created from base_branch (default: the main branch)
        when branch_name exists neither locally nor on a remote. With
        new_branch=True an existing branch is a validation failure.
        """
        _exclude_locally(self.root, self.config.base_dir)

        result = Validator.validate_create_operation(
            self.git_query,
            self.paths,
            branch_name,
            require_clean=require_clean,
            create_branch=new_branch,
        )
        Validator.validate_or_raise(result, "create worktree")

        name = self.paths.normalize_worktree_name(branch_name)
        create_branch = new_branch or not self.git_query.branch_exists(branch_name)
        base = base_branch or self.config.main_branch

        if create_branch and not self.git_query.branch_exists(base):
            raise GitOperationError(
                "create worktree", branch_name, f"base branch '{base}' doesn't exist"
            )

        worktree_path = self.paths.get_worktree_path(name)
        self.worktrees.add_worktree(worktree_path, branch_name, base if create_branch else None)

        ports = self.allocator.assign_ports(name, self.config.services, self.config.port_ranges)
        self._write_env_file(name, ports)

        reference = WorktreeReference(
            name=self.paths.get_display_name(name),
            normalized_name=name,
            path=worktree_path,
            branch=branch_name,
            exists=True,
        )
        return CreateResult(
            worktree=reference,
            ports=ports,
            created_branch=create_branch,
            base_branch=base if create_branch else None,
        )

    def _write_env_file(self, name: str, ports: Dict[str, int]) -> Path:
        """Write .env.worktree (ignored through the shared info/exclude)."""
        lines = [f"{service.upper()}_PORT={port}" for service, port in ports.items()]
        lines.append(f"WORKTREE_NAME={name}")
        env_path = self.paths.env_file_path(name)
        env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return env_path

    def list_worktrees(self) -> List[WorktreeReference]:
        """Managed worktrees: those git registers under the base directory."""
        references = []
        for info in self.git_query.list_worktrees():
            if info.is_main or not self.paths.is_in_worktree(info.path):
                continue
            name = self.paths.get_worktree_from_path(info.path)
            references.append(
                WorktreeReference(
                    name=self.paths.get_display_name(name),
                    normalized_name=name,
                    path=Path(info.path),
                    branch=info.branch_name,
                    exists=not info.is_missing,
                )
            )
        return references

    def merge(
        self,
        name: Optional[str] = None,
        delete: Optional[bool] = None,
        cwd: Union[str, Path, None] = None,
    ) -> MergeResult:
        """Merge a worktree's branch into the main branch.

        Args:
            name: Worktree name; detected from cwd when omitted
            delete: Remove the worktree and its branch afterwards (default: config auto_cleanup)
            cwd: Directory used for detection
        """
        name = self._resolve_name(name, cwd)
        target = self.config.main_branch

        result = Validator.validate_merge_operation(self.git_query, self.paths, name, target)
        Validator.validate_or_raise(result, "merge")

        worktree_path = self.paths.get_worktree_path(name)
        branch = self.git_query.current_branch(worktree_path)
        if branch is None:
            raise GitOperationError("merge", name, "worktree is in detached HEAD state")

        try:
            self.worktrees.merge_branch(branch, target)
        except GitOperationError as e:
            conflicts = self.worktrees.conflicted_files()
            if not conflicts:
                raise
            raise GitOperationError(
                "merge",
                f"{branch} -> {target}",
                f"conflicts in {', '.join(conflicts)}. Resolve them and commit, or run 'wt merge --abort'",
            ) from e

        merge_result = MergeResult(branch=branch, target=target, cleaned_up=False)
        should_delete = self.config.auto_cleanup if delete is None else delete
        if not should_delete:
            return merge_result

        try:
            self.worktrees.remove_worktree(worktree_path)
        except GitOperationError as e:
            logger.warning(f"Merged, but cleanup of {name} failed: {e}")
            merge_result.warnings.append(str(e))
            return merge_result

        try:
            self.worktrees.delete_branch(branch)
        except GitOperationError as e:
            logger.warning(f"Could not delete branch {branch}: {e}")
            merge_result.warnings.append(f"branch '{branch}' was kept, delete it manually with 'git branch -d {branch}'")

        self.allocator.release_ports(name)
        merge_result.cleaned_up = True
        return merge_result

    def remove(
        self,
        name: Optional[str] = None,
        force: bool = False,
        cwd: Union[str, Path, None] = None,
    ) -> WorktreeReference:
        """Remove a worktree and release its ports."""
        name = self._resolve_name(name, cwd)
        result = Validator.validate_remove_operation(
            self.git_query,
            self.paths,
            name,
            force=force,
            cwd=cwd if cwd is not None else os.getcwd(),
        )
        Validator.validate_or_raise(result, "remove worktree")

        worktree_path = self.paths.get_worktree_path(name)
        branch = self.git_query.current_branch(worktree_path)
        self.worktrees.remove_worktree(worktree_path, force=force)

        try:
            self.allocator.release_ports(name)
        except (OSError, WorktreeKeeperError) as e:
            logger.warning(f"Port cleanup failed for {name}: {e}")

        return WorktreeReference(
            name=self.paths.get_display_name(name),
            normalized_name=name,
            path=worktree_path,
            branch=branch,
            exists=False,
        )

    def ports(self, name: Optional[str] = None) -> List[PortStatus]:
        """Port assignments with advisory liveness, for one or all worktrees."""
        if name:
            normalized = self.paths.normalize_worktree_name(name)
            selected = {normalized: self.allocator.get_ports(normalized)}
            if selected[normalized] is None:
                return []
        else:
            selected = self.allocator.get_all_ports()

        return [
            PortStatus(
                worktree=worktree,
                ports=ports,
                in_use={service: self.allocator.is_port_in_use(port) for service, port in ports.items()},
            )
            for worktree, ports in selected.items()
        ]

    def reassign_busy_ports(
        self,
        name: Optional[str] = None,
        cwd: Union[str, Path, None] = None,
    ) -> PortReassignment:
        """Move a worktree's services off ports that something is listening on.

        Meant for when another process has taken an assigned port while the
        worktree's own servers are stopped. Moved ports are persisted and
        written to the worktree's .env.worktree.

        Raises:
            WorktreeKeeperError: If the worktree has no port assignment
        """
        name = self._resolve_name(name, cwd)
        current = self.allocator.get_ports(name)
        if current is None:
            raise WorktreeKeeperError(f"no ports assigned to worktree '{name}'")

        busy = self.allocator.get_running_ports(name)
        if not busy:
            return PortReassignment(worktree=name, moved={}, ports=current)

        ports = self.allocator.reassign_ports(name, list(busy), self.config.port_ranges)
        moved = {service: (old, ports[service]) for service, old in busy.items()}
        for service, (old, new) in moved.items():
            logger.info(f"Reassigned {name}/{service} from {old} to {new}")

        if self.paths.worktree_exists(name):
            self._write_env_file(name, ports)
        return PortReassignment(worktree=name, moved=moved, ports=ports)

    def conflicts(self) -> List[str]:
        """Files left unmerged by a stopped merge in the main checkout."""
        return self.worktrees.conflicted_files()

    def abort_merge(self) -> List[str]:
        """Abort a stopped merge in the main checkout.

        Returns:
            The files that were in conflict

        Raises:
            WorktreeKeeperError: If no merge is in progress
        """
        if not self.git_query.merge_in_progress():
            raise WorktreeKeeperError("no merge in progress")
        conflicted = self.worktrees.conflicted_files()
        self.worktrees.abort_merge()
        return conflicted


def _exclude_locally(root: Path, base_dir: str) -> None:
    """Keep the base directory and .env.worktree files out of `git status`.

    Uses the main repository's info/exclude, which every linked worktree
    shares, so nothing is written into tracked files.
    """
    exclude = Path(root) / ".git" / "info" / "exclude"
    wanted = [f"/{base_dir.strip('/')}/", ENV_FILE]
    try:
        content = exclude.read_text(encoding="utf-8") if exclude.exists() else ""
        missing = [entry for entry in wanted if entry not in content.splitlines()]
        if not missing:
            return
        exclude.parent.mkdir(parents=True, exist_ok=True)
        if content and not content.endswith("\n"):
            content += "\n"
        exclude.write_text(content + "\n".join(missing) + "\n", encoding="utf-8")
    except OSError as e:
        logger.warning(f"Could not update {exclude}: {e}")
