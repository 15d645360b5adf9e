"""Pre-operation validation for git-worktree-keeper.

Every check takes its collaborators explicitly and returns a
ValidationResult listing every violation found. Nothing here raises for a
failed precondition; validate_or_raise is the single place a result turns
into an exception.
"""

import os
from pathlib import Path
from typing import List, Optional, Union

from git_worktree_keeper.exceptions import ValidationError, WorktreeKeeperError
from git_worktree_keeper.logging_config import get_logger
from git_worktree_keeper.models.validation import ValidationResult, Violation, ViolationKind
from git_worktree_keeper.services.git.queries import GitQuery
from git_worktree_keeper.services.path_manager import PathManager

logger = get_logger(__name__)


def _same_path(a: Union[str, Path], b: Union[str, Path]) -> bool:
    return os.path.normcase(os.path.realpath(a)) == os.path.normcase(os.path.realpath(b))


def _is_within(path: Union[str, Path], directory: Union[str, Path]) -> bool:
    """True if path is directory or lies below it."""
    try:
        relative = os.path.relpath(os.path.realpath(path), os.path.realpath(directory))
    except ValueError:
        # Different drive on Windows
        return False
    return Path(relative).parts[:1] != (os.pardir,)


class Validator:
    """Stateless precondition checks for create, merge and remove."""

    @staticmethod
    def validate_repository(git_query: GitQuery) -> ValidationResult:
        """Check that git_query points at a repository."""
        if not git_query.is_repository():
            return ValidationResult.from_violations(
                [Violation(ViolationKind.NOT_A_REPOSITORY, "not in a git repository")]
            )
        return ValidationResult.from_violations([])

    @staticmethod
    def _general_checks(
        git_query: GitQuery,
        path_manager: PathManager,
        worktree_name: str,
        require_exists: bool = True,
        require_clean: bool = True,
        check_git_worktrees: bool = True,
        check_branch: bool = True,
    ) -> List[Violation]:
        violations: List[Violation] = []

        # Nothing else is meaningful outside a repository
        if not git_query.is_repository():
            violations.append(Violation(ViolationKind.NOT_A_REPOSITORY, "not in a git repository"))
            return violations

        try:
            worktree_path = path_manager.get_worktree_path(worktree_name)
        except ValueError as e:
            violations.append(Violation(ViolationKind.INVALID_NAME, str(e)))
            worktree_path = None
        directory_exists = worktree_path is not None and path_manager.worktree_exists(worktree_name)

        if require_exists and not directory_exists:
            violations.append(Violation(ViolationKind.WORKTREE_MISSING, f"worktree '{worktree_name}' not found"))

        if require_clean:
            try:
                status = git_query.status()
                if not status.clean:
                    violations.append(
                        Violation(
                            ViolationKind.UNCOMMITTED_CHANGES,
                            f"{status.file_count} uncommitted changes in repository",
                        )
                    )
            except WorktreeKeeperError as e:
                violations.append(Violation(ViolationKind.CHECK_FAILED, f"failed to check repository status: {e}"))

        if check_git_worktrees and worktree_path is not None:
            try:
                registered = any(_same_path(wt.path, worktree_path) for wt in git_query.list_worktrees())
                if require_exists and directory_exists and not registered:
                    violations.append(
                        Violation(ViolationKind.NOT_REGISTERED, f"git doesn't recognize worktree at {worktree_path}")
                    )
                elif registered and not directory_exists:
                    violations.append(
                        Violation(
                            ViolationKind.STALE_REGISTRATION,
                            f"git still tracks worktree at {worktree_path} but the directory is missing "
                            "(run 'git worktree prune')",
                        )
                    )
            except WorktreeKeeperError as e:
                violations.append(Violation(ViolationKind.CHECK_FAILED, f"failed to check git worktree status: {e}"))

        if check_branch:
            try:
                if git_query.current_branch() is None:
                    violations.append(Violation(ViolationKind.DETACHED_HEAD, "repository is in detached HEAD state"))
            except WorktreeKeeperError as e:
                violations.append(Violation(ViolationKind.CHECK_FAILED, f"failed to check current branch: {e}"))

        return violations

    @classmethod
    def validate_worktree_operation(
        cls,
        git_query: GitQuery,
        path_manager: PathManager,
        worktree_name: str,
        require_exists: bool = True,
        require_clean: bool = True,
        check_git_worktrees: bool = True,
        check_branch: bool = True,
    ) -> ValidationResult:
        """General precondition bundle shared by every operation.

        Args:
            git_query: Git collaborator for the repository being operated on
            path_manager: Path manager for the same repository
            worktree_name: Worktree name (prefixed or not)
            require_exists: Worktree directory must be present on disk
            require_clean: Working tree of git_query must have no changes
            check_git_worktrees: Cross-check git's worktree registry against disk
            check_branch: Reject a detached HEAD

        Returns:
            ValidationResult with every violation, in check order
        """
        return ValidationResult.from_violations(
            cls._general_checks(
                git_query,
                path_manager,
                worktree_name,
                require_exists=require_exists,
                require_clean=require_clean,
                check_git_worktrees=check_git_worktrees,
                check_branch=check_branch,
            )
        )

    @classmethod
    def validate_create_operation(
        cls,
        git_query: GitQuery,
        path_manager: PathManager,
        branch_name: str,
        require_clean: bool = True,
        create_branch: bool = False,
    ) -> ValidationResult:
        """Preconditions for creating a worktree for branch_name.

        Creates the base directory as a side effect so permission problems
        show up before git is invoked.
        """
        violations = cls._general_checks(
            git_query,
            path_manager,
            branch_name,
            require_exists=False,
            require_clean=require_clean,
            check_git_worktrees=False,
            check_branch=True,
        )
        if violations and violations[0].kind is ViolationKind.NOT_A_REPOSITORY:
            return ValidationResult.from_violations(violations)

        # An empty name was already reported by the general checks
        name_rejected = any(v.kind is ViolationKind.INVALID_NAME for v in violations)

        if not name_rejected and path_manager.worktree_exists(branch_name):
            violations.append(Violation(ViolationKind.WORKTREE_EXISTS, f"worktree '{branch_name}' already exists"))

        if not name_rejected and not path_manager.is_valid_worktree_name(branch_name):
            violations.append(
                Violation(
                    ViolationKind.INVALID_NAME,
                    f"invalid worktree name '{branch_name}' (use alphanumeric, hyphens, underscores only)",
                )
            )

        if create_branch:
            try:
                if git_query.branch_exists(branch_name):
                    violations.append(Violation(ViolationKind.BRANCH_EXISTS, f"branch '{branch_name}' already exists"))
            except WorktreeKeeperError as e:
                violations.append(Violation(ViolationKind.CHECK_FAILED, f"failed to check branches: {e}"))

        try:
            path_manager.ensure_worktree_base()
        except OSError as e:
            violations.append(
                Violation(ViolationKind.BASE_DIR_UNAVAILABLE, f"cannot create worktree directory: {e.strerror or e}")
            )

        return ValidationResult.from_violations(violations)

    @classmethod
    def validate_merge_operation(
        cls,
        git_query: GitQuery,
        path_manager: PathManager,
        worktree_name: str,
        target_branch: str,
    ) -> ValidationResult:
        """Preconditions for merging a worktree's branch into target_branch.

        Unlike the general bundle this keeps going after a failed general
        check, so a dirty worktree and a missing target are both reported.
        """
        violations = cls._general_checks(
            git_query,
            path_manager,
            worktree_name,
            require_exists=True,
            require_clean=True,
            check_git_worktrees=True,
            check_branch=True,
        )
        if violations and violations[0].kind is ViolationKind.NOT_A_REPOSITORY:
            return ValidationResult.from_violations(violations)

        try:
            if not git_query.branch_exists(target_branch):
                violations.append(
                    Violation(ViolationKind.BRANCH_NOT_FOUND, f"target branch '{target_branch}' not found")
                )
        except WorktreeKeeperError as e:
            violations.append(Violation(ViolationKind.CHECK_FAILED, f"failed to check branches: {e}"))

        # Worktree-scoped checks need the directory
        if path_manager.worktree_exists(worktree_name):
            worktree_path = path_manager.get_worktree_path(worktree_name)
            try:
                worktree_branch = git_query.current_branch(worktree_path)
                if worktree_branch == target_branch:
                    violations.append(
                        Violation(
                            ViolationKind.SAME_BRANCH,
                            f"worktree is already on target branch '{target_branch}'",
                        )
                    )
            except WorktreeKeeperError as e:
                violations.append(Violation(ViolationKind.CHECK_FAILED, f"failed to check worktree branch: {e}"))

            try:
                worktree_status = git_query.status(worktree_path)
                if not worktree_status.clean:
                    violations.append(
                        Violation(
                            ViolationKind.UNCOMMITTED_CHANGES,
                            f"{worktree_status.file_count} uncommitted changes in worktree '{worktree_name}'",
                        )
                    )
            except WorktreeKeeperError as e:
                violations.append(Violation(ViolationKind.CHECK_FAILED, f"failed to check worktree status: {e}"))

        return ValidationResult.from_violations(violations)

    @classmethod
    def validate_remove_operation(
        cls,
        git_query: GitQuery,
        path_manager: PathManager,
        worktree_name: str,
        force: bool = False,
        cwd: Optional[Union[str, Path]] = None,
    ) -> ValidationResult:
        """Preconditions for removing a worktree.

        Args:
            force: Allow uncommitted changes
            cwd: Directory the caller runs in (default: process cwd)
        """
        violations = cls._general_checks(
            git_query,
            path_manager,
            worktree_name,
            require_exists=True,
            require_clean=not force,
            check_git_worktrees=True,
            check_branch=False,
        )
        if violations and violations[0].kind is ViolationKind.NOT_A_REPOSITORY:
            return ValidationResult.from_violations(violations)

        current = os.path.realpath(cwd if cwd is not None else os.getcwd())
        if path_manager.is_valid_worktree_name(worktree_name) and _is_within(
            current, path_manager.get_worktree_path(worktree_name)
        ):
            violations.append(
                Violation(
                    ViolationKind.INSIDE_WORKTREE,
                    f"cannot remove worktree while inside it (current directory: {current})",
                )
            )

        return ValidationResult.from_violations(violations)

    @staticmethod
    def format_violations(result: Union[ValidationResult, List[str]], operation: str = "operation") -> Optional[str]:
        """Render violations for display; None when there are none."""
        messages = result.messages if isinstance(result, ValidationResult) else list(result)
        if not messages:
            return None
        if len(messages) == 1:
            return f"cannot {operation}: {messages[0]}"
        bullets = "\n".join(f"  - {message}" for message in messages)
        return f"cannot {operation}:\n{bullets}"

    @classmethod
    def validate_or_raise(cls, result: ValidationResult, operation: str = "operation") -> None:
        """Raise one ValidationError naming every violation in result.

        Raises:
            ValidationError: If result is Invalid
        """
        if result.is_valid:
            return
        message = cls.format_violations(result, operation)
        logger.debug(f"Validation failed for {operation}: {result.messages}")
        raise ValidationError(operation, list(result.violations), message)
