"""Custom exceptions for git-worktree-keeper"""

from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from git_worktree_keeper.models.validation import Violation


class WorktreeKeeperError(Exception):
    """Base exception for all git-worktree-keeper errors."""
    pass


class NotAGitRepositoryError(WorktreeKeeperError):
    """Raised when no .git entry exists between a path and the filesystem root."""

    def __init__(self, start_dir: Optional[str] = None):
        self.start_dir = start_dir
        message = "not a git repository"
        if start_dir:
            message += f" (or any parent directory): {start_dir}"
        super().__init__(message)


class MainRepositoryNotFoundError(WorktreeKeeperError):
    """Raised when a linked worktree's main repository cannot be located."""

    def __init__(self, git_dir: str):
        self.git_dir = git_dir
        super().__init__(f"cannot determine main repository from worktree git dir {git_dir}")


class ConfigError(WorktreeKeeperError):
    """Raised for invalid or unreadable configuration."""
    pass


class ConfigNotFoundError(ConfigError):
    """Raised when the repository has not been initialised."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(
            f"no worktree configuration found at {path}. Run 'wt init' to set up this repository"
        )


class GitOperationError(WorktreeKeeperError):
    """Exception raised for errors in Git operations."""

    def __init__(self, operation: str, target: Optional[str] = None, message: Optional[str] = None):
        self.operation = operation
        self.target = target
        self.message = message

        error_msg = f"Git operation '{operation}' failed"
        if target:
            error_msg += f" for '{target}'"
        if message:
            error_msg += f": {message}"

        super().__init__(error_msg)


class ValidationError(WorktreeKeeperError):
    """Aggregated precondition violations for one operation."""

    def __init__(self, operation: str, violations: List["Violation"], message: str):
        self.operation = operation
        self.violations = violations
        super().__init__(message)


class PortAllocationError(WorktreeKeeperError):
    """Base class for port assignment failures."""
    pass


class PortExhaustedError(PortAllocationError):
    """Raised when a scan passes the highest valid port."""

    def __init__(self, service: Optional[str] = None, start: Optional[int] = None):
        self.service = service
        self.start = start
        message = "no available ports in range"
        if service:
            message += f" for service '{service}' (start {start})"
        super().__init__(message)


class UnknownServiceError(PortAllocationError):
    """Raised when a service has no configured port range."""

    def __init__(self, service: str):
        self.service = service
        super().__init__(f"no port range defined for service: {service}")


class PortMapCorruptError(WorktreeKeeperError):
    """Raised when the persisted port map cannot be parsed."""

    def __init__(self, path: str, message: str):
        self.path = path
        super().__init__(f"port map {path} is corrupt: {message}. Fix or delete the file manually")
