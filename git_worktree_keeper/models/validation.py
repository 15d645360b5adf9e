"""Validation result types."""
from dataclasses import dataclass
from enum import Enum
from typing import List, Sequence


class ViolationKind(Enum):
    """Reason an operation should not proceed."""
    NOT_A_REPOSITORY = "not-a-repository"
    WORKTREE_MISSING = "worktree-missing"
    WORKTREE_EXISTS = "worktree-exists"
    UNCOMMITTED_CHANGES = "uncommitted-changes"
    NOT_REGISTERED = "not-registered"
    STALE_REGISTRATION = "stale-registration"
    DETACHED_HEAD = "detached-head"
    INVALID_NAME = "invalid-name"
    BRANCH_EXISTS = "branch-exists"
    BRANCH_NOT_FOUND = "branch-not-found"
    SAME_BRANCH = "same-branch"
    BASE_DIR_UNAVAILABLE = "base-dir-unavailable"
    INSIDE_WORKTREE = "inside-worktree"
    CHECK_FAILED = "check-failed"


@dataclass(frozen=True)
class Violation:
    kind: ViolationKind
    text: str

    def __str__(self) -> str:
        return self.text


class ValidationResult:
    """Outcome of a validation bundle: either Valid or Invalid."""

    violations: Sequence[Violation] = ()

    @property
    def is_valid(self) -> bool:
        return not self.violations

    @property
    def messages(self) -> List[str]:
        return [v.text for v in self.violations]

    @property
    def kinds(self) -> List[ViolationKind]:
        return [v.kind for v in self.violations]

    def has(self, kind: ViolationKind) -> bool:
        return kind in self.kinds

    @staticmethod
    def from_violations(violations: Sequence[Violation]) -> "ValidationResult":
        if violations:
            return Invalid(tuple(violations))
        return Valid()


class Valid(ValidationResult):
    violations = ()

    def __repr__(self) -> str:
        return "Valid()"

    def __eq__(self, other) -> bool:
        return isinstance(other, Valid)

    def __hash__(self) -> int:
        return hash(Valid)


class Invalid(ValidationResult):
    def __init__(self, violations: Sequence[Violation]):
        if not violations:
            raise ValueError("Invalid requires at least one violation")
        self.violations = tuple(violations)

    def __repr__(self) -> str:
        return f"Invalid({list(self.violations)!r})"

    def __eq__(self, other) -> bool:
        return isinstance(other, Invalid) and self.violations == other.violations

    def __hash__(self) -> int:
        return hash(self.violations)
