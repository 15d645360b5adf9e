"""Port range and assignment models."""
from dataclasses import dataclass, field
from typing import Dict


@dataclass(frozen=True)
class PortRange:
    """Arithmetic sequence of candidate ports for one service."""
    start: int
    increment: int = 10

    def to_dict(self) -> Dict[str, int]:
        return {"start": self.start, "increment": self.increment}

    @classmethod
    def from_dict(cls, data: dict) -> "PortRange":
        return cls(start=int(data["start"]), increment=int(data.get("increment", 10)))


@dataclass
class PortAssignment:
    """Ports held by one worktree, keyed by service name."""
    worktree: str
    ports: Dict[str, int] = field(default_factory=dict)
    created: str = ""
