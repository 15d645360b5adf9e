"""Shared constants for git-worktree-keeper."""

from typing import Dict, List


CONFIG_FILE = ".worktree-config.json"
PORT_MAP_FILE = ".port-map.json"
ENV_FILE = ".env.worktree"
GIT_ENTRY = ".git"

DEFAULT_BASE_DIR = ".worktrees"
DEFAULT_MAIN_BRANCH = "main"
DEFAULT_NAME_PATTERN = "wt-{branch}"
BRANCH_PLACEHOLDER = "{branch}"

DEFAULT_PORT_RANGES: Dict[str, Dict[str, int]] = {
    "vite": {"start": 3000, "increment": 10},
    "storybook": {"start": 6006, "increment": 10},
    "custom": {"start": 8000, "increment": 10},
}

MAX_PORT = 65535

# Key stored next to the service ports in each port-map entry
CREATED_KEY = "created"

# Listening-socket probes, keyed by platform family
PORT_PROBE_COMMANDS: Dict[str, List[str]] = {
    "posix": ["lsof", "-nP", "-iTCP:{port}", "-sTCP:LISTEN"],
    "windows": ["netstat", "-ano", "-p", "TCP"],
}


# Table columns (CLI list output)
LIST_COLUMNS: List[str] = ["Worktree", "Branch", "Ports", "Path", "Notes"]

SYMBOL_IN_USE = "✓"
SYMBOL_MISSING = "✗"
