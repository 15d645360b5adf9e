"""Configuration handling for git-worktree-keeper"""

import json
import re
from dataclasses import dataclass, field
from pathlib import Path, PurePath
from typing import Dict, List, Union

from git_worktree_keeper.constants import (
    BRANCH_PLACEHOLDER,
    CONFIG_FILE,
    DEFAULT_BASE_DIR,
    DEFAULT_MAIN_BRANCH,
    DEFAULT_NAME_PATTERN,
    DEFAULT_PORT_RANGES,
    MAX_PORT,
)
from git_worktree_keeper.exceptions import ConfigError, ConfigNotFoundError
from git_worktree_keeper.logging_config import get_logger
from git_worktree_keeper.models.ports import PortRange

logger = get_logger(__name__)

PREFIX_CHARS = re.compile(r"^[A-Za-z0-9_-]*$")


def _default_port_ranges() -> Dict[str, PortRange]:
    return {name: PortRange.from_dict(values) for name, values in DEFAULT_PORT_RANGES.items()}


@dataclass
class Config:
    """Per-repository configuration with validation."""

    base_dir: str = DEFAULT_BASE_DIR
    port_ranges: Dict[str, PortRange] = field(default_factory=_default_port_ranges)
    main_branch: str = DEFAULT_MAIN_BRANCH
    name_pattern: str = DEFAULT_NAME_PATTERN
    auto_cleanup: bool = True

    def __post_init__(self):
        """Validate configuration after initialization."""
        self._validate_base_dir()
        self._validate_main_branch()
        self._validate_name_pattern()
        self._validate_port_ranges()
        self._validate_auto_cleanup()

    def _validate_base_dir(self):
        """Validate base_dir is a relative path inside the repository."""
        if not isinstance(self.base_dir, str):
            raise ConfigError(f"baseDir must be a string, got {self.base_dir!r}")
        if not self.base_dir.strip():
            raise ConfigError("baseDir cannot be empty")
        self.base_dir = self.base_dir.strip()
        parts = PurePath(self.base_dir).parts
        if PurePath(self.base_dir).is_absolute() or ".." in parts:
            raise ConfigError(f"baseDir must be a relative path inside the repository, got '{self.base_dir}'")

    def _validate_main_branch(self):
        """Validate main_branch is a non-empty string."""
        if not isinstance(self.main_branch, str):
            raise ConfigError(f"mainBranch must be a string, got {self.main_branch!r}")
        if not self.main_branch.strip():
            raise ConfigError("mainBranch cannot be empty")
        self.main_branch = self.main_branch.strip()

    def _validate_name_pattern(self):
        """Validate name_pattern is `<prefix>{branch}` with a path-safe prefix."""
        if not isinstance(self.name_pattern, str):
            raise ConfigError(f"namePattern must be a string, got {self.name_pattern!r}")
        if not self.name_pattern.endswith(BRANCH_PLACEHOLDER):
            raise ConfigError(f"namePattern must end with {BRANCH_PLACEHOLDER}, got '{self.name_pattern}'")
        if not PREFIX_CHARS.match(self.prefix):
            raise ConfigError(
                f"namePattern prefix may only use letters, digits, hyphens and underscores, got '{self.prefix}'"
            )

    def _validate_port_ranges(self):
        """Validate every port range can yield at least one port."""
        if not isinstance(self.port_ranges, dict):
            raise ConfigError(f"portRanges must be an object, got {self.port_ranges!r}")
        for service, port_range in self.port_ranges.items():
            if not isinstance(port_range, PortRange):
                raise ConfigError(f"port range for '{service}' is not a range: {port_range!r}")
            if not 1 <= port_range.start <= MAX_PORT:
                raise ConfigError(f"port range for '{service}' must start between 1 and {MAX_PORT}, got {port_range.start}")
            if port_range.increment < 1:
                raise ConfigError(f"port range for '{service}' needs a positive increment, got {port_range.increment}")

    def _validate_auto_cleanup(self):
        """Validate auto_cleanup is a real boolean ("false" is not)."""
        if not isinstance(self.auto_cleanup, bool):
            raise ConfigError(f"autoCleanup must be true or false, got {self.auto_cleanup!r}")

    @property
    def prefix(self) -> str:
        """Worktree name prefix, the part of name_pattern before {branch}."""
        return self.name_pattern.split(BRANCH_PLACEHOLDER, 1)[0]

    @property
    def services(self) -> List[str]:
        return list(self.port_ranges)

    def base_path(self, root: Union[str, Path]) -> Path:
        return Path(root) / self.base_dir

    def to_dict(self) -> dict:
        """Convert config to the on-disk (camelCase) form."""
        return {
            "baseDir": self.base_dir,
            "portRanges": {name: r.to_dict() for name, r in self.port_ranges.items()},
            "mainBranch": self.main_branch,
            "namePattern": self.name_pattern,
            "autoCleanup": self.auto_cleanup,
        }

    @classmethod
    def from_dict(cls, config_dict: dict) -> "Config":
        """Create Config from the on-disk form, merging over defaults.

        Unknown keys are ignored. Port ranges are merged per service so a
        file that only overrides one service keeps the others.
        """
        if not isinstance(config_dict, dict):
            raise ConfigError("configuration must be a JSON object")

        overrides = config_dict.get("portRanges") or {}
        if not isinstance(overrides, dict):
            raise ConfigError(f"portRanges must be an object, got {overrides!r}")

        port_ranges = _default_port_ranges()
        for name, values in overrides.items():
            if not isinstance(values, dict):
                raise ConfigError(f"invalid portRanges entry for '{name}': expected an object, got {values!r}")
            try:
                port_ranges[name] = PortRange.from_dict(values)
            except (KeyError, TypeError, ValueError) as e:
                raise ConfigError(f"invalid portRanges entry for '{name}': {e}") from e

        return cls(
            base_dir=config_dict.get("baseDir", DEFAULT_BASE_DIR),
            port_ranges=port_ranges,
            main_branch=config_dict.get("mainBranch", DEFAULT_MAIN_BRANCH),
            name_pattern=config_dict.get("namePattern", DEFAULT_NAME_PATTERN),
            auto_cleanup=config_dict.get("autoCleanup", True),
        )


def config_path(root: Union[str, Path]) -> Path:
    return Path(root) / CONFIG_FILE


def load_config(root: Union[str, Path]) -> Config:
    """Load the configuration stored at the main repository root.

    Args:
        root: Main repository root

    Returns:
        Config merged over defaults

    Raises:
        ConfigNotFoundError: If the repository was never initialised
        ConfigError: If the file is unreadable or malformed
    """
    path = config_path(root)
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        raise ConfigNotFoundError(str(path))
    except json.JSONDecodeError as e:
        raise ConfigError(f"{CONFIG_FILE} is not valid JSON (line {e.lineno}, column {e.colno}): {e.msg}") from e
    except OSError as e:
        raise ConfigError(f"cannot read {path}: {e.strerror}") from e

    logger.debug(f"Loaded configuration from {path}")
    return Config.from_dict(data)


def init_config(root: Union[str, Path]) -> Config:
    """Create the default configuration and base directory if missing.

    Returns the existing configuration when the file is already present.
    """
    path = config_path(root)
    if path.exists():
        config = load_config(root)
    else:
        config = Config()
        try:
            path.write_text(json.dumps(config.to_dict(), indent=2) + "\n", encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"cannot create {path}: {e.strerror}") from e
        logger.info(f"Created configuration at {path}")

    config.base_path(root).mkdir(parents=True, exist_ok=True)
    return config
