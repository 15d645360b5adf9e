"""Pytest fixtures for git-worktree-keeper tests"""
import tempfile
from pathlib import Path

import git
import pytest

from git_worktree_keeper.config import Config
from git_worktree_keeper.core import WorktreeKeeper
from git_worktree_keeper.models.ports import PortRange
from git_worktree_keeper.services.git import GitQuery
from git_worktree_keeper.services.path_manager import PathManager
from git_worktree_keeper.services.port_allocator import PortAllocator


def commit_file(repo: git.Repo, name: str, content: str, message: str) -> None:
    """Write a file in repo's working tree and commit it."""
    path = Path(repo.working_dir) / name
    path.write_text(content)
    repo.index.add([name])
    repo.index.commit(message)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing, symlinks resolved."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir).resolve()


@pytest.fixture
def git_repo(temp_dir):
    """Create a real Git repository on branch main with one commit."""
    repo_path = temp_dir / "test_repo"
    repo_path.mkdir()

    repo = git.Repo.init(repo_path)

    with repo.config_writer() as writer:
        writer.set_value("user", "name", "Test User")
        writer.set_value("user", "email", "test@example.com")
        writer.set_value("commit", "gpgsign", "false")

    commit_file(repo, "README.md", "# Test Repository\n", "Initial commit")
    repo.git.branch("-M", "main")

    yield repo

    repo.close()


@pytest.fixture
def keeper_repo(git_repo):
    """A repository initialised for worktrees with its config committed."""
    WorktreeKeeper.init(git_repo.working_dir)
    git_repo.index.add([".worktree-config.json"])
    git_repo.index.commit("Add worktree config")
    return git_repo


@pytest.fixture
def repo_root(keeper_repo) -> Path:
    return Path(keeper_repo.working_dir)


@pytest.fixture
def keeper(repo_root):
    return WorktreeKeeper(repo_root)


@pytest.fixture
def config():
    return Config()


@pytest.fixture
def path_manager(repo_root, config):
    return PathManager.from_config(repo_root, config)


@pytest.fixture
def git_query(repo_root):
    return GitQuery(repo_root)


@pytest.fixture
def managed_worktree(keeper_repo, path_manager):
    """A worktree for new branch feature-a inside the base directory."""
    path = path_manager.get_worktree_path("feature-a")
    keeper_repo.git.worktree("add", "-b", "feature-a", str(path), "main")
    return path


@pytest.fixture
def linked_worktree(git_repo, temp_dir):
    """A worktree outside the main checkout, on new branch feature-x."""
    path = temp_dir / "linked"
    git_repo.git.worktree("add", "-b", "feature-x", str(path))
    return path


@pytest.fixture
def port_ranges():
    return {
        "vite": PortRange(start=3000, increment=10),
        "storybook": PortRange(start=6006, increment=10),
    }


@pytest.fixture
def allocator(temp_dir):
    return PortAllocator(temp_dir / ".port-map.json")

