"""Tests for PathManager"""
import pytest

from git_worktree_keeper.services.path_manager import PathManager


@pytest.fixture
def manager(temp_dir):
    return PathManager(temp_dir, base_dir=".worktrees", prefix="wt-")


class TestConstruction:

    @pytest.mark.parametrize("root", [None, ""])
    def test_requires_root(self, root):
        with pytest.raises(ValueError):
            PathManager(root)

    def test_paths_are_absolute(self, manager, temp_dir):
        assert manager.git_root == temp_dir
        assert manager.worktree_base == temp_dir / ".worktrees"
        assert manager.get_worktree_path("feature") == temp_dir / ".worktrees" / "wt-feature"
        assert manager.env_file_path("feature") == temp_dir / ".worktrees" / "wt-feature" / ".env.worktree"


class TestNames:
    """Test name normalisation."""

    @pytest.mark.parametrize("name", ["feature", "wt-feature", "wt-wt-x", "a_b-c", "  padded  "])
    def test_normalize_is_idempotent(self, manager, name):
        once = manager.normalize_worktree_name(name)
        assert manager.normalize_worktree_name(once) == once

    @pytest.mark.parametrize("name", ["feature", "login-page", "x_1"])
    def test_display_name_inverts_normalize(self, manager, name):
        assert manager.get_display_name(manager.normalize_worktree_name(name)) == name

    def test_normalize_adds_prefix_once(self, manager):
        assert manager.normalize_worktree_name("feature") == "wt-feature"
        assert manager.normalize_worktree_name("wt-feature") == "wt-feature"

    @pytest.mark.parametrize("name", ["", "   ", None])
    def test_normalize_rejects_empty(self, manager, name):
        with pytest.raises(ValueError, match="cannot be empty"):
            manager.normalize_worktree_name(name)

    def test_custom_prefix(self, temp_dir):
        manager = PathManager(temp_dir, prefix="tree_")
        assert manager.normalize_worktree_name("x") == "tree_x"
        assert manager.get_display_name("tree_x") == "x"

    @pytest.mark.parametrize("name", ["feature", "wt-feature", "Feature_2", "a-b_c"])
    def test_valid_names(self, manager, name):
        assert manager.is_valid_worktree_name(name)

    @pytest.mark.parametrize("name", ["", "../escape", "a/b", "a\\b", "with space", "dot.name", "wt-", None])
    def test_invalid_names(self, manager, name):
        assert not manager.is_valid_worktree_name(name)


class TestContainment:
    """Test path containment against the base directory."""

    def test_base_directory_itself(self, manager):
        assert manager.is_in_worktree(manager.worktree_base) is False
        assert manager.get_worktree_from_path(manager.worktree_base) is None

    def test_child_of_base(self, manager):
        child = manager.worktree_base / "foo"
        assert manager.is_in_worktree(child) is True
        assert manager.get_worktree_from_path(child) == "foo"

    def test_deep_path_yields_first_segment(self, manager):
        deep = manager.worktree_base / "wt-feature" / "src" / "components"
        assert manager.get_worktree_from_path(deep) == "wt-feature"

    @pytest.mark.parametrize("outside", ["", "src", ".worktrees-other/x", "../sibling"])
    def test_outside_base(self, manager, temp_dir, outside):
        path = temp_dir / outside if outside else temp_dir
        assert manager.is_in_worktree(path) is False
        assert manager.get_worktree_from_path(path) is None

    def test_sibling_with_dotdot_prefix_name(self, temp_dir):
        """A directory called '..x' under the base is still inside it."""
        manager = PathManager(temp_dir)
        assert manager.get_worktree_from_path(manager.worktree_base / "..x") == "..x"

    def test_current_worktree(self, manager):
        cwd = manager.worktree_base / "wt-feature" / "src"
        assert manager.current_worktree(cwd) == "wt-feature"
        assert manager.current_worktree(manager.git_root) is None

    def test_resolve_worktree_path(self, manager):
        assert manager.resolve_worktree_path("feature") == manager.worktree_base / "wt-feature"
        inside = manager.worktree_base / "wt-feature"
        assert manager.resolve_worktree_path(str(inside)) == inside
        with pytest.raises(ValueError, match="not in a worktree"):
            manager.resolve_worktree_path(str(manager.git_root / "src"))


class TestFilesystem:

    def test_worktree_exists(self, manager):
        assert manager.worktree_exists("feature") is False
        manager.get_worktree_path("feature").mkdir(parents=True)
        assert manager.worktree_exists("feature") is True
        assert manager.worktree_exists("wt-feature") is True

    def test_worktree_exists_requires_directory(self, manager):
        manager.ensure_worktree_base()
        manager.get_worktree_path("file").write_text("not a dir")
        assert manager.worktree_exists("file") is False

    def test_ensure_worktree_base(self, manager):
        assert not manager.worktree_base.exists()
        manager.ensure_worktree_base()
        manager.ensure_worktree_base()
        assert manager.worktree_base.is_dir()

    def test_relative_from_root(self, manager):
        assert manager.get_relative_from_root(manager.get_worktree_path("x")) == str(
            manager.worktree_base.relative_to(manager.git_root) / "wt-x"
        )
