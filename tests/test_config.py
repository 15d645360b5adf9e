"""Tests for configuration handling"""
import json

import pytest

from git_worktree_keeper.config import Config, config_path, init_config, load_config
from git_worktree_keeper.exceptions import ConfigError, ConfigNotFoundError
from git_worktree_keeper.models.ports import PortRange


class TestConfig:

    def test_defaults(self):
        config = Config()

        assert config.base_dir == ".worktrees"
        assert config.main_branch == "main"
        assert config.name_pattern == "wt-{branch}"
        assert config.auto_cleanup is True
        assert config.port_ranges == {
            "vite": PortRange(3000, 10),
            "storybook": PortRange(6006, 10),
            "custom": PortRange(8000, 10),
        }

    def test_prefix(self):
        assert Config(name_pattern="tree-{branch}").prefix == "tree-"
        assert Config(name_pattern="{branch}").prefix == ""

    @pytest.mark.parametrize("pattern", ["wt-{branch}-dev", "team/{branch}", "..{branch}", "wt {branch}"])
    def test_rejects_pattern_that_is_not_a_safe_prefix(self, pattern):
        with pytest.raises(ConfigError, match="namePattern"):
            Config(name_pattern=pattern)

    @pytest.mark.parametrize("base_dir", ["", "   ", "/abs/path", "../outside"])
    def test_rejects_bad_base_dir(self, base_dir):
        with pytest.raises(ConfigError):
            Config(base_dir=base_dir)

    def test_rejects_pattern_without_placeholder(self):
        with pytest.raises(ConfigError, match="namePattern"):
            Config(name_pattern="wt-")

    def test_rejects_empty_main_branch(self):
        with pytest.raises(ConfigError, match="mainBranch"):
            Config(main_branch=" ")

    @pytest.mark.parametrize("port_range", [PortRange(0, 10), PortRange(70000, 10), PortRange(3000, 0)])
    def test_rejects_bad_port_range(self, port_range):
        with pytest.raises(ConfigError):
            Config(port_ranges={"vite": port_range})

    def test_base_path(self, temp_dir):
        assert Config(base_dir="trees").base_path(temp_dir) == temp_dir / "trees"


class TestSerialisation:

    def test_to_dict_uses_file_keys(self):
        data = Config().to_dict()

        assert set(data) == {"baseDir", "portRanges", "mainBranch", "namePattern", "autoCleanup"}
        assert data["portRanges"]["vite"] == {"start": 3000, "increment": 10}

    def test_from_dict_merges_port_ranges_over_defaults(self):
        config = Config.from_dict({"portRanges": {"vite": {"start": 5173}, "api": {"start": 9000, "increment": 1}}})

        assert config.port_ranges["vite"] == PortRange(5173, 10)
        assert config.port_ranges["api"] == PortRange(9000, 1)
        assert config.port_ranges["storybook"] == PortRange(6006, 10)
        assert config.services == ["vite", "storybook", "custom", "api"]

    def test_from_dict_ignores_unknown_keys(self):
        config = Config.from_dict({"mainBranch": "develop", "editor": "vim"})
        assert config.main_branch == "develop"

    def test_from_dict_rejects_bad_range(self):
        with pytest.raises(ConfigError, match="portRanges"):
            Config.from_dict({"portRanges": {"vite": {"increment": 5}}})

    @pytest.mark.parametrize(
        "data",
        [
            {"baseDir": 123},
            {"mainBranch": 5},
            {"namePattern": ["wt-{branch}"]},
            {"portRanges": [1]},
            {"portRanges": {"vite": 3000}},
            {"portRanges": {"vite": {"start": "abc"}}},
            {"autoCleanup": "false"},
            {"autoCleanup": 0},
        ],
    )
    def test_from_dict_rejects_wrong_types(self, data):
        with pytest.raises(ConfigError):
            Config.from_dict(data)

    def test_from_dict_rejects_non_object(self):
        with pytest.raises(ConfigError):
            Config.from_dict(["not", "a", "dict"])


class TestLoading:

    def test_missing_file(self, temp_dir):
        with pytest.raises(ConfigNotFoundError, match="wt init"):
            load_config(temp_dir)

    def test_malformed_file(self, temp_dir):
        config_path(temp_dir).write_text("{\n  'baseDir': oops\n}")

        with pytest.raises(ConfigError, match="not valid JSON"):
            load_config(temp_dir)

    def test_load(self, temp_dir):
        config_path(temp_dir).write_text(json.dumps({"baseDir": "trees", "autoCleanup": False}))

        config = load_config(temp_dir)

        assert config.base_dir == "trees"
        assert config.auto_cleanup is False

    def test_init_creates_file_and_base_dir(self, temp_dir):
        config = init_config(temp_dir)

        assert json.loads(config_path(temp_dir).read_text()) == config.to_dict()
        assert (temp_dir / ".worktrees").is_dir()

    def test_init_keeps_existing_file(self, temp_dir):
        config_path(temp_dir).write_text(json.dumps({"mainBranch": "trunk"}))

        config = init_config(temp_dir)

        assert config.main_branch == "trunk"
        assert json.loads(config_path(temp_dir).read_text()) == {"mainBranch": "trunk"}

    def test_wrong_type_in_file(self, temp_dir):
        config_path(temp_dir).write_text(json.dumps({"mainBranch": 5}))

        with pytest.raises(ConfigError, match="mainBranch must be a string"):
            load_config(temp_dir)
