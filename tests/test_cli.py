"""Tests for the wt command line"""
import json
from pathlib import Path
from unittest.mock import patch

import pytest

from git_worktree_keeper.cli.args import parse_args
from git_worktree_keeper.cli.main import EXIT_ERROR, EXIT_OK, EXIT_VALIDATION, main


class TestArgs:

    def test_create_options(self):
        args = parse_args(["create", "feature-b", "--from", "develop", "--require-clean"])

        assert args.command == "create"
        assert args.branch == "feature-b"
        assert args.base_branch == "develop"
        assert args.require_clean is True
        assert args.new_branch is False

    @pytest.mark.parametrize("flags,expected", [([], None), (["--delete"], True), (["--no-delete"], False)])
    def test_merge_cleanup_flag(self, flags, expected):
        assert parse_args(["merge", *flags]).delete is expected

    def test_merge_abort_and_ports_reassign(self):
        assert parse_args(["merge", "--abort"]).abort is True
        assert parse_args(["merge"]).abort is False
        assert parse_args(["ports", "feature-b", "--reassign"]).reassign is True
        assert parse_args(["conflicts"]).command == "conflicts"

    def test_command_required(self):
        with pytest.raises(SystemExit):
            parse_args([])


class TestMain:

    def test_init(self, git_repo, temp_dir, monkeypatch):
        monkeypatch.chdir(git_repo.working_dir)

        assert main(["init"]) == EXIT_OK
        assert (temp_dir / "test_repo" / ".worktree-config.json").exists()

    def test_create_list_ports_remove(self, repo_root, monkeypatch, capsys):
        monkeypatch.chdir(repo_root)

        assert main(["create", "feature-b"]) == EXIT_OK
        assert main(["list"]) == EXIT_OK
        assert main(["ports", "feature-b"]) == EXIT_OK
        assert main(["remove", "feature-b"]) == EXIT_OK
        assert not (repo_root / ".worktrees" / "wt-feature-b").exists()
        assert "git branch -d feature-b" in capsys.readouterr().out

    def test_validation_failure_exit_code(self, repo_root, monkeypatch):
        monkeypatch.chdir(repo_root)
        assert main(["merge", "ghost"]) == EXIT_VALIDATION

    def test_uninitialised_repository(self, git_repo, monkeypatch):
        monkeypatch.chdir(git_repo.working_dir)
        assert main(["list"]) == EXIT_ERROR

    def test_outside_repository(self, temp_dir, monkeypatch):
        monkeypatch.chdir(temp_dir)
        assert main(["list"]) == EXIT_ERROR

    def test_malformed_config_value(self, git_repo, monkeypatch):
        (Path(git_repo.working_dir) / ".worktree-config.json").write_text(json.dumps({"mainBranch": 5}))
        monkeypatch.chdir(git_repo.working_dir)

        assert main(["list"]) == EXIT_ERROR

    def test_conflicts_and_abort_without_merge(self, repo_root, monkeypatch):
        monkeypatch.chdir(repo_root)

        assert main(["conflicts"]) == EXIT_OK
        assert main(["merge", "--abort"]) == EXIT_ERROR

    def test_ports_reassign(self, repo_root, monkeypatch):
        monkeypatch.chdir(repo_root)
        assert main(["create", "feature-b"]) == EXIT_OK

        with patch("git_worktree_keeper.services.port_allocator.PortAllocator.is_port_in_use", return_value=False):
            assert main(["ports", "feature-b", "--reassign"]) == EXIT_OK
