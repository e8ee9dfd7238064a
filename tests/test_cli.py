"""Tests for the CLI commands."""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from diffchain.cli import app

runner = CliRunner()


@pytest.fixture
def workspace(tmp_path: Path, monkeypatch) -> Path:
    """cwd = tmp_path, a private SQLite file, acting user alice."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("DIFFCHAIN_DATABASE_URL", f"sqlite:///{tmp_path / 'cli.db'}")
    monkeypatch.setenv("DIFFCHAIN_USER", "alice")
    monkeypatch.delenv("DIFFCHAIN_FORMAT", raising=False)
    return tmp_path


def _invoke(*args: str):
    return runner.invoke(app, list(args))


def _json(*args: str):
    result = _invoke("--format", "json", *args)
    assert result.exit_code == 0, result.output
    return json.loads(result.stdout)


class TestVersion:
    def test_version_flag(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "diffchain" in result.output


class TestInit:
    def test_creates_config(self, workspace: Path):
        result = _invoke("init")
        assert result.exit_code == 0
        assert (workspace / ".diffchain.toml").exists()
        assert (workspace / "cli.db").exists()

    def test_refuses_overwrite(self, workspace: Path):
        (workspace / ".diffchain.toml").write_text("existing")
        result = _invoke("init")
        assert result.exit_code == 1


class TestRepoCommands:
    def test_create_and_list(self, workspace: Path):
        assert _invoke("repo", "create", "project", "-d", "demo").exit_code == 0
        repos = _json("repo", "list")
        assert [r["name"] for r in repos] == ["project"]
        assert repos[0]["access"] == "owner"

    def test_duplicate_exit_code(self, workspace: Path):
        _invoke("repo", "create", "project")
        assert _invoke("repo", "create", "project").exit_code == 1

    def test_grant_lets_other_user_commit(self, workspace: Path):
        _invoke("repo", "create", "project")
        assert _invoke("repo", "grant", "project", "bob", "--level", "write").exit_code == 0
        (workspace / "a.txt").write_text("hi\n")
        result = _invoke("--user", "bob", "commit", "project", "a.txt", "-m", "from bob")
        assert result.exit_code == 0, result.output

    def test_invalid_grant_level(self, workspace: Path):
        _invoke("repo", "create", "project")
        assert _invoke("repo", "grant", "project", "bob", "--level", "owner").exit_code == 1


class TestCommitAndRead:
    def test_commit_show_roundtrip(self, workspace: Path):
        _invoke("repo", "create", "project")
        (workspace / "notes.txt").write_text("first\n")
        assert _invoke("commit", "project", "notes.txt", "-m", "one").exit_code == 0
        (workspace / "notes.txt").write_text("second\n")
        out = _json("commit", "project", "notes.txt", "-m", "two", "--tags", "v2")
        assert out["files"][0]["is_diff"] is True
        assert out["tags"] == ["v2"]

        result = _invoke("show", "project", "notes.txt")
        assert result.exit_code == 0
        assert result.stdout == "second\n"

    def test_paths_relative_to_root(self, workspace: Path):
        _invoke("repo", "create", "project")
        (workspace / "src").mkdir()
        (workspace / "src" / "main.go").write_text("package main\n")
        out = _json("commit", "project", "src/main.go", "-m", "go")
        assert out["files"][0]["path"] == "src/main.go"
        assert out["files"][0]["is_code"] is True

    def test_unauthorized_commit(self, workspace: Path):
        _invoke("repo", "create", "project")
        (workspace / "a.txt").write_text("x\n")
        result = _invoke("--user", "mallory", "commit", "project", "a.txt", "-m", "nope")
        assert result.exit_code == 1

    def test_missing_file(self, workspace: Path):
        _invoke("repo", "create", "project")
        assert _invoke("commit", "project", "ghost.txt", "-m", "m").exit_code == 1

    def test_snapshot_log_history(self, workspace: Path):
        _invoke("repo", "create", "project")
        (workspace / "a.txt").write_text("1\n")
        (workspace / "b.txt").write_text("b\n")
        _invoke("commit", "project", "a.txt", "b.txt", "-m", "one")
        (workspace / "a.txt").write_text("2\n")
        _invoke("commit", "project", "a.txt", "--delete", "b.txt", "-m", "two")

        snap = _json("snapshot", "project")
        assert [f["path"] for f in snap["files"]] == ["a.txt"]
        assert snap["files"][0]["content"] == "2\n"

        log = _json("log", "project")
        assert [c["message"] for c in log] == ["two", "one"]

        history = _json("history", "project", "b.txt")
        assert [h["change_kind"] for h in history] == ["Deleted", "Added"]

    def test_terminal_output(self, workspace: Path):
        _invoke("repo", "create", "project")
        (workspace / "a.txt").write_text("1\n")
        _invoke("commit", "project", "a.txt", "-m", "one")
        result = _invoke("log", "project")
        assert result.exit_code == 0
        assert "alice" in result.output

    def test_show_unknown_path(self, workspace: Path):
        _invoke("repo", "create", "project")
        assert _invoke("show", "project", "nope.txt").exit_code == 1


class TestBranchCommands:
    def test_release_flow(self, workspace: Path):
        _invoke("repo", "create", "project")
        assert _invoke("branch", "create", "project", "release").exit_code == 0
        (workspace / "a.txt").write_text("1\n")
        first = _json("commit", "project", "a.txt", "-m", "one", "--branch", "release")
        (workspace / "a.txt").write_text("2\n")
        second = _json("commit", "project", "a.txt", "-m", "two", "--branch", "release")

        commits = _json("branch", "commits", "project", "release")
        assert [c["commit_hash"] for c in commits] == [second["commit_hash"], first["commit_hash"]]

        branches = _json("branch", "list", "project")
        assert branches[0]["name"] == "release"
        assert len(branches[0]["commit_ids"]) == 2

    def test_append_and_delete(self, workspace: Path):
        _invoke("repo", "create", "project")
        _invoke("branch", "create", "project", "hotfix")
        (workspace / "a.txt").write_text("1\n")
        commit = _json("commit", "project", "a.txt", "-m", "one")

        info = _json("branch", "append", "project", "hotfix", commit["commit_hash"][:10])
        assert info["head_commit_id"] == commit["commit_id"]

        assert _invoke("branch", "delete", "project", "hotfix").exit_code == 0
        assert _invoke("branch", "commits", "project", "hotfix").exit_code == 1
