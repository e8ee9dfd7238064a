"""Tests for repository snapshots, the commit log and per-file history."""

from diffchain.commits.models import IncomingFile
from diffchain.content.classifier import normalize_code
from diffchain.history.models import ChangeKind


class TestSnapshot:
    def test_empty_repository(self, materializer, repo):
        assert materializer.snapshot("project") == {}

    def test_latest_version_of_every_path(self, writer, materializer, repo, main_go_v1, main_go_v2, png_bytes):
        writer.commit(
            "project", "alice", "v1",
            [IncomingFile("main.go", main_go_v1), IncomingFile("README.md", b"# hi\n")],
        )
        writer.commit(
            "project", "alice", "v2",
            [IncomingFile("main.go", main_go_v2), IncomingFile("logo.png", png_bytes)],
        )

        snap = materializer.snapshot("project")
        assert sorted(snap) == ["README.md", "logo.png", "main.go"]
        assert snap["main.go"].content == normalize_code(main_go_v2.decode())
        assert snap["README.md"].content == "# hi\n"
        assert snap["logo.png"].data == png_bytes

    def test_deleted_paths_excluded(self, writer, materializer, repo):
        writer.commit("project", "alice", "v1", [IncomingFile("a.txt", b"a"), IncomingFile("b.txt", b"b")])
        writer.commit("project", "alice", "rm", [], deleted=["a.txt"])
        assert sorted(materializer.snapshot("project")) == ["b.txt"]

    def test_repositories_are_isolated(self, writer, materializer, repositories, repo):
        repositories.create_repository("other", "alice")
        writer.commit("project", "alice", "p", [IncomingFile("a.txt", b"project\n")])
        writer.commit("other", "alice", "o", [IncomingFile("a.txt", b"other\n")])
        assert materializer.snapshot("project")["a.txt"].content == "project\n"
        assert materializer.snapshot("other")["a.txt"].content == "other\n"


class TestCommitLog:
    def test_newest_first_with_changes(self, writer, commit_log, repo):
        c1 = writer.commit("project", "alice", "one", [IncomingFile("a.txt", b"1\n")])
        c2 = writer.commit("project", "alice", "two", [IncomingFile("a.txt", b"2\n"), IncomingFile("b.txt", b"b")])

        entries = commit_log.entries("project")
        assert [e.commit_hash for e in entries] == [c2.commit_hash, c1.commit_hash]
        assert [c.path for c in entries[0].changes] == ["a.txt", "b.txt"]
        assert entries[0].changes[0].is_diff is True

    def test_limit(self, writer, commit_log, repo):
        for i in range(4):
            writer.commit("project", "alice", f"c{i}", [IncomingFile("a.txt", f"{i}\n".encode())])
        assert len(commit_log.entries("project", limit=2)) == 2

    def test_file_history(self, writer, commit_log, repo):
        writer.commit("project", "alice", "add", [IncomingFile("a.txt", b"1\n")])
        writer.commit("project", "alice", "edit", [IncomingFile("a.txt", b"2\n")])
        writer.commit("project", "alice", "rm", [], deleted=["a.txt"])

        records = commit_log.file_history("project", "a.txt")
        assert [r.seq for r in records] == [3, 2, 1]
        assert [r.change_kind for r in records] == [ChangeKind.DELETED, ChangeKind.MODIFIED, ChangeKind.ADDED]
        assert records[2].content == "1\n"
