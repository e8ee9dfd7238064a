"""Tests for branch lifecycle and commit membership."""

import pytest

from diffchain.commits.models import IncomingFile
from diffchain.errors import NotFoundError, ValidationError


class TestLifecycle:
    def test_create_defaults(self, branches, repo):
        info = branches.create_branch("project", "dev")
        assert info.is_active is True
        assert info.head_commit_id is None
        assert info.commit_ids == []
        assert info.description.startswith("Branch created on ")

    def test_duplicate_active_name_rejected(self, branches, repo):
        branches.create_branch("project", "dev")
        with pytest.raises(ValidationError):
            branches.create_branch("project", "dev")

    def test_name_reusable_after_delete(self, branches, repo):
        branches.create_branch("project", "dev", "first")
        branches.delete_branch("project", "dev")
        info = branches.create_branch("project", "dev", "second")
        assert info.description == "second"
        names = [b.description for b in branches.list_branches("project", include_inactive=True)]
        assert sorted(names) == ["first", "second"]

    def test_delete_unknown(self, branches, repo):
        with pytest.raises(NotFoundError):
            branches.delete_branch("project", "ghost")

    def test_blank_name(self, branches, repo):
        with pytest.raises(ValidationError):
            branches.create_branch("project", "  ")

    def test_list_excludes_inactive(self, branches, repo):
        branches.create_branch("project", "a")
        branches.create_branch("project", "b")
        branches.delete_branch("project", "a")
        assert [b.name for b in branches.list_branches("project")] == ["b"]

    def test_inactive_repository(self, branches, repositories, repo):
        repositories.deactivate_repository("project", "alice")
        with pytest.raises(NotFoundError):
            branches.create_branch("project", "dev")

    def test_inactive_repository_hides_existing_branches(self, branches, repositories, repo):
        branches.create_branch("project", "dev")
        repositories.deactivate_repository("project", "alice")
        with pytest.raises(NotFoundError):
            branches.get_branch("project", "dev")
        with pytest.raises(NotFoundError):
            branches.list_branches("project")
        with pytest.raises(NotFoundError):
            branches.list_commits("project", "dev")
        with pytest.raises(NotFoundError):
            branches.delete_branch("project", "dev")


class TestMembership:
    def test_release_scenario(self, writer, branches, repo):
        branches.create_branch("project", "release")
        c1 = writer.commit("project", "alice", "one", [IncomingFile("a.txt", b"1\n")], branch="release")
        c2 = writer.commit("project", "alice", "two", [IncomingFile("a.txt", b"2\n")], branch="release")

        commits = branches.list_commits("project", "release")
        assert [c.commit_hash for c in commits] == [c2.commit_hash, c1.commit_hash]

        info = branches.get_branch("project", "release")
        assert info.head_commit_id == c2.commit_id
        assert info.commit_ids == [c1.commit_id, c2.commit_id]

    def test_commit_without_branch_not_listed(self, writer, branches, repo):
        branches.create_branch("project", "release")
        writer.commit("project", "alice", "loose", [IncomingFile("a.txt", b"1\n")])
        assert branches.list_commits("project", "release") == []

    def test_append_existing_commit(self, writer, branches, repo):
        branches.create_branch("project", "hotfix")
        c1 = writer.commit("project", "alice", "one", [IncomingFile("a.txt", b"1\n")])
        info = branches.append_commit("project", "hotfix", c1.commit_hash[:8])
        assert info.commit_ids == [c1.commit_id]
        assert info.head_commit_id == c1.commit_id

    def test_append_twice_rejected(self, writer, branches, repo):
        branches.create_branch("project", "hotfix")
        c1 = writer.commit("project", "alice", "one", [IncomingFile("a.txt", b"1\n")], branch="hotfix")
        with pytest.raises(ValidationError):
            branches.append_commit("project", "hotfix", c1.commit_hash)

    def test_commits_of_deleted_branch(self, branches, repo):
        branches.create_branch("project", "tmp")
        branches.delete_branch("project", "tmp")
        with pytest.raises(NotFoundError):
            branches.list_commits("project", "tmp")

    def test_commit_to_deleted_branch(self, writer, branches, repo):
        branches.create_branch("project", "tmp")
        branches.delete_branch("project", "tmp")
        with pytest.raises(NotFoundError):
            writer.commit("project", "alice", "m", [IncomingFile("a.txt", b"1\n")], branch="tmp")
