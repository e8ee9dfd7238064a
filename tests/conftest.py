"""Shared test fixtures — a throwaway database, wired services, sample files."""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from diffchain.branches.graph import BranchGraph
from diffchain.commits.writer import CommitWriter
from diffchain.history.log import CommitLog
from diffchain.history.materializer import RepositoryMaterializer
from diffchain.history.reconstructor import HistoryReconstructor
from diffchain.repositories import RepositoryInfo, RepositoryService
from diffchain.store.database import Database


@pytest.fixture
def database(tmp_path: Path):
    """A file-backed SQLite store with the schema created."""
    db = Database(f"sqlite:///{tmp_path / 'test.db'}")
    db.create_schema()
    yield db
    db.dispose()


@pytest.fixture
def repositories(database: Database) -> RepositoryService:
    return RepositoryService(database)


@pytest.fixture
def repo(repositories: RepositoryService) -> RepositoryInfo:
    """Repository ``project`` owned by alice."""
    return repositories.create_repository("project", "alice", "test repository")


@pytest.fixture
def writer(database: Database) -> CommitWriter:
    return CommitWriter(database)


@pytest.fixture
def reconstructor(database: Database) -> HistoryReconstructor:
    return HistoryReconstructor(database)


@pytest.fixture
def branches(database: Database) -> BranchGraph:
    return BranchGraph(database)


@pytest.fixture
def materializer(database: Database) -> RepositoryMaterializer:
    return RepositoryMaterializer(database)


@pytest.fixture
def commit_log(database: Database) -> CommitLog:
    return CommitLog(database)


@pytest.fixture
def main_go_v1() -> bytes:
    return textwrap.dedent("""\
        package main

        func main() {
            println("hello")
        }
    """).encode()


@pytest.fixture
def main_go_v2() -> bytes:
    return textwrap.dedent("""\
        package main

        import "fmt"

        func main() {
            fmt.Println("hello, world")
        }
    """).encode()


@pytest.fixture
def png_bytes() -> bytes:
    """A PNG header: contains zero bytes, so it is classified as binary."""
    return b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01"
