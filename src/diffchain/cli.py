"""diffchain CLI — Typer application over the commit, history and branch services."""

from __future__ import annotations

import getpass
import os
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional

import typer
from rich.console import Console

from diffchain import __version__
from diffchain.config.schema import DiffchainConfig

app = typer.Typer(
    name="diffchain",
    help="Version files as chains of diffs in a SQL database.",
    add_completion=False,
    no_args_is_help=True,
)
repo_app = typer.Typer(help="Create and manage repositories.", no_args_is_help=True)
branch_app = typer.Typer(help="Create, list and extend branches.", no_args_is_help=True)
app.add_typer(repo_app, name="repo")
app.add_typer(branch_app, name="branch")

console = Console(stderr=True)


@dataclass
class _State:
    config: DiffchainConfig
    user: str
    root: Path


def _state(ctx: typer.Context) -> _State:
    return ctx.find_root().obj


def _database(ctx: typer.Context):
    """Open the configured store, creating missing tables."""
    from diffchain.store.database import Database

    state = _state(ctx)
    db = Database.from_config(state.config)
    ctx.call_on_close(db.dispose)
    with _errors():
        db.create_schema()
    return db


@contextmanager
def _errors() -> Iterator[None]:
    """Map core errors onto exit codes: 1 for request errors, 2 for store errors."""
    from diffchain.content.registry import RegistryError
    from diffchain.errors import (
        AuthorizationError,
        ChainIntegrityError,
        NotFoundError,
        TransientStoreError,
        ValidationError,
    )

    try:
        yield
    except (ValidationError, NotFoundError, AuthorizationError) as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        raise typer.Exit(code=1) from exc
    except ChainIntegrityError as exc:
        console.print(f"[bold red]Integrity error:[/bold red] {exc}")
        raise typer.Exit(code=2) from exc
    except TransientStoreError as exc:
        console.print(f"[bold red]Store error:[/bold red] {exc}")
        raise typer.Exit(code=2) from exc
    except RegistryError as exc:
        console.print(f"[bold red]Config error:[/bold red] {exc}")
        raise typer.Exit(code=2) from exc


def _json_output(ctx: typer.Context) -> bool:
    return _state(ctx).config.output.format == "json"


def _emit_json(payload) -> None:
    from diffchain.output import json_report

    print(json_report.render(payload))


# ── init ──────────────────────────────────────────────────────────────────────


@app.command()
def init(ctx: typer.Context) -> None:
    """Write a starter .diffchain.toml and create the database tables."""
    from diffchain.config.defaults import DEFAULT_TOML

    config_path = Path.cwd() / ".diffchain.toml"
    if config_path.exists():
        console.print(f"[yellow]⚠[/yellow]  .diffchain.toml already exists at {config_path}")
        raise typer.Exit(code=1)

    config_path.write_text(DEFAULT_TOML, encoding="utf-8")
    console.print(f"[green]✓[/green] Created {config_path}")
    _database(ctx)
    console.print(f"[green]✓[/green] Database ready at {_state(ctx).config.store.url}")


# ── repo ──────────────────────────────────────────────────────────────────────


@repo_app.command("create")
def repo_create(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Repository name"),
    description: str = typer.Option("", "--description", "-d", help="Free-text description"),
) -> None:
    """Create a repository owned by the acting user."""
    from diffchain.output import json_report
    from diffchain.repositories import RepositoryService

    service = RepositoryService(_database(ctx))
    with _errors():
        info = service.create_repository(name, _state(ctx).user, description)
    if _json_output(ctx):
        _emit_json(json_report.repository_to_dict(info))
    else:
        console.print(f"[green]✓[/green] Created repository [bold cyan]{info.owner}/{info.name}[/bold cyan]")


@repo_app.command("list")
def repo_list(ctx: typer.Context) -> None:
    """List active repositories the acting user owns or can access."""
    from diffchain.output import json_report, terminal
    from diffchain.repositories import RepositoryService

    service = RepositoryService(_database(ctx))
    with _errors():
        repos = service.list_repositories(_state(ctx).user)
    if _json_output(ctx):
        _emit_json([json_report.repository_to_dict(r) for r in repos])
    else:
        terminal.render_repositories(repos, console=console)


@repo_app.command("grant")
def repo_grant(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Repository name"),
    user: str = typer.Argument(..., help="User to grant access to"),
    level: str = typer.Option("write", "--level", "-l", help="Access level: read | write"),
) -> None:
    """Grant another user read or write access to one of your repositories."""
    from diffchain.repositories import RepositoryService

    if level not in ("read", "write"):
        console.print(f"[bold red]Invalid access level:[/bold red] {level}")
        raise typer.Exit(code=1)
    service = RepositoryService(_database(ctx))
    with _errors():
        service.grant_access(name, _state(ctx).user, user, level)
    console.print(f"[green]✓[/green] {user} now has {level} access to {name}")


@repo_app.command("revoke")
def repo_revoke(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Repository name"),
    user: str = typer.Argument(..., help="User to revoke"),
) -> None:
    """Revoke a user's access grant."""
    from diffchain.repositories import RepositoryService

    service = RepositoryService(_database(ctx))
    with _errors():
        service.revoke_access(name, _state(ctx).user, user)
    console.print(f"[green]✓[/green] Revoked {user}'s access to {name}")


@repo_app.command("deactivate")
def repo_deactivate(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Repository name"),
) -> None:
    """Deactivate a repository; it stops accepting commits."""
    from diffchain.repositories import RepositoryService

    service = RepositoryService(_database(ctx))
    with _errors():
        service.deactivate_repository(name, _state(ctx).user)
    console.print(f"[green]✓[/green] Deactivated {name}")


# ── commit ────────────────────────────────────────────────────────────────────


def _relative_path(path: Path, root: Path) -> str:
    try:
        return path.resolve().relative_to(root.resolve()).as_posix()
    except ValueError:
        console.print(f"[bold red]Error:[/bold red] {path} is outside {root}")
        raise typer.Exit(code=1)


@app.command()
def commit(
    ctx: typer.Context,
    repository: str = typer.Argument(..., help="Repository name"),
    files: Optional[List[Path]] = typer.Argument(None, help="Files to commit"),
    message: str = typer.Option(..., "--message", "-m", help="Commit message"),
    tags: Optional[str] = typer.Option(None, "--tags", "-t", help="Comma-separated tags"),
    branch: Optional[str] = typer.Option(None, "--branch", "-b", help="Append the commit to this branch"),
    delete: Optional[List[str]] = typer.Option(None, "--delete", help="Record a deletion of this path"),
    root: Optional[Path] = typer.Option(None, "--root", help="Paths are stored relative to this directory"),
    owner: Optional[str] = typer.Option(None, "--owner", help="Repository owner, when the name is ambiguous"),
) -> None:
    """Commit files (and deletions) to a repository in one transaction."""
    from diffchain.commits.models import IncomingFile
    from diffchain.commits.writer import CommitWriter
    from diffchain.output import json_report, terminal

    state = _state(ctx)
    base = root or state.root

    incoming: List[IncomingFile] = []
    for f in files or []:
        try:
            data = f.read_bytes()
        except OSError as exc:
            console.print(f"[bold red]Error:[/bold red] cannot read {f}: {exc}")
            raise typer.Exit(code=1) from exc
        incoming.append(IncomingFile(path=_relative_path(f, base), data=data))

    db = _database(ctx)
    with _errors():
        writer = CommitWriter.from_config(db, state.config, state.root)
        result = writer.commit(
            repository,
            state.user,
            message,
            incoming,
            tags=tags,
            owner=owner,
            branch=branch,
            deleted=delete or (),
        )

    if _json_output(ctx):
        _emit_json(json_report.commit_result_to_dict(result))
    else:
        terminal.render_commit(result, console=console)


# ── read views ────────────────────────────────────────────────────────────────


@app.command()
def show(
    ctx: typer.Context,
    repository: str = typer.Argument(..., help="Repository name"),
    path: str = typer.Argument(..., help="File path inside the repository"),
    at: Optional[str] = typer.Option(None, "--at", help="Commit hash (or unique prefix) to read at"),
    owner: Optional[str] = typer.Option(None, "--owner", help="Repository owner"),
) -> None:
    """Print the reconstructed content of a file."""
    from diffchain.history.reconstructor import HistoryReconstructor
    from diffchain.output import json_report

    reconstructor = HistoryReconstructor(_database(ctx))
    with _errors():
        resolved = reconstructor.resolve(repository, path, owner=owner, at=at)

    if _json_output(ctx):
        _emit_json(json_report.resolved_to_dict(resolved))
    elif resolved.is_binary:
        typer.echo(resolved.data, nl=False)
    else:
        typer.echo(resolved.content, nl=False)


@app.command()
def snapshot(
    ctx: typer.Context,
    repository: str = typer.Argument(..., help="Repository name"),
    owner: Optional[str] = typer.Option(None, "--owner", help="Repository owner"),
) -> None:
    """List every live file of a repository at its latest version."""
    from diffchain.history.materializer import RepositoryMaterializer
    from diffchain.output import json_report, terminal

    materializer = RepositoryMaterializer(_database(ctx))
    with _errors():
        files = materializer.snapshot(repository, owner=owner)

    if _json_output(ctx):
        _emit_json(json_report.snapshot_to_dict(repository, files))
    else:
        terminal.render_snapshot(repository, files, console=console)


@app.command()
def log(
    ctx: typer.Context,
    repository: str = typer.Argument(..., help="Repository name"),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", min=1, help="Show at most N commits"),
    owner: Optional[str] = typer.Option(None, "--owner", help="Repository owner"),
) -> None:
    """Show the commit log, newest first."""
    from diffchain.history.log import CommitLog
    from diffchain.output import json_report, terminal

    commit_log = CommitLog(_database(ctx))
    with _errors():
        entries = commit_log.entries(repository, owner=owner, limit=limit)

    if _json_output(ctx):
        _emit_json([json_report.commit_info_to_dict(c) for c in entries])
    else:
        terminal.render_commits(entries, title=f"Log of {repository}", console=console)


@app.command()
def history(
    ctx: typer.Context,
    repository: str = typer.Argument(..., help="Repository name"),
    path: str = typer.Argument(..., help="File path inside the repository"),
    owner: Optional[str] = typer.Option(None, "--owner", help="Repository owner"),
) -> None:
    """Show every stored version of one file."""
    from diffchain.history.log import CommitLog
    from diffchain.output import json_report, terminal

    commit_log = CommitLog(_database(ctx))
    with _errors():
        records = commit_log.file_history(repository, path, owner=owner)

    if _json_output(ctx):
        _emit_json(json_report.history_to_list(records))
    else:
        terminal.render_history(path, records, console=console)


# ── branch ────────────────────────────────────────────────────────────────────


@branch_app.command("create")
def branch_create(
    ctx: typer.Context,
    repository: str = typer.Argument(..., help="Repository name"),
    name: str = typer.Argument(..., help="Branch name"),
    description: Optional[str] = typer.Option(None, "--description", "-d", help="Branch description"),
    owner: Optional[str] = typer.Option(None, "--owner", help="Repository owner"),
) -> None:
    """Create an empty branch."""
    from diffchain.branches.graph import BranchGraph
    from diffchain.output import json_report

    graph = BranchGraph(_database(ctx))
    with _errors():
        info = graph.create_branch(repository, name, description, owner=owner)
    if _json_output(ctx):
        _emit_json(json_report.branch_to_dict(info))
    else:
        console.print(f"[green]✓[/green] Created branch [bold cyan]{info.name}[/bold cyan]")


@branch_app.command("delete")
def branch_delete(
    ctx: typer.Context,
    repository: str = typer.Argument(..., help="Repository name"),
    name: str = typer.Argument(..., help="Branch name"),
    owner: Optional[str] = typer.Option(None, "--owner", help="Repository owner"),
) -> None:
    """Soft-delete a branch."""
    from diffchain.branches.graph import BranchGraph

    graph = BranchGraph(_database(ctx))
    with _errors():
        graph.delete_branch(repository, name, owner=owner)
    console.print(f"[green]✓[/green] Deleted branch {name}")


@branch_app.command("list")
def branch_list(
    ctx: typer.Context,
    repository: str = typer.Argument(..., help="Repository name"),
    all_branches: bool = typer.Option(False, "--all", "-a", help="Include deleted branches"),
    owner: Optional[str] = typer.Option(None, "--owner", help="Repository owner"),
) -> None:
    """List branches, newest first."""
    from diffchain.branches.graph import BranchGraph
    from diffchain.output import json_report, terminal

    graph = BranchGraph(_database(ctx))
    with _errors():
        branches = graph.list_branches(repository, owner=owner, include_inactive=all_branches)
    if _json_output(ctx):
        _emit_json([json_report.branch_to_dict(b) for b in branches])
    else:
        terminal.render_branches(branches, console=console)


@branch_app.command("commits")
def branch_commits(
    ctx: typer.Context,
    repository: str = typer.Argument(..., help="Repository name"),
    name: str = typer.Argument(..., help="Branch name"),
    owner: Optional[str] = typer.Option(None, "--owner", help="Repository owner"),
) -> None:
    """List the commits on a branch, most recently appended first."""
    from diffchain.branches.graph import BranchGraph
    from diffchain.output import json_report, terminal

    graph = BranchGraph(_database(ctx))
    with _errors():
        commits = graph.list_commits(repository, name, owner=owner)
    if _json_output(ctx):
        _emit_json([json_report.commit_info_to_dict(c) for c in commits])
    else:
        terminal.render_commits(commits, title=f"Branch {name}", console=console)


@branch_app.command("append")
def branch_append(
    ctx: typer.Context,
    repository: str = typer.Argument(..., help="Repository name"),
    name: str = typer.Argument(..., help="Branch name"),
    commit_hash: str = typer.Argument(..., help="Commit hash (or unique prefix)"),
    owner: Optional[str] = typer.Option(None, "--owner", help="Repository owner"),
) -> None:
    """Append an existing commit to a branch."""
    from diffchain.branches.graph import BranchGraph
    from diffchain.output import json_report

    graph = BranchGraph(_database(ctx))
    with _errors():
        info = graph.append_commit(repository, name, commit_hash, owner=owner)
    if _json_output(ctx):
        _emit_json(json_report.branch_to_dict(info))
    else:
        console.print(f"[green]✓[/green] Branch {info.name} now holds {len(info.commit_ids)} commit(s)")


# ── version ───────────────────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        print(f"diffchain {__version__}")
        raise typer.Exit()


def _default_user() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return os.environ.get("USER", "")


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to .diffchain.toml"),
    user: Optional[str] = typer.Option(None, "--user", "-u", envvar="DIFFCHAIN_USER", help="Acting user"),
    format: Optional[str] = typer.Option(None, "--format", "-f", help="Output format: terminal | json"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at INFO level"),
    version: bool = typer.Option(
        False, "--version", "-V", callback=_version_callback,
        is_eager=True, help="Show version and exit",
    ),
) -> None:
    """diffchain — version files as chains of diffs."""
    from diffchain.config.loader import ConfigError, load_config
    from diffchain.logging_utils import setup_logging

    root = Path.cwd()
    try:
        cfg = load_config(root, config)
    except ConfigError as exc:
        console.print(f"[bold red]Config error:[/bold red] {exc}")
        raise typer.Exit(code=2) from exc

    if format:
        if format not in ("terminal", "json"):
            console.print(f"[bold red]Invalid format:[/bold red] {format}")
            raise typer.Exit(code=2)
        cfg.output.format = format  # type: ignore[assignment]

    setup_logging("INFO" if verbose else cfg.logging.level)

    acting_user = user or _default_user()
    if not acting_user:
        console.print("[bold red]Error:[/bold red] cannot determine the acting user; pass --user")
        raise typer.Exit(code=2)

    ctx.obj = _State(config=cfg, user=acting_user, root=root)
