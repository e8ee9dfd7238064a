"""Rich terminal reporter — tables for commits, branches, logs and snapshots."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, List, Mapping, Optional

from rich.console import Console
from rich.table import Table
from rich.text import Text

from diffchain.branches.graph import BranchInfo
from diffchain.commits.models import CommitResult
from diffchain.history.log import CommitInfo
from diffchain.history.models import ChangeKind, ChangeRecord, ResolvedFile
from diffchain.repositories import RepositoryInfo

_KIND_STYLE = {
    ChangeKind.ADDED: "bold green",
    ChangeKind.MODIFIED: "bold yellow",
    ChangeKind.DELETED: "bold red",
}


def _kind_pill(kind: ChangeKind) -> Text:
    return Text(f" {kind.label} ", style=_KIND_STYLE.get(kind, ""))


def _when(value: Optional[datetime]) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S") if value is not None else "-"


def _storage(is_binary: bool, is_diff: bool) -> str:
    if is_binary:
        return "binary"
    return "diff" if is_diff else "full"


def _table(title: str) -> Table:
    return Table(title=title, title_style="bold", border_style="dim")


def render_commit(result: CommitResult, *, console: Optional[Console] = None) -> None:
    """Print the outcome of a commit."""
    console = console or Console(stderr=True)
    console.print()
    console.print(
        f"[green]✓[/green] Committed [bold cyan]{result.commit_hash[:12]}[/bold cyan] "
        f"to [magenta]{result.repository}[/magenta]"
        + (f" on branch [bold]{result.branch}[/bold]" if result.branch else "")
    )

    table = _table("Files")
    table.add_column("Change", justify="center", width=10)
    table.add_column("Path", style="magenta")
    table.add_column("Code", justify="center")
    table.add_column("Stored as", style="cyan")
    for f in result.files:
        table.add_row(
            _kind_pill(f.change_kind),
            f.path,
            "yes" if f.is_code else "",
            _storage(f.is_binary, f.is_diff),
        )
    console.print(table)
    if result.tags:
        console.print(f"[dim]Tags:[/dim] {', '.join(result.tags)}")


def render_commits(commits: List[CommitInfo], *, title: str = "Commits", console: Optional[Console] = None) -> None:
    console = console or Console(stderr=True)
    if not commits:
        console.print("[dim]No commits.[/dim]")
        return

    table = _table(title)
    table.add_column("Hash", style="cyan", no_wrap=True)
    table.add_column("Author", style="green")
    table.add_column("Date")
    table.add_column("Message", min_width=20)
    table.add_column("Files", justify="right")
    table.add_column("Tags", style="dim")
    for c in commits:
        table.add_row(
            c.commit_hash[:12],
            c.author,
            _when(c.created_at),
            c.message,
            str(len(c.changes)) if c.changes else "",
            ", ".join(c.tags),
        )
    console.print(table)


def render_branches(branches: List[BranchInfo], *, console: Optional[Console] = None) -> None:
    console = console or Console(stderr=True)
    if not branches:
        console.print("[dim]No branches.[/dim]")
        return

    table = _table("Branches")
    table.add_column("Name", style="bold cyan")
    table.add_column("Description")
    table.add_column("Created")
    table.add_column("Commits", justify="right")
    table.add_column("Status", justify="center")
    for b in branches:
        table.add_row(
            b.name,
            b.description,
            _when(b.created_at),
            str(len(b.commit_ids)),
            "[green]active[/green]" if b.is_active else "[dim]deleted[/dim]",
        )
    console.print(table)


def render_repositories(repos: List[RepositoryInfo], *, console: Optional[Console] = None) -> None:
    console = console or Console(stderr=True)
    if not repos:
        console.print("[dim]No repositories.[/dim]")
        return

    table = _table("Repositories")
    table.add_column("Name", style="bold cyan")
    table.add_column("Owner", style="green")
    table.add_column("Access")
    table.add_column("Description")
    table.add_column("Created")
    for r in repos:
        table.add_row(r.name, r.owner, r.access.value, r.description, _when(r.created_at))
    console.print(table)


def render_snapshot(repository: str, files: Mapping[str, ResolvedFile], *, console: Optional[Console] = None) -> None:
    console = console or Console(stderr=True)
    if not files:
        console.print(f"[dim]{repository} has no files.[/dim]")
        return

    table = _table(f"{repository} — {len(files)} file(s)")
    table.add_column("Path", style="magenta")
    table.add_column("Type")
    table.add_column("Size", justify="right")
    table.add_column("Last commit", style="cyan", no_wrap=True)
    for path in sorted(files):
        f = files[path]
        kind = "binary" if f.is_binary else ("code" if f.is_code else "text")
        table.add_row(path, kind, str(len(f.data)), f.commit_hash[:12])
    console.print(table)


def render_history(path: str, records: Iterable[ChangeRecord], *, console: Optional[Console] = None) -> None:
    console = console or Console(stderr=True)
    records = list(records)
    if not records:
        console.print(f"[dim]No history for {path}.[/dim]")
        return

    table = _table(f"History of {path}")
    table.add_column("Seq", justify="right", style="green")
    table.add_column("Change", justify="center", width=10)
    table.add_column("Commit", style="cyan", no_wrap=True)
    table.add_column("Stored as")
    for r in records:
        table.add_row(str(r.seq), _kind_pill(r.change_kind), r.commit_hash[:12], _storage(r.is_binary, r.is_diff))
    console.print(table)
