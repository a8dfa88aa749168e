"""synsets CLI: materialized-path concept tree backed by SQLite.

Commands:
    synsets init [NAME]          create synsets.toml + .synsets/ dir
    synsets download             fetch the source XML into the data dir
    synsets seed                 parse XML, rebuild records, swap them into the store
    synsets tree                 show the root node and total count
    synsets children PATH        list the direct children of a node
    synsets search QUERY         substring search over concept paths
    synsets status               project / store overview
    synsets serve                start the JSON HTTP API
"""

from __future__ import annotations

import json
import logging
import sqlite3
from contextlib import closing
from pathlib import Path
from typing import Any

import click
from rich.console import Console
from rich.logging import RichHandler

from synsets.config import SynsetsConfig, init_config, load_config
from synsets.db import SEEDED_AT_KEY, current_version, get_conn, get_meta, read_snapshot
from synsets.flatten import StructuralError
from synsets.loader import seed as run_seed
from synsets.search import search as run_search
from synsets.source import SourceFetchError, download_xml
from synsets.tree import count_concepts, fetch_children, fetch_tree, get_concept

logger = logging.getLogger("synsets.cli")

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def configure_logging(level: str = "INFO") -> None:
    """Route all synsets.* loggers through rich on stderr (stdout stays clean for --json)."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True, show_path=False)],
        force=True,
    )


def _load_cfg() -> SynsetsConfig:
    try:
        cfg = load_config()
    except Exception as exc:
        raise click.ClickException(str(exc)) from exc
    ctx = click.get_current_context(silent=True)
    verbose = bool(ctx and ctx.find_root().obj and ctx.find_root().obj.get("verbose"))
    configure_logging("DEBUG" if verbose else cfg.logging.level)
    return cfg


def _open_store(cfg: SynsetsConfig) -> sqlite3.Connection:
    try:
        return get_conn(cfg)
    except sqlite3.OperationalError as exc:
        raise click.ClickException(str(exc)) from exc


def _echo_json(payload: Any) -> None:
    click.echo(json.dumps(payload, ensure_ascii=False, indent=2))


# ---------------------------------------------------------------------------
# Root group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="synsets")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """synsets: browse and search a large concept hierarchy lazily."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose


# ---------------------------------------------------------------------------
# synsets init
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("name", required=False)
@click.option("--dir", "root", default=".", show_default=True, help="Project root")
@click.option("--xml-url", default="", help="Where to download the structure XML from")
def init(name: str | None, root: str, xml_url: str) -> None:
    """Create synsets.toml and the .synsets/ data directory."""
    root_path = Path(root).resolve()
    try:
        config_path = init_config(root_path, name=name, xml_url=xml_url)
        click.echo(f"Created {config_path}")
    except FileExistsError:
        click.echo("synsets.toml already exists, skipping init")

    cfg = load_config(root_path)
    cfg.ensure_dirs()
    click.echo(f"Data dir : {cfg.data_dir}")
    click.echo(f"Database : {cfg.db_path}")


# ---------------------------------------------------------------------------
# synsets download / seed
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--force", is_flag=True, help="Re-download even if the XML is cached")
def download(force: bool) -> None:
    """Fetch the source XML into the data directory."""
    cfg = _load_cfg()
    cfg.ensure_dirs()
    try:
        path = download_xml(cfg, force=force)
    except SourceFetchError as exc:
        logger.error("Error downloading XML: %s", exc)
        raise click.ClickException(str(exc)) from exc
    click.echo(f"XML file: {path} ({path.stat().st_size / 1024:.2f} KB)")


@cli.command()
@click.option("--force-download", is_flag=True, help="Re-download the XML before parsing")
def seed(force_download: bool) -> None:
    """Rebuild the store from the source XML (full replace)."""
    cfg = _load_cfg()
    click.echo("Starting database seed…")
    try:
        summary = run_seed(cfg, force_download=force_download)
    except (SourceFetchError, StructuralError, sqlite3.Error) as exc:
        logger.error("Seeding failed: %s", exc)
        raise click.ClickException(f"Seeding failed: {exc}") from exc

    click.echo("Database seeding complete!")
    click.echo(f"Total synsets: {summary.total_concepts}")
    if summary.duplicates:
        click.echo(f"Duplicates removed: {summary.duplicates}")
    if summary.root_path is not None:
        click.echo(f'Root node: "{summary.root_path}" (size: {summary.root_size})')


# ---------------------------------------------------------------------------
# synsets tree / children / search
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--json", "as_json", is_flag=True, help="Print the API payload")
def tree(as_json: bool) -> None:
    """Show the root node and the total number of concepts."""
    cfg = _load_cfg()
    with closing(_open_store(cfg)) as conn:
        result = fetch_tree(conn)

    if as_json:
        _echo_json(result.to_dict())
        return
    if result.empty:
        click.echo(f"(no data, run `synsets seed`; {result.total_concepts} concepts)")
        return
    root = result.root
    marker = "+" if root.has_children else " "
    click.echo(f"{marker} {root.name}  ({root.size} descendants)")
    click.echo(f"Total synsets: {result.total_concepts}")


@cli.command()
@click.argument("path")
@click.option("--json", "as_json", is_flag=True, help="Print the API payload")
def children(path: str, as_json: bool) -> None:
    """List the direct children of PATH (e.g. "entity > animal")."""
    cfg = _load_cfg()
    with closing(_open_store(cfg)) as conn, read_snapshot(conn):
        nodes = fetch_children(conn, path)
        known = bool(nodes) or get_concept(conn, path) is not None

    if as_json:
        _echo_json([n.to_dict() for n in nodes])
        return
    if not nodes:
        click.echo("(leaf)" if known else "(unknown path)")
        return
    for node in nodes:
        marker = "+" if node.has_children else " "
        click.echo(f"{marker} {node.name}  ({node.size})")


@cli.command()
@click.argument("query")
@click.option("--limit", "-l", default=None, type=int, help="Max results (default: [search] limit)")
@click.option("--json", "as_json", is_flag=True, help="Print the API payload")
def search(query: str, limit: int | None, as_json: bool) -> None:
    """Case-insensitive substring search over concept paths."""
    if not query.strip():
        raise click.ClickException("Search query cannot be empty")
    cfg = _load_cfg()
    with closing(_open_store(cfg)) as conn:
        try:
            result = run_search(conn, query, limit=limit if limit is not None else cfg.search.limit)
        except ValueError as exc:
            raise click.ClickException(str(exc)) from exc

    if as_json:
        _echo_json(result.to_dict())
        return
    if not result.results:
        click.echo("(no results)")
        return
    for r in result.results:
        click.echo(f"{r.name}  ({r.size})\n  {r.path}")
    click.echo(f"\n{result.count} result(s)")


# ---------------------------------------------------------------------------
# synsets status
# ---------------------------------------------------------------------------


@cli.command()
def status() -> None:
    """Show project configuration and store contents."""
    from rich.table import Table

    cfg = _load_cfg()
    console = Console()
    table = Table(title=f"synsets: {cfg.name}", show_header=True, header_style="bold")
    table.add_column("Item")
    table.add_column("Value")

    table.add_row("Version", cfg.version)
    table.add_row("Config root", str(cfg.root))
    table.add_row("Source URL", cfg.source.xml_url or "[yellow]not set[/yellow]")
    xml_state = "cached" if cfg.xml_path.exists() else "[dim]not downloaded[/dim]"
    table.add_row("Source XML", f"{cfg.xml_path} ({xml_state})")
    table.add_row("Database", str(cfg.db_path))

    if cfg.db_path.exists():
        with closing(_open_store(cfg)) as conn, read_snapshot(conn):
            version = current_version(conn)
            seeded_at = get_meta(conn, SEEDED_AT_KEY)
            total = count_concepts(conn)
            result = fetch_tree(conn)
        table.add_row("Snapshot", str(version) if version is not None else "[dim]none[/dim]")
        table.add_row("Seeded at", seeded_at or "[dim]never[/dim]")
        table.add_row("Concepts", str(total))
        if not result.empty:
            table.add_row("Root", f"{result.root.path} ({result.root.size})")
    else:
        table.add_row("Concepts", "[dim]no database yet, run `synsets seed`[/dim]")

    console.print(table)


# ---------------------------------------------------------------------------
# synsets serve
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--host", default=None, help="Bind address (default: [server] host)")
@click.option("--port", default=None, type=int, help="Port (default: [server] port)")
def serve(host: str | None, port: int | None) -> None:
    """Start the JSON HTTP API (blocking)."""
    from synsets.web import serve as run_web

    cfg = _load_cfg()
    cfg.ensure_dirs()
    run_web(cfg, host or cfg.server.host, port if port is not None else cfg.server.port)


if __name__ == "__main__":
    cli()
