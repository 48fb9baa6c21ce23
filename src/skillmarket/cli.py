"""skillmarket CLI — marketplace tooling from the terminal.

Commands:
    sync            Copy marketplace skills into a Codex skills directory
    package         Bundle marketplace skills into a zip archive
    list            Show skills, agents and commands
    info            Get detailed document information
    search          Search documents
    validate        Check the marketplace for broken skills
    serve           Serve the marketplace over MCP on stdio
    prevent-sleep   Keep the machine awake (session start hook)
    allow-sleep     Let the machine sleep again (session end hook)
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from . import __version__
from .catalog import Catalog
from .models import DocumentKind
from .sync import SkillResult

console = Console()

marketplace_option = click.option(
    "--marketplace",
    "marketplace",
    default=None,
    envvar="SKILLMARKET_MARKETPLACE",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Path to marketplace.json (default: ./.claude-plugin/marketplace.json).",
)

kind_option = click.option(
    "--kind",
    type=click.Choice([k.value for k in DocumentKind]),
    default=None,
    help="Limit to one document kind.",
)


def _load_catalog(marketplace: Optional[Path]) -> Catalog:
    """Load the catalog or exit 1 with a readable error."""
    try:
        return Catalog(marketplace)
    except (FileNotFoundError, ValueError) as exc:
        console.print(f"[red]Failed to read marketplace.json:[/red] {exc}")
        sys.exit(1)


def _print_results(results: list[SkillResult], done_tag: str, verb: str) -> None:
    plugin = None
    for r in results:
        if r.plugin != plugin:
            plugin = r.plugin
            console.print(f"\n[blue]=== {plugin} ===[/blue]")
        if r.error:
            console.print(f"[red]\\[ERROR][/red] Failed to {verb} {r.skill_path}: {r.error}")
        elif r.dry_run:
            console.print(f"[yellow]\\[DRY RUN][/yellow] Would {verb}: {r.name}")
        else:
            console.print(f"[green]\\[{done_tag}][/green] {r.name} ({r.files} files)")


@click.group()
@click.version_option(__version__, prog_name="skillmarket")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def main(verbose: bool) -> None:
    """skillmarket — tooling for a marketplace of agent skills.

    Sync skills into Codex, package them for upload, browse the
    marketplace, and keep the machine awake during agent sessions.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(name)s: %(message)s",
    )


@main.command()
@marketplace_option
@click.option("--output", "-o", default=None, type=click.Path(file_okay=False, path_type=Path),
              help="Codex skills directory (default: $CODEX_HOME/skills or ~/.codex/skills).")
@click.option("--project", is_flag=True, help="Install to .codex/skills in the current directory.")
@click.option("--prefix", is_flag=True, help="Prefix skill names with the plugin name.")
@click.option("--dry-run", is_flag=True, help="Report what would be copied without copying.")
def sync(marketplace: Optional[Path], output: Optional[Path], project: bool, prefix: bool, dry_run: bool) -> None:
    """Copy every marketplace skill into a Codex skills directory."""
    from .sync import SkillSyncer, default_target_dir

    catalog = _load_catalog(marketplace)
    syncer = SkillSyncer(catalog, output or default_target_dir(project), dry_run=dry_run, prefix=prefix)

    console.print(f"\n[blue]Target directory:[/blue] {syncer.target_dir}")
    console.print(f"[blue]Marketplace:[/blue] {catalog.marketplace_file}")
    if dry_run:
        console.print("[yellow]Dry run mode: no files will be modified[/yellow]")

    stats = syncer.sync_all()
    _print_results(syncer.results, "SYNCED", "sync")

    console.print(f"\n[blue]Skills synced:[/blue] {stats.skills_synced}")
    if stats.skills_failed:
        console.print(f"[red]Skills failed:[/red] {stats.skills_failed}")
    if not dry_run:
        console.print(f"[blue]Files created:[/blue] {stats.files_created}")
        if stats.skills_synced:
            console.print("\n[green]Skills synced to Codex.[/green] Use them with $<skill-name>, e.g. $commit-messages")


@main.command()
@marketplace_option
@click.option("--output", "-o", default=None, type=click.Path(dir_okay=False, path_type=Path),
              help="Zip file path (default: claude-plugins-skills-<timestamp>.zip).")
@click.option("--prefix", is_flag=True, help="Prefix skill names with the plugin name.")
@click.option("--dry-run", is_flag=True, help="Validate skills without writing the archive.")
def package(marketplace: Optional[Path], output: Optional[Path], prefix: bool, dry_run: bool) -> None:
    """Bundle every marketplace skill into one zip archive."""
    from .packager import SkillPackager, archive_sha256, default_archive_name

    catalog = _load_catalog(marketplace)
    zip_path = (output or Path(default_archive_name())).resolve()
    packager = SkillPackager(catalog, prefix=prefix)

    console.print(f"\n[blue]Output file:[/blue] {zip_path}")
    if dry_run:
        console.print("[yellow]Dry run mode: no files will be created[/yellow]")
        stats = packager.validate()
    else:
        try:
            stats = packager.package(zip_path)
        except OSError as exc:
            console.print(f"[red]Failed to create zip file:[/red] {exc}")
            sys.exit(1)
    _print_results(packager.results, "PACKAGED", "package")

    console.print(f"\n[blue]Skills packaged:[/blue] {stats.skills_packaged}")
    if stats.skills_failed:
        console.print(f"[red]Skills failed:[/red] {stats.skills_failed}")
    if not dry_run:
        console.print(f"[blue]Files added:[/blue] {stats.files_added}")
        if stats.skills_packaged:
            size_mb = zip_path.stat().st_size / 1024 / 1024
            console.print(f"\n[green]Packaged:[/green] {zip_path}")
            console.print(f"  Size:    {size_mb:.2f} MB")
            console.print(f"  SHA-256: {archive_sha256(zip_path)}")


@main.command("list")
@marketplace_option
@kind_option
def list_documents(marketplace: Optional[Path], kind: Optional[str]) -> None:
    """Show the skills, agents and commands in the marketplace."""
    catalog = _load_catalog(marketplace)
    docs = catalog.documents(DocumentKind(kind) if kind else None)

    if not docs:
        console.print("[dim]No documents found.[/dim]")
        return

    table = Table(title=catalog.config.name)
    table.add_column("Name", style="cyan")
    table.add_column("Kind")
    table.add_column("Plugin", style="green")
    table.add_column("Description")

    for d in docs:
        table.add_row(
            d.name,
            d.kind.value,
            d.plugin,
            d.description[:60] + ("..." if len(d.description) > 60 else ""),
        )

    console.print(table)


@main.command()
@click.argument("name")
@marketplace_option
@kind_option
def info(name: str, marketplace: Optional[Path], kind: Optional[str]) -> None:
    """Get detailed information about a skill, agent or command."""
    catalog = _load_catalog(marketplace)
    doc = catalog.get(name, DocumentKind(kind) if kind else None)
    if doc is None:
        console.print(f"[red]Not found:[/red] {name}")
        sys.exit(1)

    console.print(f"\n[cyan bold]{doc.name}[/cyan bold] ({doc.kind.value})")
    if doc.description:
        console.print(f"  {doc.description}")
    console.print(f"  Plugin: {doc.plugin}")
    console.print(f"  Path:   {doc.path}")
    console.print(f"  URI:    {doc.uri}")

    if doc.metadata:
        console.print(f"\n  [bold]Metadata:[/bold]")
        for key, value in doc.metadata.items():
            console.print(f"    {key}: {value}")


@main.command()
@click.argument("query")
@marketplace_option
@kind_option
def search(query: str, marketplace: Optional[Path], kind: Optional[str]) -> None:
    """Search documents by name, description, or plugin."""
    catalog = _load_catalog(marketplace)
    results = catalog.search(query, DocumentKind(kind) if kind else None)

    if not results:
        console.print(f"[dim]No documents found matching '{query}'.[/dim]")
        return

    table = Table(title=f"Search: '{query}'")
    table.add_column("Name", style="cyan")
    table.add_column("Kind")
    table.add_column("Plugin", style="green")
    table.add_column("Description")

    for d in results:
        table.add_row(
            d.name,
            d.kind.value,
            d.plugin,
            d.description[:60] + ("..." if len(d.description) > 60 else ""),
        )

    console.print(table)


@main.command()
@marketplace_option
@click.option("--prefix", is_flag=True, help="Check name collisions with plugin-prefixed names.")
def validate(marketplace: Optional[Path], prefix: bool) -> None:
    """Check that every listed skill exists and has valid SKILL.md frontmatter."""
    catalog = _load_catalog(marketplace)
    issues = catalog.validate(prefix=prefix)

    if not issues:
        console.print(f"[green]OK:[/green] {catalog.config.skill_count} skills in {len(catalog.plugins)} plugins")
        return

    table = Table(title="Marketplace issues")
    table.add_column("Plugin", style="green")
    table.add_column("Skill", style="cyan")
    table.add_column("Problem", style="red")
    for i in issues:
        table.add_row(i.plugin, i.skill, i.message)

    console.print(table)
    sys.exit(1)


@main.command()
@marketplace_option
def serve(marketplace: Optional[Path]) -> None:
    """Serve marketplace documents over MCP on stdio."""
    import asyncio

    from .server import MarketplaceServer

    server = MarketplaceServer(_load_catalog(marketplace))
    # stdout carries the protocol
    err = Console(stderr=True)
    err.print(f"[green]skillmarket:[/green] {len(server.catalog.documents())} documents")
    err.print("[dim]Serving on stdio (MCP protocol)...[/dim]")
    asyncio.run(server.run_stdio())


# ── Session hooks ─────────────────────────────────────────────────────


@main.command("prevent-sleep")
@click.option("--pid-file", default=None, envvar="SKILLMARKET_PID_FILE",
              type=click.Path(dir_okay=False, path_type=Path), help="PID file location.")
def prevent_sleep(pid_file: Optional[Path]) -> None:
    """Keep the machine awake for up to an hour (restarts any earlier inhibitor)."""
    from .sleepguard import SleepGuard

    guard = SleepGuard(pid_file)
    try:
        pid = guard.start()
        console.print(f"[green]Sleep prevented:[/green] {guard.process_name} PID {pid}")
    except OSError as exc:
        # Hooks must not fail the host session.
        console.print(f"[yellow]Could not start {guard.process_name}:[/yellow] {exc}")


@main.command("allow-sleep")
@click.option("--pid-file", default=None, envvar="SKILLMARKET_PID_FILE",
              type=click.Path(dir_okay=False, path_type=Path), help="PID file location.")
def allow_sleep(pid_file: Optional[Path]) -> None:
    """Stop the inhibitor started by prevent-sleep."""
    from .sleepguard import SleepGuard

    if SleepGuard(pid_file).stop():
        console.print("[green]Sleep allowed.[/green]")
    else:
        console.print("[dim]No inhibitor running.[/dim]")


if __name__ == "__main__":
    main()
