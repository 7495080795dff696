"""Command-line interface for rumble-mod-manager."""

import sys
from contextlib import contextmanager
from dataclasses import replace
from pathlib import Path
from typing import Any, Iterator

import click
from rich.console import Console
from rich.table import Table

from .config import DEFAULT_CONFIG_PATH, apply_env_overrides, load_config
from .downloader import create_download_progress
from .errors import ModManagerError
from .logs import setup_logging
from .service import ModManagerService
from .worker import (
    CacheMod,
    Command,
    DisableMod,
    EnableMod,
    RefreshRegistry,
    RemoveMod,
    RemoveOldVersions,
    RemoveVersion,
    SelectVersion,
    SetVersionLock,
    SyncToGame,
    UpdateAll,
    UpdateMod,
)

console = Console()

STATUS_LABELS = {
    "up_to_date": "[green]Up to date[/green]",
    "update_available": "[yellow]Update available[/yellow]",
    "locked": "[blue]Locked[/blue]",
    "missing_version": "[red]Selected version not cached[/red]",
    "not_in_registry": "[dim]Not in registry[/dim]",
}


@contextmanager
def _service(ctx: click.Context) -> Iterator[ModManagerService]:
    """Open the service for one command; report mod manager errors and exit non-zero."""
    svc = None
    try:
        svc = ModManagerService(ctx.obj["config"])
        yield svc
    except ModManagerError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)
    finally:
        if svc is not None:
            svc.close()


def _run(svc: ModManagerService, command: Command) -> Any:
    """Run a command on the worker with a download progress display."""
    progress = create_download_progress()
    svc.downloader.progress = progress
    try:
        with progress:
            return svc.run(command)
    finally:
        svc.downloader.progress = None


@click.group()
@click.option(
    "--config",
    "config_path",
    envvar="RUMM_CONFIG",
    type=click.Path(path_type=Path),
    default=DEFAULT_CONFIG_PATH,
    show_default=True,
    help="Path to config.json",
)
@click.option("-v", "--verbose", is_flag=True, help="Show debug logging")
@click.pass_context
def main(ctx: click.Context, config_path: Path, verbose: bool) -> None:
    """Cache RUMBLE mods from Thunderstore and sync them into the game."""
    ctx.ensure_object(dict)
    config = load_config(config_path)
    setup_logging(config.log_level, verbose)
    ctx.obj["config"] = config
    ctx.obj["config_path"] = config_path


@main.command()
@click.pass_context
def refresh(ctx: click.Context) -> None:
    """Download the latest mod list from Thunderstore."""
    with _service(ctx) as svc:
        console.print("[dim]Fetching registry...[/dim]")
        count = svc.run(RefreshRegistry())
        console.print(f"[green]Registry updated:[/green] {count} mods")


@main.command(name="list")
@click.pass_context
def list_mods(ctx: click.Context) -> None:
    """Show cached mods and their state."""
    with _service(ctx) as svc:
        cached, scan_errors = svc.store.scan()
        statuses = svc.get_status(cached)

        if not statuses:
            console.print("[yellow]No mods cached yet.[/yellow] Use 'add' to cache one.")
        else:
            table = Table(title="Cached Mods")
            table.add_column("Mod", style="cyan")
            table.add_column("Enabled")
            table.add_column("Selected", style="green")
            table.add_column("Latest", style="blue")
            table.add_column("Cached versions")
            table.add_column("Status")
            for status in statuses:
                table.add_row(
                    status.full_name[:40],
                    "yes" if status.enabled else "no",
                    status.selected_version or "-",
                    status.latest_version or "-",
                    ", ".join(status.cached_versions) or "-",
                    STATUS_LABELS.get(status.status, status.status),
                )
            console.print(table)

        for error in scan_errors:
            console.print(f"[yellow]Warning:[/yellow] unreadable cache entry {error.path.name}: {error.error}")


@main.command()
@click.argument("mod")
@click.option("--version", "version", default=None, help="Exact version (default: latest)")
@click.pass_context
def add(ctx: click.Context, mod: str, version: str | None) -> None:
    """
    Cache a mod and its dependencies, enabling them.

    MOD: mod id, full name (Owner-Name) or Thunderstore package URL
    """
    with _service(ctx) as svc:
        target = svc.lookup(mod)
        result = _run(svc, CacheMod(target.uuid, version))
        for mod_id, cached_version in result.cached:
            cached = svc.registry.get(mod_id)
            console.print(f"  [green]Cached[/green] {cached.full_name if cached else mod_id} {cached_version}")
        for mod_id in result.cycles:
            console.print(f"  [yellow]Dependency cycle through {mod_id} was not followed[/yellow]")


@main.command()
@click.argument("mod")
@click.pass_context
def enable(ctx: click.Context, mod: str) -> None:
    """Enable a mod."""
    with _service(ctx) as svc:
        target = svc.lookup(mod)
        svc.run(EnableMod(target.uuid))
        console.print(f"[green]Enabled[/green] {target.full_name}")


@main.command()
@click.argument("mod")
@click.pass_context
def disable(ctx: click.Context, mod: str) -> None:
    """Disable a mod, keeping it in the cache."""
    with _service(ctx) as svc:
        target = svc.lookup(mod)
        svc.run(DisableMod(target.uuid))
        console.print(f"[yellow]Disabled[/yellow] {target.full_name}")


@main.command(name="set-version")
@click.argument("mod")
@click.argument("version")
@click.pass_context
def set_version(ctx: click.Context, mod: str, version: str) -> None:
    """Select a specific version of a mod, caching it if needed."""
    with _service(ctx) as svc:
        target = svc.lookup(mod)
        _run(svc, SelectVersion(target.uuid, version))
        console.print(f"[green]{target.full_name}[/green] now uses {version}")


@main.command()
@click.argument("mod")
@click.pass_context
def lock(ctx: click.Context, mod: str) -> None:
    """Stop 'update' from changing a mod's version."""
    _set_lock(ctx, mod, True)


@main.command()
@click.argument("mod")
@click.pass_context
def unlock(ctx: click.Context, mod: str) -> None:
    """Let 'update' change a mod's version again."""
    _set_lock(ctx, mod, False)


def _set_lock(ctx: click.Context, mod: str, locked: bool) -> None:
    with _service(ctx) as svc:
        target = svc.lookup(mod)
        if svc.options.get(target.uuid) is None:
            console.print(f"[yellow]{target.full_name} is not enabled yet - nothing to lock.[/yellow]")
            return
        svc.run(SetVersionLock(target.uuid, locked))
        state = "locked" if locked else "unlocked"
        console.print(f"{target.full_name} {state}")


@main.command()
@click.argument("mod")
@click.option("--version", "version", default=None, help="Remove only this cached version")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def remove(ctx: click.Context, mod: str, version: str | None, yes: bool) -> None:
    """Delete a mod (or one of its versions) from the cache."""
    with _service(ctx) as svc:
        target = svc.lookup(mod)
        if version:
            svc.run(RemoveVersion(target.uuid, version))
            console.print(f"[green]Removed[/green] {target.full_name} {version}")
            return
        if not yes and not click.confirm(f"Delete {target.full_name} and all cached versions?"):
            return
        svc.run(RemoveMod(target.uuid))
        console.print(f"[green]Removed[/green] {target.full_name}")


@main.command()
@click.argument("mod", required=False)
@click.pass_context
def clean(ctx: click.Context, mod: str | None) -> None:
    """Keep only the newest cached version of a mod (or of every mod)."""
    with _service(ctx) as svc:
        targets = [svc.lookup(mod)] if mod else svc.store.scan()[0]
        for target in targets:
            removed = svc.run(RemoveOldVersions(target.uuid))
            if removed:
                console.print(f"  {target.full_name}: removed {', '.join(removed)}")
        console.print("[green]Cache cleaned.[/green]")


@main.command()
@click.argument("mod", required=False)
@click.option("--keep-going", is_flag=True, help="Continue past mods that fail to update")
@click.pass_context
def update(ctx: click.Context, mod: str | None, keep_going: bool) -> None:
    """Update one mod, or every cached mod, to the latest version."""
    with _service(ctx) as svc:
        if mod:
            result = _run(svc, UpdateMod(svc.lookup(mod).uuid))
            _print_update(result)
            return

        outcome = _run(svc, UpdateAll(continue_on_error=keep_going))
        for result in outcome.updated:
            _print_update(result)
        for error in outcome.errors:
            console.print(f"[red]Update error:[/red] {error}")
        console.print("\n[green]Update complete![/green]")


def _print_update(result) -> None:
    if result.locked:
        console.print(f"  [blue]{result.name}[/blue] locked at {result.old_version}")
    elif result.changed:
        console.print(f"  ~ {result.name} ({result.old_version or '-'} -> {result.new_version})")
    else:
        console.print(f"  [dim]{result.name} up to date ({result.new_version})[/dim]")


@main.command()
@click.option(
    "--update/--no-update",
    "do_update",
    default=None,
    help="Update mods before syncing (default: auto_update from config)",
)
@click.pass_context
def sync(ctx: click.Context, do_update: bool | None) -> None:
    """Copy enabled mods into the game's Mods and UserData folders."""
    config = ctx.obj["config"]
    if do_update is None:
        do_update = config.auto_update

    with _service(ctx) as svc:
        if do_update:
            console.print("[bold]Updating mods...[/bold]")
            outcome = _run(svc, UpdateAll(continue_on_error=True))
            for error in outcome.errors:
                console.print(f"[red]Update error:[/red] {error}")

        console.print(f"[bold]Syncing to[/bold] {config.game_dir}")
        result = svc.run(SyncToGame())
        console.print(f"  [green]Copied[/green] {len(result.copied)} files")
        if result.skipped:
            console.print(f"  [dim]Kept {len(result.skipped)} existing user data files[/dim]")
        for error in result.errors:
            console.print(f"  [red]Error:[/red] {error}")


@main.command(name="config")
@click.option("--game-dir", type=click.Path(path_type=Path), help="RUMBLE install directory")
@click.option("--cache-dir", type=click.Path(path_type=Path), help="Mod cache directory")
@click.option("--auto-update/--no-auto-update", default=None, help="Update mods before each sync")
@click.pass_context
def config_cmd(
    ctx: click.Context,
    game_dir: Path | None,
    cache_dir: Path | None,
    auto_update: bool | None,
) -> None:
    """Show or change configuration."""
    changes: dict[str, Any] = {}
    if game_dir is not None:
        changes["game_dir"] = str(game_dir)
        if not (game_dir / "RUMBLE.exe").exists():
            console.print(f"[yellow]Warning:[/yellow] RUMBLE.exe not found in {game_dir}")
    if cache_dir is not None:
        changes["mod_cache_dir"] = str(cache_dir)
    if auto_update is not None:
        changes["auto_update"] = auto_update

    config_path = ctx.obj["config_path"]
    if changes:
        # Save what the file said plus the changes, never the RUMM_* overrides
        stored = replace(load_config(config_path, env=False), **changes)
        stored.save(config_path)
        ctx.obj["config"] = apply_env_overrides(replace(stored))
        console.print(f"[green]Saved[/green] {config_path}")

    table = Table(title="Configuration", show_header=False)
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    for key, value in vars(ctx.obj["config"]).items():
        table.add_row(key, str(value))
    console.print(table)


if __name__ == "__main__":
    main()
