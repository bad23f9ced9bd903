"""
Command-line interface for skills-supply.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from skillsupply.agents.registry import (
    detect_installed_agents,
    list_agents,
    resolve_enabled_agents,
)
from skillsupply.agents.state import read_agent_state
from skillsupply.config import MANIFEST_FILENAME, SkConfig
from skillsupply.errors import ManifestError
from skillsupply.logging import setup_logging
from skillsupply.manifest.coerce import coerce_agent_id, coerce_alias, coerce_dependency, looks_like_git_url
from skillsupply.manifest.discover import find_project_manifest
from skillsupply.manifest.io import empty_manifest, load_manifest, save_manifest
from skillsupply.manifest.models import Declaration, Manifest
from skillsupply.manifest.transform import add_dependency, has_dependency, remove_dependency, set_agent
from skillsupply.manifest.write import SerializeOptions
from skillsupply.sync.pipeline import SyncSummary, load_merged_manifest, sync_project

console = Console()


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Install skills into your coding agents",
        prog="sk",
    )

    # Global options
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose output (debug logging)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Sync command
    sync_parser = subparsers.add_parser("sync", help="Install dependencies into enabled agents")
    sync_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report what would change without touching the filesystem",
    )
    sync_parser.add_argument(
        "--lenient",
        action="store_true",
        help="Skip invalid skills with a warning instead of failing",
    )
    _add_scope_arguments(sync_parser)

    # Status command
    status_parser = subparsers.add_parser("status", help="Show managed skills per agent")
    _add_scope_arguments(status_parser)

    # Add command
    add_parser = subparsers.add_parser("add", help="Add a dependency to the manifest")
    add_parser.add_argument("alias", help="Dependency alias (also the install prefix)")
    add_parser.add_argument("spec", help="owner/repo, git URL, local path or name@version")
    ref_group = add_parser.add_mutually_exclusive_group()
    ref_group.add_argument("--tag", help="Git tag")
    ref_group.add_argument("--branch", help="Git branch")
    ref_group.add_argument("--rev", help="Git commit")
    add_parser.add_argument("--path", dest="subpath", help="Subdirectory inside the repository")
    _add_scope_arguments(add_parser)

    # Remove command
    remove_parser = subparsers.add_parser("remove", help="Remove a dependency from the manifest")
    remove_parser.add_argument("alias", help="Dependency alias")
    _add_scope_arguments(remove_parser)

    # Agents command
    agents_parser = subparsers.add_parser("agents", help="List or toggle agents")
    toggle_group = agents_parser.add_mutually_exclusive_group()
    toggle_group.add_argument("--enable", metavar="ID", help="Enable an agent in the manifest")
    toggle_group.add_argument("--disable", metavar="ID", help="Disable an agent in the manifest")
    _add_scope_arguments(agents_parser)

    args = parser.parse_args(argv)

    config = SkConfig.load()

    # Setup logging based on verbosity
    if getattr(args, "verbose", False):
        setup_logging("DEBUG")
    else:
        setup_logging(config.log_level)

    if args.command == "sync":
        cmd_sync(args, config)
    elif args.command == "status":
        cmd_status(args, config)
    elif args.command == "add":
        cmd_add(args, config)
    elif args.command == "remove":
        cmd_remove(args, config)
    elif args.command == "agents":
        cmd_agents(args, config)
    else:
        parser.print_help()


def _add_scope_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-g",
        "--global",
        dest="global_scope",
        action="store_true",
        help="Use the global manifest and install into the home directory",
    )
    parser.add_argument(
        "-d",
        "--dir",
        default=None,
        help="Project directory (defaults to the current directory)",
    )


def _start_dir(args: argparse.Namespace) -> Path:
    return Path(args.dir) if args.dir else Path.cwd()


def _fail(message: str) -> None:
    console.print(f"[red]Error:[/red] {escape(message)}")
    sys.exit(1)


def cmd_sync(args: argparse.Namespace, config: SkConfig) -> None:
    """Sync dependencies into agents."""
    result = sync_project(
        _start_dir(args),
        scope="global" if args.global_scope else "local",
        dry_run=args.dry_run,
        config=config,
        extract_mode="lenient" if args.lenient else None,
    )
    if not result.ok:
        console.print(f"[red]Sync failed:[/red] {escape(str(result.error))}")
        sys.exit(1)

    _print_summary(result.value)


def _print_summary(summary: SyncSummary) -> None:
    for warning in summary.warnings:
        console.print(f"[yellow]Warning:[/yellow] {escape(warning)}")

    if summary.no_op_reason == "no-dependencies":
        console.print("[dim]No dependencies declared and no managed skills to remove.[/dim]")
        return

    title = "Sync plan (dry run)" if summary.dry_run else "Sync complete"
    table = Table(title=title)
    table.add_column("Agent", style="cyan")
    table.add_column("Installed", justify="right")
    table.add_column("Removed", justify="right")

    for detail in summary.details:
        table.add_row(detail.display_name, str(detail.installed), str(detail.removed))

    console.print(table)
    console.print(
        f"\n[dim]Dependencies: {summary.dependencies} | "
        f"Installed: {summary.installed} | Removed: {summary.removed}[/dim]"
    )
    for manifest in summary.manifests:
        console.print(f"[dim]  from {escape(str(manifest))}[/dim]")


def cmd_status(args: argparse.Namespace, config: SkConfig) -> None:
    """Show managed skills for each enabled agent."""
    scope = "global" if args.global_scope else "local"
    loaded = load_merged_manifest(_start_dir(args), scope, config)
    if not loaded.ok:
        _fail(str(loaded.error))
        return
    merged, root = loaded.value

    agents = resolve_enabled_agents(merged.agents, scope, root, config.home_dir)
    if not agents.ok:
        _fail(agents.error.message)
        return

    table = Table(title="Agent Status")
    table.add_column("Agent", style="cyan")
    table.add_column("Skills path", style="dim")
    table.add_column("Managed skills")

    for agent in agents.value:
        state = read_agent_state(agent)
        if not state.ok:
            managed = f"[red]{escape(state.error.message)}[/red]"
        elif state.value is None:
            managed = "[dim]no state[/dim]"
        else:
            managed = ", ".join(state.value.skills) or "[dim]none[/dim]"
        table.add_row(agent.display_name, str(agent.skills_path), managed)

    console.print(table)


def _manifest_path(args: argparse.Namespace, config: SkConfig) -> Path:
    """The manifest ``add``/``remove``/``agents`` edit."""
    if args.global_scope:
        return config.global_manifest_path
    start = _start_dir(args)
    found = find_project_manifest(start, config.home_dir)
    if not found.ok:
        _fail(found.error.message)
    if found.ok and found.value is not None:
        return found.value
    return start / MANIFEST_FILENAME


def _open_manifest(
    path: Path,
    args: argparse.Namespace,
    create: bool,
) -> tuple[Manifest, SerializeOptions | None]:
    discovered_at = "global" if args.global_scope else "cwd"
    if not path.exists():
        if not create:
            _fail(f"Manifest not found: {path}")
        return empty_manifest(path, discovered_at), None

    loaded = load_manifest(path, discovered_at)
    if not loaded.ok:
        _fail(loaded.error.message)
    return loaded.value.manifest, loaded.value.serialize_options


def _save(manifest: Manifest, options: SerializeOptions | None) -> None:
    saved = save_manifest(manifest, options=options)
    if not saved.ok:
        _fail(saved.error.message)


def build_declaration(
    spec: str,
    alias: str,
    manifest_path: Path,
    ref: dict[str, str] | None = None,
    subpath: str | None = None,
) -> Declaration:
    """Turn ``sk add`` arguments into a validated declaration.

    Raises:
        ManifestError: ``spec`` or the ref and path options are invalid.
    """
    extras: dict[str, str] = dict(ref or {})
    if subpath:
        extras["path"] = subpath

    value = spec.strip()
    if looks_like_git_url(value):
        raw: str | dict[str, str] = {"git": value, **extras}
    elif value.startswith((".", "/", "~")) or (manifest_path.parent / value).is_dir():
        if extras:
            raise ManifestError(
                "validation", "Local dependencies do not take --tag, --branch, --rev or --path.",
            )
        raw = {"path": value}
    elif extras:
        raw = {"gh": value, **extras}
    else:
        raw = value
    return coerce_dependency(raw, alias, manifest_path)


def cmd_add(args: argparse.Namespace, config: SkConfig) -> None:
    """Add a dependency."""
    alias = coerce_alias(args.alias)
    if alias is None:
        _fail(f"Invalid alias: {args.alias}. Aliases must not contain / \\ . or :")
        return

    path = _manifest_path(args, config)
    manifest, options = _open_manifest(path, args, create=True)
    if has_dependency(manifest, alias):
        _fail(f'Dependency "{alias}" already exists in {path}.')

    ref = {
        name: getattr(args, name)
        for name in ("tag", "branch", "rev")
        if getattr(args, name)
    }
    try:
        declaration = build_declaration(args.spec, alias, manifest.source_path, ref, args.subpath)
    except ManifestError as e:
        _fail(e.message)
        return

    _save(add_dependency(manifest, alias, declaration), options)
    console.print(f"[green]Added {escape(alias)} ({declaration.kind}) to {escape(str(path))}[/green]")


def cmd_remove(args: argparse.Namespace, config: SkConfig) -> None:
    """Remove a dependency."""
    path = _manifest_path(args, config)
    manifest, options = _open_manifest(path, args, create=False)
    alias = args.alias.strip()
    if not has_dependency(manifest, alias):
        _fail(f'Dependency "{alias}" not found in {path}.')

    _save(remove_dependency(manifest, alias), options)
    console.print(f"[green]Removed {escape(alias)} from {escape(str(path))}[/green]")
    console.print("[dim]Run `sk sync` to uninstall its skills.[/dim]")


def cmd_agents(args: argparse.Namespace, config: SkConfig) -> None:
    """List agents, or enable/disable one in the manifest."""
    toggle = args.enable or args.disable
    if toggle:
        agent_id = coerce_agent_id(toggle)
        if agent_id is None:
            _fail(f"Unknown agent: {toggle}")
            return
        path = _manifest_path(args, config)
        manifest, options = _open_manifest(path, args, create=True)
        enabled = bool(args.enable)
        _save(set_agent(manifest, agent_id, enabled), options)
        state = "Enabled" if enabled else "Disabled"
        console.print(f"[green]{state} {agent_id} in {escape(str(path))}[/green]")
        return

    detected = detect_installed_agents(config.home_dir)
    if not detected.ok:
        _fail(detected.error.message)
        return
    detected_ids = {agent.id for agent in detected.value}

    configured: dict[str, bool] = {}
    path = _manifest_path(args, config)
    if path.exists():
        manifest, _ = _open_manifest(path, args, create=False)
        configured = dict(manifest.agents)

    table = Table(title="Agents")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Skills dir", style="dim")
    table.add_column("Detected")
    table.add_column("Enabled")

    for definition in list_agents():
        if not configured:
            enabled_cell = "[dim]auto[/dim]"
        else:
            enabled_cell = "yes" if configured.get(definition.id) else "no"
        table.add_row(
            definition.id,
            definition.display_name,
            f"{definition.base_path}/{definition.skills_dir}",
            "yes" if definition.id in detected_ids else "[dim]no[/dim]",
            enabled_cell,
        )

    console.print(table)


if __name__ == "__main__":
    main()
