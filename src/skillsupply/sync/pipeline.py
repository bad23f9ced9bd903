"""
The sync pipeline.

For each agent, in turn:

    resolve plugins -> fetch -> detect -> extract -> validate -> plan
    -> read state -> preflight -> (dry-run: count | apply: remove stale,
    clear managed targets, install, write state)

Every failure comes back as ``Err(SyncError)`` tagged with the stage that
broke. Nothing under an agent's skills directory is removed until its
whole plan has been built and preflighted, so a failing agent is left as
it was. Agents synced before the failure stay synced.
"""

from __future__ import annotations

import os
import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

from skillsupply.agents.install import AgentInstallPlan, apply_agent_install, plan_agent_install
from skillsupply.agents.reconcile import (
    count_stale_skills,
    preflight_targets,
    reconcile_agent_skills,
    remove_managed_targets,
)
from skillsupply.agents.registry import AgentScope, ResolvedAgent, resolve_enabled_agents
from skillsupply.agents.state import (
    AgentInstallState,
    build_agent_state,
    read_agent_state,
    write_agent_state,
)
from skillsupply.config import ExtractMode, SkConfig
from skillsupply.errors import SyncError, fail_sync
from skillsupply.logging import get_logger
from skillsupply.manifest.discover import discover_manifests, find_global_manifest
from skillsupply.manifest.io import load_manifest
from skillsupply.manifest.merge import MergedManifest, merge_manifests, single_manifest
from skillsupply.manifest.models import Manifest
from skillsupply.marketplace import MarketplaceResolver
from skillsupply.packages.detect import detect_package
from skillsupply.packages.extract import extract_skills
from skillsupply.packages.fetch import fetch_packages
from skillsupply.packages.git import GitRunner
from skillsupply.packages.models import CanonicalPackage, ExtractedPackage
from skillsupply.packages.resolve import resolve_manifest_packages
from skillsupply.result import Err, Ok, Result
from skillsupply.sync.validate import validate_extracted_packages

logger = get_logger("sync")


@dataclass
class SyncOptions:
    """Inputs to :func:`run_sync`."""

    agents: list[ResolvedAgent]
    manifest: Manifest | MergedManifest
    dry_run: bool = False
    extract_mode: ExtractMode | None = None  # None = config.extract_mode
    config: SkConfig = field(default_factory=SkConfig)
    git: GitRunner | None = None


@dataclass
class AgentSyncSummary:
    agent_id: str
    display_name: str
    installed: int = 0
    removed: int = 0
    skills: list[str] = field(default_factory=list)


@dataclass
class SyncSummary:
    """What a sync did (or, under dry-run, would do)."""

    agents: list[str] = field(default_factory=list)  # display names
    dependencies: int = 0
    dry_run: bool = False
    installed: int = 0
    removed: int = 0
    manifests: list[Path] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    no_op_reason: str | None = None
    details: list[AgentSyncSummary] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Per-agent stages
# ---------------------------------------------------------------------------


def _extract_packages(
    packages: Sequence[CanonicalPackage],
    temp_root: Path,
    options: SyncOptions,
    mode: ExtractMode,
    warnings: list[str],
) -> Result[list[ExtractedPackage], SyncError]:
    git = options.git or GitRunner(options.config.git_binary, options.config.git_timeout_seconds)

    resolver = MarketplaceResolver(temp_root, git, options.config.http_timeout_seconds)
    resolved = resolver.resolve_packages(packages)
    if not resolved.ok:
        return fail_sync("resolve", resolved.error)

    fetched = fetch_packages(resolved.value, temp_root, git)
    if not fetched.ok:
        return fail_sync("fetch", fetched.error)

    extracted: list[ExtractedPackage] = []
    for package in fetched.value:
        detected = detect_package(package)
        if not detected.ok:
            return fail_sync("detect", detected.error)

        result = extract_skills(detected.value, mode)
        if not result.ok:
            return fail_sync("extract", result.error)
        warnings.extend(result.value.warnings)
        extracted.append(result.value)

    validated = validate_extracted_packages(extracted, mode)
    if not validated.ok:
        return fail_sync("validate", validated.error)
    warnings.extend(validated.value.warnings)
    return Ok(validated.value.packages)


def _apply_plan(
    plan: AgentInstallPlan,
    state: AgentInstallState | None,
    removable: list[Path],
) -> Result[int, SyncError]:
    """Remove stale skills, clear managed targets, install, persist state."""
    agent = plan.agent
    desired = plan.target_names

    reconciled = reconcile_agent_skills(agent, state, desired)
    if not reconciled.ok:
        return fail_sync("reconcile", reconciled.error)

    cleared = remove_managed_targets(removable, agent.id)
    if not cleared.ok:
        return fail_sync("install", cleared.error)

    installed = apply_agent_install(plan)
    if not installed.ok:
        return fail_sync("install", installed.error)

    written = write_agent_state(agent, build_agent_state(desired))
    if not written.ok:
        return fail_sync("reconcile", written.error)

    return Ok(len(reconciled.value))


def sync_agent(
    agent: ResolvedAgent,
    packages: Sequence[CanonicalPackage],
    options: SyncOptions,
    warnings: list[str],
) -> Result[AgentSyncSummary, SyncError]:
    """Sync one agent inside its own temporary working directory."""
    mode = options.extract_mode or options.config.extract_mode
    summary = AgentSyncSummary(agent_id=agent.id, display_name=agent.display_name)

    temp_root = Path(tempfile.mkdtemp(
        prefix=f"sk-{agent.id}-",
        dir=str(options.config.temp_dir) if options.config.temp_dir else None,
    ))
    try:
        extracted = _extract_packages(packages, temp_root, options, mode, warnings)
        if not extracted.ok:
            return extracted

        plan = plan_agent_install(agent, extracted.value)
        if not plan.ok:
            return fail_sync("install", plan.error)
        desired = plan.value.target_names
        summary.skills = [task.target_name for task in plan.value.tasks]

        state = read_agent_state(agent)
        if not state.ok:
            return fail_sync("reconcile", state.error)
        prior = state.value
        managed = set(prior.skills) if prior is not None else set()
        if prior is None:
            message = f"No prior state for {agent.display_name}; skipping stale skill removal."
            logger.warning(message)
            warnings.append(message)

        preflight = preflight_targets(plan.value, managed)
        if not preflight.ok:
            return fail_sync("install", preflight.error)

        if options.dry_run:
            summary.installed = len(desired)
            summary.removed = count_stale_skills(managed, desired)
            return Ok(summary)

        removed = _apply_plan(plan.value, prior, preflight.value)
        if not removed.ok:
            return removed
        summary.installed = len(desired - managed)
        summary.removed = removed.value
    finally:
        shutil.rmtree(temp_root, ignore_errors=True)

    logger.info(
        "Synced %s: %d installed, %d removed",
        agent.display_name,
        summary.installed,
        summary.removed,
    )
    return Ok(summary)


def _sync_without_dependencies(
    options: SyncOptions,
    summary: SyncSummary,
) -> Result[SyncSummary, SyncError]:
    """Empty every agent that has state; agents without state are untouched."""
    had_state = False
    for agent in options.agents:
        state = read_agent_state(agent)
        if not state.ok:
            return fail_sync("reconcile", state.error)
        if state.value is None:
            continue
        had_state = True

        detail = AgentSyncSummary(agent_id=agent.id, display_name=agent.display_name)
        if options.dry_run:
            detail.removed = len(state.value.skills)
        else:
            reconciled = reconcile_agent_skills(agent, state.value, set())
            if not reconciled.ok:
                return fail_sync("reconcile", reconciled.error)
            written = write_agent_state(agent, build_agent_state([]))
            if not written.ok:
                return fail_sync("reconcile", written.error)
            detail.removed = len(reconciled.value)
        summary.removed += detail.removed
        summary.details.append(detail)

    if not had_state:
        summary.no_op_reason = "no-dependencies"
    return Ok(summary)


def run_sync(options: SyncOptions) -> Result[SyncSummary, SyncError]:
    """Sync the manifest's dependencies into every agent in ``options.agents``."""
    packages = resolve_manifest_packages(options.manifest)
    summary = SyncSummary(
        agents=[agent.display_name for agent in options.agents],
        dependencies=len(packages),
        dry_run=options.dry_run,
    )

    if not packages:
        logger.info("No dependencies declared; reconciling agent state only")
        return _sync_without_dependencies(options, summary)

    for agent in options.agents:
        result = sync_agent(agent, packages, options, summary.warnings)
        if not result.ok:
            return result
        summary.installed += result.value.installed
        summary.removed += result.value.removed
        summary.details.append(result.value)

    # Package warnings repeat once per agent
    summary.warnings = list(dict.fromkeys(summary.warnings))
    return Ok(summary)


# ---------------------------------------------------------------------------
# Project entry point
# ---------------------------------------------------------------------------


def load_merged_manifest(
    start_dir: Path,
    scope: AgentScope,
    config: SkConfig,
) -> Result[tuple[MergedManifest, Path], SyncError]:
    """Discover, load and merge the manifests that apply to ``start_dir``.

    Returns the merged view and the root agents install under: the home
    directory for ``global`` scope, else the closest project manifest's
    directory (``start_dir`` when only the global manifest exists).
    """
    if scope == "global":
        found = find_global_manifest(config.home_dir, config.global_manifest_path)
        if not found.ok:
            return fail_sync("discover", found.error)
        if found.value is None:
            return Err(SyncError("discover", f"Global manifest not found: {config.global_manifest_path}"))
        loaded = load_manifest(found.value, "global")
        if not loaded.ok:
            return fail_sync("parse", loaded.error)
        return Ok((single_manifest(loaded.value.manifest), config.home_dir))

    discovered = discover_manifests(start_dir, config.home_dir, config.global_manifest_path)
    if not discovered.ok:
        return fail_sync("discover", discovered.error)
    if not discovered.value:
        return Err(SyncError(
            "discover", f"No package.toml found in {start_dir} or its parents, and no global manifest.",
        ))

    manifests: list[Manifest] = []
    for item in discovered.value:
        loaded = load_manifest(item.path, item.discovered_at)
        if not loaded.ok:
            return fail_sync("parse", loaded.error)
        manifests.append(loaded.value.manifest)

    merged = merge_manifests(manifests)
    if not merged.ok:
        return fail_sync("merge", merged.error)

    project = next((m for m in manifests if m.origin.discovered_at != "global"), None)
    root = project.root_dir if project is not None else Path(os.path.abspath(start_dir))
    return Ok((merged.value, root))


def sync_project(
    start_dir: Path,
    scope: AgentScope = "local",
    dry_run: bool = False,
    config: SkConfig | None = None,
    extract_mode: ExtractMode | None = None,
    git: GitRunner | None = None,
) -> Result[SyncSummary, SyncError]:
    """Discover manifests from ``start_dir`` and sync every enabled agent."""
    config = config or SkConfig()

    loaded = load_merged_manifest(start_dir, scope, config)
    if not loaded.ok:
        return loaded
    merged, root = loaded.value

    agents = resolve_enabled_agents(merged.agents, scope, root, config.home_dir)
    if not agents.ok:
        return fail_sync("agents", agents.error)

    logger.info(
        "Syncing %d dependencies into %s%s",
        len(merged.dependencies),
        ", ".join(agent.display_name for agent in agents.value),
        " (dry run)" if dry_run else "",
    )
    result = run_sync(SyncOptions(
        agents=agents.value,
        manifest=merged,
        dry_run=dry_run,
        extract_mode=extract_mode,
        config=config,
        git=git,
    ))
    if not result.ok:
        return result

    summary = result.value
    summary.manifests = list(merged.sources)
    summary.warnings[:0] = merged.warnings
    return Ok(summary)
