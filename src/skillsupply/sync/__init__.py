"""Sync: manifests in, installed skills out."""
from __future__ import annotations

from skillsupply.sync.pipeline import (
    AgentSyncSummary,
    SyncOptions,
    SyncSummary,
    load_merged_manifest,
    run_sync,
    sync_agent,
    sync_project,
)
from skillsupply.sync.validate import ValidatedPackages, validate_extracted_packages

__all__ = [
    "AgentSyncSummary",
    "SyncOptions",
    "SyncSummary",
    "ValidatedPackages",
    "load_merged_manifest",
    "run_sync",
    "sync_agent",
    "sync_project",
    "validate_extracted_packages",
]
