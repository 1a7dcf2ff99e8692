"""Kit merge-and-registry engine.

This subpackage fetches kit sources, locates their payload, merges it into
the global aggregate directory and keeps the sync registry current.
"""

from agjz_cli.kits.fetch import ArchiveFetcher, KitSource, TemplateFetcher, parse_kit_source
from agjz_cli.kits.home import get_config_path, get_global_agent_dir, get_staging_dir
from agjz_cli.kits.link import link_workspace
from agjz_cli.kits.merge import CopyStatus, FileResult, MergeReport, merge_payload
from agjz_cli.kits.registry import KitRecord, Registry, kit_id_for, load_registry, save_registry
from agjz_cli.kits.resolver import PayloadTree, resolve_payload
from agjz_cli.kits.status import KitSummary, StatusReport, collect_status
from agjz_cli.kits.sync import KitOutcome, KitState, SyncPlan, SyncReport, plan_sync, sync_kits

__all__ = [
    "ArchiveFetcher",
    "CopyStatus",
    "FileResult",
    "KitOutcome",
    "KitRecord",
    "KitSource",
    "KitState",
    "KitSummary",
    "MergeReport",
    "PayloadTree",
    "Registry",
    "StatusReport",
    "SyncPlan",
    "SyncReport",
    "TemplateFetcher",
    "collect_status",
    "get_config_path",
    "get_global_agent_dir",
    "get_staging_dir",
    "kit_id_for",
    "link_workspace",
    "load_registry",
    "merge_payload",
    "parse_kit_source",
    "plan_sync",
    "resolve_payload",
    "save_registry",
    "sync_kits",
]
