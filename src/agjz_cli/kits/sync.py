"""Sync orchestration: fetch, resolve, merge and clean up one kit at a time.

Kits share one staging directory and one registry, so they are processed
strictly in order. Each kit moves through::

    PENDING -> FETCHING -> RESOLVING -> MERGING -> CLEANED

A fetch or resolution failure aborts the batch after the staging
directory is removed. With ``continue_on_error`` the failing kit is marked
FAILED instead and the next kit is processed.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable

from agjz_cli.errors import AgjzError
from agjz_cli.kits.fetch import TemplateFetcher
from agjz_cli.kits.merge import MergeReport, merge_payload
from agjz_cli.kits.resolver import resolve_payload

logger = logging.getLogger(__name__)


class KitState(Enum):
    PENDING = "pending"
    FETCHING = "fetching"
    RESOLVING = "resolving"
    MERGING = "merging"
    CLEANED = "cleaned"
    FAILED = "failed"


StateCallback = Callable[[str, KitState], None]


@dataclass
class KitOutcome:
    source: str
    state: KitState = KitState.PENDING
    report: MergeReport | None = None
    error: str | None = None


@dataclass
class SyncReport:
    """Aggregate result of a batch."""

    global_dir: Path
    outcomes: list[KitOutcome] = field(default_factory=list)

    @property
    def synced(self) -> list[KitOutcome]:
        return [o for o in self.outcomes if o.state is KitState.CLEANED]

    @property
    def failed(self) -> list[KitOutcome]:
        return [o for o in self.outcomes if o.state is KitState.FAILED]

    @property
    def synced_count(self) -> int:
        return len(self.synced)


@dataclass(frozen=True)
class SyncPlan:
    """What a sync would do, for ``--dry-run``."""

    sources: list[str]
    global_dir: Path


def plan_sync(sources: Iterable[str], global_dir: Path) -> SyncPlan:
    return SyncPlan(sources=list(sources), global_dir=Path(global_dir))


def cleanup_staging(staging_dir: Path) -> None:
    """Remove the staging directory if present."""
    if staging_dir.exists():
        shutil.rmtree(staging_dir, ignore_errors=True)


def _sync_one(
    outcome: KitOutcome,
    *,
    global_dir: Path,
    fetcher: TemplateFetcher,
    staging_dir: Path,
    notify: StateCallback,
) -> None:
    source = outcome.source

    def advance(state: KitState) -> None:
        outcome.state = state
        notify(source, state)

    try:
        cleanup_staging(staging_dir)
        advance(KitState.FETCHING)
        fetcher.fetch(source, staging_dir)

        advance(KitState.RESOLVING)
        payload = resolve_payload(staging_dir)

        advance(KitState.MERGING)
        outcome.report = merge_payload(payload, global_dir, source)
    finally:
        cleanup_staging(staging_dir)

    advance(KitState.CLEANED)


def sync_kits(
    sources: Iterable[str],
    *,
    global_dir: Path,
    fetcher: TemplateFetcher,
    staging_dir: Path,
    continue_on_error: bool = False,
    on_state: StateCallback | None = None,
) -> SyncReport:
    """Fetch and merge every kit in *sources* into *global_dir*.

    Args:
        sources: Kit source strings, processed in order.
        global_dir: Aggregate directory.
        fetcher: Template fetcher used to materialize each kit.
        staging_dir: Reused temporary location kits are fetched into.
        continue_on_error: Record failing kits and keep going instead of
            aborting the batch.
        on_state: Called with ``(source, state)`` on every transition.

    Returns:
        SyncReport with one outcome per processed kit.

    Raises:
        FetchError, ResolutionError, RegistryIOError: first failure, unless
            ``continue_on_error`` is set. The staging directory is removed
            before the error propagates.
    """
    global_dir = Path(global_dir)
    staging_dir = Path(staging_dir)
    notify: StateCallback = on_state or (lambda source, state: None)

    report = SyncReport(global_dir=global_dir)
    for source in sources:
        outcome = KitOutcome(source=source)
        report.outcomes.append(outcome)
        notify(source, KitState.PENDING)
        logger.info("Syncing %s", source)

        try:
            _sync_one(
                outcome,
                global_dir=global_dir,
                fetcher=fetcher,
                staging_dir=staging_dir,
                notify=notify,
            )
        except AgjzError as exc:
            if not continue_on_error:
                raise
            logger.warning("Skipping %s: %s", source, exc)
            outcome.error = str(exc)
            outcome.state = KitState.FAILED
            notify(source, KitState.FAILED)

    return report
