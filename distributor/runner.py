"""Library entry-point for distributing a normalized record file.

This module holds **no CLI logic** so it can be imported from services,
scheduled jobs, or unit-tests without depending on argparse or environment
variables beyond what :mod:`.config` reads.
"""

from __future__ import annotations

import logging
from pathlib import Path

from .config import load_settings
from .directory import AgentDirectory
from .distribution import Distribution
from .engine import distribute
from .loaders import load_agents, read_records_csv
from .store import DistributionStore


def _cleanup(path: Path, log: logging.Logger) -> None:
    """Best-effort removal of the uploaded file; never fails the run."""

    try:
        path.unlink()
    except OSError as exc:
        log.warning("Could not remove uploaded file %s: %s", path, exc)


async def run_distribution(
    *,
    base: Path,
    records_path: Path,
    strategy: str | None = None,
    uploaded_by: str = "cli",
    store: DistributionStore | None = None,
    remove_upload: bool = False,
    log: logging.Logger | None = None,
) -> Distribution:
    """Run the full load → distribute → persist pipeline.

    Parameters
    ----------
    base
        Directory that contains the *config/* folder (settings.yml and the
        agent roster).
    records_path
        CSV of normalized rows (firstName, phone, notes).
    strategy
        Overrides the configured default strategy.
    store
        Target store.  If omitted, a fresh in-memory store backed by the
        roster is created.
    remove_upload
        Delete *records_path* once the run finishes, including when it fails.
    log
        Optional logger instance.  If omitted, a module-level logger is used.
    """

    log = log or logging.getLogger(__name__)

    try:
        settings = load_settings(base)
        if store is None:
            agents = load_agents(Path(base) / "config" / settings.agents_file)
            store = DistributionStore(AgentDirectory(agents))

        loaded = read_records_csv(records_path)
        log.info("Loaded %d records (%d skipped)", len(loaded.records), loaded.skipped_rows)

        plan = distribute(
            loaded.records,
            store.directory.all(),
            strategy or settings.default_strategy,
            {"max_records": settings.max_records},
        )
        distribution = await store.create(
            plan,
            file_name=records_path.name,
            original_file_name=records_path.name,
            file_size=records_path.stat().st_size,
            uploaded_by=uploaded_by,
            metadata=loaded.metadata(),
        )
    finally:
        # The upload is removed whether or not the run succeeded.
        if remove_upload:
            _cleanup(records_path, log)

    log.info("Distribution %s stored", distribution.id)
    return distribution
