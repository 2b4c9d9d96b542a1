"""Redistribution of failed or returned records within one distribution."""

from __future__ import annotations

import copy
import logging
from datetime import datetime
from typing import List, Sequence

from .distribution import AgentAssignmentGroup, Distribution
from .errors import NoAgents
from .record import Record, utcnow

logger = logging.getLogger(__name__)


def groups_by_live_load(groups: Sequence[AgentAssignmentGroup]) -> List[AgentAssignmentGroup]:
    """Return *groups* ordered by live load, least loaded first (stable)."""

    return sorted(groups, key=lambda g: g.live_load)


def redistribute(
    failed_records: Sequence[Record],
    distribution: Distribution,
    *,
    now: datetime | None = None,
) -> Distribution:
    """Deal copies of *failed_records* round-robin over the least-loaded groups.

    Works on a copy: the given distribution is left untouched.  Each copy is a
    new pending record tagged ``redistributed``; the originals stay where
    they are, with ``redistributed_to`` pointing at their copy.
    """

    if not failed_records:
        return distribution
    if not distribution.agents:
        raise NoAgents("Distribution has no agent groups to redistribute to")

    now = now or utcnow()
    updated = copy.deepcopy(distribution)
    ordered = groups_by_live_load(updated.agents)

    originals = {r.id: r for r in updated.all_records()}
    for i, record in enumerate(failed_records):
        target = ordered[i % len(ordered)]
        dealt = record.reassigned_copy(assigned_at=now)
        target.records.append(dealt)
        # Mark the original so it is not dealt out a second time.
        if record.id in originals:
            originals[record.id].redistributed_to = dealt.id

    logger.info(
        "Redistributed %d record(s) in distribution %s across %d agent(s)",
        len(failed_records),
        distribution.id,
        min(len(failed_records), len(ordered)),
    )
    return updated
