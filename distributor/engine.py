"""Distribution engine: validate inputs, run a strategy, summarise the result."""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, Iterable, List, Mapping, Sequence

import pandas as pd

from .agent import Agent
from .distribution import AgentAssignmentGroup, DistributionPlan, Strategy, Summary
from .errors import DistributionError, EmptyInput, NoActiveAgents, NoAgents, TooManyRecords
from .record import RecordInput
from .strategies import STRATEGIES, resolve_strategy

logger = logging.getLogger(__name__)


def _as_inputs(records: Iterable[RecordInput | Mapping[str, Any]]) -> List[RecordInput]:
    return [r if isinstance(r, RecordInput) else RecordInput.from_mapping(r) for r in records]


def _as_agents(agents: Iterable[Agent | Mapping[str, Any]]) -> List[Agent]:
    return [a if isinstance(a, Agent) else Agent.from_mapping(a) for a in agents]


def fairness_score(counts: Sequence[int]) -> float:
    """Return ``max(0, 1 - stddev / mean)`` of per-agent counts (1 for one agent)."""

    if len(counts) <= 1:
        return 1.0
    series = pd.Series(counts, dtype="float64")
    mean = series.mean()
    if mean == 0:
        return 1.0
    # Population standard deviation, not the sample estimate.
    return max(0.0, 1 - float(series.std(ddof=0)) / float(mean))


def build_summary(groups: Sequence[AgentAssignmentGroup], total_records: int, distribution_time: float) -> Summary:
    counts = [g.assigned_count for g in groups]
    low, high = min(counts), max(counts)
    return Summary(
        total_agents_assigned=len(groups),
        total_records_distributed=total_records,
        average_records_per_agent=round(total_records / len(groups), 2),
        min_records_assigned=low,
        max_records_assigned=high,
        distribution_variance=high - low,
        fairness_score=fairness_score(counts),
        distribution_time=distribution_time,
    )


def distribute(
    records: Sequence[RecordInput | Mapping[str, Any]],
    agents: Sequence[Agent | Mapping[str, Any]],
    strategy: Strategy | str = Strategy.EQUAL,
    options: Dict[str, Any] | None = None,
) -> DistributionPlan:
    """Partition *records* across the active *agents*.

    Args:
        records: normalized record inputs (``RecordInput`` or mappings with
                 firstName/phone/notes).
        agents: agent descriptors; inactive ones are ignored.
        strategy: ``equal``, ``weighted`` or ``priority``.  Unknown names
                  fall back to ``equal``.
        options: strategy options.  ``max_records`` bounds the input size;
                 ``now`` pins the assignment timestamp.

    Returns:
        DistributionPlan whose groups hold every input record exactly once.

    Raises:
        EmptyInput, TooManyRecords, NoAgents, NoActiveAgents
    """

    options = dict(options or {})
    started = time.perf_counter()

    if not records:
        raise EmptyInput("No records to distribute")
    max_records = options.get("max_records")
    if max_records and len(records) > max_records:
        raise TooManyRecords(len(records), max_records)
    if not agents:
        raise NoAgents("No agents available for distribution")

    active = [a for a in _as_agents(agents) if a.is_active]
    if not active:
        raise NoActiveAgents("No active agents available")

    inputs = _as_inputs(records)
    resolved = resolve_strategy(strategy)
    groups = STRATEGIES[resolved](inputs, active, options)

    placed = sum(g.assigned_count for g in groups)
    if placed != len(inputs):
        raise DistributionError(f"{resolved.value} placed {placed} of {len(inputs)} records")

    elapsed_ms = (time.perf_counter() - started) * 1000
    summary = build_summary(groups, len(inputs), elapsed_ms)

    logger.info(
        "Distributed %d records across %d agents (%s, %.2f ms, fairness %.3f)",
        len(inputs),
        len(groups),
        resolved.value,
        elapsed_ms,
        summary.fairness_score,
    )
    return DistributionPlan(
        agents=groups,
        summary=summary,
        strategy=resolved,
        distribution_time=elapsed_ms,
    )
