"""Record distribution strategies.

Rules implemented
------------------
1. ``equal`` – with ``n = len(records) // len(agents)`` and
   ``r = len(records) % len(agents)`` the first ``r`` agents (input order)
   receive ``n + 1`` records and the rest ``n``.  Records are consumed as
   contiguous slices from the front of the list, so the output depends only
   on the order of the inputs.

2. ``weighted`` – each agent gets a weight of
   ``max(0.1, performance * workload_factor)`` (see :mod:`.agent`).  Agents
   are ranked by weight (high → low) and each takes
   ``round(total * weight / total_weight)`` records from the front of the
   list.  Whatever rounding leaves over goes to the top-ranked agent, so that
   agent may end up above its computed share.

3. ``priority`` – records are ordered by complexity (length of the notes,
   long → short) and agents by performance (high → low).  Records are then
   dealt round-robin starting with the best performer; every agent ends up
   with the same count ±1, only the complex records come first.

All sorts are stable: ties keep the caller's order.  Every strategy places
every input record in exactly one group.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime
from itertools import cycle
from typing import Any, Callable, Dict, List, Sequence

from .agent import Agent
from .distribution import AgentAssignmentGroup, Strategy
from .record import Record, RecordInput, utcnow

logger = logging.getLogger(__name__)

StrategyFn = Callable[[Sequence[RecordInput], Sequence[Agent], Dict[str, Any]], List[AgentAssignmentGroup]]


def _round_half_up(value: float) -> int:
    """Round .5 away from zero (Python's round() is banker's rounding)."""

    return int(math.floor(value + 0.5))


def _assigned(records: Sequence[RecordInput], now: datetime) -> List[Record]:
    return [Record.assign(r, assigned_at=now) for r in records]


def _now(options: Dict[str, Any]) -> datetime:
    return options.get("now") or utcnow()


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------


def equal_distribution(
    records: Sequence[RecordInput],
    agents: Sequence[Agent],
    options: Dict[str, Any],
) -> List[AgentAssignmentGroup]:
    """Contiguous slice walk: every agent gets ``n`` or ``n + 1`` records."""

    now = _now(options)
    per_agent, remainder = divmod(len(records), len(agents))

    groups: List[AgentAssignmentGroup] = []
    cursor = 0
    for i, agent in enumerate(agents):
        count = per_agent + (1 if i < remainder else 0)
        group = AgentAssignmentGroup.for_agent(agent)
        group.records = _assigned(records[cursor:cursor + count], now)
        groups.append(group)
        cursor += count
    return groups


def agent_weights(agents: Sequence[Agent]) -> List[tuple[Agent, float]]:
    """Return ``(agent, weight)`` pairs ranked by weight, highest first."""

    weighted = [(agent, agent.weight()) for agent in agents]
    weighted.sort(key=lambda pair: pair[1], reverse=True)
    return weighted


def weighted_distribution(
    records: Sequence[RecordInput],
    agents: Sequence[Agent],
    options: Dict[str, Any],
) -> List[AgentAssignmentGroup]:
    """Proportional shares by weight; rounding residue to the top agent."""

    now = _now(options)
    ranked = agent_weights(agents)
    total_weight = sum(w for _, w in ranked)
    total = len(records)

    groups: List[AgentAssignmentGroup] = []
    cursor = 0
    for agent, weight in ranked:
        share = _round_half_up(total * weight / total_weight)
        # Rounding up can ask for more than is left; take what remains.
        chunk = records[cursor:cursor + share]
        group = AgentAssignmentGroup.for_agent(agent, weight=weight)
        group.records = _assigned(chunk, now)
        groups.append(group)
        cursor += len(chunk)

    if cursor < total:
        leftover = records[cursor:]
        groups[0].records.extend(_assigned(leftover, now))
        logger.debug(
            "Weighted residue: %d record(s) appended to top agent %s",
            len(leftover),
            groups[0].agent_id,
        )
    return groups


def priority_distribution(
    records: Sequence[RecordInput],
    agents: Sequence[Agent],
    options: Dict[str, Any],
) -> List[AgentAssignmentGroup]:
    """Complex records first, dealt round-robin from the best performer."""

    now = _now(options)
    ordered_records = sorted(records, key=lambda r: r.complexity, reverse=True)
    ordered_agents = sorted(agents, key=lambda a: a.performance(), reverse=True)

    groups = [AgentAssignmentGroup.for_agent(a) for a in ordered_agents]
    group_cycle = cycle(groups)
    for source in ordered_records:
        next(group_cycle).records.append(Record.assign(source, assigned_at=now))
    return groups


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

STRATEGIES: Dict[Strategy, StrategyFn] = {
    Strategy.EQUAL: equal_distribution,
    Strategy.WEIGHTED: weighted_distribution,
    Strategy.PRIORITY: priority_distribution,
}


def resolve_strategy(name: Strategy | str | None) -> Strategy:
    """Map a strategy name to a Strategy; unknown names fall back to equal."""

    if isinstance(name, Strategy):
        return name
    if name is None or str(name).strip() == "":
        return Strategy.EQUAL
    try:
        return Strategy(str(name).strip().lower())
    except ValueError:
        logger.warning("Unknown distribution strategy '%s'; falling back to 'equal'", name)
        return Strategy.EQUAL
