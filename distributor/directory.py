"""In-memory agent directory with atomic counter updates.

Stands in for the agent collection of the backing database.  The only write
path for the cross-distribution totals is :meth:`AgentDirectory.increment`,
the equivalent of an ``$inc`` update: callers pass signed deltas and never
write back a total they computed from a cached copy.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Dict, Iterable, List

from .agent import Agent

logger = logging.getLogger(__name__)


class AgentDirectory:
    def __init__(self, agents: Iterable[Agent] = ()):
        self._agents: Dict[str, Agent] = {}
        self._lock = asyncio.Lock()
        for agent in agents:
            self.add(agent)

    def add(self, agent: Agent) -> None:
        self._agents[agent.id] = replace(agent)

    def get(self, agent_id: str) -> Agent | None:
        """Return a snapshot of the agent (mutating it has no effect)."""

        agent = self._agents.get(agent_id)
        return replace(agent) if agent is not None else None

    def all(self) -> List[Agent]:
        return [replace(a) for a in self._agents.values()]

    def active(self) -> List[Agent]:
        return [a for a in self.all() if a.is_active]

    def set_active(self, agent_id: str, is_active: bool) -> None:
        agent = self._agents.get(agent_id)
        if agent is None:
            raise KeyError(agent_id)
        agent.is_active = is_active

    def remove(self, agent_id: str) -> None:
        self._agents.pop(agent_id, None)

    async def increment(self, agent_id: str, *, assigned: int = 0, completed: int = 0) -> None:
        """Apply signed deltas to the agent's running totals atomically.

        Unknown agents (deleted since the distribution was made) are logged
        and skipped; their historical groups keep their snapshot.
        """

        if not assigned and not completed:
            return
        async with self._lock:
            agent = self._agents.get(agent_id)
            if agent is None:
                logger.warning("Counter update for unknown agent %s skipped", agent_id)
                return
            agent.assigned_tasks += assigned
            agent.completed_tasks += completed
        logger.debug(
            "Agent %s counters: assigned %+d, completed %+d", agent_id, assigned, completed
        )
