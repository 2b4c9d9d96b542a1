"""Async assignment/record store.

An in-memory document store for distributions.  Each distribution is one
document: it is inserted whole, mutated one record at a time under a
per-document lock, and deleted whole.  Agent running totals live in the
:class:`~distributor.directory.AgentDirectory` and are only touched through
its atomic ``increment``.
"""

from __future__ import annotations

import asyncio
import copy
import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List

from .directory import AgentDirectory
from .distribution import Distribution, DistributionPlan, DistributionStatus, Strategy
from .errors import (
    ConcurrentModification,
    DistributionNotFound,
    NotAssigned,
    RecordNotFound,
)
from .record import Record, RecordStatus, completed_delta, validate_notes
from .redistribute import redistribute

logger = logging.getLogger(__name__)

SORTABLE_FIELDS = {
    "createdAt": "created_at",
    "created_at": "created_at",
    "fileName": "file_name",
    "file_name": "file_name",
    "totalRecords": "total_records",
    "total_records": "total_records",
    "status": "status",
}


@dataclass
class Page:
    items: List[Distribution]
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    @property
    def pagination(self) -> Dict[str, Any]:
        return {
            "currentPage": self.page,
            "totalPages": self.total_pages,
            "totalDistributions": self.total,
            "hasNext": self.page < self.total_pages,
            "hasPrev": self.page > 1,
        }


@dataclass
class AgentRecords:
    """All records one agent holds, flattened across distributions."""

    records: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def summary(self) -> Dict[str, int]:
        statuses = [r["status"] for r in self.records]
        return {
            "total": len(statuses),
            "pending": statuses.count(RecordStatus.PENDING.value),
            "inProgress": statuses.count(RecordStatus.IN_PROGRESS.value),
            "completed": statuses.count(RecordStatus.COMPLETED.value),
            "failed": statuses.count(RecordStatus.FAILED.value),
        }


class DistributionStore:
    def __init__(self, directory: AgentDirectory):
        self.directory = directory
        self._docs: Dict[str, Distribution] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _lock_for(self, distribution_id: str) -> asyncio.Lock:
        lock = self._locks.get(distribution_id)
        if lock is None:
            lock = self._locks[distribution_id] = asyncio.Lock()
        return lock

    def _load(self, distribution_id: str, expected_version: int | None) -> Distribution:
        doc = self._docs.get(distribution_id)
        if doc is None:
            raise DistributionNotFound(distribution_id)
        if expected_version is not None and doc.version != expected_version:
            raise ConcurrentModification(distribution_id, expected_version, doc.version)
        return doc

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create(
        self,
        plan: DistributionPlan,
        *,
        file_name: str,
        uploaded_by: str,
        original_file_name: str | None = None,
        file_size: int = 0,
        metadata: Dict[str, Any] | None = None,
    ) -> Distribution:
        """Persist *plan* as a new distribution and bump agents' assigned totals.

        The document is fully built before it becomes visible.
        """

        doc = Distribution(
            file_name=file_name,
            original_file_name=original_file_name or file_name,
            file_size=file_size,
            total_records=plan.total_records,
            uploaded_by=uploaded_by,
            strategy=plan.strategy,
            agents=copy.deepcopy(plan.agents),
            summary=copy.deepcopy(plan.summary),
            status=DistributionStatus.COMPLETED,
            metadata=dict(metadata or {}),
        )
        self._docs[doc.id] = doc

        for group in doc.agents:
            await self.directory.increment(group.agent_id, assigned=group.assigned_count)

        logger.info(
            "Distribution created: %s (%d records, %d agents, %s)",
            doc.id,
            doc.total_records,
            len(doc.agents),
            doc.strategy.value,
        )
        return copy.deepcopy(doc)

    async def update_record_status(
        self,
        distribution_id: str,
        agent_id: str,
        record_id: str,
        new_status: RecordStatus | str,
        notes: str | None = None,
        *,
        expected_version: int | None = None,
    ) -> Record:
        """Change one record's status on behalf of the agent that owns it.

        Crossing the ``completed`` boundary adjusts the agent's completed total
        by exactly one.  Nothing is written if any check or the counter update
        fails.
        """

        status = RecordStatus.parse(new_status)
        if notes is not None:
            notes = validate_notes(notes)

        async with self._lock_for(distribution_id):
            doc = self._load(distribution_id, expected_version)
            group = doc.group_for(agent_id)
            if group is None:
                raise NotAssigned(distribution_id, agent_id)
            record = group.find(record_id)
            if record is None:
                raise RecordNotFound(record_id, agent_id)

            delta = completed_delta(record.status, status)
            await self.directory.increment(agent_id, completed=delta)

            old = record.status
            record.transition(status, notes)
            doc.touch()

        logger.info(
            "Record %s in %s: %s -> %s (agent %s)",
            record_id,
            distribution_id,
            old.value,
            status.value,
            agent_id,
        )
        return copy.deepcopy(record)

    async def delete(self, distribution_id: str, *, expected_version: int | None = None) -> None:
        """Remove a distribution and take its records out of agents' totals."""

        async with self._lock_for(distribution_id):
            doc = self._load(distribution_id, expected_version)
            for group in doc.agents:
                await self.directory.increment(
                    group.agent_id,
                    assigned=-group.assigned_count,
                    completed=-group.count(RecordStatus.COMPLETED),
                )
            del self._docs[distribution_id]
        self._locks.pop(distribution_id, None)
        logger.info("Distribution deleted: %s", distribution_id)

    async def redistribute_failed(
        self,
        distribution_id: str,
        *,
        expected_version: int | None = None,
    ) -> Distribution:
        """Hand copies of every failed record to the least-loaded agents."""

        async with self._lock_for(distribution_id):
            doc = self._load(distribution_id, expected_version)
            failed = [
                r for r in doc.all_records()
                if r.status is RecordStatus.FAILED and r.redistributed_to is None
            ]
            if not failed:
                return copy.deepcopy(doc)

            before = {g.agent_id: g.assigned_count for g in doc.agents}
            updated = redistribute(failed, doc)
            for group in updated.agents:
                added = group.assigned_count - before.get(group.agent_id, 0)
                await self.directory.increment(group.agent_id, assigned=added)

            updated.touch()
            self._docs[distribution_id] = updated
        return copy.deepcopy(updated)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(self, distribution_id: str) -> Distribution:
        return copy.deepcopy(self._load(distribution_id, None))

    async def list_by_agent(self, agent_id: str) -> List[Distribution]:
        return [copy.deepcopy(d) for d in self._docs.values() if d.has_agent(agent_id)]

    async def records_for_agent(self, agent_id: str, distribution_id: str | None = None) -> AgentRecords:
        """Flatten the agent's records, tagging each with its distribution."""

        if distribution_id is not None:
            doc = self._load(distribution_id, None)
            if not doc.has_agent(agent_id):
                raise NotAssigned(distribution_id, agent_id)
            docs = [doc]
        else:
            docs = [d for d in self._docs.values() if d.has_agent(agent_id)]

        out = AgentRecords()
        for doc in docs:
            group = doc.group_for(agent_id)
            for record in group.records:
                row = record.to_dict()
                row.update(
                    distributionId=doc.id,
                    distributionName=doc.file_name,
                    uploadedBy=doc.uploaded_by,
                )
                out.records.append(row)
        return out

    async def list_all(
        self,
        *,
        agent_id: str | None = None,
        search: str | None = None,
        status: DistributionStatus | str | None = None,
        strategy: Strategy | str | None = None,
        date_from: datetime | None = None,
        date_to: datetime | None = None,
        sort_by: str = "createdAt",
        sort_order: str = "desc",
        page: int = 1,
        limit: int = 10,
    ) -> Page:
        """Filter, sort and paginate distributions."""

        docs = list(self._docs.values())
        if agent_id is not None:
            docs = [d for d in docs if d.has_agent(agent_id)]
        if search:
            needle = search.lower()
            docs = [
                d for d in docs
                if needle in d.file_name.lower() or needle in d.original_file_name.lower()
            ]
        if status:
            wanted = DistributionStatus(status)
            docs = [d for d in docs if d.status is wanted]
        if strategy:
            wanted_strategy = Strategy(strategy)
            docs = [d for d in docs if d.strategy is wanted_strategy]
        if date_from is not None:
            docs = [d for d in docs if d.created_at >= date_from]
        if date_to is not None:
            docs = [d for d in docs if d.created_at <= date_to]

        attr = SORTABLE_FIELDS.get(sort_by, "created_at")

        def sort_key(doc: Distribution):
            value = getattr(doc, attr)
            return value.value if attr == "status" else value

        docs.sort(key=sort_key, reverse=sort_order != "asc")

        page = max(1, int(page))
        limit = max(1, int(limit))
        start = (page - 1) * limit
        items = [copy.deepcopy(d) for d in docs[start:start + limit]]
        return Page(items=items, page=page, limit=limit, total=len(docs))

    async def all(self) -> List[Distribution]:
        return [copy.deepcopy(d) for d in self._docs.values()]
