"""Distribution aggregate: header, per-agent groups and derived summary."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List

from .agent import Agent
from .record import Record, RecordStatus, utcnow


class Strategy(str, Enum):
    EQUAL = "equal"
    WEIGHTED = "weighted"
    PRIORITY = "priority"


class DistributionStatus(str, Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class AgentAssignmentGroup:
    """One agent's share of one distribution.

    ``agent_name`` and ``agent_email`` are copied when the group is built so
    that later profile edits do not rewrite history.
    """

    agent_id: str
    agent_name: str
    agent_email: str
    records: List[Record] = field(default_factory=list)
    weight: float | None = None

    @classmethod
    def for_agent(cls, agent: Agent, *, weight: float | None = None) -> "AgentAssignmentGroup":
        return cls(
            agent_id=agent.id,
            agent_name=str(agent.name),
            agent_email=str(agent.email),
            weight=weight,
        )

    @property
    def assigned_count(self) -> int:
        return len(self.records)

    def count(self, status: RecordStatus) -> int:
        return sum(1 for r in self.records if r.status is status)

    @property
    def live_load(self) -> int:
        return sum(1 for r in self.records if r.status.is_live)

    def find(self, record_id: str) -> Record | None:
        return next((r for r in self.records if r.id == record_id), None)

    def to_dict(self) -> Dict[str, Any]:
        out = {
            "agentId": self.agent_id,
            "agentName": self.agent_name,
            "agentEmail": self.agent_email,
            "assignedCount": self.assigned_count,
            "records": [r.to_dict() for r in self.records],
        }
        if self.weight is not None:
            out["weight"] = self.weight
        return out


@dataclass
class Summary:
    total_agents_assigned: int
    total_records_distributed: int
    average_records_per_agent: float
    min_records_assigned: int
    max_records_assigned: int
    distribution_variance: int
    fairness_score: float
    distribution_time: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalAgentsAssigned": self.total_agents_assigned,
            "totalRecordsDistributed": self.total_records_distributed,
            "averageRecordsPerAgent": self.average_records_per_agent,
            "minRecordsAssigned": self.min_records_assigned,
            "maxRecordsAssigned": self.max_records_assigned,
            "distributionVariance": self.distribution_variance,
            "fairnessScore": self.fairness_score,
            "distributionTime": self.distribution_time,
        }


@dataclass
class DistributionPlan:
    """Engine output, not yet persisted."""

    agents: List[AgentAssignmentGroup]
    summary: Summary
    strategy: Strategy
    distribution_time: float

    @property
    def total_records(self) -> int:
        return sum(g.assigned_count for g in self.agents)


@dataclass
class Distribution:
    """One upload event and its full assignment plan."""

    file_name: str
    original_file_name: str
    file_size: int
    total_records: int
    uploaded_by: str
    strategy: Strategy
    agents: List[AgentAssignmentGroup]
    summary: Summary
    status: DistributionStatus = DistributionStatus.PROCESSING
    metadata: Dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    version: int = 0
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def group_for(self, agent_id: str) -> AgentAssignmentGroup | None:
        return next((g for g in self.agents if g.agent_id == agent_id), None)

    def has_agent(self, agent_id: str) -> bool:
        return self.group_for(agent_id) is not None

    def all_records(self) -> List[Record]:
        return [r for g in self.agents for r in g.records]

    def count(self, status: RecordStatus) -> int:
        return sum(g.count(status) for g in self.agents)

    @property
    def pending_records(self) -> int:
        return self.count(RecordStatus.PENDING)

    @property
    def in_progress_records(self) -> int:
        return self.count(RecordStatus.IN_PROGRESS)

    @property
    def completion_percentage(self) -> int:
        if self.total_records == 0:
            return 0
        return round(self.count(RecordStatus.COMPLETED) / self.total_records * 100)

    def touch(self) -> None:
        self.version += 1
        self.updated_at = utcnow()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "fileName": self.file_name,
            "originalFileName": self.original_file_name,
            "fileSize": self.file_size,
            "totalRecords": self.total_records,
            "uploadedBy": self.uploaded_by,
            "distributionStrategy": self.strategy.value,
            "status": self.status.value,
            "agents": [g.to_dict() for g in self.agents],
            "summary": self.summary.to_dict(),
            "metadata": dict(self.metadata),
            "completionPercentage": self.completion_percentage,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
            "version": self.version,
        }
