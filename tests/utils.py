"""Builders shared by the distributor tests."""
from __future__ import annotations

from typing import List, Sequence

from distributor.distribution import (
    AgentAssignmentGroup,
    Distribution,
    Strategy,
    Summary,
)
from distributor.record import Record, RecordInput, RecordStatus


def make_inputs(count: int, notes: str = "") -> List[RecordInput]:
    return [
        RecordInput(first_name=f"Contact{i}", phone=f"+1555000{i:04d}", notes=notes)
        for i in range(count)
    ]


def make_group(agent_id: str, statuses: Sequence[RecordStatus]) -> AgentAssignmentGroup:
    group = AgentAssignmentGroup(
        agent_id=agent_id,
        agent_name=agent_id.upper(),
        agent_email=f"{agent_id}@example.com",
    )
    for i, status in enumerate(statuses):
        group.records.append(
            Record(first_name=f"{agent_id}-{i}", phone=f"+1555100{i:04d}", status=status)
        )
    return group


def make_distribution(groups: List[AgentAssignmentGroup]) -> Distribution:
    total = sum(g.assigned_count for g in groups)
    return Distribution(
        file_name="contacts.csv",
        original_file_name="contacts.csv",
        file_size=0,
        total_records=total,
        uploaded_by="admin",
        strategy=Strategy.EQUAL,
        agents=groups,
        summary=Summary(
            total_agents_assigned=len(groups),
            total_records_distributed=total,
            average_records_per_agent=0,
            min_records_assigned=0,
            max_records_assigned=0,
            distribution_variance=0,
            fairness_score=1.0,
        ),
    )


def phones(group: AgentAssignmentGroup) -> List[str]:
    return [r.phone for r in group.records]
