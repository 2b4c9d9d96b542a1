"""Agent data model used for record distribution."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping

# Performance assumed for an agent with no history yet.
COLD_START_PERFORMANCE = 0.7
# Assigned-task count at which the experience factor saturates.
EXPERIENCE_CAP = 100
# Pending-task count at which an agent is considered saturated.
PENDING_SATURATION = 50
MIN_WEIGHT = 0.1


@dataclass
class Agent:
    """In-memory representation of an agent, including its running totals."""

    id: str
    name: str
    email: str
    is_active: bool = True
    assigned_tasks: int = 0
    completed_tasks: int = 0

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "Agent":
        """Build an agent from a directory row (camelCase or snake_case keys)."""

        def pick(*keys, default=None):
            for key in keys:
                if key in raw and raw[key] is not None:
                    return raw[key]
            return default

        return cls(
            id=str(pick("id", "_id")),
            name=str(pick("name", default="")),
            email=str(pick("email", default="")),
            is_active=bool(pick("isActive", "is_active", default=True)),
            assigned_tasks=int(pick("assignedTasks", "assigned_tasks", "assignedTaskCount", default=0)),
            completed_tasks=int(pick("completedTasks", "completed_tasks", "completedTaskCount", default=0)),
        )

    # ------------------------------------------------------------------
    # Scoring helpers used by the weighted and priority strategies
    # ------------------------------------------------------------------

    @property
    def pending_tasks(self) -> int:
        return self.assigned_tasks - self.completed_tasks

    @property
    def completion_rate(self) -> float:
        if self.assigned_tasks <= 0:
            return 0.0
        return self.completed_tasks / self.assigned_tasks

    def performance(self) -> float:
        """Return a 0–1 score from completion rate (70%) and experience (30%)."""

        if self.assigned_tasks == 0:
            return COLD_START_PERFORMANCE
        experience = min(1, self.assigned_tasks / EXPERIENCE_CAP)
        return self.completion_rate * 0.7 + experience * 0.3

    def workload_factor(self) -> float:
        """Return availability in [0.1, 1]; a larger backlog means lower availability."""

        pending = self.pending_tasks
        if pending <= 0:
            return 1.0
        if pending >= PENDING_SATURATION:
            return MIN_WEIGHT
        return max(MIN_WEIGHT, 1 - pending / PENDING_SATURATION)

    def weight(self) -> float:
        return max(MIN_WEIGHT, self.performance() * self.workload_factor())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "isActive": self.is_active,
            "assignedTasks": self.assigned_tasks,
            "completedTasks": self.completed_tasks,
        }
