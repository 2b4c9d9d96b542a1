"""Progress analytics for one distribution and aggregate stats across many."""

from __future__ import annotations

from typing import Any, Dict, Sequence

import pandas as pd

from .distribution import Distribution
from .record import RecordStatus

PERFORMANCE_COLUMNS = [
    "agent_id",
    "agent_name",
    "agent_email",
    "assigned",
    "completed",
    "in_progress",
    "pending",
    "failed",
    "completion_rate",
]


def agent_performance_frame(distribution: Distribution) -> pd.DataFrame:
    """One row per agent group with status counts and completion rate (%)."""

    rows = []
    for group in distribution.agents:
        assigned = group.assigned_count
        completed = group.count(RecordStatus.COMPLETED)
        rows.append(
            {
                "agent_id": group.agent_id,
                "agent_name": group.agent_name,
                "agent_email": group.agent_email,
                "assigned": assigned,
                "completed": completed,
                "in_progress": group.count(RecordStatus.IN_PROGRESS),
                "pending": group.count(RecordStatus.PENDING),
                "failed": group.count(RecordStatus.FAILED),
                "completion_rate": completed / assigned * 100 if assigned else 0.0,
            }
        )
    return pd.DataFrame(rows, columns=PERFORMANCE_COLUMNS)


def distribution_analytics(distribution: Distribution) -> Dict[str, Any]:
    df = agent_performance_frame(distribution)
    total = distribution.total_records
    progress = {
        "completed": int(df["completed"].sum()),
        "inProgress": int(df["in_progress"].sum()),
        "pending": int(df["pending"].sum()),
        "failed": int(df["failed"].sum()),
    }
    return {
        "totalTasks": total,
        "agentPerformance": [
            {
                "agentName": row.agent_name,
                "assigned": int(row.assigned),
                "completed": int(row.completed),
                "inProgress": int(row.in_progress),
                "pending": int(row.pending),
                "failed": int(row.failed),
                "completionRate": float(row.completion_rate),
            }
            for row in df.itertuples(index=False)
        ],
        "overallProgress": progress,
        "overallCompletionRate": progress["completed"] / total * 100 if total else 0.0,
    }


def distribution_stats(distributions: Sequence[Distribution]) -> Dict[str, Any]:
    """Totals and per-strategy breakdown over a set of distributions."""

    if not distributions:
        return {
            "totalDistributions": 0,
            "totalRecordsProcessed": 0,
            "completedDistributions": 0,
            "failedDistributions": 0,
            "avgRecordsPerDistribution": 0,
            "avgDistributionTime": 0,
            "strategyBreakdown": [],
        }

    df = pd.DataFrame(
        [
            {
                "strategy": d.strategy.value,
                "status": d.status.value,
                "total_records": d.total_records,
                "distribution_time": d.summary.distribution_time,
            }
            for d in distributions
        ]
    )
    breakdown = (
        df.groupby("strategy", sort=True)
        .agg(
            count=("total_records", "size"),
            avgRecords=("total_records", "mean"),
            avgTime=("distribution_time", "mean"),
        )
        .reset_index()
    )
    return {
        "totalDistributions": int(len(df)),
        "totalRecordsProcessed": int(df["total_records"].sum()),
        "completedDistributions": int((df["status"] == "completed").sum()),
        "failedDistributions": int((df["status"] == "failed").sum()),
        "avgRecordsPerDistribution": float(df["total_records"].mean()),
        "avgDistributionTime": float(df["distribution_time"].mean()),
        "strategyBreakdown": breakdown.to_dict(orient="records"),
    }
