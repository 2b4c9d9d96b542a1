"""Error taxonomy shared by the engine, the store and the redistribution policy.

The engine raises these for its callers to translate into user-facing
responses; nothing in this package catches them on the way out.
"""

from __future__ import annotations


class DistributionError(Exception):
    """Base class for every failure raised by the distributor package."""


class EmptyInput(DistributionError):
    """No records were supplied to distribute."""


class TooManyRecords(DistributionError):
    """Input exceeds the configured ``max_records`` bound."""

    def __init__(self, count: int, limit: int):
        super().__init__(f"{count} records exceeds the limit of {limit}")
        self.count = count
        self.limit = limit


class NoAgents(DistributionError):
    """No agents were supplied."""


class NoActiveAgents(NoAgents):
    """Agents were supplied but none of them is active."""


class InvalidRecord(DistributionError, ValueError):
    """A record field failed validation (phone format, notes length, …)."""


class InvalidStatusValue(DistributionError, ValueError):
    def __init__(self, value):
        super().__init__(f"Invalid record status: {value!r}")
        self.value = value


class DistributionNotFound(DistributionError):
    def __init__(self, distribution_id: str):
        super().__init__(f"Distribution not found: {distribution_id}")
        self.distribution_id = distribution_id


class NotAssigned(DistributionError):
    """The calling agent owns no group in the distribution."""

    def __init__(self, distribution_id: str, agent_id: str):
        super().__init__(f"Agent {agent_id} is not assigned to distribution {distribution_id}")
        self.distribution_id = distribution_id
        self.agent_id = agent_id


class RecordNotFound(DistributionError):
    """The record id is absent from the calling agent's own group."""

    def __init__(self, record_id: str, agent_id: str):
        super().__init__(f"Record {record_id} not found for agent {agent_id}")
        self.record_id = record_id
        self.agent_id = agent_id


class ConcurrentModification(DistributionError):
    """Optimistic version check failed; reload and retry."""

    def __init__(self, distribution_id: str, expected: int, actual: int):
        super().__init__(
            f"Distribution {distribution_id} changed (expected version {expected}, found {actual})"
        )
        self.distribution_id = distribution_id
        self.expected = expected
        self.actual = actual
