from __future__ import annotations

from typing import List

import pytest

from distributor.agent import Agent
from distributor.directory import AgentDirectory
from distributor.store import DistributionStore


@pytest.fixture
def agents() -> List[Agent]:
    return [
        Agent(id="a1", name="Ana", email="ana@example.com"),
        Agent(id="a2", name="Ben", email="ben@example.com"),
        Agent(id="a3", name="Cleo", email="cleo@example.com"),
    ]


@pytest.fixture
def directory(agents) -> AgentDirectory:
    return AgentDirectory(agents)


@pytest.fixture
def store(directory) -> DistributionStore:
    return DistributionStore(directory)
