from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from distributor.agent import Agent
from distributor.directory import AgentDirectory
from distributor.distribution import DistributionStatus, Strategy
from distributor.engine import distribute
from distributor.errors import (
    ConcurrentModification,
    DistributionNotFound,
    InvalidRecord,
    InvalidStatusValue,
    NotAssigned,
    RecordNotFound,
)
from distributor.record import RecordStatus
from distributor.store import DistributionStore

from tests.utils import make_inputs


async def _create(store, agents, count=10, strategy="equal", file_name="contacts.csv"):
    plan = distribute(make_inputs(count), agents, strategy)
    return await store.create(plan, file_name=file_name, uploaded_by="admin", file_size=123)


def _first_record_id(dist, agent_id):
    return dist.group_for(agent_id).records[0].id


@pytest.mark.asyncio
async def test_create_persists_whole_plan_and_counts_assignments(store, agents, directory):
    dist = await _create(store, agents)

    assert dist.status is DistributionStatus.COMPLETED
    assert dist.total_records == 10
    assert dist.strategy is Strategy.EQUAL
    assert [g.assigned_count for g in dist.agents] == [4, 3, 3]
    assert [directory.get(a.id).assigned_tasks for a in agents] == [4, 3, 3]

    stored = await store.get(dist.id)
    assert stored.to_dict() == dist.to_dict()


@pytest.mark.asyncio
async def test_completed_counter_round_trip():
    agent = Agent(id="a", name="A", email="a@example.com", assigned_tasks=5, completed_tasks=2)
    directory = AgentDirectory([agent])
    store = DistributionStore(directory)
    dist = await _create(store, [agent], count=1)
    record_id = _first_record_id(dist, "a")

    record = await store.update_record_status(dist.id, "a", record_id, "completed")
    assert record.status is RecordStatus.COMPLETED
    assert record.completed_at is not None
    assert directory.get("a").completed_tasks == 3

    # completed -> completed is not a boundary crossing
    await store.update_record_status(dist.id, "a", record_id, "completed")
    assert directory.get("a").completed_tasks == 3

    record = await store.update_record_status(dist.id, "a", record_id, "failed")
    assert record.completed_at is None
    assert directory.get("a").completed_tasks == 2


@pytest.mark.asyncio
async def test_update_sets_notes_and_bumps_version(store, agents):
    dist = await _create(store, agents)
    record_id = _first_record_id(dist, "a2")

    record = await store.update_record_status(dist.id, "a2", record_id, "in-progress", "left voicemail")

    assert record.notes == "left voicemail"
    assert record.updated_at is not None
    assert (await store.get(dist.id)).version == dist.version + 1


@pytest.mark.asyncio
async def test_agent_without_group_is_not_assigned(store, agents, directory):
    dist = await _create(store, agents[:2])
    with pytest.raises(NotAssigned):
        await store.update_record_status(dist.id, "a3", _first_record_id(dist, "a1"), "completed")


@pytest.mark.asyncio
async def test_agent_cannot_touch_another_agents_record(store, agents, directory):
    dist = await _create(store, agents)
    foreign = _first_record_id(dist, "a1")

    with pytest.raises(RecordNotFound):
        await store.update_record_status(dist.id, "a2", foreign, "completed")

    stored = await store.get(dist.id)
    assert stored.group_for("a1").records[0].status is RecordStatus.PENDING
    assert directory.get("a1").completed_tasks == 0
    assert directory.get("a2").completed_tasks == 0


@pytest.mark.asyncio
async def test_invalid_input_rejected_without_side_effects(store, agents, directory):
    dist = await _create(store, agents)
    record_id = _first_record_id(dist, "a1")

    with pytest.raises(InvalidStatusValue):
        await store.update_record_status(dist.id, "a1", record_id, "cancelled")
    with pytest.raises(InvalidRecord):
        await store.update_record_status(dist.id, "a1", record_id, "completed", "x" * 501)

    stored = await store.get(dist.id)
    assert stored.version == dist.version
    assert stored.group_for("a1").records[0].status is RecordStatus.PENDING
    assert directory.get("a1").completed_tasks == 0


@pytest.mark.asyncio
async def test_unknown_distribution(store):
    with pytest.raises(DistributionNotFound):
        await store.update_record_status("missing", "a1", "r", "completed")
    with pytest.raises(DistributionNotFound):
        await store.delete("missing")
    with pytest.raises(DistributionNotFound):
        await store.get("missing")


@pytest.mark.asyncio
async def test_stale_version_is_rejected(store, agents, directory):
    dist = await _create(store, agents)
    record_id = _first_record_id(dist, "a1")
    await store.update_record_status(dist.id, "a1", record_id, "in-progress", expected_version=dist.version)

    with pytest.raises(ConcurrentModification):
        await store.update_record_status(dist.id, "a1", record_id, "completed", expected_version=dist.version)
    with pytest.raises(ConcurrentModification):
        await store.delete(dist.id, expected_version=dist.version)

    stored = await store.get(dist.id)
    assert stored.group_for("a1").records[0].status is RecordStatus.IN_PROGRESS
    assert directory.get("a1").completed_tasks == 0


@pytest.mark.asyncio
async def test_concurrent_updates_all_land(store, agents, directory):
    dist = await _create(store, agents)
    group = dist.group_for("a1")

    await asyncio.gather(
        *(store.update_record_status(dist.id, "a1", r.id, "completed") for r in group.records)
    )

    stored = await store.get(dist.id)
    assert stored.group_for("a1").count(RecordStatus.COMPLETED) == 4
    assert directory.get("a1").completed_tasks == 4


@pytest.mark.asyncio
async def test_delete_reverses_agent_totals(store, agents, directory):
    dist = await _create(store, agents)
    group = dist.group_for("a1")
    assert group.assigned_count == 4
    for record in group.records[:2]:
        await store.update_record_status(dist.id, "a1", record.id, "completed")
    assert directory.get("a1").assigned_tasks == 4
    assert directory.get("a1").completed_tasks == 2

    await store.delete(dist.id)

    assert directory.get("a1").assigned_tasks == 0
    assert directory.get("a1").completed_tasks == 0
    assert await store.list_by_agent("a1") == []
    with pytest.raises(DistributionNotFound):
        await store.get(dist.id)


@pytest.mark.asyncio
async def test_delete_and_update_are_mutually_exclusive(store, agents, directory):
    dist = await _create(store, agents)
    record_id = _first_record_id(dist, "a1")

    results = await asyncio.gather(
        store.delete(dist.id),
        store.update_record_status(dist.id, "a1", record_id, "completed"),
        return_exceptions=True,
    )

    assert results[0] is None
    assert isinstance(results[1], DistributionNotFound)
    assert directory.get("a1").assigned_tasks == 0
    assert directory.get("a1").completed_tasks == 0


@pytest.mark.asyncio
async def test_redistribute_failed_records(store, agents, directory):
    dist = await _create(store, agents, count=6)
    a1 = dist.group_for("a1").records
    await store.update_record_status(dist.id, "a1", a1[0].id, "failed")
    await store.update_record_status(dist.id, "a1", a1[1].id, "completed")

    updated = await store.redistribute_failed(dist.id)

    # a1 has no live records left, so the copy lands there
    group = updated.group_for("a1")
    assert group.assigned_count == 3
    assert group.records[-1].redistributed is True
    assert group.records[-1].status is RecordStatus.PENDING
    assert directory.get("a1").assigned_tasks == 3
    assert updated.total_records == 6
    assert sum(1 for r in updated.all_records() if not r.redistributed) == 6


@pytest.mark.asyncio
async def test_list_all_filters_sorts_and_paginates(store, agents):
    first = await _create(store, agents, file_name="north.csv")
    second = await _create(store, agents, strategy="priority", file_name="south.csv")
    await _create(store, agents[:1], file_name="east.csv")

    page = await store.list_all(limit=2)
    assert page.total == 3
    assert page.pagination["totalPages"] == 2
    assert page.pagination["hasNext"] is True
    assert page.items[0].created_at >= page.items[1].created_at

    assert [d.id for d in (await store.list_all(strategy="priority")).items] == [second.id]
    assert [d.file_name for d in (await store.list_all(search="NORTH")).items] == ["north.csv"]
    assert (await store.list_all(agent_id="a2")).total == 2

    by_name = await store.list_all(sort_by="fileName", sort_order="asc")
    assert [d.file_name for d in by_name.items] == ["east.csv", "north.csv", "south.csv"]

    later = await store.list_all(date_from=first.created_at + timedelta(days=1))
    assert later.total == 0


@pytest.mark.asyncio
async def test_records_for_agent(store, agents):
    first = await _create(store, agents)
    second = await _create(store, agents, count=3)
    record_id = _first_record_id(first, "a1")
    await store.update_record_status(first.id, "a1", record_id, "completed")

    everything = await store.records_for_agent("a1")
    assert everything.summary == {"total": 5, "pending": 4, "inProgress": 0, "completed": 1, "failed": 0}
    assert {r["distributionId"] for r in everything.records} == {first.id, second.id}
    assert everything.records[0]["distributionName"] == "contacts.csv"

    only_first = await store.records_for_agent("a1", first.id)
    assert len(only_first.records) == 4

    with pytest.raises(NotAssigned):
        await store.records_for_agent("ghost", first.id)


@pytest.mark.asyncio
async def test_reads_return_copies(store, agents):
    dist = await _create(store, agents)
    snapshot = await store.get(dist.id)
    snapshot.group_for("a1").records.clear()

    assert (await store.get(dist.id)).group_for("a1").assigned_count == 4


@pytest.mark.asyncio
async def test_deactivated_and_removed_agents(store, agents, directory):
    directory.set_active("a3", False)
    dist = await _create(store, directory.active())
    assert [g.agent_id for g in dist.agents] == ["a1", "a2"]

    # a removed agent's group keeps its snapshot; counter updates are skipped
    directory.remove("a2")
    await store.delete(dist.id)
    assert directory.get("a2") is None
    assert directory.get("a1").assigned_tasks == 0


@pytest.mark.asyncio
async def test_failed_record_is_redistributed_only_once(store, agents, directory):
    dist = await _create(store, agents, count=6)
    failed_id = _first_record_id(dist, "a1")
    await store.update_record_status(dist.id, "a1", failed_id, "failed")

    await store.redistribute_failed(dist.id)
    again = await store.redistribute_failed(dist.id)

    copies = [r for r in again.all_records() if r.redistributed]
    assert len(copies) == 1
    assert again.group_for("a1").find(failed_id).redistributed_to == copies[0].id
    assert [directory.get(a.id).assigned_tasks for a in agents] == [3, 2, 2]


@pytest.mark.asyncio
async def test_empty_notes_clear_existing_notes(store, agents):
    dist = await _create(store, agents)
    record_id = _first_record_id(dist, "a1")
    await store.update_record_status(dist.id, "a1", record_id, "in-progress", "call back at 5")

    record = await store.update_record_status(dist.id, "a1", record_id, "in-progress", "")
    assert record.notes == ""

    # omitting notes leaves them as they are
    await store.update_record_status(dist.id, "a1", record_id, "in-progress", "left voicemail")
    record = await store.update_record_status(dist.id, "a1", record_id, "completed")
    assert record.notes == "left voicemail"
