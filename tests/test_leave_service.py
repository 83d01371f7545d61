import asyncio
from datetime import datetime

from sqlalchemy import select

from app.core.config import settings
from app.models.activity import TicketActivity
from app.models.agent import Agent, LeaveHistory
from app.models.task import Task
from app.services import leave_service


async def tickets_by_number(db):
    result = await db.execute(select(Task).execution_options(populate_existing=True))
    return {t.ticket_number: t for t in result.scalars().all()}


async def history_for(db, agent_id):
    result = await db.execute(
        select(LeaveHistory).filter(LeaveHistory.agent_id == agent_id).execution_options(populate_existing=True)
    )
    return result.scalars().all()


async def test_leave_unassigns_open_tickets_only(db, seed):
    result = await leave_service.set_agent_on_leave(db, seed.agent_id)

    assert result.success
    assert result.unassigned_count == 2
    assert result.status == "ON_LEAVE"

    tickets = await tickets_by_number(db)
    for number in ("TKT-0001", "TKT-0002"):
        ticket = tickets[number]
        assert ticket.assignee_id is None
        assert ticket.previous_owner_id == seed.agent_id
        assert ticket.is_claimable is True
        assert ticket.unassigned_reason == settings.LEAVE_UNASSIGNED_REASON

    resolved = tickets["TKT-0003"]
    assert resolved.assignee_id == seed.agent_id
    assert resolved.is_claimable is False
    assert tickets["TKT-0004"].assignee_id == seed.other_id


async def test_leave_writes_one_activity_per_ticket(db, seed):
    await leave_service.set_agent_on_leave(db, seed.agent_id)

    result = await db.execute(select(TicketActivity).order_by(TicketActivity.ticket_number))
    activities = result.scalars().all()
    assert [a.ticket_number for a in activities] == ["TKT-0001", "TKT-0002"]
    for activity in activities:
        assert activity.activity_type == "unassigned"
        assert activity.old_value == "Bob Agent"
        assert activity.new_value is None
        assert activity.performed_by == "system"
        assert activity.performed_by_name == "System"
        assert activity.reason == "Agent marked on leave"


async def test_leave_opens_a_history_record(db, seed):
    leave_from = datetime(2025, 3, 1, 9, 0)
    leave_to = datetime(2025, 3, 8, 18, 0)

    result = await leave_service.set_agent_on_leave(db, seed.agent_id, leave_from, leave_to)

    assert result.leave_from == leave_from
    assert result.leave_to == leave_to
    history = await history_for(db, seed.agent_id)
    assert len(history) == 1
    assert history[0].status == "ON_LEAVE"
    assert history[0].start_date == leave_from
    assert history[0].end_date is None


async def test_leave_then_active_closes_the_record(db, seed):
    await leave_service.set_agent_on_leave(db, seed.agent_id)
    result = await leave_service.set_agent_active(db, seed.agent_id)

    assert result.success
    assert result.status == "ACTIVE"
    assert result.leave_from is None and result.leave_to is None

    history = await history_for(db, seed.agent_id)
    assert len(history) == 1
    assert history[0].status == "RETURNED"
    assert history[0].end_date is not None


async def test_active_does_not_reassign_tickets_back(db, seed):
    await leave_service.set_agent_on_leave(db, seed.agent_id)
    await leave_service.set_agent_active(db, seed.agent_id)

    tickets = await tickets_by_number(db)
    assert tickets["TKT-0001"].assignee_id is None
    assert tickets["TKT-0001"].previous_owner_id == seed.agent_id


async def test_leave_twice_keeps_a_single_open_record(db, seed):
    await leave_service.set_agent_on_leave(db, seed.agent_id)
    second = await leave_service.set_agent_on_leave(db, seed.agent_id, datetime(2025, 6, 1))

    assert second.success
    assert second.unassigned_count == 0
    history = await history_for(db, seed.agent_id)
    open_records = [h for h in history if h.end_date is None]
    assert len(open_records) == 1
    assert open_records[0].start_date == datetime(2025, 6, 1)


async def test_repeated_cycles_append_closed_records(db, seed):
    for _ in range(2):
        await leave_service.set_agent_on_leave(db, seed.agent_id)
        await leave_service.set_agent_active(db, seed.agent_id)

    history = await history_for(db, seed.agent_id)
    assert len(history) == 2
    assert all(h.status == "RETURNED" and h.end_date is not None for h in history)


async def test_from_after_to_is_rejected(db, seed):
    result = await leave_service.set_agent_on_leave(
        db, seed.agent_id, datetime(2025, 3, 10), datetime(2025, 3, 1)
    )

    assert not result.success
    assert result.error == '"from" date must be before "to" date'
    assert await history_for(db, seed.agent_id) == []


async def test_unknown_agent(db, seed):
    for call in (leave_service.set_agent_on_leave, leave_service.set_agent_active, leave_service.get_agent_leave_status):
        result = await call(db, 999)
        assert not result.success
        assert result.error == "Agent not found"


async def test_failure_rolls_back_everything(db, seed, monkeypatch):
    async def broken_insert(db, activities):
        raise RuntimeError("insert failed")

    monkeypatch.setattr(leave_service, "bulk_create_activities", broken_insert)

    result = await leave_service.set_agent_on_leave(db, seed.agent_id)

    assert not result.success
    assert result.error == "insert failed"
    tickets = await tickets_by_number(db)
    assert tickets["TKT-0001"].assignee_id == seed.agent_id
    assert tickets["TKT-0001"].is_claimable is False
    agent = (await db.execute(
        select(Agent).filter(Agent.id == seed.agent_id).execution_options(populate_existing=True)
    )).scalars().one()
    assert agent.status == "ACTIVE"
    assert await history_for(db, seed.agent_id) == []


async def test_get_leave_status(db, seed):
    await leave_service.set_agent_on_leave(db, seed.agent_id, datetime(2025, 3, 1), datetime(2025, 3, 8))

    result = await leave_service.get_agent_leave_status(db, seed.agent_id)

    assert result.success
    assert result.status == "ON_LEAVE"
    assert result.leave_from == datetime(2025, 3, 1)
    assert result.leave_to == datetime(2025, 3, 8)


async def test_leave_history_lists_newest_first(db, seed):
    await leave_service.set_agent_on_leave(db, seed.agent_id, datetime(2025, 1, 1))
    await leave_service.set_agent_active(db, seed.agent_id)
    await leave_service.set_agent_on_leave(db, seed.agent_id, datetime(2025, 5, 1))

    history = await leave_service.get_leave_history(db, seed.agent_id)

    assert [h.start_date for h in history] == [datetime(2025, 5, 1), datetime(2025, 1, 1)]
    assert history[0].end_date is None


async def test_concurrent_leave_requests_release_every_ticket(file_session_factory, file_seed):
    async def go_on_leave():
        async with file_session_factory() as session:
            return await leave_service.set_agent_on_leave(session, file_seed.agent_id)

    results = await asyncio.gather(go_on_leave(), go_on_leave())

    succeeded = [r for r in results if r.success]
    assert succeeded
    assert sum(r.unassigned_count for r in succeeded) == 2

    async with file_session_factory() as session:
        agent = await session.get(Agent, file_seed.agent_id)
        assert agent.status == "ON_LEAVE"

        result = await session.execute(
            select(Task).filter(
                Task.assignee_id == file_seed.agent_id,
                Task.status.not_in(settings.LEAVE_CLOSED_STATUSES),
            )
        )
        assert result.scalars().all() == []

        result = await session.execute(
            select(LeaveHistory).filter(LeaveHistory.agent_id == file_seed.agent_id, LeaveHistory.end_date.is_(None))
        )
        assert len(result.scalars().all()) == 1
