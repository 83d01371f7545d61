"""
Shared fixtures: an in-memory SQLite database per test, a session bound to
it, and a seeded workspace with agents and tickets.
"""
from types import SimpleNamespace

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from app.database.base import Base
from app.database.session import build_sessionmaker
from app.models.agent import Agent
from app.models.task import Task
from app.models.workspace import Workspace


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return build_sessionmaker(engine)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


async def seed_helpdesk(db):
    """A workspace with an admin, two agents and four tickets."""
    workspace = Workspace(subdomain="acme")
    db.add(workspace)
    await db.flush()

    admin = Agent(name="Alice Admin", email="alice@acme.test", role="admin", workspace_id=workspace.id)
    agent = Agent(name="Bob Agent", email="bob@acme.test", role="agent", workspace_id=workspace.id)
    other = Agent(name="Carol Agent", email="carol@acme.test", role="agent", workspace_id=workspace.id)
    db.add_all([admin, agent, other])
    await db.flush()

    tickets = [
        Task(ticket_number="TKT-0001", title="Printer on fire", status="open", priority="high",
             assignee_id=agent.id, workspace_id=workspace.id),
        Task(ticket_number="TKT-0002", title="VPN drops", status="pending", priority="medium",
             assignee_id=agent.id, workspace_id=workspace.id),
        Task(ticket_number="TKT-0003", title="Password reset", status="resolved", priority="low",
             assignee_id=agent.id, workspace_id=workspace.id),
        Task(ticket_number="TKT-0004", title="New laptop", status="open", priority="low",
             assignee_id=other.id, workspace_id=workspace.id),
    ]
    db.add_all(tickets)
    await db.commit()

    return SimpleNamespace(
        workspace_id=workspace.id,
        admin_id=admin.id,
        agent_id=agent.id,
        other_id=other.id,
        ticket_ids=[t.id for t in tickets],
    )


@pytest_asyncio.fixture
async def seed(db):
    return await seed_helpdesk(db)


@pytest_asyncio.fixture
async def file_session_factory(tmp_path):
    """Sessions on a file database, one connection each, for tests that need real concurrency."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'helpdesk.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield build_sessionmaker(engine)
    await engine.dispose()


@pytest_asyncio.fixture
async def file_seed(file_session_factory):
    async with file_session_factory() as session:
        return await seed_helpdesk(session)


@pytest.fixture
def capture_logger():
    """A stand-in logger that records (level, message) pairs."""
    class CaptureLogger:
        def __init__(self):
            self.records = []

        def _log(self, level, msg, *args, **kwargs):
            self.records.append((level, msg))

        def debug(self, msg, *args, **kwargs):
            self._log("debug", msg)

        def info(self, msg, *args, **kwargs):
            self._log("info", msg)

        def warning(self, msg, *args, **kwargs):
            self._log("warning", msg)

        def error(self, msg, *args, **kwargs):
            self._log("error", msg)

        def messages(self, level):
            return [m for lvl, m in self.records if lvl == level]

    return CaptureLogger()
