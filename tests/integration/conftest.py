"""Integration test fixtures for database and HTTP client operations.

Each test gets its own SQLite file database. Transactions start with
``BEGIN IMMEDIATE`` so concurrent sessions serialize on the write lock the
way row locks serialize the conditional updates in PostgreSQL.

Seed data through ``session_factory`` in a block that commits before any
service or HTTP call, so the test never holds the write lock itself.
"""

from collections.abc import AsyncGenerator, Callable
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool
from sqlmodel import SQLModel

from src.accessgrant.api.dependencies import get_db_session
from src.accessgrant.core.db import get_session_factory
from src.accessgrant.core.notifications import EmailResult
from src.accessgrant.main import create_app
from src.accessgrant.models import Membership, MembershipRole, Tenant, User
from tests.factories import MembershipFactory, TenantFactory, UserFactory


@pytest.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine]:
    test_engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        poolclass=NullPool,
        connect_args={"timeout": 30},
    )

    @event.listens_for(test_engine.sync_engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(test_engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    async with test_engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Sessions configured exactly like the application's."""
    return get_session_factory(engine)


@pytest.fixture
async def client(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncClient]:
    """HTTP client whose requests each get a session on the test database."""
    app = create_app()

    async def _override_session() -> AsyncGenerator[AsyncSession]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = _override_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def sent_emails(monkeypatch: pytest.MonkeyPatch) -> list[dict[str, Any]]:
    """Capture invitation emails instead of sending them.

    Each entry holds the keyword arguments, including the raw token, so tests
    can follow the link.
    """
    sent: list[dict[str, Any]] = []

    async def _fake_send(**kwargs: Any) -> EmailResult:
        sent.append(kwargs)
        return EmailResult(success=True)

    monkeypatch.setattr("src.accessgrant.services.invitation_issuer.send_invite_email", _fake_send)
    return sent


@pytest.fixture
def failing_email(monkeypatch: pytest.MonkeyPatch) -> list[dict[str, Any]]:
    """Make every invitation email fail to deliver."""
    attempts: list[dict[str, Any]] = []

    async def _fake_send(**kwargs: Any) -> EmailResult:
        attempts.append(kwargs)
        return EmailResult(success=False, error="provider down")

    monkeypatch.setattr("src.accessgrant.services.invitation_issuer.send_invite_email", _fake_send)
    return attempts


@pytest.fixture
def add_rows(session_factory: async_sessionmaker[AsyncSession]) -> Callable[..., Any]:
    """Persist rows in a committed, closed session."""

    async def _add(*rows: Any) -> None:
        async with session_factory() as session:
            for row in rows:
                session.add(row)
            await session.commit()

    return _add


@pytest.fixture
def add_member(add_rows: Callable[..., Any]) -> Callable[..., Any]:
    """Create a user with a membership in ``tenant``."""

    async def _add(
        tenant: Tenant, role: MembershipRole = MembershipRole.MEMBER, **user_kwargs: Any
    ) -> tuple[User, Membership]:
        user = UserFactory.build(**user_kwargs)
        membership = MembershipFactory.build(
            user_id=user.id, tenant_id=tenant.id, role=role.value
        )
        await add_rows(user)
        await add_rows(membership)
        return user, membership

    return _add


@pytest.fixture
async def tenant(add_rows: Callable[..., Any]) -> Tenant:
    team = TenantFactory.build(name="Acme Team")
    await add_rows(team)
    return team


@pytest.fixture
async def nonprofit(add_rows: Callable[..., Any]) -> Tenant:
    portal = TenantFactory.nonprofit(name="Helping Hands")
    await add_rows(portal)
    return portal


@pytest.fixture
async def owner(tenant: Tenant, add_member: Callable[..., Any]) -> User:
    user, _ = await add_member(tenant, MembershipRole.OWNER, full_name="Olivia Owner")
    return user


@pytest.fixture
async def admin(tenant: Tenant, add_member: Callable[..., Any]) -> User:
    user, _ = await add_member(tenant, MembershipRole.ADMIN, full_name="Adam Admin")
    return user

