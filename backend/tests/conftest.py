import itertools
import os

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

# Default DATABASE_URL (the app's own engine is never used; get_db is overridden below)
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
from app.main import app  # noqa: E402
from app.core.security import create_access_token  # noqa: E402
from app.db.database import Base, get_db  # noqa: E402
from app.db.enums import TaskVisibility  # noqa: E402
from app.db.models import (  # noqa: E402
    Task, TaskAllowedUser, TaskBlockedUser, TaskWatcher, User, VendorProfile, Wedding,
)


@pytest.fixture(scope="session")
async def test_engine(tmp_path_factory):
    # On-disk file so the app's request sessions and the test session share one database
    db_path = tmp_path_factory.mktemp("db") / "wedding_test.db"
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def clean_tables(test_engine):
    """Empty every table before the test; the schema stays in place."""
    async with test_engine.begin() as conn:
        # delete in reverse order to respect FK constraints
        for table in reversed(Base.metadata.sorted_tables):
            await conn.execute(table.delete())


@pytest.fixture
async def test_session(test_engine, clean_tables):
    session_factory = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(test_engine, test_session):
    """HTTP client against the app, with get_db bound to the test database."""
    session_factory = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)

    async def _override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
async def wedding(test_session):
    w = Wedding(name="Ada & Sam")
    test_session.add(w)
    await test_session.commit()
    return w


@pytest.fixture
def make_user(test_session, wedding):
    counter = itertools.count(1)

    async def _make(role, wedding_id=None, is_active=True):
        n = next(counter)
        slug = role.value.lower()
        user = User(
            email=f"{slug}{n}@example.com",
            username=f"{slug}_{n}",
            display_name=f"{role.value.title()} {n}",
            role=role,
            wedding_id=wedding_id or wedding.id,
            is_active=is_active,
        )
        test_session.add(user)
        await test_session.commit()
        return user

    return _make


@pytest.fixture
def make_vendor(test_session, wedding):
    async def _make(user=None, company_name="Bloom Florals", wedding_id=None):
        vendor = VendorProfile(
            wedding_id=wedding_id or wedding.id,
            user_id=user.id if user else None,
            company_name=company_name,
            vendor_type="florist",
        )
        test_session.add(vendor)
        await test_session.commit()
        return vendor

    return _make


@pytest.fixture
def make_task(test_session, wedding):
    async def _make(
        title="Book the string quartet",
        visibility=TaskVisibility.internal_team,
        vendor=None,
        created_by=None,
        assigned_to=None,
        allowed=(),
        blocked=(),
        watchers=(),
        wedding_id=None,
    ):
        task = Task(
            wedding_id=wedding_id or wedding.id,
            title=title,
            visibility=visibility,
            vendor_id=vendor.id if vendor else None,
            created_by_user_id=created_by.id if created_by else None,
            assigned_to_user_id=assigned_to.id if assigned_to else None,
            tags="[]",
        )
        task.allowed_users = [TaskAllowedUser(user_id=u.id) for u in allowed]
        task.blocked_users = [TaskBlockedUser(user_id=u.id) for u in blocked]
        task.watchers = [TaskWatcher(user_id=u.id) for u in watchers]
        test_session.add(task)
        await test_session.commit()
        return task

    return _make


@pytest.fixture
def auth_headers():
    def _headers(user):
        token = create_access_token({"sub": str(user.id)})
        return {"Authorization": f"Bearer {token}"}

    return _headers
