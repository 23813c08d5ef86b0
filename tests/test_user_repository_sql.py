import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from application.bulk import OutcomeStatus
from application.services.user_service import UserApplicationService
from core.metrics import ServiceMetrics
from domain.common.exceptions import UserAlreadyExistsException, UserNotFoundException
from domain.user.entity import User
from infrastructure.models import Base
from infrastructure.unit_of_work import SQLAlchemyUnitOfWork
from shared.codes import BusinessCode


@pytest.fixture
async def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'users.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(bind=engine, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
def metrics():
    return ServiceMetrics()


@pytest.fixture
def sql_uow(session_factory, metrics):
    def _factory(**kwargs):
        return SQLAlchemyUnitOfWork(session_factory, metrics=metrics, **kwargs)
    return _factory


def _user(n: int, **overrides) -> User:
    values = dict(account_id=3, name=f"sql {n}", email=f"sql{n}@example.com", role=2, password="hashed")
    values.update(overrides)
    return User(**values)


async def test_create_and_read_back(sql_uow, metrics):
    async with sql_uow() as uow:
        created = await uow.user_repository.create(_user(1))

    async with sql_uow(readonly=True) as uow:
        fetched = await uow.user_repository.get_by_id(created.id)
        everyone = await uow.user_repository.get_all()

    assert created.id > 0
    assert fetched == created
    assert [u.id for u in everyone] == [created.id]
    assert metrics.registry.get_sample_value(
        "mockvideo_database_db_request_duration_seconds_count",
        {"target": "users", "operation": "insert", "result": "ok"},
    ) == 1


async def test_duplicate_email_raises_already_exists(sql_uow):
    async with sql_uow() as uow:
        await uow.user_repository.create(_user(1))

    with pytest.raises(UserAlreadyExistsException):
        async with sql_uow() as uow:
            await uow.user_repository.create(_user(2, email="sql1@example.com"))

    async with sql_uow(readonly=True) as uow:
        assert len(await uow.user_repository.get_all()) == 1


async def test_update_missing_row_raises_not_found(sql_uow):
    with pytest.raises(UserNotFoundException):
        async with sql_uow() as uow:
            await uow.user_repository.update(_user(1, id=12345))


async def test_update_and_delete(sql_uow):
    async with sql_uow() as uow:
        created = await uow.user_repository.create(_user(1))

    async with sql_uow() as uow:
        updated = await uow.user_repository.update(_user(1, id=created.id, name="renamed", role=0))
    assert updated.name == "renamed"
    assert updated.role == 0

    async with sql_uow() as uow:
        assert await uow.user_repository.delete(created.id) is True
        assert await uow.user_repository.delete(created.id) is False

    async with sql_uow(readonly=True) as uow:
        assert await uow.user_repository.get_by_id(created.id) is None


async def test_bulk_create_through_sql_store(sql_uow):
    service = UserApplicationService(sql_uow, max_bulk_ops=1)
    users = [_user(1), _user(2), _user(3, email="sql1@example.com")]

    result = await service.create_users(users)

    assert result.overall_status == OutcomeStatus.CONFLICT
    statuses = sorted(o.status.name for o in result.outcomes)
    assert statuses == ["BAD_REQUEST", "CREATED", "CREATED"]
    failed = result.failed[0]
    assert failed.error_reason == BusinessCode.USER_ALREADY_EXISTS
    stored = await service.list_users()
    assert len(stored) == 2
    assert all(u.password != "hashed" for u in stored)


async def test_concurrent_bulk_create_against_sql(sql_uow, metrics):
    service = UserApplicationService(sql_uow, max_bulk_ops=5, metrics=metrics)
    users = [_user(n) for n in range(1, 9)] + [_user(9, email="sql4@example.com")]

    result = await service.create_users(users)

    assert len(result.outcomes) == 9
    assert result.overall_status == OutcomeStatus.CONFLICT
    assert [o.error_reason for o in result.failed] == [BusinessCode.USER_ALREADY_EXISTS]
    created_ids = [o.entity.id for o in result.outcomes if o.status == OutcomeStatus.CREATED]
    assert len(set(created_ids)) == 8
    stored = await service.list_users()
    assert sorted(u.id for u in stored) == sorted(created_ids)
    assert metrics.registry.get_sample_value(
        "mockvideo_bulk_items_total", {"kind": "CREATE", "status": "CREATED"}
    ) == 8
