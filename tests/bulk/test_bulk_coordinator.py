import asyncio
import itertools

import pytest

from application.bulk import (
    BulkConfigurationError,
    BulkCoordinator,
    OperationKind,
    OutcomeStatus,
    aggregate_overall_status,
    run_batch,
)
from core.metrics import ServiceMetrics
from domain.user.entity import User
from shared.codes import BusinessCode


async def _wait_for(predicate, attempts: int = 200):
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition not reached")


@pytest.mark.parametrize("kind, expected", [
    (OperationKind.CREATE, OutcomeStatus.CREATED),
    (OperationKind.UPDATE, OutcomeStatus.OK),
])
async def test_empty_batch_returns_immediately(store_factory, kind, expected):
    store = store_factory()
    result = await run_batch([], kind, 3, store)

    assert result.outcomes == []
    assert result.overall_status == expected
    assert store.calls == []


@pytest.mark.parametrize("count, limit", [(1, 1), (7, 3), (25, 4), (4, 10)])
async def test_one_outcome_per_entity(store_factory, make_users, count, limit):
    store = store_factory(delay=0.001)
    result = await run_batch(make_users(count), OperationKind.CREATE, limit, store)

    assert len(result.outcomes) == count
    assert sorted(o.entity.email for o in result.outcomes) == sorted(u.email for u in make_users(count))
    assert result.overall_status == OutcomeStatus.CREATED


async def test_store_calls_never_exceed_concurrency_limit(store_factory, make_users):
    gate = asyncio.Event()
    store = store_factory(gate=gate)
    task = asyncio.create_task(run_batch(make_users(12), OperationKind.CREATE, 3, store))

    await _wait_for(lambda: store.active == 3)
    # Give the dispatcher every chance to overshoot
    for _ in range(50):
        await asyncio.sleep(0)
    assert store.active == 3
    assert len(store.calls) == 3

    gate.set()
    result = await task

    assert store.peak == 3
    assert len(result.outcomes) == 12


async def test_all_success_create_batch_reports_assigned_ids(store_factory, make_users):
    store = store_factory(first_id=10)
    users = make_users(2)

    result = await run_batch(users, OperationKind.CREATE, 10, store)

    assert result.overall_status == OutcomeStatus.CREATED
    assert [o.status for o in result.outcomes] == [OutcomeStatus.CREATED] * 2
    assert sorted(o.entity.id for o in result.outcomes) == [10, 11]
    # Callers' entities are never mutated
    assert [u.id for u in users] == [0, 0]


async def test_duplicate_email_fails_only_that_item(store_factory, make_users):
    users = make_users(2)
    store = store_factory(duplicate_emails={users[1].email})

    result = await run_batch(users, OperationKind.CREATE, 10, store)

    assert result.overall_status == OutcomeStatus.CONFLICT
    by_email = {o.entity.email: o for o in result.outcomes}
    assert by_email[users[0].email].status == OutcomeStatus.CREATED
    assert by_email[users[0].email].entity.id != 0
    failed = by_email[users[1].email]
    assert failed.status == OutcomeStatus.BAD_REQUEST
    assert failed.error_message
    assert failed.error_reason == BusinessCode.USER_ALREADY_EXISTS


async def test_update_of_missing_entity_is_bad_request(store_factory):
    store = store_factory()
    missing = User(account_id=1, id=999, name="ghost", email="ghost@example.com", password="pw")

    result = await run_batch([missing], OperationKind.UPDATE, 2, store)

    assert result.overall_status == OutcomeStatus.CONFLICT
    assert len(result.outcomes) == 1
    assert result.outcomes[0].status == OutcomeStatus.BAD_REQUEST
    assert result.outcomes[0].error_reason == BusinessCode.USER_NOT_FOUND


async def test_failure_isolation_in_larger_batch(store_factory, make_users):
    users = make_users(9)
    store = store_factory(duplicate_emails={users[4].email}, delay=0.001)

    result = await run_batch(users, OperationKind.CREATE, 3, store)

    assert len(result.outcomes) == 9
    assert result.overall_status == OutcomeStatus.CONFLICT
    failed = result.failed
    assert [o.entity.email for o in failed] == [users[4].email]
    assert all(o.entity.id != 0 for o in result.outcomes if o.status == OutcomeStatus.CREATED)


async def test_unexpected_store_error_is_server_error(store_factory, make_users):
    users = make_users(3)
    store = store_factory(crash_emails={users[0].email})

    result = await run_batch(users, OperationKind.CREATE, 2, store)

    crashed = next(o for o in result.outcomes if o.entity.email == users[0].email)
    assert crashed.status == OutcomeStatus.SERVER_ERROR
    assert crashed.error_reason == BusinessCode.SYSTEM_ERROR
    assert result.overall_status == OutcomeStatus.CONFLICT
    assert len(result.outcomes) == 3


async def test_timeout_marks_unfinished_items(store_factory, make_users):
    users = make_users(4)
    store = store_factory(hang_emails={users[2].email})
    coordinator = BulkCoordinator(store, 2, timeout=0.05)

    result = await coordinator.run_batch(users, OperationKind.CREATE)

    assert len(result.outcomes) == 4
    assert result.overall_status == OutcomeStatus.CONFLICT
    timed_out = [o for o in result.outcomes if o.status == OutcomeStatus.TIMED_OUT]
    assert [o.entity.email for o in timed_out] == [users[2].email]
    assert timed_out[0].error_reason == BusinessCode.BULK_TIMEOUT


async def test_aggregation_is_order_independent():
    statuses = [OutcomeStatus.CREATED, OutcomeStatus.CREATED, OutcomeStatus.BAD_REQUEST, OutcomeStatus.CREATED]
    seen = {aggregate_overall_status(OperationKind.CREATE, p) for p in itertools.permutations(statuses)}
    assert seen == {OutcomeStatus.CONFLICT}

    ok = [OutcomeStatus.OK] * 3
    assert aggregate_overall_status(OperationKind.UPDATE, ok) == OutcomeStatus.OK
    assert aggregate_overall_status(OperationKind.CREATE, []) == OutcomeStatus.CREATED


async def test_batch_result_matches_aggregation(store_factory, make_users):
    users = make_users(6)
    store = store_factory(duplicate_emails={users[0].email, users[3].email}, delay=0.001)

    result = await run_batch(users, OperationKind.CREATE, 2, store)

    statuses = [o.status for o in result.outcomes]
    assert result.overall_status == aggregate_overall_status(OperationKind.CREATE, statuses)
    assert result.overall_status == aggregate_overall_status(OperationKind.CREATE, reversed(statuses))


@pytest.mark.parametrize("limit", [0, -1, 2.5, True])
def test_rejects_invalid_concurrency_limit(store_factory, limit):
    with pytest.raises(BulkConfigurationError):
        BulkCoordinator(store_factory(), limit)


def test_rejects_missing_store_and_bad_timeout(store_factory):
    with pytest.raises(BulkConfigurationError):
        BulkCoordinator(None, 2)
    with pytest.raises(BulkConfigurationError):
        BulkCoordinator(store_factory(), 2, timeout=0)


async def test_records_metrics(store_factory, make_users):
    metrics = ServiceMetrics()
    users = make_users(3)
    store = store_factory(duplicate_emails={users[1].email})

    await BulkCoordinator(store, 2, metrics=metrics).run_batch(users, OperationKind.CREATE)

    sample = metrics.registry.get_sample_value
    assert sample("mockvideo_bulk_items_total", {"kind": "CREATE", "status": "CREATED"}) == 2
    assert sample("mockvideo_bulk_items_total", {"kind": "CREATE", "status": "BAD_REQUEST"}) == 1
    assert sample(
        "mockvideo_bulk_batch_duration_seconds_count", {"kind": "CREATE", "overall_status": "CONFLICT"}
    ) == 1
    assert sample("mockvideo_bulk_inflight_operations") == 0
