from typing import AsyncIterator, Tuple

import grpc
import pytest

from application.services.user_service import UserApplicationService
from core.metrics import ServiceMetrics
from grpc_app.interceptors.exceptions import business_code_to_grpc_status
from shared.codes import BusinessCode


def _skip_if_no_generated():
    try:
        from grpc_app.generated.accountd.v1 import user_pb2, user_pb2_grpc  # noqa: F401
    except ImportError as exc:  # pragma: no cover
        pytest.skip(f"gRPC stubs not generated (run scripts/gen_protos.py): {exc}")


@pytest.fixture
def grpc_metrics() -> ServiceMetrics:
    return ServiceMetrics()


@pytest.fixture
async def grpc_stub(uow_factory, grpc_metrics) -> AsyncIterator[Tuple[object, object]]:
    """Serve the real servicer over the in-memory unit of work on an ephemeral port"""
    _skip_if_no_generated()

    from grpc_app.generated.accountd.v1 import user_pb2, user_pb2_grpc
    from grpc_app.server import create_server

    server, port = await create_server(
        UserApplicationService(uow_factory, max_bulk_ops=2, metrics=grpc_metrics),
        address="127.0.0.1:0",
        metrics=grpc_metrics,
    )
    await server.start()
    channel = grpc.aio.insecure_channel(f"127.0.0.1:{port}")
    try:
        yield user_pb2_grpc.UserServiceStub(channel), user_pb2
    finally:
        await channel.close()
        await server.stop(grace=None)


def _user(pb, n: int, **overrides):
    values = dict(
        account_id=1,
        name=f"grpc {n}",
        email=f"grpc{n}@example.com",
        role=pb.UNRESTRICTED,
        password="s3cret-pass",
    )
    values.update(overrides)
    return pb.User(**values)


async def test_create_get_and_list(grpc_stub):
    stub, pb = grpc_stub

    created = await stub.CreateUser(_user(pb, 1))
    fetched = await stub.GetUser(pb.UserID(id=created.id))

    assert created.id == 1
    assert fetched.email == "grpc1@example.com"
    assert fetched.href == "/users/1"
    assert fetched.password == ""

    from google.protobuf import empty_pb2
    listed = await stub.GetUsers(empty_pb2.Empty())
    assert [u.id for u in listed.users] == [1]


async def test_bulk_create_reports_per_user_outcomes(grpc_stub):
    stub, pb = grpc_stub
    await stub.CreateUser(_user(pb, 1))

    resp = await stub.CreateUsers(pb.Users(users=[_user(pb, 1), _user(pb, 2), _user(pb, 3)]))

    assert resp.overall_status == pb.CONFLICT
    assert len(resp.outcomes) == 3
    by_email = {o.user.email: o for o in resp.outcomes}
    assert by_email["grpc1@example.com"].status == pb.BAD_REQUEST
    assert by_email["grpc1@example.com"].error_reason == BusinessCode.USER_ALREADY_EXISTS
    assert by_email["grpc2@example.com"].status == pb.CREATED
    assert by_email["grpc2@example.com"].user.id > 0


async def test_bulk_update(grpc_stub):
    stub, pb = grpc_stub
    await stub.CreateUsers(pb.Users(users=[_user(pb, 1), _user(pb, 2)]))

    resp = await stub.UpdateUsers(pb.Users(users=[
        _user(pb, 1, id=1, name="first"),
        _user(pb, 2, id=2, name="second"),
    ]))

    assert resp.overall_status == pb.OK
    assert {o.status for o in resp.outcomes} == {pb.OK}


async def test_missing_user_maps_to_not_found(grpc_stub):
    stub, pb = grpc_stub

    with pytest.raises(grpc.aio.AioRpcError) as exc_info:
        await stub.GetUser(pb.UserID(id=404))

    err = exc_info.value
    assert err.code() == grpc.StatusCode.NOT_FOUND
    trailers = dict(err.trailing_metadata() or ())
    assert trailers.get("x-biz-code") == str(int(BusinessCode.USER_NOT_FOUND))


async def test_invalid_user_maps_to_invalid_argument(grpc_stub):
    stub, pb = grpc_stub

    with pytest.raises(grpc.aio.AioRpcError) as exc_info:
        await stub.CreateUser(_user(pb, 1, account_id=0))

    assert exc_info.value.code() == grpc.StatusCode.INVALID_ARGUMENT
    assert "AccountID cannot be 0" in exc_info.value.details()


async def test_delete_user(grpc_stub):
    stub, pb = grpc_stub
    created = await stub.CreateUser(_user(pb, 1))

    await stub.DeleteUser(pb.UserID(id=created.id))

    with pytest.raises(grpc.aio.AioRpcError) as exc_info:
        await stub.DeleteUser(pb.UserID(id=created.id))
    assert exc_info.value.code() == grpc.StatusCode.NOT_FOUND


@pytest.mark.parametrize("code, expected", [
    (BusinessCode.USER_ALREADY_EXISTS, grpc.StatusCode.ALREADY_EXISTS),
    (BusinessCode.BULK_TIMEOUT, grpc.StatusCode.DEADLINE_EXCEEDED),
    (BusinessCode.SYSTEM_ERROR, grpc.StatusCode.INTERNAL),
    (99999, grpc.StatusCode.FAILED_PRECONDITION),
])
def test_business_code_to_grpc_status(code, expected):
    assert business_code_to_grpc_status(code) == expected


async def test_calls_record_metrics(grpc_stub, grpc_metrics):
    stub, pb = grpc_stub
    await stub.CreateUser(_user(pb, 1))

    await stub.CreateUsers(pb.Users(users=[_user(pb, 1), _user(pb, 2)]))
    with pytest.raises(grpc.aio.AioRpcError):
        await stub.GetUser(pb.UserID(id=404))

    sample = grpc_metrics.registry.get_sample_value
    assert sample(
        "mockvideo_grpc_request_duration_seconds_count",
        {"method": "/accountd.v1.UserService/CreateUsers", "code": "OK"},
    ) == 1
    assert sample("mockvideo_bulk_items_total", {"kind": "CREATE", "status": "CREATED"}) == 1
    assert sample("mockvideo_bulk_items_total", {"kind": "CREATE", "status": "BAD_REQUEST"}) == 1

    failed_codes = {
        s.labels["code"]
        for metric in grpc_metrics.registry.collect()
        for s in metric.samples
        if s.name == "mockvideo_grpc_request_duration_seconds_count"
        and s.labels["method"] == "/accountd.v1.UserService/GetUser"
    }
    assert failed_codes and "OK" not in failed_codes


def test_default_service_records_into_metrics():
    _skip_if_no_generated()
    from grpc_app.server import build_user_service

    metrics = ServiceMetrics()
    service = build_user_service(metrics)

    assert service._bulk._metrics is metrics
    assert service._uow_factory.keywords["metrics"] is metrics
