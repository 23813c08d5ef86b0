from __future__ import annotations

from application.bulk.types import BatchResult, Outcome
from domain.user.entity import User
from grpc_app.generated.accountd.v1 import user_pb2


def user_to_proto(user: User) -> user_pb2.User:
    """Password is never copied onto outgoing messages"""
    return user_pb2.User(
        account_id=int(user.account_id),
        href=user.resource_path() if user.id else "",
        id=int(user.id),
        name=user.name,
        email=user.email,
        role=int(user.role),
    )


def user_from_proto(msg: user_pb2.User) -> User:
    return User(
        account_id=int(msg.account_id),
        id=int(msg.id),
        name=msg.name,
        email=msg.email,
        role=int(msg.role),
        password=msg.password or None,
    )


def outcome_to_proto(outcome: Outcome[User]) -> user_pb2.Outcome:
    return user_pb2.Outcome(
        status=int(outcome.status),
        error_message=outcome.error_message,
        error_reason=int(outcome.error_reason),
        user=user_to_proto(outcome.entity),
    )


def batch_to_proto(batch: BatchResult[User]) -> user_pb2.BulkResponse:
    return user_pb2.BulkResponse(
        overall_status=int(batch.overall_status),
        outcomes=[outcome_to_proto(o) for o in batch.outcomes],
    )

