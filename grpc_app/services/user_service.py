from __future__ import annotations

import grpc
from google.protobuf.empty_pb2 import Empty

from application.services.user_service import UserApplicationService
from grpc_app.generated.accountd.v1 import user_pb2, user_pb2_grpc
from grpc_app.mappers.user import batch_to_proto, user_from_proto, user_to_proto


class UserService(user_pb2_grpc.UserServiceServicer):
    """Adapts accountd.v1.UserService calls to the user application service.

    Business exceptions propagate to ``ExceptionMappingInterceptor``; bulk
    calls always succeed at the RPC level and report per-user outcomes.
    """

    def __init__(self, service: UserApplicationService) -> None:
        self._svc = service

    async def GetUser(self, request: user_pb2.UserID, context: grpc.aio.ServicerContext) -> user_pb2.User:  # type: ignore[override]
        user = await self._svc.get_user(int(request.id))
        return user_to_proto(user)

    async def GetUsers(self, request: Empty, context: grpc.aio.ServicerContext) -> user_pb2.Users:  # type: ignore[override]
        users = await self._svc.list_users()
        return user_pb2.Users(users=[user_to_proto(u) for u in users])

    async def CreateUser(self, request: user_pb2.User, context: grpc.aio.ServicerContext) -> user_pb2.UserID:  # type: ignore[override]
        user_id = await self._svc.create_user(user_from_proto(request))
        return user_pb2.UserID(id=user_id)

    async def CreateUsers(self, request: user_pb2.Users, context: grpc.aio.ServicerContext) -> user_pb2.BulkResponse:  # type: ignore[override]
        batch = await self._svc.create_users([user_from_proto(u) for u in request.users])
        return batch_to_proto(batch)

    async def UpdateUser(self, request: user_pb2.User, context: grpc.aio.ServicerContext) -> Empty:  # type: ignore[override]
        await self._svc.update_user(user_from_proto(request))
        return Empty()

    async def UpdateUsers(self, request: user_pb2.Users, context: grpc.aio.ServicerContext) -> user_pb2.BulkResponse:  # type: ignore[override]
        batch = await self._svc.update_users([user_from_proto(u) for u in request.users])
        return batch_to_proto(batch)

    async def DeleteUser(self, request: user_pb2.UserID, context: grpc.aio.ServicerContext) -> Empty:  # type: ignore[override]
        await self._svc.delete_user(int(request.id))
        return Empty()
