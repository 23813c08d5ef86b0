from __future__ import annotations

from functools import partial
from typing import List, Optional, Tuple
import grpc
from grpc_health.v1 import health, health_pb2_grpc, health_pb2

from application.services.user_service import UserApplicationService
from core.config import settings
from core.logging_config import get_logger
from core.metrics import ServiceMetrics
from infrastructure.unit_of_work import SQLAlchemyUnitOfWork
from grpc_app.interceptors.request_id import RequestIdInterceptor
from grpc_app.interceptors.logging import LoggingInterceptor
from grpc_app.interceptors.exceptions import ExceptionMappingInterceptor
from grpc_app.interceptors.metrics import MetricsInterceptor
from grpc_app.generated.accountd.v1 import user_pb2_grpc
from grpc_app.services.user_service import UserService


logger = get_logger(__name__)

SERVICE_NAME = "accountd.v1.UserService"


def build_user_service(metrics: Optional[ServiceMetrics] = None) -> UserApplicationService:
    """User service over SQLAlchemy units of work, recording into ``metrics``"""
    return UserApplicationService(
        partial(SQLAlchemyUnitOfWork, metrics=metrics),
        max_bulk_ops=settings.bulk.max_concurrency,
        bulk_timeout=settings.bulk.timeout_seconds,
        metrics=metrics,
    )


async def create_server(
    service: Optional[UserApplicationService] = None,
    address: Optional[str] = None,
    *,
    metrics: Optional[ServiceMetrics] = None,
) -> Tuple[grpc.aio.Server, int]:
    """Build the server with interceptors, the user service and health checks.

    Returns the server and its bound port. ``address`` overrides the
    configured host/port; tests pass ``127.0.0.1:0`` to get a free port.
    With ``metrics`` every call duration is observed, and a service built
    here records bulk and database metrics too.
    """
    interceptors: List[grpc.aio.ServerInterceptor] = [
        RequestIdInterceptor(),
        LoggingInterceptor(),
    ]
    if metrics is not None:
        interceptors.append(MetricsInterceptor(metrics))
    interceptors.append(ExceptionMappingInterceptor())  # maps business exceptions

    if service is None:
        service = build_user_service(metrics)

    options = [
        ("grpc.max_concurrent_streams", max(1, settings.grpc.max_concurrent_streams)),
    ]
    server = grpc.aio.server(interceptors=interceptors, options=options)

    user_pb2_grpc.add_UserServiceServicer_to_server(UserService(service), server)

    health_svc = health.HealthServicer()
    health_pb2_grpc.add_HealthServicer_to_server(health_svc, server)
    health_svc.set("", health_pb2.HealthCheckResponse.SERVING)
    health_svc.set(SERVICE_NAME, health_pb2.HealthCheckResponse.SERVING)

    address = address or f"{settings.grpc.host}:{settings.grpc.port}"

    if settings.grpc.tls.enabled:
        if not (settings.grpc.tls.cert and settings.grpc.tls.key):
            raise RuntimeError("GRPC TLS enabled but cert/key not provided")
        with open(settings.grpc.tls.cert, "rb") as f:
            cert_chain = f.read()
        with open(settings.grpc.tls.key, "rb") as f:
            private_key = f.read()
        root_certificates = None
        if settings.grpc.tls.ca:
            with open(settings.grpc.tls.ca, "rb") as f:
                root_certificates = f.read()
        creds = grpc.ssl_server_credentials(
            [(private_key, cert_chain)],
            root_certificates=root_certificates,
            require_client_auth=bool(root_certificates),
        )
        port = server.add_secure_port(address, creds)
    else:
        port = server.add_insecure_port(address)

    logger.info("grpc_server_built", address=address, port=port, tls=settings.grpc.tls.enabled)
    return server, port
