import asyncio

from prometheus_client import start_http_server

from core.config import settings
from core.logging_config import get_logger
from core.metrics import ServiceMetrics
from grpc_app.server import create_server


logger = get_logger(__name__)


async def main() -> None:
    if not settings.grpc.enabled:
        logger.warning("grpc_disabled", message="gRPC disabled by config (GRPC__ENABLED=false)")
        return

    metrics = None
    if settings.metrics.enabled:
        metrics = ServiceMetrics(namespace=settings.metrics.namespace)
        start_http_server(settings.metrics.grpc_exporter_port, registry=metrics.registry)
        logger.info("grpc_metrics_exporter_started", port=settings.metrics.grpc_exporter_port)

    server, _ = await create_server(metrics=metrics)
    address = f"{settings.grpc.host}:{settings.grpc.port}"
    logger.info("grpc_starting", address=address, max_bulk_concurrency=settings.bulk.max_concurrency)
    await server.start()
    logger.info("grpc_started", address=address)
    try:
        await server.wait_for_termination()
    finally:
        logger.info("grpc_stopping")
        await server.stop(grace=5)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
