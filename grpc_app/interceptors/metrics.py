from __future__ import annotations

import time
from typing import Callable, Awaitable

import grpc

from core.metrics import ServiceMetrics


def _status_name(context: grpc.aio.ServicerContext) -> str:
    code = context.code()
    return getattr(code, "name", None) or "UNKNOWN"


class MetricsInterceptor(grpc.aio.ServerInterceptor):
    """Observe per-call durations labelled by full method name and status code."""

    def __init__(self, metrics: ServiceMetrics) -> None:
        self._metrics = metrics

    async def intercept_service(
        self,
        continuation: Callable[[grpc.HandlerCallDetails], Awaitable[grpc.RpcMethodHandler]],
        handler_call_details: grpc.HandlerCallDetails,
    ) -> grpc.RpcMethodHandler:
        handler = await continuation(handler_call_details)
        if handler is None:
            return handler

        method = handler_call_details.method
        metrics = self._metrics

        async def _unary_unary(request, context: grpc.aio.ServicerContext):
            start = time.perf_counter()
            code = "OK"
            try:
                return await handler.unary_unary(request, context)
            except (grpc.RpcError, grpc.aio.AbortError):
                code = _status_name(context)
                raise
            except Exception:
                code = grpc.StatusCode.UNKNOWN.name
                raise
            finally:
                metrics.observe_rpc(method, code, time.perf_counter() - start)

        if handler.unary_unary:
            return grpc.unary_unary_rpc_method_handler(
                _unary_unary,
                request_deserializer=handler.request_deserializer,
                response_serializer=handler.response_serializer,
            )
        return handler
